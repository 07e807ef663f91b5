"""
Metrics Aggregator

Rolls reconciled records into the totals, daily series and per-entity rollups
that every analysis stage consumes.

Counting Rules:
    - Shopee: non-cancelled orders, unique by order id
    - Lazada: only Fulfilled/Delivered lines with validity 'valid'. Units are
      raw lines; orders are distinct SKU-order ids.
    - Records without a parseable date stay in the totals but are left out of
      the daily series.
    - ROI and every ratio are 0 when the denominator is 0.

Ad Spend Attribution:
    Ads carry no foreign key to orders. An ad's spend is attributed to a sub-id
    when the sub-id appears (case-insensitive) anywhere in the ad's campaign,
    ad set or ad name, or equals the ad's own sub-id. This is an approximate
    join: one ad can match several sub-ids and some ads match none.

Usage:
    from affiliate_analytics.services.metrics import calculate_metrics, calculate_daily_metrics

    totals = calculate_metrics(shopee, lazada, ads)
    daily = calculate_daily_metrics(shopee, lazada, ads)
"""

import logging
from collections import defaultdict
from typing import Dict, List, Sequence, Tuple

import pandas as pd

from affiliate_analytics.models import (
    AdSpendRecord,
    CalculatedMetrics,
    DailyMetrics,
    OrderRecord,
    PlatformMetrics,
    SourcePlatform,
    SubIdMetrics,
)
from affiliate_analytics.services.dedup import merge_orders
from affiliate_analytics.services.normalizer import is_countable

logger = logging.getLogger(__name__)

DAILY_COLUMNS: List[str] = ['date', 'totalComSP', 'totalComLZD', 'adSpend', 'ordersSP', 'ordersLZD']

MIXED_PLATFORM = 'Mixed'


# =============================================================================
# Helpers
# =============================================================================


def calculate_roi(revenue: float, spend: float) -> float:
    """(revenue - spend) / spend * 100, or 0 when spend is 0."""
    if spend <= 0:
        return 0.0
    return (revenue - spend) / spend * 100.0


def safe_divide(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def unique_shopee_orders(orders: Sequence[OrderRecord]) -> List[OrderRecord]:
    """Countable Shopee orders, summing any lines that share an order id."""
    unique: Dict[str, OrderRecord] = {}
    for order in orders:
        if order.sourcePlatform != SourcePlatform.SHOPEE or not is_countable(order):
            continue
        existing = unique.get(order.orderId)
        unique[order.orderId] = order if existing is None else merge_orders(existing, order)
    return list(unique.values())


def countable_lazada_lines(orders: Sequence[OrderRecord]) -> List[OrderRecord]:
    return [o for o in orders if o.sourcePlatform == SourcePlatform.LAZADA and is_countable(o)]


def ad_name_text(ad: AdSpendRecord) -> str:
    return ' '.join(n for n in (ad.campaignName, ad.adSetName, ad.adName) if n).lower()


def ad_matches_sub_id(ad: AdSpendRecord, sub_id: str) -> bool:
    """Whether the ad's spend is attributed to sub_id (approximate join)."""
    needle = sub_id.lower()
    if not needle:
        return False
    if ad.subId and ad.subId.lower() == needle:
        return True
    return needle in ad_name_text(ad)


# =============================================================================
# Totals
# =============================================================================


def calculate_metrics(
    shopee_orders: Sequence[OrderRecord],
    lazada_orders: Sequence[OrderRecord],
    facebook_ads: Sequence[AdSpendRecord],
) -> CalculatedMetrics:
    """
    Cross-sectional totals over the full snapshot, dated or not.

    Returns:
        CalculatedMetrics with commission, order, spend and ratio totals.
    """
    shopee = unique_shopee_orders(shopee_orders)
    total_com_sp = round(sum(o.commission for o in shopee), 2)
    total_amount_sp = sum(o.orderValue for o in shopee)

    lazada = countable_lazada_lines(lazada_orders)
    units_lzd = sum(o.lineCount for o in lazada)
    total_orders_lzd = len({o.skuOrderId or o.orderId for o in lazada})
    total_com_lzd = sum(o.commission for o in lazada)
    total_amount_lzd = sum(o.orderValue for o in lazada)
    invalid_lzd = sum(
        o.lineCount for o in lazada_orders
        if o.sourcePlatform == SourcePlatform.LAZADA and not is_countable(o)
    )

    total_spent = sum(ad.spend for ad in facebook_ads)
    total_clicks = sum(ad.clicks for ad in facebook_ads)
    total_reach = sum(ad.reach for ad in facebook_ads)
    avg_cpc = safe_divide(sum(ad.cpc for ad in facebook_ads), len(facebook_ads))

    total_com = total_com_sp + total_com_lzd
    profit = total_com - total_spent

    metrics = CalculatedMetrics(
        totalAdsSpent=total_spent,
        totalComSP=total_com_sp,
        totalComLZD=total_com_lzd,
        totalCom=total_com,
        totalOrdersSP=len(shopee),
        totalOrdersLZD=total_orders_lzd,
        totalAmountSP=total_amount_sp,
        totalAmountLZD=total_amount_lzd,
        profit=profit,
        roi=calculate_roi(total_com, total_spent),
        cpoSP=safe_divide(total_spent, len(shopee)),
        cpoLZD=safe_divide(total_spent, units_lzd),
        cpcLink=avg_cpc,
        apcLZD=safe_divide(total_amount_lzd, total_spent),
        validOrdersLZD=units_lzd,
        invalidOrdersLZD=invalid_lzd,
        unitsLZD=units_lzd,
        totalLinkClicks=total_clicks,
        totalReach=total_reach,
    )
    logger.info(
        f"Calculated metrics: commission={total_com:.2f}, spend={total_spent:.2f}, "
        f"roi={metrics.roi:.1f}%"
    )
    return metrics


def derived_ratios(metrics: CalculatedMetrics) -> Dict[str, float]:
    """Cost per order, revenue per order and click-to-order conversion rate."""
    total_orders = metrics.totalOrdersSP + metrics.totalOrdersLZD
    return {
        'costPerOrder': safe_divide(metrics.totalAdsSpent, total_orders),
        'revenuePerOrder': safe_divide(metrics.totalCom, total_orders),
        'conversionRate': safe_divide(total_orders, metrics.totalLinkClicks) * 100.0,
    }


# =============================================================================
# Daily Series
# =============================================================================


def calculate_daily_metrics(
    shopee_orders: Sequence[OrderRecord],
    lazada_orders: Sequence[OrderRecord],
    facebook_ads: Sequence[AdSpendRecord],
) -> List[DailyMetrics]:
    """
    One DailyMetrics per calendar day seen in any source, oldest first.

    Undated records are skipped here; they still count in calculate_metrics.
    """
    rows: List[Dict[str, object]] = []
    skipped = 0

    for order in unique_shopee_orders(shopee_orders):
        if order.orderDate is None:
            skipped += 1
            continue
        rows.append({'date': order.orderDate.isoformat(), 'totalComSP': order.commission, 'ordersSP': 1})

    for order in countable_lazada_lines(lazada_orders):
        if order.orderDate is None:
            skipped += 1
            continue
        rows.append({'date': order.orderDate.isoformat(), 'totalComLZD': order.commission, 'ordersLZD': 1})

    for ad in facebook_ads:
        if ad.date is None:
            skipped += 1
            continue
        rows.append({'date': ad.date.isoformat(), 'adSpend': ad.spend})

    if skipped:
        logger.debug(f"{skipped} records without a date excluded from the daily series")
    if not rows:
        return []

    df = pd.DataFrame(rows, columns=DAILY_COLUMNS).fillna(0)
    daily = df.groupby('date', sort=True).sum()

    result: List[DailyMetrics] = []
    for day, row in daily.iterrows():
        total_com = float(row['totalComSP']) + float(row['totalComLZD'])
        spend = float(row['adSpend'])
        result.append(DailyMetrics(
            date=str(day),
            totalComSP=float(row['totalComSP']),
            totalComLZD=float(row['totalComLZD']),
            totalCom=total_com,
            adSpend=spend,
            profit=total_com - spend,
            roi=calculate_roi(total_com, spend),
            ordersSP=int(row['ordersSP']),
            ordersLZD=int(row['ordersLZD']),
        ))
    logger.info(f"Built daily series with {len(result)} days")
    return result


# =============================================================================
# Sub-id and Platform Rollups
# =============================================================================


def _countable_orders(
    shopee_orders: Sequence[OrderRecord],
    lazada_orders: Sequence[OrderRecord],
) -> List[OrderRecord]:
    return unique_shopee_orders(shopee_orders) + countable_lazada_lines(lazada_orders)


def _sub_id_order_stats(
    orders: Sequence[OrderRecord],
) -> Tuple[Dict[str, Dict[str, int]], Dict[str, float], Dict[str, Dict[str, float]]]:
    """Per sub-id: orders per platform, total commission, commission per day."""
    platform_orders: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
    commission: Dict[str, float] = defaultdict(float)
    daily_commission: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for order in orders:
        for sub_id in order.subIds:
            platform_orders[sub_id][order.sourcePlatform.value] += 1
            commission[sub_id] += order.commission
            if order.orderDate is not None:
                daily_commission[sub_id][order.orderDate.isoformat()] += order.commission
    return platform_orders, commission, daily_commission


def sub_id_rollup(
    shopee_orders: Sequence[OrderRecord],
    lazada_orders: Sequence[OrderRecord],
    facebook_ads: Sequence[AdSpendRecord],
) -> List[SubIdMetrics]:
    """
    Orders, commission and attributed spend per sub-id, by revenue descending.

    Each sub-id receives the full spend of every ad whose naming mentions it.
    dailyRoi holds the ROI of each dated day on which the sub-id had
    attributed spend.
    """
    orders = _countable_orders(shopee_orders, lazada_orders)
    platform_orders, commission, daily_commission = _sub_id_order_stats(orders)

    result: List[SubIdMetrics] = []
    for sub_id, per_platform in platform_orders.items():
        matched = [ad for ad in facebook_ads if ad_matches_sub_id(ad, sub_id)]
        spend = sum(ad.spend for ad in matched)

        daily_spend: Dict[str, float] = defaultdict(float)
        for ad in matched:
            if ad.date is not None:
                daily_spend[ad.date.isoformat()] += ad.spend
        daily_roi = [
            calculate_roi(daily_commission[sub_id].get(day, 0.0), daily_spend[day])
            for day in sorted(daily_spend)
            if daily_spend[day] > 0
        ]

        platform = next(iter(per_platform)) if len(per_platform) == 1 else MIXED_PLATFORM
        revenue = commission[sub_id]
        result.append(SubIdMetrics(
            subId=sub_id,
            platform=platform,
            orders=sum(per_platform.values()),
            revenue=revenue,
            adSpend=spend,
            roi=calculate_roi(revenue, spend),
            dailyRoi=daily_roi,
        ))

    result.sort(key=lambda s: s.revenue, reverse=True)
    logger.debug(f"Rolled up {len(result)} sub-ids")
    return result


def platform_rollup(
    shopee_orders: Sequence[OrderRecord],
    lazada_orders: Sequence[OrderRecord],
    facebook_ads: Sequence[AdSpendRecord],
) -> List[PlatformMetrics]:
    """
    Orders, commission and spend for each marketplace that has records.

    Spend is split without double counting: an ad matched by several sub-ids
    is divided equally between them, each share is split across platforms by
    that sub-id's order mix, and unmatched spend is split by overall order mix.
    """
    shopee = unique_shopee_orders(shopee_orders)
    lazada = countable_lazada_lines(lazada_orders)

    present: List[str] = []
    if shopee_orders:
        present.append(SourcePlatform.SHOPEE.value)
    if lazada_orders:
        present.append(SourcePlatform.LAZADA.value)
    if not present:
        return []

    orders = {
        SourcePlatform.SHOPEE.value: len(shopee),
        SourcePlatform.LAZADA.value: len({o.skuOrderId or o.orderId for o in lazada}),
    }
    revenue = {
        SourcePlatform.SHOPEE.value: sum(o.commission for o in shopee),
        SourcePlatform.LAZADA.value: sum(o.commission for o in lazada),
    }

    platform_orders, _, _ = _sub_id_order_stats(shopee + lazada)
    total_orders = sum(orders[p] for p in present)
    spend: Dict[str, float] = defaultdict(float)

    for ad in facebook_ads:
        matches = [s for s in platform_orders if ad_matches_sub_id(ad, s)]
        if matches:
            share = ad.spend / len(matches)
            for sub_id in matches:
                mix = platform_orders[sub_id]
                mix_total = sum(mix.values())
                for platform, count in mix.items():
                    spend[platform] += share * count / mix_total
        elif total_orders > 0:
            for platform in present:
                spend[platform] += ad.spend * orders[platform] / total_orders
        else:
            for platform in present:
                spend[platform] += ad.spend / len(present)

    return [
        PlatformMetrics(
            platform=platform,
            orders=orders[platform],
            revenue=revenue[platform],
            adSpend=spend[platform],
            roi=calculate_roi(revenue[platform], spend[platform]),
        )
        for platform in present
    ]


def daily_platform_orders(daily: Sequence[DailyMetrics]) -> Dict[str, List[float]]:
    """Per-platform daily order series, oldest first."""
    return {
        SourcePlatform.SHOPEE.value: [float(d.ordersSP) for d in daily],
        SourcePlatform.LAZADA.value: [float(d.ordersLZD) for d in daily],
    }
