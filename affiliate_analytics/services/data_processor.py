"""
Data Processor

Turns reconciled records and their metrics into the analysis input, checks it
and enriches it.

Key Outputs:
    - process_raw_data: AIAnalysisData with sub-ids, platforms, date range and
      the sub-id and platform rollups
    - validate_data: blocking errors and non-blocking warnings
    - enrich_data: the same data with EnhancedMetrics attached (trends,
      efficiency ratios, daily averages, platform breakdown, rankings, 7-day
      windows, quality indicators and record statistics)

Usage:
    from affiliate_analytics.services.data_processor import process_raw_data, enrich_data

    data = process_raw_data(shopee, lazada, ads, metrics, daily)
    report = validate_data(data)
    data = enrich_data(data)
"""

import logging
import math
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence

from affiliate_analytics.models import (
    AdSpendRecord,
    AIAnalysisData,
    CalculatedMetrics,
    DailyMetrics,
    DataQualityIndicators,
    DataStatistics,
    DataValidationResult,
    DateRange,
    EnhancedMetrics,
    OrderRecord,
    PlatformSnapshot,
    SeasonalWindow,
    SourcePlatform,
    SubIdSnapshot,
    TrendDirection,
)
from affiliate_analytics.services.metrics import derived_ratios, platform_rollup, sub_id_rollup
from affiliate_analytics.services.stats import coefficient_of_variation, linear_regression, mean

logger = logging.getLogger(__name__)

# Fewer records than this cannot support an analysis
MIN_RECORDS = 10

# Data whose last day is older than this is flagged as outdated
OUTDATED_DAYS = 30

# Range used when no record carries a date
DEFAULT_RANGE_DAYS = 30

WINDOW_DAYS = 7
RANKED_SUB_IDS = 3
RANKED_DAYS = 3


# =============================================================================
# Processing
# =============================================================================


def extract_sub_ids(
    shopee_orders: Sequence[OrderRecord],
    lazada_orders: Sequence[OrderRecord],
    facebook_ads: Sequence[AdSpendRecord],
) -> List[str]:
    """Distinct sub-ids in order of first appearance: Shopee, Lazada, then ads."""
    seen = {}
    for order in list(shopee_orders) + list(lazada_orders):
        for sub_id in order.subIds:
            if sub_id:
                seen.setdefault(sub_id, None)
    for ad in facebook_ads:
        if ad.subId:
            seen.setdefault(ad.subId, None)
    return list(seen)


def extract_platforms(
    shopee_orders: Sequence[OrderRecord],
    lazada_orders: Sequence[OrderRecord],
    facebook_ads: Sequence[AdSpendRecord],
) -> List[str]:
    platforms: List[str] = []
    if shopee_orders:
        platforms.append(SourcePlatform.SHOPEE.value)
    if lazada_orders:
        platforms.append(SourcePlatform.LAZADA.value)
    if facebook_ads:
        platforms.append(SourcePlatform.FACEBOOK.value)
    return platforms


def calculate_date_range(
    shopee_orders: Sequence[OrderRecord],
    lazada_orders: Sequence[OrderRecord],
    facebook_ads: Sequence[AdSpendRecord],
    daily: Sequence[DailyMetrics],
    as_of: Optional[date] = None,
) -> DateRange:
    """
    Span of the data.

    The daily series is preferred; record dates are the fallback and the
    DEFAULT_RANGE_DAYS days ending at as_of are used when nothing is dated.
    """
    dates = [date.fromisoformat(d.date) for d in daily]
    if not dates:
        dates = [o.orderDate for o in list(shopee_orders) + list(lazada_orders) if o.orderDate is not None]
        dates.extend(ad.date for ad in facebook_ads if ad.date is not None)

    if not dates:
        end = as_of or date.today()
        return DateRange(start=end - timedelta(days=DEFAULT_RANGE_DAYS), end=end)
    return DateRange(start=min(dates), end=max(dates))


def process_raw_data(
    shopee_orders: Sequence[OrderRecord],
    lazada_orders: Sequence[OrderRecord],
    facebook_ads: Sequence[AdSpendRecord],
    calculated_metrics: CalculatedMetrics,
    daily_metrics: Sequence[DailyMetrics],
    as_of: Optional[date] = None,
) -> AIAnalysisData:
    """
    Assemble the analysis input from reconciled records and their metrics.

    Args:
        shopee_orders: Reconciled Shopee orders.
        lazada_orders: Reconciled Lazada order lines.
        facebook_ads: Reconciled ad spend rows.
        calculated_metrics: Snapshot totals.
        daily_metrics: Daily series, oldest first.
        as_of: Reference day for the fallback date range.

    Returns:
        AIAnalysisData including the sub-id and platform rollups.
    """
    data = AIAnalysisData(
        shopeeOrders=list(shopee_orders),
        lazadaOrders=list(lazada_orders),
        facebookAds=list(facebook_ads),
        calculatedMetrics=calculated_metrics,
        dailyMetrics=list(daily_metrics),
        dateRange=calculate_date_range(shopee_orders, lazada_orders, facebook_ads, daily_metrics, as_of),
        subIds=extract_sub_ids(shopee_orders, lazada_orders, facebook_ads),
        platforms=extract_platforms(shopee_orders, lazada_orders, facebook_ads),
        subIdAnalysis=sub_id_rollup(shopee_orders, lazada_orders, facebook_ads),
        platformAnalysis=platform_rollup(shopee_orders, lazada_orders, facebook_ads),
    )
    logger.info(
        f"Processed {len(data.shopeeOrders)} Shopee, {len(data.lazadaOrders)} Lazada and "
        f"{len(data.facebookAds)} ad records: {len(data.subIds)} sub-ids, "
        f"{data.dateRange.start} to {data.dateRange.end}"
    )
    return data


# =============================================================================
# Validation
# =============================================================================


def total_records(data: AIAnalysisData) -> int:
    return len(data.shopeeOrders) + len(data.lazadaOrders) + len(data.facebookAds)


def validate_data(data: AIAnalysisData, as_of: Optional[date] = None) -> DataValidationResult:
    """
    Check that the input can support an analysis.

    Errors block a meaningful analysis; warnings (no sub-ids, stale data) only
    limit it. The result is never raised.
    """
    as_of = as_of or date.today()
    errors: List[str] = []
    warnings: List[str] = []
    records = total_records(data)

    if records < MIN_RECORDS:
        errors.append(f"Insufficient data: At least {MIN_RECORDS} records required for AI analysis")

    if records > 0 and data.calculatedMetrics == CalculatedMetrics():
        errors.append('Missing calculated metrics required for AI analysis')

    if data.dateRange.start > data.dateRange.end:
        errors.append('Invalid date range: Start date must not be after end date')

    if not data.subIds:
        warnings.append('No Sub IDs found in data - this may limit AI analysis capabilities')

    invalid = [
        d for d in data.dailyMetrics
        if not all(math.isfinite(v) for v in (d.totalCom, d.adSpend, d.roi))
    ]
    if invalid:
        errors.append(f"{len(invalid)} daily metrics contain invalid numerical values")

    if data.dailyMetrics:
        last_day = date.fromisoformat(data.dailyMetrics[-1].date)
        if (as_of - last_day).days > OUTDATED_DAYS:
            warnings.append(
                f"Data appears to be outdated (>{OUTDATED_DAYS} days old) - consider importing recent data"
            )

    if errors:
        logger.warning(f"Data validation failed: {'; '.join(errors)}")
    return DataValidationResult(isValid=not errors, errors=errors, warnings=warnings)


# =============================================================================
# Quality Indicators
# =============================================================================


def assess_data_completeness(metrics: CalculatedMetrics) -> float:
    """100 minus 25 for each of spend, commission, orders and clicks that is zero."""
    score = 100.0
    if metrics.totalAdsSpent == 0:
        score -= 25
    if metrics.totalCom == 0:
        score -= 25
    if metrics.totalOrdersSP == 0 and metrics.totalOrdersLZD == 0:
        score -= 25
    if metrics.totalLinkClicks == 0:
        score -= 25
    return max(0.0, score)


def assess_data_consistency(daily: Sequence[DailyMetrics]) -> float:
    """100 minus the daily ROI coefficient of variation in percent, floored at 0."""
    if not daily:
        return 0.0
    cv = coefficient_of_variation([d.roi for d in daily])
    if math.isinf(cv):
        return 0.0
    return max(0.0, 100.0 - cv * 100)


def assess_data_freshness(daily: Sequence[DailyMetrics], as_of: Optional[date] = None) -> float:
    if not daily:
        return 0.0
    as_of = as_of or date.today()
    age = (as_of - date.fromisoformat(daily[-1].date)).days
    if age <= 1:
        return 100.0
    if age <= 7:
        return 80.0
    if age <= 30:
        return 60.0
    return 30.0


def assess_data_reliability(metrics: CalculatedMetrics, daily: Sequence[DailyMetrics]) -> float:
    """Penalizes extreme overall ROI, spend far above commission and frequent ROI outlier days."""
    score = 100.0
    if metrics.roi > 1000 or metrics.roi < -100:
        score -= 20
    if metrics.totalAdsSpent > metrics.totalCom * 10:
        score -= 15
    outliers = sum(1 for d in daily if abs(d.roi) > 500)
    if outliers > len(daily) * 0.1:
        score -= 15
    return max(0.0, score)


def assess_quality_indicators(data: AIAnalysisData, as_of: Optional[date] = None) -> DataQualityIndicators:
    return DataQualityIndicators(
        completeness=assess_data_completeness(data.calculatedMetrics),
        consistency=assess_data_consistency(data.dailyMetrics),
        freshness=assess_data_freshness(data.dailyMetrics, as_of),
        reliability=assess_data_reliability(data.calculatedMetrics, data.dailyMetrics),
    )


# =============================================================================
# Enrichment
# =============================================================================


def slope_direction(values: Sequence[float], threshold: float = 0.0) -> TrendDirection:
    """Improving when the OLS slope is above threshold, declining below -threshold."""
    if len(values) < 2:
        return TrendDirection.STABLE
    slope = linear_regression(values).slope
    if slope > threshold:
        return TrendDirection.IMPROVING
    if slope < -threshold:
        return TrendDirection.DECLINING
    return TrendDirection.STABLE


def seasonal_windows(daily: Sequence[DailyMetrics]) -> List[SeasonalWindow]:
    """Average ROI and orders of the last 7 days and, when available, the 7 before."""
    windows: List[SeasonalWindow] = []
    chunks = [('Recent 7 days', daily[-WINDOW_DAYS:])]
    if len(daily) > WINDOW_DAYS:
        chunks.append(('Previous 7 days', daily[-2 * WINDOW_DAYS:-WINDOW_DAYS]))

    for label, chunk in chunks:
        if not chunk:
            continue
        windows.append(SeasonalWindow(
            period=label,
            avgROI=mean([d.roi for d in chunk]),
            avgOrders=mean([float(d.ordersSP + d.ordersLZD) for d in chunk]),
            trend=slope_direction([d.roi for d in chunk], threshold=1.0),
        ))
    return windows


def rank_sub_ids(data: AIAnalysisData) -> List[SubIdSnapshot]:
    """Sub-ids with orders, best ROI first."""
    ranked = sorted((s for s in data.subIdAnalysis if s.orders > 0), key=lambda s: s.roi, reverse=True)
    return [
        SubIdSnapshot(subId=s.subId, roi=s.roi, orders=s.orders, revenue=s.revenue, platform=s.platform)
        for s in ranked
    ]


def platform_snapshots(data: AIAnalysisData) -> Dict[str, PlatformSnapshot]:
    metrics = data.calculatedMetrics
    snapshots = {
        p.platform.lower(): PlatformSnapshot(roi=p.roi, orders=p.orders, revenue=p.revenue)
        for p in data.platformAnalysis
    }
    snapshots['overall'] = PlatformSnapshot(
        roi=metrics.roi,
        orders=metrics.totalOrdersSP + metrics.totalOrdersLZD,
        revenue=metrics.totalCom,
    )
    return snapshots


def data_statistics(data: AIAnalysisData) -> DataStatistics:
    return DataStatistics(
        totalRecords=total_records(data),
        shopeeOrders=len(data.shopeeOrders),
        lazadaOrders=len(data.lazadaOrders),
        facebookAds=len(data.facebookAds),
        days=len(data.dailyMetrics),
        subIds=len(data.subIds),
        platforms=len(data.platforms),
    )


def calculate_enhanced_metrics(data: AIAnalysisData, as_of: Optional[date] = None) -> EnhancedMetrics:
    daily = data.dailyMetrics
    ranked = rank_sub_ids(data)
    by_roi = sorted(daily, key=lambda d: d.roi, reverse=True)

    return EnhancedMetrics(
        **data.calculatedMetrics.model_dump(),
        **derived_ratios(data.calculatedMetrics),
        roiTrend=slope_direction([d.roi for d in daily], threshold=1.0),
        revenueTrend=slope_direction([d.totalCom for d in daily]),
        ordersTrend=slope_direction([float(d.ordersSP + d.ordersLZD) for d in daily]),
        averageDailyRevenue=mean([d.totalCom for d in daily]),
        averageDailySpend=mean([d.adSpend for d in daily]),
        averageDailyOrders=mean([float(d.ordersSP + d.ordersLZD) for d in daily]),
        platformPerformance=platform_snapshots(data),
        topPerformingSubIds=ranked[:RANKED_SUB_IDS],
        underPerformingSubIds=ranked[RANKED_SUB_IDS:][-RANKED_SUB_IDS:],
        bestPerformingDays=[d.date for d in by_roi[:RANKED_DAYS]],
        worstPerformingDays=[d.date for d in reversed(by_roi[-RANKED_DAYS:])],
        seasonalPatterns=seasonal_windows(daily),
        dataQuality=assess_quality_indicators(data, as_of),
        dataStatistics=data_statistics(data),
    )


def enrich_data(data: AIAnalysisData, as_of: Optional[date] = None) -> AIAnalysisData:
    """Copy of data with enhancedMetrics filled in."""
    enhanced = calculate_enhanced_metrics(data, as_of)
    logger.debug(
        f"Enriched metrics: roiTrend={enhanced.roiTrend.value}, "
        f"{len(enhanced.topPerformingSubIds)} top sub-ids"
    )
    return data.model_copy(update={'enhancedMetrics': enhanced})
