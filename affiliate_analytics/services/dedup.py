"""
Identity Resolver & Deduplicator

Decides which observations describe the same order or ad and merges them.

Identity Keys:
    - Shopee order: (Shopee, orderId)
    - Lazada order line: (Lazada, skuOrderId), falling back to orderId. One
      checkout holds several SKU lines; each line is its own unit, while
      commission still sums to the checkout.
    - Ad row: (adId, date) when an ad id exists, otherwise
      (date, campaign, ad set, ad name)

Merge Policy:
    - Same identity, same source: numeric fields are summed (an order split
      across product lines is one order, not several overwrites). Cancelled
      or invalid lines are summed apart from countable ones.
    - Same identity, different sources: handed to the conflict detector,
      which keeps the most recent source and reports any mismatch.

Deduplication is idempotent: dedup(dedup(X)) == dedup(X).

Usage:
    from affiliate_analytics.services.dedup import reconcile_sources

    reconciled = reconcile_sources(shopee, lazada, ads)
    warnings = [c.description for c in reconciled.conflictReport.conflicts]
"""

import logging
from typing import Dict, Hashable, List, Optional, Sequence, Tuple, TypeVar, Union

from affiliate_analytics.core.config import Settings, get_settings
from affiliate_analytics.models import (
    AdSpendRecord,
    Conflict,
    ConflictReport,
    DedupStats,
    OrderRecord,
    ReconciledData,
    SourcePlatform,
)
from affiliate_analytics.services.conflicts import (
    build_conflict_recommendations,
    detect_conflicts,
    resolve_group,
)
from affiliate_analytics.services.normalizer import is_countable

logger = logging.getLogger(__name__)

Record = TypeVar('Record', OrderRecord, AdSpendRecord)


# =============================================================================
# Identity Keys
# =============================================================================


def order_identity(record: OrderRecord) -> Tuple[str, str]:
    if record.sourcePlatform == SourcePlatform.LAZADA and record.skuOrderId:
        return (record.sourcePlatform.value, record.skuOrderId)
    return (record.sourcePlatform.value, record.orderId)


def ad_identity(record: AdSpendRecord) -> Tuple[str, ...]:
    day = record.date.isoformat() if record.date else ''
    if record.adId:
        return ('ad', record.adId, day)
    return ('ad', day, record.campaignName, record.adSetName or '', record.adName or '')


def identity_key(record: Union[OrderRecord, AdSpendRecord]) -> Tuple[str, ...]:
    """Identity of an order line or ad row, independent of its source."""
    if isinstance(record, AdSpendRecord):
        return ad_identity(record)
    return order_identity(record)


def merge_key(record: Union[OrderRecord, AdSpendRecord]) -> Tuple[Hashable, ...]:
    """
    Key under which observations are merged or resolved against each other.

    Orders also split on countability: a cancelled line and a completed line
    of one order are separate units of revenue, not two views of one value.
    """
    if isinstance(record, AdSpendRecord):
        return identity_key(record)
    return (identity_key(record), is_countable(record))


# =============================================================================
# Same-source Merging
# =============================================================================


def merge_orders(base: OrderRecord, other: OrderRecord) -> OrderRecord:
    sub_ids = list(base.subIds)
    sub_ids.extend(s for s in other.subIds if s not in sub_ids)
    timestamps = [t for t in (base.sourceTimestamp, other.sourceTimestamp) if t is not None]
    return base.model_copy(update={
        'commission': base.commission + other.commission,
        'orderValue': base.orderValue + other.orderValue,
        'orderDate': base.orderDate or other.orderDate,
        'status': base.status or other.status,
        'validity': base.validity or other.validity,
        'subIds': sub_ids,
        'sourceTimestamp': max(timestamps) if timestamps else None,
        'lineCount': base.lineCount + other.lineCount,
    })


def merge_ads(base: AdSpendRecord, other: AdSpendRecord) -> AdSpendRecord:
    timestamps = [t for t in (base.sourceTimestamp, other.sourceTimestamp) if t is not None]
    return base.model_copy(update={
        'spend': base.spend + other.spend,
        'impressions': base.impressions + other.impressions,
        'clicks': base.clicks + other.clicks,
        'reach': base.reach + other.reach,
        'subId': base.subId or other.subId,
        'sourceTimestamp': max(timestamps) if timestamps else None,
        'lineCount': base.lineCount + other.lineCount,
    })


def deduplicate_orders(records: Sequence[OrderRecord]) -> List[OrderRecord]:
    """
    Sum orders sharing (identity, source, countability); keeps first-appearance order.

    A cancelled line never absorbs a completed line of the same order, so
    commission of the countable lines survives the merge. Cross-source
    duplicates are left in place for reconcile_orders.
    """
    merged: Dict[Hashable, OrderRecord] = {}
    for record in records:
        key = (merge_key(record), record.dataSource)
        existing = merged.get(key)
        merged[key] = record if existing is None else merge_orders(existing, record)
    return list(merged.values())


def deduplicate_ads(records: Sequence[AdSpendRecord]) -> List[AdSpendRecord]:
    """Sum ad rows sharing (identity, source); keeps first-appearance order."""
    merged: Dict[Hashable, AdSpendRecord] = {}
    for record in records:
        key = (merge_key(record), record.dataSource)
        existing = merged.get(key)
        merged[key] = record if existing is None else merge_ads(existing, record)
    return list(merged.values())


# =============================================================================
# Cross-source Reconciliation
# =============================================================================


def _resolve_groups(
    records: Sequence[Record],
    deduped: Sequence[Record],
    tolerance: float,
) -> Tuple[List[Record], List[Conflict], DedupStats]:
    groups: Dict[Hashable, List[Record]] = {}
    for record in deduped:
        groups.setdefault(merge_key(record), []).append(record)

    cross_source = [group for group in groups.values() if len(group) > 1]
    output = [group[0] if len(group) == 1 else resolve_group(group) for group in groups.values()]
    conflicts = detect_conflicts(cross_source, tolerance)

    stats = DedupStats(
        totalInput=len(records),
        totalOutput=len(output),
        duplicatesFound=len(records) - len(deduped),
        crossSourceGroups=len(cross_source),
    )
    return output, conflicts, stats


def reconcile_orders(
    records: Sequence[OrderRecord],
    tolerance: float,
) -> Tuple[List[OrderRecord], List[Conflict], DedupStats]:
    """Deduplicate orders, then resolve identities seen by several sources."""
    return _resolve_groups(records, deduplicate_orders(records), tolerance)


def reconcile_ads(
    records: Sequence[AdSpendRecord],
    tolerance: float,
) -> Tuple[List[AdSpendRecord], List[Conflict], DedupStats]:
    """Deduplicate ad rows, then resolve identities seen by several sources."""
    return _resolve_groups(records, deduplicate_ads(records), tolerance)


def reconcile_sources(
    shopee_orders: Sequence[OrderRecord],
    lazada_orders: Sequence[OrderRecord],
    facebook_ads: Sequence[AdSpendRecord],
    settings: Optional[Settings] = None,
) -> ReconciledData:
    """
    Run dedup and conflict detection over all three sources.

    Returns:
        ReconciledData with one record per identity, the conflict report and
        per-source DedupStats keyed 'shopee', 'lazada' and 'facebook'.
    """
    settings = settings or get_settings()
    tolerance = settings.conflict_tolerance

    shopee, shopee_conflicts, shopee_stats = reconcile_orders(shopee_orders, tolerance)
    lazada, lazada_conflicts, lazada_stats = reconcile_orders(lazada_orders, tolerance)
    ads, ad_conflicts, ad_stats = reconcile_ads(facebook_ads, tolerance)

    conflicts = shopee_conflicts + lazada_conflicts + ad_conflicts
    if conflicts:
        logger.warning(f"Reconciliation found {len(conflicts)} cross-source conflicts")
    logger.info(
        f"Reconciled {len(shopee)} Shopee, {len(lazada)} Lazada and {len(ads)} ad records"
    )

    return ReconciledData(
        shopeeOrders=shopee,
        lazadaOrders=lazada,
        facebookAds=ads,
        conflictReport=ConflictReport(
            conflicts=conflicts,
            recommendations=build_conflict_recommendations(conflicts),
        ),
        statistics={
            'shopee': shopee_stats,
            'lazada': lazada_stats,
            'facebook': ad_stats,
        },
    )
