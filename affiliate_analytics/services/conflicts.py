"""
Conflict Detector

Compares observations of one entity that arrived from different sources
(a file import and the live ads API, for example) and reports contradictions.

Conflicts are never resolved silently. Downstream stages carry the value of the
most recent source while every conflict is surfaced as a warning for review.

Resolution Order:
    1. Latest sourceTimestamp wins (observations without one rank oldest)
    2. Without timestamps, facebook_api outranks file_import
    3. Remaining ties go to the first observation seen

Detected Types:
    - spend_mismatch: ad spend differs between file import and API
    - commission_mismatch: order commission differs between sources
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple, TypeVar, Union

from affiliate_analytics.models import (
    AdSpendRecord,
    Conflict,
    ConflictType,
    DataSource,
    OrderRecord,
    Severity,
)

logger = logging.getLogger(__name__)

Record = TypeVar('Record', OrderRecord, AdSpendRecord)

# API data is fetched after files are exported, so it counts as newer
SOURCE_RECENCY: Dict[DataSource, int] = {
    DataSource.FILE_IMPORT: 0,
    DataSource.FACEBOOK_API: 1,
    DataSource.MERGED: 2,
}


# =============================================================================
# Resolution
# =============================================================================


def pick_most_recent(group: Sequence[Record]) -> Record:
    """Return the observation that wins under most-recent-source-wins."""
    def rank(record: Union[OrderRecord, AdSpendRecord]) -> Tuple[datetime, int]:
        return (record.sourceTimestamp or datetime.min, SOURCE_RECENCY[record.dataSource])

    # max() keeps the first of equal maxima
    return max(group, key=rank)


def classify_severity(values: Sequence[float]) -> Severity:
    """Severity from the spread relative to the largest magnitude."""
    high = max(values)
    low = min(values)
    scale = max(abs(high), abs(low))
    relative = (high - low) / scale if scale > 0 else 0.0
    if relative > 0.5:
        return Severity.HIGH
    if relative > 0.1:
        return Severity.MEDIUM
    return Severity.LOW


def _format_sources(group: Sequence[Union[OrderRecord, AdSpendRecord]], values: Sequence[float]) -> str:
    return ', '.join(f"{r.dataSource.value}={v:.2f}" for r, v in zip(group, values))


# =============================================================================
# Detection
# =============================================================================


def resolve_group(group: Sequence[Record]) -> Record:
    """Collapse one identity seen by several sources to its winner, tagged 'merged'."""
    winner = pick_most_recent(group)
    return winner.model_copy(update={'dataSource': DataSource.MERGED})


def order_conflict(group: Sequence[OrderRecord], tolerance: float) -> Optional[Conflict]:
    """A commission_mismatch when commissions differ by more than the tolerance."""
    values = [r.commission for r in group]
    if max(values) - min(values) <= tolerance:
        return None

    winner = pick_most_recent(group)
    entity = f"{winner.sourcePlatform.value}:{winner.skuOrderId or winner.orderId}"
    logger.debug(f"Commission conflict on {entity}; kept {winner.dataSource.value}")
    return Conflict(
        type=ConflictType.COMMISSION_MISMATCH,
        description=(
            f"Commission for {winner.sourcePlatform.value} order {winner.orderId} differs "
            f"between sources ({_format_sources(group, values)})"
        ),
        affectedEntities=[entity],
        severity=classify_severity(values),
        resolvedValue=winner.commission,
        winningSource=winner.dataSource,
    )


def ad_conflict(group: Sequence[AdSpendRecord], tolerance: float) -> Optional[Conflict]:
    """A spend_mismatch when reported spend differs by more than the tolerance."""
    values = [r.spend for r in group]
    if max(values) - min(values) <= tolerance:
        return None

    winner = pick_most_recent(group)
    day = winner.date.isoformat() if winner.date else 'undated'
    entity = f"Facebook:{winner.adId or winner.campaignName}:{day}"
    logger.debug(f"Spend conflict on {entity}; kept {winner.dataSource.value}")
    return Conflict(
        type=ConflictType.SPEND_MISMATCH,
        description=(
            f"Spend for campaign '{winner.campaignName}' on {day} differs between "
            f"sources ({_format_sources(group, values)})"
        ),
        affectedEntities=[entity],
        severity=classify_severity(values),
        resolvedValue=winner.spend,
        winningSource=winner.dataSource,
    )


def detect_conflicts(
    groups: Sequence[Sequence[Union[OrderRecord, AdSpendRecord]]],
    tolerance: float = 0.01,
) -> List[Conflict]:
    """
    Conflicts among identity groups, at most one per group.

    Groups observed by a single source are skipped; they have nothing to
    disagree with.
    """
    conflicts: List[Conflict] = []
    for group in groups:
        if len({r.dataSource for r in group}) < 2:
            continue
        if isinstance(group[0], AdSpendRecord):
            conflict = ad_conflict(group, tolerance)
        else:
            conflict = order_conflict(group, tolerance)
        if conflict is not None:
            conflicts.append(conflict)
    return conflicts


def build_conflict_recommendations(conflicts: Sequence[Conflict]) -> List[str]:
    """Advisory strings for a human reviewing the merge."""
    if not conflicts:
        return []

    recommendations: List[str] = []
    spend = [c for c in conflicts if c.type == ConflictType.SPEND_MISMATCH]
    commission = [c for c in conflicts if c.type == ConflictType.COMMISSION_MISMATCH]

    if spend:
        recommendations.append(
            f"Compare Facebook spend for {len(spend)} ads between the file import and the API; "
            f"the most recent source was used"
        )
    if commission:
        recommendations.append(
            f"Re-export affiliate reports: {len(commission)} orders have conflicting commission values"
        )
    if any(c.severity == Severity.HIGH for c in conflicts):
        recommendations.append('Investigate high-severity conflicts before acting on budget recommendations')
    recommendations.append('Review data sources for consistency')
    return recommendations
