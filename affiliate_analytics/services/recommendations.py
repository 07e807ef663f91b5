"""
Recommendation Synthesizer

Maps analyzer output to Recommendation objects. Each family is evaluated on
its own, so several can fire for the same snapshot:

    | Title                                 | Type     | Priority | Trigger                         |
    | Pause Underperforming Sub IDs         | subid    | high     | sub-ids with roi < low          |
    | Scale High-Performing Sub IDs         | budget   | high     | roi > high and improving trend  |
    | Focus Budget on {platform}            | platform | medium   | best/worst platform ROI gap > 20|
    | Overall Campaign Optimization Needed  | creative | high     | overall roi < low               |
    | Optimize Timing for {Day}s            | timing   | low      | weekly ROI pattern detected     |

Ids are derived from the family (and platform or weekday), so they are stable
across reruns.
"""

import logging
from typing import List, Optional, Sequence

from affiliate_analytics.core.config import Settings, get_settings
from affiliate_analytics.models import (
    ActionItem,
    ActionItemType,
    CalculatedMetrics,
    PerformancePattern,
    PlatformPerformance,
    Priority,
    Recommendation,
    RecommendationType,
    SubIdPerformance,
    TrendDirection,
)
from affiliate_analytics.services.stats import clamp

logger = logging.getLogger(__name__)

PLATFORM_GAP_THRESHOLD = 20.0


def calculate_recommendation_confidence(affected_items: int, data_points: int) -> float:
    confidence = 60.0
    if affected_items >= 5:
        confidence += 20
    elif affected_items >= 3:
        confidence += 10

    if data_points >= 14:
        confidence += 15
    elif data_points >= 7:
        confidence += 10
    return clamp(confidence, 50.0, 90.0)


def _action(rec_id: str, index: int, **fields) -> ActionItem:
    return ActionItem(id=f"{rec_id}-action-{index}", **fields)


# =============================================================================
# Families
# =============================================================================


def pause_underperformers(
    sub_ids: Sequence[SubIdPerformance],
    days: int,
    settings: Settings,
) -> Optional[Recommendation]:
    low = settings.roi_threshold_low
    under = [s for s in sub_ids if s.roi < low and s.orders >= 1]
    if not under:
        return None

    rec_id = 'rec-pause-underperformers'
    wasted = sum(s.adSpend for s in under)
    savings = wasted * 0.7
    return Recommendation(
        id=rec_id,
        type=RecommendationType.SUBID,
        title='Pause Underperforming Sub IDs',
        description=f"{len(under)} Sub IDs are performing below {low:.0f}% ROI threshold.",
        priority=Priority.HIGH,
        expectedImpact=25.0,
        confidenceScore=calculate_recommendation_confidence(len(under), days),
        actionItems=[
            _action(
                rec_id, 1,
                type=ActionItemType.PAUSE_CAMPAIGN,
                description=f"Pause {len(under)} underperforming Sub IDs",
                currentValue=wasted,
                recommendedValue=0.0,
                expectedImpact=f"Save {savings:.2f} THB in ad spend",
            ),
            _action(
                rec_id, 2,
                type=ActionItemType.OPTIMIZE_CREATIVE,
                description='Analyze successful Sub ID patterns for future optimization',
                expectedImpact='+15% future campaign performance',
            ),
        ],
        estimatedROIImprovement=25.0,
        affectedSubIds=[s.id for s in under],
        reasoning=(
            f"Analysis shows {len(under)} Sub IDs with ROI below {low:.0f}%. Pausing these "
            f"campaigns can free up budget for better-performing Sub IDs."
        ),
        timeframe='Immediate',
        dataPoints=sum(s.orders for s in under),
    )


def scale_high_performers(
    sub_ids: Sequence[SubIdPerformance],
    days: int,
    settings: Settings,
) -> Optional[Recommendation]:
    high = settings.roi_threshold_high
    winners = [s for s in sub_ids if s.roi > high and s.trend == TrendDirection.IMPROVING]
    if not winners:
        return None

    rec_id = 'rec-scale-high-performers'
    current = sum(s.adSpend for s in winners)
    increase = current * 0.5
    return Recommendation(
        id=rec_id,
        type=RecommendationType.BUDGET,
        title='Scale High-Performing Sub IDs',
        description=f"{len(winners)} Sub IDs are performing above {high:.0f}% ROI with improving trends.",
        priority=Priority.HIGH,
        expectedImpact=30.0,
        confidenceScore=calculate_recommendation_confidence(len(winners), days),
        actionItems=[
            _action(
                rec_id, 1,
                type=ActionItemType.INCREASE_BUDGET,
                description=f"Increase budget for {len(winners)} high-performing Sub IDs by 50%",
                currentValue=current,
                recommendedValue=current + increase,
                expectedImpact=f"+{increase * 0.3:.2f} THB additional revenue",
            ),
            _action(
                rec_id, 2,
                type=ActionItemType.OPTIMIZE_CREATIVE,
                description='Monitor performance closely and scale further if trends continue',
                expectedImpact='Sustained growth optimization',
            ),
        ],
        estimatedROIImprovement=30.0,
        affectedSubIds=[s.id for s in winners],
        reasoning=(
            f"These Sub IDs show strong performance (>{high:.0f}% ROI) and improving trends. "
            f"Increasing budget allocation can maximize returns."
        ),
        timeframe='1-2 weeks',
        dataPoints=sum(s.orders for s in winners),
    )


def focus_best_platform(
    platforms: Sequence[PlatformPerformance],
    days: int,
) -> Optional[Recommendation]:
    """Platforms must be ordered best score first."""
    if len(platforms) < 2:
        return None
    best, worst = platforms[0], platforms[-1]
    gap = best.roi - worst.roi
    if gap <= PLATFORM_GAP_THRESHOLD:
        return None

    rec_id = f"rec-focus-{best.platform.lower()}"
    moved = worst.adSpend * 0.3
    return Recommendation(
        id=rec_id,
        type=RecommendationType.PLATFORM,
        title=f"Focus Budget on {best.platform}",
        description=f"{best.platform} outperforms {worst.platform} by {gap:.1f}% ROI.",
        priority=Priority.MEDIUM,
        expectedImpact=20.0,
        confidenceScore=calculate_recommendation_confidence(best.orders + worst.orders, days),
        actionItems=[
            _action(
                rec_id, 1,
                type=ActionItemType.BUDGET_ADJUSTMENT,
                description=f"Reallocate 30% of {worst.platform} budget to {best.platform}",
                currentValue=worst.adSpend,
                recommendedValue=worst.adSpend - moved,
                expectedImpact=f"+{gap * 0.3:.1f}% ROI improvement",
            ),
            _action(
                rec_id, 2,
                type=ActionItemType.OPTIMIZE_CREATIVE,
                description=f"Analyze {best.platform} success factors for {worst.platform} optimization",
                expectedImpact='Cross-platform optimization insights',
            ),
        ],
        estimatedROIImprovement=20.0,
        affectedPlatforms=[best.platform, worst.platform],
        reasoning=(
            f"Platform analysis shows significant performance gap. {best.platform} has "
            f"{best.roi:.1f}% ROI vs {worst.roi:.1f}% for {worst.platform}."
        ),
        timeframe='1-2 weeks',
        dataPoints=best.orders + worst.orders,
    )


def overall_optimization(
    metrics: CalculatedMetrics,
    days: int,
    settings: Settings,
) -> Optional[Recommendation]:
    if metrics.roi >= settings.roi_threshold_low:
        return None

    rec_id = 'rec-overall-optimization'
    orders = metrics.totalOrdersSP + metrics.totalOrdersLZD
    return Recommendation(
        id=rec_id,
        type=RecommendationType.CREATIVE,
        title='Overall Campaign Optimization Needed',
        description=f"Current overall ROI of {metrics.roi:.1f}% is below optimal performance threshold.",
        priority=Priority.HIGH,
        expectedImpact=35.0,
        confidenceScore=calculate_recommendation_confidence(orders, days),
        actionItems=[
            _action(
                rec_id, 1,
                type=ActionItemType.OPTIMIZE_CREATIVE,
                description='Conduct comprehensive campaign audit',
                expectedImpact='Identify systematic optimization opportunities',
            ),
            _action(
                rec_id, 2,
                type=ActionItemType.BUDGET_ADJUSTMENT,
                description='Implement daily budget monitoring and automatic pausing for negative ROI campaigns',
                currentValue=metrics.totalAdsSpent,
                recommendedValue=metrics.totalAdsSpent * 0.8,
                expectedImpact='+20% budget efficiency',
            ),
            _action(
                rec_id, 3,
                type=ActionItemType.PAUSE_CAMPAIGN,
                description='Focus on top 20% performing Sub IDs and pause bottom 20%',
                expectedImpact='+35% overall ROI improvement',
            ),
        ],
        estimatedROIImprovement=35.0,
        reasoning=(
            f"Overall campaign ROI of {metrics.roi:.1f}% indicates systematic optimization "
            f"opportunities across Sub IDs and platforms."
        ),
        timeframe='2-4 weeks',
        dataPoints=orders,
    )


def optimize_timing(pattern: Optional[PerformancePattern], days: int) -> Optional[Recommendation]:
    if pattern is None or not pattern.data:
        return None

    best = max(pattern.data, key=lambda p: p.value)
    worst = min(pattern.data, key=lambda p: p.value)
    rec_id = f"rec-timing-{best.period.lower()}"
    impact = clamp(abs(pattern.impact) * 0.25, 0.0, 100.0)
    return Recommendation(
        id=rec_id,
        type=RecommendationType.TIMING,
        title=f"Optimize Timing for {best.period}s",
        description=pattern.description,
        priority=Priority.LOW,
        expectedImpact=impact,
        confidenceScore=calculate_recommendation_confidence(len(pattern.data), days),
        actionItems=[
            _action(
                rec_id, 1,
                type=ActionItemType.CHANGE_TARGETING,
                description=f"Schedule more delivery on {best.period}s and less on {worst.period}s",
                expectedImpact=f"+{impact:.1f}% ROI on shifted spend",
            ),
        ],
        estimatedROIImprovement=impact,
        reasoning=(
            f"Average ROI on {best.period}s is {best.value:.1f}% against {worst.value:.1f}% "
            f"on {worst.period}s."
        ),
        timeframe='Next week',
        dataPoints=days,
    )


# =============================================================================
# Entry Point
# =============================================================================


def generate_recommendations(
    sub_ids: Sequence[SubIdPerformance],
    platforms: Sequence[PlatformPerformance],
    metrics: CalculatedMetrics,
    days: int,
    weekly_pattern: Optional[PerformancePattern] = None,
    settings: Optional[Settings] = None,
) -> List[Recommendation]:
    """
    Every recommendation family that applies to the snapshot.

    Args:
        sub_ids: Scored sub-ids.
        platforms: Scored platforms, best first.
        metrics: Snapshot totals.
        days: Length of the daily series.
        weekly_pattern: Weekly ROI pattern, if one was detected.
    """
    settings = settings or get_settings()
    candidates = [
        pause_underperformers(sub_ids, days, settings),
        scale_high_performers(sub_ids, days, settings),
        focus_best_platform(platforms, days),
        overall_optimization(metrics, days, settings),
        optimize_timing(weekly_pattern, days),
    ]
    recommendations = [r for r in candidates if r is not None]
    logger.debug(f"Generated {len(recommendations)} recommendations")
    return recommendations
