"""
Performance Analyzer

Scores sub-ids and platforms, assesses their risk and ranks them.

Key Outputs:
    - SubIdPerformance: composite 0-100 score, risk level, ROI trend and
      confidence for each sub-id with at least one order
    - PlatformPerformance: the same for Shopee and Lazada, plus market share
      and efficiency (revenue per unit of spend)
    - PerformanceAnalysisResult: both rankings, the derived recommendations,
      an overall score and an overall confidence

Composite Score (weights from Settings):
    ROI band (40)     full at roi >= high, linear between low and high,
                      proportional below low, never negative
    Volume (30)       orders / 50, capped
    Revenue (30)      revenue / 10000, capped

Usage:
    from affiliate_analytics.services.performance import analyze_performance

    result = analyze_performance(ai_data)
    best = result.subIdAnalysis[0]
"""

import logging
from typing import List, Optional, Sequence

from affiliate_analytics.core.config import Settings, get_settings
from affiliate_analytics.models import (
    AIAnalysisData,
    CalculatedMetrics,
    PerformanceAnalysisResult,
    PlatformPerformance,
    RiskLevel,
    SubIdPerformance,
    TrendDirection,
)
from affiliate_analytics.services.insights import detect_weekly_pattern
from affiliate_analytics.services.metrics import daily_platform_orders
from affiliate_analytics.services.recommendations import generate_recommendations
from affiliate_analytics.services.stats import clamp, linear_regression, mean, percentile_rank

logger = logging.getLogger(__name__)


# =============================================================================
# Scoring
# =============================================================================


def roi_band_score(roi: float, settings: Optional[Settings] = None) -> float:
    """ROI component of the composite score, 0..score_weight_roi."""
    settings = settings or get_settings()
    high = settings.roi_threshold_high
    low = settings.roi_threshold_low
    weight = settings.score_weight_roi
    half = weight / 2

    if roi >= high:
        return weight
    if roi >= low:
        return half + (roi - low) / (high - low) * half
    return max(0.0, roi / low * half)


def calculate_performance_score(
    roi: float,
    orders: float,
    revenue: float,
    settings: Optional[Settings] = None,
) -> float:
    """
    Composite 0-100 score blending ROI, order volume and revenue.

    Example:
        >>> calculate_performance_score(roi=50, orders=50, revenue=10000)
        100.0
    """
    settings = settings or get_settings()
    volume = min(settings.score_weight_volume, orders / settings.volume_reference_orders * settings.score_weight_volume)
    revenue_part = min(
        settings.score_weight_revenue,
        revenue / settings.revenue_reference * settings.score_weight_revenue,
    )
    return clamp(roi_band_score(roi, settings) + volume + revenue_part, 0.0, 100.0)


def assess_risk_level(
    roi: float,
    orders: int,
    spend: float,
    settings: Optional[Settings] = None,
) -> RiskLevel:
    settings = settings or get_settings()
    if roi < 0 or (orders < settings.min_reliable_orders and spend > settings.risk_spend_threshold):
        return RiskLevel.HIGH
    if roi < settings.roi_threshold_low or orders < settings.medium_risk_orders:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def calculate_percentile_rank(value: float, history: Sequence[float]) -> float:
    """Percentile of value within history (ties count half); 50 for no history."""
    return percentile_rank(value, history)


def calculate_series_trend(values: Sequence[float], settings: Optional[Settings] = None) -> TrendDirection:
    """Direction of a per-day series by OLS slope; needs min_data_points values."""
    settings = settings or get_settings()
    if len(values) < settings.min_data_points:
        return TrendDirection.STABLE
    slope = linear_regression(values).slope
    if slope > 1:
        return TrendDirection.IMPROVING
    if slope < -1:
        return TrendDirection.DECLINING
    return TrendDirection.STABLE


def calculate_entity_confidence(orders: int, data_points: int) -> float:
    confidence = 50.0
    if orders >= 100:
        confidence += 25
    elif orders >= 50:
        confidence += 15
    elif orders >= 20:
        confidence += 10

    if data_points >= 30:
        confidence += 15
    elif data_points >= 14:
        confidence += 10
    elif data_points >= 7:
        confidence += 5

    if orders < 5:
        confidence -= 20
    if data_points < 3:
        confidence -= 15
    return clamp(confidence, 30.0, 95.0)


# =============================================================================
# Entity Analysis
# =============================================================================


def analyze_sub_ids(ai_data: AIAnalysisData, settings: Optional[Settings] = None) -> List[SubIdPerformance]:
    """
    Score every sub-id with at least one order, best first.

    Trend comes from the sub-id's own per-day ROI on days with attributed
    spend, so sub-ids without matching ads are always stable.
    """
    settings = settings or get_settings()
    results: List[SubIdPerformance] = []

    for rollup in ai_data.subIdAnalysis:
        if rollup.orders < 1:
            continue
        results.append(SubIdPerformance(
            id=rollup.subId,
            platform=rollup.platform,
            orders=rollup.orders,
            revenue=rollup.revenue,
            adSpend=rollup.adSpend,
            roi=rollup.roi,
            performanceScore=calculate_performance_score(rollup.roi, rollup.orders, rollup.revenue, settings),
            riskLevel=assess_risk_level(rollup.roi, rollup.orders, rollup.adSpend, settings),
            trend=calculate_series_trend(rollup.dailyRoi, settings),
            confidenceScore=calculate_entity_confidence(rollup.orders, len(rollup.dailyRoi)),
        ))

    results.sort(key=lambda s: s.performanceScore, reverse=True)
    logger.debug(f"Scored {len(results)} sub-ids")
    return results


def analyze_platforms(ai_data: AIAnalysisData, settings: Optional[Settings] = None) -> List[PlatformPerformance]:
    """Score each marketplace with orders, best first."""
    settings = settings or get_settings()
    total_revenue = sum(p.revenue for p in ai_data.platformAnalysis)
    order_series = daily_platform_orders(ai_data.dailyMetrics)
    days = len(ai_data.dailyMetrics)

    results: List[PlatformPerformance] = []
    for rollup in ai_data.platformAnalysis:
        if rollup.orders <= 0:
            continue
        results.append(PlatformPerformance(
            platform=rollup.platform,
            orders=rollup.orders,
            revenue=rollup.revenue,
            adSpend=rollup.adSpend,
            roi=rollup.roi,
            performanceScore=calculate_performance_score(rollup.roi, rollup.orders, rollup.revenue, settings),
            marketShare=rollup.revenue / total_revenue * 100 if total_revenue > 0 else 0.0,
            efficiency=rollup.revenue / rollup.adSpend if rollup.adSpend > 0 else 0.0,
            riskLevel=assess_risk_level(rollup.roi, rollup.orders, rollup.adSpend, settings),
            trend=calculate_series_trend(order_series.get(rollup.platform, []), settings),
            confidenceScore=calculate_entity_confidence(rollup.orders, days),
        ))

    results.sort(key=lambda p: p.performanceScore, reverse=True)
    return results


# =============================================================================
# Overall
# =============================================================================


def calculate_overall_score(
    metrics: CalculatedMetrics,
    sub_ids: Sequence[SubIdPerformance],
    platforms: Sequence[PlatformPerformance],
    settings: Optional[Settings] = None,
) -> float:
    settings = settings or get_settings()
    avg_sub_id = mean([s.performanceScore for s in sub_ids])
    avg_platform = mean([p.performanceScore for p in platforms])
    score = roi_band_score(metrics.roi, settings) + avg_sub_id * 0.3 + avg_platform * 0.3
    return clamp(score, 0.0, 100.0)


def calculate_overall_confidence(ai_data: AIAnalysisData) -> float:
    total_orders = ai_data.calculatedMetrics.totalOrdersSP + ai_data.calculatedMetrics.totalOrdersLZD
    days = len(ai_data.dailyMetrics)
    sub_ids = len(ai_data.subIds)

    confidence = 50.0
    if total_orders >= 200:
        confidence += 20
    elif total_orders >= 100:
        confidence += 15
    elif total_orders >= 50:
        confidence += 10

    if days >= 30:
        confidence += 15
    elif days >= 14:
        confidence += 10
    elif days >= 7:
        confidence += 5

    if sub_ids >= 10:
        confidence += 10
    elif sub_ids >= 5:
        confidence += 5

    if total_orders < 20:
        confidence -= 15
    if days < 7:
        confidence -= 10
    if sub_ids < 3:
        confidence -= 5
    return clamp(confidence, 40.0, 95.0)


def analyze_performance(ai_data: AIAnalysisData, settings: Optional[Settings] = None) -> PerformanceAnalysisResult:
    """
    Rank sub-ids and platforms and derive performance recommendations.

    Returns:
        PerformanceAnalysisResult with rankings (best first), recommendations,
        overallScore (0-100) and confidence (40-95).
    """
    settings = settings or get_settings()
    sub_ids = analyze_sub_ids(ai_data, settings)
    platforms = analyze_platforms(ai_data, settings)
    weekly = detect_weekly_pattern(ai_data.dailyMetrics)

    recommendations = generate_recommendations(
        sub_ids,
        platforms,
        ai_data.calculatedMetrics,
        days=len(ai_data.dailyMetrics),
        weekly_pattern=weekly,
        settings=settings,
    )

    result = PerformanceAnalysisResult(
        recommendations=recommendations,
        subIdAnalysis=sub_ids,
        platformAnalysis=platforms,
        overallScore=calculate_overall_score(ai_data.calculatedMetrics, sub_ids, platforms, settings),
        confidence=calculate_overall_confidence(ai_data),
    )
    logger.info(
        f"Performance analysis: {len(sub_ids)} sub-ids, {len(platforms)} platforms, "
        f"score={result.overallScore:.1f}, {len(recommendations)} recommendations"
    )
    return result
