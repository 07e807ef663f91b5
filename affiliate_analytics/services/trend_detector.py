"""
Trend Detector

Classifies the direction of each headline metric over the daily series with
an ordinary least squares slope against the day index.

Key Outputs:
    - trends: one TrendDetection per metric (ROI, Revenue, Orders, Profit, Ad Spend)
    - alerts: trend alerts for high-significance moves larger than the ROI
      change threshold
    - overallTrend: majority vote between improving and declining metrics
    - trendStrength / confidence: 0-100 summaries of the whole run

Metric Rules:
    | Metric   | Improving    | Declining    | Strength   |
    | ROI      | slope > 1    | slope < -1   | |s| * 10   |
    | Revenue  | slope > 10   | slope < -10  | |s| / 10   |
    | Orders   | slope > 0.5  | slope < -0.5 | |s| * 20   |
    | Profit   | slope > 5    | slope < -5   | |s| / 5    |
    | Ad Spend | slope < -10  | slope > 10   | |s| / 10   |

    Rising ad spend counts as declining efficiency. A strictly monotone series
    follows its direction even when the slope is below the threshold.

Usage:
    from affiliate_analytics.services.trend_detector import analyze_trends

    result = analyze_trends(daily_metrics)
    print(result.overallTrend, result.confidence)
"""

import logging
from typing import Callable, List, NamedTuple, Optional, Sequence

from affiliate_analytics.core.config import Settings, get_settings
from affiliate_analytics.models import (
    Alert,
    AlertType,
    DailyMetrics,
    Severity,
    Significance,
    TrendAnalysis,
    TrendDetection,
    TrendDirection,
)
from affiliate_analytics.services.alerts import make_alert_id, metric_value
from affiliate_analytics.services.stats import (
    clamp,
    coefficient_of_variation,
    is_strictly_monotonic,
    linear_regression,
    population_std,
)

logger = logging.getLogger(__name__)


class MetricRule(NamedTuple):
    metric: str
    series: Callable[[DailyMetrics], float]
    slope_threshold: float
    strength: Callable[[float], float]
    inverted: bool = False


METRIC_RULES: List[MetricRule] = [
    MetricRule('ROI', lambda d: d.roi, 1.0, lambda s: abs(s) * 10),
    MetricRule('Revenue', lambda d: d.totalCom, 10.0, lambda s: abs(s) / 10),
    MetricRule('Orders', lambda d: float(d.ordersSP + d.ordersLZD), 0.5, lambda s: abs(s) * 20),
    MetricRule('Profit', lambda d: d.profit, 5.0, lambda s: abs(s) / 5),
    MetricRule('Ad Spend', lambda d: d.adSpend, 10.0, lambda s: abs(s) / 10, inverted=True),
]


# =============================================================================
# Statistics
# =============================================================================


def calculate_percentage_change(values: Sequence[float]) -> float:
    """(last - first) / first * 100; 0 when first is 0 or fewer than 2 values."""
    if len(values) < 2 or values[0] == 0:
        return 0.0
    return (values[-1] - values[0]) / values[0] * 100.0


def calculate_trend_significance(values: Sequence[float], timeframe: int) -> Significance:
    """
    Weight a trend by slope size and relative dispersion.

    A series with no spread at all is low significance regardless of length.
    """
    if len(values) < 5 or timeframe < 7:
        return Significance.LOW
    if population_std(values) == 0:
        return Significance.LOW

    slope = linear_regression(values).slope
    cv = coefficient_of_variation(values)
    if abs(slope) > 2 and cv < 0.3:
        return Significance.HIGH
    if abs(slope) > 1 or cv < 0.5:
        return Significance.MEDIUM
    return Significance.LOW


def classify_direction(values: Sequence[float], slope: float, rule: MetricRule, min_points: int) -> TrendDirection:
    direction = 0
    if slope > rule.slope_threshold:
        direction = 1
    elif slope < -rule.slope_threshold:
        direction = -1
    elif len(values) >= min_points:
        direction = is_strictly_monotonic(values) or 0

    if rule.inverted:
        direction = -direction
    if direction > 0:
        return TrendDirection.IMPROVING
    if direction < 0:
        return TrendDirection.DECLINING
    return TrendDirection.STABLE


# =============================================================================
# Detection
# =============================================================================


def detect_metric_trend(
    daily: Sequence[DailyMetrics],
    rule: MetricRule,
    settings: Optional[Settings] = None,
) -> TrendDetection:
    """Build the TrendDetection for one metric over the whole series."""
    settings = settings or get_settings()
    values = [rule.series(d) for d in daily]
    slope = linear_regression(values).slope
    change = calculate_percentage_change(values)
    trend = classify_direction(values, slope, rule, settings.min_data_points)

    if rule.inverted:
        description = f"{rule.metric} trend shows {change:.1f}% change over {len(daily)} days"
    else:
        description = f"{rule.metric} trend is {trend.value} with {change:.1f}% change over {len(daily)} days"

    return TrendDetection(
        metric=rule.metric,
        trend=trend,
        strength=clamp(rule.strength(slope), 0.0, 100.0),
        changePercentage=change,
        significance=calculate_trend_significance(values, len(daily)),
        timeframe=len(daily),
        description=description,
    )


def generate_trend_recommendations(trend: TrendDetection) -> List[str]:
    if trend.trend == TrendDirection.IMPROVING:
        recommendations = [
            f"Continue current strategies for {trend.metric}",
            'Consider scaling successful campaigns',
        ]
        if trend.strength > 70:
            recommendations.append(f"Strong {trend.metric} trend - increase budget allocation")
        return recommendations

    if trend.trend == TrendDirection.DECLINING:
        recommendations = [
            f"Investigate causes of {trend.metric} decline",
            'Review recent changes to campaigns',
        ]
        if trend.strength > 70:
            recommendations.append(f"Urgent: Address significant {trend.metric} decline")
        return recommendations

    return [
        f"Monitor {trend.metric} for changes",
        'Consider optimization opportunities',
    ]


def _trend_threshold(metric: str, settings: Settings) -> float:
    thresholds = {
        'ROI': settings.roi_change_threshold,
        'Revenue': settings.revenue_change_threshold,
        'Orders': settings.orders_change_threshold,
    }
    return thresholds.get(metric, settings.roi_change_threshold)


def generate_trend_alerts(
    trends: Sequence[TrendDetection],
    daily: Sequence[DailyMetrics],
    settings: Optional[Settings] = None,
) -> List[Alert]:
    """Alert on high-significance trends whose change exceeds the ROI threshold."""
    settings = settings or get_settings()
    if not daily:
        return []
    last_day = daily[-1]

    alerts: List[Alert] = []
    for trend in trends:
        change = abs(trend.changePercentage)
        if trend.significance != Significance.HIGH or change <= settings.roi_change_threshold:
            continue

        if trend.trend == TrendDirection.IMPROVING:
            alert_type = AlertType.OPPORTUNITY
        elif change > settings.critical_change_threshold:
            alert_type = AlertType.CRITICAL
        else:
            alert_type = AlertType.WARNING

        alerts.append(Alert(
            id=make_alert_id(trend.metric, 'trend', last_day.date),
            type=alert_type,
            title=f"{trend.metric} Trend Alert",
            description=trend.description,
            severity=Severity.HIGH,
            affectedMetric=trend.metric,
            currentValue=metric_value(last_day, trend.metric),
            threshold=_trend_threshold(trend.metric, settings),
            recommendations=generate_trend_recommendations(trend),
        ))
    return alerts


# =============================================================================
# Run Summary
# =============================================================================


def calculate_overall_trend(trends: Sequence[TrendDetection]) -> TrendDirection:
    improving = sum(1 for t in trends if t.trend == TrendDirection.IMPROVING)
    declining = sum(1 for t in trends if t.trend == TrendDirection.DECLINING)
    if improving > declining:
        return TrendDirection.IMPROVING
    if declining > improving:
        return TrendDirection.DECLINING
    return TrendDirection.STABLE


def calculate_trend_strength(trends: Sequence[TrendDetection]) -> float:
    if not trends:
        return 0.0
    return min(100.0, sum(t.strength for t in trends) / len(trends))


def calculate_trend_confidence(data_points: int, trends: Sequence[TrendDetection]) -> float:
    confidence = 50.0
    if data_points >= 30:
        confidence += 20
    elif data_points >= 14:
        confidence += 15
    elif data_points >= 7:
        confidence += 10

    confidence += 5 * sum(1 for t in trends if t.significance == Significance.HIGH)

    if data_points < 5:
        confidence -= 20
    return clamp(confidence, 30.0, 95.0)


def analyze_trends(
    daily: Sequence[DailyMetrics],
    settings: Optional[Settings] = None,
) -> TrendAnalysis:
    """
    Detect per-metric trends and trend alerts over the daily series.

    Args:
        daily: DailyMetrics ordered oldest first.
        settings: Thresholds; defaults to get_settings().

    Returns:
        TrendAnalysis. With fewer than min_data_points days the result is
        empty, stable, strength 0 and confidence 20.
    """
    settings = settings or get_settings()

    if len(daily) < settings.min_data_points:
        logger.warning(
            f"Trend detection skipped: {len(daily)} daily points, "
            f"{settings.min_data_points} required"
        )
        return TrendAnalysis(
            trends=[],
            alerts=[],
            overallTrend=TrendDirection.STABLE,
            trendStrength=0.0,
            confidence=20.0,
        )

    trends = [detect_metric_trend(daily, rule, settings) for rule in METRIC_RULES]
    alerts = generate_trend_alerts(trends, daily, settings)

    result = TrendAnalysis(
        trends=trends,
        alerts=alerts,
        overallTrend=calculate_overall_trend(trends),
        trendStrength=calculate_trend_strength(trends),
        confidence=calculate_trend_confidence(len(daily), trends),
    )
    logger.info(
        f"Trend analysis over {len(daily)} days: overall={result.overallTrend.value}, "
        f"{len(alerts)} trend alerts"
    )
    return result
