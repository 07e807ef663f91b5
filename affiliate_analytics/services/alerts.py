"""
Alert/Anomaly Generator

Turns the daily series into actionable alerts.

Alert Families:
    - Window alerts: mean of the most recent days against the days before
      them inside the lookback period, for ROI, Revenue, Orders and Ad Spend
      Efficiency (commission per unit of spend)
    - Level-shift alerts: a CUSUM change point splits the whole series and the
      means on either side are compared, for ROI, Revenue and Orders. These
      catch shifts that happened before the lookback window.
    - Data-quality alert: stale data, thin record volume or too few sub-ids

Alert ids are deterministic (metric, kind and date), so rerunning an analysis
on the same snapshot yields the same ids.

Usage:
    from affiliate_analytics.services.alerts import generate_performance_alerts

    alerts = generate_performance_alerts(daily, total_records=420, sub_id_count=6)
"""

import logging
from datetime import date
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence

from affiliate_analytics.core.config import Settings, get_settings
from affiliate_analytics.models import (
    Alert,
    AlertType,
    CategorizedAlerts,
    DailyMetrics,
    Severity,
)
from affiliate_analytics.services.stats import cusum_change_point, mean

logger = logging.getLogger(__name__)


class AlertRule(NamedTuple):
    """Messages and escalation rules for one compared metric."""
    metric: str
    series: Callable[[DailyMetrics], float]
    threshold: Callable[[Settings], float]
    severity: Callable[[float], Severity]
    can_escalate: bool
    up_title: str
    down_title: str
    up_description: str
    down_description: str
    up_recommendations: List[str]
    down_recommendations: List[str]


def _efficiency(day: DailyMetrics) -> float:
    return day.totalCom / day.adSpend if day.adSpend > 0 else 0.0


def _roi_severity(change: float) -> Severity:
    if change > 40:
        return Severity.HIGH
    if change > 25:
        return Severity.MEDIUM
    return Severity.LOW


ROI_RULE = AlertRule(
    metric='ROI',
    series=lambda d: d.roi,
    threshold=lambda s: s.roi_change_threshold,
    severity=_roi_severity,
    can_escalate=True,
    up_title='ROI Performance Improvement Detected',
    down_title='ROI Performance Decline Detected',
    up_description='ROI has improved by {change:.1f}% in recent days',
    down_description='ROI has declined by {change:.1f}% in recent days',
    up_recommendations=['Scale successful campaigns', 'Analyze winning strategies', 'Increase budget allocation'],
    down_recommendations=[
        'Review recent campaign changes',
        'Pause underperforming campaigns',
        'Optimize targeting and creatives',
    ],
)

REVENUE_RULE = AlertRule(
    metric='Revenue',
    series=lambda d: d.totalCom,
    threshold=lambda s: s.revenue_change_threshold,
    severity=lambda change: Severity.HIGH if change > 50 else Severity.MEDIUM,
    can_escalate=False,
    up_title='Revenue Growth Alert',
    down_title='Revenue Decline Alert',
    up_description='Daily revenue has increased by {change:.1f}%',
    down_description='Daily revenue has decreased by {change:.1f}%',
    up_recommendations=['Scale successful campaigns', 'Expand to similar audiences', 'Increase daily budgets'],
    down_recommendations=[
        'Investigate revenue drop causes',
        'Review conversion tracking',
        'Check for external factors',
    ],
)

ORDERS_RULE = AlertRule(
    metric='Orders',
    series=lambda d: float(d.ordersSP + d.ordersLZD),
    threshold=lambda s: s.orders_change_threshold,
    severity=lambda change: Severity.HIGH if change > 50 else Severity.MEDIUM,
    can_escalate=False,
    up_title='Order Volume Increase Alert',
    down_title='Order Volume Decrease Alert',
    up_description='Daily orders have increased by {change:.1f}%',
    down_description='Daily orders have decreased by {change:.1f}%',
    up_recommendations=['Maintain current strategy', 'Consider scaling budget', 'Analyze successful elements'],
    down_recommendations=[
        'Review campaign performance',
        'Check for technical issues',
        'Optimize conversion funnel',
    ],
)

EFFICIENCY_RULE = AlertRule(
    metric='Ad Spend Efficiency',
    series=_efficiency,
    threshold=lambda s: s.efficiency_change_threshold,
    severity=lambda change: Severity.HIGH if change > 35 else Severity.MEDIUM,
    can_escalate=False,
    up_title='Ad Spend Efficiency Improvement',
    down_title='Ad Spend Efficiency Decline',
    up_description='Revenue per baht spent has improved by {change:.1f}%',
    down_description='Revenue per baht spent has declined by {change:.1f}%',
    up_recommendations=[
        'Scale efficient campaigns',
        'Apply successful strategies to other campaigns',
        'Increase budget for high-efficiency Sub IDs',
    ],
    down_recommendations=[
        'Review recent campaign changes',
        'Optimize targeting and bidding',
        'Pause inefficient campaigns',
    ],
)

WINDOW_RULES: List[AlertRule] = [ROI_RULE, REVENUE_RULE, ORDERS_RULE, EFFICIENCY_RULE]
LEVEL_SHIFT_RULES: List[AlertRule] = [ROI_RULE, REVENUE_RULE, ORDERS_RULE]


# =============================================================================
# Helpers
# =============================================================================


def make_alert_id(metric: str, kind: str, day: str) -> str:
    slug = metric.lower().replace(' ', '-')
    return f"alert-{slug}-{kind}-{day}"


def metric_value(day: DailyMetrics, metric: str) -> float:
    """Value of a named headline metric on one day."""
    values: Dict[str, float] = {
        'ROI': day.roi,
        'Revenue': day.totalCom,
        'Orders': float(day.ordersSP + day.ordersLZD),
        'Profit': day.profit,
        'Ad Spend': day.adSpend,
        'Ad Spend Efficiency': _efficiency(day),
    }
    return values.get(metric, 0.0)


def percentage_change(current: float, previous: float) -> float:
    """Relative change in percent; only defined for a positive baseline."""
    if previous <= 0:
        return 0.0
    return (current - previous) / previous * 100.0


def _build_alert(
    rule: AlertRule,
    change: float,
    current: float,
    expected: float,
    alert_id: str,
    settings: Settings,
    title: Optional[str] = None,
    description: Optional[str] = None,
) -> Alert:
    improving = change > 0
    magnitude = abs(change)
    if improving:
        alert_type = AlertType.OPPORTUNITY
    elif rule.can_escalate and change < -settings.critical_change_threshold:
        alert_type = AlertType.CRITICAL
    else:
        alert_type = AlertType.WARNING

    if title is None:
        title = rule.up_title if improving else rule.down_title
    if description is None:
        template = rule.up_description if improving else rule.down_description
        description = template.format(change=magnitude)

    return Alert(
        id=alert_id,
        type=alert_type,
        title=title,
        description=description,
        severity=rule.severity(magnitude),
        affectedMetric=rule.metric,
        currentValue=current,
        expectedValue=expected,
        threshold=rule.threshold(settings),
        recommendations=list(rule.up_recommendations if improving else rule.down_recommendations),
    )


# =============================================================================
# Window Comparison
# =============================================================================


def generate_window_alerts(
    daily: Sequence[DailyMetrics],
    settings: Optional[Settings] = None,
) -> List[Alert]:
    """
    Compare the recent window with the previous one inside the lookback period.

    recent = min(3, n // 2) days; previous = the rest of the lookback period.
    Skipped when the series is shorter than the lookback period.
    """
    settings = settings or get_settings()
    n = len(daily)
    lookback = settings.lookback_period
    recent = min(3, n // 2)
    previous = min(lookback - recent, n - recent)
    if n < lookback or recent <= 0 or previous <= 0:
        return []

    recent_days = list(daily[-recent:])
    previous_days = list(daily[-lookback:-recent])
    last_date = daily[-1].date

    alerts: List[Alert] = []
    for rule in WINDOW_RULES:
        current = mean([rule.series(d) for d in recent_days])
        expected = mean([rule.series(d) for d in previous_days])
        change = percentage_change(current, expected)
        if abs(change) <= rule.threshold(settings):
            continue
        alerts.append(_build_alert(
            rule, change, current, expected,
            make_alert_id(rule.metric, 'window', last_date),
            settings,
        ))
    return alerts


# =============================================================================
# Level Shifts
# =============================================================================


def generate_level_shift_alerts(
    daily: Sequence[DailyMetrics],
    settings: Optional[Settings] = None,
) -> List[Alert]:
    """
    Alert on a sustained level shift anywhere in the series.

    The split point is the CUSUM argmax of each metric. The mean after the
    split is compared with the mean before it.
    """
    settings = settings or get_settings()
    if len(daily) < settings.min_data_points:
        return []

    alerts: List[Alert] = []
    for rule in LEVEL_SHIFT_RULES:
        values = [rule.series(d) for d in daily]
        split = cusum_change_point(values)
        if split is None:
            continue
        before = mean(values[:split])
        after = mean(values[split:])
        change = percentage_change(after, before)
        if abs(change) <= rule.threshold(settings):
            continue

        shift_date = daily[split].date
        direction = 'up' if change > 0 else 'down'
        logger.debug(f"{rule.metric} level shift {direction} at {shift_date}: {before:.2f} -> {after:.2f}")
        alerts.append(_build_alert(
            rule, change, after, before,
            make_alert_id(rule.metric, 'level-shift', shift_date),
            settings,
            title=f"{rule.metric} Level Shift Detected",
            description=(
                f"Average {rule.metric} shifted {direction} by {abs(change):.1f}% "
                f"from {before:.2f} to {after:.2f} starting {shift_date}"
            ),
        ))
    return alerts


# =============================================================================
# Data Quality
# =============================================================================


def generate_data_quality_alert(
    daily: Sequence[DailyMetrics],
    total_records: int,
    sub_id_count: int,
    settings: Optional[Settings] = None,
    as_of: Optional[date] = None,
) -> Optional[Alert]:
    """
    One warning listing every data quality issue, or None when there are none.

    currentValue is 100 - 20 per issue, against a threshold of 80.
    """
    settings = settings or get_settings()
    as_of = as_of or date.today()
    issues: List[str] = []

    if daily:
        last_date = date.fromisoformat(daily[-1].date)
        days_old = (as_of - last_date).days
        if days_old > settings.stale_data_days:
            issues.append(f"Data is {days_old} days old")
    if total_records < settings.min_record_volume:
        issues.append('Limited data volume may affect analysis accuracy')
    if sub_id_count < settings.min_sub_ids:
        issues.append('Few Sub IDs detected - consider improving Sub ID tracking')

    if not issues:
        return None

    logger.warning(f"Data quality issues: {'; '.join(issues)}")
    return Alert(
        id=make_alert_id('Data Quality', 'quality', as_of.isoformat()),
        type=AlertType.WARNING,
        title='Data Quality Issues Detected',
        description=f"{len(issues)} data quality issues found that may affect analysis accuracy: {'; '.join(issues)}",
        severity=Severity.MEDIUM,
        affectedMetric='Data Quality',
        currentValue=100.0 - 20.0 * len(issues),
        threshold=80.0,
        recommendations=[
            'Import recent data to improve freshness',
            'Ensure Sub ID tracking is properly configured',
            'Verify data import processes are working correctly',
        ],
    )


# =============================================================================
# Entry Points
# =============================================================================


def generate_performance_alerts(
    daily: Sequence[DailyMetrics],
    total_records: int,
    sub_id_count: int,
    settings: Optional[Settings] = None,
    as_of: Optional[date] = None,
) -> List[Alert]:
    """Window, level-shift and data-quality alerts for one snapshot."""
    settings = settings or get_settings()
    alerts = generate_window_alerts(daily, settings)

    # A level shift inside the lookback window is already covered
    window_metrics = {a.affectedMetric for a in alerts}
    alerts.extend(
        a for a in generate_level_shift_alerts(daily, settings)
        if a.affectedMetric not in window_metrics
    )

    quality = generate_data_quality_alert(daily, total_records, sub_id_count, settings, as_of)
    if quality is not None:
        alerts.append(quality)

    logger.info(f"Generated {len(alerts)} performance alerts over {len(daily)} days")
    return alerts


def categorize_alerts(alerts: Sequence[Alert]) -> CategorizedAlerts:
    return CategorizedAlerts(
        opportunities=[a for a in alerts if a.type == AlertType.OPPORTUNITY],
        warnings=[a for a in alerts if a.type == AlertType.WARNING],
        critical=[a for a in alerts if a.type == AlertType.CRITICAL],
    )
