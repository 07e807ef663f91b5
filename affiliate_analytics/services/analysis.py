"""
Analysis Orchestrator

Runs every analysis stage over one AIAnalysisData snapshot and assembles the
AIAnalysisResult the dashboard renders.

Sections (each behind its Settings.enable_* flag):
    - recommendations from the performance analyzer
    - ROI and revenue predictions
    - alerts: window comparison, level shift, trend and data quality
    - insights: platform comparison, performance trend and data quality
    - budget optimization

A failure inside one optional section is logged, recorded in
AIAnalysisResult.errors and leaves the other sections intact. Too little
history for predictions is reported the same way.

Usage:
    from affiliate_analytics.services.analysis import run_analysis

    result = run_analysis(aggregation.aiData)
    print(result.metadata.confidence, len(result.recommendations))
"""

import logging
from datetime import date, datetime
from typing import Callable, List, Optional, Tuple, TypeVar
from uuid import uuid4

from affiliate_analytics.core.config import Settings, get_settings
from affiliate_analytics.core.exceptions import InsufficientDataError
from affiliate_analytics.models import (
    AIAnalysisData,
    AIAnalysisResult,
    Alert,
    AnalysisMetadata,
    AnalysisStatus,
    BudgetOptimization,
    Insight,
    InsightType,
    PerformanceAnalysisResult,
    Prediction,
    Significance,
    SourcePlatform,
    TrendDirection,
)
from affiliate_analytics.services.alerts import generate_performance_alerts
from affiliate_analytics.services.budget_optimizer import optimize_budget
from affiliate_analytics.services.data_processor import total_records
from affiliate_analytics.services.metrics import safe_divide
from affiliate_analytics.services.performance import analyze_performance
from affiliate_analytics.services.predictions import predict_revenue, predict_roi
from affiliate_analytics.services.stats import clamp, linear_regression, population_std
from affiliate_analytics.services.trend_detector import analyze_trends

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Days of history before a performance trend insight is produced
TREND_INSIGHT_MIN_DAYS = 14

# ROI slope per day separating a trend from a stable series
TREND_INSIGHT_SLOPE = 2.0

# Quality score below which a data quality insight is produced
QUALITY_INSIGHT_THRESHOLD = 80


# =============================================================================
# Confidence
# =============================================================================


def calculate_analysis_confidence(ai_data: AIAnalysisData) -> float:
    """
    Overall confidence of a run, 60-95.

    Starts at 50; more records and days add to it, and the spread of daily
    ROI moves it by 10 either way.
    """
    points = total_records(ai_data)
    days = len(ai_data.dailyMetrics)
    confidence = 50.0

    if points > 1000:
        confidence += 20
    elif points > 500:
        confidence += 15
    elif points > 100:
        confidence += 10

    if days > 30:
        confidence += 15
    elif days > 14:
        confidence += 10
    elif days > 7:
        confidence += 5

    roi_spread = population_std([d.roi for d in ai_data.dailyMetrics])
    if roi_spread < 10:
        confidence += 10
    elif roi_spread > 30:
        confidence -= 10
    return clamp(confidence, 60.0, 95.0)


# =============================================================================
# Insights
# =============================================================================


def platform_comparison_insight(ai_data: AIAnalysisData) -> Optional[Insight]:
    """Compare average commission per order; needs orders on both marketplaces."""
    metrics = ai_data.calculatedMetrics
    per_order = {
        SourcePlatform.SHOPEE.value: safe_divide(metrics.totalComSP, metrics.totalOrdersSP),
        SourcePlatform.LAZADA.value: safe_divide(metrics.totalComLZD, metrics.totalOrdersLZD),
    }
    if not all(value > 0 for value in per_order.values()):
        return None

    better = max(per_order, key=per_order.get)
    return Insight(
        id=f"insight-platform-comparison-{ai_data.dateRange.end.isoformat()}",
        type=InsightType.BENCHMARK,
        title='Platform Performance Comparison',
        description=(
            f"{better} shows superior performance with {per_order[better]:.2f} THB "
            f"average commission per order."
        ),
        insight=f"Consider focusing more resources on {better} campaigns while analyzing what makes them more effective.",
        confidence=85,
        significance=Significance.MEDIUM,
        dataPoints=metrics.totalOrdersSP + metrics.totalOrdersLZD,
        dataRange=ai_data.dateRange,
        affectedMetrics=['Commission per Order', 'Platform ROI'],
        visualizationData={'commissionPerOrder': per_order},
    )


def performance_trend_insight(ai_data: AIAnalysisData) -> Optional[Insight]:
    daily = ai_data.dailyMetrics
    if len(daily) < TREND_INSIGHT_MIN_DAYS:
        return None

    slope = linear_regression([d.roi for d in daily]).slope
    if slope > TREND_INSIGHT_SLOPE:
        trend = TrendDirection.IMPROVING
        advice = 'Current strategies are working well. Consider scaling successful campaigns.'
    elif slope < -TREND_INSIGHT_SLOPE:
        trend = TrendDirection.DECLINING
        advice = 'Performance is declining. Review recent changes and optimize underperforming elements.'
    else:
        trend = TrendDirection.STABLE
        advice = 'Performance is stable. Look for optimization opportunities to drive growth.'

    return Insight(
        id=f"insight-performance-trend-{ai_data.dateRange.end.isoformat()}",
        type=InsightType.TREND,
        title=f"Performance Trend: {trend.value.capitalize()}",
        description=f"ROI trend over the past {len(daily)} days shows {trend.value} performance.",
        insight=advice,
        confidence=78,
        significance=Significance.MEDIUM if trend == TrendDirection.STABLE else Significance.HIGH,
        dataPoints=len(daily),
        dataRange=ai_data.dateRange,
        affectedMetrics=['ROI', 'Daily Performance'],
        visualizationData={
            'trend': [{'date': d.date, 'roi': d.roi} for d in daily],
            'trendLine': slope,
        },
    )


def assess_analysis_data_quality(ai_data: AIAnalysisData, as_of: Optional[date] = None) -> Tuple[float, List[str]]:
    """Score (0-100) and issues behind the data quality insight."""
    as_of = as_of or date.today()
    score = 100.0
    issues: List[str] = []
    records = total_records(ai_data)

    if records < 50:
        score -= 20
        issues.append('Limited data volume may affect recommendation accuracy.')

    if ai_data.dailyMetrics:
        age = (as_of - date.fromisoformat(ai_data.dailyMetrics[-1].date)).days
    else:
        age = 30
    if age > 7:
        score -= 15
        issues.append('Data may be outdated, consider importing recent data.')

    orders = ai_data.shopeeOrders + ai_data.lazadaOrders
    untagged = sum(1 for o in orders if not o.subIds)
    if untagged > records * 0.1:
        score -= 10
        issues.append('Some orders are missing Sub ID information.')

    return max(0.0, score), issues


def data_quality_insight(ai_data: AIAnalysisData, as_of: Optional[date] = None) -> Optional[Insight]:
    score, issues = assess_analysis_data_quality(ai_data, as_of)
    if score >= QUALITY_INSIGHT_THRESHOLD:
        return None
    return Insight(
        id=f"insight-data-quality-{ai_data.dateRange.end.isoformat()}",
        type=InsightType.ANOMALY,
        title='Data Quality Assessment',
        description=f"Data quality score: {score:.0f}%. Some recommendations may have lower confidence.",
        insight=' '.join(issues),
        confidence=90,
        significance=Significance.HIGH if score < 60 else Significance.MEDIUM,
        dataPoints=total_records(ai_data),
        dataRange=ai_data.dateRange,
        affectedMetrics=['All Metrics'],
    )


def generate_analysis_insights(ai_data: AIAnalysisData, as_of: Optional[date] = None) -> List[Insight]:
    candidates = [
        platform_comparison_insight(ai_data),
        performance_trend_insight(ai_data),
        data_quality_insight(ai_data, as_of),
    ]
    return [i for i in candidates if i is not None]


# =============================================================================
# Sections
# =============================================================================


def _run_section(name: str, errors: List[str], fn: Callable[[], T], default: T) -> T:
    """Run one optional section; a failure is logged and recorded, never raised."""
    try:
        return fn()
    except InsufficientDataError as e:
        logger.warning(f"{name} skipped: {e}")
        errors.append(f"{name}: {e}")
    except Exception as e:
        logger.error(f"{name} failed: {e}", exc_info=True)
        errors.append(f"{name} failed: {e}")
    return default


def collect_alerts(ai_data: AIAnalysisData, settings: Settings, as_of: Optional[date] = None) -> List[Alert]:
    """Performance and trend alerts, first occurrence of each id kept."""
    daily = ai_data.dailyMetrics
    alerts = generate_performance_alerts(daily, total_records(ai_data), len(ai_data.subIds), settings, as_of)
    alerts.extend(analyze_trends(daily, settings).alerts)

    unique = {}
    for alert in alerts:
        unique.setdefault(alert.id, alert)
    return list(unique.values())


def collect_predictions(ai_data: AIAnalysisData, settings: Settings) -> List[Prediction]:
    daily = ai_data.dailyMetrics
    return predict_roi(daily, settings=settings).predictions + predict_revenue(daily, settings=settings)


def build_budget_optimization(
    ai_data: AIAnalysisData,
    performance: PerformanceAnalysisResult,
    settings: Settings,
) -> Optional[BudgetOptimization]:
    if not performance.subIdAnalysis:
        logger.info('No scored sub-ids; budget optimization skipped')
        return None
    result = optimize_budget(ai_data, performance.subIdAnalysis, performance.platformAnalysis, settings=settings)
    return result.optimization


# =============================================================================
# Entry Point
# =============================================================================


def run_analysis(
    ai_data: AIAnalysisData,
    settings: Optional[Settings] = None,
    as_of: Optional[date] = None,
) -> AIAnalysisResult:
    """
    Produce the full analysis for one snapshot.

    Args:
        ai_data: Enriched analysis input, typically AggregationResult.aiData.
        settings: Thresholds and feature flags; defaults to get_settings().
        as_of: Reference day for freshness checks (default: today).

    Returns:
        AIAnalysisResult with status completed. Section failures are listed
        in errors.
    """
    settings = settings or get_settings()
    started = datetime.now()
    errors: List[str] = []
    logger.info(
        f"Starting analysis of {total_records(ai_data)} records over {len(ai_data.dailyMetrics)} days"
    )

    performance = _run_section(
        'Performance analysis', errors,
        lambda: analyze_performance(ai_data, settings),
        PerformanceAnalysisResult(overallScore=0.0, confidence=0.0),
    )

    recommendations = performance.recommendations if settings.enable_recommendations else []

    predictions: List[Prediction] = []
    if settings.enable_predictions:
        predictions = _run_section('Predictions', errors, lambda: collect_predictions(ai_data, settings), [])

    alerts: List[Alert] = []
    if settings.enable_alerts:
        alerts = _run_section('Alerts', errors, lambda: collect_alerts(ai_data, settings, as_of), [])

    insights = _run_section('Insights', errors, lambda: generate_analysis_insights(ai_data, as_of), [])

    budget: Optional[BudgetOptimization] = None
    if settings.enable_budget_optimization:
        budget = _run_section(
            'Budget optimization', errors,
            lambda: build_budget_optimization(ai_data, performance, settings),
            None,
        )

    result = AIAnalysisResult(
        id=str(uuid4()),
        analysisType='performance',
        status=AnalysisStatus.COMPLETED,
        progress=100,
        recommendations=recommendations,
        predictions=predictions,
        alerts=alerts,
        insights=insights,
        budgetOptimization=budget,
        metadata=AnalysisMetadata(
            dataPointsAnalyzed=total_records(ai_data),
            analysisStartTime=started,
            analysisEndTime=datetime.now(),
            modelVersion=settings.model_version,
            confidence=calculate_analysis_confidence(ai_data),
        ),
        errors=errors,
    )
    logger.info(
        f"Analysis {result.id} complete: {len(recommendations)} recommendations, "
        f"{len(predictions)} predictions, {len(alerts)} alerts, {len(insights)} insights, "
        f"{len(errors)} errors"
    )
    return result
