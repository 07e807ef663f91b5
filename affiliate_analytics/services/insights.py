"""
Performance Insights and Benchmarking

Benchmarks the latest day against the user's own history and looks for
recurring structure in the daily series.

Key Outputs:
    - benchmarks: ROI, Revenue, Orders, Ad Spend and Cost Per Order with
      current/best/worst/average values and the current percentile rank
    - topPerformers: profitable sub-ids, platforms with revenue, the three best
      days and the best weekday
    - patterns: weekly, ROI trend, ROI volatility and (30+ days) week-of-month
    - insights: ROI against history, one per pattern, data quality
    - summary: overall score with up to three strengths, weaknesses and
      opportunities

Fewer than min_data_points days produce an explicit result with
hasSufficientData=False instead of an error.

Usage:
    from affiliate_analytics.services.insights import generate_performance_insights

    result = generate_performance_insights(ai_data)
    for pattern in result.patterns:
        print(pattern.name, pattern.impact)
"""

import logging
import math
from datetime import date
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence

from affiliate_analytics.core.config import Settings, get_settings
from affiliate_analytics.models import (
    AIAnalysisData,
    DailyMetrics,
    DateRange,
    Insight,
    InsightType,
    InsightsSummary,
    PatternPoint,
    PatternType,
    PerformanceBenchmark,
    PerformanceInsightsResult,
    PerformancePattern,
    PerformerSnapshot,
    PerformerType,
    Significance,
    TopPerformer,
    TrendDirection,
)
from affiliate_analytics.services.stats import (
    clamp,
    linear_regression,
    mean,
    percentile_rank,
    round_to,
    sample_std,
)

logger = logging.getLogger(__name__)

WEEKDAY_NAMES: List[str] = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']

WEEKLY_MIN_IMPACT = 10.0
SEASONAL_MIN_IMPACT = 15.0
SEASONAL_MIN_DAYS = 30
TREND_MIN_SLOPE = 0.5
VOLATILITY_MIN_CV = 0.2


class WeekdayStats(NamedTuple):
    name: str
    avg_roi: float
    avg_revenue: float
    avg_orders: float
    avg_spend: float
    count: int


def _orders(day: DailyMetrics) -> float:
    return float(day.ordersSP + day.ordersLZD)


def _cost_per_order(day: DailyMetrics) -> float:
    orders = _orders(day)
    return day.adSpend / orders if orders > 0 else 0.0


BENCHMARK_SERIES: List[tuple] = [
    ('ROI', lambda d: d.roi),
    ('Revenue', lambda d: d.totalCom),
    ('Orders', _orders),
    ('Ad Spend', lambda d: d.adSpend),
    ('Cost Per Order', _cost_per_order),
]


# =============================================================================
# Benchmarks
# =============================================================================


def _benchmark_trend(values: Sequence[float]) -> TrendDirection:
    if len(values) < 2:
        return TrendDirection.STABLE
    slope = linear_regression(values).slope
    if abs(slope) < TREND_MIN_SLOPE:
        return TrendDirection.STABLE
    return TrendDirection.IMPROVING if slope > 0 else TrendDirection.DECLINING


def create_benchmark(metric: str, values: Sequence[float], period: DateRange) -> PerformanceBenchmark:
    """Benchmark the most recent value against the whole series."""
    valid = [v for v in values if math.isfinite(v)]
    if not valid:
        return PerformanceBenchmark(
            metric=metric,
            currentValue=0.0,
            bestValue=0.0,
            worstValue=0.0,
            averageValue=0.0,
            percentileRank=50.0,
            trend=TrendDirection.STABLE,
            benchmarkPeriod=period,
        )

    current = valid[-1]
    return PerformanceBenchmark(
        metric=metric,
        currentValue=round_to(current),
        bestValue=round_to(max(valid)),
        worstValue=round_to(min(valid)),
        averageValue=round_to(mean(valid)),
        percentileRank=round_to(percentile_rank(current, valid), 1),
        trend=_benchmark_trend(valid),
        benchmarkPeriod=period,
    )


def generate_benchmarks(daily: Sequence[DailyMetrics], period: DateRange) -> List[PerformanceBenchmark]:
    return [create_benchmark(name, [series(d) for d in daily], period) for name, series in BENCHMARK_SERIES]


# =============================================================================
# Weekly and Seasonal Patterns
# =============================================================================


def weekday_stats(daily: Sequence[DailyMetrics]) -> Dict[str, WeekdayStats]:
    """Per-weekday averages, in calendar order, for weekdays present in the series."""
    grouped: Dict[int, List[DailyMetrics]] = {}
    for day in daily:
        grouped.setdefault(date.fromisoformat(day.date).weekday(), []).append(day)

    stats: Dict[str, WeekdayStats] = {}
    for weekday in sorted(grouped):
        days = grouped[weekday]
        name = WEEKDAY_NAMES[weekday]
        stats[name] = WeekdayStats(
            name=name,
            avg_roi=mean([d.roi for d in days]),
            avg_revenue=mean([d.totalCom for d in days]),
            avg_orders=mean([_orders(d) for d in days]),
            avg_spend=mean([d.adSpend for d in days]),
            count=len(days),
        )
    return stats


def detect_weekly_pattern(daily: Sequence[DailyMetrics]) -> Optional[PerformancePattern]:
    """
    Compare average ROI of the best and worst weekday.

    Reported when |(best - worst) / worst| is at least 10%. Needs a full week
    of data and a non-zero worst-day average.
    """
    if len(daily) < 7:
        return None
    stats = weekday_stats(daily)
    if len(stats) < 2:
        return None

    ranked = sorted(stats.values(), key=lambda s: s.avg_roi, reverse=True)
    best, worst = ranked[0], ranked[-1]
    if worst.avg_roi == 0:
        return None
    impact = (best.avg_roi - worst.avg_roi) / abs(worst.avg_roi) * 100
    if abs(impact) < WEEKLY_MIN_IMPACT:
        return None

    return PerformancePattern(
        id='weekly_pattern',
        type=PatternType.WEEKLY,
        name='Weekly Performance Pattern',
        description=f"{best.name}s perform {impact:.1f}% better than {worst.name}s",
        confidence=75.0,
        impact=clamp(impact, -100.0, 100.0),
        recommendations=[
            f"Increase ad spend on {best.name}s",
            f"Consider reducing spend on {worst.name}s",
            'Monitor weekly patterns for budget optimization',
        ],
        data=[PatternPoint(period=s.name, value=s.avg_roi, metric='Average ROI') for s in stats.values()],
    )


def detect_seasonal_pattern(daily: Sequence[DailyMetrics]) -> Optional[PerformancePattern]:
    """Week-of-month ROI spread; needs 30 days and three distinct weeks."""
    if len(daily) < SEASONAL_MIN_DAYS:
        return None

    groups: Dict[int, List[float]] = {}
    for day in daily:
        week = math.ceil(date.fromisoformat(day.date).day / 7)
        groups.setdefault(week, []).append(day.roi)
    if len(groups) < 3:
        return None

    averages = {week: mean(values) for week, values in sorted(groups.items())}
    high = max(averages.values())
    low = min(averages.values())
    if low == 0:
        return None
    impact = (high - low) / abs(low) * 100
    if impact < SEASONAL_MIN_IMPACT:
        return None

    return PerformancePattern(
        id='seasonal_pattern',
        type=PatternType.SEASONAL,
        name='Monthly Seasonal Pattern',
        description=f"Performance varies by {impact:.1f}% across different weeks of the month",
        confidence=65.0,
        impact=clamp(impact, -100.0, 100.0),
        recommendations=[
            'Adjust budget allocation based on monthly patterns',
            'Plan campaigns around high-performing periods',
            'Collect more data to confirm seasonal trends',
        ],
        data=[PatternPoint(period=f"Week {week}", value=avg, metric='Average ROI') for week, avg in averages.items()],
    )


# =============================================================================
# Trend and Volatility Patterns
# =============================================================================


def detect_trend_pattern(daily: Sequence[DailyMetrics]) -> Optional[PerformancePattern]:
    values = [d.roi for d in daily]
    fit = linear_regression(values)
    if abs(fit.slope) < TREND_MIN_SLOPE:
        return None

    direction = TrendDirection.IMPROVING if fit.slope > 0 else TrendDirection.DECLINING
    if direction == TrendDirection.IMPROVING:
        recommendations = [
            'Trend is positive - consider increasing budget',
            'Identify factors driving improvement',
            'Scale successful campaigns',
        ]
    else:
        recommendations = [
            'Declining trend detected - investigate causes',
            'Review underperforming campaigns',
            'Consider pausing or optimizing poor performers',
        ]

    return PerformancePattern(
        id='trend_pattern',
        type=PatternType.TREND,
        name=f"{direction.value.capitalize()} ROI Trend",
        description=f"ROI is {direction.value} by approximately {abs(fit.slope):.2f}% per day",
        confidence=min(95.0, fit.r_squared * 100),
        impact=clamp(fit.slope * len(daily), -100.0, 100.0),
        recommendations=recommendations,
        data=[PatternPoint(period=d.date, value=d.roi, metric='ROI') for d in daily],
    )


def detect_volatility_pattern(daily: Sequence[DailyMetrics]) -> Optional[PerformancePattern]:
    values = [d.roi for d in daily]
    avg = mean(values)
    cv = sample_std(values) / abs(avg) if avg != 0 else 0.0
    if cv < VOLATILITY_MIN_CV:
        return None

    level = 'High' if cv > 0.5 else 'Moderate'
    return PerformancePattern(
        id='volatility_pattern',
        type=PatternType.TREND,
        name=f"{level} Performance Volatility",
        description=f"ROI shows {level.lower()} volatility with {cv * 100:.1f}% coefficient of variation",
        confidence=80.0,
        impact=max(-100.0, -cv * 50),
        recommendations=[
            'High volatility indicates inconsistent performance',
            'Review campaign settings for stability',
            'Consider diversifying traffic sources',
            'Implement more consistent bidding strategies',
        ],
        data=[PatternPoint(period=d.date, value=abs(d.roi - avg), metric='ROI Deviation') for d in daily],
    )


def detect_patterns(daily: Sequence[DailyMetrics]) -> List[PerformancePattern]:
    detectors: List[Callable[[Sequence[DailyMetrics]], Optional[PerformancePattern]]] = [
        detect_weekly_pattern,
        detect_trend_pattern,
        detect_volatility_pattern,
        detect_seasonal_pattern,
    ]
    patterns = [detector(daily) for detector in detectors]
    return [p for p in patterns if p is not None]


# =============================================================================
# Top Performers
# =============================================================================


def identify_top_performers(ai_data: AIAnalysisData) -> List[TopPerformer]:
    """Profitable sub-ids (top 5), platforms with revenue, best days and weekday; by value."""
    daily = ai_data.dailyMetrics
    days = max(1, len(daily))
    period = f"{len(daily)} days"
    performers: List[TopPerformer] = []

    profitable = sorted((s for s in ai_data.subIdAnalysis if s.roi > 0), key=lambda s: s.roi, reverse=True)
    for sub_id in profitable[:5]:
        performers.append(TopPerformer(
            id=f"subid_{sub_id.subId}",
            type=PerformerType.SUBID,
            name=sub_id.subId,
            value=sub_id.roi,
            metric='ROI',
            period=period,
            performance=PerformerSnapshot(
                roi=sub_id.roi, revenue=sub_id.revenue, orders=sub_id.orders, spend=sub_id.adSpend,
            ),
            insights=[
                f"Generated {sub_id.orders} orders with {sub_id.roi:.1f}% ROI",
                f"Average revenue per day: {sub_id.revenue / days:.0f} THB",
            ],
        ))

    for platform in ai_data.platformAnalysis:
        if platform.revenue <= 0:
            continue
        performers.append(TopPerformer(
            id=f"platform_{platform.platform.lower()}",
            type=PerformerType.PLATFORM,
            name=platform.platform,
            value=platform.roi,
            metric='ROI',
            period=period,
            performance=PerformerSnapshot(
                roi=platform.roi, revenue=platform.revenue, orders=platform.orders, spend=platform.adSpend,
            ),
            insights=[
                f"{platform.orders} orders generated",
                f"Average commission per order: "
                f"{(platform.revenue / platform.orders if platform.orders else 0.0):.0f} THB",
            ],
        ))

    for rank, day in enumerate(sorted(daily, key=lambda d: d.roi, reverse=True)[:3], start=1):
        performers.append(TopPerformer(
            id=f"timeperiod_{day.date}",
            type=PerformerType.TIMEPERIOD,
            name=day.date,
            value=day.roi,
            metric='ROI',
            period='1 day',
            performance=PerformerSnapshot(
                roi=day.roi, revenue=day.totalCom, orders=int(_orders(day)), spend=day.adSpend,
            ),
            insights=[
                f"Best performing day #{rank}",
                f"Generated {int(_orders(day))} orders",
                f"Revenue: {day.totalCom:.0f} THB",
            ],
        ))

    stats = weekday_stats(daily)
    if stats:
        best = max(stats.values(), key=lambda s: s.avg_roi)
        performers.append(TopPerformer(
            id='timeperiod_weekly_best',
            type=PerformerType.TIMEPERIOD,
            name=f"{best.name}s",
            value=best.avg_roi,
            metric='Average ROI',
            period='Weekly pattern',
            performance=PerformerSnapshot(
                roi=best.avg_roi, revenue=best.avg_revenue, orders=round(best.avg_orders), spend=best.avg_spend,
            ),
            insights=[
                'Best performing day of the week',
                f"Averaged over {best.count} {best.name}s",
                f"Consider increasing budget on {best.name}s",
            ],
        ))

    return sorted(performers, key=lambda p: p.value, reverse=True)


# =============================================================================
# Insights and Summary
# =============================================================================


def assess_insight_data_quality(ai_data: AIAnalysisData, as_of: Optional[date] = None) -> float:
    """
    0-100 score: history length (40), finite values (30), recency (20) and
    sub-id diversity (10).
    """
    daily = ai_data.dailyMetrics
    if not daily:
        return 0.0
    as_of = as_of or date.today()

    completeness = min(40.0, len(daily) / 30 * 40)
    finite = [d for d in daily if all(math.isfinite(v) for v in (d.roi, d.totalCom, d.adSpend))]
    consistency = len(finite) / len(daily) * 30
    latest = max(date.fromisoformat(d.date) for d in daily)
    recency = max(0.0, 20.0 - (as_of - latest).days * 2)
    diversity = min(10.0, len(ai_data.subIds) * 2)
    return float(round(min(100.0, completeness + consistency + recency + diversity)))


def generate_insights(
    ai_data: AIAnalysisData,
    benchmarks: Sequence[PerformanceBenchmark],
    patterns: Sequence[PerformancePattern],
    as_of: Optional[date] = None,
) -> List[Insight]:
    daily = ai_data.dailyMetrics
    insights: List[Insight] = []

    roi = next((b for b in benchmarks if b.metric == 'ROI'), None)
    if roi is not None:
        if roi.percentileRank >= 75:
            verdict = 'Excellent ROI performance - significantly above historical average'
        elif roi.percentileRank >= 50:
            verdict = 'Good ROI performance - above historical average'
        else:
            verdict = 'ROI performance below historical average - optimization needed'
        insights.append(Insight(
            id='roi_benchmark_insight',
            type=InsightType.BENCHMARK,
            title='ROI Performance vs Historical Average',
            description=(
                f"Current ROI is {roi.currentValue}%, ranking at the "
                f"{roi.percentileRank:.0f}th percentile"
            ),
            insight=verdict,
            confidence=85.0,
            significance=Significance.HIGH if abs(roi.percentileRank - 50) >= 25 else Significance.MEDIUM,
            dataPoints=len(daily),
            dataRange=ai_data.dateRange,
            affectedMetrics=['ROI', 'Revenue', 'Profitability'],
        ))

    for pattern in patterns:
        insights.append(Insight(
            id=f"pattern_insight_{pattern.id}",
            type=InsightType.PATTERN,
            title=pattern.name,
            description=pattern.description,
            insight='. '.join(pattern.recommendations),
            confidence=clamp(pattern.confidence, 0.0, 100.0),
            significance=Significance.HIGH if abs(pattern.impact) >= 30 else Significance.MEDIUM,
            dataPoints=len(daily),
            dataRange=ai_data.dateRange,
            affectedMetrics=['ROI', 'Performance'],
            visualizationData={'points': [p.model_dump() for p in pattern.data]},
        ))

    quality = assess_insight_data_quality(ai_data, as_of)
    if quality >= 80:
        verdict = 'High quality data enables reliable insights and predictions'
    elif quality >= 60:
        verdict = 'Good data quality - insights are reliable with minor limitations'
    else:
        verdict = 'Limited data quality may affect insight accuracy - consider importing more data'
    insights.append(Insight(
        id='data_quality_insight',
        type=InsightType.BENCHMARK,
        title='Data Quality Assessment',
        description=f"Analysis based on {len(daily)} days of data",
        insight=verdict,
        confidence=quality,
        significance=Significance.LOW,
        dataPoints=len(daily),
        dataRange=ai_data.dateRange,
        affectedMetrics=['All Metrics'],
    ))
    return insights


def generate_summary(
    benchmarks: Sequence[PerformanceBenchmark],
    performers: Sequence[TopPerformer],
    patterns: Sequence[PerformancePattern],
) -> InsightsSummary:
    strengths: List[str] = []
    weaknesses: List[str] = []
    opportunities: List[str] = []

    for benchmark in benchmarks:
        rank = benchmark.percentileRank
        if rank >= 75:
            strengths.append(f"Strong {benchmark.metric.lower()} performance ({rank:.0f}th percentile)")
        elif rank <= 25:
            weaknesses.append(f"{benchmark.metric} below historical average ({rank:.0f}th percentile)")

    top_sub_ids = [p for p in performers if p.type == PerformerType.SUBID][:2]
    if top_sub_ids:
        opportunities.append(f"Scale top-performing Sub IDs: {', '.join(p.name for p in top_sub_ids)}")
    top_platform = next((p for p in performers if p.type == PerformerType.PLATFORM), None)
    if top_platform is not None:
        opportunities.append(f"Focus budget on {top_platform.name} ({top_platform.value:.1f}% ROI)")
    for pattern in patterns:
        if pattern.impact > 0:
            opportunities.append(f"Leverage {pattern.name.lower()} for {pattern.impact:.1f}% improvement")

    if not strengths:
        strengths.append('Consistent performance across metrics')
    if not opportunities:
        opportunities.append('Continue monitoring performance for optimization opportunities')

    return InsightsSummary(
        overallScore=float(round(mean([b.percentileRank for b in benchmarks]))),
        strengths=strengths[:3],
        weaknesses=weaknesses[:3],
        opportunities=opportunities[:3],
    )


def generate_performance_insights(
    ai_data: AIAnalysisData,
    settings: Optional[Settings] = None,
    as_of: Optional[date] = None,
) -> PerformanceInsightsResult:
    """
    Benchmarks, top performers, patterns, insights and summary for a snapshot.

    Returns:
        PerformanceInsightsResult; hasSufficientData is False (and the lists
        empty) when there are fewer than min_data_points days.
    """
    settings = settings or get_settings()
    daily = ai_data.dailyMetrics

    if len(daily) < settings.min_data_points:
        logger.warning(
            f"Insights skipped: {len(daily)} days of data, {settings.min_data_points} required"
        )
        return PerformanceInsightsResult(
            hasSufficientData=False,
            summary=InsightsSummary(
                weaknesses=[f"Insufficient data - at least {settings.min_data_points} days of data are needed"],
                opportunities=['Import more historical data to unlock performance insights'],
            ),
        )

    period = ai_data.dateRange
    benchmarks = generate_benchmarks(daily, period)
    performers = identify_top_performers(ai_data)
    patterns = detect_patterns(daily)
    insights = generate_insights(ai_data, benchmarks, patterns, as_of)
    summary = generate_summary(benchmarks, performers, patterns)

    logger.info(
        f"Insights: {len(benchmarks)} benchmarks, {len(performers)} top performers, "
        f"{len(patterns)} patterns, score={summary.overallScore:.0f}"
    )
    return PerformanceInsightsResult(
        benchmarks=benchmarks,
        topPerformers=performers,
        patterns=patterns,
        insights=insights,
        summary=summary,
    )
