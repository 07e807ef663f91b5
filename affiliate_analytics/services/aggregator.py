"""
Data Aggregator

Entry point from raw parsed rows to the analysis input.

Pipeline:
    normalize -> reconcile (dedup + conflicts) -> metrics -> process ->
    validate -> enrich -> aggregation statistics

Key Outputs:
    - AggregationResult: enriched AIAnalysisData, statistics (record counts
      by provenance, a 0-100 quality score, processing time), the conflicts
      found while merging, warnings and errors
    - AggregatedPerformance: enhanced metrics plus platform and growth
      observations for the dashboard
    - CompatibilityReport / IntegrationReport: how the pipeline's totals line
      up with the caller's own snapshot

aggregate_data_for_ai never raises. An unexpected failure is logged with its
traceback and returned as an error next to a minimal fallback AIAnalysisData.

Usage:
    from affiliate_analytics.services.aggregator import aggregate_data_for_ai

    result = aggregate_data_for_ai(shopee_rows, lazada_rows, facebook_rows)
    if result.errors:
        ...
    ai_data = result.aiData
"""

import logging
import math
import time
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence, Union

from affiliate_analytics.core.config import Settings, get_settings
from affiliate_analytics.models import (
    AdSpendRecord,
    AggregatedPerformance,
    AggregationResult,
    AggregationStats,
    AIAnalysisData,
    CalculatedMetrics,
    CompatibilityReport,
    DailyMetrics,
    DataFlowSummary,
    DataSource,
    DataSourceBreakdown,
    DateRange,
    IntegrationReport,
    IntegrationThroughput,
    OrderRecord,
    PerformanceOverview,
    QualityMetrics,
    SourcePlatform,
    TrendDirection,
)
from affiliate_analytics.services.data_processor import (
    DEFAULT_RANGE_DAYS,
    assess_data_completeness,
    assess_data_consistency,
    calculate_enhanced_metrics,
    enrich_data,
    process_raw_data,
    seasonal_windows,
    total_records,
    validate_data,
)
from affiliate_analytics.services.dedup import reconcile_sources
from affiliate_analytics.services.metrics import (
    calculate_daily_metrics,
    calculate_metrics,
    daily_platform_orders,
)
from affiliate_analytics.services.normalizer import (
    normalize_facebook_ads,
    normalize_lazada_orders,
    normalize_shopee_orders,
)
from affiliate_analytics.services.stats import coefficient_of_variation, mean

logger = logging.getLogger(__name__)

# Score given to a run that failed and fell back to raw counts
FALLBACK_QUALITY_SCORE = 50.0

# Absolute tolerance when comparing money totals with a caller snapshot
COMPATIBILITY_TOLERANCE = 0.01

# Relative change in percent beyond which growth counts as a trend
GROWTH_CHANGE_THRESHOLD = 5.0

Record = Union[OrderRecord, AdSpendRecord]


# =============================================================================
# Statistics
# =============================================================================


def calculate_data_quality_score(data: AIAnalysisData, as_of: Optional[date] = None) -> float:
    """
    Start at 100 and subtract for thin, narrow or stale data.

    Penalties:
        records < 50 / < 100            20 / 10
        sub-ids == 0 / < 3              15 / 5
        date span < 7 / < 14 days       15 / 5
        last date > 30 / > 7 days old   10 / 5
    """
    as_of = as_of or date.today()
    score = 100.0

    records = total_records(data)
    if records < 50:
        score -= 20
    elif records < 100:
        score -= 10

    if not data.subIds:
        score -= 15
    elif len(data.subIds) < 3:
        score -= 5

    span = (data.dateRange.end - data.dateRange.start).days
    if span < 7:
        score -= 15
    elif span < 14:
        score -= 5

    age = (as_of - data.dateRange.end).days
    if age > 30:
        score -= 10
    elif age > 7:
        score -= 5

    return max(0.0, score)


def data_source_breakdown(records: Sequence[Record]) -> DataSourceBreakdown:
    breakdown = DataSourceBreakdown()
    for record in records:
        if record.dataSource == DataSource.FACEBOOK_API:
            breakdown.apiData += 1
        elif record.dataSource == DataSource.MERGED:
            breakdown.merged += 1
        else:
            breakdown.fileImports += 1
    return breakdown


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000.0


# =============================================================================
# Aggregation
# =============================================================================


def _fallback_data(
    calculated_metrics: Optional[CalculatedMetrics],
    daily_metrics: Optional[Sequence[DailyMetrics]],
    as_of: Optional[date],
) -> AIAnalysisData:
    daily = list(daily_metrics or [])
    if daily:
        date_range = DateRange(start=date.fromisoformat(daily[0].date), end=date.fromisoformat(daily[-1].date))
    else:
        end = as_of or date.today()
        date_range = DateRange(start=end - timedelta(days=DEFAULT_RANGE_DAYS), end=end)
    return AIAnalysisData(
        calculatedMetrics=calculated_metrics or CalculatedMetrics(),
        dailyMetrics=daily,
        dateRange=date_range,
    )


def aggregate_data_for_ai(
    shopee_rows: Sequence[Dict[str, Any]],
    lazada_rows: Sequence[Dict[str, Any]],
    facebook_rows: Sequence[Dict[str, Any]],
    calculated_metrics: Optional[CalculatedMetrics] = None,
    daily_metrics: Optional[Sequence[DailyMetrics]] = None,
    settings: Optional[Settings] = None,
    as_of: Optional[date] = None,
) -> AggregationResult:
    """
    Build enriched analysis input from raw rows of the three sources.

    Args:
        shopee_rows: Raw Shopee affiliate rows, source column names.
        lazada_rows: Raw Lazada affiliate rows.
        facebook_rows: Raw Facebook Ads rows.
        calculated_metrics: Caller snapshot of totals. Totals are always
            recomputed; disagreements become warnings.
        daily_metrics: Caller daily series, checked the same way.
        as_of: Reference day for freshness checks (default: today).

    Returns:
        AggregationResult. Validation problems and merge conflicts become
        warnings; unexpected failures become errors with a fallback aiData.
    """
    settings = settings or get_settings()
    started = time.perf_counter()
    warnings: List[str] = []
    raw_count = len(shopee_rows) + len(lazada_rows) + len(facebook_rows)
    logger.info(f"Starting aggregation of {raw_count} raw rows")

    try:
        shopee = normalize_shopee_orders(shopee_rows)
        lazada = normalize_lazada_orders(lazada_rows)
        ads = normalize_facebook_ads(facebook_rows)

        reconciled = reconcile_sources(shopee, lazada, ads, settings)
        conflicts = reconciled.conflictReport.conflicts
        if conflicts:
            warnings.append(f"Found {len(conflicts)} data conflicts during merge")
            warnings.extend(reconciled.conflictReport.recommendations)

        shopee = reconciled.shopeeOrders
        lazada = reconciled.lazadaOrders
        ads = reconciled.facebookAds

        metrics = calculate_metrics(shopee, lazada, ads)
        daily = calculate_daily_metrics(shopee, lazada, ads)

        ai_data = process_raw_data(shopee, lazada, ads, metrics, daily, as_of)
        validation = validate_data(ai_data, as_of)
        warnings.extend(validation.errors)
        warnings.extend(validation.warnings)

        ai_data = enrich_data(ai_data, as_of)

        if calculated_metrics is not None or daily_metrics is not None:
            compatibility = validate_dashboard_compatibility(
                ai_data,
                calculated_metrics or metrics,
                list(daily_metrics) if daily_metrics is not None else daily,
            )
            if not compatibility.isCompatible:
                logger.warning(f"Caller snapshot disagrees with recomputed totals: {compatibility.issues}")
            warnings.extend(compatibility.issues)

        records: List[Record] = list(shopee) + list(lazada) + list(ads)
        stats = AggregationStats(
            totalRecordsProcessed=len(records),
            dataSourceBreakdown=data_source_breakdown(records),
            dataQualityScore=calculate_data_quality_score(ai_data, as_of),
            processingTime=_elapsed_ms(started),
        )
        logger.info(
            f"Aggregation complete: {stats.totalRecordsProcessed} records, "
            f"quality={stats.dataQualityScore:.0f}, {stats.processingTime:.1f}ms"
        )
        return AggregationResult(
            aiData=ai_data,
            aggregationStats=stats,
            conflicts=conflicts,
            warnings=warnings,
            errors=[],
        )

    except Exception as e:
        logger.error(f"Aggregation failed: {e}", exc_info=True)
        return AggregationResult(
            aiData=_fallback_data(calculated_metrics, daily_metrics, as_of),
            aggregationStats=AggregationStats(
                totalRecordsProcessed=raw_count,
                dataSourceBreakdown=DataSourceBreakdown(fileImports=raw_count),
                dataQualityScore=FALLBACK_QUALITY_SCORE,
                processingTime=_elapsed_ms(started),
            ),
            warnings=warnings,
            errors=[str(e) or type(e).__name__],
        )


# =============================================================================
# Dashboard Views
# =============================================================================


def _relative_change(recent: float, earlier: float) -> float:
    if earlier == 0:
        return 0.0
    return (recent - earlier) / abs(earlier) * 100


def calculate_growth_trend(values: Sequence[float]) -> TrendDirection:
    """Compare the mean of the last three values with the first three."""
    if len(values) < 2:
        return TrendDirection.STABLE
    change = _relative_change(mean(values[-3:]), mean(values[:3]))
    if change > GROWTH_CHANGE_THRESHOLD:
        return TrendDirection.IMPROVING
    if change < -GROWTH_CHANGE_THRESHOLD:
        return TrendDirection.DECLINING
    return TrendDirection.STABLE


def most_consistent_platform(daily: Sequence[DailyMetrics]) -> Optional[str]:
    """Platform whose daily order count varies least (lowest CV)."""
    series = {p: v for p, v in daily_platform_orders(daily).items() if any(v)}
    if not series:
        return None
    return min(series, key=lambda p: (coefficient_of_variation(series[p]), p))


def aggregate_performance_metrics(ai_data: AIAnalysisData, as_of: Optional[date] = None) -> AggregatedPerformance:
    """Enhanced metrics plus top platform, most consistent platform and growth."""
    enhanced = ai_data.enhancedMetrics or calculate_enhanced_metrics(ai_data, as_of)
    ranked = sorted(ai_data.platformAnalysis, key=lambda p: p.roi, reverse=True)
    daily = ai_data.dailyMetrics

    return AggregatedPerformance(
        aggregatedMetrics=enhanced.model_copy(update={
            'roiTrend': calculate_growth_trend([d.roi for d in daily]),
            'revenueTrend': calculate_growth_trend([d.totalCom for d in daily]),
            'ordersTrend': calculate_growth_trend([float(d.ordersSP + d.ordersLZD) for d in daily]),
        }),
        performanceInsights=PerformanceOverview(
            topPerformingPlatform=ranked[0].platform if ranked else None,
            mostConsistentPlatform=most_consistent_platform(daily),
            growthTrend=calculate_growth_trend([d.roi for d in daily]),
            seasonalPatterns=seasonal_windows(daily),
        ),
    )


def validate_dashboard_compatibility(
    ai_data: AIAnalysisData,
    calculated_metrics: CalculatedMetrics,
    daily_metrics: Sequence[DailyMetrics],
) -> CompatibilityReport:
    """Compare the pipeline's totals with a caller snapshot; mismatches are issues."""
    issues: List[str] = []
    recommendations: List[str] = []
    ours = ai_data.calculatedMetrics

    for label, mine, theirs in (
        ('Total commission', ours.totalCom, calculated_metrics.totalCom),
        ('Total ads spent', ours.totalAdsSpent, calculated_metrics.totalAdsSpent),
    ):
        if not math.isclose(mine, theirs, abs_tol=COMPATIBILITY_TOLERANCE):
            issues.append(f"{label} mismatch: AI={mine:.2f}, Original={theirs:.2f}")

    if ours.totalOrdersSP != calculated_metrics.totalOrdersSP:
        issues.append(
            f"Shopee orders count mismatch: AI={ours.totalOrdersSP}, Original={calculated_metrics.totalOrdersSP}"
        )
    if ours.totalOrdersLZD != calculated_metrics.totalOrdersLZD:
        issues.append(
            f"Lazada orders count mismatch: AI={ours.totalOrdersLZD}, Original={calculated_metrics.totalOrdersLZD}"
        )
    if len(ai_data.dailyMetrics) != len(daily_metrics):
        issues.append(
            f"Daily metrics count mismatch: AI={len(ai_data.dailyMetrics)}, Original={len(daily_metrics)}"
        )

    if not ai_data.subIds and total_records(ai_data) > 0:
        issues.append('No Sub IDs extracted despite having order/ad data')
        recommendations.append('Review Sub ID extraction logic and field mapping')

    expected = []
    if ai_data.shopeeOrders:
        expected.append(SourcePlatform.SHOPEE.value)
    if ai_data.lazadaOrders:
        expected.append(SourcePlatform.LAZADA.value)
    if ai_data.facebookAds:
        expected.append(SourcePlatform.FACEBOOK.value)
    missing = [p for p in expected if p not in ai_data.platforms]
    if missing:
        issues.append(f"Missing platforms: {', '.join(missing)}")
        recommendations.append('Verify platform identification logic')

    if ai_data.dateRange.start > ai_data.dateRange.end:
        issues.append('Invalid date range in AI data')
        recommendations.append('Ensure date parsing handles all data formats correctly')

    if not issues:
        recommendations.append('Data integration is compatible with existing Dashboard components')
    return CompatibilityReport(isCompatible=not issues, issues=issues, recommendations=recommendations)


def generate_integration_report(
    result: AggregationResult,
    calculated_metrics: CalculatedMetrics,
    daily_metrics: Sequence[DailyMetrics],
) -> IntegrationReport:
    """Summary, data flow, quality and throughput of one aggregation run."""
    compatibility = validate_dashboard_compatibility(result.aiData, calculated_metrics, daily_metrics)
    ai_data = result.aiData
    records = total_records(ai_data)
    elapsed = result.aggregationStats.processingTime

    if elapsed > 0:
        per_second = records / elapsed * 1000
    else:
        per_second = float(records * 1000)

    if compatibility.isCompatible:
        summary = f"Successfully integrated {records} records with {len(result.warnings)} warnings"
    else:
        summary = f"Integration completed with {len(compatibility.issues)} compatibility issues"

    return IntegrationReport(
        summary=summary,
        dataFlow=DataFlowSummary(
            inputRecords=records,
            processedRecords=result.aggregationStats.totalRecordsProcessed,
            outputMetrics=len(ai_data.dailyMetrics),
            subIds=len(ai_data.subIds),
            platforms=len(ai_data.platforms),
        ),
        qualityMetrics=QualityMetrics(
            completeness=assess_data_completeness(ai_data.calculatedMetrics),
            consistency=assess_data_consistency(ai_data.dailyMetrics),
            accuracy=100.0 if compatibility.isCompatible else max(0.0, 100.0 - len(compatibility.issues) * 10),
        ),
        performance=IntegrationThroughput(processingTime=elapsed, recordsPerSecond=round(per_second)),
        compatibility=compatibility,
    )
