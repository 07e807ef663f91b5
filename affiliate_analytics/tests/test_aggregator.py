"""
Test suite for the data aggregator.

The tests verify:
1. Raw rows of the three sources become enriched analysis input
2. Cross-source conflicts surface as warnings and API values win
3. Caller-supplied metrics are checked against recomputed totals
4. Failures never raise: they come back as errors with a fallback snapshot
5. Dashboard compatibility and integration reports compare totals correctly
"""

import pytest

from affiliate_analytics.models import CalculatedMetrics, TrendDirection
from affiliate_analytics.services.aggregator import (
    FALLBACK_QUALITY_SCORE,
    aggregate_data_for_ai,
    aggregate_performance_metrics,
    calculate_growth_trend,
    generate_integration_report,
    validate_dashboard_compatibility,
)


def api_duplicate(facebook_rows, spend):
    """API copy of the first sample ad row with a different spend."""
    row = dict(facebook_rows[0])
    row['Amount spent (THB)'] = spend
    row['_dataSource'] = 'facebook_api'
    row['_sourceTimestamp'] = '2024-06-02T08:00:00+07:00'
    return row


# =============================================================================
# AGGREGATE DATA FOR AI
# =============================================================================


class TestAggregateDataForAI:
    """Tests for aggregate_data_for_ai."""

    def test_sample_snapshot(self, shopee_rows, lazada_rows, facebook_rows, settings, as_of):
        result = aggregate_data_for_ai(shopee_rows, lazada_rows, facebook_rows, settings=settings, as_of=as_of)
        data = result.aiData

        assert result.errors == []
        assert result.conflicts == []
        assert data.subIds == ['fba', 'fbb', 'fbc']
        assert data.platforms == ['Shopee', 'Lazada', 'Facebook']
        assert len(data.dailyMetrics) == 14
        assert data.calculatedMetrics.totalCom == pytest.approx(1750.0)
        assert data.enhancedMetrics is not None, "Aggregated data is always enriched"

    def test_sample_statistics(self, shopee_rows, lazada_rows, facebook_rows, settings, as_of):
        stats = aggregate_data_for_ai(
            shopee_rows, lazada_rows, facebook_rows, settings=settings, as_of=as_of,
        ).aggregationStats

        assert stats.totalRecordsProcessed == 84
        assert stats.dataSourceBreakdown.fileImports == 84
        assert stats.dataSourceBreakdown.apiData == 0
        # 84 records (-10) spanning 13 days (-5)
        assert stats.dataQualityScore == pytest.approx(85.0)
        assert stats.processingTime >= 0

    def test_empty_input(self, settings, as_of):
        result = aggregate_data_for_ai([], [], [], settings=settings, as_of=as_of)

        assert result.errors == []
        assert result.aiData.subIds == []
        assert result.aiData.platforms == []
        assert result.aggregationStats.dataQualityScore == pytest.approx(65.0)
        assert any(w.startswith('Insufficient data') for w in result.warnings), (
            "Validation errors are reported as warnings"
        )

    def test_api_row_wins_conflict(self, shopee_rows, lazada_rows, facebook_rows, settings, as_of):
        ads = facebook_rows + [api_duplicate(facebook_rows, '60.00')]
        result = aggregate_data_for_ai(shopee_rows, lazada_rows, ads, settings=settings, as_of=as_of)

        assert len(result.conflicts) == 1
        assert result.warnings[0] == 'Found 1 data conflicts during merge'
        assert result.aiData.calculatedMetrics.totalAdsSpent == pytest.approx(1550.0)
        assert result.aggregationStats.totalRecordsProcessed == 84
        assert result.aggregationStats.dataSourceBreakdown.merged == 1

    def test_conflict_with_merged_row_is_a_warning(self, shopee_rows, lazada_rows, facebook_rows, settings, as_of):
        reingested = dict(facebook_rows[0], **{'Amount spent (THB)': '60.00', '_dataSource': 'merged'})
        result = aggregate_data_for_ai(
            shopee_rows, lazada_rows, facebook_rows + [reingested], settings=settings, as_of=as_of,
        )

        assert len(result.conflicts) == 1
        assert result.warnings[0] == 'Found 1 data conflicts during merge', (
            "Every conflict is surfaced, whichever sources disagree"
        )
        assert result.aiData.calculatedMetrics.totalAdsSpent == pytest.approx(1550.0)

    def test_wrong_caller_snapshot_is_flagged(self, shopee_rows, lazada_rows, facebook_rows, settings, as_of):
        theirs = CalculatedMetrics(totalCom=99999.0, totalAdsSpent=1540.0, totalOrdersSP=28, totalOrdersLZD=14)
        result = aggregate_data_for_ai(
            shopee_rows, lazada_rows, facebook_rows,
            calculated_metrics=theirs, settings=settings, as_of=as_of,
        )

        assert result.aiData.calculatedMetrics.totalCom == pytest.approx(1750.0), "Totals are always recomputed"
        assert 'Total commission mismatch: AI=1750.00, Original=99999.00' in result.warnings
        assert not any('spent mismatch' in w for w in result.warnings)

    def test_matching_caller_snapshot_adds_no_warnings(self, shopee_rows, lazada_rows, facebook_rows,
                                                       sample_ai_data, settings, as_of):
        result = aggregate_data_for_ai(
            shopee_rows, lazada_rows, facebook_rows,
            calculated_metrics=sample_ai_data.calculatedMetrics,
            daily_metrics=sample_ai_data.dailyMetrics,
            settings=settings, as_of=as_of,
        )
        assert not any('mismatch' in w for w in result.warnings)

    def test_failure_returns_fallback(self, settings, as_of):
        result = aggregate_data_for_ai([None], [], [], settings=settings, as_of=as_of)

        assert result.errors, "A malformed row must be reported, not raised"
        assert result.aiData.dailyMetrics == []
        assert result.aggregationStats.dataQualityScore == FALLBACK_QUALITY_SCORE
        assert result.aggregationStats.totalRecordsProcessed == 1


# =============================================================================
# DASHBOARD VIEWS
# =============================================================================


class TestAggregatePerformanceMetrics:

    @pytest.mark.parametrize("values,expected", [
        ([10.0, 10.0, 10.0, 12.0, 12.0, 12.0], TrendDirection.IMPROVING),
        ([12.0, 12.0, 12.0, 10.0, 10.0, 10.0], TrendDirection.DECLINING),
        ([10.0, 10.0, 10.0, 10.2, 10.2, 10.2], TrendDirection.STABLE),
        ([5.0], TrendDirection.STABLE),
    ])
    def test_growth_trend(self, values, expected):
        assert calculate_growth_trend(values) == expected

    def test_sample_overview(self, sample_ai_data, as_of):
        overview = aggregate_performance_metrics(sample_ai_data, as_of).performanceInsights

        assert overview.topPerformingPlatform == 'Lazada'
        assert overview.mostConsistentPlatform == 'Lazada', "Ties break alphabetically"
        assert overview.growthTrend == TrendDirection.STABLE
        assert len(overview.seasonalPatterns) == 2


class TestCompatibility:
    """Tests for validate_dashboard_compatibility and generate_integration_report."""

    def test_matching_snapshot_is_compatible(self, sample_ai_data):
        report = validate_dashboard_compatibility(
            sample_ai_data, sample_ai_data.calculatedMetrics, sample_ai_data.dailyMetrics,
        )
        assert report.isCompatible is True
        assert report.issues == []

    def test_mismatch_is_reported(self, sample_ai_data):
        theirs = sample_ai_data.calculatedMetrics.model_copy(update={'totalCom': 1000.0, 'totalOrdersSP': 27})
        report = validate_dashboard_compatibility(sample_ai_data, theirs, sample_ai_data.dailyMetrics[:10])

        assert report.isCompatible is False
        assert 'Total commission mismatch: AI=1750.00, Original=1000.00' in report.issues
        assert 'Shopee orders count mismatch: AI=28, Original=27' in report.issues
        assert 'Daily metrics count mismatch: AI=14, Original=10' in report.issues

    def test_integration_report(self, shopee_rows, lazada_rows, facebook_rows, settings, as_of):
        result = aggregate_data_for_ai(shopee_rows, lazada_rows, facebook_rows, settings=settings, as_of=as_of)
        data = result.aiData
        report = generate_integration_report(result, data.calculatedMetrics, data.dailyMetrics)

        assert report.summary == 'Successfully integrated 84 records with 0 warnings'
        assert report.dataFlow.inputRecords == 84
        assert report.dataFlow.outputMetrics == 14
        assert report.dataFlow.subIds == 3
        assert report.qualityMetrics.accuracy == 100.0
        assert report.compatibility.isCompatible is True
