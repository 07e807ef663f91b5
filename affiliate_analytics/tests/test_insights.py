"""
Test suite for performance insights and benchmarking.

The tests verify:
1. Benchmarks rank the latest day against the whole history
2. Weekly, trend, volatility and week-of-month patterns fire on shaped series
3. Top performers cover sub-ids, platforms and days, best first
4. Too little history gives an explicit insufficient-data result
"""

from datetime import date

import pytest

from affiliate_analytics.models import (
    AIAnalysisData,
    DateRange,
    InsightType,
    PatternType,
    PerformerType,
    TrendDirection,
)
from affiliate_analytics.services.insights import (
    assess_insight_data_quality,
    create_benchmark,
    detect_patterns,
    detect_weekly_pattern,
    generate_performance_insights,
)

PERIOD = DateRange(start=date(2024, 6, 1), end=date(2024, 6, 14))


def snapshot(daily, sub_ids=None):
    """AIAnalysisData wrapping a daily series and nothing else."""
    return AIAnalysisData(
        dailyMetrics=daily,
        dateRange=DateRange(
            start=date.fromisoformat(daily[0].date),
            end=date.fromisoformat(daily[-1].date),
        ),
        subIds=sub_ids or [],
    )


# =============================================================================
# BENCHMARKS
# =============================================================================


class TestCreateBenchmark:
    """Tests for create_benchmark."""

    def test_latest_value_against_history(self):
        benchmark = create_benchmark('ROI', [10.0, 20.0, 30.0], PERIOD)

        assert benchmark.currentValue == 30.0
        assert benchmark.bestValue == 30.0
        assert benchmark.worstValue == 10.0
        assert benchmark.averageValue == pytest.approx(20.0)
        assert benchmark.percentileRank == pytest.approx(83.3)
        assert benchmark.trend == TrendDirection.IMPROVING

    def test_no_finite_values(self):
        benchmark = create_benchmark('ROI', [float('nan')], PERIOD)

        assert benchmark.currentValue == 0.0
        assert benchmark.percentileRank == 50.0
        assert benchmark.trend == TrendDirection.STABLE


# =============================================================================
# PATTERNS
# =============================================================================


class TestPatterns:
    """Tests for the pattern detectors."""

    def test_weekly_pattern_names_best_weekday(self, daily_series):
        # 2024-06-01 is a Saturday, so indices 6 and 13 are Fridays
        daily = daily_series(roi=[30.0 if i % 7 == 6 else 20.0 for i in range(14)])
        pattern = detect_weekly_pattern(daily)

        assert pattern is not None
        assert pattern.type == PatternType.WEEKLY
        assert pattern.description.startswith('Fridays perform 50.0% better')
        assert pattern.impact == pytest.approx(50.0)
        assert [p.id for p in detect_patterns(daily)] == ['weekly_pattern']

    def test_rising_series_patterns(self, daily_series):
        daily = daily_series(roi=[10 + 2 * i for i in range(14)])
        patterns = {p.id: p for p in detect_patterns(daily)}

        assert set(patterns) == {'weekly_pattern', 'trend_pattern', 'volatility_pattern'}
        trend = patterns['trend_pattern']
        assert trend.name == 'Improving ROI Trend'
        assert trend.confidence == pytest.approx(95.0), "A perfect fit is capped at 95"
        assert trend.impact == pytest.approx(28.0)
        assert patterns['volatility_pattern'].name == 'Moderate Performance Volatility'

    def test_seasonal_pattern_needs_a_month(self, daily_series):
        month = daily_series(roi=[40.0 if i < 7 else 20.0 for i in range(30)])
        assert 'seasonal_pattern' in [p.id for p in detect_patterns(month)]

        two_weeks = daily_series(roi=[40.0 if i < 7 else 20.0 for i in range(14)])
        assert 'seasonal_pattern' not in [p.id for p in detect_patterns(two_weeks)]

    def test_constant_series_has_no_patterns(self, daily_series):
        assert detect_patterns(daily_series(roi=[25.0] * 14)) == []


# =============================================================================
# END TO END
# =============================================================================


class TestGeneratePerformanceInsights:
    """Tests for generate_performance_insights."""

    def test_sample_snapshot(self, sample_ai_data, settings, as_of):
        result = generate_performance_insights(sample_ai_data, settings, as_of)

        assert result.hasSufficientData is True
        assert [b.metric for b in result.benchmarks] == [
            'ROI', 'Revenue', 'Orders', 'Ad Spend', 'Cost Per Order',
        ]
        assert result.patterns == [], "Every sample day performs the same"
        assert [i.id for i in result.insights] == ['roi_benchmark_insight', 'data_quality_insight']
        assert all(i.type == InsightType.BENCHMARK for i in result.insights)

    def test_sample_top_performers(self, sample_ai_data, settings, as_of):
        performers = generate_performance_insights(sample_ai_data, settings, as_of).topPerformers
        ids = [p.id for p in performers]
        values = [p.value for p in performers]

        assert ids[0] == 'subid_fba'
        assert 'subid_fbb' not in ids, "Unprofitable sub-ids are not top performers"
        assert 'platform_lazada' in ids
        assert 'timeperiod_weekly_best' in ids
        assert values == sorted(values, reverse=True)
        assert sum(1 for p in performers if p.type == PerformerType.TIMEPERIOD) == 4

    def test_sample_summary(self, sample_ai_data, settings, as_of):
        summary = generate_performance_insights(sample_ai_data, settings, as_of).summary

        assert summary.overallScore == pytest.approx(50.0)
        assert summary.strengths == ['Consistent performance across metrics']
        assert summary.opportunities[0] == 'Scale top-performing Sub IDs: fba, fbc'
        assert summary.opportunities[1] == 'Focus budget on Lazada (50.0% ROI)'

    def test_data_quality_score(self, sample_ai_data, as_of):
        assert assess_insight_data_quality(sample_ai_data, as_of) == pytest.approx(73.0)

    def test_insufficient_history(self, daily_series, settings):
        result = generate_performance_insights(snapshot(daily_series(roi=[10.0] * 5)), settings)

        assert result.hasSufficientData is False
        assert result.benchmarks == []
        assert result.patterns == []
        assert result.summary.weaknesses[0].startswith('Insufficient data')
