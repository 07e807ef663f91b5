"""
Test suite for the trend detector.

The tests verify:
1. Strictly monotonic series follow their direction once enough days exist
2. Slopes beyond the per-metric threshold classify regardless of monotonicity
3. Constant series are stable with low significance
4. Ad Spend is inverted: rising spend is a declining trend
5. Short series return the documented empty result
"""

import pytest

from affiliate_analytics.models import Significance, TrendDirection
from affiliate_analytics.services.trend_detector import (
    analyze_trends,
    calculate_percentage_change,
    calculate_trend_significance,
)


def trend_for(result, metric):
    matches = [t for t in result.trends if t.metric == metric]
    assert matches, f"No trend reported for {metric}"
    return matches[0]


# =============================================================================
# HELPERS
# =============================================================================


class TestPercentageChange:

    @pytest.mark.parametrize("values,expected", [
        ([10.0, 15.0], 50.0),
        ([10.0, 12.0, 5.0], -50.0),
        ([0.0, 10.0], 0.0),
        ([5.0], 0.0),
    ])
    def test_first_to_last(self, values, expected):
        assert calculate_percentage_change(values) == pytest.approx(expected)


class TestTrendSignificance:

    def test_constant_series_is_low(self):
        assert calculate_trend_significance([5.0] * 10, 10) == Significance.LOW

    def test_short_series_is_low(self):
        assert calculate_trend_significance([1.0, 5.0, 9.0, 13.0], 4) == Significance.LOW

    def test_steep_consistent_series_is_high(self):
        values = [100.0 + 3 * i for i in range(10)]
        assert calculate_trend_significance(values, 10) == Significance.HIGH


# =============================================================================
# ANALYZE TRENDS
# =============================================================================


class TestAnalyzeTrends:
    """Tests for analyze_trends over synthetic daily series."""

    def test_steep_increase_is_improving(self, daily_series, settings):
        daily = daily_series(roi=[10 + 2 * i for i in range(10)])
        roi = trend_for(analyze_trends(daily, settings), 'ROI')

        assert roi.trend == TrendDirection.IMPROVING
        assert roi.timeframe == 10
        assert roi.strength == pytest.approx(20.0)

    def test_gentle_monotonic_increase_is_improving(self, daily_series, settings):
        """Slope 0.1 is under the ROI threshold but the series never falls."""
        daily = daily_series(roi=[10 + 0.1 * i for i in range(10)])
        roi = trend_for(analyze_trends(daily, settings), 'ROI')

        assert roi.trend == TrendDirection.IMPROVING, (
            "A strictly increasing series should not be reported as stable"
        )

    def test_gentle_monotonic_decrease_is_declining(self, daily_series, settings):
        daily = daily_series(roi=[10 - 0.1 * i for i in range(10)])
        roi = trend_for(analyze_trends(daily, settings), 'ROI')
        assert roi.trend == TrendDirection.DECLINING

    def test_constant_series_is_stable_and_low(self, daily_series, settings):
        daily = daily_series(roi=[25.0] * 10, revenue=[500.0] * 10)
        result = analyze_trends(daily, settings)

        for metric in ('ROI', 'Revenue'):
            trend = trend_for(result, metric)
            assert trend.trend == TrendDirection.STABLE, f"{metric} should be stable"
            assert trend.significance == Significance.LOW, f"{metric} should have low significance"
        assert result.overallTrend == TrendDirection.STABLE

    def test_noisy_flat_series_is_stable(self, daily_series, settings):
        daily = daily_series(roi=[20, 21, 19, 20, 21, 19, 20, 21, 19, 20])
        assert trend_for(analyze_trends(daily, settings), 'ROI').trend == TrendDirection.STABLE

    def test_rising_spend_is_declining(self, daily_series, settings):
        daily = daily_series(ad_spend=[100 + 20 * i for i in range(10)])
        spend = trend_for(analyze_trends(daily, settings), 'Ad Spend')
        assert spend.trend == TrendDirection.DECLINING

    def test_every_metric_reported(self, daily_series, settings):
        result = analyze_trends(daily_series(roi=[1.0] * 7), settings)
        assert [t.metric for t in result.trends] == ['ROI', 'Revenue', 'Orders', 'Profit', 'Ad Spend']

    def test_short_series_returns_empty_result(self, daily_series, settings):
        result = analyze_trends(daily_series(roi=[1, 2, 3, 4, 5, 6]), settings)

        assert result.trends == []
        assert result.alerts == []
        assert result.overallTrend == TrendDirection.STABLE
        assert result.trendStrength == 0.0
        assert result.confidence == 20.0

    def test_high_significance_trend_raises_alert(self, daily_series, settings):
        """ROI rising from 100 to 127 is a steady 27% climb."""
        daily = daily_series(roi=[100 + 3 * i for i in range(10)])
        result = analyze_trends(daily, settings)

        roi_alerts = [a for a in result.alerts if a.affectedMetric == 'ROI']
        assert len(roi_alerts) == 1
        assert roi_alerts[0].id == 'alert-roi-trend-2024-06-10'
        assert roi_alerts[0].type.value == 'opportunity'
        assert roi_alerts[0].currentValue == pytest.approx(127.0)

    def test_confidence_within_bounds(self, daily_series, settings):
        result = analyze_trends(daily_series(roi=[10 + 2 * i for i in range(30)]), settings)
        assert 0 <= result.confidence <= 100
        assert 0 <= result.trendStrength <= 100
