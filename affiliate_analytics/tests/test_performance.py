"""
Test suite for performance scoring and recommendations.

The tests verify:
1. The composite score blends ROI band, volume and revenue into 0-100
2. Risk levels follow the ROI / volume / spend rules
3. Sub-ids and platforms are ranked best first
4. Each recommendation family fires on its own trigger
"""

import pytest

from affiliate_analytics.models import (
    CalculatedMetrics,
    PatternPoint,
    PatternType,
    PerformancePattern,
    Priority,
    RiskLevel,
    SubIdPerformance,
    TrendDirection,
)
from affiliate_analytics.services.performance import (
    analyze_performance,
    assess_risk_level,
    calculate_entity_confidence,
    calculate_percentile_rank,
    calculate_performance_score,
    roi_band_score,
)
from affiliate_analytics.services.recommendations import (
    generate_recommendations,
    optimize_timing,
    scale_high_performers,
)


def sub_id(id_, roi, orders=20, spend=100.0, trend=TrendDirection.STABLE):
    return SubIdPerformance(
        id=id_,
        platform='Shopee',
        orders=orders,
        revenue=spend * (1 + roi / 100),
        adSpend=spend,
        roi=roi,
        performanceScore=50.0,
        riskLevel=RiskLevel.LOW,
        trend=trend,
        confidenceScore=70.0,
    )


# =============================================================================
# SCORING
# =============================================================================


class TestPerformanceScore:
    """Tests for calculate_performance_score and its ROI band."""

    def test_full_marks(self, settings):
        assert calculate_performance_score(50, 50, 10000, settings) == pytest.approx(100.0)

    def test_nothing_scores_zero(self, settings):
        assert calculate_performance_score(0, 0, 0, settings) == pytest.approx(0.0)

    @pytest.mark.parametrize("roi,expected", [
        (-30.0, 0.0),
        (10.0, 10.0),
        (20.0, 20.0),
        (35.0, 30.0),
        (80.0, 40.0),
    ])
    def test_roi_band(self, roi, expected, settings):
        assert roi_band_score(roi, settings) == pytest.approx(expected)

    def test_components_are_capped(self, settings):
        score = calculate_performance_score(500, 5000, 1_000_000, settings)
        assert score == pytest.approx(100.0), "Score must never exceed 100"


class TestRiskLevel:

    @pytest.mark.parametrize("roi,orders,spend,expected", [
        (-5.0, 100, 500.0, RiskLevel.HIGH),
        (60.0, 5, 2000.0, RiskLevel.HIGH),
        (15.0, 50, 500.0, RiskLevel.MEDIUM),
        (30.0, 15, 500.0, RiskLevel.MEDIUM),
        (60.0, 30, 500.0, RiskLevel.LOW),
    ])
    def test_rules(self, roi, orders, spend, expected, settings):
        assert assess_risk_level(roi, orders, spend, settings) == expected


class TestConfidenceAndRank:

    def test_percentile_rank(self):
        history = [float(v) for v in range(1, 11)]
        assert calculate_percentile_rank(5.0, history) == pytest.approx(45.0)
        assert calculate_percentile_rank(5.0, []) == pytest.approx(50.0)

    @pytest.mark.parametrize("orders,points,expected", [
        (120, 40, 90.0),
        (2, 1, 30.0),
        (25, 10, 65.0),
    ])
    def test_entity_confidence(self, orders, points, expected):
        assert calculate_entity_confidence(orders, points) == pytest.approx(expected)


# =============================================================================
# ANALYZE PERFORMANCE
# =============================================================================


class TestAnalyzePerformance:
    """Tests for analyze_performance on the sample snapshot."""

    def test_sub_ids_ranked_by_score(self, sample_ai_data, settings):
        result = analyze_performance(sample_ai_data, settings)
        ids = [s.id for s in result.subIdAnalysis]

        assert ids == ['fba', 'fbc', 'fbb']
        scores = [s.performanceScore for s in result.subIdAnalysis]
        assert scores == sorted(scores, reverse=True)

        by_id = {s.id: s for s in result.subIdAnalysis}
        assert by_id['fba'].roi == pytest.approx(60.0)
        assert by_id['fbb'].riskLevel == RiskLevel.HIGH
        assert by_id['fba'].trend == TrendDirection.STABLE

    def test_platforms_ranked_and_shares_sum(self, sample_ai_data, settings):
        result = analyze_performance(sample_ai_data, settings)

        assert [p.platform for p in result.platformAnalysis] == ['Lazada', 'Shopee']
        assert sum(p.marketShare for p in result.platformAnalysis) == pytest.approx(100.0)
        assert sum(p.adSpend for p in result.platformAnalysis) == pytest.approx(1540.0)

    def test_recommendations(self, sample_ai_data, settings):
        result = analyze_performance(sample_ai_data, settings)
        ids = [r.id for r in result.recommendations]

        assert 'rec-pause-underperformers' in ids
        assert 'rec-focus-lazada' in ids
        assert 'rec-overall-optimization' in ids
        assert 'rec-scale-high-performers' not in ids, "No sub-id has an improving trend"

        pause = next(r for r in result.recommendations if r.id == 'rec-pause-underperformers')
        assert pause.affectedSubIds == ['fbb']
        assert pause.priority == Priority.HIGH
        assert [a.id for a in pause.actionItems] == [
            'rec-pause-underperformers-action-1',
            'rec-pause-underperformers-action-2',
        ]

    def test_overall_score_and_confidence_bounds(self, sample_ai_data, settings):
        result = analyze_performance(sample_ai_data, settings)
        assert 0 <= result.overallScore <= 100
        assert 40 <= result.confidence <= 95


# =============================================================================
# RECOMMENDATION FAMILIES
# =============================================================================


class TestRecommendations:

    def test_scale_needs_high_roi_and_improving_trend(self, settings):
        winners = [
            sub_id('up', 80.0, trend=TrendDirection.IMPROVING),
            sub_id('flat', 80.0),
            sub_id('weak', 30.0, trend=TrendDirection.IMPROVING),
        ]
        rec = scale_high_performers(winners, 14, settings)

        assert rec is not None
        assert rec.affectedSubIds == ['up']

    def test_timing_from_weekly_pattern(self):
        pattern = PerformancePattern(
            id='weekly_pattern',
            type=PatternType.WEEKLY,
            name='Weekly Performance Pattern',
            description='Fridays perform 50.0% better than Mondays',
            confidence=75.0,
            impact=50.0,
            data=[
                PatternPoint(period='Monday', value=20.0, metric='Average ROI'),
                PatternPoint(period='Friday', value=30.0, metric='Average ROI'),
            ],
        )
        rec = optimize_timing(pattern, 14)

        assert rec is not None
        assert rec.id == 'rec-timing-friday'
        assert rec.expectedImpact == pytest.approx(12.5)

    def test_healthy_snapshot_has_no_overall_rec(self, settings):
        recs = generate_recommendations(
            [sub_id('a', 60.0)],
            [],
            CalculatedMetrics(roi=45.0),
            days=14,
            settings=settings,
        )
        assert recs == []
