"""
Test suite for the Affiliate Analytics package.

Test Modules:
- test_normalizer: Number/date parsing and per-source row mapping
- test_dedup: Same-source merging and cross-source conflict resolution
- test_metrics: Totals, daily series and rollups
- test_trend_detector / test_alerts: Trend classification and alert rules
- test_performance / test_budget_optimizer: Scoring and budget reallocation
- test_predictions / test_insights: Forecasting and insight generation
- test_data_processor / test_aggregator: Input assembly and aggregation
- test_analysis: End-to-end orchestration
- test_api: FastAPI endpoints

Run with:
    pytest affiliate_analytics/tests/
"""

__all__ = []
