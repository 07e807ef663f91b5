"""
Affiliate Analytics Services Module

Business logic of the reconciliation and analytics pipeline. Every service is
a set of stateless module-level functions taking an optional Settings.

Services:
- normalizer: raw Shopee / Lazada / Facebook rows to typed records
- dedup / conflicts: cross-source identity resolution and conflict reporting
- metrics: totals, daily series and sub-id / platform rollups
- data_processor: analysis input assembly, validation and enrichment
- aggregator: end-to-end aggregation entry point for the dashboard
- trend_detector / alerts: trend detection and anomaly alerts
- performance / recommendations / insights: scoring and advice
- budget_optimizer: constrained budget reallocation
- predictions: ROI and revenue forecasting
- analysis: orchestrates every stage into one AIAnalysisResult

All services are consumed by the API layer (affiliate_analytics/api/).
"""

# =============================================================================
# Ingestion
# Field normalization, deduplication and conflict detection
# =============================================================================

from affiliate_analytics.services.normalizer import (
    parse_number,
    parse_date,
    normalize_shopee_orders,
    normalize_lazada_orders,
    normalize_facebook_ads,
    is_countable,
)
from affiliate_analytics.services.dedup import (
    deduplicate_orders,
    deduplicate_ads,
    reconcile_sources,
)

# =============================================================================
# Metrics and Aggregation
# =============================================================================

from affiliate_analytics.services.metrics import (
    calculate_metrics,
    calculate_daily_metrics,
    sub_id_rollup,
    platform_rollup,
    derived_ratios,
)
from affiliate_analytics.services.data_processor import (
    process_raw_data,
    validate_data,
    enrich_data,
    calculate_enhanced_metrics,
)
from affiliate_analytics.services.aggregator import (
    aggregate_data_for_ai,
    aggregate_performance_metrics,
    validate_dashboard_compatibility,
    generate_integration_report,
)

# =============================================================================
# Trends and Alerts
# =============================================================================

from affiliate_analytics.services.trend_detector import analyze_trends
from affiliate_analytics.services.alerts import (
    generate_performance_alerts,
    categorize_alerts,
)

# =============================================================================
# Performance, Budget and Forecasting
# =============================================================================

from affiliate_analytics.services.performance import analyze_performance
from affiliate_analytics.services.recommendations import generate_recommendations
from affiliate_analytics.services.insights import generate_performance_insights
from affiliate_analytics.services.budget_optimizer import optimize_budget
from affiliate_analytics.services.predictions import predict_roi, predict_revenue

# =============================================================================
# Orchestration
# =============================================================================

from affiliate_analytics.services.analysis import run_analysis

__all__ = [
    # Ingestion
    "parse_number",
    "parse_date",
    "normalize_shopee_orders",
    "normalize_lazada_orders",
    "normalize_facebook_ads",
    "is_countable",
    "deduplicate_orders",
    "deduplicate_ads",
    "reconcile_sources",
    # Metrics and aggregation
    "calculate_metrics",
    "calculate_daily_metrics",
    "sub_id_rollup",
    "platform_rollup",
    "derived_ratios",
    "process_raw_data",
    "validate_data",
    "enrich_data",
    "calculate_enhanced_metrics",
    "aggregate_data_for_ai",
    "aggregate_performance_metrics",
    "validate_dashboard_compatibility",
    "generate_integration_report",
    # Trends and alerts
    "analyze_trends",
    "generate_performance_alerts",
    "categorize_alerts",
    # Performance, budget and forecasting
    "analyze_performance",
    "generate_recommendations",
    "generate_performance_insights",
    "optimize_budget",
    "predict_roi",
    "predict_revenue",
    # Orchestration
    "run_analysis",
]
