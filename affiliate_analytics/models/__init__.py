"""
Package initialization file for the pipeline's data models.

Re-exports every Pydantic schema and enumeration so other modules can import
from affiliate_analytics.models directly.

Usage:
    from affiliate_analytics.models import (
        OrderRecord,
        AdSpendRecord,
        DailyMetrics,
        TrendDirection,
        # ... etc
    )
"""

# =============================================================================
# Enums
# =============================================================================

from affiliate_analytics.models.enums import (
    SourcePlatform,
    DataSource,
    TrendDirection,
    Significance,
    RiskLevel,
    AlertType,
    Severity,
    Priority,
    RecommendationType,
    ActionItemType,
    ConflictType,
    PredictionType,
    InsightType,
    PatternType,
    PerformerType,
    AnalysisStatus,
)

# =============================================================================
# Schemas
# =============================================================================

from affiliate_analytics.models.schemas import (
    # Canonical records
    OrderRecord,
    AdSpendRecord,
    # Aggregated metrics
    CalculatedMetrics,
    DailyMetrics,
    SubIdMetrics,
    PlatformMetrics,
    DateRange,
    AIAnalysisData,
    DataValidationResult,
    # Enhanced metrics
    PlatformSnapshot,
    SubIdSnapshot,
    SeasonalWindow,
    DataQualityIndicators,
    DataStatistics,
    EnhancedMetrics,
    PerformanceOverview,
    AggregatedPerformance,
    # Reconciliation
    Conflict,
    ConflictReport,
    DedupStats,
    ReconciledData,
    # Trends and alerts
    TrendDetection,
    Alert,
    TrendAnalysis,
    CategorizedAlerts,
    # Performance and recommendations
    SubIdPerformance,
    PlatformPerformance,
    ActionItem,
    Recommendation,
    PerformanceAnalysisResult,
    # Budget optimization
    OptimizationConstraints,
    ConstraintOverrides,
    BudgetAllocation,
    BudgetConstraint,
    ExpectedImprovement,
    BudgetOptimization,
    ConstraintValidation,
    BudgetOptimizationResult,
    # Predictions
    ConfidenceInterval,
    PredictionFactor,
    Prediction,
    PredictionDataQuality,
    ROIPredictionResult,
    # Insights
    Insight,
    PerformanceBenchmark,
    PerformerSnapshot,
    TopPerformer,
    PatternPoint,
    PerformancePattern,
    InsightsSummary,
    PerformanceInsightsResult,
    # Analysis result
    AnalysisMetadata,
    AIAnalysisResult,
    # Aggregation report
    DataSourceBreakdown,
    AggregationStats,
    AggregationResult,
    CompatibilityReport,
    QualityMetrics,
    DataFlowSummary,
    IntegrationThroughput,
    IntegrationReport,
    # API requests
    AggregationRequest,
    BudgetOptimizationRequest,
    AlertRequest,
)

# =============================================================================
# Public API
# =============================================================================

__all__ = [
    # Enums
    'SourcePlatform',
    'DataSource',
    'TrendDirection',
    'Significance',
    'RiskLevel',
    'AlertType',
    'Severity',
    'Priority',
    'RecommendationType',
    'ActionItemType',
    'ConflictType',
    'PredictionType',
    'InsightType',
    'PatternType',
    'PerformerType',
    'AnalysisStatus',
    # Canonical records
    'OrderRecord',
    'AdSpendRecord',
    # Aggregated metrics
    'CalculatedMetrics',
    'DailyMetrics',
    'SubIdMetrics',
    'PlatformMetrics',
    'DateRange',
    'AIAnalysisData',
    'DataValidationResult',
    # Enhanced metrics
    'PlatformSnapshot',
    'SubIdSnapshot',
    'SeasonalWindow',
    'DataQualityIndicators',
    'DataStatistics',
    'EnhancedMetrics',
    'PerformanceOverview',
    'AggregatedPerformance',
    # Reconciliation
    'Conflict',
    'ConflictReport',
    'DedupStats',
    'ReconciledData',
    # Trends and alerts
    'TrendDetection',
    'Alert',
    'TrendAnalysis',
    'CategorizedAlerts',
    # Performance and recommendations
    'SubIdPerformance',
    'PlatformPerformance',
    'ActionItem',
    'Recommendation',
    'PerformanceAnalysisResult',
    # Budget optimization
    'OptimizationConstraints',
    'ConstraintOverrides',
    'BudgetAllocation',
    'BudgetConstraint',
    'ExpectedImprovement',
    'BudgetOptimization',
    'ConstraintValidation',
    'BudgetOptimizationResult',
    # Predictions
    'ConfidenceInterval',
    'PredictionFactor',
    'Prediction',
    'PredictionDataQuality',
    'ROIPredictionResult',
    # Insights
    'Insight',
    'PerformanceBenchmark',
    'PerformerSnapshot',
    'TopPerformer',
    'PatternPoint',
    'PerformancePattern',
    'InsightsSummary',
    'PerformanceInsightsResult',
    # Analysis result
    'AnalysisMetadata',
    'AIAnalysisResult',
    # Aggregation report
    'DataSourceBreakdown',
    'AggregationStats',
    'AggregationResult',
    'CompatibilityReport',
    'QualityMetrics',
    'DataFlowSummary',
    'IntegrationThroughput',
    'IntegrationReport',
    # API requests
    'AggregationRequest',
    'BudgetOptimizationRequest',
    'AlertRequest',
]
