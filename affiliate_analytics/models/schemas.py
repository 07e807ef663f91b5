"""
Pydantic models for the Affiliate Analytics pipeline and API.

The models fall into four groups:

- Canonical records produced by the normalizer (OrderRecord, AdSpendRecord)
- Aggregates produced by the metrics stage (CalculatedMetrics, DailyMetrics,
  SubIdMetrics, PlatformMetrics)
- Analysis outputs (trends, alerts, recommendations, predictions, insights,
  budget optimization, the full AIAnalysisResult)
- API request wrappers

Field names are camelCase so JSON payloads match what the dashboard consumes.
All models use Pydantic v2 syntax.
"""

from datetime import datetime, date as DateType
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from affiliate_analytics.models.enums import (
    ActionItemType,
    AlertType,
    AnalysisStatus,
    ConflictType,
    DataSource,
    InsightType,
    PatternType,
    PerformerType,
    PredictionType,
    Priority,
    RecommendationType,
    RiskLevel,
    Severity,
    Significance,
    SourcePlatform,
    TrendDirection,
)


# =============================================================================
# Canonical Records
# =============================================================================


class OrderRecord(BaseModel):
    """
    One affiliate order (or order line) in canonical form.

    Identity is (sourcePlatform, orderId) for Shopee and
    (sourcePlatform, skuOrderId or orderId) for Lazada, where one checkout can
    hold several SKU lines. Rows sharing an identity within a source are summed
    by the deduplicator; lineCount records how many raw rows were merged.
    """
    model_config = ConfigDict(frozen=True)

    sourcePlatform: SourcePlatform = Field(..., description="Shopee or Lazada")
    orderId: str = Field(..., description="Platform order / checkout id")
    skuOrderId: Optional[str] = Field(
        default=None,
        description="Per-line order id (Lazada)"
    )
    commission: float = Field(default=0.0, description="Commission earned (THB)")
    orderValue: float = Field(default=0.0, description="Purchase value (THB)")
    productPrice: float = Field(default=0.0, description="Unit product price (THB)")
    orderDate: Optional[DateType] = Field(
        default=None,
        description="Calendar date of the order; None when unparseable"
    )
    status: Optional[str] = Field(default=None, description="Raw order status")
    validity: Optional[str] = Field(default=None, description="Raw validity flag (Lazada)")
    subIds: List[str] = Field(
        default_factory=list,
        description="Ordered, de-duplicated sub-ids attached to the order"
    )
    productName: Optional[str] = Field(default=None)
    dataSource: DataSource = Field(default=DataSource.FILE_IMPORT)
    sourceTimestamp: Optional[datetime] = Field(
        default=None,
        description="When the source produced this observation"
    )
    lineCount: int = Field(default=1, ge=1, description="Raw rows merged into this record")


class AdSpendRecord(BaseModel):
    """
    One ad-spend row in canonical form.

    subId is taken from an explicit column or inferred from campaign naming;
    inference is best effort and may leave it as None.
    """
    model_config = ConfigDict(frozen=True)

    campaignName: str = Field(default="", description="Campaign name")
    adSetName: Optional[str] = Field(default=None)
    adName: Optional[str] = Field(default=None)
    adId: Optional[str] = Field(default=None)
    spend: float = Field(default=0.0, description="Amount spent (THB)")
    impressions: float = Field(default=0.0)
    clicks: float = Field(default=0.0, description="Link clicks")
    reach: float = Field(default=0.0)
    cpc: float = Field(default=0.0, description="Cost per link click")
    date: Optional[DateType] = Field(default=None)
    subId: Optional[str] = Field(default=None)
    dataSource: DataSource = Field(default=DataSource.FILE_IMPORT)
    sourceTimestamp: Optional[datetime] = Field(default=None)
    lineCount: int = Field(default=1, ge=1)


# =============================================================================
# Aggregated Metrics
# =============================================================================


class CalculatedMetrics(BaseModel):
    """
    Cross-sectional totals over the whole snapshot.

    Includes records without a parseable date. ROI and every ratio are zero
    when their denominator is zero.
    """
    totalAdsSpent: float = 0.0
    totalComSP: float = 0.0
    totalComLZD: float = 0.0
    totalCom: float = 0.0
    totalOrdersSP: int = 0
    totalOrdersLZD: int = 0
    totalAmountSP: float = 0.0
    totalAmountLZD: float = 0.0
    profit: float = 0.0
    roi: float = 0.0
    cpoSP: float = 0.0
    cpoLZD: float = 0.0
    cpcLink: float = 0.0
    apcLZD: float = 0.0
    validOrdersLZD: int = 0
    invalidOrdersLZD: int = 0
    unitsLZD: int = 0
    totalLinkClicks: float = 0.0
    totalReach: float = 0.0


class DailyMetrics(BaseModel):
    """One calendar day of the aggregated series."""
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "date": "2024-06-01",
                "totalComSP": 820.5,
                "totalComLZD": 310.0,
                "totalCom": 1130.5,
                "adSpend": 700.0,
                "profit": 430.5,
                "roi": 61.5,
                "ordersSP": 14,
                "ordersLZD": 6
            }
        }
    )

    date: str = Field(..., description="ISO calendar date (YYYY-MM-DD)")
    totalComSP: float = 0.0
    totalComLZD: float = 0.0
    totalCom: float = Field(default=0.0, description="Total commission revenue")
    adSpend: float = 0.0
    profit: float = 0.0
    roi: float = 0.0
    ordersSP: int = 0
    ordersLZD: int = 0

    @field_validator('date')
    @classmethod
    def _iso_date(cls, value: str) -> str:
        DateType.fromisoformat(value)
        return value

    @computed_field
    @property
    def totalRevenue(self) -> float:
        return self.totalCom

    @computed_field
    @property
    def ordersByPlatform(self) -> Dict[str, int]:
        return {SourcePlatform.SHOPEE.value: self.ordersSP, SourcePlatform.LAZADA.value: self.ordersLZD}


class SubIdMetrics(BaseModel):
    """Orders, revenue and attributed spend for one sub-id."""
    subId: str
    platform: str = Field(..., description="Shopee, Lazada or Mixed")
    orders: int = 0
    revenue: float = 0.0
    adSpend: float = Field(default=0.0, description="Spend attributed by name matching")
    roi: float = 0.0
    dailyRoi: List[float] = Field(
        default_factory=list,
        description="Per-day ROI on days with attributed spend, oldest first"
    )


class PlatformMetrics(BaseModel):
    """Orders, revenue and attributed spend for one marketplace."""
    platform: str
    orders: int = 0
    revenue: float = 0.0
    adSpend: float = 0.0
    roi: float = 0.0


class DateRange(BaseModel):
    start: DateType
    end: DateType


class AIAnalysisData(BaseModel):
    """Normalized snapshot handed to every analysis stage."""
    shopeeOrders: List[OrderRecord] = Field(default_factory=list)
    lazadaOrders: List[OrderRecord] = Field(default_factory=list)
    facebookAds: List[AdSpendRecord] = Field(default_factory=list)
    calculatedMetrics: CalculatedMetrics = Field(default_factory=CalculatedMetrics)
    dailyMetrics: List[DailyMetrics] = Field(default_factory=list)
    dateRange: DateRange
    subIds: List[str] = Field(default_factory=list)
    platforms: List[str] = Field(default_factory=list)
    subIdAnalysis: List[SubIdMetrics] = Field(default_factory=list)
    platformAnalysis: List[PlatformMetrics] = Field(default_factory=list)
    enhancedMetrics: Optional["EnhancedMetrics"] = None


class DataValidationResult(BaseModel):
    isValid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


# =============================================================================
# Enhanced Metrics
# =============================================================================


class PlatformSnapshot(BaseModel):
    roi: float = 0.0
    orders: int = 0
    revenue: float = 0.0


class SubIdSnapshot(BaseModel):
    subId: str
    roi: float
    orders: int
    revenue: float
    platform: str


class SeasonalWindow(BaseModel):
    period: str
    avgROI: float
    avgOrders: float
    trend: TrendDirection = TrendDirection.STABLE


class DataQualityIndicators(BaseModel):
    """All four indicators are 0-100 scores."""
    completeness: float = 0.0
    consistency: float = 0.0
    freshness: float = 0.0
    reliability: float = 0.0


class DataStatistics(BaseModel):
    """Record and coverage counts for one snapshot."""
    totalRecords: int = 0
    shopeeOrders: int = 0
    lazadaOrders: int = 0
    facebookAds: int = 0
    days: int = 0
    subIds: int = 0
    platforms: int = 0


class EnhancedMetrics(CalculatedMetrics):
    """CalculatedMetrics plus trends, efficiency ratios and rankings."""
    roiTrend: TrendDirection = TrendDirection.STABLE
    revenueTrend: TrendDirection = TrendDirection.STABLE
    ordersTrend: TrendDirection = TrendDirection.STABLE
    costPerOrder: float = 0.0
    revenuePerOrder: float = 0.0
    conversionRate: float = 0.0
    averageDailyRevenue: float = 0.0
    averageDailySpend: float = 0.0
    averageDailyOrders: float = 0.0
    platformPerformance: Dict[str, PlatformSnapshot] = Field(default_factory=dict)
    topPerformingSubIds: List[SubIdSnapshot] = Field(default_factory=list)
    underPerformingSubIds: List[SubIdSnapshot] = Field(default_factory=list)
    bestPerformingDays: List[str] = Field(default_factory=list)
    worstPerformingDays: List[str] = Field(default_factory=list)
    seasonalPatterns: List[SeasonalWindow] = Field(default_factory=list)
    dataQuality: DataQualityIndicators = Field(default_factory=DataQualityIndicators)
    dataStatistics: DataStatistics = Field(default_factory=DataStatistics)


class PerformanceOverview(BaseModel):
    topPerformingPlatform: Optional[str] = None
    mostConsistentPlatform: Optional[str] = None
    growthTrend: TrendDirection = TrendDirection.STABLE
    seasonalPatterns: List[SeasonalWindow] = Field(default_factory=list)


class AggregatedPerformance(BaseModel):
    aggregatedMetrics: EnhancedMetrics
    performanceInsights: PerformanceOverview


# =============================================================================
# Reconciliation
# =============================================================================


class Conflict(BaseModel):
    """
    A contradiction between two sources for the same entity.

    The pipeline proceeds with resolvedValue (most recent source wins) and
    always surfaces the conflict as a warning.
    """
    type: ConflictType
    description: str
    affectedEntities: List[str] = Field(default_factory=list)
    severity: Severity
    resolvedValue: float = Field(..., description="Value carried downstream")
    winningSource: DataSource


class ConflictReport(BaseModel):
    conflicts: List[Conflict] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class DedupStats(BaseModel):
    totalInput: int = 0
    totalOutput: int = 0
    duplicatesFound: int = 0
    crossSourceGroups: int = 0


class ReconciledData(BaseModel):
    shopeeOrders: List[OrderRecord] = Field(default_factory=list)
    lazadaOrders: List[OrderRecord] = Field(default_factory=list)
    facebookAds: List[AdSpendRecord] = Field(default_factory=list)
    conflictReport: ConflictReport = Field(default_factory=ConflictReport)
    statistics: Dict[str, DedupStats] = Field(default_factory=dict)


# =============================================================================
# Trends and Alerts
# =============================================================================


class TrendDetection(BaseModel):
    """Classification of one metric's direction over the analysed window."""
    metric: str
    trend: TrendDirection
    strength: float = Field(..., ge=0, le=100)
    changePercentage: float
    significance: Significance
    timeframe: int = Field(..., description="Number of days analysed")
    description: str


class Alert(BaseModel):
    """
    Alert produced by one analysis run.

    isRead and isDismissed belong to the consuming UI; the pipeline only
    creates alerts with both flags False.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "alert-roi-window-2024-06-14",
                "type": "opportunity",
                "title": "ROI Performance Improvement Detected",
                "description": "ROI has improved by 32.4% in recent days",
                "severity": "medium",
                "affectedMetric": "ROI",
                "currentValue": 58.1,
                "expectedValue": 43.9,
                "threshold": 20,
                "recommendations": ["Scale successful campaigns"],
                "isRead": False,
                "isDismissed": False
            }
        }
    )

    id: str
    type: AlertType
    title: str
    description: str
    severity: Severity
    affectedMetric: str
    currentValue: float
    expectedValue: Optional[float] = None
    threshold: float
    recommendations: List[str] = Field(default_factory=list)
    subIds: List[str] = Field(default_factory=list)
    platforms: List[str] = Field(default_factory=list)
    createdAt: datetime = Field(default_factory=datetime.now)
    isRead: bool = False
    isDismissed: bool = False


class TrendAnalysis(BaseModel):
    trends: List[TrendDetection] = Field(default_factory=list)
    alerts: List[Alert] = Field(default_factory=list)
    overallTrend: TrendDirection = TrendDirection.STABLE
    trendStrength: float = 0.0
    confidence: float = 0.0


class CategorizedAlerts(BaseModel):
    opportunities: List[Alert] = Field(default_factory=list)
    warnings: List[Alert] = Field(default_factory=list)
    critical: List[Alert] = Field(default_factory=list)


# =============================================================================
# Performance Analysis and Recommendations
# =============================================================================


class SubIdPerformance(BaseModel):
    id: str
    platform: str
    orders: int
    revenue: float
    adSpend: float
    roi: float
    performanceScore: float = Field(..., ge=0, le=100)
    riskLevel: RiskLevel
    trend: TrendDirection
    confidenceScore: float


class PlatformPerformance(BaseModel):
    platform: str
    orders: int
    revenue: float
    adSpend: float
    roi: float
    performanceScore: float = Field(..., ge=0, le=100)
    marketShare: float
    efficiency: float = Field(..., description="Revenue per unit of spend")
    riskLevel: RiskLevel
    trend: TrendDirection
    confidenceScore: float


class ActionItem(BaseModel):
    id: str
    type: ActionItemType
    description: str
    currentValue: Optional[float] = None
    recommendedValue: Optional[float] = None
    expectedImpact: str


class Recommendation(BaseModel):
    """Actionable suggestion with its estimated impact and confidence."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "rec-pause-underperformers",
                "type": "subid",
                "title": "Pause Underperforming Sub IDs",
                "description": "2 Sub IDs have ROI below 20% and are consuming budget",
                "priority": "high",
                "expectedImpact": 25,
                "confidenceScore": 80,
                "estimatedROIImprovement": 25,
                "affectedSubIds": ["tiktok01", "promo7"],
                "timeframe": "Immediate",
                "dataPoints": 14
            }
        }
    )

    id: str
    type: RecommendationType
    title: str
    description: str
    priority: Priority
    expectedImpact: float = Field(..., description="Expected improvement in percent")
    confidenceScore: float = Field(..., ge=0, le=100)
    actionItems: List[ActionItem] = Field(default_factory=list)
    estimatedROIImprovement: float
    affectedSubIds: List[str] = Field(default_factory=list)
    affectedPlatforms: List[str] = Field(default_factory=list)
    reasoning: str = ""
    timeframe: str = ""
    dataPoints: int = 0
    createdAt: datetime = Field(default_factory=datetime.now)


class PerformanceAnalysisResult(BaseModel):
    recommendations: List[Recommendation] = Field(default_factory=list)
    subIdAnalysis: List[SubIdPerformance] = Field(default_factory=list)
    platformAnalysis: List[PlatformPerformance] = Field(default_factory=list)
    overallScore: float = 0.0
    confidence: float = 0.0


# =============================================================================
# Budget Optimization
# =============================================================================


class OptimizationConstraints(BaseModel):
    """Per-entity bounds and reallocation guard for one optimization."""
    totalBudget: float = Field(..., ge=0)
    minBudgetPerSubId: float = Field(..., ge=0)
    maxBudgetPerSubId: float = Field(..., ge=0)
    maxReallocationPercentage: float = Field(..., ge=0, le=1)
    preserveTopPerformers: bool = True


class ConstraintOverrides(BaseModel):
    """Caller-supplied constraint values; unset fields fall back to defaults."""
    totalBudget: Optional[float] = Field(default=None, ge=0)
    minBudgetPerSubId: Optional[float] = Field(default=None, ge=0)
    maxBudgetPerSubId: Optional[float] = Field(default=None, ge=0)
    maxReallocationPercentage: Optional[float] = Field(default=None, ge=0, le=1)
    preserveTopPerformers: Optional[bool] = None


class BudgetAllocation(BaseModel):
    subId: str
    platform: str
    currentBudget: float
    recommendedBudget: float
    expectedROI: float
    confidence: float
    reasoning: str


class BudgetConstraint(BaseModel):
    type: str = Field(..., description="min_budget, max_budget, total_budget or platform_limit")
    value: float
    description: str


class ExpectedImprovement(BaseModel):
    roi: float = 0.0
    revenue: float = 0.0
    orders: int = 0


class BudgetOptimization(BaseModel):
    id: str
    currentAllocation: List[BudgetAllocation] = Field(default_factory=list)
    recommendedAllocation: List[BudgetAllocation] = Field(default_factory=list)
    expectedImprovement: ExpectedImprovement = Field(default_factory=ExpectedImprovement)
    riskAssessment: RiskLevel = RiskLevel.LOW
    justification: List[str] = Field(default_factory=list)
    constraints: List[BudgetConstraint] = Field(default_factory=list)
    createdAt: datetime = Field(default_factory=datetime.now)


class ConstraintValidation(BaseModel):
    isValid: bool
    violations: List[str] = Field(default_factory=list)


class BudgetOptimizationResult(BaseModel):
    optimization: BudgetOptimization
    confidence: float
    reallocationAmount: float
    riskScore: float = 0.0
    validation: ConstraintValidation
    recommendations: List[str] = Field(default_factory=list)


# =============================================================================
# Predictions
# =============================================================================


class ConfidenceInterval(BaseModel):
    lower: float
    upper: float


class PredictionFactor(BaseModel):
    name: str
    impact: float = Field(..., ge=-100, le=100)
    description: str
    confidence: float


class Prediction(BaseModel):
    id: str
    type: PredictionType
    timeframe: int = Field(..., description="Days ahead")
    predictedValue: float
    confidenceInterval: ConfidenceInterval
    confidenceScore: float = Field(..., ge=0, le=100)
    riskLevel: RiskLevel
    factors: List[PredictionFactor] = Field(default_factory=list)
    createdAt: datetime = Field(default_factory=datetime.now)


class PredictionDataQuality(BaseModel):
    sufficiency: float
    consistency: float
    trend: TrendDirection


class ROIPredictionResult(BaseModel):
    predictions: List[Prediction] = Field(default_factory=list)
    confidence: float
    riskAssessment: RiskLevel
    dataQuality: PredictionDataQuality
    recommendations: List[str] = Field(default_factory=list)


# =============================================================================
# Insights and Benchmarks
# =============================================================================


class Insight(BaseModel):
    id: str
    type: InsightType
    title: str
    description: str
    insight: str = ""
    confidence: float = Field(..., ge=0, le=100)
    significance: Significance = Significance.MEDIUM
    dataPoints: int = 0
    dataRange: Optional[DateRange] = None
    affectedMetrics: List[str] = Field(default_factory=list)
    visualizationData: Optional[Dict[str, Any]] = None
    createdAt: datetime = Field(default_factory=datetime.now)


class PerformanceBenchmark(BaseModel):
    metric: str
    currentValue: float
    bestValue: float
    worstValue: float
    averageValue: float
    percentileRank: float = Field(..., ge=0, le=100)
    trend: TrendDirection
    benchmarkPeriod: DateRange


class PerformerSnapshot(BaseModel):
    roi: float = 0.0
    revenue: float = 0.0
    orders: int = 0
    spend: float = 0.0


class TopPerformer(BaseModel):
    id: str
    type: PerformerType
    name: str
    value: float
    metric: str
    period: str
    performance: PerformerSnapshot
    insights: List[str] = Field(default_factory=list)


class PatternPoint(BaseModel):
    period: str
    value: float
    metric: str


class PerformancePattern(BaseModel):
    id: str
    type: PatternType
    name: str
    description: str
    confidence: float
    impact: float = Field(..., ge=-100, le=100)
    recommendations: List[str] = Field(default_factory=list)
    data: List[PatternPoint] = Field(default_factory=list)


class InsightsSummary(BaseModel):
    overallScore: float = 0.0
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    opportunities: List[str] = Field(default_factory=list)


class PerformanceInsightsResult(BaseModel):
    benchmarks: List[PerformanceBenchmark] = Field(default_factory=list)
    topPerformers: List[TopPerformer] = Field(default_factory=list)
    patterns: List[PerformancePattern] = Field(default_factory=list)
    insights: List[Insight] = Field(default_factory=list)
    summary: InsightsSummary = Field(default_factory=InsightsSummary)
    hasSufficientData: bool = True


# =============================================================================
# Analysis Result
# =============================================================================


class AnalysisMetadata(BaseModel):
    dataPointsAnalyzed: int
    analysisStartTime: datetime
    analysisEndTime: Optional[datetime] = None
    modelVersion: str
    confidence: float


class AIAnalysisResult(BaseModel):
    """Full output of one analysis pass over a snapshot."""
    id: str
    analysisType: str = "performance"
    status: AnalysisStatus = AnalysisStatus.COMPLETED
    progress: int = Field(default=100, ge=0, le=100)
    recommendations: List[Recommendation] = Field(default_factory=list)
    predictions: List[Prediction] = Field(default_factory=list)
    alerts: List[Alert] = Field(default_factory=list)
    insights: List[Insight] = Field(default_factory=list)
    budgetOptimization: Optional[BudgetOptimization] = None
    metadata: AnalysisMetadata
    errors: List[str] = Field(default_factory=list)


# =============================================================================
# Aggregation Report
# =============================================================================


class DataSourceBreakdown(BaseModel):
    fileImports: int = 0
    apiData: int = 0
    merged: int = 0


class AggregationStats(BaseModel):
    totalRecordsProcessed: int = 0
    dataSourceBreakdown: DataSourceBreakdown = Field(default_factory=DataSourceBreakdown)
    dataQualityScore: float = Field(default=0.0, ge=0, le=100)
    processingTime: float = Field(default=0.0, description="Milliseconds")


class AggregationResult(BaseModel):
    aiData: AIAnalysisData
    aggregationStats: AggregationStats
    conflicts: List[Conflict] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class CompatibilityReport(BaseModel):
    isCompatible: bool
    issues: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class QualityMetrics(BaseModel):
    completeness: float
    consistency: float
    accuracy: float


class DataFlowSummary(BaseModel):
    inputRecords: int
    processedRecords: int
    outputMetrics: int
    subIds: int
    platforms: int


class IntegrationThroughput(BaseModel):
    processingTime: float
    recordsPerSecond: float


class IntegrationReport(BaseModel):
    summary: str
    dataFlow: DataFlowSummary
    qualityMetrics: QualityMetrics
    performance: IntegrationThroughput
    compatibility: CompatibilityReport


# =============================================================================
# API Requests
# =============================================================================


class AggregationRequest(BaseModel):
    """
    Raw parsed rows from the three sources.

    Rows keep their source column names; a row may carry `_dataSource`
    ('file_import' or 'facebook_api') and `_sourceTimestamp` provenance keys.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "shopeeOrders": [
                    {
                        "รหัสการสั่งซื้อ": "250601ABC",
                        "คอมมิชชั่นสินค้าโดยรวม(฿)": "฿45.50",
                        "มูลค่าซื้อ(฿)": "1,299.00",
                        "เวลาที่สั่งซื้อ": "01/06/2024 10:15:00",
                        "สถานะการสั่งซื้อ": "สำเร็จแล้ว",
                        "Sub_id1": "fba"
                    }
                ],
                "lazadaOrders": [],
                "facebookAds": [
                    {
                        "Campaign name": "Summer sub_id fba",
                        "Amount spent (THB)": "120.00",
                        "Link clicks": "85",
                        "Date": "2024-06-01"
                    }
                ]
            }
        }
    )

    shopeeOrders: List[Dict[str, Any]] = Field(default_factory=list)
    lazadaOrders: List[Dict[str, Any]] = Field(default_factory=list)
    facebookAds: List[Dict[str, Any]] = Field(default_factory=list)
    calculatedMetrics: Optional[CalculatedMetrics] = Field(
        default=None,
        description="Caller's own totals, validated against the pipeline's"
    )
    dailyMetrics: Optional[List[DailyMetrics]] = Field(default=None)


class BudgetOptimizationRequest(AggregationRequest):
    constraints: Optional[ConstraintOverrides] = None


class AlertRequest(BaseModel):
    dailyMetrics: List[DailyMetrics] = Field(default_factory=list)
    totalRecords: int = Field(default=0, ge=0)
    subIdCount: int = Field(default=0, ge=0)


AIAnalysisData.model_rebuild()
