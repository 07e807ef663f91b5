"""
FastAPI router module for the affiliate analysis endpoints.

Every endpoint takes parsed rows or a daily series in the request body and
runs the in-memory pipeline; nothing is persisted between calls.

Key Endpoints:
- POST /analysis/aggregate: Raw rows -> AggregationResult
- POST /analysis/run: Raw rows -> full AIAnalysisResult
- POST /analysis/trends: Daily series -> TrendAnalysis
- POST /analysis/alerts: Daily series -> performance alerts
- POST /analysis/budget: Raw rows + constraints -> BudgetOptimizationResult
- POST /analysis/predictions: Daily series -> ROIPredictionResult
- POST /analysis/insights: Raw rows -> PerformanceInsightsResult

Error Mapping:
- 400: empty input where data is required, or unusable constraints
- 422: too little history for the ROI predictor
- 500: unexpected failure (logged with traceback)
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException

from affiliate_analytics.core.config import Settings
from affiliate_analytics.core.dependencies import SettingsDep
from affiliate_analytics.core.exceptions import ConfigurationError, InsufficientDataError
from affiliate_analytics.models import (
    AggregationRequest,
    AggregationResult,
    AIAnalysisResult,
    Alert,
    AlertRequest,
    BudgetOptimizationRequest,
    BudgetOptimizationResult,
    DailyMetrics,
    PerformanceInsightsResult,
    ROIPredictionResult,
    TrendAnalysis,
)
from affiliate_analytics.services.aggregator import aggregate_data_for_ai
from affiliate_analytics.services.alerts import generate_performance_alerts
from affiliate_analytics.services.analysis import run_analysis
from affiliate_analytics.services.budget_optimizer import optimize_budget
from affiliate_analytics.services.insights import generate_performance_insights
from affiliate_analytics.services.performance import analyze_performance
from affiliate_analytics.services.predictions import predict_roi
from affiliate_analytics.services.trend_detector import analyze_trends


# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analysis", tags=["analysis"])


# =============================================================================
# Helper Functions
# =============================================================================

def _require_rows(request: AggregationRequest) -> None:
    """Reject a request carrying no rows from any source."""
    if not (request.shopeeOrders or request.lazadaOrders or request.facebookAds):
        raise HTTPException(
            status_code=400,
            detail="At least one Shopee, Lazada or Facebook row is required"
        )


def _require_days(daily: List[DailyMetrics]) -> None:
    if not daily:
        raise HTTPException(status_code=400, detail="dailyMetrics must not be empty")


def _aggregate(request: AggregationRequest, settings: Settings) -> AggregationResult:
    return aggregate_data_for_ai(
        request.shopeeOrders,
        request.lazadaOrders,
        request.facebookAds,
        calculated_metrics=request.calculatedMetrics,
        daily_metrics=request.dailyMetrics,
        settings=settings,
    )


# =============================================================================
# Aggregation and Full Analysis
# =============================================================================

@router.post("/aggregate", response_model=AggregationResult)
async def aggregate(request: AggregationRequest, settings: SettingsDep) -> AggregationResult:
    """
    Normalize, reconcile and enrich raw rows for analysis.

    Merge conflicts and validation problems are returned as warnings; an
    internal failure is reported in errors with a fallback aiData.
    """
    _require_rows(request)
    try:
        result = _aggregate(request, settings)
        logger.info(
            f"Aggregated {result.aggregationStats.totalRecordsProcessed} records "
            f"with {len(result.warnings)} warnings"
        )
        return result
    except Exception as e:
        logger.error(f"Error aggregating data: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to aggregate data: {str(e)}")


@router.post("/run", response_model=AIAnalysisResult)
async def run(request: AggregationRequest, settings: SettingsDep) -> AIAnalysisResult:
    """
    Aggregate raw rows and run every enabled analysis section.

    Aggregation errors are carried into the result's errors ahead of any
    section failures.
    """
    _require_rows(request)
    try:
        aggregation = _aggregate(request, settings)
        result = run_analysis(aggregation.aiData, settings=settings)
        if aggregation.errors:
            result = result.model_copy(update={"errors": aggregation.errors + result.errors})
        return result
    except Exception as e:
        logger.error(f"Error running analysis: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to run analysis: {str(e)}")


# =============================================================================
# Series Endpoints
# =============================================================================

@router.post("/trends", response_model=TrendAnalysis)
async def detect_trends(daily: List[DailyMetrics], settings: SettingsDep) -> TrendAnalysis:
    """Per-metric trend detection over a daily series, oldest day first."""
    _require_days(daily)
    try:
        return analyze_trends(daily, settings=settings)
    except Exception as e:
        logger.error(f"Error detecting trends: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to detect trends: {str(e)}")


@router.post("/alerts", response_model=List[Alert])
async def performance_alerts(request: AlertRequest, settings: SettingsDep) -> List[Alert]:
    _require_days(request.dailyMetrics)
    try:
        return generate_performance_alerts(
            request.dailyMetrics,
            request.totalRecords,
            request.subIdCount,
            settings=settings,
        )
    except Exception as e:
        logger.error(f"Error generating alerts: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to generate alerts: {str(e)}")


@router.post("/predictions", response_model=ROIPredictionResult)
async def predictions(daily: List[DailyMetrics], settings: SettingsDep) -> ROIPredictionResult:
    """
    ROI forecasts for the configured horizons.

    Returns 422 when the series is too short or spans too few days.
    """
    _require_days(daily)
    try:
        return predict_roi(daily, settings=settings)
    except InsufficientDataError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Error predicting ROI: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to predict ROI: {str(e)}")


# =============================================================================
# Budget and Insights
# =============================================================================

@router.post("/budget", response_model=BudgetOptimizationResult)
async def budget(request: BudgetOptimizationRequest, settings: SettingsDep) -> BudgetOptimizationResult:
    """
    Reallocate ad spend across scored sub-ids.

    Caller constraints override the Settings defaults; inconsistent ones are
    rejected with 400.
    """
    _require_rows(request)
    try:
        aggregation = _aggregate(request, settings)
        performance = analyze_performance(aggregation.aiData, settings=settings)
        if not performance.subIdAnalysis:
            raise HTTPException(
                status_code=400,
                detail="No Sub IDs found in the data; budget optimization needs at least one"
            )
        return optimize_budget(
            aggregation.aiData,
            performance.subIdAnalysis,
            performance.platformAnalysis,
            overrides=request.constraints,
            settings=settings,
        )
    except HTTPException:
        raise
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error optimizing budget: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to optimize budget: {str(e)}")


@router.post("/insights", response_model=PerformanceInsightsResult)
async def insights(request: AggregationRequest, settings: SettingsDep) -> PerformanceInsightsResult:
    _require_rows(request)
    try:
        aggregation = _aggregate(request, settings)
        return generate_performance_insights(aggregation.aiData, settings=settings)
    except Exception as e:
        logger.error(f"Error generating insights: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to generate insights: {str(e)}")
