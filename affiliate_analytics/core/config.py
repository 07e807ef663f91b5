"""
Settings and environment management for the Affiliate Analytics service.

This module centralizes every tunable threshold used by the reconciliation and
analytics pipeline. Values are loaded with pydantic-settings from environment
variables and an optional .env file, so an operator can retune the heuristics
without touching code.

Key Features:
- Environment variable validation and type coercion
- Named constants for every scoring weight, reference cap and alert threshold
- Feature flags controlling which sections of an analysis run are produced
- Singleton access via @lru_cache

Analysis Defaults:
- roi_threshold_high: 50 (ROI % at which a sub-id counts as a high performer)
- roi_threshold_low: 20 (ROI % below which a sub-id counts as a low performer)
- min_reliable_orders: 10 (Orders needed before a high-ROI sub-id is trusted)
- min_data_points: 7 (Daily points needed for trend and prediction work)
- lookback_period: 7 (Days covered by the recent/previous alert windows)

Usage:
    from affiliate_analytics.core.config import get_settings

    settings = get_settings()
    high = settings.roi_threshold_high
"""

from functools import lru_cache
from typing import List

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every field has a default, so the pipeline runs without any environment
    configuration. Variable names are case-insensitive (ROI_THRESHOLD_HIGH or
    roi_threshold_high).

    Attributes:
        app_name: Human readable service name returned by the root endpoint.
        app_version: Service version string.
        model_version: Version tag stamped on every analysis result.
        cors_origins: Origins allowed by the CORS middleware.
        roi_threshold_high: ROI % at or above which the ROI band score is maxed.
        roi_threshold_low: ROI % below which an entity is a low performer.
        enable_predictions: Produce ROI/revenue predictions in analysis runs.
        enable_recommendations: Produce recommendations in analysis runs.
        enable_alerts: Produce alerts in analysis runs.
        enable_budget_optimization: Produce a budget optimization in analysis runs.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    # =========================================================================
    # Application
    # =========================================================================

    app_name: str = 'Affiliate Analytics API'

    app_version: str = '1.0.0'

    # Stamped into AIAnalysisResult.metadata.modelVersion
    model_version: str = '1.0.0'

    # Origins allowed to call the API from a browser (dashboard dev servers)
    cors_origins: List[str] = [
        'http://localhost:3000',
        'http://127.0.0.1:3000',
    ]

    # =========================================================================
    # Performance Scoring
    # =========================================================================

    # ROI % at which the ROI band contributes its full weight
    roi_threshold_high: float = 50.0

    # ROI % below which an entity is treated as a low performer
    roi_threshold_low: float = 20.0

    # Composite score weights; they sum to 100
    score_weight_roi: float = 40.0
    score_weight_volume: float = 30.0
    score_weight_revenue: float = 30.0

    # Order count at which the volume component is capped
    volume_reference_orders: float = 50.0

    # Revenue (THB) at which the revenue component is capped
    revenue_reference: float = 10000.0

    # Spend above which a low-volume entity is high risk
    risk_spend_threshold: float = 1000.0

    # Orders needed before a high-ROI entity is trusted with more budget
    min_reliable_orders: int = 10

    # Orders below which an otherwise healthy entity is medium risk
    medium_risk_orders: int = 20

    # =========================================================================
    # Trend Detection and Alerts
    # =========================================================================

    # Daily points required for trend detection and predictions
    min_data_points: int = 7

    # Days spanned by the recent + previous comparison windows
    lookback_period: int = 7

    # Percentage-change thresholds per compared metric
    roi_change_threshold: float = 20.0
    revenue_change_threshold: float = 25.0
    orders_change_threshold: float = 30.0
    efficiency_change_threshold: float = 20.0

    # Negative ROI change (in %) beyond which an alert escalates to critical
    critical_change_threshold: float = 40.0

    # Data quality alert triggers
    stale_data_days: int = 3
    min_record_volume: int = 50
    min_sub_ids: int = 3

    # =========================================================================
    # Reconciliation
    # =========================================================================

    # Absolute difference below which two sources agree on a value
    conflict_tolerance: float = 0.01

    # =========================================================================
    # Budget Optimization
    # =========================================================================

    # Per-entity floor and ceiling as a share of the total budget
    min_budget_share: float = 0.05
    max_budget_share: float = 0.4

    # Largest change allowed for one entity, as a share of its current budget
    max_reallocation_percentage: float = 0.5

    # Share of a low performer's budget that may be taken away
    low_performer_reduction: float = 0.5

    # =========================================================================
    # Predictions
    # =========================================================================

    prediction_timeframes: List[int] = [7, 14, 30]

    max_prediction_days: int = 30

    # Minimum confidence a prediction should reach before it is acted on
    confidence_threshold: float = 60.0

    # Coefficient of variation treated as a volatile ROI history
    volatility_threshold: float = 0.3

    # =========================================================================
    # Feature Flags
    # =========================================================================

    enable_predictions: bool = True
    enable_recommendations: bool = True
    enable_alerts: bool = True
    enable_budget_optimization: bool = True

    @field_validator('min_data_points', 'lookback_period')
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError('Minimum data points must be at least 1')
        return value

    @field_validator('confidence_threshold')
    @classmethod
    def _percentage(cls, value: float) -> float:
        if value < 0 or value > 100:
            raise ValueError('Confidence threshold must be between 0 and 100')
        return value

    @model_validator(mode='after')
    def _check_ranges(self) -> 'Settings':
        if self.roi_threshold_low >= self.roi_threshold_high:
            raise ValueError('roi_threshold_low must be below roi_threshold_high')
        if not self.prediction_timeframes:
            raise ValueError('At least one prediction timeframe is required')
        for days in self.prediction_timeframes:
            if days <= 0 or days > self.max_prediction_days:
                raise ValueError(
                    f'Prediction timeframe {days} must be between 1 and {self.max_prediction_days}'
                )
        if not 0 < self.min_budget_share <= self.max_budget_share <= 1:
            raise ValueError('Budget shares must satisfy 0 < min <= max <= 1')
        return self


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns a cached Settings instance so environment variables are read once
    per process. Services call this when no explicit Settings is passed in.

    Returns:
        Settings: The application settings instance.

    Raises:
        pydantic.ValidationError: If an environment variable has an invalid value
            (e.g., ROI_THRESHOLD_LOW greater than ROI_THRESHOLD_HIGH).

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()
