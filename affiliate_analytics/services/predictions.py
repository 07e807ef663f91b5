"""
ROI Predictor

Short-horizon forecasts from an OLS line fitted to the daily series.

Key Outputs:
    - Prediction per timeframe (7, 14 and 30 days by default) with a 95%
      interval, a risk level, a 30-95 confidence score and the factors that
      drove it
    - ROIPredictionResult: the predictions plus overall confidence, overall
      risk, data quality and plain-text recommendations

Forecast:
    value    = max(0, (intercept + slope * (n - 1 + days)) * max(0.5, 1 - days/60))
    interval = value -/+ 1.96 * sample_std * (1 + days/60), lower bound >= 0
    risk     = cv * (1 + days/30): low < 0.3 <= medium < 0.6 <= high

The standalone entry point raises InsufficientDataError when the series is
too short to fit; callers that run predictions as one section of a larger
analysis catch it.

Usage:
    from affiliate_analytics.services.predictions import predict_roi

    result = predict_roi(daily_metrics)
    for prediction in result.predictions:
        print(prediction.timeframe, prediction.predictedValue)
"""

import logging
import math
from datetime import date
from typing import Callable, Dict, List, Optional, Sequence

from affiliate_analytics.core.config import Settings, get_settings
from affiliate_analytics.core.exceptions import InsufficientDataError
from affiliate_analytics.models import (
    ConfidenceInterval,
    DailyMetrics,
    Prediction,
    PredictionDataQuality,
    PredictionFactor,
    PredictionType,
    RiskLevel,
    ROIPredictionResult,
    TrendDirection,
)
from affiliate_analytics.services.normalizer import parse_date
from affiliate_analytics.services.stats import (
    RegressionFit,
    clamp,
    coefficient_of_variation,
    linear_regression,
    mean,
    round_to,
    sample_std,
)

logger = logging.getLogger(__name__)

# z-score of a two-sided 95% interval
Z_95 = 1.96

# |slope| per day above which the fitted line counts as a trend
TREND_SLOPE_THRESHOLD = 0.5

# Days of history treated as fully sufficient
SUFFICIENT_HISTORY_DAYS = 30

SERIES: Dict[PredictionType, Callable[[DailyMetrics], float]] = {
    PredictionType.ROI: lambda d: d.roi,
    PredictionType.REVENUE: lambda d: d.totalCom,
    PredictionType.ORDERS: lambda d: float(d.ordersSP + d.ordersLZD),
}


# =============================================================================
# Validation
# =============================================================================


def validate_prediction_data(daily: Sequence[DailyMetrics], settings: Optional[Settings] = None) -> List[str]:
    """Reasons the series cannot be modelled; empty when it can."""
    settings = settings or get_settings()
    required = settings.min_data_points
    errors: List[str] = []

    if not daily:
        errors.append('No daily metrics available for prediction')
    elif len(daily) < required:
        errors.append(f"Insufficient data points: {len(daily)} available, {required} required")

    valid_roi = sum(1 for d in daily if math.isfinite(d.roi))
    if valid_roi < required:
        errors.append(f"Insufficient valid ROI data points: {valid_roi} valid, {required} required")

    dates = sorted(p for p in (parse_date(d.date) for d in daily) if p is not None)
    if dates:
        span = (dates[-1] - dates[0]).days
        if span < required - 1:
            errors.append(f"Insufficient date range: {span} days available, {required} days required")
    return errors


def _sorted_days(daily: Sequence[DailyMetrics]) -> List[DailyMetrics]:
    return sorted(daily, key=lambda d: parse_date(d.date) or date.min)


# =============================================================================
# Single Forecast
# =============================================================================


def fit_direction(fit: RegressionFit) -> TrendDirection:
    if abs(fit.slope) > TREND_SLOPE_THRESHOLD:
        return TrendDirection.IMPROVING if fit.slope > 0 else TrendDirection.DECLINING
    return TrendDirection.STABLE


def damping_factor(days: int) -> float:
    return max(0.5, 1 - days / 60)


def extrapolate(fit: RegressionFit, n: int, days: int) -> float:
    """Project the line days past the last observation, damped and floored at 0."""
    projected = fit.intercept + fit.slope * (n - 1 + days)
    return max(0.0, projected * damping_factor(days))


def calculate_confidence_interval(values: Sequence[float], predicted: float, days: int) -> ConfidenceInterval:
    if len(values) < 2:
        return ConfidenceInterval(lower=predicted * 0.8, upper=predicted * 1.2)
    margin = Z_95 * sample_std(values) * (1 + days / 60)
    return ConfidenceInterval(lower=max(0.0, predicted - margin), upper=predicted + margin)


def _variation(values: Sequence[float]) -> float:
    """Sample CV with a zero mean treated as fully volatile."""
    if len(values) < 2:
        return 1.0
    cv = coefficient_of_variation(values, sample=True)
    return 1.0 if math.isinf(cv) else cv


def assess_prediction_risk(values: Sequence[float], days: int, settings: Optional[Settings] = None) -> RiskLevel:
    settings = settings or get_settings()
    if len(values) < 2:
        return RiskLevel.HIGH
    adjusted = _variation(values) * (1 + days / 30)
    if adjusted < settings.volatility_threshold:
        return RiskLevel.LOW
    if adjusted < settings.volatility_threshold * 2:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def calculate_prediction_confidence(values: Sequence[float], fit: RegressionFit, days: int) -> float:
    """
    Blend of history length, fit quality, horizon and stability, clamped to 30-95.

    Weights: sufficiency 0.3, r-squared 0.3, horizon 0.2, stability 0.2.
    """
    sufficiency = min(1.0, len(values) / 14)
    fit_quality = max(0.3, fit.r_squared)
    horizon = damping_factor(days)
    stability = max(0.3, 1 - _variation(values))
    raw = (sufficiency * 0.3 + fit_quality * 0.3 + horizon * 0.2 + stability * 0.2) * 100
    return clamp(raw, 30.0, 95.0)


def identify_prediction_factors(
    values: Sequence[float],
    fit: RegressionFit,
    label: str = 'ROI',
) -> List[PredictionFactor]:
    factors = [
        PredictionFactor(
            name='Historical Trend',
            impact=min(50.0, abs(fit.slope) * 10),
            description=f"{label} trend is {fit_direction(fit).value} based on recent performance",
            confidence=80,
        )
    ]

    if len(values) >= 7:
        recent = mean(values[-7:])
        overall = mean(values)
        change = (recent - overall) / abs(overall) * 100 if overall != 0 else 0.0
        factors.append(PredictionFactor(
            name='Recent Performance',
            impact=clamp(change, -30.0, 30.0),
            description=(
                'Recent performance is above average' if change > 0
                else 'Recent performance is below average'
            ),
            confidence=75,
        ))

    cv = _variation(values)
    factors.append(PredictionFactor(
        name='Performance Volatility',
        impact=max(-100.0, min(-10.0, -cv * 20)),
        description=(
            'High volatility increases prediction uncertainty' if cv > 0.3
            else 'Low volatility supports stable predictions'
        ),
        confidence=70,
    ))

    factors.append(PredictionFactor(
        name='Data Sufficiency',
        impact=min(20.0, len(values) / SUFFICIENT_HISTORY_DAYS * 20),
        description=(
            'Sufficient historical data for reliable predictions' if len(values) >= 14
            else 'Limited historical data may affect prediction accuracy'
        ),
        confidence=85,
    ))
    return factors


def generate_prediction(
    daily: Sequence[DailyMetrics],
    days: int,
    prediction_type: PredictionType = PredictionType.ROI,
    settings: Optional[Settings] = None,
) -> Prediction:
    """
    Forecast one metric days past the end of an already validated series.

    Args:
        daily: Daily metrics; sorted by date before fitting.
        days: Horizon in days.
        prediction_type: Metric to forecast.

    Returns:
        Prediction with values rounded to 2 decimals and an id built from the
        metric, the horizon and the last observed date.
    """
    settings = settings or get_settings()
    ordered = _sorted_days(daily)
    values = [SERIES[prediction_type](d) for d in ordered]
    fit = linear_regression(values)

    predicted = extrapolate(fit, len(values), days)
    interval = calculate_confidence_interval(values, predicted, days)
    last_day = ordered[-1].date if ordered else 'none'
    label = 'ROI' if prediction_type == PredictionType.ROI else prediction_type.value.capitalize()

    return Prediction(
        id=f"prediction-{prediction_type.value}-{days}d-{last_day}",
        type=prediction_type,
        timeframe=days,
        predictedValue=round_to(predicted),
        confidenceInterval=ConfidenceInterval(lower=round_to(interval.lower), upper=round_to(interval.upper)),
        confidenceScore=float(round(calculate_prediction_confidence(values, fit, days))),
        riskLevel=assess_prediction_risk(values, days, settings),
        factors=identify_prediction_factors(values, fit, label),
    )


# =============================================================================
# Aggregate Assessment
# =============================================================================


def calculate_overall_confidence(predictions: Sequence[Prediction]) -> float:
    if not predictions:
        return 0.0
    return float(round(mean([p.confidenceScore for p in predictions])))


def assess_overall_risk(predictions: Sequence[Prediction]) -> RiskLevel:
    """Majority risk level; low unless high or medium covers more than half."""
    if not predictions:
        return RiskLevel.HIGH
    half = len(predictions) / 2
    high = sum(1 for p in predictions if p.riskLevel == RiskLevel.HIGH)
    medium = sum(1 for p in predictions if p.riskLevel == RiskLevel.MEDIUM)
    if high > half:
        return RiskLevel.HIGH
    if medium > half:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def assess_prediction_data_quality(daily: Sequence[DailyMetrics]) -> PredictionDataQuality:
    if not daily:
        return PredictionDataQuality(sufficiency=0, consistency=0, trend=TrendDirection.STABLE)
    sufficiency = min(100.0, len(daily) / SUFFICIENT_HISTORY_DAYS * 100)
    valid = sum(1 for d in daily if math.isfinite(d.roi) and math.isfinite(d.totalCom))
    ordered = _sorted_days(daily)
    return PredictionDataQuality(
        sufficiency=float(round(sufficiency)),
        consistency=float(round(valid / len(daily) * 100)),
        trend=fit_direction(linear_regression([d.roi for d in ordered])),
    )


def generate_prediction_recommendations(
    predictions: Sequence[Prediction],
    quality: PredictionDataQuality,
    settings: Optional[Settings] = None,
) -> List[str]:
    settings = settings or get_settings()
    lines: List[str] = []

    if quality.sufficiency < 70:
        lines.append('Import more historical data to improve prediction accuracy')
    if quality.consistency < 80:
        lines.append('Review data quality - some metrics may be incomplete or invalid')

    short_term = next((p for p in predictions if p.timeframe <= 7), None)
    long_term = next((p for p in predictions if p.timeframe >= 30), None)
    if short_term is not None and short_term.predictedValue <= 0:
        lines.append('Short-term ROI prediction is not positive - consider pausing or optimizing campaigns')
    if long_term is not None and long_term.riskLevel == RiskLevel.HIGH:
        lines.append('Long-term predictions have high uncertainty - monitor performance closely')

    if quality.trend == TrendDirection.DECLINING:
        lines.append('ROI trend is declining - investigate underperforming campaigns and optimize')
    elif quality.trend == TrendDirection.IMPROVING:
        lines.append('ROI trend is improving - consider increasing budget for high-performing campaigns')

    if predictions and mean([p.confidenceScore for p in predictions]) < settings.confidence_threshold:
        lines.append('Prediction confidence is low - collect more data before making major budget decisions')
    return lines


# =============================================================================
# Entry Points
# =============================================================================


def _horizons(timeframes: Optional[Sequence[int]], settings: Settings) -> List[int]:
    chosen = list(timeframes) if timeframes else list(settings.prediction_timeframes)
    return [days for days in chosen if 0 < days <= settings.max_prediction_days]


def predict_roi(
    daily: Sequence[DailyMetrics],
    timeframes: Optional[Sequence[int]] = None,
    settings: Optional[Settings] = None,
) -> ROIPredictionResult:
    """
    Forecast ROI for each timeframe.

    Args:
        daily: Daily metrics, any order.
        timeframes: Horizons in days; defaults to settings.prediction_timeframes.
            Horizons beyond max_prediction_days are skipped.

    Returns:
        ROIPredictionResult.

    Raises:
        InsufficientDataError: If the series is empty, too short or spans too
            few calendar days. The message lists every failed check.
    """
    settings = settings or get_settings()
    errors = validate_prediction_data(daily, settings)
    if errors:
        logger.warning(f"ROI prediction skipped: {'; '.join(errors)}")
        raise InsufficientDataError(f"Insufficient data for prediction: {', '.join(errors)}")

    predictions = [
        generate_prediction(daily, days, PredictionType.ROI, settings)
        for days in _horizons(timeframes, settings)
    ]
    quality = assess_prediction_data_quality(daily)
    result = ROIPredictionResult(
        predictions=predictions,
        confidence=calculate_overall_confidence(predictions),
        riskAssessment=assess_overall_risk(predictions),
        dataQuality=quality,
        recommendations=generate_prediction_recommendations(predictions, quality, settings),
    )
    logger.info(
        f"Generated {len(predictions)} ROI predictions "
        f"(confidence={result.confidence:.0f}, risk={result.riskAssessment.value})"
    )
    return result


def predict_revenue(
    daily: Sequence[DailyMetrics],
    timeframes: Optional[Sequence[int]] = None,
    settings: Optional[Settings] = None,
) -> List[Prediction]:
    """Revenue forecasts with the same model; raises InsufficientDataError like predict_roi."""
    settings = settings or get_settings()
    errors = validate_prediction_data(daily, settings)
    if errors:
        raise InsufficientDataError(f"Insufficient data for prediction: {', '.join(errors)}")
    return [
        generate_prediction(daily, days, PredictionType.REVENUE, settings)
        for days in _horizons(timeframes, settings)
    ]
