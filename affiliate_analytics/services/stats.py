"""
Numerical helpers shared by the trend, alert, insight and prediction services.

Everything here is a pure function over plain float lists. numpy does the
arithmetic; callers get Python floats back so results drop straight into
Pydantic models.

Key Outputs:
    - linear_regression: OLS slope, intercept and r-squared against day index
    - coefficient_of_variation: population std over |mean|
    - percentile_rank: position of a value inside a historical distribution
    - cusum_change_point: index of the most likely level shift

Usage:
    from affiliate_analytics.services.stats import linear_regression

    fit = linear_regression([10.0, 12.0, 15.0, 14.0, 18.0])
    print(fit.slope)
"""

import math
from typing import NamedTuple, Optional, Sequence

import numpy as np


class RegressionFit(NamedTuple):
    slope: float
    intercept: float
    r_squared: float


# =============================================================================
# Descriptive Statistics
# =============================================================================


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0.0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=np.float64)))


def population_std(values: Sequence[float]) -> float:
    """Population standard deviation (ddof=0); 0.0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.std(np.asarray(values, dtype=np.float64)))


def sample_std(values: Sequence[float]) -> float:
    """Sample standard deviation (ddof=1); 0.0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    return float(np.std(np.asarray(values, dtype=np.float64), ddof=1))


def coefficient_of_variation(values: Sequence[float], sample: bool = False) -> float:
    """
    Standard deviation divided by |mean|.

    Returns 0.0 when there is no spread and math.inf when the mean is zero
    but values vary, so a flat-zero series is not mistaken for a volatile one.
    """
    std = sample_std(values) if sample else population_std(values)
    if std == 0:
        return 0.0
    avg = mean(values)
    if avg == 0:
        return math.inf
    return std / abs(avg)


def is_strictly_monotonic(values: Sequence[float]) -> Optional[int]:
    """Return 1 for strictly increasing, -1 for strictly decreasing, else None."""
    if len(values) < 2:
        return None
    diffs = np.diff(np.asarray(values, dtype=np.float64))
    if np.all(diffs > 0):
        return 1
    if np.all(diffs < 0):
        return -1
    return None


# =============================================================================
# Regression
# =============================================================================


def linear_regression(values: Sequence[float]) -> RegressionFit:
    """
    Ordinary least squares of value against day index 0..n-1.

    Args:
        values: Metric values ordered oldest first.

    Returns:
        RegressionFit(slope, intercept, r_squared). A series shorter than two
        points, or with no variance, has slope 0 and r_squared 0.

    Example:
        >>> linear_regression([1.0, 2.0, 3.0]).slope
        1.0
    """
    n = len(values)
    if n == 0:
        return RegressionFit(0.0, 0.0, 0.0)
    y = np.asarray(values, dtype=np.float64)
    if n < 2:
        return RegressionFit(0.0, float(y[0]), 0.0)

    x = np.arange(n, dtype=np.float64)
    x_mean = x.mean()
    y_mean = y.mean()
    sxx = float(np.sum((x - x_mean) ** 2))
    sxy = float(np.sum((x - x_mean) * (y - y_mean)))
    slope = sxy / sxx
    intercept = float(y_mean - slope * x_mean)

    ss_tot = float(np.sum((y - y_mean) ** 2))
    if ss_tot == 0:
        r_squared = 0.0
    else:
        residuals = y - (slope * x + intercept)
        r_squared = max(0.0, 1.0 - float(np.sum(residuals ** 2)) / ss_tot)
    return RegressionFit(float(slope), intercept, r_squared)


# =============================================================================
# Ranking and Change Points
# =============================================================================


def percentile_rank(value: float, history: Sequence[float]) -> float:
    """
    Position of value within the sorted history, 0-100.

    Values below the current one count fully and ties count half, so the
    median of a distribution ranks near 50 and the maximum near 100.
    An empty history ranks 50.
    """
    if len(history) == 0:
        return 50.0
    arr = np.sort(np.asarray(history, dtype=np.float64))
    below = int(np.searchsorted(arr, value, side='left'))
    at_or_below = int(np.searchsorted(arr, value, side='right'))
    equal = at_or_below - below
    return float((below + 0.5 * equal) / len(arr) * 100.0)


def cusum_change_point(values: Sequence[float]) -> Optional[int]:
    """
    Locate the most likely single level shift with a CUSUM statistic.

    S_k is the cumulative sum of (x_i - mean) for i <= k. The shift is placed
    right after the k with the largest |S_k|.

    Returns:
        Index of the first value after the shift, or None when the series has
        fewer than four points or no variation.
    """
    n = len(values)
    if n < 4:
        return None
    x = np.asarray(values, dtype=np.float64)
    if np.all(x == x[0]):
        return None
    cusum = np.cumsum(x - x.mean())
    # Last partial sum is always ~0 and never a valid split
    k = int(np.argmax(np.abs(cusum[:-1])))
    return k + 1


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def round_to(value: float, digits: int = 2) -> float:
    return float(round(value, digits))
