"""
Statistical Indicators

Two-series statistics (beta, correl) read `input1`/`input2`; either may be
`reference`, in which case only the trailing run where both inputs are
defined is used.
"""

import math

import numpy as np

from indicator_engine.services.indicators.calculations import (
    FieldVectors,
    align,
    change,
    require,
    rolling_linreg,
    rolling_std,
    rolling_window,
    safe_divide,
    sma,
)
from indicator_engine.services.indicators.params import ParameterSet
from indicator_engine.services.indicators.registry import Kind, register

FAMILY = "statistics"

PAIR_INPUTS = ("open", "high", "low", "close", "volume", "reference")


def _period(params: ParameterSet, fallback: int = 14, minimum: int = 1) -> int:
    return params.period("period", fallback, minimum)


def trailing_finite(*vectors: np.ndarray) -> tuple[np.ndarray, ...]:
    """Trim tail-aligned vectors to the trailing run where all are finite."""
    vectors = align(*vectors)
    finite = np.logical_and.reduce([np.isfinite(v) for v in vectors])
    bad = np.flatnonzero(~finite)
    start = bad[-1] + 1 if len(bad) else 0
    return tuple(v[start:] for v in vectors)


def _pair(fields: FieldVectors, params: ParameterSet) -> tuple[np.ndarray, np.ndarray]:
    first = params.choice("input1", "high", PAIR_INPUTS)
    second = params.choice("input2", "low", PAIR_INPUTS)
    return trailing_finite(fields.source(first), fields.source(second))


# =============================================================================
# TWO-SERIES STATISTICS
# =============================================================================


def rolling_covariance(x: np.ndarray, y: np.ndarray, period: int) -> np.ndarray:
    """Population covariance over a trailing window."""
    wx = rolling_window(x, period)
    wy = rolling_window(y, period)
    return ((wx - wx.mean(axis=1, keepdims=True)) * (wy - wy.mean(axis=1, keepdims=True))).mean(
        axis=1
    )


def rolling_correlation(x: np.ndarray, y: np.ndarray, period: int) -> np.ndarray:
    """Pearson correlation over a trailing window; 0 where either side is flat."""
    covariance = rolling_covariance(x, y, period)
    return safe_divide(covariance, rolling_std(x, period) * rolling_std(y, period))


def rolling_beta(x: np.ndarray, y: np.ndarray, period: int) -> np.ndarray:
    """
    Beta of `x` against `y` from simple returns.

    Returns are taken first, so the first value needs period + 1 prices.
    """
    x_returns = safe_divide(change(x, 1), x[:-1])
    y_returns = safe_divide(change(y, 1), y[:-1])
    return safe_divide(
        rolling_covariance(x_returns, y_returns, period),
        rolling_window(y_returns, period).var(axis=1),
    )


@register("beta", Kind.RELATIVE, FAMILY, warmup=lambda p: _period(p, 5))
def _beta(fields, params):
    """Rolling beta of input1 against input2."""
    period = _period(params, 5)
    first, second = _pair(fields, params)
    require(first, period + 1)
    return rolling_beta(first, second, period)


@register("correl", Kind.RELATIVE, FAMILY, warmup=lambda p: _period(p, 30) - 1)
def _correl(fields, params):
    """Rolling Pearson correlation of input1 and input2."""
    period = _period(params, 30)
    first, second = _pair(fields, params)
    return rolling_correlation(first, second, period)


# =============================================================================
# LINEAR REGRESSION
# =============================================================================


def _linreg(fields: FieldVectors, params: ParameterSet) -> tuple[int, np.ndarray, np.ndarray]:
    period = _period(params, minimum=2)
    slope, intercept = rolling_linreg(fields.closes, period)
    return period, slope, intercept


def _linreg_warmup(params: ParameterSet) -> int:
    return _period(params, minimum=2) - 1


@register("linearreg", Kind.ROLLING, FAMILY, warmup=_linreg_warmup)
def _linearreg(fields, params):
    """Linear regression line value at the newest candle."""
    period, slope, intercept = _linreg(fields, params)
    return intercept + slope * (period - 1)


@register("linearreg_slope", Kind.ROLLING, FAMILY, warmup=_linreg_warmup)
def _linearreg_slope(fields, params):
    """Slope of the regression line per candle."""
    return _linreg(fields, params)[1]


@register("linearreg_intercept", Kind.ROLLING, FAMILY, warmup=_linreg_warmup)
def _linearreg_intercept(fields, params):
    """Regression line value at the oldest candle of the window."""
    return _linreg(fields, params)[2]


@register("linearreg_angle", Kind.ROLLING, FAMILY, warmup=_linreg_warmup)
def _linearreg_angle(fields, params):
    """Regression slope as an angle in degrees."""
    return np.arctan(_linreg(fields, params)[1]) * (180 / math.pi)


@register("tsf", Kind.ROLLING, FAMILY, warmup=_linreg_warmup)
def _tsf(fields, params):
    """Time series forecast: the regression line projected one candle ahead."""
    period, slope, intercept = _linreg(fields, params)
    return intercept + slope * period


@register("zscore", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 20) - 1)
def _zscore(fields, params):
    """Standard score of the close within its window (0 for a flat window)."""
    period = _period(params, 20)
    closes = fields.closes
    return safe_divide(closes[period - 1:] - sma(closes, period), rolling_std(closes, period))
