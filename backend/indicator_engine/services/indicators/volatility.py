"""
Volatility Indicators and Bands
"""

import numpy as np

from indicator_engine.services.base import ComputationError
from indicator_engine.services.indicators.calculations import (
    align,
    ema,
    rolling_max,
    rolling_min,
    rolling_std,
    rolling_sum,
    rolling_var,
    safe_divide,
    sma,
    smma,
    true_range,
)
from indicator_engine.services.indicators.params import ParameterSet
from indicator_engine.services.indicators.registry import Kind, register

FAMILY = "volatility"


def _period(params: ParameterSet, fallback: int = 14, minimum: int = 1) -> int:
    return params.period("period", fallback, minimum)


# =============================================================================
# TRUE RANGE / ATR
# =============================================================================


def atr(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, period: int = 14) -> np.ndarray:
    """Average True Range (Wilder smoothing of TR); first value at index `period`."""
    return smma(true_range(highs, lows, closes), period)


@register("tr", Kind.TRANSFORM, FAMILY, warmup=1)
def _tr(fields, params):
    """True range."""
    return true_range(fields.highs, fields.lows, fields.closes)


@register("atr", Kind.RECURSIVE, FAMILY, warmup=lambda p: _period(p))
def _atr(fields, params):
    """Average true range."""
    return atr(fields.highs, fields.lows, fields.closes, _period(params))


@register("natr", Kind.RECURSIVE, FAMILY, warmup=lambda p: _period(p))
def _natr(fields, params):
    """ATR as a percent of the close of the same candle."""
    values = atr(fields.highs, fields.lows, fields.closes, _period(params))
    values, closes = align(values, fields.closes)
    return safe_divide(100 * values, closes)


# =============================================================================
# BOLLINGER FAMILY
# =============================================================================


def bollinger_bands(
    closes: np.ndarray, period: int = 20, std_dev: float = 2.0
) -> dict[str, np.ndarray]:
    """
    Bollinger Bands (population standard deviation).

    Returns: {upper, middle, lower}
    """
    middle = sma(closes, period)
    deviation = std_dev * rolling_std(closes, period)
    return {"upper": middle + deviation, "middle": middle, "lower": middle - deviation}


def _bands(fields, params: ParameterSet) -> dict[str, np.ndarray]:
    return bollinger_bands(
        fields.closes, _period(params, 20), params.number("stdDev", 2, minimum=0)
    )


@register(
    "bbands",
    Kind.COMPOSITE,
    FAMILY,
    warmup=lambda p: _period(p, 20) - 1,
    outputs=("upper", "middle", "lower"),
)
def _bbands(fields, params):
    """Bollinger bands."""
    return _bands(fields, params)


@register("bbw", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 20) - 1)
def _bbw(fields, params):
    """Bollinger bandwidth: (upper - lower) / middle * 100."""
    bands = _bands(fields, params)
    return safe_divide(100 * (bands["upper"] - bands["lower"]), bands["middle"])


@register("bbp", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 20) - 1)
def _bbp(fields, params):
    """Bollinger %B: position of the close between the bands (0.5 when they touch)."""
    bands = _bands(fields, params)
    closes = fields.closes[-len(bands["middle"]):]
    return safe_divide(closes - bands["lower"], bands["upper"] - bands["lower"], fill=0.5)


def _keltner_periods(params: ParameterSet) -> tuple[int, int]:
    return _period(params, 20), params.period("atrPeriod", 10)


@register(
    "keltnerchannels",
    Kind.COMPOSITE,
    FAMILY,
    warmup=lambda p: max(_keltner_periods(p)[0] - 1, _keltner_periods(p)[1]),
    outputs=("upper", "middle", "lower"),
)
def _keltner(fields, params):
    """Keltner channels: EMA(period) +/- multiplier * ATR(atrPeriod)."""
    period, atr_period = _keltner_periods(params)
    multiplier = params.number("multiplier", 2, minimum=0)
    middle, ranges = align(
        ema(fields.closes, period),
        atr(fields.highs, fields.lows, fields.closes, atr_period),
    )
    return {
        "upper": middle + multiplier * ranges,
        "middle": middle,
        "lower": middle - multiplier * ranges,
    }


# =============================================================================
# DISPERSION
# =============================================================================


@register("stddev", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 20) - 1)
def _stddev(fields, params):
    """Rolling population standard deviation of the close."""
    return rolling_std(fields.closes, _period(params, 20))


@register("var", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 20) - 1)
def _var(fields, params):
    """Rolling population variance of the close."""
    return rolling_var(fields.closes, _period(params, 20))


def log_returns(closes: np.ndarray) -> np.ndarray:
    if np.any(closes <= 0):
        raise ComputationError("Log returns need strictly positive closes")
    return np.diff(np.log(closes))


@register("volatility", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 20))
def _volatility(fields, params):
    """Annualized rolling standard deviation of log returns, in percent."""
    annualization = params.number("annualization", 252, minimum=1)
    returns = log_returns(fields.closes)
    return rolling_std(returns, _period(params, 20)) * np.sqrt(annualization) * 100


# =============================================================================
# CHANNELS
# =============================================================================


@register(
    "donchianchannels",
    Kind.COMPOSITE,
    FAMILY,
    warmup=lambda p: _period(p, 20) - 1,
    outputs=("upper", "middle", "lower"),
)
def _donchian(fields, params):
    """Donchian channels: highest high / lowest low over the window."""
    period = _period(params, 20)
    upper = rolling_max(fields.highs, period)
    lower = rolling_min(fields.lows, period)
    return {"upper": upper, "middle": (upper + lower) / 2, "lower": lower}


def _mass_periods(params: ParameterSet) -> tuple[int, int]:
    return _period(params, 25), params.period("emaPeriod", 9)


@register(
    "massindex",
    Kind.RECURSIVE,
    FAMILY,
    warmup=lambda p: 2 * (_mass_periods(p)[1] - 1) + _mass_periods(p)[0] - 1,
)
def _massindex(fields, params):
    """Mass index: rolling sum of EMA(range) / EMA(EMA(range))."""
    period, ema_period = _mass_periods(params)
    single = ema(fields.highs - fields.lows, ema_period)
    double = ema(single, ema_period)
    single, double = align(single, double)
    return rolling_sum(safe_divide(single, double, fill=1.0), period)


@register(
    "accbands",
    Kind.COMPOSITE,
    FAMILY,
    warmup=lambda p: _period(p, 20) - 1,
    outputs=("upper", "middle", "lower"),
)
def _accbands(fields, params):
    """Acceleration bands (Headley)."""
    period = _period(params, 20)
    factor = params.number("factor", 4, minimum=0)
    highs, lows = fields.highs, fields.lows
    width = safe_divide(highs - lows, highs + lows)
    return {
        "upper": sma(highs * (1 + factor * width), period),
        "middle": sma(fields.closes, period),
        "lower": sma(lows * (1 - factor * width), period),
    }


@register(
    "squeeze",
    Kind.COMPOSITE,
    FAMILY,
    warmup=lambda p: _period(p, 20),
    outputs=("squeeze", "momentum"),
)
def _squeeze(fields, params):
    """
    TTM-style squeeze: on while the Bollinger bands sit inside the Keltner
    channel. Momentum is close - SMA(period).
    """
    period = _period(params, 20)
    bb_multiplier = params.number("bbMultiplier", 2, minimum=0)
    kc_multiplier = params.number("kcMultiplier", 1.5, minimum=0)
    closes = fields.closes

    middle = sma(closes, period)
    deviation = bb_multiplier * rolling_std(closes, period)
    center = ema(closes, period)
    ranges = atr(fields.highs, fields.lows, closes, period)
    middle, deviation, center, ranges, current = align(middle, deviation, center, ranges, closes)

    squeeze_on = (middle - deviation > center - kc_multiplier * ranges) & (
        middle + deviation < center + kc_multiplier * ranges
    )
    return {"squeeze": squeeze_on, "momentum": current - middle}


@register(
    "chandelier",
    Kind.COMPOSITE,
    FAMILY,
    warmup=lambda p: _period(p, 22),
    outputs=("long", "short"),
)
def _chandelier(fields, params):
    """Chandelier exits: extreme of the window -/+ multiplier * ATR."""
    period = _period(params, 22)
    multiplier = params.number("multiplier", 3, minimum=0)
    ranges = atr(fields.highs, fields.lows, fields.closes, period)
    highest, lowest, ranges = align(
        rolling_max(fields.highs, period), rolling_min(fields.lows, period), ranges
    )
    return {"long": highest - multiplier * ranges, "short": lowest + multiplier * ranges}


@register("ulcerindex", Kind.ROLLING, FAMILY, warmup=lambda p: 2 * (_period(p) - 1))
def _ulcerindex(fields, params):
    """Ulcer index: RMS of percent drawdown from the rolling high."""
    period = _period(params)
    peak = rolling_max(fields.closes, period)
    drawdown = safe_divide(100 * (fields.closes[period - 1:] - peak), peak)
    return np.sqrt(sma(drawdown ** 2, period))
