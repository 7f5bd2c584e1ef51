"""
Moving Averages (overlap studies)

Every exponential-family average here is a composition of
`calculations.exponential`, so seeding is identical across the family.
"""

import math

import numpy as np

from indicator_engine.services.indicators.calculations import (
    SOURCES,
    FieldVectors,
    align,
    change,
    ema,
    median_price,
    rolling_max,
    rolling_min,
    rolling_sum,
    rolling_window,
    safe_divide,
    sma,
    smma,
    wma,
)
from indicator_engine.services.indicators.params import ParameterSet
from indicator_engine.services.indicators.registry import Kind, register

FAMILY = "moving_averages"

MA_TYPES = ("SMA", "EMA", "WMA", "DEMA", "TEMA", "TRIMA", "KAMA", "T3", "SMMA", "HMA")


def source(fields: FieldVectors, params: ParameterSet) -> np.ndarray:
    return fields.source(params.choice("source", "close", SOURCES))


# =============================================================================
# PRIMITIVE COMPOSITIONS
# =============================================================================


def dema(data: np.ndarray, period: int) -> np.ndarray:
    """Double EMA: 2*EMA - EMA(EMA)."""
    ema1 = ema(data, period)
    ema2 = ema(ema1, period)
    ema1, ema2 = align(ema1, ema2)
    return 2 * ema1 - ema2


def tema(data: np.ndarray, period: int) -> np.ndarray:
    """Triple EMA: 3*EMA - 3*EMA(EMA) + EMA(EMA(EMA))."""
    ema1 = ema(data, period)
    ema2 = ema(ema1, period)
    ema3 = ema(ema2, period)
    ema1, ema2, ema3 = align(ema1, ema2, ema3)
    return 3 * ema1 - 3 * ema2 + ema3


def trima(data: np.ndarray, period: int) -> np.ndarray:
    """Triangular MA: SMA of SMA, windows chosen so the warmup is period - 1."""
    if period % 2:
        half = (period + 1) // 2
        return sma(sma(data, half), half)
    half = period // 2
    return sma(sma(data, half), half + 1)


def kama(
    data: np.ndarray, period: int, fast_period: int = 2, slow_period: int = 30
) -> np.ndarray:
    """
    Kaufman Adaptive MA.

    The smoothing constant follows the efficiency ratio
    |net change| / sum(|changes|) over `period` candles. Seeded with the
    value at index period - 1; first output at index period.
    """
    data = np.asarray(data, dtype=float)
    direction = np.abs(change(data, period))
    volatility = rolling_sum(np.abs(change(data, 1)), period)
    efficiency = safe_divide(direction, volatility)

    fast_sc = 2 / (fast_period + 1)
    slow_sc = 2 / (slow_period + 1)
    constants = (efficiency * (fast_sc - slow_sc) + slow_sc) ** 2

    result = np.empty(len(constants))
    previous = data[period - 1]
    for i, sc in enumerate(constants):
        previous = previous + sc * (data[period + i] - previous)
        result[i] = previous
    return result


def t3(data: np.ndarray, period: int, volume_factor: float = 0.7) -> np.ndarray:
    """Tillson T3: weighted combination of six chained EMAs."""
    a = volume_factor
    c1 = -(a ** 3)
    c2 = 3 * a ** 2 + 3 * a ** 3
    c3 = -6 * a ** 2 - 3 * a - 3 * a ** 3
    c4 = 1 + 3 * a + a ** 3 + 3 * a ** 2

    chain = [ema(data, period)]
    for _ in range(5):
        chain.append(ema(chain[-1], period))
    _, _, e3, e4, e5, e6 = align(*chain)
    return c1 * e6 + c2 * e5 + c3 * e4 + c4 * e3


def hma(data: np.ndarray, period: int) -> np.ndarray:
    """Hull MA: WMA(2*WMA(n/2) - WMA(n), sqrt(n))."""
    half = max(period // 2, 1)
    root = max(int(math.sqrt(period)), 1)
    fast, slow = align(wma(data, half), wma(data, period))
    return wma(2 * fast - slow, root)


def moving_average(data: np.ndarray, period: int, ma_type: str = "SMA") -> np.ndarray:
    """Dispatch to one of MA_TYPES with default secondary parameters."""
    if ma_type == "SMA":
        return sma(data, period)
    if ma_type == "EMA":
        return ema(data, period)
    if ma_type == "WMA":
        return wma(data, period)
    if ma_type == "DEMA":
        return dema(data, period)
    if ma_type == "TEMA":
        return tema(data, period)
    if ma_type == "TRIMA":
        return trima(data, period)
    if ma_type == "KAMA":
        return kama(data, period)
    if ma_type == "T3":
        return t3(data, period)
    if ma_type == "SMMA":
        return smma(data, period)
    if ma_type == "HMA":
        return hma(data, period)
    raise ValueError(f"Unknown moving average type: {ma_type}")


def ma_warmup(period: int, ma_type: str = "SMA") -> int:
    """Leading values consumed by `moving_average`."""
    if ma_type == "DEMA":
        return 2 * (period - 1)
    if ma_type == "TEMA":
        return 3 * (period - 1)
    if ma_type == "KAMA":
        return period
    if ma_type == "T3":
        return 6 * (period - 1)
    if ma_type == "HMA":
        return period - 1 + max(int(math.sqrt(period)), 1) - 1
    return period - 1


# =============================================================================
# REGISTERED INDICATORS
# =============================================================================


def _period(params: ParameterSet, fallback: int = 20, minimum: int = 1) -> int:
    return params.period("period", fallback, minimum)


@register("sma", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p) - 1)
def _sma(fields, params):
    """Simple moving average."""
    return sma(source(fields, params), _period(params))


@register("ema", Kind.RECURSIVE, FAMILY, warmup=lambda p: _period(p) - 1)
def _ema(fields, params):
    """Exponential moving average seeded by an SMA."""
    return ema(source(fields, params), _period(params))


@register("wma", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p) - 1)
def _wma(fields, params):
    """Linearly weighted moving average."""
    return wma(source(fields, params), _period(params))


@register("dema", Kind.RECURSIVE, FAMILY, warmup=lambda p: 2 * (_period(p) - 1))
def _dema(fields, params):
    """Double exponential moving average."""
    return dema(source(fields, params), _period(params))


@register("tema", Kind.RECURSIVE, FAMILY, warmup=lambda p: 3 * (_period(p) - 1))
def _tema(fields, params):
    """Triple exponential moving average."""
    return tema(source(fields, params), _period(params))


@register("trima", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p) - 1)
def _trima(fields, params):
    """Triangular moving average."""
    return trima(source(fields, params), _period(params))


@register("kama", Kind.RECURSIVE, FAMILY, warmup=lambda p: _period(p, 10))
def _kama(fields, params):
    """Kaufman adaptive moving average."""
    return kama(
        source(fields, params),
        _period(params, 10),
        params.period("fastPeriod", 2),
        params.period("slowPeriod", 30),
    )


@register("t3", Kind.RECURSIVE, FAMILY, warmup=lambda p: 6 * (_period(p, 5) - 1))
def _t3(fields, params):
    """Tillson T3 moving average."""
    return t3(
        source(fields, params),
        _period(params, 5),
        params.number("volumeFactor", 0.7, minimum=0, maximum=1),
    )


def _ma_type(params: ParameterSet) -> str:
    return params.choice("type", "SMA", MA_TYPES)


@register("ma", Kind.RECURSIVE, FAMILY, warmup=lambda p: ma_warmup(_period(p), _ma_type(p)))
def _ma(fields, params):
    """Moving average of a selectable type."""
    return moving_average(source(fields, params), _period(params), _ma_type(params))


@register("vwma", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p) - 1)
def _vwma(fields, params):
    """Volume-weighted moving average (plain SMA where the window has no volume)."""
    period = _period(params)
    closes, volumes = fields.closes, fields.volumes
    volume_sum = rolling_sum(volumes, period)
    weighted = safe_divide(rolling_sum(closes * volumes, period), volume_sum)
    return np.where(volume_sum == 0, sma(closes, period), weighted)


@register(
    "hma",
    Kind.RECURSIVE,
    FAMILY,
    warmup=lambda p: ma_warmup(_period(p, 9, minimum=2), "HMA"),
)
def _hma(fields, params):
    """Hull moving average."""
    return hma(source(fields, params), _period(params, 9, minimum=2))


@register("smma", Kind.RECURSIVE, FAMILY, warmup=lambda p: _period(p, 14) - 1)
def _smma(fields, params):
    """Smoothed moving average."""
    return smma(source(fields, params), _period(params, 14))


@register("wilders", Kind.RECURSIVE, FAMILY, warmup=lambda p: _period(p, 14) - 1)
def _wilders(fields, params):
    """Wilder's smoothing (alpha = 1 / period)."""
    return smma(source(fields, params), _period(params, 14))


def _zlema_lag(params: ParameterSet) -> int:
    return (_period(params) - 1) // 2


@register(
    "zlema",
    Kind.RECURSIVE,
    FAMILY,
    warmup=lambda p: _zlema_lag(p) + _period(p) - 1,
)
def _zlema(fields, params):
    """Zero-lag EMA: EMA of 2*x - x[lag]."""
    data = source(fields, params)
    lag = _zlema_lag(params)
    adjusted = 2 * data[lag:] - data[: len(data) - lag] if lag else data
    return ema(adjusted, _period(params))


@register("vidya", Kind.RECURSIVE, FAMILY, warmup=lambda p: _period(p, 14))
def _vidya(fields, params):
    """
    Variable index dynamic average.

    alpha = 2/(period+1) * |CMO(period)| / 100, seeded with the value at
    index `period`.
    """
    data = np.asarray(source(fields, params), dtype=float)
    period = _period(params, 14)
    moves = change(data, 1)
    ups = rolling_sum(np.maximum(moves, 0), period)
    downs = rolling_sum(np.maximum(-moves, 0), period)
    cmo = safe_divide(ups - downs, ups + downs)
    alphas = 2 / (period + 1) * np.abs(cmo)

    result = np.empty(len(alphas))
    result[0] = data[period]
    for i in range(1, len(alphas)):
        result[i] = alphas[i] * data[period + i] + (1 - alphas[i]) * result[i - 1]
    return result


@register("mama", Kind.RECURSIVE, FAMILY, warmup=1, outputs=("mama", "fama"))
def _mama(fields, params):
    """
    MESA-style adaptive average (simplified).

    alpha tracks the absolute one-candle relative change, clamped to
    [slowLimit, fastLimit]; FAMA follows MAMA at half that rate.
    """
    data = np.asarray(source(fields, params), dtype=float)
    fast_limit = params.number("fastLimit", 0.5, minimum=0, maximum=1)
    slow_limit = params.number("slowLimit", 0.05, minimum=0, maximum=1)
    phase = np.abs(safe_divide(change(data, 1), data[:-1]))
    alphas = np.clip(phase, slow_limit, fast_limit)

    mama = np.empty(len(alphas))
    fama = np.empty(len(alphas))
    m = f = data[0]
    for i, alpha in enumerate(alphas):
        m = alpha * data[i + 1] + (1 - alpha) * m
        f = 0.5 * alpha * m + (1 - 0.5 * alpha) * f
        mama[i] = m
        fama[i] = f
    return {"mama": mama, "fama": fama}


@register("midpoint", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 14) - 1)
def _midpoint(fields, params):
    """(highest + lowest) / 2 of one input over the window."""
    data = source(fields, params)
    period = _period(params, 14)
    return (rolling_max(data, period) + rolling_min(data, period)) / 2


@register("midprice", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 14) - 1)
def _midprice(fields, params):
    """(highest high + lowest low) / 2 over the window."""
    period = _period(params, 14)
    return (rolling_max(fields.highs, period) + rolling_min(fields.lows, period)) / 2


@register("alma", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 9) - 1)
def _alma(fields, params):
    """Arnaud Legoux moving average (Gaussian weights)."""
    period = _period(params, 9)
    offset = params.number("offset", 0.85, minimum=0, maximum=1)
    sigma = params.number("sigma", 6, minimum=0.0001)

    m = offset * (period - 1)
    s = period / sigma
    k = np.arange(period, dtype=float)
    weights = np.exp(-((k - m) ** 2) / (2 * s * s))
    return rolling_window(source(fields, params), period) @ weights / weights.sum()


@register("mcginley", Kind.RECURSIVE, FAMILY, warmup=lambda p: _period(p, 14) - 1)
def _mcginley(fields, params):
    """McGinley dynamic, seeded by an SMA."""
    data = np.asarray(source(fields, params), dtype=float)
    period = _period(params, 14)

    result = np.empty(len(data) - period + 1)
    md = np.mean(data[:period])
    result[0] = md
    for i in range(1, len(result)):
        price = data[period - 1 + i]
        denom = period * (price / md) ** 4 if md else 0.0
        md = md + (price - md) / denom if denom else price
        result[i] = md
    return result


def _alligator_periods(params: ParameterSet) -> tuple[int, int, int]:
    return (
        params.period("jawPeriod", 13),
        params.period("teethPeriod", 8),
        params.period("lipsPeriod", 5),
    )


@register(
    "alligator",
    Kind.COMPOSITE,
    FAMILY,
    warmup=lambda p: max(_alligator_periods(p)) - 1,
    outputs=("jaw", "teeth", "lips"),
)
def _alligator(fields, params):
    """Williams Alligator: three SMMAs of the median price."""
    jaw, teeth, lips = _alligator_periods(params)
    median = median_price(fields.highs, fields.lows)
    return {
        "jaw": smma(median, jaw),
        "teeth": smma(median, teeth),
        "lips": smma(median, lips),
    }


