"""
Trend and Directional Indicators
"""

import numpy as np

from indicator_engine.services.indicators.calculations import (
    align,
    change,
    directional_movement,
    median_price,
    rolling_max,
    rolling_min,
    rolling_sum,
    safe_divide,
    smma,
    true_range,
)
from indicator_engine.services.indicators.moving_averages import source
from indicator_engine.services.indicators.params import ParameterSet
from indicator_engine.services.indicators.registry import Kind, register
from indicator_engine.services.indicators.volatility import atr

FAMILY = "trend"


def _period(params: ParameterSet, fallback: int = 14, minimum: int = 1) -> int:
    return params.period("period", fallback, minimum)


# =============================================================================
# DIRECTIONAL MOVEMENT
# =============================================================================


def directional_indicators(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, period: int = 14
) -> tuple[np.ndarray, np.ndarray]:
    """
    +DI / -DI with Wilder smoothing of DM and TR.

    Returns: (plus_di, minus_di), first value at index `period`
    """
    plus_dm, minus_dm = directional_movement(highs, lows)
    ranges = smma(true_range(highs, lows, closes), period)
    plus_di = 100 * safe_divide(smma(plus_dm, period), ranges)
    minus_di = 100 * safe_divide(smma(minus_dm, period), ranges)
    return plus_di, minus_di


def directional_index(plus_di: np.ndarray, minus_di: np.ndarray) -> np.ndarray:
    """DX; 0 where both indicators are 0."""
    return 100 * safe_divide(np.abs(plus_di - minus_di), plus_di + minus_di)


def adx(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, period: int = 14
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Average Directional Index.

    Returns: (adx, plus_di, minus_di), tail-aligned to the ADX
    """
    plus_di, minus_di = directional_indicators(highs, lows, closes, period)
    adx_result = smma(directional_index(plus_di, minus_di), period)
    return align(adx_result, plus_di, minus_di)


@register(
    "adx",
    Kind.RECURSIVE,
    FAMILY,
    warmup=lambda p: 2 * _period(p) - 1,
    outputs=("adx", "pdi", "mdi"),
)
def _adx(fields, params):
    """Average directional index with +DI/-DI."""
    adx_result, plus_di, minus_di = adx(fields.highs, fields.lows, fields.closes, _period(params))
    return {"adx": adx_result, "pdi": plus_di, "mdi": minus_di}


@register("adxr", Kind.RECURSIVE, FAMILY, warmup=lambda p: 3 * _period(p) - 2)
def _adxr(fields, params):
    """ADX rating: mean of ADX now and period - 1 candles ago."""
    period = _period(params)
    adx_result = adx(fields.highs, fields.lows, fields.closes, period)[0]
    lag = period - 1
    return (adx_result[lag:] + adx_result[: len(adx_result) - lag]) / 2


@register("dx", Kind.RECURSIVE, FAMILY, warmup=lambda p: _period(p))
def _dx(fields, params):
    """Directional movement index (unsmoothed DX)."""
    return directional_index(
        *directional_indicators(fields.highs, fields.lows, fields.closes, _period(params))
    )


@register("plus_di", Kind.RECURSIVE, FAMILY, warmup=lambda p: _period(p))
def _plus_di(fields, params):
    """Plus directional indicator."""
    return directional_indicators(fields.highs, fields.lows, fields.closes, _period(params))[0]


@register("minus_di", Kind.RECURSIVE, FAMILY, warmup=lambda p: _period(p))
def _minus_di(fields, params):
    """Minus directional indicator."""
    return directional_indicators(fields.highs, fields.lows, fields.closes, _period(params))[1]


@register("plus_dm", Kind.TRANSFORM, FAMILY, warmup=1)
def _plus_dm(fields, params):
    """Raw plus directional movement."""
    return directional_movement(fields.highs, fields.lows)[0]


@register("minus_dm", Kind.TRANSFORM, FAMILY, warmup=1)
def _minus_dm(fields, params):
    """Raw minus directional movement."""
    return directional_movement(fields.highs, fields.lows)[1]


@register(
    "dmi",
    Kind.RECURSIVE,
    FAMILY,
    warmup=lambda p: _period(p),
    outputs=("pdi", "mdi", "dx"),
)
def _dmi(fields, params):
    """Directional movement system: +DI, -DI and DX."""
    plus_di, minus_di = directional_indicators(
        fields.highs, fields.lows, fields.closes, _period(params)
    )
    return {"pdi": plus_di, "mdi": minus_di, "dx": directional_index(plus_di, minus_di)}


# =============================================================================
# STOP-AND-REVERSE / TRAILING BANDS
# =============================================================================


def parabolic_sar(
    highs: np.ndarray, lows: np.ndarray, step: float = 0.02, maximum: float = 0.2
) -> np.ndarray:
    """
    Parabolic SAR from the second candle on.

    The opening direction is long unless the second candle's down move
    beats its up move.
    """
    n = len(highs)
    result = np.empty(n - 1)

    rising = (highs[1] - highs[0]) >= (lows[0] - lows[1])
    sar = lows[0] if rising else highs[0]
    extreme = highs[1] if rising else lows[1]
    af = step
    result[0] = sar

    for i in range(2, n):
        sar = sar + af * (extreme - sar)
        if rising:
            sar = min(sar, lows[i - 1], lows[i - 2])
            if lows[i] < sar:
                rising = False
                sar, extreme, af = extreme, lows[i], step
            elif highs[i] > extreme:
                extreme = highs[i]
                af = min(af + step, maximum)
        else:
            sar = max(sar, highs[i - 1], highs[i - 2])
            if highs[i] > sar:
                rising = True
                sar, extreme, af = extreme, highs[i], step
            elif lows[i] < extreme:
                extreme = lows[i]
                af = min(af + step, maximum)
        result[i - 1] = sar

    return result


@register("psar", Kind.RECURSIVE, FAMILY, warmup=1)
def _psar(fields, params):
    """Parabolic stop-and-reverse."""
    step = params.number("step", 0.02, minimum=0)
    maximum = params.number("max", 0.2, minimum=0)
    return parabolic_sar(fields.highs, fields.lows, step, max(maximum, step))


def supertrend(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    period: int = 10,
    multiplier: float = 3.0,
) -> dict[str, np.ndarray]:
    """
    Supertrend.

    Final bands ratchet: the upper band only moves down (and the lower band
    only up) unless the previous close broke through it. Direction flips up
    when the close rises above the previous final upper band and flips down
    when it falls below the previous final lower band.

    Returns: {value, upper, lower, direction} with direction +1 / -1
    """
    ranges = atr(highs, lows, closes, period)
    offset = len(closes) - len(ranges)
    hl2 = median_price(highs, lows)[offset:]
    close = closes[offset:]
    basic_upper = hl2 + multiplier * ranges
    basic_lower = hl2 - multiplier * ranges

    count = len(ranges)
    upper = np.empty(count)
    lower = np.empty(count)
    direction = np.empty(count)
    upper[0], lower[0] = basic_upper[0], basic_lower[0]
    direction[0] = 1.0 if close[0] >= hl2[0] else -1.0

    for i in range(1, count):
        if basic_upper[i] < upper[i - 1] or close[i - 1] > upper[i - 1]:
            upper[i] = basic_upper[i]
        else:
            upper[i] = upper[i - 1]

        if basic_lower[i] > lower[i - 1] or close[i - 1] < lower[i - 1]:
            lower[i] = basic_lower[i]
        else:
            lower[i] = lower[i - 1]

        if direction[i - 1] < 0 and close[i] > upper[i - 1]:
            direction[i] = 1.0
        elif direction[i - 1] > 0 and close[i] < lower[i - 1]:
            direction[i] = -1.0
        else:
            direction[i] = direction[i - 1]

    value = np.where(direction > 0, lower, upper)
    return {"value": value, "upper": upper, "lower": lower, "direction": direction}


@register(
    "supertrend",
    Kind.COMPOSITE,
    FAMILY,
    warmup=lambda p: _period(p, 10),
    outputs=("value", "upper", "lower", "direction"),
)
def _supertrend(fields, params):
    """Supertrend trailing band with direction."""
    return supertrend(
        fields.highs,
        fields.lows,
        fields.closes,
        _period(params, 10),
        params.number("multiplier", 3, minimum=0),
    )


# =============================================================================
# TREND STRUCTURE
# =============================================================================


@register(
    "vortex",
    Kind.ROLLING,
    FAMILY,
    warmup=lambda p: _period(p),
    outputs=("plus", "minus"),
)
def _vortex(fields, params):
    """Vortex indicator: summed vortex movement over summed true range."""
    period = _period(params)
    highs, lows = fields.highs, fields.lows
    plus_vm = np.abs(highs[1:] - lows[:-1])
    minus_vm = np.abs(lows[1:] - highs[:-1])
    ranges = rolling_sum(true_range(highs, lows, fields.closes), period)
    return {
        "plus": safe_divide(rolling_sum(plus_vm, period), ranges),
        "minus": safe_divide(rolling_sum(minus_vm, period), ranges),
    }


def _ichimoku_periods(params: ParameterSet) -> tuple[int, int, int, int]:
    return (
        params.period("conversionPeriod", 9),
        params.period("basePeriod", 26),
        params.period("spanPeriod", 52),
        params.integer("displacement", 26, minimum=0),
    )


def _ichimoku_warmup(params: ParameterSet) -> int:
    conversion, base, span, displacement = _ichimoku_periods(params)
    return max(conversion - 1, base - 1, span - 1, displacement)


def _channel_mid(highs: np.ndarray, lows: np.ndarray, period: int) -> np.ndarray:
    return (rolling_max(highs, period) + rolling_min(lows, period)) / 2


@register(
    "ichimoku",
    Kind.COMPOSITE,
    FAMILY,
    warmup=_ichimoku_warmup,
    outputs=("tenkan", "kijun", "senkouA", "senkouB", "chikou"),
)
def _ichimoku(fields, params):
    """
    Ichimoku cloud.

    Senkou spans are reported on the candle they are computed from (they are
    plotted `displacement` candles ahead); chikou is the close `displacement`
    candles back, so nothing reads a future candle.
    """
    conversion, base, span, displacement = _ichimoku_periods(params)
    highs, lows, closes = fields.highs, fields.lows, fields.closes
    tenkan = _channel_mid(highs, lows, conversion)
    kijun = _channel_mid(highs, lows, base)
    tenkan_a, kijun_a = align(tenkan, kijun)
    chikou = closes[: len(closes) - displacement]
    return {
        "tenkan": tenkan,
        "kijun": kijun,
        "senkouA": (tenkan_a + kijun_a) / 2,
        "senkouB": _channel_mid(highs, lows, span),
        "chikou": chikou,
    }


def td_sequential(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """
    TD Sequential from the fifth candle on.

    Setup counts consecutive closes below (+) or above (-) the close four
    candles earlier. A setup reaching 9 arms a countdown in that direction
    which advances on closes at/below the low (buy) or at/above the high
    (sell) two candles earlier and completes at 13. An opposite setup of 9
    replaces an armed countdown.

    Returns: (setup, countdown), both signed
    """
    n = len(closes)
    setup = np.zeros(n - 4)
    countdown = np.zeros(n - 4)
    count = 0
    armed = 0
    progress = 0

    for i in range(4, n):
        if closes[i] < closes[i - 4]:
            count = count + 1 if count >= 0 else 1
        elif closes[i] > closes[i - 4]:
            count = count - 1 if count <= 0 else -1
        else:
            count = 0

        if abs(count) == 9:
            armed = 1 if count > 0 else -1
            progress = 0
        elif armed > 0 and closes[i] <= lows[i - 2]:
            progress += 1
        elif armed < 0 and closes[i] >= highs[i - 2]:
            progress += 1

        setup[i - 4] = count
        countdown[i - 4] = armed * progress
        if progress == 13:
            armed = 0
            progress = 0

    return setup, countdown


@register(
    "tdsequential",
    Kind.COMPOSITE,
    FAMILY,
    warmup=4,
    outputs=("setup", "countdown"),
)
def _tdsequential(fields, params):
    """TD Sequential setup and countdown counts."""
    setup, countdown = td_sequential(fields.highs, fields.lows, fields.closes)
    return {"setup": setup, "countdown": countdown}


def instantaneous_trendline(data: np.ndarray, alpha: float = 0.07) -> np.ndarray:
    """
    Ehlers instantaneous trendline from the third value on.

    The first seven points use the 1-2-1 FIR average to seed the recursion.
    """
    data = np.asarray(data, dtype=float)
    n = len(data)
    trend = np.empty(n)
    trend[:2] = data[:2]
    a2 = alpha * alpha

    for i in range(2, n):
        if i < 7:
            trend[i] = (data[i] + 2 * data[i - 1] + data[i - 2]) / 4
        else:
            trend[i] = (
                (alpha - a2 / 4) * data[i]
                + 0.5 * a2 * data[i - 1]
                - (alpha - 0.75 * a2) * data[i - 2]
                + 2 * (1 - alpha) * trend[i - 1]
                - (1 - alpha) ** 2 * trend[i - 2]
            )

    return trend[2:]


@register("ht_trendline", Kind.RECURSIVE, FAMILY, warmup=2)
def _ht_trendline(fields, params):
    """Hilbert-transform instantaneous trendline."""
    return instantaneous_trendline(source(fields, params))


@register("vhf", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 28))
def _vhf(fields, params):
    """Vertical horizontal filter: close range over summed absolute changes."""
    period = _period(params, 28)
    closes = fields.closes
    spread = rolling_max(closes, period) - rolling_min(closes, period)
    travel = rolling_sum(np.abs(change(closes, 1)), period)
    spread, travel = align(spread, travel)
    return safe_divide(spread, travel)
