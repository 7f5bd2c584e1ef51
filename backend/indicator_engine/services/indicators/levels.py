"""
Support / Resistance Levels
"""

import numpy as np

from indicator_engine.services.base import ConfigurationError
from indicator_engine.services.indicators.params import ParameterSet
from indicator_engine.services.indicators.registry import Kind, register

FAMILY = "levels"

PIVOT_TYPES = ("standard", "fibonacci", "camarilla")
PIVOT_OUTPUTS = ("pivot", "r1", "r2", "r3", "s1", "s2", "s3")

FIB_RATIOS = {
    "level_0": 0.0,
    "level_236": 0.236,
    "level_382": 0.382,
    "level_500": 0.5,
    "level_618": 0.618,
    "level_786": 0.786,
    "level_100": 1.0,
}


# =============================================================================
# PIVOT POINTS
# =============================================================================


def find_pivot_points(high, low, close, pivot_type: str = "standard") -> dict:
    """
    Calculate pivot points from one candle's high, low and close.

    Works element-wise on arrays as well as on plain numbers.
    Types: standard, fibonacci, camarilla
    """
    pivot = (high + low + close) / 3
    diff = high - low

    if pivot_type == "standard":
        r1 = (2 * pivot) - low
        r2 = pivot + diff
        r3 = high + 2 * (pivot - low)
        s1 = (2 * pivot) - high
        s2 = pivot - diff
        s3 = low - 2 * (high - pivot)

    elif pivot_type == "fibonacci":
        r1 = pivot + (0.382 * diff)
        r2 = pivot + (0.618 * diff)
        r3 = pivot + diff
        s1 = pivot - (0.382 * diff)
        s2 = pivot - (0.618 * diff)
        s3 = pivot - diff

    elif pivot_type == "camarilla":
        r1 = close + (diff * 1.1 / 12)
        r2 = close + (diff * 1.1 / 6)
        r3 = close + (diff * 1.1 / 4)
        s1 = close - (diff * 1.1 / 12)
        s2 = close - (diff * 1.1 / 6)
        s3 = close - (diff * 1.1 / 4)

    else:
        raise ConfigurationError(f"Unknown pivot type: {pivot_type}", {"type": pivot_type})

    return {"pivot": pivot, "r1": r1, "r2": r2, "r3": r3, "s1": s1, "s2": s2, "s3": s3}


@register("pivotpoints", Kind.COMPOSITE, FAMILY, warmup=1, outputs=PIVOT_OUTPUTS)
def _pivotpoints(fields, params):
    """Pivot points for each candle, built from the previous candle."""
    pivot_type = params.choice("type", "standard", PIVOT_TYPES)
    return find_pivot_points(
        fields.highs[:-1], fields.lows[:-1], fields.closes[:-1], pivot_type
    )


@register("fibretracement", Kind.AGGREGATE, FAMILY, warmup=0)
def _fibretracement(fields, params):
    """Fibonacci retracement levels between the series' high and low."""
    high = float(np.max(fields.highs))
    low = float(np.min(fields.lows))
    diff = high - low
    levels = {name: high - ratio * diff for name, ratio in FIB_RATIOS.items()}
    levels["level_100"] = low
    return levels


# =============================================================================
# SWINGS
# =============================================================================


def _lookback(params: ParameterSet, fallback: int = 5, minimum: int = 1) -> int:
    return params.period("lookback", fallback, minimum)


def prior_swing(values: np.ndarray, lookback: int, highs: bool = True) -> np.ndarray:
    """
    Most recent swing extreme from candle `lookback` on.

    A window of lookback + 1 candles whose extreme sits strictly inside it
    sets a new swing; otherwise the previous swing carries forward (the
    first window falls back to its own extreme).
    """
    extreme = np.argmax if highs else np.argmin
    result = np.empty(len(values) - lookback)
    last = None

    for i in range(lookback, len(values)):
        window = values[i - lookback:i + 1]
        idx = int(extreme(window))
        if 0 < idx < len(window) - 1 or last is None:
            last = window[idx]
        result[i - lookback] = last

    return result


@register("swinghigh", Kind.ROLLING, FAMILY, warmup=lambda p: _lookback(p))
def _swinghigh(fields, params):
    """Prior swing high."""
    return prior_swing(fields.highs, _lookback(params), highs=True)


@register("swinglow", Kind.ROLLING, FAMILY, warmup=lambda p: _lookback(p))
def _swinglow(fields, params):
    """Prior swing low."""
    return prior_swing(fields.lows, _lookback(params), highs=False)


# =============================================================================
# SUPPORT / RESISTANCE
# =============================================================================


def find_support_resistance(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, lookback: int = 50
) -> tuple[list[float], list[float]]:
    """
    Find support and resistance levels using local minima/maxima.

    A level is a high (low) strictly above (below) the two candles on each
    side of it within the last `lookback` candles. Resistance must sit above
    the current close and support below it; the five nearest of each are kept.

    Returns: (support_levels, resistance_levels)
    """
    recent_highs = highs[-lookback:]
    recent_lows = lows[-lookback:]
    current_price = closes[-1]

    # Find local maxima (resistance)
    resistance = []
    for i in range(2, len(recent_highs) - 2):
        if (
            recent_highs[i] > recent_highs[i - 1]
            and recent_highs[i] > recent_highs[i - 2]
            and recent_highs[i] > recent_highs[i + 1]
            and recent_highs[i] > recent_highs[i + 2]
        ):
            if recent_highs[i] > current_price:
                resistance.append(float(recent_highs[i]))

    # Find local minima (support)
    support = []
    for i in range(2, len(recent_lows) - 2):
        if (
            recent_lows[i] < recent_lows[i - 1]
            and recent_lows[i] < recent_lows[i - 2]
            and recent_lows[i] < recent_lows[i + 1]
            and recent_lows[i] < recent_lows[i + 2]
        ):
            if recent_lows[i] < current_price:
                support.append(float(recent_lows[i]))

    # Nearest first
    resistance = sorted(set(resistance))[:5]
    support = sorted(set(support), reverse=True)[:5]

    return support, resistance


@register(
    "supportresistance",
    Kind.AGGREGATE,
    FAMILY,
    warmup=lambda p: _lookback(p, 50, minimum=5) - 1,
)
def _supportresistance(fields, params):
    """Nearest support and resistance levels from recent local extrema."""
    support, resistance = find_support_resistance(
        fields.highs, fields.lows, fields.closes, _lookback(params, 50, minimum=5)
    )
    return {"support": support, "resistance": resistance}
