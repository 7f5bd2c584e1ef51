"""
Volume Indicators
"""

import numpy as np

from indicator_engine.services.indicators.calculations import (
    align,
    change,
    ema,
    median_price,
    money_flow_multiplier,
    rolling_sum,
    safe_divide,
    sma,
    typical_price,
)
from indicator_engine.services.indicators.params import ParameterSet
from indicator_engine.services.indicators.registry import Kind, register

FAMILY = "volume"


def _period(params: ParameterSet, fallback: int = 20, minimum: int = 1) -> int:
    return params.period("period", fallback, minimum)


# =============================================================================
# CUMULATIVE FLOWS
# =============================================================================


def obv(closes: np.ndarray, volumes: np.ndarray) -> np.ndarray:
    """On-Balance Volume, starting from the first candle's volume."""
    signed = np.sign(np.diff(closes)) * volumes[1:]
    return volumes[0] + np.concatenate(([0.0], np.cumsum(signed)))


def accumulation_distribution(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, volumes: np.ndarray
) -> np.ndarray:
    return np.cumsum(money_flow_multiplier(highs, lows, closes) * volumes)


@register("obv", Kind.TRANSFORM, FAMILY, warmup=0)
def _obv(fields, params):
    """On-balance volume."""
    return obv(fields.closes, fields.volumes)


@register("ad", Kind.TRANSFORM, FAMILY, warmup=0)
def _ad(fields, params):
    """Accumulation/distribution line."""
    return accumulation_distribution(fields.highs, fields.lows, fields.closes, fields.volumes)


def _adosc_periods(params: ParameterSet) -> tuple[int, int]:
    return params.period("fastPeriod", 3), params.period("slowPeriod", 10)


@register("adosc", Kind.RECURSIVE, FAMILY, warmup=lambda p: max(_adosc_periods(p)) - 1)
def _adosc(fields, params):
    """Chaikin A/D oscillator: EMA(fast) - EMA(slow) of the A/D line."""
    fast_period, slow_period = _adosc_periods(params)
    line = accumulation_distribution(fields.highs, fields.lows, fields.closes, fields.volumes)
    fast, slow = align(ema(line, fast_period), ema(line, slow_period))
    return fast - slow


@register("cmf", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p) - 1)
def _cmf(fields, params):
    """Chaikin money flow."""
    period = _period(params)
    flow = money_flow_multiplier(fields.highs, fields.lows, fields.closes) * fields.volumes
    return safe_divide(rolling_sum(flow, period), rolling_sum(fields.volumes, period))


def vwap(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    volumes: np.ndarray,
    period: int = 0,
) -> np.ndarray:
    """
    Volume Weighted Average Price.

    Cumulative from the first candle when `period` is 0, else over a trailing
    window. Where no volume has traded yet the typical price is used.
    """
    tp = typical_price(highs, lows, closes)
    if period:
        tpv = rolling_sum(tp * volumes, period)
        volume = rolling_sum(volumes, period)
        tp = tp[period - 1:]
    else:
        tpv = np.cumsum(tp * volumes)
        volume = np.cumsum(volumes)
    return np.where(volume == 0, tp, safe_divide(tpv, volume))


def _vwap_period(params: ParameterSet) -> int:
    return params.integer("period", 0, minimum=0)


@register("vwap", Kind.ROLLING, FAMILY, warmup=lambda p: max(_vwap_period(p) - 1, 0))
def _vwap(fields, params):
    """Volume-weighted average price (cumulative, or rolling when period > 0)."""
    return vwap(fields.highs, fields.lows, fields.closes, fields.volumes, _vwap_period(params))


@register("volume", Kind.TRANSFORM, FAMILY, warmup=0)
def _volume(fields, params):
    """Raw volume."""
    return np.array(fields.volumes, dtype=float)


def _volume_index(closes: np.ndarray, volumes: np.ndarray, rising: bool) -> np.ndarray:
    """NVI/PVI: compound the close change only on candles where volume fell/rose."""
    pct = safe_divide(np.diff(closes), closes[:-1])
    volume_change = np.diff(volumes)
    active = volume_change > 0 if rising else volume_change < 0
    growth = np.where(active, 1 + pct, 1.0)
    return 1000 * np.concatenate(([1.0], np.cumprod(growth)))


@register("nvi", Kind.TRANSFORM, FAMILY, warmup=0)
def _nvi(fields, params):
    """Negative volume index, starting at 1000."""
    return _volume_index(fields.closes, fields.volumes, rising=False)


@register("pvi", Kind.TRANSFORM, FAMILY, warmup=0)
def _pvi(fields, params):
    """Positive volume index, starting at 1000."""
    return _volume_index(fields.closes, fields.volumes, rising=True)


def _vosc_periods(params: ParameterSet) -> tuple[int, int]:
    return params.period("shortPeriod", 5), params.period("longPeriod", 10)


@register("vosc", Kind.ROLLING, FAMILY, warmup=lambda p: max(_vosc_periods(p)) - 1)
def _vosc(fields, params):
    """Volume oscillator: percent gap between short and long volume SMAs."""
    short_period, long_period = _vosc_periods(params)
    short, long = align(sma(fields.volumes, short_period), sma(fields.volumes, long_period))
    return safe_divide(100 * (short - long), long)


@register(
    "volumesplit",
    Kind.TRANSFORM,
    FAMILY,
    warmup=1,
    outputs=("buyVolume", "sellVolume"),
)
def _volumesplit(fields, params):
    """Volume attributed to buyers/sellers by close direction (split evenly when flat)."""
    direction = change(fields.closes, 1)
    volumes = fields.volumes[1:]
    buy = np.where(direction > 0, volumes, np.where(direction == 0, volumes / 2, 0.0))
    return {"buyVolume": buy, "sellVolume": volumes - buy}


def _kvo_periods(params: ParameterSet) -> tuple[int, int, int]:
    return (
        params.period("shortPeriod", 34),
        params.period("longPeriod", 55),
        params.period("signalPeriod", 13),
    )


def _kvo_warmup(params: ParameterSet) -> int:
    short_period, long_period, signal_period = _kvo_periods(params)
    return max(short_period, long_period) + signal_period - 1


@register("kvo", Kind.COMPOSITE, FAMILY, warmup=_kvo_warmup, outputs=("kvo", "signal"))
def _kvo(fields, params):
    """Klinger volume oscillator with signal line."""
    short_period, long_period, signal_period = _kvo_periods(params)
    highs, lows, closes = fields.highs, fields.lows, fields.closes

    hlc = highs + lows + closes
    trend = np.where(change(hlc, 1) > 0, 1.0, -1.0)
    dm = (highs - lows)[1:]

    cm = np.empty(len(dm))
    cm[0] = dm[0]
    for i in range(1, len(dm)):
        cm[i] = cm[i - 1] + dm[i] if trend[i] == trend[i - 1] else dm[i - 1] + dm[i]

    force = fields.volumes[1:] * trend * 100 * safe_divide(dm, cm)
    short, long = align(ema(force, short_period), ema(force, long_period))
    kvo = short - long
    return {"kvo": kvo, "signal": ema(kvo, signal_period)}


@register("wad", Kind.TRANSFORM, FAMILY, warmup=0)
def _wad(fields, params):
    """Williams accumulation/distribution (0 at the first candle)."""
    closes = fields.closes
    prev_close = closes[:-1]
    current = closes[1:]
    true_high = np.maximum(fields.highs[1:], prev_close)
    true_low = np.minimum(fields.lows[1:], prev_close)
    step = np.where(
        current > prev_close,
        current - true_low,
        np.where(current < prev_close, current - true_high, 0.0),
    )
    return np.concatenate(([0.0], np.cumsum(step)))


@register("efi", Kind.RECURSIVE, FAMILY, warmup=lambda p: _period(p, 13))
def _efi(fields, params):
    """Elder force index: EMA of close change * volume."""
    force = change(fields.closes, 1) * fields.volumes[1:]
    return ema(force, _period(params, 13))


@register("vpt", Kind.TRANSFORM, FAMILY, warmup=0)
def _vpt(fields, params):
    """Volume price trend (0 at the first candle)."""
    closes = fields.closes
    pct = safe_divide(np.diff(closes), closes[:-1])
    return np.concatenate(([0.0], np.cumsum(pct * fields.volumes[1:])))


@register("eom", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 14))
def _eom(fields, params):
    """Ease of movement: SMA of midpoint move / box ratio."""
    period = _period(params, 14)
    divisor = params.number("divisor", 10000, minimum=1)
    distance = change(median_price(fields.highs, fields.lows), 1)
    box_ratio = safe_divide(fields.volumes[1:] / divisor, (fields.highs - fields.lows)[1:])
    return sma(safe_divide(distance, box_ratio), period)
