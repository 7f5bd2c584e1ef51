"""
Momentum Indicators and Oscillators
"""

import numpy as np

from indicator_engine.services.indicators.calculations import (
    align,
    change,
    ema,
    exponential,
    mean_deviation,
    median_price,
    rolling_linreg,
    rolling_max,
    rolling_min,
    rolling_position,
    rolling_sum,
    rolling_window,
    safe_divide,
    sma,
    smma,
    typical_price,
    wma,
)
from indicator_engine.services.indicators.moving_averages import (
    MA_TYPES,
    ma_warmup,
    moving_average,
)
from indicator_engine.services.indicators.params import ParameterSet
from indicator_engine.services.indicators.registry import Kind, register

FAMILY = "momentum"


def _period(params: ParameterSet, fallback: int = 14, minimum: int = 1) -> int:
    return params.period("period", fallback, minimum)


# =============================================================================
# RELATIVE STRENGTH
# =============================================================================


def rsi(closes: np.ndarray, period: int = 14) -> np.ndarray:
    """
    Relative Strength Index (Wilder smoothing).

    First value uses candles 0..period. A window with no movement reads 50.
    """
    deltas = change(closes, 1)
    avg_gain = smma(np.maximum(deltas, 0), period)
    avg_loss = smma(np.maximum(-deltas, 0), period)
    return safe_divide(100 * avg_gain, avg_gain + avg_loss, fill=50.0)


@register("rsi", Kind.RECURSIVE, FAMILY, warmup=lambda p: _period(p))
def _rsi(fields, params):
    """Relative strength index."""
    return rsi(fields.closes, _period(params))


def cmo(closes: np.ndarray, period: int) -> np.ndarray:
    """Chande Momentum Oscillator in [-100, 100]."""
    deltas = change(closes, 1)
    ups = rolling_sum(np.maximum(deltas, 0), period)
    downs = rolling_sum(np.maximum(-deltas, 0), period)
    return safe_divide(100 * (ups - downs), ups + downs)


@register("cmo", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p))
def _cmo(fields, params):
    """Chande momentum oscillator."""
    return cmo(fields.closes, _period(params))


# =============================================================================
# MACD FAMILY
# =============================================================================


def macd(
    closes: np.ndarray,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
    simple_oscillator: bool = False,
    simple_signal: bool = False,
) -> dict[str, np.ndarray]:
    """
    MACD (Moving Average Convergence Divergence).

    Returns: {macd, signal, histogram}, all defined from the first signal value
    """
    oscillator_ma = sma if simple_oscillator else ema
    fast, slow = align(oscillator_ma(closes, fast_period), oscillator_ma(closes, slow_period))
    macd_line = fast - slow

    signal_line = (sma if simple_signal else ema)(macd_line, signal_period)
    macd_line, signal_line = align(macd_line, signal_line)

    return {"macd": macd_line, "signal": signal_line, "histogram": macd_line - signal_line}


def _macd_periods(params: ParameterSet) -> tuple[int, int, int]:
    return (
        params.period("fastPeriod", 12),
        params.period("slowPeriod", 26),
        params.period("signalPeriod", 9),
    )


def _macd_warmup(params: ParameterSet) -> int:
    fast, slow, signal = _macd_periods(params)
    return max(fast, slow) - 1 + signal - 1


MACD_OUTPUTS = ("macd", "signal", "histogram")


@register("macd", Kind.COMPOSITE, FAMILY, warmup=_macd_warmup, outputs=MACD_OUTPUTS)
def _macd(fields, params):
    """MACD line, signal line and histogram."""
    return macd(fields.closes, *_macd_periods(params))


@register("macdext", Kind.COMPOSITE, FAMILY, warmup=_macd_warmup, outputs=MACD_OUTPUTS)
def _macdext(fields, params):
    """MACD with selectable SMA smoothing for the oscillator and/or signal."""
    return macd(
        fields.closes,
        *_macd_periods(params),
        simple_oscillator=params.flag("SimpleMAOscillator", False),
        simple_signal=params.flag("SimpleMASignal", False),
    )


@register(
    "macdfix",
    Kind.COMPOSITE,
    FAMILY,
    warmup=lambda p: 25 + p.period("signalPeriod", 9) - 1,
    outputs=MACD_OUTPUTS,
)
def _macdfix(fields, params):
    """MACD fixed at 12/26 with a configurable signal period."""
    return macd(fields.closes, 12, 26, params.period("signalPeriod", 9))


def _oscillator_periods(params: ParameterSet) -> tuple[int, int]:
    return params.period("fastPeriod", 12), params.period("slowPeriod", 26)


def _apo_type(params: ParameterSet) -> str:
    return params.choice("type", "EMA", MA_TYPES)


def _apo_warmup(params: ParameterSet) -> int:
    ma_type = _apo_type(params)
    return max(ma_warmup(period, ma_type) for period in _oscillator_periods(params))


@register("apo", Kind.RECURSIVE, FAMILY, warmup=_apo_warmup)
def _apo(fields, params):
    """Absolute price oscillator: fast MA - slow MA."""
    fast_period, slow_period = _oscillator_periods(params)
    ma_type = _apo_type(params)
    fast, slow = align(
        moving_average(fields.closes, fast_period, ma_type),
        moving_average(fields.closes, slow_period, ma_type),
    )
    return fast - slow


@register(
    "ppo",
    Kind.COMPOSITE,
    FAMILY,
    warmup=_macd_warmup,
    outputs=("ppo", "signal", "histogram"),
)
def _ppo(fields, params):
    """Percentage price oscillator with signal line."""
    fast_period, slow_period, signal_period = _macd_periods(params)
    fast, slow = align(ema(fields.closes, fast_period), ema(fields.closes, slow_period))
    ppo = safe_divide(100 * (fast - slow), slow)
    signal = ema(ppo, signal_period)
    ppo, signal = align(ppo, signal)
    return {"ppo": ppo, "signal": signal, "histogram": ppo - signal}


# =============================================================================
# STOCHASTICS
# =============================================================================


def stochastic(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    k_period: int = 14,
    k_smoothing: int = 1,
    d_period: int = 3,
) -> dict[str, np.ndarray]:
    """
    Stochastic Oscillator. A flat window reads 50.

    Returns: {k, d}
    """
    k = rolling_position(closes, highs, lows, k_period)
    if k_smoothing > 1:
        k = sma(k, k_smoothing)
    d = sma(k, d_period)
    return {"k": k, "d": d}


def _stoch_warmup(params: ParameterSet) -> int:
    return (
        _period(params)
        - 1
        + params.period("kSmoothing", 1)
        - 1
        + params.period("signalPeriod", 3)
        - 1
    )


@register("stoch", Kind.COMPOSITE, FAMILY, warmup=_stoch_warmup, outputs=("k", "d"))
def _stoch(fields, params):
    """Slow stochastic %K/%D."""
    return stochastic(
        fields.highs,
        fields.lows,
        fields.closes,
        _period(params),
        params.period("kSmoothing", 1),
        params.period("signalPeriod", 3),
    )


@register(
    "stochf",
    Kind.COMPOSITE,
    FAMILY,
    warmup=lambda p: _period(p, 5) - 1 + p.period("signalPeriod", 3) - 1,
    outputs=("k", "d"),
)
def _stochf(fields, params):
    """Fast stochastic (unsmoothed %K)."""
    return stochastic(
        fields.highs,
        fields.lows,
        fields.closes,
        _period(params, 5),
        1,
        params.period("signalPeriod", 3),
    )


def _stochrsi_periods(params: ParameterSet) -> tuple[int, int, int, int]:
    return (
        params.period("rsiPeriod", 14),
        params.period("stochasticPeriod", 14),
        params.period("kPeriod", 3),
        params.period("dPeriod", 3),
    )


def _stochrsi_warmup(params: ParameterSet) -> int:
    rsi_period, stoch_period, k_period, d_period = _stochrsi_periods(params)
    return rsi_period + stoch_period - 1 + k_period - 1 + d_period - 1


@register(
    "stochrsi",
    Kind.COMPOSITE,
    FAMILY,
    warmup=_stochrsi_warmup,
    outputs=("stochRSI", "k", "d"),
)
def _stochrsi(fields, params):
    """Stochastic of RSI with %K/%D smoothing."""
    rsi_period, stoch_period, k_period, d_period = _stochrsi_periods(params)
    rsi_values = rsi(fields.closes, rsi_period)
    stoch_rsi = rolling_position(rsi_values, rsi_values, rsi_values, stoch_period)
    k = sma(stoch_rsi, k_period)
    d = sma(k, d_period)
    return {"stochRSI": stoch_rsi, "k": k, "d": d}


@register("willr", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p) - 1)
def _willr(fields, params):
    """Williams %R in [-100, 0]; a flat window reads -50."""
    position = rolling_position(fields.closes, fields.highs, fields.lows, _period(params))
    return position - 100


# =============================================================================
# AROON / RANGE OSCILLATORS
# =============================================================================


def aroon(highs: np.ndarray, lows: np.ndarray, period: int) -> dict[str, np.ndarray]:
    """
    Aroon up/down over a window of period + 1 candles.

    Ties resolve to the most recent extreme.
    """
    high_windows = rolling_window(highs, period + 1)
    low_windows = rolling_window(lows, period + 1)
    # argmax on the reversed window finds the most recent extreme
    since_high = np.argmax(high_windows[:, ::-1], axis=1)
    since_low = np.argmin(low_windows[:, ::-1], axis=1)
    return {
        "up": 100 * (period - since_high) / period,
        "down": 100 * (period - since_low) / period,
    }


@register("aroon", Kind.COMPOSITE, FAMILY, warmup=lambda p: _period(p), outputs=("up", "down"))
def _aroon(fields, params):
    """Aroon up / down."""
    return aroon(fields.highs, fields.lows, _period(params))


@register("aroonosc", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p))
def _aroonosc(fields, params):
    """Aroon up minus Aroon down."""
    lines = aroon(fields.highs, fields.lows, _period(params))
    return lines["up"] - lines["down"]


@register("bop", Kind.TRANSFORM, FAMILY, warmup=0)
def _bop(fields, params):
    """Balance of power: (close - open) / (high - low)."""
    return safe_divide(fields.closes - fields.opens, fields.highs - fields.lows)


@register("cci", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 20) - 1)
def _cci(fields, params):
    """Commodity channel index."""
    period = _period(params, 20)
    tp = typical_price(fields.highs, fields.lows, fields.closes)
    return safe_divide(tp[period - 1:] - sma(tp, period), 0.015 * mean_deviation(tp, period))


@register("mfi", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p))
def _mfi(fields, params):
    """Money flow index: volume-weighted RSI of the typical price."""
    period = _period(params)
    tp = typical_price(fields.highs, fields.lows, fields.closes)
    raw_money_flow = (tp * fields.volumes)[1:]
    direction = change(tp, 1)

    pos_flow = rolling_sum(np.where(direction > 0, raw_money_flow, 0.0), period)
    neg_flow = rolling_sum(np.where(direction < 0, raw_money_flow, 0.0), period)
    return safe_divide(100 * pos_flow, pos_flow + neg_flow, fill=50.0)


# =============================================================================
# RATE OF CHANGE
# =============================================================================


@register("mom", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 10))
def _mom(fields, params):
    """Momentum: close - close[period]."""
    return change(fields.closes, _period(params, 10))


def _rate(closes: np.ndarray, period: int) -> tuple[np.ndarray, np.ndarray]:
    return closes[period:], closes[:-period]


@register("roc", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 12))
def _roc(fields, params):
    """Rate of change in percent."""
    current, past = _rate(fields.closes, _period(params, 12))
    return safe_divide(100 * (current - past), past)


@register("rocp", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 12))
def _rocp(fields, params):
    """Rate of change as a fraction: (close - prev) / prev."""
    current, past = _rate(fields.closes, _period(params, 12))
    return safe_divide(current - past, past)


@register("rocr", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 12))
def _rocr(fields, params):
    """Rate of change ratio: close / prev (1 where prev is 0)."""
    current, past = _rate(fields.closes, _period(params, 12))
    return safe_divide(current, past, fill=1.0)


@register("rocr100", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 12))
def _rocr100(fields, params):
    """Rate of change ratio scaled to 100."""
    current, past = _rate(fields.closes, _period(params, 12))
    return safe_divide(100 * current, past, fill=100.0)


# =============================================================================
# MULTI-PERIOD OSCILLATORS
# =============================================================================


def _ultosc_periods(params: ParameterSet) -> tuple[int, int, int]:
    return (
        params.period("period1", 7),
        params.period("period2", 14),
        params.period("period3", 28),
    )


@register("ultosc", Kind.ROLLING, FAMILY, warmup=lambda p: max(_ultosc_periods(p)))
def _ultosc(fields, params):
    """Ultimate oscillator (4:2:1 weighting of three buying-pressure averages)."""
    highs, lows, closes = fields.highs, fields.lows, fields.closes
    prev_close = closes[:-1]
    true_low = np.minimum(lows[1:], prev_close)
    buying_pressure = closes[1:] - true_low
    true_range = np.maximum(highs[1:], prev_close) - true_low

    averages = [
        safe_divide(rolling_sum(buying_pressure, period), rolling_sum(true_range, period))
        for period in _ultosc_periods(params)
    ]
    a1, a2, a3 = align(*averages)
    return 100 * (4 * a1 + 2 * a2 + a3) / 7


@register("trix", Kind.RECURSIVE, FAMILY, warmup=lambda p: 3 * _period(p, 18) - 2)
def _trix(fields, params):
    """One-candle percent change of a triple EMA."""
    period = _period(params, 18)
    triple = ema(ema(ema(fields.closes, period), period), period)
    return safe_divide(100 * change(triple, 1), triple[:-1])


def _tsi_periods(params: ParameterSet) -> tuple[int, int, int]:
    return (
        params.period("longPeriod", 25),
        params.period("shortPeriod", 13),
        params.period("signalPeriod", 13),
    )


@register(
    "tsi",
    Kind.COMPOSITE,
    FAMILY,
    warmup=lambda p: sum(_tsi_periods(p)) - 2,
    outputs=("tsi", "signal"),
)
def _tsi(fields, params):
    """True strength index (double-smoothed momentum) with signal line."""
    long_period, short_period, signal_period = _tsi_periods(params)
    momentum = change(fields.closes, 1)
    smoothed = ema(ema(momentum, long_period), short_period)
    smoothed_abs = ema(ema(np.abs(momentum), long_period), short_period)
    tsi = safe_divide(100 * smoothed, smoothed_abs)
    return {"tsi": tsi, "signal": ema(tsi, signal_period)}


def awesome_oscillator(highs: np.ndarray, lows: np.ndarray) -> np.ndarray:
    median = median_price(highs, lows)
    fast, slow = align(sma(median, 5), sma(median, 34))
    return fast - slow


@register("ao", Kind.ROLLING, FAMILY, warmup=33)
def _ao(fields, params):
    """Awesome oscillator: SMA5 - SMA34 of the median price."""
    return awesome_oscillator(fields.highs, fields.lows)


@register("ac", Kind.ROLLING, FAMILY, warmup=37)
def _ac(fields, params):
    """Accelerator oscillator: AO - SMA5(AO)."""
    ao = awesome_oscillator(fields.highs, fields.lows)
    ao, ao_sma = align(ao, sma(ao, 5))
    return ao - ao_sma


def _dpo_shift(period: int) -> int:
    return period // 2 + 1


@register(
    "dpo",
    Kind.ROLLING,
    FAMILY,
    warmup=lambda p: max(_period(p, 20) - 1, _dpo_shift(_period(p, 20))),
)
def _dpo(fields, params):
    """
    Detrended price oscillator (causal form).

    close[i - shift] - SMA(period)[i], shift = period // 2 + 1.
    """
    period = _period(params, 20)
    shift = _dpo_shift(period)
    closes = fields.closes
    n = len(closes)
    start = max(period - 1, shift)
    averages = sma(closes, period)[start - (period - 1):]
    return closes[start - shift: n - shift] - averages


def _coppock_periods(params: ParameterSet) -> tuple[int, int, int]:
    return (
        params.period("longPeriod", 14),
        params.period("shortPeriod", 11),
        params.period("wmaPeriod", 10),
    )


@register(
    "coppock",
    Kind.ROLLING,
    FAMILY,
    warmup=lambda p: max(_coppock_periods(p)[:2]) + _coppock_periods(p)[2] - 1,
)
def _coppock(fields, params):
    """Coppock curve: WMA of the sum of two rates of change."""
    long_period, short_period, wma_period = _coppock_periods(params)
    closes = fields.closes
    long_roc = safe_divide(100 * change(closes, long_period), closes[:-long_period])
    short_roc = safe_divide(100 * change(closes, short_period), closes[:-short_period])
    long_roc, short_roc = align(long_roc, short_roc)
    return wma(long_roc + short_roc, wma_period)


def _stc_periods(params: ParameterSet) -> tuple[int, int, int]:
    return (
        params.period("fastPeriod", 23),
        params.period("slowPeriod", 50),
        params.period("cyclePeriod", 10),
    )


def _stc_warmup(params: ParameterSet) -> int:
    fast, slow, cycle = _stc_periods(params)
    return max(fast, slow) - 1 + 2 * (cycle - 1)


@register("stc", Kind.RECURSIVE, FAMILY, warmup=_stc_warmup)
def _stc(fields, params):
    """
    Schaff trend cycle: a twice-applied stochastic of the MACD line, each
    pass followed by half-weight smoothing.
    """
    fast_period, slow_period, cycle = _stc_periods(params)
    fast, slow = align(ema(fields.closes, fast_period), ema(fields.closes, slow_period))
    macd_line = fast - slow

    first = rolling_position(macd_line, macd_line, macd_line, cycle)
    first = exponential(first, 1, 0.5)
    second = rolling_position(first, first, first, cycle)
    return exponential(second, 1, 0.5)


def _symmetric(values: np.ndarray) -> np.ndarray:
    """(x[i] + 2x[i-1] + 2x[i-2] + x[i-3]) / 6."""
    return (values[3:] + 2 * values[2:-1] + 2 * values[1:-2] + values[:-3]) / 6


@register(
    "rvgi",
    Kind.COMPOSITE,
    FAMILY,
    warmup=lambda p: _period(p, 10) + 5,
    outputs=("rvi", "signal"),
)
def _rvgi(fields, params):
    """Relative vigor index with its symmetric-weighted signal line."""
    period = _period(params, 10)
    numerator = _symmetric(fields.closes - fields.opens)
    denominator = _symmetric(fields.highs - fields.lows)
    rvi = safe_divide(rolling_sum(numerator, period), rolling_sum(denominator, period))
    return {"rvi": rvi, "signal": _symmetric(rvi)}


@register(
    "fisher",
    Kind.RECURSIVE,
    FAMILY,
    warmup=lambda p: _period(p, 9),
    outputs=("fisher", "trigger"),
)
def _fisher(fields, params):
    """Ehlers Fisher transform of the median price; trigger is the prior value."""
    period = _period(params, 9)
    median = median_price(fields.highs, fields.lows)
    position = rolling_position(median, median, median, period) / 100

    fisher = np.empty(len(position))
    value = 0.0
    previous = 0.0
    for i, pos in enumerate(position):
        value = 0.66 * (pos - 0.5) + 0.67 * value
        value = min(max(value, -0.999), 0.999)
        previous = 0.5 * np.log((1 + value) / (1 - value)) + 0.5 * previous
        fisher[i] = previous
    return {"fisher": fisher[1:], "trigger": fisher[:-1]}


@register("qstick", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p) - 1)
def _qstick(fields, params):
    """SMA of (close - open)."""
    return sma(fields.closes - fields.opens, _period(params))


@register("chop", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 14, minimum=2))
def _chop(fields, params):
    """Choppiness index, 100 * log10(sum TR / range) / log10(period)."""
    period = _period(params, 14, minimum=2)
    highs, lows, closes = fields.highs, fields.lows, fields.closes
    prev_close = closes[:-1]
    true_range = np.maximum(highs[1:], prev_close) - np.minimum(lows[1:], prev_close)
    tr_sum = rolling_sum(true_range, period)
    span = (rolling_max(highs, period) - rolling_min(lows, period))[1:]
    ratio = safe_divide(tr_sum, span, fill=1.0)
    ratio = np.where(ratio > 0, ratio, 1.0)
    return 100 * np.log10(ratio) / np.log10(period)


@register("fosc", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 14, minimum=2) - 1)
def _fosc(fields, params):
    """Forecast oscillator: percent gap between close and its regression value."""
    period = _period(params, 14, minimum=2)
    slope, intercept = rolling_linreg(fields.closes, period)
    fitted = intercept + slope * (period - 1)
    current = fields.closes[period - 1:]
    return safe_divide(100 * (current - fitted), current)


@register("imi", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p) - 1)
def _imi(fields, params):
    """Intraday momentum index."""
    period = _period(params)
    body = fields.closes - fields.opens
    gains = rolling_sum(np.maximum(body, 0), period)
    losses = rolling_sum(np.maximum(-body, 0), period)
    return safe_divide(100 * gains, gains + losses, fill=50.0)


@register("psl", Kind.ROLLING, FAMILY, warmup=lambda p: _period(p, 12))
def _psl(fields, params):
    """Psychological line: percent of rising closes over the window."""
    period = _period(params, 12)
    rising = (change(fields.closes, 1) > 0).astype(float)
    return 100 * rolling_sum(rising, period) / period
