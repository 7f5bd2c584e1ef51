"""
Technical Indicator Calculations

Pure NumPy smoothing and rolling-window primitives shared by every indicator
family. All math is deterministic.

Every primitive returns a compact, tail-aligned vector: no NaN padding, and
the last element always lines up with the last input element. Feeding ``n``
values through a window of ``p`` yields ``n - p + 1`` values.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from indicator_engine.schemas.market import Series
from indicator_engine.services.base import ConfigurationError, DataInsufficientError


# Named inputs a handler may read from FieldVectors
SOURCES = ("open", "high", "low", "close", "volume", "hl2", "hlc3", "ohlc4", "reference")


@dataclass(frozen=True)
class FieldVectors:
    """Read-only OHLCV arrays for calculations."""

    timestamps: np.ndarray
    opens: np.ndarray
    highs: np.ndarray
    lows: np.ndarray
    closes: np.ndarray
    volumes: np.ndarray
    reference: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return len(self.closes)

    @classmethod
    def from_series(
        cls, series: Series, reference: Optional[Series] = None
    ) -> "FieldVectors":
        return cls(
            timestamps=series.timestamps,
            opens=series.opens,
            highs=series.highs,
            lows=series.lows,
            closes=series.closes,
            volumes=series.volumes,
            reference=align_reference(series, reference) if reference is not None else None,
        )

    def source(self, name: str) -> np.ndarray:
        """Resolve a named input (a raw field or a derived price)."""
        if name == "open":
            return self.opens
        if name == "high":
            return self.highs
        if name == "low":
            return self.lows
        if name == "close":
            return self.closes
        if name == "volume":
            return self.volumes
        if name == "hl2":
            return median_price(self.highs, self.lows)
        if name == "hlc3":
            return typical_price(self.highs, self.lows, self.closes)
        if name == "ohlc4":
            return (self.opens + self.highs + self.lows + self.closes) / 4
        if name == "reference":
            if self.reference is None:
                raise ConfigurationError("Input 'reference' requires a reference series")
            return self.reference
        raise ConfigurationError(f"Unknown input field: {name}")


def align_reference(series: Series, reference: Series) -> np.ndarray:
    """
    Map a second series' closes onto this series' timestamps.

    Each candle takes the latest reference close at or before its timestamp;
    candles older than the whole reference series get NaN.
    """
    if len(reference) == 0:
        result = np.full(len(series), np.nan)
    else:
        idx = np.searchsorted(reference.timestamps, series.timestamps, side="right") - 1
        result = np.where(idx >= 0, reference.closes[np.clip(idx, 0, None)], np.nan)
    result.setflags(write=False)
    return result


# =============================================================================
# GUARDS
# =============================================================================


def require(data: np.ndarray, count: int) -> None:
    """Raise DataInsufficientError unless `data` holds at least `count` values."""
    if len(data) < count:
        raise DataInsufficientError(
            f"Need at least {count} values, got {len(data)}",
            {"required": count, "available": len(data)},
        )


def _as_float(data) -> np.ndarray:
    return np.asarray(data, dtype=float)


def rolling_window(data: np.ndarray, period: int) -> np.ndarray:
    data = _as_float(data)
    require(data, period)
    return sliding_window_view(data, period)


# =============================================================================
# MOVING AVERAGES
# =============================================================================


def sma(data: np.ndarray, period: int) -> np.ndarray:
    """Simple Moving Average."""
    return rolling_window(data, period).mean(axis=1)


def wma(data: np.ndarray, period: int) -> np.ndarray:
    """Weighted Moving Average (linear weights, newest heaviest)."""
    weights = np.arange(1, period + 1, dtype=float)
    return rolling_window(data, period) @ weights / weights.sum()


def exponential(data: np.ndarray, period: int, alpha: float) -> np.ndarray:
    """
    Recursive exponential smoothing seeded by the SMA of the first `period`
    values. Every exponential-family average in the library goes through here.
    """
    data = _as_float(data)
    require(data, period)

    result = np.empty(len(data) - period + 1)
    result[0] = np.mean(data[:period])

    for i in range(1, len(result)):
        result[i] = result[i - 1] + alpha * (data[i + period - 1] - result[i - 1])

    return result


def ema(data: np.ndarray, period: int) -> np.ndarray:
    """Exponential Moving Average, alpha = 2 / (period + 1)."""
    return exponential(data, period, 2 / (period + 1))


def smma(data: np.ndarray, period: int) -> np.ndarray:
    """Smoothed (Wilder) Moving Average, alpha = 1 / period."""
    return exponential(data, period, 1 / period)


wilders = smma


# =============================================================================
# ROLLING WINDOW STATISTICS
# =============================================================================


def rolling_sum(data: np.ndarray, period: int) -> np.ndarray:
    return rolling_window(data, period).sum(axis=1)


def rolling_max(data: np.ndarray, period: int) -> np.ndarray:
    return rolling_window(data, period).max(axis=1)


def rolling_min(data: np.ndarray, period: int) -> np.ndarray:
    return rolling_window(data, period).min(axis=1)


def rolling_std(data: np.ndarray, period: int) -> np.ndarray:
    """Population standard deviation over a trailing window."""
    return rolling_window(data, period).std(axis=1)


def rolling_var(data: np.ndarray, period: int) -> np.ndarray:
    """Population variance over a trailing window."""
    return rolling_window(data, period).var(axis=1)


def mean_deviation(data: np.ndarray, period: int) -> np.ndarray:
    """Mean absolute deviation from the window mean."""
    windows = rolling_window(data, period)
    return np.abs(windows - windows.mean(axis=1, keepdims=True)).mean(axis=1)


def rolling_linreg(data: np.ndarray, period: int) -> tuple[np.ndarray, np.ndarray]:
    """
    Least-squares line over each trailing window.

    x runs 0..period-1 inside the window (0 = oldest).

    Returns: (slope, intercept at x = 0)
    """
    windows = rolling_window(data, period)
    x = np.arange(period, dtype=float)
    sum_x = x.sum()
    sum_x2 = (x * x).sum()
    sum_y = windows.sum(axis=1)
    sum_xy = windows @ x

    denom = period * sum_x2 - sum_x * sum_x
    slope = safe_divide(period * sum_xy - sum_x * sum_y, denom)
    intercept = (sum_y - slope * sum_x) / period
    return slope, intercept


def rolling_position(
    values: np.ndarray,
    highs: np.ndarray,
    lows: np.ndarray,
    period: int,
    flat: float = 50.0,
) -> np.ndarray:
    """
    Position of each value inside its trailing high/low range, in percent.

    Windows with a zero range get `flat`.
    """
    highest = rolling_max(highs, period)
    lowest = rolling_min(lows, period)
    current = _as_float(values)[period - 1:]
    span = highest - lowest
    return np.where(span == 0, flat, safe_divide(current - lowest, span) * 100)


# =============================================================================
# PRICE DERIVATIONS
# =============================================================================


def median_price(highs: np.ndarray, lows: np.ndarray) -> np.ndarray:
    return (highs + lows) / 2


def typical_price(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray) -> np.ndarray:
    return (highs + lows + closes) / 3


def money_flow_multiplier(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray
) -> np.ndarray:
    """Close location value in [-1, 1]; zero-range candles count as 0."""
    return safe_divide((closes - lows) - (highs - closes), highs - lows)


# =============================================================================
# RANGES
# =============================================================================


def true_range(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray) -> np.ndarray:
    """True Range from the second candle on (needs the previous close)."""
    require(closes, 2)
    prev_close = closes[:-1]
    high = highs[1:]
    low = lows[1:]
    return np.maximum(high - low, np.maximum(np.abs(high - prev_close), np.abs(low - prev_close)))


def directional_movement(
    highs: np.ndarray, lows: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """
    Raw +DM / -DM from the second candle on.

    Returns: (plus_dm, minus_dm)
    """
    require(highs, 2)
    up_move = np.diff(highs)
    down_move = -np.diff(lows)
    plus_dm = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    minus_dm = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)
    return plus_dm, minus_dm


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def change(data: np.ndarray, lag: int = 1) -> np.ndarray:
    """data[i] - data[i - lag]."""
    data = _as_float(data)
    require(data, lag + 1)
    return data[lag:] - data[:-lag]


def align(*vectors: np.ndarray) -> tuple[np.ndarray, ...]:
    """Trim tail-aligned vectors to the length of the shortest."""
    length = min(len(v) for v in vectors)
    return tuple(v[len(v) - length:] for v in vectors)


def safe_divide(numerator, denominator, fill: float = 0.0) -> np.ndarray:
    """Element-wise division that writes `fill` wherever the denominator is 0."""
    numerator, denominator = np.broadcast_arrays(_as_float(numerator), _as_float(denominator))
    result = np.full(numerator.shape, fill, dtype=float)
    np.divide(numerator, denominator, out=result, where=denominator != 0)
    return result
