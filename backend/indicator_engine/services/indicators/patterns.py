"""
Candlestick Pattern Detectors

Each detector returns a boolean vector. A pattern spanning k candles is
first defined on candle k - 1 and is reported on its last candle.
"""

from dataclasses import dataclass

import numpy as np

from indicator_engine.services.indicators.calculations import FieldVectors
from indicator_engine.services.indicators.registry import Kind, register

FAMILY = "patterns"

DOJI_BODY = 0.1  # body / range at or below this is a doji
LONG_BODY = 0.5  # body / range at or above this is a long candle
TWEEZER_TOLERANCE = 0.001  # relative difference for matching highs/lows


@dataclass(frozen=True)
class Candles:
    """Candle anatomy vectors, optionally shifted back for multi-candle patterns."""

    open: np.ndarray
    high: np.ndarray
    low: np.ndarray
    close: np.ndarray

    @classmethod
    def window(cls, fields: FieldVectors, span: int, back: int = 0) -> "Candles":
        """
        Slice the candles so element j is candle (span - 1 + j - back).

        With back = 0 this is the last candle of each span-candle window;
        back = 1 the one before it, and so on.
        """
        end = len(fields) - back
        start = span - 1 - back
        return cls(
            fields.opens[start:end],
            fields.highs[start:end],
            fields.lows[start:end],
            fields.closes[start:end],
        )

    @property
    def body(self) -> np.ndarray:
        return np.abs(self.close - self.open)

    @property
    def range(self) -> np.ndarray:
        return self.high - self.low

    @property
    def top(self) -> np.ndarray:
        return np.maximum(self.open, self.close)

    @property
    def bottom(self) -> np.ndarray:
        return np.minimum(self.open, self.close)

    @property
    def upper_shadow(self) -> np.ndarray:
        return self.high - self.top

    @property
    def lower_shadow(self) -> np.ndarray:
        return self.bottom - self.low

    @property
    def midpoint(self) -> np.ndarray:
        return (self.open + self.close) / 2

    @property
    def bullish(self) -> np.ndarray:
        return self.close > self.open

    @property
    def bearish(self) -> np.ndarray:
        return self.close < self.open


# =============================================================================
# SHAPES
# =============================================================================


def is_doji(c: Candles) -> np.ndarray:
    return c.body <= c.range * DOJI_BODY


def is_hammer(c: Candles) -> np.ndarray:
    return (c.lower_shadow > 2 * c.body) & (c.upper_shadow < c.body)


def is_inverted_hammer(c: Candles) -> np.ndarray:
    return (c.upper_shadow > 2 * c.body) & (c.lower_shadow < c.body)


def is_long(c: Candles) -> np.ndarray:
    return (c.range > 0) & (c.body >= c.range * LONG_BODY)


def _bullish_engulfing(prev: Candles, cur: Candles) -> np.ndarray:
    return (
        prev.bearish
        & cur.bullish
        & (cur.open < prev.close)
        & (cur.close > prev.open)
    )


def _bearish_engulfing(prev: Candles, cur: Candles) -> np.ndarray:
    return (
        prev.bullish
        & cur.bearish
        & (cur.open > prev.close)
        & (cur.close < prev.open)
    )


def _uptrend(fields: FieldVectors) -> np.ndarray:
    """Rising closes over the two candles before each 3-candle window's last."""
    return Candles.window(fields, 3, 1).close > Candles.window(fields, 3, 2).close


# =============================================================================
# ONE CANDLE
# =============================================================================


@register("doji", Kind.PATTERN, FAMILY, warmup=0)
def _doji(fields, params):
    """Doji: open and close within 10% of the range."""
    return is_doji(Candles.window(fields, 1))


@register("hammer", Kind.PATTERN, FAMILY, warmup=0)
def _hammer(fields, params):
    """Hammer: long lower shadow, small upper shadow."""
    return is_hammer(Candles.window(fields, 1))


@register("invertedhammer", Kind.PATTERN, FAMILY, warmup=0)
def _invertedhammer(fields, params):
    """Inverted hammer: long upper shadow, small lower shadow."""
    return is_inverted_hammer(Candles.window(fields, 1))


@register("marubozu", Kind.PATTERN, FAMILY, warmup=0)
def _marubozu(fields, params):
    """Marubozu: body covers at least 95% of the range."""
    c = Candles.window(fields, 1)
    return (c.range > 0) & (c.body >= 0.95 * c.range)


@register("spinningtop", Kind.PATTERN, FAMILY, warmup=0)
def _spinningtop(fields, params):
    """Spinning top: small (non-doji) body with both shadows longer than it."""
    c = Candles.window(fields, 1)
    return (
        (c.body > c.range * DOJI_BODY)
        & (c.body <= 0.3 * c.range)
        & (c.upper_shadow > c.body)
        & (c.lower_shadow > c.body)
    )


@register("dragonflydoji", Kind.PATTERN, FAMILY, warmup=0)
def _dragonflydoji(fields, params):
    """Dragonfly doji: doji at the top of the range."""
    c = Candles.window(fields, 1)
    return is_doji(c) & (c.range > 0) & (c.upper_shadow <= c.range * DOJI_BODY)


@register("gravestonedoji", Kind.PATTERN, FAMILY, warmup=0)
def _gravestonedoji(fields, params):
    """Gravestone doji: doji at the bottom of the range."""
    c = Candles.window(fields, 1)
    return is_doji(c) & (c.range > 0) & (c.lower_shadow <= c.range * DOJI_BODY)


# =============================================================================
# TWO CANDLES
# =============================================================================


def _pair(fields: FieldVectors) -> tuple[Candles, Candles]:
    return Candles.window(fields, 2, 1), Candles.window(fields, 2)


@register("engulfing", Kind.PATTERN, FAMILY, warmup=1)
def _engulfing(fields, params):
    """Bullish or bearish engulfing."""
    prev, cur = _pair(fields)
    return _bullish_engulfing(prev, cur) | _bearish_engulfing(prev, cur)


@register("bullishengulfing", Kind.PATTERN, FAMILY, warmup=1)
def _bullishengulfing(fields, params):
    """Bullish candle whose body engulfs the previous bearish body."""
    return _bullish_engulfing(*_pair(fields))


@register("bearishengulfing", Kind.PATTERN, FAMILY, warmup=1)
def _bearishengulfing(fields, params):
    """Bearish candle whose body engulfs the previous bullish body."""
    return _bearish_engulfing(*_pair(fields))


@register("harami", Kind.PATTERN, FAMILY, warmup=1)
def _harami(fields, params):
    """Harami: body inside the previous opposite-colored body."""
    prev, cur = _pair(fields)
    opposite = (prev.bullish & cur.bearish) | (prev.bearish & cur.bullish)
    return opposite & (cur.top < prev.top) & (cur.bottom > prev.bottom)


@register("piercing", Kind.PATTERN, FAMILY, warmup=1)
def _piercing(fields, params):
    """Piercing line: opens below a bearish close, closes above its midpoint."""
    prev, cur = _pair(fields)
    return (
        prev.bearish
        & cur.bullish
        & (cur.open < prev.close)
        & (cur.close > prev.midpoint)
        & (cur.close < prev.open)
    )


@register("darkcloudcover", Kind.PATTERN, FAMILY, warmup=1)
def _darkcloudcover(fields, params):
    """Dark cloud cover: opens above a bullish close, closes below its midpoint."""
    prev, cur = _pair(fields)
    return (
        prev.bullish
        & cur.bearish
        & (cur.open > prev.close)
        & (cur.close < prev.midpoint)
        & (cur.close > prev.open)
    )


def _matches(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return np.abs(a - b) <= TWEEZER_TOLERANCE * np.maximum(np.abs(a), np.abs(b))


@register("tweezertop", Kind.PATTERN, FAMILY, warmup=1)
def _tweezertop(fields, params):
    """Tweezer top: matching highs, bullish then bearish."""
    prev, cur = _pair(fields)
    return prev.bullish & cur.bearish & _matches(prev.high, cur.high)


@register("tweezerbottom", Kind.PATTERN, FAMILY, warmup=1)
def _tweezerbottom(fields, params):
    """Tweezer bottom: matching lows, bearish then bullish."""
    prev, cur = _pair(fields)
    return prev.bearish & cur.bullish & _matches(prev.low, cur.low)


@register("insidebar", Kind.PATTERN, FAMILY, warmup=1)
def _insidebar(fields, params):
    """Range strictly inside the previous candle's range."""
    prev, cur = _pair(fields)
    return (cur.high < prev.high) & (cur.low > prev.low)


@register("outsidebar", Kind.PATTERN, FAMILY, warmup=1)
def _outsidebar(fields, params):
    """Range strictly beyond the previous candle's range on both ends."""
    prev, cur = _pair(fields)
    return (cur.high > prev.high) & (cur.low < prev.low)


# =============================================================================
# THREE CANDLES
# =============================================================================


def _triple(fields: FieldVectors) -> tuple[Candles, Candles, Candles]:
    return (
        Candles.window(fields, 3, 2),
        Candles.window(fields, 3, 1),
        Candles.window(fields, 3),
    )


@register("hangingman", Kind.PATTERN, FAMILY, warmup=2)
def _hangingman(fields, params):
    """Hammer shape after two rising closes."""
    return _uptrend(fields) & is_hammer(Candles.window(fields, 3))


@register("shootingstar", Kind.PATTERN, FAMILY, warmup=2)
def _shootingstar(fields, params):
    """Inverted hammer shape after two rising closes."""
    return _uptrend(fields) & is_inverted_hammer(Candles.window(fields, 3))


@register("morningstar", Kind.PATTERN, FAMILY, warmup=2)
def _morningstar(fields, params):
    """Long bearish, small star, then a bullish close above the first midpoint."""
    first, star, last = _triple(fields)
    return (
        first.bearish
        & is_long(first)
        & (star.body <= 0.3 * first.body)
        & last.bullish
        & (last.close > first.midpoint)
    )


@register("eveningstar", Kind.PATTERN, FAMILY, warmup=2)
def _eveningstar(fields, params):
    """Long bullish, small star, then a bearish close below the first midpoint."""
    first, star, last = _triple(fields)
    return (
        first.bullish
        & is_long(first)
        & (star.body <= 0.3 * first.body)
        & last.bearish
        & (last.close < first.midpoint)
    )


@register("threewhitesoldiers", Kind.PATTERN, FAMILY, warmup=2)
def _threewhitesoldiers(fields, params):
    """Three rising bullish candles, each opening inside the previous body."""
    first, second, third = _triple(fields)
    return (
        first.bullish
        & second.bullish
        & third.bullish
        & (second.close > first.close)
        & (third.close > second.close)
        & (second.open > first.open)
        & (second.open < first.close)
        & (third.open > second.open)
        & (third.open < second.close)
    )


@register("threeblackcrows", Kind.PATTERN, FAMILY, warmup=2)
def _threeblackcrows(fields, params):
    """Three falling bearish candles, each opening inside the previous body."""
    first, second, third = _triple(fields)
    return (
        first.bearish
        & second.bearish
        & third.bearish
        & (second.close < first.close)
        & (third.close < second.close)
        & (second.open < first.open)
        & (second.open > first.close)
        & (third.open < second.open)
        & (third.open > second.close)
    )
