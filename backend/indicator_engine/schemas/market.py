"""
CONTRACT 1: Market Data

Input: DataRequest
Output: Series

Candles arrive from a market data provider and are wrapped into an
immutable Series. The indicator engine only ever reads Series.
"""

from enum import Enum
from typing import Any, Iterable, Iterator, Optional, Union, overload

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator

from indicator_engine.services.base import ValidationError


# =============================================================================
# ENUMS
# =============================================================================


class Timeframe(str, Enum):
    M1 = "1m"
    M3 = "3m"
    M5 = "5m"
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H2 = "2h"
    H4 = "4h"
    H6 = "6h"
    H8 = "8h"
    H12 = "12h"
    D1 = "1d"
    D3 = "3d"
    W1 = "1w"
    MN1 = "1M"


# =============================================================================
# INPUT: DataRequest
# =============================================================================


class DataRequest(BaseModel):
    """
    Request for candles.
    Sent by: Indicator Service / API
    Received by: Market Data Service
    """

    symbol: str = Field(..., min_length=1, description="Ticker, e.g. 'BTC/USDT'")
    source: str = Field(default="mock", description="Registered provider name")
    timeframe: Timeframe = Field(default=Timeframe.H1, description="Candle timeframe")
    limit: int = Field(default=500, ge=1, le=10_000, description="Number of candles")


# =============================================================================
# OUTPUT: Candle / Series
# =============================================================================


class Candle(BaseModel):
    """Single OHLCV record."""

    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(..., description="Exchange-native time unit (usually ms)")
    open: float = Field(..., ge=0, allow_inf_nan=False)
    high: float = Field(..., ge=0, allow_inf_nan=False)
    low: float = Field(..., ge=0, allow_inf_nan=False)
    close: float = Field(..., ge=0, allow_inf_nan=False)
    volume: float = Field(..., ge=0, allow_inf_nan=False)

    @model_validator(mode="after")
    def _check_range(self) -> "Candle":
        if self.high < max(self.open, self.close, self.low):
            raise ValueError(
                f"high {self.high} below max(open, close, low) at {self.timestamp}"
            )
        if self.low > min(self.open, self.close, self.high):
            raise ValueError(
                f"low {self.low} above min(open, close, high) at {self.timestamp}"
            )
        return self


CandleLike = Union[Candle, dict, list, tuple]


def _to_candle(item: CandleLike) -> Candle:
    if isinstance(item, Candle):
        return item
    if isinstance(item, dict):
        return Candle(**item)
    if len(item) < 6:
        raise ValidationError("Series", f"Candle row needs 6 fields, got {len(item)}")
    ts, o, h, l, c, v = item[:6]
    return Candle(timestamp=int(ts), open=o, high=h, low=l, close=c, volume=v)


def _readonly(values: Iterable[Any], dtype) -> np.ndarray:
    arr = np.fromiter(values, dtype=dtype)
    arr.setflags(write=False)
    return arr


class Series:
    """
    Immutable, chronologically ascending sequence of candles.

    Index 0 is the oldest candle. Field projections are read-only numpy
    arrays; slicing returns a new Series.
    """

    __slots__ = ("_candles", "opens", "highs", "lows", "closes", "volumes", "timestamps")

    def __init__(self, candles: Iterable[CandleLike] = ()):
        parsed = tuple(_to_candle(c) for c in candles)
        for prev, cur in zip(parsed, parsed[1:]):
            if cur.timestamp <= prev.timestamp:
                raise ValidationError(
                    "Series",
                    f"Timestamps must be strictly increasing: {prev.timestamp} -> {cur.timestamp}",
                )
        self._init(parsed)

    def _init(self, candles: tuple) -> None:
        object.__setattr__(self, "_candles", candles)
        object.__setattr__(self, "opens", _readonly((c.open for c in candles), float))
        object.__setattr__(self, "highs", _readonly((c.high for c in candles), float))
        object.__setattr__(self, "lows", _readonly((c.low for c in candles), float))
        object.__setattr__(self, "closes", _readonly((c.close for c in candles), float))
        object.__setattr__(self, "volumes", _readonly((c.volume for c in candles), float))
        object.__setattr__(self, "timestamps", _readonly((c.timestamp for c in candles), np.int64))

    @classmethod
    def _trusted(cls, candles: tuple) -> "Series":
        """Build from candles already known to be ordered (slices)."""
        series = cls.__new__(cls)
        series._init(candles)
        return series

    @classmethod
    def from_rows(cls, rows: Iterable[CandleLike]) -> "Series":
        """Build from [timestamp, open, high, low, close, volume] rows or dicts."""
        return cls(rows)

    def __setattr__(self, name, value):
        raise AttributeError("Series is immutable")

    def __len__(self) -> int:
        return len(self._candles)

    def __iter__(self) -> Iterator[Candle]:
        return iter(self._candles)

    @overload
    def __getitem__(self, index: int) -> Candle: ...

    @overload
    def __getitem__(self, index: slice) -> "Series": ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            if index.step not in (None, 1):
                raise ValueError("Series slices must be contiguous")
            return Series._trusted(self._candles[index])
        return self._candles[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Series):
            return NotImplemented
        return self._candles == other._candles

    def __hash__(self) -> int:
        return hash(self._candles)

    def __repr__(self) -> str:
        if not self._candles:
            return "Series([])"
        return (
            f"Series(len={len(self)}, first={self._candles[0].timestamp}, "
            f"last={self._candles[-1].timestamp})"
        )

    @property
    def candles(self) -> tuple:
        return self._candles

    @property
    def last(self) -> Optional[Candle]:
        return self._candles[-1] if self._candles else None

    def head(self, count: int) -> "Series":
        """First `count` candles (the prefix ending at index count - 1)."""
        return self[: max(count, 0)]

    def tail(self, count: int) -> "Series":
        """Most recent `count` candles."""
        if count <= 0:
            return self[:0]
        return self[-count:]
