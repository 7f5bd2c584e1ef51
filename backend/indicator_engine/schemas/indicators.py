"""
CONTRACT 2: Indicator Engine

Input: AnalysisRequest (or a Series plus IndicatorRequests)
Output: AnalysisResult

Request models are pydantic; computed values are dataclasses holding
read-only numpy vectors, converted to plain JSON with `to_payload()`.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from indicator_engine.schemas.market import Candle, Timeframe
from indicator_engine.services.base import DataInsufficientError, ServiceError


# =============================================================================
# ENUMS
# =============================================================================


class ValueKind(str, Enum):
    SERIES = "series"  # one numeric or boolean vector
    STRUCTURED = "structured"  # named vectors of equal length
    SCALAR = "scalar"  # single aggregate


class AnalysisMode(str, Enum):
    DIRECT = "direct"
    SNAPSHOT = "snapshot"
    BACKTRACK = "backtrack"


# =============================================================================
# INPUT: IndicatorRequest / AnalysisRequest
# =============================================================================


class IndicatorRequest(BaseModel):
    """
    One indicator instance to compute.
    Sent by: API / caller
    Received by: Indicator Service

    The result map is keyed by `label` when given, else by `key`, so the
    same indicator can be requested twice with different parameters.
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1, description="Registry key, e.g. 'rsi'")
    overrides: dict[str, Any] = Field(default_factory=dict)
    label: Optional[str] = Field(default=None, min_length=1)

    @field_validator("key")
    @classmethod
    def _normalize_key(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def result_key(self) -> str:
        return self.label or self.key


def as_indicator_requests(items: list) -> list[IndicatorRequest]:
    """Accept bare keys, dicts or IndicatorRequest objects."""
    requests = []
    for item in items:
        if isinstance(item, IndicatorRequest):
            requests.append(item)
        elif isinstance(item, str):
            requests.append(IndicatorRequest(key=item))
        else:
            requests.append(IndicatorRequest(**item))
    return requests


class AnalysisRequest(BaseModel):
    """
    Fetch-then-compute request.
    Sent by: API
    Received by: Indicator Service (execute)
    """

    symbol: str = Field(..., min_length=1)
    source: Optional[str] = Field(default=None, description="Provider; default from settings")
    timeframe: Timeframe = Timeframe.H1
    indicators: list[IndicatorRequest] = Field(..., min_length=1)
    mode: AnalysisMode = AnalysisMode.DIRECT
    result_count: Optional[int] = Field(default=None, ge=1, description="Keep the last R entries")
    backtrack_offset: int = Field(default=0, ge=0, description="Skip the B most recent candles")
    backtrack_periods: int = Field(default=10, ge=1, description="Backtrack steps N")
    reference_symbol: Optional[str] = Field(
        default=None, description="Second series for beta/correl input 'reference'"
    )

    @field_validator("indicators", mode="before")
    @classmethod
    def _coerce_indicators(cls, value):
        if isinstance(value, list):
            return as_indicator_requests(value)
        return value


# =============================================================================
# OUTPUT: ComputedValue / ErrorDescriptor
# =============================================================================


def _plain(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


@dataclass(frozen=True, eq=False)
class ComputedValue:
    """
    Result of one indicator over a series of `offset + length` candles.

    Vectors are tail-aligned: entry j belongs to candle `offset + j`, and the
    last entry always belongs to the last candle of the input.
    """

    kind: ValueKind
    offset: int
    length: int
    values: Optional[np.ndarray] = None
    outputs: Optional[dict[str, np.ndarray]] = None
    scalar: Any = None

    @property
    def end(self) -> int:
        """Exclusive candle index one past the last entry."""
        return self.offset + self.length

    def latest(self) -> Any:
        """Most recent entry as plain Python data."""
        if self.kind == ValueKind.SERIES:
            return _plain(self.values[-1])
        if self.kind == ValueKind.STRUCTURED:
            return {name: _plain(vector[-1]) for name, vector in self.outputs.items()}
        return _plain(self.scalar)

    def tail(self, count: int) -> "ComputedValue":
        """
        Keep the last `count` entries.

        Aggregates are returned unchanged. Fewer than `count` entries raises
        DataInsufficientError rather than returning a short window.
        """
        if self.kind == ValueKind.SCALAR:
            return self
        if count > self.length:
            raise DataInsufficientError(
                f"Requested {count} results but only {self.length} are defined",
                {"requested": count, "available": self.length},
            )
        offset = self.end - count
        if self.kind == ValueKind.SERIES:
            return ComputedValue(self.kind, offset, count, values=self.values[-count:])
        return ComputedValue(
            self.kind,
            offset,
            count,
            outputs={name: vector[-count:] for name, vector in self.outputs.items()},
        )

    def to_payload(self, timestamps: Optional[np.ndarray] = None) -> dict:
        payload = {"kind": self.kind.value, "offset": self.offset, "length": self.length}
        if self.kind == ValueKind.SERIES:
            payload["values"] = _plain(self.values)
        elif self.kind == ValueKind.STRUCTURED:
            payload["outputs"] = {name: _plain(v) for name, v in self.outputs.items()}
        else:
            payload["value"] = _plain(self.scalar)
        if timestamps is not None:
            payload["timestamps"] = _plain(timestamps[self.offset: self.end])
        return payload


@dataclass(frozen=True)
class ErrorDescriptor:
    """Per-indicator failure stored in the result slot."""

    message: str
    error_type: str

    @classmethod
    def from_exception(cls, exc: Exception) -> "ErrorDescriptor":
        message = exc.message if isinstance(exc, ServiceError) else str(exc)
        return cls(message=message, error_type=type(exc).__name__)

    def to_payload(self) -> dict:
        return {"error": self.message, "error_type": self.error_type}


ResultEntry = Union[ComputedValue, ErrorDescriptor]


def entry_latest(entry: ResultEntry) -> Any:
    """Latest value of a slot, or its error payload."""
    if isinstance(entry, ErrorDescriptor):
        return entry.to_payload()
    return entry.latest()


def entry_payload(entry: ResultEntry, timestamps: Optional[np.ndarray] = None) -> dict:
    if isinstance(entry, ErrorDescriptor):
        return entry.to_payload()
    return entry.to_payload(timestamps)


# =============================================================================
# OUTPUT: Snapshot / Backtrack / AnalysisResult
# =============================================================================


@dataclass(frozen=True)
class SnapshotResult:
    """Latest value of every requested indicator."""

    timestamp: int
    latest_candle: Candle
    indicators: dict[str, ResultEntry]

    def to_payload(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "latest_candle": self.latest_candle.model_dump(),
            "indicators": {k: entry_latest(v) for k, v in self.indicators.items()},
        }


@dataclass(frozen=True)
class BacktrackStep:
    """Step `index` of a replay; `position` is its candle's index in the series."""

    index: int
    position: int
    timestamp: int
    candle: Candle
    indicators: dict[str, ResultEntry]

    def to_payload(self) -> dict:
        return {
            "index": self.index,
            "position": self.position,
            "timestamp": self.timestamp,
            "candle": self.candle.model_dump(),
            "indicators": {k: entry_latest(v) for k, v in self.indicators.items()},
        }


@dataclass(frozen=True)
class BacktrackResult:
    """
    Historical replay. Step i saw only candles up to and including the
    candle it is timestamped with.
    """

    periods: int
    start_time: int
    end_time: int
    results: list[BacktrackStep] = field(default_factory=list)

    def to_payload(self) -> dict:
        return {
            "periods": self.periods,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "results": [step.to_payload() for step in self.results],
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of one AnalysisRequest; exactly one of the mode fields is set."""

    symbol: str
    source: str
    timeframe: str
    mode: AnalysisMode
    candle_count: int
    indicators: Optional[dict[str, ResultEntry]] = None
    timestamps: Optional[np.ndarray] = None
    snapshot: Optional[SnapshotResult] = None
    backtrack: Optional[BacktrackResult] = None

    def to_payload(self) -> dict:
        payload = {
            "symbol": self.symbol,
            "source": self.source,
            "timeframe": self.timeframe,
            "mode": self.mode.value,
            "candle_count": self.candle_count,
        }
        if self.mode == AnalysisMode.DIRECT:
            payload["indicators"] = {
                k: entry_payload(v, self.timestamps) for k, v in self.indicators.items()
            }
        elif self.mode == AnalysisMode.SNAPSHOT:
            payload["snapshot"] = self.snapshot.to_payload()
        else:
            payload["backtrack"] = self.backtrack.to_payload()
        return payload
