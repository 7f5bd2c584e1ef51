"""
Indicator Engine Schema Contracts

This module defines the contracts between the market data layer, the
indicator engine and the API.
"""

from indicator_engine.schemas.market import (
    Candle,
    DataRequest,
    Series,
    Timeframe,
)
from indicator_engine.schemas.indicators import (
    AnalysisMode,
    AnalysisRequest,
    AnalysisResult,
    BacktrackResult,
    BacktrackStep,
    ComputedValue,
    ErrorDescriptor,
    IndicatorRequest,
    ResultEntry,
    SnapshotResult,
    ValueKind,
)

__all__ = [
    # Market
    "Candle",
    "DataRequest",
    "Series",
    "Timeframe",
    # Indicators
    "AnalysisMode",
    "AnalysisRequest",
    "AnalysisResult",
    "BacktrackResult",
    "BacktrackStep",
    "ComputedValue",
    "ErrorDescriptor",
    "IndicatorRequest",
    "ResultEntry",
    "SnapshotResult",
    "ValueKind",
]
