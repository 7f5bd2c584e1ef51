"""
Indicator API Endpoints

Endpoints for the indicator catalog and indicator calculations.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field, field_validator

from indicator_engine.api.v1.errors import http_error
from indicator_engine.schemas.indicators import (
    AnalysisMode,
    AnalysisRequest,
    AnalysisResult,
    IndicatorRequest,
    as_indicator_requests,
)
from indicator_engine.schemas.market import Candle, Series
from indicator_engine.services.base import ServiceError
from indicator_engine.services.indicators import get_indicator_service
from indicator_engine.services.indicators.lookback import estimate
from indicator_engine.services.indicators.registry import describe, is_registered

logger = logging.getLogger(__name__)

router = APIRouter()


class CalculateRequest(BaseModel):
    """Indicators over candles supplied in the request body."""

    candles: list[Candle] = Field(..., min_length=1)
    indicators: list[IndicatorRequest] = Field(..., min_length=1)
    mode: AnalysisMode = AnalysisMode.DIRECT
    result_count: Optional[int] = Field(default=None, ge=1)
    backtrack_offset: int = Field(default=0, ge=0)
    backtrack_periods: int = Field(default=10, ge=1)
    reference_candles: Optional[list[Candle]] = None
    symbol: str = "custom"

    @field_validator("indicators", mode="before")
    @classmethod
    def _coerce_indicators(cls, value):
        if isinstance(value, list):
            return as_indicator_requests(value)
        return value


@router.get("")
async def list_indicators():
    """
    Get the indicator catalog.

    Returns every registered key with its kind, family, outputs and
    default parameters.
    """
    catalog = describe()
    return {"count": len(catalog), "indicators": catalog}


@router.get("/{key}")
async def get_indicator(key: str):
    """Get one catalog entry plus its default lookback."""
    key = key.strip().lower()
    if not is_registered(key):
        raise HTTPException(status_code=404, detail=f"Indicator '{key}' is not implemented")

    entry = next(item for item in describe() if item["key"] == key)
    return {**entry, "lookback": estimate(key)}


@router.post("/calculate")
async def calculate_indicators(request: CalculateRequest) -> dict[str, Any]:
    """
    Calculate indicators over the posted candles.

    Modes:
        - direct: full aligned series per indicator (optionally windowed)
        - snapshot: latest value per indicator
        - backtrack: latest value per indicator at each of the last N candles
    """
    service = get_indicator_service()
    try:
        series = Series(request.candles)
        reference = Series(request.reference_candles) if request.reference_candles else None
        result = service.analyze(
            series,
            request.indicators,
            AnalysisResult(
                symbol=request.symbol,
                source="request",
                timeframe="",
                mode=request.mode,
                candle_count=len(series),
            ),
            result_count=request.result_count,
            backtrack_offset=request.backtrack_offset,
            backtrack_periods=request.backtrack_periods,
            reference=reference,
        )
    except ServiceError as e:
        raise http_error(e)

    return result.to_payload()


@router.post("/analyze")
async def analyze_symbol(request: AnalysisRequest) -> dict[str, Any]:
    """
    Fetch candles for a symbol and calculate indicators.

    Fetches enough history for the slowest requested indicator plus the
    requested window; fails with 422 if the source returns too few candles.
    """
    service = get_indicator_service()
    try:
        result = await service.execute(request)
    except ServiceError as e:
        raise http_error(e)

    return result.to_payload()
