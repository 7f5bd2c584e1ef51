"""
Market Data API Endpoints

Endpoints for fetching raw candles.
"""

from typing import Optional

from fastapi import APIRouter, Query

from indicator_engine.api.v1.errors import http_error
from indicator_engine.core.config import settings
from indicator_engine.schemas.market import Timeframe
from indicator_engine.services.base import ServiceError
from indicator_engine.services.data_ingestion import get_market_data_service

router = APIRouter()


@router.get("/sources")
async def get_sources():
    """List registered market data sources."""
    service = get_market_data_service()
    return {"sources": service.sources, "default": settings.default_source}


@router.get("/{symbol}/ohlcv")
async def get_ohlcv(
    symbol: str,
    source: Optional[str] = Query(default=None, description="Data source; default from settings"),
    timeframe: Timeframe = Timeframe.H1,
    limit: int = Query(default=100, ge=1, le=10_000),
):
    """
    Get OHLCV candles for a symbol.
    """
    service = get_market_data_service()
    source = source or settings.default_source
    try:
        series = await service.fetch(symbol, source, timeframe, limit)
    except ServiceError as e:
        raise http_error(e)

    return {
        "symbol": symbol,
        "source": source,
        "timeframe": timeframe.value,
        "count": len(series),
        "candles": [c.model_dump() for c in series],
    }
