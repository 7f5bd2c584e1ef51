"""
Market Data Service

CONTRACT:
    Input:  DataRequest
    Output: Series

RESPONSIBILITIES:
    - Route requests to the provider registered for the source
    - Wrap provider output into an immutable Series
    - Surface provider failures as MarketDataError

The indicator engine never performs I/O itself; it asks this layer.
"""

from indicator_engine.services.data_ingestion.interface import (
    MarketDataProvider,
    MarketDataServiceInterface,
)
from indicator_engine.services.data_ingestion.mock_data import (
    MockDataProvider,
    generate_mock_candles,
)
from indicator_engine.services.data_ingestion.service import (
    MarketDataService,
    MemoryDataProvider,
    get_market_data_service,
)

__all__ = [
    "MarketDataProvider",
    "MarketDataServiceInterface",
    "MockDataProvider",
    "generate_mock_candles",
    "MarketDataService",
    "MemoryDataProvider",
    "get_market_data_service",
]
