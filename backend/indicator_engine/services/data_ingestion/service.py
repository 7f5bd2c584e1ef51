"""
Market Data Service Implementation

Routes candle requests to the provider registered under the requested
source name. Built-in sources:
    mock   - deterministic synthetic random walk
    memory - series preloaded by the caller (tests, replays)
"""

import logging
from typing import Optional

from indicator_engine.schemas.market import DataRequest, Series, Timeframe
from indicator_engine.services.base import (
    MarketDataError,
    MissingCredentialError,
    UnsupportedSourceError,
    UpstreamResponseError,
)
from indicator_engine.services.data_ingestion.interface import (
    MarketDataProvider,
    MarketDataServiceInterface,
)
from indicator_engine.services.data_ingestion.mock_data import MockDataProvider

logger = logging.getLogger(__name__)


class MemoryDataProvider(MarketDataProvider):
    """Serves series preloaded per (symbol, timeframe)."""

    def __init__(self):
        self._store: dict[tuple[str, Timeframe], Series] = {}

    @property
    def name(self) -> str:
        return "memory"

    def load(self, symbol: str, timeframe: Timeframe, series: Series) -> None:
        self._store[(symbol.upper(), Timeframe(timeframe))] = series

    def clear(self) -> None:
        self._store.clear()

    async def fetch(self, symbol: str, timeframe: Timeframe, limit: int) -> Series:
        series = self._store.get((symbol.upper(), Timeframe(timeframe)))
        if series is None:
            raise UpstreamResponseError(
                "MarketDataService",
                f"No preloaded data for {symbol} {Timeframe(timeframe).value}",
                {"source": self.name, "symbol": symbol},
            )
        return series.tail(limit)


class MarketDataService(MarketDataServiceInterface):
    """
    Market Data Service.

    Holds a registry of providers keyed by source name. Any provider failure
    surfaces as a MarketDataError; nothing falls back silently.
    """

    def __init__(self, providers: Optional[list[MarketDataProvider]] = None):
        self._providers: dict[str, MarketDataProvider] = {}
        for provider in providers if providers is not None else [MockDataProvider(), MemoryDataProvider()]:
            self.register(provider)

    def register(self, provider: MarketDataProvider) -> None:
        self._providers[provider.name.lower()] = provider
        logger.debug(f"Registered market data source: {provider.name}")

    @property
    def sources(self) -> list[str]:
        return sorted(self._providers)

    def provider(self, source: str) -> MarketDataProvider:
        provider = self._providers.get(source.lower())
        if provider is None:
            raise UnsupportedSourceError(
                self.name,
                f"Unsupported data source: {source}",
                {"source": source, "available": self.sources},
            )
        return provider

    async def execute(self, input_data: DataRequest) -> Series:
        return await self.fetch(
            input_data.symbol, input_data.source, input_data.timeframe, input_data.limit
        )

    async def fetch(
        self, symbol: str, source: str, timeframe: Timeframe, limit: int
    ) -> Series:
        provider = self.provider(source)
        if provider.requires_credentials and not provider.has_credentials():
            raise MissingCredentialError(
                self.name,
                f"Data source {source} requires credentials that are not configured",
                {"source": source, "symbol": symbol},
            )
        try:
            series = await provider.fetch(symbol, Timeframe(timeframe), limit)
        except MarketDataError:
            raise
        except Exception as e:
            logger.error(f"Error fetching {symbol} from {source}: {e}")
            raise UpstreamResponseError(
                self.name,
                f"Failed to fetch {symbol} from {source}: {e}",
                {"source": source, "symbol": symbol},
            ) from e

        logger.info(f"Fetched {len(series)} candles for {symbol} from {source}")
        return series

    async def health_check(self) -> bool:
        """True if at least one provider is available."""
        for provider in self._providers.values():
            if await provider.health_check():
                return True
        return False


# Singleton instance
_service_instance: Optional[MarketDataService] = None


def get_market_data_service() -> MarketDataService:
    """Get or create market data service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = MarketDataService()
    return _service_instance
