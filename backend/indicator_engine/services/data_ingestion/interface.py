"""
Market Data Service Interface

Defines the contract for the market data layer the indicator engine pulls
candles from.
"""

from abc import ABC, abstractmethod

from indicator_engine.schemas.market import DataRequest, Series, Timeframe
from indicator_engine.services.base import BaseService


class MarketDataProvider(ABC):
    """
    One source of candles (exchange adapter, synthetic generator, cache...).

    Providers raise MarketDataError subclasses on failure; they never return
    partial data silently.
    """

    # Sources backed by an authenticated API set this and override has_credentials
    requires_credentials: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Source name requests refer to."""
        pass

    @abstractmethod
    async def fetch(self, symbol: str, timeframe: Timeframe, limit: int) -> Series:
        """Return up to `limit` most recent candles, oldest first."""
        pass

    def has_credentials(self) -> bool:
        """True once every credential the source needs is configured."""
        return True

    async def health_check(self) -> bool:
        return True


class MarketDataServiceInterface(BaseService[DataRequest, Series]):
    """
    Market Data Service Contract.

    INPUT: DataRequest
        - symbol: Ticker to fetch
        - source: Registered provider name
        - timeframe: Candle timeframe
        - limit: Number of candles

    OUTPUT: Series
        - Immutable OHLCV sequence, index 0 = oldest
    """

    @property
    def name(self) -> str:
        return "MarketDataService"

    @abstractmethod
    async def execute(self, input_data: DataRequest) -> Series:
        """Fetch candles for one request."""
        pass

    @abstractmethod
    async def fetch(
        self, symbol: str, source: str, timeframe: Timeframe, limit: int
    ) -> Series:
        """Route a fetch to the provider registered under `source`."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check that at least one provider is available."""
        pass
