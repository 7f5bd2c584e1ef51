"""
Mock Data Generator

Generates realistic, reproducible market data for development and testing.
Prices follow a random walk seeded from the symbol, so the same symbol
always produces the same candles.
"""

import random
import zlib
from datetime import datetime, timezone
from typing import Optional

from indicator_engine.schemas.market import Candle, Series, Timeframe
from indicator_engine.services.data_ingestion.interface import MarketDataProvider

# Base prices for common symbols
SYMBOL_BASE_PRICES = {
    "BTC/USDT": 42000.0,
    "ETH/USDT": 2300.0,
    "AAPL": 185.0,
    "MSFT": 370.0,
    "SPY": 470.0,
    "RELIANCE": 2450.0,
    "TCS": 3800.0,
    "NIFTY": 22000.0,
}

# Timeframe to milliseconds
TIMEFRAME_MS = {
    Timeframe.M1: 60_000,
    Timeframe.M3: 180_000,
    Timeframe.M5: 300_000,
    Timeframe.M15: 900_000,
    Timeframe.M30: 1_800_000,
    Timeframe.H1: 3_600_000,
    Timeframe.H2: 7_200_000,
    Timeframe.H4: 14_400_000,
    Timeframe.H6: 21_600_000,
    Timeframe.H8: 28_800_000,
    Timeframe.H12: 43_200_000,
    Timeframe.D1: 86_400_000,
    Timeframe.D3: 259_200_000,
    Timeframe.W1: 604_800_000,
    Timeframe.MN1: 2_592_000_000,
}


def symbol_seed(symbol: str) -> int:
    """Stable seed for a symbol (independent of PYTHONHASHSEED)."""
    return zlib.crc32(symbol.upper().encode("utf-8"))


def get_base_price(symbol: str, rng: random.Random) -> float:
    """Get base price for a symbol."""
    return SYMBOL_BASE_PRICES.get(symbol.upper(), 100.0 + rng.random() * 900)


def generate_mock_candles(
    symbol: str,
    timeframe: Timeframe,
    limit: int,
    end_time: Optional[int] = None,
) -> list[Candle]:
    """
    Generate `limit` mock candles ending at `end_time` (ms, aligned down to
    the timeframe; defaults to now).
    """
    rng = random.Random(symbol_seed(symbol))
    interval_ms = TIMEFRAME_MS[timeframe]
    if end_time is None:
        end_time = int(datetime.now(timezone.utc).timestamp() * 1000)
    end_time -= end_time % interval_ms

    candles = []
    price = get_base_price(symbol, rng)
    timestamp = end_time - interval_ms * (limit - 1)

    for _ in range(limit):
        volatility = price * 0.02  # 2% volatility

        # Random walk
        change = (rng.random() - 0.5) * volatility

        open_price = price
        close_price = open_price + change
        high_price = max(open_price, close_price) + rng.random() * volatility * 0.5
        low_price = min(open_price, close_price) - rng.random() * volatility * 0.5

        candles.append(
            Candle(
                timestamp=timestamp,
                open=round(open_price, 2),
                high=round(high_price, 2),
                low=round(low_price, 2),
                close=round(close_price, 2),
                volume=rng.randint(100_000, 5_000_000),
            )
        )

        price = close_price
        timestamp += interval_ms

    return candles


class MockDataProvider(MarketDataProvider):
    """Synthetic candles; never fails, needs no credentials."""

    def __init__(self, end_time: Optional[int] = None):
        self._end_time = end_time

    @property
    def name(self) -> str:
        return "mock"

    async def fetch(self, symbol: str, timeframe: Timeframe, limit: int) -> Series:
        return Series(generate_mock_candles(symbol, timeframe, limit, self._end_time))
