"""
Shared pytest fixtures for the indicator engine test suite.

Provides synthetic OHLCV series so every test module can exercise
indicators and the service without a market data source.
"""

import numpy as np
import pytest

from indicator_engine.schemas.market import Series, Timeframe
from indicator_engine.services.data_ingestion import MarketDataService, MemoryDataProvider
from indicator_engine.services.indicators import IndicatorService
from indicator_engine.services.indicators.calculations import FieldVectors
from indicator_engine.services.indicators.params import resolve
from indicator_engine.services.indicators.registry import compute

HOUR_MS = 3_600_000
START_MS = 1_700_000_000_000


# ---------------------------------------------------------------------------
# Synthetic data generators
# ---------------------------------------------------------------------------


def make_series(
    closes,
    opens=None,
    highs=None,
    lows=None,
    volumes=None,
    start: int = START_MS,
    step: int = HOUR_MS,
) -> Series:
    """Build a Series from explicit price columns (missing columns follow close)."""
    closes = [float(c) for c in closes]
    opens = list(opens) if opens is not None else closes
    highs = list(highs) if highs is not None else [max(o, c) for o, c in zip(opens, closes)]
    lows = list(lows) if lows is not None else [min(o, c) for o, c in zip(opens, closes)]
    volumes = list(volumes) if volumes is not None else [1000.0] * len(closes)
    return Series(
        [
            [start + i * step, o, h, l, c, v]
            for i, (o, h, l, c, v) in enumerate(zip(opens, highs, lows, closes, volumes))
        ]
    )


def random_walk_series(
    n: int = 300,
    start_price: float = 100.0,
    volatility: float = 0.01,
    seed: int = 42,
    volume_mean: int = 1000,
) -> Series:
    """Geometric random walk with consistent O/H/L/C and positive volume."""
    rng = np.random.default_rng(seed)
    close = start_price * np.exp(np.cumsum(rng.normal(0, volatility, n)))

    spread = close * rng.uniform(0.002, 0.01, n)
    high = close + rng.uniform(0, 1, n) * spread
    low = close - rng.uniform(0, 1, n) * spread
    opn = close + rng.uniform(-0.5, 0.5, n) * spread

    high = np.maximum(high, np.maximum(opn, close))
    low = np.minimum(low, np.minimum(opn, close))
    volume = np.maximum(rng.poisson(volume_mean, n).astype(float), 1)

    return make_series(close, opens=opn, highs=high, lows=low, volumes=volume)


def run(key: str, series: Series, reference: Series = None, **overrides):
    """Compute one indicator with overrides on a series."""
    fields = FieldVectors.from_series(series, reference)
    return compute(key, fields, resolve(key, overrides))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def series() -> Series:
    """300 candles of random walk around 100."""
    return random_walk_series()


@pytest.fixture
def long_series() -> Series:
    """600 candles; enough for every default warmup."""
    return random_walk_series(n=600, seed=7)


@pytest.fixture
def rising_series() -> Series:
    """Closes 1..60, strictly rising."""
    return make_series(range(1, 61))


@pytest.fixture
def flat_series() -> Series:
    """60 identical candles."""
    return make_series([50.0] * 60)


@pytest.fixture
def memory_provider(series) -> MemoryDataProvider:
    provider = MemoryDataProvider()
    provider.load("TEST", Timeframe.H1, series)
    return provider


@pytest.fixture
def market_data(memory_provider) -> MarketDataService:
    return MarketDataService(providers=[memory_provider])


@pytest.fixture
def service(market_data) -> IndicatorService:
    return IndicatorService(market_data=market_data, max_workers=4)


@pytest.fixture
def sequential_service(market_data) -> IndicatorService:
    return IndicatorService(market_data=market_data, max_workers=1)
