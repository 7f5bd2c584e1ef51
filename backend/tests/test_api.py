"""
HTTP API tests against the FastAPI app with the default (mock) sources.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import random_walk_series
from indicator_engine.api.v1.errors import http_error
from indicator_engine.main import app
from indicator_engine.services.base import (
    MissingCredentialError,
    UnsupportedSourceError,
    UpstreamResponseError,
)


@pytest.fixture(scope="module")
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def candles():
    return [c.model_dump() for c in random_walk_series(n=120)]


def test_root_and_health(client):
    assert client.get("/").json()["message"] == "Indicator Engine API"
    health = client.get("/health").json()
    assert health["status"] == "healthy"


class TestCatalog:
    def test_list(self, client):
        body = client.get("/api/v1/indicators").json()
        keys = {item["key"] for item in body["indicators"]}
        assert body["count"] == len(body["indicators"])
        assert {"sma", "rsi", "macd", "doji", "pivotpoints"} <= keys

    def test_single_entry(self, client):
        body = client.get("/api/v1/indicators/RSI").json()
        assert body["key"] == "rsi"
        assert body["defaults"]["period"] == 14
        # structural 15 + safety margin 50
        assert body["lookback"] == 65

    def test_unknown_entry(self, client):
        assert client.get("/api/v1/indicators/no_such_indicator").status_code == 404


class TestCalculate:
    def test_direct(self, client, candles):
        response = client.post(
            "/api/v1/indicators/calculate",
            json={"candles": candles, "indicators": ["sma", "macd"], "result_count": 3},
        )
        assert response.status_code == 200
        body = response.json()
        sma = body["indicators"]["sma"]
        assert body["mode"] == "direct"
        assert sma["length"] == 3
        assert sma["timestamps"] == [c["timestamp"] for c in candles[-3:]]
        assert set(body["indicators"]["macd"]["outputs"]) == {"macd", "signal", "histogram"}

    def test_snapshot_with_failed_slot(self, client, candles):
        response = client.post(
            "/api/v1/indicators/calculate",
            json={
                "candles": candles,
                "indicators": ["rsi", {"key": "sma", "overrides": {"period": 500}}],
                "mode": "snapshot",
            },
        )
        assert response.status_code == 200
        indicators = response.json()["snapshot"]["indicators"]
        assert isinstance(indicators["rsi"], float)
        assert indicators["sma"]["error_type"] == "DataInsufficientError"

    def test_backtrack(self, client, candles):
        response = client.post(
            "/api/v1/indicators/calculate",
            json={
                "candles": candles,
                "indicators": ["ema"],
                "mode": "backtrack",
                "backtrack_periods": 4,
            },
        )
        backtrack = response.json()["backtrack"]
        assert len(backtrack["results"]) == 4
        assert [step["index"] for step in backtrack["results"]] == [0, 1, 2, 3]
        assert backtrack["end_time"] == candles[-1]["timestamp"]

    def test_unordered_candles_rejected(self, client, candles):
        response = client.post(
            "/api/v1/indicators/calculate",
            json={"candles": list(reversed(candles)), "indicators": ["sma"]},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["error_type"] == "ValidationError"

    def test_invalid_candle_rejected(self, client, candles):
        candles[0]["high"] = candles[0]["low"] - 1
        response = client.post(
            "/api/v1/indicators/calculate", json={"candles": candles, "indicators": ["sma"]}
        )
        assert response.status_code == 422

    def test_duplicate_keys_rejected(self, client, candles):
        response = client.post(
            "/api/v1/indicators/calculate",
            json={"candles": candles, "indicators": ["sma", "sma"]},
        )
        assert response.status_code == 400


class TestAnalyze:
    def test_mock_source(self, client):
        response = client.post(
            "/api/v1/indicators/analyze",
            json={"symbol": "AAPL", "source": "mock", "indicators": ["rsi"], "mode": "snapshot"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["symbol"] == "AAPL"
        assert 0 <= body["snapshot"]["indicators"]["rsi"] <= 100

    def test_unsupported_source(self, client):
        response = client.post(
            "/api/v1/indicators/analyze",
            json={"symbol": "AAPL", "source": "nowhere", "indicators": ["rsi"]},
        )
        assert response.status_code == 404
        assert response.json()["detail"]["error_type"] == "UnsupportedSourceError"

    def test_insufficient_history(self, client):
        response = client.post(
            "/api/v1/indicators/analyze",
            json={
                "symbol": "AAPL",
                "source": "mock",
                "indicators": [{"key": "sma", "overrides": {"period": 6000}}],
            },
        )
        assert response.status_code == 422
        assert response.json()["detail"]["error_type"] == "DataInsufficientError"

    def test_missing_symbol_in_memory_source(self, client):
        response = client.post(
            "/api/v1/indicators/analyze",
            json={"symbol": "NOPE", "source": "memory", "indicators": ["rsi"]},
        )
        assert response.status_code == 502


class TestMarket:
    def test_sources(self, client):
        body = client.get("/api/v1/market/sources").json()
        assert body["default"] == "mock"
        assert "mock" in body["sources"]

    def test_ohlcv(self, client):
        body = client.get("/api/v1/market/BTC/ohlcv", params={"timeframe": "1d", "limit": 25}).json()
        assert body["count"] == 25
        assert body["timeframe"] == "1d"
        assert len(body["candles"]) == 25


@pytest.mark.parametrize(
    "error, status_code",
    [
        (MissingCredentialError("MarketDataService", "no key"), 503),
        (UnsupportedSourceError("MarketDataService", "no source"), 404),
        (UpstreamResponseError("MarketDataService", "bad payload"), 502),
    ],
)
def test_market_data_error_status(error, status_code):
    exc = http_error(error)
    assert exc.status_code == status_code
    assert exc.detail["error_type"] == type(error).__name__
