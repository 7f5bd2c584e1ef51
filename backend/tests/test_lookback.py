"""
Tests for lookback estimation.
"""

import pytest

from indicator_engine.core.config import get_settings
from indicator_engine.schemas.indicators import IndicatorRequest
from indicator_engine.services.indicators.lookback import (
    estimate,
    estimate_many,
    structural_minimum,
)


class TestEstimate:
    def test_structural_minimum_is_warmup_plus_one(self):
        assert structural_minimum("sma", {"period": 20}) == 20
        assert structural_minimum("rsi", {"period": 14}) == 15
        assert structural_minimum("ema") == 20

    def test_estimate_adds_margin(self):
        margin = get_settings().lookback_safety_margin
        assert estimate("sma", {"period": 20}) == 20 + margin

    def test_explicit_margin(self):
        assert estimate("sma", {"period": 20}, margin=0) == 20

    def test_unknown_key_gets_default(self):
        assert estimate("no_such_indicator") == get_settings().default_lookback

    @pytest.mark.parametrize("key", ["sma", "ema", "rsi", "atr", "bbands", "adx", "macd"])
    def test_monotonic_in_period(self, key):
        if key == "macd":
            small = estimate(key, {"slowPeriod": 20})
            large = estimate(key, {"slowPeriod": 40})
        else:
            small = estimate(key, {"period": 10})
            large = estimate(key, {"period": 30})
        assert large > small

    def test_macd_depends_on_slow_and_signal(self):
        assert structural_minimum("macd") == 26 + 9 - 1


class TestEstimateMany:
    def test_takes_the_largest(self):
        requests = [
            IndicatorRequest(key="sma", overrides={"period": 10}),
            IndicatorRequest(key="sma", overrides={"period": 200}, label="slow"),
        ]
        assert estimate_many(requests, margin=0) == 200

    def test_bad_override_falls_back_to_default(self):
        requests = [IndicatorRequest(key="sma", overrides={"period": "abc"})]
        assert estimate_many(requests) == get_settings().default_lookback

    def test_empty(self):
        assert estimate_many([]) == 0
