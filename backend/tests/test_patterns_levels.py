"""
Candlestick patterns and support/resistance levels.
"""

import numpy as np
import pytest

from conftest import make_series, run
from indicator_engine.services.base import ConfigurationError
from indicator_engine.services.indicators.levels import (
    find_pivot_points,
    find_support_resistance,
    prior_swing,
)


def candles(*rows):
    """Series from (open, high, low, close) tuples."""
    opens, highs, lows, closes = zip(*rows)
    return make_series(closes, opens=opens, highs=highs, lows=lows)


class TestSingleCandle:
    def test_doji(self):
        value = run("doji", candles((10, 12, 8, 10.1), (10, 12, 8, 11.5)))
        assert value.values.dtype == bool
        assert value.values.tolist() == [True, False]

    def test_hammer(self):
        value = run("hammer", candles((10, 10.15, 7, 10.1)))
        assert value.latest() is True

    def test_inverted_hammer(self):
        value = run("invertedhammer", candles((10, 13, 9.95, 10.1)))
        assert value.latest() is True

    def test_marubozu(self):
        assert run("marubozu", candles((10, 12, 10, 12))).latest() is True
        assert run("marubozu", candles((10, 13, 9, 12))).latest() is False

    def test_dragonfly_and_gravestone(self):
        dragonfly = candles((12, 12, 8, 12))
        gravestone = candles((8, 12, 8, 8))
        assert run("dragonflydoji", dragonfly).latest() is True
        assert run("gravestonedoji", dragonfly).latest() is False
        assert run("gravestonedoji", gravestone).latest() is True

    def test_spinning_top(self):
        assert run("spinningtop", candles((10, 12, 8, 10.8))).latest() is True


class TestTwoCandles:
    def test_bullish_engulfing(self):
        series = candles((11, 11.5, 9.5, 10), (9.8, 12, 9.5, 11.5))
        value = run("bullishengulfing", series)
        assert value.offset == 1
        assert value.latest() is True
        assert run("engulfing", series).latest() is True
        assert run("bearishengulfing", series).latest() is False

    def test_bearish_engulfing(self):
        series = candles((10, 11.5, 9.5, 11), (11.2, 11.5, 9, 9.5))
        assert run("bearishengulfing", series).latest() is True

    def test_harami(self):
        series = candles((10, 12.5, 9.5, 12), (11.5, 11.8, 10.5, 10.8))
        assert run("harami", series).latest() is True

    def test_piercing(self):
        series = candles((12, 12.2, 9.8, 10), (9.5, 11.6, 9.4, 11.5))
        assert run("piercing", series).latest() is True

    def test_dark_cloud_cover(self):
        series = candles((10, 12.2, 9.8, 12), (12.5, 12.6, 10.4, 10.5))
        assert run("darkcloudcover", series).latest() is True

    def test_tweezers(self):
        top = candles((10, 12, 9.5, 11.5), (11.5, 12.005, 10, 10.2))
        bottom = candles((11.5, 12, 9, 10), (10.2, 11.8, 9.005, 11.5))
        assert run("tweezertop", top).latest() is True
        assert run("tweezerbottom", bottom).latest() is True

    def test_inside_and_outside_bars(self):
        inside = candles((10, 12, 8, 11), (10, 11, 9, 10.5))
        outside = candles((10, 11, 9, 10.5), (10, 12, 8, 11))
        assert run("insidebar", inside).latest() is True
        assert run("outsidebar", inside).latest() is False
        assert run("outsidebar", outside).latest() is True


class TestThreeCandles:
    def test_morning_star(self):
        series = candles((12, 12.2, 9.9, 10), (9.8, 10, 9.5, 9.7), (9.9, 11.6, 9.8, 11.5))
        value = run("morningstar", series)
        assert value.offset == 2
        assert value.latest() is True

    def test_evening_star(self):
        series = candles((10, 12.1, 9.9, 12), (12.2, 12.5, 12, 12.3), (12.1, 12.2, 10.4, 10.5))
        assert run("eveningstar", series).latest() is True

    def test_three_white_soldiers(self):
        series = candles((10, 11.1, 9.9, 11), (10.5, 12.1, 10.4, 12), (11.5, 13.1, 11.4, 13))
        assert run("threewhitesoldiers", series).latest() is True
        assert run("threeblackcrows", series).latest() is False

    def test_three_black_crows(self):
        series = candles((13, 13.1, 11.9, 12), (12.5, 12.6, 10.9, 11), (11.5, 11.6, 9.9, 10))
        assert run("threeblackcrows", series).latest() is True

    def test_hanging_man_needs_uptrend(self):
        rising = candles((9, 9.5, 8.9, 9.4), (9.4, 10, 9.3, 9.9), (10, 10.07, 8, 10.05))
        falling = candles((11, 11.1, 10.4, 10.5), (10.5, 10.6, 9.9, 10), (10, 10.07, 8, 10.05))
        assert run("hangingman", rising).latest() is True
        assert run("hangingman", falling).latest() is False


class TestPivotPoints:
    def test_standard_values(self):
        levels = find_pivot_points(110.0, 90.0, 100.0)
        assert levels["pivot"] == pytest.approx(100.0)
        assert levels["r1"] == pytest.approx(110.0)
        assert levels["s1"] == pytest.approx(90.0)
        assert levels["r2"] == pytest.approx(120.0)
        assert levels["s2"] == pytest.approx(80.0)

    def test_fibonacci_values(self):
        levels = find_pivot_points(110.0, 90.0, 100.0, "fibonacci")
        assert levels["r1"] == pytest.approx(107.64)
        assert levels["s3"] == pytest.approx(80.0)

    def test_unknown_type(self):
        with pytest.raises(ConfigurationError):
            find_pivot_points(110.0, 90.0, 100.0, "woodie")

    def test_registered_uses_previous_candle(self):
        series = candles((100, 110, 90, 100), (100, 150, 50, 140))
        value = run("pivotpoints", series)
        assert value.offset == 1
        assert value.latest()["pivot"] == pytest.approx(100.0)

    def test_camarilla_choice(self):
        series = candles((100, 110, 90, 100), (100, 150, 50, 140))
        value = run("pivotpoints", series, type="Camarilla")
        assert value.latest()["r1"] == pytest.approx(100 + 20 * 1.1 / 12)


class TestSwingsAndRanges:
    def test_fibretracement(self):
        series = make_series([100, 100], highs=[120, 110], lows=[100, 80])
        levels = run("fibretracement", series).latest()
        assert levels["level_0"] == pytest.approx(120.0)
        assert levels["level_500"] == pytest.approx(100.0)
        assert levels["level_100"] == pytest.approx(80.0)

    def test_prior_swing_carries_forward(self):
        highs = np.array([1.0, 3, 2, 1, 1, 1])
        np.testing.assert_allclose(prior_swing(highs, 2), [3, 3, 3, 3])

    def test_swinghigh_warmup(self, series):
        assert run("swinghigh", series, lookback=7).offset == 7
        assert run("swinglow", series).offset == 5

    def test_support_resistance(self):
        highs = np.array([10, 11, 15, 11, 10, 11, 12, 11, 10, 9, 10], dtype=float)
        lows = highs - 2
        lows[8] = 5.0
        closes = np.full(len(highs), 11.0)
        support, resistance = find_support_resistance(highs, lows, closes, lookback=11)
        assert resistance == [12.0, 15.0]
        assert support == [8.0, 5.0]

    def test_support_resistance_registered(self, series):
        value = run("supportresistance", series)
        levels = value.latest()
        assert set(levels) == {"support", "resistance"}
        assert all(level < series.last.close for level in levels["support"])
        assert all(level > series.last.close for level in levels["resistance"])
        assert len(levels["support"]) <= 5
