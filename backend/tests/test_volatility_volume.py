"""
Volatility and volume indicator reference values.
"""

import numpy as np
import pytest

from conftest import make_series, run
from indicator_engine.services.base import ComputationError
from indicator_engine.services.indicators.volume import obv, vwap


def banded_series(n: int = 40, close: float = 50.0):
    """Constant close with a fixed +/-1 range on every candle."""
    return make_series(
        [close] * n, highs=[close + 1] * n, lows=[close - 1] * n, volumes=[100.0] * n
    )


class TestRanges:
    def test_true_range_uses_previous_close(self):
        series = make_series([10, 13], opens=[10, 13], highs=[10, 15], lows=[10, 12])
        value = run("tr", series)
        assert value.offset == 1
        assert value.latest() == pytest.approx(5.0)

    def test_atr_constant_range(self):
        value = run("atr", banded_series(), period=5)
        assert value.offset == 5
        np.testing.assert_allclose(value.values, 2.0)

    def test_natr_is_percent_of_same_candle_close(self):
        value = run("natr", banded_series(), period=5)
        assert value.offset == 5
        np.testing.assert_allclose(value.values, 4.0)


class TestBands:
    def test_bbands_collapse_on_constant(self, flat_series):
        value = run("bbands", flat_series)
        for vector in value.outputs.values():
            np.testing.assert_allclose(vector, 50.0)

    def test_bbp_and_bbw_on_constant(self, flat_series):
        np.testing.assert_allclose(run("bbp", flat_series).values, 0.5)
        np.testing.assert_allclose(run("bbw", flat_series).values, 0.0)

    def test_bbands_ordering(self, series):
        out = run("bbands", series).outputs
        assert np.all(out["upper"] >= out["middle"])
        assert np.all(out["middle"] >= out["lower"])

    def test_keltner_warmup_uses_both_periods(self, series):
        value = run("keltnerchannels", series, period=20, atrPeriod=30)
        assert value.offset == 30
        np.testing.assert_allclose(
            value.outputs["middle"], run("ema", series, period=20).values[-value.length:]
        )

    def test_donchian(self):
        series = make_series([5, 5, 5], highs=[6, 9, 7], lows=[1, 4, 3])
        out = run("donchianchannels", series, period=3).latest()
        assert out == {"upper": 9.0, "middle": 5.0, "lower": 1.0}


class TestDispersion:
    def test_stddev_population(self):
        value = run("stddev", make_series([1, 2, 3, 4]), period=4)
        assert value.latest() == pytest.approx(np.sqrt(1.25))
        assert run("var", make_series([1, 2, 3, 4]), period=4).latest() == pytest.approx(1.25)

    def test_volatility_needs_positive_closes(self):
        with pytest.raises(ComputationError):
            run("volatility", make_series([1, 0, 1]), period=2)

    def test_volatility_zero_on_constant(self, flat_series):
        np.testing.assert_allclose(run("volatility", flat_series).values, 0.0)


class TestVolume:
    def test_obv(self):
        result = obv(np.array([10.0, 11, 10, 10]), np.array([100.0, 200, 300, 400]))
        np.testing.assert_allclose(result, [100, 300, 0, 0])

    def test_obv_single_candle(self):
        value = run("obv", make_series([10], volumes=[100]))
        np.testing.assert_allclose(value.values, [100.0])

    def test_ad_close_at_high(self, rising_series):
        # high == close and low == close: zero range counts as no flow
        np.testing.assert_allclose(run("ad", rising_series).values, 0.0)

    def test_ad_accumulates(self):
        series = make_series([12, 12], opens=[10, 10], highs=[12, 12], lows=[10, 10],
                             volumes=[100, 50])
        np.testing.assert_allclose(run("ad", series).values, [100.0, 150.0])

    def test_vwap_cumulative(self):
        highs = np.array([11.0, 21.0])
        lows = np.array([9.0, 19.0])
        closes = np.array([10.0, 20.0])
        volumes = np.array([1.0, 3.0])
        np.testing.assert_allclose(vwap(highs, lows, closes, volumes), [10.0, 17.5])

    def test_vwap_rolling_warmup(self, series):
        assert run("vwap", series, period=10).offset == 9
        assert run("vwap", series).offset == 0

    def test_volume_indices_start_at_1000(self, series):
        assert run("nvi", series).values[0] == pytest.approx(1000.0)
        assert run("pvi", series).values[0] == pytest.approx(1000.0)

    def test_volume_split(self):
        series = make_series([10, 11, 11, 10], volumes=[1, 100, 50, 30])
        out = run("volumesplit", series).outputs
        np.testing.assert_allclose(out["buyVolume"], [100, 25, 0])
        np.testing.assert_allclose(out["sellVolume"], [0, 25, 30])

    def test_cmf_bounded(self, series):
        values = run("cmf", series).values
        assert np.all(np.abs(values) <= 1 + 1e-12)

    def test_vosc_constant_volume(self, flat_series):
        np.testing.assert_allclose(run("vosc", flat_series).values, 0.0)

    def test_kvo_outputs(self, long_series):
        value = run("kvo", long_series)
        assert set(value.outputs) == {"kvo", "signal"}
        assert value.offset == 55 + 13 - 1
