"""
Statistical, price transform and math operator indicators.
"""

import math

import numpy as np
import pytest

from conftest import make_series, random_walk_series, run
from indicator_engine.services.base import ComputationError, ConfigurationError
from indicator_engine.services.indicators.statistics import (
    rolling_correlation,
    trailing_finite,
)


class TestRegression:
    def test_straight_line(self, rising_series):
        # closes 1..60: slope 1, line value at the newest candle is the close
        np.testing.assert_allclose(run("linearreg_slope", rising_series, period=5).values, 1.0)
        np.testing.assert_allclose(
            run("linearreg", rising_series, period=5).values, rising_series.closes[4:]
        )
        np.testing.assert_allclose(
            run("tsf", rising_series, period=5).values, rising_series.closes[4:] + 1
        )
        np.testing.assert_allclose(
            run("linearreg_intercept", rising_series, period=5).values, rising_series.closes[:-4]
        )
        np.testing.assert_allclose(run("linearreg_angle", rising_series, period=5).values, 45.0)

    def test_period_must_be_at_least_two(self, series):
        with pytest.raises(ConfigurationError):
            run("linearreg", series, period=1)

    def test_zscore(self):
        value = run("zscore", make_series([1, 2, 3]), period=3)
        assert value.latest() == pytest.approx(1 / math.sqrt(2 / 3))

    def test_zscore_flat_window(self, flat_series):
        np.testing.assert_allclose(run("zscore", flat_series).values, 0.0)


class TestPairStatistics:
    def test_correlation_of_identical_inputs(self, series):
        value = run("correl", series, input1="close", input2="close", period=10)
        assert value.offset == 9
        np.testing.assert_allclose(value.values, 1.0)

    def test_correlation_flat_side_reads_zero(self):
        x = np.arange(10.0)
        np.testing.assert_allclose(rolling_correlation(x, np.ones(10), 5), 0.0)

    def test_beta_against_itself(self, series):
        value = run("beta", series, input1="close", input2="close")
        assert value.offset == 5
        np.testing.assert_allclose(value.values, 1.0)

    def test_beta_against_reference(self, series):
        reference = random_walk_series(n=len(series), seed=99)
        value = run("beta", series, reference=reference, input1="close", input2="reference")
        assert value.offset == 5
        assert np.all(np.isfinite(value.values))

    def test_reference_with_shorter_history(self, series):
        reference = series[100:]
        value = run("correl", series, reference=reference, input1="close", input2="reference")
        # only candles covered by the reference contribute
        assert value.offset == 100 + 29

    def test_reference_required(self, series):
        with pytest.raises(ConfigurationError):
            run("correl", series, input1="close", input2="reference")

    def test_trailing_finite(self):
        a = np.array([1.0, np.nan, 2, 3])
        b = np.array([1.0, 1, 1, 1])
        trimmed_a, trimmed_b = trailing_finite(a, b)
        np.testing.assert_array_equal(trimmed_a, [2, 3])
        np.testing.assert_array_equal(trimmed_b, [1, 1])


class TestPriceTransforms:
    def test_prices(self):
        series = make_series([12], opens=[10], highs=[14], lows=[8])
        assert run("avgprice", series).latest() == pytest.approx(11.0)
        assert run("medprice", series).latest() == pytest.approx(11.0)
        assert run("typprice", series).latest() == pytest.approx(34 / 3)
        assert run("wclprice", series).latest() == pytest.approx(11.5)
        assert run("price", series, source="open").latest() == pytest.approx(10.0)

    def test_candle_aggregate(self, series):
        value = run("candle", series)
        assert value.offset == len(series) - 1
        assert value.latest() == series.last.model_dump()


class TestMath:
    def test_transforms(self):
        series = make_series([4.0, 2.5])
        assert run("sqrt", series).values[0] == pytest.approx(2.0)
        assert run("ln", series).latest() == pytest.approx(math.log(2.5))
        assert run("log10", series).latest() == pytest.approx(math.log10(2.5))
        assert run("ceil", series).latest() == pytest.approx(3.0)
        assert run("floor", series).latest() == pytest.approx(2.0)

    def test_round_half_up(self):
        np.testing.assert_allclose(run("round", make_series([2.5, 3.5, 0.4])).values, [3, 4, 0])

    def test_domain_errors(self):
        zero = make_series([0.0, 1.0])
        with pytest.raises(ComputationError):
            run("ln", zero)
        with pytest.raises(ComputationError):
            run("log10", zero)
        with pytest.raises(ComputationError):
            run("div", zero, input1="close", input2="open")

    def test_exp_overflow_is_caught(self):
        with pytest.raises(ComputationError):
            run("exp", make_series([1000.0]))

    def test_binary_operators(self):
        series = make_series([10], highs=[12], lows=[8])
        assert run("add", series).latest() == pytest.approx(20.0)
        assert run("sub", series).latest() == pytest.approx(4.0)
        assert run("mult", series).latest() == pytest.approx(96.0)
        assert run("div", series).latest() == pytest.approx(1.5)
        assert run("sub", series, input1="close", input2="low").latest() == pytest.approx(2.0)

    def test_aggregates(self):
        series = make_series([3, 1, 2])
        assert run("max", series).latest() == pytest.approx(3.0)
        assert run("min", series).latest() == pytest.approx(1.0)
        assert run("sum", series).latest() == pytest.approx(6.0)
        assert run("sum", series, source="volume").latest() == pytest.approx(3000.0)
