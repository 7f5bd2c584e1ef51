"""
Tests for the market schemas: Candle validation and the immutable Series.
"""

import numpy as np
import pydantic
import pytest

from conftest import HOUR_MS, START_MS, make_series
from indicator_engine.schemas.market import Candle, DataRequest, Series, Timeframe
from indicator_engine.services.base import ValidationError


class TestCandle:
    def test_valid_candle(self):
        candle = Candle(timestamp=1, open=10, high=12, low=9, close=11, volume=100)
        assert candle.high == 12.0

    def test_high_below_close_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            Candle(timestamp=1, open=10, high=10.5, low=9, close=11, volume=100)

    def test_low_above_open_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            Candle(timestamp=1, open=10, high=12, low=10.5, close=11, volume=100)

    def test_negative_volume_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            Candle(timestamp=1, open=10, high=12, low=9, close=11, volume=-1)

    def test_nan_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            Candle(timestamp=1, open=float("nan"), high=12, low=9, close=11, volume=1)

    def test_candle_is_frozen(self):
        candle = Candle(timestamp=1, open=10, high=12, low=9, close=11, volume=100)
        with pytest.raises(pydantic.ValidationError):
            candle.close = 5


class TestSeries:
    def test_from_rows(self):
        series = Series.from_rows([[1, 10, 12, 9, 11, 100], [2, 11, 13, 10, 12, 200]])
        assert len(series) == 2
        np.testing.assert_array_equal(series.closes, [11.0, 12.0])
        np.testing.assert_array_equal(series.timestamps, [1, 2])

    def test_from_dicts(self):
        series = Series([{"timestamp": 5, "open": 1, "high": 2, "low": 1, "close": 2, "volume": 0}])
        assert series.last.close == 2.0

    def test_short_row_rejected(self):
        with pytest.raises(ValidationError):
            Series([[1, 10, 12, 9, 11]])

    def test_timestamps_must_increase(self):
        with pytest.raises(ValidationError):
            Series.from_rows([[2, 10, 12, 9, 11, 100], [1, 11, 13, 10, 12, 200]])

    def test_duplicate_timestamps_rejected(self):
        with pytest.raises(ValidationError):
            Series.from_rows([[1, 10, 12, 9, 11, 100], [1, 11, 13, 10, 12, 200]])

    def test_fields_are_read_only(self, series):
        with pytest.raises(ValueError):
            series.closes[0] = 1.0

    def test_series_is_immutable(self, series):
        with pytest.raises(AttributeError):
            series.closes = np.zeros(3)

    def test_slice_returns_series(self, series):
        prefix = series[:10]
        assert isinstance(prefix, Series)
        assert len(prefix) == 10
        assert prefix.last == series[9]

    def test_strided_slice_rejected(self, series):
        with pytest.raises(ValueError):
            series[::2]

    def test_head_and_tail(self, series):
        assert len(series.head(5)) == 5
        assert series.head(5).last == series[4]
        assert series.tail(5).last == series.last
        assert len(series.tail(0)) == 0
        assert len(series.tail(10_000)) == len(series)

    def test_empty_series(self):
        series = Series()
        assert len(series) == 0
        assert series.last is None
        assert repr(series) == "Series([])"

    def test_equality_by_candles(self):
        a = make_series([1, 2, 3])
        b = make_series([1, 2, 3])
        assert a == b
        assert hash(a) == hash(b)
        assert a != make_series([1, 2, 4])

    def test_helper_spacing(self):
        series = make_series([1, 2, 3])
        np.testing.assert_array_equal(
            series.timestamps, [START_MS, START_MS + HOUR_MS, START_MS + 2 * HOUR_MS]
        )


class TestDataRequest:
    def test_defaults(self):
        request = DataRequest(symbol="AAPL")
        assert request.source == "mock"
        assert request.timeframe == Timeframe.H1

    def test_limit_bounds(self):
        with pytest.raises(pydantic.ValidationError):
            DataRequest(symbol="AAPL", limit=0)
