"""
Registry-wide tests: every registered indicator computes on a realistic
series, is tail-aligned, and honours its declared warmup exactly.
"""

import numpy as np
import pytest

from conftest import random_walk_series
from indicator_engine.schemas.indicators import ComputedValue, ValueKind
from indicator_engine.services.base import (
    ConfigurationError,
    DataInsufficientError,
    UnknownIndicatorError,
)
from indicator_engine.services.indicators.calculations import FieldVectors
from indicator_engine.services.indicators.params import resolve
from indicator_engine.services.indicators.registry import (
    Kind,
    compute,
    describe,
    get_spec,
    is_registered,
    keys,
)

ALL_KEYS = keys()
SERIES = random_walk_series(n=600, seed=7)
FIELDS = FieldVectors.from_series(SERIES)


def _vectors(value: ComputedValue) -> dict:
    if value.kind == ValueKind.SERIES:
        return {"value": value.values}
    return dict(value.outputs)


class TestCatalog:
    def test_registry_is_populated(self):
        assert len(ALL_KEYS) > 150

    @pytest.mark.parametrize(
        "key",
        ["sma", "ema", "rsi", "macd", "bbands", "atr", "obv", "adx", "ichimoku", "doji",
         "pivotpoints", "beta", "sqrt", "candle", "tdsequential", "supportresistance"],
    )
    def test_core_keys_registered(self, key):
        assert is_registered(key)

    def test_describe_lists_every_key(self):
        catalog = describe()
        assert sorted(item["key"] for item in catalog) == ALL_KEYS
        rsi = next(item for item in catalog if item["key"] == "rsi")
        assert rsi["defaults"] == {"period": 14}
        assert rsi["family"] == "momentum"

    def test_unknown_key(self):
        with pytest.raises(UnknownIndicatorError) as excinfo:
            get_spec("no_such_indicator")
        assert isinstance(excinfo.value, NotImplementedError)
        assert isinstance(excinfo.value, ConfigurationError)


@pytest.mark.parametrize("key", ALL_KEYS)
def test_default_computation_is_aligned(key):
    spec = get_spec(key)
    params = resolve(key)
    value = compute(key, FIELDS, params)
    n = len(FIELDS)

    assert value.end == n
    if spec.kind == Kind.AGGREGATE:
        assert value.kind == ValueKind.SCALAR
        assert value.offset == n - 1
        return

    assert value.offset == spec.warmup(params)
    assert value.length == n - value.offset
    for name, vector in _vectors(value).items():
        assert len(vector) == value.length, name
        assert not vector.flags.writeable, name
        if vector.dtype.kind == "f":
            assert np.all(np.isfinite(vector)), name


@pytest.mark.parametrize("key", ALL_KEYS)
def test_structural_minimum_is_exact(key):
    spec = get_spec(key)
    params = resolve(key)
    required = spec.minimum_candles(params)

    exact = FieldVectors.from_series(SERIES.tail(required))
    value = compute(key, exact, params)
    if spec.kind != Kind.AGGREGATE:
        assert value.length == 1

    if required > 1:
        short = FieldVectors.from_series(SERIES.tail(required - 1))
        with pytest.raises(DataInsufficientError):
            compute(key, short, params)


@pytest.mark.parametrize("key", ["sma", "rsi", "macd", "atr", "adx", "stoch", "kama", "psar"])
def test_no_lookahead(key):
    """Values on a prefix equal the full-series values for the same candles."""
    params = resolve(key)
    full = compute(key, FIELDS, params)
    prefix = compute(key, FieldVectors.from_series(SERIES[:400]), params)

    for name, vector in _vectors(prefix).items():
        expected = _vectors(full)[name][: prefix.length]
        np.testing.assert_allclose(vector, expected, rtol=1e-9, err_msg=name)


def test_same_input_same_output():
    params = resolve("tema")
    first = compute("tema", FIELDS, params)
    second = compute("tema", FIELDS, params)
    np.testing.assert_array_equal(first.values, second.values)


def test_invalid_parameter_raises_configuration_error():
    with pytest.raises(ConfigurationError):
        compute("sma", FIELDS, resolve("sma", {"period": 0}))
