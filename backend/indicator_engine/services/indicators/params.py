"""
Indicator Parameter Resolution

Merges the static per-indicator default table with caller overrides.

Resolution order for every field a formula reads:
    override > DEFAULT_PARAMS entry > fallback hard-coded at the accessor call

Defaults are frozen at import time and never mutated.
"""

import logging
import math
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Iterable, Optional, Union

from indicator_engine.services.base import ConfigurationError

logger = logging.getLogger(__name__)

Number = Union[int, float]


def _freeze(table: dict) -> MappingProxyType:
    return MappingProxyType({key: MappingProxyType(dict(fields)) for key, fields in table.items()})


# =============================================================================
# DEFAULT PARAMETER TABLE
# =============================================================================

DEFAULT_PARAMS = _freeze(
    {
        # Moving averages
        "sma": {"period": 20},
        "ema": {"period": 20},
        "wma": {"period": 20},
        "dema": {"period": 20},
        "tema": {"period": 20},
        "trima": {"period": 20},
        "kama": {"period": 10, "fastPeriod": 2, "slowPeriod": 30},
        "t3": {"period": 5, "volumeFactor": 0.7},
        "ma": {"period": 20, "type": "SMA"},
        "vwma": {"period": 20},
        "hma": {"period": 9},
        "smma": {"period": 14},
        "wilders": {"period": 14},
        "zlema": {"period": 20},
        "vidya": {"period": 14},
        "mama": {"fastLimit": 0.5, "slowLimit": 0.05},
        "midpoint": {"period": 14},
        "midprice": {"period": 14},
        "alma": {"period": 9, "offset": 0.85, "sigma": 6},
        "mcginley": {"period": 14},
        "alligator": {"jawPeriod": 13, "teethPeriod": 8, "lipsPeriod": 5},
        # Momentum / oscillators
        "rsi": {"period": 14},
        "macd": {"fastPeriod": 12, "slowPeriod": 26, "signalPeriod": 9},
        "macdext": {
            "fastPeriod": 12,
            "slowPeriod": 26,
            "signalPeriod": 9,
            "SimpleMAOscillator": False,
            "SimpleMASignal": False,
        },
        "macdfix": {"signalPeriod": 9},
        "stoch": {"period": 14, "kSmoothing": 1, "signalPeriod": 3},
        "stochf": {"period": 5, "signalPeriod": 3},
        "stochrsi": {"rsiPeriod": 14, "stochasticPeriod": 14, "kPeriod": 3, "dPeriod": 3},
        "apo": {"fastPeriod": 12, "slowPeriod": 26, "type": "EMA"},
        "ppo": {"fastPeriod": 12, "slowPeriod": 26, "signalPeriod": 9},
        "aroon": {"period": 14},
        "aroonosc": {"period": 14},
        "cci": {"period": 20},
        "cmo": {"period": 14},
        "mfi": {"period": 14},
        "mom": {"period": 10},
        "roc": {"period": 12},
        "rocp": {"period": 12},
        "rocr": {"period": 12},
        "rocr100": {"period": 12},
        "willr": {"period": 14},
        "ultosc": {"period1": 7, "period2": 14, "period3": 28},
        "trix": {"period": 18},
        "tsi": {"longPeriod": 25, "shortPeriod": 13, "signalPeriod": 13},
        "dpo": {"period": 20},
        "coppock": {"longPeriod": 14, "shortPeriod": 11, "wmaPeriod": 10},
        "stc": {"fastPeriod": 23, "slowPeriod": 50, "cyclePeriod": 10},
        "rvgi": {"period": 10},
        "fisher": {"period": 9},
        "qstick": {"period": 14},
        "chop": {"period": 14},
        "fosc": {"period": 14},
        "imi": {"period": 14},
        "psl": {"period": 12},
        # Volatility / bands
        "atr": {"period": 14},
        "natr": {"period": 14},
        "bbands": {"period": 20, "stdDev": 2},
        "bbw": {"period": 20, "stdDev": 2},
        "bbp": {"period": 20, "stdDev": 2},
        "keltnerchannels": {"period": 20, "atrPeriod": 10, "multiplier": 2},
        "stddev": {"period": 20},
        "var": {"period": 20},
        "volatility": {"period": 20, "annualization": 252},
        "donchianchannels": {"period": 20},
        "massindex": {"period": 25, "emaPeriod": 9},
        "accbands": {"period": 20, "factor": 4},
        "squeeze": {"period": 20, "bbMultiplier": 2, "kcMultiplier": 1.5},
        "chandelier": {"period": 22, "multiplier": 3},
        "ulcerindex": {"period": 14},
        # Volume
        "adosc": {"fastPeriod": 3, "slowPeriod": 10},
        "cmf": {"period": 20},
        "vwap": {"period": 0},
        "vosc": {"shortPeriod": 5, "longPeriod": 10},
        "kvo": {"shortPeriod": 34, "longPeriod": 55, "signalPeriod": 13},
        "efi": {"period": 13},
        "eom": {"period": 14, "divisor": 10000},
        # Trend / directional
        "adx": {"period": 14},
        "adxr": {"period": 14},
        "dx": {"period": 14},
        "plus_di": {"period": 14},
        "minus_di": {"period": 14},
        "dmi": {"period": 14},
        "psar": {"step": 0.02, "max": 0.2},
        "supertrend": {"period": 10, "multiplier": 3},
        "vortex": {"period": 14},
        "ichimoku": {"conversionPeriod": 9, "basePeriod": 26, "spanPeriod": 52, "displacement": 26},
        "ht_trendline": {},
        "vhf": {"period": 28},
        # Statistical
        "beta": {"period": 5, "input1": "high", "input2": "low"},
        "correl": {"period": 30, "input1": "high", "input2": "low"},
        "linearreg": {"period": 14},
        "linearreg_slope": {"period": 14},
        "linearreg_intercept": {"period": 14},
        "linearreg_angle": {"period": 14},
        "tsf": {"period": 14},
        "zscore": {"period": 20},
        # Levels
        "pivotpoints": {"type": "standard"},
        "swinghigh": {"lookback": 5},
        "swinglow": {"lookback": 5},
        "supportresistance": {"lookback": 50},
    }
)


# =============================================================================
# COERCION
# =============================================================================


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce_number(key: str, name: str, value: Any) -> Number:
    """Turn an override into int (when integral) or float, or fail."""
    if isinstance(value, bool):
        return int(value)
    if _is_number(value):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ConfigurationError(
                f"Parameter '{name}' of '{key}' must be numeric, got {value!r}",
                {"indicator": key, "parameter": name},
            ) from None
    else:
        raise ConfigurationError(
            f"Parameter '{name}' of '{key}' must be numeric, got {type(value).__name__}",
            {"indicator": key, "parameter": name},
        )

    if not math.isfinite(number):
        raise ConfigurationError(
            f"Parameter '{name}' of '{key}' must be finite, got {value!r}",
            {"indicator": key, "parameter": name},
        )
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def _coerce(key: str, name: str, value: Any, default: Any) -> Any:
    if isinstance(default, bool):
        return value
    if _is_number(default):
        return _coerce_number(key, name, value)
    if isinstance(default, str):
        return value if isinstance(value, str) else str(value)

    # Field unknown to the default table: keep strings, validate numbers
    if _is_number(value) or isinstance(value, bool):
        return _coerce_number(key, name, value)
    if isinstance(value, str):
        try:
            return _coerce_number(key, name, value)
        except ConfigurationError:
            return value
    return value


# =============================================================================
# PARAMETER SET
# =============================================================================


class ParameterSet(Mapping):
    """
    Immutable resolved parameters for one indicator instance.

    Formulas read fields through the typed accessors below, passing the
    hard-coded fallback used when neither the caller nor the default table
    sets the field.
    """

    __slots__ = ("_key", "_values")

    def __init__(self, key: str, values: Optional[Mapping] = None):
        self._key = key
        self._values = MappingProxyType(dict(values or {}))

    @property
    def key(self) -> str:
        return self._key

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self):
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ParameterSet({self._key!r}, {dict(self._values)!r})"

    def __hash__(self) -> int:
        return hash((self._key, tuple(sorted(self._values.items(), key=lambda kv: kv[0]))))

    def __eq__(self, other) -> bool:
        if isinstance(other, ParameterSet):
            return self._key == other._key and dict(self._values) == dict(other._values)
        return NotImplemented

    def _fail(self, name: str, message: str) -> ConfigurationError:
        return ConfigurationError(
            f"Parameter '{name}' of '{self._key}' {message}",
            {"indicator": self._key, "parameter": name},
        )

    def number(
        self,
        name: str,
        fallback: Number,
        minimum: Optional[Number] = None,
        maximum: Optional[Number] = None,
    ) -> float:
        value = self._values.get(name, fallback)
        value = _coerce_number(self._key, name, value)
        if minimum is not None and value < minimum:
            raise self._fail(name, f"must be >= {minimum}, got {value}")
        if maximum is not None and value > maximum:
            raise self._fail(name, f"must be <= {maximum}, got {value}")
        return float(value)

    def integer(
        self,
        name: str,
        fallback: int,
        minimum: Optional[int] = None,
        maximum: Optional[int] = None,
    ) -> int:
        value = self._values.get(name, fallback)
        value = _coerce_number(self._key, name, value)
        if not isinstance(value, int):
            raise self._fail(name, f"must be an integer, got {value}")
        if minimum is not None and value < minimum:
            raise self._fail(name, f"must be >= {minimum}, got {value}")
        if maximum is not None and value > maximum:
            raise self._fail(name, f"must be <= {maximum}, got {value}")
        return value

    def period(self, name: str, fallback: int, minimum: int = 1) -> int:
        """Window length; an integer >= `minimum`."""
        return self.integer(name, fallback, minimum=minimum)

    def flag(self, name: str, fallback: bool) -> bool:
        value = self._values.get(name, fallback)
        if isinstance(value, bool):
            return value
        if _is_number(value) and value in (0, 1):
            return bool(value)
        if isinstance(value, str) and value.strip().lower() in ("true", "false", "1", "0"):
            return value.strip().lower() in ("true", "1")
        raise self._fail(name, f"must be a boolean, got {value!r}")

    def choice(self, name: str, fallback: str, options: Iterable[str]) -> str:
        """Enum-like string field, matched case-insensitively against `options`."""
        value = self._values.get(name, fallback)
        lookup = {option.lower(): option for option in options}
        if isinstance(value, str) and value.strip().lower() in lookup:
            return lookup[value.strip().lower()]
        raise self._fail(name, f"must be one of {sorted(lookup.values())}, got {value!r}")


# =============================================================================
# RESOLVER
# =============================================================================


def defaults_for(key: str) -> Mapping:
    """Default table entry for `key` (empty when the key has none)."""
    return DEFAULT_PARAMS.get(key, MappingProxyType({}))


def resolve(key: str, overrides: Optional[Mapping] = None) -> ParameterSet:
    """
    Merge defaults for `key` with caller overrides (override wins).

    Raises:
        ConfigurationError: a numeric field received a non-numeric, NaN or
            infinite value
    """
    defaults = defaults_for(key)
    merged = dict(defaults)

    for name, value in (overrides or {}).items():
        merged[name] = _coerce(key, name, value, defaults.get(name))

    if overrides:
        logger.debug(f"Resolved params for {key}: {merged}")

    return ParameterSet(key, merged)
