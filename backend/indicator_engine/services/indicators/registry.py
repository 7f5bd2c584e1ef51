"""
Indicator Registry

Maps an indicator key to its handler, kind, structural warmup and outputs.
Family modules register their handlers with the `register` decorator; the
dispatcher (`compute`) never needs editing when an indicator is added.

Handler contract:
    handler(fields: FieldVectors, params: ParameterSet) returns
    - np.ndarray for single-output indicators,
    - dict[str, np.ndarray] for multi-output indicators (tail-aligned here),
    - a number or flat dict for AGGREGATE indicators.
"""

import importlib
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Union

import numpy as np

from indicator_engine.schemas.indicators import ComputedValue, ValueKind
from indicator_engine.services.base import (
    ComputationError,
    DataInsufficientError,
    UnknownIndicatorError,
)
from indicator_engine.services.indicators.calculations import FieldVectors, align
from indicator_engine.services.indicators.params import ParameterSet, defaults_for

logger = logging.getLogger(__name__)


class Kind(str, Enum):
    TRANSFORM = "transform"  # stateless per-candle
    ROLLING = "rolling"  # trailing window statistic
    RECURSIVE = "recursive"  # smoothing chain
    COMPOSITE = "composite"  # multi-output overlay
    RELATIVE = "relative"  # two-series statistic
    PATTERN = "pattern"  # boolean detector
    AGGREGATE = "aggregate"  # whole-series scalar


Warmup = Union[int, Callable[[ParameterSet], int]]


@dataclass(frozen=True)
class IndicatorSpec:
    key: str
    kind: Kind
    family: str
    handler: Callable[[FieldVectors, ParameterSet], Any]
    warmup_rule: Warmup
    description: str = ""
    outputs: tuple[str, ...] = field(default_factory=tuple)

    def warmup(self, params: ParameterSet) -> int:
        """Leading candles with no defined output (structural minimum - 1)."""
        if callable(self.warmup_rule):
            return int(self.warmup_rule(params))
        return int(self.warmup_rule)

    def minimum_candles(self, params: ParameterSet) -> int:
        return self.warmup(params) + 1


_REGISTRY: dict[str, IndicatorSpec] = {}

_FAMILY_MODULES = (
    "moving_averages",
    "momentum",
    "volatility",
    "volume",
    "trend",
    "price",
    "statistics",
    "patterns",
    "levels",
    "math_ops",
)
_loaded = False


def register(
    key: str,
    kind: Kind,
    family: str,
    warmup: Warmup = 0,
    outputs: tuple[str, ...] = (),
    description: Optional[str] = None,
):
    """Decorator registering an indicator handler under `key`."""

    def decorator(handler):
        if key in _REGISTRY:
            raise ValueError(f"Indicator '{key}' registered twice")
        doc = description or (handler.__doc__ or "").strip().split("\n")[0]
        _REGISTRY[key] = IndicatorSpec(
            key=key,
            kind=kind,
            family=family,
            handler=handler,
            warmup_rule=warmup,
            description=doc,
            outputs=tuple(outputs),
        )
        return handler

    return decorator


def _ensure_loaded() -> None:
    global _loaded
    if _loaded:
        return
    for module in _FAMILY_MODULES:
        importlib.import_module(f"indicator_engine.services.indicators.{module}")
    _loaded = True
    logger.debug(f"Indicator registry loaded: {len(_REGISTRY)} indicators")


def get_registry() -> dict[str, IndicatorSpec]:
    _ensure_loaded()
    return _REGISTRY


def keys() -> list[str]:
    return sorted(get_registry())


def get_spec(key: str) -> IndicatorSpec:
    spec = get_registry().get(key)
    if spec is None:
        raise UnknownIndicatorError(f"Indicator '{key}' is not implemented", {"indicator": key})
    return spec


def is_registered(key: str) -> bool:
    return key in get_registry()


def describe() -> list[dict]:
    """Catalog listing for the API."""
    return [
        {
            "key": spec.key,
            "kind": spec.kind.value,
            "family": spec.family,
            "outputs": list(spec.outputs),
            "defaults": dict(defaults_for(spec.key)),
            "description": spec.description,
        }
        for spec in sorted(get_registry().values(), key=lambda s: (s.family, s.key))
    ]


# =============================================================================
# DISPATCH
# =============================================================================


def _check_finite(key: str, name: str, vector: np.ndarray) -> None:
    if vector.dtype.kind == "f" and not np.all(np.isfinite(vector)):
        raise ComputationError(
            f"'{key}' produced non-finite values in '{name}'",
            {"indicator": key, "output": name},
        )


def _wrap(spec: IndicatorSpec, raw: Any, n: int) -> ComputedValue:
    """Turn a handler's return value into a checked, tail-aligned ComputedValue."""
    if spec.kind == Kind.AGGREGATE:
        values = raw if isinstance(raw, dict) else {"value": raw}
        for name, value in values.items():
            if isinstance(value, (float, np.floating)) and not np.isfinite(value):
                raise ComputationError(
                    f"'{spec.key}' produced a non-finite aggregate",
                    {"indicator": spec.key, "output": name},
                )
        return ComputedValue(ValueKind.SCALAR, offset=n - 1, length=1, scalar=raw)

    if isinstance(raw, dict):
        names = list(raw)
        vectors = align(*(np.asarray(raw[name]) for name in names))
        outputs = {}
        for name, vector in zip(names, vectors):
            _check_finite(spec.key, name, vector)
            vector.setflags(write=False)
            outputs[name] = vector
        length = len(vectors[0])
        value = ComputedValue(ValueKind.STRUCTURED, offset=n - length, length=length, outputs=outputs)
    else:
        vector = np.asarray(raw)
        _check_finite(spec.key, "value", vector)
        vector.setflags(write=False)
        length = len(vector)
        value = ComputedValue(ValueKind.SERIES, offset=n - length, length=length, values=vector)

    if length == 0 or length > n:
        raise ComputationError(
            f"'{spec.key}' returned {length} values for {n} candles",
            {"indicator": spec.key},
        )
    return value


def compute(key: str, fields: FieldVectors, params: ParameterSet) -> ComputedValue:
    """
    Compute one indicator over `fields`.

    Raises:
        UnknownIndicatorError: no handler registered for `key`
        ConfigurationError: invalid parameter
        DataInsufficientError: fewer candles than the structural minimum
        ComputationError: numeric failure inside the formula
    """
    spec = get_spec(key)
    n = len(fields)
    required = spec.minimum_candles(params)

    if n < required:
        raise DataInsufficientError(
            f"'{key}' needs at least {required} candles, got {n}",
            {"indicator": key, "required": required, "available": n},
        )

    with np.errstate(all="ignore"):
        raw = spec.handler(fields, params)

    return _wrap(spec, raw, n)
