"""
Math Operators

Element-wise transforms read `source` (close by default); binary operators
read `input1` and `input2` (high and low by default). Out-of-domain inputs
raise ComputationError instead of producing NaN.
"""

import numpy as np

from indicator_engine.services.base import ComputationError
from indicator_engine.services.indicators.calculations import SOURCES
from indicator_engine.services.indicators.moving_averages import source
from indicator_engine.services.indicators.registry import Kind, register

FAMILY = "math"


def _domain(key: str, data: np.ndarray, valid: np.ndarray, requirement: str) -> None:
    if not np.all(valid):
        bad = int(np.flatnonzero(~valid)[0])
        raise ComputationError(
            f"'{key}' requires {requirement}, got {data[bad]} at index {bad}",
            {"indicator": key, "index": bad},
        )


def _transform(key: str, func, domain=None, requirement: str = ""):
    def handler(fields, params):
        data = np.asarray(source(fields, params), dtype=float)
        if domain is not None:
            _domain(key, data, domain(data), requirement)
        return func(data)

    handler.__doc__ = f"Element-wise {key} of the source field."
    register(key, Kind.TRANSFORM, FAMILY, warmup=0)(handler)


_transform("abs", np.abs)
_transform("sqrt", np.sqrt, lambda x: x >= 0, "non-negative values")
_transform("ln", np.log, lambda x: x > 0, "positive values")
_transform("log10", np.log10, lambda x: x > 0, "positive values")
_transform("exp", np.exp)
_transform("ceil", np.ceil)
_transform("floor", np.floor)
_transform("round", lambda x: np.floor(x + 0.5))
_transform("sin", np.sin)
_transform("cos", np.cos)
_transform("tan", np.tan)


# =============================================================================
# BINARY OPERATORS
# =============================================================================


def _operands(fields, params) -> tuple[np.ndarray, np.ndarray]:
    first = fields.source(params.choice("input1", "high", SOURCES))
    second = fields.source(params.choice("input2", "low", SOURCES))
    return np.asarray(first, dtype=float), np.asarray(second, dtype=float)


@register("add", Kind.TRANSFORM, FAMILY, warmup=0)
def _add(fields, params):
    """input1 + input2."""
    first, second = _operands(fields, params)
    return first + second


@register("sub", Kind.TRANSFORM, FAMILY, warmup=0)
def _sub(fields, params):
    """input1 - input2."""
    first, second = _operands(fields, params)
    return first - second


@register("mult", Kind.TRANSFORM, FAMILY, warmup=0)
def _mult(fields, params):
    """input1 * input2."""
    first, second = _operands(fields, params)
    return first * second


@register("div", Kind.TRANSFORM, FAMILY, warmup=0)
def _div(fields, params):
    """input1 / input2."""
    first, second = _operands(fields, params)
    _domain("div", second, second != 0, "a non-zero divisor")
    return first / second


# =============================================================================
# AGGREGATES
# =============================================================================


@register("max", Kind.AGGREGATE, FAMILY, warmup=0)
def _max(fields, params):
    """Highest source value over the whole series."""
    return float(np.max(source(fields, params)))


@register("min", Kind.AGGREGATE, FAMILY, warmup=0)
def _min(fields, params):
    """Lowest source value over the whole series."""
    return float(np.min(source(fields, params)))


@register("sum", Kind.AGGREGATE, FAMILY, warmup=0)
def _sum(fields, params):
    """Sum of the source field over the whole series."""
    return float(np.sum(source(fields, params)))
