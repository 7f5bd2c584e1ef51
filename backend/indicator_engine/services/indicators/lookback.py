"""
Lookback Estimation

How many candles an indicator needs before its first output is
numerically meaningful: the structural warmup plus one, plus a safety margin
for recursive formulas whose early values still carry their seed.
"""

import logging
from collections.abc import Mapping
from typing import Iterable, Optional, Union

from indicator_engine.core.config import get_settings
from indicator_engine.schemas.indicators import IndicatorRequest
from indicator_engine.services.base import IndicatorError
from indicator_engine.services.indicators.params import ParameterSet, resolve
from indicator_engine.services.indicators.registry import get_spec, is_registered

logger = logging.getLogger(__name__)


def _params(key: str, params: Union[ParameterSet, Mapping, None]) -> ParameterSet:
    if isinstance(params, ParameterSet):
        return params
    return resolve(key, params)


def structural_minimum(key: str, params: Union[ParameterSet, Mapping, None] = None) -> int:
    """Fewest candles for which `compute` will not raise DataInsufficientError."""
    return get_spec(key).minimum_candles(_params(key, params))


def estimate(
    key: str,
    params: Union[ParameterSet, Mapping, None] = None,
    margin: Optional[int] = None,
) -> int:
    """
    Minimum candle count to fetch for `key`.

    Keys absent from the registry get the conservative default lookback.
    """
    settings = get_settings()
    if not is_registered(key):
        return settings.default_lookback
    if margin is None:
        margin = settings.lookback_safety_margin
    return structural_minimum(key, params) + margin


def estimate_many(requests: Iterable[IndicatorRequest], margin: Optional[int] = None) -> int:
    """Largest estimate over a request list."""
    settings = get_settings()
    best = 0
    for request in requests:
        try:
            needed = estimate(request.key, request.overrides, margin)
        except IndicatorError as e:
            # The bad request fails in its own slot later
            logger.debug(f"Lookback for {request.key} unavailable: {e.message}")
            needed = settings.default_lookback
        best = max(best, needed)
    return best
