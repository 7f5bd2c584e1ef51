"""
Price Transforms
"""

import numpy as np

from indicator_engine.services.indicators.calculations import median_price, typical_price
from indicator_engine.services.indicators.moving_averages import source
from indicator_engine.services.indicators.registry import Kind, register

FAMILY = "price"


@register("avgprice", Kind.TRANSFORM, FAMILY, warmup=0)
def _avgprice(fields, params):
    """Average price: (open + high + low + close) / 4."""
    return (fields.opens + fields.highs + fields.lows + fields.closes) / 4


@register("medprice", Kind.TRANSFORM, FAMILY, warmup=0)
def _medprice(fields, params):
    """Median price: (high + low) / 2."""
    return median_price(fields.highs, fields.lows)


@register("typprice", Kind.TRANSFORM, FAMILY, warmup=0)
def _typprice(fields, params):
    """Typical price: (high + low + close) / 3."""
    return typical_price(fields.highs, fields.lows, fields.closes)


@register("wclprice", Kind.TRANSFORM, FAMILY, warmup=0)
def _wclprice(fields, params):
    """Weighted close: (high + low + 2 * close) / 4."""
    return (fields.highs + fields.lows + 2 * fields.closes) / 4


@register("price", Kind.TRANSFORM, FAMILY, warmup=0)
def _price(fields, params):
    """Raw input field (close unless `source` says otherwise)."""
    return np.array(source(fields, params), dtype=float)


@register("candle", Kind.AGGREGATE, FAMILY, warmup=0)
def _candle(fields, params):
    """Latest candle's OHLCV."""
    return {
        "timestamp": int(fields.timestamps[-1]),
        "open": float(fields.opens[-1]),
        "high": float(fields.highs[-1]),
        "low": float(fields.lows[-1]),
        "close": float(fields.closes[-1]),
        "volume": float(fields.volumes[-1]),
    }
