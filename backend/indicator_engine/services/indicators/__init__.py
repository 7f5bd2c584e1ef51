"""
Indicator Engine Service

CONTRACT:
    Input:  AnalysisRequest (or a Series plus IndicatorRequests)
    Output: AnalysisResult

RESPONSIBILITIES:
    - Resolve per-indicator parameters (defaults + overrides)
    - Estimate how much history each indicator needs
    - Dispatch through the registry to the formula library
    - Direct / snapshot / no-lookahead backtrack analysis with windowing

Pure Python/NumPy. All math is deterministic and reproducible.
"""

from indicator_engine.services.indicators.interface import IndicatorServiceInterface
from indicator_engine.services.indicators.service import IndicatorService, get_indicator_service

__all__ = [
    "IndicatorServiceInterface",
    "IndicatorService",
    "get_indicator_service",
]
