"""
Indicator Engine Service Interface

Defines the contract for the indicator calculation layer.
"""

from abc import abstractmethod
from typing import Optional

from indicator_engine.schemas.indicators import (
    AnalysisRequest,
    AnalysisResult,
    BacktrackResult,
    IndicatorRequest,
    ResultEntry,
    SnapshotResult,
)
from indicator_engine.schemas.market import Series
from indicator_engine.services.base import BaseService


class IndicatorServiceInterface(BaseService[AnalysisRequest, AnalysisResult]):
    """
    Indicator Engine Service Contract.

    INPUT: AnalysisRequest
        - symbol / source / timeframe: where to fetch candles
        - indicators: IndicatorRequests (key + overrides)
        - mode: direct, snapshot or backtrack
        - result_count / backtrack_offset / backtrack_periods: windowing

    OUTPUT: AnalysisResult
        - one ResultEntry (value or error) per requested indicator
    """

    @property
    def name(self) -> str:
        return "IndicatorService"

    @abstractmethod
    async def execute(self, input_data: AnalysisRequest) -> AnalysisResult:
        """Fetch candles and run the requested analysis mode."""
        pass

    @abstractmethod
    def calculate(
        self,
        series: Series,
        requests: list[IndicatorRequest],
        reference: Optional[Series] = None,
    ) -> dict[str, ResultEntry]:
        """Compute every requested indicator over the whole series."""
        pass

    @abstractmethod
    def snapshot(
        self,
        series: Series,
        requests: list[IndicatorRequest],
        reference: Optional[Series] = None,
    ) -> SnapshotResult:
        """Most recent value of every requested indicator."""
        pass

    @abstractmethod
    def backtrack(
        self,
        series: Series,
        requests: list[IndicatorRequest],
        periods: int,
        reference: Optional[Series] = None,
    ) -> BacktrackResult:
        """Replay the last `periods` candles without lookahead."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Indicator service is always healthy (pure computation)."""
        pass
