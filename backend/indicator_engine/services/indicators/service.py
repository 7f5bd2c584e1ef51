"""
Indicator Engine Service Implementation

Runs requested indicators over a Series in one of three modes:
    direct    - full aligned ComputedValue per indicator
    snapshot  - latest entry per indicator
    backtrack - latest entry per indicator at each of the last N candles,
                each step computed only from candles up to that step

Per-indicator failures are isolated into their own result slot; only
request-level problems (empty series, fetch failure, bad windowing,
too little history) raise.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Callable, Iterable, Optional, TypeVar

from indicator_engine.core.config import get_settings
from indicator_engine.schemas.indicators import (
    AnalysisMode,
    AnalysisRequest,
    AnalysisResult,
    BacktrackResult,
    BacktrackStep,
    ComputedValue,
    ErrorDescriptor,
    IndicatorRequest,
    ResultEntry,
    SnapshotResult,
    as_indicator_requests,
)
from indicator_engine.schemas.market import Series
from indicator_engine.services.base import (
    ComputationError,
    DataInsufficientError,
    IndicatorError,
    ValidationError,
)
from indicator_engine.services.data_ingestion.service import (
    MarketDataService,
    get_market_data_service,
)
from indicator_engine.services.indicators.calculations import FieldVectors
from indicator_engine.services.indicators.interface import IndicatorServiceInterface
from indicator_engine.services.indicators.lookback import estimate_many, structural_minimum
from indicator_engine.services.indicators.params import resolve
from indicator_engine.services.indicators.registry import compute

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")


class IndicatorService(IndicatorServiceInterface):
    """
    Indicator Engine Service.

    Stateless apart from its collaborators: every call works on the Series
    it is given and returns fresh results.
    """

    def __init__(
        self,
        market_data: Optional[MarketDataService] = None,
        max_workers: Optional[int] = None,
    ):
        self._market_data = market_data
        self.max_workers = max_workers if max_workers is not None else get_settings().max_workers

    @property
    def name(self) -> str:
        return "IndicatorService"

    @property
    def market_data(self) -> MarketDataService:
        if self._market_data is None:
            self._market_data = get_market_data_service()
        return self._market_data

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _check_series(self, series: Series) -> None:
        if len(series) == 0:
            raise ValidationError(self.name, "Cannot analyze an empty series")

    def _requests(self, requests: Iterable) -> list[IndicatorRequest]:
        requests = as_indicator_requests(list(requests))
        if not requests:
            raise ValidationError(self.name, "At least one indicator is required")

        seen = set()
        for request in requests:
            if request.result_key in seen:
                raise ValidationError(
                    self.name,
                    f"Duplicate result key '{request.result_key}'; set a label to request "
                    f"the same indicator twice",
                    {"result_key": request.result_key},
                )
            seen.add(request.result_key)
        return requests

    def _map(self, func: Callable[[T], U], items: list[T], parallel: bool = True) -> list[U]:
        """Apply `func` to each item, in order, on the bounded pool when useful."""
        if not parallel or self.max_workers <= 1 or len(items) <= 1:
            return [func(item) for item in items]
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(items))) as pool:
            return list(pool.map(func, items))

    def _compute_entry(self, request: IndicatorRequest, fields: FieldVectors) -> ResultEntry:
        """Dispatch one indicator; any failure becomes an ErrorDescriptor."""
        try:
            params = resolve(request.key, request.overrides)
            return compute(request.key, fields, params)
        except (IndicatorError, NotImplementedError) as e:
            logger.debug(f"{request.result_key} failed: {e}")
            return ErrorDescriptor.from_exception(e)
        except Exception as e:
            logger.exception(f"Unexpected error computing {request.result_key}")
            return ErrorDescriptor(message=str(e), error_type=ComputationError.__name__)

    def _calculate(
        self,
        series: Series,
        requests: list[IndicatorRequest],
        reference: Optional[Series] = None,
        parallel: bool = True,
    ) -> dict[str, ResultEntry]:
        fields = FieldVectors.from_series(series, reference)
        entries = self._map(lambda request: self._compute_entry(request, fields), requests, parallel)
        return {request.result_key: entry for request, entry in zip(requests, entries)}

    # =========================================================================
    # MODES
    # =========================================================================

    def calculate(
        self,
        series: Series,
        requests: list,
        reference: Optional[Series] = None,
    ) -> dict[str, ResultEntry]:
        """Direct calculate: full aligned value (or error) per indicator."""
        self._check_series(series)
        return self._calculate(series, self._requests(requests), reference)

    def snapshot(
        self,
        series: Series,
        requests: list,
        reference: Optional[Series] = None,
    ) -> SnapshotResult:
        """Latest entry per indicator, stamped with the last candle."""
        entries = self.calculate(series, requests, reference)
        latest = series.last
        return SnapshotResult(
            timestamp=latest.timestamp,
            latest_candle=latest,
            indicators={
                key: entry.tail(1) if isinstance(entry, ComputedValue) else entry
                for key, entry in entries.items()
            },
        )

    def backtrack(
        self,
        series: Series,
        requests: list,
        periods: int,
        reference: Optional[Series] = None,
    ) -> BacktrackResult:
        """
        Replay the last `periods` candles.

        Step i sees only series[: n - periods + i + 1], so its values are
        exactly what a direct calculation on that prefix returns for its
        last candle. Steps run on the worker pool; order is preserved.
        """
        self._check_series(series)
        requests = self._requests(requests)
        n = len(series)
        if periods < 1 or periods > n:
            raise ValidationError(
                self.name,
                f"Backtrack periods must be in 1..{n}, got {periods}",
                {"periods": periods, "available": n},
            )

        def step(i: int) -> BacktrackStep:
            prefix = series[: n - periods + i + 1]
            entries = self._calculate(prefix, requests, reference, parallel=False)
            candle = prefix.last
            return BacktrackStep(
                index=i,
                position=len(prefix) - 1,
                timestamp=candle.timestamp,
                candle=candle,
                indicators={
                    key: entry.tail(1) if isinstance(entry, ComputedValue) else entry
                    for key, entry in entries.items()
                },
            )

        results = self._map(step, list(range(periods)))
        logger.info(f"Backtracked {len(requests)} indicators over {periods} periods")
        return BacktrackResult(
            periods=periods,
            start_time=results[0].timestamp,
            end_time=results[-1].timestamp,
            results=results,
        )

    def window(
        self,
        series: Series,
        requests: list,
        result_count: Optional[int] = None,
        backtrack_offset: int = 0,
        reference: Optional[Series] = None,
    ) -> dict[str, ResultEntry]:
        """
        Direct calculate on series[: n - backtrack_offset], keeping the last
        `result_count` entries of each value. The kept entries cover candles
        [n - result_count - backtrack_offset, n - backtrack_offset).

        An indicator with fewer than `result_count` defined entries gets a
        DataInsufficientError in its slot instead of a short window.
        """
        self._check_series(series)
        prefix = self._prefix(series, backtrack_offset)
        entries = self.calculate(prefix, requests, reference)
        if result_count is None:
            return entries
        if result_count < 1:
            raise ValidationError(self.name, f"result_count must be >= 1, got {result_count}")

        windowed = {}
        for key, entry in entries.items():
            if isinstance(entry, ComputedValue):
                try:
                    entry = entry.tail(result_count)
                except DataInsufficientError as e:
                    entry = ErrorDescriptor.from_exception(e)
            windowed[key] = entry
        return windowed

    def _prefix(self, series: Series, backtrack_offset: int) -> Series:
        if backtrack_offset < 0:
            raise ValidationError(
                self.name, f"backtrack_offset must be >= 0, got {backtrack_offset}"
            )
        if backtrack_offset >= len(series):
            raise DataInsufficientError(
                f"backtrack_offset {backtrack_offset} leaves no candles out of {len(series)}",
                {"backtrack_offset": backtrack_offset, "available": len(series)},
            )
        return series[: len(series) - backtrack_offset]

    # =========================================================================
    # FETCH-THEN-COMPUTE
    # =========================================================================

    def required_candles(
        self,
        requests: list,
        result_count: Optional[int] = None,
        backtrack_offset: int = 0,
        periods: int = 0,
    ) -> int:
        """Candles to fetch: max lookback + R + B + N, capped at the fetch limit."""
        settings = get_settings()
        needed = (
            estimate_many(as_indicator_requests(list(requests)))
            + (result_count or 0)
            + backtrack_offset
            + periods
        )
        return min(needed, settings.max_fetch_limit)

    def minimum_candles(self, requests: list[IndicatorRequest]) -> int:
        """Request floor: the configured minimum or the largest structural minimum."""
        floor = get_settings().min_candles
        for request in requests:
            try:
                floor = max(floor, structural_minimum(request.key, request.overrides))
            except IndicatorError:
                # Reported in the request's own slot
                continue
        return floor

    async def validate_input(self, input_data: AnalysisRequest) -> AnalysisRequest:
        self._requests(input_data.indicators)
        return input_data

    async def execute(self, input_data: AnalysisRequest) -> AnalysisResult:
        """Fetch candles for the request, then run its mode."""
        request = await self.validate_input(input_data)
        settings = get_settings()
        source = request.source or settings.default_source
        requests = request.indicators
        periods = request.backtrack_periods if request.mode == AnalysisMode.BACKTRACK else 0

        limit = self.required_candles(
            requests, request.result_count, request.backtrack_offset, periods
        )
        series = await self.market_data.fetch(request.symbol, source, request.timeframe, limit)
        self._check_series(series)

        reference = None
        if request.reference_symbol:
            reference = await self.market_data.fetch(
                request.reference_symbol, source, request.timeframe, limit
            )

        floor = self.minimum_candles(requests)
        available = len(series) - request.backtrack_offset
        if available < floor:
            raise DataInsufficientError(
                f"{request.symbol}: {available} usable candles, at least {floor} required",
                {"symbol": request.symbol, "required": floor, "available": available},
            )

        logger.info(
            f"Analyzing {request.symbol} ({source}, {request.timeframe.value}): "
            f"{len(requests)} indicators, mode={request.mode.value}, candles={len(series)}"
        )

        result = AnalysisResult(
            symbol=request.symbol,
            source=source,
            timeframe=request.timeframe.value,
            mode=request.mode,
            candle_count=len(series),
        )
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            None,
            lambda: self.analyze(
                series,
                requests,
                result,
                result_count=request.result_count,
                backtrack_offset=request.backtrack_offset,
                backtrack_periods=request.backtrack_periods,
                reference=reference,
            ),
        )

    def analyze(
        self,
        series: Series,
        requests: list,
        result: AnalysisResult,
        result_count: Optional[int] = None,
        backtrack_offset: int = 0,
        backtrack_periods: int = 10,
        reference: Optional[Series] = None,
    ) -> AnalysisResult:
        """Run `result.mode` over an already fetched series and fill in `result`."""
        self._check_series(series)
        prefix = self._prefix(series, backtrack_offset)
        if result.mode == AnalysisMode.DIRECT:
            indicators = self.window(series, requests, result_count, backtrack_offset, reference)
            return replace(result, indicators=indicators, timestamps=prefix.timestamps)

        if result.mode == AnalysisMode.SNAPSHOT:
            return replace(result, snapshot=self.snapshot(prefix, requests, reference))

        return replace(
            result, backtrack=self.backtrack(prefix, requests, backtrack_periods, reference)
        )

    async def health_check(self) -> bool:
        """Indicator service is always healthy (pure computation)."""
        return True


# Singleton instance
_service_instance: Optional[IndicatorService] = None


def get_indicator_service() -> IndicatorService:
    """Get or create indicator service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = IndicatorService()
    return _service_instance
