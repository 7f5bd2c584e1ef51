"""
Base Service Interface

All services inherit from this base class. Also defines the error
taxonomy shared by the indicator engine and the market data layer.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseService(ABC, Generic[InputT, OutputT]):
    """
    Base class for all services.

    Each service:
    - Has a defined input type
    - Has a defined output type
    - Can validate its inputs
    - Can check its health
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Service name for logging."""
        pass

    @abstractmethod
    async def execute(self, input_data: InputT) -> OutputT:
        """
        Execute the service's main function.

        Args:
            input_data: Validated input conforming to InputT schema

        Returns:
            Output conforming to OutputT schema

        Raises:
            ServiceError: If execution fails
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if service is healthy and can process requests."""
        pass

    async def validate_input(self, input_data: InputT) -> InputT:
        """
        Validate input data.
        Default implementation returns input as-is (Pydantic handles validation).
        Override for custom validation logic.
        """
        return input_data


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, service_name: str, message: str, details: dict = None):
        self.service_name = service_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{service_name}] {message}")


class ValidationError(ServiceError):
    """Malformed request (empty series, bad windowing, bad candles)."""
    pass


# =============================================================================
# INDICATOR ERRORS (per-indicator; isolated into result slots)
# =============================================================================


class IndicatorError(ServiceError):
    """Base class for errors raised while computing a single indicator."""

    def __init__(self, message: str, details: dict = None):
        super().__init__("IndicatorEngine", message, details)


class ConfigurationError(IndicatorError):
    """Unknown indicator key or invalid parameter override."""
    pass


class DataInsufficientError(IndicatorError):
    """Fewer candles than the formula (or the request) requires."""
    pass


InsufficientDataError = DataInsufficientError


class ComputationError(IndicatorError):
    """Numeric failure inside a formula (domain error, NaN, overflow)."""
    pass


class UnknownIndicatorError(ConfigurationError, NotImplementedError):
    """Indicator key has no registered handler."""
    pass


# =============================================================================
# MARKET DATA ERRORS (request-level; abort the whole request)
# =============================================================================


class MarketDataError(ServiceError):
    """Market data collaborator failed."""
    pass


class UnsupportedSourceError(MarketDataError):
    """No provider registered for the requested source."""
    pass


class MissingCredentialError(MarketDataError):
    """Provider requires a credential that was not configured."""
    pass


class UpstreamResponseError(MarketDataError):
    """Provider returned data that could not be turned into a Series."""
    pass
