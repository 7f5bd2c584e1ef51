"""
Service error to HTTP status mapping shared by the v1 endpoints.
"""

import logging

from fastapi import HTTPException

from indicator_engine.services.base import (
    ConfigurationError,
    DataInsufficientError,
    MarketDataError,
    MissingCredentialError,
    ServiceError,
    UnsupportedSourceError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific first
STATUS_CODES = (
    (UnsupportedSourceError, 404),
    (MissingCredentialError, 503),
    (MarketDataError, 502),
    (DataInsufficientError, 422),
    (ValidationError, 400),
    (ConfigurationError, 400),
)


def http_error(exc: ServiceError) -> HTTPException:
    """Turn a request-level service error into an HTTPException."""
    status_code = 500
    for error_type, code in STATUS_CODES:
        if isinstance(exc, error_type):
            status_code = code
            break

    if status_code >= 500:
        logger.error(f"{exc.service_name} failed: {exc.message}")
    return HTTPException(
        status_code=status_code,
        detail={
            "error": exc.message,
            "error_type": type(exc).__name__,
            "details": exc.details,
        },
    )
