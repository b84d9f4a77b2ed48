"""
Mapping of domain exceptions to HTTP error responses.
"""

from typing import List, Tuple, Type

from fastapi import status
from fastapi.responses import JSONResponse

from api.models.responses import ErrorResponse
from core.exceptions import (
    BasePdvException,
    CalculationCancelledError,
    ConcurrentCalculationError,
    ExternalServiceError,
    InvalidTransitionError,
    LockedPeriodError,
    PeriodNotFoundError,
    SerializationError,
    StorageError,
    UnknownAccountClassification,
    ValidationError,
)

# First match wins
STATUS_BY_EXCEPTION: List[Tuple[Type[BasePdvException], int]] = [
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (UnknownAccountClassification, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (SerializationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (PeriodNotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (ConcurrentCalculationError, status.HTTP_409_CONFLICT),
    (LockedPeriodError, status.HTTP_423_LOCKED),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY),
    (CalculationCancelledError, status.HTTP_504_GATEWAY_TIMEOUT),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_code_for(exc: BasePdvException) -> int:
    for exception_type, status_code in STATUS_BY_EXCEPTION:
        if isinstance(exc, exception_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def handle_domain_error(exc: BasePdvException) -> JSONResponse:
    """Build the JSON error response for a domain exception."""
    error_response = ErrorResponse(
        error=type(exc).__name__,
        message=exc.message,
        details={"code": exc.code, **exc.details},
    )
    return JSONResponse(
        status_code=status_code_for(exc),
        content=error_response.model_dump(mode="json"),
    )
