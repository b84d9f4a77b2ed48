"""
Exception module for the PDV period engine.
Contains custom exceptions for different error types.
"""

# Import base exception classes
from core.exceptions.base_exceptions import BaseException as BasePdvException
from core.exceptions.base_exceptions import (
    BusinessException,
    ExceptionCode,
    ExternalServiceException,
    SystemException,
    WorkflowException,
)

# Import domain exceptions
from core.exceptions.vat_exceptions import (
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

__all__ = [
    "BasePdvException",
    "BusinessException",
    "ExceptionCode",
    "ExternalServiceException",
    "SystemException",
    "WorkflowException",
    "CalculationCancelledError",
    "ConcurrentCalculationError",
    "ExternalServiceError",
    "InvalidTransitionError",
    "LockedPeriodError",
    "PeriodNotFoundError",
    "SerializationError",
    "StorageError",
    "UnknownAccountClassification",
    "ValidationError",
]
