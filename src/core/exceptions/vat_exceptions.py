"""
Domain exceptions raised by the aggregation, mapping and period lifecycle code.
"""

from typing import Optional

from core.exceptions.base_exceptions import (
    BusinessException,
    ExceptionCode,
    ExternalServiceException,
    SystemException,
    WorkflowException,
)


class ValidationError(BusinessException):
    """Raised when input is rejected before any computation starts."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(
            message=message,
            code=ExceptionCode.VALIDATION_ERROR,
            details=details or {},
        )


class UnknownAccountClassification(BusinessException):
    """Raised when a source line cannot be mapped to any POPDV field."""

    def __init__(self, reason: str, line_details: dict = None):
        super().__init__(
            message=f"Source line cannot be classified: {reason}",
            code=ExceptionCode.UNKNOWN_CLASSIFICATION,
            details=line_details or {},
        )


class PeriodNotFoundError(BusinessException):
    """Raised when a tax period does not exist."""

    def __init__(self, period_id: str):
        self.period_id = period_id
        super().__init__(
            message=f"Tax period not found: {period_id}",
            code=ExceptionCode.DATA_NOT_FOUND,
            details={"period_id": period_id},
        )


class LockedPeriodError(WorkflowException):
    """Raised when a mutation is attempted on a locked period."""

    def __init__(self, period_id: str, operation: str):
        self.period_id = period_id
        super().__init__(
            message=f"Tax period {period_id} is locked; {operation} rejected",
            code=ExceptionCode.PERIOD_LOCKED,
            details={"period_id": period_id, "operation": operation},
        )


class InvalidTransitionError(WorkflowException):
    """Raised when an operation does not fit the period state machine."""

    def __init__(self, period_id: str, operation: str, status: str):
        self.period_id = period_id
        self.status = status
        super().__init__(
            message=f"Cannot {operation} tax period {period_id} in status '{status}'",
            code=ExceptionCode.INVALID_WORKFLOW_STATE,
            details={"period_id": period_id, "operation": operation, "status": status},
        )


class ConcurrentCalculationError(WorkflowException):
    """Raised when another writer changed the period during an operation."""

    def __init__(self, period_id: str, details: dict = None):
        exception_details = details or {}
        exception_details["period_id"] = period_id
        super().__init__(
            message=f"Tax period {period_id} was modified concurrently",
            code=ExceptionCode.CONCURRENT_MODIFICATION,
            details=exception_details,
        )


class CalculationCancelledError(WorkflowException):
    """Raised when a ledger scan is cancelled or runs past its deadline."""

    def __init__(self, message: str, timed_out: bool = False, details: dict = None):
        super().__init__(
            message=message,
            code=(
                ExceptionCode.WORKFLOW_TIMEOUT
                if timed_out
                else ExceptionCode.WORKFLOW_CANCELLED
            ),
            details=details or {},
        )


class SerializationError(SystemException):
    """Raised when the PP-PDV XML document cannot be produced."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(
            message=message,
            code=ExceptionCode.SERIALIZATION_ERROR,
            details=details or {},
        )


class StorageError(SystemException):
    """Raised when a repository or snapshot store write fails."""

    def __init__(
        self,
        message: str,
        details: dict = None,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            code=ExceptionCode.STORAGE_WRITE_FAILED,
            details=details or {},
            original_exception=original_exception,
        )


class ExternalServiceError(ExternalServiceException):
    """Raised when a filing, posting, payment-order or ledger collaborator fails."""

    def __init__(
        self,
        service: str,
        message: str,
        details: dict = None,
        original_exception: Optional[Exception] = None,
    ):
        self.service = service
        exception_details = details or {}
        exception_details["service"] = service
        super().__init__(
            message=f"{service} failed: {message}",
            code=ExceptionCode.EXTERNAL_API_ERROR,
            details=exception_details,
            original_exception=original_exception,
        )
