"""
Base exception classes for the PDV period engine.
"""

from enum import Enum
from typing import Optional


class ExceptionCode(Enum):
    """Enumeration of all possible exception codes."""

    # Infrastructure errors (INFRA_XXXX)
    SERVICE_UNAVAILABLE = "INFRA_1003"
    TIMEOUT_ERROR = "INFRA_1005"
    DATABASE_CONNECTION_ERROR = "INFRA_1008"
    STORAGE_WRITE_FAILED = "INFRA_1011"

    # Business rule errors (BIZ_XXXX)
    VALIDATION_ERROR = "BIZ_2003"
    DATA_NOT_FOUND = "BIZ_2004"
    BUSINESS_RULE_VIOLATION = "BIZ_2005"
    INVALID_STATE = "BIZ_2007"
    PERIOD_LOCKED = "BIZ_2011"
    UNKNOWN_CLASSIFICATION = "BIZ_2012"

    # Workflow errors (WF_XXXX)
    WORKFLOW_TIMEOUT = "WF_3003"
    INVALID_WORKFLOW_STATE = "WF_3004"
    WORKFLOW_CANCELLED = "WF_3005"
    CONCURRENT_MODIFICATION = "WF_3006"

    # System errors (SYS_XXXX)
    CONFIGURATION_ERROR = "SYS_4001"
    INTERNAL_ERROR = "SYS_4004"
    SERIALIZATION_ERROR = "SYS_4006"

    # External service errors (EXT_XXXX)
    EXTERNAL_API_ERROR = "EXT_5001"
    EXTERNAL_SERVICE_TIMEOUT = "EXT_5002"
    EXTERNAL_SERVICE_UNAVAILABLE = "EXT_5003"


class BaseException(Exception):
    """Base exception for the PDV period engine."""

    def __init__(
        self,
        message: str,
        code: ExceptionCode,
        details: Optional[dict] = None,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code.value
        self.details = details or {}
        self.original_exception = original_exception

    def __str__(self):
        return f"[{self.code}] {self.message}"

    def to_dict(self):
        """Convert exception to dictionary for serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "original_exception_type": (
                type(self.original_exception).__name__
                if self.original_exception
                else None
            ),
        }


class WorkflowException(BaseException):
    """Base exception for period lifecycle errors."""

    pass


class BusinessException(BaseException):
    """Base exception for business rule violations."""

    pass


class SystemException(BaseException):
    """Base exception for system-level errors."""

    pass


class ExternalServiceException(BaseException):
    """Base exception for external service-related errors."""

    pass
