"""
API models module - organized by Single Responsibility Principle.
"""

# Request models - input validation and structure
from api.models.requests import CalculateRequest, PeriodCreateRequest, SubmitRequest

# Response models - output serialization
from api.models.responses import (
    AggregatedLineResponse,
    CalculationResponse,
    ErrorResponse,
    HealthCheckResponse,
    PeriodListResponse,
    PeriodResponse,
)

__all__ = [
    # Requests
    "CalculateRequest",
    "PeriodCreateRequest",
    "SubmitRequest",
    # Responses
    "AggregatedLineResponse",
    "CalculationResponse",
    "ErrorResponse",
    "HealthCheckResponse",
    "PeriodListResponse",
    "PeriodResponse",
]
