"""
Response models module - organized by responsibility.
"""

from api.models.responses.error_responses import ErrorResponse
from api.models.responses.period_responses import (
    AggregatedLineResponse,
    CalculationResponse,
    PeriodListResponse,
    PeriodResponse,
)
from api.models.responses.system_responses import HealthCheckResponse

__all__ = [
    "AggregatedLineResponse",
    "CalculationResponse",
    "ErrorResponse",
    "HealthCheckResponse",
    "PeriodListResponse",
    "PeriodResponse",
]
