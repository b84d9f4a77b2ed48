"""
Request models module - organized by responsibility.
"""

from api.models.requests.period_requests import (
    CalculateRequest,
    PeriodCreateRequest,
    SubmitRequest,
)

__all__ = [
    "CalculateRequest",
    "PeriodCreateRequest",
    "SubmitRequest",
]
