"""
API application services package.
Contains the application service layer orchestrating period use cases.
"""

from api.application.period_application_service import (
    PeriodApplicationService,
    build_lifecycle_manager,
)

__all__ = [
    "PeriodApplicationService",
    "build_lifecycle_manager",
]
