"""
Health check controller following Single Responsibility Principle.
"""

from fastapi import APIRouter, Depends

from api.application.period_application_service import PeriodApplicationService
from api.config.settings import settings
from api.controllers.period_controller import get_period_service
from api.models.responses import HealthCheckResponse

router = APIRouter(prefix="/health", tags=["health"])


@router.get(
    "",
    response_model=HealthCheckResponse,
    summary="Health check",
    description="Health of the API and its storage backend",
)
def health_check(service: PeriodApplicationService = Depends(get_period_service)):
    """Health check endpoint."""
    services = service.health()
    overall = "healthy" if all(v == "healthy" for v in services.values()) else "degraded"
    return HealthCheckResponse(
        status=overall, version=settings.api_version, services=services
    )
