"""
Tax period controller handling HTTP requests/responses only.
Domain errors are turned into responses by the handler registered in main.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from api.application.period_application_service import (
    PeriodApplicationService,
    build_lifecycle_manager,
)
from api.models.requests import CalculateRequest, PeriodCreateRequest, SubmitRequest
from api.models.responses import (
    AggregatedLineResponse,
    CalculationResponse,
    ErrorResponse,
    PeriodListResponse,
    PeriodResponse,
)
from core.models import SettlementResult

router = APIRouter(
    prefix="/periods",
    tags=["periods"],
)

# Simple direct instantiation using core services
period_application_service = PeriodApplicationService(*build_lifecycle_manager())


def get_period_service() -> PeriodApplicationService:
    return period_application_service


ERROR_RESPONSES = {
    401: {"description": "Invalid or missing X-API-Token header"},
    404: {"model": ErrorResponse, "description": "Tax period not found"},
    409: {"model": ErrorResponse, "description": "Transition not allowed in the current status"},
    422: {"model": ErrorResponse, "description": "Validation error"},
    423: {"model": ErrorResponse, "description": "Tax period is locked"},
}


@router.post(
    "",
    response_model=PeriodResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a tax period",
    responses=ERROR_RESPONSES,
)
def create_period(
    request: PeriodCreateRequest,
    service: PeriodApplicationService = Depends(get_period_service),
):
    return service.create_period(request)


@router.get(
    "",
    response_model=PeriodListResponse,
    summary="List tax periods of a tenant",
)
def list_periods(
    tenant_id: str = Query(..., description="Tenant id"),
    legal_entity_id: Optional[str] = Query(None, description="Legal entity filter"),
    service: PeriodApplicationService = Depends(get_period_service),
):
    return service.list_periods(tenant_id, legal_entity_id)


@router.get(
    "/{period_id}",
    response_model=PeriodResponse,
    summary="Get a tax period",
    responses=ERROR_RESPONSES,
)
def get_period(
    period_id: str, service: PeriodApplicationService = Depends(get_period_service)
):
    return service.get_period(period_id)


@router.get(
    "/{period_id}/lines",
    response_model=List[AggregatedLineResponse],
    summary="Aggregated POPDV lines of the latest calculation",
    responses=ERROR_RESPONSES,
)
def get_lines(
    period_id: str, service: PeriodApplicationService = Depends(get_period_service)
):
    return service.get_lines(period_id)


@router.post(
    "/{period_id}/calculate",
    response_model=CalculationResponse,
    summary="Calculate POPDV and PP-PDV for a period",
    description="Recomputes the period from the ledger and replaces the stored result.",
    responses={
        **ERROR_RESPONSES,
        504: {"model": ErrorResponse, "description": "Ledger scan timed out"},
    },
)
def calculate_period(
    period_id: str,
    request: Optional[CalculateRequest] = None,
    service: PeriodApplicationService = Depends(get_period_service),
):
    return service.calculate(period_id, request)


@router.post(
    "/{period_id}/submit",
    response_model=PeriodResponse,
    summary="File the PP-PDV declaration",
    responses={
        **ERROR_RESPONSES,
        502: {"model": ErrorResponse, "description": "Filing service failed"},
    },
)
def submit_period(
    period_id: str,
    request: SubmitRequest,
    service: PeriodApplicationService = Depends(get_period_service),
):
    return service.submit(period_id, request)


@router.post(
    "/{period_id}/settle",
    response_model=SettlementResult,
    summary="Post the VAT settlement entry and prepare the payment order",
    responses={
        **ERROR_RESPONSES,
        502: {"model": ErrorResponse, "description": "Posting or payment-order service failed"},
    },
)
def settle_period(
    period_id: str, service: PeriodApplicationService = Depends(get_period_service)
):
    return service.settle(period_id)


@router.post(
    "/{period_id}/lock",
    response_model=PeriodResponse,
    summary="Lock a period against recalculation and submission",
    responses=ERROR_RESPONSES,
)
def lock_period(
    period_id: str, service: PeriodApplicationService = Depends(get_period_service)
):
    return service.lock(period_id)


@router.post(
    "/{period_id}/unlock",
    response_model=PeriodResponse,
    summary="Unlock a period",
    responses=ERROR_RESPONSES,
)
def unlock_period(
    period_id: str, service: PeriodApplicationService = Depends(get_period_service)
):
    return service.unlock(period_id)


@router.post(
    "/{period_id}/close",
    response_model=PeriodResponse,
    summary="Close a submitted period",
    responses=ERROR_RESPONSES,
)
def close_period(
    period_id: str, service: PeriodApplicationService = Depends(get_period_service)
):
    return service.close(period_id)


@router.get(
    "/{period_id}/pppdv.xml",
    summary="PP-PDV declaration XML",
    response_class=Response,
    responses={
        **ERROR_RESPONSES,
        200: {"content": {"application/xml": {}}},
    },
)
def get_declaration_xml(
    period_id: str,
    pib: str = Query(..., description="Taxpayer identification number"),
    company_name: str = Query(..., description="Registered company name"),
    service: PeriodApplicationService = Depends(get_period_service),
):
    xml = service.declaration_xml(period_id, pib, company_name)
    return Response(content=xml.encode("utf-8"), media_type="application/xml")
