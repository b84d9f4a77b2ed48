"""
Request models for tax period endpoints.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PeriodCreateRequest(BaseModel):
    """Open a new tax period."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "tenant_id": "tenant-1",
                "legal_entity_id": "le-1",
                "start_date": "2025-01-01",
                "end_date": "2025-01-31",
                "pib": "100000001",
            }
        }
    )

    tenant_id: str = Field(..., min_length=1, description="Tenant owning the period")
    legal_entity_id: Optional[str] = Field(
        None, description="Legal entity filing the return"
    )
    start_date: date = Field(..., description="Inclusive period start")
    end_date: date = Field(..., description="Inclusive period end")
    name: Optional[str] = Field(None, description="Display name")
    pib: Optional[str] = Field(
        None, description="PIB of the legal entity, used for payment references"
    )


class CalculateRequest(BaseModel):
    """Manual adjustments applied on top of the ledger data."""

    non_deductible_vat: Decimal = Field(
        Decimal("0"), ge=0, description="Section 9 non-deductible input VAT"
    )
    correction: Decimal = Field(
        Decimal("0"), ge=0, description="Net correction of deductible input VAT"
    )


class SubmitRequest(BaseModel):
    """Taxpayer identification printed on the filed declaration."""

    pib: str = Field(..., description="Taxpayer identification number")
    company_name: str = Field(..., description="Registered company name")
