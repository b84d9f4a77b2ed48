"""
Response models for tax period endpoints.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from core.models import AggregatedLine, PeriodSnapshot, PpPdvForm, TaxPeriod


class PeriodResponse(BaseModel):
    """Tax period state and totals."""

    id: str
    tenant_id: str
    legal_entity_id: Optional[str] = None
    pib: Optional[str] = None
    name: str
    start_date: date
    end_date: date
    status: str
    is_locked: bool
    output_vat: Decimal
    input_vat: Decimal
    vat_liability: Decimal = Field(..., description="Signed; negative is a credit")
    credit_carried_forward: Decimal
    filing_reference: Optional[str] = None
    settlement_entry_id: Optional[str] = None
    payment_reference: Optional[str] = None
    submitted_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    version: int

    @classmethod
    def from_period(cls, period: TaxPeriod) -> "PeriodResponse":
        data = period.model_dump(exclude={"created_at", "updated_at"})
        data["status"] = period.status.value
        return cls(**data)


class PeriodListResponse(BaseModel):
    periods: List[PeriodResponse] = Field(default_factory=list)
    total: int = 0


class AggregatedLineResponse(BaseModel):
    popdv_field: str
    direction: str
    total_base: Decimal
    total_vat: Decimal
    base_os: Decimal
    vat_os: Decimal
    base_ps: Decimal
    vat_ps: Decimal
    entry_count: int
    dominant_rate: Optional[Decimal] = Field(
        None, description="Rate carrying the larger VAT share (informational)"
    )

    @classmethod
    def from_line(cls, line: AggregatedLine) -> "AggregatedLineResponse":
        return cls(
            popdv_field=line.popdv_field,
            direction=line.direction.value,
            total_base=line.total_base,
            total_vat=line.total_vat,
            base_os=line.base_os,
            vat_os=line.vat_os,
            base_ps=line.base_ps,
            vat_ps=line.vat_ps,
            entry_count=line.entry_count,
            dominant_rate=line.dominant_rate,
        )


class CalculationResponse(BaseModel):
    """Result of a period calculation."""

    period: PeriodResponse
    section5: Decimal = Field(..., description="Total output VAT")
    section8e: Decimal = Field(..., description="Total deductible input VAT")
    section10: Decimal = Field(..., description="Net VAT")
    pppdv: PpPdvForm
    calculated_at: datetime

    @classmethod
    def from_snapshot(
        cls, period: TaxPeriod, snapshot: PeriodSnapshot
    ) -> "CalculationResponse":
        return cls(
            period=PeriodResponse.from_period(period),
            section5=snapshot.popdv_data.section5,
            section8e=snapshot.popdv_data.section8e,
            section10=snapshot.popdv_data.section10,
            pppdv=snapshot.pppdv_data,
            calculated_at=snapshot.calculated_at,
        )
