"""
Tax period model and status machine values.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from core.utils.money import ZERO


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def snapshot_key(
    tenant_id: str, legal_entity_id: Optional[str], start_date: date, end_date: date
) -> str:
    """Snapshot store key; one snapshot per legal entity and date range."""
    return ":".join(
        [tenant_id, legal_entity_id or "-", start_date.isoformat(), end_date.isoformat()]
    )


class PeriodStatus(str, Enum):
    OPEN = "open"
    CALCULATED = "calculated"
    SUBMITTED = "submitted"
    CLOSED = "closed"

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        """Check if status is terminal (no further transitions)."""
        return status == cls.CLOSED.value

    @classmethod
    def is_filed(cls, status: str) -> bool:
        """Check if the declaration for the period was handed to the tax authority."""
        return status in [cls.SUBMITTED.value, cls.CLOSED.value]


class TaxPeriod(BaseModel):
    id: str
    tenant_id: str
    legal_entity_id: Optional[str] = None
    pib: Optional[str] = Field(None, description="Taxpayer PIB of the legal entity")
    name: str = ""
    start_date: date
    end_date: date
    status: PeriodStatus = PeriodStatus.OPEN
    is_locked: bool = False
    output_vat: Decimal = ZERO
    input_vat: Decimal = ZERO
    vat_liability: Decimal = Field(ZERO, description="Signed; negative is a credit")
    credit_carried_forward: Decimal = Field(ZERO, ge=0, description="field_112")
    filing_reference: Optional[str] = None
    settlement_entry_id: Optional[str] = None
    payment_reference: Optional[str] = None
    submitted_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    version: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def overlaps(self, start_date: date, end_date: date) -> bool:
        return self.start_date <= end_date and start_date <= self.end_date

    def snapshot_key(self) -> str:
        return snapshot_key(
            self.tenant_id, self.legal_entity_id, self.start_date, self.end_date
        )
