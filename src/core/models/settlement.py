"""
Models exchanged with the filing, posting and payment-order collaborators,
plus the persisted calculation snapshot.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from core.models.period import snapshot_key
from core.models.popdv import PopdvResult
from core.models.pppdv import PpPdvForm
from core.utils.money import ZERO


class JournalLine(BaseModel):
    account: str
    debit: Decimal = Field(ZERO, ge=0)
    credit: Decimal = Field(ZERO, ge=0)
    description: str = ""

    @model_validator(mode="after")
    def _one_side(self) -> "JournalLine":
        if (self.debit > ZERO) == (self.credit > ZERO):
            raise ValueError("Journal line must carry exactly one of debit or credit")
        return self


class FilingReceipt(BaseModel):
    ok: bool
    reference: Optional[str] = None
    error: Optional[str] = None


class PaymentOrder(BaseModel):
    """Structured payment instruction for a VAT liability."""

    recipient_name: str
    recipient_account: str
    amount: Decimal = Field(..., gt=0)
    payment_code: str
    model: str
    reference: str
    purpose: str
    due_date: Optional[date] = None


class SettlementResult(BaseModel):
    period_id: str
    vat_liability: Decimal
    journal_entry_id: Optional[str] = None
    payment_order: Optional[PaymentOrder] = None
    already_settled: bool = False


class PeriodSnapshot(BaseModel):
    """Persisted result of the latest calculation of a period."""

    tenant_id: str
    period_id: str
    period_start: date
    period_end: date
    legal_entity_id: Optional[str] = None
    popdv_data: PopdvResult
    pppdv_data: PpPdvForm
    output_vat: Decimal
    input_vat: Decimal
    net_vat: Decimal
    calculated_at: datetime

    @property
    def key(self) -> str:
        return snapshot_key(
            self.tenant_id, self.legal_entity_id, self.period_start, self.period_end
        )
