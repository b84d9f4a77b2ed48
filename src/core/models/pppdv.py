"""
PP-PDV declaration models.
"""

from datetime import date
from decimal import Decimal
from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from core.utils.money import ZERO

# Order in which the fields appear on the declaration
PPPDV_FIELD_ORDER: Tuple[str, ...] = (
    "001",
    "002",
    "003",
    "103",
    "004",
    "005",
    "105",
    "006",
    "106",
    "007",
    "107",
    "008",
    "108",
    "009",
    "109",
    "110",
    "111",
    "112",
)


class PpPdvForm(BaseModel):
    """PP-PDV fields, rounded to two places. Only field_110 may be negative."""

    model_config = ConfigDict(frozen=True)

    field_001: Decimal = Field(ZERO, ge=0)
    field_002: Decimal = Field(ZERO, ge=0)
    field_003: Decimal = Field(ZERO, ge=0)
    field_103: Decimal = Field(ZERO, ge=0)
    field_004: Decimal = Field(ZERO, ge=0)
    field_005: Decimal = Field(ZERO, ge=0)
    field_105: Decimal = Field(ZERO, ge=0)
    field_006: Decimal = Field(ZERO, ge=0)
    field_106: Decimal = Field(ZERO, ge=0)
    field_007: Decimal = Field(ZERO, ge=0)
    field_107: Decimal = Field(ZERO, ge=0)
    field_008: Decimal = Field(ZERO, ge=0)
    field_108: Decimal = Field(ZERO, ge=0)
    field_009: Decimal = Field(ZERO, ge=0)
    field_109: Decimal = Field(ZERO, ge=0)
    field_110: Decimal = ZERO
    field_111: Decimal = Field(ZERO, ge=0)
    field_112: Decimal = Field(ZERO, ge=0)

    @model_validator(mode="after")
    def _liability_or_credit(self) -> "PpPdvForm":
        if self.field_111 > ZERO and self.field_112 > ZERO:
            raise ValueError("field_111 and field_112 cannot both be non-zero")
        return self

    def field(self, code: str) -> Decimal:
        return getattr(self, f"field_{code}")

    def ordered_fields(self) -> Dict[str, Decimal]:
        return {code: self.field(code) for code in PPPDV_FIELD_ORDER}


class DeclarationHeader(BaseModel):
    """Taxpayer identification and period printed in the declaration envelope."""

    pib: str = Field(..., description="Taxpayer identification number")
    company_name: str = Field(..., description="Registered name")
    period_start: date
    period_end: date

    @property
    def year(self) -> int:
        return self.period_start.year

    @property
    def month(self) -> int:
        return self.period_start.month
