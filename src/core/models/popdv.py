"""
POPDV working-form models: aggregated field buckets and section totals.
"""

from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.utils.money import ZERO, sum_money


class Direction(str, Enum):
    OUTPUT = "output"
    INPUT = "input"


class RateBucket(str, Enum):
    OS = "OS"  # general rate, 20%
    PS = "PS"  # reduced rate, 10%
    EXEMPT = "EXEMPT"
    FLAT = "FLAT"  # agricultural flat-rate compensation, 8%

    @classmethod
    def from_rate(cls, rate: Decimal) -> Optional["RateBucket"]:
        return _RATE_BUCKETS.get(rate)


_RATE_BUCKETS = {
    Decimal("20"): RateBucket.OS,
    Decimal("10"): RateBucket.PS,
    Decimal("0"): RateBucket.EXEMPT,
    Decimal("8"): RateBucket.FLAT,
}


class Regime(str, Enum):
    STANDARD = "standard"
    SPECIAL = "special"
    REVERSE_CHARGE = "reverse_charge"


class Territory(str, Enum):
    DOMESTIC = "domestic"
    EXPORT = "export"
    IMPORT = "import"
    FOREIGN = "foreign"


class AggregatedLine(BaseModel):
    """One POPDV field bucket with unrounded running sums."""

    model_config = ConfigDict(frozen=True)

    popdv_field: str
    direction: Direction
    base_os: Decimal = ZERO
    vat_os: Decimal = ZERO
    base_ps: Decimal = ZERO
    vat_ps: Decimal = ZERO
    total_base: Decimal = ZERO
    total_vat: Decimal = ZERO
    entry_count: int = Field(0, ge=0)

    @property
    def section(self) -> str:
        """POPDV section prefix of the field code, e.g. '8a' for '8a.1'."""
        return self.popdv_field.split(".", 1)[0]

    @property
    def dominant_rate(self) -> Optional[Decimal]:
        """Rate carrying the larger VAT subtotal; informational only."""
        if self.vat_os == ZERO and self.vat_ps == ZERO:
            return None
        return Decimal("20") if self.vat_os >= self.vat_ps else Decimal("10")


class AggregationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    output_lines: List[AggregatedLine] = Field(default_factory=list)
    reverse_charge_lines: List[AggregatedLine] = Field(default_factory=list)
    input_lines: List[AggregatedLine] = Field(default_factory=list)
    source_line_count: int = 0

    def all_lines(self) -> List[AggregatedLine]:
        return [*self.output_lines, *self.reverse_charge_lines, *self.input_lines]


class VatAdjustments(BaseModel):
    """Manual adjustments supplied outside the ledger scope."""

    non_deductible_vat: Decimal = Field(ZERO, ge=0, description="Section 9 amount")
    correction: Decimal = Field(ZERO, ge=0, description="Net correction of input VAT")


class PopdvTotals(BaseModel):
    """Exact (unrounded) section sums read by the PP-PDV mapper."""

    model_config = ConfigDict(frozen=True)

    s1_base: Decimal = ZERO
    s2_base: Decimal = ZERO
    s3_base: Decimal = ZERO
    s3_vat: Decimal = ZERO
    s3_reduced_base: Decimal = ZERO
    s4_base: Decimal = ZERO
    s4_vat: Decimal = ZERO
    s5_base: Decimal = ZERO
    s5_vat: Decimal = ZERO
    s6_base: Decimal = ZERO
    s6_vat: Decimal = ZERO
    s7_base: Decimal = ZERO
    s7_compensation: Decimal = ZERO
    s8_gross_vat: Decimal = ZERO
    s9_non_deductible: Decimal = ZERO
    correction: Decimal = ZERO
    s8e_deductible: Decimal = ZERO
    s10_net: Decimal = ZERO


class PopdvResult(BaseModel):
    """Latest POPDV computation for a period."""

    model_config = ConfigDict(frozen=True)

    output_lines: List[AggregatedLine] = Field(default_factory=list)
    reverse_charge_lines: List[AggregatedLine] = Field(default_factory=list)
    input_lines: List[AggregatedLine] = Field(default_factory=list)
    totals: PopdvTotals = Field(default_factory=PopdvTotals)
    section5: Decimal = Field(ZERO, description="Total output VAT (s5_7)")
    section8e: Decimal = Field(ZERO, description="Total deductible input VAT (s8e_5)")
    section10: Decimal = Field(ZERO, description="Net VAT, section5 - section8e")

    def all_lines(self) -> List[AggregatedLine]:
        return [*self.output_lines, *self.reverse_charge_lines, *self.input_lines]

    def output_base(self) -> Decimal:
        return sum_money(line.total_base for line in self.output_lines)
