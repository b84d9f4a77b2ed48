"""
POPDV working-form builder.
"""

from decimal import Decimal
from typing import Iterable, Optional

from loguru import logger

from core.exceptions import ValidationError
from core.models.popdv import (
    AggregatedLine,
    AggregationResult,
    PopdvResult,
    PopdvTotals,
    VatAdjustments,
)
from core.utils.money import round_money, sum_money


def _lines_in(lines: Iterable[AggregatedLine], *sections: str):
    return [line for line in lines if line.section in sections]


def _base(lines: Iterable[AggregatedLine]) -> Decimal:
    return sum_money(line.total_base for line in lines)


def _vat(lines: Iterable[AggregatedLine]) -> Decimal:
    return sum_money(line.total_vat for line in lines)


class PopdvFormBuilder:
    """Rolls aggregated buckets into POPDV section totals."""

    def build(
        self,
        aggregation: AggregationResult,
        adjustments: Optional[VatAdjustments] = None,
    ) -> PopdvResult:
        """
        Build the POPDV result for one period.

        Section scalars keep full precision in `totals`. Sections 5 and 8e are
        rounded half-up once and section 10 is their difference, so the printed
        figures reconcile.

        Raises:
            ValidationError: If non-deductible VAT exceeds gross input VAT
        """
        adjustments = adjustments or VatAdjustments()
        outputs = aggregation.output_lines
        reverse_charge = aggregation.reverse_charge_lines
        inputs = aggregation.input_lines

        s3_lines = _lines_in(outputs, "3") + list(reverse_charge)
        s4_lines = _lines_in(outputs, "4")
        s3_base = _base(s3_lines)
        s4_base = _base(s4_lines)

        # Reverse-charge VAT is self-assessed on the output side and deducted
        # again through its input-side bucket
        s5_vat = _vat(outputs) + _vat(reverse_charge)
        s8_gross_vat = _vat(inputs)

        if adjustments.non_deductible_vat > s8_gross_vat:
            raise ValidationError(
                "Non-deductible VAT exceeds gross input VAT",
                {
                    "non_deductible_vat": str(adjustments.non_deductible_vat),
                    "gross_input_vat": str(round_money(s8_gross_vat)),
                },
            )

        s8e_deductible = (
            s8_gross_vat - adjustments.non_deductible_vat + adjustments.correction
        )
        s10_net = s5_vat - s8e_deductible

        totals = PopdvTotals(
            s1_base=_base(_lines_in(outputs, "1")),
            s2_base=_base(_lines_in(outputs, "2")),
            s3_base=s3_base,
            s3_vat=_vat(s3_lines),
            s3_reduced_base=sum_money(line.base_ps for line in s3_lines),
            s4_base=s4_base,
            s4_vat=_vat(s4_lines),
            s5_base=s3_base + s4_base,
            s5_vat=s5_vat,
            s6_base=_base(_lines_in(inputs, "6")),
            s6_vat=_vat(_lines_in(inputs, "6")),
            s7_base=_base(_lines_in(inputs, "7")),
            s7_compensation=_vat(_lines_in(inputs, "7")),
            s8_gross_vat=s8_gross_vat,
            s9_non_deductible=adjustments.non_deductible_vat,
            correction=adjustments.correction,
            s8e_deductible=s8e_deductible,
            s10_net=s10_net,
        )

        section5 = round_money(s5_vat)
        section8e = round_money(s8e_deductible)
        result = PopdvResult(
            output_lines=list(outputs),
            reverse_charge_lines=list(reverse_charge),
            input_lines=list(inputs),
            totals=totals,
            section5=section5,
            section8e=section8e,
            section10=round_money(section5 - section8e),
        )
        logger.debug(
            f"POPDV built: s5_7={result.section5} s8e_5={result.section8e} "
            f"s10={result.section10}"
        )
        return result
