"""
PP-PDV declaration mapping.
"""

from decimal import Decimal
from typing import Dict

from loguru import logger

from core.exceptions import ValidationError
from core.models.popdv import PopdvResult
from core.models.pppdv import PpPdvForm
from core.utils.money import ZERO, round_money, to_decimal

# PP-PDV field -> POPDV total it is copied from
FIELD_MAPPING: Dict[str, str] = {
    "001": "s1_base",  # exempt supplies with right to deduct
    "002": "s2_base",  # exempt supplies without right to deduct
    "003": "s3_base",  # taxable supplies, general regime (incl. reverse charge)
    "103": "s4_base",  # taxable supplies, special procedures
    "004": "s3_reduced_base",  # part of 003 taxed at the reduced rate
    "005": "s5_base",
    "105": "s5_vat",
    "006": "s6_base",  # import of goods
    "106": "s6_vat",
    "007": "s7_base",  # purchases from farmers
    "107": "s7_compensation",
    "008": "s8_gross_vat",
    "108": "s9_non_deductible",
    "009": "correction",
    "109": "s8e_deductible",
}


class PpPdvMapper:
    """Derives the PP-PDV declaration from a POPDV result."""

    def map(self, popdv: PopdvResult, prior_period_credit: Decimal = ZERO) -> PpPdvForm:
        """
        Map POPDV totals to PP-PDV fields.

        Args:
            popdv: Result of the POPDV form builder
            prior_period_credit: field_112 of the immediately preceding filed
                period of the same legal entity, zero if there is none

        Returns:
            The declaration; exactly one of field_111/field_112 may be non-zero

        Raises:
            ValidationError: If the prior credit or any declaration field other
                than 110 is negative
        """
        prior_period_credit = to_decimal(prior_period_credit)
        if prior_period_credit < ZERO:
            raise ValidationError(
                "Prior period credit cannot be negative",
                {"prior_period_credit": str(prior_period_credit)},
            )

        fields = {
            f"field_{code}": round_money(getattr(popdv.totals, attribute))
            for code, attribute in FIELD_MAPPING.items()
        }
        negative = {name: str(value) for name, value in fields.items() if value < ZERO}
        if negative:
            # Credit notes exceeding the period's supplies
            raise ValidationError("Declaration fields cannot be negative", negative)

        # 110 is printed as 105 - 109, so it is taken from the rounded fields
        net = fields["field_105"] - fields["field_109"]
        fields["field_110"] = round_money(net)
        if net > ZERO:
            fields["field_111"] = fields["field_110"]
            fields["field_112"] = round_money(ZERO)
        else:
            fields["field_111"] = round_money(ZERO)
            fields["field_112"] = round_money(abs(net) + prior_period_credit)

        form = PpPdvForm(**fields)
        logger.debug(
            f"PP-PDV mapped: 110={form.field_110} 111={form.field_111} "
            f"112={form.field_112} (prior credit {prior_period_credit})"
        )
        return form
