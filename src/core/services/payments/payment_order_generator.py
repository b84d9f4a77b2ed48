"""
Payment orders for VAT liabilities, referenced with model 97.
"""

import re
from decimal import Decimal
from typing import Optional

from loguru import logger

from core.config import PaymentOrderConfig, config
from core.exceptions import ValidationError
from core.models.period import TaxPeriod
from core.models.settlement import PaymentOrder
from core.services.integrations.collaborators import PaymentOrderGenerator
from core.utils.money import round_money


def model97_reference(reference: str) -> str:
    """
    Build a model 97 payment reference.

    The control number is 98 minus the remainder of the reference digits
    divided by 97, zero-padded to two digits.

    Args:
        reference: Reference text; non-digit characters are dropped

    Returns:
        Reference in the form "97 CCDDDD..."
    """
    digits = re.sub(r"[^0-9]", "", reference)
    if not digits:
        raise ValidationError("Payment reference has no digits", {"reference": reference})

    remainder = 0
    for digit in digits:
        remainder = (remainder * 10 + int(digit)) % 97
    control = 98 - remainder
    return f"97 {control:02d}{digits}"


class Model97PaymentOrderGenerator(PaymentOrderGenerator):
    """Builds PDV payment orders toward the treasury account."""

    def __init__(
        self,
        settings: Optional[PaymentOrderConfig] = None,
        default_pib: Optional[str] = None,
    ):
        self.settings = settings or config.payment_orders
        self.default_pib = default_pib or self.settings.taxpayer_pib

    def _pib(self, period: TaxPeriod) -> str:
        pib = period.pib or self.default_pib
        if not pib:
            raise ValidationError(
                "No PIB known for the period's legal entity",
                {"legal_entity_id": period.legal_entity_id},
            )
        return pib

    def generate(self, period: TaxPeriod, amount: Decimal) -> PaymentOrder:
        year = period.start_date.year
        month = period.start_date.month

        reference = model97_reference(f"{self._pib(period)}{year}{month:02d}")
        order = PaymentOrder(
            recipient_name=self.settings.recipient_name,
            recipient_account=self.settings.treasury_account,
            amount=round_money(amount),
            payment_code=self.settings.payment_code,
            model=self.settings.reference_model,
            reference=reference,
            purpose=f"Uplata PDV za {month}/{year}",
        )
        logger.info(f"Payment order prepared for period {period.id}: {reference}")
        return order
