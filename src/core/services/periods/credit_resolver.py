"""
Cross-period credit lookup.
"""

from datetime import timedelta
from decimal import Decimal

from loguru import logger

from core.infrastructure.period_repository import PeriodRepository
from core.models.period import PeriodStatus, TaxPeriod
from core.utils.money import ZERO


class PriorPeriodCreditResolver:
    """
    Resolves the credit carried into a period from its predecessor.

    The predecessor is the submitted or closed period of the same tenant and
    legal entity whose end_date is the day before the period's start_date.
    Without one the carried credit is zero.
    """

    def __init__(self, repository: PeriodRepository):
        self.repository = repository

    def resolve(self, period: TaxPeriod) -> Decimal:
        day_before = period.start_date - timedelta(days=1)
        for candidate in self.repository.list(period.tenant_id):
            if candidate.id == period.id:
                continue
            if candidate.legal_entity_id != period.legal_entity_id:
                continue
            if candidate.end_date != day_before:
                continue
            if not PeriodStatus.is_filed(candidate.status):
                logger.info(
                    f"Preceding period {candidate.id} is {candidate.status.value}; "
                    "no credit carried forward"
                )
                return ZERO
            logger.info(
                f"Carrying {candidate.credit_carried_forward} credit from {candidate.id}"
            )
            return candidate.credit_carried_forward
        return ZERO
