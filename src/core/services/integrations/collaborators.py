"""
Contracts of the external collaborators driven by the period lifecycle.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import List, Optional

from core.models.period import TaxPeriod
from core.models.settlement import FilingReceipt, JournalLine, PaymentOrder


class FilingClient(ABC):
    """Hands a PP-PDV declaration to the tax authority."""

    @abstractmethod
    def submit(self, period_id: str, declaration_xml: str) -> FilingReceipt:
        pass


class PostingEngine(ABC):
    """Posts balanced journal entries to the general ledger."""

    @abstractmethod
    def post_entry(
        self, lines: List[JournalLine], reference: str, entry_date: date
    ) -> str:
        """Post an entry and return the journal entry id."""

    @abstractmethod
    def find_entry(self, reference: str) -> Optional[str]:
        """Return the id of an entry already posted under `reference`, if any."""


class PaymentOrderGenerator(ABC):
    """Builds payment instructions for a VAT liability."""

    @abstractmethod
    def generate(self, period: TaxPeriod, amount: Decimal) -> PaymentOrder:
        pass
