"""
Period lifecycle events for read-side caches and Kafka messaging.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from core.models.period import utc_now


@dataclass
class PeriodEvent:
    """Fields shared by every period event."""

    period_id: str
    tenant_id: str
    legal_entity_id: Optional[str]
    start_date: date
    end_date: date
    exchange_id: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, (date, datetime)):
                data[key] = value.isoformat()
            elif isinstance(value, Decimal):
                data[key] = str(value)
        data["event_type"] = self.event_type
        return data


@dataclass
class PeriodRecalculated(PeriodEvent):
    output_vat: Decimal = Decimal("0")
    input_vat: Decimal = Decimal("0")
    vat_liability: Decimal = Decimal("0")
    credit_carried_forward: Decimal = Decimal("0")


@dataclass
class PeriodSubmitted(PeriodEvent):
    filing_reference: Optional[str] = None
    vat_liability: Decimal = Decimal("0")


@dataclass
class PeriodSettled(PeriodEvent):
    journal_entry_id: Optional[str] = None
    payment_reference: Optional[str] = None
    vat_liability: Decimal = Decimal("0")


@dataclass
class PeriodClosed(PeriodEvent):
    pass
