from core.services.aggregation.classification import (
    CLASSIFICATION_TABLE,
    REVERSE_CHARGE_MAP,
    Placement,
    classify,
)
from core.services.aggregation.ledger_aggregator import LedgerAggregator

__all__ = [
    "CLASSIFICATION_TABLE",
    "REVERSE_CHARGE_MAP",
    "LedgerAggregator",
    "Placement",
    "classify",
]
