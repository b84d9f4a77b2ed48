"""
Core services package for the PDV period engine.
Contains aggregation, form derivation, serialization and the period lifecycle.
"""

from core.services.aggregation import LedgerAggregator
from core.services.periods import PeriodLifecycleManager, PriorPeriodCreditResolver
from core.services.popdv import PopdvFormBuilder
from core.services.pppdv import PpPdvMapper, XmlSerializer

__all__ = [
    "LedgerAggregator",
    "PeriodLifecycleManager",
    "PopdvFormBuilder",
    "PpPdvMapper",
    "PriorPeriodCreditResolver",
    "XmlSerializer",
]
