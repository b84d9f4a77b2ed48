"""
Domain models for the PDV period engine.
"""

from core.models.documents import (
    QUALIFYING_STATUSES,
    CreditNoteLine,
    DocumentClass,
    FiscalDailyEntry,
    ImportDocumentLine,
    ImportOrigin,
    IssuedInvoiceLine,
    LedgerLine,
    SourceLine,
    SupplierInvoiceLine,
)
from core.models.period import PeriodStatus, TaxPeriod
from core.models.popdv import (
    AggregatedLine,
    AggregationResult,
    Direction,
    PopdvResult,
    PopdvTotals,
    RateBucket,
    Regime,
    Territory,
    VatAdjustments,
)
from core.models.pppdv import PPPDV_FIELD_ORDER, DeclarationHeader, PpPdvForm
from core.models.settlement import (
    FilingReceipt,
    JournalLine,
    PaymentOrder,
    PeriodSnapshot,
    SettlementResult,
)

__all__ = [
    "QUALIFYING_STATUSES",
    "AggregatedLine",
    "AggregationResult",
    "CreditNoteLine",
    "DeclarationHeader",
    "Direction",
    "DocumentClass",
    "FilingReceipt",
    "FiscalDailyEntry",
    "ImportDocumentLine",
    "ImportOrigin",
    "IssuedInvoiceLine",
    "JournalLine",
    "LedgerLine",
    "PPPDV_FIELD_ORDER",
    "PaymentOrder",
    "PeriodSnapshot",
    "PeriodStatus",
    "PopdvResult",
    "PopdvTotals",
    "PpPdvForm",
    "RateBucket",
    "Regime",
    "SettlementResult",
    "SourceLine",
    "SupplierInvoiceLine",
    "TaxPeriod",
    "Territory",
    "VatAdjustments",
]
