"""
Source document line models read from the ledger.

Each document class is a separate model; `LedgerLine` is the discriminated
union over all of them, keyed by `document_class`.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Annotated, ClassVar, Dict, FrozenSet, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class DocumentClass(str, Enum):
    ISSUED_INVOICE = "issued_invoice"
    SUPPLIER_INVOICE = "supplier_invoice"
    FISCAL_DAILY_ENTRY = "fiscal_daily_entry"
    IMPORT_DOCUMENT = "import_document"
    CREDIT_NOTE = "credit_note"


class ImportOrigin(str, Enum):
    """How VAT arises on an import document."""

    CUSTOMS = "customs"  # VAT paid to customs on imported goods
    FOREIGN_SERVICES = "foreign_services"  # reverse charge, foreign supplier
    DOMESTIC_REVERSE_CHARGE = "domestic_reverse_charge"  # reverse charge, domestic


# Statuses in which a document belongs to a VAT period
QUALIFYING_STATUSES: Dict[DocumentClass, FrozenSet[str]] = {
    DocumentClass.ISSUED_INVOICE: frozenset({"sent", "paid", "posted"}),
    DocumentClass.SUPPLIER_INVOICE: frozenset({"approved", "paid", "posted"}),
    DocumentClass.FISCAL_DAILY_ENTRY: frozenset({"posted"}),
    DocumentClass.IMPORT_DOCUMENT: frozenset({"approved", "paid", "posted"}),
    DocumentClass.CREDIT_NOTE: frozenset({"posted", "sent", "approved"}),
}


class SourceLine(BaseModel):
    """Fields shared by every ledger line, whatever its document class."""

    model_config = ConfigDict(frozen=True)

    document_id: str = Field(..., description="Source document identifier")
    document_number: str = Field("", description="Human-readable document number")
    line_no: int = Field(1, description="Line position within the document")
    vat_date: date = Field(..., description="Date the VAT obligation arises")
    legal_entity_id: Optional[str] = Field(None, description="Issuing legal entity")
    status: str = Field("posted", description="Document workflow status")
    base_amount: Decimal = Field(..., ge=0, description="Taxable base (RSD)")
    vat_amount: Decimal = Field(..., ge=0, description="VAT amount (RSD)")
    vat_rate: Decimal = Field(..., ge=0, description="VAT rate in percent")
    special_regime: bool = Field(False, description="Special VAT regime flag")

    # Amounts are stored unsigned; documents that reverse a supply book them negative
    amount_sign: ClassVar[int] = 1

    @property
    def signed_base(self) -> Decimal:
        return self.base_amount * self.amount_sign

    @property
    def signed_vat(self) -> Decimal:
        return self.vat_amount * self.amount_sign

    def is_qualifying(self) -> bool:
        return self.status in QUALIFYING_STATUSES[self.document_class]

    def describe(self) -> dict:
        """Identifying fields used in error details and logs."""
        return {
            "document_class": self.document_class.value,
            "document_id": self.document_id,
            "document_number": self.document_number,
            "line_no": self.line_no,
            "vat_rate": str(self.vat_rate),
        }


class IssuedInvoiceLine(SourceLine):
    document_class: Literal[DocumentClass.ISSUED_INVOICE] = (
        DocumentClass.ISSUED_INVOICE
    )
    export: bool = Field(False, description="Supply shipped outside the country")
    partner_pib: Optional[str] = None


class SupplierInvoiceLine(SourceLine):
    document_class: Literal[DocumentClass.SUPPLIER_INVOICE] = (
        DocumentClass.SUPPLIER_INVOICE
    )
    supplier_pib: Optional[str] = None


class FiscalDailyEntry(SourceLine):
    """Daily fiscal till total for one VAT rate (sales net of refunds)."""

    document_class: Literal[DocumentClass.FISCAL_DAILY_ENTRY] = (
        DocumentClass.FISCAL_DAILY_ENTRY
    )
    till_id: Optional[str] = None


class ImportDocumentLine(SourceLine):
    document_class: Literal[DocumentClass.IMPORT_DOCUMENT] = (
        DocumentClass.IMPORT_DOCUMENT
    )
    origin: ImportOrigin = ImportOrigin.FOREIGN_SERVICES

    @property
    def is_reverse_charge(self) -> bool:
        return self.origin in (
            ImportOrigin.FOREIGN_SERVICES,
            ImportOrigin.DOMESTIC_REVERSE_CHARGE,
        )


class CreditNoteLine(SourceLine):
    """Credit note against an issued invoice; reduces the output side."""

    document_class: Literal[DocumentClass.CREDIT_NOTE] = DocumentClass.CREDIT_NOTE
    amount_sign: ClassVar[int] = -1
    invoice_id: Optional[str] = Field(None, description="Invoice being credited")
    partner_pib: Optional[str] = None


LedgerLine = Annotated[
    Union[
        IssuedInvoiceLine,
        SupplierInvoiceLine,
        FiscalDailyEntry,
        ImportDocumentLine,
        CreditNoteLine,
    ],
    Field(discriminator="document_class"),
]
