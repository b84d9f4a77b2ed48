"""
Static classification of source lines into POPDV field codes.

A line is reduced to a key of direction x territory x rate bucket x regime and
looked up in CLASSIFICATION_TABLE. Keys missing from the table are not
reportable and raise UnknownAccountClassification.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

from core.exceptions import UnknownAccountClassification
from core.models.documents import (
    CreditNoteLine,
    FiscalDailyEntry,
    ImportDocumentLine,
    ImportOrigin,
    IssuedInvoiceLine,
    SourceLine,
    SupplierInvoiceLine,
)
from core.models.popdv import Direction, RateBucket, Regime, Territory
from core.utils.money import ZERO

ClassificationKey = Tuple[Direction, Territory, RateBucket, Regime]

CLASSIFICATION_TABLE: Dict[ClassificationKey, str] = {
    # Section 1: exempt supplies with right to deduct (export)
    (Direction.OUTPUT, Territory.EXPORT, RateBucket.EXEMPT, Regime.STANDARD): "1.1",
    # Section 2: exempt domestic supplies
    (Direction.OUTPUT, Territory.DOMESTIC, RateBucket.EXEMPT, Regime.STANDARD): "2.1",
    # Section 3: taxable domestic supplies
    (Direction.OUTPUT, Territory.DOMESTIC, RateBucket.OS, Regime.STANDARD): "3.2",
    (Direction.OUTPUT, Territory.DOMESTIC, RateBucket.PS, Regime.STANDARD): "3.3",
    # Section 4: special procedures
    (Direction.OUTPUT, Territory.DOMESTIC, RateBucket.OS, Regime.SPECIAL): "4.1",
    (Direction.OUTPUT, Territory.DOMESTIC, RateBucket.PS, Regime.SPECIAL): "4.2",
    # Section 6: import of goods, VAT paid to customs
    (Direction.INPUT, Territory.IMPORT, RateBucket.OS, Regime.STANDARD): "6.2.1",
    (Direction.INPUT, Territory.IMPORT, RateBucket.PS, Regime.STANDARD): "6.2.2",
    # Section 7: purchases from farmers, flat-rate compensation
    (Direction.INPUT, Territory.DOMESTIC, RateBucket.FLAT, Regime.SPECIAL): "7.1",
    # Section 8a: domestic purchases
    (Direction.INPUT, Territory.DOMESTIC, RateBucket.OS, Regime.STANDARD): "8a.1",
    (Direction.INPUT, Territory.DOMESTIC, RateBucket.PS, Regime.STANDARD): "8a.2",
    (Direction.INPUT, Territory.DOMESTIC, RateBucket.EXEMPT, Regime.STANDARD): "8v.1",
    # Section 8b: domestic reverse charge
    (Direction.INPUT, Territory.DOMESTIC, RateBucket.OS, Regime.REVERSE_CHARGE): "8b.1",
    (Direction.INPUT, Territory.DOMESTIC, RateBucket.PS, Regime.REVERSE_CHARGE): "8b.2",
    # Section 8g: services from foreign suppliers, reverse charge
    (Direction.INPUT, Territory.FOREIGN, RateBucket.OS, Regime.REVERSE_CHARGE): "8g.1",
    (Direction.INPUT, Territory.FOREIGN, RateBucket.PS, Regime.REVERSE_CHARGE): "8g.2",
}

# Input-side reverse-charge field -> self-assessed output field (section 3a)
REVERSE_CHARGE_MAP: Dict[str, str] = {
    "8b.1": "3a.1",
    "8b.2": "3a.2",
    "8g.1": "3a.2",
    "8g.2": "3a.4",
}


@dataclass(frozen=True)
class Placement:
    """Where one source line lands in the POPDV form."""

    popdv_field: str
    direction: Direction
    reverse_charge: bool = False


def classification_key(line: SourceLine) -> ClassificationKey:
    """Reduce a source line to its classification key."""
    bucket = RateBucket.from_rate(line.vat_rate)
    if bucket is None:
        raise UnknownAccountClassification(
            f"unsupported VAT rate {line.vat_rate}", line.describe()
        )
    if bucket == RateBucket.EXEMPT and line.vat_amount != ZERO:
        raise UnknownAccountClassification(
            "exempt line carries a VAT amount", line.describe()
        )

    if isinstance(line, IssuedInvoiceLine):
        territory = Territory.EXPORT if line.export else Territory.DOMESTIC
        regime = Regime.SPECIAL if line.special_regime else Regime.STANDARD
        return Direction.OUTPUT, territory, bucket, regime

    if isinstance(line, CreditNoteLine):
        # Reduces the field the credited sale was reported in
        regime = Regime.SPECIAL if line.special_regime else Regime.STANDARD
        return Direction.OUTPUT, Territory.DOMESTIC, bucket, regime

    if isinstance(line, FiscalDailyEntry):
        regime = Regime.SPECIAL if line.special_regime else Regime.STANDARD
        return Direction.OUTPUT, Territory.DOMESTIC, bucket, regime

    if isinstance(line, SupplierInvoiceLine):
        regime = Regime.SPECIAL if line.special_regime else Regime.STANDARD
        return Direction.INPUT, Territory.DOMESTIC, bucket, regime

    if isinstance(line, ImportDocumentLine):
        if line.origin == ImportOrigin.CUSTOMS:
            regime = Regime.SPECIAL if line.special_regime else Regime.STANDARD
            return Direction.INPUT, Territory.IMPORT, bucket, regime
        territory = (
            Territory.FOREIGN
            if line.origin == ImportOrigin.FOREIGN_SERVICES
            else Territory.DOMESTIC
        )
        return Direction.INPUT, territory, bucket, Regime.REVERSE_CHARGE

    raise UnknownAccountClassification(
        f"unsupported document type {type(line).__name__}", line.describe()
    )


def classify(line: SourceLine) -> List[Placement]:
    """
    Map a source line to its POPDV placements.

    Reverse-charge lines yield two placements: the input-side deduction and
    the mirrored self-assessed output field.

    Raises:
        UnknownAccountClassification: If no statutory field matches the line
    """
    key = classification_key(line)
    popdv_field = CLASSIFICATION_TABLE.get(key)
    if popdv_field is None:
        direction, territory, bucket, regime = key
        raise UnknownAccountClassification(
            f"no POPDV field for {direction.value}/{territory.value}/"
            f"{bucket.value}/{regime.value}",
            line.describe(),
        )

    placements = [Placement(popdv_field, key[0])]
    mirrored = REVERSE_CHARGE_MAP.get(popdv_field)
    if mirrored is not None:
        placements.append(Placement(mirrored, Direction.OUTPUT, reverse_charge=True))
    return placements
