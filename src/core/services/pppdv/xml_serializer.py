"""
PP-PDV XML envelope rendering.
"""

import xml.etree.ElementTree as ET

from core.exceptions import SerializationError
from core.models.pppdv import PPPDV_FIELD_ORDER, DeclarationHeader, PpPdvForm
from core.utils.money import format_money

PPPDV_NAMESPACE = "urn:poreskauprava.gov.rs:ObrazacPPPDV"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'


class XmlSerializer:
    """Renders a PP-PDV form into the statutory XML document."""

    def serialize(self, form: PpPdvForm, header: DeclarationHeader) -> str:
        """
        Render the declaration.

        Output depends only on the arguments: element order is fixed, amounts
        are written with a dot and two fraction digits, dates in ISO format.

        Raises:
            SerializationError: If a required header field is blank
        """
        self._validate_header(header)

        root = ET.Element("ObrazacPPPDV", {"xmlns": PPPDV_NAMESPACE})

        zaglavlje = ET.SubElement(root, "Zaglavlje")
        ET.SubElement(zaglavlje, "PIB").text = header.pib.strip()
        ET.SubElement(zaglavlje, "NazivObveznika").text = header.company_name.strip()
        ET.SubElement(zaglavlje, "PoreskiPeriodOd").text = header.period_start.isoformat()
        ET.SubElement(zaglavlje, "PoreskiPeriodDo").text = header.period_end.isoformat()
        ET.SubElement(zaglavlje, "GodinaPerioda").text = f"{header.year:04d}"
        ET.SubElement(zaglavlje, "MesecPerioda").text = f"{header.month:02d}"

        podaci = ET.SubElement(root, "Podaci")
        for code in PPPDV_FIELD_ORDER:
            ET.SubElement(podaci, f"Polje{code}").text = format_money(form.field(code))

        ET.indent(root, space="  ")
        body = ET.tostring(root, encoding="unicode", short_empty_elements=False)
        return f"{XML_DECLARATION}\n{body}\n"

    @staticmethod
    def _validate_header(header: DeclarationHeader) -> None:
        blank = [
            name
            for name, value in (
                ("pib", header.pib),
                ("company_name", header.company_name),
            )
            if not value or not value.strip()
        ]
        if blank:
            raise SerializationError(
                f"Declaration header is missing: {', '.join(blank)}",
                {"missing_fields": blank},
            )
        if header.period_end < header.period_start:
            raise SerializationError(
                "Declaration period ends before it starts",
                {
                    "period_start": header.period_start.isoformat(),
                    "period_end": header.period_end.isoformat(),
                },
            )
