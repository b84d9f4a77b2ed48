"""
Tests for PP-PDV XML rendering.
"""

import xml.etree.ElementTree as ET
from datetime import date
from decimal import Decimal

import pytest

from core.exceptions import SerializationError
from core.models import DeclarationHeader, PpPdvForm
from core.services.pppdv import PPPDV_NAMESPACE, XmlSerializer

NS = {"p": PPPDV_NAMESPACE}


@pytest.fixture
def header():
    return DeclarationHeader(
        pib="100000001",
        company_name="Primer d.o.o.",
        period_start=date(2025, 1, 1),
        period_end=date(2025, 1, 31),
    )


@pytest.fixture
def form():
    return PpPdvForm(
        field_003=Decimal("10000.00"),
        field_005=Decimal("10000.00"),
        field_105=Decimal("2000.00"),
        field_110=Decimal("2000.00"),
        field_111=Decimal("2000.00"),
    )


class TestXmlSerializer:
    def test_document_layout(self, form, header):
        xml = XmlSerializer().serialize(form, header)
        lines = xml.splitlines()

        assert lines[0] == '<?xml version="1.0" encoding="UTF-8"?>'
        assert lines[1] == f'<ObrazacPPPDV xmlns="{PPPDV_NAMESPACE}">'
        assert lines[2:10] == [
            "  <Zaglavlje>",
            "    <PIB>100000001</PIB>",
            "    <NazivObveznika>Primer d.o.o.</NazivObveznika>",
            "    <PoreskiPeriodOd>2025-01-01</PoreskiPeriodOd>",
            "    <PoreskiPeriodDo>2025-01-31</PoreskiPeriodDo>",
            "    <GodinaPerioda>2025</GodinaPerioda>",
            "    <MesecPerioda>01</MesecPerioda>",
            "  </Zaglavlje>",
        ]
        assert lines[10] == "  <Podaci>"
        assert lines[11] == "    <Polje001>0.00</Polje001>"
        assert lines[-1] == "</ObrazacPPPDV>"
        assert xml.endswith("</ObrazacPPPDV>\n")

    def test_fields_in_declaration_order(self, form, header):
        xml = XmlSerializer().serialize(form, header)
        root = ET.fromstring(xml.split("\n", 1)[1])
        podaci = root.find("p:Podaci", NS)
        tags = [child.tag.split("}")[1] for child in podaci]
        assert tags[:6] == [
            "Polje001",
            "Polje002",
            "Polje003",
            "Polje103",
            "Polje004",
            "Polje005",
        ]
        assert tags[-3:] == ["Polje110", "Polje111", "Polje112"]
        assert podaci.find("p:Polje105", NS).text == "2000.00"
        assert podaci.find("p:Polje111", NS).text == "2000.00"

    def test_output_is_stable(self, form, header):
        serializer = XmlSerializer()
        first = serializer.serialize(form, header).encode("utf-8")
        second = serializer.serialize(form, header).encode("utf-8")
        assert first == second

    def test_negative_net_and_credit(self, header):
        form = PpPdvForm(
            field_109=Decimal("1600.00"),
            field_110=Decimal("-1600.00"),
            field_112=Decimal("1600.00"),
        )
        xml = XmlSerializer().serialize(form, header)
        assert "<Polje110>-1600.00</Polje110>" in xml
        assert "<Polje112>1600.00</Polje112>" in xml
        assert "<Polje111>0.00</Polje111>" in xml

    def test_amounts_use_two_fraction_digits(self, header):
        form = PpPdvForm(field_001=Decimal("1234567.5"), field_002=Decimal("7"))
        xml = XmlSerializer().serialize(form, header)
        assert "<Polje001>1234567.50</Polje001>" in xml
        assert "<Polje002>7.00</Polje002>" in xml

    def test_company_name_is_escaped(self, form, header):
        header = header.model_copy(update={"company_name": "Mlin & Pekara"})
        xml = XmlSerializer().serialize(form, header)
        assert "<NazivObveznika>Mlin &amp; Pekara</NazivObveznika>" in xml

    def test_month_is_zero_padded(self, form, header):
        header = header.model_copy(
            update={"period_start": date(2025, 11, 1), "period_end": date(2025, 11, 30)}
        )
        xml = XmlSerializer().serialize(form, header)
        assert "<MesecPerioda>11</MesecPerioda>" in xml

    @pytest.mark.parametrize("field", ["pib", "company_name"])
    def test_blank_header_field(self, form, header, field):
        header = header.model_copy(update={field: "  "})
        with pytest.raises(SerializationError) as exc_info:
            XmlSerializer().serialize(form, header)
        assert exc_info.value.details["missing_fields"] == [field]

    def test_inverted_period(self, form, header):
        header = header.model_copy(update={"period_end": date(2024, 12, 31)})
        with pytest.raises(SerializationError):
            XmlSerializer().serialize(form, header)
