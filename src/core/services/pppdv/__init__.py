from core.services.pppdv.mapper import FIELD_MAPPING, PpPdvMapper
from core.services.pppdv.xml_serializer import PPPDV_NAMESPACE, XmlSerializer

__all__ = ["FIELD_MAPPING", "PPPDV_NAMESPACE", "PpPdvMapper", "XmlSerializer"]
