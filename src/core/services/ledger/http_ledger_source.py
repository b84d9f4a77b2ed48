"""
Ledger source that reads document lines from the ledger service over HTTP.
"""

from datetime import date
from typing import List, Optional

import requests
from loguru import logger
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from core.exceptions import ExternalServiceError
from core.models.documents import DocumentClass, LedgerLine, SourceLine
from core.observability import record_external_call
from core.services.ledger.ledger_source import LedgerSource

_LINES_ADAPTER = TypeAdapter(List[LedgerLine])


class HttpLedgerSource(LedgerSource):
    """
    Reads `GET {base_url}/lines` pages.

    The service answers with a JSON array of lines carrying a
    `document_class` discriminator.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def fetch_lines(
        self,
        document_class: DocumentClass,
        legal_entity_id: Optional[str],
        start_date: date,
        end_date: date,
        offset: int,
        limit: int,
    ) -> List[SourceLine]:
        params = {
            "document_class": document_class.value,
            "from": start_date.isoformat(),
            "to": end_date.isoformat(),
            "offset": offset,
            "limit": limit,
        }
        if legal_entity_id is not None:
            params["legal_entity_id"] = legal_entity_id

        try:
            response = self._session.get(
                f"{self.base_url}/lines", params=params, timeout=self.timeout
            )
            response.raise_for_status()
            lines = _LINES_ADAPTER.validate_python(response.json())
        except requests.RequestException as e:
            record_external_call("ledger", "failed")
            logger.error(f"Ledger read failed for {document_class.value}: {e}")
            raise ExternalServiceError(
                "ledger", str(e), details=params, original_exception=e
            )
        except (ValueError, PydanticValidationError) as e:
            record_external_call("ledger", "failed")
            logger.error(f"Ledger returned malformed lines: {e}")
            raise ExternalServiceError(
                "ledger", "malformed response", details=params, original_exception=e
            )

        record_external_call("ledger", "success")
        logger.debug(
            f"Fetched {len(lines)} {document_class.value} lines (offset={offset})"
        )
        return lines
