"""
HTTP adapters for the filing and posting services.
"""

from datetime import date
from typing import List, Optional

import requests
from loguru import logger

from core.exceptions import ExternalServiceError
from core.models.settlement import FilingReceipt, JournalLine
from core.services.integrations.collaborators import FilingClient, PostingEngine
from core.utils.money import format_money


class _HttpCollaborator:
    service_name = "external"

    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
        api_token: Optional[str] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        if api_token:
            self._session.headers["X-API-Token"] = api_token

    def _post(self, path: str, **kwargs):
        return self._request("post", path, **kwargs)

    def _get(self, path: str, **kwargs):
        return self._request("get", path, **kwargs)

    def _request(self, method: str, path: str, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            send = getattr(self._session, method)
            response = send(url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error(f"{self.service_name} call to {url} failed: {e}")
            raise ExternalServiceError(
                self.service_name, str(e), {"url": url}, original_exception=e
            )
        except ValueError as e:
            logger.error(f"{self.service_name} returned a non-JSON body: {e}")
            raise ExternalServiceError(
                self.service_name, "malformed response", {"url": url}, original_exception=e
            )


class HttpFilingClient(_HttpCollaborator, FilingClient):
    """Posts the declaration XML to `{base_url}/filings/{period_id}`."""

    service_name = "filing"

    def submit(self, period_id: str, declaration_xml: str) -> FilingReceipt:
        payload = self._post(
            f"/filings/{period_id}",
            data=declaration_xml.encode("utf-8"),
            headers={"Content-Type": "application/xml; charset=utf-8"},
        )
        return FilingReceipt(
            ok=bool(payload.get("ok")),
            reference=payload.get("reference"),
            error=payload.get("error"),
        )


class HttpPostingEngine(_HttpCollaborator, PostingEngine):
    """Posts and looks up journal entries at `{base_url}/journal-entries`."""

    service_name = "posting"

    def post_entry(
        self, lines: List[JournalLine], reference: str, entry_date: date
    ) -> str:
        payload = self._post(
            "/journal-entries",
            json={
                "reference": reference,
                "entry_date": entry_date.isoformat(),
                "lines": [
                    {
                        "account": line.account,
                        "debit": format_money(line.debit),
                        "credit": format_money(line.credit),
                        "description": line.description,
                    }
                    for line in lines
                ],
            },
        )
        journal_entry_id = payload.get("journal_entry_id") or payload.get("id")
        if not journal_entry_id:
            raise ExternalServiceError(
                self.service_name,
                "response carries no journal entry id",
                {"reference": reference},
            )
        return str(journal_entry_id)

    def find_entry(self, reference: str) -> Optional[str]:
        payload = self._get("/journal-entries", params={"reference": reference})
        entries = payload if isinstance(payload, list) else payload.get("entries", [])
        for entry in entries:
            if entry.get("reference", reference) != reference:
                continue
            journal_entry_id = entry.get("journal_entry_id") or entry.get("id")
            if journal_entry_id:
                return str(journal_entry_id)
        return None
