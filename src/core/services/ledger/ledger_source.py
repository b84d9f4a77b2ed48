"""
Read-only access to source documents, one document class at a time.
"""

import threading
from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, Iterable, List, Optional

from core.models.documents import DocumentClass, SourceLine


class LedgerSource(ABC):
    """Paginated query surface over the ledger/document store."""

    @abstractmethod
    def fetch_lines(
        self,
        document_class: DocumentClass,
        legal_entity_id: Optional[str],
        start_date: date,
        end_date: date,
        offset: int,
        limit: int,
    ) -> List[SourceLine]:
        """
        Return one page of lines of a document class whose VAT date falls in
        [start_date, end_date].

        Args:
            document_class: Which document family to read
            legal_entity_id: Entity filter, None for all entities
            start_date: Inclusive range start
            end_date: Inclusive range end
            offset: Number of lines to skip
            limit: Maximum number of lines to return

        Returns:
            Lines in a stable order; fewer than `limit` means the last page
        """


class InMemoryLedgerSource(LedgerSource):
    """Ledger source backed by a list of lines, for tests and local runs."""

    def __init__(self, lines: Optional[Iterable[SourceLine]] = None):
        self._lock = threading.Lock()
        self._lines: Dict[DocumentClass, List[SourceLine]] = {
            document_class: [] for document_class in DocumentClass
        }
        self.page_requests = 0
        for line in lines or []:
            self.add(line)

    def add(self, line: SourceLine) -> None:
        with self._lock:
            self._lines[line.document_class].append(line)

    def extend(self, lines: Iterable[SourceLine]) -> None:
        for line in lines:
            self.add(line)

    def fetch_lines(
        self,
        document_class: DocumentClass,
        legal_entity_id: Optional[str],
        start_date: date,
        end_date: date,
        offset: int,
        limit: int,
    ) -> List[SourceLine]:
        with self._lock:
            self.page_requests += 1
            matching = [
                line
                for line in self._lines[document_class]
                if start_date <= line.vat_date <= end_date
                and (legal_entity_id is None or line.legal_entity_id == legal_entity_id)
            ]
        matching.sort(key=lambda line: (line.vat_date, line.document_id, line.line_no))
        return matching[offset : offset + limit]
