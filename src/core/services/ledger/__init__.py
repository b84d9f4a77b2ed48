from core.services.ledger.http_ledger_source import HttpLedgerSource
from core.services.ledger.ledger_source import InMemoryLedgerSource, LedgerSource

__all__ = ["HttpLedgerSource", "InMemoryLedgerSource", "LedgerSource"]
