from core.services.integrations.collaborators import (
    FilingClient,
    PaymentOrderGenerator,
    PostingEngine,
)
from core.services.integrations.http_clients import HttpFilingClient, HttpPostingEngine

__all__ = [
    "FilingClient",
    "HttpFilingClient",
    "HttpPostingEngine",
    "PaymentOrderGenerator",
    "PostingEngine",
]
