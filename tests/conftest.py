"""
Shared fixtures: in-memory storage, a ledger source and mocked collaborators.
"""

from datetime import date
from unittest.mock import Mock

import pytest

from core.config import PaymentOrderConfig
from core.events import PeriodEventBus
from core.infrastructure import InMemoryPeriodRepository, InMemorySnapshotStore
from core.models import FilingReceipt
from core.services.aggregation import LedgerAggregator
from core.services.integrations import FilingClient, PostingEngine
from core.services.ledger import InMemoryLedgerSource
from core.services.payments import Model97PaymentOrderGenerator
from core.services.periods import PeriodLifecycleManager
from factories import ENTITY, PIB, TENANT


@pytest.fixture
def ledger():
    return InMemoryLedgerSource()


@pytest.fixture
def repository():
    return InMemoryPeriodRepository(lock_timeout=1)


@pytest.fixture
def snapshot_store():
    return InMemorySnapshotStore()


@pytest.fixture
def event_bus():
    return PeriodEventBus()


@pytest.fixture
def published_events(event_bus):
    events = []
    event_bus.subscribe(events.append)
    return events


@pytest.fixture
def filing_client():
    client = Mock(spec=FilingClient)
    client.submit.return_value = FilingReceipt(ok=True, reference="FIL-1")
    return client


@pytest.fixture
def posting_engine():
    engine = Mock(spec=PostingEngine)
    engine.find_entry.return_value = None
    engine.post_entry.return_value = "JE-1"
    return engine


@pytest.fixture
def payment_order_generator():
    return Model97PaymentOrderGenerator(PaymentOrderConfig(taxpayer_pib=None))


@pytest.fixture
def manager(
    ledger,
    repository,
    snapshot_store,
    event_bus,
    filing_client,
    posting_engine,
    payment_order_generator,
):
    return PeriodLifecycleManager(
        repository=repository,
        snapshot_store=snapshot_store,
        aggregator=LedgerAggregator(ledger, page_size=50),
        filing_client=filing_client,
        posting_engine=posting_engine,
        payment_order_generator=payment_order_generator,
        event_bus=event_bus,
    )


@pytest.fixture
def january(manager):
    return manager.create(TENANT, ENTITY, date(2025, 1, 1), date(2025, 1, 31), pib=PIB)
