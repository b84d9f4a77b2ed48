"""
Application service for tax period use cases.
Wires the period lifecycle from configuration and converts API models.
"""

from typing import Dict, List, Optional

from loguru import logger

from api.models.requests import CalculateRequest, PeriodCreateRequest, SubmitRequest
from api.models.responses import (
    AggregatedLineResponse,
    CalculationResponse,
    PeriodListResponse,
    PeriodResponse,
)
from core.config import AppConfig, config
from core.events import PeriodEventBus
from core.infrastructure import (
    InMemoryPeriodRepository,
    InMemorySnapshotStore,
    RedisClient,
    RedisPeriodRepository,
    RedisSnapshotStore,
)
from core.messaging import get_kafka_producer
from core.models import SettlementResult, VatAdjustments
from core.services.aggregation import LedgerAggregator
from core.services.integrations import HttpFilingClient, HttpPostingEngine
from core.services.ledger import HttpLedgerSource, InMemoryLedgerSource
from core.services.payments import Model97PaymentOrderGenerator
from core.services.periods import PeriodLifecycleManager


def build_lifecycle_manager(
    app_config: AppConfig = config,
) -> tuple[PeriodLifecycleManager, Optional[RedisClient]]:
    """
    Build a lifecycle manager from configuration.

    Redis backs the repository and snapshot store when enabled; the ledger,
    filing and posting collaborators use HTTP when their URL is configured.
    """
    storage = app_config.storage
    integrations = app_config.integrations
    redis_client = None

    if storage.redis_enabled:
        redis_client = RedisClient(storage.redis_url)
        repository = RedisPeriodRepository(redis_client, storage.lock_timeout_seconds)
        snapshot_store = RedisSnapshotStore(redis_client)
        logger.info(f"Using Redis period storage at {storage.redis_url}")
    else:
        repository = InMemoryPeriodRepository(storage.lock_timeout_seconds)
        snapshot_store = InMemorySnapshotStore()
        logger.info("Using in-memory period storage")

    if integrations.ledger_url:
        source = HttpLedgerSource(integrations.ledger_url, integrations.request_timeout)
    else:
        logger.warning("LEDGER_SERVICE_URL not set; ledger source is empty")
        source = InMemoryLedgerSource()

    filing_client = (
        HttpFilingClient(integrations.filing_url, integrations.request_timeout)
        if integrations.filing_url
        else None
    )
    posting_engine = (
        HttpPostingEngine(integrations.posting_url, integrations.request_timeout)
        if integrations.posting_url
        else None
    )

    event_bus = PeriodEventBus()
    if app_config.messaging.kafka_enabled:
        event_bus.subscribe(get_kafka_producer())
        logger.info("Period events are published to Kafka")

    manager = PeriodLifecycleManager(
        repository=repository,
        snapshot_store=snapshot_store,
        aggregator=LedgerAggregator(source),
        filing_client=filing_client,
        posting_engine=posting_engine,
        payment_order_generator=Model97PaymentOrderGenerator(
            app_config.payment_orders
        ),
        event_bus=event_bus,
        settings=app_config,
    )
    return manager, redis_client


class PeriodApplicationService:
    """Use cases behind the period endpoints."""

    def __init__(
        self,
        lifecycle: PeriodLifecycleManager,
        redis_client: Optional[RedisClient] = None,
    ):
        self.lifecycle = lifecycle
        self.redis_client = redis_client

    def create_period(self, request: PeriodCreateRequest) -> PeriodResponse:
        period = self.lifecycle.create(
            tenant_id=request.tenant_id,
            legal_entity_id=request.legal_entity_id,
            start_date=request.start_date,
            end_date=request.end_date,
            name=request.name,
            pib=request.pib,
        )
        return PeriodResponse.from_period(period)

    def get_period(self, period_id: str) -> PeriodResponse:
        return PeriodResponse.from_period(self.lifecycle.get(period_id))

    def list_periods(
        self, tenant_id: str, legal_entity_id: Optional[str] = None
    ) -> PeriodListResponse:
        periods = self.lifecycle.list_periods(tenant_id, legal_entity_id)
        return PeriodListResponse(
            periods=[PeriodResponse.from_period(period) for period in periods],
            total=len(periods),
        )

    def get_lines(self, period_id: str) -> List[AggregatedLineResponse]:
        return [
            AggregatedLineResponse.from_line(line)
            for line in self.lifecycle.lines(period_id)
        ]

    def calculate(
        self, period_id: str, request: Optional[CalculateRequest] = None
    ) -> CalculationResponse:
        adjustments = None
        if request is not None:
            adjustments = VatAdjustments(
                non_deductible_vat=request.non_deductible_vat,
                correction=request.correction,
            )
        snapshot = self.lifecycle.calculate(period_id, adjustments)
        return CalculationResponse.from_snapshot(
            self.lifecycle.get(period_id), snapshot
        )

    def submit(self, period_id: str, request: SubmitRequest) -> PeriodResponse:
        period = self.lifecycle.submit(period_id, request.pib, request.company_name)
        return PeriodResponse.from_period(period)

    def settle(self, period_id: str) -> SettlementResult:
        return self.lifecycle.settle(period_id)

    def lock(self, period_id: str) -> PeriodResponse:
        return PeriodResponse.from_period(self.lifecycle.lock_period(period_id))

    def unlock(self, period_id: str) -> PeriodResponse:
        return PeriodResponse.from_period(self.lifecycle.unlock_period(period_id))

    def close(self, period_id: str) -> PeriodResponse:
        return PeriodResponse.from_period(self.lifecycle.close(period_id))

    def declaration_xml(self, period_id: str, pib: str, company_name: str) -> str:
        return self.lifecycle.declaration_xml(period_id, pib, company_name)

    def health(self) -> Dict[str, str]:
        services = {"api": "healthy"}
        if self.redis_client is not None:
            services["redis"] = "healthy" if self.redis_client.ping() else "unhealthy"
        return services

    def shutdown(self) -> None:
        if self.redis_client is not None:
            self.redis_client.close()
