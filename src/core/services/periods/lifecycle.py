"""
Tax period lifecycle: the only component that mutates period state.

State machine:
    open -> calculated -> submitted -> closed
    calculated -> calculated (recalculation supersedes the previous result)
    submitted -> submitted (settle, side effects only)

`is_locked` is orthogonal to status. It can be toggled once the period left
`open` and blocks calculate and submit. Every mutating operation runs under
the period's advisory lock and writes with a version check.
"""

import threading
import time
import uuid
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Callable, Iterator, List, Optional

from loguru import logger

from core.config import AppConfig, config
from core.events.event_bus import PeriodEventBus
from core.events.period_events import (
    PeriodClosed,
    PeriodEvent,
    PeriodRecalculated,
    PeriodSettled,
    PeriodSubmitted,
)
from core.exceptions import (
    CalculationCancelledError,
    ExternalServiceError,
    InvalidTransitionError,
    LockedPeriodError,
    StorageError,
    ValidationError,
)
from core.infrastructure.period_repository import PeriodRepository
from core.infrastructure.snapshot_store import SnapshotStore
from core.logging import get_exchange_id, period_context
from core.models.period import PeriodStatus, TaxPeriod, utc_now
from core.models.popdv import AggregatedLine, VatAdjustments
from core.models.pppdv import DeclarationHeader
from core.models.settlement import JournalLine, PeriodSnapshot, SettlementResult
from core.observability import (
    active_calculations_gauge,
    record_calculation,
    record_external_call,
    record_period_transition,
)
from core.services.aggregation.ledger_aggregator import LedgerAggregator
from core.services.integrations.collaborators import (
    FilingClient,
    PaymentOrderGenerator,
    PostingEngine,
)
from core.services.periods.credit_resolver import PriorPeriodCreditResolver
from core.services.popdv.form_builder import PopdvFormBuilder
from core.services.pppdv.mapper import PpPdvMapper
from core.services.pppdv.xml_serializer import XmlSerializer
from core.utils.money import ZERO


class PeriodLifecycleManager:
    """Orchestrates calculation, filing, settlement and closing of tax periods."""

    def __init__(
        self,
        repository: PeriodRepository,
        snapshot_store: SnapshotStore,
        aggregator: LedgerAggregator,
        form_builder: Optional[PopdvFormBuilder] = None,
        mapper: Optional[PpPdvMapper] = None,
        serializer: Optional[XmlSerializer] = None,
        credit_resolver: Optional[PriorPeriodCreditResolver] = None,
        filing_client: Optional[FilingClient] = None,
        posting_engine: Optional[PostingEngine] = None,
        payment_order_generator: Optional[PaymentOrderGenerator] = None,
        event_bus: Optional[PeriodEventBus] = None,
        settings: Optional[AppConfig] = None,
    ):
        self.repository = repository
        self.snapshot_store = snapshot_store
        self.aggregator = aggregator
        self.form_builder = form_builder or PopdvFormBuilder()
        self.mapper = mapper or PpPdvMapper()
        self.serializer = serializer or XmlSerializer()
        self.credit_resolver = credit_resolver or PriorPeriodCreditResolver(repository)
        self.filing_client = filing_client
        self.posting_engine = posting_engine
        self.payment_order_generator = payment_order_generator
        self.event_bus = event_bus or PeriodEventBus()
        self.settings = settings or config

    # ------------------------------------------------------------------ reads

    def get(self, period_id: str) -> TaxPeriod:
        return self.repository.get(period_id)

    def lines(self, period_id: str) -> List[AggregatedLine]:
        return self.repository.lines(period_id)

    def list_periods(
        self, tenant_id: str, legal_entity_id: Optional[str] = None
    ) -> List[TaxPeriod]:
        return self.repository.list(tenant_id, legal_entity_id)

    def snapshot(self, period_id: str) -> Optional[PeriodSnapshot]:
        return self._stored_snapshot(self.repository.get(period_id))

    def declaration_xml(self, period_id: str, pib: str, company_name: str) -> str:
        """
        Render the PP-PDV XML of the period's latest calculation.

        Raises:
            InvalidTransitionError: If the period was never calculated
            SerializationError: If pib or company_name is blank
        """
        period = self.repository.get(period_id)
        snapshot = self._stored_snapshot(period)
        if snapshot is None:
            raise InvalidTransitionError(
                period_id, "export the declaration of", period.status.value
            )
        return self.serializer.serialize(
            snapshot.pppdv_data, self._header(period, pib, company_name)
        )

    # ------------------------------------------------------------ transitions

    def create(
        self,
        tenant_id: str,
        legal_entity_id: Optional[str],
        start_date: date,
        end_date: date,
        name: Optional[str] = None,
        period_id: Optional[str] = None,
        pib: Optional[str] = None,
    ) -> TaxPeriod:
        """
        Open a new tax period.

        `pib` is stored on the period and used for its payment order reference.

        Raises:
            ValidationError: On an inverted range, a missing legal entity or an
                overlap with another period of the same legal entity
        """
        period_id = period_id or str(uuid.uuid4())
        with self._operation("create", period_id):
            if start_date > end_date:
                raise ValidationError(
                    "start_date must not be after end_date",
                    {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
                )
            if legal_entity_id is None and self.settings.periods.require_legal_entity:
                raise ValidationError("A legal entity is required for a tax period")

            with self.repository.lock(f"tenant:{tenant_id}"):
                for existing in self.repository.list(tenant_id):
                    same_entity = (
                        existing.legal_entity_id is None
                        or legal_entity_id is None
                        or existing.legal_entity_id == legal_entity_id
                    )
                    if same_entity and existing.overlaps(start_date, end_date):
                        raise ValidationError(
                            "Tax period overlaps an existing period",
                            {
                                "existing_period_id": existing.id,
                                "existing_start_date": existing.start_date.isoformat(),
                                "existing_end_date": existing.end_date.isoformat(),
                            },
                        )

                period = self.repository.add(
                    TaxPeriod(
                        id=period_id,
                        tenant_id=tenant_id,
                        legal_entity_id=legal_entity_id,
                        pib=pib,
                        name=name or f"PDV {start_date.isoformat()} - {end_date.isoformat()}",
                        start_date=start_date,
                        end_date=end_date,
                    )
                )
            return period

    def calculate(
        self,
        period_id: str,
        adjustments: Optional[VatAdjustments] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> PeriodSnapshot:
        """
        Recompute the period from the ledger and replace its stored result.

        The aggregated lines, the period totals and the snapshot are replaced
        together; on any failure the period keeps its previous state.

        Args:
            period_id: Period to calculate
            adjustments: Non-deductible VAT and corrections, zero by default
            cancel_event: Set by the caller to abort a long ledger scan

        Returns:
            The stored snapshot of the new calculation
        """
        started = time.monotonic()
        active_calculations_gauge.inc()
        try:
            with self._operation("calculate", period_id):
                with self.repository.lock(f"period:{period_id}"):
                    period = self.repository.get(period_id)
                    self._require_calculable(period)
                    snapshot, updated, lines = self._compute(
                        period, adjustments, cancel_event
                    )
                    saved = self._commit_calculation(period, updated, lines, snapshot)
        except CalculationCancelledError:
            record_calculation("cancelled", time.monotonic() - started)
            raise
        except Exception:
            record_calculation("failed", time.monotonic() - started)
            raise
        finally:
            active_calculations_gauge.dec()

        record_calculation("success", time.monotonic() - started)
        self._publish(
            PeriodRecalculated(
                **self._event_fields(saved),
                output_vat=saved.output_vat,
                input_vat=saved.input_vat,
                vat_liability=saved.vat_liability,
                credit_carried_forward=saved.credit_carried_forward,
            )
        )
        return snapshot

    def submit(self, period_id: str, pib: str, company_name: str) -> TaxPeriod:
        """
        File the calculated declaration and move the period to `submitted`.

        Raises:
            ExternalServiceError: If filing fails; the period stays `calculated`
        """
        with self._operation("submit", period_id):
            with self.repository.lock(f"period:{period_id}"):
                period = self.repository.get(period_id)
                self._require_mutable(period, "submit")
                self._require_status(period, "submit", PeriodStatus.CALCULATED)

                snapshot = self._stored_snapshot(period)
                if snapshot is None:
                    raise StorageError(
                        "Calculated period has no stored snapshot",
                        {"period_id": period_id, "key": period.snapshot_key()},
                    )
                declaration = self.serializer.serialize(
                    snapshot.pppdv_data, self._header(period, pib, company_name)
                )

                def file_declaration(client: FilingClient):
                    filing_receipt = client.submit(period.id, declaration)
                    if not filing_receipt.ok:
                        raise ExternalServiceError(
                            "filing",
                            filing_receipt.error or "declaration rejected",
                            {"period_id": period_id},
                        )
                    return filing_receipt

                receipt = self._call_external(
                    "filing", self.filing_client, file_declaration
                )

                saved = self.repository.save(
                    period.model_copy(
                        update={
                            "status": PeriodStatus.SUBMITTED,
                            "submitted_at": utc_now(),
                            "filing_reference": receipt.reference,
                        }
                    ),
                    period.version,
                )

        self._publish(
            PeriodSubmitted(
                **self._event_fields(saved),
                filing_reference=saved.filing_reference,
                vat_liability=saved.vat_liability,
            )
        )
        return saved

    def settle(self, period_id: str) -> SettlementResult:
        """
        Post the settlement journal entry and request the payment order.

        A liability is posted debit output VAT / credit VAT payable, a credit
        debit VAT receivable / credit input VAT. Both steps run at most once
        per period; an entry already posted under `PDV-{period_id}` is recorded
        instead of being posted again.
        """
        with self._operation("settle", period_id):
            with self.repository.lock(f"period:{period_id}"):
                period = self.repository.get(period_id)
                self._require_status(period, "settle", PeriodStatus.SUBMITTED)
                liability = period.vat_liability
                already_settled = period.settlement_entry_id is not None

                if not already_settled and liability != ZERO:
                    reference = f"PDV-{period.id}"
                    # An entry posted by an attempt that failed to record it
                    entry_id = self._call_external(
                        "posting",
                        self.posting_engine,
                        lambda engine: engine.find_entry(reference),
                    )
                    if entry_id is not None:
                        logger.warning(
                            f"Settlement entry {entry_id} already posted as {reference}"
                        )
                    else:
                        entry_lines = self._settlement_lines(liability)
                        entry_id = self._call_external(
                            "posting",
                            self.posting_engine,
                            lambda engine: engine.post_entry(
                                entry_lines, reference, period.end_date
                            ),
                        )
                        logger.info(f"Settlement entry {entry_id} posted ({liability})")
                    period = self.repository.save(
                        period.model_copy(update={"settlement_entry_id": entry_id}),
                        period.version,
                    )

                payment_order = None
                if liability > ZERO and period.payment_reference is None:
                    payment_order = self._call_external(
                        "payment_order",
                        self.payment_order_generator,
                        lambda generator: generator.generate(period, liability),
                    )
                    period = self.repository.save(
                        period.model_copy(
                            update={"payment_reference": payment_order.reference}
                        ),
                        period.version,
                    )

                result = SettlementResult(
                    period_id=period.id,
                    vat_liability=liability,
                    journal_entry_id=period.settlement_entry_id,
                    payment_order=payment_order,
                    already_settled=already_settled and payment_order is None,
                )

        if not result.already_settled:
            self._publish(
                PeriodSettled(
                    **self._event_fields(period),
                    journal_entry_id=period.settlement_entry_id,
                    payment_reference=period.payment_reference,
                    vat_liability=liability,
                )
            )
        return result

    def lock_period(self, period_id: str) -> TaxPeriod:
        return self._set_locked(period_id, True)

    def unlock_period(self, period_id: str) -> TaxPeriod:
        return self._set_locked(period_id, False)

    def close(self, period_id: str) -> TaxPeriod:
        """Close a submitted period. Closed periods accept no further transitions."""
        with self._operation("close", period_id):
            with self.repository.lock(f"period:{period_id}"):
                period = self.repository.get(period_id)
                self._require_status(period, "close", PeriodStatus.SUBMITTED)
                saved = self.repository.save(
                    period.model_copy(
                        update={"status": PeriodStatus.CLOSED, "closed_at": utc_now()}
                    ),
                    period.version,
                )

        self._publish(PeriodClosed(**self._event_fields(saved)))
        return saved

    # ---------------------------------------------------------------- helpers

    def _compute(
        self,
        period: TaxPeriod,
        adjustments: Optional[VatAdjustments],
        cancel_event: Optional[threading.Event],
    ):
        prior_credit = self.credit_resolver.resolve(period)
        aggregation = self.aggregator.aggregate(
            period.legal_entity_id, period.start_date, period.end_date, cancel_event
        )
        popdv = self.form_builder.build(aggregation, adjustments)
        form = self.mapper.map(popdv, prior_credit)

        snapshot = PeriodSnapshot(
            tenant_id=period.tenant_id,
            period_id=period.id,
            period_start=period.start_date,
            period_end=period.end_date,
            legal_entity_id=period.legal_entity_id,
            popdv_data=popdv,
            pppdv_data=form,
            output_vat=popdv.section5,
            input_vat=popdv.section8e,
            net_vat=form.field_110,
            calculated_at=utc_now(),
        )
        updated = period.model_copy(
            update={
                "status": PeriodStatus.CALCULATED,
                "output_vat": popdv.section5,
                "input_vat": popdv.section8e,
                "vat_liability": form.field_110,
                "credit_carried_forward": form.field_112,
            }
        )
        return snapshot, updated, popdv.all_lines()

    def _commit_calculation(
        self,
        period: TaxPeriod,
        updated: TaxPeriod,
        lines: List[AggregatedLine],
        snapshot: PeriodSnapshot,
    ) -> TaxPeriod:
        """Write snapshot, lines and totals; restore the old snapshot if the swap fails."""
        previous = self.snapshot_store.get(snapshot.key)
        self.snapshot_store.upsert(snapshot)
        try:
            saved = self.repository.replace_calculation(updated, lines, period.version)
        except Exception as e:
            logger.error(f"Calculation commit failed, restoring snapshot: {e}")
            if previous is not None:
                self.snapshot_store.upsert(previous)
            else:
                self.snapshot_store.delete(snapshot.key)
            raise
        logger.info(
            f"Calculated: output_vat={saved.output_vat} input_vat={saved.input_vat} "
            f"vat_liability={saved.vat_liability} lines={len(lines)}"
        )
        return saved

    def _stored_snapshot(self, period: TaxPeriod) -> Optional[PeriodSnapshot]:
        """Load the period's snapshot; a snapshot of another period is never served."""
        snapshot = self.snapshot_store.get(period.snapshot_key())
        if snapshot is not None and snapshot.period_id != period.id:
            raise StorageError(
                "Stored snapshot belongs to another period",
                {
                    "period_id": period.id,
                    "snapshot_period_id": snapshot.period_id,
                    "key": period.snapshot_key(),
                },
            )
        return snapshot

    def _set_locked(self, period_id: str, locked: bool) -> TaxPeriod:
        operation = "lock" if locked else "unlock"
        with self._operation(operation, period_id):
            with self.repository.lock(f"period:{period_id}"):
                period = self.repository.get(period_id)
                if period.status == PeriodStatus.OPEN:
                    raise InvalidTransitionError(period_id, operation, period.status.value)
                if period.is_locked == locked:
                    return period
                return self.repository.save(
                    period.model_copy(update={"is_locked": locked}), period.version
                )

    def _settlement_lines(self, liability: Decimal) -> List[JournalLine]:
        accounts = self.settings.settlement
        amount = abs(liability)
        if liability > ZERO:
            return [
                JournalLine(
                    account=accounts.output_vat_account,
                    debit=amount,
                    description="PDV obaveza za period",
                ),
                JournalLine(
                    account=accounts.vat_payable_account,
                    credit=amount,
                    description="PDV obaveza za period",
                ),
            ]
        return [
            JournalLine(
                account=accounts.vat_receivable_account,
                debit=amount,
                description="PDV potrazivanje za period",
            ),
            JournalLine(
                account=accounts.input_vat_account,
                credit=amount,
                description="PDV potrazivanje za period",
            ),
        ]

    def _call_external(self, service: str, collaborator, call: Callable):
        """Invoke a collaborator; every failure surfaces as ExternalServiceError."""
        if collaborator is None:
            raise ExternalServiceError(service, "no client configured")
        try:
            result = call(collaborator)
        except ExternalServiceError:
            record_external_call(service, "failed")
            raise
        except Exception as e:
            record_external_call(service, "failed")
            raise ExternalServiceError(service, str(e), original_exception=e)
        record_external_call(service, "success")
        return result

    @staticmethod
    def _header(period: TaxPeriod, pib: str, company_name: str) -> DeclarationHeader:
        return DeclarationHeader(
            pib=pib or "",
            company_name=company_name or "",
            period_start=period.start_date,
            period_end=period.end_date,
        )

    @staticmethod
    def _require_mutable(period: TaxPeriod, operation: str) -> None:
        if PeriodStatus.is_terminal(period.status):
            raise InvalidTransitionError(period.id, operation, period.status.value)
        if period.is_locked:
            raise LockedPeriodError(period.id, operation)

    def _require_calculable(self, period: TaxPeriod) -> None:
        self._require_mutable(period, "calculate")
        if period.status not in (PeriodStatus.OPEN, PeriodStatus.CALCULATED):
            raise InvalidTransitionError(period.id, "calculate", period.status.value)

    @staticmethod
    def _require_status(
        period: TaxPeriod, operation: str, status: PeriodStatus
    ) -> None:
        if period.status != status:
            raise InvalidTransitionError(period.id, operation, period.status.value)

    @staticmethod
    def _event_fields(period: TaxPeriod) -> dict:
        return {
            "period_id": period.id,
            "tenant_id": period.tenant_id,
            "legal_entity_id": period.legal_entity_id,
            "start_date": period.start_date,
            "end_date": period.end_date,
            "exchange_id": get_exchange_id(),
        }

    def _publish(self, event: PeriodEvent) -> None:
        self.event_bus.publish(event)

    @contextmanager
    def _operation(self, transition: str, period_id: str) -> Iterator[None]:
        """Log and count one lifecycle operation under the period's log context."""
        with period_context(period_id):
            logger.info(f"{transition} started")
            try:
                yield
            except (LockedPeriodError, InvalidTransitionError) as e:
                record_period_transition(transition, "rejected")
                logger.warning(f"{transition} rejected: {e.message}")
                raise
            except Exception as e:
                record_period_transition(transition, "failed")
                logger.error(f"{transition} failed: {e}")
                raise
            record_period_transition(transition, "success")
            logger.info(f"{transition} finished")
