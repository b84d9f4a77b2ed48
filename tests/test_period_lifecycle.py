"""
Tests for the tax period lifecycle manager.
"""

import threading
from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest

from core.events import PeriodClosed, PeriodRecalculated, PeriodSettled, PeriodSubmitted
from core.exceptions import (
    CalculationCancelledError,
    ConcurrentCalculationError,
    ExternalServiceError,
    InvalidTransitionError,
    LockedPeriodError,
    PeriodNotFoundError,
    SerializationError,
    StorageError,
    UnknownAccountClassification,
    ValidationError,
)
from core.models import FilingReceipt, ImportOrigin, PeriodStatus, VatAdjustments
from factories import ENTITY, PIB, TENANT, import_document, issued_invoice, supplier_invoice

COMPANY = "Primer d.o.o."


def _submit(manager, period_id):
    return manager.submit(period_id, PIB, COMPANY)


class TestCreate:
    def test_new_period_is_open(self, january):
        assert january.status == PeriodStatus.OPEN
        assert january.is_locked is False
        assert january.name == "PDV 2025-01-01 - 2025-01-31"
        assert january.vat_liability == Decimal("0")

    def test_inverted_range(self, manager):
        with pytest.raises(ValidationError):
            manager.create(TENANT, ENTITY, date(2025, 2, 1), date(2025, 1, 1))

    def test_legal_entity_required(self, manager):
        with pytest.raises(ValidationError):
            manager.create(TENANT, None, date(2025, 1, 1), date(2025, 1, 31))

    def test_overlap_with_same_entity(self, manager, january):
        with pytest.raises(ValidationError) as exc_info:
            manager.create(TENANT, ENTITY, date(2025, 1, 15), date(2025, 2, 14))
        assert exc_info.value.details["existing_period_id"] == january.id

    def test_other_entity_and_tenant_may_overlap(self, manager, january):
        other_entity = manager.create(TENANT, "le-2", date(2025, 1, 1), date(2025, 1, 31))
        other_tenant = manager.create("tenant-2", ENTITY, date(2025, 1, 1), date(2025, 1, 31))
        assert {other_entity.id, other_tenant.id}.isdisjoint({january.id})

    def test_unknown_period(self, manager):
        with pytest.raises(PeriodNotFoundError):
            manager.get("missing")

    def test_pib_is_stored_on_the_period(self, manager, repository, january):
        assert january.pib == PIB
        assert repository.get(january.id).pib == PIB


class TestCalculate:
    """Calculation scenarios on the January period."""

    def test_single_domestic_invoice(self, manager, ledger, january):
        ledger.add(issued_invoice(10000, 2000))
        snapshot = manager.calculate(january.id)

        form = snapshot.pppdv_data
        assert form.field_105 == Decimal("2000.00")
        assert form.field_110 == Decimal("2000.00")
        assert form.field_111 == Decimal("2000.00")
        assert form.field_112 == Decimal("0.00")
        assert snapshot.popdv_data.input_lines == []

        period = manager.get(january.id)
        assert period.status == PeriodStatus.CALCULATED
        assert period.output_vat == Decimal("2000.00")
        assert period.vat_liability == Decimal("2000.00")

    def test_output_and_input(self, manager, ledger, january):
        ledger.extend([issued_invoice(10000, 2000), supplier_invoice(5000, 1000)])
        form = manager.calculate(january.id).pppdv_data
        assert form.field_109 == Decimal("1000.00")
        assert form.field_110 == Decimal("1000.00")
        assert form.field_111 == Decimal("1000.00")

    def test_input_only_period(self, manager, ledger, january):
        ledger.add(supplier_invoice(8000, 1600))
        form = manager.calculate(january.id).pppdv_data
        assert form.field_105 == Decimal("0.00")
        assert form.field_109 == Decimal("1600.00")
        assert form.field_110 == Decimal("-1600.00")
        assert form.field_111 == Decimal("0.00")
        assert form.field_112 == Decimal("1600.00")
        assert manager.get(january.id).credit_carried_forward == Decimal("1600.00")

    def test_locked_period_keeps_its_totals(self, manager, ledger, january):
        ledger.add(supplier_invoice(8000, 1600))
        manager.calculate(january.id)
        manager.lock_period(january.id)
        ledger.add(issued_invoice(10000, 2000))

        with pytest.raises(LockedPeriodError):
            manager.calculate(january.id)

        period = manager.get(january.id)
        assert period.credit_carried_forward == Decimal("1600.00")
        assert period.vat_liability == Decimal("-1600.00")
        assert manager.snapshot(january.id).pppdv_data.field_112 == Decimal("1600.00")

    def test_credit_carries_into_next_period(self, manager, ledger, january):
        ledger.add(supplier_invoice(8000, 1600))
        manager.calculate(january.id)
        _submit(manager, january.id)

        february = manager.create(TENANT, ENTITY, date(2025, 2, 1), date(2025, 2, 28))
        form = manager.calculate(february.id).pppdv_data
        assert form.field_110 == Decimal("0.00")
        assert form.field_112 == Decimal("1600.00")

    def test_unfiled_predecessor_carries_nothing(self, manager, ledger, january):
        ledger.add(supplier_invoice(8000, 1600))
        manager.calculate(january.id)

        february = manager.create(TENANT, ENTITY, date(2025, 2, 1), date(2025, 2, 28))
        assert manager.calculate(february.id).pppdv_data.field_112 == Decimal("0.00")

    def test_recalculation_is_idempotent(self, manager, ledger, january):
        ledger.extend(
            [
                issued_invoice(10000, 2000),
                import_document(1000, 200, origin=ImportOrigin.FOREIGN_SERVICES),
            ]
        )
        first = manager.calculate(january.id)
        first_lines = manager.lines(january.id)
        second = manager.calculate(january.id)

        assert second.pppdv_data == first.pppdv_data
        assert second.popdv_data == first.popdv_data
        assert manager.lines(january.id) == first_lines
        assert [line.popdv_field for line in first_lines] == ["3.2", "3a.2", "8g.1"]

    def test_recalculation_replaces_lines(self, manager, ledger, january):
        ledger.add(issued_invoice(10000, 2000))
        manager.calculate(january.id)
        ledger.add(supplier_invoice(5000, 1000))
        manager.calculate(january.id)

        assert [line.popdv_field for line in manager.lines(january.id)] == ["3.2", "8a.1"]
        assert manager.get(january.id).vat_liability == Decimal("1000.00")

    def test_adjustments(self, manager, ledger, january):
        ledger.add(supplier_invoice(5000, 1000))
        snapshot = manager.calculate(
            january.id, VatAdjustments(non_deductible_vat=Decimal("400"))
        )
        assert snapshot.pppdv_data.field_108 == Decimal("400.00")
        assert snapshot.pppdv_data.field_109 == Decimal("600.00")

    def test_unclassifiable_line_leaves_period_open(self, manager, ledger, january):
        ledger.add(issued_invoice(100, 18, vat_rate=Decimal("18")))
        with pytest.raises(UnknownAccountClassification):
            manager.calculate(january.id)
        assert manager.get(january.id).status == PeriodStatus.OPEN
        assert manager.snapshot(january.id) is None

    def test_cancelled_calculation(self, manager, ledger, january):
        ledger.add(issued_invoice(10000, 2000))
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(CalculationCancelledError):
            manager.calculate(january.id, cancel_event=cancel)
        assert manager.get(january.id).status == PeriodStatus.OPEN

    def test_failed_commit_restores_previous_state(
        self, manager, ledger, repository, january
    ):
        ledger.add(issued_invoice(10000, 2000))
        manager.calculate(january.id)
        ledger.add(supplier_invoice(5000, 1000))

        with patch.object(
            repository,
            "replace_calculation",
            side_effect=StorageError("write failed"),
        ):
            with pytest.raises(StorageError):
                manager.calculate(january.id)

        assert manager.get(january.id).vat_liability == Decimal("2000.00")
        assert [line.popdv_field for line in manager.lines(january.id)] == ["3.2"]
        assert manager.snapshot(january.id).net_vat == Decimal("2000.00")

    def test_failed_first_commit_removes_snapshot(
        self, manager, ledger, repository, snapshot_store, january
    ):
        ledger.add(issued_invoice(10000, 2000))
        with patch.object(
            repository,
            "replace_calculation",
            side_effect=StorageError("write failed"),
        ):
            with pytest.raises(StorageError):
                manager.calculate(january.id)
        assert len(snapshot_store) == 0

    def test_concurrent_calculation_times_out(self, manager, repository, january):
        with repository.lock(f"period:{january.id}"):
            with pytest.raises(ConcurrentCalculationError):
                manager.calculate(january.id)

    def test_closed_period_cannot_be_calculated(self, manager, ledger, january):
        manager.calculate(january.id)
        _submit(manager, january.id)
        manager.close(january.id)
        with pytest.raises(InvalidTransitionError):
            manager.calculate(january.id)

    def test_submitted_period_cannot_be_recalculated(self, manager, january):
        manager.calculate(january.id)
        _submit(manager, january.id)
        with pytest.raises(InvalidTransitionError):
            manager.calculate(january.id)


class TestSubmit:
    def test_submit_files_declaration(self, manager, ledger, filing_client, january):
        ledger.add(issued_invoice(10000, 2000))
        manager.calculate(january.id)

        period = _submit(manager, january.id)

        assert period.status == PeriodStatus.SUBMITTED
        assert period.filing_reference == "FIL-1"
        assert period.submitted_at is not None
        submitted_id, declaration = filing_client.submit.call_args.args
        assert submitted_id == january.id
        assert "<Polje111>2000.00</Polje111>" in declaration
        assert f"<PIB>{PIB}</PIB>" in declaration

    def test_open_period_cannot_be_submitted(self, manager, filing_client, january):
        with pytest.raises(InvalidTransitionError):
            _submit(manager, january.id)
        filing_client.submit.assert_not_called()

    def test_locked_period_cannot_be_submitted(self, manager, january):
        manager.calculate(january.id)
        manager.lock_period(january.id)
        with pytest.raises(LockedPeriodError):
            _submit(manager, january.id)

    def test_filing_failure_keeps_period_calculated(
        self, manager, filing_client, january
    ):
        manager.calculate(january.id)
        filing_client.submit.side_effect = ConnectionError("tax authority down")

        with pytest.raises(ExternalServiceError) as exc_info:
            _submit(manager, january.id)

        assert "tax authority down" in exc_info.value.message
        period = manager.get(january.id)
        assert period.status == PeriodStatus.CALCULATED
        assert period.filing_reference is None

    def test_entities_sharing_a_month_file_their_own_declarations(
        self, manager, ledger, filing_client, january
    ):
        other = manager.create(
            TENANT, "le-2", date(2025, 1, 1), date(2025, 1, 31), pib="100000002"
        )
        ledger.extend(
            [
                issued_invoice(10000, 2000),
                supplier_invoice(8000, 1600, legal_entity_id="le-2"),
            ]
        )
        manager.calculate(january.id)
        manager.calculate(other.id)

        _submit(manager, january.id)

        declaration = filing_client.submit.call_args.args[1]
        assert "<Polje110>2000.00</Polje110>" in declaration
        assert "<Polje111>2000.00</Polje111>" in declaration
        assert "<Polje112>0.00</Polje112>" in declaration
        assert manager.snapshot(january.id).period_id == january.id
        assert manager.snapshot(other.id).pppdv_data.field_112 == Decimal("1600.00")
        assert "<Polje112>1600.00</Polje112>" in manager.declaration_xml(
            other.id, "100000002", COMPANY
        )

    def test_snapshot_of_another_period_is_refused(
        self, manager, snapshot_store, filing_client, january
    ):
        snapshot = manager.calculate(january.id)
        snapshot_store.upsert(snapshot.model_copy(update={"period_id": "other"}))

        with pytest.raises(StorageError):
            _submit(manager, january.id)
        with pytest.raises(StorageError):
            manager.declaration_xml(january.id, PIB, COMPANY)
        filing_client.submit.assert_not_called()

    def test_rejected_filing_keeps_period_calculated(
        self, manager, filing_client, january
    ):
        manager.calculate(january.id)
        filing_client.submit.return_value = FilingReceipt(ok=False, error="bad PIB")

        with pytest.raises(ExternalServiceError):
            _submit(manager, january.id)
        assert manager.get(january.id).status == PeriodStatus.CALCULATED

    def test_blank_company_name(self, manager, filing_client, january):
        manager.calculate(january.id)
        with pytest.raises(SerializationError):
            manager.submit(january.id, PIB, " ")
        filing_client.submit.assert_not_called()

    def test_declaration_xml_requires_calculation(self, manager, january):
        with pytest.raises(InvalidTransitionError):
            manager.declaration_xml(january.id, PIB, COMPANY)

    def test_declaration_xml(self, manager, ledger, january):
        ledger.add(supplier_invoice(8000, 1600))
        manager.calculate(january.id)
        xml = manager.declaration_xml(january.id, PIB, COMPANY)
        assert "<Polje112>1600.00</Polje112>" in xml


class TestSettle:
    def test_liability_posts_entry_and_payment_order(
        self, manager, ledger, posting_engine, january
    ):
        ledger.add(issued_invoice(10000, 2000))
        manager.calculate(january.id)
        _submit(manager, january.id)

        result = manager.settle(january.id)

        lines, reference, entry_date = posting_engine.post_entry.call_args.args
        assert [(line.account, line.debit, line.credit) for line in lines] == [
            ("4700", Decimal("2000.00"), Decimal("0")),
            ("4790", Decimal("0"), Decimal("2000.00")),
        ]
        assert reference == f"PDV-{january.id}"
        assert entry_date == date(2025, 1, 31)
        assert result.journal_entry_id == "JE-1"
        assert result.payment_order.amount == Decimal("2000.00")
        assert result.payment_order.purpose == "Uplata PDV za 1/2025"
        assert result.already_settled is False

        period = manager.get(january.id)
        assert period.settlement_entry_id == "JE-1"
        assert period.payment_reference == result.payment_order.reference

    def test_settle_runs_once(self, manager, ledger, posting_engine, january):
        ledger.add(issued_invoice(10000, 2000))
        manager.calculate(january.id)
        _submit(manager, january.id)
        manager.settle(january.id)

        again = manager.settle(january.id)

        assert again.already_settled is True
        assert again.payment_order is None
        assert again.journal_entry_id == "JE-1"
        posting_engine.post_entry.assert_called_once()

    def test_credit_posts_receivable(self, manager, ledger, posting_engine, january):
        ledger.add(supplier_invoice(8000, 1600))
        manager.calculate(january.id)
        _submit(manager, january.id)

        result = manager.settle(january.id)

        lines = posting_engine.post_entry.call_args.args[0]
        assert [(line.account, line.debit, line.credit) for line in lines] == [
            ("2790", Decimal("1600.00"), Decimal("0")),
            ("2700", Decimal("0"), Decimal("1600.00")),
        ]
        assert result.payment_order is None

    def test_zero_liability_posts_nothing(self, manager, posting_engine, january):
        manager.calculate(january.id)
        _submit(manager, january.id)

        result = manager.settle(january.id)

        posting_engine.post_entry.assert_not_called()
        assert result.journal_entry_id is None
        assert result.payment_order is None

    def test_posting_failure_can_be_retried(
        self, manager, ledger, posting_engine, january
    ):
        ledger.add(issued_invoice(10000, 2000))
        manager.calculate(january.id)
        _submit(manager, january.id)
        posting_engine.post_entry.side_effect = [TimeoutError("ledger busy"), "JE-2"]

        with pytest.raises(ExternalServiceError):
            manager.settle(january.id)
        assert manager.get(january.id).settlement_entry_id is None

        assert manager.settle(january.id).journal_entry_id == "JE-2"

    def test_entry_posted_before_a_failed_save_is_not_posted_again(
        self, manager, ledger, repository, posting_engine, january
    ):
        ledger.add(issued_invoice(10000, 2000))
        manager.calculate(january.id)
        _submit(manager, january.id)
        posted = {}

        def post_entry(lines, reference, entry_date):
            posted[reference] = "JE-7"
            return "JE-7"

        posting_engine.post_entry.side_effect = post_entry
        posting_engine.find_entry.side_effect = posted.get

        with patch.object(
            repository, "save", side_effect=StorageError("write failed")
        ):
            with pytest.raises(StorageError):
                manager.settle(january.id)
        assert manager.get(january.id).settlement_entry_id is None

        result = manager.settle(january.id)

        posting_engine.post_entry.assert_called_once()
        posting_engine.find_entry.assert_called_with(f"PDV-{january.id}")
        assert result.journal_entry_id == "JE-7"
        assert manager.get(january.id).settlement_entry_id == "JE-7"
        assert result.payment_order is not None

    def test_lookup_failure_posts_nothing(self, manager, ledger, posting_engine, january):
        ledger.add(issued_invoice(10000, 2000))
        manager.calculate(january.id)
        _submit(manager, january.id)
        posting_engine.find_entry.side_effect = TimeoutError("ledger busy")

        with pytest.raises(ExternalServiceError):
            manager.settle(january.id)
        posting_engine.post_entry.assert_not_called()

    def test_only_submitted_periods_settle(self, manager, january):
        manager.calculate(january.id)
        with pytest.raises(InvalidTransitionError):
            manager.settle(january.id)


class TestLockingAndClosing:
    def test_open_period_cannot_be_locked(self, manager, january):
        with pytest.raises(InvalidTransitionError):
            manager.lock_period(january.id)

    def test_lock_and_unlock(self, manager, ledger, january):
        manager.calculate(january.id)
        assert manager.lock_period(january.id).is_locked is True
        assert manager.lock_period(january.id).is_locked is True
        assert manager.unlock_period(january.id).is_locked is False

        ledger.add(issued_invoice(100, 20))
        assert manager.calculate(january.id).pppdv_data.field_105 == Decimal("20.00")

    def test_close_submitted_period(self, manager, january):
        manager.calculate(january.id)
        _submit(manager, january.id)

        closed = manager.close(january.id)

        assert closed.status == PeriodStatus.CLOSED
        assert closed.closed_at is not None
        with pytest.raises(InvalidTransitionError):
            manager.close(january.id)
        with pytest.raises(InvalidTransitionError):
            _submit(manager, january.id)

    def test_close_requires_submission(self, manager, january):
        manager.calculate(january.id)
        with pytest.raises(InvalidTransitionError):
            manager.close(january.id)

    def test_locked_submitted_period_still_settles(self, manager, ledger, january):
        ledger.add(issued_invoice(10000, 2000))
        manager.calculate(january.id)
        _submit(manager, january.id)
        manager.lock_period(january.id)
        assert manager.settle(january.id).journal_entry_id == "JE-1"


class TestEvents:
    def test_lifecycle_publishes_events(
        self, manager, ledger, published_events, january
    ):
        ledger.add(issued_invoice(10000, 2000))
        manager.calculate(january.id)
        _submit(manager, january.id)
        manager.settle(january.id)
        manager.settle(january.id)
        manager.close(january.id)

        assert [type(event) for event in published_events] == [
            PeriodRecalculated,
            PeriodSubmitted,
            PeriodSettled,
            PeriodClosed,
        ]
        recalculated = published_events[0]
        assert recalculated.period_id == january.id
        assert recalculated.vat_liability == Decimal("2000.00")
        assert published_events[1].filing_reference == "FIL-1"
        assert published_events[2].journal_entry_id == "JE-1"

    def test_rejected_calculation_publishes_nothing(
        self, manager, published_events, january
    ):
        manager.calculate(january.id)
        manager.lock_period(january.id)
        with pytest.raises(LockedPeriodError):
            manager.calculate(january.id)
        assert len(published_events) == 1
