"""Tests for recurring bill generation."""

import threading
from dataclasses import replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from plaza_billing.config import BillingConfig
from plaza_billing.exceptions import InvalidInputError, PersistenceError, SinkError
from plaza_billing.models import (
    AdvancePayment,
    BillKind,
    BillRecord,
    Frequency,
    ObligationKind,
    ObligationStatus,
    PaymentStatus,
    RecurringObligationConfig,
)
from plaza_billing.scheduling import GenerationReport, RecurringBillScheduler, materialize
from plaza_billing.store import InMemoryBillingStore


class FailingStore(InMemoryBillingStore):
    """Store whose bill insert fails for selected configs."""

    def __init__(self, failing: set[str]) -> None:
        super().__init__()
        self.failing = failing

    def create_bill(self, bill: BillRecord) -> None:
        if bill.config_id in self.failing:
            raise PersistenceError("disk full")
        super().create_bill(bill)


def _expense(config_id: str, due: date, **kwargs) -> RecurringObligationConfig:
    return RecurringObligationConfig(
        config_id=config_id,
        kind=kwargs.pop("kind", ObligationKind.PROPERTY_TAX),
        title=f"Expense {config_id}",
        amount=kwargs.pop("amount", Decimal("1000")),
        frequency=kwargs.pop("frequency", Frequency.MONTHLY),
        next_due_date=due,
        **kwargs,
    )


class TestMaterialize:
    """Tests for materialize."""

    def test_rent_bill(self, rent_config: RecurringObligationConfig) -> None:
        """Test a rent config becomes a pending rent bill."""
        now = datetime(2024, 2, 1, 9, 0)
        bill = materialize(rent_config, "RENT-2024-001", grace_days=15, created_at=now)

        assert bill.kind == BillKind.RENT
        assert bill.period_date == date(2024, 1, 31)
        assert bill.due_date == date(2024, 2, 15)
        assert bill.issue_date == date(2024, 2, 1)
        assert bill.amount == Decimal("50000")
        assert bill.monthly_rent == Decimal("50000")
        assert bill.payment_status == PaymentStatus.PENDING
        assert bill.config_id == rent_config.config_id

    def test_fixed_expense_kind(self) -> None:
        """Test fixed expenses map to expense bills."""
        bill = materialize(_expense("cfg-tax", date(2024, 1, 1)), "EXP-2024-001")

        assert bill.kind == BillKind.EXPENSE
        assert bill.monthly_rent is None

    def test_negative_amount(self) -> None:
        """Test a negative base amount is rejected."""
        with pytest.raises(InvalidInputError):
            materialize(_expense("cfg-bad", date(2024, 1, 1), amount=Decimal("-5")), "EXP-2024-001")


class TestGenerateDueBills:
    """Tests for RecurringBillScheduler.generate_due_bills."""

    def test_generates_and_advances(
        self, store: InMemoryBillingStore, rent_config: RecurringObligationConfig
    ) -> None:
        """Test a due config gets a bill and an advanced due date."""
        store.add_config(rent_config)
        scheduler = RecurringBillScheduler(store)

        report = scheduler.generate_due_bills(now=datetime(2024, 2, 1, 9, 0))

        assert isinstance(report, GenerationReport)
        assert len(report.generated) == 1
        result = report.generated[0]
        assert result.bill_number == "RENT-2024-001"
        assert result.next_due_date == date(2024, 2, 29)
        assert store.get_config(rent_config.config_id).next_due_date == date(2024, 2, 29)
        assert store.get_bill("RENT-2024-001").period_date == date(2024, 1, 31)

    def test_one_occurrence_per_run(
        self, store: InMemoryBillingStore, rent_config: RecurringObligationConfig
    ) -> None:
        """Test a config several periods behind only catches up one period per run."""
        store.add_config(rent_config)
        scheduler = RecurringBillScheduler(store)

        scheduler.generate_due_bills(now=datetime(2024, 6, 1))
        scheduler.generate_due_bills(now=datetime(2024, 6, 1))

        assert sorted(b.period_date for b in store.bills.values()) == [
            date(2024, 1, 31),
            date(2024, 2, 29),
        ]
        assert store.get_config(rent_config.config_id).next_due_date == date(2024, 3, 31)

    def test_skips_not_due_and_paused(self, store: InMemoryBillingStore) -> None:
        """Test only active, auto-generating, due configs produce bills."""
        store.add_config(_expense("cfg-future", date(2024, 3, 1)))
        store.add_config(_expense("cfg-paused", date(2024, 1, 1), status=ObligationStatus.PAUSED))
        store.add_config(_expense("cfg-manual", date(2024, 1, 1), auto_generate=False))

        report = RecurringBillScheduler(store).generate_due_bills(now=datetime(2024, 2, 1))

        assert report.total == 0
        assert store.bills == {}

    def test_failure_rolls_back_and_isolated(self) -> None:
        """Test a failing insert leaves its config unadvanced and others unaffected."""
        store = FailingStore(failing={"cfg-b"})
        for config_id in ("cfg-a", "cfg-b", "cfg-c"):
            store.add_config(_expense(config_id, date(2024, 1, 1)))

        report = RecurringBillScheduler(store).generate_due_bills(now=datetime(2024, 1, 2))

        assert [r.config_id for r in report.generated] == ["cfg-a", "cfg-c"]
        assert [r.config_id for r in report.failed] == ["cfg-b"]
        assert "disk full" in report.failed[0].reason
        assert store.get_config("cfg-b").next_due_date == date(2024, 1, 1)
        assert store.get_config("cfg-a").next_due_date == date(2024, 2, 1)
        assert all(b.config_id != "cfg-b" for b in store.bills.values())

    def test_invalid_config_reported(self, store: InMemoryBillingStore) -> None:
        """Test malformed configs are reported as failures without advancing."""
        store.add_config(_expense("cfg-freq", date(2024, 1, 1), frequency="fortnightly"))
        store.add_config(_expense("cfg-status", date(2024, 1, 1), status="archived"))
        store.add_config(_expense("cfg-ok", date(2024, 1, 1)))

        report = RecurringBillScheduler(store).generate_due_bills(now=datetime(2024, 1, 2))

        assert {r.config_id for r in report.failed} == {"cfg-freq", "cfg-status"}
        assert [r.config_id for r in report.generated] == ["cfg-ok"]
        assert store.get_config("cfg-freq").next_due_date == date(2024, 1, 1)
        assert len(store.bills) == 1

    def test_unknown_kind_does_not_abort_batch(self, store: InMemoryBillingStore) -> None:
        """Test a config with an unrecognized kind fails alone."""
        store.add_config(_expense("cfg-parking", date(2024, 1, 1), kind="parking"))
        store.add_config(_expense("cfg-tax", date(2024, 1, 2)))

        report = RecurringBillScheduler(store).generate_due_bills(now=datetime(2024, 1, 2))

        assert [r.config_id for r in report.failed] == ["cfg-parking"]
        assert "unrecognized kind 'parking'" in report.failed[0].reason
        assert [r.config_id for r in report.generated] == ["cfg-tax"]
        assert store.get_config("cfg-parking").next_due_date == date(2024, 1, 1)
        assert list(store.bills) == ["EXP-2024-001"]

    def test_existing_bill_skips_and_advances(self, store: InMemoryBillingStore) -> None:
        """Test an occurrence that was already billed is skipped and the schedule moves on."""
        config = _expense("cfg-dup", date(2024, 1, 1))
        store.add_config(config)
        store.create_bill(materialize(config, "EXP-2024-001"))
        scheduler = RecurringBillScheduler(store)

        report = scheduler.generate_due_bills(now=datetime(2024, 1, 2))

        assert report.failed == []
        assert report.generated == []
        assert len(report.skipped) == 1
        assert report.skipped[0].reason == "bill already exists for 2024-01"
        assert report.skipped[0].next_due_date == date(2024, 2, 1)
        assert store.get_config("cfg-dup").next_due_date == date(2024, 2, 1)

        # Later runs on following days neither fail nor re-bill January
        for day in (3, 4):
            later = scheduler.generate_due_bills(now=datetime(2024, 1, day))
            assert later.total == 0
        assert list(store.bills) == ["EXP-2024-001"]

    def test_advance_covers_month(
        self, store: InMemoryBillingStore, rent_config: RecurringObligationConfig
    ) -> None:
        """Test a month paid in advance is not billed and the schedule advances."""
        store.add_config(rent_config)
        store.add_advance(
            AdvancePayment(
                advance_id="adv-001",
                business_id=rent_config.business_id,
                kind=BillKind.RENT,
                amount=Decimal("50000"),
                year=2024,
                month=1,
                advance_date=date(2024, 1, 10),
            )
        )
        scheduler = RecurringBillScheduler(store)

        report = scheduler.generate_due_bills(now=datetime(2024, 2, 1))

        assert report.generated == []
        assert report.skipped[0].reason == "covered by advance adv-001"
        assert store.bills == {}
        assert store.get_config(rent_config.config_id).next_due_date == date(2024, 2, 29)
        assert store.advances["adv-001"].is_active

        report = scheduler.generate_due_bills(now=datetime(2024, 3, 1))

        assert [r.period_date for r in report.generated] == [date(2024, 2, 29)]

    def test_advance_for_other_kind_ignored(
        self, store: InMemoryBillingStore, rent_config: RecurringObligationConfig
    ) -> None:
        """Test only an advance of the bill's own kind covers it."""
        store.add_config(rent_config)
        store.add_advance(
            AdvancePayment(
                advance_id="adv-ele",
                business_id=rent_config.business_id,
                kind=BillKind.ELECTRICITY,
                amount=Decimal("900"),
                year=2024,
                month=1,
                advance_date=date(2024, 1, 10),
            )
        )

        report = RecurringBillScheduler(store).generate_due_bills(now=datetime(2024, 2, 1))

        assert len(report.generated) == 1

    def test_grace_days_from_config(self, store: InMemoryBillingStore) -> None:
        """Test the due date uses the configured grace window."""
        store.add_config(_expense("cfg-a", date(2024, 1, 1)))
        scheduler = RecurringBillScheduler(store, BillingConfig(grace_days=7))

        scheduler.generate_due_bills(now=datetime(2024, 1, 1))

        assert store.get_bill("EXP-2024-001").due_date == date(2024, 1, 8)

    def test_bill_numbers_increment(self, store: InMemoryBillingStore) -> None:
        """Test sequential bill numbers per prefix and year."""
        for i in range(3):
            store.add_config(_expense(f"cfg-{i}", date(2024, 1, 1)))

        RecurringBillScheduler(store).generate_due_bills(now=datetime(2024, 1, 1))

        assert sorted(store.bills) == ["EXP-2024-001", "EXP-2024-002", "EXP-2024-003"]

    def test_cancellation_between_configs(self, store: InMemoryBillingStore) -> None:
        """Test a set cancel event stops the run before the next config."""
        for i in range(3):
            store.add_config(_expense(f"cfg-{i}", date(2024, 1, 1)))
        cancel = threading.Event()
        cancel.set()

        report = RecurringBillScheduler(store).generate_due_bills(
            now=datetime(2024, 1, 2), cancel_event=cancel
        )

        assert report.cancelled is True
        assert report.total == 0
        assert store.bills == {}

    def test_concurrent_runs_do_not_duplicate(self, store: InMemoryBillingStore) -> None:
        """Test parallel runs materialize each occurrence exactly once."""
        for i in range(20):
            store.add_config(_expense(f"cfg-{i:02d}", date(2024, 1, 1)))
        now = datetime(2024, 1, 15)
        reports: list[GenerationReport] = []
        barrier = threading.Barrier(4)

        def run() -> None:
            barrier.wait()
            reports.append(RecurringBillScheduler(store).generate_due_bills(now=now))

        threads = [threading.Thread(target=run) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(len(r.generated) for r in reports) == 20
        assert sum(len(r.failed) for r in reports) == 0
        assert len(store.bills) == 20
        assert len({b.config_id for b in store.bills.values()}) == 20
        assert all(c.next_due_date == date(2024, 2, 1) for c in store.configs.values())

    def test_publishes_events_after_commit(
        self, store: InMemoryBillingStore, rent_config: RecurringObligationConfig
    ) -> None:
        """Test generated bills are published as bill.generated events."""
        store.add_config(rent_config)
        sink = MagicMock()

        RecurringBillScheduler(store, sink=sink).generate_due_bills(now=datetime(2024, 2, 1))

        sink.write_batch.assert_called_once()
        entity_type, events = sink.write_batch.call_args.args
        assert entity_type == "bill_events"
        assert len(events) == 1
        assert events[0].event_type == "bill.generated"
        assert events[0].subject == "RENT-2024-001"
        assert events[0].metadata["business_id"] == rent_config.business_id
        assert events[0].data["amount"] == "50000"

    def test_sink_failure_keeps_bills(
        self, store: InMemoryBillingStore, rent_config: RecurringObligationConfig
    ) -> None:
        """Test a sink failure does not undo committed bills."""
        store.add_config(rent_config)
        sink = MagicMock()
        sink.write_batch.side_effect = SinkError("broker down")

        report = RecurringBillScheduler(store, sink=sink).generate_due_bills(
            now=datetime(2024, 2, 1)
        )

        assert len(report.generated) == 1
        assert "RENT-2024-001" in store.bills

    def test_no_events_without_bills(self, store: InMemoryBillingStore) -> None:
        """Test nothing is published when nothing was generated."""
        sink = MagicMock()

        RecurringBillScheduler(store, sink=sink).generate_due_bills(now=datetime(2024, 2, 1))

        sink.write_batch.assert_not_called()

    def test_summary(self, store: InMemoryBillingStore) -> None:
        """Test report summary counts."""
        store.add_config(_expense("cfg-a", date(2024, 1, 1)))
        now = datetime(2024, 1, 1) + timedelta(hours=1)

        summary = RecurringBillScheduler(store).generate_due_bills(now=now).summary()

        assert summary == {
            "run_at": now.isoformat(),
            "total": 1,
            "generated": 1,
            "skipped": 0,
            "failed": 0,
            "cancelled": False,
        }

    def test_report_lists_rent_kind(
        self, store: InMemoryBillingStore, rent_config: RecurringObligationConfig
    ) -> None:
        """Test a quarterly config advances by three months after generation."""
        store.add_config(replace(rent_config, frequency=Frequency.QUARTERLY))

        report = RecurringBillScheduler(store).generate_due_bills(now=datetime(2024, 2, 1))

        assert report.generated[0].next_due_date == date(2024, 4, 30)
