"""Recurring bill generation: materialize due occurrences and advance schedules."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Any

from plaza_billing.config import BillingConfig
from plaza_billing.logging import log_context
from plaza_billing.exceptions import (
    InvalidInputError,
    PlazaBillingError,
    SinkError,
)
from plaza_billing.models.base import Event
from plaza_billing.models.bill import BillRecord
from plaza_billing.models.obligation import RecurringObligationConfig
from plaza_billing.scheduling.recurrence import advance, is_due, kind_of
from plaza_billing.sinks.serialization import to_dict
from plaza_billing.store.base import BillingStore

logger = logging.getLogger(__name__)

EVENT_SOURCE = "plaza_billing.scheduler"


def materialize(
    config: RecurringObligationConfig,
    bill_number: str,
    grace_days: int = 15,
    created_at: datetime | None = None,
) -> BillRecord:
    """Build the bill for the config's current due occurrence.

    The bill's period is the config's ``next_due_date``; its due date is the
    period plus the grace window.
    """
    if config.amount is None or config.amount < 0:
        raise InvalidInputError(
            f"Obligation {config.config_id} has invalid amount {config.amount!r}"
        )
    period = config.next_due_date
    return BillRecord.flat(
        business_id=config.business_id,
        bill_number=bill_number,
        kind=kind_of(config).bill_kind,
        period_date=period,
        due_date=period + timedelta(days=grace_days),
        amount=config.amount,
        issue_date=(created_at.date() if created_at else period),
        config_id=config.config_id,
        created_at=created_at,
    )


@dataclass
class OccurrenceResult:
    """Outcome of one config within a generation run."""

    config_id: str
    title: str
    bill_number: str | None = None
    period_date: date | None = None
    next_due_date: date | None = None
    reason: str | None = None


@dataclass
class GenerationReport:
    """Per-occurrence results of a ``generate_due_bills`` run."""

    run_at: datetime
    generated: list[OccurrenceResult] = field(default_factory=list)
    skipped: list[OccurrenceResult] = field(default_factory=list)
    failed: list[OccurrenceResult] = field(default_factory=list)
    cancelled: bool = False

    @property
    def total(self) -> int:
        return len(self.generated) + len(self.skipped) + len(self.failed)

    def summary(self) -> dict[str, Any]:
        """Return summary counts."""
        return {
            "run_at": self.run_at.isoformat(),
            "total": self.total,
            "generated": len(self.generated),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
            "cancelled": self.cancelled,
        }


class RecurringBillScheduler:
    """Generate bills for every due recurring obligation.

    Each config is processed under its own store lock and inside a store
    transaction: the config is re-read, re-checked, the bill is created and
    the due date advanced together, so a concurrent run can neither
    materialize the same occurrence twice nor observe an advanced schedule
    without its bill. A failure rolls back that one config only.

    Parameters
    ----------
    store : BillingStore
        Persistence collaborator.
    config : BillingConfig | None
        Billing policy (grace window).
    sink : Any | None
        Optional sink receiving ``bill.generated`` events after commit.
    """

    def __init__(
        self,
        store: BillingStore,
        config: BillingConfig | None = None,
        sink: Any | None = None,
    ) -> None:
        self.store = store
        self.config = config or BillingConfig()
        self.sink = sink

    def generate_due_bills(
        self,
        now: datetime | None = None,
        cancel_event: threading.Event | None = None,
    ) -> GenerationReport:
        """Materialize one occurrence for every config due at ``now``.

        Parameters
        ----------
        now : datetime | None
            Evaluation time (defaults to the current time).
        cancel_event : threading.Event | None
            When set, the run stops before the next config.

        Returns
        -------
        GenerationReport
            Generated, skipped and failed occurrences.
        """
        now = now or datetime.now()
        report = GenerationReport(run_at=now)
        candidates = self.store.fetch_due_configs(now.date())
        logger.info("Generating due bills at %s: %d candidate configs", now.isoformat(), len(candidates))

        events: list[Event] = []
        with log_context(run_at=now.isoformat()):
            for candidate in candidates:
                if cancel_event is not None and cancel_event.is_set():
                    report.cancelled = True
                    logger.warning("Bill generation cancelled after %d configs", report.total)
                    break

                with log_context(config_id=candidate.config_id):
                    try:
                        bill, updated, reason = self._generate_one(candidate.config_id, now)
                    except PlazaBillingError as exc:
                        logger.error("Failed to generate bill: %s", exc)
                        report.failed.append(
                            OccurrenceResult(candidate.config_id, candidate.title, reason=str(exc))
                        )
                        continue

                    if bill is None:
                        logger.info("Skipped: %s", reason)
                        report.skipped.append(
                            OccurrenceResult(
                                config_id=updated.config_id,
                                title=updated.title,
                                period_date=candidate.next_due_date,
                                next_due_date=updated.next_due_date,
                                reason=reason,
                            )
                        )
                        continue

                    report.generated.append(
                        OccurrenceResult(
                            config_id=updated.config_id,
                            title=updated.title,
                            bill_number=bill.bill_number,
                            period_date=bill.period_date,
                            next_due_date=updated.next_due_date,
                        )
                    )
                    events.append(self._bill_event(bill, now))

        self._publish(events)
        logger.info(
            "Bill generation finished: %d generated, %d skipped, %d failed",
            len(report.generated),
            len(report.skipped),
            len(report.failed),
        )
        return report

    def _generate_one(
        self, config_id: str, now: datetime
    ) -> tuple[BillRecord | None, RecurringObligationConfig, str | None]:
        """Materialize the config's current occurrence.

        Returns the new bill (None when skipped), the config as stored after
        the call, and the skip reason. An occurrence that already has a bill,
        or that an active advance covers, is skipped and the schedule still
        advances past it.
        """
        with self.store.lock(config_id):
            with self.store.transaction():
                config = self.store.get_config(config_id, for_update=True)
                if not is_due(config, now):
                    # Another run got here first
                    return None, config, "not due"

                bill_kind = kind_of(config).bill_kind
                period = config.next_due_date
                updated = replace(config, next_due_date=advance(config))

                reason = None
                if self.store.has_bill_for_period(config.config_id, period):
                    reason = f"bill already exists for {period:%Y-%m}"
                elif config.business_id is not None:
                    covering = self.store.find_advance(
                        config.business_id, bill_kind, period.year, period.month
                    )
                    if covering is not None:
                        reason = f"covered by advance {covering.advance_id}"
                if reason is not None:
                    self.store.save_config(updated)
                    return None, updated, reason

                bill_number = self.store.next_bill_number(bill_kind.prefix, period.year)
                bill = materialize(config, bill_number, self.config.grace_days, now)
                self.store.create_bill(bill)
                self.store.save_config(updated)

        logger.debug(
            "Created %s, next due %s",
            bill.bill_number,
            updated.next_due_date,
            extra={"extra": {"bill_number": bill.bill_number}},
        )
        return bill, updated, None

    def _bill_event(self, bill: BillRecord, now: datetime) -> Event:
        return Event(
            event_id=uuid.uuid4().hex,
            event_type="bill.generated",
            event_time=now,
            source=EVENT_SOURCE,
            subject=bill.bill_number,
            data=to_dict(bill),
            metadata={"config_id": bill.config_id, "business_id": bill.business_id},
        )

    def _publish(self, events: list[Event]) -> None:
        if not events or self.sink is None:
            return
        try:
            self.sink.write_batch("bill_events", events)
        except SinkError:
            # Bills are already committed; delivery can be retried from the store
            logger.exception("Failed to publish %d bill events", len(events))
