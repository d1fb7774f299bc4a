"""In-memory billing store with relationship indexes and rollback."""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Iterator

from plaza_billing.exceptions import DuplicateOccurrenceError, EntityNotFoundError, PersistenceError
from plaza_billing.models.advance import AdvancePayment
from plaza_billing.models.bill import BillRecord
from plaza_billing.models.enums import BillKind, ObligationStatus, PaymentStatus
from plaza_billing.models.obligation import RecurringObligationConfig
from plaza_billing.store.base import BillingStore, format_bill_number, parse_bill_sequence


@dataclass
class InMemoryBillingStore(BillingStore):
    """Dict-backed store for configs and bills.

    Transactions are serialized by a reentrant lock and roll back by
    restoring a snapshot taken when the outermost transaction starts.
    """

    # Primary entities
    configs: dict[str, RecurringObligationConfig] = field(default_factory=dict)
    bills: dict[str, BillRecord] = field(default_factory=dict)
    advances: dict[str, AdvancePayment] = field(default_factory=dict)

    # Relationship indexes
    _business_bills: dict[tuple[str | None, BillKind], list[str]] = field(default_factory=dict)
    _config_periods: dict[str, set[tuple[int, int]]] = field(default_factory=dict)

    _tx_lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _tx_depth: int = field(default=0, repr=False)
    _key_locks: dict[str, threading.Lock] = field(default_factory=dict, repr=False)
    _key_locks_guard: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Group writes; restore the previous state if the block raises."""
        with self._tx_lock:
            snapshot = self._snapshot() if self._tx_depth == 0 else None
            self._tx_depth += 1
            try:
                yield
            except BaseException:
                if snapshot is not None:
                    self._restore(snapshot)
                raise
            finally:
                self._tx_depth -= 1

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        """Hold the exclusive lock for ``key``."""
        with self._key_locks_guard:
            key_lock = self._key_locks.setdefault(key, threading.Lock())
        with key_lock:
            yield

    def _snapshot(self) -> tuple:
        return (
            dict(self.configs),
            dict(self.bills),
            {k: list(v) for k, v in self._business_bills.items()},
            {k: set(v) for k, v in self._config_periods.items()},
            dict(self.advances),
        )

    def _restore(self, snapshot: tuple) -> None:
        (
            self.configs,
            self.bills,
            self._business_bills,
            self._config_periods,
            self.advances,
        ) = snapshot

    # Obligation configs
    def add_config(self, config: RecurringObligationConfig) -> None:
        """Add an obligation config to the store."""
        with self.transaction():
            if config.config_id in self.configs:
                raise PersistenceError(f"Config {config.config_id} already exists")
            self.configs[config.config_id] = config
            self._config_periods.setdefault(config.config_id, set())

    def save_config(self, config: RecurringObligationConfig) -> None:
        """Replace an existing config."""
        with self.transaction():
            if config.config_id not in self.configs:
                raise EntityNotFoundError(f"Config {config.config_id} not found")
            self.configs[config.config_id] = config

    def get_config(self, config_id: str, for_update: bool = False) -> RecurringObligationConfig:
        """Get a config by id."""
        try:
            return self.configs[config_id]
        except KeyError:
            raise EntityNotFoundError(f"Config {config_id} not found") from None

    def fetch_due_configs(self, as_of: date) -> list[RecurringObligationConfig]:
        """Get auto-generating configs due on or before ``as_of``, soonest first."""
        with self._tx_lock:
            due = [
                config
                for config in self.configs.values()
                if config.auto_generate
                and config.status != ObligationStatus.PAUSED
                and config.next_due_date <= as_of
            ]
        return sorted(due, key=lambda c: (c.next_due_date, c.config_id))

    # Bills
    def create_bill(self, bill: BillRecord) -> None:
        """Add a bill to the store."""
        with self.transaction():
            if bill.bill_number in self.bills:
                raise PersistenceError(f"Bill number {bill.bill_number} already exists")
            if bill.config_id is not None and bill.config_id not in self.configs:
                raise EntityNotFoundError(f"Config {bill.config_id} not found")
            if bill.config_id is not None and bill.period in self._config_periods.get(bill.config_id, ()):
                raise DuplicateOccurrenceError(
                    f"Obligation {bill.config_id} already has a bill for {bill.period_date:%Y-%m}"
                )

            self.bills[bill.bill_number] = bill
            self._business_bills.setdefault((bill.business_id, bill.kind), []).append(
                bill.bill_number
            )
            if bill.config_id is not None:
                self._config_periods.setdefault(bill.config_id, set()).add(bill.period)

    def get_bill(self, bill_number: str) -> BillRecord:
        """Get a bill by number."""
        try:
            return self.bills[bill_number]
        except KeyError:
            raise EntityNotFoundError(f"Bill {bill_number} not found") from None

    def has_bill_for_period(self, config_id: str, period_date: date) -> bool:
        periods = self._config_periods.get(config_id, set())
        return (period_date.year, period_date.month) in periods

    def get_business_bills(self, business_id: str | None, kind: BillKind) -> list[BillRecord]:
        """Get all bills for a business and kind, newest first."""
        with self._tx_lock:
            numbers = self._business_bills.get((business_id, kind), [])
            bills = [self.bills[n] for n in numbers]
        return sorted(bills, key=lambda b: (b.period_date, b.bill_number), reverse=True)

    def fetch_history(
        self,
        business_id: str | None,
        kind: BillKind,
        before: date | None = None,
        exclude: str | None = None,
        limit: int = 12,
    ) -> list[BillRecord]:
        """Get prior bills for a business and kind, newest first."""
        history = [
            bill
            for bill in self.get_business_bills(business_id, kind)
            if (before is None or bill.period_date < before) and bill.bill_number != exclude
        ]
        return history[:limit]

    def latest_bill(self, business_id: str, kind: BillKind) -> BillRecord | None:
        bills = self.get_business_bills(business_id, kind)
        return bills[0] if bills else None

    def update_payment_status(self, bill_number: str, status: PaymentStatus) -> BillRecord:
        """Set a bill's payment status."""
        with self.transaction():
            bill = replace(self.get_bill(bill_number), payment_status=status)
            self.bills[bill_number] = bill
        return bill

    # Advances
    def add_advance(self, advance: AdvancePayment) -> None:
        """Add an advance payment."""
        with self.transaction():
            if advance.advance_id in self.advances:
                raise PersistenceError(f"Advance {advance.advance_id} already exists")
            self.advances[advance.advance_id] = advance

    def find_advance(
        self, business_id: str | None, kind: BillKind, year: int, month: int
    ) -> AdvancePayment | None:
        """Get the active advance for a business, kind and month."""
        with self._tx_lock:
            for advance in self.advances.values():
                if (
                    advance.is_active
                    and advance.business_id == business_id
                    and advance.kind == kind
                    and advance.period == (year, month)
                ):
                    return advance
        return None

    def next_bill_number(self, prefix: str, year: int) -> str:
        """Allocate the next bill number for a prefix and year."""
        with self._tx_lock:
            sequences = [
                seq
                for number in self.bills
                if (seq := parse_bill_sequence(number, prefix, year)) is not None
            ]
            return format_bill_number(prefix, year, max(sequences, default=0) + 1)

    def summary(self) -> dict[str, int]:
        """Return summary counts of stored entities."""
        return {
            "configs": len(self.configs),
            "bills": len(self.bills),
            "advances": len(self.advances),
            "pending_bills": sum(
                1 for b in self.bills.values() if b.payment_status == PaymentStatus.PENDING
            ),
        }
