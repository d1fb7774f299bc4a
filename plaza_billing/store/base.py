"""Persistence collaborator interface for the billing engine."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date

from plaza_billing.models.advance import AdvancePayment
from plaza_billing.models.bill import BillRecord
from plaza_billing.models.enums import BillKind, PaymentStatus
from plaza_billing.models.obligation import RecurringObligationConfig


def format_bill_number(prefix: str, year: int, sequence: int) -> str:
    """Format a bill number as ``PREFIX-YYYY-NNN``."""
    return f"{prefix}-{year}-{sequence:03d}"


def parse_bill_sequence(bill_number: str, prefix: str, year: int) -> int | None:
    """Return the sequence part of ``bill_number`` for a prefix/year, if any."""
    pattern = f"{prefix}-{year}-"
    if not bill_number.startswith(pattern):
        return None
    tail = bill_number[len(pattern):]
    return int(tail) if tail.isdigit() else None


class BillingStore(ABC):
    """Storage for obligation configs and bill records.

    Implementations must make ``transaction()`` all-or-nothing: if the block
    raises, every write made inside it is discarded. ``lock(key)`` serializes
    read-modify-write sequences for one config or meter.
    """

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Context manager grouping writes into one atomic unit."""

    @abstractmethod
    def lock(self, key: str) -> AbstractContextManager[None]:
        """Context manager holding an exclusive lock for ``key``."""

    # Obligation configs
    @abstractmethod
    def add_config(self, config: RecurringObligationConfig) -> None:
        """Create a new obligation config."""

    @abstractmethod
    def save_config(self, config: RecurringObligationConfig) -> None:
        """Replace an existing obligation config."""

    @abstractmethod
    def get_config(self, config_id: str, for_update: bool = False) -> RecurringObligationConfig:
        """Get a config by id; raises EntityNotFoundError when missing."""

    @abstractmethod
    def fetch_due_configs(self, as_of: date) -> list[RecurringObligationConfig]:
        """Auto-generating, non-paused configs due on or before ``as_of``."""

    # Bills
    @abstractmethod
    def create_bill(self, bill: BillRecord) -> None:
        """Insert a bill; bill numbers are unique."""

    @abstractmethod
    def get_bill(self, bill_number: str) -> BillRecord:
        """Get a bill by number; raises EntityNotFoundError when missing."""

    @abstractmethod
    def has_bill_for_period(self, config_id: str, period_date: date) -> bool:
        """Whether ``config_id`` already produced a bill for this period."""

    @abstractmethod
    def fetch_history(
        self,
        business_id: str | None,
        kind: BillKind,
        before: date | None = None,
        exclude: str | None = None,
        limit: int = 12,
    ) -> list[BillRecord]:
        """Bills for a business and kind, newest first, capped at ``limit``.

        ``before`` keeps only periods strictly earlier than the given date;
        ``exclude`` drops one bill number.
        """

    @abstractmethod
    def latest_bill(self, business_id: str, kind: BillKind) -> BillRecord | None:
        """Most recent bill for a business and kind."""

    @abstractmethod
    def update_payment_status(self, bill_number: str, status: PaymentStatus) -> BillRecord:
        """Set a bill's payment status and return the updated record."""

    # Advances
    @abstractmethod
    def add_advance(self, advance: AdvancePayment) -> None:
        """Record an advance payment."""

    @abstractmethod
    def find_advance(
        self, business_id: str | None, kind: BillKind, year: int, month: int
    ) -> AdvancePayment | None:
        """Active advance covering a business, kind and month, if any."""

    def advance_for(self, bill: BillRecord) -> AdvancePayment | None:
        """Active advance covering the bill's own month."""
        if bill.business_id is None:
            return None
        return self.find_advance(bill.business_id, bill.kind, *bill.period)

    @abstractmethod
    def next_bill_number(self, prefix: str, year: int) -> str:
        """Allocate the next ``PREFIX-YYYY-NNN`` bill number."""
