"""Bill calculation engine: arrears, late surcharge and settlement totals.

All arithmetic is exact ``Decimal``; nothing here rounds. Display rounding
belongs to :mod:`plaza_billing.documents.formatting`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from plaza_billing.config import BillingConfig
from plaza_billing.exceptions import InvalidInputError
from plaza_billing.models.bill import BillRecord
from plaza_billing.models.enums import PaymentStatus
from plaza_billing.models.settlement import ComputedSettlement
from plaza_billing.store.base import BillingStore

ZERO = Decimal("0")


def compute_units(previous: Decimal, current: Decimal) -> Decimal:
    """Units consumed between two meter readings (never negative)."""
    return current - previous if current > previous else ZERO


def utility_amount(
    units: Decimal,
    rate_per_unit: Decimal,
    multiplying_factor: Decimal = Decimal("1"),
) -> Decimal:
    """Charge for a metered period."""
    if rate_per_unit < 0:
        raise InvalidInputError(f"Rate per unit must not be negative, got {rate_per_unit}")
    return units * multiplying_factor * rate_per_unit


def compute_arrears(history: Iterable[BillRecord]) -> Decimal:
    """Sum the amounts of every history entry that is not paid.

    Parameters
    ----------
    history : Iterable[BillRecord]
        Prior bills for the same business and kind, in any order.

    Returns
    -------
    Decimal
        Unpaid balance carried forward.

    Raises
    ------
    InvalidInputError
        If an entry has no amount.
    """
    arrears = ZERO
    for entry in history:
        if entry.amount is None:
            raise InvalidInputError(f"History entry {entry.bill_number} has no amount")
        if entry.payment_status != PaymentStatus.PAID:
            arrears += entry.amount
    return arrears


@dataclass(frozen=True)
class LateSurchargePolicy:
    """Surcharge applied once a bill is unpaid past its due date.

    The surcharge is ``flat + rate_on_arrears * arrears``.
    """

    flat: Decimal = ZERO
    rate_on_arrears: Decimal = ZERO

    def __post_init__(self) -> None:
        if self.flat < 0 or self.rate_on_arrears < 0:
            raise InvalidInputError("Late surcharge settings must not be negative")

    @classmethod
    def from_config(cls, config: BillingConfig) -> LateSurchargePolicy:
        return cls(flat=config.late_surcharge, rate_on_arrears=config.late_surcharge_rate)

    def surcharge(self, arrears: Decimal) -> Decimal:
        return self.flat + self.rate_on_arrears * arrears


def is_overdue(due_date: date, now: date | datetime, paid: bool = False) -> bool:
    """True when ``now`` falls after ``due_date`` and the bill is unpaid."""
    today = now.date() if isinstance(now, datetime) else now
    return not paid and today > due_date


def compute_settlement(
    base_amount: Decimal | None,
    due_date: date | None,
    now: date | datetime,
    history: Iterable[BillRecord] = (),
    policy: LateSurchargePolicy | None = None,
    paid: bool = False,
) -> ComputedSettlement:
    """Compute the settlement totals for one bill.

    Parameters
    ----------
    base_amount : Decimal | None
        Current period charge (units x rate, or flat rent).
    due_date : date | None
        Due date of the current bill.
    now : date | datetime
        Evaluation time.
    history : Iterable[BillRecord]
        Prior bills, newest first.
    policy : LateSurchargePolicy | None
        Late surcharge policy; no surcharge when omitted.
    paid : bool
        Whether the current bill is already marked paid.

    Returns
    -------
    ComputedSettlement
        Exact totals; pay-after-due-date equals pay-within-due-date whenever
        no surcharge applies.
    """
    if base_amount is None:
        raise InvalidInputError("Base amount is required")
    if base_amount < 0:
        raise InvalidInputError(f"Base amount must not be negative, got {base_amount}")
    if due_date is None:
        raise InvalidInputError("Due date is required")

    arrears = compute_arrears(history)
    payable_within = base_amount + arrears

    late_surcharge = ZERO
    if policy is not None and is_overdue(due_date, now, paid):
        late_surcharge = policy.surcharge(arrears)

    return ComputedSettlement(
        base_amount=base_amount,
        arrears=arrears,
        late_surcharge=late_surcharge,
        payable_within_due_date=payable_within,
        payable_after_due_date=payable_within + late_surcharge,
    )


def settle_bill(
    store: BillingStore,
    bill: BillRecord,
    now: date | datetime,
    policy: LateSurchargePolicy | None = None,
    history_limit: int = 12,
) -> tuple[ComputedSettlement, list[BillRecord]]:
    """Fetch a bill's history from ``store`` and compute its settlement.

    Returns the settlement together with the history used, so the same
    entries can be handed to the document composer.
    """
    history = store.fetch_history(
        bill.business_id,
        bill.kind,
        before=bill.period_date,
        exclude=bill.bill_number,
        limit=history_limit,
    )
    settlement = compute_settlement(
        bill.amount,
        bill.due_date,
        now,
        history,
        policy=policy,
        paid=bill.is_paid,
    )
    return settlement, history
