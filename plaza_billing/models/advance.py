"""Advance (prepaid) payments for a business and billing month."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from plaza_billing.exceptions import InvalidInputError
from plaza_billing.models.enums import AdvanceStatus, BillKind


@dataclass(frozen=True)
class AdvancePayment:
    """Money received ahead of a month's bill.

    An active advance for a business, kind and month replaces that month's
    generated bill and is shown on the month's invoice.
    """

    advance_id: str
    business_id: str
    kind: BillKind
    amount: Decimal
    year: int
    month: int  # 1-12
    advance_date: date
    status: AdvanceStatus = AdvanceStatus.ACTIVE
    purpose: str | None = None

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise InvalidInputError(f"Advance {self.advance_id} has invalid month {self.month}")
        if self.amount <= 0:
            raise InvalidInputError(f"Advance {self.advance_id} must be positive, got {self.amount}")

    @property
    def period(self) -> tuple[int, int]:
        return self.year, self.month

    @property
    def is_active(self) -> bool:
        return self.status == AdvanceStatus.ACTIVE
