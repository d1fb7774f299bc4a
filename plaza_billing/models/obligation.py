"""Recurring obligation templates (rent, utility and fixed-expense schedules)."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from plaza_billing.exceptions import InvalidConfigurationError
from plaza_billing.models.enums import Frequency, ObligationKind, ObligationStatus


@dataclass(frozen=True)
class RecurringObligationConfig:
    """Template describing a periodic charge and when it next falls due.

    Instances are immutable; the scheduler produces an updated copy with
    ``dataclasses.replace`` when it advances ``next_due_date``.

    ``anchor_day`` is the day of month the schedule was created on. Advances
    clamp against it so a schedule anchored on the 31st returns to the 31st
    after passing through shorter months.
    """

    config_id: str
    kind: ObligationKind
    title: str
    amount: Decimal
    frequency: Frequency
    next_due_date: date
    business_id: str | None = None  # None for plaza-level fixed expenses
    description: str | None = None
    reminder_date: date | None = None
    auto_generate: bool = True
    status: ObligationStatus = ObligationStatus.ACTIVE
    created_on: date | None = None
    anchor_day: int | None = None

    def __post_init__(self) -> None:
        if self.anchor_day is None:
            object.__setattr__(self, "anchor_day", self.next_due_date.day)
        if self.created_on is None:
            object.__setattr__(self, "created_on", self.next_due_date)
        elif self.next_due_date < self.created_on:
            raise InvalidConfigurationError(
                f"Obligation {self.config_id} is due {self.next_due_date} "
                f"before it was created on {self.created_on}"
            )

    @property
    def is_active(self) -> bool:
        return self.status == ObligationStatus.ACTIVE
