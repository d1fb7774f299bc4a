"""Recurring obligation scheduler."""

from plaza_billing.scheduling.recurrence import (
    add_months,
    advance,
    advance_by,
    is_due,
    kind_of,
)
from plaza_billing.scheduling.scheduler import (
    GenerationReport,
    OccurrenceResult,
    RecurringBillScheduler,
    materialize,
)

__all__ = [
    "GenerationReport",
    "OccurrenceResult",
    "RecurringBillScheduler",
    "add_months",
    "advance",
    "advance_by",
    "is_due",
    "kind_of",
    "materialize",
]
