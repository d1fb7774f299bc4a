"""Computed settlement totals for a bill."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class ComputedSettlement:
    """Amounts owed for one bill, at full precision.

    ``payable_within_due_date`` = base amount + arrears;
    ``payable_after_due_date`` = within-due-date total + late surcharge.
    """

    base_amount: Decimal
    arrears: Decimal
    late_surcharge: Decimal
    payable_within_due_date: Decimal
    payable_after_due_date: Decimal
