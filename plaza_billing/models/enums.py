"""Enumeration types for billing entities."""

from enum import Enum


class Frequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMI_ANNUAL = "semi_annual"
    ANNUAL = "annual"

    @property
    def months(self) -> int:
        """Number of calendar months between occurrences."""
        return _FREQUENCY_MONTHS[self]


_FREQUENCY_MONTHS = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.SEMI_ANNUAL: 6,
    Frequency.ANNUAL: 12,
}


class ObligationStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"


class BillKind(str, Enum):
    ELECTRICITY = "electricity"
    GAS = "gas"
    RENT = "rent"
    MAINTENANCE = "maintenance"
    EXPENSE = "expense"

    @property
    def prefix(self) -> str:
        """Bill number prefix for this kind."""
        return _BILL_PREFIXES[self]

    @property
    def is_metered(self) -> bool:
        return self in (BillKind.ELECTRICITY, BillKind.GAS)


_BILL_PREFIXES = {
    BillKind.ELECTRICITY: "ELE",
    BillKind.GAS: "GAS",
    BillKind.RENT: "RENT",
    BillKind.MAINTENANCE: "MAIN",
    BillKind.EXPENSE: "EXP",
}


class ObligationKind(str, Enum):
    RENT = "rent"
    ELECTRICITY = "electricity"
    GAS = "gas"
    MAINTENANCE = "maintenance"
    PROPERTY_TAX = "property_tax"
    INSURANCE = "insurance"
    OTHER_EXPENSE = "other_expense"

    @property
    def bill_kind(self) -> BillKind:
        """Kind of bill materialized for this obligation."""
        return _OBLIGATION_BILL_KINDS.get(self, BillKind.EXPENSE)


_OBLIGATION_BILL_KINDS = {
    ObligationKind.RENT: BillKind.RENT,
    ObligationKind.ELECTRICITY: BillKind.ELECTRICITY,
    ObligationKind.GAS: BillKind.GAS,
    ObligationKind.MAINTENANCE: BillKind.MAINTENANCE,
}


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    WAVEOFF = "waveoff"
    CANCELLED = "cancelled"


class AdvanceStatus(str, Enum):
    ACTIVE = "active"
    ADJUSTED = "adjusted"
    REFUNDED = "refunded"
