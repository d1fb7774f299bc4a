"""Presentation formatting for invoice cells.

This is the only place amounts are rounded. Month names are fixed English
strings so output does not depend on the process locale.
"""

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

_NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]")


def _round(value: Decimal, places: int) -> Decimal:
    quantum = Decimal(1).scaleb(-places)
    rounded = Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)
    # Avoid "-0" for tiny negative values
    return rounded if rounded != 0 else abs(rounded)


def format_money(value: Decimal | None) -> str:
    """Money with zero decimal places, e.g. ``Decimal("577.50")`` -> ``"578"``."""
    return f"{_round(value or Decimal(0), 0):f}"


def format_rate(value: Decimal | None) -> str:
    """Rate per unit with two decimal places."""
    return f"{_round(value or Decimal(0), 2):f}"


def format_quantity(value: Decimal | int | None) -> str:
    """Readings and units without trailing zeros, e.g. ``55.0`` -> ``"55"``."""
    if value is None:
        return "0"
    normalized = Decimal(value).normalize()
    return f"{normalized:f}" if normalized != 0 else "0"


def format_date(value: date) -> str:
    """``DD Mon YYYY``, e.g. ``05 Jan 2024``."""
    return f"{value.day:02d} {MONTH_NAMES[value.month - 1][:3]} {value.year}"


def format_month_year(value: date) -> str:
    """Billing month header, e.g. ``JANUARY 2024``."""
    return f"{MONTH_NAMES[value.month - 1]} {value.year}".upper()


def format_history_month(value: date) -> str:
    """History row month, e.g. ``Jan 2024``."""
    return f"{MONTH_NAMES[value.month - 1][:3]} {value.year}"


def sanitize_bill_number(bill_number: str) -> str:
    """Replace every non-alphanumeric character with ``_``."""
    return _NON_ALPHANUMERIC.sub("_", bill_number)
