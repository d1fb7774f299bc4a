"""Kind-specific invoice layouts.

Both layouts feed the same composition pipeline; they differ only in the
current-period columns, the history columns and the labels used.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from plaza_billing.documents.formatting import (
    format_history_month,
    format_money,
    format_month_year,
    format_quantity,
    format_rate,
)
from plaza_billing.exceptions import InvalidInputError
from plaza_billing.models.bill import BillRecord
from plaza_billing.models.document import Align, Cell, Row
from plaza_billing.models.enums import BillKind, PaymentStatus

NOT_AVAILABLE = "N/A"


def _status_text(bill: BillRecord) -> str:
    status = bill.payment_status
    if not status:
        return PaymentStatus.PENDING.value
    return status.value if isinstance(status, PaymentStatus) else str(status)


def _paid_amount(entry: BillRecord) -> str:
    return format_money(entry.amount) if entry.is_paid else "0"


class InvoiceLayout(ABC):
    """Labels and row builders for one family of invoices."""

    kind: BillKind
    bill_label: str  # e.g. "ELECTRICITY BILL"
    file_prefix: str  # e.g. "Electricity_Bill"
    period_label: str
    current_title: str
    history_title: str
    current_columns: tuple[str, ...]
    history_columns: tuple[str, ...]
    default_category: str
    charges_intro: str
    charges: tuple[str, ...]

    @property
    def left_width(self) -> int:
        return len(self.current_columns)

    @property
    def right_width(self) -> int:
        return len(self.history_columns)

    @property
    def column_count(self) -> int:
        return self.left_width + self.right_width

    @abstractmethod
    def current_row(self, bill: BillRecord) -> Row:
        """Left-hand cells for the current period."""

    @abstractmethod
    def history_row(self, entry: BillRecord) -> Row:
        """Right-hand cells for one history entry."""

    @abstractmethod
    def identity_rows(
        self,
        bill: BillRecord,
        code: str,
        floor: str,
        shop_number: str,
        category: str,
        name: str,
    ) -> list[Row]:
        """Customer-identity block, four columns wide."""

    @abstractmethod
    def summary_left(self, bill: BillRecord, advance: Decimal | None = None) -> list[Row]:
        """Left-hand cells for the five calculation-summary rows.

        ``advance`` is the amount prepaid for the bill's month, shown as 0 when absent.
        """


class MeteredLayout(InvoiceLayout):
    """Electricity and gas invoices: readings plus unit history."""

    current_columns = ("Previous", "Present", "MF", "Unit", "Status")
    history_columns = ("Month", "Unit", "Bill", "Status")
    period_label = "READING DATE"
    current_title = "Reading Information"
    history_title = "Reading History & Payment"
    default_category = "Residential"
    charges = (
        "• Unit Price",
        "• Actual Consumed Cost",
        "• Line Charges",
        "• Government Taxes",
        "• Surcharge",
        "• TV and other charges",
    )

    def __init__(self, kind: BillKind = BillKind.ELECTRICITY) -> None:
        if not kind.is_metered:
            raise InvalidInputError(f"{kind.value} bills are not metered")
        self.kind = kind
        noun = kind.value.capitalize()
        self.bill_label = f"{kind.value.upper()} BILL"
        self.file_prefix = f"{noun}_Bill"
        self.total_label = f"Total{noun}"
        self.charges_intro = f"This {kind.value} bill includes the following charges:"

    def current_row(self, bill: BillRecord) -> Row:
        return (
            Cell(format_quantity(bill.previous_reading)),
            Cell(format_quantity(bill.current_reading)),
            Cell(format_quantity(bill.multiplying_factor)),
            Cell(format_quantity(bill.units_consumed)),
            Cell(_status_text(bill)),
        )

    def history_row(self, entry: BillRecord) -> Row:
        return (
            Cell(format_history_month(entry.period_date)),
            Cell(format_quantity(entry.units_consumed)),
            Cell(format_money(entry.amount)),
            Cell(_paid_amount(entry)),
        )

    def identity_rows(self, bill, code, floor, shop_number, category, name) -> list[Row]:
        return [
            (Cell.label("UD :"), Cell(code), Cell.label("Floor :"), Cell(floor)),
            (
                Cell.label("MeterNo"),
                Cell(bill.meter_number or NOT_AVAILABLE),
                Cell.label("Categories :"),
                Cell(category),
            ),
            (Cell.label("UnitNo :"), Cell(shop_number), Cell(), Cell()),
            (Cell.label("Customer :"), Cell(name), Cell(), Cell()),
        ]

    def summary_left(self, bill: BillRecord, advance: Decimal | None = None) -> list[Row]:
        span = self.left_width - 1
        units = format_quantity(bill.units_consumed)
        return [
            (Cell.label("TotalUnit"), Cell(units, col_span=span)),
            (Cell.label(self.total_label), Cell(format_money(bill.amount), col_span=span)),
            (Cell.label("Advance"), Cell(format_money(advance), col_span=span)),
            (
                Cell(
                    f"{units} x {format_rate(bill.rate_per_unit)}",
                    col_span=self.left_width,
                    align=Align.CENTER,
                ),
            ),
            (Cell.placeholder(self.left_width),),
        ]


class FlatRateLayout(InvoiceLayout):
    """Rent and maintenance invoices: one monthly charge plus payment history."""

    history_columns = ("Month", "Bill", "Status")
    history_title = "Payment History"
    default_category = "Commercial"

    _LABELS = {
        BillKind.RENT: {
            "noun": "Rent",
            "amount_column": "Rent Amount",
            "monthly": "Monthly Rent",
            "total": "Total Rent",
            "charges": (
                "• Monthly Rent",
                "• Property Lease",
                "• Service Charges",
                "• Late Payment Surcharge (if applicable)",
            ),
        },
        BillKind.MAINTENANCE: {
            "noun": "Maintenance",
            "amount_column": "Charge",
            "monthly": "Monthly Charge",
            "total": "Total Maintenance",
            "charges": (
                "• Maintenance Charge",
                "• Common Area Services",
                "• Late Payment Surcharge (if applicable)",
            ),
        },
    }

    def __init__(self, kind: BillKind = BillKind.RENT) -> None:
        if kind not in self._LABELS:
            raise InvalidInputError(f"No flat-rate invoice layout for {kind.value} bills")
        labels = self._LABELS[kind]
        noun = labels["noun"]
        self.kind = kind
        self.bill_label = f"{noun.upper()} BILL"
        self.file_prefix = f"{noun}_Bill"
        self.period_label = "BILL DATE"
        self.current_title = f"{noun} Information"
        self.current_columns = ("Month", labels["amount_column"], "Status")
        self.monthly_label = labels["monthly"]
        self.total_label = labels["total"]
        self.charges_intro = f"This {noun.lower()} bill includes the following charges:"
        self.charges = labels["charges"]

    @staticmethod
    def _monthly_amount(bill: BillRecord) -> Decimal | None:
        return bill.monthly_rent if bill.monthly_rent is not None else bill.amount

    def current_row(self, bill: BillRecord) -> Row:
        return (
            Cell(format_month_year(bill.period_date)),
            Cell(format_money(self._monthly_amount(bill))),
            Cell(_status_text(bill)),
        )

    def history_row(self, entry: BillRecord) -> Row:
        return (
            Cell(format_history_month(entry.period_date)),
            Cell(format_money(entry.amount)),
            Cell(_paid_amount(entry)),
        )

    def identity_rows(self, bill, code, floor, shop_number, category, name) -> list[Row]:
        return [
            (Cell.label("UD :"), Cell(code), Cell.label("Floor :"), Cell(floor)),
            (Cell.label("Shop No :"), Cell(shop_number), Cell.label("Categories :"), Cell(category)),
            (Cell.label("Customer :"), Cell(name), Cell(), Cell()),
        ]

    def summary_left(self, bill: BillRecord, advance: Decimal | None = None) -> list[Row]:
        span = self.left_width - 1
        return [
            (Cell.label(self.monthly_label), Cell(format_money(self._monthly_amount(bill)), col_span=span)),
            (Cell.label(self.total_label), Cell(format_money(bill.amount), col_span=span)),
            (Cell.label("Advance"), Cell(format_money(advance), col_span=span)),
            (Cell.placeholder(self.left_width),),
            (Cell.placeholder(self.left_width),),
        ]


def layout_for(kind: BillKind) -> InvoiceLayout:
    """Pick the invoice layout for a bill kind."""
    kind = BillKind(kind)
    if kind.is_metered:
        return MeteredLayout(kind)
    return FlatRateLayout(kind)
