"""Invoice composition: bill + settlement + history -> InvoiceDocument."""

import logging
from typing import Sequence

from plaza_billing.documents.formatting import (
    format_date,
    format_money,
    format_month_year,
    sanitize_bill_number,
)
from plaza_billing.documents.layouts import NOT_AVAILABLE, InvoiceLayout, layout_for
from plaza_billing.exceptions import ResolutionGapError
from plaza_billing.models.advance import AdvancePayment
from plaza_billing.models.bill import BillRecord
from plaza_billing.models.business import BusinessInfo
from plaza_billing.models.document import Align, Cell, GridSection, InvoiceDocument, Row
from plaza_billing.models.settlement import ComputedSettlement
from plaza_billing.store.identity import IdentityResolver

logger = logging.getLogger(__name__)

DEFAULT_BUSINESS_NAME = "Plaza Management"
DEFAULT_CONTACT = "Cash Payment at Management Office"
CLOSING_LINE = "All of the above are included in this bill."

SECTION_NAMES = (
    "bill_reference",
    "customer_identity",
    "reading_history",
    "calculation_summary",
    "footer",
)


class InvoiceComposer:
    """Lay out a computed bill as an InvoiceDocument.

    Composition never fails on missing display metadata: unknown
    businesses and floors render as ``"N/A"``.

    Parameters
    ----------
    resolver : IdentityResolver
        Maps business ids to names, unit codes and floor labels.
    history_limit : int
        Maximum number of prior periods shown (older ones are dropped).
    """

    def __init__(self, resolver: IdentityResolver, history_limit: int = 12) -> None:
        self.resolver = resolver
        self.history_limit = history_limit

    def compose(
        self,
        bill: BillRecord,
        settlement: ComputedSettlement,
        history: Sequence[BillRecord] = (),
        business_info: BusinessInfo | None = None,
        advance: AdvancePayment | None = None,
    ) -> InvoiceDocument:
        """Build the document for one bill.

        Parameters
        ----------
        bill : BillRecord
            The bill being invoiced.
        settlement : ComputedSettlement
            Amounts computed for the bill.
        history : Sequence[BillRecord]
            Prior bills, newest first.
        business_info : BusinessInfo | None
            Plaza branding; falls back to the resolver's business info.
        advance : AdvancePayment | None
            Active advance for the bill's month, shown in the summary.

        Returns
        -------
        InvoiceDocument
        """
        layout = layout_for(bill.kind)
        history = list(history)[: self.history_limit]
        info = business_info or self.resolver.business_info() or BusinessInfo()

        plaza_name = info.business_name or DEFAULT_BUSINESS_NAME
        document = InvoiceDocument(
            document_id=f"{layout.file_prefix}_{sanitize_bill_number(bill.bill_number)}",
            bill_number=bill.bill_number,
            title=f"{plaza_name.upper()} - {layout.bill_label}",
            sections=(
                self._bill_reference(layout, bill),
                self._customer_identity(layout, bill),
                self._reading_history(layout, bill, history),
                self._calculation_summary(layout, bill, settlement, advance),
                self._footer(layout, info),
            ),
        )
        logger.debug(
            "Composed %s with %d history rows", document.document_id, len(history)
        )
        return document

    def _bill_reference(self, layout: InvoiceLayout, bill: BillRecord) -> GridSection:
        headers = ("Reference No", "BILLING MONTH", layout.period_label, "ISSUE DATE", "DUE DATE")
        values = (
            bill.bill_number,
            format_month_year(bill.period_date),
            format_date(bill.period_date),
            format_date(bill.issue_date),
            format_date(bill.due_date) if bill.due_date else NOT_AVAILABLE,
        )
        return GridSection(
            name="bill_reference",
            column_count=len(headers),
            header_rows=(tuple(Cell.header(h) for h in headers),),
            rows=(tuple(Cell(v, align=Align.CENTER) for v in values),),
        )

    def _customer_identity(self, layout: InvoiceLayout, bill: BillRecord) -> GridSection:
        name = code = shop_number = floor = NOT_AVAILABLE
        category = layout.default_category
        try:
            profile = self.resolver.require_profile(bill.business_id)
        except ResolutionGapError as exc:
            logger.warning("Using placeholders for bill %s: %s", bill.bill_number, exc)
        else:
            name = profile.name or NOT_AVAILABLE
            code = shop_number = profile.shop_number or NOT_AVAILABLE
            floor = self.resolver.floor_label(profile.floor_number) or NOT_AVAILABLE
            category = profile.business_type or category

        return GridSection(
            name="customer_identity",
            column_count=4,
            header_rows=((Cell.header("Customer Information", col_span=4),),),
            rows=tuple(layout.identity_rows(bill, code, floor, shop_number, category, name)),
        )

    def _reading_history(
        self, layout: InvoiceLayout, bill: BillRecord, history: list[BillRecord]
    ) -> GridSection:
        header_rows = (
            (
                Cell.header(layout.current_title, col_span=layout.left_width),
                Cell.header(layout.history_title, col_span=layout.right_width),
            ),
            tuple(Cell.header(c) for c in (*layout.current_columns, *layout.history_columns)),
        )

        rows: list[Row] = []
        for index in range(max(1, len(history))):
            if index == 0:
                left = layout.current_row(bill)
            else:
                left = (Cell.placeholder(layout.left_width),)

            if index < len(history):
                right = layout.history_row(history[index])
            else:
                right = tuple(Cell() for _ in range(layout.right_width))
            rows.append(left + right)

        return GridSection(
            name="reading_history",
            column_count=layout.column_count,
            header_rows=header_rows,
            rows=tuple(rows),
        )

    def _calculation_summary(
        self,
        layout: InvoiceLayout,
        bill: BillRecord,
        settlement: ComputedSettlement,
        advance: AdvancePayment | None = None,
    ) -> GridSection:
        advance_amount = advance.amount if advance is not None and advance.is_active else None
        value_span = layout.right_width - 1
        right_side = (
            ("CURRENT BILL", settlement.base_amount),
            ("ARREARS", settlement.arrears),
            ("PAYMENT WITHIN DUE DATE", settlement.payable_within_due_date),
            ("L.P. SURCHARGE", settlement.late_surcharge),
            ("PAYMENT AFTER DUE DATE", settlement.payable_after_due_date),
        )
        rows = tuple(
            left + (Cell.label(label), Cell(format_money(amount), col_span=value_span, align=Align.RIGHT))
            for left, (label, amount) in zip(layout.summary_left(bill, advance_amount), right_side)
        )
        return GridSection(name="calculation_summary", column_count=layout.column_count, rows=rows)

    def _footer(self, layout: InvoiceLayout, info: BusinessInfo) -> GridSection:
        lines = [info.contact_email or DEFAULT_CONTACT]
        if info.contact_phone:
            lines.append(f"Contact: {info.contact_phone}")
        lines.append(layout.charges_intro)
        lines.extend(layout.charges)
        lines.append(CLOSING_LINE)
        return GridSection(
            name="footer",
            column_count=1,
            rows=tuple((Cell(line),) for line in lines),
        )
