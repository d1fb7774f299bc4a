"""Invoice document composition and rendering."""

from plaza_billing.documents.composer import SECTION_NAMES, InvoiceComposer
from plaza_billing.documents.formatting import (
    format_date,
    format_history_month,
    format_money,
    format_month_year,
    format_quantity,
    format_rate,
    sanitize_bill_number,
)
from plaza_billing.documents.layouts import FlatRateLayout, InvoiceLayout, MeteredLayout, layout_for
from plaza_billing.documents.pdf import PdfInvoiceRenderer

__all__ = [
    "SECTION_NAMES",
    "InvoiceComposer",
    "InvoiceLayout",
    "MeteredLayout",
    "FlatRateLayout",
    "layout_for",
    "PdfInvoiceRenderer",
    "format_date",
    "format_history_month",
    "format_money",
    "format_month_year",
    "format_quantity",
    "format_rate",
    "sanitize_bill_number",
]
