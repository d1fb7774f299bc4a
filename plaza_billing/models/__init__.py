"""Domain models for plaza billing."""

from plaza_billing.models.advance import AdvancePayment
from plaza_billing.models.base import Event
from plaza_billing.models.bill import BillRecord
from plaza_billing.models.business import BusinessInfo, BusinessProfile
from plaza_billing.models.document import Align, Cell, CellKind, GridSection, InvoiceDocument
from plaza_billing.models.enums import (
    AdvanceStatus,
    BillKind,
    Frequency,
    ObligationKind,
    ObligationStatus,
    PaymentStatus,
)
from plaza_billing.models.obligation import RecurringObligationConfig
from plaza_billing.models.settlement import ComputedSettlement

__all__ = [
    "AdvancePayment",
    "AdvanceStatus",
    "Align",
    "BillKind",
    "BillRecord",
    "BusinessInfo",
    "BusinessProfile",
    "Cell",
    "CellKind",
    "ComputedSettlement",
    "Event",
    "Frequency",
    "GridSection",
    "InvoiceDocument",
    "ObligationKind",
    "ObligationStatus",
    "PaymentStatus",
    "RecurringObligationConfig",
]
