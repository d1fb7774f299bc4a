"""Bill calculation engine."""

from plaza_billing.calculation.readings import MeterReadingService, record_payment
from plaza_billing.calculation.settlement import (
    LateSurchargePolicy,
    compute_arrears,
    compute_settlement,
    compute_units,
    is_overdue,
    settle_bill,
    utility_amount,
)

__all__ = [
    "LateSurchargePolicy",
    "MeterReadingService",
    "compute_arrears",
    "compute_settlement",
    "compute_units",
    "is_overdue",
    "record_payment",
    "settle_bill",
    "utility_amount",
]
