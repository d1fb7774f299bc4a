"""Meter readings and payment recording."""

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal

from plaza_billing.config import BillingConfig
from plaza_billing.exceptions import InvalidInputError
from plaza_billing.models.bill import BillRecord
from plaza_billing.models.enums import BillKind, PaymentStatus
from plaza_billing.store.base import BillingStore

logger = logging.getLogger(__name__)


class MeterReadingService:
    """Turn meter readings into metered bills.

    The previous reading is always the latest recorded reading for the same
    business and meter kind (0 for a first reading), so consumption chains
    from one bill to the next.

    Parameters
    ----------
    store : BillingStore
        Persistence collaborator.
    config : BillingConfig | None
        Billing policy (grace window).
    """

    def __init__(self, store: BillingStore, config: BillingConfig | None = None) -> None:
        self.store = store
        self.config = config or BillingConfig()

    def record_reading(
        self,
        business_id: str,
        kind: BillKind,
        current_reading: Decimal,
        rate_per_unit: Decimal,
        reading_date: date,
        meter_number: str | None = None,
        multiplying_factor: Decimal = Decimal("1"),
        now: datetime | None = None,
    ) -> BillRecord:
        """Record a reading and create the corresponding bill.

        Raises
        ------
        InvalidInputError
            If the kind is not metered or a value is negative.
        """
        kind = BillKind(kind)
        if not kind.is_metered:
            raise InvalidInputError(f"{kind} bills are not metered")
        if current_reading < 0:
            raise InvalidInputError(f"Reading must not be negative, got {current_reading}")
        if multiplying_factor <= 0:
            raise InvalidInputError(f"Multiplying factor must be positive, got {multiplying_factor}")

        with self.store.lock(f"meter:{business_id}:{kind.value}"):
            with self.store.transaction():
                latest = self.store.latest_bill(business_id, kind)
                previous = Decimal("0")
                if latest is not None and latest.current_reading is not None:
                    previous = latest.current_reading

                bill = BillRecord.utility(
                    business_id=business_id,
                    bill_number=self.store.next_bill_number(kind.prefix, reading_date.year),
                    kind=kind,
                    reading_date=reading_date,
                    due_date=reading_date + timedelta(days=self.config.grace_days),
                    previous_reading=previous,
                    current_reading=current_reading,
                    rate_per_unit=rate_per_unit,
                    multiplying_factor=multiplying_factor,
                    meter_number=meter_number,
                    created_at=now or datetime.now(),
                )
                self.store.create_bill(bill)

        logger.info(
            "Recorded %s reading for %s: %s units, bill %s",
            kind.value,
            business_id,
            bill.units_consumed,
            bill.bill_number,
        )
        return bill


def record_payment(
    store: BillingStore,
    bill_number: str,
    status: PaymentStatus = PaymentStatus.PAID,
) -> BillRecord:
    """Update a bill's payment status and return the updated record."""
    bill = store.update_payment_status(bill_number, PaymentStatus(status))
    logger.info("Bill %s marked %s", bill_number, bill.payment_status.value)
    return bill
