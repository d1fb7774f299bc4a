"""Materialized billing occurrences."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from plaza_billing.models.enums import BillKind, PaymentStatus


@dataclass(frozen=True)
class BillRecord:
    """A single billable period for a business.

    ``amount`` is derived from the kind-specific inputs: units consumed x
    multiplying factor x rate for metered bills, the monthly rent for rent
    bills. Use :meth:`utility` and :meth:`flat` to build consistent records.
    """

    business_id: str | None
    bill_number: str
    kind: BillKind
    period_date: date  # reading date or rent month
    issue_date: date
    due_date: date | None
    amount: Decimal | None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    config_id: str | None = None
    created_at: datetime | None = None

    # Metered bills
    previous_reading: Decimal | None = None
    current_reading: Decimal | None = None
    units_consumed: Decimal | None = None
    rate_per_unit: Decimal | None = None
    multiplying_factor: Decimal = Decimal("1")
    meter_number: str | None = None

    # Flat-rate bills
    monthly_rent: Decimal | None = None

    @property
    def period(self) -> tuple[int, int]:
        """(year, month) of the billed period."""
        return self.period_date.year, self.period_date.month

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    @classmethod
    def utility(
        cls,
        *,
        business_id: str,
        bill_number: str,
        kind: BillKind,
        reading_date: date,
        due_date: date,
        previous_reading: Decimal,
        current_reading: Decimal,
        rate_per_unit: Decimal,
        multiplying_factor: Decimal = Decimal("1"),
        meter_number: str | None = None,
        issue_date: date | None = None,
        payment_status: PaymentStatus = PaymentStatus.PENDING,
        created_at: datetime | None = None,
    ) -> "BillRecord":
        """Build a metered bill, deriving units and amount from the readings."""
        from plaza_billing.calculation.settlement import compute_units, utility_amount

        units = compute_units(previous_reading, current_reading)
        return cls(
            business_id=business_id,
            bill_number=bill_number,
            kind=kind,
            period_date=reading_date,
            issue_date=issue_date or reading_date,
            due_date=due_date,
            amount=utility_amount(units, rate_per_unit, multiplying_factor),
            payment_status=payment_status,
            created_at=created_at,
            previous_reading=previous_reading,
            current_reading=current_reading,
            units_consumed=units,
            rate_per_unit=rate_per_unit,
            multiplying_factor=multiplying_factor,
            meter_number=meter_number,
        )

    @classmethod
    def flat(
        cls,
        *,
        business_id: str | None,
        bill_number: str,
        kind: BillKind,
        period_date: date,
        due_date: date,
        amount: Decimal,
        issue_date: date | None = None,
        payment_status: PaymentStatus = PaymentStatus.PENDING,
        config_id: str | None = None,
        created_at: datetime | None = None,
    ) -> "BillRecord":
        """Build a flat-rate bill (rent, maintenance, fixed expense)."""
        return cls(
            business_id=business_id,
            bill_number=bill_number,
            kind=kind,
            period_date=period_date,
            issue_date=issue_date or period_date,
            due_date=due_date,
            amount=amount,
            payment_status=payment_status,
            config_id=config_id,
            created_at=created_at,
            monthly_rent=amount if kind == BillKind.RENT else None,
        )
