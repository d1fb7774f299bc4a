"""Generator for plaza tenants, obligation schedules and billing histories."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterator

from plaza_billing.calculation.readings import MeterReadingService, record_payment
from plaza_billing.config import BillingConfig
from plaza_billing.generators.base import BaseGenerator
from plaza_billing.models.bill import BillRecord
from plaza_billing.models.business import BusinessInfo, BusinessProfile
from plaza_billing.models.enums import BillKind, Frequency, ObligationKind, PaymentStatus
from plaza_billing.models.obligation import RecurringObligationConfig
from plaza_billing.scheduling.recurrence import add_months, kind_of
from plaza_billing.store.base import BillingStore


class PlazaGenerator(BaseGenerator):
    """Generate synthetic plaza data.

    Parameters
    ----------
    seed : int | None
        Random seed for reproducibility.
    floors : int
        Number of floors above ground; shops are spread over floors
        ``0..floors``.
    """

    BUSINESS_TYPES = ["Commercial", "Retail", "Food Court", "Office", "Clinic"]
    BUSINESS_TYPE_WEIGHTS = [0.40, 0.25, 0.15, 0.15, 0.05]

    # Monthly rent ranges by floor (PKR)
    RENT_RANGES = {0: (60000, 150000), 1: (40000, 90000)}
    DEFAULT_RENT_RANGE = (25000, 60000)

    FIXED_EXPENSES = [
        (ObligationKind.PROPERTY_TAX, "Property Tax", Frequency.ANNUAL, (150000, 400000)),
        (ObligationKind.INSURANCE, "Building Insurance", Frequency.SEMI_ANNUAL, (80000, 200000)),
        (ObligationKind.OTHER_EXPENSE, "Security Services", Frequency.MONTHLY, (90000, 120000)),
        (ObligationKind.MAINTENANCE, "Elevator Maintenance", Frequency.QUARTERLY, (30000, 60000)),
    ]

    ELECTRICITY_RATES = (Decimal("32.50"), Decimal("45.75"))
    GAS_RATES = (Decimal("12.00"), Decimal("18.50"))

    def __init__(self, seed: int | None = None, floors: int = 3) -> None:
        super().__init__(seed)
        self.floors = floors
        self._shop_counters: dict[int, int] = {}

    def generate_business_info(self) -> BusinessInfo:
        """Generate plaza branding and contact details."""
        name = f"{self.fake.last_name()} Plaza"
        return BusinessInfo(
            business_name=name,
            contact_email=self.fake.company_email(),
            contact_phone=self.fake.phone_number(),
        )

    def generate_business(self) -> BusinessProfile:
        """Generate a single tenant business."""
        floor = self.random.randint(0, self.floors)
        self._shop_counters[floor] = self._shop_counters.get(floor, 0) + 1
        return BusinessProfile(
            business_id=self.fake.uuid4(),
            name=self.fake.company(),
            shop_number=f"{floor}{self._shop_counters[floor]:02d}",
            floor_number=floor,
            business_type=self.random.choices(
                self.BUSINESS_TYPES, weights=self.BUSINESS_TYPE_WEIGHTS, k=1
            )[0],
        )

    def generate_businesses(self, count: int) -> Iterator[BusinessProfile]:
        """Generate multiple tenant businesses.

        Parameters
        ----------
        count : int
            Number of businesses to generate.

        Yields
        ------
        BusinessProfile
            Generated businesses.
        """
        for _ in range(count):
            yield self.generate_business()

    def _amount(self, low: int, high: int, step: int = 500) -> Decimal:
        return Decimal(self.random.randrange(low, high + 1, step))

    def generate_rent_config(
        self, business: BusinessProfile, next_due_date: date
    ) -> RecurringObligationConfig:
        """Generate a monthly rent schedule for a business."""
        low, high = self.RENT_RANGES.get(business.floor_number or 0, self.DEFAULT_RENT_RANGE)
        return RecurringObligationConfig(
            config_id=self.fake.uuid4(),
            kind=ObligationKind.RENT,
            title=f"Rent - Shop {business.shop_number}",
            amount=self._amount(low, high),
            frequency=Frequency.MONTHLY,
            next_due_date=next_due_date,
            business_id=business.business_id,
            reminder_date=next_due_date - timedelta(days=5),
        )

    def generate_expense_configs(self, next_due_date: date) -> list[RecurringObligationConfig]:
        """Generate the plaza's fixed-expense schedules."""
        configs = []
        for kind, title, frequency, (low, high) in self.FIXED_EXPENSES:
            configs.append(
                RecurringObligationConfig(
                    config_id=self.fake.uuid4(),
                    kind=kind,
                    title=title,
                    amount=self._amount(low, high, 1000),
                    frequency=frequency,
                    next_due_date=next_due_date,
                    description=self.fake.sentence(nb_words=6),
                )
            )
        return configs

    def rate_for(self, kind: BillKind) -> Decimal:
        """Random rate per unit for a metered kind."""
        low, high = self.ELECTRICITY_RATES if kind == BillKind.ELECTRICITY else self.GAS_RATES
        cents = self.random.randint(int(low * 100), int(high * 100))
        return Decimal(cents) / 100

    def generate_meter_history(
        self,
        store: BillingStore,
        business: BusinessProfile,
        kind: BillKind,
        months: int,
        end_date: date,
        paid_rate: float = 0.8,
        config: BillingConfig | None = None,
    ) -> list[BillRecord]:
        """Record ``months`` monthly readings ending at ``end_date``.

        Each bill is paid with probability ``paid_rate``; unpaid bills become
        the business's arrears.

        Returns
        -------
        list[BillRecord]
            Created bills, oldest first, with their final payment status.
        """
        service = MeterReadingService(store, config)
        meter_number = f"{kind.prefix}-{self.fake.bothify('#######')}"
        rate = self.rate_for(kind)
        reading = Decimal(self.random.randint(100, 2000))
        bills = []
        for offset in range(months - 1, -1, -1):
            reading += Decimal(self.random.randint(30, 400))
            reading_date = add_months(end_date, -offset)
            bill = service.record_reading(
                business.business_id,
                kind,
                current_reading=reading,
                rate_per_unit=rate,
                reading_date=reading_date,
                meter_number=meter_number,
                now=datetime.combine(reading_date, datetime.min.time()),
            )
            if self.random.random() < paid_rate:
                bill = record_payment(store, bill.bill_number, PaymentStatus.PAID)
            bills.append(bill)
        return bills

    def generate_rent_history(
        self,
        store: BillingStore,
        config: RecurringObligationConfig,
        months: int,
        paid_rate: float = 0.85,
        grace_days: int = 15,
    ) -> list[BillRecord]:
        """Create back-dated bills for the ``months`` periods before the config's next due date."""
        bill_kind = kind_of(config).bill_kind
        bills = []
        for offset in range(months, 0, -1):
            period = add_months(config.next_due_date, -offset, config.anchor_day)
            with store.transaction():
                bill = BillRecord.flat(
                    business_id=config.business_id,
                    bill_number=store.next_bill_number(bill_kind.prefix, period.year),
                    kind=bill_kind,
                    period_date=period,
                    due_date=period + timedelta(days=grace_days),
                    amount=config.amount,
                    config_id=config.config_id,
                    created_at=datetime.combine(period, datetime.min.time()),
                )
                store.create_bill(bill)
            if self.random.random() < paid_rate:
                bill = record_payment(store, bill.bill_number, PaymentStatus.PAID)
            bills.append(bill)
        return bills
