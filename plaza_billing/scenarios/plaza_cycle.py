"""Plaza billing cycle scenario: readings, scheduler runs, payments and invoices."""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from plaza_billing.calculation import LateSurchargePolicy, MeterReadingService, record_payment, settle_bill
from plaza_billing.config import BillingConfig
from plaza_billing.documents import InvoiceComposer
from plaza_billing.generators import PlazaGenerator
from plaza_billing.models.bill import BillRecord
from plaza_billing.models.document import InvoiceDocument
from plaza_billing.models.enums import BillKind, PaymentStatus
from plaza_billing.scheduling import GenerationReport, RecurringBillScheduler, add_months
from plaza_billing.store import DirectoryResolver, InMemoryBillingStore

logger = logging.getLogger(__name__)


class PlazaBillingScenario:
    """Run a plaza through several monthly billing ticks.

    This scenario creates:
    - Tenant businesses with monthly rent schedules
    - Plaza-level fixed expenses (tax, insurance, services)
    - Monthly electricity readings for every tenant
    - Payments for a share of the bills issued the month before
    - Invoices for each tenant's latest rent and electricity bills
    """

    def __init__(
        self,
        num_businesses: int = 10,
        months: int = 6,
        start_date: date = date(2024, 1, 1),
        payment_rate: float = 0.8,
        seed: int | None = None,
        *,
        config: BillingConfig | None = None,
        sink: Any | None = None,
    ) -> None:
        """Initialize the scenario.

        Parameters
        ----------
        num_businesses : int
            Number of tenants.
        months : int
            Number of monthly ticks to run.
        start_date : date
            First due date of every schedule.
        payment_rate : float
            Share of last month's bills paid at each tick (0.0 to 1.0).
        seed : int | None
            Random seed for reproducibility.
        config : BillingConfig | None
            Billing policy.
        sink : Any | None
            Optional sink for ``bill.generated`` events.
        """
        self.num_businesses = num_businesses
        self.months = months
        self.start_date = start_date
        self.payment_rate = payment_rate
        self.config = config or BillingConfig()

        self._gen = PlazaGenerator(seed=seed)
        self.store = InMemoryBillingStore()
        self.resolver = DirectoryResolver(info=self._gen.generate_business_info())
        self.scheduler = RecurringBillScheduler(self.store, self.config, sink=sink)
        self.meters = MeterReadingService(self.store, self.config)
        self.composer = InvoiceComposer(self.resolver, history_limit=self.config.history_limit)
        self.policy = LateSurchargePolicy.from_config(self.config)

        self.reports: list[GenerationReport] = []
        self.documents: list[InvoiceDocument] = []

    def generate(self) -> InMemoryBillingStore:
        """Run every tick and compose the closing invoices.

        Returns
        -------
        InMemoryBillingStore
            Store containing all configs and bills.
        """
        logger.info(
            "Starting plaza billing scenario: %d businesses over %d months",
            self.num_businesses,
            self.months,
        )

        for business in self._gen.generate_businesses(self.num_businesses):
            self.resolver.add_business(business)
            self.store.add_config(self._gen.generate_rent_config(business, self.start_date))
        for config in self._gen.generate_expense_configs(self.start_date):
            self.store.add_config(config)

        rates = {b: self._gen.rate_for(BillKind.ELECTRICITY) for b in self._business_ids()}
        readings = {b: Decimal(self._gen.random.randint(100, 2000)) for b in self._business_ids()}

        previous_tick: list[BillRecord] = []
        tick_date = self.start_date
        for month in range(self.months):
            tick_date = add_months(self.start_date, month)
            now = datetime.combine(tick_date, time(9, 0))

            self._pay(previous_tick)

            tick_bills = []
            for business_id in self._business_ids():
                readings[business_id] += self._gen.random.randint(30, 400)
                tick_bills.append(
                    self.meters.record_reading(
                        business_id,
                        BillKind.ELECTRICITY,
                        current_reading=readings[business_id],
                        rate_per_unit=rates[business_id],
                        reading_date=tick_date,
                        now=now,
                    )
                )

            report = self.scheduler.generate_due_bills(now=now)
            self.reports.append(report)
            tick_bills.extend(self.store.get_bill(r.bill_number) for r in report.generated)
            previous_tick = tick_bills

        self._compose_invoices(datetime.combine(tick_date, time(18, 0)))

        logger.info(
            "Scenario finished: %d bills, %d invoices",
            len(self.store.bills),
            len(self.documents),
        )
        return self.store

    def _business_ids(self) -> list[str]:
        return sorted(
            {c.business_id for c in self.store.configs.values() if c.business_id is not None}
        )

    def _pay(self, bills: list[BillRecord]) -> None:
        for bill in bills:
            if self._gen.random.random() < self.payment_rate:
                record_payment(self.store, bill.bill_number, PaymentStatus.PAID)

    def _compose_invoices(self, now: datetime) -> None:
        for business_id in self._business_ids():
            for kind in (BillKind.RENT, BillKind.ELECTRICITY):
                bill = self.store.latest_bill(business_id, kind)
                if bill is None:
                    continue
                settlement, history = settle_bill(
                    self.store, bill, now, self.policy, self.config.history_limit
                )
                self.documents.append(
                    self.composer.compose(
                        bill, settlement, history, advance=self.store.advance_for(bill)
                    )
                )
