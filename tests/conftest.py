"""Pytest configuration and fixtures."""

from datetime import date
from decimal import Decimal

import pytest

from plaza_billing.models import (
    BillKind,
    BillRecord,
    BusinessInfo,
    BusinessProfile,
    Frequency,
    ObligationKind,
    PaymentStatus,
    RecurringObligationConfig,
)
from plaza_billing.store import DirectoryResolver, InMemoryBillingStore


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def sample_business_id() -> str:
    """Sample business ID."""
    return "biz-test-001"


@pytest.fixture
def store() -> InMemoryBillingStore:
    """Create a fresh store for each test."""
    return InMemoryBillingStore()


@pytest.fixture
def business(sample_business_id: str) -> BusinessProfile:
    """Create a sample tenant business."""
    return BusinessProfile(
        business_id=sample_business_id,
        name="Karachi Traders",
        shop_number="G-12",
        floor_number=0,
        business_type="Retail",
    )


@pytest.fixture
def business_info() -> BusinessInfo:
    """Create sample plaza branding."""
    return BusinessInfo(
        business_name="Sunrise Plaza",
        contact_email="accounts@sunrise.example",
        contact_phone="+92 300 1234567",
    )


@pytest.fixture
def resolver(business: BusinessProfile, business_info: BusinessInfo) -> DirectoryResolver:
    """Create a resolver that knows the sample business."""
    return DirectoryResolver([business], info=business_info)


@pytest.fixture
def rent_config(sample_business_id: str) -> RecurringObligationConfig:
    """Create a monthly rent schedule due on 2024-01-31."""
    return RecurringObligationConfig(
        config_id="cfg-rent-001",
        kind=ObligationKind.RENT,
        title="Rent - Shop G-12",
        amount=Decimal("50000"),
        frequency=Frequency.MONTHLY,
        next_due_date=date(2024, 1, 31),
        business_id=sample_business_id,
    )


@pytest.fixture
def utility_bill(sample_business_id: str) -> BillRecord:
    """Create the electricity bill used in the worked examples."""
    return BillRecord.utility(
        business_id=sample_business_id,
        bill_number="ELE-2024-002",
        kind=BillKind.ELECTRICITY,
        reading_date=date(2024, 2, 1),
        due_date=date(2024, 2, 15),
        previous_reading=Decimal("120"),
        current_reading=Decimal("175"),
        rate_per_unit=Decimal("10.50"),
        meter_number="MTR-778",
    )


@pytest.fixture
def unpaid_prior_bill(sample_business_id: str) -> BillRecord:
    """Create an unpaid electricity bill from the month before."""
    return BillRecord(
        business_id=sample_business_id,
        bill_number="ELE-2024-001",
        kind=BillKind.ELECTRICITY,
        period_date=date(2024, 1, 1),
        issue_date=date(2024, 1, 1),
        due_date=date(2024, 1, 15),
        amount=Decimal("300"),
        payment_status=PaymentStatus.PENDING,
        units_consumed=Decimal("30"),
    )
