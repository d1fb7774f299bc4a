"""Tests for the bill calculation engine."""

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal

import pytest

from plaza_billing.calculation import (
    LateSurchargePolicy,
    compute_arrears,
    compute_settlement,
    compute_units,
    is_overdue,
    settle_bill,
    utility_amount,
)
from plaza_billing.config import BillingConfig
from plaza_billing.exceptions import InvalidInputError
from plaza_billing.models import BillKind, BillRecord, PaymentStatus
from plaza_billing.store import InMemoryBillingStore


def _history_entry(number: int, amount: str | None, status: PaymentStatus) -> BillRecord:
    return BillRecord(
        business_id="biz-test-001",
        bill_number=f"RENT-2023-{number:03d}",
        kind=BillKind.RENT,
        period_date=date(2023, number, 1),
        issue_date=date(2023, number, 1),
        due_date=date(2023, number, 16),
        amount=Decimal(amount) if amount is not None else None,
        payment_status=status,
    )


class TestUnits:
    """Tests for unit and amount helpers."""

    def test_units(self) -> None:
        """Test units are current minus previous."""
        assert compute_units(Decimal("120"), Decimal("175")) == Decimal("55")

    def test_meter_rollback_gives_zero(self) -> None:
        """Test a lower current reading yields zero units."""
        assert compute_units(Decimal("175"), Decimal("120")) == Decimal("0")

    def test_amount_uses_multiplying_factor(self) -> None:
        """Test units x factor x rate."""
        assert utility_amount(Decimal("55"), Decimal("10.50"), Decimal("2")) == Decimal("1155.00")

    def test_negative_rate(self) -> None:
        """Test a negative rate is rejected."""
        with pytest.raises(InvalidInputError):
            utility_amount(Decimal("55"), Decimal("-1"))


class TestArrears:
    """Tests for compute_arrears."""

    def test_empty_history(self) -> None:
        """Test no history means no arrears."""
        assert compute_arrears([]) == Decimal("0")

    def test_sums_unpaid_only(self) -> None:
        """Test only non-paid entries are carried forward."""
        history = [
            _history_entry(3, "100.25", PaymentStatus.PENDING),
            _history_entry(2, "200", PaymentStatus.PAID),
            _history_entry(1, "50.50", PaymentStatus.PENDING),
        ]

        assert compute_arrears(history) == Decimal("150.75")

    @pytest.mark.parametrize("paid_mask", [0b000, 0b001, 0b010, 0b101, 0b111])
    def test_matches_unpaid_sum(self, paid_mask: int) -> None:
        """Test arrears always equals the sum of unpaid amounts."""
        history = [
            _history_entry(
                i + 1,
                str(100 * (i + 1)),
                PaymentStatus.PAID if paid_mask & (1 << i) else PaymentStatus.PENDING,
            )
            for i in range(3)
        ]
        expected = sum((h.amount for h in history if not h.is_paid), Decimal("0"))

        assert compute_arrears(history) == expected

    def test_missing_amount(self) -> None:
        """Test a history entry without an amount is rejected."""
        with pytest.raises(InvalidInputError, match="RENT-2023-001"):
            compute_arrears([_history_entry(1, None, PaymentStatus.PENDING)])


class TestLateSurchargePolicy:
    """Tests for LateSurchargePolicy."""

    def test_flat_plus_rate(self) -> None:
        """Test surcharge is flat plus a share of arrears."""
        policy = LateSurchargePolicy(flat=Decimal("50"), rate_on_arrears=Decimal("0.10"))

        assert policy.surcharge(Decimal("300")) == Decimal("80.00")

    def test_from_config(self) -> None:
        """Test building the policy from billing config."""
        config = BillingConfig(late_surcharge=Decimal("25"), late_surcharge_rate=Decimal("0.05"))
        policy = LateSurchargePolicy.from_config(config)

        assert policy.flat == Decimal("25")
        assert policy.rate_on_arrears == Decimal("0.05")

    def test_negative_settings(self) -> None:
        """Test negative settings are rejected."""
        with pytest.raises(InvalidInputError):
            LateSurchargePolicy(flat=Decimal("-1"))


class TestComputeSettlement:
    """Tests for compute_settlement."""

    def test_scenario_within_due_date(self, utility_bill: BillRecord) -> None:
        """Test 55 units at 10.50 with no arrears, evaluated before the due date."""
        policy = LateSurchargePolicy(flat=Decimal("50"))
        settlement = compute_settlement(
            utility_bill.amount, utility_bill.due_date, datetime(2024, 2, 10), policy=policy
        )

        assert utility_bill.units_consumed == Decimal("55")
        assert settlement.base_amount == Decimal("577.50")
        assert settlement.arrears == Decimal("0")
        assert settlement.late_surcharge == Decimal("0")
        assert settlement.payable_within_due_date == Decimal("577.50")
        assert settlement.payable_after_due_date == Decimal("577.50")

    def test_scenario_after_due_date(
        self, utility_bill: BillRecord, unpaid_prior_bill: BillRecord
    ) -> None:
        """Test one unpaid prior bill of 300 and a flat surcharge of 50, evaluated late."""
        policy = LateSurchargePolicy(flat=Decimal("50"))
        settlement = compute_settlement(
            utility_bill.amount,
            utility_bill.due_date,
            date(2024, 2, 16),
            history=[unpaid_prior_bill],
            policy=policy,
        )

        assert settlement.arrears == Decimal("300")
        assert settlement.late_surcharge == Decimal("50")
        assert settlement.payable_within_due_date == Decimal("877.50")
        assert settlement.payable_after_due_date == Decimal("927.50")

    def test_on_due_date_is_not_late(self, utility_bill: BillRecord) -> None:
        """Test no surcharge when evaluated on the due date itself."""
        settlement = compute_settlement(
            utility_bill.amount,
            utility_bill.due_date,
            datetime(2024, 2, 15, 23, 59),
            policy=LateSurchargePolicy(flat=Decimal("50")),
        )

        assert settlement.late_surcharge == Decimal("0")
        assert settlement.payable_after_due_date == settlement.payable_within_due_date

    def test_paid_bill_has_no_surcharge(self, utility_bill: BillRecord) -> None:
        """Test a paid bill never accrues a surcharge."""
        settlement = compute_settlement(
            utility_bill.amount,
            utility_bill.due_date,
            date(2024, 3, 1),
            policy=LateSurchargePolicy(flat=Decimal("50")),
            paid=True,
        )

        assert settlement.late_surcharge == Decimal("0")

    def test_after_due_date_never_below_within(self, unpaid_prior_bill: BillRecord) -> None:
        """Test pay-after is never less than pay-within."""
        policy = LateSurchargePolicy(flat=Decimal("10"), rate_on_arrears=Decimal("0.1"))
        for now in (date(2024, 2, 1), date(2024, 2, 28)):
            settlement = compute_settlement(
                Decimal("99.99"), date(2024, 2, 15), now, [unpaid_prior_bill], policy
            )
            assert settlement.payable_after_due_date >= settlement.payable_within_due_date

    def test_no_rounding(self) -> None:
        """Test fractional amounts are kept exact."""
        settlement = compute_settlement(Decimal("0.125"), date(2024, 1, 1), date(2024, 1, 1))

        assert settlement.payable_within_due_date == Decimal("0.125")

    def test_negative_base_amount(self) -> None:
        """Test a negative base amount is rejected."""
        with pytest.raises(InvalidInputError, match="negative"):
            compute_settlement(Decimal("-1"), date(2024, 1, 1), date(2024, 1, 1))

    def test_missing_base_amount(self) -> None:
        """Test a missing base amount is rejected."""
        with pytest.raises(InvalidInputError):
            compute_settlement(None, date(2024, 1, 1), date(2024, 1, 1))

    def test_missing_due_date(self) -> None:
        """Test a missing due date is rejected."""
        with pytest.raises(InvalidInputError, match="Due date"):
            compute_settlement(Decimal("10"), None, date(2024, 1, 1))

    def test_is_overdue(self) -> None:
        """Test the overdue check compares calendar days."""
        assert is_overdue(date(2024, 1, 15), date(2024, 1, 16))
        assert not is_overdue(date(2024, 1, 15), datetime(2024, 1, 15, 18, 0))
        assert not is_overdue(date(2024, 1, 15), date(2024, 1, 16), paid=True)


class TestSettleBill:
    """Tests for settle_bill against a store."""

    def test_uses_prior_history_only(
        self,
        store: InMemoryBillingStore,
        utility_bill: BillRecord,
        unpaid_prior_bill: BillRecord,
    ) -> None:
        """Test history excludes the bill itself and later bills."""
        later = replace(
            unpaid_prior_bill,
            bill_number="ELE-2024-003",
            period_date=date(2024, 3, 1),
        )
        for bill in (unpaid_prior_bill, utility_bill, later):
            store.create_bill(bill)

        settlement, history = settle_bill(
            store, utility_bill, date(2024, 2, 16), LateSurchargePolicy(flat=Decimal("50"))
        )

        assert [h.bill_number for h in history] == ["ELE-2024-001"]
        assert settlement.payable_after_due_date == Decimal("927.50")

    def test_history_capped(self, store: InMemoryBillingStore, utility_bill: BillRecord) -> None:
        """Test at most history_limit prior bills are used."""
        for month in range(1, 13):
            store.create_bill(
                BillRecord(
                    business_id=utility_bill.business_id,
                    bill_number=f"ELE-2023-{month:03d}",
                    kind=BillKind.ELECTRICITY,
                    period_date=date(2023, month, 1),
                    issue_date=date(2023, month, 1),
                    due_date=date(2023, month, 15),
                    amount=Decimal("10"),
                )
            )
        store.create_bill(utility_bill)

        settlement, history = settle_bill(store, utility_bill, date(2024, 2, 1), history_limit=5)

        assert len(history) == 5
        assert history[0].bill_number == "ELE-2023-012"
        assert settlement.arrears == Decimal("50")
