"""Tests for debt amortization schedules."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from nestplan_core.debt import amortization_payment, build_debt_schedule
from nestplan_core.exceptions import AmortizationError
from nestplan_core.models import Debt, DebtRepaymentType
from nestplan_core.normalizer import normalize_entity


def make_debt(debt_type: DebtRepaymentType, **overrides) -> Debt:
    fields = dict(
        id="mortgage",
        title="Mortgage",
        start_year=2025,
        end_year=2034,
        debt_amount=Decimal("10000"),
        interest_rate=Decimal("5"),
        debt_type=debt_type,
    )
    fields.update(overrides)
    return Debt(**fields)


class TestAmortizationPayment:
    """Test suite for the level payment formula."""

    def test_equal_payment_value(self):
        """10,000 at 5% over 10 years should cost about 1,295.05 a year."""
        payment = amortization_payment(Decimal("10000"), Decimal("5"), 10)

        assert abs(payment - Decimal("1295.05")) < Decimal("0.01")

    def test_zero_rate_is_straight_line(self):
        """At 0% the payment is balance / periods."""
        assert amortization_payment(Decimal("10000"), Decimal("0"), 4) == Decimal("2500")

    def test_due_payment_is_discounted(self):
        """Payments at the start of the period should be one period cheaper."""
        ordinary = amortization_payment(Decimal("10000"), Decimal("5"), 10)
        due = amortization_payment(Decimal("10000"), Decimal("5"), 10, due=True)

        assert abs(due * Decimal("1.05") - ordinary) < Decimal("0.0001")

    def test_zero_periods_rejected(self):
        """Amortizing over no periods is rejected."""
        with pytest.raises(AmortizationError):
            amortization_payment(Decimal("10000"), Decimal("5"), 0)


class TestEqualPayment:
    """Test suite for equal-payment (annuity) debts."""

    def test_schedule_covers_every_year(self):
        """One row per year of the debt window."""
        schedule = build_debt_schedule(make_debt(DebtRepaymentType.EQUAL))

        assert [row.year for row in schedule] == list(range(2025, 2035))

    def test_principal_sums_to_amount(self):
        """Principal repaid should equal the borrowed amount."""
        schedule = build_debt_schedule(make_debt(DebtRepaymentType.EQUAL))

        total_principal = sum(row.principal for row in schedule)
        assert abs(total_principal - Decimal("10000")) <= Decimal("1")

    def test_final_balance_is_zero(self):
        """The last row should close the debt exactly."""
        schedule = build_debt_schedule(make_debt(DebtRepaymentType.EQUAL))

        assert schedule[-1].remaining_balance == 0

    def test_balance_strictly_decreases(self):
        """Each payment should reduce the remaining balance."""
        schedule = build_debt_schedule(make_debt(DebtRepaymentType.EQUAL))

        balances = [row.remaining_balance for row in schedule]
        assert all(later < earlier for earlier, later in zip(balances, balances[1:]))

    def test_payments_are_level(self):
        """Every payment should be about 1,295.05."""
        schedule = build_debt_schedule(make_debt(DebtRepaymentType.EQUAL))

        for row in schedule:
            assert abs(row.payment - Decimal("1295.05")) < Decimal("0.01")

    def test_interest_on_opening_balance(self):
        """Interest is charged on the balance at the start of the year."""
        schedule = build_debt_schedule(make_debt(DebtRepaymentType.EQUAL))

        for row in schedule:
            assert row.interest == row.opening_balance * Decimal("0.05")

    def test_zero_rate_straight_line(self):
        """At 0% every year repays an equal slice of principal."""
        schedule = build_debt_schedule(
            make_debt(DebtRepaymentType.EQUAL, interest_rate=Decimal("0"))
        )

        assert all(row.principal == Decimal("1000") for row in schedule)
        assert all(row.interest == 0 for row in schedule)


class TestBullet:
    """Test suite for bullet (interest-only) debts."""

    def test_interest_only_until_maturity(self):
        """Only interest is paid before the final year."""
        schedule = build_debt_schedule(make_debt(DebtRepaymentType.BULLET))

        for row in schedule[:-1]:
            assert row.principal == 0
            assert row.payment == Decimal("500")
            assert row.remaining_balance == Decimal("10000")

    def test_full_repayment_at_maturity(self):
        """The whole principal is repaid in the final year."""
        schedule = build_debt_schedule(make_debt(DebtRepaymentType.BULLET))

        final = schedule[-1]
        assert final.principal == Decimal("10000")
        assert final.payment == Decimal("10500")
        assert final.remaining_balance == 0

    def test_zero_rate_keeps_final_lump(self):
        """At 0% nothing is paid until the final lump sum."""
        schedule = build_debt_schedule(
            make_debt(DebtRepaymentType.BULLET, interest_rate=Decimal("0"))
        )

        assert all(row.payment == 0 for row in schedule[:-1])
        assert schedule[-1].payment == Decimal("10000")


class TestEqualPrincipal:
    """Test suite for equal-principal debts."""

    def test_fixed_principal_declining_interest(self):
        """Principal is constant and interest falls every year."""
        schedule = build_debt_schedule(make_debt(DebtRepaymentType.PRINCIPAL))

        assert all(row.principal == Decimal("1000") for row in schedule)
        interests = [row.interest for row in schedule]
        assert all(later < earlier for earlier, later in zip(interests, interests[1:]))
        assert schedule[0].payment == Decimal("1500")
        assert schedule[-1].remaining_balance == 0


class TestGrace:
    """Test suite for debts with an interest-only grace period."""

    def test_grace_then_amortize(self):
        """Interest only during grace, then equal payments over the rest."""
        debt = make_debt(DebtRepaymentType.GRACE, grace_period=3)
        schedule = build_debt_schedule(debt)

        for row in schedule[:3]:
            assert row.principal == 0
            assert row.payment == Decimal("500")

        expected = amortization_payment(Decimal("10000"), Decimal("5"), 7)
        for row in schedule[3:]:
            assert abs(row.payment - expected) < Decimal("0.0001")
        assert schedule[-1].remaining_balance == 0

    def test_zero_rate_grace_pays_nothing(self):
        """At 0% the grace years cost nothing, then principal is straight-line."""
        debt = make_debt(DebtRepaymentType.GRACE, grace_period=5, interest_rate=Decimal("0"))
        schedule = build_debt_schedule(debt)

        assert all(row.payment == 0 for row in schedule[:5])
        assert all(row.payment == Decimal("2000") for row in schedule[5:])

    def test_grace_covering_term_rejected(self):
        """A grace period as long as the term is rejected."""
        debt = make_debt(DebtRepaymentType.GRACE, grace_period=10)

        with pytest.raises(AmortizationError) as exc_info:
            build_debt_schedule(debt)

        assert exc_info.value.entity_id == "mortgage"
        assert exc_info.value.details["grace_period"] == 10

    def test_negative_grace_rejected(self):
        """A negative grace period is malformed input."""
        with pytest.raises(ValidationError):
            make_debt(DebtRepaymentType.GRACE, grace_period=-1)

    def test_grace_ignored_for_other_types(self):
        """grace_period only applies to grace debts."""
        schedule = build_debt_schedule(make_debt(DebtRepaymentType.EQUAL, grace_period=20))

        assert schedule[0].principal > 0


class TestDebtFlow:
    """Test suite for the normalized yearly debt service."""

    def test_flow_matches_schedule(self):
        """The yearly amount is the scheduled payment."""
        normalized = normalize_entity(make_debt(DebtRepaymentType.PRINCIPAL), 2025)

        assert normalized.annual_amount(2025) == Decimal("1500")
        assert normalized.annual_amount(2024) == 0
        assert normalized.annual_amount(2035) == 0

    def test_schedule_built_once(self):
        """Repeated lookups reuse the cached schedule."""
        normalized = normalize_entity(make_debt(DebtRepaymentType.EQUAL), 2025)

        assert normalized.debt_schedule is normalized.debt_schedule
