"""Tests for pension accumulation and payout."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from nestplan_core.exceptions import AmortizationError
from nestplan_core.models import (
    PaymentTiming,
    Pension,
    PensionPhase,
    PensionState,
    PensionType,
)
from nestplan_core.normalizer import normalize_entity
from nestplan_core.pension import (
    advance_pension,
    annuity_payment,
    build_pension_schedule,
    initial_pension_state,
    national_pension_benefit,
    severance_lump_sum,
)


@pytest.fixture
def funded_pension() -> Pension:
    """A personal pension with an opening balance and no contributions."""
    return Pension(
        id="ipp",
        title="Personal pension",
        type=PensionType.PERSONAL,
        current_amount=Decimal("10000"),
        return_rate=Decimal("4"),
        payment_start_year=2030,
        payment_years=10,
    )


@pytest.fixture
def contributing_pension() -> Pension:
    """A retirement pension with a contribution window and a deferral gap."""
    return Pension(
        id="db",
        title="Retirement plan",
        type=PensionType.RETIREMENT,
        contribution_amount=Decimal("10"),
        contribution_start_year=2025,
        contribution_end_year=2029,
        return_rate=Decimal("0"),
        payment_start_year=2032,
        payment_years=5,
    )


class TestPensionModel:
    """Test suite for pension window derivation."""

    def test_window_derived_from_payout(self, funded_pension: Pension):
        """Without contributions the pension runs over its payout window."""
        assert funded_pension.start_year == 2030
        assert funded_pension.end_year == 2039
        assert funded_pension.payment_end_year == 2039

    def test_window_derived_from_contributions(self, contributing_pension: Pension):
        """With contributions the pension starts when contributions start."""
        assert contributing_pension.start_year == 2025
        assert contributing_pension.end_year == 2036

    def test_payment_years_from_end_year(self):
        """payment_years can be derived from payment_end_year."""
        pension = Pension(
            type="personal",
            current_amount=Decimal("100"),
            payment_start_year=2030,
            payment_end_year=2034,
        )

        assert pension.payment_years == 5

    def test_national_requires_window(self):
        """A national pension needs explicit start and end years."""
        with pytest.raises(ValidationError):
            Pension(type="national", monthly_amount=Decimal("100"))

    def test_contribution_overlapping_payout_rejected(self):
        """Contributions must stop before the payout starts."""
        with pytest.raises(ValidationError):
            Pension(
                type="retirement",
                contribution_amount=Decimal("10"),
                contribution_start_year=2025,
                contribution_end_year=2030,
                payment_start_year=2030,
                payment_years=5,
            )

    def test_camel_case_input(self):
        """Data-entry field names are accepted."""
        pension = Pension.model_validate(
            {
                "type": "personal",
                "currentAmount": "500",
                "returnRate": "3",
                "paymentStartYear": 2040,
                "paymentYears": 20,
                "paymentTiming": "due",
            }
        )

        assert pension.current_amount == Decimal("500")
        assert pension.payment_timing == PaymentTiming.DUE


class TestPayout:
    """Test suite for annuity payouts."""

    def test_payout_exhausts_balance(self, funded_pension: Pension):
        """The final payout leaves exactly zero."""
        schedule = build_pension_schedule(funded_pension)

        assert len(schedule) == 10
        assert schedule[-1].balance == 0

    def test_intermediate_balances_non_negative(self, funded_pension: Pension):
        """The balance never goes negative during payout."""
        schedule = build_pension_schedule(funded_pension)

        assert all(row.balance >= 0 for row in schedule)
        assert all(row.phase == PensionPhase.PAYOUT for row in schedule)

    def test_payments_are_level(self, funded_pension: Pension):
        """Every payment equals the annuity on the opening balance."""
        expected = annuity_payment(Decimal("10000"), Decimal("4"), 10)
        schedule = build_pension_schedule(funded_pension)

        for row in schedule:
            assert abs(row.payment - expected) < Decimal("0.0001")

    def test_due_timing_exhausts_balance(self):
        """Start-of-year payments also exhaust the balance, and are smaller."""
        ordinary = Pension(
            type="personal",
            current_amount=Decimal("10000"),
            return_rate=Decimal("4"),
            payment_start_year=2030,
            payment_years=10,
        )
        due = ordinary.model_copy(update={"payment_timing": PaymentTiming.DUE})

        due_schedule = build_pension_schedule(due)
        ordinary_schedule = build_pension_schedule(ordinary)

        assert due_schedule[-1].balance == 0
        assert all(row.balance >= 0 for row in due_schedule)
        assert due_schedule[0].payment < ordinary_schedule[0].payment

    def test_zero_payment_years_rejected(self):
        """An empty payout window cannot be amortized."""
        pension = Pension(
            id="empty",
            type="personal",
            current_amount=Decimal("1000"),
            payment_start_year=2030,
            payment_years=0,
        )

        with pytest.raises(AmortizationError) as exc_info:
            build_pension_schedule(pension)

        assert exc_info.value.entity_id == "empty"


class TestAccumulation:
    """Test suite for the accumulation and deferral phases."""

    def test_contributions_accumulate(self, contributing_pension: Pension):
        """Five years of 10/month at 0% accumulate 600."""
        schedule = build_pension_schedule(contributing_pension)
        by_year = {row.year: row for row in schedule}

        assert by_year[2025].phase == PensionPhase.ACCUMULATION
        assert by_year[2025].contribution == Decimal("120")
        assert by_year[2029].balance == Decimal("600")

    def test_deferral_years(self, contributing_pension: Pension):
        """Years between contributions and payout are deferral years."""
        schedule = build_pension_schedule(contributing_pension)
        by_year = {row.year: row for row in schedule}

        assert by_year[2030].phase == PensionPhase.DEFERRAL
        assert by_year[2031].phase == PensionPhase.DEFERRAL
        assert by_year[2031].balance == Decimal("600")

    def test_payout_after_deferral(self, contributing_pension: Pension):
        """600 paid over 5 years at 0% is 120 a year."""
        schedule = build_pension_schedule(contributing_pension)
        payouts = [row.payment for row in schedule if row.phase == PensionPhase.PAYOUT]

        assert payouts == [Decimal("120")] * 5

    def test_deferral_compounds(self):
        """The balance keeps earning its return while deferred."""
        pension = Pension(
            type="retirement",
            contribution_amount=Decimal("100"),
            contribution_frequency="yearly",
            contribution_start_year=2025,
            contribution_end_year=2025,
            return_rate=Decimal("10"),
            payment_start_year=2028,
            payment_years=1,
        )
        schedule = build_pension_schedule(pension)
        by_year = {row.year: row for row in schedule}

        assert by_year[2025].balance == Decimal("100")
        assert by_year[2027].balance == Decimal("121")
        assert by_year[2028].payment == Decimal("133.1")

    def test_extra_contribution_raises_payout(self, contributing_pension: Pension):
        """Money added before the payout raises every payment."""
        state = PensionState(balance=Decimal("600"))
        state, _ = advance_pension(
            contributing_pension, 2031, state, extra_contribution=Decimal("400")
        )
        state, row = advance_pension(contributing_pension, 2032, state)

        assert row.payment == Decimal("200")

    def test_first_year_skips_earlier_accumulation(self, contributing_pension: Pension):
        """Schedules start at the first simulated year."""
        schedule = build_pension_schedule(contributing_pension, first_year=2028)

        assert schedule[0].year == 2028
        assert schedule[1].balance == Decimal("240")


class TestNationalPension:
    """Test suite for national pension benefits."""

    def test_benefit_indexed_by_inflation(self):
        """monthly x 12, growing with inflation."""
        pension = Pension(
            type="national",
            monthly_amount=Decimal("100"),
            inflation_rate=Decimal("2"),
            start_year=2030,
            end_year=2034,
        )

        assert national_pension_benefit(pension, 2030) == Decimal("1200")
        assert national_pension_benefit(pension, 2031) == Decimal("1224")
        assert national_pension_benefit(pension, 2029) == 0
        assert normalize_entity(pension, 2030).annual_amount(2031) == Decimal("1224")


class TestSeverance:
    """Test suite for severance pay."""

    def test_lump_sum_amount(self):
        """Average salary x years of service."""
        pension = Pension(
            type="severance",
            average_salary=Decimal("400"),
            years_of_service=Decimal("20"),
            payment_start_year=2030,
        )

        assert severance_lump_sum(pension) == Decimal("8000")
        assert pension.payment_years == 1

    def test_paid_once(self):
        """A severance pension pays a single lump sum without compounding."""
        pension = Pension(
            type="severance",
            average_salary=Decimal("400"),
            years_of_service=Decimal("20"),
            return_rate=Decimal("5"),
            payment_start_year=2030,
            payment_years=10,
        )
        schedule = build_pension_schedule(pension)

        assert len(schedule) == 1
        assert schedule[0].year == 2030
        assert schedule[0].payment == Decimal("8000")
        assert schedule[0].balance == 0


class TestPayoutUnderWay:
    """Test suite for projections starting inside or after the payout window."""

    def test_remaining_years_share_the_balance(self):
        """A payout under way is spread evenly over the years left."""
        pension = Pension(
            type="retirement",
            current_amount=Decimal("1500"),
            payment_start_year=2020,
            payment_years=20,
        )
        schedule = build_pension_schedule(pension, first_year=2025)

        assert [row.year for row in schedule] == list(range(2025, 2040))
        assert [row.payment for row in schedule] == [Decimal("100")] * 15
        assert schedule[-1].balance == 0

    def test_fixed_payment_with_return(self):
        """With a return the payment stays level until the balance is exhausted."""
        pension = Pension(
            type="retirement",
            current_amount=Decimal("1000"),
            return_rate=Decimal("5"),
            payment_start_year=2020,
            payment_years=20,
        )
        schedule = build_pension_schedule(pension, first_year=2025)
        payments = [row.payment for row in schedule]

        assert payments[0] == annuity_payment(Decimal("1000"), Decimal("5"), 15)
        assert abs(payments[-1] - payments[0]) < Decimal("0.01")
        assert schedule[-1].balance == 0

    def test_payout_finished_before_first_year(self):
        """A pension fully paid out before the projection opens empty."""
        pension = Pension(
            type="personal",
            current_amount=Decimal("5000"),
            payment_start_year=2010,
            payment_years=10,
        )

        assert initial_pension_state(pension, 2025).balance == 0
        assert initial_pension_state(pension, 2015).balance == Decimal("5000")
        assert build_pension_schedule(pension, first_year=2025) == []

    def test_severance_paid_before_first_year(self):
        """A lump sum dated before the projection counts as already paid."""
        pension = Pension(
            type="severance",
            average_salary=Decimal("400"),
            years_of_service=Decimal("20"),
            payment_start_year=2020,
        )

        assert initial_pension_state(pension, 2025).balance == 0
        assert initial_pension_state(pension, 2020).balance == Decimal("8000")


class TestNormalizedPensionFlow:
    """Test suite for the normalized yearly pension amount."""

    def test_contribution_then_payout(self, contributing_pension: Pension):
        """Contributions while the window is open, then the scheduled payout."""
        normalized = normalize_entity(contributing_pension, 2025)

        assert normalized.annual_amount(2025) == Decimal("120")
        assert normalized.annual_amount(2030) == 0
        assert normalized.annual_amount(2032) == Decimal("120")

    def test_schedule_built_once(self, contributing_pension: Pension):
        """Repeated lookups reuse the cached schedule."""
        normalized = normalize_entity(contributing_pension, 2025)

        assert normalized.pension_schedule is normalized.pension_schedule
        assert set(normalized.pension_schedule) == set(range(2025, 2037))
