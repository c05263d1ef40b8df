"""Tests for the what-if calculators."""

from decimal import Decimal

import pytest

from nestplan_core.calculators import estimate_dc_pension, required_monthly_saving
from nestplan_core.config import TaxSolverSettings
from nestplan_core.exceptions import ConvergenceError, PlanValidationError


class TestRequiredMonthlySaving:
    """Test suite for the goal saving calculator."""

    def test_zero_rate_is_straight_division(self):
        """At 0% the deposit is target / months."""
        plan = required_monthly_saving(Decimal("10000"), 10, Decimal("0"))

        assert plan.monthly_saving == Decimal("83")
        assert plan.total_saving == Decimal("10000")
        assert plan.total_return == Decimal("0")

    def test_compounding_reduces_deposit(self):
        """At 5% a smaller deposit reaches the same target."""
        plan = required_monthly_saving(Decimal("10000"), 10, Decimal("5"))

        assert plan.monthly_saving == Decimal("64")
        assert abs(plan.total_saving + plan.total_return - Decimal("10000")) <= 1
        assert plan.total_return > 0

    def test_rounded_to_whole_units(self):
        """Results carry no fractional part."""
        plan = required_monthly_saving(Decimal("12345"), 7, Decimal("3.5"))

        assert plan.monthly_saving == plan.monthly_saving.to_integral_value()

    @pytest.mark.parametrize(
        "target, years, rate",
        [
            (Decimal("0"), 10, Decimal("5")),
            (Decimal("1000"), 0, Decimal("5")),
            (Decimal("1000"), 10, Decimal("-1")),
            (Decimal("1000"), 10, Decimal("101")),
        ],
    )
    def test_invalid_inputs_rejected(self, target, years, rate):
        """Out-of-range inputs are rejected."""
        with pytest.raises(PlanValidationError):
            required_monthly_saving(target, years, rate)


class TestEstimateDCPension:
    """Test suite for the DC pension calculator."""

    def test_one_month_of_pay_per_year(self):
        """The annual deposit is one month of pre-tax pay."""
        estimate = estimate_dc_pension(Decimal("300"), TaxSolverSettings())

        assert estimate.pre_tax_monthly > Decimal("300")
        assert estimate.annual_contribution == estimate.pre_tax_monthly
        assert abs(estimate.monthly_contribution * 12 - estimate.annual_contribution) <= 12

    def test_marginal_rate(self):
        """A net 300 a month falls in the 15% bracket."""
        estimate = estimate_dc_pension(Decimal("300"), TaxSolverSettings())

        assert estimate.marginal_rate == Decimal("15")

    def test_non_convergence_raises(self):
        """An unconverged solve is reported, never estimated."""
        settings = TaxSolverSettings(max_iterations=1, tolerance=Decimal("0.0001"))

        with pytest.raises(ConvergenceError):
            estimate_dc_pension(Decimal("300"), settings)
