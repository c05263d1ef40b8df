"""Tests for projection summaries and what-if scenarios."""

from decimal import Decimal

import pytest

from nestplan_core.config import ProjectionSettings
from nestplan_core.models import (
    CashflowCategory,
    Debt,
    Expense,
    HouseholdPlan,
    Income,
    Pension,
    Profile,
)
from nestplan_core.projection import ProjectionEngine
from nestplan_core.scenarios import (
    DEFAULT_INCOME_GROWTH_RATE,
    RateOverrides,
    apply_rate_overrides,
    compare_projections,
)
from nestplan_core.summary import calculate_lifetime_totals, summarize_projection


@pytest.fixture
def engine() -> ProjectionEngine:
    """Engine with the standard death age."""
    return ProjectionEngine(ProjectionSettings(death_age=90))


@pytest.fixture
def plan() -> HouseholdPlan:
    """Salary until retirement, living costs for life, a national pension."""
    return HouseholdPlan(
        profile=Profile(
            birth_year=1970,
            retirement_age=60,
            current_cash=Decimal("1000"),
            target_assets=Decimal("50000"),
        ),
        incomes=[
            Income(id="salary", title="Salary", start_year=2025, end_year=2029, amount=Decimal("400")),
        ],
        expenses=[
            Expense(id="living", title="Living", start_year=2025, end_year=2059, amount=Decimal("200")),
        ],
        pensions=[
            Pension(
                id="nps",
                title="National pension",
                type="national",
                monthly_amount=Decimal("100"),
                start_year=2035,
                end_year=2059,
            ),
        ],
        debts=[
            Debt(
                id="loan",
                title="Loan",
                start_year=2025,
                end_year=2026,
                debt_amount=Decimal("1000"),
                interest_rate=Decimal("0"),
                debt_type="principal",
            ),
        ],
    )


class TestLifetimeTotals:
    """Test suite for lifetime cash-flow totals."""

    def test_lines_summed_across_years(self, engine: ProjectionEngine, plan: HouseholdPlan):
        """Each label is summed over the whole projection."""
        result = engine.project(plan, 2025)
        totals = calculate_lifetime_totals(result.snapshots)

        supply = {(t.category, t.label): t.amount for t in totals.supply}
        demand = {(t.category, t.label): t.amount for t in totals.demand}
        assert supply[(CashflowCategory.INCOME, "Salary")] == Decimal("24000")
        assert supply[(CashflowCategory.PENSION, "National pension")] == Decimal("30000")
        assert demand[(CashflowCategory.EXPENSE, "Living")] == Decimal("84000")
        assert demand[(CashflowCategory.DEBT, "Loan repayment")] == Decimal("1000")

    def test_sorted_descending(self, engine: ProjectionEngine, plan: HouseholdPlan):
        """Lines are ordered from largest to smallest."""
        totals = calculate_lifetime_totals(engine.project(plan, 2025).snapshots)

        amounts = [t.amount for t in totals.supply]
        assert amounts == sorted(amounts, reverse=True)
        assert totals.demand[0].label == "Living"

    def test_net_matches_projection(self, engine: ProjectionEngine, plan: HouseholdPlan):
        """Lifetime net equals the sum of yearly net cash flows."""
        result = engine.project(plan, 2025)
        totals = calculate_lifetime_totals(result.snapshots)

        assert totals.net == sum(s.net_cash_flow for s in result.snapshots)


class TestSummarizeProjection:
    """Test suite for the retirement readiness summary."""

    def test_retirement_figures(self, engine: ProjectionEngine, plan: HouseholdPlan):
        """Net assets at retirement are compared with the target."""
        result = engine.project(plan, 2025)
        summary = summarize_projection(result, plan.profile)

        at_retirement = result.snapshot_for(2030).net_assets
        assert summary.retirement_year == 2030
        assert summary.net_assets_at_retirement == at_retirement
        assert summary.target_gap == Decimal("50000") - at_retirement
        assert summary.meets_target is False

    def test_first_shortfall_and_peak(self, engine: ProjectionEngine, plan: HouseholdPlan):
        """Savings peak before retirement and cash eventually runs out."""
        result = engine.project(plan, 2025)
        summary = summarize_projection(result, plan.profile)

        assert summary.peak_year == 2029
        assert summary.first_cash_shortfall_year is not None
        assert summary.first_cash_shortfall_year > 2029
        assert summary.final_net_assets == result.snapshots[-1].net_assets

    def test_retirement_outside_projection(self, engine: ProjectionEngine, plan: HouseholdPlan):
        """No retirement figure when retirement precedes the projection."""
        result = engine.project(plan, 2040)
        summary = summarize_projection(result, plan.profile)

        assert summary.net_assets_at_retirement is None
        assert summary.meets_target is None


class TestRateOverrides:
    """Test suite for global rate assumptions."""

    def test_overrides_applied_to_copy(self, plan: HouseholdPlan):
        """The new plan carries the override and the input is untouched."""
        adjusted = apply_rate_overrides(plan, RateOverrides(income_growth_rate=Decimal("2")))

        assert adjusted.incomes[0].growth_rate == Decimal("2")
        assert plan.incomes[0].growth_rate == Decimal("0")
        assert adjusted.expenses[0].growth_rate == Decimal("0")

    def test_defaults(self, plan: HouseholdPlan):
        """The default assumptions cover income growth and inflation."""
        adjusted = apply_rate_overrides(plan, RateOverrides.defaults())

        assert adjusted.incomes[0].growth_rate == DEFAULT_INCOME_GROWTH_RATE
        assert adjusted.expenses[0].growth_rate == Decimal("1.89")
        assert adjusted.pensions[0].inflation_rate == Decimal("1.89")

    def test_ids_preserved(self, plan: HouseholdPlan):
        """Rules keep pointing at the same entities."""
        adjusted = apply_rate_overrides(plan, RateOverrides(debt_interest_rate=Decimal("4")))

        assert [e.id for e in adjusted.all_entities] == [e.id for e in plan.all_entities]
        assert adjusted.debts[0].interest_rate == Decimal("4")


class TestCompareProjections:
    """Test suite for projection comparison."""

    def test_deltas_for_overlapping_years(self, engine: ProjectionEngine, plan: HouseholdPlan):
        """Differences are alternative minus base, year by year."""
        base = engine.project(plan, 2025)
        alternative = engine.project(
            apply_rate_overrides(plan, RateOverrides(income_growth_rate=Decimal("10"))), 2027
        )

        comparisons = compare_projections(base, alternative)

        assert [c.year for c in comparisons] == list(range(2027, 2060))
        first = comparisons[0]
        assert first.net_assets_delta == first.alternative_net_assets - first.base_net_assets
