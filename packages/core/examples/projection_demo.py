#!/usr/bin/env python3
"""
Household Projection Demonstration

This script demonstrates the complete projection workflow:
1. Create a household plan
2. Project it year by year until the death year
3. Summarize retirement readiness and lifetime cash flows
4. Compare against a lower-growth scenario

Amounts are in units of 10,000 KRW.

Run: python examples/projection_demo.py
"""

from decimal import Decimal

from nestplan_core import (
    HouseholdPlan,
    ProjectionEngine,
    RateOverrides,
    apply_rate_overrides,
    calculate_lifetime_totals,
    compare_projections,
    estimate_dc_pension,
    required_monthly_saving,
    summarize_projection,
)
from nestplan_core.logging_config import configure_logging
from nestplan_core.models import (
    AllocationRule,
    Debt,
    Expense,
    Income,
    Pension,
    Profile,
    RealEstate,
    Saving,
)


def create_sample_plan() -> HouseholdPlan:
    """Create a sample household plan with realistic data."""

    profile = Profile(
        name="Kim",
        birth_year=1985,
        retirement_age=60,
        current_cash=Decimal("3000"),
        target_assets=Decimal("150000"),
    )

    incomes = [
        Income(
            id="salary",
            title="Salary",
            start_year=2025,
            end_year=2044,
            amount=Decimal("550"),
            growth_rate=Decimal("3.3"),
        ),
    ]

    expenses = [
        Expense(
            id="living",
            title="Living costs",
            start_year=2025,
            end_year=2074,
            amount=Decimal("280"),
            growth_rate=Decimal("1.89"),
        ),
    ]

    savings = [
        Saving(
            id="isa",
            title="ISA",
            start_year=2025,
            end_year=2034,
            amount=Decimal("50"),
            interest_rate=Decimal("4"),
            capital_gains_tax_rate=Decimal("9.9"),
        ),
    ]

    pensions = [
        Pension(
            id="nps",
            title="National pension",
            type="national",
            monthly_amount=Decimal("130"),
            inflation_rate=Decimal("1.89"),
            start_year=2050,
            end_year=2074,
        ),
        Pension(
            id="irp",
            title="IRP",
            type="personal",
            current_amount=Decimal("1500"),
            contribution_amount=Decimal("30"),
            contribution_start_year=2025,
            contribution_end_year=2044,
            return_rate=Decimal("4.5"),
            payment_start_year=2045,
            payment_years=20,
        ),
    ]

    real_estates = [
        RealEstate(
            id="apartment",
            title="Apartment",
            start_year=2025,
            end_year=2074,
            current_value=Decimal("60000"),
            growth_rate=Decimal("2"),
            convert_to_pension=True,
            pension_start_year=2050,
            monthly_pension_amount=Decimal("90"),
        ),
    ]

    debts = [
        Debt(
            id="mortgage",
            title="Mortgage",
            start_year=2025,
            end_year=2054,
            debt_amount=Decimal("25000"),
            interest_rate=Decimal("4.2"),
            debt_type="grace",
            grace_period=3,
        ),
    ]

    allocation_rules = {
        year: [
            AllocationRule(target_type="cash", ratio=Decimal("70")),
            AllocationRule(target_type="pension", target_id="irp", ratio=Decimal("30")),
        ]
        for year in range(2025, 2044)
    }

    return HouseholdPlan(
        profile=profile,
        incomes=incomes,
        expenses=expenses,
        savings=savings,
        pensions=pensions,
        real_estates=real_estates,
        debts=debts,
        allocation_rules=allocation_rules,
    )


def main():
    """Run the household projection demonstration."""
    configure_logging("WARNING")

    print("=" * 70)
    print("NESTPLAN CORE - Household Projection Demo")
    print("=" * 70)
    print()

    # Step 1: Create sample data
    print("Step 1: Creating sample household plan...")
    plan = create_sample_plan()
    print(f"  - Birth Year: {plan.profile.birth_year}")
    print(f"  - Retirement Year: {plan.profile.retirement_year}")
    print(f"  - Entities: {len(plan.all_entities)}")
    print()

    # Step 2: Run projection
    print("Step 2: Projecting year by year...")
    engine = ProjectionEngine()
    result = engine.project(plan, current_year=2025)
    print(f"  - Years: {result.first_year}-{result.last_year}")
    for snapshot in result.snapshots[::5]:
        print(
            f"  {snapshot.year} (age {snapshot.age}): "
            f"net cash flow {snapshot.net_cash_flow:>10,.0f}  "
            f"cash {snapshot.cash:>10,.0f}  "
            f"net assets {snapshot.net_assets:>12,.0f}"
        )
    print()

    # Step 3: Summaries
    print("Step 3: Summarizing...")
    summary = summarize_projection(result, plan.profile)
    print(f"  - Net Assets at Retirement: {summary.net_assets_at_retirement:,.0f}")
    print(f"  - Meets Target: {summary.meets_target}")
    print(f"  - Peak Net Assets: {summary.peak_net_assets:,.0f} ({summary.peak_year})")
    print(f"  - First Cash Shortfall: {summary.first_cash_shortfall_year}")

    totals = calculate_lifetime_totals(result.snapshots)
    print(f"  - Lifetime Supply: {totals.total_supply:,.0f}")
    print(f"  - Lifetime Demand: {totals.total_demand:,.0f}")
    for line in totals.demand[:3]:
        print(f"      {line.label}: {line.amount:,.0f}")
    print()

    # Step 4: Scenario
    print("Step 4: Comparing a low-growth scenario...")
    low_growth = apply_rate_overrides(
        plan,
        RateOverrides(income_growth_rate=Decimal("1.5"), pension_return_rate=Decimal("2")),
    )
    alternative = engine.project(low_growth, current_year=2025)
    comparisons = compare_projections(result, alternative)
    final = comparisons[-1]
    print(f"  - Net Assets Delta in {final.year}: {final.net_assets_delta:,.0f}")
    print()

    # Step 5: Calculators
    print("Step 5: What-if calculators...")
    goal = required_monthly_saving(Decimal("10000"), 10, Decimal("5"))
    print(f"  - Monthly saving for 10,000 in 10 years at 5%: {goal.monthly_saving}")
    dc = estimate_dc_pension(Decimal("450"))
    print(f"  - Pre-tax monthly for 450 net: {dc.pre_tax_monthly} (bracket {dc.marginal_rate}%)")
    print(f"  - DC deposit per year: {dc.annual_contribution}")

    print()
    print("=" * 70)
    print("Demo complete!")
    print("=" * 70)


if __name__ == "__main__":
    main()
