"""What-if scenarios over a household plan.

``apply_rate_overrides`` replaces per-entity rate assumptions with global
ones (for example "what if all incomes grow at 2%?") and returns a new,
re-validated plan. ``compare_projections`` lines two projections up year
by year.
"""

from decimal import Decimal
from typing import Optional

import structlog
from pydantic import Field

from .models.entities import HouseholdPlan, PensionType, PlanModel
from .models.results import ProjectionResult, YearComparison

logger = structlog.get_logger()

DEFAULT_INCOME_GROWTH_RATE = Decimal("3.3")
DEFAULT_INFLATION_RATE = Decimal("1.89")


class RateOverrides(PlanModel):
    """Global rate assumptions in percent. None leaves entity rates as entered."""

    income_growth_rate: Optional[Decimal] = Field(default=None, gt=-100)
    expense_growth_rate: Optional[Decimal] = Field(default=None, gt=-100)
    saving_interest_rate: Optional[Decimal] = Field(default=None, gt=-100)
    real_estate_growth_rate: Optional[Decimal] = Field(default=None, gt=-100)
    asset_growth_rate: Optional[Decimal] = Field(default=None, gt=-100)
    debt_interest_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    national_pension_inflation_rate: Optional[Decimal] = Field(default=None, gt=-100)
    pension_return_rate: Optional[Decimal] = Field(default=None, gt=-100)

    @classmethod
    def defaults(cls) -> "RateOverrides":
        """Household-wide income growth and inflation defaults."""
        return cls(
            income_growth_rate=DEFAULT_INCOME_GROWTH_RATE,
            expense_growth_rate=DEFAULT_INFLATION_RATE,
            national_pension_inflation_rate=DEFAULT_INFLATION_RATE,
        )


def _override(records: list[dict], field: str, value: Optional[Decimal]) -> None:
    if value is None:
        return
    for record in records:
        record[field] = value


def apply_rate_overrides(plan: HouseholdPlan, overrides: RateOverrides) -> HouseholdPlan:
    """Return a copy of ``plan`` with ``overrides`` applied.

    The input plan is not modified. The result is re-validated.
    """
    data = plan.model_dump()

    _override(data["incomes"], "growth_rate", overrides.income_growth_rate)
    _override(data["expenses"], "growth_rate", overrides.expense_growth_rate)
    _override(data["savings"], "interest_rate", overrides.saving_interest_rate)
    _override(data["real_estates"], "growth_rate", overrides.real_estate_growth_rate)
    _override(data["assets"], "growth_rate", overrides.asset_growth_rate)
    _override(data["debts"], "interest_rate", overrides.debt_interest_rate)

    national = [p for p in data["pensions"] if p["pension_type"] == PensionType.NATIONAL]
    funded = [p for p in data["pensions"] if p["pension_type"] != PensionType.NATIONAL]
    _override(national, "inflation_rate", overrides.national_pension_inflation_rate)
    _override(funded, "return_rate", overrides.pension_return_rate)

    logger.debug(
        "rate_overrides_applied",
        overrides=overrides.model_dump(exclude_none=True, mode="json"),
    )
    return HouseholdPlan.model_validate(data)


def compare_projections(
    base: ProjectionResult,
    alternative: ProjectionResult,
) -> tuple[YearComparison, ...]:
    """Per-year differences (alternative minus base) for overlapping years."""
    base_by_year = {snapshot.year: snapshot for snapshot in base.snapshots}
    comparisons = []
    for snapshot in alternative.snapshots:
        reference = base_by_year.get(snapshot.year)
        if reference is None:
            continue
        comparisons.append(
            YearComparison(
                year=snapshot.year,
                base_net_assets=reference.net_assets,
                alternative_net_assets=snapshot.net_assets,
                net_assets_delta=snapshot.net_assets - reference.net_assets,
                net_cash_flow_delta=snapshot.net_cash_flow - reference.net_cash_flow,
            )
        )
    return tuple(comparisons)
