"""Uniform view over the plan's entity variants.

``normalize_plan`` dispatches once over the closed set of entity types and
wraps each entity in a ``NormalizedEntity`` that knows its cash-flow
category, the balance source type it contributes to snapshots, and the
year its ``current_value`` refers to.
"""

from dataclasses import dataclass
from decimal import Decimal
from functools import cached_property
from typing import Optional

from .debt import build_debt_schedule
from .models.entities import (
    ZERO,
    Asset,
    Debt,
    Entity,
    Expense,
    HouseholdPlan,
    Income,
    Pension,
    RealEstate,
    Saving,
    periods_per_year,
)
from .models.results import CashflowCategory, DebtScheduleRow, PensionScheduleRow, SourceType
from .pension import build_pension_schedule, national_pension_benefit


# entity type -> (cash-flow category, balance source type)
_VARIANTS: dict[type, tuple[CashflowCategory, Optional[SourceType]]] = {
    Income: (CashflowCategory.INCOME, None),
    Expense: (CashflowCategory.EXPENSE, None),
    Saving: (CashflowCategory.SAVING, SourceType.SAVING),
    Pension: (CashflowCategory.PENSION, SourceType.PENSION),
    RealEstate: (CashflowCategory.REAL_ESTATE, SourceType.REAL_ESTATE),
    Debt: (CashflowCategory.DEBT, SourceType.DEBT),
    Asset: (CashflowCategory.ASSET, SourceType.ASSET),
}


@dataclass(frozen=True)
class NormalizedEntity:
    """An entity together with its projection metadata."""

    entity: Entity
    category: CashflowCategory
    source_type: Optional[SourceType]
    base_year: int

    @property
    def id(self) -> str:
        return self.entity.id

    @property
    def label(self) -> str:
        return self.entity.label

    def is_active(self, year: int) -> bool:
        return self.entity.active_in_year(year)

    def annual_amount(self, year: int) -> Decimal:
        """Nominal annual cash amount in ``year``.

        Debt service and funded pension payouts are read from the entity's
        schedule. A funded pension reports its contribution while the
        contribution window is open.
        """
        entity = self.entity
        if isinstance(entity, Debt):
            row = self.debt_row(year)
            return row.payment if row else ZERO
        if isinstance(entity, Pension):
            if not entity.is_funded:
                return national_pension_benefit(entity, year)
            if entity.in_contribution_window(year):
                return entity.annual_contribution
            row = self.pension_schedule.get(year)
            return row.payment if row else ZERO
        return entity.flow_in_year(year)

    @cached_property
    def debt_schedule(self) -> tuple[DebtScheduleRow, ...]:
        """Repayment schedule, built on first use (debts only)."""
        if not isinstance(self.entity, Debt):
            return ()
        return tuple(build_debt_schedule(self.entity))

    def debt_row(self, year: int) -> Optional[DebtScheduleRow]:
        for row in self.debt_schedule:
            if row.year == year:
                return row
        return None

    @cached_property
    def pension_schedule(self) -> dict[int, PensionScheduleRow]:
        """Standalone schedule of a funded pension by year, built on first use.

        Surplus allocations are not included; the projection engine advances
        pensions itself.
        """
        entity = self.entity
        if not isinstance(entity, Pension) or not entity.is_funded:
            return {}
        return {row.year: row for row in build_pension_schedule(entity, self.base_year)}


def normalize_entity(entity: Entity, first_year: int) -> NormalizedEntity:
    try:
        category, source_type = _VARIANTS[type(entity)]
    except KeyError:
        raise TypeError(f"Unsupported entity type: {type(entity).__name__}") from None
    return NormalizedEntity(
        entity=entity,
        category=category,
        source_type=source_type,
        base_year=max(entity.start_year, first_year),
    )


def normalize_plan(plan: HouseholdPlan, first_year: int) -> tuple[NormalizedEntity, ...]:
    """Normalize every entity of ``plan`` for a projection starting at ``first_year``."""
    return tuple(normalize_entity(entity, first_year) for entity in plan.all_entities)


__all__ = [
    "NormalizedEntity",
    "normalize_entity",
    "normalize_plan",
    "periods_per_year",
]
