"""Year-by-year household projection.

The projection is a left fold over the years from the current year to the
year before the household head reaches the configured death age. Each step
takes the previous ``ProjectionState`` and returns a new state plus an
immutable ``YearSnapshot``:

1. Advance saving and funded pension balances
2. Collect positive and negative cash-flow items
3. Cover a shortfall with withdrawals, or allocate a surplus
4. Update cash and list asset and debt balances

If any step fails the fold stops with a ``ProjectionError`` that keeps the
snapshots already computed.
"""

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

import structlog

from .cashflow import (
    advance_saving,
    allocate_surplus,
    apply_withdrawals,
    collect_line_items,
    net_cash_flow,
)
from .config import ProjectionSettings
from .exceptions import NestplanError, PlanValidationError, ProjectionError
from .models.entities import (
    ZERO,
    AllocationTargetType,
    Asset,
    Debt,
    HouseholdPlan,
    Pension,
    RealEstate,
    Saving,
)
from .models.results import (
    AuditEntry,
    BalanceItem,
    PensionState,
    ProjectionResult,
    SourceType,
    YearBreakdown,
    YearSnapshot,
)
from .normalizer import NormalizedEntity, normalize_plan
from .pension import advance_pension, initial_pension_state

logger = structlog.get_logger()

METHODOLOGY_VERSION = "1.0"


@dataclass(frozen=True)
class ProjectionState:
    """Balances carried from one projected year to the next."""

    cash: Decimal
    saving_balances: Mapping[str, Decimal]
    saving_principals: Mapping[str, Decimal]
    pension_states: Mapping[str, PensionState]
    year: Optional[int] = None  # Last completed year

    @classmethod
    def initial(
        cls,
        plan: HouseholdPlan,
        entities: Sequence[NormalizedEntity],
        first_year: int,
    ) -> "ProjectionState":
        """Opening balances before ``first_year``."""
        balances: dict[str, Decimal] = {}
        principals: dict[str, Decimal] = {}
        pensions: dict[str, PensionState] = {}

        for normalized in entities:
            entity = normalized.entity
            if isinstance(entity, Saving):
                opening = entity.current_amount if entity.end_year >= first_year else ZERO
                balances[entity.id] = opening
                principals[entity.id] = opening
            elif isinstance(entity, Pension) and entity.is_funded:
                pensions[entity.id] = initial_pension_state(entity, first_year)

        return cls(
            cash=plan.profile.current_cash,
            saving_balances=MappingProxyType(balances),
            saving_principals=MappingProxyType(principals),
            pension_states=MappingProxyType(pensions),
        )


class ProjectionEngine:
    """
    Project a household plan year by year.

    The engine holds only configuration and the audit log of its most
    recent projection; it keeps no state between projections.
    """

    def __init__(self, settings: Optional[ProjectionSettings] = None):
        """
        Initialize engine.

        Args:
            settings: Projection settings (default: from environment)
        """
        self.settings = settings or ProjectionSettings()
        self.methodology_version = METHODOLOGY_VERSION
        self._audit_log: list[AuditEntry] = []

    def _log_step(
        self,
        step: str,
        input_value: str,
        output_value: str,
        source: str,
        notes: Optional[str] = None,
        year: Optional[int] = None,
    ) -> None:
        """Add an entry to the audit log."""
        entry = AuditEntry(
            step=step,
            input_value=input_value,
            output_value=output_value,
            source=source,
            notes=notes,
            year=year,
        )
        self._audit_log.append(entry)
        logger.debug(
            "calculation_step",
            step=step,
            year=year,
            input=input_value,
            output=output_value,
            source=source,
        )

    def last_year(self, plan: HouseholdPlan) -> int:
        """Last projected year: the year before the death age is reached."""
        return plan.profile.birth_year + self.settings.death_age - 1

    def project(self, plan: HouseholdPlan, current_year: int) -> ProjectionResult:
        """
        Run the projection from ``current_year`` to the death year.

        Args:
            plan: Household plan
            current_year: First projected year

        Returns:
            ProjectionResult with one snapshot per year

        Raises:
            PlanValidationError: If ``current_year`` is after the death year
            ProjectionError: If a year cannot be computed
        """
        self._audit_log = []
        last_year = self.last_year(plan)
        if current_year > last_year:
            raise PlanValidationError(
                f"Projection start {current_year} is after the last projected year {last_year}",
                field="current_year",
                value=current_year,
                constraint="current_year <= birth_year + death_age - 1",
            )

        entities = normalize_plan(plan, current_year)
        entities_by_id = {normalized.id: normalized for normalized in entities}
        state = ProjectionState.initial(plan, entities, current_year)

        logger.info(
            "projection_started",
            first_year=current_year,
            last_year=last_year,
            entities=len(entities),
        )

        snapshots: list[YearSnapshot] = []
        for year in range(current_year, last_year + 1):
            try:
                state, snapshot = self._project_year(
                    plan, entities, entities_by_id, state, year, current_year
                )
            except NestplanError as e:
                entity_id = getattr(e, "entity_id", None) or getattr(e, "target_id", None)
                logger.error(
                    "projection_year_failed",
                    year=year,
                    entity_id=entity_id,
                    error=str(e),
                )
                raise ProjectionError(
                    f"Projection failed in {year}: {e.message}",
                    year=year,
                    entity_id=entity_id,
                    completed_snapshots=snapshots,
                    details={"cause": type(e).__name__, **e.details},
                ) from e

            snapshots.append(snapshot)
            self._log_step(
                step="year_projected",
                input_value=f"net_cash_flow={snapshot.net_cash_flow}",
                output_value=f"net_assets={snapshot.net_assets}",
                source="projection",
                notes=f"cash={snapshot.cash}",
                year=year,
            )

        logger.info(
            "projection_completed",
            years=len(snapshots),
            final_net_assets=str(snapshots[-1].net_assets),
        )
        return ProjectionResult(
            first_year=current_year,
            last_year=last_year,
            snapshots=tuple(snapshots),
            audit_log=tuple(self._audit_log),
            methodology_version=self.methodology_version,
        )

    def _project_year(
        self,
        plan: HouseholdPlan,
        entities: Sequence[NormalizedEntity],
        entities_by_id: Mapping[str, NormalizedEntity],
        state: ProjectionState,
        year: int,
        first_year: int,
    ) -> tuple[ProjectionState, YearSnapshot]:
        """Compute one year from the previous state."""
        saving_balances = dict(state.saving_balances)
        saving_principals = dict(state.saving_principals)
        pension_states = dict(state.pension_states)

        # 1. Balances
        saving_years = {}
        pension_rows = {}
        for normalized in entities:
            entity = normalized.entity
            if isinstance(entity, Saving):
                result = advance_saving(
                    entity, year, saving_balances[entity.id], saving_principals[entity.id]
                )
                saving_years[entity.id] = result
                saving_balances[entity.id] = result.balance
                saving_principals[entity.id] = result.principal
            elif isinstance(entity, Pension) and entity.is_funded:
                pension_state, row = advance_pension(entity, year, pension_states[entity.id])
                pension_states[entity.id] = pension_state
                pension_rows[entity.id] = row

        # 2. Cash-flow items
        positives, negatives = collect_line_items(
            entities, year, first_year, saving_years, pension_rows
        )
        net = net_cash_flow(positives, negatives)
        cash = state.cash
        allocations = ()

        # 3. Shortfall or surplus
        if net < 0:
            withdrawal_items, withdrawn = apply_withdrawals(
                plan.withdrawal_rules.get(year), year, saving_balances, entities_by_id
            )
            for saving_id, amount in withdrawn.items():
                balance = saving_balances[saving_id]
                saving_principals[saving_id] = saving_principals[saving_id] * (balance - amount) / balance
                saving_balances[saving_id] = balance - amount
            positives = positives + withdrawal_items
            net = net_cash_flow(positives, negatives)
            cash = cash + net
        elif net > 0:
            allocations = allocate_surplus(
                net, plan.allocation_rules.get(year), year, entities_by_id
            )
            for allocation in allocations:
                if allocation.target_type == AllocationTargetType.CASH:
                    cash = cash + allocation.amount
                elif allocation.target_type == AllocationTargetType.SAVING:
                    saving_balances[allocation.target_id] += allocation.amount
                    saving_principals[allocation.target_id] += allocation.amount
                else:
                    current = pension_states[allocation.target_id]
                    pension_states[allocation.target_id] = current.model_copy(
                        update={"balance": current.balance + allocation.amount}
                    )

        # 4. Balances
        asset_items, debt_items = self._balance_items(
            entities, year, cash, saving_balances, pension_states
        )
        total_assets = sum((item.amount for item in asset_items), ZERO)
        total_debt = sum((item.amount for item in debt_items), ZERO)

        snapshot = YearSnapshot(
            year=year,
            age=plan.profile.age_in_year(year),
            breakdown=YearBreakdown(
                positives=tuple(positives),
                negatives=tuple(negatives),
                allocations=allocations,
                asset_items=tuple(asset_items),
                debt_items=tuple(debt_items),
            ),
            net_cash_flow=net,
            cash=cash,
            total_assets=total_assets,
            total_debt=total_debt,
            net_assets=total_assets - total_debt,
        )
        new_state = replace(
            state,
            year=year,
            cash=cash,
            saving_balances=MappingProxyType(saving_balances),
            saving_principals=MappingProxyType(saving_principals),
            pension_states=MappingProxyType(pension_states),
        )
        return new_state, snapshot

    def _balance_items(
        self,
        entities: Sequence[NormalizedEntity],
        year: int,
        cash: Decimal,
        saving_balances: Mapping[str, Decimal],
        pension_states: Mapping[str, PensionState],
    ) -> tuple[list[BalanceItem], list[BalanceItem]]:
        """End-of-year asset and debt balances."""
        tolerance = self.settings.balance_tolerance
        asset_items: list[BalanceItem] = []
        debt_items: list[BalanceItem] = []

        if cash >= 0:
            asset_items.append(BalanceItem(label="Cash", source_type=SourceType.CASH, amount=cash))
        else:
            debt_items.append(BalanceItem(label="Cash", source_type=SourceType.CASH, amount=-cash))

        for normalized in entities:
            entity = normalized.entity
            amount = None
            target = asset_items

            if isinstance(entity, Saving):
                amount = saving_balances[entity.id]
            elif isinstance(entity, Pension) and entity.is_funded:
                amount = pension_states[entity.id].balance
            elif isinstance(entity, RealEstate):
                sold = year == entity.end_year and not entity.convert_to_pension
                if entity.active_in_year(year) and not sold:
                    amount = entity.value_in_year(year, normalized.base_year)
            elif isinstance(entity, Asset):
                if entity.active_in_year(year) and year < entity.end_year:
                    amount = entity.value_in_year(year, normalized.base_year)
            elif isinstance(entity, Debt):
                row = normalized.debt_row(year) if entity.active_in_year(year) else None
                if row is not None:
                    amount = row.remaining_balance
                    target = debt_items

            if amount is not None and amount > tolerance:
                target.append(
                    BalanceItem(
                        label=normalized.label,
                        source_type=normalized.source_type,
                        amount=amount,
                        source_id=entity.id,
                    )
                )

        return asset_items, debt_items

    def get_audit_log(self) -> list[AuditEntry]:
        """Audit log of the most recent projection."""
        return list(self._audit_log)


def project_household(
    plan: HouseholdPlan,
    current_year: Optional[int] = None,
    settings: Optional[ProjectionSettings] = None,
) -> ProjectionResult:
    """Project ``plan`` from ``current_year`` (default: this calendar year)."""
    if current_year is None:
        current_year = date.today().year
    return ProjectionEngine(settings).project(plan, current_year)
