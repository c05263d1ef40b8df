"""Yearly cash-flow aggregation, surplus allocation and withdrawals.

Every active entity contributes labeled items to the year's ``positives``
(money coming in) or ``negatives`` (money going out). The difference is the
net cash flow:

- a surplus is split by the year's allocation rules into cash, savings and
  pensions; with no rule for the year it all goes to cash
- a shortfall is covered first by the year's withdrawal rules (drawing down
  saving balances), and whatever remains reduces cash, possibly below zero

Allocation and withdrawal rules are validated when applied. Ratios must sum
to exactly 100 and are never renormalized; withdrawals are never capped.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional, Sequence

import structlog

from .exceptions import AllocationError
from .models.entities import (
    HUNDRED,
    ZERO,
    AllocationRule,
    AllocationTargetType,
    Asset,
    Debt,
    Expense,
    Income,
    Pension,
    PensionType,
    RealEstate,
    Saving,
    WithdrawalRule,
)
from .models.results import (
    AllocationItem,
    CashflowCategory,
    CashflowItem,
    PensionScheduleRow,
)
from .normalizer import NormalizedEntity

logger = structlog.get_logger()


# =============================================================================
# SAVINGS
# =============================================================================

@dataclass(frozen=True)
class SavingYear:
    """Result of advancing one saving account by a year."""

    contribution: Decimal
    interest: Decimal  # Compounded into the balance
    income: Decimal  # Paid out as cash (income-paying savings)
    matured_amount: Decimal
    capital_gains_tax: Decimal
    balance: Decimal
    principal: Decimal


def advance_saving(saving: Saving, year: int, balance: Decimal, principal: Decimal) -> SavingYear:
    """Advance a saving account by one year.

    Outside ``[start_year, end_year]`` the balance is left as is. In
    ``end_year`` the account matures: the whole balance is paid out and
    capital gains tax is charged on the gain over contributed principal.
    """
    if not saving.active_in_year(year):
        return SavingYear(ZERO, ZERO, ZERO, ZERO, ZERO, balance, principal)

    contribution = saving.contribution_in_year(year)
    interest = ZERO
    income = ZERO
    if saving.pays_income:
        income = balance * saving.income_rate / HUNDRED
    else:
        interest = balance * saving.interest_rate / HUNDRED

    balance = balance + interest + contribution
    principal = principal + contribution

    matured_amount = ZERO
    capital_gains_tax = ZERO
    if year == saving.end_year:
        matured_amount = balance
        gain = balance - principal
        if saving.capital_gains_tax_rate and gain > 0:
            capital_gains_tax = gain * saving.capital_gains_tax_rate / HUNDRED
        balance = ZERO
        principal = ZERO

    return SavingYear(
        contribution=contribution,
        interest=interest,
        income=income,
        matured_amount=matured_amount,
        capital_gains_tax=capital_gains_tax,
        balance=balance,
        principal=principal,
    )


# =============================================================================
# LINE ITEMS
# =============================================================================

def _item(label: str, category: CashflowCategory, amount: Decimal, source_id: str) -> CashflowItem:
    return CashflowItem(label=label, category=category, amount=amount, source_id=source_id)


def collect_line_items(
    entities: Sequence[NormalizedEntity],
    year: int,
    first_year: int,
    saving_years: Mapping[str, SavingYear],
    pension_rows: Mapping[str, PensionScheduleRow],
) -> tuple[list[CashflowItem], list[CashflowItem]]:
    """Gather the year's positive and negative cash-flow items.

    Args:
        entities: Normalized plan entities.
        year: Year being computed.
        first_year: First projected year. One-time purchases and loan
            proceeds dated before it are treated as already settled.
        saving_years: This year's saving results, by saving id.
        pension_rows: This year's funded pension rows, by pension id.

    Returns:
        ``(positives, negatives)``. Zero amounts are omitted.
    """
    positives: list[CashflowItem] = []
    negatives: list[CashflowItem] = []

    def add(target: list[CashflowItem], label: str, category: CashflowCategory,
            amount: Decimal, source_id: str) -> None:
        if amount > 0:
            target.append(_item(label, category, amount, source_id))

    for normalized in entities:
        entity = normalized.entity
        label = normalized.label

        if isinstance(entity, Income):
            add(positives, label, CashflowCategory.INCOME, entity.flow_in_year(year), entity.id)

        elif isinstance(entity, Expense):
            add(negatives, label, CashflowCategory.EXPENSE, entity.flow_in_year(year), entity.id)

        elif isinstance(entity, Saving):
            result = saving_years.get(entity.id)
            if result is None:
                continue
            add(negatives, f"{label} contribution", CashflowCategory.SAVING, result.contribution, entity.id)
            add(positives, f"{label} income", CashflowCategory.SAVING, result.income, entity.id)
            add(positives, f"{label} maturity", CashflowCategory.SAVING, result.matured_amount, entity.id)
            add(negatives, f"{label} capital gains tax", CashflowCategory.TAX,
                result.capital_gains_tax, entity.id)

        elif isinstance(entity, Pension):
            if entity.pension_type == PensionType.NATIONAL:
                add(positives, label, CashflowCategory.PENSION, normalized.annual_amount(year), entity.id)
                continue
            row = pension_rows.get(entity.id)
            if row is None:
                continue
            scheduled = entity.annual_contribution if entity.in_contribution_window(year) else ZERO
            add(negatives, f"{label} contribution", CashflowCategory.PENSION, scheduled, entity.id)
            add(positives, label, CashflowCategory.PENSION, row.payment, entity.id)

        elif isinstance(entity, RealEstate):
            if not entity.active_in_year(year):
                continue
            if entity.is_purchase and year == entity.start_year and year >= first_year:
                add(negatives, f"{label} purchase", CashflowCategory.REAL_ESTATE,
                    entity.value_in_year(year, normalized.base_year), entity.id)
            add(positives, f"{label} rent", CashflowCategory.REAL_ESTATE,
                entity.rental_income_in_year(year), entity.id)
            add(positives, f"{label} home pension", CashflowCategory.PENSION,
                entity.home_pension_in_year(year), entity.id)
            if year == entity.end_year and not entity.convert_to_pension:
                add(positives, f"{label} sale", CashflowCategory.REAL_ESTATE,
                    entity.value_in_year(year, normalized.base_year), entity.id)

        elif isinstance(entity, Debt):
            if not entity.active_in_year(year):
                continue
            if entity.add_cash_to_flow and year == entity.start_year and year >= first_year:
                add(positives, f"{label} loan proceeds", CashflowCategory.DEBT, entity.debt_amount, entity.id)
            add(negatives, f"{label} repayment", CashflowCategory.DEBT,
                normalized.annual_amount(year), entity.id)

        elif isinstance(entity, Asset):
            if not entity.active_in_year(year):
                continue
            if entity.is_purchase and year == entity.start_year and year >= first_year:
                add(negatives, f"{label} purchase", CashflowCategory.ASSET,
                    entity.value_in_year(year, normalized.base_year), entity.id)
            add(positives, f"{label} income", CashflowCategory.ASSET,
                entity.income_in_year(year, normalized.base_year), entity.id)
            if year == entity.end_year:
                add(positives, f"{label} sale", CashflowCategory.ASSET,
                    entity.value_in_year(year, normalized.base_year), entity.id)

    return positives, negatives


def net_cash_flow(positives: Sequence[CashflowItem], negatives: Sequence[CashflowItem]) -> Decimal:
    """Sum of positives minus sum of negatives."""
    incoming = sum((item.amount for item in positives), ZERO)
    outgoing = sum((item.amount for item in negatives), ZERO)
    return incoming - outgoing


# =============================================================================
# SURPLUS ALLOCATION
# =============================================================================

def accepts_deposits(normalized: NormalizedEntity, year: int) -> bool:
    """Whether an allocation target can take a deposit at the end of ``year``.

    A saving takes deposits until the year before it matures; a funded
    pension until the year before its last payment.
    """
    entity = normalized.entity
    if isinstance(entity, Saving):
        return entity.start_year <= year < entity.end_year
    if isinstance(entity, Pension) and entity.is_funded:
        return entity.start_year <= year < entity.payment_end_year
    return False


def validate_allocation_rules(
    rules: Sequence[AllocationRule],
    year: int,
    entities_by_id: Mapping[str, NormalizedEntity],
) -> None:
    """Check a year's allocation rules.

    Raises:
        AllocationError: If the ratios do not sum to exactly 100, or a
            target is missing, of the wrong type, or not accepting deposits
            in ``year``.
    """
    total = sum((rule.ratio for rule in rules), ZERO)
    if total != HUNDRED:
        raise AllocationError(
            f"Allocation ratios for {year} sum to {total}, expected 100",
            year=year,
            rule_type="allocation",
            details={"ratio_sum": str(total)},
        )

    for rule in rules:
        if rule.target_type == AllocationTargetType.CASH:
            continue
        if not rule.target_id:
            raise AllocationError(
                f"{rule.target_type.value} allocation in {year} has no target",
                year=year,
                rule_type="allocation",
            )
        target = entities_by_id.get(rule.target_id)
        expected = Saving if rule.target_type == AllocationTargetType.SAVING else Pension
        if target is None or not isinstance(target.entity, expected):
            raise AllocationError(
                f"Unknown {rule.target_type.value} allocation target: {rule.target_id}",
                year=year,
                rule_type="allocation",
                target_id=rule.target_id,
            )
        if not accepts_deposits(target, year):
            raise AllocationError(
                f"Allocation target {rule.target_id} is not active in {year}",
                year=year,
                rule_type="allocation",
                target_id=rule.target_id,
            )


def allocate_surplus(
    surplus: Decimal,
    rules: Optional[Sequence[AllocationRule]],
    year: int,
    entities_by_id: Mapping[str, NormalizedEntity],
) -> tuple[AllocationItem, ...]:
    """Split a positive net cash flow across allocation targets.

    Without rules the whole surplus goes to cash. The last rule takes the
    remainder so the parts always add up to ``surplus``.

    Raises:
        AllocationError: If the rules are invalid for ``year``.
    """
    if surplus <= 0:
        return ()
    if not rules:
        return (
            AllocationItem(
                target_type=AllocationTargetType.CASH,
                ratio=HUNDRED,
                amount=surplus,
            ),
        )

    validate_allocation_rules(rules, year, entities_by_id)

    items: list[AllocationItem] = []
    allocated = ZERO
    for index, rule in enumerate(rules):
        if index == len(rules) - 1:
            amount = surplus - allocated
        else:
            amount = surplus * rule.ratio / HUNDRED
        allocated += amount
        items.append(
            AllocationItem(
                target_type=rule.target_type,
                target_id=rule.target_id,
                ratio=rule.ratio,
                amount=amount,
            )
        )

    logger.debug("surplus_allocated", year=year, surplus=str(surplus), targets=len(items))
    return tuple(items)


# =============================================================================
# WITHDRAWALS
# =============================================================================

def apply_withdrawals(
    rules: Optional[Sequence[WithdrawalRule]],
    year: int,
    saving_balances: Mapping[str, Decimal],
    entities_by_id: Mapping[str, NormalizedEntity],
) -> tuple[list[CashflowItem], dict[str, Decimal]]:
    """Draw the year's withdrawal amounts from saving balances.

    Args:
        rules: The year's withdrawal rules (may be empty).
        year: Year being computed.
        saving_balances: Projected saving balances for ``year``.
        entities_by_id: Normalized entities by id.

    Returns:
        The positive ``saving`` items to add to the year, and the amount
        withdrawn per saving id.

    Raises:
        AllocationError: If a source is unknown or a withdrawal exceeds the
            source's remaining balance.
    """
    items: list[CashflowItem] = []
    withdrawn: dict[str, Decimal] = {}

    for rule in rules or ():
        source = entities_by_id.get(rule.source_id)
        if source is None or not isinstance(source.entity, Saving):
            raise AllocationError(
                f"Unknown withdrawal source: {rule.source_id}",
                year=year,
                rule_type="withdrawal",
                target_id=rule.source_id,
            )
        available = saving_balances.get(rule.source_id, ZERO) - withdrawn.get(rule.source_id, ZERO)
        if rule.amount > available:
            raise AllocationError(
                f"Withdrawal of {rule.amount} from {rule.source_id} exceeds its balance of {available}",
                year=year,
                rule_type="withdrawal",
                target_id=rule.source_id,
                details={"requested": str(rule.amount), "available": str(available)},
            )
        withdrawn[rule.source_id] = withdrawn.get(rule.source_id, ZERO) + rule.amount
        items.append(
            _item(f"{source.label} withdrawal", CashflowCategory.SAVING, rule.amount, rule.source_id)
        )

    if items:
        logger.debug("withdrawals_applied", year=year, count=len(items))
    return items, withdrawn
