"""Headline figures derived from a finished projection."""

from collections import defaultdict
from decimal import Decimal
from typing import Sequence

import structlog

from .exceptions import PlanValidationError
from .models.entities import ZERO, Profile
from .models.results import (
    CashflowCategory,
    CashflowItem,
    LifetimeCashflowTotals,
    LifetimeTotal,
    ProjectionResult,
    ProjectionSummary,
    YearSnapshot,
)

logger = structlog.get_logger()


def _totals(items: list[CashflowItem]) -> tuple[LifetimeTotal, ...]:
    sums: dict[tuple[CashflowCategory, str], Decimal] = defaultdict(lambda: ZERO)
    for item in items:
        sums[(item.category, item.label)] += item.amount
    totals = [
        LifetimeTotal(category=category, label=label, amount=amount)
        for (category, label), amount in sums.items()
    ]
    totals.sort(key=lambda total: total.amount, reverse=True)
    return tuple(totals)


def calculate_lifetime_totals(snapshots: Sequence[YearSnapshot]) -> LifetimeCashflowTotals:
    """Sum every cash-flow line over the whole projection.

    Lines are keyed by category and label. Supply (positives) and demand
    (negatives) are each sorted by descending amount.
    """
    supply = _totals([item for s in snapshots for item in s.breakdown.positives])
    demand = _totals([item for s in snapshots for item in s.breakdown.negatives])
    return LifetimeCashflowTotals(
        supply=supply,
        demand=demand,
        total_supply=sum((total.amount for total in supply), ZERO),
        total_demand=sum((total.amount for total in demand), ZERO),
    )


def summarize_projection(result: ProjectionResult, profile: Profile) -> ProjectionSummary:
    """Retirement readiness summary.

    Net assets at retirement are taken from the snapshot of the retirement
    year; they are None when that year falls outside the projection.

    Raises:
        PlanValidationError: If the projection has no snapshots.
    """
    if not result.snapshots:
        raise PlanValidationError(
            "Cannot summarize an empty projection",
            field="snapshots",
            constraint="at least one snapshot",
        )

    retirement_snapshot = result.snapshot_for(profile.retirement_year)
    at_retirement = retirement_snapshot.net_assets if retirement_snapshot else None

    target_gap = None
    meets_target = None
    if at_retirement is not None and profile.target_assets is not None:
        target_gap = profile.target_assets - at_retirement
        meets_target = at_retirement >= profile.target_assets

    peak = max(result.snapshots, key=lambda snapshot: snapshot.net_assets)
    shortfall_year = next(
        (snapshot.year for snapshot in result.snapshots if snapshot.cash < 0),
        None,
    )

    summary = ProjectionSummary(
        retirement_year=profile.retirement_year,
        retirement_age=profile.retirement_age,
        net_assets_at_retirement=at_retirement,
        target_assets=profile.target_assets,
        target_gap=target_gap,
        meets_target=meets_target,
        peak_net_assets=peak.net_assets,
        peak_year=peak.year,
        first_cash_shortfall_year=shortfall_year,
        final_net_assets=result.snapshots[-1].net_assets,
    )
    logger.info(
        "projection_summarized",
        retirement_year=summary.retirement_year,
        meets_target=summary.meets_target,
        first_cash_shortfall_year=summary.first_cash_shortfall_year,
    )
    return summary
