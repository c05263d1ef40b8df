"""Projection, schedule and calculator result models.

All result models are frozen. Lists are stored as tuples so a snapshot
handed to a caller can never be changed by a later projection step.
``model_dump(by_alias=True)`` produces the camelCase shape consumed by
chart and report layers.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..exceptions import ConvergenceError
from .entities import AllocationTargetType


ZERO = Decimal("0")


def _utc_now() -> datetime:
    """Return current UTC datetime with timezone info."""
    return datetime.now(timezone.utc)


class ResultModel(BaseModel):
    """Base for immutable result models."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# =============================================================================
# ENUMERATIONS
# =============================================================================

class CashflowCategory(str, Enum):
    """Category of a positive or negative cash-flow item."""
    INCOME = "income"
    EXPENSE = "expense"
    SAVING = "saving"
    PENSION = "pension"
    REAL_ESTATE = "realEstate"
    DEBT = "debt"
    TAX = "tax"
    ASSET = "asset"


class SourceType(str, Enum):
    """Kind of balance an asset or debt item comes from."""
    CASH = "cash"
    SAVING = "saving"
    PENSION = "pension"
    REAL_ESTATE = "realEstate"
    ASSET = "asset"
    DEBT = "debt"


class PensionPhase(str, Enum):
    """Phase of a funded pension in a given year."""
    IDLE = "idle"  # Outside every window
    ACCUMULATION = "accumulation"
    DEFERRAL = "deferral"  # Between contribution end and payout start
    PAYOUT = "payout"


class SolverStatus(str, Enum):
    """Outcome of an iterative solve."""
    CONVERGED = "converged"
    EXCEEDED_ITERATIONS = "exceeded_iterations"


# =============================================================================
# AUDIT
# =============================================================================

class AuditEntry(ResultModel):
    """Audit log entry for calculation transparency."""
    timestamp: datetime = Field(default_factory=_utc_now)
    step: str
    input_value: str
    output_value: str
    source: str
    notes: Optional[str] = None
    year: Optional[int] = None


# =============================================================================
# SCHEDULES
# =============================================================================

class DebtScheduleRow(ResultModel):
    """One year of a debt repayment schedule."""
    year: int
    opening_balance: Decimal
    interest: Decimal
    principal: Decimal
    payment: Decimal
    remaining_balance: Decimal


class PensionState(ResultModel):
    """Carried state of a funded pension between projection years."""
    balance: Decimal
    annual_payment: Optional[Decimal] = None  # Fixed once payout starts


class PensionScheduleRow(ResultModel):
    """One year of a pension accumulation/payout schedule."""
    year: int
    phase: PensionPhase
    contribution: Decimal = ZERO
    investment_return: Decimal = ZERO
    payment: Decimal = ZERO
    balance: Decimal


# =============================================================================
# YEAR SNAPSHOTS
# =============================================================================

class CashflowItem(ResultModel):
    """A labeled positive or negative amount in a year's cash flow."""
    label: str
    category: CashflowCategory
    amount: Decimal = Field(ge=0)
    source_id: Optional[str] = None


class AllocationItem(ResultModel):
    """Share of a year's surplus routed to a target."""
    target_type: AllocationTargetType
    target_id: Optional[str] = None
    ratio: Decimal
    amount: Decimal


class BalanceItem(ResultModel):
    """An end-of-year balance listed under assets or debts."""
    label: str
    source_type: SourceType
    amount: Decimal
    source_id: Optional[str] = None


class YearBreakdown(ResultModel):
    """Itemized cash flows and balances behind a snapshot."""
    positives: tuple[CashflowItem, ...] = ()
    negatives: tuple[CashflowItem, ...] = ()
    allocations: tuple[AllocationItem, ...] = ()
    asset_items: tuple[BalanceItem, ...] = ()
    debt_items: tuple[BalanceItem, ...] = ()

    @property
    def total_positive(self) -> Decimal:
        return sum((item.amount for item in self.positives), ZERO)

    @property
    def total_negative(self) -> Decimal:
        return sum((item.amount for item in self.negatives), ZERO)


class YearSnapshot(ResultModel):
    """Balances and cash flows of the household for one year."""
    year: int
    age: int
    breakdown: YearBreakdown
    net_cash_flow: Decimal
    cash: Decimal
    total_assets: Decimal
    total_debt: Decimal
    net_assets: Decimal


class ProjectionResult(ResultModel):
    """Ordered snapshots of a full projection."""
    first_year: int
    last_year: int
    snapshots: tuple[YearSnapshot, ...]
    audit_log: tuple[AuditEntry, ...] = ()
    methodology_version: str
    calculated_at: datetime = Field(default_factory=_utc_now)

    @property
    def years(self) -> list[int]:
        return [snapshot.year for snapshot in self.snapshots]

    def snapshot_for(self, year: int) -> Optional[YearSnapshot]:
        for snapshot in self.snapshots:
            if snapshot.year == year:
                return snapshot
        return None


# =============================================================================
# PAYROLL TAX
# =============================================================================

class PayrollDeductions(ResultModel):
    """Monthly payroll deduction stack for a gross salary."""
    gross_monthly: Decimal
    national_pension: Decimal
    health_insurance: Decimal
    long_term_care: Decimal
    employment_insurance: Decimal
    income_tax: Decimal
    local_income_tax: Decimal

    @property
    def total(self) -> Decimal:
        return (
            self.national_pension
            + self.health_insurance
            + self.long_term_care
            + self.employment_insurance
            + self.income_tax
            + self.local_income_tax
        )

    @property
    def net_monthly(self) -> Decimal:
        return self.gross_monthly - self.total


class TaxSolverResult(ResultModel):
    """Outcome of inverting net monthly pay into gross monthly pay.

    ``gross_monthly`` is only set when the solver converged.
    ``last_estimate`` holds the final iterate either way, for diagnostics.
    """
    status: SolverStatus
    target_net_monthly: Decimal
    gross_monthly: Optional[Decimal] = None
    last_estimate: Decimal
    residual: Decimal
    iterations: int
    tolerance: Decimal
    deductions: Optional[PayrollDeductions] = None
    audit_log: tuple[AuditEntry, ...] = ()

    @property
    def converged(self) -> bool:
        return self.status == SolverStatus.CONVERGED

    def unwrap(self) -> Decimal:
        """Return the verified gross monthly pay.

        Raises:
            ConvergenceError: If the solver exceeded its iteration cap.
        """
        if not self.converged:
            raise ConvergenceError(
                f"Tax solver did not converge within {self.iterations} iterations",
                iterations=self.iterations,
                residual=self.residual,
                tolerance=self.tolerance,
            )
        return self.gross_monthly


# =============================================================================
# CALCULATORS AND SUMMARIES
# =============================================================================

class GoalSavingPlan(ResultModel):
    """Monthly deposit needed to reach a target amount."""
    target_amount: Decimal
    years: int
    return_rate: Decimal
    monthly_saving: Decimal
    total_saving: Decimal
    total_return: Decimal


class DCPensionEstimate(ResultModel):
    """Defined-contribution retirement deposit implied by a net salary."""
    after_tax_monthly: Decimal
    pre_tax_monthly: Decimal
    annual_pre_tax: Decimal
    marginal_rate: Decimal
    annual_contribution: Decimal
    monthly_contribution: Decimal


class LifetimeTotal(ResultModel):
    """Sum of one labeled cash-flow line across the whole projection."""
    category: CashflowCategory
    label: str
    amount: Decimal


class LifetimeCashflowTotals(ResultModel):
    """Lifetime supply and demand, each sorted by descending amount."""
    supply: tuple[LifetimeTotal, ...]
    demand: tuple[LifetimeTotal, ...]
    total_supply: Decimal
    total_demand: Decimal

    @property
    def net(self) -> Decimal:
        return self.total_supply - self.total_demand


class ProjectionSummary(ResultModel):
    """Retirement readiness headline figures."""
    retirement_year: int
    retirement_age: int
    net_assets_at_retirement: Optional[Decimal] = None
    target_assets: Optional[Decimal] = None
    target_gap: Optional[Decimal] = None  # target minus net assets at retirement
    meets_target: Optional[bool] = None
    peak_net_assets: Decimal
    peak_year: int
    first_cash_shortfall_year: Optional[int] = None
    final_net_assets: Decimal


class YearComparison(ResultModel):
    """Per-year difference between two projections (alternative - base)."""
    year: int
    base_net_assets: Decimal
    alternative_net_assets: Decimal
    net_assets_delta: Decimal
    net_cash_flow_delta: Decimal
