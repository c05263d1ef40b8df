"""Plan input and projection result models for nestplan-core.

This package provides:
- Household plan entities and rules (entities.py)
- Snapshots, schedules, solver and calculator results (results.py)
"""

from nestplan_core.models.entities import (
    # Enumerations
    Frequency,
    PensionType,
    PaymentTiming,
    DebtRepaymentType,
    AssetKind,
    AllocationTargetType,
    WithdrawalSourceType,
    # Helper functions
    periods_per_year,
    growth_factor,
    # Entities
    PlanModel,
    Entity,
    Income,
    Expense,
    Saving,
    Pension,
    RealEstate,
    Debt,
    Asset,
    # Profile and rules
    Profile,
    AllocationRule,
    WithdrawalRule,
    HouseholdPlan,
)

from nestplan_core.models.results import (
    # Enumerations
    CashflowCategory,
    SourceType,
    PensionPhase,
    SolverStatus,
    # Audit
    AuditEntry,
    # Schedules
    DebtScheduleRow,
    PensionState,
    PensionScheduleRow,
    # Snapshots
    CashflowItem,
    AllocationItem,
    BalanceItem,
    YearBreakdown,
    YearSnapshot,
    ProjectionResult,
    # Payroll tax
    PayrollDeductions,
    TaxSolverResult,
    # Calculators and summaries
    GoalSavingPlan,
    DCPensionEstimate,
    LifetimeTotal,
    LifetimeCashflowTotals,
    ProjectionSummary,
    YearComparison,
)

__all__ = [
    # Enumerations
    "Frequency",
    "PensionType",
    "PaymentTiming",
    "DebtRepaymentType",
    "AssetKind",
    "AllocationTargetType",
    "WithdrawalSourceType",
    "CashflowCategory",
    "SourceType",
    "PensionPhase",
    "SolverStatus",
    # Helper functions
    "periods_per_year",
    "growth_factor",
    # Entities
    "PlanModel",
    "Entity",
    "Income",
    "Expense",
    "Saving",
    "Pension",
    "RealEstate",
    "Debt",
    "Asset",
    # Profile and rules
    "Profile",
    "AllocationRule",
    "WithdrawalRule",
    "HouseholdPlan",
    # Audit
    "AuditEntry",
    # Schedules
    "DebtScheduleRow",
    "PensionState",
    "PensionScheduleRow",
    # Snapshots
    "CashflowItem",
    "AllocationItem",
    "BalanceItem",
    "YearBreakdown",
    "YearSnapshot",
    "ProjectionResult",
    # Payroll tax
    "PayrollDeductions",
    "TaxSolverResult",
    # Calculators and summaries
    "GoalSavingPlan",
    "DCPensionEstimate",
    "LifetimeTotal",
    "LifetimeCashflowTotals",
    "ProjectionSummary",
    "YearComparison",
]
