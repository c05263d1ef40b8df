"""Nestplan Core - Household retirement projection engine."""

__version__ = "0.1.0"

from .calculators import estimate_dc_pension, required_monthly_saving
from .config import NestplanConfig, ProjectionSettings, TaxSolverSettings
from .debt import amortization_payment, build_debt_schedule
from .models import HouseholdPlan, ProjectionResult, YearSnapshot
from .pension import advance_pension, annuity_payment, build_pension_schedule
from .projection import ProjectionEngine, project_household
from .scenarios import RateOverrides, apply_rate_overrides, compare_projections
from .summary import calculate_lifetime_totals, summarize_projection
from .tax_solver import PayrollTaxSolver, calculate_payroll_deductions, solve_gross_from_net

__all__ = [
    "HouseholdPlan",
    "ProjectionResult",
    "YearSnapshot",
    "ProjectionEngine",
    "project_household",
    "NestplanConfig",
    "ProjectionSettings",
    "TaxSolverSettings",
    "amortization_payment",
    "build_debt_schedule",
    "annuity_payment",
    "advance_pension",
    "build_pension_schedule",
    "PayrollTaxSolver",
    "calculate_payroll_deductions",
    "solve_gross_from_net",
    "required_monthly_saving",
    "estimate_dc_pension",
    "calculate_lifetime_totals",
    "summarize_projection",
    "RateOverrides",
    "apply_rate_overrides",
    "compare_projections",
]
