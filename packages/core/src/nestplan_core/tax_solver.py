"""Payroll deductions and the gross-from-net pay solver.

Net pay is a piecewise non-linear function of gross pay (capped pension
contribution, progressive income tax), so the inverse is found by damped
fixed-point iteration:

1. Start at ``net x initial_multiplier``
2. Compute the deduction stack for the estimate
3. ``residual = target_net - computed_net``; stop when ``|residual| < tolerance``
4. Otherwise add ``residual x step_ratio`` to the estimate

The solver never hands back an unverified estimate: the result is tagged
``converged`` or ``exceeded_iterations``.
"""

from decimal import Decimal
from typing import Optional

import structlog

from .config import TaxSolverSettings
from .exceptions import PlanValidationError
from .models.results import (
    AuditEntry,
    PayrollDeductions,
    SolverStatus,
    TaxSolverResult,
)
from .tax_tables import (
    BASIC_DEDUCTION,
    EMPLOYMENT_INSURANCE_RATE,
    HEALTH_INSURANCE_RATE,
    LOCAL_INCOME_TAX_RATE,
    LONG_TERM_CARE_RATE,
    NATIONAL_PENSION_INCOME_CEILING,
    NATIONAL_PENSION_RATE,
    TAX_TABLES_VERSION,
    calculate_income_tax,
)

logger = structlog.get_logger()


def calculate_payroll_deductions(gross_monthly: Decimal) -> PayrollDeductions:
    """Compute the monthly deduction stack for a gross monthly salary."""
    national_pension = min(gross_monthly, NATIONAL_PENSION_INCOME_CEILING) * NATIONAL_PENSION_RATE
    health_insurance = gross_monthly * HEALTH_INSURANCE_RATE
    long_term_care = health_insurance * LONG_TERM_CARE_RATE
    employment_insurance = gross_monthly * EMPLOYMENT_INSURANCE_RATE

    taxable_income = max(Decimal("0"), gross_monthly * 12 - BASIC_DEDUCTION)
    income_tax = calculate_income_tax(taxable_income) / 12
    local_income_tax = income_tax * LOCAL_INCOME_TAX_RATE

    return PayrollDeductions(
        gross_monthly=gross_monthly,
        national_pension=national_pension,
        health_insurance=health_insurance,
        long_term_care=long_term_care,
        employment_insurance=employment_insurance,
        income_tax=income_tax,
        local_income_tax=local_income_tax,
    )


class PayrollTaxSolver:
    """
    Invert net monthly pay into gross monthly pay.

    Each solve records its key steps in an audit log attached to the
    result.
    """

    def __init__(self, settings: Optional[TaxSolverSettings] = None):
        """
        Initialize solver.

        Args:
            settings: Solver tolerances and limits (default: from environment)
        """
        self.settings = settings or TaxSolverSettings()
        self._audit_log: list[AuditEntry] = []

    def _log_step(
        self,
        step: str,
        input_value: str,
        output_value: str,
        source: str,
        notes: Optional[str] = None
    ) -> None:
        """Add an entry to the audit log."""
        entry = AuditEntry(
            step=step,
            input_value=input_value,
            output_value=output_value,
            source=source,
            notes=notes,
        )
        self._audit_log.append(entry)
        logger.info(
            "calculation_step",
            step=step,
            input=input_value,
            output=output_value,
            source=source,
        )

    def solve_gross_from_net(self, after_tax_monthly: Decimal) -> TaxSolverResult:
        """
        Find the gross monthly pay whose net pay is ``after_tax_monthly``.

        Args:
            after_tax_monthly: Target net monthly pay. Must be positive.

        Returns:
            TaxSolverResult tagged ``converged`` (with the verified gross)
            or ``exceeded_iterations``.

        Raises:
            PlanValidationError: If the target is not positive.
        """
        if after_tax_monthly <= 0:
            raise PlanValidationError(
                "After-tax monthly pay must be positive",
                field="after_tax_monthly",
                value=str(after_tax_monthly),
                constraint="after_tax_monthly > 0",
            )

        self._audit_log = []
        settings = self.settings
        source = f"Payroll tax tables {TAX_TABLES_VERSION}"

        estimate = after_tax_monthly * settings.initial_multiplier
        self._log_step(
            step="initial_estimate",
            input_value=f"net={after_tax_monthly}, multiplier={settings.initial_multiplier}",
            output_value=str(estimate),
            source=source,
        )

        residual = after_tax_monthly
        for iteration in range(1, settings.max_iterations + 1):
            deductions = calculate_payroll_deductions(estimate)
            residual = after_tax_monthly - deductions.net_monthly
            logger.debug(
                "tax_solver_iteration",
                iteration=iteration,
                estimate=str(estimate),
                residual=str(residual),
            )

            if abs(residual) < settings.tolerance:
                self._log_step(
                    step="converged",
                    input_value=f"gross={estimate}, deductions={deductions.total}",
                    output_value=str(deductions.net_monthly),
                    source=source,
                    notes=f"{iteration} iterations, residual {residual}",
                )
                logger.info(
                    "tax_solver_converged",
                    iterations=iteration,
                    gross_monthly=str(estimate),
                )
                return TaxSolverResult(
                    status=SolverStatus.CONVERGED,
                    target_net_monthly=after_tax_monthly,
                    gross_monthly=estimate,
                    last_estimate=estimate,
                    residual=residual,
                    iterations=iteration,
                    tolerance=settings.tolerance,
                    deductions=deductions,
                    audit_log=tuple(self._audit_log),
                )

            estimate = estimate + residual * settings.step_ratio

        self._log_step(
            step="exceeded_iterations",
            input_value=f"net={after_tax_monthly}",
            output_value=str(estimate),
            source=source,
            notes=f"residual {residual} after {settings.max_iterations} iterations",
        )
        logger.warning(
            "tax_solver_exceeded_iterations",
            iterations=settings.max_iterations,
            residual=str(residual),
            tolerance=str(settings.tolerance),
        )
        return TaxSolverResult(
            status=SolverStatus.EXCEEDED_ITERATIONS,
            target_net_monthly=after_tax_monthly,
            last_estimate=estimate,
            residual=residual,
            iterations=settings.max_iterations,
            tolerance=settings.tolerance,
            audit_log=tuple(self._audit_log),
        )

    def get_audit_log(self) -> list[AuditEntry]:
        """Audit log of the most recent solve."""
        return list(self._audit_log)


def solve_gross_from_net(
    after_tax_monthly: Decimal,
    settings: Optional[TaxSolverSettings] = None,
) -> TaxSolverResult:
    """Convenience wrapper around ``PayrollTaxSolver.solve_gross_from_net``."""
    return PayrollTaxSolver(settings).solve_gross_from_net(after_tax_monthly)
