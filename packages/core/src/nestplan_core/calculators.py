"""What-if calculators for one-off planning questions.

- Goal saving: the monthly deposit needed to reach a target amount
- DC pension: the defined-contribution retirement deposit implied by a
  net monthly salary

Results are rounded to whole currency units (half up).
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import structlog

from .config import TaxSolverSettings
from .exceptions import PlanValidationError
from .models.results import DCPensionEstimate, GoalSavingPlan
from .tax_solver import PayrollTaxSolver
from .tax_tables import get_tax_bracket

logger = structlog.get_logger()

WHOLE_UNIT = Decimal("1")
MONTHS_PER_YEAR = 12


def _round(value: Decimal) -> Decimal:
    return value.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


def required_monthly_saving(
    target_amount: Decimal,
    years: int,
    return_rate: Decimal,
) -> GoalSavingPlan:
    """Monthly deposit that grows to ``target_amount`` in ``years``.

    Deposits are made at the end of each month and compound monthly at
    ``return_rate / 12``. A zero rate is a straight division.

    Args:
        target_amount: Amount to reach. Must be positive.
        years: Saving period in years. Must be positive.
        return_rate: Annual return in percent, between 0 and 100.

    Raises:
        PlanValidationError: If an input is out of range.
    """
    if target_amount <= 0:
        raise PlanValidationError(
            "Target amount must be positive",
            field="target_amount",
            value=str(target_amount),
            constraint="target_amount > 0",
        )
    if years <= 0:
        raise PlanValidationError(
            "Saving period must be positive",
            field="years",
            value=years,
            constraint="years > 0",
        )
    if not 0 <= return_rate <= 100:
        raise PlanValidationError(
            "Return rate must be between 0 and 100",
            field="return_rate",
            value=str(return_rate),
            constraint="0 <= return_rate <= 100",
        )

    months = years * MONTHS_PER_YEAR
    monthly_rate = return_rate / Decimal("100") / MONTHS_PER_YEAR
    if monthly_rate == 0:
        monthly = target_amount / months
    else:
        monthly = target_amount / (((1 + monthly_rate) ** months - 1) / monthly_rate)

    total_saving = monthly * months
    logger.debug(
        "goal_saving_calculated",
        target_amount=str(target_amount),
        years=years,
        monthly_saving=str(monthly),
    )
    return GoalSavingPlan(
        target_amount=target_amount,
        years=years,
        return_rate=return_rate,
        monthly_saving=_round(monthly),
        total_saving=_round(total_saving),
        total_return=_round(target_amount - total_saving),
    )


def estimate_dc_pension(
    after_tax_monthly: Decimal,
    settings: Optional[TaxSolverSettings] = None,
) -> DCPensionEstimate:
    """Defined-contribution deposit for a net monthly salary.

    The employer deposits one month of pre-tax pay per year. Pre-tax pay is
    found with the payroll tax solver.

    Raises:
        PlanValidationError: If ``after_tax_monthly`` is not positive.
        ConvergenceError: If the solver does not converge.
    """
    result = PayrollTaxSolver(settings).solve_gross_from_net(after_tax_monthly)
    pre_tax_monthly = result.unwrap()
    annual_pre_tax = pre_tax_monthly * MONTHS_PER_YEAR

    bracket = get_tax_bracket(annual_pre_tax)
    marginal_rate = bracket.rate * 100 if bracket else Decimal("0")

    annual_contribution = pre_tax_monthly
    return DCPensionEstimate(
        after_tax_monthly=after_tax_monthly,
        pre_tax_monthly=_round(pre_tax_monthly),
        annual_pre_tax=_round(annual_pre_tax),
        marginal_rate=marginal_rate,
        annual_contribution=_round(annual_contribution),
        monthly_contribution=_round(annual_contribution / MONTHS_PER_YEAR),
    )
