"""Debt amortization schedules.

Builds a yearly repayment schedule for each debt repayment scheme:

- bullet: interest only, full principal repaid in the final year
- equal: fixed annual payment ``P = r*B / (1 - (1+r)^-n)``
- principal: fixed principal ``B/n`` plus interest on the remaining balance
- grace: interest only for ``grace_period`` years, then ``equal`` over the rest

The last row always absorbs accumulated rounding drift so the debt closes
at exactly zero.
"""

from decimal import Decimal

import structlog

from .exceptions import AmortizationError
from .models.entities import Debt, DebtRepaymentType, HUNDRED, ONE, ZERO
from .models.results import DebtScheduleRow

logger = structlog.get_logger()


def amortization_payment(
    balance: Decimal,
    rate: Decimal,
    periods: int,
    due: bool = False,
) -> Decimal:
    """Level payment that repays ``balance`` over ``periods`` at ``rate`` percent.

    Args:
        balance: Amount to amortize.
        rate: Interest rate per period, in percent.
        periods: Number of payments. Must be at least 1.
        due: Payments at the start of each period (annuity due) instead of
            at the end.

    Returns:
        The level payment. With a zero rate this is ``balance / periods``.

    Raises:
        AmortizationError: If ``periods`` is less than 1.
    """
    if periods < 1:
        raise AmortizationError(
            f"Cannot amortize over {periods} periods",
            term_years=periods,
        )
    if balance == 0:
        return ZERO

    r = rate / HUNDRED
    if r == 0:
        return balance / periods

    payment = balance * r / (ONE - (ONE + r) ** -periods)
    if due:
        payment = payment / (ONE + r)
    return payment


def build_debt_schedule(debt: Debt) -> list[DebtScheduleRow]:
    """Compute one schedule row per year of ``[start_year, end_year]``.

    Raises:
        AmortizationError: If a grace period is negative or covers the
            whole term.
    """
    n = debt.term_years
    r = debt.interest_rate / HUNDRED
    grace = debt.grace_period if debt.debt_type == DebtRepaymentType.GRACE else 0

    if debt.debt_type == DebtRepaymentType.GRACE and not 0 <= grace < n:
        raise AmortizationError(
            f"Grace period of {debt.grace_period} years leaves nothing to amortize "
            f"over a {n}-year term",
            entity_id=debt.id,
            term_years=n,
            grace_period=debt.grace_period,
        )

    balance = debt.debt_amount
    level_payment = ZERO
    if debt.debt_type == DebtRepaymentType.EQUAL:
        level_payment = amortization_payment(balance, debt.interest_rate, n)
    straight_principal = balance / n

    rows: list[DebtScheduleRow] = []
    for index, year in enumerate(range(debt.start_year, debt.end_year + 1)):
        opening = balance
        interest = balance * r
        is_last = index == n - 1

        if debt.debt_type == DebtRepaymentType.BULLET:
            principal = ZERO
        elif debt.debt_type == DebtRepaymentType.PRINCIPAL:
            principal = straight_principal
        elif debt.debt_type == DebtRepaymentType.GRACE and index < grace:
            principal = ZERO
        else:
            if debt.debt_type == DebtRepaymentType.GRACE and index == grace:
                level_payment = amortization_payment(balance, debt.interest_rate, n - grace)
            principal = level_payment - interest

        if is_last:
            principal = balance

        balance = balance - principal
        rows.append(
            DebtScheduleRow(
                year=year,
                opening_balance=opening,
                interest=interest,
                principal=principal,
                payment=interest + principal,
                remaining_balance=balance,
            )
        )

    logger.debug(
        "debt_schedule_built",
        debt_id=debt.id,
        debt_type=debt.debt_type.value,
        term_years=n,
        total_interest=str(sum((row.interest for row in rows), ZERO)),
    )
    return rows
