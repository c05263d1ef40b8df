"""Pension accumulation and payout.

Funded pensions (retirement, personal, severance) move through three
phases:

- accumulation: ``balance = balance*(1+r) + contribution`` over the
  contribution window
- deferral: ``balance = balance*(1+r)`` until the payout starts
- payout: a fixed annuity computed from the balance at
  ``payment_start_year``, paid for ``payment_years`` years. The last
  payment is whatever balance is left, so the pension is exhausted exactly.

National pensions carry no balance and pay an inflation-indexed benefit.
A severance pension without additional contribution is a single lump sum.

``advance_pension`` is the single-year step used by the projection engine;
``build_pension_schedule`` folds it over the pension's whole window.
"""

from decimal import Decimal
from typing import Optional

import structlog

from .debt import amortization_payment
from .exceptions import AmortizationError
from .models.entities import (
    HUNDRED,
    MONTHS_PER_YEAR,
    ZERO,
    PaymentTiming,
    Pension,
    PensionType,
    growth_factor,
)
from .models.results import PensionPhase, PensionScheduleRow, PensionState

logger = structlog.get_logger()


def annuity_payment(
    balance: Decimal,
    rate: Decimal,
    years: int,
    timing: PaymentTiming = PaymentTiming.ORDINARY,
) -> Decimal:
    """Fixed yearly payment that exhausts ``balance`` over ``years``.

    Raises:
        AmortizationError: If ``years`` is less than 1.
    """
    return amortization_payment(balance, rate, years, due=timing == PaymentTiming.DUE)


def national_pension_benefit(pension: Pension, year: int) -> Decimal:
    """Annual national pension benefit, ``monthly x 12`` indexed by inflation."""
    if not pension.active_in_year(year):
        return ZERO
    annual = pension.monthly_amount * MONTHS_PER_YEAR
    return annual * growth_factor(pension.inflation_rate, year - pension.start_year)


def severance_lump_sum(pension: Pension) -> Decimal:
    """Severance pay: average salary times years of service."""
    if pension.average_salary > 0:
        return pension.average_salary * pension.years_of_service
    return pension.current_amount


def initial_pension_state(pension: Pension, first_year: Optional[int] = None) -> PensionState:
    """Opening state before the first projected year.

    A pension whose payout window closed before ``first_year`` has already
    been paid out and opens empty.
    """
    if pension.pension_type == PensionType.NATIONAL:
        return PensionState(balance=ZERO)
    if first_year is not None and pension.payment_end_year < first_year:
        return PensionState(balance=ZERO)
    if pension.pension_type == PensionType.SEVERANCE:
        return PensionState(balance=severance_lump_sum(pension))
    return PensionState(balance=pension.current_amount)


def _check_payout_window(pension: Pension) -> None:
    if pension.payment_years is None or pension.payment_years < 1:
        raise AmortizationError(
            f"Pension payout window of {pension.payment_years} years is empty",
            entity_id=pension.id,
            term_years=pension.payment_years,
        )


def advance_pension(
    pension: Pension,
    year: int,
    state: PensionState,
    extra_contribution: Decimal = ZERO,
) -> tuple[PensionState, PensionScheduleRow]:
    """Advance a pension by one year.

    Args:
        pension: The pension entity.
        year: The year being computed.
        state: State carried from the previous year.
        extra_contribution: Surplus allocated into the pension this year,
            added on top of its scheduled contribution.

    Returns:
        The new state and the schedule row for ``year``.

    Raises:
        AmortizationError: If the payout window has no payment years.
    """
    if pension.pension_type == PensionType.NATIONAL:
        benefit = national_pension_benefit(pension, year)
        phase = PensionPhase.PAYOUT if pension.active_in_year(year) else PensionPhase.IDLE
        return state, PensionScheduleRow(year=year, phase=phase, payment=benefit, balance=ZERO)

    r = pension.return_rate / HUNDRED
    balance = state.balance

    if pension.is_lump_sum:
        if year == pension.payment_start_year:
            payment = balance + extra_contribution
            new_state = PensionState(balance=ZERO, annual_payment=payment)
            row = PensionScheduleRow(
                year=year,
                phase=PensionPhase.PAYOUT,
                contribution=extra_contribution,
                payment=payment,
                balance=ZERO,
            )
            return new_state, row
        balance = balance + extra_contribution
        phase = PensionPhase.IDLE if year > pension.payment_start_year else PensionPhase.DEFERRAL
        return (
            state.model_copy(update={"balance": balance}),
            PensionScheduleRow(year=year, phase=phase, contribution=extra_contribution, balance=balance),
        )

    if year < pension.start_year:
        return state, PensionScheduleRow(year=year, phase=PensionPhase.IDLE, balance=balance)

    if year < pension.payment_start_year:
        contribution = extra_contribution
        if pension.in_contribution_window(year):
            phase = PensionPhase.ACCUMULATION
            contribution = contribution + pension.annual_contribution
        else:
            phase = PensionPhase.DEFERRAL
        investment_return = balance * r
        balance = balance + investment_return + contribution
        row = PensionScheduleRow(
            year=year,
            phase=phase,
            contribution=contribution,
            investment_return=investment_return,
            balance=balance,
        )
        return state.model_copy(update={"balance": balance}), row

    _check_payout_window(pension)
    if year > pension.payment_end_year:
        return state, PensionScheduleRow(year=year, phase=PensionPhase.IDLE, balance=balance)

    balance = balance + extra_contribution
    annual_payment = state.annual_payment
    if annual_payment is None:
        # Payout may already be under way when the projection starts
        years_left = pension.payment_end_year - year + 1
        annual_payment = annuity_payment(
            balance, pension.return_rate, years_left, pension.payment_timing
        )
        logger.debug(
            "pension_payout_started",
            pension_id=pension.id,
            year=year,
            opening_balance=str(balance),
            years_left=years_left,
            annual_payment=str(annual_payment),
        )

    is_last = year == pension.payment_end_year
    if pension.payment_timing == PaymentTiming.DUE:
        payment = balance if is_last else min(annual_payment, balance)
        balance = balance - payment
        investment_return = balance * r
        balance = balance + investment_return
    else:
        investment_return = balance * r
        balance = balance + investment_return
        payment = balance if is_last else min(annual_payment, balance)
        balance = balance - payment

    new_state = PensionState(balance=balance, annual_payment=annual_payment)
    row = PensionScheduleRow(
        year=year,
        phase=PensionPhase.PAYOUT,
        contribution=extra_contribution,
        investment_return=investment_return,
        payment=payment,
        balance=balance,
    )
    return new_state, row


def build_pension_schedule(
    pension: Pension,
    first_year: Optional[int] = None,
) -> list[PensionScheduleRow]:
    """Full schedule from ``max(start_year, first_year)`` to ``end_year``.

    Balances before ``first_year`` are taken as the entity's opening
    balance, so accumulation starts with the first simulated year. A payout
    already under way at ``first_year`` is spread over the years left.
    """
    start = pension.start_year if first_year is None else max(pension.start_year, first_year)
    state = initial_pension_state(pension, first_year)
    rows: list[PensionScheduleRow] = []
    for year in range(start, pension.end_year + 1):
        state, row = advance_pension(pension, year, state)
        rows.append(row)
    return rows
