"""Payroll tax and social insurance tables.

This module contains the progressive income tax brackets and the employee
social insurance rates used to convert between gross and net monthly pay.
All amounts are in units of 10,000 KRW (만원).

Income tax uses the quick-deduction form: ``tax = taxable * rate - quick``,
which is continuous at every bracket boundary.

Updated: 2024 tax year
"""

from decimal import Decimal
from typing import NamedTuple, Optional


# =============================================================================
# VERSION TRACKING
# =============================================================================

TAX_TABLES_VERSION = "2024"


# =============================================================================
# INCOME TAX BRACKETS
# =============================================================================

class TaxBracket(NamedTuple):
    """Bracket covering ``lower < taxable <= upper`` (no upper bound when None)."""
    lower: Decimal
    upper: Optional[Decimal]
    rate: Decimal
    quick_deduction: Decimal


INCOME_TAX_BRACKETS = (
    TaxBracket(Decimal("0"), Decimal("1400"), Decimal("0.06"), Decimal("0")),
    TaxBracket(Decimal("1400"), Decimal("5000"), Decimal("0.15"), Decimal("126")),
    TaxBracket(Decimal("5000"), Decimal("8800"), Decimal("0.24"), Decimal("576")),
    TaxBracket(Decimal("8800"), Decimal("15000"), Decimal("0.35"), Decimal("1544")),
    TaxBracket(Decimal("15000"), Decimal("30000"), Decimal("0.38"), Decimal("1994")),
    TaxBracket(Decimal("30000"), Decimal("50000"), Decimal("0.40"), Decimal("2594")),
    TaxBracket(Decimal("50000"), Decimal("100000"), Decimal("0.42"), Decimal("3594")),
    TaxBracket(Decimal("100000"), None, Decimal("0.45"), Decimal("6594")),
)

# Flat basic deduction from annual gross pay (simplified withholding table)
BASIC_DEDUCTION = Decimal("150")

# Local income tax as a share of income tax
LOCAL_INCOME_TAX_RATE = Decimal("0.10")


def get_tax_bracket(taxable_income: Decimal) -> Optional[TaxBracket]:
    """Find the bracket for an annual taxable income.

    Returns:
        The matching bracket, or None when there is no taxable income.
    """
    if taxable_income <= 0:
        return None
    for bracket in INCOME_TAX_BRACKETS:
        if bracket.upper is None or taxable_income <= bracket.upper:
            return bracket
    return INCOME_TAX_BRACKETS[-1]


def calculate_income_tax(taxable_income: Decimal) -> Decimal:
    """Annual income tax on ``taxable_income``."""
    bracket = get_tax_bracket(taxable_income)
    if bracket is None:
        return Decimal("0")
    return taxable_income * bracket.rate - bracket.quick_deduction


# =============================================================================
# SOCIAL INSURANCE (EMPLOYEE SHARE)
# =============================================================================

NATIONAL_PENSION_RATE = Decimal("0.045")
# Monthly income above this is not subject to national pension contributions
NATIONAL_PENSION_INCOME_CEILING = Decimal("617")

HEALTH_INSURANCE_RATE = Decimal("0.03545")
# Long-term care is levied on the health insurance premium
LONG_TERM_CARE_RATE = Decimal("0.1295")

EMPLOYMENT_INSURANCE_RATE = Decimal("0.009")
