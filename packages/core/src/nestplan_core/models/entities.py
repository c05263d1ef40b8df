"""Household plan input models.

This module implements the financial entities a household enters into the
planner (income, expense, saving, pension, real estate, debt, asset), the
household profile, and the per-year surplus allocation and withdrawal
rules.

Every entity shares an activation window ``[start_year, end_year]`` and
answers ``active_in_year(year)``. Entities whose yearly amount is a closed
form of their own fields (income, expense, saving, real estate, asset) also
expose ``flow_in_year(year)``. Debt service and funded pension payouts come
from schedules, which the normalizer builds and caches.

Models accept both snake_case field names and the camelCase names used by
the data-entry layer (``startYear``, ``debtAmount``, ...). Rates are signed
annual percentages: ``Decimal("3")`` means 3%.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
MONTHS_PER_YEAR = 12


# =============================================================================
# ENUMERATIONS
# =============================================================================

class Frequency(str, Enum):
    """How often an amount is paid."""
    MONTHLY = "monthly"
    YEARLY = "yearly"
    ONE_TIME = "one_time"  # Paid once, in the start year


class PensionType(str, Enum):
    """Pension variants."""
    NATIONAL = "national"  # Public pension, fixed benefit
    RETIREMENT = "retirement"  # Employer retirement plan
    PERSONAL = "personal"  # Private pension savings
    SEVERANCE = "severance"  # Severance pay lump sum


class PaymentTiming(str, Enum):
    """Timing of annuity payments within a payout year."""
    ORDINARY = "ordinary"  # End of year: balance compounds, then payment
    DUE = "due"  # Start of year: payment, then remaining balance compounds


class DebtRepaymentType(str, Enum):
    """Debt repayment schemes."""
    BULLET = "bullet"  # Interest only, principal at maturity
    EQUAL = "equal"  # Equal total payment (annuity)
    PRINCIPAL = "principal"  # Equal principal, declining interest
    GRACE = "grace"  # Interest-only grace period, then equal payment


class AssetKind(str, Enum):
    """General assets only change value; income assets also pay a yield."""
    GENERAL = "general"
    INCOME = "income"


class AllocationTargetType(str, Enum):
    """Where a share of the yearly surplus is routed."""
    CASH = "cash"
    SAVING = "saving"
    PENSION = "pension"


class WithdrawalSourceType(str, Enum):
    """Balances a withdrawal rule may draw from."""
    SAVING = "saving"


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def periods_per_year(frequency: Frequency) -> int:
    """Number of payments per active year for a frequency."""
    if frequency == Frequency.MONTHLY:
        return MONTHS_PER_YEAR
    return 1


def growth_factor(rate: Decimal, years: int) -> Decimal:
    """Compound growth factor ``(1 + rate/100) ** years``."""
    return (ONE + rate / HUNDRED) ** years


# =============================================================================
# BASE MODELS
# =============================================================================

class PlanModel(BaseModel):
    """Base for all plan input models (camelCase aliases accepted)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Entity(PlanModel):
    """A dated financial record active over ``[start_year, end_year]``."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    title: str = ""
    start_year: int
    end_year: int
    growth_rate: Decimal = Field(default=ZERO, gt=-100)
    memo: Optional[str] = None

    @model_validator(mode="after")
    def check_window(self) -> "Entity":
        """Derive variant-specific fields and enforce start_year <= end_year."""
        self._derive_fields()
        if self.start_year > self.end_year:
            raise ValueError(
                f"start_year ({self.start_year}) must not be after end_year ({self.end_year})"
            )
        return self

    def _derive_fields(self) -> None:
        """Fill fields that depend on other fields. No-op by default."""

    @property
    def label(self) -> str:
        return self.title or self.id

    def active_in_year(self, year: int) -> bool:
        """Whether the entity participates in ``year``."""
        return self.start_year <= year <= self.end_year


# =============================================================================
# INCOME AND EXPENSE MODELS
# =============================================================================

class PeriodicFlow(Entity):
    """An amount paid every period, escalating geometrically each year."""

    amount: Decimal = Field(ge=0)
    frequency: Frequency = Frequency.MONTHLY

    def flow_in_year(self, year: int) -> Decimal:
        if not self.active_in_year(year):
            return ZERO
        if self.frequency == Frequency.ONE_TIME:
            return self.amount if year == self.start_year else ZERO
        annual = self.amount * periods_per_year(self.frequency)
        return annual * growth_factor(self.growth_rate, year - self.start_year)


class Income(PeriodicFlow):
    """Salary, business income, or any other recurring inflow."""


class Expense(PeriodicFlow):
    """Living costs or any other recurring outflow."""


# =============================================================================
# SAVING MODELS
# =============================================================================

class Saving(Entity):
    """A savings or investment account fed by periodic contributions.

    The balance compounds at ``interest_rate`` during the active window.
    With ``income_rate`` set, the account instead pays ``balance x
    income_rate`` out as income each year and only grows by contributions.
    The account matures at ``end_year`` and its balance is paid into cash,
    less capital gains tax on the gain over contributed principal.

    Contribution escalation uses ``yearly_growth_rate``; the inherited
    ``growth_rate`` is not used by savings.
    """

    amount: Decimal = Field(default=ZERO, ge=0)
    frequency: Frequency = Frequency.MONTHLY
    current_amount: Decimal = Field(default=ZERO, ge=0)
    interest_rate: Decimal = Field(default=ZERO, gt=-100)
    yearly_growth_rate: Decimal = Field(default=ZERO, gt=-100)
    income_rate: Optional[Decimal] = Field(default=None, ge=0)
    capital_gains_tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)

    @property
    def pays_income(self) -> bool:
        return self.income_rate is not None

    def contribution_in_year(self, year: int) -> Decimal:
        """Contribution paid into the account in ``year``."""
        if not self.active_in_year(year):
            return ZERO
        if self.frequency == Frequency.ONE_TIME:
            return self.amount if year == self.start_year else ZERO
        annual = self.amount * periods_per_year(self.frequency)
        return annual * growth_factor(self.yearly_growth_rate, year - self.start_year)

    def flow_in_year(self, year: int) -> Decimal:
        return self.contribution_in_year(year)


# =============================================================================
# PENSION MODELS
# =============================================================================

class Pension(Entity):
    """A national, retirement, personal or severance pension.

    National pensions pay ``monthly_amount x 12`` escalated by
    ``inflation_rate`` over ``[start_year, end_year]``. The other types hold
    a balance that accumulates over the contribution window and is paid out
    as an annuity of ``payment_years`` years from ``payment_start_year``.
    A severance pension without additional contribution is paid as a single
    lump sum of ``average_salary x years_of_service``.

    For funded pensions ``start_year``/``end_year`` are derived from the
    contribution and payment windows when omitted.
    """

    pension_type: PensionType = Field(alias="type")
    start_year: Optional[int] = None  # type: ignore[assignment]
    end_year: Optional[int] = None  # type: ignore[assignment]

    # National pension
    monthly_amount: Decimal = Field(default=ZERO, ge=0)
    inflation_rate: Decimal = Field(default=ZERO, gt=-100)

    # Funded pensions
    current_amount: Decimal = Field(default=ZERO, ge=0)
    contribution_amount: Decimal = Field(default=ZERO, ge=0)
    contribution_frequency: Frequency = Frequency.MONTHLY
    contribution_start_year: Optional[int] = None
    contribution_end_year: Optional[int] = None
    return_rate: Decimal = Field(default=ZERO, gt=-100)
    payment_start_year: Optional[int] = None
    payment_years: Optional[int] = Field(default=None, ge=0)
    payment_end_year: Optional[int] = None
    payment_timing: PaymentTiming = PaymentTiming.ORDINARY

    # Severance
    average_salary: Decimal = Field(default=ZERO, ge=0)
    years_of_service: Decimal = Field(default=ZERO, ge=0)
    no_additional_contribution: bool = True

    def _derive_fields(self) -> None:
        if self.pension_type == PensionType.NATIONAL:
            if self.start_year is None or self.end_year is None:
                raise ValueError("national pension requires start_year and end_year")
            return

        if self.pension_type == PensionType.SEVERANCE and self.average_salary > 0:
            self.current_amount = self.average_salary * self.years_of_service

        if self.payment_start_year is None:
            raise ValueError(f"{self.pension_type.value} pension requires payment_start_year")

        if self.is_lump_sum:
            self.payment_years = 1
        elif self.payment_years is None:
            if self.payment_end_year is None:
                raise ValueError("pension requires payment_years or payment_end_year")
            if self.payment_end_year < self.payment_start_year - 1:
                raise ValueError("payment_end_year must not be before payment_start_year")
            self.payment_years = self.payment_end_year - self.payment_start_year + 1
        self.payment_end_year = self.payment_start_year + self.payment_years - 1

        if self.has_contribution_window:
            if self.contribution_start_year is None or self.contribution_end_year is None:
                raise ValueError("contributions require contribution_start_year and contribution_end_year")
            if self.contribution_start_year > self.contribution_end_year:
                raise ValueError("contribution_start_year must not be after contribution_end_year")
            if self.contribution_end_year >= self.payment_start_year:
                raise ValueError("contribution window must end before payment_start_year")
            if self.contribution_frequency == Frequency.ONE_TIME:
                raise ValueError("pension contributions must be monthly or yearly")

        if self.start_year is None:
            self.start_year = (
                self.contribution_start_year
                if self.has_contribution_window
                else self.payment_start_year
            )
        if self.end_year is None:
            self.end_year = max(self.payment_end_year, self.payment_start_year)

    @property
    def is_funded(self) -> bool:
        """Whether the pension is backed by a balance."""
        return self.pension_type != PensionType.NATIONAL

    @property
    def is_lump_sum(self) -> bool:
        """Severance paid out at once without compounding."""
        return self.pension_type == PensionType.SEVERANCE and self.no_additional_contribution

    @property
    def has_contribution_window(self) -> bool:
        return (
            not self.is_lump_sum
            and self.contribution_amount > 0
        )

    @property
    def annual_contribution(self) -> Decimal:
        return self.contribution_amount * periods_per_year(self.contribution_frequency)

    def in_contribution_window(self, year: int) -> bool:
        return (
            self.has_contribution_window
            and self.contribution_start_year <= year <= self.contribution_end_year
        )

    def in_payment_window(self, year: int) -> bool:
        if not self.is_funded:
            return self.active_in_year(year)
        return self.payment_start_year <= year <= self.payment_end_year


# =============================================================================
# REAL ESTATE MODELS
# =============================================================================

class RealEstate(Entity):
    """A property with optional rental income and home-equity pension.

    The property is valued at ``current_value`` in its valuation base year
    and grows at ``growth_rate``. It is sold at ``end_year`` unless it was
    converted into a home-equity pension.
    """

    current_value: Decimal = Field(ge=0)
    is_purchase: bool = False

    has_rental_income: bool = False
    monthly_rental_income: Decimal = Field(default=ZERO, ge=0)
    rental_income_start_year: Optional[int] = None
    rental_income_end_year: Optional[int] = None

    convert_to_pension: bool = False
    pension_start_year: Optional[int] = None
    monthly_pension_amount: Decimal = Field(default=ZERO, ge=0)

    def _derive_fields(self) -> None:
        if self.monthly_rental_income > 0:
            self.has_rental_income = True
        if self.has_rental_income:
            if self.rental_income_start_year is None:
                self.rental_income_start_year = self.start_year
            if self.rental_income_end_year is None:
                self.rental_income_end_year = self.end_year
            if self.rental_income_start_year > self.rental_income_end_year:
                raise ValueError("rental_income_start_year must not be after rental_income_end_year")

        if self.convert_to_pension:
            if self.pension_start_year is None:
                raise ValueError("convert_to_pension requires pension_start_year")
            if not self.start_year <= self.pension_start_year <= self.end_year:
                raise ValueError("pension_start_year must fall inside the holding window")

    def value_in_year(self, year: int, base_year: int) -> Decimal:
        """Market value in ``year`` given the year ``current_value`` refers to."""
        if not self.active_in_year(year):
            return ZERO
        return self.current_value * growth_factor(self.growth_rate, year - base_year)

    def rental_income_in_year(self, year: int) -> Decimal:
        if not self.has_rental_income:
            return ZERO
        if not self.rental_income_start_year <= year <= self.rental_income_end_year:
            return ZERO
        return self.monthly_rental_income * MONTHS_PER_YEAR

    def home_pension_in_year(self, year: int) -> Decimal:
        if not self.convert_to_pension or not self.active_in_year(year):
            return ZERO
        if year < self.pension_start_year:
            return ZERO
        return self.monthly_pension_amount * MONTHS_PER_YEAR

    def flow_in_year(self, year: int) -> Decimal:
        return self.rental_income_in_year(year) + self.home_pension_in_year(year)


# =============================================================================
# DEBT MODELS
# =============================================================================

class Debt(Entity):
    """A loan repaid over ``[start_year, end_year]``."""

    debt_amount: Decimal = Field(ge=0)
    interest_rate: Decimal = Field(default=ZERO, ge=0, le=100)
    debt_type: DebtRepaymentType = DebtRepaymentType.EQUAL
    grace_period: int = Field(default=0, ge=0)
    add_cash_to_flow: bool = False  # Loan proceeds credited to cash in start_year

    @property
    def term_years(self) -> int:
        return self.end_year - self.start_year + 1


# =============================================================================
# ASSET MODELS
# =============================================================================

class Asset(Entity):
    """A general or income-bearing asset (stocks, gold, a business share...).

    Valued at ``current_value`` in its valuation base year and growing at
    ``growth_rate``. Income assets pay ``value x income_rate`` each year.
    A purchased asset debits cash at ``start_year``; every asset is sold
    into cash at ``end_year``.
    """

    asset_type: AssetKind = AssetKind.GENERAL
    current_value: Decimal = Field(ge=0)
    income_rate: Optional[Decimal] = Field(default=None, ge=0)
    is_purchase: bool = False

    def value_in_year(self, year: int, base_year: int) -> Decimal:
        if not self.active_in_year(year):
            return ZERO
        return self.current_value * growth_factor(self.growth_rate, year - base_year)

    def income_in_year(self, year: int, base_year: int) -> Decimal:
        if self.income_rate is None:
            return ZERO
        return self.value_in_year(year, base_year) * self.income_rate / HUNDRED

    def flow_in_year(self, year: int) -> Decimal:
        return self.income_in_year(year, self.start_year)


# =============================================================================
# PROFILE AND RULE MODELS
# =============================================================================

class Profile(PlanModel):
    """Household head profile."""

    name: Optional[str] = None
    birth_year: int = Field(ge=1900, le=2200)
    retirement_age: int = Field(default=65, gt=0, le=130)
    current_cash: Decimal = ZERO
    target_assets: Optional[Decimal] = Field(default=None, ge=0)

    @property
    def retirement_year(self) -> int:
        return self.birth_year + self.retirement_age

    def age_in_year(self, year: int) -> int:
        """Age in completed years during ``year``."""
        return year - self.birth_year


class AllocationRule(PlanModel):
    """Routes ``ratio`` percent of a year's surplus to a target."""

    target_type: AllocationTargetType
    target_id: Optional[str] = None
    ratio: Decimal = Field(ge=0, le=100)

    @model_validator(mode="after")
    def check_target(self) -> "AllocationRule":
        if self.target_type != AllocationTargetType.CASH and not self.target_id:
            raise ValueError(f"{self.target_type.value} allocation requires target_id")
        return self


class WithdrawalRule(PlanModel):
    """Draws a stated amount from a saving balance in a shortfall year."""

    source_type: WithdrawalSourceType = WithdrawalSourceType.SAVING
    source_id: str
    amount: Decimal = Field(gt=0)


# =============================================================================
# MAIN PLAN MODEL
# =============================================================================

class HouseholdPlan(PlanModel):
    """Complete set of inputs for one projection."""

    profile: Profile

    incomes: list[Income] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    savings: list[Saving] = Field(default_factory=list)
    pensions: list[Pension] = Field(default_factory=list)
    real_estates: list[RealEstate] = Field(default_factory=list)
    debts: list[Debt] = Field(default_factory=list)
    assets: list[Asset] = Field(default_factory=list)

    allocation_rules: dict[int, list[AllocationRule]] = Field(default_factory=dict)
    withdrawal_rules: dict[int, list[WithdrawalRule]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_unique_ids(self) -> "HouseholdPlan":
        seen: set[str] = set()
        for entity in self.all_entities:
            if entity.id in seen:
                raise ValueError(f"Duplicate entity id: {entity.id}")
            seen.add(entity.id)
        return self

    @property
    def all_entities(self) -> list[Entity]:
        """All entities in a stable order (by type, then input order)."""
        return [
            *self.incomes,
            *self.expenses,
            *self.savings,
            *self.pensions,
            *self.real_estates,
            *self.debts,
            *self.assets,
        ]

    def find_entity(self, entity_id: str) -> Optional[Entity]:
        for entity in self.all_entities:
            if entity.id == entity_id:
                return entity
        return None
