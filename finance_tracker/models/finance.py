"""
Core Data Models for Finance Tracker

These models define the schemas for every entity a user records:
incomes, expenses, budgets, debts, goals, recommendations and alerts,
all organised per calendar month.

DESIGN DECISION: Aggregates are DERIVED, never stored.
A debt's balance, total paid and paid-off flag are computed from its
month-indexed payment map; a goal's current amount and completion are
computed from its month-indexed progress map. Stored copies of these
numbers can never drift from the maps they summarise.

Monetary values are Decimal with two decimal places, matching the
fixed-point columns of the relational schema.
"""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    model_validator,
)


ZERO = Decimal("0")
CENT = Decimal("0.01")

MONTH_ID_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"

MonthId = Annotated[str, Field(pattern=MONTH_ID_PATTERN)]
Money = Annotated[Decimal, Field(ge=0, decimal_places=2)]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_money(value) -> Decimal:
    """
    Coerce user input (int, float, str, Decimal) to a cent-precision Decimal.

    Floats go through str() so 0.1 stays 0.10 instead of its binary expansion.
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    if not value.is_finite():
        return value
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# =============================================================================
# MONTH HELPERS
# =============================================================================

def month_id_for(value: date | str) -> str:
    """
    Month identifier (YYYY-MM) for a date.

    Strings are treated as ISO dates and truncated to their first
    seven characters.
    """
    if isinstance(value, date):
        return value.isoformat()[:7]
    return value[:7]


def month_display_name(month_id: str) -> str:
    """'2023-04' -> 'April 2023'."""
    year, month = month_id.split("-")
    return date(int(year), int(month), 1).strftime("%B %Y")


def next_month_id(month_id: str) -> str:
    """'2023-12' -> '2024-01'."""
    year, month = (int(part) for part in month_id.split("-"))
    if month == 12:
        return f"{year + 1:04d}-01"
    return f"{year:04d}-{month + 1:02d}"


def previous_month_id(month_id: str) -> str:
    """'2024-01' -> '2023-12'."""
    year, month = (int(part) for part in month_id.split("-"))
    if month == 1:
        return f"{year - 1:04d}-12"
    return f"{year:04d}-{month - 1:02d}"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    The list is closed: free-text categories would break budget matching.
    """
    RENT_OR_MORTGAGE = "Rent or Mortgage"
    UTILITIES = "Utilities"
    INTERNET_AND_PHONE = "Internet and Phone Bill"
    INSURANCE = "Insurance"
    GROCERIES = "Groceries"
    TRANSPORTATION = "Transportation"
    DEBT_PAYMENTS = "Debt Payments"
    SUBSCRIPTIONS = "Subscriptions and Memberships"
    CHILDCARE_OR_TUITION = "Childcare or Tuition"
    MEDICAL_AND_HEALTH = "Medical and Health Expenses"
    PERSONAL_CARE_AND_CLOTHING = "Personal Care and Clothing"
    SAVINGS_AND_INVESTMENTS = "Savings and Investments"
    ENTERTAINMENT_AND_DINING = "Entertainment and Dining Out"
    PET_EXPENSES = "Pet Expenses"
    MISCELLANEOUS = "Miscellaneous or Emergency Fund"
    SAVINGS = "Savings"


# Categories a household can realistically cut back on
DISCRETIONARY_CATEGORIES = frozenset({
    ExpenseCategory.SUBSCRIPTIONS,
    ExpenseCategory.PERSONAL_CARE_AND_CLOTHING,
    ExpenseCategory.ENTERTAINMENT_AND_DINING,
    ExpenseCategory.PET_EXPENSES,
    ExpenseCategory.MISCELLANEOUS,
    ExpenseCategory.GROCERIES,
    ExpenseCategory.TRANSPORTATION,
})


class IncomeType(str, Enum):
    """Income sources."""
    SALARY = "Salary"
    FREELANCE = "Freelance"
    INVESTMENT = "Investment"
    GIFT = "Gift"
    OTHER = "Other"


class GoalType(str, Enum):
    """Financial goal types."""
    OTHER = "Other"
    DEBT_PAYOFF = "DebtPayoff"
    EMERGENCY_FUND = "EmergencyFund"
    RETIREMENT = "Retirement"
    EDUCATION = "Education"
    HOME_DOWN_PAYMENT = "HomeDownPayment"
    TRAVEL = "Travel"
    MAJOR_PURCHASE = "MajorPurchase"
    SAVINGS = "Savings"
    INVESTMENT = "Investment"


# =============================================================================
# MONTHS
# =============================================================================

class MonthData(BaseModel):
    """A month the user tracks. Exactly one month is active at a time."""

    id: MonthId
    name: str = ""
    is_active: bool = False

    @model_validator(mode='after')
    def default_name(self) -> 'MonthData':
        if not self.name:
            self.name = month_display_name(self.id)
        return self


# =============================================================================
# CASH FLOWS
# =============================================================================

class Income(BaseModel):
    """An income entry."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    source: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Where the money came from (employer, client, ...)"
    )
    type: IncomeType = IncomeType.SALARY
    amount: Money
    date: date
    recurring: bool = False
    description: Optional[str] = Field(default=None, max_length=500)


class Expense(BaseModel):
    """
    An expense entry.

    Debt payments create these automatically with category DEBT_PAYMENTS
    and associated_debt_id pointing at the paid debt.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    amount: Annotated[Decimal, Field(gt=0, decimal_places=2)]
    category: ExpenseCategory
    date: date
    description: Optional[str] = Field(default=None, max_length=255)
    associated_debt_id: Optional[UUID] = None


class Budget(BaseModel):
    """A monthly spending limit for one category."""

    category: ExpenseCategory
    limit: Annotated[Decimal, Field(gt=0, decimal_places=2)]


class BudgetUsage(BaseModel):
    """A budget together with what was spent against it in one month."""

    category: ExpenseCategory
    limit: Decimal
    spent: Decimal

    @computed_field
    @property
    def percent_used(self) -> float:
        if self.limit <= 0:
            return 0.0
        return float(self.spent / self.limit * 100)

    @property
    def remaining(self) -> Decimal:
        return self.limit - self.spent


# =============================================================================
# DEBTS AND GOALS
# =============================================================================

class Debt(BaseModel):
    """
    A debt being paid down month by month.

    INVARIANT: balance == max(0, original_principal - sum(monthly_payments))
    and is_paid_off == (balance <= 0). Both are computed, so they are
    serialised for readers but ignored when a debt is loaded back.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=255)
    original_principal: Money
    interest_rate: Annotated[Decimal, Field(ge=0, le=100)] = ZERO
    minimum_payment: Money = ZERO
    due_date: Optional[date] = None
    priority: int = Field(default=0, ge=0, le=10)
    monthly_payments: dict[MonthId, Money] = Field(
        default_factory=dict,
        description="Amount paid in each month"
    )
    monthly_balances: dict[MonthId, Money] = Field(
        default_factory=dict,
        description="Balance at the end of each month"
    )

    @computed_field
    @property
    def total_paid(self) -> Decimal:
        return sum(self.monthly_payments.values(), ZERO)

    @computed_field
    @property
    def balance(self) -> Decimal:
        return max(ZERO, self.original_principal - self.total_paid)

    @computed_field
    @property
    def is_paid_off(self) -> bool:
        return self.balance <= 0

    def balance_as_of(self, month_id: str) -> Decimal:
        """Balance counting only payments made in or before month_id."""
        paid = sum(
            (amount for month, amount in self.monthly_payments.items() if month <= month_id),
            ZERO,
        )
        return max(ZERO, self.original_principal - paid)

    @property
    def percent_paid(self) -> float:
        if self.original_principal <= 0:
            return 100.0
        return float((self.original_principal - self.balance) / self.original_principal * 100)


class GoalRecommendation(BaseModel):
    """AI-generated (or fallback) advice for reaching one goal faster."""

    id: UUID = Field(default_factory=uuid4)
    description: str
    potential_impact: str = Field(
        default="Medium",
        description="High, Medium or Low"
    )
    estimated_time_reduction: str = ""
    required_actions: list[str] = Field(default_factory=list)
    applied_date: Optional[date] = None


class Goal(BaseModel):
    """
    A savings goal with month-by-month contributions.

    INVARIANT: current_amount == sum(monthly_progress) and
    completed == (current_amount >= target_amount).

    A DEBT_PAYOFF goal points at its debt through associated_debt_id.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=255)
    type: GoalType = GoalType.SAVINGS
    target_amount: Annotated[Decimal, Field(gt=0, decimal_places=2)]
    target_date: Optional[date] = None
    description: str = ""
    priority: int = Field(default=5, ge=1, le=10)
    associated_debt_id: Optional[UUID] = None
    monthly_progress: dict[MonthId, Money] = Field(
        default_factory=dict,
        description="Contribution made in each month"
    )
    ai_recommendations: list[GoalRecommendation] = Field(default_factory=list)

    @computed_field
    @property
    def current_amount(self) -> Decimal:
        return sum(self.monthly_progress.values(), ZERO)

    @computed_field
    @property
    def completed(self) -> bool:
        return self.current_amount >= self.target_amount

    @property
    def remaining(self) -> Decimal:
        return max(ZERO, self.target_amount - self.current_amount)


# =============================================================================
# FEEDBACK TO THE USER
# =============================================================================

class Recommendation(BaseModel):
    """A stored recommendation shown on the dashboard."""

    id: UUID = Field(default_factory=uuid4)
    type: str
    description: str
    impact: str = ""
    category: Optional[str] = None
    is_read: bool = False
    date_generated: datetime = Field(default_factory=utcnow)


class Alert(BaseModel):
    """A notification such as a budget warning."""

    id: UUID = Field(default_factory=uuid4)
    type: str
    message: str
    severity: str = Field(default="warning", pattern="^(info|warning|success|error)$")
    is_read: bool = False
    date: datetime = Field(default_factory=utcnow)


# =============================================================================
# USER PROFILE
# =============================================================================

class EmailNotifications(BaseModel):
    budget_alerts: bool = True
    payment_reminders: bool = True
    goal_progress: bool = True
    monthly_reports: bool = False


class AlertPreferences(BaseModel):
    budget_warning_threshold: float = Field(
        default=80.0,
        gt=0,
        le=100,
        description="Percentage of a budget at which to warn"
    )
    low_balance_threshold: Decimal = Decimal("100")
    upcoming_payment_days: int = Field(default=3, ge=0)
    instant_alerts: bool = True


class UserProfile(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    email: str = ""
    preferred_currency: str = Field(default="USD", max_length=10)
    goal_preference: GoalType = GoalType.SAVINGS
    notifications_enabled: bool = True
    email_notifications: EmailNotifications = Field(default_factory=EmailNotifications)
    alert_preferences: AlertPreferences = Field(default_factory=AlertPreferences)
