"""
Ledger Summaries

Read-only views computed from a month snapshot: totals, savings rate,
budget usage, budget alerts, starter recommendations, month-over-month
comparison, debt payoff projections, and the aggregated snapshots sent
to the insights proxy.

All figures are recomputed on demand from the entries; nothing here is
stored.
"""

import math
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from finance_tracker.ledger.state import MonthLedger, MonthSnapshot
from finance_tracker.models.finance import (
    DISCRETIONARY_CATEGORIES,
    ZERO,
    Alert,
    BudgetUsage,
    Debt,
    ExpenseCategory,
    Goal,
    Recommendation,
    next_month_id,
    previous_month_id,
    to_money,
)
from finance_tracker.models.insights import (
    CategoryAmount,
    ExpenseLine,
    FinancialSnapshot,
    GoalSnapshot,
    HealthRequest,
)


# Minimum payment estimate for debts without one (3% of balance)
ESTIMATED_MINIMUM_RATE = Decimal("0.03")


class MonthlySummary(BaseModel):
    month_id: str
    total_income: Decimal
    total_expenses: Decimal
    net_cashflow: Decimal
    savings_rate: float


class MonthComparison(BaseModel):
    """Active month against the month before it."""

    current: MonthlySummary
    previous: Optional[MonthlySummary] = None

    @property
    def income_change(self) -> Decimal:
        if self.previous is None:
            return ZERO
        return self.current.total_income - self.previous.total_income

    @property
    def expense_change(self) -> Decimal:
        if self.previous is None:
            return ZERO
        return self.current.total_expenses - self.previous.total_expenses

    @property
    def savings_rate_change(self) -> float:
        if self.previous is None:
            return 0.0
        return self.current.savings_rate - self.previous.savings_rate


def savings_rate(income: Decimal, expenses: Decimal) -> float:
    """Percentage of income left after expenses (0 when there is no income)."""
    if income <= 0:
        return 0.0
    return float((income - expenses) / income * 100)


def summarize_month(snapshot: MonthSnapshot, month_id: str) -> MonthlySummary:
    income = sum((i.amount for i in snapshot.incomes), ZERO)
    expenses = sum((e.amount for e in snapshot.expenses), ZERO)
    return MonthlySummary(
        month_id=month_id,
        total_income=income,
        total_expenses=expenses,
        net_cashflow=income - expenses,
        savings_rate=savings_rate(income, expenses),
    )


def compare_with_previous(ledger: MonthLedger, month_id: Optional[str] = None) -> MonthComparison:
    month_id = month_id or ledger.active_month_id
    current = summarize_month(ledger.snapshot(month_id), month_id)

    prev_id = previous_month_id(month_id)
    previous = None
    if ledger.has_month(prev_id):
        previous = summarize_month(ledger.snapshot(prev_id), prev_id)

    return MonthComparison(current=current, previous=previous)


def spending_by_category(snapshot: MonthSnapshot) -> dict[ExpenseCategory, Decimal]:
    totals: dict[ExpenseCategory, Decimal] = {}
    for expense in snapshot.expenses:
        totals[expense.category] = totals.get(expense.category, ZERO) + expense.amount
    return totals


def budget_usage(snapshot: MonthSnapshot) -> list[BudgetUsage]:
    spent = spending_by_category(snapshot)
    return [
        BudgetUsage(
            category=budget.category,
            limit=budget.limit,
            spent=spent.get(budget.category, ZERO),
        )
        for budget in snapshot.budgets
    ]


def budget_alerts(snapshot: MonthSnapshot, threshold: float = 80.0) -> list[Alert]:
    """Warnings for every budget used at or beyond the threshold percentage."""
    alerts = []
    for usage in budget_usage(snapshot):
        if usage.percent_used >= threshold:
            alerts.append(Alert(
                type="Budget Warning",
                message=(
                    f"You've spent {round(usage.percent_used)}% of your "
                    f"{usage.category.value} budget"
                ),
                severity="error" if usage.percent_used > 100 else "warning",
            ))
    return alerts


def starter_recommendations(summary: MonthlySummary) -> list[Recommendation]:
    """Rule-based recommendations that need no external service."""
    recommendations = []

    if summary.total_expenses > summary.total_income and summary.total_expenses > 0:
        gap = summary.total_expenses - summary.total_income
        recommendations.append(Recommendation(
            type="Budget Alert",
            description=(
                "Your expenses exceed your income. Consider reducing spending "
                "in non-essential categories."
            ),
            impact=f"Improve cashflow by ${gap:.2f} monthly",
        ))

    if summary.savings_rate < 20 and summary.total_income > 0:
        target = summary.total_income * Decimal("0.2")
        recommendations.append(Recommendation(
            type="Savings Tip",
            description=(
                "Your current savings rate is below the recommended 20%. "
                "Try to increase income or reduce expenses."
            ),
            impact=f"Reaching a 20% savings rate would mean saving ${target:.2f} monthly",
        ))

    return recommendations


# =============================================================================
# DEBT PAYOFF
# =============================================================================

# Months projected past the last payment in a balance history
PROJECTION_MONTHS = 6


class BalancePoint(BaseModel):
    month_id: str
    balance: Decimal
    projected: bool = False


class PayoffProjection(BaseModel):
    """
    When a debt will be gone if only its minimum payment is made.

    months_remaining is None when the payment never clears the debt
    (no minimum payment, or one that does not cover the monthly interest).
    """

    debt_id: UUID
    balance: Decimal
    percent_paid: int
    months_remaining: Optional[int] = None
    payoff_month: Optional[str] = None
    history: list[BalancePoint] = Field(default_factory=list)

    @property
    def time_remaining(self) -> str:
        if self.months_remaining is None:
            return "Not on track to be paid off at the current payment"
        if self.months_remaining == 0:
            return "Paid off"

        years, months = divmod(self.months_remaining, 12)
        parts = []
        if years:
            parts.append(f"{years} {'year' if years == 1 else 'years'}")
        if months:
            parts.append(f"{months} {'month' if months == 1 else 'months'}")
        return " and ".join(parts) + " remaining"


def monthly_interest_rate(debt: Debt) -> Decimal:
    return debt.interest_rate / 100 / 12


def months_to_payoff(balance: Decimal, payment: Decimal, interest_rate: Decimal) -> Optional[int]:
    """
    Months of fixed payments needed to clear a balance with monthly
    compounding (standard amortization formula).
    """
    if balance <= 0:
        return 0
    if payment <= 0:
        return None

    rate = float(interest_rate) / 100 / 12
    if rate == 0:
        return math.ceil(balance / payment)

    interest = float(balance) * rate
    if float(payment) <= interest:
        return None
    return math.ceil(
        math.log(float(payment) / (float(payment) - interest)) / math.log(1 + rate)
    )


def balance_history(debt: Debt, projection_months: int = PROJECTION_MONTHS) -> list[BalancePoint]:
    """
    Balance at the end of every month with a payment, starting from the
    original principal the month before the first payment, plus one
    projected point projection_months after the last payment.
    """
    paid_months = sorted(debt.monthly_payments)
    if not paid_months:
        return []

    points = [BalancePoint(month_id=previous_month_id(paid_months[0]), balance=debt.original_principal)]
    points.extend(
        BalancePoint(month_id=month_id, balance=debt.balance_as_of(month_id))
        for month_id in paid_months
    )

    balance = debt.balance
    if balance <= 0 or debt.minimum_payment <= 0:
        return points

    month_id = paid_months[-1]
    rate = monthly_interest_rate(debt)
    for _ in range(projection_months):
        month_id = next_month_id(month_id)
        balance = max(ZERO, balance + balance * rate - debt.minimum_payment)

    points.append(BalancePoint(month_id=month_id, balance=to_money(balance), projected=True))
    return points


def payoff_projection(debt: Debt, month_id: str) -> PayoffProjection:
    """Payoff date, time remaining and balance history of a debt as of month_id."""
    remaining = months_to_payoff(debt.balance, debt.minimum_payment, debt.interest_rate)

    payoff_month = None
    if remaining is not None:
        payoff_month = month_id
        for _ in range(remaining):
            payoff_month = next_month_id(payoff_month)

    return PayoffProjection(
        debt_id=debt.id,
        balance=debt.balance,
        percent_paid=round(debt.percent_paid),
        months_remaining=remaining,
        payoff_month=payoff_month,
        history=balance_history(debt),
    )


# =============================================================================
# SNAPSHOTS FOR THE INSIGHTS PROXY
# =============================================================================

def estimated_monthly_debt_payments(debts: list[Debt]) -> Decimal:
    return sum(
        (debt.minimum_payment or debt.balance * ESTIMATED_MINIMUM_RATE for debt in debts),
        ZERO,
    )


def debt_to_income_ratio(debts: list[Debt], income: Decimal) -> float:
    """Monthly debt service as a percentage of income."""
    if income <= 0:
        return 0.0
    return float(estimated_monthly_debt_payments(debts) / income * 100)


def expense_breakdown(snapshot: MonthSnapshot) -> list[CategoryAmount]:
    """Categories ordered by amount spent, largest first."""
    totals = spending_by_category(snapshot)
    overall = sum(totals.values(), ZERO)
    breakdown = [
        CategoryAmount(
            category=category.value,
            amount=amount,
            percent_of_total_expenses=float(amount / overall * 100) if overall > 0 else 0.0,
            is_reducible=category in DISCRETIONARY_CATEGORIES,
        )
        for category, amount in totals.items()
    ]
    breakdown.sort(key=lambda item: item.amount, reverse=True)
    return breakdown


def build_financial_snapshot(snapshot: MonthSnapshot, month_id: str) -> FinancialSnapshot:
    summary = summarize_month(snapshot, month_id)
    open_debts = [debt for debt in snapshot.debts if not debt.is_paid_off]
    debt_total = sum((debt.balance for debt in open_debts), ZERO)

    average_rate = 0.0
    if open_debts:
        average_rate = float(
            sum((debt.interest_rate for debt in open_debts), ZERO) / len(open_debts)
        )

    return FinancialSnapshot(
        total_income=summary.total_income,
        total_expenses=summary.total_expenses,
        net_cashflow=summary.net_cashflow,
        savings_rate=summary.savings_rate,
        debt_total=debt_total,
        average_interest_rate=average_rate,
        debt_to_income_ratio=debt_to_income_ratio(open_debts, summary.total_income),
        top_expense_categories=expense_breakdown(snapshot)[:5],
        over_budget_categories=[
            usage.category.value
            for usage in budget_usage(snapshot)
            if usage.spent > usage.limit
        ],
    )


def build_health_request(snapshot: MonthSnapshot, month_id: str) -> HealthRequest:
    figures = build_financial_snapshot(snapshot, month_id)
    return HealthRequest(
        income=figures.total_income,
        expenses=figures.total_expenses,
        debt=figures.debt_total,
        savings_rate=figures.savings_rate,
        debt_to_income_ratio=figures.debt_to_income_ratio,
    )


def goal_snapshot(goal: Goal) -> GoalSnapshot:
    return GoalSnapshot(
        goal_id=goal.id,
        name=goal.name,
        type=goal.type,
        target_amount=goal.target_amount,
        current_amount=goal.current_amount,
        target_date=goal.target_date.isoformat() if goal.target_date else None,
        description=goal.description,
        priority=goal.priority,
    )


def expense_lines(snapshot: MonthSnapshot) -> list[ExpenseLine]:
    return [
        ExpenseLine(
            category=expense.category.value,
            amount=expense.amount,
            date=expense.date.isoformat(),
            description=expense.description,
        )
        for expense in snapshot.expenses
    ]
