"""
Sample Data

Fills a ledger with realistic-looking months for demos and manual
testing. Generation is driven by a seeded random.Random, so the same
seed always yields the same ledger.

Months referenced by the sample data are created implicitly.
"""

import calendar
import random
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from finance_tracker.ledger.state import MonthLedger
from finance_tracker.models.finance import (
    Budget,
    Debt,
    Expense,
    ExpenseCategory,
    Goal,
    GoalType,
    Income,
    IncomeType,
    to_money,
)


# (min, max, descriptions) per income type
INCOME_PROFILES = {
    IncomeType.SALARY: (3000, 6000, ["Monthly salary"]),
    IncomeType.FREELANCE: (500, 2000, ["Freelance project payment"]),
    IncomeType.INVESTMENT: (100, 1000, ["Investment returns"]),
    IncomeType.GIFT: (50, 300, ["Birthday gift"]),
    IncomeType.OTHER: (100, 500, ["Miscellaneous income"]),
}

EXPENSE_PROFILES = {
    ExpenseCategory.RENT_OR_MORTGAGE: (1000, 2000, ["Monthly rent"]),
    ExpenseCategory.UTILITIES: (80, 250, ["Electricity bill", "Water bill"]),
    ExpenseCategory.INTERNET_AND_PHONE: (40, 120, ["Phone plan", "Home internet"]),
    ExpenseCategory.INSURANCE: (100, 300, ["Insurance premium"]),
    ExpenseCategory.GROCERIES: (50, 200, ["Grocery shopping"]),
    ExpenseCategory.TRANSPORTATION: (100, 400, ["Gas", "Public transport pass"]),
    ExpenseCategory.SUBSCRIPTIONS: (10, 60, ["Streaming service", "Gym membership"]),
    ExpenseCategory.MEDICAL_AND_HEALTH: (50, 300, ["Medical appointment"]),
    ExpenseCategory.PERSONAL_CARE_AND_CLOTHING: (50, 200, ["Personal care products", "New shoes"]),
    ExpenseCategory.ENTERTAINMENT_AND_DINING: (20, 150, ["Movie tickets", "Restaurant meal"]),
    ExpenseCategory.PET_EXPENSES: (20, 120, ["Pet food"]),
    ExpenseCategory.MISCELLANEOUS: (20, 100, ["Miscellaneous expense"]),
}


def _amount(rng: random.Random, low: float, high: float) -> Decimal:
    return to_money(round(rng.uniform(low, high), 2))


def _day_in(rng: random.Random, month_id: str) -> date:
    year, month = (int(part) for part in month_id.split("-"))
    days = calendar.monthrange(year, month)[1]
    return date(year, month, rng.randint(1, days))


def sample_incomes(rng: random.Random, month_id: str, count: int = 3) -> list[Income]:
    """A salary plus count-1 random extra incomes."""
    types = [IncomeType.SALARY] + [
        rng.choice(list(INCOME_PROFILES)) for _ in range(count - 1)
    ]
    incomes = []
    for income_type in types:
        low, high, descriptions = INCOME_PROFILES[income_type]
        incomes.append(Income(
            source=income_type.value,
            type=income_type,
            amount=_amount(rng, low, high),
            date=_day_in(rng, month_id),
            recurring=income_type == IncomeType.SALARY,
            description=rng.choice(descriptions),
        ))
    return incomes


def sample_expenses(rng: random.Random, month_id: str, count: int = 12) -> list[Expense]:
    """Expenses covering distinct categories first, then repeats."""
    categories = list(EXPENSE_PROFILES)
    rng.shuffle(categories)
    expenses = []
    for i in range(count):
        category = categories[i] if i < len(categories) else rng.choice(categories)
        low, high, descriptions = EXPENSE_PROFILES[category]
        expenses.append(Expense(
            amount=_amount(rng, low, high),
            category=category,
            date=_day_in(rng, month_id),
            description=rng.choice(descriptions),
        ))
    return expenses


def sample_budgets(rng: random.Random, expenses: Sequence[Expense]) -> list[Budget]:
    """One budget per spent category, about 30% of them set below actual spending."""
    spent: dict[ExpenseCategory, Decimal] = {}
    for expense in expenses:
        spent[expense.category] = spent.get(expense.category, Decimal("0")) + expense.amount

    budgets = []
    for category, total in spent.items():
        variance = Decimal("0.8") if rng.random() > 0.7 else Decimal("1.2")
        limit = to_money((total * variance).quantize(Decimal("1")))
        if limit > 0:
            budgets.append(Budget(category=category, limit=limit))
    return budgets


def sample_debts_and_goals() -> tuple[list[Debt], list[Goal]]:
    credit_card = Debt(
        name="Credit Card",
        original_principal=Decimal("5000.00"),
        interest_rate=Decimal("19.99"),
        minimum_payment=Decimal("150.00"),
        priority=8,
    )
    student_loan = Debt(
        name="Student Loan",
        original_principal=Decimal("12000.00"),
        interest_rate=Decimal("4.50"),
        minimum_payment=Decimal("250.00"),
        priority=5,
    )
    goals = [
        Goal(
            name="Emergency Fund",
            type=GoalType.EMERGENCY_FUND,
            target_amount=Decimal("10000.00"),
            description="Build a 6-month emergency fund",
            priority=8,
        ),
        Goal(
            name="Vacation",
            type=GoalType.TRAVEL,
            target_amount=Decimal("3000.00"),
            description="Summer vacation to Europe",
            priority=4,
        ),
        Goal(
            name="Pay off Credit Card",
            type=GoalType.DEBT_PAYOFF,
            target_amount=credit_card.original_principal,
            description="Pay off high-interest credit card debt",
            priority=9,
            associated_debt_id=credit_card.id,
        ),
        Goal(
            name="New Laptop",
            type=GoalType.MAJOR_PURCHASE,
            target_amount=Decimal("1500.00"),
            description="Save for a new work laptop",
            priority=3,
        ),
    ]
    return [credit_card, student_loan], goals


def load_sample_data(
    ledger: MonthLedger,
    month_ids: Sequence[str],
    seed: Optional[int] = 42,
) -> MonthLedger:
    """
    Add sample incomes, expenses and budgets for each month, plus debts
    and goals in the first month with a monthly payment and contribution.

    Returns a new ledger; the last month becomes active.
    """
    rng = random.Random(seed)
    month_ids = sorted(month_ids)
    debts, goals = sample_debts_and_goals()

    updated = ledger
    for index, month_id in enumerate(month_ids):
        updated = updated.add_month(month_id)

        expenses = sample_expenses(rng, month_id)
        for income in sample_incomes(rng, month_id):
            updated = updated.add_income(income)
        for expense in expenses:
            updated = updated.add_expense(expense)
        for budget in sample_budgets(rng, expenses):
            updated = updated.set_budget(budget.category, budget.limit, month_id)

        if index == 0:
            for debt in debts:
                updated = updated.add_debt(debt, month_id)
            for goal in goals:
                updated = updated.add_goal(goal, month_id)
            continue

        # Later months inherit debts and goals from the month before
        previous = updated.snapshot(month_ids[index - 1])
        for debt in previous.debts:
            updated = updated.add_debt(debt, month_id)
        for goal in previous.goals:
            updated = updated.add_goal(goal, month_id)

        payment_day = _day_in(rng, month_id)
        for debt in debts:
            updated, _ = updated.record_debt_payment(
                debt.id, debt.minimum_payment, payment_day, month_id
            )
        for goal in goals:
            if goal.type != GoalType.DEBT_PAYOFF:
                contribution = to_money(goal.target_amount * Decimal("0.05"))
                updated, _ = updated.contribute_to_goal(
                    goal.id, contribution, payment_day, month_id
                )

    if month_ids:
        updated = updated.set_active_month(month_ids[-1])
    return updated
