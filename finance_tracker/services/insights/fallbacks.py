"""
Local Insight Fallbacks

Deterministic answers for every proxy endpoint, used whenever the
text-generation service cannot be reached or returns something
unusable. Every function here is pure: identical inputs always give
identical outputs, with no I/O and no randomness.

DESIGN DECISION: The fallback path is the same for every failure.
Timeout, 5xx, bad JSON and schema mismatch all land here with the same
inputs, so offline behaviour is predictable and testable.
"""

import re
from datetime import date
from decimal import Decimal
from typing import Optional

from finance_tracker.models.finance import (
    DISCRETIONARY_CATEGORIES,
    ZERO,
    ExpenseCategory,
    GoalRecommendation,
    GoalType,
    to_money,
)
from finance_tracker.models.insights import (
    CategorySuggestion,
    FinancialSnapshot,
    GoalPriority,
    GoalRecommendationSet,
    GoalSnapshot,
    HealthAssessment,
    HealthRequest,
    Insight,
    OptimizationArea,
    ProjectedImpact,
    SpendingAnalysisRequest,
    SpendingOptimization,
)


# =============================================================================
# GENERIC INSIGHTS
# =============================================================================

FALLBACK_INSIGHTS = (
    Insight(
        type="Budget Optimization",
        description=(
            "Consider reviewing your top expense categories and look for "
            "opportunities to reduce spending without significantly impacting "
            "your lifestyle. Small changes in daily habits can lead to "
            "substantial monthly savings."
        ),
        impact="Potential monthly savings",
        is_fallback=True,
    ),
    Insight(
        type="Emergency Fund",
        description=(
            "Aim to build an emergency fund covering 3-6 months of essential "
            "expenses. This provides financial security during unexpected "
            "events like medical emergencies or job loss."
        ),
        impact="Increased financial security",
        is_fallback=True,
    ),
    Insight(
        type="Debt Management",
        description=(
            "If you have multiple debts, consider using either the snowball "
            "method (paying smallest balances first) or avalanche method "
            "(focusing on highest interest rates first) to systematically "
            "reduce debt."
        ),
        impact="Reduced interest payments",
        is_fallback=True,
    ),
    Insight(
        type="Automated Savings",
        description=(
            "Set up automatic transfers to your savings account on paydays. "
            "This 'pay yourself first' approach ensures consistent saving "
            "before you have a chance to spend the money."
        ),
        impact="Improved saving habits",
        is_fallback=True,
    ),
    Insight(
        type="Expense Tracking",
        description=(
            "Regularly review your transactions and categorize them correctly. "
            "This helps identify spending patterns and areas where you might "
            "be overspending without realizing it."
        ),
        impact="Better financial awareness",
        is_fallback=True,
    ),
)


def fallback_insights(count: int = len(FALLBACK_INSIGHTS)) -> list[Insight]:
    """The first `count` generic insights (fresh copies)."""
    count = max(1, min(count, len(FALLBACK_INSIGHTS)))
    return [insight.model_copy() for insight in FALLBACK_INSIGHTS[:count]]


# =============================================================================
# CATEGORIZATION
# =============================================================================

# Checked in order; first match wins
CATEGORY_KEYWORDS: tuple[tuple[ExpenseCategory, tuple[str, ...]], ...] = (
    (ExpenseCategory.RENT_OR_MORTGAGE, ("rent", "mortgage", "house", "landlord")),
    (ExpenseCategory.INSURANCE, ("insurance", "premium")),
    (ExpenseCategory.DEBT_PAYMENTS, ("loan", "debt", "credit")),
    (ExpenseCategory.UTILITIES, ("electric", "electricity", "water bill", "utility", "utilities", "heating")),
    (ExpenseCategory.INTERNET_AND_PHONE, ("internet", "phone", "mobile", "broadband")),
    (ExpenseCategory.TRANSPORTATION, ("car", "gas", "fuel", "uber", "lyft", "bus", "train", "parking")),
    (ExpenseCategory.GROCERIES, ("grocery", "groceries", "supermarket", "food")),
    (ExpenseCategory.ENTERTAINMENT_AND_DINING, ("restaurant", "dining", "movie", "entertainment", "game", "concert")),
    (ExpenseCategory.MEDICAL_AND_HEALTH, ("doctor", "hospital", "medicine", "pharmacy", "dental")),
    (ExpenseCategory.SUBSCRIPTIONS, ("subscription", "netflix", "spotify", "gym", "membership")),
    (ExpenseCategory.CHILDCARE_OR_TUITION, ("course", "tuition", "book", "daycare", "school")),
    (ExpenseCategory.PET_EXPENSES, ("pet", "vet", "dog", "cat")),
    (ExpenseCategory.PERSONAL_CARE_AND_CLOTHING, ("clothing", "clothes", "shoes", "haircut", "salon")),
    (ExpenseCategory.SAVINGS_AND_INVESTMENTS, ("savings", "investment", "brokerage")),
)


def categorize_description(description: str) -> ExpenseCategory:
    """
    Keyword categorization of a transaction description.

    Keywords match whole words, optionally pluralised ("car" matches
    "cars" but not "card" or "oscar"). Defaults to Miscellaneous.
    """
    text = description.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        for keyword in keywords:
            if re.search(r"\b" + re.escape(keyword) + r"(s|es)?\b", text):
                return category
    return ExpenseCategory.MISCELLANEOUS


def fallback_category(description: str) -> CategorySuggestion:
    return CategorySuggestion(
        category=categorize_description(description).value,
        is_fallback=True,
    )


# =============================================================================
# FINANCIAL HEALTH
# =============================================================================

FALLBACK_HEALTH_FEEDBACK = (
    "Based on your current income, expenses, and debt, your financial "
    "situation requires review. Focus on building emergency savings and "
    "managing debt."
)


def calculate_health_score(savings_rate: float, debt_to_income_ratio: float) -> int:
    """
    Rule-based health score in [0, 100].

    Base 50. Savings rate >20: +15, >10: +10, >5: +5, <0: -10.
    Debt-to-income >36: -15, >28: -10, >20: -5, <15: +5.
    """
    score = 50

    if savings_rate > 20:
        score += 15
    elif savings_rate > 10:
        score += 10
    elif savings_rate > 5:
        score += 5
    elif savings_rate < 0:
        score -= 10

    if debt_to_income_ratio > 36:
        score -= 15
    elif debt_to_income_ratio > 28:
        score -= 10
    elif debt_to_income_ratio > 20:
        score -= 5
    elif debt_to_income_ratio < 15:
        score += 5

    return max(0, min(100, score))


def fallback_health(request: HealthRequest) -> HealthAssessment:
    return HealthAssessment(
        score=calculate_health_score(request.savings_rate, request.debt_to_income_ratio),
        feedback=FALLBACK_HEALTH_FEEDBACK,
        is_fallback=True,
    )


# =============================================================================
# GOALS
# =============================================================================

def _months_until(target: Optional[str], today: date) -> Optional[int]:
    if not target:
        return None
    try:
        target_date = date.fromisoformat(target[:10])
    except ValueError:
        return None
    return (target_date.year - today.year) * 12 + (target_date.month - today.month)


def prioritize_goals(
    goals: list[GoalSnapshot],
    snapshot: FinancialSnapshot,
    today: Optional[date] = None,
) -> list[GoalPriority]:
    """
    Score goals 1-10 by simple rules, highest first.

    Debt payoff goals rank first while debt is outstanding, an emergency
    fund next; then closer deadlines and nearly-finished goals gain points.
    """
    today = today or date.today()
    priorities = []

    for goal in goals:
        score = 5
        reasons = []

        if goal.type == GoalType.DEBT_PAYOFF and snapshot.debt_total > 0:
            score += 3
            reasons.append("outstanding debt costs interest every month")
        elif goal.type == GoalType.EMERGENCY_FUND:
            score += 2
            reasons.append("an emergency fund protects every other goal")

        months_left = _months_until(goal.target_date, today)
        if months_left is not None:
            if months_left <= 6:
                score += 2
                reasons.append("the deadline is within six months")
            elif months_left <= 12:
                score += 1
                reasons.append("the deadline is within a year")

        if goal.target_amount > 0:
            progress = goal.current_amount / goal.target_amount
            if progress >= Decimal("0.75"):
                score += 1
                reasons.append("the goal is nearly complete")

        if snapshot.savings_rate < 0 and goal.type not in (
            GoalType.DEBT_PAYOFF, GoalType.EMERGENCY_FUND
        ):
            score -= 2
            reasons.append("spending currently exceeds income")

        score = max(1, min(10, score))
        reasoning = (
            "Priority raised because " + "; ".join(reasons) + "."
            if reasons else "Standard priority for this goal type."
        )
        priorities.append(GoalPriority(
            goal_id=goal.goal_id,
            priority_score=score,
            reasoning=reasoning,
        ))

    priorities.sort(key=lambda p: p.priority_score, reverse=True)
    return priorities


def goal_recommendations(
    goal: GoalSnapshot,
    today: Optional[date] = None,
) -> GoalRecommendationSet:
    """Generic advice for reaching a goal, with the monthly amount needed when there is a deadline."""
    today = today or date.today()
    remaining = max(ZERO, goal.target_amount - goal.current_amount)
    months_left = _months_until(goal.target_date, today)

    recommendations = []

    if months_left and months_left > 0 and remaining > 0:
        monthly = to_money(remaining / months_left)
        recommendations.append(GoalRecommendation(
            description=(
                f"Set aside ${monthly} every month to reach {goal.name} "
                f"by {goal.target_date}."
            ),
            potential_impact="High",
            estimated_time_reduction="Keeps the goal on schedule",
            required_actions=[
                f"Schedule an automatic transfer of ${monthly} on payday",
                "Review progress at the end of each month",
            ],
        ))

    recommendations.append(GoalRecommendation(
        description="Redirect windfalls such as bonuses, refunds and gifts to this goal.",
        potential_impact="Medium",
        estimated_time_reduction="1-2 months faster",
        required_actions=[
            "Decide in advance what share of any windfall goes to the goal",
            "Transfer it the day it arrives",
        ],
    ))

    if goal.type == GoalType.DEBT_PAYOFF:
        recommendations.append(GoalRecommendation(
            description="Pay more than the minimum on the highest-interest balance first.",
            potential_impact="High",
            estimated_time_reduction="Several months faster",
            required_actions=[
                "List debts by interest rate",
                "Add any spare cash to the top one",
            ],
        ))
    else:
        recommendations.append(GoalRecommendation(
            description="Trim one discretionary category and send the difference to this goal.",
            potential_impact="Medium",
            estimated_time_reduction="1-3 months faster",
            required_actions=[
                "Pick one subscription or dining habit to cut",
                "Move the saved amount to the goal each month",
            ],
        ))

    return GoalRecommendationSet(
        goal_id=goal.goal_id,
        recommendations=recommendations,
        is_fallback=True,
    )


# =============================================================================
# SPENDING
# =============================================================================

# Share of a category we consider realistic to cut
MAX_REDUCTION_SHARE = Decimal("0.25")

CATEGORY_SUGGESTIONS = {
    ExpenseCategory.ENTERTAINMENT_AND_DINING.value: [
        "Cook at home two more evenings a week",
        "Set a fixed monthly dining budget",
    ],
    ExpenseCategory.SUBSCRIPTIONS.value: [
        "Cancel subscriptions you have not used in the last month",
        "Rotate streaming services instead of keeping all of them",
    ],
    ExpenseCategory.GROCERIES.value: [
        "Plan meals and shop with a list",
        "Buy store brands for staples",
    ],
    ExpenseCategory.TRANSPORTATION.value: [
        "Combine errands into fewer trips",
        "Compare the cost of a transit pass with driving",
    ],
    ExpenseCategory.PERSONAL_CARE_AND_CLOTHING.value: [
        "Wait 48 hours before non-essential purchases",
    ],
}

DEFAULT_SUGGESTIONS = [
    "Review last month's transactions in this category for one-off items",
    "Set a monthly cap for this category",
]


def optimize_spending(request: SpendingAnalysisRequest) -> SpendingOptimization:
    """
    Propose cuts in discretionary categories until the target savings
    rate is reached, at most a quarter of each category.
    """
    income = request.income
    totals: dict[str, Decimal] = {}
    for expense in request.expenses:
        totals[expense.category] = totals.get(expense.category, ZERO) + expense.amount
    total_spending = sum(totals.values(), ZERO)

    current_savings = income - total_spending
    target_savings = income * Decimal(str(request.target_savings_rate)) / 100
    needed = max(ZERO, target_savings - current_savings)

    discretionary = {category.value for category in DISCRETIONARY_CATEGORIES}
    candidates = sorted(
        ((category, amount) for category, amount in totals.items() if category in discretionary),
        key=lambda item: (-item[1], item[0]),
    )

    areas = []
    for category, amount in candidates:
        if needed <= 0:
            break
        reduction = to_money(min(amount * MAX_REDUCTION_SHARE, needed))
        if reduction <= 0:
            continue
        needed -= reduction
        areas.append(OptimizationArea(
            category=category,
            current_spending=amount,
            recommended_reduction=reduction,
            potential_savings=reduction,
            specific_suggestions=CATEGORY_SUGGESTIONS.get(category, DEFAULT_SUGGESTIONS),
        ))

    monthly_increase = sum((area.potential_savings for area in areas), ZERO)
    new_savings = current_savings + monthly_increase
    new_rate = float(new_savings / income * 100) if income > 0 else 0.0

    return SpendingOptimization(
        optimization_areas=areas,
        projected_impact=ProjectedImpact(
            new_savings_rate=round(new_rate, 1),
            monthly_increase=monthly_increase,
            yearly_increase=monthly_increase * 12,
        ),
        is_fallback=True,
    )
