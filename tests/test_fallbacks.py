"""
Tests for the local insight fallbacks.

Every fallback is a pure function, so these tests need no fakes.
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from finance_tracker.models.finance import ExpenseCategory, GoalType
from finance_tracker.models.insights import (
    ExpenseLine,
    FinancialSnapshot,
    GoalSnapshot,
    HealthRequest,
    SpendingAnalysisRequest,
)
from finance_tracker.services.insights import fallbacks


def goal(goal_type=GoalType.SAVINGS, target="1000", current="0", target_date=None, name="Goal"):
    return GoalSnapshot(
        goal_id=uuid4(),
        name=name,
        type=goal_type,
        target_amount=Decimal(target),
        current_amount=Decimal(current),
        target_date=target_date,
    )


class TestHealthScore:
    """Tests for the rule-based financial health score."""

    def test_documented_example(self):
        """Test savings 25% and debt-to-income 10% scores 70."""
        assert fallbacks.calculate_health_score(25, 10) == 70

    def test_is_deterministic(self):
        """Test identical inputs always give the identical score."""
        scores = {fallbacks.calculate_health_score(12.5, 30.0) for _ in range(20)}
        assert scores == {50}

    @pytest.mark.parametrize("savings_rate,dti,expected", [
        (21, 16, 65),   # +15, no debt adjustment
        (15, 16, 60),   # +10
        (6, 16, 55),    # +5
        (3, 16, 50),    # no savings adjustment
        (-5, 16, 40),   # -10
        (3, 40, 35),    # -15
        (3, 30, 40),    # -10
        (3, 25, 45),    # -5
        (3, 10, 55),    # +5
    ])
    def test_thresholds(self, savings_rate, dti, expected):
        """Test each savings and debt-to-income band."""
        assert fallbacks.calculate_health_score(savings_rate, dti) == expected

    def test_fallback_health_is_marked(self):
        """Test the fallback answer carries the fixed feedback and flag."""
        result = fallbacks.fallback_health(HealthRequest(savings_rate=25, debt_to_income_ratio=10))
        assert result.score == 70
        assert result.feedback == fallbacks.FALLBACK_HEALTH_FEEDBACK
        assert result.is_fallback is True


class TestGenericInsights:
    """Tests for the fixed insight library."""

    def test_five_generic_insights(self):
        """Test the library holds the five topics."""
        types = [insight.type for insight in fallbacks.fallback_insights()]
        assert types == [
            "Budget Optimization",
            "Emergency Fund",
            "Debt Management",
            "Automated Savings",
            "Expense Tracking",
        ]

    def test_count_is_clamped(self):
        """Test the requested count stays within the library."""
        assert len(fallbacks.fallback_insights(3)) == 3
        assert len(fallbacks.fallback_insights(0)) == 1
        assert len(fallbacks.fallback_insights(99)) == 5

    def test_returns_copies(self):
        """Test callers cannot alter the shared library."""
        first = fallbacks.fallback_insights(1)[0]
        first.description = "changed"
        assert fallbacks.FALLBACK_INSIGHTS[0].description != "changed"


class TestCategorization:
    """Tests for keyword categorization."""

    @pytest.mark.parametrize("description,expected", [
        ("Monthly rent", ExpenseCategory.RENT_OR_MORTGAGE),
        ("Electricity bill", ExpenseCategory.UTILITIES),
        ("Netflix", ExpenseCategory.SUBSCRIPTIONS),
        ("Weekly groceries", ExpenseCategory.GROCERIES),
        ("Uber to airport", ExpenseCategory.TRANSPORTATION),
        ("Dinner at a restaurant", ExpenseCategory.ENTERTAINMENT_AND_DINING),
        ("Vet visit", ExpenseCategory.PET_EXPENSES),
    ])
    def test_keywords(self, description, expected):
        """Test common descriptions map to their categories."""
        assert fallbacks.categorize_description(description) == expected

    def test_whole_words_only(self):
        """Test 'card' does not match the 'car' keyword."""
        assert fallbacks.categorize_description("Gift card") != ExpenseCategory.TRANSPORTATION

    def test_plural_matches(self):
        """Test plural forms still match."""
        assert fallbacks.categorize_description("New shoes") == ExpenseCategory.PERSONAL_CARE_AND_CLOTHING

    def test_unknown_defaults_to_miscellaneous(self):
        """Test unmatched descriptions fall into Miscellaneous."""
        suggestion = fallbacks.fallback_category("zzz")
        assert suggestion.category == ExpenseCategory.MISCELLANEOUS.value
        assert suggestion.is_fallback is True


class TestGoalFallbacks:
    """Tests for goal prioritization and recommendations."""

    def test_debt_payoff_first_when_in_debt(self):
        """Test payoff goals outrank others while debt is outstanding."""
        savings = goal(GoalType.SAVINGS, name="Savings")
        payoff = goal(GoalType.DEBT_PAYOFF, name="Payoff")
        emergency = goal(GoalType.EMERGENCY_FUND, name="Emergency")
        snapshot = FinancialSnapshot(debt_total=Decimal("5000"), savings_rate=10)

        ranked = fallbacks.prioritize_goals([savings, payoff, emergency], snapshot, today=date(2024, 1, 1))

        assert [p.goal_id for p in ranked] == [payoff.goal_id, emergency.goal_id, savings.goal_id]
        assert ranked[0].priority_score == 8

    def test_deadline_and_progress_raise_priority(self):
        """Test close deadlines and nearly-finished goals score higher."""
        soon = goal(target="1000", current="800", target_date="2024-04-01")
        snapshot = FinancialSnapshot()
        ranked = fallbacks.prioritize_goals([soon], snapshot, today=date(2024, 1, 1))
        assert ranked[0].priority_score == 8  # 5 + 2 deadline + 1 progress

    def test_scores_clamped(self):
        """Test scores stay between 1 and 10."""
        urgent = goal(GoalType.DEBT_PAYOFF, current="900", target_date="2024-02-01")
        snapshot = FinancialSnapshot(debt_total=Decimal("100"))
        ranked = fallbacks.prioritize_goals([urgent], snapshot, today=date(2024, 1, 1))
        assert ranked[0].priority_score == 10

    def test_goal_recommendations_with_deadline(self):
        """Test a deadline produces a monthly savings target."""
        target = goal(target="1200", current="0", target_date="2025-01-01", name="Car")
        result = fallbacks.goal_recommendations(target, today=date(2024, 1, 1))
        assert result.is_fallback is True
        assert result.goal_id == target.goal_id
        assert "$100.00" in result.recommendations[0].description

    def test_goal_recommendations_without_deadline(self):
        """Test goals without a deadline still get advice."""
        result = fallbacks.goal_recommendations(goal(GoalType.DEBT_PAYOFF))
        assert len(result.recommendations) == 2


class TestSpendingOptimization:
    """Tests for the spending optimizer."""

    def test_cuts_discretionary_until_target(self):
        """Test reductions only touch discretionary categories and stop at the target."""
        request = SpendingAnalysisRequest(
            income=Decimal("1000"),
            target_savings_rate=20,
            expenses=[
                ExpenseLine(category="Rent or Mortgage", amount=Decimal("600"), date="2024-01-01"),
                ExpenseLine(category="Entertainment and Dining Out", amount=Decimal("200"), date="2024-01-05"),
                ExpenseLine(category="Subscriptions and Memberships", amount=Decimal("100"), date="2024-01-06"),
            ],
        )
        result = fallbacks.optimize_spending(request)

        # Savings 100 of a 200 target: 50 from dining (25%), 25 from subscriptions, 25 short
        categories = [area.category for area in result.optimization_areas]
        assert "Rent or Mortgage" not in categories
        assert categories == ["Entertainment and Dining Out", "Subscriptions and Memberships"]
        assert result.projected_impact.monthly_increase == Decimal("75.00")
        assert result.projected_impact.yearly_increase == Decimal("900.00")
        assert result.projected_impact.new_savings_rate == 17.5
        assert result.is_fallback is True

    def test_nothing_to_cut_when_target_met(self):
        """Test no areas are proposed when savings already meet the target."""
        request = SpendingAnalysisRequest(
            income=Decimal("1000"),
            target_savings_rate=20,
            expenses=[
                ExpenseLine(category="Groceries", amount=Decimal("300"), date="2024-01-01"),
            ],
        )
        result = fallbacks.optimize_spending(request)
        assert result.optimization_areas == []
        assert result.projected_impact.new_savings_rate == 70.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
