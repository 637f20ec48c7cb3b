"""
Tests for month summaries, budget alerts, proxy snapshots and sample data.
"""

import pytest
from datetime import date
from decimal import Decimal

from finance_tracker.ledger import (
    budget_alerts,
    budget_usage,
    build_financial_snapshot,
    compare_with_previous,
    load_sample_data,
    new_ledger,
    payoff_projection,
    starter_recommendations,
    summarize_month,
)
from finance_tracker.ledger.summary import debt_to_income_ratio, expense_breakdown, months_to_payoff
from finance_tracker.models.finance import Debt, Expense, ExpenseCategory, Income


def expense(amount, category=ExpenseCategory.GROCERIES, day=5):
    return Expense(amount=Decimal(amount), category=category, date=date(2024, 1, day))


@pytest.fixture
def january():
    return (
        new_ledger(month_id="2024-01")
        .add_income(Income(source="Employer", amount=Decimal("2000"), date=date(2024, 1, 1)))
        .add_expense(expense("300"))
        .add_expense(expense("100", ExpenseCategory.ENTERTAINMENT_AND_DINING))
        .add_expense(expense("1200", ExpenseCategory.RENT_OR_MORTGAGE))
        .set_budget(ExpenseCategory.GROCERIES, 250)
        .set_budget(ExpenseCategory.ENTERTAINMENT_AND_DINING, 200)
    )


class TestMonthlySummary:
    """Tests for totals and comparisons."""

    def test_summary(self, january):
        """Test totals, cashflow and savings rate."""
        summary = summarize_month(january.snapshot(), "2024-01")
        assert summary.total_income == Decimal("2000")
        assert summary.total_expenses == Decimal("1600")
        assert summary.net_cashflow == Decimal("400")
        assert summary.savings_rate == pytest.approx(20.0)

    def test_empty_month_savings_rate(self):
        """Test a month without income has a zero savings rate."""
        summary = summarize_month(new_ledger(month_id="2024-01").snapshot(), "2024-01")
        assert summary.savings_rate == 0.0

    def test_compare_with_previous(self, january):
        """Test month-over-month deltas."""
        ledger = january.add_income(
            Income(source="Employer", amount=Decimal("2500"), date=date(2024, 2, 1))
        ).set_active_month("2024-02")

        comparison = compare_with_previous(ledger)

        assert comparison.previous.month_id == "2024-01"
        assert comparison.income_change == Decimal("500")
        assert comparison.expense_change == Decimal("-1600")

    def test_compare_without_previous(self, january):
        """Test the first month has nothing to compare with."""
        comparison = compare_with_previous(january)
        assert comparison.previous is None
        assert comparison.savings_rate_change == 0.0


class TestBudgets:
    """Tests for budget usage and alerts."""

    def test_usage(self, january):
        """Test spending is matched to each budget."""
        usage = {u.category: u for u in budget_usage(january.snapshot())}
        assert usage[ExpenseCategory.GROCERIES].spent == Decimal("300")
        assert usage[ExpenseCategory.ENTERTAINMENT_AND_DINING].percent_used == pytest.approx(50.0)

    def test_set_budget_replaces(self, january):
        """Test setting a budget twice keeps one budget per category."""
        ledger = january.set_budget(ExpenseCategory.GROCERIES, 400)
        groceries = [b for b in ledger.snapshot().budgets if b.category == ExpenseCategory.GROCERIES]
        assert [b.limit for b in groceries] == [Decimal("400.00")]

    def test_alerts(self, january):
        """Test only budgets past the threshold alert; overspending is an error."""
        alerts = budget_alerts(january.snapshot(), threshold=80)
        assert len(alerts) == 1
        assert alerts[0].severity == "error"
        assert "120%" in alerts[0].message


class TestStarterRecommendations:

    def test_overspending_and_low_savings(self):
        """Test both rules fire when expenses exceed income."""
        ledger = (
            new_ledger(month_id="2024-01")
            .add_income(Income(source="Job", amount=Decimal("1000"), date=date(2024, 1, 1)))
            .add_expense(expense("1500"))
        )
        recommendations = starter_recommendations(summarize_month(ledger.snapshot(), "2024-01"))
        assert [r.type for r in recommendations] == ["Budget Alert", "Savings Tip"]
        assert "$500.00" in recommendations[0].impact

    def test_healthy_month(self, january):
        """Test a 20% savings rate needs no starter advice."""
        summary = summarize_month(january.snapshot(), "2024-01")
        assert starter_recommendations(summary) == []


class TestProxySnapshots:
    """Tests for the aggregates sent to the insights proxy."""

    def test_financial_snapshot(self, january):
        """Test totals, debt figures and over-budget categories."""
        ledger = january.add_debt(Debt(
            name="Card",
            original_principal=Decimal("1000"),
            interest_rate=Decimal("20"),
            minimum_payment=Decimal("100"),
        ))
        snapshot = build_financial_snapshot(ledger.snapshot(), "2024-01")

        assert snapshot.debt_total == Decimal("1000")
        assert snapshot.average_interest_rate == pytest.approx(20.0)
        assert snapshot.debt_to_income_ratio == pytest.approx(5.0)
        assert snapshot.over_budget_categories == ["Groceries"]
        assert snapshot.top_expense_categories[0].category == "Rent or Mortgage"

    def test_estimated_minimum_payment(self):
        """Test debts without a minimum payment are estimated at 3% of balance."""
        debt = Debt(name="Loan", original_principal=Decimal("1000"))
        assert debt_to_income_ratio([debt], Decimal("1000")) == pytest.approx(3.0)

    def test_breakdown_marks_reducible(self, january):
        """Test discretionary categories are flagged as reducible."""
        breakdown = {b.category: b for b in expense_breakdown(january.snapshot())}
        assert breakdown["Entertainment and Dining Out"].is_reducible is True
        assert breakdown["Rent or Mortgage"].is_reducible is False
        assert breakdown["Groceries"].percent_of_total_expenses == pytest.approx(18.75)


class TestPayoffProjection:
    """Tests for payoff dates and balance histories."""

    @pytest.fixture
    def loan(self):
        return Debt(
            name="Loan",
            original_principal=Decimal("1000"),
            minimum_payment=Decimal("100"),
            monthly_payments={"2024-01": Decimal("200")},
        )

    def test_interest_free_payoff(self, loan):
        """Test an interest-free balance clears in balance / payment months."""
        projection = payoff_projection(loan, "2024-01")
        assert projection.months_remaining == 8
        assert projection.payoff_month == "2024-09"
        assert projection.percent_paid == 20
        assert projection.time_remaining == "8 months remaining"

    def test_interest_adds_months(self):
        """Test monthly compounding lengthens the payoff."""
        assert months_to_payoff(Decimal("1000"), Decimal("100"), Decimal("12")) == 11

    def test_payment_below_interest_never_pays_off(self):
        """Test a payment that does not cover the interest has no payoff date."""
        debt = Debt(
            name="Card",
            original_principal=Decimal("1000"),
            interest_rate=Decimal("24"),
            minimum_payment=Decimal("15"),
        )
        projection = payoff_projection(debt, "2024-01")
        assert projection.months_remaining is None
        assert projection.payoff_month is None
        assert "Not on track" in projection.time_remaining

    def test_paid_off_debt(self, loan):
        """Test a cleared debt needs no more months."""
        paid = loan.model_copy(update={"monthly_payments": {"2024-01": Decimal("1000")}})
        projection = payoff_projection(paid, "2024-01")
        assert projection.months_remaining == 0
        assert projection.time_remaining == "Paid off"

    def test_years_and_months(self):
        """Test long payoffs are spelled out in years and months."""
        debt = Debt(name="Loan", original_principal=Decimal("1400"), minimum_payment=Decimal("100"))
        assert payoff_projection(debt, "2024-01").time_remaining == "1 year and 2 months remaining"

    def test_balance_history_with_projection(self, loan):
        """Test history starts at the principal and ends six months out."""
        history = payoff_projection(loan, "2024-01").history
        assert [(p.month_id, p.balance, p.projected) for p in history] == [
            ("2023-12", Decimal("1000"), False),
            ("2024-01", Decimal("800"), False),
            ("2024-07", Decimal("200.00"), True),
        ]

    def test_no_history_without_payments(self):
        """Test a debt with no payments has no history yet."""
        debt = Debt(name="Loan", original_principal=Decimal("500"), minimum_payment=Decimal("50"))
        assert payoff_projection(debt, "2024-01").history == []


class TestSampleData:
    """Tests for the sample data loader."""

    def test_same_seed_same_amounts(self):
        """Test the loader is deterministic for a seed."""
        months = ["2024-01", "2024-02"]
        first = load_sample_data(new_ledger(month_id="2024-01"), months, seed=7)
        second = load_sample_data(new_ledger(month_id="2024-01"), months, seed=7)

        amounts = lambda ledger: [e.amount for e in ledger.snapshot("2024-02").expenses]
        assert amounts(first) == amounts(second)

    def test_creates_months_and_carries_debts(self):
        """Test months are created and later months pay down the debts."""
        ledger = load_sample_data(new_ledger(month_id="2024-01"), ["2024-01", "2024-02", "2024-03"])

        assert ledger.month_ids == ["2024-01", "2024-02", "2024-03"]
        assert ledger.active_month_id == "2024-03"
        march = ledger.snapshot("2024-03")
        assert march.debts
        assert all(debt.total_paid > 0 for debt in march.debts)
        assert any(e.category == ExpenseCategory.DEBT_PAYMENTS for e in march.expenses)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
