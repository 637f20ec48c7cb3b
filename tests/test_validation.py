"""
Tests for the two-stage form validator.
"""

import pytest
from datetime import date
from decimal import Decimal

from finance_tracker.models.finance import Debt, ExpenseCategory
from finance_tracker.validation import FinanceValidator


TODAY = date(2024, 1, 15)


@pytest.fixture
def validator():
    return FinanceValidator(today=TODAY)


@pytest.fixture
def debt():
    return Debt(
        name="Card",
        original_principal=Decimal("500"),
        monthly_payments={"2024-01": Decimal("300")},
    )


class TestEntryValidation:
    """Tests for income, expense and budget forms."""

    def test_valid_expense(self, validator):
        """Test a clean expense passes and is parsed."""
        result, expense = validator.validate_expense({
            "amount": "42.10",
            "category": "Groceries",
            "date": "2024-01-10",
        })
        assert result.is_valid is True
        assert result.issues == []
        assert expense.amount == Decimal("42.10")
        assert expense.category == ExpenseCategory.GROCERIES

    def test_missing_amount(self, validator):
        """Test a missing field is reported against that field."""
        result, expense = validator.validate_expense({"category": "Groceries", "date": "2024-01-10"})
        assert expense is None
        assert result.schema_valid is False
        assert result.semantic_valid is False
        assert result.issues_for("amount")[0].issue_type == "missing"

    def test_unknown_category(self, validator):
        """Test free-text categories are a schema error."""
        result, _ = validator.validate_expense({"amount": "5", "category": "Lottery", "date": "2024-01-10"})
        assert result.issues_for("category")

    def test_far_future_date(self, validator):
        """Test dates beyond the tolerance are errors."""
        result, expense = validator.validate_income({
            "source": "Employer",
            "amount": "3000",
            "date": "2024-06-01",
        })
        assert result.schema_valid is True
        assert result.semantic_valid is False
        assert expense is None
        assert result.issues_for("date")[0].issue_type == "future_date"

    def test_near_future_date_allowed(self, validator):
        """Test an upcoming payday inside the tolerance passes."""
        result, income = validator.validate_income({
            "source": "Employer",
            "amount": "3000",
            "date": "2024-01-31",
        })
        assert result.is_valid is True
        assert income is not None

    def test_huge_amount_is_warning(self, validator):
        """Test absurd amounts warn but still pass."""
        result, expense = validator.validate_expense({
            "amount": "50000000",
            "category": "Miscellaneous or Emergency Fund",
            "date": "2024-01-10",
        })
        assert result.is_valid is True
        assert expense is not None
        assert len(result.warnings) == 1

    def test_non_positive_budget(self, validator):
        """Test a zero budget limit fails schema validation."""
        result, budget = validator.validate_budget({"category": "Groceries", "limit": "0"})
        assert budget is None
        assert result.schema_valid is False


class TestDebtPaymentValidation:
    """Tests for debt payment checks."""

    @pytest.mark.parametrize("amount", ["abc", None, "NaN"])
    def test_not_a_number(self, validator, debt, amount):
        """Test non-numeric amounts are errors."""
        result = validator.validate_debt_payment(debt, amount, TODAY)
        assert result.schema_valid is False
        assert result.issues_for("amount")[0].issue_type == "invalid_format"

    @pytest.mark.parametrize("amount", [0, "-10"])
    def test_not_positive(self, validator, debt, amount):
        """Test zero and negative amounts are errors."""
        result = validator.validate_debt_payment(debt, amount, TODAY)
        assert result.issues_for("amount")[0].issue_type == "invalid_value"

    def test_over_balance_is_warning(self, validator, debt):
        """Test paying more than the remaining balance only warns."""
        result = validator.validate_debt_payment(debt, "250", TODAY)
        assert result.is_valid is True
        assert result.issues_for("amount")[0].issue_type == "exceeds_balance"

    def test_exact_balance_is_clean(self, validator, debt):
        """Test paying exactly the balance raises nothing."""
        result = validator.validate_debt_payment(debt, "200", TODAY)
        assert result.is_valid is True
        assert result.issues == []


class TestMonthIdValidation:

    @pytest.mark.parametrize("month_id", ["2024-1", "2024-00", "2024-13", "24-01", ""])
    def test_malformed(self, validator, month_id):
        """Test malformed month ids are errors."""
        assert validator.validate_month_id(month_id).is_valid is False

    def test_valid(self, validator):
        """Test a well-formed month id passes."""
        assert validator.validate_month_id("2023-04").is_valid is True


class TestSummary:

    def test_all_clear(self, validator):
        """Test the success message."""
        result = validator.validate_month_id("2024-01")
        assert validator.get_user_friendly_summary(result) == "✅ All checks passed!"

    def test_errors_and_fixes_listed(self, validator):
        """Test errors are listed with their suggested fix."""
        result = validator.validate_month_id("bad")
        summary = validator.get_user_friendly_summary(result)
        assert "Please fix the following" in summary
        assert "2023-04" in summary

    def test_warnings_allow_proceeding(self, validator, debt):
        """Test warnings-only results say the user may continue."""
        result = validator.validate_debt_payment(debt, "900", TODAY)
        summary = validator.get_user_friendly_summary(result)
        assert "Please verify" in summary
        assert "You can still proceed" in summary


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
