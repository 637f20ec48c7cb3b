"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Type checking
- Required field presence
- Format validation (amounts, dates, month ids)
- This catches malformed form input

STAGE 2 - SEMANTIC VALIDATION:
- Future date detection
- Absurd amount detection
- Payments larger than the remaining balance
- This catches logically impossible or suspicious data

Stage 2 only runs when stage 1 passes. Everything is checked before
the ledger is touched and before any network call.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to correct.
"""

import re
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from finance_tracker.config import get_settings
from finance_tracker.models.finance import (
    MONTH_ID_PATTERN,
    Budget,
    Debt,
    Expense,
    Income,
    to_money,
)
from finance_tracker.models.validation import ValidationIssue, ValidationResult


M = TypeVar("M", bound=BaseModel)


def _issues_from_error(error: ValidationError) -> list[ValidationIssue]:
    """One ValidationIssue per pydantic error, keyed by the top-level field."""
    issues = []
    for item in error.errors():
        loc = item.get("loc") or ("value",)
        field = str(loc[0])
        kind = item.get("type", "invalid")
        issues.append(ValidationIssue(
            field=field,
            issue_type="missing" if kind == "missing" else "invalid_format",
            message=f"{field.replace('_', ' ').capitalize()}: {item.get('msg')}",
            severity="error",
            suggested_fix="Please correct this field",
        ))
    return issues


class FinanceValidator:
    """
    Validates form input for ledger entries through a two-stage pipeline.

    Each validate_* method returns the ValidationResult and, when the
    input passed, the parsed model ready to hand to the ledger.
    """

    def __init__(self, today: Optional[date] = None):
        self._settings = get_settings().app
        self._today = today

    @property
    def today(self) -> date:
        return self._today or date.today()

    # -------------------------------------------------------------------------
    # Stage 1
    # -------------------------------------------------------------------------

    def _validate_schema(
        self,
        model: Type[M],
        data: dict[str, Any],
    ) -> tuple[bool, list[ValidationIssue], Optional[M]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues, parsed_model)
        """
        try:
            parsed = model.model_validate(data)
        except ValidationError as e:
            return False, _issues_from_error(e), None
        return True, [], parsed

    # -------------------------------------------------------------------------
    # Stage 2
    # -------------------------------------------------------------------------

    def _check_date(self, field: str, value: date) -> list[ValidationIssue]:
        tolerance = timedelta(days=self._settings.future_date_tolerance_days)
        if value > self.today + tolerance:
            return [ValidationIssue(
                field=field,
                issue_type="future_date",
                message=f"Date ({value}) is too far in the future",
                severity="error",
                suggested_fix="Please verify the date is correct",
            )]
        return []

    def _check_amount(self, field: str, amount: Decimal) -> list[ValidationIssue]:
        max_amount = Decimal(str(self._settings.max_amount))
        if amount > max_amount:
            return [ValidationIssue(
                field=field,
                issue_type="suspicious_value",
                message=f"Amount (${amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            )]
        return []

    def _validate_semantic(self, entry: BaseModel) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation of an income, expense or budget.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        entry_date = getattr(entry, "date", None)
        if entry_date is not None:
            issues.extend(self._check_date("date", entry_date))

        amount = getattr(entry, "amount", None)
        if amount is None:
            amount = getattr(entry, "limit", None)
            field = "limit"
        else:
            field = "amount"
        if amount is not None:
            issues.extend(self._check_amount(field, amount))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def _validate_entry(
        self,
        entity_type: str,
        model: Type[M],
        data: dict[str, Any],
    ) -> tuple[ValidationResult, Optional[M]]:
        schema_valid, issues, parsed = self._validate_schema(model, data)

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(parsed)
            issues.extend(semantic_issues)

        result = ValidationResult(
            entity_type=entity_type,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            issues=issues,
        )
        return result, parsed if result.is_valid else None

    def validate_income(self, data: dict[str, Any]) -> tuple[ValidationResult, Optional[Income]]:
        return self._validate_entry("income", Income, data)

    def validate_expense(self, data: dict[str, Any]) -> tuple[ValidationResult, Optional[Expense]]:
        return self._validate_entry("expense", Expense, data)

    def validate_budget(self, data: dict[str, Any]) -> tuple[ValidationResult, Optional[Budget]]:
        return self._validate_entry("budget", Budget, data)

    def validate_debt_payment(
        self,
        debt: Debt,
        amount: Any,
        payment_date: date,
    ) -> ValidationResult:
        """
        Check a payment before it is applied.

        Non-numeric or non-positive amounts are errors. Paying more than
        the remaining balance is only a warning: the ledger records the
        overpayment and the balance floors at zero.
        """
        schema_issues = []
        parsed: Optional[Decimal] = None
        try:
            parsed = to_money(amount)
        except (TypeError, ValueError, ArithmeticError):
            parsed = None

        if parsed is None or not parsed.is_finite():
            schema_issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message="Payment amount must be a number",
                severity="error",
                suggested_fix="Enter an amount such as 200.00",
            ))
        elif parsed <= 0:
            schema_issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Payment amount must be greater than zero",
                severity="error",
                suggested_fix="Enter a positive amount",
            ))

        if schema_issues:
            return ValidationResult(
                entity_type="debt_payment",
                schema_valid=False,
                semantic_valid=False,
                issues=schema_issues,
            )

        issues = self._check_date("payment_date", payment_date)
        issues.extend(self._check_amount("amount", parsed))
        if parsed > debt.balance:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="exceeds_balance",
                message=(
                    f"Payment (${parsed:,.2f}) is more than the remaining "
                    f"balance of {debt.name} (${debt.balance:,.2f})"
                ),
                severity="warning",
                suggested_fix="The balance will be recorded as paid off",
            ))

        return ValidationResult(
            entity_type="debt_payment",
            schema_valid=True,
            semantic_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )

    def validate_month_id(self, month_id: str) -> ValidationResult:
        """Month ids must look like YYYY-MM with a real month."""
        issues = []
        if not isinstance(month_id, str) or not re.match(MONTH_ID_PATTERN, month_id):
            issues.append(ValidationIssue(
                field="month_id",
                issue_type="invalid_format",
                message=f"'{month_id}' is not a valid month (expected YYYY-MM)",
                severity="error",
                suggested_fix="Pick a month such as 2023-04",
            ))
        return ValidationResult(
            entity_type="month",
            schema_valid=not issues,
            semantic_valid=not issues,
            issues=issues,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what the forms show under the submit button.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []

        errors = [issue for issue in result.issues if issue.severity == "error"]
        if errors:
            lines.append("❌ Please fix the following:")
            for issue in errors:
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        if result.is_valid:
            lines.append("")
            lines.append("You can still proceed, but please review carefully.")

        return "\n".join(lines)
