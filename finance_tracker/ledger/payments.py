"""
Debt Payment Processor

Applies one payment to one debt and cascades it into the goal that
tracks paying that debt off.

DESIGN DECISION: Pure function over immutable inputs.
apply_debt_payment never mutates the debt or goals it is given. It
returns fresh model instances in a PaymentResult and leaves committing
them to the caller (MonthLedger.record_debt_payment). A half-applied
payment is therefore impossible: either the caller commits all three
results or none.

Totals are always recomputed from the full payment map, never
incremented, so repeated payments in one month accumulate correctly.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence
from uuid import UUID

import structlog

from finance_tracker.ledger.errors import EntityNotFoundError, InvalidPaymentError
from finance_tracker.models.finance import (
    ZERO,
    Debt,
    Expense,
    ExpenseCategory,
    Goal,
    GoalType,
    month_id_for,
    to_money,
)


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PaymentResult:
    """Everything a single payment produced."""

    month_id: str
    amount: Decimal
    debt: Debt
    expense: Expense
    goal: Optional[Goal] = None

    @property
    def paid_off(self) -> bool:
        return self.debt.is_paid_off


def validate_amount(amount) -> Decimal:
    """Coerce to Decimal and reject anything that is not strictly positive."""
    try:
        value = to_money(amount)
    except (InvalidOperation, ValueError, TypeError) as e:
        raise InvalidPaymentError(f"Payment amount is not a number: {amount!r}") from e

    if not value.is_finite() or value <= ZERO:
        raise InvalidPaymentError(f"Payment amount must be greater than zero, got {amount}")

    return value


def find_linked_goal(
    debt: Debt,
    goals: Sequence[Goal],
    link_by_name: bool = True,
) -> Optional[Goal]:
    """
    Find the debt-payoff goal that tracks this debt.

    An explicit associated_debt_id always wins. Goals without a link
    are matched by name containment only when exactly one DEBT_PAYOFF
    goal matches; two or more candidates means no link.
    """
    for goal in goals:
        if goal.associated_debt_id == debt.id:
            return goal

    if not link_by_name:
        return None

    debt_name = debt.name.lower()
    candidates = [
        goal for goal in goals
        if goal.type == GoalType.DEBT_PAYOFF
        and goal.associated_debt_id is None
        and debt_name in goal.name.lower()
    ]

    if len(candidates) == 1:
        return candidates[0]

    if len(candidates) > 1:
        logger.warning(
            "ambiguous_goal_link",
            debt_id=str(debt.id),
            debt_name=debt.name,
            candidate_goal_ids=[str(goal.id) for goal in candidates],
        )

    return None


def apply_debt_payment(
    debt: Debt,
    amount,
    payment_date: date,
    goals: Sequence[Goal] = (),
    *,
    goal_id: Optional[UUID] = None,
    link_goals_by_name: bool = True,
) -> PaymentResult:
    """
    Apply a payment to a debt.

    Args:
        debt: The debt being paid
        amount: Payment amount, must be > 0
        payment_date: Date of the payment; its month receives the entries
        goals: Goals the payment may cascade into
        goal_id: Force a specific goal instead of searching for the link
        link_goals_by_name: Allow name matching for unlinked goals

    Returns:
        PaymentResult with the updated debt, the new expense and the
        updated goal (if any)

    Raises:
        InvalidPaymentError: amount is not strictly positive
        EntityNotFoundError: goal_id does not match any of the goals
    """
    value = validate_amount(amount)
    month_id = month_id_for(payment_date)

    payments = dict(debt.monthly_payments)
    payments[month_id] = payments.get(month_id, ZERO) + value

    total_paid = sum(payments.values(), ZERO)
    new_balance = max(ZERO, debt.original_principal - total_paid)

    balances = dict(debt.monthly_balances)
    balances[month_id] = new_balance

    updated_debt = debt.model_copy(
        update={"monthly_payments": payments, "monthly_balances": balances},
        deep=True,
    )

    expense = Expense(
        amount=value,
        category=ExpenseCategory.DEBT_PAYMENTS,
        date=payment_date,
        description=f"Payment for {debt.name}",
        associated_debt_id=debt.id,
    )

    if goal_id is not None:
        goal = next((g for g in goals if g.id == goal_id), None)
        if goal is None:
            raise EntityNotFoundError("goal", goal_id, month_id)
    else:
        goal = find_linked_goal(debt, goals, link_by_name=link_goals_by_name)

    updated_goal = None
    if goal is not None:
        progress = dict(goal.monthly_progress)
        progress[month_id] = progress.get(month_id, ZERO) + value
        updated_goal = goal.model_copy(
            update={"monthly_progress": progress},
            deep=True,
        )

    return PaymentResult(
        month_id=month_id,
        amount=value,
        debt=updated_debt,
        expense=expense,
        goal=updated_goal,
    )


def apply_goal_contribution(goal: Goal, amount, contribution_date: date) -> Goal:
    """Add a manual contribution to a goal's progress for the contribution's month."""
    value = validate_amount(amount)
    month_id = month_id_for(contribution_date)

    progress = dict(goal.monthly_progress)
    progress[month_id] = progress.get(month_id, ZERO) + value

    return goal.model_copy(update={"monthly_progress": progress}, deep=True)
