"""
Month Propagation

Carries debts and goals forward through every tracked month, oldest
first, so a payment recorded in April shows up in May's balances.

DESIGN DECISION: All-or-nothing over a deep copy.
propagate_months never touches the ledger it is given. It works on a
deep copy and returns it; on any failure it raises PropagationError and
the caller keeps the original. There is no partially propagated state.

Precedence rule: payment and progress entries the later month already
has always win. Propagation only fills gaps, so re-running it is
harmless. Balance entries are derived and are recomputed every pass.
"""

from pydantic import ValidationError

from finance_tracker.ledger.errors import (
    LedgerError,
    NotEnoughMonthsError,
    PropagationError,
)
from finance_tracker.ledger.state import MonthLedger, MonthSnapshot
from finance_tracker.models.finance import Debt, Goal


def _merge_map(target: dict, source: dict) -> dict:
    merged = dict(source)
    merged.update(target)
    return merged


def _carry_debt(current: Debt, existing: Debt | None, next_month: str) -> Debt:
    if existing is None:
        carried = current.model_copy(deep=True)
    else:
        carried = existing.model_copy(
            update={
                "monthly_payments": _merge_map(existing.monthly_payments, current.monthly_payments),
            },
            deep=True,
        )

    # Balances are derived from the merged payments, never carried as-is
    months = set(current.monthly_balances) | set(carried.monthly_balances) | {next_month}
    carried.monthly_balances = {
        month_id: carried.balance_as_of(month_id) for month_id in sorted(months)
    }
    return carried


def _carry_goal(current: Goal, existing: Goal | None) -> Goal:
    if existing is None:
        return current.model_copy(deep=True)
    return existing.model_copy(
        update={
            "monthly_progress": _merge_map(existing.monthly_progress, current.monthly_progress),
        },
        deep=True,
    )


def _carry_forward(current: MonthSnapshot, following: MonthSnapshot, next_month: str) -> None:
    for debt in current.debts:
        following.upsert_debt(_carry_debt(debt, following.find_debt(debt.id), next_month))

    for goal in current.goals:
        following.upsert_goal(_carry_goal(goal, following.find_goal(goal.id)))


def propagate_months(ledger: MonthLedger) -> MonthLedger:
    """
    Propagate debt and goal state through all months in chronological order.

    For each adjacent pair (current, next): a debt or goal missing from
    next is copied whole; otherwise every payment or progress entry next
    lacks is seeded from current. Debt balance entries are then rebuilt
    from the merged payments, including next's own month, so they always
    agree with the debt's derived balance.

    Raises:
        NotEnoughMonthsError: fewer than two months are tracked
        PropagationError: anything else went wrong; input is untouched
    """
    month_ids = ledger.month_ids
    if len(month_ids) < 2:
        raise NotEnoughMonthsError()

    try:
        updated = ledger.model_copy(deep=True)

        for current_month, next_month in zip(month_ids, month_ids[1:]):
            current = updated.snapshots.setdefault(current_month, MonthSnapshot())
            following = updated.snapshots.setdefault(next_month, MonthSnapshot())
            _carry_forward(current, following, next_month)

        # Carried values must still satisfy the model constraints
        return MonthLedger.model_validate(updated.model_dump())
    except LedgerError:
        raise
    except (ValidationError, KeyError, TypeError, ValueError, ArithmeticError) as e:
        raise PropagationError(f"Month propagation failed: {e}") from e
