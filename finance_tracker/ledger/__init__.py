"""Month ledger: state, debt payments, propagation and summaries."""

from finance_tracker.ledger.errors import (
    NOT_ENOUGH_MONTHS_MESSAGE,
    EntityNotFoundError,
    InvalidPaymentError,
    LedgerError,
    MonthNotFoundError,
    NotEnoughMonthsError,
    PropagationError,
)
from finance_tracker.ledger.payments import (
    PaymentResult,
    apply_debt_payment,
    apply_goal_contribution,
    find_linked_goal,
)
from finance_tracker.ledger.state import MonthLedger, MonthSnapshot, new_ledger
from finance_tracker.ledger.propagation import propagate_months
from finance_tracker.ledger.summary import (
    MonthComparison,
    MonthlySummary,
    PayoffProjection,
    budget_alerts,
    budget_usage,
    build_financial_snapshot,
    compare_with_previous,
    payoff_projection,
    starter_recommendations,
    summarize_month,
)
from finance_tracker.ledger.sample_data import load_sample_data

__all__ = [
    "NOT_ENOUGH_MONTHS_MESSAGE",
    "EntityNotFoundError",
    "InvalidPaymentError",
    "LedgerError",
    "MonthNotFoundError",
    "NotEnoughMonthsError",
    "PropagationError",
    "PaymentResult",
    "apply_debt_payment",
    "apply_goal_contribution",
    "find_linked_goal",
    "MonthLedger",
    "MonthSnapshot",
    "new_ledger",
    "propagate_months",
    "MonthComparison",
    "MonthlySummary",
    "PayoffProjection",
    "budget_alerts",
    "budget_usage",
    "build_financial_snapshot",
    "compare_with_previous",
    "payoff_projection",
    "starter_recommendations",
    "summarize_month",
    "load_sample_data",
]
