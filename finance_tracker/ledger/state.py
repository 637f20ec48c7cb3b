"""
Month Ledger

The user's complete financial state: one snapshot per tracked month.

DESIGN DECISION: The ledger is an explicit value, not ambient state.
Every operation returns a NEW MonthLedger and leaves the receiver
untouched. Callers hold the current ledger and swap it for the returned
one only when the operation succeeds, so a failed operation can never
leave a half-updated ledger behind.

Debts and goals are account-wide entities that appear in each month
snapshot under the same id. Every copy carries the month-indexed maps;
propagation (see propagation.py) keeps later months in step.

Months are created on first reference: explicitly through add_month,
or implicitly when an entry dated in an untracked month is recorded.
Exactly one month is active at a time.
"""

from datetime import date
from typing import Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from finance_tracker.ledger.errors import EntityNotFoundError, MonthNotFoundError
from finance_tracker.ledger.payments import (
    PaymentResult,
    apply_debt_payment,
    apply_goal_contribution,
)
from finance_tracker.models.finance import (
    Alert,
    Budget,
    Debt,
    Expense,
    ExpenseCategory,
    Goal,
    Income,
    MonthData,
    MonthId,
    Recommendation,
    UserProfile,
    month_id_for,
    to_money,
)


logger = structlog.get_logger(__name__)


class MonthSnapshot(BaseModel):
    """Everything recorded for one month."""

    incomes: list[Income] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    budgets: list[Budget] = Field(default_factory=list)
    debts: list[Debt] = Field(default_factory=list)
    goals: list[Goal] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    alerts: list[Alert] = Field(default_factory=list)

    def find_debt(self, debt_id: UUID) -> Optional[Debt]:
        return next((debt for debt in self.debts if debt.id == debt_id), None)

    def find_goal(self, goal_id: UUID) -> Optional[Goal]:
        return next((goal for goal in self.goals if goal.id == goal_id), None)

    def replace_debt(self, debt: Debt) -> None:
        self.debts = [debt if d.id == debt.id else d for d in self.debts]

    def replace_goal(self, goal: Goal) -> None:
        self.goals = [goal if g.id == goal.id else g for g in self.goals]

    def upsert_debt(self, debt: Debt) -> None:
        if self.find_debt(debt.id) is None:
            self.debts.append(debt)
        else:
            self.replace_debt(debt)

    def upsert_goal(self, goal: Goal) -> None:
        if self.find_goal(goal.id) is None:
            self.goals.append(goal)
        else:
            self.replace_goal(goal)


class MonthLedger(BaseModel):
    """
    Ordered collection of month snapshots for one user.

    INVARIANT: every id in `months` has a snapshot and at most one month
    is active.
    """

    user_id: str = "local"
    profile: UserProfile = Field(default_factory=UserProfile)
    months: list[MonthData] = Field(default_factory=list)
    snapshots: dict[MonthId, MonthSnapshot] = Field(default_factory=dict)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def month_ids(self) -> list[str]:
        """Tracked month ids in chronological order."""
        return sorted(month.id for month in self.months)

    @property
    def active_month_id(self) -> Optional[str]:
        for month in self.months:
            if month.is_active:
                return month.id
        return None

    def has_month(self, month_id: str) -> bool:
        return any(month.id == month_id for month in self.months)

    def snapshot(self, month_id: Optional[str] = None) -> MonthSnapshot:
        """
        Snapshot for a month (the active month when month_id is None).

        Raises:
            MonthNotFoundError: month is not tracked
        """
        month_id = month_id or self.active_month_id
        if month_id is None or not self.has_month(month_id):
            raise MonthNotFoundError(month_id or "<none>")
        return self.snapshots.get(month_id) or MonthSnapshot()

    # -------------------------------------------------------------------------
    # Months
    # -------------------------------------------------------------------------

    def add_month(self, month_id: str, activate: bool = False) -> "MonthLedger":
        """
        Start tracking a month. Adding an existing month is a no-op
        (apart from activation).

        The first month ever added becomes active.
        """
        updated = self.model_copy(deep=True)
        updated._ensure_month(month_id)
        if activate:
            updated._activate(month_id)
        return updated

    def set_active_month(self, month_id: str) -> "MonthLedger":
        if not self.has_month(month_id):
            raise MonthNotFoundError(month_id)
        updated = self.model_copy(deep=True)
        updated._activate(month_id)
        return updated

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    def add_income(self, income: Income) -> "MonthLedger":
        """Record income in the month of its date."""
        updated = self.model_copy(deep=True)
        month_id = month_id_for(income.date)
        updated._ensure_month(month_id).incomes.append(income)
        return updated

    def add_expense(self, expense: Expense) -> "MonthLedger":
        """Record an expense in the month of its date."""
        updated = self.model_copy(deep=True)
        month_id = month_id_for(expense.date)
        updated._ensure_month(month_id).expenses.append(expense)
        return updated

    def set_budget(
        self,
        category: ExpenseCategory,
        limit,
        month_id: Optional[str] = None,
    ) -> "MonthLedger":
        """Create or replace the budget for a category."""
        month_id = self._target_month(month_id)
        updated = self.model_copy(deep=True)
        snapshot = updated._ensure_month(month_id)
        budget = Budget(category=category, limit=to_money(limit))
        snapshot.budgets = [b for b in snapshot.budgets if b.category != category]
        snapshot.budgets.append(budget)
        return updated

    def add_debt(self, debt: Debt, month_id: Optional[str] = None) -> "MonthLedger":
        month_id = self._target_month(month_id)
        updated = self.model_copy(deep=True)
        updated._ensure_month(month_id).debts.append(debt)
        return updated

    def add_goal(self, goal: Goal, month_id: Optional[str] = None) -> "MonthLedger":
        month_id = self._target_month(month_id)
        updated = self.model_copy(deep=True)
        updated._ensure_month(month_id).goals.append(goal)
        return updated

    def add_recommendations(
        self,
        recommendations: list[Recommendation],
        month_id: Optional[str] = None,
    ) -> "MonthLedger":
        month_id = self._target_month(month_id)
        updated = self.model_copy(deep=True)
        updated._ensure_month(month_id).recommendations.extend(recommendations)
        return updated

    def add_alerts(self, alerts: list[Alert], month_id: Optional[str] = None) -> "MonthLedger":
        month_id = self._target_month(month_id)
        updated = self.model_copy(deep=True)
        updated._ensure_month(month_id).alerts.extend(alerts)
        return updated

    def update_profile(self, profile: UserProfile) -> "MonthLedger":
        return self.model_copy(update={"profile": profile}, deep=True)

    # -------------------------------------------------------------------------
    # Debts and goals
    # -------------------------------------------------------------------------

    def record_debt_payment(
        self,
        debt_id: UUID,
        amount,
        payment_date: date,
        month_id: Optional[str] = None,
        goal_id: Optional[UUID] = None,
        link_goals_by_name: bool = True,
    ) -> tuple["MonthLedger", PaymentResult]:
        """
        Pay down a debt held in a month snapshot (the active month by default).

        The generated expense is filed in the month of payment_date, like
        any other expense, and that month is created if it is not tracked
        yet. The updated debt and goal replace their copies in both the
        holding month and the payment month.

        Raises:
            MonthNotFoundError: month is not tracked
            EntityNotFoundError: debt (or the explicit goal) is missing
            InvalidPaymentError: amount is not strictly positive
        """
        month_id = self._target_month(month_id)
        snapshot = self.snapshot(month_id)

        debt = snapshot.find_debt(debt_id)
        if debt is None:
            raise EntityNotFoundError("debt", debt_id, month_id)

        result = apply_debt_payment(
            debt,
            amount,
            payment_date,
            snapshot.goals,
            goal_id=goal_id,
            link_goals_by_name=link_goals_by_name,
        )

        updated = self.model_copy(deep=True)
        holding = updated._ensure_month(month_id)
        holding.replace_debt(result.debt)
        if result.goal is not None:
            holding.replace_goal(result.goal)

        paid_in = updated._ensure_month(result.month_id)
        paid_in.expenses.append(result.expense)
        if paid_in is not holding:
            paid_in.upsert_debt(result.debt)
            if result.goal is not None:
                paid_in.upsert_goal(result.goal)

        logger.info(
            "debt_payment_applied",
            debt_id=str(debt_id),
            month_id=result.month_id,
            amount=str(result.amount),
            balance=str(result.debt.balance),
            goal_id=str(result.goal.id) if result.goal else None,
        )

        return updated, result

    def contribute_to_goal(
        self,
        goal_id: UUID,
        amount,
        contribution_date: date,
        month_id: Optional[str] = None,
    ) -> tuple["MonthLedger", Goal]:
        """Add a manual contribution to a goal held in a month snapshot."""
        month_id = self._target_month(month_id)
        goal = self.snapshot(month_id).find_goal(goal_id)
        if goal is None:
            raise EntityNotFoundError("goal", goal_id, month_id)

        updated_goal = apply_goal_contribution(goal, amount, contribution_date)

        updated = self.model_copy(deep=True)
        updated._ensure_month(month_id).replace_goal(updated_goal)
        return updated, updated_goal

    # -------------------------------------------------------------------------
    # Internals (operate on copies only)
    # -------------------------------------------------------------------------

    def _target_month(self, month_id: Optional[str]) -> str:
        month_id = month_id or self.active_month_id
        if month_id is None:
            raise MonthNotFoundError("<none>")
        if not self.has_month(month_id):
            raise MonthNotFoundError(month_id)
        return month_id

    def _ensure_month(self, month_id: str) -> MonthSnapshot:
        if not self.has_month(month_id):
            self.months.append(MonthData(id=month_id, is_active=not self.months))
            self.months.sort(key=lambda month: month.id)
        return self.snapshots.setdefault(month_id, MonthSnapshot())

    def _activate(self, month_id: str) -> None:
        for month in self.months:
            month.is_active = month.id == month_id


def new_ledger(
    user_id: str = "local",
    month_id: Optional[str] = None,
    profile: Optional[UserProfile] = None,
) -> MonthLedger:
    """A ledger tracking one (active) month, the current month by default."""
    month_id = month_id or month_id_for(date.today())
    ledger = MonthLedger(user_id=user_id, profile=profile or UserProfile())
    return ledger.add_month(month_id, activate=True)
