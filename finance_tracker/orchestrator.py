"""
Main Orchestrator for the Personal Finance Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Ledger changes (validate → apply → audit), persistence and month
   propagation
2. Insights (ledger → aggregated snapshot → proxy or local fallback)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches the ledger without passing validation
- The current ledger is replaced only when an operation fully succeeds
- Every step is audited
- No exception escapes to the UI; flows return (result, ok, message)

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import date
from typing import Any, Optional, Sequence
from uuid import UUID

import structlog

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.config import get_settings
from finance_tracker.ledger import (
    LedgerError,
    MonthLedger,
    MonthSnapshot,
    NotEnoughMonthsError,
    PaymentResult,
    budget_alerts,
    build_financial_snapshot,
    load_sample_data,
    new_ledger,
    propagate_months,
)
from finance_tracker.ledger.summary import (
    build_health_request,
    expense_breakdown,
    expense_lines,
    goal_snapshot,
)
from finance_tracker.models.finance import (
    Debt,
    Expense,
    Goal,
    Income,
    Recommendation,
    month_id_for,
    to_money,
)
from finance_tracker.models.insights import (
    CategorySuggestion,
    GoalPriority,
    GoalRecommendationSet,
    GoalRecommendationsRequest,
    HealthAssessment,
    HealthRequest,
    Insight,
    PrioritizeGoalsRequest,
    SpendingAnalysisRequest,
    SpendingOptimization,
)
from finance_tracker.services.insights import InsightsProxyClient, fallbacks
from finance_tracker.services.persistence import PersistenceFacade
from finance_tracker.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsKeyValueStore,
    HttpKeyValueStore,
    InMemoryKeyValueStore,
    KeyValueStoreInterface,
    StorageError,
)
from finance_tracker.validation import FinanceValidator


logger = structlog.get_logger(__name__)


class LedgerFlow:
    """
    Orchestrates every change to the month ledger.

    Flow for each change:
    1. Validate → FinanceValidator (schema, then semantic)
    2. Apply → MonthLedger operation on a copy
    3. Commit → replace the current ledger
    4. Audit → one event per change

    If any step fails the current ledger is left exactly as it was.
    """

    def __init__(
        self,
        ledger: Optional[MonthLedger] = None,
        persistence: Optional[PersistenceFacade] = None,
        validator: Optional[FinanceValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger or new_ledger()
        self._persistence = persistence
        self._validator = validator or FinanceValidator()
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = get_settings().app

    @property
    def ledger(self) -> MonthLedger:
        return self._ledger

    @property
    def validator(self) -> FinanceValidator:
        return self._validator

    async def _rejected(
        self,
        entity_type: str,
        result,
        correlation_id: UUID,
    ) -> str:
        stage = "schema" if not result.schema_valid else "semantic"
        await self._audit_logger.log_validation_failed(
            entity_type=entity_type,
            stage=stage,
            issues=[issue.model_dump() for issue in result.issues],
            correlation_id=correlation_id,
        )
        return self._validator.get_user_friendly_summary(result)

    async def _ledger_error(self, e: LedgerError, correlation_id: UUID) -> str:
        entity_type = getattr(e, "entity_type", None)
        if entity_type:
            await self._audit_logger.log_entity_not_found(
                entity_type=entity_type,
                entity_id=e.entity_id,
                correlation_id=correlation_id,
            )
        else:
            await self._audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                correlation_id=correlation_id,
            )
        return str(e)

    # -------------------------------------------------------------------------
    # Months
    # -------------------------------------------------------------------------

    async def add_month(
        self,
        month_id: str,
        activate: bool = True,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[MonthLedger, bool, str]:
        correlation_id = correlation_id or create_correlation_id()

        result = self._validator.validate_month_id(month_id)
        if not result.is_valid:
            return self._ledger, False, await self._rejected("month", result, correlation_id)

        self._ledger = self._ledger.add_month(month_id, activate=activate)
        await self._audit_logger.log_month_added(month_id, correlation_id)
        return self._ledger, True, f"Month {month_id} added"

    async def set_active_month(
        self,
        month_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[MonthLedger, bool, str]:
        correlation_id = correlation_id or create_correlation_id()
        try:
            self._ledger = self._ledger.set_active_month(month_id)
        except LedgerError as e:
            return self._ledger, False, await self._ledger_error(e, correlation_id)

        await self._audit_logger.log_active_month_changed(month_id, correlation_id)
        return self._ledger, True, f"Now viewing {month_id}"

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    async def record_income(
        self,
        data: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Income], bool, str]:
        correlation_id = correlation_id or create_correlation_id()

        result, income = self._validator.validate_income(data)
        if income is None:
            return None, False, await self._rejected("income", result, correlation_id)

        self._ledger = self._ledger.add_income(income)
        await self._audit_logger.log_entry_recorded(
            "income", income.id, month_id_for(income.date), correlation_id
        )
        return income, True, "Income added"

    async def record_expense(
        self,
        data: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Expense], bool, str]:
        correlation_id = correlation_id or create_correlation_id()

        result, expense = self._validator.validate_expense(data)
        if expense is None:
            return None, False, await self._rejected("expense", result, correlation_id)

        self._ledger = self._ledger.add_expense(expense)
        await self._audit_logger.log_entry_recorded(
            "expense", expense.id, month_id_for(expense.date), correlation_id
        )
        return expense, True, "Expense added"

    async def set_budget(
        self,
        data: dict[str, Any],
        month_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[MonthLedger, bool, str]:
        correlation_id = correlation_id or create_correlation_id()

        result, budget = self._validator.validate_budget(data)
        if budget is None:
            return self._ledger, False, await self._rejected("budget", result, correlation_id)

        try:
            self._ledger = self._ledger.set_budget(budget.category, budget.limit, month_id)
        except LedgerError as e:
            return self._ledger, False, await self._ledger_error(e, correlation_id)

        return self._ledger, True, f"Budget for {budget.category.value} set to ${budget.limit:,.2f}"

    async def add_debt(
        self,
        debt: Debt,
        month_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[MonthLedger, bool, str]:
        correlation_id = correlation_id or create_correlation_id()
        try:
            self._ledger = self._ledger.add_debt(debt, month_id)
        except LedgerError as e:
            return self._ledger, False, await self._ledger_error(e, correlation_id)

        await self._audit_logger.log_entry_recorded(
            "debt", debt.id, month_id or self._ledger.active_month_id, correlation_id
        )
        return self._ledger, True, f"Debt {debt.name} added"

    async def add_goal(
        self,
        goal: Goal,
        month_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[MonthLedger, bool, str]:
        correlation_id = correlation_id or create_correlation_id()
        try:
            self._ledger = self._ledger.add_goal(goal, month_id)
        except LedgerError as e:
            return self._ledger, False, await self._ledger_error(e, correlation_id)

        await self._audit_logger.log_entry_recorded(
            "goal", goal.id, month_id or self._ledger.active_month_id, correlation_id
        )
        return self._ledger, True, f"Goal {goal.name} added"

    async def refresh_budget_alerts(
        self,
        month_id: Optional[str] = None,
    ) -> tuple[MonthLedger, bool, str]:
        """Replace the month's budget alerts with ones for its current spending."""
        try:
            snapshot = self._ledger.snapshot(month_id)
        except LedgerError as e:
            return self._ledger, False, str(e)

        threshold = self._ledger.profile.alert_preferences.budget_warning_threshold
        alerts = budget_alerts(snapshot, threshold)
        existing = {alert.message for alert in snapshot.alerts}
        fresh = [alert for alert in alerts if alert.message not in existing]
        if fresh:
            self._ledger = self._ledger.add_alerts(fresh, month_id)
        return self._ledger, True, f"{len(fresh)} new alert(s)"

    # -------------------------------------------------------------------------
    # Debts and goals
    # -------------------------------------------------------------------------

    async def pay_debt(
        self,
        debt_id: UUID,
        amount: Any,
        payment_date: date,
        month_id: Optional[str] = None,
        goal_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[PaymentResult], bool, str]:
        """
        Record a debt payment with its expense and goal progress.

        Returns:
            (payment_result, ok, message)
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            debt = self._ledger.snapshot(month_id).find_debt(debt_id)
        except LedgerError as e:
            return None, False, await self._ledger_error(e, correlation_id)
        if debt is None:
            await self._audit_logger.log_entity_not_found("debt", str(debt_id), correlation_id)
            return None, False, f"Debt {debt_id} not found"

        check = self._validator.validate_debt_payment(debt, amount, payment_date)
        if not check.is_valid:
            return None, False, await self._rejected("debt_payment", check, correlation_id)

        try:
            self._ledger, result = self._ledger.record_debt_payment(
                debt_id,
                amount,
                payment_date,
                month_id=month_id,
                goal_id=goal_id,
                link_goals_by_name=self._settings.link_goals_by_name,
            )
        except LedgerError as e:
            return None, False, await self._ledger_error(e, correlation_id)

        await self._audit_logger.log_debt_payment(
            debt_id=result.debt.id,
            debt_name=result.debt.name,
            amount=str(result.amount),
            month_id=result.month_id,
            new_balance=str(result.debt.balance),
            correlation_id=correlation_id,
        )
        if result.goal is not None:
            await self._audit_logger.log_goal_progress(
                goal_id=result.goal.id,
                goal_name=result.goal.name,
                amount=str(result.amount),
                month_id=result.month_id,
                completed=result.goal.completed,
                correlation_id=correlation_id,
            )

        message = f"Payment of ${result.amount:,.2f} recorded for {result.debt.name}"
        if result.paid_off:
            message += ". This debt is now paid off! 🎉"
        elif check.warnings:
            message += ". " + " ".join(check.warnings)
        return result, True, message

    async def contribute_to_goal(
        self,
        goal_id: UUID,
        amount: Any,
        contribution_date: date,
        month_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Goal], bool, str]:
        correlation_id = correlation_id or create_correlation_id()
        try:
            self._ledger, goal = self._ledger.contribute_to_goal(
                goal_id, amount, contribution_date, month_id
            )
        except LedgerError as e:
            return None, False, await self._ledger_error(e, correlation_id)

        await self._audit_logger.log_goal_progress(
            goal_id=goal.id,
            goal_name=goal.name,
            amount=str(amount),
            month_id=month_id_for(contribution_date),
            completed=goal.completed,
            correlation_id=correlation_id,
        )
        message = f"Added ${to_money(amount):,.2f} toward {goal.name}"
        if goal.completed:
            message = f"{goal.name} is complete! 🎉"
        return goal, True, message

    # -------------------------------------------------------------------------
    # Propagation
    # -------------------------------------------------------------------------

    async def propagate(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[MonthLedger, bool, str]:
        """
        Carry debts and goals forward through all months.

        All-or-nothing: on failure the current ledger is unchanged.
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            updated = propagate_months(self._ledger)
        except NotEnoughMonthsError as e:
            await self._audit_logger.log_propagation_rejected(str(e), correlation_id)
            return self._ledger, False, str(e)
        except LedgerError as e:
            await self._audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return self._ledger, False, f"Could not update months: {e}"

        self._ledger = updated
        await self._audit_logger.log_months_propagated(updated.month_ids, correlation_id)
        return self._ledger, True, "Debts and goals carried forward to all months"

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def save(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[int, bool, str]:
        correlation_id = correlation_id or create_correlation_id()
        if not self._persistence:
            return 0, False, "Storage is not configured"

        try:
            written = await self._persistence.save_all(self._ledger)
        except StorageError as e:
            await self._audit_logger.log_save_failed(
                self._persistence.user_id, str(e), correlation_id
            )
            return 0, False, f"Saving failed: {e}"

        await self._audit_logger.log_ledger_saved(
            self._persistence.user_id, written, correlation_id
        )
        return written, True, "All data saved"

    async def load(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[MonthLedger, bool, str]:
        correlation_id = correlation_id or create_correlation_id()
        if not self._persistence:
            return self._ledger, False, "Storage is not configured"

        try:
            loaded = await self._persistence.load_all()
        except StorageError as e:
            await self._audit_logger.log_external_service_error(
                service="storage",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return self._ledger, False, f"Loading failed: {e}"

        if loaded.months:
            self._ledger = loaded
        await self._audit_logger.log_ledger_loaded(
            self._persistence.user_id, len(loaded.months), correlation_id
        )
        return self._ledger, True, f"Loaded {len(loaded.months)} month(s)"

    async def load_sample_data(
        self,
        month_ids: Sequence[str],
        seed: Optional[int] = 42,
    ) -> tuple[MonthLedger, bool, str]:
        try:
            self._ledger = load_sample_data(self._ledger, month_ids, seed)
        except LedgerError as e:
            return self._ledger, False, str(e)
        return self._ledger, True, f"Sample data loaded for {len(month_ids)} month(s)"


class InsightsFlow:
    """
    Orchestrates the insight features.

    Flow:
    1. Condense the month → aggregated snapshot (no raw entries)
    2. Ask the proxy → falls back to local rules on any failure
    3. Return typed results; is_fallback tells the UI which it got

    The proxy client never raises. A month the ledger cannot read (no
    active month, or one that is not tracked) is answered from the same
    local fallbacks, so these methods never raise either.
    """

    def __init__(
        self,
        proxy: Optional[InsightsProxyClient] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._audit_logger = audit_logger or AuditLogger()
        self._proxy = proxy or InsightsProxyClient(audit_logger=self._audit_logger)
        self._settings = get_settings().app

    async def _month(
        self,
        ledger: MonthLedger,
        month_id: Optional[str],
        feature: str,
    ) -> tuple[Optional[str], Optional[MonthSnapshot]]:
        month_id = month_id or ledger.active_month_id
        try:
            return month_id, ledger.snapshot(month_id)
        except LedgerError as e:
            logger.warning("insights_month_unavailable", feature=feature, error=str(e))
            await self._audit_logger.log_fallback_used(feature, str(e))
            return month_id, None

    async def month_insights(
        self,
        ledger: MonthLedger,
        month_id: Optional[str] = None,
    ) -> list[Insight]:
        month_id, snapshot = await self._month(ledger, month_id, "insights")
        if snapshot is None:
            return fallbacks.fallback_insights(get_settings().insights.fallback_insight_count)
        return await self._proxy.insights(build_financial_snapshot(snapshot, month_id))

    async def save_as_recommendations(
        self,
        ledger: MonthLedger,
        insights: list[Insight],
        month_id: Optional[str] = None,
    ) -> MonthLedger:
        """Store insights on the month so they show up on the dashboard."""
        recommendations = [
            Recommendation(
                type=insight.type,
                description=insight.description,
                impact=insight.impact,
                category=insight.category,
            )
            for insight in insights
        ]
        return ledger.add_recommendations(recommendations, month_id)

    async def health(
        self,
        ledger: MonthLedger,
        month_id: Optional[str] = None,
    ) -> HealthAssessment:
        month_id, snapshot = await self._month(ledger, month_id, "analyze-health")
        if snapshot is None:
            return fallbacks.fallback_health(HealthRequest())
        return await self._proxy.analyze_health(build_health_request(snapshot, month_id))

    async def categorize(self, description: str) -> CategorySuggestion:
        return await self._proxy.categorize(description)

    async def prioritize_goals(
        self,
        ledger: MonthLedger,
        month_id: Optional[str] = None,
    ) -> list[GoalPriority]:
        month_id, snapshot = await self._month(ledger, month_id, "prioritize-goals")
        if snapshot is None or not snapshot.goals:
            return []
        request = PrioritizeGoalsRequest(
            goals=[goal_snapshot(goal) for goal in snapshot.goals],
            snapshot=build_financial_snapshot(snapshot, month_id),
            expense_breakdown=expense_breakdown(snapshot),
        )
        return await self._proxy.prioritize_goals(request)

    async def goal_recommendations(
        self,
        ledger: MonthLedger,
        goal_id: UUID,
        month_id: Optional[str] = None,
    ) -> Optional[GoalRecommendationSet]:
        month_id, snapshot = await self._month(ledger, month_id, "goal-recommendations")
        goal = snapshot.find_goal(goal_id) if snapshot is not None else None
        if goal is None:
            return None
        request = GoalRecommendationsRequest(
            goal=goal_snapshot(goal),
            snapshot=build_financial_snapshot(snapshot, month_id),
        )
        return await self._proxy.goal_recommendations(request)

    async def optimize_spending(
        self,
        ledger: MonthLedger,
        month_id: Optional[str] = None,
        target_savings_rate: Optional[float] = None,
    ) -> Optional[SpendingOptimization]:
        month_id, snapshot = await self._month(ledger, month_id, "analyze-spending")
        lines = expense_lines(snapshot) if snapshot is not None else []
        if not lines:
            return None
        request = SpendingAnalysisRequest(
            expenses=lines,
            income=sum((income.amount for income in snapshot.incomes), 0),
            target_savings_rate=(
                target_savings_rate
                if target_savings_rate is not None
                else self._settings.target_savings_rate
            ),
        )
        return await self._proxy.analyze_spending(request)


def _create_store(backend: str) -> tuple[KeyValueStoreInterface, Optional[GoogleSheetsClient]]:
    if backend == "google_sheets":
        client = GoogleSheetsClient()
        return GoogleSheetsKeyValueStore(client), client
    if backend == "http":
        return HttpKeyValueStore(), None
    return InMemoryKeyValueStore(), None


def create_app_components(
    use_storage: bool = True,
) -> tuple[LedgerFlow, InsightsFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize the configured storage backend.
                    Set to False for testing without storage.

    Returns:
        (ledger_flow, insights_flow, sheets_client)
    """
    settings = get_settings()
    sheets_client = None
    persistence = None
    audit_logger = AuditLogger()  # Local-only logging

    if use_storage:
        try:
            store, sheets_client = _create_store(settings.app.storage_backend)
            persistence = PersistenceFacade(store, settings.persistence.user_id)
            if sheets_client is not None:
                audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            persistence = None

    ledger_flow = LedgerFlow(
        persistence=persistence,
        audit_logger=audit_logger,
    )
    insights_flow = InsightsFlow(audit_logger=audit_logger)

    return ledger_flow, insights_flow, sheets_client
