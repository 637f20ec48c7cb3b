"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged.
This provides:
1. Traceability of balances (which payment moved which debt)
2. Debugging capability when propagation or a save goes wrong
3. A record of when insights came from the local fallbacks

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder
from finance_tracker.services.storage import AuditStorageInterface


def configure_logging(debug: bool = False) -> None:
    """
    Route structlog through the stdlib logging module.

    Debug mode logs at DEBUG with a readable console renderer; otherwise
    INFO and above are written as one JSON object per line.
    """
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if debug else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finance_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_month_added(
        self,
        month_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.month_added(month_id, correlation_id))

    async def log_active_month_changed(
        self,
        month_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.active_month_changed(month_id, correlation_id))

    async def log_entry_recorded(
        self,
        entity_type: str,
        entity_id: UUID,
        month_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a new income, expense, budget, debt or goal."""
        event = AuditEventBuilder.entry_recorded(
            entity_type=entity_type,
            entity_id=entity_id,
            month_id=month_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        entity_type: str,
        stage: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log validation failure."""
        event = AuditEventBuilder.validation_failed(
            entity_type=entity_type,
            stage=stage,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_debt_payment(
        self,
        debt_id: UUID,
        debt_name: str,
        amount: str,
        month_id: str,
        new_balance: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.debt_payment_recorded(
            debt_id=debt_id,
            debt_name=debt_name,
            amount=amount,
            month_id=month_id,
            new_balance=new_balance,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_goal_progress(
        self,
        goal_id: UUID,
        goal_name: str,
        amount: str,
        month_id: str,
        completed: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.goal_progress_updated(
            goal_id=goal_id,
            goal_name=goal_name,
            amount=amount,
            month_id=month_id,
            completed=completed,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_entity_not_found(
        self,
        entity_type: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entity_not_found(entity_type, entity_id, correlation_id))

    async def log_months_propagated(
        self,
        month_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.months_propagated(month_ids, correlation_id))

    async def log_propagation_rejected(
        self,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.propagation_rejected(reason, correlation_id))

    async def log_ledger_saved(
        self,
        user_id: str,
        key_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.ledger_saved(user_id, key_count, correlation_id))

    async def log_ledger_loaded(
        self,
        user_id: str,
        month_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.ledger_loaded(user_id, month_count, correlation_id))

    async def log_save_failed(
        self,
        user_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(user_id, error_message, correlation_id))

    async def log_insights_generated(
        self,
        endpoint: str,
        result_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.insights_generated(endpoint, result_count, correlation_id))

    async def log_fallback_used(
        self,
        endpoint: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log that an insight came from the local rules instead of the proxy."""
        await self.log(AuditEventBuilder.fallback_used(endpoint, reason, correlation_id))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a debt payment).
    Pass it through all subsequent operations.
    """
    return uuid4()
