"""
Audit Models for Finance Tracker

Every state-changing ledger operation and every degraded path
(fallback insights, storage failures) is recorded as an audit event.
This provides:
1. Traceability of payments and month propagation
2. Debugging information when the proxy or the store misbehaves
3. A way to reconstruct how a balance came to be

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finance_tracker.models.finance import utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""

    # Months
    MONTH_ADDED = "month_added"
    ACTIVE_MONTH_CHANGED = "active_month_changed"

    # Entries
    ENTRY_RECORDED = "entry_recorded"
    VALIDATION_FAILED = "validation_failed"

    # Debts and goals
    DEBT_PAYMENT_RECORDED = "debt_payment_recorded"
    GOAL_PROGRESS_UPDATED = "goal_progress_updated"
    ENTITY_NOT_FOUND = "entity_not_found"

    # Propagation
    MONTHS_PROPAGATED = "months_propagated"
    PROPAGATION_REJECTED = "propagation_rejected"

    # Persistence
    LEDGER_SAVED = "ledger_saved"
    LEDGER_LOADED = "ledger_loaded"
    SAVE_FAILED = "save_failed"

    # Insights
    INSIGHTS_GENERATED = "insights_generated"
    INSIGHTS_FALLBACK_USED = "insights_fallback_used"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'debt', 'goal', 'month', 'ledger')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity (UUID or month id)"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one user action"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.debt_payment_recorded(debt_id, "Car Loan", "200.00", "2023-04", cid)
        event = AuditEventBuilder.fallback_used("analyze-health", "timeout", cid)
    """

    @staticmethod
    def month_added(month_id: str, correlation_id: Optional[UUID] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_ADDED,
            entity_type="month",
            entity_id=month_id,
            correlation_id=correlation_id,
            description=f"Month added: {month_id}",
            is_user_action=True,
        )

    @staticmethod
    def active_month_changed(month_id: str, correlation_id: Optional[UUID] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACTIVE_MONTH_CHANGED,
            entity_type="month",
            entity_id=month_id,
            correlation_id=correlation_id,
            description=f"Active month set to {month_id}",
            is_user_action=True,
        )

    @staticmethod
    def entry_recorded(
        entity_type: str,
        entity_id: UUID,
        month_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_RECORDED,
            entity_type=entity_type,
            entity_id=str(entity_id),
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} recorded in {month_id}",
            details={"month_id": month_id},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        stage: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"{stage.capitalize()} validation failed with {len(issues)} issues",
            details={
                "stage": stage,
                "issues": issues,
            },
        )

    @staticmethod
    def debt_payment_recorded(
        debt_id: UUID,
        debt_name: str,
        amount: str,
        month_id: str,
        new_balance: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEBT_PAYMENT_RECORDED,
            entity_type="debt",
            entity_id=str(debt_id),
            correlation_id=correlation_id,
            description=f"Payment of {amount} recorded for {debt_name}",
            details={
                "amount": amount,
                "month_id": month_id,
                "new_balance": new_balance,
            },
            is_user_action=True,
        )

    @staticmethod
    def goal_progress_updated(
        goal_id: UUID,
        goal_name: str,
        amount: str,
        month_id: str,
        completed: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_PROGRESS_UPDATED,
            entity_type="goal",
            entity_id=str(goal_id),
            correlation_id=correlation_id,
            description=f"Goal '{goal_name}' progressed by {amount}",
            details={
                "amount": amount,
                "month_id": month_id,
                "completed": completed,
            },
        )

    @staticmethod
    def entity_not_found(
        entity_type: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_NOT_FOUND,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Referenced {entity_type} not found: {entity_id}",
        )

    @staticmethod
    def months_propagated(
        month_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTHS_PROPAGATED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Propagated debts and goals across {len(month_ids)} months",
            details={"months": month_ids},
            is_user_action=True,
        )

    @staticmethod
    def propagation_rejected(
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROPAGATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            correlation_id=correlation_id,
            description="Month propagation rejected",
            error_message=reason,
        )

    @staticmethod
    def ledger_saved(
        user_id: str,
        key_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_SAVED,
            entity_type="ledger",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Ledger saved ({key_count} keys)",
            details={"key_count": key_count},
            is_user_action=True,
        )

    @staticmethod
    def ledger_loaded(
        user_id: str,
        month_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            entity_type="ledger",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Ledger loaded with {month_count} months",
            details={"month_count": month_count},
        )

    @staticmethod
    def save_failed(
        user_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Saving the ledger failed",
            error_message=error_message,
        )

    @staticmethod
    def insights_generated(
        endpoint: str,
        result_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSIGHTS_GENERATED,
            entity_type="insights",
            entity_id=endpoint,
            correlation_id=correlation_id,
            description=f"Proxy answered {endpoint} with {result_count} results",
            details={"endpoint": endpoint, "result_count": result_count},
        )

    @staticmethod
    def fallback_used(
        endpoint: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSIGHTS_FALLBACK_USED,
            severity=AuditSeverity.WARNING,
            entity_type="insights",
            entity_id=endpoint,
            correlation_id=correlation_id,
            description=f"Local fallback used for {endpoint}",
            error_message=reason,
            details={"endpoint": endpoint},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
