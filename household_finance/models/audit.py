"""
Audit Models for Household Finance

Every session change and every mutation of household data produces an
audit event. This provides:
1. Traceability of who changed what
2. Debugging information when the store rejects an operation
3. A history the family administrator can review

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Credentials never appear in an audit event.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Session
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_REJECTED = "login_rejected"
    LOGIN_SUPERSEDED = "login_superseded"
    USER_REGISTERED = "user_registered"
    REGISTRATION_REJECTED = "registration_rejected"
    PROFILE_UPDATED = "profile_updated"
    LOGGED_OUT = "logged_out"

    # Subscription
    CHECKOUT_STARTED = "checkout_started"
    SUBSCRIPTION_ACTIVATED = "subscription_activated"
    CHECKOUT_CANCELLED = "checkout_cancelled"

    # Expenses
    EXPENSE_ADDED = "expense_added"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSE_DELETE_DECLINED = "expense_delete_declined"
    EXPENSES_CLEARED = "expenses_cleared"
    EXPENSE_STATUS_UPDATED = "expense_status_updated"

    # System events
    STORAGE_INITIALIZED = "storage_initialized"
    STORE_ERROR = "store_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Who did it, and what it was about
    actor_id: Optional[str] = Field(
        default=None,
        description="Signed-in user that triggered the event"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'user', 'expense')"
    )
    entity_id: Optional[str] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "actor_id": self.actor_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row for the Google Sheets audit log.

        Columns: [event_id, timestamp, event_type, severity, actor_id,
        entity_type, entity_id, description, details_json,
        error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.actor_id or "",
            self.entity_type or "",
            self.entity_id or "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.login_succeeded(user_id, via_admin=False)
        event = AuditEventBuilder.expense_added(actor_id, expense_id, "50.00")
    """

    @staticmethod
    def login_succeeded(user_id: str, via_admin: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_SUCCEEDED,
            actor_id=user_id,
            entity_type="user",
            entity_id=user_id,
            description="User signed in",
            details={"admin_entry": via_admin},
        )

    @staticmethod
    def login_rejected(reason: str, via_admin: bool) -> AuditEvent:
        # The identifier is not recorded: a rejected login must not leak
        # which accounts exist.
        return AuditEvent(
            event_type=AuditEventType.LOGIN_REJECTED,
            severity=AuditSeverity.WARNING,
            description="Sign-in rejected",
            details={"reason": reason, "admin_entry": via_admin},
        )

    @staticmethod
    def login_superseded(ticket: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_SUPERSEDED,
            severity=AuditSeverity.WARNING,
            description="Session write discarded by a newer sign-in attempt",
            details={"ticket": ticket},
        )

    @staticmethod
    def user_registered(
        user_id: str,
        actor_id: Optional[str],
        auto_login: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            actor_id=actor_id or user_id,
            entity_type="user",
            entity_id=user_id,
            description="New user registered",
            details={"auto_login": auto_login},
        )

    @staticmethod
    def registration_rejected(reason: str, actor_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTRATION_REJECTED,
            severity=AuditSeverity.WARNING,
            actor_id=actor_id,
            description="Registration rejected",
            error_message=reason,
        )

    @staticmethod
    def profile_updated(user_id: str, fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_UPDATED,
            actor_id=user_id,
            entity_type="user",
            entity_id=user_id,
            description=f"Profile updated: {', '.join(fields) or 'no fields'}",
            details={"fields": fields},
        )

    @staticmethod
    def logged_out(user_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGGED_OUT,
            actor_id=user_id,
            description="Session closed",
        )

    @staticmethod
    def checkout_started(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHECKOUT_STARTED,
            actor_id=user_id,
            entity_type="user",
            entity_id=user_id,
            description="Premium checkout started",
        )

    @staticmethod
    def subscription_activated(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_ACTIVATED,
            actor_id=user_id,
            entity_type="user",
            entity_id=user_id,
            description="Premium subscription activated",
        )

    @staticmethod
    def checkout_cancelled(user_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHECKOUT_CANCELLED,
            actor_id=user_id,
            description="Premium checkout cancelled",
        )

    @staticmethod
    def expense_added(actor_id: str, expense_id: str, amount: str, owner_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            actor_id=actor_id,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Expense added: R$ {amount}",
            details={"amount": amount, "owner_id": owner_id},
        )

    @staticmethod
    def expense_deleted(actor_id: str, expense_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            actor_id=actor_id,
            entity_type="expense",
            entity_id=expense_id,
            description="Expense deleted",
        )

    @staticmethod
    def expense_delete_declined(actor_id: str, expense_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETE_DECLINED,
            actor_id=actor_id,
            entity_type="expense",
            entity_id=expense_id,
            description="Deletion not confirmed",
        )

    @staticmethod
    def expenses_cleared(actor_id: str, count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSES_CLEARED,
            severity=AuditSeverity.WARNING,
            actor_id=actor_id,
            entity_type="expense",
            description=f"All expenses deleted ({count} records)",
            details={"count": count},
        )

    @staticmethod
    def expense_status_updated(actor_id: str, expense_id: str, status: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_STATUS_UPDATED,
            actor_id=actor_id,
            entity_type="expense",
            entity_id=expense_id,
            description=f"Expense status set to {status}",
            details={"status": status},
        )

    @staticmethod
    def storage_initialized(users: int, expenses: int, budgets: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_INITIALIZED,
            description="Storage initialized and cache loaded",
            details={"users": users, "expenses": expenses, "budgets": budgets},
        )

    @staticmethod
    def store_error(
        operation: str,
        error_message: str,
        actor_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_ERROR,
            severity=AuditSeverity.ERROR,
            actor_id=actor_id,
            description=f"Store operation failed: {operation}",
            error_message=error_message,
            details={"operation": operation},
        )
