"""
Audit Logger

DESIGN DECISION: Every session change and every household-data mutation
is logged. This provides:
1. Traceability of who changed what
2. Debugging capability when the store rejects an operation
3. A history the family administrator can review

The audit logger:
- Is async so it can persist to a remote backend
- Gracefully handles storage failures (never breaks the main flow)
- Never receives credentials
"""

from typing import Optional

import structlog

from household_finance.models.audit import AuditEvent, AuditEventBuilder
from household_finance.services.storage import AuditStorageInterface


# Configure structlog for local logging
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
        structlog.processors.JSONRenderer()
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
        self._logger = structlog.get_logger("household_finance.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
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

    async def log_login_succeeded(self, user_id: str, via_admin: bool) -> None:
        await self.log(AuditEventBuilder.login_succeeded(user_id, via_admin))

    async def log_login_rejected(self, reason: str, via_admin: bool) -> None:
        await self.log(AuditEventBuilder.login_rejected(reason, via_admin))

    async def log_login_superseded(self, ticket: int) -> None:
        await self.log(AuditEventBuilder.login_superseded(ticket))

    async def log_user_registered(
        self,
        user_id: str,
        actor_id: Optional[str],
        auto_login: bool,
    ) -> None:
        await self.log(AuditEventBuilder.user_registered(user_id, actor_id, auto_login))

    async def log_registration_rejected(self, reason: str, actor_id: Optional[str]) -> None:
        await self.log(AuditEventBuilder.registration_rejected(reason, actor_id))

    async def log_profile_updated(self, user_id: str, fields: list[str]) -> None:
        # Never record the password itself, only that it changed
        await self.log(AuditEventBuilder.profile_updated(user_id, sorted(fields)))

    async def log_logged_out(self, user_id: Optional[str]) -> None:
        await self.log(AuditEventBuilder.logged_out(user_id))

    async def log_checkout_started(self, user_id: str) -> None:
        await self.log(AuditEventBuilder.checkout_started(user_id))

    async def log_subscription_activated(self, user_id: str) -> None:
        await self.log(AuditEventBuilder.subscription_activated(user_id))

    async def log_checkout_cancelled(self, user_id: Optional[str]) -> None:
        await self.log(AuditEventBuilder.checkout_cancelled(user_id))

    async def log_expense_added(
        self,
        actor_id: str,
        expense_id: str,
        amount: str,
        owner_id: str,
    ) -> None:
        await self.log(AuditEventBuilder.expense_added(actor_id, expense_id, amount, owner_id))

    async def log_expense_deleted(self, actor_id: str, expense_id: str) -> None:
        await self.log(AuditEventBuilder.expense_deleted(actor_id, expense_id))

    async def log_expense_delete_declined(self, actor_id: str, expense_id: str) -> None:
        await self.log(AuditEventBuilder.expense_delete_declined(actor_id, expense_id))

    async def log_expenses_cleared(self, actor_id: str, count: int) -> None:
        await self.log(AuditEventBuilder.expenses_cleared(actor_id, count))

    async def log_expense_status_updated(
        self,
        actor_id: str,
        expense_id: str,
        status: str,
    ) -> None:
        await self.log(AuditEventBuilder.expense_status_updated(actor_id, expense_id, status))

    async def log_storage_initialized(self, users: int, expenses: int, budgets: int) -> None:
        await self.log(AuditEventBuilder.storage_initialized(users, expenses, budgets))

    async def log_store_error(
        self,
        operation: str,
        error_message: str,
        actor_id: Optional[str] = None,
    ) -> None:
        """Log a store failure. The caller re-raises."""
        await self.log(AuditEventBuilder.store_error(
            operation=operation,
            error_message=error_message,
            actor_id=actor_id,
        ))

