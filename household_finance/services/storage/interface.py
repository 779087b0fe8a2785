"""
Abstract Storage Interface

DESIGN DECISION: The orchestrator only talks to this interface.
This allows us to:
1. Run fully in memory for demos and tests
2. Persist to Google Sheets without touching business logic
3. Move to a real database later

The store owns its own consistency rules (unique email/cpf, credential
checks). The orchestrator trusts it to either complete a mutation or
raise; it never re-validates what the store accepted.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from household_finance.models.audit import AuditEvent
from household_finance.models.expense import Budget, Expense
from household_finance.models.user import User


class FinanceStoreInterface(ABC):
    """
    Abstract interface for users, expenses and budgets.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def initialize_storage(self) -> None:
        """
        Bootstrap the backend.

        Idempotent: called once at process start, safe to call again.
        """
        pass

    @abstractmethod
    async def authenticate_user(self, identifier: str, password: str) -> Optional[User]:
        """
        Find the user matching a credential pair.

        Args:
            identifier: Email (case-insensitive) or CPF (punctuation ignored)
            password: Plain password as typed

        Returns:
            The matching user, None if nothing matches
        """
        pass

    @abstractmethod
    async def register_user(self, name: str, email: str, cpf: str, password: str) -> User:
        """
        Create a MEMBER user on the free plan.

        Raises:
            DuplicateIdentityError: If email or cpf is already taken
        """
        pass

    @abstractmethod
    async def update_user(self, user_id: str, updates: dict[str, Any]) -> User:
        """
        Apply a partial update to a user.

        ``updates`` may include ``password``; the store keeps it, the
        returned user never carries it.

        Raises:
            NotFoundError: If the user doesn't exist
            DuplicateIdentityError: If the new email or cpf is taken
        """
        pass

    @abstractmethod
    async def get_users(self) -> list[User]:
        pass

    @abstractmethod
    async def get_expenses(self) -> list[Expense]:
        pass

    @abstractmethod
    async def get_budgets(self) -> list[Budget]:
        pass

    @abstractmethod
    async def add_expense(self, expense: Expense) -> None:
        """Persist a new expense. The id is assigned by the caller."""
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: str) -> None:
        """Delete one expense. Deleting a missing id is not an error."""
        pass

    @abstractmethod
    async def delete_all_expenses(self) -> None:
        """Delete every expense of every user."""
        pass

    @abstractmethod
    async def update_expense(self, expense_id: str, updates: dict[str, Any]) -> Expense:
        """
        Apply a partial update to an expense.

        Raises:
            NotFoundError: If the expense doesn't exist
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateIdentityError(StorageError):
    """Email or CPF already belongs to another user."""
    pass


class StoreUnavailableError(StorageError):
    """Could not reach the storage backend."""
    pass
