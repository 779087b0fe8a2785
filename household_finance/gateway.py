"""
Domain Mutation Gateway

Every expense create/update/delete goes through here:
store call -> cache refresh -> navigation -> notification.

All operations need a signed-in user. None of them checks who owns the
expense: household data is shared, so any member may change any record.
"""

import inspect
import time
from typing import Awaitable, Callable, Optional, Union

from household_finance.audit import AuditLogger
from household_finance.exceptions import UnknownUserError
from household_finance.models.expense import Expense, ExpenseStatus, NewExpense
from household_finance.services.storage import FinanceStoreInterface, StorageError
from household_finance.session import SessionManager
from household_finance.state import (
    StateContainer,
    expense_added,
    expenses_cleared,
    expenses_refreshed,
)


DELETE_CONFIRMATION = "Tem certeza que deseja excluir este lançamento?"

ConfirmCallback = Callable[[str], Union[bool, Awaitable[bool]]]


def decline_all(prompt: str) -> bool:
    """Default confirmation hook: nothing destructive happens unasked."""
    return False


class ExpenseIdGenerator:
    """
    Millisecond-clock ids, strictly increasing within the process.

    Two calls in the same millisecond get consecutive values instead of
    colliding.
    """

    def __init__(self, clock: Callable[[], int] = time.time_ns):
        self._clock = clock
        self._last = 0

    def __call__(self) -> str:
        now_ms = self._clock() // 1_000_000
        self._last = max(now_ms, self._last + 1)
        return str(self._last)


class ExpenseGateway:
    """Expense mutations against the store."""

    def __init__(
        self,
        store: FinanceStoreInterface,
        container: StateContainer,
        session: SessionManager,
        audit_logger: AuditLogger,
        confirm: Optional[ConfirmCallback] = None,
        id_generator: Optional[Callable[[], str]] = None,
    ):
        self._store = store
        self._container = container
        self._session = session
        self._audit = audit_logger
        self._confirm = confirm or decline_all
        self._next_id = id_generator or ExpenseIdGenerator()

    @property
    def expenses(self) -> tuple[Expense, ...]:
        return self._container.state.expenses

    async def _ask(self, prompt: str, confirm: Optional[ConfirmCallback]) -> bool:
        answer = (confirm or self._confirm)(prompt)
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)

    async def add_expense(self, data: NewExpense) -> Expense:
        """
        Persist a new expense and switch to the expenses tab.

        Raises:
            NoActiveSessionError: If nobody is signed in
            UnknownUserError: If ``data.user_id`` is not a known user
            StorageError: If the store fails
        """
        actor = self._session.require_user()
        if not any(u.id == data.user_id for u in self._container.state.users):
            raise UnknownUserError(f"Unknown user: {data.user_id}")

        expense = Expense.from_new(data, self._next_id())
        try:
            await self._store.add_expense(expense)
            expenses = await self._store.get_expenses()
        except StorageError as e:
            await self._audit.log_store_error("add_expense", str(e), actor.id)
            raise

        self._container.apply(expense_added(self._container.state, expenses))
        await self._audit.log_expense_added(actor.id, expense.id, str(expense.amount), expense.user_id)
        return expense

    async def delete_expense(self, expense_id: str, confirm: Optional[ConfirmCallback] = None) -> bool:
        """
        Delete one expense after the user confirms.

        Returns:
            False if the user declined (nothing changed), True otherwise
        """
        actor = self._session.require_user()
        if not await self._ask(DELETE_CONFIRMATION, confirm):
            await self._audit.log_expense_delete_declined(actor.id, expense_id)
            return False

        try:
            await self._store.delete_expense(expense_id)
            expenses = await self._store.get_expenses()
        except StorageError as e:
            await self._audit.log_store_error("delete_expense", str(e), actor.id)
            raise

        self._container.apply(expenses_refreshed(self._container.state, expenses))
        await self._audit.log_expense_deleted(actor.id, expense_id)
        return True

    async def delete_all_expenses(self) -> None:
        """
        Delete every expense of every user.

        Not gated by the confirmation hook: the screen offering it asks
        first. The cache is emptied rather than re-read.
        """
        actor = self._session.require_user()

        count = len(self._container.state.expenses)
        try:
            await self._store.delete_all_expenses()
        except StorageError as e:
            await self._audit.log_store_error("delete_all_expenses", str(e), actor.id)
            raise

        self._container.apply(expenses_cleared(self._container.state))
        await self._audit.log_expenses_cleared(actor.id, count)

    async def update_status(self, expense_id: str, status: Union[ExpenseStatus, str]) -> None:
        """
        Change only the status of an expense.

        Raises:
            NotFoundError: If the expense doesn't exist
        """
        actor = self._session.require_user()
        status = ExpenseStatus(status)
        try:
            await self._store.update_expense(expense_id, {"status": status})
            expenses = await self._store.get_expenses()
        except StorageError as e:
            await self._audit.log_store_error("update_expense", str(e), actor.id)
            raise

        self._container.apply(expenses_refreshed(self._container.state, expenses))
        await self._audit.log_expense_status_updated(actor.id, expense_id, status.value)
