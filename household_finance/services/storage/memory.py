"""
In-Memory Storage Implementation

The default backend: a process-local store seeded with a demo household.
Tests use it directly; the Streamlit app uses it unless Google Sheets is
configured.

Passwords are kept as SHA-256 digests next to, never inside, the user
records.
"""

import hashlib
import hmac
from decimal import Decimal
from typing import Any, Optional
from uuid import uuid4

from household_finance.models.audit import AuditEvent
from household_finance.models.expense import Budget, Expense, ExpenseCategory
from household_finance.models.user import User, UserPlan, UserRole, normalize_cpf
from household_finance.services.storage.interface import (
    AuditStorageInterface,
    DuplicateIdentityError,
    FinanceStoreInterface,
    NotFoundError,
)


AVATAR_URL = "https://ui-avatars.com/api/?background=random&name={name}"

# (user, password) pairs loaded by initialize_storage() when seeding
DEMO_USERS = [
    (
        User(
            id="sys-1",
            name="Dono do Sistema",
            email="sistema@financas.com",
            cpf="000.000.000-00",
            role=UserRole.SYSTEM_ADMIN,
            plan=UserPlan.PREMIUM,
        ),
        "sistema123",
    ),
    (
        User(
            id="u1",
            name="Carlos Silva",
            email="carlos@familia.com",
            cpf="111.111.111-11",
            role=UserRole.ADMIN,
        ),
        "admin123",
    ),
    (
        User(
            id="u2",
            name="Ana Silva",
            email="ana@familia.com",
            cpf="222.222.222-22",
            role=UserRole.MEMBER,
        ),
        "membro123",
    ),
]

DEFAULT_BUDGET_LIMITS = {
    ExpenseCategory.MERCADO: Decimal("1500.00"),
    ExpenseCategory.LAZER: Decimal("500.00"),
    ExpenseCategory.CONTAS_FIXAS: Decimal("2000.00"),
    ExpenseCategory.TRANSPORTE: Decimal("600.00"),
    ExpenseCategory.SAUDE: Decimal("800.00"),
    ExpenseCategory.EDUCACAO: Decimal("1000.00"),
    ExpenseCategory.INVESTIMENTOS: Decimal("1000.00"),
    ExpenseCategory.OUTROS: Decimal("300.00"),
}


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def avatar_for(name: str) -> str:
    return AVATAR_URL.format(name=name.replace(" ", "+"))


class InMemoryFinanceStore(FinanceStoreInterface):
    """
    Dictionary-backed store.

    Insertion order is preserved, so ``get_expenses`` returns expenses in
    the order they were added.
    """

    def __init__(
        self,
        seed: bool = True,
        users: Optional[list[tuple[User, str]]] = None,
        budgets: Optional[list[Budget]] = None,
        expenses: Optional[list[Expense]] = None,
    ):
        """
        Args:
            seed: Load the demo household on initialize_storage()
            users: (user, password) pairs loaded instead of the demo users
            budgets: Budgets loaded instead of the default limits
            expenses: Expenses loaded on initialize_storage()
        """
        self._seed = seed
        self._initial_users = users
        self._initial_budgets = budgets
        self._initial_expenses = expenses or []
        self._initialized = False

        self._users: dict[str, User] = {}
        self._credentials: dict[str, str] = {}
        self._expenses: dict[str, Expense] = {}
        self._budgets: list[Budget] = []

    async def initialize_storage(self) -> None:
        if self._initialized:
            return

        users = self._initial_users
        if users is None:
            users = DEMO_USERS if self._seed else []
        for user, password in users:
            self._users[user.id] = user
            self._credentials[user.id] = hash_password(password)

        if self._initial_budgets is not None:
            self._budgets = list(self._initial_budgets)
        elif self._seed:
            self._budgets = [
                Budget(category=category, limit=limit)
                for category, limit in DEFAULT_BUDGET_LIMITS.items()
            ]

        for expense in self._initial_expenses:
            self._expenses[expense.id] = expense

        self._initialized = True

    def _find_by_identifier(self, identifier: str) -> Optional[User]:
        identifier = identifier.strip()
        if "@" in identifier:
            email = identifier.lower()
            return next((u for u in self._users.values() if u.email == email), None)

        cpf = normalize_cpf(identifier)
        if not cpf:
            return None
        return next((u for u in self._users.values() if u.cpf == cpf), None)

    def _check_unique(self, email: Optional[str], cpf: Optional[str], exclude_id: Optional[str] = None) -> None:
        for user in self._users.values():
            if user.id == exclude_id:
                continue
            if email and user.email == email.lower():
                raise DuplicateIdentityError(f"Email already registered: {email}")
            if cpf and user.cpf == normalize_cpf(cpf):
                raise DuplicateIdentityError("CPF already registered")

    async def authenticate_user(self, identifier: str, password: str) -> Optional[User]:
        user = self._find_by_identifier(identifier)
        if user is None:
            return None

        expected = self._credentials.get(user.id, "")
        if not hmac.compare_digest(expected, hash_password(password)):
            return None
        return user

    async def register_user(self, name: str, email: str, cpf: str, password: str) -> User:
        self._check_unique(email, cpf)

        user = User(
            id=uuid4().hex,
            name=name,
            email=email,
            cpf=cpf,
            avatar=avatar_for(name),
            role=UserRole.MEMBER,
            plan=UserPlan.FREE,
        )
        self._users[user.id] = user
        self._credentials[user.id] = hash_password(password)
        return user

    async def update_user(self, user_id: str, updates: dict[str, Any]) -> User:
        current = self._users.get(user_id)
        if current is None:
            raise NotFoundError(f"User not found: {user_id}")

        updates = dict(updates)
        updates.pop("id", None)
        password = updates.pop("password", None)

        self._check_unique(updates.get("email"), updates.get("cpf"), exclude_id=user_id)

        updated = User.model_validate({**current.model_dump(), **updates})
        self._users[user_id] = updated
        if password:
            self._credentials[user_id] = hash_password(password)
        return updated

    async def get_users(self) -> list[User]:
        return list(self._users.values())

    async def get_expenses(self) -> list[Expense]:
        return list(self._expenses.values())

    async def get_budgets(self) -> list[Budget]:
        return list(self._budgets)

    async def add_expense(self, expense: Expense) -> None:
        self._expenses[expense.id] = expense

    async def delete_expense(self, expense_id: str) -> None:
        self._expenses.pop(expense_id, None)

    async def delete_all_expenses(self) -> None:
        self._expenses.clear()

    async def update_expense(self, expense_id: str, updates: dict[str, Any]) -> Expense:
        current = self._expenses.get(expense_id)
        if current is None:
            raise NotFoundError(f"Expense not found: {expense_id}")

        updates = dict(updates)
        updates.pop("id", None)
        updated = Expense.model_validate({**current.model_dump(), **updates})
        self._expenses[expense_id] = updated
        return updated


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
