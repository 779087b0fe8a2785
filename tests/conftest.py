"""
Shared fixtures.

Every fixture builds on the in-memory store and zero round-trip delays,
so no test waits on a simulated network or touches Google.
"""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from household_finance.audit import AuditLogger
from household_finance.config import AppSettings
from household_finance.models.expense import Expense, ExpenseCategory, ExpenseStatus, NewExpense
from household_finance.models.user import User, UserRole
from household_finance.orchestrator import HouseholdOrchestrator
from household_finance.services.storage import InMemoryAuditStorage, InMemoryFinanceStore


@pytest.fixture
def app_settings():
    """Settings with every simulated delay turned off."""
    return AppSettings(
        login_delay_ms=0,
        register_delay_ms=0,
        profile_update_delay_ms=0,
        notification_ttl_ms=3000,
    )


@pytest.fixture
def sample_expenses():
    return [
        Expense(
            id="1704067200000",
            user_id="u1",
            amount=Decimal("250.00"),
            description="Compra do mês",
            location="Supermercado Central",
            category=ExpenseCategory.MERCADO,
            date=date(2024, 1, 5),
            status=ExpenseStatus.PAID,
        ),
        Expense(
            id="1704067200001",
            user_id="u2",
            amount=Decimal("80.00"),
            description="Cinema",
            location="Shopping",
            category=ExpenseCategory.LAZER,
            date=date(2024, 1, 12),
            status=ExpenseStatus.PENDING,
        ),
    ]


@pytest.fixture
def store(sample_expenses):
    """Demo household plus two expenses."""
    return InMemoryFinanceStore(seed=True, expenses=sample_expenses)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest_asyncio.fixture
async def orchestrator(store, app_settings, audit_storage):
    """Initialized orchestrator that answers yes to every confirmation."""
    orch = HouseholdOrchestrator(
        store=store,
        settings=app_settings,
        audit_logger=AuditLogger(audit_storage),
        confirm=lambda prompt: True,
    )
    await orch.initialize()
    return orch


@pytest_asyncio.fixture
async def signed_in(orchestrator):
    """Orchestrator with the household admin signed in."""
    assert await orchestrator.login("carlos@familia.com", "admin123")
    return orchestrator


@pytest.fixture
def member_user():
    return User(
        id="m-1",
        name="Ana",
        email="ana@x.com",
        cpf="123.456.789-00",
        role=UserRole.MEMBER,
    )


def new_expense(**overrides) -> NewExpense:
    fields = {
        "user_id": "u1",
        "amount": Decimal("50.00"),
        "description": "Feira",
        "category": ExpenseCategory.MERCADO,
        "date": date(2024, 1, 1),
        "status": ExpenseStatus.PENDING,
    }
    fields.update(overrides)
    return NewExpense(**fields)


@pytest.fixture
def make_expense():
    """Factory for NewExpense with sensible defaults."""
    return new_expense
