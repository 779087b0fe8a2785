"""
Data Models Package

This package contains all Pydantic models used in the Household Finance system.
All data flowing through the orchestrator must conform to these schemas.
"""

from household_finance.models.user import (
    ProfileUpdate,
    User,
    UserPlan,
    UserRole,
    normalize_cpf,
    validate_cpf,
)
from household_finance.models.expense import (
    Budget,
    Expense,
    ExpenseCategory,
    ExpenseStatus,
    FilterState,
    NewExpense,
)
from household_finance.models.view import Screen, Tab, ViewState
from household_finance.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # User models
    "ProfileUpdate",
    "User",
    "UserPlan",
    "UserRole",
    "normalize_cpf",
    "validate_cpf",
    # Expense models
    "Budget",
    "Expense",
    "ExpenseCategory",
    "ExpenseStatus",
    "FilterState",
    "NewExpense",
    # Navigation
    "Screen",
    "Tab",
    "ViewState",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
