"""
Expense and budget models.

Amounts are Decimals in BRL. Categories are a closed set so that budgets,
reports and filters all agree on the same names.
"""

from datetime import date as Date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# ENUMS
# =============================================================================

class ExpenseCategory(str, Enum):
    """Expense categories, stored by their display value."""
    MERCADO = "Mercado"
    LAZER = "Lazer"
    CONTAS_FIXAS = "Contas Fixas"
    TRANSPORTE = "Transporte"
    SAUDE = "Saúde"
    EDUCACAO = "Educação"
    INVESTIMENTOS = "Investimentos"
    OUTROS = "Outros"


class ExpenseStatus(str, Enum):
    """Payment status of an expense."""
    PAID = "paid"
    PENDING = "pending"
    CANCELLED = "cancelled"


# =============================================================================
# EXPENSES
# =============================================================================

class NewExpense(BaseModel):
    """
    An expense as submitted by the form, before it has an id.

    The gateway assigns the id when the expense is persisted.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    user_id: str = Field(
        ...,
        min_length=1,
        description="Owner of the expense; must reference an existing user"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Amount in BRL"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    location: str = Field(
        default="",
        max_length=200,
    )
    category: ExpenseCategory
    date: Date
    status: ExpenseStatus = ExpenseStatus.PENDING
    notes: Optional[str] = Field(
        default=None,
        max_length=1000,
    )
    attachment_name: Optional[str] = None
    attachment_data: Optional[str] = Field(
        default=None,
        repr=False,
        description="Base64 payload of the attached receipt"
    )

    @model_validator(mode="after")
    def validate_attachment(self):
        """Attachment name and payload come together or not at all."""
        if bool(self.attachment_name) != bool(self.attachment_data):
            raise ValueError("Attachment needs both a name and data")
        return self


class Expense(NewExpense):
    """A persisted expense."""

    id: str = Field(
        ...,
        min_length=1,
        description="Unique expense id"
    )

    @classmethod
    def from_new(cls, data: NewExpense, expense_id: str) -> "Expense":
        return cls(id=expense_id, **data.model_dump())


# =============================================================================
# BUDGETS AND FILTERS
# =============================================================================

class Budget(BaseModel):
    """Monthly spending limit for one category."""
    model_config = ConfigDict(frozen=True)

    category: ExpenseCategory
    limit: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
    )


class FilterState(BaseModel):
    """
    Query parameters of the expense list screens.

    Owned by the UI; the query helpers only read it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    search: str = ""
    category: Optional[ExpenseCategory] = None
    user_id: Optional[str] = None
    start_date: Optional[Date] = None
    end_date: Optional[Date] = None

    @model_validator(mode="after")
    def validate_range(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self
