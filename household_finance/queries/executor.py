"""
Read-model queries over the orchestrator cache.

DESIGN DECISION: Queries are DETERMINISTIC and run on the cached copy
of the store. They never call the store and never mutate anything; the
dashboard, reports and advanced history screens are built from these
results.

Cancelled expenses are listed but never counted in totals.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from household_finance.models.expense import (
    Budget,
    Expense,
    ExpenseCategory,
    ExpenseStatus,
    FilterState,
)
from household_finance.models.user import User


class BudgetUsage(BaseModel):
    """Spending against one category's budget."""

    category: ExpenseCategory
    limit: Decimal
    spent: Decimal
    remaining: Decimal
    percent_used: float = Field(ge=0)

    @property
    def over_budget(self) -> bool:
        return self.spent > self.limit


class ExpenseSummary(BaseModel):
    """Headline numbers for the dashboard."""

    total: Decimal = Decimal("0")
    paid: Decimal = Decimal("0")
    pending: Decimal = Decimal("0")
    count: int = 0
    by_category: dict[ExpenseCategory, Decimal] = Field(default_factory=dict)
    by_user: dict[str, Decimal] = Field(default_factory=dict)


def _counted(expenses: Iterable[Expense]) -> list[Expense]:
    return [e for e in expenses if e.status != ExpenseStatus.CANCELLED]


def _same_month(day: date, month: date) -> bool:
    return day.year == month.year and day.month == month.month


class ExpenseQueryExecutor:
    """
    Queries over a snapshot of expenses, users and budgets.

    GUARANTEES:
    - Only reads the snapshot it was given
    - Never invents or estimates values
    """

    def __init__(
        self,
        expenses: Iterable[Expense],
        users: Iterable[User] = (),
        budgets: Iterable[Budget] = (),
    ):
        self._expenses = list(expenses)
        self._users = {u.id: u for u in users}
        self._budgets = list(budgets)

    def user_name(self, user_id: str) -> str:
        user = self._users.get(user_id)
        return user.name if user else "Desconhecido"

    def filter(self, filters: FilterState) -> list[Expense]:
        """
        Apply a FilterState.

        Search is case-insensitive over description, location, notes and
        the owner's name. Results are newest first.
        """
        needle = filters.search.lower()
        results = []
        for expense in self._expenses:
            if filters.category and expense.category != filters.category:
                continue
            if filters.user_id and expense.user_id != filters.user_id:
                continue
            if filters.start_date and expense.date < filters.start_date:
                continue
            if filters.end_date and expense.date > filters.end_date:
                continue
            if needle:
                haystack = " ".join([
                    expense.description,
                    expense.location,
                    expense.notes or "",
                    self.user_name(expense.user_id),
                ]).lower()
                if needle not in haystack:
                    continue
            results.append(expense)

        results.sort(key=lambda e: (e.date, e.id), reverse=True)
        return results

    def summary(self, month: Optional[date] = None) -> ExpenseSummary:
        """Totals, optionally restricted to one calendar month."""
        expenses = _counted(self._expenses)
        if month is not None:
            expenses = [e for e in expenses if _same_month(e.date, month)]

        by_category: dict[ExpenseCategory, Decimal] = defaultdict(Decimal)
        by_user: dict[str, Decimal] = defaultdict(Decimal)
        paid = Decimal("0")
        pending = Decimal("0")
        for expense in expenses:
            by_category[expense.category] += expense.amount
            by_user[expense.user_id] += expense.amount
            if expense.status == ExpenseStatus.PAID:
                paid += expense.amount
            else:
                pending += expense.amount

        return ExpenseSummary(
            total=paid + pending,
            paid=paid,
            pending=pending,
            count=len(expenses),
            by_category=dict(by_category),
            by_user=dict(by_user),
        )

    def budget_usage(self, month: date) -> list[BudgetUsage]:
        """Spending per budgeted category for one month, in budget order."""
        spent = self.summary(month).by_category
        usage = []
        for budget in self._budgets:
            used = spent.get(budget.category, Decimal("0"))
            percent = float(used / budget.limit * 100) if budget.limit else 0.0
            usage.append(BudgetUsage(
                category=budget.category,
                limit=budget.limit,
                spent=used,
                remaining=budget.limit - used,
                percent_used=round(percent, 1),
            ))
        return usage

    def monthly_totals(self) -> dict[str, Decimal]:
        """Total per 'YYYY-MM', oldest month first."""
        totals: dict[str, Decimal] = defaultdict(Decimal)
        for expense in _counted(self._expenses):
            totals[expense.date.strftime("%Y-%m")] += expense.amount
        return dict(sorted(totals.items()))
