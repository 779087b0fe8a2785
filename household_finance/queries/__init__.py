"""Query package."""

from household_finance.queries.executor import BudgetUsage, ExpenseQueryExecutor, ExpenseSummary

__all__ = ["BudgetUsage", "ExpenseQueryExecutor", "ExpenseSummary"]
