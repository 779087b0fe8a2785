"""
Household Finance - Source Package

A family expense tracker: members sign in, record expenses, follow
budgets and reports, and upgrade to a premium plan.

DESIGN PRINCIPLES:
1. One orchestrator owns session and navigation state
2. Every mutation goes through the store, then refreshes the cache
3. Destructive actions require explicit confirmation
4. Errors are surfaced, never silently dropped
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Finance Team"
