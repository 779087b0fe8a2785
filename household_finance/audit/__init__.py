"""Audit logging package."""

from household_finance.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
