"""
Storage Services Package

Provides the abstract store interface and its implementations:
an in-memory store (default) and Google Sheets.
"""

from household_finance.services.storage.interface import (
    AuditStorageInterface,
    DuplicateIdentityError,
    FinanceStoreInterface,
    NotFoundError,
    StorageError,
    StoreUnavailableError,
)
from household_finance.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryFinanceStore,
)
from household_finance.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "FinanceStoreInterface",
    # Exceptions
    "DuplicateIdentityError",
    "NotFoundError",
    "StorageError",
    "StoreUnavailableError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryFinanceStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsFinanceStore",
]
