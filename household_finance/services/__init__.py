"""Services package."""

from household_finance.services.checkout import CheckoutService, SimulatedCheckout
from household_finance.services.storage import (
    AuditStorageInterface,
    DuplicateIdentityError,
    FinanceStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStore,
    InMemoryAuditStorage,
    InMemoryFinanceStore,
    NotFoundError,
    StorageError,
    StoreUnavailableError,
)

__all__ = [
    # Checkout
    "CheckoutService",
    "SimulatedCheckout",
    # Storage services
    "AuditStorageInterface",
    "DuplicateIdentityError",
    "FinanceStoreInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsFinanceStore",
    "InMemoryAuditStorage",
    "InMemoryFinanceStore",
    "NotFoundError",
    "StorageError",
    "StoreUnavailableError",
]
