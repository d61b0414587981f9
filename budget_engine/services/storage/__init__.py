"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Ships an in-memory backend and a Google Sheets backend; both are swappable
behind the same interface.
"""

from budget_engine.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
)
from budget_engine.services.storage.summary import build_monthly_summary
from budget_engine.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
)
from budget_engine.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsClient,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BudgetStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Helpers
    "build_monthly_summary",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryBudgetStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBudgetStorage",
    "GoogleSheetsClient",
]
