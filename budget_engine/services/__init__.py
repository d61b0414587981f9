"""Services package."""

from budget_engine.services.storage import (
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    NotFoundError,
    StorageError,
)
from budget_engine.services.obligations import (
    DebtSource,
    DebtTracker,
    GoalSource,
    GoalTracker,
    MonthlyProjection,
    RecurringObligations,
    RecurringObligationsSource,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBudgetStorage",
    "GoogleSheetsClient",
    "InMemoryAuditStorage",
    "InMemoryBudgetStorage",
    "NotFoundError",
    "StorageError",
    # Obligation sources
    "DebtSource",
    "DebtTracker",
    "GoalSource",
    "GoalTracker",
    "MonthlyProjection",
    "RecurringObligations",
    "RecurringObligationsSource",
]
