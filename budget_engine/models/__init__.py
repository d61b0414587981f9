"""
Data Models Package

This package contains all Pydantic models used by the budget engine.
All data flowing between storage, the engine and the UI conforms to these schemas.
"""

from budget_engine.models.month import (
    InvalidPeriodError,
    Month,
    normalize_month,
)
from budget_engine.models.budget import (
    DEFAULT_CATEGORIES,
    FALLBACK_CATEGORIES,
    BudgetCategory,
    BudgetCategoryCreate,
    BudgetCategoryUpdate,
    BudgetEntry,
    BudgetState,
    BudgetSummary,
    BudgetTransaction,
    CategoryBudget,
    CategorySeed,
    IconKey,
    as_amount,
    fallback_summary,
)
from budget_engine.models.obligations import (
    Debt,
    DebtSnapshot,
    FinancialGoal,
    Frequency,
    GoalSnapshot,
    RecurringKind,
    RecurringSnapshot,
    RecurringStatus,
    RecurringTransaction,
)
from budget_engine.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Month
    "InvalidPeriodError",
    "Month",
    "normalize_month",
    # Budget models
    "DEFAULT_CATEGORIES",
    "FALLBACK_CATEGORIES",
    "BudgetCategory",
    "BudgetCategoryCreate",
    "BudgetCategoryUpdate",
    "BudgetEntry",
    "BudgetState",
    "BudgetSummary",
    "BudgetTransaction",
    "CategoryBudget",
    "CategorySeed",
    "IconKey",
    "as_amount",
    "fallback_summary",
    # External signals
    "Debt",
    "DebtSnapshot",
    "FinancialGoal",
    "Frequency",
    "GoalSnapshot",
    "RecurringKind",
    "RecurringSnapshot",
    "RecurringStatus",
    "RecurringTransaction",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
