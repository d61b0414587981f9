"""
Obligation Sources Package

Read-only signals from the subsystems that sit next to the budget:
recurring transactions, debts and savings goals.
"""

from budget_engine.services.obligations.interface import (
    DebtSource,
    GoalSource,
    MonthlyProjection,
    RecurringObligationsSource,
)
from budget_engine.services.obligations.recurring import (
    MONTHLY_MULTIPLIERS,
    RecurringObligations,
    count_occurrences,
    monthly_equivalent,
)
from budget_engine.services.obligations.debts import DebtTracker
from budget_engine.services.obligations.goals import GoalTracker

__all__ = [
    # Interfaces
    "DebtSource",
    "GoalSource",
    "MonthlyProjection",
    "RecurringObligationsSource",
    # In-process sources
    "DebtTracker",
    "GoalTracker",
    "RecurringObligations",
    # Projection helpers
    "MONTHLY_MULTIPLIERS",
    "count_occurrences",
    "monthly_equivalent",
]
