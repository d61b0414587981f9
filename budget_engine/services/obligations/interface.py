"""
Abstract Interfaces for Sibling Subsystems

The budget engine reads three signals it does not own: recurring
obligations, debts and goals. Each source publishes an immutable
snapshot; the engine never writes back.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Iterable

from budget_engine.models.month import Month
from budget_engine.models.obligations import (
    DebtSnapshot,
    GoalSnapshot,
    RecurringSnapshot,
    RecurringTransaction,
)


class MonthlyProjection(ABC):
    """Month-scoped income and expense calculation over recurring transactions."""

    @abstractmethod
    def calculate_month_income(
        self,
        month: Month,
        transactions: Iterable[RecurringTransaction],
    ) -> Decimal:
        """
        Income that actually lands in the given month.

        May raise; callers are expected to fall back to the general figure.
        """
        pass

    @abstractmethod
    def calculate_month_expenses(
        self,
        month: Month,
        transactions: Iterable[RecurringTransaction],
    ) -> Decimal:
        """
        Non-debt recurring outflows that land in the given month.

        The result may be signed; callers take its magnitude.
        """
        pass


class RecurringObligationsSource(ABC):
    """Publishes the recurring-obligations snapshot."""

    @abstractmethod
    async def get_snapshot(self) -> RecurringSnapshot:
        pass


class DebtSource(ABC):
    """Publishes the debt tracker snapshot."""

    @abstractmethod
    async def get_snapshot(self) -> DebtSnapshot:
        pass


class GoalSource(ABC):
    """Publishes the goals snapshot."""

    @abstractmethod
    async def get_snapshot(self) -> GoalSnapshot:
        pass
