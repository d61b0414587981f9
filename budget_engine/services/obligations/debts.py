"""Debt tracker source."""

from decimal import Decimal
from typing import Iterable, Optional

from budget_engine.models.budget import ZERO, as_amount
from budget_engine.models.obligations import Debt, DebtSnapshot
from budget_engine.services.obligations.interface import DebtSource


class DebtTracker(DebtSource):
    """Holds tracked debts and publishes their combined minimum payment."""

    def __init__(self, debts: Optional[Iterable[Debt]] = None):
        self._debts: list[Debt] = list(debts or [])

    @property
    def debts(self) -> tuple[Debt, ...]:
        return tuple(self._debts)

    def add(self, debt: Debt) -> None:
        self._debts.append(debt)

    @property
    def total_min_payment(self) -> Decimal:
        # Minimum payments are stored as entered; some users type them negative
        return sum((abs(as_amount(d.minimum_payment)) for d in self._debts), ZERO)

    async def get_snapshot(self) -> DebtSnapshot:
        return DebtSnapshot(total_min_payment=self.total_min_payment)
