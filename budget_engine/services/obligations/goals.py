"""Savings goals source."""

from decimal import Decimal
from typing import Iterable, Optional

from budget_engine.models.budget import ZERO, as_amount
from budget_engine.models.obligations import FinancialGoal, GoalSnapshot
from budget_engine.services.obligations.interface import GoalSource


class GoalTracker(GoalSource):
    """Holds savings goals and publishes their committed monthly contribution."""

    def __init__(self, goals: Optional[Iterable[FinancialGoal]] = None):
        self._goals: list[FinancialGoal] = list(goals or [])

    @property
    def goals(self) -> tuple[FinancialGoal, ...]:
        return tuple(self._goals)

    def add(self, goal: FinancialGoal) -> None:
        self._goals.append(goal)

    @property
    def total_monthly_contribution(self) -> Decimal:
        return sum((as_amount(g.monthly_contribution) for g in self._goals), ZERO)

    async def get_snapshot(self) -> GoalSnapshot:
        return GoalSnapshot(total_monthly_contribution=self.total_monthly_contribution)
