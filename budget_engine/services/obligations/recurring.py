"""
Recurring Obligations

Projects a list of repeating incomes and outflows onto a month.

Two kinds of figure come out of here:
1. General monthly estimates, using a fixed multiplier per frequency
   (a weekly bill counts as 4.33 payments a month, whatever the month)
2. Month-specific figures, counting the occurrences that actually fall
   inside a given calendar month

Debt payments are part of monthly_expenses but are also reported on
their own as monthly_debt so the engine can avoid counting them twice.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from budget_engine.models.budget import ZERO
from budget_engine.models.month import Month
from budget_engine.models.obligations import (
    Frequency,
    RecurringSnapshot,
    RecurringTransaction,
)
from budget_engine.services.obligations.interface import (
    MonthlyProjection,
    RecurringObligationsSource,
)


CENT = Decimal("0.01")

MONTHLY_MULTIPLIERS: dict[Frequency, Decimal] = {
    Frequency.DAILY: Decimal("30"),
    Frequency.WEEKLY: Decimal("4.33"),
    Frequency.BI_WEEKLY: Decimal("2.17"),
    Frequency.SEMI_MONTHLY: Decimal("2"),
    Frequency.MONTHLY: Decimal("1"),
    Frequency.QUARTERLY: Decimal("1") / Decimal("3"),
    Frequency.SEMI_ANNUALLY: Decimal("1") / Decimal("6"),
    Frequency.ANNUALLY: Decimal("1") / Decimal("12"),
}

# Months between occurrences for frequencies slower than monthly
_MONTH_INTERVALS = {
    Frequency.QUARTERLY: 3,
    Frequency.SEMI_ANNUALLY: 6,
    Frequency.ANNUALLY: 12,
}


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def monthly_equivalent(transaction: RecurringTransaction) -> Decimal:
    """Average monthly amount of a transaction, keeping its sign."""
    return transaction.amount * MONTHLY_MULTIPLIERS[transaction.frequency]


def count_occurrences(transaction: RecurringTransaction, month: Month) -> int:
    """How many times a transaction falls inside the month."""
    if not transaction.is_active:
        return 0

    anchor = transaction.next_date
    frequency = transaction.frequency

    if frequency == Frequency.DAILY:
        return month.days_in_month

    if frequency == Frequency.WEEKLY:
        return sum(1 for day in month.days() if day.weekday() == anchor.weekday())

    if frequency == Frequency.BI_WEEKLY:
        return sum(1 for day in month.days() if (day - anchor).days % 14 == 0)

    if frequency == Frequency.SEMI_MONTHLY:
        return 2

    if frequency == Frequency.MONTHLY:
        return 1 if anchor.day <= month.days_in_month else 0

    interval = _MONTH_INTERVALS[frequency]
    return 1 if (month.month - anchor.month) % interval == 0 else 0


class RecurringObligations(RecurringObligationsSource, MonthlyProjection):
    """In-process recurring obligations source."""

    def __init__(self, transactions: Optional[Iterable[RecurringTransaction]] = None):
        self._transactions: list[RecurringTransaction] = list(transactions or [])

    @property
    def transactions(self) -> tuple[RecurringTransaction, ...]:
        return tuple(self._transactions)

    def add(self, transaction: RecurringTransaction) -> None:
        self._transactions.append(transaction)

    def remove(self, name: str) -> bool:
        """Drop every transaction with the given name."""
        before = len(self._transactions)
        self._transactions = [t for t in self._transactions if t.name != name]
        return len(self._transactions) != before

    # ------------------------------------------------------------------
    # General figures
    # ------------------------------------------------------------------

    @property
    def monthly_income(self) -> Decimal:
        return _round(sum(
            (monthly_equivalent(t) for t in self._transactions if t.is_active and t.is_income),
            ZERO,
        ))

    @property
    def monthly_expenses(self) -> Decimal:
        return _round(sum(
            (abs(monthly_equivalent(t)) for t in self._transactions if t.is_active and t.is_outflow),
            ZERO,
        ))

    @property
    def monthly_debt(self) -> Decimal:
        return _round(sum(
            (
                abs(monthly_equivalent(t))
                for t in self._transactions
                if t.is_active and t.is_outflow and t.is_debt_payment
            ),
            ZERO,
        ))

    async def get_snapshot(self) -> RecurringSnapshot:
        return RecurringSnapshot(
            monthly_income=self.monthly_income,
            monthly_expenses=self.monthly_expenses,
            monthly_debt=self.monthly_debt,
            transactions=self.transactions,
        )

    # ------------------------------------------------------------------
    # Month-specific figures
    # ------------------------------------------------------------------

    def calculate_month_income(
        self,
        month: Month,
        transactions: Iterable[RecurringTransaction],
    ) -> Decimal:
        return _round(sum(
            (t.amount * count_occurrences(t, month) for t in transactions if t.is_income),
            ZERO,
        ))

    def calculate_month_expenses(
        self,
        month: Month,
        transactions: Iterable[RecurringTransaction],
    ) -> Decimal:
        return _round(sum(
            (
                abs(t.amount) * count_occurrences(t, month)
                for t in transactions
                if t.is_outflow and not t.is_debt_payment
            ),
            ZERO,
        ))

    def calculate_month_debt(
        self,
        month: Month,
        transactions: Iterable[RecurringTransaction],
    ) -> Decimal:
        return _round(sum(
            (
                abs(t.amount) * count_occurrences(t, month)
                for t in transactions
                if t.is_outflow and t.is_debt_payment
            ),
            ZERO,
        ))

    def upcoming(self, month: Month) -> list[tuple[RecurringTransaction, int]]:
        """Active transactions that occur in the month, with their counts."""
        result = []
        for transaction in self._transactions:
            occurrences = count_occurrences(transaction, month)
            if occurrences:
                result.append((transaction, occurrences))
        return result
