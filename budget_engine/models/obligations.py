"""
Models for the Signals Fed in From Sibling Subsystems

The budget engine does not own recurring transactions, debts or goals.
It only reads figures from them. Those figures arrive as immutable
snapshots so that the derivation step is a pure function of its inputs.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from budget_engine.models.budget import as_amount


class Frequency(str, Enum):
    """How often a recurring transaction repeats."""
    DAILY = "daily"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    SEMI_MONTHLY = "semi-monthly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMI_ANNUALLY = "semi-annually"
    ANNUALLY = "annually"


class RecurringStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"


class RecurringKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    DEBT_PAYMENT = "debt_payment"


class RecurringTransaction(BaseModel):
    """
    A repeating income or outflow.

    Sign carries direction: income is positive, outflows are negative.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal
    frequency: Frequency = Frequency.MONTHLY
    next_date: date
    status: RecurringStatus = RecurringStatus.ACTIVE
    kind: RecurringKind = RecurringKind.EXPENSE
    debt_id: Optional[int] = None
    category: Optional[str] = None

    @field_validator("frequency", mode="before")
    @classmethod
    def normalize_frequency(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower().replace("_", "-")
        return v

    @property
    def is_active(self) -> bool:
        return self.status == RecurringStatus.ACTIVE

    @property
    def is_income(self) -> bool:
        return self.amount > 0

    @property
    def is_outflow(self) -> bool:
        return self.amount < 0

    @property
    def is_debt_payment(self) -> bool:
        return self.kind == RecurringKind.DEBT_PAYMENT or self.debt_id is not None


class Debt(BaseModel):
    """A tracked debt with its minimum monthly payment."""
    model_config = ConfigDict(frozen=True)

    name: str
    minimum_payment: Optional[Decimal] = None
    balance: Optional[Decimal] = None


class FinancialGoal(BaseModel):
    """A savings goal with a committed monthly contribution."""
    model_config = ConfigDict(frozen=True)

    name: str
    monthly_contribution: Optional[Decimal] = None
    target_amount: Optional[Decimal] = None


# =============================================================================
# SNAPSHOTS
# =============================================================================

class RecurringSnapshot(BaseModel):
    """
    Figures published by the recurring-obligations subsystem.

    monthly_income / monthly_expenses / monthly_debt are period-general
    estimates. transactions is the raw list the month-specific
    calculations run over; None means it is not available.
    """
    model_config = ConfigDict(frozen=True)

    monthly_income: Optional[Decimal] = None
    monthly_expenses: Optional[Decimal] = None
    monthly_debt: Optional[Decimal] = None
    transactions: Optional[tuple[RecurringTransaction, ...]] = None

    @property
    def income(self) -> Decimal:
        return as_amount(self.monthly_income)

    @property
    def expenses(self) -> Decimal:
        return as_amount(self.monthly_expenses)

    @property
    def debt(self) -> Decimal:
        return as_amount(self.monthly_debt)

    @property
    def has_transactions(self) -> bool:
        return bool(self.transactions)


class DebtSnapshot(BaseModel):
    """Figures published by the debt tracker."""
    model_config = ConfigDict(frozen=True)

    total_min_payment: Optional[Decimal] = None

    @property
    def min_payment(self) -> Decimal:
        return as_amount(self.total_min_payment)


class GoalSnapshot(BaseModel):
    """Figures published by the goals subsystem."""
    model_config = ConfigDict(frozen=True)

    total_monthly_contribution: Optional[Decimal] = None

    @property
    def contribution(self) -> Decimal:
        return as_amount(self.total_monthly_contribution)
