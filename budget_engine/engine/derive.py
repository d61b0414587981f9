"""
Budget State Derivation

Combines a month's budget summary with the recurring, debt and goal
snapshots into the figures the dashboard needs.

DESIGN DECISION: This is a pure function of its inputs. The controller
gathers the snapshots, calls derive_budget_state() and stores the result.
Nothing in here touches storage, so the whole merge can be tested with
plain values.

Fallback policy (per figure):
1. Fixed expenses: month-specific non-debt expenses if a transaction list
   is available, else |recurring expenses - recurring debt|
2. Debt payments: debt tracker minimum payment if positive, else the
   recurring debt figure
3. Goal contributions: taken as published
4. Monthly income: month-specific income if a transaction list is
   available, else the general recurring income
5. Left to allocate: income - (allocated + fixed + debt + goals)

A month-specific calculation that raises never escapes; its general
fallback is used instead.
"""

from decimal import Decimal
from typing import Callable, Optional

import structlog

from budget_engine.models.budget import BudgetState, BudgetSummary, as_amount
from budget_engine.models.month import Month
from budget_engine.models.obligations import (
    DebtSnapshot,
    GoalSnapshot,
    RecurringSnapshot,
)
from budget_engine.services.obligations import MonthlyProjection


# Called with (metric name, exception) when a month-specific figure falls back
FallbackHook = Callable[[str, Exception], None]

logger = structlog.get_logger()


def _month_specific(
    metric: str,
    month: Month,
    calculate: Callable[[], object],
    on_fallback: Optional[FallbackHook],
) -> Optional[Decimal]:
    """Run a month-specific calculator, returning None if it raises."""
    try:
        return as_amount(calculate())
    except Exception as e:
        logger.warning(
            "month_calculation_failed",
            metric=metric,
            month=month.label,
            error=str(e),
        )
        if on_fallback is not None:
            on_fallback(metric, e)
        return None


def compute_fixed_expenses(
    month: Month,
    recurring: RecurringSnapshot,
    projection: Optional[MonthlyProjection] = None,
    on_fallback: Optional[FallbackHook] = None,
) -> Decimal:
    """Recurring non-debt obligations for the month, as a magnitude."""
    if projection is not None and recurring.has_transactions:
        value = _month_specific(
            "fixed_expenses",
            month,
            lambda: projection.calculate_month_expenses(month, recurring.transactions),
            on_fallback,
        )
        if value is not None:
            return abs(value)

    return abs(recurring.expenses - recurring.debt)


def compute_debt_payments(recurring: RecurringSnapshot, debt: DebtSnapshot) -> Decimal:
    """The debt tracker wins whenever it reports a positive minimum payment."""
    if debt.min_payment > 0:
        return debt.min_payment
    return recurring.debt


def compute_goal_contributions(goals: GoalSnapshot) -> Decimal:
    return goals.contribution


def compute_monthly_income(
    month: Month,
    recurring: RecurringSnapshot,
    projection: Optional[MonthlyProjection] = None,
    on_fallback: Optional[FallbackHook] = None,
) -> Decimal:
    """Recurring income landing in the month."""
    if projection is not None and recurring.has_transactions:
        value = _month_specific(
            "monthly_income",
            month,
            lambda: projection.calculate_month_income(month, recurring.transactions),
            on_fallback,
        )
        if value is not None:
            return value

    return recurring.income


def compute_left_to_allocate(
    monthly_income: Decimal,
    total_allocated: Decimal,
    fixed_expenses: Decimal,
    total_debt_payments: Decimal,
    total_goal_contributions: Decimal,
) -> Decimal:
    return as_amount(monthly_income) - (
        as_amount(total_allocated)
        + as_amount(fixed_expenses)
        + as_amount(total_debt_payments)
        + as_amount(total_goal_contributions)
    )


def derive_budget_state(
    summary: BudgetSummary,
    month: Month,
    recurring: Optional[RecurringSnapshot] = None,
    debt: Optional[DebtSnapshot] = None,
    goals: Optional[GoalSnapshot] = None,
    projection: Optional[MonthlyProjection] = None,
    on_fallback: Optional[FallbackHook] = None,
) -> BudgetState:
    """
    Build the full budget state for a month.

    Missing snapshots are treated as all-zero.

    Args:
        summary: Category lines and totals for the month
        month: The month being derived; drives the month-specific figures
        recurring: Recurring obligations snapshot
        debt: Debt tracker snapshot
        goals: Goals snapshot
        projection: Month-specific calculator over recurring transactions
        on_fallback: Notified when a month-specific figure falls back
    """
    recurring = recurring or RecurringSnapshot()
    debt = debt or DebtSnapshot()
    goals = goals or GoalSnapshot()

    fixed_expenses = compute_fixed_expenses(month, recurring, projection, on_fallback)
    total_debt_payments = compute_debt_payments(recurring, debt)
    total_goal_contributions = compute_goal_contributions(goals)
    monthly_income = compute_monthly_income(month, recurring, projection, on_fallback)

    return BudgetState(
        month=summary.month,
        categories=[category.model_copy() for category in summary.categories],
        total_allocated=summary.total_allocated,
        total_spent=summary.total_spent,
        remaining_budget=summary.remaining_budget,
        monthly_income=monthly_income,
        fixed_expenses=fixed_expenses,
        total_debt_payments=total_debt_payments,
        total_goal_contributions=total_goal_contributions,
        left_to_allocate=compute_left_to_allocate(
            monthly_income,
            summary.total_allocated,
            fixed_expenses,
            total_debt_payments,
            total_goal_contributions,
        ),
    )
