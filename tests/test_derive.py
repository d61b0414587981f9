"""Tests for budget state derivation."""

import pytest
from datetime import date
from decimal import Decimal

from budget_engine.engine import (
    compute_debt_payments,
    compute_fixed_expenses,
    compute_goal_contributions,
    compute_left_to_allocate,
    compute_monthly_income,
    derive_budget_state,
)
from budget_engine.models.budget import BudgetSummary, CategoryBudget
from budget_engine.models.month import Month
from budget_engine.models.obligations import (
    DebtSnapshot,
    GoalSnapshot,
    RecurringSnapshot,
    RecurringTransaction,
)
from budget_engine.services.obligations import MonthlyProjection


OCTOBER = Month(year=2026, month=10)

SALARY = RecurringTransaction(
    name="Salary", amount=Decimal("5000"), next_date=date(2026, 10, 1),
)


class ExplodingProjection(MonthlyProjection):
    """Month-specific calculator that always fails."""

    def calculate_month_income(self, month, transactions):
        raise RuntimeError("income calculator broke")

    def calculate_month_expenses(self, month, transactions):
        raise RuntimeError("expense calculator broke")


class FixedProjection(MonthlyProjection):
    """Month-specific calculator returning canned figures."""

    def __init__(self, income, expenses):
        self.income = income
        self.expenses = expenses

    def calculate_month_income(self, month, transactions):
        return self.income

    def calculate_month_expenses(self, month, transactions):
        return self.expenses


def make_summary():
    return BudgetSummary.from_categories(OCTOBER, [
        CategoryBudget(id=1, name="Groceries", allocated=Decimal("500"), spent=Decimal("120")),
        CategoryBudget(id=2, name="Dining Out", allocated=Decimal("300"), spent=Decimal("0")),
    ])


def recurring_with_transactions(**figures):
    return RecurringSnapshot(transactions=(SALARY,), **figures)


class TestFixedExpenses:
    """Tests for the fixed expense figure."""

    def test_general_fallback_without_transactions(self):
        """Test |recurring expenses - recurring debt| when nothing is projectable."""
        recurring = RecurringSnapshot(
            monthly_expenses=Decimal("1500"), monthly_debt=Decimal("300"),
        )
        assert compute_fixed_expenses(OCTOBER, recurring) == Decimal("1200")

    def test_general_fallback_is_a_magnitude(self):
        recurring = RecurringSnapshot(monthly_expenses=Decimal("100"), monthly_debt=Decimal("300"))
        assert compute_fixed_expenses(OCTOBER, recurring) == Decimal("200")

    def test_month_specific_when_available(self):
        recurring = recurring_with_transactions(monthly_expenses=Decimal("1500"))
        projection = FixedProjection(income=Decimal("0"), expenses=Decimal("-450"))
        assert compute_fixed_expenses(OCTOBER, recurring, projection) == Decimal("450")

    def test_empty_transaction_list_uses_fallback(self):
        recurring = RecurringSnapshot(
            monthly_expenses=Decimal("1500"), monthly_debt=Decimal("300"), transactions=(),
        )
        projection = FixedProjection(income=Decimal("0"), expenses=Decimal("999"))
        assert compute_fixed_expenses(OCTOBER, recurring, projection) == Decimal("1200")

    def test_calculator_failure_falls_back(self):
        """Test that a throwing calculator yields the general figure."""
        recurring = recurring_with_transactions(
            monthly_expenses=Decimal("1500"), monthly_debt=Decimal("300"),
        )
        seen = []
        value = compute_fixed_expenses(
            OCTOBER, recurring, ExplodingProjection(),
            on_fallback=lambda metric, exc: seen.append(metric),
        )
        assert value == Decimal("1200")
        assert seen == ["fixed_expenses"]


class TestDebtPayments:
    """Tests for debt precedence."""

    def test_tracker_wins_when_positive(self):
        recurring = RecurringSnapshot(monthly_debt=Decimal("100"))
        debt = DebtSnapshot(total_min_payment=Decimal("250"))
        assert compute_debt_payments(recurring, debt) == Decimal("250")

    def test_recurring_used_when_tracker_is_zero(self):
        recurring = RecurringSnapshot(monthly_debt=Decimal("100"))
        debt = DebtSnapshot(total_min_payment=Decimal("0"))
        assert compute_debt_payments(recurring, debt) == Decimal("100")

    def test_missing_everything_is_zero(self):
        assert compute_debt_payments(RecurringSnapshot(), DebtSnapshot()) == Decimal("0")


class TestIncomeAndGoals:
    """Tests for income and goal figures."""

    def test_goals_taken_directly(self):
        goals = GoalSnapshot(total_monthly_contribution=Decimal("200"))
        assert compute_goal_contributions(goals) == Decimal("200")
        assert compute_goal_contributions(GoalSnapshot()) == Decimal("0")

    def test_month_specific_income(self):
        recurring = recurring_with_transactions(monthly_income=Decimal("4800"))
        projection = FixedProjection(income=Decimal("5000"), expenses=Decimal("0"))
        assert compute_monthly_income(OCTOBER, recurring, projection) == Decimal("5000")

    def test_income_falls_back_without_projection(self):
        recurring = recurring_with_transactions(monthly_income=Decimal("4800"))
        assert compute_monthly_income(OCTOBER, recurring) == Decimal("4800")

    def test_income_calculator_failure_falls_back(self):
        recurring = recurring_with_transactions(monthly_income=Decimal("4800"))
        seen = []
        value = compute_monthly_income(
            OCTOBER, recurring, ExplodingProjection(),
            on_fallback=lambda metric, exc: seen.append((metric, str(exc))),
        )
        assert value == Decimal("4800")
        assert seen == [("monthly_income", "income calculator broke")]


class TestDeriveBudgetState:
    """Tests for the full derivation."""

    def test_left_to_allocate_formula(self):
        """Test income - (allocated + fixed + debt + goals)."""
        state = derive_budget_state(
            make_summary(),
            OCTOBER,
            recurring=RecurringSnapshot(
                monthly_income=Decimal("5000"),
                monthly_expenses=Decimal("1500"),
                monthly_debt=Decimal("300"),
            ),
            debt=DebtSnapshot(total_min_payment=Decimal("250")),
            goals=GoalSnapshot(total_monthly_contribution=Decimal("200")),
        )
        assert state.monthly_income == Decimal("5000")
        assert state.fixed_expenses == Decimal("1200")
        assert state.total_debt_payments == Decimal("250")
        assert state.total_goal_contributions == Decimal("200")
        assert state.left_to_allocate == Decimal("2550")
        assert state.left_to_allocate == state.monthly_income - state.total_committed

    def test_no_signals_means_zero_figures(self):
        state = derive_budget_state(make_summary(), OCTOBER)
        assert state.monthly_income == Decimal("0")
        assert state.fixed_expenses == Decimal("0")
        assert state.left_to_allocate == Decimal("-800")

    def test_summary_is_carried_over(self):
        summary = make_summary()
        state = derive_budget_state(summary, OCTOBER)
        assert state.month == "October 2026"
        assert [c.name for c in state.categories] == ["Groceries", "Dining Out"]
        assert state.total_allocated == summary.total_allocated
        assert state.total_spent == Decimal("120")
        assert state.remaining_budget == Decimal("680")

    def test_no_exception_escapes(self):
        """Test fallback safety end to end."""
        recurring = recurring_with_transactions(
            monthly_income=Decimal("4800"),
            monthly_expenses=Decimal("1500"),
            monthly_debt=Decimal("300"),
        )
        seen = []
        state = derive_budget_state(
            make_summary(), OCTOBER, recurring=recurring,
            projection=ExplodingProjection(),
            on_fallback=lambda metric, exc: seen.append(metric),
        )
        assert state.monthly_income == Decimal("4800")
        assert state.fixed_expenses == Decimal("1200")
        assert sorted(seen) == ["fixed_expenses", "monthly_income"]

    @pytest.mark.parametrize("income,allocated,fixed,debt,goals,expected", [
        ("0", "0", "0", "0", "0", "0"),
        ("5000", "0", "0", "0", "0", "5000"),
        ("0", "800", "0", "0", "0", "-800"),
        ("1000.50", "200.25", "100", "50", "25.25", "625.00"),
    ])
    def test_left_to_allocate_cases(self, income, allocated, fixed, debt, goals, expected):
        assert compute_left_to_allocate(
            Decimal(income), Decimal(allocated), Decimal(fixed), Decimal(debt), Decimal(goals),
        ) == Decimal(expected)
