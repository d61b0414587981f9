"""
Budget Engine Package

The pure derivation step and the copy-forward resolver. The period
controller wires these to storage and the obligation sources.
"""

from budget_engine.engine.copy_forward import CopyForwardResolver
from budget_engine.engine.derive import (
    compute_debt_payments,
    compute_fixed_expenses,
    compute_goal_contributions,
    compute_left_to_allocate,
    compute_monthly_income,
    derive_budget_state,
)

__all__ = [
    "CopyForwardResolver",
    "compute_debt_payments",
    "compute_fixed_expenses",
    "compute_goal_contributions",
    "compute_left_to_allocate",
    "compute_monthly_income",
    "derive_budget_state",
]
