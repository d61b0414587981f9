"""Merging categories with a month's entries into a summary."""

from typing import Iterable

from budget_engine.models.budget import (
    BudgetCategory,
    BudgetEntry,
    BudgetSummary,
    CategoryBudget,
    ZERO,
)
from budget_engine.models.month import Month


def build_monthly_summary(
    categories: Iterable[BudgetCategory],
    entries: Iterable[BudgetEntry],
    month: Month,
) -> BudgetSummary:
    """
    Build the summary for one month.

    Every category appears exactly once. A category without an entry for
    the month shows zero allocated and zero spent. Entries for other months
    or unknown categories are ignored.
    """
    by_category: dict[int, BudgetEntry] = {}
    for entry in entries:
        if entry.month != month.first_day:
            continue
        # First entry wins if storage ever holds duplicates
        by_category.setdefault(entry.category_id, entry)

    lines = []
    for category in sorted(categories, key=lambda c: c.id):
        entry = by_category.get(category.id)
        lines.append(CategoryBudget(
            id=category.id,
            name=category.name,
            icon=category.icon,
            color=category.color,
            allocated=entry.allocated if entry else ZERO,
            spent=entry.spent if entry else ZERO,
        ))

    return BudgetSummary.from_categories(month, lines)
