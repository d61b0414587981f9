"""
In-Memory Storage Implementation

Used by the test suite and as the default backend when no hosted
storage is configured. Data lives for the life of the process.

Behaves like the hosted backend: one entry per (category, month),
category deletes take their entries with them, and every read returns
copies so callers can't mutate stored state by accident.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from budget_engine.models.audit import AuditEvent
from budget_engine.models.budget import (
    DEFAULT_CATEGORIES,
    BudgetCategory,
    BudgetCategoryCreate,
    BudgetCategoryUpdate,
    BudgetEntry,
    BudgetSummary,
    BudgetTransaction,
    ZERO,
)
from budget_engine.models.month import Month
from budget_engine.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    NotFoundError,
)
from budget_engine.services.storage.summary import build_monthly_summary


class InMemoryBudgetStorage(BudgetStorageInterface):
    """Dictionary-backed budget storage."""

    def __init__(self):
        self._categories: dict[int, BudgetCategory] = {}
        self._entries: dict[tuple[int, date], BudgetEntry] = {}
        self._transactions: list[BudgetTransaction] = []
        self._next_category_id = 1

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def get_budget_categories(self) -> list[BudgetCategory]:
        return [
            self._categories[category_id].model_copy()
            for category_id in sorted(self._categories)
        ]

    async def initialize_default_budget_categories(
        self,
        month: Optional[Month] = None,
    ) -> list[BudgetCategory]:
        if self._categories:
            return []

        created = []
        for seed in DEFAULT_CATEGORIES:
            category = await self.create_budget_category(seed.to_create())
            created.append(category)
            if month is not None:
                await self.save_budget_entry(BudgetEntry(
                    category_id=category.id,
                    month=month.first_day,
                    allocated=seed.allocated,
                ))
        return created

    async def create_budget_category(
        self,
        data: BudgetCategoryCreate,
    ) -> BudgetCategory:
        category = BudgetCategory(id=self._next_category_id, **data.model_dump())
        self._categories[category.id] = category
        self._next_category_id += 1
        return category.model_copy()

    async def update_budget_category(
        self,
        category_id: int,
        patch: BudgetCategoryUpdate,
    ) -> BudgetCategory:
        existing = self._categories.get(category_id)
        if existing is None:
            raise NotFoundError(f"Category not found: {category_id}")

        updated = existing.model_copy(update={
            **patch.to_patch(),
            "updated_at": datetime.utcnow(),
        })
        self._categories[category_id] = updated
        return updated.model_copy()

    async def delete_budget_category(self, category_id: int) -> bool:
        if self._categories.pop(category_id, None) is None:
            return False
        for key in [k for k in self._entries if k[0] == category_id]:
            del self._entries[key]
        return True

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    async def get_budget_entries_for_month(self, month: Month) -> list[BudgetEntry]:
        return [
            entry.model_copy()
            for (_, entry_month), entry in sorted(self._entries.items())
            if entry_month == month.first_day
        ]

    async def copy_budget_entries_from_previous_month(
        self,
        target_month: Month,
        source_month: Optional[Month] = None,
    ) -> bool:
        source_month = source_month or target_month.previous()
        source_entries = await self.get_budget_entries_for_month(source_month)
        if not source_entries:
            return False

        existing = {
            entry.category_id
            for entry in await self.get_budget_entries_for_month(target_month)
        }
        to_copy = [e for e in source_entries if e.category_id not in existing]
        if not to_copy:
            return False

        for entry in to_copy:
            await self.save_budget_entry(BudgetEntry(
                category_id=entry.category_id,
                month=target_month.first_day,
                allocated=entry.allocated,
                spent=ZERO,
            ))
        return True

    async def save_budget_entry(self, entry: BudgetEntry) -> BudgetEntry:
        stored = entry.model_copy()
        self._entries[stored.key] = stored
        return stored.model_copy()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def add_budget_transaction(
        self,
        transaction: BudgetTransaction,
    ) -> BudgetTransaction:
        stored = transaction.model_copy()
        self._transactions.append(stored)

        month = stored.budget_month
        entry = self._entries.get((stored.category_id, month.first_day))
        if entry is None:
            entry = BudgetEntry(category_id=stored.category_id, month=month.first_day)
        await self.save_budget_entry(
            entry.model_copy(update={"spent": entry.spent + stored.amount})
        )
        return stored.model_copy()

    async def list_transactions(self, month: Optional[Month] = None) -> list[BudgetTransaction]:
        """Recorded transactions, optionally limited to one month."""
        return [
            t.model_copy()
            for t in self._transactions
            if month is None or month.contains(t.date)
        ]

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    async def get_monthly_budget_summary(self, month: Month) -> BudgetSummary:
        return build_monthly_summary(
            await self.get_budget_categories(),
            await self.get_budget_entries_for_month(month),
            month,
        )


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed, append-only audit log."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
