"""Tests for the in-memory storage backend and summary building."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from budget_engine.models.budget import (
    BudgetCategory,
    BudgetCategoryCreate,
    BudgetCategoryUpdate,
    BudgetEntry,
    BudgetTransaction,
    IconKey,
)
from budget_engine.models.month import Month
from budget_engine.services.storage import (
    InMemoryBudgetStorage,
    NotFoundError,
    build_monthly_summary,
)


SEPTEMBER = Month(year=2026, month=9)
OCTOBER = Month(year=2026, month=10)


class TestCategories:
    """Tests for category CRUD."""

    @pytest.mark.asyncio
    async def test_seeding_is_idempotent(self):
        storage = InMemoryBudgetStorage()
        created = await storage.initialize_default_budget_categories()
        again = await storage.initialize_default_budget_categories()
        assert len(created) == 7
        assert again == []
        assert len(await storage.get_budget_categories()) == 7

    @pytest.mark.asyncio
    async def test_seeding_writes_starting_allocations(self):
        storage = InMemoryBudgetStorage()
        await storage.initialize_default_budget_categories(OCTOBER)
        summary = await storage.get_monthly_budget_summary(OCTOBER)
        assert summary.total_allocated == Decimal("1600")
        assert summary.find(1).allocated == Decimal("500")

    @pytest.mark.asyncio
    async def test_ids_increase(self):
        storage = InMemoryBudgetStorage()
        first = await storage.create_budget_category(BudgetCategoryCreate(name="Rent"))
        second = await storage.create_budget_category(BudgetCategoryCreate(name="Pets"))
        assert (first.id, second.id) == (1, 2)

    @pytest.mark.asyncio
    async def test_update_applies_patch(self):
        storage = InMemoryBudgetStorage()
        category = await storage.create_budget_category(
            BudgetCategoryCreate(name="Food", icon="Utensils", color="red")
        )
        updated = await storage.update_budget_category(
            category.id, BudgetCategoryUpdate(name="Eating Out"),
        )
        assert updated.name == "Eating Out"
        assert updated.icon == IconKey.UTENSILS
        assert updated.color == "red"

    @pytest.mark.asyncio
    async def test_update_missing_raises(self):
        storage = InMemoryBudgetStorage()
        with pytest.raises(NotFoundError):
            await storage.update_budget_category(42, BudgetCategoryUpdate(name="X"))

    @pytest.mark.asyncio
    async def test_delete_cascades_to_entries(self):
        """Test that a category's entries go with it."""
        storage = InMemoryBudgetStorage()
        category = await storage.create_budget_category(BudgetCategoryCreate(name="Food"))
        await storage.save_budget_entry(
            BudgetEntry(category_id=category.id, month=OCTOBER.first_day, allocated=Decimal("100"))
        )
        assert await storage.delete_budget_category(category.id) is True
        assert await storage.get_budget_entries_for_month(OCTOBER) == []
        assert await storage.delete_budget_category(category.id) is False

    @pytest.mark.asyncio
    async def test_reads_are_copies(self):
        storage = InMemoryBudgetStorage()
        await storage.create_budget_category(BudgetCategoryCreate(name="Food"))
        categories = await storage.get_budget_categories()
        categories[0].name = "Changed"
        assert (await storage.get_budget_categories())[0].name == "Food"


class TestEntries:
    """Tests for entries, copy-forward and transactions."""

    async def _storage_with_september(self):
        storage = InMemoryBudgetStorage()
        groceries = await storage.create_budget_category(BudgetCategoryCreate(name="Groceries"))
        dining = await storage.create_budget_category(BudgetCategoryCreate(name="Dining"))
        await storage.save_budget_entry(BudgetEntry(
            category_id=groceries.id, month=SEPTEMBER.first_day,
            allocated=Decimal("500"), spent=Decimal("120"),
        ))
        await storage.save_budget_entry(BudgetEntry(
            category_id=dining.id, month=SEPTEMBER.first_day,
            allocated=Decimal("300"), spent=Decimal("80"),
        ))
        return storage, groceries, dining

    @pytest.mark.asyncio
    async def test_one_entry_per_category_and_month(self):
        storage, groceries, _ = await self._storage_with_september()
        await storage.save_budget_entry(BudgetEntry(
            category_id=groceries.id, month=date(2026, 9, 20), allocated=Decimal("650"),
        ))
        entries = await storage.get_budget_entries_for_month(SEPTEMBER)
        assert len(entries) == 2
        assert [e.allocated for e in entries if e.category_id == groceries.id] == [Decimal("650")]

    @pytest.mark.asyncio
    async def test_copy_keeps_allocation_and_resets_spent(self):
        storage, _, _ = await self._storage_with_september()
        copied = await storage.copy_budget_entries_from_previous_month(OCTOBER, SEPTEMBER)
        entries = await storage.get_budget_entries_for_month(OCTOBER)
        assert copied is True
        assert sorted(e.allocated for e in entries) == [Decimal("300"), Decimal("500")]
        assert all(e.spent == Decimal("0") for e in entries)

    @pytest.mark.asyncio
    async def test_copy_defaults_to_previous_month(self):
        storage, _, _ = await self._storage_with_september()
        assert await storage.copy_budget_entries_from_previous_month(OCTOBER) is True

    @pytest.mark.asyncio
    async def test_copy_only_fills_missing_categories(self):
        storage, groceries, dining = await self._storage_with_september()
        await storage.save_budget_entry(BudgetEntry(
            category_id=groceries.id, month=OCTOBER.first_day, allocated=Decimal("700"),
        ))
        assert await storage.copy_budget_entries_from_previous_month(OCTOBER, SEPTEMBER) is True
        entries = {e.category_id: e for e in await storage.get_budget_entries_for_month(OCTOBER)}
        assert entries[groceries.id].allocated == Decimal("700")
        assert entries[dining.id].allocated == Decimal("300")

    @pytest.mark.asyncio
    async def test_copy_twice_does_not_duplicate(self):
        """Test copy-forward idempotence."""
        storage, _, _ = await self._storage_with_september()
        await storage.copy_budget_entries_from_previous_month(OCTOBER, SEPTEMBER)
        first = await storage.get_budget_entries_for_month(OCTOBER)
        assert await storage.copy_budget_entries_from_previous_month(OCTOBER, SEPTEMBER) is False
        assert await storage.get_budget_entries_for_month(OCTOBER) == first

    @pytest.mark.asyncio
    async def test_copy_from_empty_month(self):
        storage = InMemoryBudgetStorage()
        assert await storage.copy_budget_entries_from_previous_month(OCTOBER, SEPTEMBER) is False

    @pytest.mark.asyncio
    async def test_transaction_folds_into_spent(self):
        storage, groceries, _ = await self._storage_with_september()
        await storage.add_budget_transaction(BudgetTransaction(
            category_id=groceries.id, amount=Decimal("45"), date=date(2026, 9, 19),
            description="store",
        ))
        summary = await storage.get_monthly_budget_summary(SEPTEMBER)
        assert summary.find(groceries.id).spent == Decimal("165")
        assert summary.find(groceries.id).allocated == Decimal("500")

    @pytest.mark.asyncio
    async def test_transaction_creates_missing_entry(self):
        storage, groceries, _ = await self._storage_with_september()
        await storage.add_budget_transaction(BudgetTransaction(
            category_id=groceries.id, amount=Decimal("45"), date=date(2026, 10, 19),
        ))
        entries = await storage.get_budget_entries_for_month(OCTOBER)
        assert len(entries) == 1
        assert entries[0].allocated == Decimal("0")
        assert entries[0].spent == Decimal("45")
        assert len(await storage.list_transactions(OCTOBER)) == 1
        assert await storage.list_transactions(SEPTEMBER) == []


class TestBuildMonthlySummary:
    """Tests for merging categories with entries."""

    def test_category_without_entry_shows_zero(self):
        categories = [BudgetCategory(id=1, name="Groceries"), BudgetCategory(id=2, name="Pets")]
        entries = [BudgetEntry(category_id=1, month=OCTOBER.first_day, allocated=Decimal("500"))]
        summary = build_monthly_summary(categories, entries, OCTOBER)
        assert summary.find(2).allocated == Decimal("0")
        assert summary.find(2).spent == Decimal("0")
        assert summary.total_allocated == Decimal("500")

    def test_unknown_and_other_month_entries_ignored(self):
        categories = [BudgetCategory(id=1, name="Groceries")]
        entries = [
            BudgetEntry(category_id=1, month=OCTOBER.first_day, allocated=Decimal("500")),
            BudgetEntry(category_id=9, month=OCTOBER.first_day, allocated=Decimal("999")),
            BudgetEntry(category_id=1, month=SEPTEMBER.first_day, allocated=Decimal("123")),
        ]
        summary = build_monthly_summary(categories, entries, OCTOBER)
        assert len(summary.categories) == 1
        assert summary.total_allocated == Decimal("500")
        assert summary.month == "October 2026"

    def test_sum_invariant(self):
        categories = [BudgetCategory(id=i, name=f"C{i}") for i in range(1, 5)]
        entries = [
            BudgetEntry(
                category_id=i, month=OCTOBER.first_day,
                allocated=Decimal(i * 100), spent=Decimal(i * 10),
            )
            for i in range(1, 5)
        ]
        summary = build_monthly_summary(categories, entries, OCTOBER)
        assert summary.total_allocated == sum(c.allocated for c in summary.categories)
        assert summary.total_spent == sum(c.spent for c in summary.categories)
