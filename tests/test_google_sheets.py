"""
Tests for the Google Sheets backend

A fake client hands out in-memory worksheets that behave like gspread's
for the handful of calls the storage layer makes.
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from tenacity import wait_none

from budget_engine.models.audit import AuditEventBuilder, AuditEventType
from budget_engine.models.budget import (
    BudgetCategoryCreate,
    BudgetCategoryUpdate,
    BudgetEntry,
    BudgetTransaction,
    IconKey,
)
from budget_engine.models.month import Month
from budget_engine.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    NotFoundError,
    StorageError,
)
from budget_engine.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    CATEGORY_COLUMNS,
    ENTRY_COLUMNS,
    TRANSACTION_COLUMNS,
)


SEPTEMBER = Month(year=2026, month=9)
OCTOBER = Month(year=2026, month=10)


class FakeWorksheet:
    """Row-list stand-in for gspread.Worksheet."""

    def __init__(self, headers):
        self.rows = [list(headers)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def append_rows(self, values, value_input_option=None):
        for row in values:
            self.append_row(row)

    def update_cell(self, row, col, value):
        target = self.rows[row - 1]
        while len(target) < col:
            target.append("")
        target[col - 1] = str(value)

    def delete_rows(self, index):
        del self.rows[index - 1]


class FlakyAppendWorksheet(FakeWorksheet):
    """Worksheet whose first `failures` appends raise."""

    def __init__(self, headers, failures):
        super().__init__(headers)
        self.failures = failures

    def append_row(self, values, value_input_option=None):
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("quota exceeded")
        super().append_row(values, value_input_option)


class FakeSheetsClient:
    def __init__(self):
        self.categories = FakeWorksheet(CATEGORY_COLUMNS)
        self.entries = FakeWorksheet(ENTRY_COLUMNS)
        self.transactions = FakeWorksheet(TRANSACTION_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_categories_sheet(self):
        return self.categories

    def get_entries_sheet(self):
        return self.entries

    def get_transactions_sheet(self):
        return self.transactions

    def get_audit_sheet(self):
        return self.audit


@pytest.fixture
def client():
    return FakeSheetsClient()


@pytest.fixture
def storage(client):
    return GoogleSheetsBudgetStorage(client)


@pytest.fixture
def no_retry_wait(monkeypatch):
    for method in (
        GoogleSheetsBudgetStorage.save_budget_entry,
        GoogleSheetsBudgetStorage._append_transaction_row,
    ):
        monkeypatch.setattr(method.retry, "wait", wait_none())


class TestSheetsCategories:
    """Tests for category rows."""

    @pytest.mark.asyncio
    async def test_create_and_read(self, storage, client):
        first = await storage.create_budget_category(
            BudgetCategoryCreate(name="Groceries", icon="ShoppingCart", color="green")
        )
        second = await storage.create_budget_category(BudgetCategoryCreate(name="Dining"))

        categories = await storage.get_budget_categories()
        assert (first.id, second.id) == (1, 2)
        assert [c.name for c in categories] == ["Groceries", "Dining"]
        assert client.categories.rows[1][:4] == ["1", "Groceries", "ShoppingCart", "green"]

    @pytest.mark.asyncio
    async def test_unknown_icon_in_sheet_falls_back(self, storage, client):
        client.categories.append_row(["1", "Pets", "Rocket", "", "", ""])
        categories = await storage.get_budget_categories()
        assert categories[0].icon == IconKey.SHOPPING_CART

    @pytest.mark.asyncio
    async def test_malformed_rows_skipped(self, storage, client):
        client.categories.append_row(["abc", "Broken"])
        client.categories.append_row(["", ""])
        await storage.create_budget_category(BudgetCategoryCreate(name="Rent"))
        assert [c.name for c in await storage.get_budget_categories()] == ["Rent"]

    @pytest.mark.asyncio
    async def test_update(self, storage, client):
        category = await storage.create_budget_category(BudgetCategoryCreate(name="Food"))
        updated = await storage.update_budget_category(
            category.id, BudgetCategoryUpdate(name="Eating Out", icon="Utensils"),
        )
        assert updated.name == "Eating Out"
        assert client.categories.rows[1][1:3] == ["Eating Out", "Utensils"]

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, storage):
        with pytest.raises(NotFoundError):
            await storage.update_budget_category(7, BudgetCategoryUpdate(name="X"))

    @pytest.mark.asyncio
    async def test_delete_cascades(self, storage, client):
        food = await storage.create_budget_category(BudgetCategoryCreate(name="Food"))
        rent = await storage.create_budget_category(BudgetCategoryCreate(name="Rent"))
        for month in (SEPTEMBER, OCTOBER):
            await storage.save_budget_entry(BudgetEntry(category_id=food.id, month=month.first_day))
            await storage.save_budget_entry(BudgetEntry(category_id=rent.id, month=month.first_day))

        assert await storage.delete_budget_category(food.id) is True

        assert [c.name for c in await storage.get_budget_categories()] == ["Rent"]
        assert len(client.entries.rows) == 3  # header + two rent rows
        assert await storage.delete_budget_category(food.id) is False

    @pytest.mark.asyncio
    async def test_seeding_is_idempotent(self, storage):
        created = await storage.initialize_default_budget_categories(OCTOBER)
        assert len(created) == 7
        assert await storage.initialize_default_budget_categories(OCTOBER) == []
        summary = await storage.get_monthly_budget_summary(OCTOBER)
        assert summary.total_allocated == Decimal("1600")


class TestSheetsEntries:
    """Tests for entry rows and transactions."""

    async def _seed(self, storage):
        groceries = await storage.create_budget_category(BudgetCategoryCreate(name="Groceries"))
        dining = await storage.create_budget_category(BudgetCategoryCreate(name="Dining"))
        await storage.save_budget_entry(BudgetEntry(
            category_id=groceries.id, month=SEPTEMBER.first_day,
            allocated=Decimal("500"), spent=Decimal("120"),
        ))
        await storage.save_budget_entry(BudgetEntry(
            category_id=dining.id, month=SEPTEMBER.first_day, allocated=Decimal("300"),
        ))
        return groceries, dining

    @pytest.mark.asyncio
    async def test_save_updates_in_place(self, storage, client):
        groceries, _ = await self._seed(storage)
        await storage.save_budget_entry(BudgetEntry(
            category_id=groceries.id, month=SEPTEMBER.first_day,
            allocated=Decimal("600"), spent=Decimal("120"),
        ))
        assert len(client.entries.rows) == 3
        entries = await storage.get_budget_entries_for_month(SEPTEMBER)
        assert {e.category_id: e.allocated for e in entries}[groceries.id] == Decimal("600")

    @pytest.mark.asyncio
    async def test_month_stored_as_first_day(self, storage, client):
        await self._seed(storage)
        assert client.entries.rows[1][1] == "2026-09-01"

    @pytest.mark.asyncio
    async def test_copy_forward(self, storage):
        await self._seed(storage)
        assert await storage.copy_budget_entries_from_previous_month(OCTOBER, SEPTEMBER) is True
        assert await storage.copy_budget_entries_from_previous_month(OCTOBER, SEPTEMBER) is False

        entries = await storage.get_budget_entries_for_month(OCTOBER)
        assert sorted(e.allocated for e in entries) == [Decimal("300"), Decimal("500")]
        assert all(e.spent == Decimal("0") for e in entries)

    @pytest.mark.asyncio
    async def test_transaction_folds_into_spent(self, storage, client):
        groceries, _ = await self._seed(storage)
        await storage.add_budget_transaction(BudgetTransaction(
            category_id=groceries.id, amount=Decimal("45"), date=date(2026, 9, 19),
            description="store",
        ))

        summary = await storage.get_monthly_budget_summary(SEPTEMBER)
        assert summary.find(groceries.id).spent == Decimal("165")
        assert client.transactions.rows[1][1:5] == ["1", "45", "2026-09-19", "store"]

    @pytest.mark.asyncio
    async def test_transaction_recorded_once_when_fold_retries(self, client, no_retry_wait):
        """Test that a retried entry write doesn't duplicate the transaction row."""
        client.entries = FlakyAppendWorksheet(ENTRY_COLUMNS, failures=2)
        storage = GoogleSheetsBudgetStorage(client)
        groceries = await storage.create_budget_category(BudgetCategoryCreate(name="Groceries"))

        await storage.add_budget_transaction(BudgetTransaction(
            category_id=groceries.id, amount=Decimal("45"), date=date(2026, 9, 19),
        ))

        assert len(client.transactions.rows) == 2
        summary = await storage.get_monthly_budget_summary(SEPTEMBER)
        assert summary.find(groceries.id).spent == Decimal("45")

    @pytest.mark.asyncio
    async def test_failed_fold_keeps_single_transaction_row(self, client, no_retry_wait):
        client.entries = FlakyAppendWorksheet(ENTRY_COLUMNS, failures=3)
        storage = GoogleSheetsBudgetStorage(client)
        groceries = await storage.create_budget_category(BudgetCategoryCreate(name="Groceries"))

        with pytest.raises(StorageError):
            await storage.add_budget_transaction(BudgetTransaction(
                category_id=groceries.id, amount=Decimal("45"), date=date(2026, 9, 19),
            ))

        assert len(client.transactions.rows) == 2

    @pytest.mark.asyncio
    async def test_summary(self, storage):
        await self._seed(storage)
        summary = await storage.get_monthly_budget_summary(SEPTEMBER)
        assert summary.total_allocated == Decimal("800")
        assert summary.total_spent == Decimal("120")
        assert summary.remaining_budget == Decimal("680")


class TestSheetsAudit:
    """Tests for audit rows."""

    @pytest.mark.asyncio
    async def test_append_and_read_back(self, client):
        audit = GoogleSheetsAuditStorage(client)
        correlation_id = uuid4()
        event = AuditEventBuilder.allocation_set(
            category_id=1, month="October 2026", amount="600", correlation_id=correlation_id,
        )

        assert await audit.append_event(event) is True

        events = await audit.get_events_by_correlation_id(correlation_id)
        assert len(events) == 1
        assert events[0].event_type == AuditEventType.ALLOCATION_SET
        assert events[0].details == {"month": "October 2026", "amount": "600"}
        assert events[0].is_user_action is True
        assert len(await audit.get_recent_events(limit=10)) == 1
