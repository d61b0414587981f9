"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the hosted storage backend because:
1. Users can look at (and fix) their budget directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for one household budget)
- No transactions (we handle this with careful ordering)
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing the engine.
"""

import json
from datetime import date, datetime
from typing import Optional
from uuid import UUID, uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from budget_engine.config import get_settings
from budget_engine.models.audit import AuditEvent, AuditEventType, AuditSeverity
from budget_engine.models.budget import (
    DEFAULT_CATEGORIES,
    BudgetCategory,
    BudgetCategoryCreate,
    BudgetCategoryUpdate,
    BudgetEntry,
    BudgetSummary,
    BudgetTransaction,
    ZERO,
    as_amount,
)
from budget_engine.models.month import Month
from budget_engine.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    NotFoundError,
    StorageError,
)
from budget_engine.services.storage.summary import build_monthly_summary


CATEGORY_COLUMNS = [
    "id",
    "name",
    "icon",
    "color",
    "created_at",
    "updated_at",
]

ENTRY_COLUMNS = [
    "category_id",
    "month",
    "allocated",
    "spent",
    "updated_at",
]

TRANSACTION_COLUMNS = [
    "id",
    "category_id",
    "amount",
    "date",
    "description",
    "created_at",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _safe_get(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows and blanks."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_categories_sheet(self) -> gspread.Worksheet:
        """Get or create the categories worksheet."""
        return self._get_or_create_sheet(
            self._settings.categories_sheet_name, CATEGORY_COLUMNS, rows=200,
        )

    def get_entries_sheet(self) -> gspread.Worksheet:
        """Get or create the monthly entries worksheet."""
        return self._get_or_create_sheet(
            self._settings.entries_sheet_name, ENTRY_COLUMNS, rows=2000,
        )

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, rows=5000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000,
        )


class GoogleSheetsBudgetStorage(BudgetStorageInterface):
    """
    Google Sheets implementation of budget storage.

    One worksheet per table: categories, entries and transactions.
    Row 1 of each sheet is the header.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------

    @staticmethod
    def _category_to_row(category: BudgetCategory) -> list:
        return [
            str(category.id),
            category.name,
            category.icon.value,
            category.color,
            category.created_at.isoformat(),
            category.updated_at.isoformat(),
        ]

    @staticmethod
    def _row_to_category(row: list) -> BudgetCategory:
        created_at = _safe_get(row, 4)
        updated_at = _safe_get(row, 5)
        return BudgetCategory(
            id=int(_safe_get(row, 0)),
            name=_safe_get(row, 1),
            icon=_safe_get(row, 2),
            color=_safe_get(row, 3),
            created_at=datetime.fromisoformat(created_at) if created_at else datetime.utcnow(),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else datetime.utcnow(),
        )

    @staticmethod
    def _entry_to_row(entry: BudgetEntry) -> list:
        return [
            str(entry.category_id),
            entry.month.isoformat(),
            str(entry.allocated),
            str(entry.spent),
            datetime.utcnow().isoformat(),
        ]

    @staticmethod
    def _row_to_entry(row: list) -> BudgetEntry:
        return BudgetEntry(
            category_id=int(_safe_get(row, 0)),
            month=date.fromisoformat(_safe_get(row, 1)),
            allocated=as_amount(_safe_get(row, 2, "0")),
            spent=as_amount(_safe_get(row, 3, "0")),
        )

    @staticmethod
    def _transaction_to_row(transaction: BudgetTransaction) -> list:
        return [
            str(uuid4()),
            str(transaction.category_id),
            str(transaction.amount),
            transaction.date.isoformat(),
            transaction.description,
            datetime.utcnow().isoformat(),
        ]

    def _read_categories(self) -> list[tuple[int, BudgetCategory]]:
        """(sheet row number, category) pairs, skipping malformed rows."""
        sheet = self._client.get_categories_sheet()
        result = []
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if not row or not row[0]:
                continue
            try:
                result.append((idx, self._row_to_category(row)))
            except Exception:
                continue  # Skip malformed rows
        return result

    def _read_entries(self) -> list[tuple[int, BudgetEntry]]:
        """(sheet row number, entry) pairs, skipping malformed rows."""
        sheet = self._client.get_entries_sheet()
        result = []
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if not row or not row[0]:
                continue
            try:
                result.append((idx, self._row_to_entry(row)))
            except Exception:
                continue
        return result

    def _find_entry_row(self, category_id: int, month: date) -> Optional[tuple[int, BudgetEntry]]:
        for idx, entry in self._read_entries():
            if entry.category_id == category_id and entry.month == month:
                return idx, entry
        return None

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def get_budget_categories(self) -> list[BudgetCategory]:
        """Get all categories, ordered by id."""
        try:
            categories = [category for _, category in self._read_categories()]
            categories.sort(key=lambda c: c.id)
            return categories
        except Exception as e:
            raise StorageError(f"Failed to fetch budget categories: {e}")

    async def initialize_default_budget_categories(
        self,
        month: Optional[Month] = None,
    ) -> list[BudgetCategory]:
        """Create the default categories if the sheet has none."""
        if await self.get_budget_categories():
            return []

        created = []
        try:
            for seed in DEFAULT_CATEGORIES:
                category = await self.create_budget_category(seed.to_create())
                created.append(category)
                if month is not None:
                    await self.save_budget_entry(BudgetEntry(
                        category_id=category.id,
                        month=month.first_day,
                        allocated=seed.allocated,
                    ))
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to initialize default categories: {e}")
        return created

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def create_budget_category(
        self,
        data: BudgetCategoryCreate,
    ) -> BudgetCategory:
        """Append a category with the next free id."""
        try:
            existing_ids = [category.id for _, category in self._read_categories()]
            category = BudgetCategory(
                id=max(existing_ids, default=0) + 1,
                **data.model_dump(),
            )
            sheet = self._client.get_categories_sheet()
            sheet.append_row(self._category_to_row(category), value_input_option="RAW")
            return category
        except Exception as e:
            raise StorageError(f"Failed to create budget category: {e}")

    async def update_budget_category(
        self,
        category_id: int,
        patch: BudgetCategoryUpdate,
    ) -> BudgetCategory:
        """Rewrite the category's row with the patched values."""
        try:
            sheet = self._client.get_categories_sheet()
            for idx, category in self._read_categories():
                if category.id != category_id:
                    continue

                updated = category.model_copy(update={
                    **patch.to_patch(),
                    "updated_at": datetime.utcnow(),
                })
                for col_idx, value in enumerate(self._category_to_row(updated), start=1):
                    sheet.update_cell(idx, col_idx, value)
                return updated

            raise NotFoundError(f"Category not found: {category_id}")
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update budget category: {e}")

    async def delete_budget_category(self, category_id: int) -> bool:
        """Delete the category row and every entry row that references it."""
        try:
            category_rows = [
                idx for idx, category in self._read_categories()
                if category.id == category_id
            ]
            if not category_rows:
                return False

            entry_rows = [
                idx for idx, entry in self._read_entries()
                if entry.category_id == category_id
            ]
            entries_sheet = self._client.get_entries_sheet()
            # Bottom-up so earlier row numbers stay valid
            for idx in sorted(entry_rows, reverse=True):
                entries_sheet.delete_rows(idx)

            categories_sheet = self._client.get_categories_sheet()
            for idx in sorted(category_rows, reverse=True):
                categories_sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete budget category: {e}")

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    async def get_budget_entries_for_month(self, month: Month) -> list[BudgetEntry]:
        """Get all entries whose month column is the month's first day."""
        try:
            return [
                entry for _, entry in self._read_entries()
                if entry.month == month.first_day
            ]
        except Exception as e:
            raise StorageError(f"Failed to fetch budget entries: {e}")

    async def copy_budget_entries_from_previous_month(
        self,
        target_month: Month,
        source_month: Optional[Month] = None,
    ) -> bool:
        """Copy allocations for categories the target month lacks."""
        source_month = source_month or target_month.previous()
        try:
            entries = [entry for _, entry in self._read_entries()]
            source_entries = [e for e in entries if e.month == source_month.first_day]
            if not source_entries:
                return False

            existing = {
                e.category_id for e in entries if e.month == target_month.first_day
            }
            new_rows = [
                self._entry_to_row(BudgetEntry(
                    category_id=e.category_id,
                    month=target_month.first_day,
                    allocated=e.allocated,
                    spent=ZERO,
                ))
                for e in source_entries
                if e.category_id not in existing
            ]
            if not new_rows:
                return False

            sheet = self._client.get_entries_sheet()
            sheet.append_rows(new_rows, value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to copy budget entries: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_budget_entry(self, entry: BudgetEntry) -> BudgetEntry:
        """Update the (category, month) row in place, or append a new one."""
        try:
            sheet = self._client.get_entries_sheet()
            row = self._entry_to_row(entry)
            found = self._find_entry_row(entry.category_id, entry.month)
            if found is None:
                sheet.append_row(row, value_input_option="RAW")
            else:
                idx, _ = found
                # Key columns (category_id, month) stay as they are
                for col_idx in range(3, len(ENTRY_COLUMNS) + 1):
                    sheet.update_cell(idx, col_idx, row[col_idx - 1])
            return entry
        except Exception as e:
            raise StorageError(f"Failed to save budget entry: {e}")

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _append_transaction_row(self, transaction: BudgetTransaction) -> None:
        try:
            sheet = self._client.get_transactions_sheet()
            sheet.append_row(self._transaction_to_row(transaction), value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to add budget transaction: {e}")

    async def add_budget_transaction(
        self,
        transaction: BudgetTransaction,
    ) -> BudgetTransaction:
        """
        Append the transaction, then fold its amount into the month's entry.

        Only the row append and the entry write retry on their own; a failed
        fold never appends the transaction a second time.
        """
        await self._append_transaction_row(transaction)

        month = transaction.budget_month
        try:
            found = self._find_entry_row(transaction.category_id, month.first_day)
        except Exception as e:
            raise StorageError(f"Failed to read budget entry: {e}")
        if found is None:
            entry = BudgetEntry(category_id=transaction.category_id, month=month.first_day)
        else:
            entry = found[1]
        await self.save_budget_entry(
            entry.model_copy(update={"spent": entry.spent + transaction.amount})
        )
        return transaction

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    async def get_monthly_budget_summary(self, month: Month) -> BudgetSummary:
        """Merge categories with the month's entries."""
        categories = await self.get_budget_categories()
        entries = await self.get_budget_entries_for_month(month)
        return build_monthly_summary(categories, entries, month)


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=_safe_get(row, 5) or None,
            correlation_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
            is_user_action=_safe_get(row, 10).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except Exception:
                continue
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = [e for e in self._read_events() if e.correlation_id == correlation_id]
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._read_events()
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
