"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for budget persistence.
This allows us to:
1. Swap Google Sheets for a relational database later
2. Use in-memory storage for testing
3. Keep the engine decoupled from storage implementation

The interface is intentionally small - just the operations the budget
engine needs.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from budget_engine.models.audit import AuditEvent
from budget_engine.models.budget import (
    BudgetCategory,
    BudgetCategoryCreate,
    BudgetCategoryUpdate,
    BudgetEntry,
    BudgetSummary,
    BudgetTransaction,
)
from budget_engine.models.month import Month


class BudgetStorageInterface(ABC):
    """
    Abstract interface for budget storage operations.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def get_budget_categories(self) -> list[BudgetCategory]:
        """
        Get every budget category, ordered by id.

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def initialize_default_budget_categories(
        self,
        month: Optional[Month] = None,
    ) -> list[BudgetCategory]:
        """
        Create the default category set.

        Idempotent: does nothing if categories already exist.

        Args:
            month: If given, the seeds' starting allocations are written
                   as entries for this month

        Returns:
            The categories created (empty if none were needed)

        Raises:
            StorageError: If seeding fails
        """
        pass

    @abstractmethod
    async def create_budget_category(
        self,
        data: BudgetCategoryCreate,
    ) -> BudgetCategory:
        """
        Create a category.

        Returns:
            The stored category, with its assigned id

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def update_budget_category(
        self,
        category_id: int,
        patch: BudgetCategoryUpdate,
    ) -> BudgetCategory:
        """
        Apply a partial update to a category.

        Raises:
            StorageError: If update fails
            NotFoundError: If the category doesn't exist
        """
        pass

    @abstractmethod
    async def delete_budget_category(self, category_id: int) -> bool:
        """
        Delete a category and its budget entries.

        Returns:
            True if something was deleted
        """
        pass

    @abstractmethod
    async def get_budget_entries_for_month(self, month: Month) -> list[BudgetEntry]:
        """
        Get all entries for a month.

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def copy_budget_entries_from_previous_month(
        self,
        target_month: Month,
        source_month: Optional[Month] = None,
    ) -> bool:
        """
        Copy entries from source_month into target_month.

        Only categories missing from the target are copied. Allocations are
        kept, spent starts at zero. Calling it twice is the same as calling
        it once.

        Args:
            target_month: Month to fill
            source_month: Month to copy from (defaults to the month before target)

        Returns:
            True if at least one entry was copied
        """
        pass

    @abstractmethod
    async def save_budget_entry(self, entry: BudgetEntry) -> BudgetEntry:
        """
        Insert or replace the entry for (entry.category_id, entry.month).

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def add_budget_transaction(
        self,
        transaction: BudgetTransaction,
    ) -> BudgetTransaction:
        """
        Record a spend event and fold it into the entry for its month.

        If no entry exists for the transaction's category and month, one is
        created with zero allocation.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_monthly_budget_summary(self, month: Month) -> BudgetSummary:
        """
        Every category with its allocation and spend for a month.

        Raises:
            StorageError: If the read fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one load sequence).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
