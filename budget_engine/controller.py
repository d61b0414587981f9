"""
Budget Period Controller

This module ties together storage, the obligation sources and the pure
derivation step, and defines the two flows the dashboard drives:
1. Load (seed categories → copy forward → fetch summary → derive state)
2. Mutate (one persistence call → full reload)

DESIGN DECISION: The controller is the only owner of BudgetState.
- No optimistic local patching; every mutation ends in a reload
- Store failures never escape; they land in the error field
- Every load carries a sequence number, and a load that has been
  overtaken by a newer one is thrown away instead of overwriting it

The controller is async and meant to be driven from a single event loop.
"""

from datetime import date
from decimal import Decimal
from typing import Awaitable, Callable, Optional
from uuid import UUID

import structlog

from budget_engine.audit import AuditLogger, create_correlation_id
from budget_engine.config import BudgetSettings, get_settings
from budget_engine.engine import CopyForwardResolver, derive_budget_state
from budget_engine.models.budget import (
    BudgetCategory,
    BudgetCategoryCreate,
    BudgetCategoryUpdate,
    BudgetEntry,
    BudgetState,
    BudgetSummary,
    BudgetTransaction,
    CategoryBudget,
    IconKey,
    as_amount,
    fallback_summary,
)
from budget_engine.models.month import InvalidPeriodError, Month
from budget_engine.models.obligations import (
    DebtSnapshot,
    GoalSnapshot,
    RecurringSnapshot,
)
from budget_engine.services.obligations import (
    DebtSource,
    GoalSource,
    MonthlyProjection,
    RecurringObligationsSource,
)
from budget_engine.services.storage import (
    BudgetStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    NotFoundError,
)


logger = structlog.get_logger()


# =============================================================================
# ERRORS
# =============================================================================

class BudgetEngineError(Exception):
    """Base exception for errors surfaced through the controller."""
    pass


class SeedingError(BudgetEngineError):
    """No categories exist and the defaults could not be created."""
    pass


class BudgetLoadError(BudgetEngineError):
    """Loading a month failed; the fallback categories are shown instead."""

    def __init__(self, month: Month, cause: Exception):
        self.month = month
        self.cause = cause
        super().__init__(f"Failed to load budget for {month.label}: {cause}")


class MutationError(BudgetEngineError):
    """A mutation failed; the previous state is kept."""

    def __init__(self, action: str, cause: Exception):
        self.action = action
        self.cause = cause
        super().__init__(f"Failed to {action.replace('_', ' ')}: {cause}")


# =============================================================================
# CONTROLLER
# =============================================================================

class BudgetPeriodController:
    """
    Single source of truth for the active month and its budget state.

    Flow on every month change:
    1. Ensure categories exist (seed defaults, re-fetch to confirm)
    2. If the month differs from the last loaded one, copy entries forward
    3. Fetch the month's summary
    4. Read recurring, debt and goal snapshots
    5. Derive BudgetState (discarded if a newer load has started)
    """

    def __init__(
        self,
        storage: BudgetStorageInterface,
        recurring: Optional[RecurringObligationsSource] = None,
        debts: Optional[DebtSource] = None,
        goals: Optional[GoalSource] = None,
        audit_logger: Optional[AuditLogger] = None,
        resolver: Optional[CopyForwardResolver] = None,
        projection: Optional[MonthlyProjection] = None,
        today: Optional[Callable[[], date]] = None,
        settings: Optional[BudgetSettings] = None,
    ):
        self._storage = storage
        self._recurring = recurring
        self._debts = debts
        self._goals = goals
        self._audit_logger = audit_logger
        self._resolver = resolver or CopyForwardResolver(storage, audit_logger)
        if projection is None and isinstance(recurring, MonthlyProjection):
            projection = recurring
        self._projection = projection
        self._today = today or date.today
        self._settings = settings or get_settings().budget

        self._active_month = Month.from_date(self._today())
        self._previous_month: Optional[Month] = None
        self._summary: Optional[BudgetSummary] = None
        self._summary_month: Optional[Month] = None
        self._state = BudgetState.empty(self._active_month)
        self._error: Optional[BudgetEngineError] = None

        self._load_seq = 0
        self._in_flight = 0

    # ------------------------------------------------------------------
    # Read surface
    # ------------------------------------------------------------------

    @property
    def active_month(self) -> Month:
        return self._active_month

    @property
    def active_period(self) -> str:
        """Display label of the active month, e.g. 'October 2026'."""
        return self._active_month.label

    @property
    def state(self) -> BudgetState:
        return self._state

    @property
    def budget_categories(self) -> list[CategoryBudget]:
        return list(self._state.categories)

    @property
    def total_allocated(self):
        return self._state.total_allocated

    @property
    def total_spent(self):
        return self._state.total_spent

    @property
    def remaining_budget(self):
        return self._state.remaining_budget

    @property
    def monthly_income(self):
        return self._state.monthly_income

    @property
    def fixed_expenses(self):
        return self._state.fixed_expenses

    @property
    def total_debt_payments(self):
        return self._state.total_debt_payments

    @property
    def total_goal_contributions(self):
        return self._state.total_goal_contributions

    @property
    def left_to_allocate(self):
        return self._state.left_to_allocate

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @property
    def error(self) -> Optional[BudgetEngineError]:
        return self._error

    @property
    def load_sequence(self) -> int:
        """Number of loads started so far."""
        return self._load_seq

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def set_active_period(self, label: str) -> bool:
        """
        Switch to the month named by a label such as 'October 2026'.

        Returns False, leaving the active month and error untouched, if
        the label can't be parsed.
        """
        try:
            month = Month.parse(label)
        except InvalidPeriodError as e:
            await self._period_rejected(str(label), e)
            return False

        await self._change_month(month)
        return True

    async def next_month(self) -> bool:
        return await self._shift_active(1)

    async def prev_month(self) -> bool:
        return await self._shift_active(-1)

    async def _shift_active(self, months: int) -> bool:
        """Step the active month; a step past the calendar's range is a no-op."""
        try:
            month = self._active_month.shift(months)
        except InvalidPeriodError as e:
            await self._period_rejected(f"{self.active_period} {months:+d}", e)
            return False

        await self._change_month(month)
        return True

    async def _period_rejected(self, label: str, error: InvalidPeriodError) -> None:
        logger.warning("period_parse_failed", label=label, error=str(error))
        if self._audit_logger:
            await self._audit_logger.log_period_parse_failed(
                label=label,
                error_message=str(error),
            )

    async def refresh_data(self) -> bool:
        """Reload the active month from storage."""
        return await self._load()

    async def refresh_signals(self) -> bool:
        """
        Re-derive the state after a recurring, debt or goal change.

        Reuses the cached summary; falls back to a full reload if there is
        none for the active month.
        """
        if self._summary is None or self._summary_month != self._active_month:
            return await self._load()

        sequence = self._load_seq
        month = self._active_month
        correlation_id = create_correlation_id()
        state = await self._derive(self._summary, month, correlation_id)
        if sequence != self._load_seq:
            # A full load started meanwhile and owns the state
            return False
        self._state = state
        return True

    async def _change_month(self, month: Month) -> None:
        previous = self._active_month
        self._active_month = month
        if previous != month and self._audit_logger:
            await self._audit_logger.log_period_changed(
                from_month=previous.label,
                to_month=month.label,
                correlation_id=create_correlation_id(),
            )
        await self._load()

    # ------------------------------------------------------------------
    # Load sequence
    # ------------------------------------------------------------------

    async def _load(self) -> bool:
        """
        Run one load sequence for the active month.

        Returns True if its result was applied, False if a newer load
        overtook it.
        """
        self._load_seq += 1
        sequence = self._load_seq
        month = self._active_month
        correlation_id = create_correlation_id()

        self._in_flight += 1
        try:
            summary, error = await self._load_summary(month, correlation_id)
            state = await self._derive(summary, month, correlation_id)

            if sequence != self._load_seq:
                logger.info(
                    "stale_load_discarded",
                    month=month.label,
                    sequence=sequence,
                    latest_sequence=self._load_seq,
                )
                if self._audit_logger:
                    await self._audit_logger.log_stale_load_discarded(
                        month=month.label,
                        sequence=sequence,
                        latest_sequence=self._load_seq,
                        correlation_id=correlation_id,
                    )
                return False

            self._summary = summary
            self._summary_month = month
            self._state = state
            self._error = error
            if error is None:
                # Copy-forward source for the next transition
                self._previous_month = month

            if error is None and self._audit_logger:
                await self._audit_logger.log_budget_loaded(
                    month=month.label,
                    category_count=len(state.categories),
                    total_allocated=str(state.total_allocated),
                    sequence=sequence,
                    correlation_id=correlation_id,
                )
            return True
        finally:
            self._in_flight -= 1

    async def _load_summary(
        self,
        month: Month,
        correlation_id: UUID,
    ) -> tuple[BudgetSummary, Optional[BudgetEngineError]]:
        """Seed, copy forward and fetch; the fallback summary on any failure."""
        try:
            await self._ensure_categories(month, correlation_id)

            if self._previous_month is not None and self._previous_month != month:
                await self._resolver.resolve(month, self._previous_month, correlation_id)

            summary = await self._storage.get_monthly_budget_summary(month)
        except Exception as e:
            error = e if isinstance(e, BudgetEngineError) else BudgetLoadError(month, e)
            logger.error("budget_load_failed", month=month.label, error=str(error))
            if self._audit_logger:
                await self._audit_logger.log_budget_load_failed(
                    month=month.label,
                    error_message=str(error),
                    correlation_id=correlation_id,
                )
            return fallback_summary(month), error

        return summary, None

    async def _ensure_categories(self, month: Month, correlation_id: UUID) -> None:
        """
        Seed the default categories on first use.

        Raises:
            SeedingError: If categories are still missing after seeding
        """
        categories = await self._storage.get_budget_categories()
        if categories or not self._settings.seed_default_categories:
            return

        try:
            await self._storage.initialize_default_budget_categories(month)
            categories = await self._storage.get_budget_categories()
        except Exception as e:
            await self._seeding_failed(str(e), correlation_id)
            raise SeedingError(f"Failed to initialize budget categories: {e}") from e

        if not categories:
            await self._seeding_failed("no categories after seeding", correlation_id)
            raise SeedingError("Failed to initialize budget categories")

        if self._audit_logger:
            await self._audit_logger.log_categories_seeded(
                category_count=len(categories),
                correlation_id=correlation_id,
            )

    async def _seeding_failed(self, message: str, correlation_id: UUID) -> None:
        logger.error("seeding_failed", error=message)
        if self._audit_logger:
            await self._audit_logger.log_seeding_failed(
                error_message=message,
                correlation_id=correlation_id,
            )

    async def _derive(
        self,
        summary: BudgetSummary,
        month: Month,
        correlation_id: UUID,
    ) -> BudgetState:
        recurring, debt, goals = await self._gather_snapshots(correlation_id)

        fallbacks: list[tuple[str, Exception]] = []
        state = derive_budget_state(
            summary,
            month,
            recurring=recurring,
            debt=debt,
            goals=goals,
            projection=self._projection,
            on_fallback=lambda metric, exc: fallbacks.append((metric, exc)),
        )

        if self._audit_logger:
            for metric, exc in fallbacks:
                await self._audit_logger.log_aggregation_fallback(
                    metric=metric,
                    month=month.label,
                    error_message=str(exc),
                    correlation_id=correlation_id,
                )
        return state

    async def _gather_snapshots(
        self,
        correlation_id: UUID,
    ) -> tuple[RecurringSnapshot, DebtSnapshot, GoalSnapshot]:
        """Read every signal source; a failing source reads as all-zero."""
        recurring = await self._read_snapshot(
            "recurring", self._recurring, RecurringSnapshot, correlation_id,
        )
        debt = await self._read_snapshot(
            "debts", self._debts, DebtSnapshot, correlation_id,
        )
        goals = await self._read_snapshot(
            "goals", self._goals, GoalSnapshot, correlation_id,
        )
        return recurring, debt, goals

    async def _read_snapshot(self, name, source, empty, correlation_id: UUID):
        if source is None:
            return empty()
        try:
            return await source.get_snapshot()
        except Exception as e:
            logger.warning("snapshot_failed", source=name, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service=name,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return empty()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def _mutate(
        self,
        action: str,
        operation: Callable[[UUID], Awaitable[None]],
    ) -> bool:
        """
        Run one persistence call, then reload.

        On failure the error is set and the current state is left alone.
        """
        correlation_id = create_correlation_id()
        self._in_flight += 1
        try:
            try:
                await operation(correlation_id)
            except Exception as e:
                self._error = MutationError(action, e)
                logger.error("mutation_failed", action=action, error=str(e))
                if self._audit_logger:
                    await self._audit_logger.log_mutation_failed(
                        action=action,
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
                return False

            await self._load()
            return True
        finally:
            self._in_flight -= 1

    async def add_category(
        self,
        name: str,
        icon: str = IconKey.SHOPPING_CART.value,
        color: str = "",
        allocated=None,
    ) -> bool:
        """
        Create a category; a positive allocation is written for the active month.

        The allocation write is a second step. If it fails the category
        stays created, the call still returns True, and error holds a
        MutationError for set_allocation.
        """
        month = self._active_month
        allocation_errors: list[Exception] = []

        async def operation(correlation_id: UUID) -> None:
            category = await self._storage.create_budget_category(
                BudgetCategoryCreate(name=name, icon=icon, color=color)
            )
            if self._audit_logger:
                await self._audit_logger.log_category_created(
                    category_id=category.id,
                    name=category.name,
                    correlation_id=correlation_id,
                )

            amount = as_amount(allocated)
            if amount <= 0:
                return
            try:
                await self._storage.save_budget_entry(BudgetEntry(
                    category_id=category.id,
                    month=month.first_day,
                    allocated=amount,
                ))
            except Exception as e:
                allocation_errors.append(e)
                logger.error("mutation_failed", action="set_allocation", error=str(e))
                if self._audit_logger:
                    await self._audit_logger.log_mutation_failed(
                        action="set_allocation",
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )

        created = await self._mutate("add_category", operation)
        if created and allocation_errors:
            self._error = MutationError("set_allocation", allocation_errors[0])
        return created

    async def update_category(
        self,
        category_id: int,
        name: Optional[str] = None,
        icon: Optional[str] = None,
        color: Optional[str] = None,
    ) -> bool:
        async def operation(correlation_id: UUID) -> None:
            patch = BudgetCategoryUpdate(name=name, icon=icon, color=color)
            updated: BudgetCategory = await self._storage.update_budget_category(
                category_id, patch,
            )
            if self._audit_logger:
                await self._audit_logger.log_category_updated(
                    category_id=updated.id,
                    changes=patch.model_dump(mode="json", exclude_none=True),
                    correlation_id=correlation_id,
                )

        return await self._mutate("update_category", operation)

    async def delete_category(self, category_id: int) -> bool:
        """Delete a category along with its entries."""
        async def operation(correlation_id: UUID) -> None:
            deleted = await self._storage.delete_budget_category(category_id)
            if not deleted:
                raise NotFoundError(f"Category not found: {category_id}")
            if self._audit_logger:
                await self._audit_logger.log_category_deleted(
                    category_id=category_id,
                    correlation_id=correlation_id,
                )

        return await self._mutate("delete_category", operation)

    async def set_allocation(self, category_id: int, amount) -> bool:
        """
        Set the active month's allocation for a category.

        Spent is carried over from the state already on screen, not
        re-read from storage. While a month switch is still loading, the
        state on screen belongs to the old month, so spent is read from
        the new month's stored entry instead.
        """
        month = self._active_month

        async def operation(correlation_id: UUID) -> None:
            if self._summary_month == month:
                category = self._state.find(category_id)
                if category is None:
                    raise NotFoundError("Category not found")
                spent = category.spent
            else:
                spent = await self._stored_spent(category_id, month)

            entry = await self._storage.save_budget_entry(BudgetEntry(
                category_id=category_id,
                month=month.first_day,
                allocated=as_amount(amount),
                spent=spent,
            ))
            if self._audit_logger:
                await self._audit_logger.log_allocation_set(
                    category_id=category_id,
                    month=month.label,
                    amount=str(entry.allocated),
                    correlation_id=correlation_id,
                )

        return await self._mutate("set_allocation", operation)

    async def _stored_spent(self, category_id: int, month: Month) -> Decimal:
        categories = await self._storage.get_budget_categories()
        if not any(c.id == category_id for c in categories):
            raise NotFoundError("Category not found")
        for entry in await self._storage.get_budget_entries_for_month(month):
            if entry.category_id == category_id:
                return entry.spent
        return Decimal("0")

    async def add_transaction(
        self,
        category_id: int,
        amount,
        description: Optional[str] = None,
    ) -> bool:
        """
        Record spending against a category, dated today.

        The amount is stored as a magnitude: -45 and 45 both add 45 to spent.
        """
        async def operation(correlation_id: UUID) -> None:
            transaction = await self._storage.add_budget_transaction(BudgetTransaction(
                category_id=category_id,
                amount=abs(as_amount(amount)),
                date=self._today(),
                description=description or self._settings.default_transaction_description,
            ))
            if self._audit_logger:
                await self._audit_logger.log_transaction_added(
                    category_id=category_id,
                    amount=str(transaction.amount),
                    transaction_date=transaction.date.isoformat(),
                    correlation_id=correlation_id,
                )

        return await self._mutate("add_transaction", operation)


# =============================================================================
# FACTORY
# =============================================================================

def create_app_components(
    use_storage: bool = True,
    recurring: Optional[RecurringObligationsSource] = None,
    debts: Optional[DebtSource] = None,
    goals: Optional[GoalSource] = None,
) -> tuple[BudgetPeriodController, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the configured hosted backend.
                    Set to False to run fully in memory.
        recurring, debts, goals: Optional signal sources

    Returns:
        (controller, sheets_client)
    """
    sheets_client = None
    budget_settings = get_settings().budget

    if use_storage and budget_settings.storage_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            storage = GoogleSheetsBudgetStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            storage = InMemoryBudgetStorage()
            audit_logger = AuditLogger(InMemoryAuditStorage())
    else:
        storage = InMemoryBudgetStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    controller = BudgetPeriodController(
        storage,
        recurring=recurring,
        debts=debts,
        goals=goals,
        audit_logger=audit_logger,
        settings=budget_settings,
    )
    return controller, sheets_client
