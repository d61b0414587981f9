"""
Audit Logger

DESIGN DECISION: Every mutation and every silent recovery in the engine
is logged. This provides:
1. Traceability of user changes
2. Debugging capability when a load falls back to defaults
3. A record of copy-forward and aggregation fallbacks that never reach the UI

The audit logger:
- Is async to not block the load sequence
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from budget_engine.models.audit import AuditEvent, AuditEventBuilder
from budget_engine.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility), if configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    # ------------------------------------------------------------------
    # Loading and navigation
    # ------------------------------------------------------------------

    async def log_budget_loaded(
        self,
        month: str,
        category_count: int,
        total_allocated: str,
        sequence: int,
        correlation_id: UUID,
    ) -> None:
        """Log a completed load."""
        await self.log(AuditEventBuilder.budget_loaded(
            month=month,
            category_count=category_count,
            total_allocated=total_allocated,
            sequence=sequence,
            correlation_id=correlation_id,
        ))

    async def log_budget_load_failed(
        self,
        month: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a load that fell back to default categories."""
        await self.log(AuditEventBuilder.budget_load_failed(
            month=month,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_stale_load_discarded(
        self,
        month: str,
        sequence: int,
        latest_sequence: int,
        correlation_id: UUID,
    ) -> None:
        """Log a load result that lost the race to a newer one."""
        await self.log(AuditEventBuilder.stale_load_discarded(
            month=month,
            sequence=sequence,
            latest_sequence=latest_sequence,
            correlation_id=correlation_id,
        ))

    async def log_period_changed(
        self,
        from_month: str,
        to_month: str,
        correlation_id: UUID,
    ) -> None:
        """Log navigation to another month."""
        await self.log(AuditEventBuilder.period_changed(
            from_month=from_month,
            to_month=to_month,
            correlation_id=correlation_id,
        ))

    async def log_period_parse_failed(
        self,
        label: str,
        error_message: str,
    ) -> None:
        """Log an unparseable period label."""
        await self.log(AuditEventBuilder.period_parse_failed(
            label=label,
            error_message=error_message,
        ))

    # ------------------------------------------------------------------
    # Seeding and copy-forward
    # ------------------------------------------------------------------

    async def log_categories_seeded(
        self,
        category_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log default category creation."""
        await self.log(AuditEventBuilder.categories_seeded(
            category_count=category_count,
            correlation_id=correlation_id,
        ))

    async def log_seeding_failed(
        self,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a failed default category creation."""
        await self.log(AuditEventBuilder.seeding_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_entries_copied_forward(
        self,
        source_month: str,
        target_month: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a copy-forward that filled an empty month."""
        await self.log(AuditEventBuilder.entries_copied_forward(
            source_month=source_month,
            target_month=target_month,
            correlation_id=correlation_id,
        ))

    async def log_copy_forward_failed(
        self,
        source_month: str,
        target_month: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a swallowed copy-forward failure."""
        await self.log(AuditEventBuilder.copy_forward_failed(
            source_month=source_month,
            target_month=target_month,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_aggregation_fallback(
        self,
        metric: str,
        month: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a month-specific calculation replaced by its fallback."""
        await self.log(AuditEventBuilder.aggregation_fallback(
            metric=metric,
            month=month,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def log_category_created(
        self,
        category_id: int,
        name: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.category_created(
            category_id=category_id,
            name=name,
            correlation_id=correlation_id,
        ))

    async def log_category_updated(
        self,
        category_id: int,
        changes: dict,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.category_updated(
            category_id=category_id,
            changes=changes,
            correlation_id=correlation_id,
        ))

    async def log_category_deleted(
        self,
        category_id: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.category_deleted(
            category_id=category_id,
            correlation_id=correlation_id,
        ))

    async def log_allocation_set(
        self,
        category_id: int,
        month: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.allocation_set(
            category_id=category_id,
            month=month,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_transaction_added(
        self,
        category_id: int,
        amount: str,
        transaction_date: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_added(
            category_id=category_id,
            amount=amount,
            transaction_date=transaction_date,
            correlation_id=correlation_id,
        ))

    async def log_mutation_failed(
        self,
        action: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a mutation that left the previous state in place."""
        await self.log(AuditEventBuilder.mutation_failed(
            action=action,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    # ------------------------------------------------------------------
    # System
    # ------------------------------------------------------------------

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a load sequence or a user mutation.
    Pass it through all subsequent operations.
    """
    return uuid4()
