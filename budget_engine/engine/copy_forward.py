"""
Copy-Forward Resolver

When the user lands on a month with no budget entries, the previous
month's allocations are carried over so the budget is never blank.

Best effort only: a failure is logged and audited, then forgotten. It
never blocks the month switch.
"""

from typing import Optional
from uuid import UUID

import structlog

from budget_engine.audit import AuditLogger
from budget_engine.models.month import Month
from budget_engine.services.storage import BudgetStorageInterface


logger = structlog.get_logger()


class CopyForwardResolver:
    """Fills an empty month from the month the user was just viewing."""

    def __init__(
        self,
        storage: BudgetStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def resolve(
        self,
        target: Month,
        source: Month,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Copy source's entries into target if target has none.

        Returns True if anything was copied. Never raises.
        """
        try:
            existing = await self._storage.get_budget_entries_for_month(target)
            if existing:
                return False

            copied = await self._storage.copy_budget_entries_from_previous_month(
                target, source,
            )
        except Exception as e:
            logger.warning(
                "copy_forward_failed",
                source_month=source.label,
                target_month=target.label,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_copy_forward_failed(
                    source_month=source.label,
                    target_month=target.label,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return False

        if copied and self._audit_logger:
            await self._audit_logger.log_entries_copied_forward(
                source_month=source.label,
                target_month=target.label,
                correlation_id=correlation_id,
            )
        return copied
