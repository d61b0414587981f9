"""
Audit Models for the Budget Engine

Every mutation and every non-obvious recovery in the engine is logged
for audit purposes. This provides:
1. A history of what the user changed and when
2. Debugging information when a load falls back to defaults
3. Visibility into silent recoveries (copy-forward, aggregation fallbacks)

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Loading
    BUDGET_LOADED = "budget_loaded"
    BUDGET_LOAD_FAILED = "budget_load_failed"
    STALE_LOAD_DISCARDED = "stale_load_discarded"

    # Period navigation
    PERIOD_CHANGED = "period_changed"
    PERIOD_PARSE_FAILED = "period_parse_failed"

    # Seeding and copy-forward
    CATEGORIES_SEEDED = "categories_seeded"
    SEEDING_FAILED = "seeding_failed"
    ENTRIES_COPIED_FORWARD = "entries_copied_forward"
    COPY_FORWARD_FAILED = "copy_forward_failed"

    # Aggregation
    AGGREGATION_FALLBACK = "aggregation_fallback"

    # Mutations
    CATEGORY_CREATED = "category_created"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"
    ALLOCATION_SET = "allocation_set"
    TRANSACTION_ADDED = "transaction_added"
    MUTATION_FAILED = "mutation_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'category', 'entry', 'month')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - one id per load sequence or mutation
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.allocation_set(category_id, month, amount, correlation_id)
    """

    @staticmethod
    def budget_loaded(
        month: str,
        category_count: int,
        total_allocated: str,
        sequence: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_LOADED,
            severity=AuditSeverity.DEBUG,
            entity_type="month",
            entity_id=month,
            correlation_id=correlation_id,
            description=f"Loaded {category_count} categories for {month}",
            details={
                "category_count": category_count,
                "total_allocated": total_allocated,
                "sequence": sequence,
            },
        )

    @staticmethod
    def budget_load_failed(
        month: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="month",
            entity_id=month,
            correlation_id=correlation_id,
            description=f"Loading {month} failed, showing fallback categories",
            error_message=error_message,
        )

    @staticmethod
    def stale_load_discarded(
        month: str,
        sequence: int,
        latest_sequence: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_LOAD_DISCARDED,
            severity=AuditSeverity.DEBUG,
            entity_type="month",
            entity_id=month,
            correlation_id=correlation_id,
            description=f"Discarded result of load #{sequence} for {month}",
            details={
                "sequence": sequence,
                "latest_sequence": latest_sequence,
            },
        )

    @staticmethod
    def period_changed(
        from_month: str,
        to_month: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERIOD_CHANGED,
            severity=AuditSeverity.DEBUG,
            entity_type="month",
            entity_id=to_month,
            correlation_id=correlation_id,
            description=f"Active period changed from {from_month} to {to_month}",
            details={"from": from_month, "to": to_month},
            is_user_action=True,
        )

    @staticmethod
    def period_parse_failed(
        label: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERIOD_PARSE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="month",
            description=f"Could not parse period label: {label!r}",
            error_message=error_message,
            details={"label": label},
            is_user_action=True,
        )

    @staticmethod
    def categories_seeded(
        category_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORIES_SEEDED,
            entity_type="category",
            correlation_id=correlation_id,
            description=f"Seeded {category_count} default categories",
            details={"category_count": category_count},
        )

    @staticmethod
    def seeding_failed(
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEEDING_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="category",
            correlation_id=correlation_id,
            description="Default category seeding failed",
            error_message=error_message,
        )

    @staticmethod
    def entries_copied_forward(
        source_month: str,
        target_month: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRIES_COPIED_FORWARD,
            entity_type="month",
            entity_id=target_month,
            correlation_id=correlation_id,
            description=f"Copied budget entries from {source_month} into {target_month}",
            details={"source_month": source_month, "target_month": target_month},
        )

    @staticmethod
    def copy_forward_failed(
        source_month: str,
        target_month: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COPY_FORWARD_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="month",
            entity_id=target_month,
            correlation_id=correlation_id,
            description=f"Could not copy entries from {source_month} into {target_month}",
            error_message=error_message,
            details={"source_month": source_month, "target_month": target_month},
        )

    @staticmethod
    def aggregation_fallback(
        metric: str,
        month: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AGGREGATION_FALLBACK,
            severity=AuditSeverity.WARNING,
            entity_type="metric",
            entity_id=metric,
            correlation_id=correlation_id,
            description=f"{metric} for {month} fell back to the general figure",
            error_message=error_message,
            details={"metric": metric, "month": month},
        )

    @staticmethod
    def category_created(
        category_id: int,
        name: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_CREATED,
            entity_type="category",
            entity_id=str(category_id),
            correlation_id=correlation_id,
            description=f"Category created: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def category_updated(
        category_id: int,
        changes: dict,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_UPDATED,
            entity_type="category",
            entity_id=str(category_id),
            correlation_id=correlation_id,
            description=f"Category {category_id} updated",
            details={"changes": changes},
            is_user_action=True,
        )

    @staticmethod
    def category_deleted(
        category_id: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_DELETED,
            entity_type="category",
            entity_id=str(category_id),
            correlation_id=correlation_id,
            description=f"Category {category_id} deleted",
            is_user_action=True,
        )

    @staticmethod
    def allocation_set(
        category_id: int,
        month: str,
        amount: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALLOCATION_SET,
            entity_type="entry",
            entity_id=str(category_id),
            correlation_id=correlation_id,
            description=f"Allocated {amount} to category {category_id} for {month}",
            details={"month": month, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def transaction_added(
        category_id: int,
        amount: str,
        transaction_date: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=str(category_id),
            correlation_id=correlation_id,
            description=f"Spent {amount} in category {category_id}",
            details={"amount": amount, "date": transaction_date},
            is_user_action=True,
        )

    @staticmethod
    def mutation_failed(
        action: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="mutation",
            entity_id=action,
            correlation_id=correlation_id,
            description=f"Mutation failed: {action}",
            error_message=error_message,
            details={"action": action},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
