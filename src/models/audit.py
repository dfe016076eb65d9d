"""
Audit Models for Shop Ledger

Every change to the ledger is logged for audit purposes:
transactions added/edited/removed, staff registered, pay processed,
held pay settled, profile changes, and failures of the things around
the ledger (storage, advice service).

Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_REMOVED = "transaction_removed"

    # Staff and payroll
    STAFF_REGISTERED = "staff_registered"
    STAFF_UPDATED = "staff_updated"
    WEEKLY_PAY_PROCESSED = "weekly_pay_processed"
    MONTHLY_HOLD_SETTLED = "monthly_hold_settled"
    SETTLEMENT_SKIPPED = "settlement_skipped"

    # Shop profile
    ONBOARDING_COMPLETED = "onboarding_completed"
    PROFILE_UPDATED = "profile_updated"
    PROFILE_RESET = "profile_reset"

    # Rejected input
    VALIDATION_FAILED = "validation_failed"

    # Advice
    ADVICE_GENERATED = "advice_generated"
    ADVICE_FALLBACK = "advice_fallback"

    # Reports
    DATA_EXPORTED = "data_exported"

    # System events
    LEDGER_LOADED = "ledger_loaded"
    PERSISTENCE_FAILED = "persistence_failed"
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

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
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
        description="Type of entity (e.g., 'transaction', 'staff', 'profile')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one payroll run)"
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
        event = AuditEventBuilder.transaction_added(txn_id, "INCOME", "120.00", "Tea Sales")
        event = AuditEventBuilder.weekly_pay_processed(staff_id, txn_id, "400.00", "600.00")
    """

    @staticmethod
    def transaction_added(
        transaction_id: str,
        transaction_type: str,
        amount: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{transaction_type.title()} recorded: ₹{amount} ({category})",
            details={
                "type": transaction_type,
                "amount": amount,
                "category": category,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_updated(
        transaction_id: str,
        amount: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction edited: ₹{amount} ({category})",
            details={
                "amount": amount,
                "category": category,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_removed(
        transaction_id: str,
        existed: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REMOVED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=(
                "Transaction deleted" if existed
                else "Delete requested for unknown transaction"
            ),
            details={"existed": existed},
            is_user_action=True,
        )

    @staticmethod
    def staff_registered(
        staff_id: str,
        name: str,
        weekly_base_pay: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STAFF_REGISTERED,
            entity_type="staff",
            entity_id=staff_id,
            correlation_id=correlation_id,
            description=f"Staff registered: {name}",
            details={"weekly_base_pay": weekly_base_pay},
            is_user_action=True,
        )

    @staticmethod
    def staff_updated(
        staff_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STAFF_UPDATED,
            entity_type="staff",
            entity_id=staff_id,
            correlation_id=correlation_id,
            description=f"Staff profile corrected: {', '.join(fields) or 'no changes'}",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def weekly_pay_processed(
        staff_id: str,
        transaction_id: str,
        paid_now: str,
        held: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WEEKLY_PAY_PROCESSED,
            entity_type="staff",
            entity_id=staff_id,
            correlation_id=correlation_id,
            description=f"Weekly pay processed: paid ₹{paid_now}, held ₹{held}",
            details={
                "transaction_id": transaction_id,
                "paid_now": paid_now,
                "held": held,
            },
            is_user_action=True,
        )

    @staticmethod
    def monthly_hold_settled(
        staff_id: str,
        transaction_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTHLY_HOLD_SETTLED,
            entity_type="staff",
            entity_id=staff_id,
            correlation_id=correlation_id,
            description=f"Month-end hold settled: ₹{amount}",
            details={
                "transaction_id": transaction_id,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def settlement_skipped(
        staff_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_SKIPPED,
            entity_type="staff",
            entity_id=staff_id,
            correlation_id=correlation_id,
            description="Settlement skipped: nothing held",
            is_user_action=True,
        )

    @staticmethod
    def onboarding_completed(
        business_name: str,
        has_location: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ONBOARDING_COMPLETED,
            entity_type="profile",
            correlation_id=correlation_id,
            description=f"Shop set up: {business_name}",
            details={"has_location": has_location},
            is_user_action=True,
        )

    @staticmethod
    def profile_updated(
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_UPDATED,
            entity_type="profile",
            correlation_id=correlation_id,
            description="Shop profile updated",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def profile_reset(correlation_id: Optional[UUID] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_RESET,
            severity=AuditSeverity.WARNING,
            entity_type="profile",
            correlation_id=correlation_id,
            description="Shop profile reset",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        operation: str,
        field: Optional[str],
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Rejected {operation}: {message}"[:500],
            details={
                "operation": operation,
                "field": field,
            },
            error_message=message,
            is_user_action=True,
        )

    @staticmethod
    def advice_generated(
        transaction_count: int,
        used_fallback: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.ADVICE_FALLBACK if used_fallback
                else AuditEventType.ADVICE_GENERATED
            ),
            severity=AuditSeverity.WARNING if used_fallback else AuditSeverity.INFO,
            entity_type="advice",
            correlation_id=correlation_id,
            description=(
                "Advice service unavailable, showed fallback" if used_fallback
                else "Business advice generated"
            ),
            details={"transaction_count": transaction_count},
        )

    @staticmethod
    def data_exported(
        dataset: str,
        row_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_EXPORTED,
            entity_type=dataset,
            correlation_id=correlation_id,
            description=f"Exported {row_count} {dataset} rows",
            details={"row_count": row_count},
            is_user_action=True,
        )

    @staticmethod
    def ledger_loaded(
        transaction_count: int,
        staff_count: int,
        configured: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            correlation_id=correlation_id,
            description=(
                f"Ledger loaded: {transaction_count} transactions, "
                f"{staff_count} staff"
            ),
            details={
                "transaction_count": transaction_count,
                "staff_count": staff_count,
                "configured": configured,
            },
        )

    @staticmethod
    def persistence_failed(
        key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            description=f"Could not save {key}",
            error_message=error_message,
            details={"key": key},
            correlation_id=correlation_id,
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
