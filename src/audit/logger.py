"""
Audit Logger

Every change to the ledger is logged. This gives:
1. Complete traceability of money movements
2. Debugging capability
3. A history the shop owner can look back on

The audit logger:
- Is async so it can write to remote storage without blocking callers
- Never raises: a failed audit write is logged locally and ignored
- Supports correlation IDs to trace related events
"""

import logging
import sys
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder
from src.services.storage import AuditStorageInterface


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
    format: Literal["json", "console"] = "json",
) -> None:
    """Configure structlog (and the stdlib logging it sits on) once at startup."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
    )

    if format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

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
            renderer,
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
    2. Audit storage (for persistence), when one is configured
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
        self._logger = structlog.get_logger("audit")

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
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_added(
        self,
        transaction_id: str,
        transaction_type: str,
        amount: Decimal,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_added(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=str(amount),
            category=category,
            correlation_id=correlation_id,
        ))

    async def log_transaction_updated(
        self,
        transaction_id: str,
        amount: Decimal,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            amount=str(amount),
            category=category,
            correlation_id=correlation_id,
        ))

    async def log_transaction_removed(
        self,
        transaction_id: str,
        existed: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_removed(
            transaction_id=transaction_id,
            existed=existed,
            correlation_id=correlation_id,
        ))

    async def log_staff_registered(
        self,
        staff_id: str,
        name: str,
        weekly_base_pay: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.staff_registered(
            staff_id=staff_id,
            name=name,
            weekly_base_pay=str(weekly_base_pay),
            correlation_id=correlation_id,
        ))

    async def log_staff_updated(
        self,
        staff_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.staff_updated(
            staff_id=staff_id,
            fields=fields,
            correlation_id=correlation_id,
        ))

    async def log_weekly_pay(
        self,
        staff_id: str,
        transaction_id: str,
        paid_now: Decimal,
        held: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.weekly_pay_processed(
            staff_id=staff_id,
            transaction_id=transaction_id,
            paid_now=str(paid_now),
            held=str(held),
            correlation_id=correlation_id,
        ))

    async def log_monthly_settlement(
        self,
        staff_id: str,
        transaction_id: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.monthly_hold_settled(
            staff_id=staff_id,
            transaction_id=transaction_id,
            amount=str(amount),
            correlation_id=correlation_id,
        ))

    async def log_settlement_skipped(
        self,
        staff_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.settlement_skipped(
            staff_id=staff_id,
            correlation_id=correlation_id,
        ))

    async def log_onboarding_completed(
        self,
        business_name: str,
        has_location: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.onboarding_completed(
            business_name=business_name,
            has_location=has_location,
            correlation_id=correlation_id,
        ))

    async def log_profile_updated(
        self,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.profile_updated(
            fields=fields,
            correlation_id=correlation_id,
        ))

    async def log_profile_reset(self, correlation_id: Optional[UUID] = None) -> None:
        await self.log(AuditEventBuilder.profile_reset(correlation_id=correlation_id))

    async def log_validation_failed(
        self,
        operation: str,
        field: Optional[str],
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            operation=operation,
            field=field,
            message=message,
            correlation_id=correlation_id,
        ))

    async def log_advice(
        self,
        transaction_count: int,
        used_fallback: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.advice_generated(
            transaction_count=transaction_count,
            used_fallback=used_fallback,
            correlation_id=correlation_id,
        ))

    async def log_export(
        self,
        dataset: str,
        row_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.data_exported(
            dataset=dataset,
            row_count=row_count,
            correlation_id=correlation_id,
        ))

    async def log_ledger_loaded(
        self,
        transaction_count: int,
        staff_count: int,
        configured: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.ledger_loaded(
            transaction_count=transaction_count,
            staff_count=staff_count,
            configured=configured,
            correlation_id=correlation_id,
        ))

    async def log_persistence_failed(
        self,
        key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.persistence_failed(
            key=key,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

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

    Use this at the start of a user action (e.g., a payroll run).
    Pass it through all subsequent operations.
    """
    return uuid4()
