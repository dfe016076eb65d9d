"""
Tests for the audit logger.
"""

import pytest

from src.audit import AuditLogger, create_correlation_id
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.services.storage import AuditStorageInterface, InMemoryAuditStorage


class FailingAuditStorage(AuditStorageInterface):
    async def append_event(self, event: AuditEvent) -> bool:
        raise ConnectionError("sheet unavailable")

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return []


class TestAuditLogger:
    """Tests for AuditLogger."""

    @pytest.mark.asyncio
    async def test_events_reach_storage(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        await logger.log_weekly_pay(
            staff_id="s1",
            transaction_id="t1",
            paid_now="400.00",
            held="600.00",
            correlation_id=correlation_id,
        )

        event = storage.events[0]
        assert event.event_type == AuditEventType.WEEKLY_PAY_PROCESSED
        assert event.entity_id == "s1"
        assert event.correlation_id == correlation_id

    @pytest.mark.asyncio
    async def test_without_storage_only_logs_locally(self):
        event = AuditEvent(event_type=AuditEventType.PROFILE_RESET, description="Reset")
        assert await AuditLogger().log(event) is True

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_raise(self):
        logger = AuditLogger(FailingAuditStorage())
        event = AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            description="Could not save shop_staff",
        )
        assert await logger.log(event) is False
