"""
In-Memory Storage

Keeps values in a dict. Nothing survives the process; used by tests and
for sessions started with STORAGE_BACKEND=memory.
"""

import copy
import json
from typing import Any, Optional

from src.models.audit import AuditEvent
from src.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStore,
    StorageError,
)


class InMemoryKeyValueStore(KeyValueStore):
    """
    Dict-backed key-value store.

    Values are checked to be JSON-serializable on write, so a test using
    this store catches anything the real backends would reject.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self.write_count = 0

    async def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        try:
            json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {key} is not JSON-serializable: {e}")
        self._data[key] = copy.deepcopy(value)
        self.write_count += 1

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
