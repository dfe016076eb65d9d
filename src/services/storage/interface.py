"""
Abstract Storage Interface

The ledger is persisted as a few independent JSON blobs in a key-value
store: the shop profile, the transaction list and the staff list. Each is
loaded once at start and rewritten in full after every mutation.

Backends:
1. In-memory (tests, throwaway sessions)
2. Local JSON files (default, works offline)
3. Google Sheets (owner can open the data in Sheets)

The interface is intentionally simple - get, set, delete.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from src.models.audit import AuditEvent


PROFILE_KEY = "shop_profile"
TRANSACTIONS_KEY = "shop_transactions"
STAFF_KEY = "shop_staff"

LEDGER_KEYS = (PROFILE_KEY, TRANSACTIONS_KEY, STAFF_KEY)


class KeyValueStore(ABC):
    """
    Abstract durable key-value store.

    Values are JSON-compatible structures (dicts, lists, strings, numbers).
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Read the value stored under `key`.

        Returns:
            The stored value, or None if the key was never written

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """
        Replace the value stored under `key`.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Remove `key`.

        Returns:
            True if something was removed
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


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
