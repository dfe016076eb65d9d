"""
Storage Services Package

Provides the abstract key-value interface and its backends:
in-memory, local JSON files and Google Sheets.
"""

from src.services.storage.interface import (
    LEDGER_KEYS,
    PROFILE_KEY,
    STAFF_KEY,
    TRANSACTIONS_KEY,
    AuditStorageInterface,
    KeyValueStore,
    StorageConnectionError,
    StorageError,
)
from src.services.storage.memory import InMemoryAuditStorage, InMemoryKeyValueStore
from src.services.storage.local_file import LocalJsonKeyValueStore
from src.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsKeyValueStore,
)

__all__ = [
    # Keys
    "LEDGER_KEYS",
    "PROFILE_KEY",
    "STAFF_KEY",
    "TRANSACTIONS_KEY",
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStore",
    # Exceptions
    "StorageConnectionError",
    "StorageError",
    # Backends
    "InMemoryAuditStorage",
    "InMemoryKeyValueStore",
    "LocalJsonKeyValueStore",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsKeyValueStore",
]
