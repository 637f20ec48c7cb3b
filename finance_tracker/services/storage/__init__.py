"""
Storage Services Package

Provides the abstract key-value interface and its implementations:
in-memory (tests, local server), Google Sheets (durable) and HTTP
(remote persistence API).
"""

from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    KeyValueStoreInterface,
    NotFoundError,
    StorageError,
)
from finance_tracker.services.storage.memory import InMemoryKeyValueStore
from finance_tracker.services.storage.http_client import HttpKeyValueStore
from finance_tracker.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsKeyValueStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStoreInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "InMemoryKeyValueStore",
    "HttpKeyValueStore",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsKeyValueStore",
]
