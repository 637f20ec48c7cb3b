"""Services package."""

from finance_tracker.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsKeyValueStore,
    HttpKeyValueStore,
    InMemoryKeyValueStore,
    KeyValueStoreInterface,
    NotFoundError,
    StorageError,
)
from finance_tracker.services.persistence import PersistenceFacade

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsKeyValueStore",
    "HttpKeyValueStore",
    "InMemoryKeyValueStore",
    "KeyValueStoreInterface",
    "NotFoundError",
    "StorageError",
    # Persistence
    "PersistenceFacade",
]
