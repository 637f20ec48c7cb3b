"""
Abstract Storage Interface

DESIGN DECISION: Persistence is a plain key-value service.
The ledger is stored as JSON blobs under string keys ("months",
"userProfile", "debts_2023-04", ...). Backends only have to store and
return those blobs; they know nothing about debts or goals.
This allows us to:
1. Use in-memory storage for tests and local runs
2. Keep Google Sheets as the durable backend
3. Talk to a remote store over HTTP with the same contract

Values are JSON-compatible Python structures (dict, list, str, numbers).
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from finance_tracker.models.audit import AuditEvent


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for key-value storage.

    Any storage implementation (memory, Google Sheets, HTTP)
    must implement these methods.
    """

    @abstractmethod
    async def save(self, key: str, data: Any) -> bool:
        """
        Store a value under a key, replacing any previous value.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Retrieve the value for a key.

        Returns:
            The stored value, or None if the key does not exist
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete a key.

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    async def list_keys(self, prefix: str = "") -> list[str]:
        """
        List stored keys starting with prefix, sorted.
        """
        pass

    @abstractmethod
    async def save_many(self, items: dict[str, Any]) -> int:
        """
        Store several keys in one request.

        Returns:
            Number of keys written

        Raises:
            StorageError: If the batch fails (one error for the whole batch)
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
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one debt payment).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Key not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
