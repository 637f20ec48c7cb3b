"""
In-Memory Key-Value Store

Used by tests and as the default backend of the local API server.
Values are round-tripped through JSON on write so the store behaves
like the remote backends: callers can never mutate a stored value by
holding on to a reference, and non-serializable data fails on save.
"""

import json
from typing import Any, Optional

from finance_tracker.services.storage.interface import (
    KeyValueStoreInterface,
    StorageError,
)


class InMemoryKeyValueStore(KeyValueStoreInterface):

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = self._encode(key, value)

    def _encode(self, key: str, data: Any) -> str:
        try:
            return json.dumps(data)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {key} is not JSON serializable: {e}")

    async def save(self, key: str, data: Any) -> bool:
        self._data[key] = self._encode(key, data)
        return True

    async def save_many(self, items: dict[str, Any]) -> int:
        # Encode everything first: a bad value must not leave a partial batch
        encoded = {key: self._encode(key, data) for key, data in items.items()}
        self._data.update(encoded)
        return len(encoded)

    async def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def list_keys(self, prefix: str = "") -> list[str]:
        return sorted(key for key in self._data if key.startswith(prefix))

    def __len__(self) -> int:
        return len(self._data)
