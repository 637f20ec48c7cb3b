"""
HTTP Key-Value Store

Client side of the persistence HTTP contract served by api/server.py:

    POST   /save        {key, data}
    GET    /get/{key}   -> {data}
    DELETE /delete/{key}
    GET    /list/{prefix} -> {keys}
    POST   /save-all    {data: {key: value, ...}}

Errors come back as non-2xx responses with a {message} body.

Every call is a single attempt. A failure surfaces immediately as
StorageError (ConnectionError when the server is unreachable) so the
UI can tell the user; nothing is retried behind their back.
"""

from typing import Any, Optional
from urllib.parse import quote

import requests

from finance_tracker.config import PersistenceApiSettings, get_settings
from finance_tracker.services.storage.interface import (
    ConnectionError,
    KeyValueStoreInterface,
    StorageError,
)


class HttpKeyValueStore(KeyValueStoreInterface):

    def __init__(
        self,
        settings: Optional[PersistenceApiSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self._settings = settings or get_settings().persistence
        self._session = session or requests.Session()
        self._base_url = self._settings.base_url.rstrip("/")

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(
                method,
                url,
                timeout=self._settings.timeout_seconds,
                **kwargs,
            )
        except requests.ConnectionError as e:
            raise ConnectionError(f"Persistence service unreachable at {url}: {e}")
        except requests.RequestException as e:
            raise StorageError(f"{method} {path} failed: {e}")
        return response

    def _raise_for_status(self, response: requests.Response, action: str) -> None:
        if response.ok:
            return
        try:
            message = response.json().get("message", response.text)
        except ValueError:
            message = response.text
        raise StorageError(f"{action} failed ({response.status_code}): {message}")

    def _json(self, response: requests.Response, action: str) -> dict:
        try:
            body = response.json()
        except ValueError as e:
            raise StorageError(f"{action} returned invalid JSON: {e}")
        if not isinstance(body, dict):
            raise StorageError(f"{action} returned an unexpected payload")
        return body

    async def save(self, key: str, data: Any) -> bool:
        response = self._request("POST", "/save", json={"key": key, "data": data})
        self._raise_for_status(response, f"Saving {key}")
        return True

    async def save_many(self, items: dict[str, Any]) -> int:
        response = self._request("POST", "/save-all", json={"data": items})
        self._raise_for_status(response, f"Saving {len(items)} keys")
        body = self._json(response, "save-all")
        return int(body.get("saved", len(items)))

    async def get(self, key: str) -> Optional[Any]:
        response = self._request("GET", f"/get/{quote(key, safe='')}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response, f"Loading {key}")
        return self._json(response, f"get {key}").get("data")

    async def delete(self, key: str) -> bool:
        response = self._request("DELETE", f"/delete/{quote(key, safe='')}")
        if response.status_code == 404:
            return False
        self._raise_for_status(response, f"Deleting {key}")
        return True

    async def list_keys(self, prefix: str = "") -> list[str]:
        path = f"/list/{quote(prefix, safe='')}" if prefix else "/list"
        response = self._request("GET", path)
        self._raise_for_status(response, "Listing keys")
        keys = self._json(response, "list").get("keys", [])
        return sorted(keys)
