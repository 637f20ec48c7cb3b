"""
Shared fakes for the test suite.

No test talks to a real network service: HTTP goes through FakeSession,
audit events land in RecordingAuditStorage.
"""

import json

import pytest
import requests

from finance_tracker.services.storage import AuditStorageInterface


class FakeResponse:
    """Just enough of requests.Response for the clients."""

    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else json.dumps(body)

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._body is None:
            raise ValueError("No JSON object could be decoded")
        return self._body


class FakeSession:
    """
    Records every request and answers from a queue.

    Each queued item is either a FakeResponse or an exception instance
    to raise.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def _next(self):
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self._next()

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)


class RecordingAuditStorage(AuditStorageInterface):
    """Keeps appended events in a list; can be told to fail."""

    def __init__(self, fail=False):
        self.events = []
        self.fail = fail

    async def append_event(self, event):
        if self.fail:
            raise RuntimeError("audit sheet unavailable")
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(self, correlation_id):
        return [e for e in self.events if e.correlation_id == correlation_id]

    async def get_recent_events(self, limit=100):
        return list(reversed(self.events))[:limit]


@pytest.fixture
def audit_storage():
    return RecordingAuditStorage()


@pytest.fixture
def connection_refused():
    return requests.ConnectionError("connection refused")
