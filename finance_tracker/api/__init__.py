"""HTTP API package."""

from finance_tracker.api.server import create_api

__all__ = ["create_api"]
