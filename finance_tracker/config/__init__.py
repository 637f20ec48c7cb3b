"""Configuration package."""

from finance_tracker.config.settings import (
    AppSettings,
    GeminiSettings,
    GoogleSheetsSettings,
    InsightsProxySettings,
    PersistenceApiSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "InsightsProxySettings",
    "PersistenceApiSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
