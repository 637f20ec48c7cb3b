"""
Insights Services Package

Client for the recommendation proxy plus the deterministic local
fallbacks it answers from when the proxy is unavailable.
"""

from finance_tracker.services.insights.proxy import (
    InsightsProxyClient,
    InsightsUnavailableError,
)

__all__ = [
    "InsightsProxyClient",
    "InsightsUnavailableError",
]
