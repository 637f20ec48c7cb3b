"""AI Agents package."""

from finance_tracker.agents.insights_agent import (
    AgentError,
    InsightsAgent,
    extract_json,
)

__all__ = [
    "AgentError",
    "InsightsAgent",
    "extract_json",
]
