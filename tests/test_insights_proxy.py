"""
Tests for the insights proxy client.

Every failure mode must end in a fallback answer, never an exception.
"""

import asyncio
from decimal import Decimal
from uuid import uuid4

import pytest
import requests

from finance_tracker.audit import AuditLogger
from finance_tracker.config import InsightsProxySettings
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.finance import GoalType
from finance_tracker.models.insights import (
    ExpenseLine,
    FinancialSnapshot,
    GoalSnapshot,
    HealthRequest,
    PrioritizeGoalsRequest,
    SpendingAnalysisRequest,
)
from finance_tracker.services.insights import InsightsProxyClient, fallbacks

from conftest import FakeResponse, FakeSession


def make_client(session, audit_storage=None):
    settings = InsightsProxySettings(
        base_url="http://proxy.test/api/openai/",
        timeout_seconds=5,
        fallback_insight_count=3,
    )
    return InsightsProxyClient(
        settings=settings,
        session=session,
        audit_logger=AuditLogger(audit_storage),
    )


@pytest.fixture
def health_request():
    return HealthRequest(
        income=Decimal("4000"),
        expenses=Decimal("3000"),
        savings_rate=25,
        debt_to_income_ratio=10,
    )


class TestAnalyzeHealth:
    """Tests for the analyze-health endpoint."""

    def test_valid_response_is_parsed(self, health_request, audit_storage):
        """Test a well-formed answer is returned as-is."""
        session = FakeSession(FakeResponse(200, {"score": 82, "feedback": "Solid month."}))
        client = make_client(session, audit_storage)

        result = asyncio.run(client.analyze_health(health_request))

        assert result.score == 82
        assert result.is_fallback is False
        method, url, kwargs = session.calls[0]
        assert url == "http://proxy.test/api/openai/analyze-health"
        assert kwargs["timeout"] == 5
        assert kwargs["json"]["savings_rate"] == 25
        assert audit_storage.events[0].event_type == AuditEventType.INSIGHTS_GENERATED

    def test_connection_error_falls_back(self, health_request, audit_storage, connection_refused):
        """Test an unreachable proxy gives the rule-based score."""
        client = make_client(FakeSession(connection_refused), audit_storage)

        result = asyncio.run(client.analyze_health(health_request))

        assert result.is_fallback is True
        assert result.score == 70
        assert result.feedback == fallbacks.FALLBACK_HEALTH_FEEDBACK
        assert audit_storage.events[0].event_type == AuditEventType.INSIGHTS_FALLBACK_USED

    def test_timeout_falls_back(self, health_request):
        """Test a timeout is treated like any other failure."""
        client = make_client(FakeSession(requests.Timeout("too slow")))
        result = asyncio.run(client.analyze_health(health_request))
        assert result.is_fallback is True

    def test_server_error_falls_back(self, health_request):
        """Test a non-2xx response falls back."""
        client = make_client(FakeSession(FakeResponse(502, {"message": "model down"})))
        result = asyncio.run(client.analyze_health(health_request))
        assert result.is_fallback is True

    def test_non_json_body_falls_back(self, health_request):
        """Test a body that is not JSON falls back."""
        client = make_client(FakeSession(FakeResponse(200, None, text="<html>")))
        result = asyncio.run(client.analyze_health(health_request))
        assert result.is_fallback is True

    def test_schema_mismatch_falls_back(self, health_request):
        """Test an out-of-range score is rejected and answered locally."""
        client = make_client(FakeSession(FakeResponse(200, {"score": 250, "feedback": "?"})))
        result = asyncio.run(client.analyze_health(health_request))
        assert result.is_fallback is True
        assert result.score == 70


class TestInsights:
    """Tests for the general insights endpoint."""

    def test_parses_wrapped_list(self):
        """Test insights wrapped in an object are unpacked."""
        body = {"insights": [
            {"type": "Budget Optimization", "description": "Cut dining by $50.", "impact": "$50/month"},
        ]}
        client = make_client(FakeSession(FakeResponse(200, body)))

        result = asyncio.run(client.insights(FinancialSnapshot()))

        assert len(result) == 1
        assert result[0].impact == "$50/month"
        assert result[0].is_fallback is False

    def test_empty_list_falls_back(self):
        """Test an empty answer is replaced by the configured number of generic insights."""
        client = make_client(FakeSession(FakeResponse(200, {"insights": []})))
        result = asyncio.run(client.insights(FinancialSnapshot()))
        assert len(result) == 3
        assert all(insight.is_fallback for insight in result)

    def test_missing_key_falls_back(self):
        """Test an object without the insights key falls back."""
        client = make_client(FakeSession(FakeResponse(200, {"advice": "spend less"})))
        result = asyncio.run(client.insights(FinancialSnapshot()))
        assert all(insight.is_fallback for insight in result)


class TestOtherEndpoints:
    """Tests for categorize, prioritize-goals and analyze-spending."""

    def test_categorize_fallback_uses_keywords(self, connection_refused):
        """Test categorization falls back to keyword matching."""
        client = make_client(FakeSession(connection_refused))
        result = asyncio.run(client.categorize("Netflix monthly"))
        assert result.category == "Subscriptions and Memberships"
        assert result.is_fallback is True

    def test_prioritize_goals_fallback(self, connection_refused):
        """Test goal priorities fall back to the local ranking."""
        goal = GoalSnapshot(
            goal_id=uuid4(),
            name="Emergency",
            type=GoalType.EMERGENCY_FUND,
            target_amount=Decimal("1000"),
            current_amount=Decimal("0"),
        )
        request = PrioritizeGoalsRequest(goals=[goal], snapshot=FinancialSnapshot())
        client = make_client(FakeSession(connection_refused))

        result = asyncio.run(client.prioritize_goals(request))

        assert [p.goal_id for p in result] == [goal.goal_id]
        assert result[0].priority_score == 7

    def test_analyze_spending_fallback(self):
        """Test spending analysis falls back to the local optimizer."""
        request = SpendingAnalysisRequest(
            income=Decimal("1000"),
            expenses=[ExpenseLine(category="Groceries", amount=Decimal("950"), date="2024-01-02")],
        )
        client = make_client(FakeSession(FakeResponse(500, {"message": "boom"})))

        result = asyncio.run(client.analyze_spending(request))

        assert result.is_fallback is True
        assert result.optimization_areas[0].category == "Groceries"

    def test_audit_failure_does_not_break_fallback(self, health_request, connection_refused):
        """Test a broken audit backend never stops the fallback answer."""
        from conftest import RecordingAuditStorage

        client = make_client(FakeSession(connection_refused), RecordingAuditStorage(fail=True))
        result = asyncio.run(client.analyze_health(health_request))
        assert result.is_fallback is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
