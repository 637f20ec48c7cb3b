"""
Insights Proxy Client

Sends aggregated snapshots to the recommendation proxy and returns
typed answers. The proxy sits in front of the text-generation service
so the API key never lives in the UI process.

DESIGN DECISION: No proxy failure ever reaches the caller.
Network errors, timeouts, non-2xx responses, bodies that are not JSON
and JSON that does not fit the response models are all normalised to
InsightsUnavailableError inside this module, then answered from
fallbacks.py. Every fallback is marked is_fallback=True, logged and
audited.

Every request is a single attempt; the fallback replaces a retry.
"""

from typing import Any, Callable, Optional, TypeVar
from uuid import UUID

import requests
import structlog
from pydantic import ValidationError

from finance_tracker.audit import AuditLogger
from finance_tracker.config import InsightsProxySettings, get_settings
from finance_tracker.models.insights import (
    CategorizeRequest,
    CategorySuggestion,
    FinancialSnapshot,
    GoalPriority,
    GoalRecommendationSet,
    GoalRecommendationsRequest,
    HealthAssessment,
    HealthRequest,
    Insight,
    PrioritizeGoalsRequest,
    SpendingAnalysisRequest,
    SpendingOptimization,
)
from finance_tracker.services.insights import fallbacks


logger = structlog.get_logger(__name__)

T = TypeVar("T")


class InsightsUnavailableError(Exception):
    """The proxy could not produce a usable answer."""
    pass


class InsightsProxyClient:
    """
    Client for the recommendation proxy with deterministic fallbacks.

    Usage:
        client = InsightsProxyClient()
        health = await client.analyze_health(request)
        if health.is_fallback:
            ...
    """

    def __init__(
        self,
        settings: Optional[InsightsProxySettings] = None,
        session: Optional[requests.Session] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._settings = settings or get_settings().insights
        self._session = session or requests.Session()
        self._audit = audit_logger or AuditLogger()
        self._base_url = self._settings.base_url.rstrip("/")

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _post(self, endpoint: str, payload: dict) -> Any:
        url = f"{self._base_url}/{endpoint}"
        try:
            response = self._session.post(
                url,
                json=payload,
                timeout=self._settings.timeout_seconds,
            )
        except requests.RequestException as e:
            raise InsightsUnavailableError(f"{endpoint}: request failed: {e}")

        if not response.ok:
            raise InsightsUnavailableError(
                f"{endpoint}: proxy returned {response.status_code}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise InsightsUnavailableError(f"{endpoint}: response was not JSON: {e}")

    async def _call(
        self,
        endpoint: str,
        payload: dict,
        parse: Callable[[Any], T],
        fallback: Callable[[], T],
        correlation_id: Optional[UUID] = None,
    ) -> T:
        try:
            try:
                result = parse(self._post(endpoint, payload))
            except (ValidationError, KeyError, TypeError) as e:
                raise InsightsUnavailableError(f"{endpoint}: unexpected payload: {e}")
        except InsightsUnavailableError as e:
            logger.warning("insights_fallback_used", endpoint=endpoint, reason=str(e))
            await self._audit.log_fallback_used(endpoint, str(e), correlation_id)
            return fallback()

        count = len(result) if isinstance(result, list) else 1
        await self._audit.log_insights_generated(endpoint, count, correlation_id)
        return result

    # -------------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------------

    async def insights(
        self,
        snapshot: FinancialSnapshot,
        correlation_id: Optional[UUID] = None,
    ) -> list[Insight]:
        """General recommendations for a month."""

        def parse(body: Any) -> list[Insight]:
            items = body["insights"] if isinstance(body, dict) else body
            insights = [Insight.model_validate(item) for item in items]
            if not insights:
                raise InsightsUnavailableError("insights: proxy returned no insights")
            return insights

        return await self._call(
            "insights",
            snapshot.model_dump(mode="json"),
            parse,
            lambda: fallbacks.fallback_insights(self._settings.fallback_insight_count),
            correlation_id,
        )

    async def categorize(
        self,
        description: str,
        correlation_id: Optional[UUID] = None,
    ) -> CategorySuggestion:
        request = CategorizeRequest(description=description)
        return await self._call(
            "categorize",
            request.model_dump(mode="json"),
            CategorySuggestion.model_validate,
            lambda: fallbacks.fallback_category(description),
            correlation_id,
        )

    async def analyze_health(
        self,
        request: HealthRequest,
        correlation_id: Optional[UUID] = None,
    ) -> HealthAssessment:
        return await self._call(
            "analyze-health",
            request.model_dump(mode="json"),
            HealthAssessment.model_validate,
            lambda: fallbacks.fallback_health(request),
            correlation_id,
        )

    async def prioritize_goals(
        self,
        request: PrioritizeGoalsRequest,
        correlation_id: Optional[UUID] = None,
    ) -> list[GoalPriority]:

        def parse(body: Any) -> list[GoalPriority]:
            items = body["priorities"] if isinstance(body, dict) else body
            return [GoalPriority.model_validate(item) for item in items]

        return await self._call(
            "prioritize-goals",
            request.model_dump(mode="json"),
            parse,
            lambda: fallbacks.prioritize_goals(request.goals, request.snapshot),
            correlation_id,
        )

    async def goal_recommendations(
        self,
        request: GoalRecommendationsRequest,
        correlation_id: Optional[UUID] = None,
    ) -> GoalRecommendationSet:
        return await self._call(
            "goal-recommendations",
            request.model_dump(mode="json"),
            GoalRecommendationSet.model_validate,
            lambda: fallbacks.goal_recommendations(request.goal),
            correlation_id,
        )

    async def analyze_spending(
        self,
        request: SpendingAnalysisRequest,
        correlation_id: Optional[UUID] = None,
    ) -> SpendingOptimization:
        return await self._call(
            "analyze-spending",
            request.model_dump(mode="json"),
            SpendingOptimization.model_validate,
            lambda: fallbacks.optimize_spending(request),
            correlation_id,
        )
