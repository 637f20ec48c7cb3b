"""
HTTP API

One FastAPI app serving both contracts the UI talks to:

    /api/store/...   persistence (key-value, used by HttpKeyValueStore)
    /api/openai/...  recommendation proxy (used by InsightsProxyClient)

Errors are always a non-2xx status with a {"message": ...} body:

    404  key not found
    400  malformed request body
    422  request failed schema validation
    500  storage failure
    502  the model could not produce a usable answer

DESIGN DECISION: The agent is created on first use.
A server without GEMINI_API_KEY still serves persistence; the proxy
routes answer 502 and the client falls back to its local rules.
"""

import os
from typing import Any, Optional

import structlog
from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from finance_tracker.agents import AgentError, InsightsAgent
from finance_tracker.audit import configure_logging
from finance_tracker.config import get_settings
from finance_tracker.models.insights import (
    CategorizeRequest,
    FinancialSnapshot,
    GoalRecommendationsRequest,
    HealthRequest,
    PrioritizeGoalsRequest,
    SpendingAnalysisRequest,
)
from finance_tracker.services.storage import (
    GoogleSheetsKeyValueStore,
    InMemoryKeyValueStore,
    KeyValueStoreInterface,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)


class SaveRequest(BaseModel):
    key: str = Field(..., min_length=1)
    data: Any = None


class SaveAllRequest(BaseModel):
    data: dict[str, Any]


def _default_store() -> KeyValueStoreInterface:
    if get_settings().app.storage_backend == "google_sheets":
        return GoogleSheetsKeyValueStore()
    return InMemoryKeyValueStore()


def _store(request: Request) -> KeyValueStoreInterface:
    return request.app.state.store


def _agent(request: Request) -> InsightsAgent:
    state = request.app.state
    if state.agent is None:
        try:
            state.agent = InsightsAgent()
        except ValidationError as e:
            raise AgentError(f"Insights model is not configured: {e.error_count()} setting(s) missing")
    return state.agent


# =============================================================================
# PERSISTENCE
# =============================================================================

store_router = APIRouter(prefix="/api/store", tags=["store"])


@store_router.post("/save")
async def save(payload: SaveRequest, request: Request):
    await _store(request).save(payload.key, payload.data)
    return {"message": "Saved", "key": payload.key}


@store_router.post("/save-all")
async def save_all(payload: SaveAllRequest, request: Request):
    saved = await _store(request).save_many(payload.data)
    return {"message": "Saved", "saved": saved}


@store_router.get("/get/{key:path}")
async def get(key: str, request: Request):
    data = await _store(request).get(key)
    if data is None:
        raise NotFoundError(f"Key not found: {key}")
    return {"key": key, "data": data}


@store_router.delete("/delete/{key:path}")
async def delete(key: str, request: Request):
    if not await _store(request).delete(key):
        raise NotFoundError(f"Key not found: {key}")
    return {"message": "Deleted", "key": key}


@store_router.get("/list")
async def list_all(request: Request):
    return {"keys": await _store(request).list_keys("")}


@store_router.get("/list/{prefix:path}")
async def list_prefix(prefix: str, request: Request):
    return {"keys": await _store(request).list_keys(prefix)}


# =============================================================================
# RECOMMENDATION PROXY
# =============================================================================

insights_router = APIRouter(prefix="/api/openai", tags=["insights"])


@insights_router.post("/insights")
async def insights(snapshot: FinancialSnapshot, request: Request):
    results = await _agent(request).generate_insights(snapshot)
    return {"insights": [insight.model_dump(mode="json") for insight in results]}


@insights_router.post("/categorize")
async def categorize(payload: CategorizeRequest, request: Request):
    suggestion = await _agent(request).categorize(payload.description)
    return suggestion.model_dump(mode="json")


@insights_router.post("/analyze-health")
async def analyze_health(payload: HealthRequest, request: Request):
    assessment = await _agent(request).analyze_health(payload)
    return assessment.model_dump(mode="json")


@insights_router.post("/prioritize-goals")
async def prioritize_goals(payload: PrioritizeGoalsRequest, request: Request):
    priorities = await _agent(request).prioritize_goals(payload)
    return {"priorities": [priority.model_dump(mode="json") for priority in priorities]}


@insights_router.post("/goal-recommendations")
async def goal_recommendations(payload: GoalRecommendationsRequest, request: Request):
    result = await _agent(request).goal_recommendations(payload)
    return result.model_dump(mode="json")


@insights_router.post("/analyze-spending")
async def analyze_spending(payload: SpendingAnalysisRequest, request: Request):
    result = await _agent(request).analyze_spending(payload)
    return result.model_dump(mode="json")


# =============================================================================
# APP
# =============================================================================

async def _not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"message": str(exc)})


async def _storage_failed(request: Request, exc: StorageError):
    logger.error("storage_request_failed", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"message": str(exc)})


async def _agent_failed(request: Request, exc: AgentError):
    logger.warning("agent_request_failed", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=502, content={"message": str(exc)})


async def _invalid_request(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    # A body that is not JSON at all is a bad request, not a schema mismatch
    if any(error.get("type") == "json_invalid" for error in errors):
        return JSONResponse(status_code=400, content={"message": "Request body is not valid JSON"})
    message = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in errors
    )
    return JSONResponse(status_code=422, content={"message": message})


def create_api(
    store: Optional[KeyValueStoreInterface] = None,
    agent: Optional[InsightsAgent] = None,
) -> FastAPI:
    """
    Build the API app.

    Args:
        store: Key-value backend. Defaults to the configured backend.
        agent: Insights agent. Defaults to a Gemini agent built on first use.
    """
    app = FastAPI(title="Personal Finance Tracker API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.store = store if store is not None else _default_store()
    app.state.agent = agent

    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(StorageError, _storage_failed)
    app.add_exception_handler(AgentError, _agent_failed)
    app.add_exception_handler(RequestValidationError, _invalid_request)

    app.include_router(store_router)
    app.include_router(insights_router)

    @app.get("/")
    def read_root():
        return {"message": "Personal Finance Tracker API"}

    return app


if __name__ == "__main__":
    import uvicorn
    configure_logging(get_settings().app.debug_mode)
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(create_api(), host="0.0.0.0", port=port)
