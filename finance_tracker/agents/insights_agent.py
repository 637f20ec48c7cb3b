"""
Insights Agent

Server side of the recommendation proxy: turns aggregated financial
snapshots into prompts for Gemini and parses the answers back into
typed insight models.

CRITICAL BOUNDARIES:
- The model only ever sees aggregates (totals, ratios, category sums),
  never raw ledger entries
- The model's output is ADVICE, never data: nothing it returns is
  written back into the ledger without the user acting on it
- Every answer must parse into the response schema. Anything else is
  an AgentError, which the API turns into a 502 and the client turns
  into a local fallback

The LLM is an ADVISOR, not a BOOKKEEPER.
"""

import json
from typing import Any, Optional

import google.generativeai as genai
import structlog
from pydantic import ValidationError

from finance_tracker.config import GeminiSettings, get_settings
from finance_tracker.models.finance import ExpenseCategory
from finance_tracker.models.insights import (
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


logger = structlog.get_logger(__name__)


class AgentError(Exception):
    """The model could not produce a usable answer."""
    pass


def extract_json(text: str) -> Any:
    """
    Pull the JSON value out of a model response.

    Models like to wrap JSON in prose or code fences; take everything
    from the first opening bracket to the matching last closing one.
    """
    text = text.strip()
    try:
        return json.loads(text)
    except ValueError:
        pass

    starts = [i for i in (text.find("{"), text.find("[")) if i >= 0]
    if not starts:
        raise AgentError("Response contained no JSON")
    start = min(starts)
    closing = "}" if text[start] == "{" else "]"
    end = text.rfind(closing) + 1
    if end <= start:
        raise AgentError("Response contained unterminated JSON")

    try:
        return json.loads(text[start:end])
    except ValueError as e:
        raise AgentError(f"Response JSON could not be parsed: {e}")


def _unwrap_list(data: Any, *keys: str) -> list:
    """Accept either a bare list or a list nested under one of keys."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in keys:
            if isinstance(data.get(key), list):
                return data[key]
    raise AgentError("Expected a JSON array in the response")


def _snapshot_lines(snapshot: FinancialSnapshot) -> str:
    top = ", ".join(
        f"{c.category} (${c.amount:.2f})" for c in snapshot.top_expense_categories
    ) or "None"
    over = ", ".join(snapshot.over_budget_categories) or "None"
    return (
        f"- Total Monthly Income: ${snapshot.total_income:.2f}\n"
        f"- Total Monthly Expenses: ${snapshot.total_expenses:.2f}\n"
        f"- Net Cashflow: ${snapshot.net_cashflow:.2f}\n"
        f"- Savings Rate: {snapshot.savings_rate:.1f}%\n"
        f"- Top Expense Categories: {top}\n"
        f"- Over Budget Categories: {over}\n"
        f"- Total Debt: ${snapshot.debt_total:.2f}\n"
        f"- Average Interest Rate: {snapshot.average_interest_rate:.1f}%\n"
        f"- Debt-to-Income Ratio: {snapshot.debt_to_income_ratio:.1f}%"
    )


class InsightsAgent:
    """
    Gemini-backed financial advisor.

    RESPONSIBILITIES:
    - General recommendations from a month snapshot
    - Transaction categorization
    - Health score with feedback
    - Goal prioritization and goal-specific advice
    - Spending optimization toward a target savings rate

    BOUNDARIES:
    - NEVER sees individual transactions except in the spending analysis
    - NEVER returns unvalidated output
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
    ):
        self._settings = settings or get_settings().gemini
        if model is not None:
            self._model = model
        else:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    async def _ask(self, prompt: str, operation: str) -> str:
        try:
            response = await self._model.generate_content_async(prompt)
            text = response.text
        except Exception as e:
            logger.error("gemini_call_failed", operation=operation, error=str(e))
            raise AgentError(f"{operation} failed: {e}") from e

        if not text or not text.strip():
            raise AgentError(f"{operation} returned an empty response")
        return text

    async def generate_insights(self, snapshot: FinancialSnapshot) -> list[Insight]:
        prompt = f"""You are a financial advisor assistant. Based on the following financial data, generate specific, personalized recommendations.

Financial Summary:
{_snapshot_lines(snapshot)}

Generate 3-5 recommendations covering different aspects (budget, debt, savings, income).
For each give:
1. "type": a short category such as "Budget Optimization" or "Debt Reduction"
2. "description": 2-3 sentences with specific actions
3. "impact": the quantified potential impact, e.g. "Save $X per month"
Optionally add "priority_score" (1-10), "allocation_percentage" (0-100) and "category".

Respond with ONLY a JSON array of objects."""

        data = extract_json(await self._ask(prompt, "generate_insights"))
        try:
            insights = [
                Insight.model_validate(item)
                for item in _unwrap_list(data, "recommendations", "insights")
            ]
        except ValidationError as e:
            raise AgentError(f"Insights did not match the schema: {e}")

        if not insights:
            raise AgentError("Model returned no insights")
        return insights

    async def categorize(self, description: str) -> CategorySuggestion:
        categories = [category.value for category in ExpenseCategory]
        prompt = f"""You are a financial categorization assistant. Categorize this transaction into exactly one of these categories:
{chr(10).join('- ' + name for name in categories)}

Transaction: "{description}"

Respond with ONLY a JSON object: {{"category": "<category name>"}}"""

        data = extract_json(await self._ask(prompt, "categorize"))
        category = data.get("category") if isinstance(data, dict) else None
        if category not in categories:
            raise AgentError(f"Unknown category from model: {category!r}")
        return CategorySuggestion(category=category)

    async def analyze_health(self, request: HealthRequest) -> HealthAssessment:
        prompt = f"""Based on this financial data, provide a financial health score (0-100) and brief feedback:

- Monthly Income: ${request.income:.2f}
- Monthly Expenses: ${request.expenses:.2f}
- Total Debt: ${request.debt:.2f}
- Savings Rate: {request.savings_rate:.1f}%
- Debt-to-Income Ratio: {request.debt_to_income_ratio:.1f}%

Respond with ONLY a JSON object with "score" (integer) and "feedback" (1-2 sentences).
Example: {{"score": 75, "feedback": "Your savings rate is good, but your debt level is high."}}"""

        data = extract_json(await self._ask(prompt, "analyze_health"))
        try:
            return HealthAssessment.model_validate(data)
        except ValidationError as e:
            raise AgentError(f"Health assessment did not match the schema: {e}")

    async def prioritize_goals(self, request: PrioritizeGoalsRequest) -> list[GoalPriority]:
        goals = "\n".join(
            f"Goal {goal.goal_id}: {goal.name}\n"
            f"  - Type: {goal.type.value}\n"
            f"  - Target Amount: ${goal.target_amount}\n"
            f"  - Current Progress: ${goal.current_amount}\n"
            f"  - Target Date: {goal.target_date or 'none'}\n"
            f"  - Description: {goal.description}"
            for goal in request.goals
        )
        breakdown = "\n".join(
            f"- {item.category}: ${item.amount} ({item.percent_of_total_expenses:.1f}% of expenses)"
            for item in request.expense_breakdown
        ) or "- none"

        prompt = f"""As an AI financial advisor, prioritize these financial goals.
Assign each goal a priority score from 1-10 (10 being highest) and give brief reasoning.

GOALS:
{goals}

FINANCIAL SNAPSHOT:
{_snapshot_lines(request.snapshot)}

EXPENSE BREAKDOWN:
{breakdown}

Prioritize debt-related goals when debt is significant and emergency funding when it is inadequate.
Consider deadlines, realistic achievement and current progress.

Respond with ONLY a JSON array of objects with "goal_id", "priority_score" and "reasoning"."""

        data = extract_json(await self._ask(prompt, "prioritize_goals"))
        known = {goal.goal_id for goal in request.goals}
        try:
            priorities = [
                GoalPriority.model_validate(item)
                for item in _unwrap_list(data, "priorities", "goals")
            ]
        except ValidationError as e:
            raise AgentError(f"Priorities did not match the schema: {e}")

        priorities = [p for p in priorities if p.goal_id in known]
        if not priorities:
            raise AgentError("Model returned no priorities for the given goals")
        priorities.sort(key=lambda p: p.priority_score, reverse=True)
        return priorities

    async def goal_recommendations(
        self,
        request: GoalRecommendationsRequest,
    ) -> GoalRecommendationSet:
        goal = request.goal
        progress = (
            goal.current_amount / goal.target_amount * 100 if goal.target_amount else 0
        )
        prompt = f"""As an expert financial advisor, generate specific recommendations to help achieve this goal faster.

GOAL DETAILS:
- Name: {goal.name}
- Type: {goal.type.value}
- Target Amount: ${goal.target_amount}
- Current Progress: ${goal.current_amount} ({progress:.1f}%)
- Target Date: {goal.target_date or 'none'}
- Description: {goal.description}
- Priority: {goal.priority}/10

FINANCIAL DATA:
{_snapshot_lines(request.snapshot)}

Generate 3-5 recommendations. Respond with ONLY a JSON array of objects with:
- "description": string
- "potential_impact": "High", "Medium" or "Low"
- "estimated_time_reduction": string, e.g. "2 months faster"
- "required_actions": array of 2-3 strings"""

        data = extract_json(await self._ask(prompt, "goal_recommendations"))
        try:
            return GoalRecommendationSet.model_validate({
                "goal_id": goal.goal_id,
                "recommendations": _unwrap_list(data, "recommendations"),
            })
        except ValidationError as e:
            raise AgentError(f"Goal recommendations did not match the schema: {e}")

    async def analyze_spending(self, request: SpendingAnalysisRequest) -> SpendingOptimization:
        total = sum(expense.amount for expense in request.expenses)
        current_rate = float((request.income - total) / request.income * 100) if request.income > 0 else 0.0
        lines = "\n".join(
            f"- {e.category}: ${e.amount} ({e.date})" + (f" - {e.description}" if e.description else "")
            for e in request.expenses
        )
        prompt = f"""As a financial analyst, find optimization opportunities to reach a target savings rate.

CURRENT FINANCIAL SITUATION:
- Monthly Income: ${request.income}
- Total Monthly Expenses: ${total}
- Current Savings Rate: {current_rate:.1f}%
- Target Savings Rate: {request.target_savings_rate}%

EXPENSE BREAKDOWN:
{lines}

Respond with ONLY a JSON object containing:
- "optimization_areas": array of objects with "category", "current_spending",
  "recommended_reduction", "potential_savings", "specific_suggestions" (array of strings)
- "projected_impact": object with "new_savings_rate", "monthly_increase", "yearly_increase\""""

        data = extract_json(await self._ask(prompt, "analyze_spending"))
        try:
            return SpendingOptimization.model_validate(data)
        except ValidationError as e:
            raise AgentError(f"Spending analysis did not match the schema: {e}")
