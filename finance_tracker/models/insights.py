"""
Insight Models

Request and response shapes for the recommendation proxy.

DESIGN DECISION: The LLM never sees raw ledger entities.
The client condenses a month into a FinancialSnapshot (totals, ratios,
category breakdowns) and the proxy answers with these typed objects.
Whatever the model returns is validated against these schemas before
it reaches the UI; anything that does not fit counts as a failure and
is answered from the local fallbacks instead.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from finance_tracker.models.finance import GoalRecommendation, GoalType


# =============================================================================
# REQUEST PAYLOADS
# =============================================================================

class CategoryAmount(BaseModel):
    """A category with the amount spent in it."""

    category: str
    amount: Decimal = Field(..., ge=0)
    percent_of_total_expenses: float = Field(default=0.0, ge=0.0)
    is_reducible: bool = False


class FinancialSnapshot(BaseModel):
    """
    Aggregated view of one month, as sent to the proxy.

    Ratios are percentages (25.0 means 25%).
    """

    total_income: Decimal = Field(default=Decimal("0"), ge=0)
    total_expenses: Decimal = Field(default=Decimal("0"), ge=0)
    net_cashflow: Decimal = Decimal("0")
    savings_rate: float = 0.0
    debt_total: Decimal = Field(default=Decimal("0"), ge=0)
    average_interest_rate: float = Field(default=0.0, ge=0.0)
    debt_to_income_ratio: float = Field(default=0.0, ge=0.0)
    top_expense_categories: list[CategoryAmount] = Field(default_factory=list)
    over_budget_categories: list[str] = Field(default_factory=list)


class GoalSnapshot(BaseModel):
    """What the proxy needs to know about one goal."""

    goal_id: UUID
    name: str
    type: GoalType
    target_amount: Decimal
    current_amount: Decimal
    target_date: Optional[str] = None
    description: str = ""
    priority: int = 5


class ExpenseLine(BaseModel):
    """A single expense as sent to the spending analysis."""

    category: str
    amount: Decimal = Field(..., gt=0)
    date: str
    description: Optional[str] = None


class PrioritizeGoalsRequest(BaseModel):
    goals: list[GoalSnapshot] = Field(..., min_length=1)
    snapshot: FinancialSnapshot
    expense_breakdown: list[CategoryAmount] = Field(default_factory=list)


class GoalRecommendationsRequest(BaseModel):
    goal: GoalSnapshot
    snapshot: FinancialSnapshot


class SpendingAnalysisRequest(BaseModel):
    expenses: list[ExpenseLine] = Field(..., min_length=1)
    income: Decimal = Field(..., ge=0)
    target_savings_rate: float = Field(default=20.0, ge=0.0, le=100.0)


class CategorizeRequest(BaseModel):
    description: str = Field(..., min_length=1, max_length=500)


class HealthRequest(BaseModel):
    income: Decimal = Field(default=Decimal("0"), ge=0)
    expenses: Decimal = Field(default=Decimal("0"), ge=0)
    debt: Decimal = Field(default=Decimal("0"), ge=0)
    savings_rate: float = 0.0
    debt_to_income_ratio: float = Field(default=0.0, ge=0.0)


# =============================================================================
# RESPONSES
# =============================================================================

class Insight(BaseModel):
    """
    One natural-language recommendation.

    The structured fields are optional: generic fallback advice carries
    none of them.
    """

    type: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    impact: str = ""
    priority_score: Optional[int] = Field(default=None, ge=1, le=10)
    allocation_percentage: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    category: Optional[str] = None
    is_fallback: bool = False


class CategorySuggestion(BaseModel):
    category: str
    is_fallback: bool = False


class HealthAssessment(BaseModel):
    """A financial health score (0-100) with short feedback."""

    score: int = Field(..., ge=0, le=100)
    feedback: str
    is_fallback: bool = False

    @property
    def label(self) -> str:
        return score_label(self.score)


class GoalPriority(BaseModel):
    goal_id: UUID
    priority_score: int = Field(..., ge=1, le=10)
    reasoning: str = ""


class GoalRecommendationSet(BaseModel):
    """Recommendations for a single goal."""

    goal_id: UUID
    recommendations: list[GoalRecommendation] = Field(default_factory=list)
    is_fallback: bool = False


class OptimizationArea(BaseModel):
    category: str
    current_spending: Decimal = Field(..., ge=0)
    recommended_reduction: Decimal = Field(..., ge=0)
    potential_savings: Decimal = Field(..., ge=0)
    specific_suggestions: list[str] = Field(default_factory=list)


class ProjectedImpact(BaseModel):
    new_savings_rate: float
    monthly_increase: Decimal
    yearly_increase: Decimal


class SpendingOptimization(BaseModel):
    optimization_areas: list[OptimizationArea] = Field(default_factory=list)
    projected_impact: ProjectedImpact
    is_fallback: bool = False


def score_label(score: int) -> str:
    """Bucket a health score for display."""
    if score >= 80:
        return "Excellent"
    if score >= 65:
        return "Good"
    if score >= 50:
        return "Fair"
    return "Needs Attention"
