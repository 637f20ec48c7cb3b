"""
Tests for the Gemini insights agent.

The model is replaced by FakeModel, which returns canned text the way
google.generativeai responses expose it (a `.text` attribute).
"""

import asyncio
import json
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from finance_tracker.agents import AgentError, InsightsAgent
from finance_tracker.agents.insights_agent import extract_json
from finance_tracker.config import GeminiSettings
from finance_tracker.models.finance import GoalType
from finance_tracker.models.insights import (
    ExpenseLine,
    FinancialSnapshot,
    GoalRecommendationsRequest,
    GoalSnapshot,
    HealthRequest,
    PrioritizeGoalsRequest,
    SpendingAnalysisRequest,
)


class FakeModel:
    """Answers generate_content_async from a queue of texts or exceptions."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return SimpleNamespace(text=answer)


def make_agent(*answers):
    model = FakeModel(*answers)
    return InsightsAgent(settings=GeminiSettings(api_key="test-key"), model=model), model


def goal_snapshot(name="Emergency", goal_type=GoalType.EMERGENCY_FUND):
    return GoalSnapshot(
        goal_id=uuid4(),
        name=name,
        type=goal_type,
        target_amount=Decimal("1000"),
        current_amount=Decimal("250"),
    )


class TestExtractJson:
    """Tests for pulling JSON out of model text."""

    def test_plain_json(self):
        """Test bare JSON parses directly."""
        assert extract_json('{"score": 70}') == {"score": 70}

    def test_code_fence(self):
        """Test JSON wrapped in a markdown fence."""
        text = 'Here you go:\n```json\n[{"type": "a", "description": "b"}]\n```'
        assert extract_json(text) == [{"type": "a", "description": "b"}]

    def test_no_json(self):
        """Test prose without JSON is an AgentError."""
        with pytest.raises(AgentError):
            extract_json("I cannot help with that.")

    def test_broken_json(self):
        """Test malformed JSON is an AgentError."""
        with pytest.raises(AgentError):
            extract_json('{"score": 70,,}')


class TestInsightsAgent:
    """Tests for each agent operation."""

    def test_generate_insights(self):
        """Test insights are parsed and the prompt carries the aggregates."""
        answer = json.dumps([
            {"type": "Debt Reduction", "description": "Pay the card first.", "impact": "Save $40/month"},
        ])
        agent, model = make_agent(answer)
        snapshot = FinancialSnapshot(total_income=Decimal("4000"), savings_rate=12.5)

        insights = asyncio.run(agent.generate_insights(snapshot))

        assert insights[0].type == "Debt Reduction"
        assert "Total Monthly Income: $4000.00" in model.prompts[0]
        assert "Savings Rate: 12.5%" in model.prompts[0]

    def test_generate_insights_empty(self):
        """Test an empty list is treated as a failure."""
        agent, _ = make_agent("[]")
        with pytest.raises(AgentError):
            asyncio.run(agent.generate_insights(FinancialSnapshot()))

    def test_categorize_known_category(self):
        """Test a valid category is accepted."""
        agent, _ = make_agent('{"category": "Groceries"}')
        assert asyncio.run(agent.categorize("Tesco")).category == "Groceries"

    def test_categorize_unknown_category(self):
        """Test categories outside the fixed list are refused."""
        agent, _ = make_agent('{"category": "Lottery"}')
        with pytest.raises(AgentError):
            asyncio.run(agent.categorize("Scratch card"))

    def test_analyze_health(self):
        """Test the health score is validated."""
        agent, _ = make_agent('{"score": 64, "feedback": "Watch your debt."}')
        result = asyncio.run(agent.analyze_health(HealthRequest(savings_rate=8)))
        assert result.score == 64
        assert result.is_fallback is False

    def test_analyze_health_out_of_range(self):
        """Test a score above 100 fails validation."""
        agent, _ = make_agent('{"score": 140, "feedback": "Wow."}')
        with pytest.raises(AgentError):
            asyncio.run(agent.analyze_health(HealthRequest()))

    def test_prioritize_goals_drops_unknown_ids(self):
        """Test priorities for goals that were not asked about are ignored."""
        first, second = goal_snapshot("A"), goal_snapshot("B", GoalType.SAVINGS)
        answer = json.dumps({"priorities": [
            {"goal_id": str(second.goal_id), "priority_score": 4, "reasoning": "later"},
            {"goal_id": str(uuid4()), "priority_score": 10, "reasoning": "invented"},
            {"goal_id": str(first.goal_id), "priority_score": 9, "reasoning": "urgent"},
        ]})
        agent, _ = make_agent(answer)
        request = PrioritizeGoalsRequest(goals=[first, second], snapshot=FinancialSnapshot())

        result = asyncio.run(agent.prioritize_goals(request))

        assert [p.goal_id for p in result] == [first.goal_id, second.goal_id]

    def test_goal_recommendations(self):
        """Test recommendations are attached to the requested goal."""
        goal = goal_snapshot()
        answer = json.dumps([{
            "description": "Automate a weekly transfer.",
            "potential_impact": "High",
            "estimated_time_reduction": "2 months faster",
            "required_actions": ["Open a savings account", "Schedule the transfer"],
        }])
        agent, model = make_agent(answer)

        result = asyncio.run(agent.goal_recommendations(
            GoalRecommendationsRequest(goal=goal, snapshot=FinancialSnapshot())
        ))

        assert result.goal_id == goal.goal_id
        assert len(result.recommendations) == 1
        assert "(25.0%)" in model.prompts[0]

    def test_analyze_spending(self):
        """Test the optimization answer is validated."""
        answer = json.dumps({
            "optimization_areas": [{
                "category": "Groceries",
                "current_spending": "500",
                "recommended_reduction": "50",
                "potential_savings": "50",
                "specific_suggestions": ["Plan meals"],
            }],
            "projected_impact": {"new_savings_rate": 15, "monthly_increase": "50", "yearly_increase": "600"},
        })
        agent, _ = make_agent(answer)
        request = SpendingAnalysisRequest(
            income=Decimal("2000"),
            expenses=[ExpenseLine(category="Groceries", amount=Decimal("500"), date="2024-01-02")],
        )

        result = asyncio.run(agent.analyze_spending(request))

        assert result.projected_impact.yearly_increase == Decimal("600")

    def test_model_failure_is_agent_error(self):
        """Test exceptions from the model become AgentError."""
        agent, _ = make_agent(RuntimeError("quota exceeded"))
        with pytest.raises(AgentError) as exc_info:
            asyncio.run(agent.analyze_health(HealthRequest()))
        assert "quota exceeded" in str(exc_info.value)

    def test_empty_response_is_agent_error(self):
        """Test a blank answer is a failure."""
        agent, _ = make_agent("   ")
        with pytest.raises(AgentError):
            asyncio.run(agent.categorize("Coffee"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
