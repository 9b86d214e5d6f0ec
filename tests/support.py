"""Builders shared by the test modules: scripted providers and sample payloads."""

import json
from typing import Any, Iterable, List
from unittest.mock import MagicMock

from agents import OverviewAggregator
from contracts import PillarId, ReportStatus, ValidationReport
from providers.base import LLMResponse


PROJECT_ID = "proj-1"
OWNER_ID = "user-1"

EXAMPLE_SCORES = {
    PillarId.MARKET_DEMAND: 80,
    PillarId.COMPETITION: 30,
    PillarId.AUDIENCE_FIT: 60,
    PillarId.FEASIBILITY: 70,
    PillarId.PRICING_POTENTIAL: 50,
}


def as_reply(payload: Any) -> LLMResponse:
    """Wrap a payload as a provider response; dicts and lists become JSON text."""
    content = payload if isinstance(payload, str) else json.dumps(payload)
    return LLMResponse(content=content, model="test-model", provider="mock", input_tokens=10, output_tokens=20)


def scripted_provider(replies: Iterable[Any]) -> MagicMock:
    """A provider whose complete() returns the given replies in order.

    Exceptions in the list are raised instead of returned.
    """
    provider = MagicMock()
    provider.name = "mock"
    provider.default_model = "test-model"
    effects: List[Any] = [item if isinstance(item, Exception) else as_reply(item) for item in replies]
    provider.complete.side_effect = effects
    return provider


def section_reply(score: float = 70, actions=None, summary: str = "Solid signal overall.") -> dict:
    return {
        "score": score,
        "summary": summary,
        "actions": actions if actions is not None else ["Interview ten target users", "Run a landing page test"],
    }


def overview_payload(**overrides) -> dict:
    payload = {
        "refined_pitch": "Meal plans that adapt to what is already in your fridge.",
        "problem_summary": "Busy parents waste food and time deciding what to cook.",
        "personas": [
            {
                "name": "Dana",
                "role": "Working parent",
                "summary": "Cooks for a family of four on weeknights.",
                "needs": ["Fast decisions", "Less waste"],
            }
        ],
        "solution": "An app that scans receipts and suggests recipes from current stock.",
        "core_features": ["Receipt scanning", "Recipe matching"],
        "unique_value": "Plans start from the pantry, not from a recipe catalogue.",
        "competition": "Recipe apps and meal-kit services.",
        "market_size": "About 30M households in the US cook at home most nights.",
        "risks": [{"risk": "Receipt OCR errors", "mitigation": "Let users correct items quickly"}],
        "monetisation": [
            {"model": "Subscription", "description": "Monthly plan for families", "pricing_notes": "$6/month"}
        ],
        "build_notes": "Mobile app with an OCR service and a recipe index.",
    }
    payload.update(overrides)
    return payload


def succeeded_report(scores=None, **overrides) -> ValidationReport:
    """A succeeded report whose confidence and recommendation match its scores."""
    scores = dict(scores or EXAMPLE_SCORES)
    aggregate = OverviewAggregator().aggregate(scores)
    fields = dict(
        project_id=PROJECT_ID,
        owner_id=OWNER_ID,
        idea_title="Pantry Planner",
        idea_summary="Meal plans from what is already in your fridge.",
        status=ReportStatus.SUCCEEDED,
        scores=scores,
        overall_confidence=aggregate.overall_confidence,
        recommendation=aggregate.recommendation,
        strong_count=aggregate.strong_count,
        rationales={pillar: f"{pillar.value} rationale about pricing, audience and competitors" for pillar in scores},
    )
    fields.update(overrides)
    return ValidationReport(**fields)
