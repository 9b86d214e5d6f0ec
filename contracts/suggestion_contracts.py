"""Suggestion contracts: one remediation per weak pillar."""

from typing import Any, List

from pydantic import BaseModel, Field, field_validator

from .pillar_contracts import PillarId, normalize_pillar, round_half_up


def estimated_impact_for(score: float) -> int:
    """Impact shown for a pillar: weaker pillars always have more headroom."""
    return max(1, 85 - round_half_up(score))


class SuggestionDraft(BaseModel):
    """A suggestion as returned by the model, before grounding checks."""
    pillar: PillarId = Field(..., description="Pillar the suggestion addresses")
    issue: str = Field(..., min_length=4, description="The specific problem holding the pillar back")
    rationale: str = Field(..., min_length=4, description="Why the issue matters, citing the weakness")
    suggestion: str = Field(..., min_length=12, description="Concrete change to make")

    @field_validator("pillar", mode="before")
    @classmethod
    def normalize_pillar_label(cls, value: Any) -> Any:
        pillar = normalize_pillar(value)
        if pillar is None:
            raise ValueError(f"Unknown pillar '{value}'")
        return pillar

    @field_validator("issue", "rationale", "suggestion", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class SuggestionBatch(BaseModel):
    """Response envelope expected from the model."""
    suggestions: List[SuggestionDraft] = Field(..., description="Exactly one suggestion per weak pillar")


class Suggestion(BaseModel):
    """A validated suggestion with its derived impact."""
    pillar: PillarId
    issue: str
    rationale: str
    suggestion: str
    estimated_impact: int = Field(..., ge=1, le=85)
