"""Pillar contracts: the weighted scoring dimensions shared by every evaluation."""

import math
import re
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field, field_validator, model_validator


DEFAULT_RATIONALE = "No rationale provided"


class PillarId(str, Enum):
    """A scoring pillar with a fixed weight in the overall confidence."""
    AUDIENCE_FIT = "audienceFit"
    COMPETITION = "competition"
    MARKET_DEMAND = "marketDemand"
    FEASIBILITY = "feasibility"
    PRICING_POTENTIAL = "pricingPotential"


# Table order doubles as the first-seen order for tie breaks
PILLAR_TABLE: List[Dict[str, Any]] = [
    {"id": PillarId.AUDIENCE_FIT, "label": "Audience Fit", "weight": 0.2},
    {"id": PillarId.COMPETITION, "label": "Competition", "weight": 0.2},
    {"id": PillarId.MARKET_DEMAND, "label": "Market Demand", "weight": 0.25},
    {"id": PillarId.FEASIBILITY, "label": "Feasibility", "weight": 0.15},
    {"id": PillarId.PRICING_POTENTIAL, "label": "Pricing Potential", "weight": 0.2},
]

PILLAR_LABELS: Dict[PillarId, str] = {row["id"]: row["label"] for row in PILLAR_TABLE}
PILLAR_WEIGHTS: Dict[PillarId, float] = {row["id"]: row["weight"] for row in PILLAR_TABLE}

# Compacted (lowercase, letters only) spellings -> pillar
_PILLAR_ALIASES: Dict[str, PillarId] = {
    "audiencefit": PillarId.AUDIENCE_FIT,
    "audience": PillarId.AUDIENCE_FIT,
    "targetaudience": PillarId.AUDIENCE_FIT,
    "competition": PillarId.COMPETITION,
    "competitors": PillarId.COMPETITION,
    "competitive": PillarId.COMPETITION,
    "marketdemand": PillarId.MARKET_DEMAND,
    "market": PillarId.MARKET_DEMAND,
    "demand": PillarId.MARKET_DEMAND,
    "feasibility": PillarId.FEASIBILITY,
    "feasibilitybuild": PillarId.FEASIBILITY,
    "pricingpotential": PillarId.PRICING_POTENTIAL,
    "pricing": PillarId.PRICING_POTENTIAL,
    "monetisation": PillarId.PRICING_POTENTIAL,
    "monetization": PillarId.PRICING_POTENTIAL,
}


def normalize_pillar(raw: Any) -> Optional[PillarId]:
    """Map a pillar label, id or alias onto a PillarId.

    Case, spacing, underscores and hyphens are ignored, so "Audience Fit",
    "audience_fit" and "audienceFit" all resolve to the same pillar.

    Returns:
        The matching PillarId, or None when the value names no known pillar
    """
    if isinstance(raw, PillarId):
        return raw
    if not isinstance(raw, str):
        return None
    compact = re.sub(r"[^a-z]", "", raw.lower())
    return _PILLAR_ALIASES.get(compact)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounding up (58.5 -> 59)."""
    return int(math.floor(round(value, 6) + 0.5))


def clamp_score(value: float) -> int:
    """Round a score and clamp it into [0, 100]."""
    return max(0, min(100, round_half_up(value)))


def weighted_confidence(scores: Mapping[PillarId, float]) -> int:
    """Weighted sum of pillar scores over the fixed pillar table, rounded.

    Raises:
        ValueError: If any pillar in the table has no score
    """
    missing = [row["label"] for row in PILLAR_TABLE if row["id"] not in scores]
    if missing:
        raise ValueError(f"Missing scores for pillars: {', '.join(missing)}")
    total = sum(row["weight"] * scores[row["id"]] for row in PILLAR_TABLE)
    return clamp_score(total)


def _coerce_pillar(value: Any) -> Any:
    pillar = normalize_pillar(value)
    if pillar is None:
        allowed = ", ".join(PILLAR_LABELS.values())
        raise ValueError(f"Unknown pillar '{value}'. Expected one of: {allowed}")
    return pillar


class PillarScore(BaseModel):
    """Score and diagnostics for one pillar."""
    pillar: PillarId = Field(..., description="Pillar being scored")
    score: int = Field(..., ge=0, le=100, description="Score from 0 to 100")
    rationale: str = Field(DEFAULT_RATIONALE, description="Why the pillar scored this way")
    weight: float = Field(0.0, ge=0.0, le=1.0, description="Weight in the overall confidence, always the table weight")
    strength: Optional[str] = Field(None, description="What already works for this pillar")
    weakness: Optional[str] = Field(None, description="What holds this pillar back")

    @field_validator("pillar", mode="before")
    @classmethod
    def normalize_pillar_id(cls, value: Any) -> Any:
        return _coerce_pillar(value)

    @field_validator("score", mode="before")
    @classmethod
    def clamp_numeric_score(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return clamp_score(value)
        return value

    @field_validator("rationale", mode="before")
    @classmethod
    def sanitize_rationale(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return DEFAULT_RATIONALE

    @model_validator(mode="after")
    def apply_table_weight(self) -> "PillarScore":
        """Weights are fixed per pillar."""
        self.weight = PILLAR_WEIGHTS[self.pillar]
        return self

    @property
    def label(self) -> str:
        return PILLAR_LABELS[self.pillar]


class PillarWeakness(BaseModel):
    """A weak pillar handed to suggestion generation."""
    pillar: PillarId = Field(..., description="Weak pillar")
    score: float = Field(..., ge=0, le=100, description="Current pillar score")
    rationale: str = Field(..., min_length=1, description="Why the pillar is weak")
    weaknesses: List[str] = Field(default_factory=list, description="Specific weakness notes")

    @field_validator("pillar", mode="before")
    @classmethod
    def normalize_pillar_id(cls, value: Any) -> Any:
        return _coerce_pillar(value)

    @field_validator("rationale", mode="before")
    @classmethod
    def strip_rationale(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("weaknesses", mode="before")
    @classmethod
    def keep_text_notes(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def scores_by_pillar(scores: Sequence[PillarScore]) -> Dict[PillarId, int]:
    """Collapse a pillar score list to a pillar -> score map."""
    return {entry.pillar: entry.score for entry in scores}


def build_pillar_scores(
    scores: Mapping[PillarId, float],
    rationales: Optional[Mapping[PillarId, str]] = None,
) -> List[PillarScore]:
    """Build PillarScore entries in pillar-table order for the pillars present."""
    rationales = rationales or {}
    return [
        PillarScore(
            pillar=row["id"],
            score=scores[row["id"]],
            rationale=rationales.get(row["id"], DEFAULT_RATIONALE),
        )
        for row in PILLAR_TABLE
        if row["id"] in scores
    ]
