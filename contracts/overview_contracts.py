"""Product overview contracts: immutable idea snapshots, section diffs and history."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .pillar_contracts import PillarId, PillarScore


class Persona(BaseModel):
    """A target user persona."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Persona name")
    role: Optional[str] = Field(None, description="Job title or role")
    summary: str = Field(..., min_length=1, description="Who they are")
    needs: List[str] = Field(..., min_length=1, description="What they need from the product")


class OverviewRisk(BaseModel):
    """A risk paired with its mitigation."""
    model_config = ConfigDict(frozen=True)

    risk: str = Field(..., min_length=1)
    mitigation: str = Field(..., min_length=1)


class MonetisationOption(BaseModel):
    """A way the product could earn money."""
    model_config = ConfigDict(frozen=True)

    model: str = Field(..., min_length=1, description="Revenue model, e.g. subscription")
    description: str = Field(..., min_length=1)
    pricing_notes: Optional[str] = Field(None, description="Price points or tiers")


# Overview field -> display title, in rendering order
OVERVIEW_SECTION_TITLES: Dict[str, str] = {
    "refined_pitch": "Refined Elevator Pitch",
    "problem_summary": "Problem Summary",
    "personas": "Personas",
    "solution": "Solution Description",
    "core_features": "Core Features",
    "unique_value": "Unique Value Proposition",
    "competition": "Competition Summary",
    "market_size": "Market Size",
    "risks": "Risks & Mitigations",
    "monetisation": "Monetisation Model",
    "build_notes": "Build Notes",
}

# Overview sections that move each pillar's score
PILLAR_OVERVIEW_SECTIONS: Dict[PillarId, List[str]] = {
    PillarId.AUDIENCE_FIT: ["problem_summary", "personas"],
    PillarId.COMPETITION: ["competition", "unique_value"],
    PillarId.MARKET_DEMAND: ["market_size", "problem_summary"],
    PillarId.FEASIBILITY: ["solution", "build_notes"],
    PillarId.PRICING_POTENTIAL: ["monetisation"],
}

LOCKED_OVERVIEW_FIELDS = frozenset({"refined_pitch"})


class ProductOverview(BaseModel):
    """Structured idea representation. Snapshots are immutable; refinement builds new ones."""
    model_config = ConfigDict(frozen=True)

    refined_pitch: str = Field(..., min_length=1, description="One or two sentence elevator pitch")
    problem_summary: str = Field(..., min_length=1, description="The problem being solved")
    personas: List[Persona] = Field(..., min_length=1, description="Target personas")
    solution: str = Field(..., min_length=1, description="How the product solves the problem")
    core_features: List[str] = Field(..., min_length=1, description="Headline features")
    unique_value: str = Field(..., min_length=1, description="Why this beats the alternatives")
    competition: str = Field(..., min_length=1, description="Competitive landscape note")
    market_size: str = Field("", description="Market size estimate")
    risks: List[OverviewRisk] = Field(..., min_length=1, description="Risks with mitigations")
    monetisation: List[MonetisationOption] = Field(..., min_length=1, description="Monetisation options")
    build_notes: str = Field(..., min_length=1, description="Technical build notes")

    @field_validator("core_features", mode="before")
    @classmethod
    def drop_blank_features(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]

    def section_text(self, key: str) -> str:
        """Render one overview section as plain text."""
        if key == "personas":
            blocks = []
            for persona in self.personas:
                block = persona.name + (f" ({persona.role})" if persona.role else "")
                block += f"\nSummary: {persona.summary}"
                if persona.needs:
                    block += f"\nNeeds: {', '.join(persona.needs)}"
                blocks.append(block)
            return "\n\n".join(blocks)
        if key == "core_features":
            return "\n\n".join(f"{i}. {feature}" for i, feature in enumerate(self.core_features, 1))
        if key == "risks":
            return "\n\n".join(
                f"{i}. {item.risk}\nMitigation: {item.mitigation}" for i, item in enumerate(self.risks, 1)
            )
        if key == "monetisation":
            lines = []
            for option in self.monetisation:
                line = f"{option.model}: {option.description}"
                if option.pricing_notes:
                    line += f" (Notes: {option.pricing_notes})"
                lines.append(line)
            return "\n\n".join(lines)
        if key not in OVERVIEW_SECTION_TITLES:
            raise KeyError(f"Unknown overview section: {key}")
        return str(getattr(self, key)).strip()

    def to_text(self) -> str:
        """Full-text snapshot of the overview."""
        return "\n\n".join(
            f"{title}:\n{self.section_text(key)}" for key, title in OVERVIEW_SECTION_TITLES.items()
        ).strip()


class SectionDiff(BaseModel):
    """Before/after text of one overview section."""
    model_config = ConfigDict(frozen=True)

    section: str = Field(..., description="Section display title")
    before: str
    after: str


def diff_overviews(before: ProductOverview, after: ProductOverview) -> List[SectionDiff]:
    """Section-level diffs between two snapshots, in rendering order."""
    diffs = []
    for key, title in OVERVIEW_SECTION_TITLES.items():
        before_text = before.section_text(key)
        after_text = after.section_text(key)
        if before_text != after_text:
            diffs.append(SectionDiff(section=title, before=before_text, after=after_text))
    return diffs


class ImprovementSource(str, Enum):
    """What triggered a refinement."""
    MANUAL = "manual"
    AUTO = "auto"


class ImprovementIteration(BaseModel):
    """Append-only history record of one refinement."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    pillar_impacted: PillarId
    score_delta: int
    differences: List[SectionDiff] = Field(default_factory=list)
    before_text: str = Field(..., description="Full-text snapshot before the refinement")
    after_text: str = Field(..., description="Full-text snapshot after the refinement")
    source: ImprovementSource = ImprovementSource.MANUAL
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ImprovementResult(BaseModel):
    """Outcome of one refinement: the new snapshot, its diffs and the moved score."""
    improved_overview: ProductOverview
    differences: List[SectionDiff] = Field(..., min_length=1)
    pillar_impacted: PillarId
    score_delta: int = Field(..., description="Applied change to the target pillar's score")
    updated_scores: List[PillarScore]
    before_text: str
    after_text: str

    def to_iteration(self, source: ImprovementSource = ImprovementSource.MANUAL) -> ImprovementIteration:
        """History record for this refinement."""
        return ImprovementIteration(
            pillar_impacted=self.pillar_impacted,
            score_delta=self.score_delta,
            differences=self.differences,
            before_text=self.before_text,
            after_text=self.after_text,
            source=source,
        )


class AutoImproveResult(BaseModel):
    """Outcome of an auto-improve loop. Iterations before a failure are kept."""
    final_overview: ProductOverview
    final_scores: List[PillarScore]
    iterations: List[ImprovementResult] = Field(default_factory=list)
    reached_target: bool
    error: Optional[str] = Field(None, description="Why the loop stopped early, if it failed")
