"""Validation report contracts: run lifecycle, sections and aggregate results."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .pillar_contracts import PillarId, clamp_score, normalize_pillar, weighted_confidence


DEFAULT_SECTION_SUMMARY = "No summary provided."
MAX_SECTION_ACTIONS = 5

BUILD_THRESHOLD = 70
REVISE_THRESHOLD = 40
STRONG_PILLAR_THRESHOLD = 70


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReportStatus(str, Enum):
    """Lifecycle state of a validation report."""
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({ReportStatus.SUCCEEDED, ReportStatus.FAILED})


class Recommendation(str, Enum):
    """Verdict derived from the overall confidence."""
    BUILD = "build"
    REVISE = "revise"
    DROP = "drop"


def recommendation_for(confidence: float) -> Recommendation:
    """build at 70 or above, revise from 40 up to 70, drop below 40."""
    if confidence >= BUILD_THRESHOLD:
        return Recommendation.BUILD
    if confidence >= REVISE_THRESHOLD:
        return Recommendation.REVISE
    return Recommendation.DROP


class SectionId(str, Enum):
    """A detailed validation dimension."""
    PROBLEM = "problem"
    MARKET = "market"
    COMPETITION = "competition"
    AUDIENCE = "audience"
    FEASIBILITY = "feasibility"
    PRICING = "pricing"
    GO_TO_MARKET = "go-to-market"
    OVERVIEW = "overview"


# The seven sections evaluated by a full run, in evaluation order
VALIDATION_SECTIONS: List[SectionId] = [
    SectionId.PROBLEM,
    SectionId.MARKET,
    SectionId.COMPETITION,
    SectionId.AUDIENCE,
    SectionId.FEASIBILITY,
    SectionId.PRICING,
    SectionId.GO_TO_MARKET,
]

# Sections whose score is the score of a pillar
SECTION_PILLARS: Dict[SectionId, PillarId] = {
    SectionId.MARKET: PillarId.MARKET_DEMAND,
    SectionId.COMPETITION: PillarId.COMPETITION,
    SectionId.AUDIENCE: PillarId.AUDIENCE_FIT,
    SectionId.FEASIBILITY: PillarId.FEASIBILITY,
    SectionId.PRICING: PillarId.PRICING_POTENTIAL,
}


class SectionAction(BaseModel):
    """A recommended next step and whether the user has done it."""
    text: str = Field(..., min_length=1, description="Action text")
    completed: bool = Field(False, description="Whether the user marked the action done")


class SectionInsight(BaseModel):
    """Optional long-form breakdown of a section evaluation."""
    discoveries: str = Field("", description="Key signals the evaluation found")
    meaning: str = Field("", description="What those signals mean")
    impact: str = Field("", description="Effect on the idea's prospects")
    recommendations: str = Field("", description="Specific change or double-down")


class SectionResult(BaseModel):
    """Outcome of evaluating one section."""
    section: SectionId = Field(..., description="Section evaluated")
    score: int = Field(..., ge=0, le=100, description="Section score from 0 to 100")
    summary: str = Field(DEFAULT_SECTION_SUMMARY, description="One-paragraph verdict")
    actions: List[SectionAction] = Field(default_factory=list, description="Ordered recommended steps")
    insight_breakdown: Optional[SectionInsight] = Field(None, description="Optional detailed breakdown")
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("score", mode="before")
    @classmethod
    def clamp_numeric_score(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return clamp_score(value)
        return value

    @field_validator("summary", mode="before")
    @classmethod
    def default_summary(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return DEFAULT_SECTION_SUMMARY

    def action(self, text: str) -> Optional[SectionAction]:
        return next((item for item in self.actions if item.text == text), None)


class Idea(BaseModel):
    """The idea a report evaluates."""
    title: str = Field(..., description="Idea title")
    summary: Optional[str] = Field(None, description="Short description of the idea")
    prior_review: Optional[str] = Field(None, description="Earlier review notes to take into account")

    @field_validator("title", "summary", "prior_review", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    def describe(self) -> str:
        """Render the idea as prompt text."""
        lines = [f"Title: {self.title}"]
        if self.summary:
            lines.append(f"Summary: {self.summary}")
        if self.prior_review:
            lines.append(f"Prior review notes: {self.prior_review}")
        return "\n".join(lines)


class ValidationReport(BaseModel):
    """Top-level record of one validation run."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    project_id: str = Field(..., description="Owning project")
    owner_id: str = Field(..., description="Owning user")
    idea_title: str = Field(..., description="Title of the idea evaluated")
    idea_summary: Optional[str] = Field(None, description="Summary of the idea evaluated")
    prior_review: Optional[str] = Field(None, description="Prior review notes passed to the evaluators")
    status: ReportStatus = Field(ReportStatus.QUEUED, description="Lifecycle state")
    scores: Optional[Dict[PillarId, int]] = Field(None, description="Pillar -> 0-100 score")
    overall_confidence: Optional[int] = Field(None, ge=0, le=100)
    recommendation: Optional[Recommendation] = Field(None)
    strong_count: Optional[int] = Field(None, ge=0, description="Pillars scoring 70 or above")
    rationales: Dict[PillarId, str] = Field(default_factory=dict, description="Pillar -> rationale")
    section_results: Dict[SectionId, SectionResult] = Field(default_factory=dict)
    error: Optional[str] = Field(None, description="Human-readable failure message")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("scores", "rationales", mode="before")
    @classmethod
    def normalize_pillar_keys(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {normalize_pillar(key) or key: item for key, item in value.items()}

    @model_validator(mode="after")
    def validate_terminal_state(self) -> "ValidationReport":
        """A succeeded report is fully scored and consistent; a failed one explains why."""
        if self.status == ReportStatus.SUCCEEDED:
            if not self.scores or self.overall_confidence is None or self.recommendation is None:
                raise ValueError("succeeded report requires scores, overall_confidence and recommendation")
            expected = weighted_confidence(self.scores)
            if self.overall_confidence != expected:
                raise ValueError(
                    f"overall_confidence {self.overall_confidence} does not match weighted scores ({expected})"
                )
            if self.recommendation != recommendation_for(expected):
                raise ValueError(f"recommendation {self.recommendation.value} inconsistent with confidence {expected}")
        if self.status == ReportStatus.FAILED and not (self.error and self.error.strip()):
            raise ValueError("failed report requires a non-empty error")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def idea(self) -> Idea:
        return Idea(title=self.idea_title, summary=self.idea_summary, prior_review=self.prior_review)


class ReportStatusView(BaseModel):
    """Polling payload for a report."""
    status: ReportStatus
    scores: Optional[Dict[PillarId, int]] = None
    overall_confidence: Optional[int] = None
    recommendation: Optional[Recommendation] = None
    error: Optional[str] = None

    @classmethod
    def from_report(cls, report: ValidationReport) -> "ReportStatusView":
        return cls(
            status=report.status,
            scores=report.scores,
            overall_confidence=report.overall_confidence,
            recommendation=report.recommendation,
            error=report.error,
        )


class AggregateResult(BaseModel):
    """Output of the overview aggregator."""
    overall_confidence: int = Field(..., ge=0, le=100)
    recommendation: Recommendation
    strong_count: int = Field(..., ge=0)


class SectionFailure(BaseModel):
    """A section that failed inside a batch run."""
    section: SectionId
    error: str
    error_type: str = Field("IdeaForgeError", description="Exception class name")


class RunAllResult(BaseModel):
    """Multi-status result of running every section for a report."""
    report_id: str
    sections: Dict[SectionId, SectionResult] = Field(default_factory=dict)
    failures: List[SectionFailure] = Field(default_factory=list)
    overview: Optional[SectionResult] = None
    aggregate: Optional[AggregateResult] = None

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def status_code(self) -> int:
        """207 when any section failed, 200 otherwise."""
        return 207 if self.failures else 200
