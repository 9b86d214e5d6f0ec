"""Pydantic contracts for IdeaForge.

Every value that crosses an agent, coordinator or store boundary is typed
through these contracts.
"""

from .errors import (
    IdeaForgeError,
    AIResponseError,
    SchemaValidationError,
    MissingInputError,
    NotFoundError,
)

from .pillar_contracts import (
    DEFAULT_RATIONALE,
    PillarId,
    PILLAR_TABLE,
    PILLAR_LABELS,
    PILLAR_WEIGHTS,
    normalize_pillar,
    round_half_up,
    clamp_score,
    weighted_confidence,
    PillarScore,
    PillarWeakness,
    scores_by_pillar,
    build_pillar_scores,
)

from .report_contracts import (
    DEFAULT_SECTION_SUMMARY,
    MAX_SECTION_ACTIONS,
    ReportStatus,
    TERMINAL_STATUSES,
    Recommendation,
    recommendation_for,
    SectionId,
    VALIDATION_SECTIONS,
    SECTION_PILLARS,
    SectionAction,
    SectionInsight,
    SectionResult,
    Idea,
    ValidationReport,
    ReportStatusView,
    AggregateResult,
    SectionFailure,
    RunAllResult,
)

from .overview_contracts import (
    Persona,
    OverviewRisk,
    MonetisationOption,
    OVERVIEW_SECTION_TITLES,
    PILLAR_OVERVIEW_SECTIONS,
    LOCKED_OVERVIEW_FIELDS,
    ProductOverview,
    SectionDiff,
    diff_overviews,
    ImprovementSource,
    ImprovementIteration,
    ImprovementResult,
    AutoImproveResult,
)

from .suggestion_contracts import (
    estimated_impact_for,
    SuggestionDraft,
    SuggestionBatch,
    Suggestion,
)

__all__ = [
    # Errors
    "IdeaForgeError",
    "AIResponseError",
    "SchemaValidationError",
    "MissingInputError",
    "NotFoundError",
    # Pillars
    "DEFAULT_RATIONALE",
    "PillarId",
    "PILLAR_TABLE",
    "PILLAR_LABELS",
    "PILLAR_WEIGHTS",
    "normalize_pillar",
    "round_half_up",
    "clamp_score",
    "weighted_confidence",
    "PillarScore",
    "PillarWeakness",
    "scores_by_pillar",
    "build_pillar_scores",
    # Reports
    "DEFAULT_SECTION_SUMMARY",
    "MAX_SECTION_ACTIONS",
    "ReportStatus",
    "TERMINAL_STATUSES",
    "Recommendation",
    "recommendation_for",
    "SectionId",
    "VALIDATION_SECTIONS",
    "SECTION_PILLARS",
    "SectionAction",
    "SectionInsight",
    "SectionResult",
    "Idea",
    "ValidationReport",
    "ReportStatusView",
    "AggregateResult",
    "SectionFailure",
    "RunAllResult",
    # Overview
    "Persona",
    "OverviewRisk",
    "MonetisationOption",
    "OVERVIEW_SECTION_TITLES",
    "PILLAR_OVERVIEW_SECTIONS",
    "LOCKED_OVERVIEW_FIELDS",
    "ProductOverview",
    "SectionDiff",
    "diff_overviews",
    "ImprovementSource",
    "ImprovementIteration",
    "ImprovementResult",
    "AutoImproveResult",
    # Suggestions
    "estimated_impact_for",
    "SuggestionDraft",
    "SuggestionBatch",
    "Suggestion",
]
