"""Agent implementations for IdeaForge.

Each model-backed agent owns one prompt and one output contract; the
overview aggregator is plain arithmetic.
"""

from .base_agent import BaseAgent, AgentResult, TokenUsage, schema_errors
from .section_evaluator import SectionEvaluator, SectionResponse, SECTION_PROMPTS
from .overview_aggregator import OverviewAggregator
from .suggestion_validator import SuggestionValidator, keywords
from .refinement_engine import RefinementEngine, RefinementResponse, merge_overview, weakest_pillar
from .overview_agent import ProductOverviewAgent

__all__ = [
    # Base
    "BaseAgent",
    "AgentResult",
    "TokenUsage",
    "schema_errors",
    # Validation
    "SectionEvaluator",
    "SectionResponse",
    "SECTION_PROMPTS",
    "OverviewAggregator",
    # Suggestions
    "SuggestionValidator",
    "keywords",
    # Refinement
    "RefinementEngine",
    "RefinementResponse",
    "merge_overview",
    "weakest_pillar",
    "ProductOverviewAgent",
]
