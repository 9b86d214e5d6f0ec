"""Section Evaluator - scores an idea on one validation dimension.

Each of the seven sections (problem, market, competition, audience,
feasibility, pricing, go-to-market) gets its own analyst persona and
checklist. The reply is normalised before it becomes a SectionResult:
- score clamped to 0-100 (50 when the model omits it)
- empty summary replaced with a default
- at most 5 non-empty actions kept; a reply with none is rejected
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from contracts import (
    AIResponseError,
    Idea,
    MAX_SECTION_ACTIONS,
    MissingInputError,
    SchemaValidationError,
    SectionAction,
    SectionId,
    SectionInsight,
    SectionResult,
    VALIDATION_SECTIONS,
)
from providers import LLMProvider

from .base_agent import BaseAgent

logger = logging.getLogger(__name__)


SECTION_PROMPTS: Dict[SectionId, Dict[str, Any]] = {
    SectionId.PROBLEM: {
        "analyst": "an expert startup validation consultant specialising in problem analysis",
        "assess": "how well-defined, urgent and valuable the problem is",
        "checklist": [
            "Clarity and specificity of the problem",
            "Frequency and urgency for the people who have it",
            "Cost of the problem today (time, money, risk)",
            "Evidence that people actively look for a fix",
        ],
    },
    SectionId.MARKET: {
        "analyst": "a market research analyst",
        "assess": "market demand, size, growth potential and timing",
        "checklist": [
            "Market size and growth potential (TAM/SAM/SOM proxy)",
            "Search interest and trend signals",
            "Budget allocation signals in the target market",
            "Willingness to pay indicators",
        ],
    },
    SectionId.COMPETITION: {
        "analyst": "a competitive analysis expert",
        "assess": "the competitive landscape and room for differentiation",
        "checklist": [
            "Direct and indirect competitors",
            "Switching costs and incumbent lock-in",
            "Gaps competitors leave open",
            "Defensibility of the proposed angle",
        ],
    },
    SectionId.AUDIENCE: {
        "analyst": "an audience research expert",
        "assess": "audience fit, reachability and product-market fit",
        "checklist": [
            "Who the core audience is and how narrowly it can be defined",
            "Behaviours and needs that match the solution",
            "Where the audience gathers and how to reach it",
            "Signals of early-adopter enthusiasm",
        ],
    },
    SectionId.FEASIBILITY: {
        "analyst": "a technical feasibility expert",
        "assess": "technical feasibility, resourcing, timeline and complexity",
        "checklist": [
            "Core technical risks and unknowns",
            "Team skills and resources required",
            "Time to a usable first version",
            "Dependencies on third parties or regulation",
        ],
    },
    SectionId.PRICING: {
        "analyst": "a pricing strategy expert",
        "assess": "pricing potential, willingness to pay and revenue models",
        "checklist": [
            "Plausible pricing models and price points",
            "Value metric the price can anchor to",
            "Comparable pricing in adjacent products",
            "Revenue potential per customer",
        ],
    },
    SectionId.GO_TO_MARKET: {
        "analyst": "a go-to-market strategy expert",
        "assess": "go-to-market strategy, channels, positioning and acquisition",
        "checklist": [
            "Most promising acquisition channels",
            "Positioning and core message",
            "Cost and speed of acquiring the first customers",
            "Experiments that would validate distribution",
        ],
    },
}

SYSTEM_PROMPT = """You evaluate startup ideas one dimension at a time.

For the dimension you are given:
- Score it from 0 to 100 (80-100 strong, 60-79 moderate, 40-59 weak, 0-39 very weak)
- Write a 120-160 word summary of the verdict
- Give 3-5 sharp, founder-ready validation actions (no generic statements)
- Optionally break the verdict down into discoveries, meaning, impact and recommendations

Respond with JSON only."""


class SectionResponse(BaseModel):
    """Reply shape expected from the model for one section."""
    score: Optional[float] = Field(None, allow_inf_nan=False, description="Score from 0 to 100")
    summary: str = Field("", description="120-160 word synthesis")
    actions: List[str] = Field(default_factory=list, description="3-5 validation actions")
    insight_breakdown: Optional[SectionInsight] = Field(
        None,
        validation_alias=AliasChoices("insight_breakdown", "insightBreakdown"),
        description="Discoveries, meaning, impact, recommendations",
    )

    @field_validator("summary", mode="before")
    @classmethod
    def coerce_summary(cls, value: Any) -> Any:
        return value if isinstance(value, str) else ""

    @field_validator("actions", mode="before")
    @classmethod
    def keep_text_actions(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        texts = []
        for item in value:
            if isinstance(item, dict):
                item = item.get("text")
            if isinstance(item, str) and item.strip():
                texts.append(item.strip())
        return texts[:MAX_SECTION_ACTIONS]


class SectionRequest(BaseModel):
    """Input for one section evaluation."""
    section: SectionId
    idea: Idea


class SectionEvaluator(BaseAgent):
    """Runs one validation section through the text-generation provider.

    No retries happen here; the coordinator decides whether a run is repeated.
    """

    def __init__(
        self,
        llm_provider: Optional[LLMProvider] = None,
        model: Optional[str] = None,
        provider: Optional[str] = None,
    ):
        super().__init__(
            role="section",
            system_prompt=SYSTEM_PROMPT,
            output_schema=SectionResponse,
            llm_provider=llm_provider,
            model=model,
            provider=provider,
        )

    def get_task_description(self) -> str:
        return "Score an idea on one validation section and recommend next actions"

    def build_user_message(self, input_data: SectionRequest) -> str:
        template = SECTION_PROMPTS[input_data.section]
        checklist = "\n".join(f"{i}. {item}" for i, item in enumerate(template["checklist"], 1))
        lines = [
            f"You are {template['analyst']}. Assess {template['assess']}.",
            "",
            "# IDEA",
            "",
            input_data.idea.describe(),
        ]
        if input_data.idea.prior_review:
            lines += ["", "Use the prior review notes to inform your assessment."]
        lines += ["", "# ANALYSE", "", checklist]
        return "\n".join(lines)

    def validate_output(self, output: SectionResponse, input_data: SectionRequest) -> SectionResponse:
        if not output.actions:
            raise SchemaValidationError(f"No valid actions returned for section '{input_data.section.value}'")
        return output

    def evaluate(self, section: SectionId, idea: Idea) -> SectionResult:
        """Evaluate one section of an idea.

        Args:
            section: One of the seven validation sections
            idea: The idea to evaluate

        Returns:
            Normalised SectionResult (actions not yet completed)

        Raises:
            MissingInputError: If the idea has no title
            AIResponseError: If the reply cannot be turned into a section result
        """
        section = SectionId(section)
        if section not in VALIDATION_SECTIONS:
            raise ValueError(f"Section '{section.value}' is not evaluated by a model")
        if not idea.title:
            raise MissingInputError("An idea title is required to run a validation section")

        try:
            result = self.run(SectionRequest(section=section, idea=idea))
        except SchemaValidationError as e:
            raise AIResponseError(str(e)) from e

        response: SectionResponse = result.output
        summary = response.summary.strip() or None
        insight = response.insight_breakdown
        if insight is not None and not insight.discoveries and summary:
            insight = insight.model_copy(update={"discoveries": summary})

        logger.debug("Section %s scored %s", section.value, response.score)
        return SectionResult(
            section=section,
            score=response.score if response.score is not None else 50,
            summary=summary,
            actions=[SectionAction(text=text) for text in response.actions],
            insight_breakdown=insight,
        )
