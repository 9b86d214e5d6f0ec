"""Product Overview Agent - writes the first structured snapshot of an idea."""

from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from contracts import Idea, MissingInputError, PillarScore, ProductOverview
from providers import LLMProvider

from .base_agent import BaseAgent


SYSTEM_PROMPT = """You are a senior product strategist. Turn a raw startup idea into a
structured Product Overview.

Rules:
- refined_pitch: one or two sentences a founder could say out loud
- At least one persona, core feature, risk (with mitigation) and monetisation option
- Ground every section in the idea and the pillar scores you are given
- Be concrete; avoid buzzwords"""


class OverviewEnvelope(BaseModel):
    """Reply shape expected from the model."""
    overview: ProductOverview = Field(..., description="The structured product overview")


class OverviewRequest(BaseModel):
    """Input for overview generation."""
    idea: Idea
    pillar_scores: List[PillarScore] = Field(default_factory=list)


class ProductOverviewAgent(BaseAgent):
    """Generates the initial ProductOverview for an idea."""

    def __init__(
        self,
        llm_provider: Optional[LLMProvider] = None,
        model: Optional[str] = None,
        provider: Optional[str] = None,
    ):
        super().__init__(
            role="overview",
            system_prompt=SYSTEM_PROMPT,
            output_schema=OverviewEnvelope,
            llm_provider=llm_provider,
            model=model,
            provider=provider,
        )

    def get_task_description(self) -> str:
        return "Write a structured product overview for an idea"

    def build_user_message(self, input_data: OverviewRequest) -> str:
        message = f"# IDEA\n\n{input_data.idea.describe()}"
        if input_data.pillar_scores:
            scores = "\n".join(
                f"- {entry.label}: {entry.score}/100. {entry.rationale}"
                for entry in input_data.pillar_scores
            )
            message += f"\n\n# PILLAR SCORES\n\n{scores}"
        return message

    def generate(
        self,
        idea: Idea,
        pillar_scores: Optional[Sequence[PillarScore]] = None,
        max_retries: int = 1,
    ) -> ProductOverview:
        """Generate the overview snapshot.

        Raises:
            MissingInputError: If the idea has no summary
            AIResponseError: If the reply cannot be obtained or parsed
            SchemaValidationError: If the reply does not match the overview schema
        """
        if not idea.summary:
            raise MissingInputError("An idea summary is required to generate the product overview")
        request = OverviewRequest(idea=idea, pillar_scores=list(pillar_scores or []))
        return self.run(request, max_retries=max_retries).output.overview
