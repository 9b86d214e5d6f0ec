"""Refinement Engine - rewrites an idea to lift its weakest pillar.

improve() runs one refinement:
    select target pillar -> request rewrite -> validate -> merge (or reject)

The merged overview is a new snapshot: the reply replaces the fields it
returns, fields it omits are kept, and the elevator pitch never changes.
Diffs are computed from the two snapshots rather than trusted from the model.

auto_improve() repeats improve() on the current weakest pillar until it
reaches the target score or the loop budget runs out. A failed iteration
stops the loop; earlier iterations stand.
"""

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from config import settings
from contracts import (
    AutoImproveResult,
    IdeaForgeError,
    ImprovementResult,
    LOCKED_OVERVIEW_FIELDS,
    MissingInputError,
    OVERVIEW_SECTION_TITLES,
    PILLAR_LABELS,
    PILLAR_OVERVIEW_SECTIONS,
    PillarId,
    PillarScore,
    ProductOverview,
    SchemaValidationError,
    SectionDiff,
    clamp_score,
    diff_overviews,
    normalize_pillar,
    round_half_up,
)
from providers import LLMProvider

from .base_agent import BaseAgent, schema_errors

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are a product refinement engine. Rewrite Product Overview sections so the
target pillar scores higher.

Rules:
- Produce polished final copy, not advice
- Keep structure, tone and factual context intact
- Edit the sections that drive the target pillar, plus minimal supporting lines
- Never change refined_pitch
- Return the full improved overview, the sections you changed, and the score
  change you expect for the target pillar"""


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


class RefinementResponse(BaseModel):
    """Reply shape expected from the model for one refinement."""
    improved_overview: Dict[str, Any] = Field(
        ...,
        validation_alias=AliasChoices("improved_overview", "improvedOverview"),
        description="Full replacement overview",
    )
    differences: List[SectionDiff] = Field(
        default_factory=list, description="Sections changed, with before and after text"
    )
    score_delta: float = Field(
        ...,
        validation_alias=AliasChoices("score_delta", "scoreDelta"),
        allow_inf_nan=False,
        description="Expected change to the target pillar's score",
    )
    pillar_impacted: Optional[str] = Field(
        None, validation_alias=AliasChoices("pillar_impacted", "pillarImpacted")
    )

    @field_validator("improved_overview", mode="after")
    @classmethod
    def snake_case_keys(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        return {_snake_case(key): item for key, item in value.items()}


class RefinementRequest(BaseModel):
    """Input for one refinement."""
    overview: ProductOverview
    target: PillarScore


def weakest_pillar(scores: Sequence[PillarScore]) -> PillarScore:
    """Lowest-scoring pillar; ties go to the first one seen."""
    if not scores:
        raise MissingInputError("Pillar scores are required to pick a pillar to improve")
    return min(scores, key=lambda entry: entry.score)


def merge_overview(base: ProductOverview, incoming: Dict[str, Any]) -> ProductOverview:
    """Build the next snapshot from a reply.

    Known fields present in the reply replace the base value; omitted or
    null fields are kept. Locked fields always keep the base value.

    Raises:
        SchemaValidationError: If the merged overview breaks the overview schema
    """
    merged = base.model_dump()
    for key in OVERVIEW_SECTION_TITLES:
        if key in LOCKED_OVERVIEW_FIELDS:
            continue
        if incoming.get(key) is not None:
            merged[key] = incoming[key]
    try:
        return ProductOverview.model_validate(merged)
    except ValidationError as e:
        errors = schema_errors(e)
        raise SchemaValidationError(
            f"Refined overview failed schema validation: {'; '.join(errors)}", errors
        ) from e


class RefinementEngine(BaseAgent):
    """Pillar-targeted rewriting of a product overview."""

    def __init__(
        self,
        llm_provider: Optional[LLMProvider] = None,
        model: Optional[str] = None,
        provider: Optional[str] = None,
    ):
        super().__init__(
            role="refinement",
            system_prompt=SYSTEM_PROMPT,
            output_schema=RefinementResponse,
            llm_provider=llm_provider,
            model=model,
            provider=provider,
        )

    def get_task_description(self) -> str:
        return "Rewrite a product overview to raise one pillar's score"

    def build_user_message(self, input_data: RefinementRequest) -> str:
        target = input_data.target
        overview = input_data.overview
        sections = PILLAR_OVERVIEW_SECTIONS.get(target.pillar) or ["solution"]

        previews = "\n\n".join(
            f"### {OVERVIEW_SECTION_TITLES[key]}\n{overview.section_text(key) or '(empty)'}"
            for key in sections
        )
        diagnostics = [
            f"Target Pillar: {target.label} ({target.score}/100)",
            f"Rationale: {target.rationale}",
        ]
        if target.strength:
            diagnostics.append(f"Strength: {target.strength}")
        if target.weakness:
            diagnostics.append(f"Weakness: {target.weakness}")

        return (
            f"# CURRENT OVERVIEW\n\n{overview.model_dump_json(indent=2)}\n\n"
            f"# DIAGNOSTICS\n\n" + "\n".join(diagnostics) + "\n\n"
            f"# SECTIONS TO REWRITE\n\n{previews}\n\n"
            f"# OVERVIEW SCHEMA\n\n"
            f"improved_overview must match:\n"
            f"```json\n{json.dumps(ProductOverview.model_json_schema(), indent=2)}\n```\n\n"
            f"Set pillar_impacted to \"{target.pillar.value}\"."
        )

    def improve(
        self,
        overview: ProductOverview,
        current_scores: Sequence[PillarScore],
        target_pillar: Optional[Union[PillarId, str]] = None,
    ) -> ImprovementResult:
        """Run one refinement.

        Args:
            overview: Current overview snapshot (left untouched)
            current_scores: Current pillar scores
            target_pillar: Pillar to improve; the weakest pillar when omitted

        Returns:
            ImprovementResult with the new snapshot, diffs and updated scores

        Raises:
            MissingInputError: If there are no scores or the target pillar has none
            AIResponseError: If the reply cannot be obtained or parsed
            SchemaValidationError: If the reply or merged overview is invalid,
                or the rewrite changes nothing
        """
        target = self._select_target(current_scores, target_pillar)
        logger.info("Refining overview for %s (%s/100)", target.label, target.score)

        result = self.run(RefinementRequest(overview=overview, target=target))
        response: RefinementResponse = result.output

        improved = merge_overview(overview, response.improved_overview)
        differences = diff_overviews(overview, improved)
        if not differences:
            raise SchemaValidationError("Refinement did not change any overview section")

        new_score = clamp_score(target.score + round_half_up(response.score_delta))
        updated_scores = [
            entry.model_copy(update={"score": new_score}) if entry.pillar == target.pillar else entry
            for entry in current_scores
        ]

        return ImprovementResult(
            improved_overview=improved,
            differences=differences,
            pillar_impacted=target.pillar,
            score_delta=new_score - target.score,
            updated_scores=updated_scores,
            before_text=overview.to_text(),
            after_text=improved.to_text(),
        )

    def auto_improve(
        self,
        overview: ProductOverview,
        scores: Sequence[PillarScore],
        target_score: Optional[int] = None,
        max_loops: Optional[int] = None,
        on_iteration: Optional[Callable[[ImprovementResult], None]] = None,
    ) -> AutoImproveResult:
        """Improve the weakest pillar until it reaches target_score or the budget runs out.

        Args:
            overview: Starting overview snapshot
            scores: Starting pillar scores
            target_score: Stop once the weakest pillar scores this much (default from settings)
            max_loops: Maximum iterations (default from settings)
            on_iteration: Called with each successful iteration, in order

        Returns:
            AutoImproveResult; error is set when an iteration failed and stopped the loop
        """
        target_score = settings.auto_improve_target_score if target_score is None else target_score
        max_loops = settings.auto_improve_max_loops if max_loops is None else max_loops

        working_overview = overview
        working_scores = list(scores)
        if not working_scores:
            raise MissingInputError("Pillar scores are required to auto-improve")

        iterations: List[ImprovementResult] = []
        error: Optional[str] = None

        for loop in range(max_loops):
            weakest = weakest_pillar(working_scores)
            if weakest.score >= target_score:
                break
            try:
                result = self.improve(working_overview, working_scores, weakest.pillar)
            except IdeaForgeError as e:
                error = str(e)
                logger.warning("Auto-improve halted at iteration %d: %s", loop + 1, e)
                break

            iterations.append(result)
            if on_iteration is not None:
                on_iteration(result)
            working_overview = result.improved_overview
            working_scores = result.updated_scores
            logger.info(
                "Auto-improve iteration %d: %s %+d",
                loop + 1, PILLAR_LABELS[result.pillar_impacted], result.score_delta,
            )

        return AutoImproveResult(
            final_overview=working_overview,
            final_scores=working_scores,
            iterations=iterations,
            reached_target=weakest_pillar(working_scores).score >= target_score,
            error=error,
        )

    def _select_target(
        self,
        scores: Sequence[PillarScore],
        target_pillar: Optional[Union[PillarId, str]],
    ) -> PillarScore:
        if target_pillar is None:
            return weakest_pillar(scores)
        pillar = normalize_pillar(target_pillar)
        match = next((entry for entry in scores if entry.pillar == pillar), None)
        if match is None:
            raise MissingInputError(f"No score for target pillar '{target_pillar}'")
        return match
