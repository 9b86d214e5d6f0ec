"""Suggestion Validator - one grounded remediation per weak pillar.

Every reply is checked before it is accepted:
1. Schema: required strings, pillar restricted to the pillar enum (aliases allowed)
2. Count and uniqueness: exactly one suggestion per weak pillar, no duplicates
3. Grounding: rationale + suggestion must reuse a keyword (5+ letters) from
   the pillar's weakness rationale or notes
4. Impact: recomputed as max(1, 85 - round(score)), never taken from the model

A rejected reply is retried with the rejection reason appended, up to
settings.suggestion_max_attempts calls. The last error is then raised.
"""

import logging
import re
from typing import List, Optional, Sequence, Set, Union

from pydantic import BaseModel, Field

from config import settings
from contracts import (
    Idea,
    PILLAR_LABELS,
    PillarWeakness,
    SchemaValidationError,
    Suggestion,
    SuggestionBatch,
    estimated_impact_for,
)
from providers import LLMProvider

from .base_agent import BaseAgent

logger = logging.getLogger(__name__)

MIN_KEYWORD_LENGTH = 5

SYSTEM_PROMPT = """You are a strict startup validation coach.

For every weak pillar you are given, write exactly one suggestion:
- issue: a short label for what holds the pillar back
- rationale: why it matters, quoting the weakness you were given
- suggestion: one specific edit to the idea that addresses it

Use the pillar names exactly as given. Do not add pillars, do not repeat a
pillar, and do not invent problems that the weakness notes do not mention."""


class SuggestionRequest(BaseModel):
    """Input for suggestion generation."""
    idea: str = Field(..., description="The idea being improved")
    weaknesses: List[PillarWeakness] = Field(..., description="Weak pillars, one suggestion each")


def keywords(text: str) -> Set[str]:
    """Lower-cased alphanumeric tokens long enough to count as keywords."""
    return {token for token in re.findall(r"[a-z0-9]+", text.lower()) if len(token) >= MIN_KEYWORD_LENGTH}


class SuggestionValidator(BaseAgent):
    """Generates and validates pillar suggestions."""

    def __init__(
        self,
        llm_provider: Optional[LLMProvider] = None,
        model: Optional[str] = None,
        provider: Optional[str] = None,
        max_attempts: Optional[int] = None,
    ):
        super().__init__(
            role="suggestions",
            system_prompt=SYSTEM_PROMPT,
            output_schema=SuggestionBatch,
            llm_provider=llm_provider,
            model=model,
            provider=provider,
        )
        self.max_attempts = max_attempts or settings.suggestion_max_attempts

    def get_task_description(self) -> str:
        return "Write one grounded suggestion per weak pillar"

    def build_user_message(self, input_data: SuggestionRequest) -> str:
        blocks = []
        for weakness in input_data.weaknesses:
            block = (
                f"Pillar: {PILLAR_LABELS[weakness.pillar]}\n"
                f"Score: {weakness.score}\n"
                f"Rationale: {weakness.rationale}"
            )
            if weakness.weaknesses:
                block += f"\nWeaknesses: {'; '.join(weakness.weaknesses)}"
            blocks.append(block)
        return (
            f"# IDEA\n\n{input_data.idea}\n\n"
            f"# WEAK PILLARS ({len(input_data.weaknesses)})\n\n"
            + "\n\n".join(blocks)
        )

    def validate_output(self, output: SuggestionBatch, input_data: SuggestionRequest) -> SuggestionBatch:
        expected = [weakness.pillar for weakness in input_data.weaknesses]
        returned = [draft.pillar for draft in output.suggestions]

        if len(returned) != len(expected):
            raise SchemaValidationError(
                f"Expected {len(expected)} suggestions, got {len(returned)}"
            )
        if len(set(returned)) != len(returned):
            duplicates = sorted({PILLAR_LABELS[p] for p in returned if returned.count(p) > 1})
            raise SchemaValidationError(f"Duplicate suggestions for: {', '.join(duplicates)}")
        if set(returned) != set(expected):
            unexpected = sorted(PILLAR_LABELS[p] for p in set(returned) - set(expected))
            raise SchemaValidationError(f"Suggestions for pillars that are not weak: {', '.join(unexpected)}")

        by_pillar = {weakness.pillar: weakness for weakness in input_data.weaknesses}
        ungrounded = []
        for draft in output.suggestions:
            weakness = by_pillar[draft.pillar]
            source = keywords(" ".join([weakness.rationale, *weakness.weaknesses]))
            if source and not source & keywords(f"{draft.rationale} {draft.suggestion}"):
                ungrounded.append(PILLAR_LABELS[draft.pillar])
        if ungrounded:
            raise SchemaValidationError(
                f"Suggestions do not reference the stated weakness for: {', '.join(ungrounded)}",
                [f"{label}: no keyword from the weakness rationale or notes" for label in ungrounded],
            )
        return output

    def generate(
        self,
        idea: Union[Idea, str],
        weak_pillars: Sequence[Union[PillarWeakness, dict]],
    ) -> List[Suggestion]:
        """Produce one validated suggestion per weak pillar, in input order.

        Args:
            idea: The idea (or its text)
            weak_pillars: Weak pillars with score, rationale and notes

        Returns:
            Suggestions with derived estimated_impact; empty when no pillar is weak

        Raises:
            AIResponseError: If the final attempt could not be parsed
            SchemaValidationError: If the final attempt failed validation
        """
        weaknesses = [PillarWeakness.model_validate(item) for item in weak_pillars]
        if not weaknesses:
            return []
        if len({w.pillar for w in weaknesses}) != len(weaknesses):
            raise ValueError("Each weak pillar may appear only once")

        idea_text = idea.describe() if isinstance(idea, Idea) else str(idea)
        request = SuggestionRequest(idea=idea_text, weaknesses=weaknesses)
        result = self.run(request, max_retries=self.max_attempts - 1)

        drafts = {draft.pillar: draft for draft in result.output.suggestions}
        suggestions = [
            Suggestion(
                pillar=weakness.pillar,
                issue=drafts[weakness.pillar].issue,
                rationale=drafts[weakness.pillar].rationale,
                suggestion=drafts[weakness.pillar].suggestion,
                estimated_impact=estimated_impact_for(weakness.score),
            )
            for weakness in weaknesses
        ]
        logger.info(
            "Generated %d suggestions in %d attempt(s)", len(suggestions), result.attempts
        )
        return suggestions
