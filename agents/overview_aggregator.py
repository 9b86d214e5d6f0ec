"""Programmatic aggregation of section and pillar scores.

No model calls: confidence, recommendation and the derived overview section
are plain arithmetic over the stored results.
"""

from typing import Dict, Mapping, Tuple, Union

from contracts import (
    AggregateResult,
    PillarId,
    SECTION_PILLARS,
    SectionAction,
    SectionId,
    SectionResult,
    MAX_SECTION_ACTIONS,
    PILLAR_TABLE,
    VALIDATION_SECTIONS,
    normalize_pillar,
    recommendation_for,
    round_half_up,
    weighted_confidence,
)
from contracts.report_contracts import STRONG_PILLAR_THRESHOLD


EMPTY_OVERVIEW_SUMMARY = (
    "No validation sections have been completed yet. "
    "Run individual sections to see an overview."
)
EMPTY_OVERVIEW_ACTIONS = [
    "Start by running the Problem section",
    "Then run Market and Competition sections",
]


class OverviewAggregator:
    """Turns per-pillar and per-section scores into a verdict."""

    def aggregate(self, scores_by_pillar: Mapping[Union[PillarId, str], float]) -> AggregateResult:
        """Weighted confidence, recommendation and strong-pillar count.

        overall_confidence = round(sum(weight[p] * score[p])) over the fixed
        pillar table. build at 70+, revise at 40-69, drop below 40. Keys may
        be any pillar alias ("market", "Audience Fit", ...).

        Raises:
            ValueError: If a key names no pillar or a pillar in the table has no score
        """
        scores: Dict[PillarId, float] = {}
        for key, score in scores_by_pillar.items():
            pillar = normalize_pillar(key)
            if pillar is None:
                raise ValueError(f"Unknown pillar '{key}'")
            scores[pillar] = score

        confidence = weighted_confidence(scores)
        strong = sum(1 for row in PILLAR_TABLE if scores[row["id"]] >= STRONG_PILLAR_THRESHOLD)
        return AggregateResult(
            overall_confidence=confidence,
            recommendation=recommendation_for(confidence),
            strong_count=strong,
        )

    def pillar_scores(
        self, sections: Mapping[SectionId, SectionResult]
    ) -> Tuple[Dict[PillarId, int], Dict[PillarId, str]]:
        """Read pillar scores and rationales off the sections that map to a pillar."""
        scores: Dict[PillarId, int] = {}
        rationales: Dict[PillarId, str] = {}
        for section, pillar in SECTION_PILLARS.items():
            result = sections.get(section)
            if result is None:
                continue
            scores[pillar] = result.score
            rationales[pillar] = result.summary
        return scores, rationales

    def build_overview_section(self, sections: Mapping[SectionId, SectionResult]) -> SectionResult:
        """Derive the overview section: mean score, first unique actions, verdict sentence.

        Completed flags on overview actions carry over from the source sections.
        """
        evaluated = [sections[section] for section in VALIDATION_SECTIONS if section in sections]
        if not evaluated:
            return SectionResult(
                section=SectionId.OVERVIEW,
                score=0,
                summary=EMPTY_OVERVIEW_SUMMARY,
                actions=[SectionAction(text=text) for text in EMPTY_OVERVIEW_ACTIONS],
            )

        average = round_half_up(sum(result.score for result in evaluated) / len(evaluated))

        actions = []
        seen = set()
        for result in evaluated:
            for action in result.actions:
                if action.text in seen:
                    continue
                seen.add(action.text)
                actions.append(SectionAction(text=action.text, completed=action.completed))
        actions = actions[:MAX_SECTION_ACTIONS]

        strong = sum(1 for result in evaluated if result.score >= STRONG_PILLAR_THRESHOLD)
        weak = sum(1 for result in evaluated if result.score < 40)
        summary = (
            f"Overall validation score: {average}/100. Based on {len(evaluated)} completed sections, "
            f"the recommendation is to {recommendation_for(average).value}. "
            f"Key strengths: {strong} sections scored 70+. "
            f"Areas for improvement: {weak} sections scored below 40."
        )
        return SectionResult(section=SectionId.OVERVIEW, score=average, summary=summary, actions=actions)
