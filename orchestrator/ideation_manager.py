"""Ideation Manager - store-backed entry points used after a report exists.

Generates the first product overview, suggestions for weak pillars, and
manual or automatic refinements. Every refinement is persisted as it
completes: the new overview snapshot, the history entry, and the report's
updated pillar scores.
"""

import logging
from typing import Dict, List, Optional, Union

from agents import OverviewAggregator, ProductOverviewAgent, RefinementEngine, SuggestionValidator
from config import settings
from contracts import (
    AutoImproveResult,
    ImprovementIteration,
    ImprovementResult,
    ImprovementSource,
    MissingInputError,
    NotFoundError,
    PillarId,
    PillarScore,
    PillarWeakness,
    ProductOverview,
    ReportStatus,
    Suggestion,
    ValidationReport,
    build_pillar_scores,
    normalize_pillar,
    scores_by_pillar,
)
from store import ValidationStore

logger = logging.getLogger(__name__)


class IdeationManager:
    """Overview, suggestion and refinement workflows for one store."""

    def __init__(
        self,
        store: ValidationStore,
        overview_agent: Optional[ProductOverviewAgent] = None,
        suggestion_validator: Optional[SuggestionValidator] = None,
        refinement_engine: Optional[RefinementEngine] = None,
        aggregator: Optional[OverviewAggregator] = None,
    ):
        self.store = store
        self.overview_agent = overview_agent or ProductOverviewAgent()
        self.suggestion_validator = suggestion_validator or SuggestionValidator()
        self.refinement_engine = refinement_engine or RefinementEngine()
        self.aggregator = aggregator or OverviewAggregator()

    # -- lookups --------------------------------------------------------------

    def latest_succeeded_report(self, project_id: str, owner_id: str) -> ValidationReport:
        report = self.store.get_latest_report_for_project(project_id, owner_id)
        if report is None or report.status != ReportStatus.SUCCEEDED:
            raise NotFoundError(f"Project {project_id} has no completed validation report")
        return report

    def pillar_scores(self, report: ValidationReport) -> List[PillarScore]:
        return build_pillar_scores(report.scores or {}, report.rationales)

    def weak_pillars(self, report: ValidationReport, threshold: Optional[int] = None) -> List[PillarWeakness]:
        """Pillars scoring below the threshold, weakest first."""
        threshold = settings.weak_pillar_threshold if threshold is None else threshold
        weak = [
            PillarWeakness(pillar=entry.pillar, score=entry.score, rationale=entry.rationale)
            for entry in self.pillar_scores(report)
            if entry.score < threshold
        ]
        return sorted(weak, key=lambda weakness: weakness.score)

    def _require_overview(self, project_id: str, owner_id: str) -> ProductOverview:
        overview = self.store.get_overview(project_id, owner_id)
        if overview is None:
            raise NotFoundError(f"Project {project_id} has no product overview yet")
        return overview

    # -- overview ---------------------------------------------------------------

    def generate_overview(self, project_id: str, owner_id: str) -> ProductOverview:
        """Write the first overview snapshot from the latest succeeded report."""
        report = self.latest_succeeded_report(project_id, owner_id)
        overview = self.overview_agent.generate(report.idea(), self.pillar_scores(report))
        self.store.upsert_overview(project_id, owner_id, overview)
        logger.info("Product overview generated for project %s", project_id)
        return overview

    # -- suggestions ------------------------------------------------------------

    def generate_suggestions(
        self,
        project_id: str,
        owner_id: str,
        weaknesses: Optional[Dict[Union[PillarId, str], List[str]]] = None,
    ) -> List[Suggestion]:
        """Replace the project's suggestions with one per weak pillar.

        Args:
            project_id: Project id
            owner_id: Owning user
            weaknesses: Optional extra weakness notes per pillar

        Returns:
            The stored suggestion set (empty when no pillar is weak)
        """
        report = self.latest_succeeded_report(project_id, owner_id)
        weak = self.weak_pillars(report)
        if weaknesses:
            notes = {}
            for key, value in weaknesses.items():
                pillar = normalize_pillar(key)
                if pillar is None:
                    raise MissingInputError(f"Unknown pillar '{key}' in weakness notes")
                notes[pillar] = value
            weak = [item.model_copy(update={"weaknesses": list(notes.get(item.pillar, []))}) for item in weak]

        suggestions = self.suggestion_validator.generate(report.idea(), weak)
        return self.store.replace_suggestions(project_id, owner_id, suggestions)

    # -- refinement -------------------------------------------------------------

    def improve(
        self,
        project_id: str,
        owner_id: str,
        target_pillar: Optional[Union[PillarId, str]] = None,
    ) -> ImprovementResult:
        """One manual refinement. On failure nothing is written."""
        report = self.latest_succeeded_report(project_id, owner_id)
        overview = self._require_overview(project_id, owner_id)

        result = self.refinement_engine.improve(overview, self.pillar_scores(report), target_pillar)
        self._persist_iteration(report, result, ImprovementSource.MANUAL)
        return result

    def auto_improve(
        self,
        project_id: str,
        owner_id: str,
        target_score: Optional[int] = None,
        max_loops: Optional[int] = None,
    ) -> AutoImproveResult:
        """Refine the weakest pillar repeatedly, persisting each iteration as it completes."""
        report = self.latest_succeeded_report(project_id, owner_id)
        overview = self._require_overview(project_id, owner_id)

        def persist(result: ImprovementResult) -> None:
            self._persist_iteration(report, result, ImprovementSource.AUTO)

        outcome = self.refinement_engine.auto_improve(
            overview,
            self.pillar_scores(report),
            target_score=target_score,
            max_loops=max_loops,
            on_iteration=persist,
        )
        logger.info(
            "Auto-improve for project %s: %d iteration(s), target reached: %s",
            project_id, len(outcome.iterations), outcome.reached_target,
        )
        return outcome

    def _persist_iteration(
        self,
        report: ValidationReport,
        result: ImprovementResult,
        source: ImprovementSource,
    ) -> ImprovementIteration:
        project_id, owner_id = report.project_id, report.owner_id
        self.store.upsert_overview(project_id, owner_id, result.improved_overview)
        iteration = self.store.append_improvement_iteration(project_id, owner_id, result.to_iteration(source))

        scores = scores_by_pillar(result.updated_scores)
        aggregate = self.aggregator.aggregate(scores)
        self.store.update_report(
            report.id,
            owner_id,
            {
                "scores": scores,
                "overall_confidence": aggregate.overall_confidence,
                "recommendation": aggregate.recommendation,
                "strong_count": aggregate.strong_count,
            },
        )
        return iteration

    # -- history ----------------------------------------------------------------

    def history(self, project_id: str, owner_id: str) -> List[ImprovementIteration]:
        return self.store.list_improvement_iterations(project_id, owner_id)

    def purge_history(self, project_id: str, owner_id: str, iteration_id: Optional[str] = None) -> int:
        """Delete one history entry, or the whole history when no id is given."""
        return self.store.purge_improvement_iterations(project_id, owner_id, iteration_id)
