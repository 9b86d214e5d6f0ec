"""Validation Run Coordinator - owns the report lifecycle.

    queued -> running -> succeeded | failed

start() persists a queued report and hands the run to a background
executor. The run marks the report running, evaluates the seven sections in
parallel and merges each result as it lands. A done-callback on the run's
future makes the single terminal write: succeeded with the aggregate when
every section came back, failed with a readable message otherwise. Nothing
escapes the background thread.

run_all() does the same work synchronously and returns a multi-status
result; run_section() re-runs one section and lets its errors propagate.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from functools import partial
from typing import Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from agents import OverviewAggregator, SectionEvaluator
from config import settings
from contracts import (
    AggregateResult,
    Idea,
    MissingInputError,
    NotFoundError,
    ReportStatus,
    ReportStatusView,
    RunAllResult,
    SECTION_PILLARS,
    SectionAction,
    SectionFailure,
    SectionId,
    SectionResult,
    VALIDATION_SECTIONS,
    ValidationReport,
)
from store import ValidationStore

logger = logging.getLogger(__name__)

SectionOutcomes = Tuple[Dict[SectionId, SectionResult], List[SectionFailure]]


def merge_section_result(previous: Optional[SectionResult], fresh: SectionResult) -> SectionResult:
    """Carry completed flags over to actions whose text did not change.

    Actions are joined on exact text; everything else comes from the fresh run.
    """
    done = {action.text for action in previous.actions if action.completed} if previous else set()
    actions = [SectionAction(text=action.text, completed=action.text in done) for action in fresh.actions]
    return fresh.model_copy(update={"actions": actions})


def describe_failures(failures: List[SectionFailure]) -> str:
    details = "; ".join(f"{failure.section.value}: {failure.error}" for failure in failures)
    return f"Validation failed for {len(failures)} section(s). {details}"


class ValidationRunCoordinator:
    """Runs validations against the store.

    Responsibilities:
    - Create reports and drive them through the lifecycle
    - Fan out section evaluations and merge results, keeping completed flags
    - Aggregate pillar scores once every section is in
    - Serve status polling, single-section re-runs and action toggles
    """

    def __init__(
        self,
        store: ValidationStore,
        evaluator: Optional[SectionEvaluator] = None,
        aggregator: Optional[OverviewAggregator] = None,
        section_workers: Optional[int] = None,
        background_workers: Optional[int] = None,
    ):
        """Initialize the coordinator.

        Args:
            store: Persistent store, the only shared state
            evaluator: Section evaluator (default builds one from settings)
            aggregator: Score aggregator
            section_workers: Parallel section evaluations per run
            background_workers: Runs executing in the background at once
        """
        self.store = store
        self.evaluator = evaluator or SectionEvaluator()
        self.aggregator = aggregator or OverviewAggregator()
        self.section_workers = section_workers or settings.section_max_workers
        self._background = ThreadPoolExecutor(
            max_workers=background_workers or settings.background_max_workers,
            thread_name_prefix="validation-run",
        )
        self._handles: Dict[str, Future] = {}
        self._handles_lock = threading.Lock()

    # -- full runs --------------------------------------------------------

    def start(self, project_id: str, owner_id: str, idea: Union[Idea, dict]) -> str:
        """Persist a queued report and run it in the background.

        Returns:
            The new report id; poll status() to follow the run

        Raises:
            MissingInputError: If the idea has no title
            NotFoundError: If the project is missing or owned by someone else
        """
        try:
            idea = Idea.model_validate(idea)
        except ValidationError as e:
            raise MissingInputError("An idea title is required to start a validation") from e
        if not idea.title:
            raise MissingInputError("An idea title is required to start a validation")
        self.store.assert_project_owner(project_id, owner_id)

        report = self.store.create_report(
            ValidationReport(
                project_id=project_id,
                owner_id=owner_id,
                idea_title=idea.title,
                idea_summary=idea.summary,
                prior_review=idea.prior_review,
            )
        )
        logger.info("Report %s queued for project %s", report.id, project_id)

        future = self._background.submit(self._execute, report.id, owner_id)
        with self._handles_lock:
            self._handles[report.id] = future
        future.add_done_callback(partial(self._settle, report.id, owner_id))
        return report.id

    def run_all(self, report_id: str, owner_id: str) -> RunAllResult:
        """Re-run every section for an existing report and wait for the outcome.

        One section failing does not stop the others. The report ends
        succeeded when all sections came back and failed otherwise.
        """
        self._mark_running(report_id, owner_id)
        sections, failures = self._evaluate_sections(report_id, owner_id)
        report, aggregate = self._finish(report_id, owner_id, failures)
        return RunAllResult(
            report_id=report_id,
            sections=sections,
            failures=failures,
            overview=report.section_results.get(SectionId.OVERVIEW),
            aggregate=aggregate,
        )

    def run_handle(self, report_id: str) -> Optional[Future]:
        """Future of a background run still in flight, or None once it has settled."""
        with self._handles_lock:
            return self._handles.get(report_id)

    def shutdown(self, wait: bool = True) -> None:
        self._background.shutdown(wait=wait)

    # -- single-report operations ------------------------------------------

    def status(self, report_id: str, owner_id: str) -> ReportStatusView:
        return ReportStatusView.from_report(self.store.get_report_by_id(report_id, owner_id))

    def run_section(self, report_id: str, owner_id: str, section: Union[SectionId, str]) -> SectionResult:
        """Re-run one section and persist it.

        The overview section is recomputed after every change. For a
        succeeded report, a pillar-backed section also updates scores,
        confidence and recommendation.

        Raises:
            AIResponseError: If the evaluation fails; the report is left as it was
            MissingInputError: If the report has no idea title
            NotFoundError: If the report is missing or owned by someone else
        """
        section = SectionId(section)
        report = self.store.get_report_by_id(report_id, owner_id)

        if section == SectionId.OVERVIEW:
            overview = self.aggregator.build_overview_section(report.section_results)
            self.store.update_report(
                report_id, owner_id, {"section_results": {**report.section_results, SectionId.OVERVIEW: overview}}
            )
            return overview

        fresh = self.evaluator.evaluate(section, report.idea())

        report = self.store.get_report_by_id(report_id, owner_id)
        merged = merge_section_result(report.section_results.get(section), fresh)
        results = {**report.section_results, section: merged}
        results[SectionId.OVERVIEW] = self.aggregator.build_overview_section(results)
        patch = {"section_results": results}

        pillar = SECTION_PILLARS.get(section)
        if report.status == ReportStatus.SUCCEEDED and pillar is not None:
            scores = {**report.scores, pillar: merged.score}
            rationales = {**report.rationales, pillar: merged.summary}
            aggregate_patch, _ = self._aggregate_patch(scores, rationales)
            patch.update(aggregate_patch)

        self.store.update_report(report_id, owner_id, patch)
        logger.info("Section %s re-run for report %s (score %d)", section.value, report_id, merged.score)
        return merged

    def toggle_action(
        self,
        report_id: str,
        owner_id: str,
        section: Union[SectionId, str],
        action_text: str,
        completed: bool,
    ) -> SectionResult:
        """Set the completed flag on one stored action.

        Raises:
            NotFoundError: If the section has no result or no action with that text
        """
        section = SectionId(section)
        report = self.store.get_report_by_id(report_id, owner_id)
        current = report.section_results.get(section)
        if current is None or current.action(action_text) is None:
            raise NotFoundError(f"Action not found in section '{section.value}': {action_text}")

        actions = [
            action.model_copy(update={"completed": completed}) if action.text == action_text else action
            for action in current.actions
        ]
        updated = current.model_copy(update={"actions": actions})
        results = {**report.section_results, section: updated}
        if section != SectionId.OVERVIEW:
            results[SectionId.OVERVIEW] = self.aggregator.build_overview_section(results)
        self.store.update_report(report_id, owner_id, {"section_results": results})
        return updated

    # -- internals ----------------------------------------------------------

    def _execute(self, report_id: str, owner_id: str) -> List[SectionFailure]:
        """Background body: mark running, evaluate, hand failures to the callback."""
        self._mark_running(report_id, owner_id)
        _, failures = self._evaluate_sections(report_id, owner_id)
        return failures

    def _settle(self, report_id: str, owner_id: str, future: Future) -> None:
        """Done-callback: the one terminal write for a background run."""
        try:
            if future.cancelled():
                self._fail(report_id, owner_id, "Validation run was cancelled")
            elif future.exception() is not None:
                error = future.exception()
                self._fail(report_id, owner_id, str(error) or type(error).__name__)
            else:
                try:
                    self._finish(report_id, owner_id, future.result())
                except Exception as e:
                    logger.warning("Finishing report %s failed: %s", report_id, e)
                    self._fail(report_id, owner_id, str(e) or type(e).__name__)
        except Exception:
            logger.exception("Could not record the outcome of report %s", report_id)
        finally:
            with self._handles_lock:
                self._handles.pop(report_id, None)

    def _mark_running(self, report_id: str, owner_id: str) -> None:
        report = self.store.get_report_by_id(report_id, owner_id)
        if not report.idea_title:
            raise MissingInputError(f"Report {report_id} has no idea title to evaluate")
        self.store.update_report(report_id, owner_id, {"status": ReportStatus.RUNNING, "error": None})
        logger.info("Report %s running", report_id)

    def _evaluate_sections(self, report_id: str, owner_id: str) -> SectionOutcomes:
        """Evaluate every section in parallel, merging each success as it completes."""
        idea = self.store.get_report_by_id(report_id, owner_id).idea()
        results: Dict[SectionId, SectionResult] = {}
        failures: List[SectionFailure] = []

        workers = min(self.section_workers, len(VALIDATION_SECTIONS))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="section") as executor:
            futures = {
                executor.submit(self.evaluator.evaluate, section, idea): section
                for section in VALIDATION_SECTIONS
            }
            for future in as_completed(futures):
                section = futures[future]
                try:
                    fresh = future.result()
                except Exception as e:
                    logger.warning("Section %s failed for report %s: %s", section.value, report_id, e)
                    failures.append(
                        SectionFailure(section=section, error=str(e) or type(e).__name__, error_type=type(e).__name__)
                    )
                    continue
                results[section] = self._merge_into_report(report_id, owner_id, fresh)

        ordered = {section: results[section] for section in VALIDATION_SECTIONS if section in results}
        failures.sort(key=lambda failure: VALIDATION_SECTIONS.index(failure.section))
        return ordered, failures

    def _merge_into_report(self, report_id: str, owner_id: str, fresh: SectionResult) -> SectionResult:
        report = self.store.get_report_by_id(report_id, owner_id)
        merged = merge_section_result(report.section_results.get(fresh.section), fresh)
        self.store.update_report(
            report_id, owner_id, {"section_results": {**report.section_results, fresh.section: merged}}
        )
        return merged

    def _aggregate_patch(self, scores, rationales) -> Tuple[dict, AggregateResult]:
        aggregate = self.aggregator.aggregate(scores)
        return {
            "scores": scores,
            "rationales": rationales,
            "overall_confidence": aggregate.overall_confidence,
            "recommendation": aggregate.recommendation,
            "strong_count": aggregate.strong_count,
        }, aggregate

    def _finish(
        self, report_id: str, owner_id: str, failures: List[SectionFailure]
    ) -> Tuple[ValidationReport, Optional[AggregateResult]]:
        """Terminal write: succeeded with the aggregate, or failed with the section errors."""
        if failures:
            return self._fail(report_id, owner_id, describe_failures(failures)), None

        report = self.store.get_report_by_id(report_id, owner_id)
        results = dict(report.section_results)
        results[SectionId.OVERVIEW] = self.aggregator.build_overview_section(results)
        scores, rationales = self.aggregator.pillar_scores(results)
        patch, aggregate = self._aggregate_patch(scores, rationales)
        patch.update({"status": ReportStatus.SUCCEEDED, "error": None, "section_results": results})

        report = self.store.update_report(report_id, owner_id, patch)
        logger.info(
            "Report %s succeeded: confidence %d, recommendation %s",
            report_id, report.overall_confidence, report.recommendation.value,
        )
        return report, aggregate

    def _fail(self, report_id: str, owner_id: str, message: str) -> ValidationReport:
        report = self.store.get_report_by_id(report_id, owner_id)
        results = dict(report.section_results)
        results[SectionId.OVERVIEW] = self.aggregator.build_overview_section(results)
        report = self.store.update_report(
            report_id, owner_id, {"status": ReportStatus.FAILED, "error": message, "section_results": results}
        )
        logger.info("Report %s failed: %s", report_id, message)
        return report
