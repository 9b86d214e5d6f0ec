"""Persistent store contract for validation data.

Everything is scoped to a project and its owning user. Each backend only
knows how to read and write one project document; ownership checks,
report patching and history bookkeeping live here so both backends behave
the same.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from pydantic import BaseModel, Field, ValidationError

from contracts import (
    ImprovementIteration,
    NotFoundError,
    ProductOverview,
    SchemaValidationError,
    Suggestion,
    ValidationReport,
)

R = TypeVar("R")


class ProjectRecord(BaseModel):
    """Everything stored for one project."""
    project_id: str
    owner_id: str
    reports: List[ValidationReport] = Field(default_factory=list)
    overview: Optional[ProductOverview] = None
    iterations: List[ImprovementIteration] = Field(default_factory=list)
    suggestions: List[Suggestion] = Field(default_factory=list)


class ValidationStore(ABC):
    """Project-scoped CRUD for reports, overviews, history and suggestions.

    A missing row and a row owned by someone else both raise NotFoundError,
    so callers cannot probe for other users' projects. Writes to a single
    project are serialised; the last write wins.
    """

    def __init__(self):
        self._lock = threading.RLock()

    # -- backend primitives ---------------------------------------------

    @abstractmethod
    def _read(self, project_id: str) -> Optional[Dict[str, Any]]:
        """Return the stored project document, or None."""

    @abstractmethod
    def _write(self, project_id: str, document: Dict[str, Any]) -> None:
        """Persist a project document, replacing any previous version."""

    @abstractmethod
    def _project_ids(self) -> Iterable[str]:
        """Ids of every stored project."""

    # -- helpers ----------------------------------------------------------

    def _load(self, project_id: str, owner_id: str) -> ProjectRecord:
        document = self._read(project_id)
        if document is None:
            raise NotFoundError(f"Project {project_id} not found")
        record = ProjectRecord.model_validate(document)
        if record.owner_id != owner_id:
            raise NotFoundError(f"Project {project_id} not found")
        return record

    def _save(self, record: ProjectRecord) -> None:
        self._write(record.project_id, record.model_dump(mode="json"))

    def _mutate(self, project_id: str, owner_id: str, change: Callable[[ProjectRecord], R]) -> R:
        with self._lock:
            record = self._load(project_id, owner_id)
            result = change(record)
            self._save(record)
            return result

    def _find_project_for_report(self, report_id: str, owner_id: str) -> ProjectRecord:
        with self._lock:
            for project_id in list(self._project_ids()):
                document = self._read(project_id)
                if document is None:
                    continue
                record = ProjectRecord.model_validate(document)
                if any(report.id == report_id for report in record.reports):
                    if record.owner_id != owner_id:
                        break
                    return record
        raise NotFoundError(f"Report {report_id} not found")

    # -- projects ---------------------------------------------------------

    def register_project(self, project_id: str, owner_id: str) -> None:
        """Create an empty project owned by owner_id. Re-registering by the owner is a no-op."""
        with self._lock:
            document = self._read(project_id)
            if document is not None:
                if document.get("owner_id") != owner_id:
                    raise NotFoundError(f"Project {project_id} not found")
                return
            self._save(ProjectRecord(project_id=project_id, owner_id=owner_id))

    def assert_project_owner(self, project_id: str, owner_id: str) -> None:
        """Raise NotFoundError unless owner_id owns project_id."""
        with self._lock:
            self._load(project_id, owner_id)

    # -- reports ----------------------------------------------------------

    def create_report(self, report: ValidationReport) -> ValidationReport:
        def change(record: ProjectRecord) -> ValidationReport:
            record.reports.append(report)
            return report
        return self._mutate(report.project_id, report.owner_id, change)

    def update_report(self, report_id: str, owner_id: str, patch: Dict[str, Any]) -> ValidationReport:
        """Apply a partial update to one report and return the stored result.

        Raises:
            NotFoundError: If the report is missing or owned by someone else
            SchemaValidationError: If the patched report breaks the report invariants
        """
        project = self._find_project_for_report(report_id, owner_id)

        def change(record: ProjectRecord) -> ValidationReport:
            for index, report in enumerate(record.reports):
                if report.id != report_id:
                    continue
                merged = {**report.model_dump(), **patch, "updated_at": datetime.now(timezone.utc)}
                try:
                    updated = ValidationReport.model_validate(merged)
                except ValidationError as e:
                    raise SchemaValidationError(f"Invalid update to report {report_id}: {e}") from e
                record.reports[index] = updated
                return updated
            raise NotFoundError(f"Report {report_id} not found")

        return self._mutate(project.project_id, owner_id, change)

    def get_report_by_id(self, report_id: str, owner_id: str) -> ValidationReport:
        record = self._find_project_for_report(report_id, owner_id)
        return next(report for report in record.reports if report.id == report_id)

    def get_latest_report_for_project(self, project_id: str, owner_id: str) -> Optional[ValidationReport]:
        """Most recently created report, or None when the project has none."""
        with self._lock:
            record = self._load(project_id, owner_id)
        if not record.reports:
            return None
        latest = record.reports[0]
        for report in record.reports[1:]:
            if report.created_at >= latest.created_at:
                latest = report
        return latest

    # -- overview ---------------------------------------------------------

    def upsert_overview(self, project_id: str, owner_id: str, overview: ProductOverview) -> ProductOverview:
        def change(record: ProjectRecord) -> ProductOverview:
            record.overview = overview
            return overview
        return self._mutate(project_id, owner_id, change)

    def get_overview(self, project_id: str, owner_id: str) -> Optional[ProductOverview]:
        with self._lock:
            return self._load(project_id, owner_id).overview

    # -- improvement history ----------------------------------------------

    def append_improvement_iteration(
        self, project_id: str, owner_id: str, iteration: ImprovementIteration
    ) -> ImprovementIteration:
        def change(record: ProjectRecord) -> ImprovementIteration:
            record.iterations.append(iteration)
            return iteration
        return self._mutate(project_id, owner_id, change)

    def list_improvement_iterations(self, project_id: str, owner_id: str) -> List[ImprovementIteration]:
        """History in the order it was appended."""
        with self._lock:
            return list(self._load(project_id, owner_id).iterations)

    def purge_improvement_iterations(
        self, project_id: str, owner_id: str, iteration_id: Optional[str] = None
    ) -> int:
        """Delete one history entry, or all of them when iteration_id is None.

        Returns:
            Number of entries removed

        Raises:
            NotFoundError: If iteration_id is given and not in the history
        """
        def change(record: ProjectRecord) -> int:
            if iteration_id is None:
                removed = len(record.iterations)
                record.iterations = []
                return removed
            kept = [item for item in record.iterations if item.id != iteration_id]
            if len(kept) == len(record.iterations):
                raise NotFoundError(f"Improvement {iteration_id} not found")
            record.iterations = kept
            return 1
        return self._mutate(project_id, owner_id, change)

    # -- suggestions ------------------------------------------------------

    def replace_suggestions(self, project_id: str, owner_id: str, suggestions: List[Suggestion]) -> List[Suggestion]:
        """Replace the stored suggestion set wholesale."""
        def change(record: ProjectRecord) -> List[Suggestion]:
            record.suggestions = list(suggestions)
            return record.suggestions
        return self._mutate(project_id, owner_id, change)

    def get_suggestions(self, project_id: str, owner_id: str) -> List[Suggestion]:
        with self._lock:
            return list(self._load(project_id, owner_id).suggestions)
