"""Dict-backed store for tests and single-process use."""

import copy
from typing import Any, Dict, Iterable, Optional

from .base import ValidationStore


class InMemoryStore(ValidationStore):
    """Keeps each project document in a dict. Documents are copied in and out."""

    def __init__(self):
        super().__init__()
        self._documents: Dict[str, Dict[str, Any]] = {}

    def _read(self, project_id: str) -> Optional[Dict[str, Any]]:
        document = self._documents.get(project_id)
        return copy.deepcopy(document) if document is not None else None

    def _write(self, project_id: str, document: Dict[str, Any]) -> None:
        self._documents[project_id] = copy.deepcopy(document)

    def _project_ids(self) -> Iterable[str]:
        return self._documents.keys()
