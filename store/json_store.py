"""File-backed store: one JSON document per project."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from .base import ValidationStore


class JsonFileStore(ValidationStore):
    """Stores each project as <root>/<project_id>.json, written atomically."""

    def __init__(self, root: Path):
        super().__init__()
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, project_id: str) -> Path:
        safe_id = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in project_id)
        return self.root / f"{safe_id}.json"

    def _read(self, project_id: str) -> Optional[Dict[str, Any]]:
        path = self._path(project_id)
        if not path.exists():
            return None
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    def _write(self, project_id: str, document: Dict[str, Any]) -> None:
        path = self._path(project_id)
        fd, tmp_path = tempfile.mkstemp(dir=self.root, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _project_ids(self) -> Iterable[str]:
        for path in sorted(self.root.glob("*.json")):
            with open(path, encoding="utf-8") as f:
                yield json.load(f)["project_id"]
