from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any

from ..api.dto import CompleteDocumentation, ExplorationResult

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def session_screenshot_dir(base_dir: Path, session_id: str) -> Path:
    screenshots = base_dir / "screenshots" / session_id
    ensure_dir(screenshots)
    return screenshots


class DocumentationStore:
    """File-backed storage for documentation bundles and exploration results.

    Layout under ``docs_dir``::

        <session_id>.json              CompleteDocumentation
        <session_id>.exploration.json  ExplorationResult
    """

    def __init__(self, docs_dir: Path, artifacts_dir: Path | None = None) -> None:
        self.docs_dir = docs_dir
        self.artifacts_dir = artifacts_dir

    def _doc_path(self, session_id: str) -> Path:
        return self.docs_dir / f"{session_id}.json"

    def _exploration_path(self, session_id: str) -> Path:
        return self.docs_dir / f"{session_id}.exploration.json"

    def save_documentation(self, documentation: CompleteDocumentation) -> Path:
        ensure_dir(self.docs_dir)
        path = self._doc_path(documentation.session_id)
        path.write_text(
            json.dumps(documentation.to_wire(), indent=2, ensure_ascii=False), encoding="utf-8"
        )
        return path

    def get_documentation(self, session_id: str) -> CompleteDocumentation | None:
        path = self._doc_path(session_id)
        if not path.exists():
            return None
        return CompleteDocumentation.model_validate_json(path.read_text(encoding="utf-8"))

    def save_exploration(self, session_id: str, result: ExplorationResult) -> Path:
        ensure_dir(self.docs_dir)
        path = self._exploration_path(session_id)
        path.write_text(json.dumps(result.to_wire(), indent=2, ensure_ascii=False), encoding="utf-8")
        return path

    def get_exploration(self, session_id: str) -> ExplorationResult | None:
        path = self._exploration_path(session_id)
        if not path.exists():
            return None
        return ExplorationResult.model_validate_json(path.read_text(encoding="utf-8"))

    def list_documentation(self) -> list[dict[str, Any]]:
        if not self.docs_dir.exists():
            return []
        docs: list[dict[str, Any]] = []
        for path in sorted(self.docs_dir.glob("*.json")):
            if path.name.endswith(".exploration.json"):
                continue
            try:
                doc = CompleteDocumentation.model_validate_json(path.read_text(encoding="utf-8"))
            except ValueError as e:
                logger.warning(f"[DocStore] Skipping unreadable {path.name}: {e}")
                continue
            docs.append(
                {
                    "sessionId": doc.session_id,
                    "platformName": doc.platform_name,
                    "generatedAt": doc.generated_at.isoformat(),
                }
            )
        return docs

    def delete(self, session_id: str) -> None:
        """Remove everything persisted for a session; missing files are fine."""
        self._doc_path(session_id).unlink(missing_ok=True)
        self._exploration_path(session_id).unlink(missing_ok=True)
        if self.artifacts_dir is not None:
            shutil.rmtree(self.artifacts_dir / "screenshots" / session_id, ignore_errors=True)
