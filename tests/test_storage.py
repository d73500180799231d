"""Tests for the file-backed documentation store."""

from __future__ import annotations

from docscout.api.dto import (
    CompleteDocumentation,
    DocumentationSection,
    DocumentationSummary,
    ExplorationResult,
    ScreenshotResult,
)
from docscout.runtime.storage import DocumentationStore, session_screenshot_dir


def _doc(session_id: str, name: str = "Example") -> CompleteDocumentation:
    return CompleteDocumentation(
        platform_name=name,
        session_id=session_id,
        sections=[DocumentationSection(title="Overview", content="# Example", screenshots=["/a.png"])],
        summary=DocumentationSummary(total_screenshots=1, key_insights=["fast"]),
    )


class TestDocumentationStore:
    def test_save_and_get_documentation(self, tmp_path):
        store = DocumentationStore(tmp_path / "docs")

        path = store.save_documentation(_doc("s1"))

        assert path == tmp_path / "docs" / "s1.json"
        loaded = store.get_documentation("s1")
        assert loaded == _doc("s1").model_copy(update={"generated_at": loaded.generated_at})
        assert '"platformName": "Example"' in path.read_text(encoding="utf-8")

    def test_missing_documentation_is_none(self, tmp_path):
        assert DocumentationStore(tmp_path).get_documentation("nope") is None

    def test_exploration_round_trip(self, tmp_path):
        store = DocumentationStore(tmp_path / "docs")
        result = ExplorationResult(
            url="https://example.com",
            screenshots=[ScreenshotResult(url="https://example.com", screenshot_path="/a.png", scroll_position=0)],
            sign_in_detected=True,
            total_scroll_height=2400,
        )

        store.save_exploration("s1", result)

        assert store.get_exploration("s1") == result

    def test_list_skips_exploration_files(self, tmp_path):
        store = DocumentationStore(tmp_path / "docs")
        store.save_documentation(_doc("s1", "Notion"))
        store.save_documentation(_doc("s2", "Linear"))
        store.save_exploration("s1", ExplorationResult(url="https://notion.so"))

        listed = store.list_documentation()

        assert {d["sessionId"] for d in listed} == {"s1", "s2"}
        assert {d["platformName"] for d in listed} == {"Notion", "Linear"}

    def test_list_on_missing_dir_is_empty(self, tmp_path):
        assert DocumentationStore(tmp_path / "missing").list_documentation() == []

    def test_delete_removes_files_and_screenshots(self, tmp_path):
        store = DocumentationStore(tmp_path / "docs", artifacts_dir=tmp_path)
        store.save_documentation(_doc("s1"))
        store.save_exploration("s1", ExplorationResult(url="https://example.com"))
        shots = session_screenshot_dir(tmp_path, "s1")
        (shots / "step-1-screenshot.png").write_bytes(b"png")

        store.delete("s1")
        store.delete("s1")

        assert store.get_documentation("s1") is None
        assert store.get_exploration("s1") is None
        assert not shots.exists()
