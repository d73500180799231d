import os
import sys
from pathlib import Path

import pytest


def pytest_sessionstart(session):
    # Ensure src/ is importable when running pytest without installation
    root = Path(__file__).resolve().parents[1]
    src = root / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))
    os.environ.setdefault("HEADLESS", "true")


@pytest.fixture
def no_llm(monkeypatch):
    """Run without an Anthropic key so every LLM call degrades to its fallback."""
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("CLAUDE_API_KEY", raising=False)


@pytest.fixture
def test_settings(tmp_path):
    from docscout.config.settings import Settings

    return Settings(
        artifacts_root=str(tmp_path / "artifacts"),
        docs_root=str(tmp_path / "artifacts" / "docs"),
        wait_for_auth=True,
        auth_timeout_seconds=30,
        auth_poll_interval_seconds=5,
        progress_poll_seconds=0.01,
    )
