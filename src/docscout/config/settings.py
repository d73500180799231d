from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    artifacts_root: str = os.getenv("ARTIFACTS_ROOT", "artifacts")
    docs_root: str = os.getenv("DOCS_ROOT", "artifacts/docs")
    headless: bool = _env_bool("HEADLESS", True)
    # Remote browser connect URL (CDP). Empty means launch a local Chromium.
    cdp_url: str | None = os.getenv("CDP_URL")
    live_view_url_template: str | None = os.getenv("LIVE_VIEW_URL_TEMPLATE")
    viewport_width: int = int(os.getenv("VIEWPORT_WIDTH", "1280"))
    viewport_height: int = int(os.getenv("VIEWPORT_HEIGHT", "720"))
    navigation_timeout_ms: int = int(os.getenv("NAVIGATION_TIMEOUT_MS", "30000"))
    type_timeout_ms: int = int(os.getenv("TYPE_TIMEOUT_MS", "10000"))
    wait_for_auth: bool = _env_bool("WAIT_FOR_AUTH", True)
    auth_timeout_seconds: float = float(os.getenv("AUTH_TIMEOUT_SECONDS", "120"))
    auth_poll_interval_seconds: float = float(os.getenv("AUTH_POLL_INTERVAL_SECONDS", "5"))
    session_retention_seconds: int = int(os.getenv("SESSION_RETENTION_SECONDS", "3600"))
    sweep_interval_seconds: int = int(os.getenv("SWEEP_INTERVAL_SECONDS", "1800"))
    progress_poll_seconds: float = float(os.getenv("PROGRESS_POLL_SECONDS", "2"))
    progress_backend: str = os.getenv("PROGRESS_BACKEND", "inmemory")  # inmemory|redis
    redis_url: str | None = os.getenv("REDIS_URL")
    anthropic_model: str = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")


settings = Settings()
