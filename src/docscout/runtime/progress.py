"""Session progress registry (in-memory by default; Redis optional).

Every session only ever writes its own key, so the stores need atomic
per-key set/get/delete and nothing more. The registry adds the retention
sweep and serialises it against concurrent writers.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Protocol

from ..api.dto import SessionProgress, utcnow

if TYPE_CHECKING:
    from .storage import DocumentationStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "docscout:session:"


class ProgressStore(Protocol):
    # True when calls do network I/O and must stay off the event loop
    blocking: bool

    def set(self, session_id: str, progress: SessionProgress) -> None: ...

    def get(self, session_id: str) -> SessionProgress | None: ...

    def delete(self, session_id: str) -> None: ...

    def all(self) -> list[SessionProgress]: ...


class InMemoryProgressStore:
    blocking = False

    def __init__(self) -> None:
        self._sessions: dict[str, SessionProgress] = {}
        self._lock = threading.Lock()

    def set(self, session_id: str, progress: SessionProgress) -> None:
        # Store a snapshot so readers never see a record mid-update
        snapshot = progress.model_copy(deep=True)
        with self._lock:
            self._sessions[session_id] = snapshot

    def get(self, session_id: str) -> SessionProgress | None:
        with self._lock:
            progress = self._sessions.get(session_id)
        return progress.model_copy(deep=True) if progress else None

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def all(self) -> list[SessionProgress]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self._sessions.values()]


class RedisProgressStore:
    blocking = True

    def __init__(self, url: str, ttl_seconds: int = 3600) -> None:
        import redis  # lazy import

        self._r = redis.Redis.from_url(url, decode_responses=True)
        self._ttl = ttl_seconds

    def set(self, session_id: str, progress: SessionProgress) -> None:
        self._r.set(KEY_PREFIX + session_id, json.dumps(progress.to_wire()), ex=self._ttl)

    def get(self, session_id: str) -> SessionProgress | None:
        val = self._r.get(KEY_PREFIX + session_id)
        return SessionProgress.model_validate_json(val) if val else None  # type: ignore[arg-type]

    def delete(self, session_id: str) -> None:
        self._r.delete(KEY_PREFIX + session_id)

    def all(self) -> list[SessionProgress]:
        out = []
        for key in self._r.scan_iter(match=KEY_PREFIX + "*"):
            val = self._r.get(key)
            if val:
                out.append(SessionProgress.model_validate_json(val))  # type: ignore[arg-type]
        return out


def get_progress_store(
    backend: str | None = None,
    redis_url: str | None = None,
    ttl_seconds: int | None = None,
) -> ProgressStore:
    backend = backend or os.getenv("PROGRESS_BACKEND", "inmemory")
    if backend == "redis":
        url = redis_url or os.getenv("REDIS_URL", "redis://redis:6379/0")
        ttl = ttl_seconds or int(os.getenv("SESSION_RETENTION_SECONDS", "3600"))
        return RedisProgressStore(url, ttl_seconds=ttl)
    # Singleton per-process for in-memory backend so API and sessions share state
    global _INMEMORY_SINGLETON
    try:
        _INMEMORY_SINGLETON
    except NameError:
        _INMEMORY_SINGLETON = InMemoryProgressStore()  # type: ignore[var-annotated]
    return _INMEMORY_SINGLETON


class SessionRegistry:
    """Owns the progress store; injected wherever progress is read or written."""

    def __init__(
        self,
        store: ProgressStore | None = None,
        retention_seconds: int = 3600,
        doc_store: DocumentationStore | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store or InMemoryProgressStore()
        self.retention = timedelta(seconds=retention_seconds)
        self.doc_store = doc_store
        self._clock = clock
        self._lock = threading.Lock()

    def set(self, session_id: str, progress: SessionProgress) -> None:
        with self._lock:
            self.store.set(session_id, progress)

    def get(self, session_id: str) -> SessionProgress | None:
        return self.store.get(session_id)

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._delete_locked(session_id)

    def all(self) -> list[SessionProgress]:
        return self.store.all()

    async def publish(self, session_id: str, progress: SessionProgress) -> None:
        """``set`` for coroutines; a blocking store is written from a worker thread."""
        if self.store.blocking:
            await asyncio.to_thread(self.set, session_id, progress)
        else:
            self.set(session_id, progress)

    async def fetch(self, session_id: str) -> SessionProgress | None:
        if self.store.blocking:
            return await asyncio.to_thread(self.get, session_id)
        return self.get(session_id)

    def _delete_locked(self, session_id: str) -> None:
        self.store.delete(session_id)
        if self.doc_store is not None:
            self.doc_store.delete(session_id)

    def sweep(self, now: datetime | None = None) -> list[str]:
        """Drop sessions that started before the retention window."""
        cutoff = (now or self._clock()) - self.retention
        removed: list[str] = []
        with self._lock:
            for progress in self.store.all():
                start = progress.start_time
                if start.tzinfo is None:
                    start = start.replace(tzinfo=timezone.utc)
                if start < cutoff:
                    self._delete_locked(progress.session_id)
                    removed.append(progress.session_id)
        for session_id in removed:
            logger.info(f"[Registry] Cleaned up old session: {session_id}")
        return removed

    async def run_sweeper(self, interval_seconds: float, stop: asyncio.Event) -> None:
        """Sweep every ``interval_seconds`` until ``stop`` is set."""
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                pass
            if stop.is_set():
                break
            try:
                if self.store.blocking:
                    await asyncio.to_thread(self.sweep)
                else:
                    self.sweep()
            except Exception as e:
                logger.error(f"[Registry] Sweep failed: {e}")
