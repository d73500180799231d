"""Session orchestrator.

Owns one SessionProgress per run and is the only writer of it. Each run
happens in its own asyncio task: phases execute one after another, tasks
inside a phase execute one after another and stop at the first failure.
A failing phase is marked ``error`` and the next phase still runs.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar
from urllib.parse import urlparse

from pydantic import BaseModel

from ...adapters.remote_browser import BrowserPage, open_remote_page
from ...api.dto import (
    ExplorationResult,
    PhaseStatus,
    ScreenshotResult,
    SessionProgress,
    SessionStatus,
    TaskProgress,
    TaskResultRecord,
    utcnow,
)
from ...config.settings import Settings
from ...config.settings import settings as default_settings
from ...errors import SessionCancelledError
from ...runtime.storage import session_screenshot_dir
from ..auth.detector import AuthClassifier, AuthenticationWaiter, KeywordAuthClassifier, read_snapshot
from ..capture.screenshot import ScreenshotCapturer
from ..docs.writer import SectionDocumentationWriter
from ..executor.runner import TaskExecutor
from ..extractor.extract import AUTH_INSTRUCTION, FEATURE_INSTRUCTION, HOMEPAGE_INSTRUCTION, PageExtractor
from ..extractor.schemas import AuthFlowData, FeatureData, HomepageData
from ..ir.model import ActOutcome, Phase, Task, TaskAction, TaskResult, evaluate, screenshot, wait
from . import phases as ph

if TYPE_CHECKING:
    from ...runtime.progress import SessionRegistry
    from ...runtime.storage import DocumentationStore

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

BrowserFactory = Callable[[Settings, str], AbstractAsyncContextManager[BrowserPage]]

# Share of overall progress covered by phases; the rest is the final write-up
PHASES_SHARE = 90


def new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


@dataclass
class _Run:
    """Mutable state for one session run."""

    session_id: str
    url: str
    page: BrowserPage
    executor: TaskExecutor
    exploration: ExplorationResult
    cancel: asyncio.Event
    auth_checked: bool = False
    scroll_positions: dict[str, int] = field(default_factory=dict)


class SessionOrchestrator:
    def __init__(
        self,
        registry: SessionRegistry,
        doc_store: DocumentationStore,
        settings: Settings | None = None,
        browser_factory: BrowserFactory = open_remote_page,
        extractor: PageExtractor | None = None,
        writer: SectionDocumentationWriter | None = None,
        classifier: AuthClassifier | None = None,
        waiter_factory: Callable[[], AuthenticationWaiter] | None = None,
    ) -> None:
        self.registry = registry
        self.doc_store = doc_store
        self.settings = settings or default_settings
        self.browser_factory = browser_factory
        self.extractor = extractor or PageExtractor()
        self.writer = writer or SectionDocumentationWriter()
        self.classifier = classifier or KeywordAuthClassifier()
        self.waiter_factory = waiter_factory or self._default_waiter
        self._tasks: dict[str, asyncio.Task] = {}
        self._cancels: dict[str, asyncio.Event] = {}

    def _default_waiter(self) -> AuthenticationWaiter:
        return AuthenticationWaiter(
            self.classifier,
            timeout=self.settings.auth_timeout_seconds,
            interval=self.settings.auth_poll_interval_seconds,
        )

    # === Public entry points ===

    async def start_documentation(self, platform_name: str, platform_url: str) -> str:
        """Register a documentation session and run it in the background."""
        session_id = new_session_id()
        progress = await self._new_progress(session_id, platform_name, platform_url, ph.PHASE_NAMES)
        logger.info(f"[Orchestrator] {session_id}: Starting documentation for {platform_name} ({platform_url})")
        self._spawn(session_id, self._run_documentation(progress))
        return session_id

    async def start_exploration(self, url: str) -> str:
        """Register a sign-in exploration session and run it in the background."""
        session_id = new_session_id()
        name = urlparse(url).netloc or url
        progress = await self._new_progress(session_id, name, url, ph.EXPLORE_PHASE_NAMES)
        logger.info(f"[Orchestrator] {session_id}: Starting sign-in exploration of {url}")
        self._spawn(session_id, self._run_exploration(progress))
        return session_id

    def cancel(self, session_id: str) -> bool:
        event = self._cancels.get(session_id)
        if event is None:
            return False
        event.set()
        return True

    async def join(self, session_id: str) -> None:
        """Wait for a background run to finish; returns at once if none is active."""
        task = self._tasks.get(session_id)
        if task is not None:
            await asyncio.shield(task)

    async def shutdown(self) -> None:
        for event in self._cancels.values():
            event.set()
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)

    # === Plumbing ===

    async def _new_progress(
        self, session_id: str, platform_name: str, platform_url: str, phase_names: dict[str, str]
    ) -> SessionProgress:
        progress = SessionProgress(
            session_id=session_id,
            platform_name=platform_name,
            platform_url=platform_url,
            tasks=[TaskProgress(task_id=k, task_name=v) for k, v in phase_names.items()],
        )
        await self._publish(progress)
        return progress

    def _spawn(self, session_id: str, coro) -> None:
        self._cancels[session_id] = asyncio.Event()
        task = asyncio.create_task(coro, name=f"session-{session_id}")
        self._tasks[session_id] = task

        def _done(_t: asyncio.Task) -> None:
            self._tasks.pop(session_id, None)
            self._cancels.pop(session_id, None)

        task.add_done_callback(_done)

    async def _publish(self, progress: SessionProgress) -> None:
        await self.registry.publish(progress.session_id, progress)

    def _update_overall(self, progress: SessionProgress) -> None:
        if not progress.tasks:
            return
        mean = sum(t.progress for t in progress.tasks) / len(progress.tasks)
        progress.advance(round(PHASES_SHARE * mean / 100))

    def _check_cancel(self, run: _Run) -> None:
        if run.cancel.is_set():
            raise SessionCancelledError(f"Session {run.session_id} cancelled")

    def _new_run(self, progress: SessionProgress, page: BrowserPage) -> _Run:
        session_id = progress.session_id
        capturer = ScreenshotCapturer(session_screenshot_dir(Path(self.settings.artifacts_root), session_id))
        executor = TaskExecutor(
            page,
            capturer,
            navigation_timeout_ms=self.settings.navigation_timeout_ms,
            type_timeout_ms=self.settings.type_timeout_ms,
        )
        return _Run(
            session_id=session_id,
            url=progress.platform_url,
            page=page,
            executor=executor,
            exploration=ExplorationResult(url=progress.platform_url, live_view_url=page.live_view_url),
            cancel=self._cancels.get(session_id) or asyncio.Event(),
        )

    def _record(
        self,
        run: _Run,
        task: Task,
        result: TaskResult,
        phase_progress: TaskProgress | None = None,
        post_auth: bool = False,
    ) -> None:
        run.exploration.task_results.append(
            TaskResultRecord(
                action=str(task.action),
                description=task.description,
                success=result.success,
                outcome=result.outcome.value,
                data=result.data,
                screenshot_path=result.screenshot_path,
                error=result.error,
                current_url=result.current_url,
            )
        )
        if task.action != TaskAction.SCREENSHOT.value:
            return
        shot = ScreenshotResult(
            url=result.current_url or run.url,
            screenshot_path=result.screenshot_path,
            success=result.success,
            error=result.error,
            scroll_position=run.scroll_positions.get(task.params.filename or ""),
            description=task.description,
        )
        (run.exploration.post_auth_screenshots if post_auth else run.exploration.screenshots).append(shot)
        if phase_progress is not None and result.screenshot_path:
            phase_progress.screenshots.append(result.screenshot_path)

    # === Phase execution ===

    async def _run_phase(
        self,
        run: _Run,
        progress: SessionProgress,
        phase: Phase,
        extraction: tuple[str, type[M]] | None = None,
    ) -> M | None:
        """Run one phase; returns extracted data, or None when the phase failed."""
        self._check_cancel(run)
        tp = progress.task(phase.phase_id)
        tp.status = PhaseStatus.IN_PROGRESS
        tp.start_time = utcnow()
        tp.progress = 10
        tp.current_action = phase.tasks[0].description if phase.tasks else None
        progress.current_task = phase.name
        self._update_overall(progress)
        await self._publish(progress)
        logger.info(f"[Orchestrator] {run.session_id}: Starting phase {phase.name}")

        n = len(phase.tasks)

        async def after_task(i: int, task: Task, result: TaskResult) -> None:
            self._record(run, task, result, tp)
            if phase.watch_auth and task.action == TaskAction.ACT.value and result.success:
                await self._watch_auth(run, progress, tp, result)
            tp.progress = max(tp.progress, 30 + (30 * i) // max(1, n - 1))
            if i + 1 < n:
                tp.current_action = phase.tasks[i + 1].description
            self._update_overall(progress)
            await self._publish(progress)
            self._check_cancel(run)

        data: M | None = None
        try:
            results = await run.executor.execute_tasks(phase.tasks, after_task)
            failed = next((r for r in results if not r.success), None)
            if failed is not None:
                raise RuntimeError(failed.error or f"{failed.action} failed")
            if extraction is not None:
                instruction, model = extraction
                tp.current_action = "Extracting information with AI..."
                await self._publish(progress)
                data = await self.extractor.extract(run.page, instruction, model)
        except SessionCancelledError:
            tp.status = PhaseStatus.ERROR
            tp.error = "cancelled"
            tp.end_time = utcnow()
            raise
        except Exception as e:
            logger.error(f"[Orchestrator] {run.session_id}: Phase {phase.name} failed: {e}")
            tp.status = PhaseStatus.ERROR
            tp.error = str(e) or type(e).__name__
            tp.end_time = utcnow()
            await self._publish(progress)
            return None

        tp.status = PhaseStatus.COMPLETED
        tp.progress = 100
        tp.current_action = None
        tp.end_time = utcnow()
        self._update_overall(progress)
        await self._publish(progress)
        return data

    async def _skip_phase(self, progress: SessionProgress, phase_id: str, reason: str) -> None:
        tp = progress.task(phase_id)
        tp.status = PhaseStatus.COMPLETED
        tp.progress = 100
        tp.current_action = reason
        tp.end_time = utcnow()
        self._update_overall(progress)
        await self._publish(progress)

    # === Authentication boundary ===

    async def _watch_auth(self, run: _Run, progress: SessionProgress, tp: TaskProgress, result: TaskResult) -> None:
        if run.auth_checked:
            return
        run.auth_checked = True

        clicked = False
        if result.outcome == ActOutcome.BEST_EFFORT_NOOP:
            clicked = await self._try_manual_sign_in(run, tp)

        snapshot = await read_snapshot(run.page)
        if not clicked and not self.classifier.is_login_surface(snapshot):
            logger.info(f"[Orchestrator] {run.session_id}: No login surface detected at {snapshot.url}")
            return

        # A sign-in link clicked by the fallback counts even if the page does not look like a login form
        run.exploration.sign_in_detected = True
        logger.info(f"[Orchestrator] {run.session_id}: Sign-in reached at {snapshot.url}")
        if not self.settings.wait_for_auth:
            return

        tp.current_action = "Waiting for authentication..."
        await self._publish(progress)
        outcome = await self.waiter_factory().wait(run.page, cancel=run.cancel)
        if outcome.error == "cancelled":
            raise SessionCancelledError(f"Session {run.session_id} cancelled")

        if outcome.success:
            run.exploration.authentication_completed = True
            tp.current_action = "Capturing authenticated content..."
            await self._publish(progress)
            await self._capture_authenticated(run)
        else:
            logger.info(f"[Orchestrator] {run.session_id}: Authentication not completed ({outcome.error})")
            tp.current_action = "Authentication not completed"
            await self._publish(progress)
            task = screenshot("Authentication timeout - current page state", "auth-timeout.png")
            self._record(run, task, await run.executor.execute(task), tp)

    async def _try_manual_sign_in(self, run: _Run, tp: TaskProgress) -> bool:
        task = evaluate(ph.MANUAL_SIGN_IN_JS, "Looking for a sign-in link")
        result = await run.executor.execute(task)
        self._record(run, task, result, tp)
        if not (result.success and result.data):
            return False
        settle = wait(3000, "Waiting for sign-in page")
        self._record(run, settle, await run.executor.execute(settle), tp)
        return True

    async def _capture_authenticated(self, run: _Run) -> None:
        phase = ph.post_auth_phase()

        async def after_task(_i: int, task: Task, result: TaskResult) -> None:
            self._record(run, task, result, post_auth=True)

        results = await run.executor.execute_tasks(phase.tasks, after_task)
        if results and not results[-1].success:
            logger.warning(f"[Orchestrator] {run.session_id}: Authenticated capture stopped: {results[-1].error}")

    # === Runs ===

    async def _begin(self, progress: SessionProgress) -> None:
        cancel = self._cancels.get(progress.session_id)
        if cancel is not None and cancel.is_set():
            raise SessionCancelledError(f"Session {progress.session_id} cancelled before it started")
        progress.transition(SessionStatus.RUNNING)
        await self._publish(progress)

    async def _run_documentation(self, progress: SessionProgress) -> None:
        session_id = progress.session_id
        url = progress.platform_url
        try:
            await self._begin(progress)
            async with self.browser_factory(self.settings, session_id) as page:
                progress.live_view_url = page.live_view_url
                await self._publish(progress)
                run = self._new_run(progress, page)

                homepage = await self._run_phase(
                    run, progress, ph.homepage_phase(url), (HOMEPAGE_INSTRUCTION, HomepageData)
                )
                auth = await self._run_phase(run, progress, ph.auth_phase(), (AUTH_INSTRUCTION, AuthFlowData))
                revisit = not run.exploration.authentication_completed
                features = await self._run_phase(
                    run, progress, ph.features_phase(url, revisit=revisit), (FEATURE_INSTRUCTION, FeatureData)
                )

                progress.current_task = "Generating documentation"
                await self._publish(progress)
                run.exploration.success = any(t.status == PhaseStatus.COMPLETED for t in progress.tasks)
                documentation = self.writer.write(
                    session_id,
                    progress.platform_name,
                    progress,
                    run.exploration,
                    homepage=homepage,
                    auth=auth,
                    features=features,
                )
                self.doc_store.save_exploration(session_id, run.exploration)
                self.doc_store.save_documentation(documentation)
            await self._finish(progress)
        except Exception as e:
            await self._fail(progress, e)

    async def _run_exploration(self, progress: SessionProgress) -> None:
        session_id = progress.session_id
        url = progress.platform_url
        try:
            await self._begin(progress)
            async with self.browser_factory(self.settings, session_id) as page:
                progress.live_view_url = page.live_view_url
                await self._publish(progress)
                run = self._new_run(progress, page)

                await self._run_phase(run, progress, ph.initial_phase(url))
                await self._run_phase(run, progress, ph.sign_in_phase())

                self._check_cancel(run)
                measure = ph.measure_task()
                measured = await run.executor.execute(measure)
                self._record(run, measure, measured)
                height = measured.data if measured.success and isinstance(measured.data, (int, float)) else 0
                run.exploration.total_scroll_height = int(height)

                if run.exploration.sign_in_detected:
                    await self._skip_phase(progress, ph.SURVEY, "Skipped: sign-in flow captured")
                else:
                    survey, positions = ph.survey_phase(int(height))
                    run.scroll_positions.update(positions)
                    await self._run_phase(run, progress, survey)

                run.exploration.success = any(t.status == PhaseStatus.COMPLETED for t in progress.tasks)
                failed = [t for t in progress.tasks if t.error]
                if failed and not run.exploration.success:
                    run.exploration.error = failed[0].error
                self.doc_store.save_exploration(session_id, run.exploration)
            await self._finish(progress)
        except Exception as e:
            await self._fail(progress, e)

    async def _finish(self, progress: SessionProgress) -> None:
        progress.current_task = None
        if all(t.status == PhaseStatus.ERROR for t in progress.tasks):
            progress.error = "All phases failed: " + "; ".join(t.error or "unknown" for t in progress.tasks)
            progress.transition(SessionStatus.FAILED)
            logger.info(f"[Orchestrator] {progress.session_id}: Session failed")
        else:
            progress.advance(100)
            progress.transition(SessionStatus.COMPLETED)
            logger.info(f"[Orchestrator] {progress.session_id}: Session completed")
        await self._publish(progress)

    async def _fail(self, progress: SessionProgress, error: Exception) -> None:
        if isinstance(error, SessionCancelledError):
            logger.info(f"[Orchestrator] {progress.session_id}: {error}")
        else:
            logger.exception(f"[Orchestrator] {progress.session_id}: Session failed: {error}")
        progress.error = str(error) or type(error).__name__
        progress.current_task = None
        if progress.status == SessionStatus.INITIALIZING:
            progress.transition(SessionStatus.RUNNING)
        if not progress.status.is_terminal:
            progress.transition(SessionStatus.FAILED)
        await self._publish(progress)
