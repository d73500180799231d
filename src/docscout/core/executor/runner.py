"""Task executor: runs one scripted Task against a browser page handle.

``execute`` never raises; every remote-call exception becomes a failed
TaskResult. The one deliberate exception to failure reporting is ``act``:
AI-driven instructions are probabilistic and low-stakes, so a failure there
is recorded as a best-effort no-op and the phase carries on.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING

from ..ir.model import ActOutcome, Task, TaskAction, TaskResult

if TYPE_CHECKING:
    from ...adapters.remote_browser import BrowserPage
    from ..capture.screenshot import ScreenshotCapturer

logger = logging.getLogger(__name__)

DEFAULT_WAIT_MS = 3000

AfterTaskHook = Callable[[int, Task, TaskResult], Awaitable[None]]


class TaskExecutor:
    def __init__(
        self,
        page: BrowserPage,
        capturer: ScreenshotCapturer,
        navigation_timeout_ms: int = 30000,
        type_timeout_ms: int = 10000,
    ) -> None:
        self.page = page
        self.capturer = capturer
        self.navigation_timeout_ms = navigation_timeout_ms
        self.type_timeout_ms = type_timeout_ms
        self._handlers = {
            TaskAction.NAVIGATE.value: self._handle_navigate,
            TaskAction.ACT.value: self._handle_act,
            TaskAction.SCREENSHOT.value: self._handle_screenshot,
            TaskAction.WAIT.value: self._handle_wait,
            TaskAction.EVALUATE.value: self._handle_evaluate,
            TaskAction.TYPE.value: self._handle_type,
        }

    def _current_url(self) -> str | None:
        try:
            return self.page.url
        except Exception:
            return None

    async def execute(self, task: Task) -> TaskResult:
        action = task.action.value if isinstance(task.action, TaskAction) else str(task.action)
        handler = self._handlers.get(action)
        if not handler:
            return TaskResult.failed(action, f"Unknown action: {action}", self._current_url())
        try:
            return await handler(task)
        except Exception as e:
            logger.warning(f"[Executor] Error in action {action}: {e}")
            return TaskResult.failed(action, str(e) or type(e).__name__, self._current_url())

    async def execute_tasks(
        self,
        tasks: Sequence[Task],
        after_task: AfterTaskHook | None = None,
    ) -> list[TaskResult]:
        """Run tasks in order, stopping after the first failed result."""
        results: list[TaskResult] = []
        for i, task in enumerate(tasks):
            logger.info(f"[Executor] Executing task {i + 1}/{len(tasks)}: {task.description}")
            result = await self.execute(task)
            results.append(result)
            if after_task is not None:
                await after_task(i, task, result)
            if not result.success:
                logger.info(f"[Executor] Task failed, stopping execution: {result.error}")
                break
        return results

    # === Action handlers ===

    async def _handle_navigate(self, task: Task) -> TaskResult:
        url = task.params.url
        if not url:
            return TaskResult.failed(task.action, "URL required for navigate action", self._current_url())
        await self.page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)
        return TaskResult(
            success=True,
            action=task.action,
            data=f"Navigated to {url}",
            current_url=self._current_url(),
        )

    async def _handle_act(self, task: Task) -> TaskResult:
        instruction = task.params.instruction
        if not instruction:
            return TaskResult.failed(task.action, "Instruction required for act action", self._current_url())
        try:
            data = await self.page.act(instruction)
        except Exception as e:
            logger.info(f"[Executor] Act failed but continuing: {e}")
            return TaskResult(
                success=True,
                action=task.action,
                outcome=ActOutcome.BEST_EFFORT_NOOP,
                data=f"Action attempted: {instruction}",
                current_url=self._current_url(),
            )
        return TaskResult(success=True, action=task.action, data=data, current_url=self._current_url())

    async def _handle_screenshot(self, task: Task) -> TaskResult:
        params = task.params
        capture = await self.capturer.capture(
            self.page,
            filename=params.filename,
            full_page=params.full_page,
            focus_element=params.focus_element,
        )
        return TaskResult(
            success=True,
            action=task.action,
            screenshot_path=str(capture.path),
            data=f"Screenshot saved: {capture.path.name} ({capture.describe()})",
            current_url=self._current_url(),
        )

    async def _handle_wait(self, task: Task) -> TaskResult:
        wait_time = task.params.wait_time or DEFAULT_WAIT_MS
        await self.page.wait_for_timeout(wait_time)
        return TaskResult(
            success=True,
            action=task.action,
            data=f"Waited {wait_time}ms",
            current_url=self._current_url(),
        )

    async def _handle_evaluate(self, task: Task) -> TaskResult:
        code = task.params.code
        if not code:
            return TaskResult.failed(task.action, "Code required for evaluate action", self._current_url())
        value = await self.page.evaluate(code)
        return TaskResult(success=True, action=task.action, data=value, current_url=self._current_url())

    async def _handle_type(self, task: Task) -> TaskResult:
        selector = task.params.selector
        text = task.params.text
        if not selector or not text:
            return TaskResult.failed(
                task.action, "Selector and text required for type action", self._current_url()
            )
        try:
            await self.page.wait_for_selector(selector, timeout=self.type_timeout_ms)
            await self.page.focus(selector)
            await self.page.type(selector, text)
        except Exception as e:
            logger.info(f"[Executor] Type action failed: {e}")
            return TaskResult.failed(
                task.action, f"Failed to type into {selector}: {e}", self._current_url()
            )
        return TaskResult(
            success=True,
            action=task.action,
            data=f'Typed "{text}" into {selector}',
            current_url=self._current_url(),
        )
