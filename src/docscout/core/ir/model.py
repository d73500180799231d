"""Task IR for scripted exploration.

A phase is an ordered list of Tasks. Tasks are built once and consumed
exactly once by the executor, which produces one TaskResult per Task.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TaskAction(str, Enum):
    NAVIGATE = "navigate"
    ACT = "act"  # natural-language instruction for the AI action layer
    SCREENSHOT = "screenshot"
    WAIT = "wait"
    EVALUATE = "evaluate"  # arbitrary script in the page context
    TYPE = "type"


class ActOutcome(str, Enum):
    """How a task actually ended, beyond the boolean success flag."""

    APPLIED = "applied"
    BEST_EFFORT_NOOP = "best_effort_noop"  # nothing happened, exploration continues
    FAILED = "failed"


@dataclass(frozen=True)
class TaskParams:
    url: str | None = None
    instruction: str | None = None
    filename: str | None = None
    full_page: bool = False
    focus_element: str | None = None  # comma-separated selectors, tried in order
    wait_time: int | None = None  # milliseconds
    code: str | None = None
    selector: str | None = None
    text: str | None = None


@dataclass(frozen=True)
class Task:
    action: str
    description: str
    params: TaskParams = field(default_factory=TaskParams)


@dataclass
class TaskResult:
    success: bool
    action: str = ""
    outcome: ActOutcome = ActOutcome.APPLIED
    data: Any = None
    screenshot_path: str | None = None
    error: str | None = None
    current_url: str | None = None

    @classmethod
    def failed(cls, action: str, error: str, current_url: str | None = None) -> TaskResult:
        return cls(
            success=False,
            action=action,
            outcome=ActOutcome.FAILED,
            error=error,
            current_url=current_url,
        )


@dataclass(frozen=True)
class Phase:
    """A coherent sub-goal: one ordered batch of tasks."""

    phase_id: str
    name: str
    tasks: tuple[Task, ...]
    watch_auth: bool = False  # check for a login surface after each act task


def navigate(url: str, description: str | None = None) -> Task:
    return Task(TaskAction.NAVIGATE.value, description or f"Navigate to {url}", TaskParams(url=url))


def act(instruction: str, description: str | None = None) -> Task:
    return Task(TaskAction.ACT.value, description or instruction, TaskParams(instruction=instruction))


def screenshot(
    description: str,
    filename: str | None = None,
    full_page: bool = False,
    focus_element: str | None = None,
) -> Task:
    return Task(
        TaskAction.SCREENSHOT.value,
        description,
        TaskParams(filename=filename, full_page=full_page, focus_element=focus_element),
    )


def wait(wait_time: int, description: str | None = None) -> Task:
    return Task(TaskAction.WAIT.value, description or f"Wait {wait_time}ms", TaskParams(wait_time=wait_time))


def evaluate(code: str, description: str) -> Task:
    return Task(TaskAction.EVALUATE.value, description, TaskParams(code=code))


def type_text(selector: str, text: str, description: str | None = None) -> Task:
    return Task(
        TaskAction.TYPE.value,
        description or f"Type into {selector}",
        TaskParams(selector=selector, text=text),
    )
