from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..errors import InvalidTransitionError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WireModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SessionStatus(str, Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.FAILED)


class PhaseStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"


_ALLOWED_TRANSITIONS: dict[SessionStatus, set[SessionStatus]] = {
    SessionStatus.INITIALIZING: {SessionStatus.RUNNING},
    SessionStatus.RUNNING: {SessionStatus.COMPLETED, SessionStatus.FAILED},
    SessionStatus.COMPLETED: set(),
    SessionStatus.FAILED: set(),
}


class TaskProgress(WireModel):
    task_id: str
    task_name: str
    status: PhaseStatus = PhaseStatus.PENDING
    progress: int = Field(0, ge=0, le=100)
    current_action: str | None = None
    screenshots: list[str] = Field(default_factory=list)
    error: str | None = None
    start_time: datetime = Field(default_factory=utcnow)
    end_time: datetime | None = None


class SessionProgress(WireModel):
    session_id: str
    platform_name: str
    platform_url: str
    status: SessionStatus = SessionStatus.INITIALIZING
    current_task: str | None = None
    tasks: list[TaskProgress] = Field(default_factory=list)
    overall_progress: int = Field(0, ge=0, le=100)
    live_view_url: str | None = None
    error: str | None = None
    start_time: datetime = Field(default_factory=utcnow)
    end_time: datetime | None = None

    def task(self, task_id: str) -> TaskProgress:
        for t in self.tasks:
            if t.task_id == task_id:
                return t
        raise KeyError(task_id)

    def advance(self, value: int) -> None:
        """Raise overall progress; never lowers it."""
        self.overall_progress = max(self.overall_progress, min(100, int(value)))

    def transition(self, status: SessionStatus) -> None:
        if status == self.status:
            return
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Cannot move session {self.session_id} from {self.status.value} to {status.value}"
            )
        self.status = status
        if status.is_terminal:
            self.end_time = utcnow()


class ScreenshotResult(WireModel):
    url: str
    screenshot_path: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)
    success: bool = True
    error: str | None = None
    scroll_position: int | None = None
    description: str | None = None


class TaskResultRecord(WireModel):
    action: str
    description: str
    success: bool
    outcome: str
    data: Any = None
    screenshot_path: str | None = None
    error: str | None = None
    current_url: str | None = None


class ExplorationResult(WireModel):
    url: str
    screenshots: list[ScreenshotResult] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utcnow)
    success: bool = True
    error: str | None = None
    total_scroll_height: int | None = None
    sign_in_detected: bool = False
    authentication_completed: bool = False
    post_auth_screenshots: list[ScreenshotResult] = Field(default_factory=list)
    live_view_url: str | None = None
    task_results: list[TaskResultRecord] = Field(default_factory=list)


class DocumentationSection(WireModel):
    title: str
    content: str
    screenshots: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)


class DocumentationSummary(WireModel):
    total_screenshots: int
    key_insights: list[str] = Field(default_factory=list)
    recommended_next_steps: list[str] = Field(default_factory=list)


class CompleteDocumentation(WireModel):
    platform_name: str
    generated_at: datetime = Field(default_factory=utcnow)
    session_id: str
    sections: list[DocumentationSection] = Field(default_factory=list)
    summary: DocumentationSummary


class PlatformConfig(WireModel):
    name: str
    url: str
    description: str
    complexity: str  # Low|Medium|High
    estimated_time: str
    special_features: list[str] = Field(default_factory=list)


class DocumentRequest(WireModel):
    platform_name: str = Field(..., min_length=1, description="Display name of the SaaS platform")
    platform_url: str = Field(..., min_length=1, description="Homepage URL to explore")


class ExploreRequest(WireModel):
    url: str = Field(..., min_length=1, description="URL to explore for a sign-in flow")


class SessionStartResponse(WireModel):
    success: bool = True
    session_id: str
