"""Authentication boundary detection and waiting."""

from __future__ import annotations

from .detector import (
    AuthClassifier,
    AuthenticationWaiter,
    AuthWaitResult,
    KeywordAuthClassifier,
    PageSnapshot,
    read_snapshot,
)

__all__ = [
    "AuthClassifier",
    "AuthWaitResult",
    "AuthenticationWaiter",
    "KeywordAuthClassifier",
    "PageSnapshot",
    "read_snapshot",
]
