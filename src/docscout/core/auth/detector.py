"""Authentication boundary detection.

Both classifiers are keyword heuristics over the page URL, title and body
text. They are approximate by nature: a marketing page that says "sign in"
in its header looks like a login surface, and a login that lands on an
unusual URL may never look authenticated. Such misclassifications are
accepted; the classifier is kept behind a small interface so a stronger
signal can replace it without touching the orchestrator.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ...adapters.remote_browser import BrowserPage

logger = logging.getLogger(__name__)

DEFAULT_AUTH_TIMEOUT_SECONDS = 120.0
DEFAULT_POLL_INTERVAL_SECONDS = 5.0


@dataclass
class PageSnapshot:
    url: str
    title: str = ""
    body_text: str = ""
    has_logout_element: bool = False


async def read_snapshot(page: BrowserPage) -> PageSnapshot:
    return PageSnapshot(
        url=page.url,
        title=await page.title(),
        body_text=await page.body_text(),
        has_logout_element=await page.has_logout_element(),
    )


class AuthClassifier(Protocol):
    def is_login_surface(self, snapshot: PageSnapshot) -> bool: ...

    def is_authenticated(self, snapshot: PageSnapshot) -> bool: ...


class KeywordAuthClassifier:
    """Default heuristic classifier."""

    login_url_keywords: tuple[str, ...] = ("login", "signin", "auth")
    login_title_keywords: tuple[str, ...] = ("login", "sign in")
    login_body_keywords: tuple[str, ...] = ("enter your password", "sign in")
    authenticated_url_keywords: tuple[str, ...] = ("dashboard", "/app", "/home")
    authenticated_body_keywords: tuple[str, ...] = ("welcome", "dashboard")

    def is_login_surface(self, snapshot: PageSnapshot) -> bool:
        url = snapshot.url.lower()
        title = snapshot.title.lower()
        body = snapshot.body_text.lower()
        return (
            any(k in url for k in self.login_url_keywords)
            or any(k in title for k in self.login_title_keywords)
            or any(k in body for k in self.login_body_keywords)
        )

    def is_authenticated(self, snapshot: PageSnapshot) -> bool:
        url = snapshot.url.lower()
        body = snapshot.body_text.lower()
        return (
            any(k in url for k in self.authenticated_url_keywords)
            or any(k in body for k in self.authenticated_body_keywords)
            or snapshot.has_logout_element
        )


@dataclass
class AuthWaitResult:
    success: bool
    final_url: str | None = None
    error: str | None = None
    elapsed: float = 0.0


async def _interruptible_sleep(seconds: float, cancel: asyncio.Event | None) -> None:
    if cancel is None:
        await asyncio.sleep(seconds)
        return
    try:
        await asyncio.wait_for(cancel.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        pass


class AuthenticationWaiter:
    """Polls the page until a human finishes logging in, or gives up.

    Completion means the page no longer looks like a login surface and
    either looks authenticated or has moved to a different URL than the
    one the wait started on.
    """

    def __init__(
        self,
        classifier: AuthClassifier | None = None,
        timeout: float = DEFAULT_AUTH_TIMEOUT_SECONDS,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.classifier = classifier or KeywordAuthClassifier()
        self.timeout = timeout
        self.interval = interval
        self._clock = clock
        self._sleep = sleep

    async def _pause(self, seconds: float, cancel: asyncio.Event | None) -> None:
        if self._sleep is not None:
            await self._sleep(seconds)
        else:
            await _interruptible_sleep(seconds, cancel)

    async def wait(self, page: BrowserPage, cancel: asyncio.Event | None = None) -> AuthWaitResult:
        start = self._clock()
        initial_url = page.url
        logger.info(f"[AuthWaiter] Waiting up to {self.timeout:.0f}s for authentication on {initial_url}")

        while True:
            elapsed = self._clock() - start
            if cancel is not None and cancel.is_set():
                return AuthWaitResult(success=False, error="cancelled", elapsed=elapsed)
            if elapsed >= self.timeout:
                break
            try:
                snapshot = await read_snapshot(page)
                still_on_login = self.classifier.is_login_surface(snapshot)
                authenticated = self.classifier.is_authenticated(snapshot)
                if not still_on_login and (snapshot.url != initial_url or authenticated):
                    logger.info(f"[AuthWaiter] Authentication success detected at {snapshot.url}")
                    return AuthWaitResult(
                        success=True, final_url=snapshot.url, elapsed=self._clock() - start
                    )
            except Exception as e:
                logger.warning(f"[AuthWaiter] Error during authentication wait: {e}")

            remaining = self.timeout - (self._clock() - start)
            if remaining <= 0:
                break
            await self._pause(min(self.interval, remaining), cancel)

        logger.info("[AuthWaiter] Authentication timed out")
        return AuthWaitResult(success=False, error="timeout", elapsed=self._clock() - start)
