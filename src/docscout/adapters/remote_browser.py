"""Remote browser page handle.

Wraps an async Playwright page that is either connected over CDP to a
remotely hosted browser (``CDP_URL``) or launched locally. The core only
talks to the ``BrowserPage`` protocol so tests can swap in a fake.

The handle is acquired with ``open_remote_page`` and is always closed on
exit, including when the session raises; remote sessions are billed.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager, suppress
from typing import TYPE_CHECKING, Any, Protocol

from playwright.async_api import async_playwright

from ..errors import BrowserNotReadyError
from .ai_actions import perform_instruction

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from playwright.async_api import Browser, BrowserContext, Page, Playwright

    from ..config.settings import Settings

logger = logging.getLogger(__name__)

_LOGOUT_SELECTOR = 'a[href*="logout"], .logout, [data-testid*="logout"]'


class BrowserPage(Protocol):
    """The remote-browser capability the exploration core depends on."""

    live_view_url: str | None

    @property
    def url(self) -> str: ...

    async def goto(self, url: str, wait_until: str = "domcontentloaded", timeout: int = 30000) -> None: ...

    async def act(self, instruction: str) -> str: ...

    async def screenshot(self, full_page: bool = False, clip: dict[str, int] | None = None) -> bytes: ...

    async def evaluate(self, code: str) -> Any: ...

    async def wait_for_selector(self, selector: str, timeout: int) -> None: ...

    async def focus(self, selector: str) -> None: ...

    async def type(self, selector: str, text: str) -> None: ...

    async def bounding_box(self, selector: str) -> dict[str, float] | None: ...

    async def viewport_size(self) -> tuple[int, int]: ...

    async def wait_for_timeout(self, ms: int) -> None: ...

    async def title(self) -> str: ...

    async def body_text(self) -> str: ...

    async def has_element(self, selector: str) -> bool: ...

    async def has_logout_element(self) -> bool: ...

    async def close(self) -> None: ...


class PlaywrightRemotePage:
    """BrowserPage backed by async Playwright."""

    def __init__(self, settings: Settings, live_view_url: str | None = None) -> None:
        self.settings = settings
        self.live_view_url = live_view_url
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    async def start(self) -> None:
        self._playwright = await async_playwright().start()
        viewport = {"width": self.settings.viewport_width, "height": self.settings.viewport_height}
        if self.settings.cdp_url:
            logger.info("[RemoteBrowser] Connecting over CDP")
            self._browser = await self._playwright.chromium.connect_over_cdp(self.settings.cdp_url)
            # Managed browsers usually expose a ready context
            if self._browser.contexts:
                self._context = self._browser.contexts[0]
            else:
                self._context = await self._browser.new_context(viewport=viewport)  # type: ignore[arg-type]
        else:
            logger.info("[RemoteBrowser] No CDP_URL set, launching local Chromium")
            self._browser = await self._playwright.chromium.launch(headless=self.settings.headless)
            self._context = await self._browser.new_context(viewport=viewport)  # type: ignore[arg-type]
        self._page = self._context.pages[0] if self._context.pages else await self._context.new_page()
        self._page.set_default_timeout(self.settings.navigation_timeout_ms)

    @property
    def page(self) -> Page:
        if not self._page:
            raise BrowserNotReadyError("Browser not started. Call start() first.")
        return self._page

    @property
    def url(self) -> str:
        return self.page.url

    async def goto(self, url: str, wait_until: str = "domcontentloaded", timeout: int = 30000) -> None:
        await self.page.goto(url, wait_until=wait_until, timeout=timeout)  # type: ignore[arg-type]

    async def act(self, instruction: str) -> str:
        return await perform_instruction(self.page, instruction)

    async def screenshot(self, full_page: bool = False, clip: dict[str, int] | None = None) -> bytes:
        if clip:
            return await self.page.screenshot(type="png", clip=clip)  # type: ignore[arg-type]
        return await self.page.screenshot(type="png", full_page=full_page)

    async def evaluate(self, code: str) -> Any:
        return await self.page.evaluate(code)

    async def wait_for_selector(self, selector: str, timeout: int) -> None:
        await self.page.wait_for_selector(selector, timeout=timeout)

    async def focus(self, selector: str) -> None:
        await self.page.focus(selector)

    async def type(self, selector: str, text: str) -> None:
        await self.page.locator(selector).press_sequentially(text)

    async def bounding_box(self, selector: str) -> dict[str, float] | None:
        handle = await self.page.query_selector(selector)
        if handle is None:
            return None
        try:
            return await handle.bounding_box()  # type: ignore[return-value]
        finally:
            await handle.dispose()

    async def viewport_size(self) -> tuple[int, int]:
        size = await self.page.evaluate("() => ({width: window.innerWidth, height: window.innerHeight})")
        return int(size["width"]), int(size["height"])

    async def wait_for_timeout(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)

    async def title(self) -> str:
        return await self.page.title()

    async def body_text(self) -> str:
        text = await self.page.evaluate("() => document.body ? document.body.textContent : ''")
        return text if isinstance(text, str) else ""

    async def has_element(self, selector: str) -> bool:
        return await self.page.query_selector(selector) is not None

    async def has_logout_element(self) -> bool:
        return await self.has_element(_LOGOUT_SELECTOR)

    async def close(self) -> None:
        if self._context and not self.settings.cdp_url:
            with suppress(Exception):
                await self._context.close()
        if self._browser:
            with suppress(Exception):
                await self._browser.close()
        if self._playwright:
            with suppress(Exception):
                await self._playwright.stop()
        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None
        logger.info("[RemoteBrowser] Closed")


def live_view_url_for(settings: Settings, session_id: str) -> str | None:
    if not settings.live_view_url_template:
        return None
    return settings.live_view_url_template.format(session_id=session_id)


@asynccontextmanager
async def open_remote_page(settings: Settings, session_id: str) -> AsyncGenerator[BrowserPage, None]:
    """Acquire a page handle for one session and guarantee it is closed."""
    page = PlaywrightRemotePage(settings, live_view_url=live_view_url_for(settings, session_id))
    try:
        await page.start()
        yield page
    finally:
        await page.close()
