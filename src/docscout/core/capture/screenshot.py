"""Screenshot capture: full page, viewport, or cropped around an element."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from ...runtime.storage import ensure_dir

if TYPE_CHECKING:
    from ...adapters.remote_browser import BrowserPage

logger = logging.getLogger(__name__)

FOCUS_PADDING = 50
MIN_CLIP_SIZE = 100


@dataclass
class CaptureResult:
    path: Path
    mode: str  # full-page|viewport|focused
    selector: str | None = None

    def describe(self) -> str:
        if self.mode == "focused":
            return f"focused on {self.selector}"
        return self.mode


def compute_clip(
    box: dict[str, float],
    viewport: tuple[int, int],
    padding: int = FOCUS_PADDING,
    min_size: int = MIN_CLIP_SIZE,
) -> dict[str, int] | None:
    """Expand an element box by ``padding`` and clamp it to the viewport.

    Returns None when the clamped region is smaller than ``min_size`` in
    either dimension; callers then take a plain viewport screenshot.
    """
    vw, vh = viewport
    x = max(0, math.floor(box["x"] - padding))
    y = max(0, math.floor(box["y"] - padding))
    width = min(math.floor(box["width"] + padding * 2), vw - x)
    height = min(math.floor(box["height"] + padding * 2), vh - y)
    if width < min_size or height < min_size:
        return None
    return {"x": x, "y": y, "width": width, "height": height}


def split_selectors(focus_element: str) -> list[str]:
    return [s.strip() for s in focus_element.split(",") if s.strip()]


class ScreenshotCapturer:
    """Writes PNGs for one session and hands back their paths."""

    def __init__(
        self,
        output_dir: Path,
        padding: int = FOCUS_PADDING,
        min_size: int = MIN_CLIP_SIZE,
    ) -> None:
        self.output_dir = output_dir
        self.padding = padding
        self.min_size = min_size
        self._counter = 0

    def next_filename(self) -> str:
        return f"step-{self._counter}-screenshot.png"

    async def _find_clip(self, page: BrowserPage, focus_element: str) -> tuple[dict[str, int], str] | None:
        viewport: tuple[int, int] | None = None
        for selector in split_selectors(focus_element):
            try:
                box = await page.bounding_box(selector)
            except Exception as e:
                # Invalid selector syntax or detached node; try the next one
                logger.debug(f"[Capture] Selector {selector!r} failed: {e}")
                continue
            if not box or box.get("width", 0) <= 0 or box.get("height", 0) <= 0:
                continue
            if viewport is None:
                viewport = await page.viewport_size()
            clip = compute_clip(box, viewport, self.padding, self.min_size)
            if clip is not None:
                return clip, selector
        return None

    async def capture(
        self,
        page: BrowserPage,
        filename: str | None = None,
        full_page: bool = False,
        focus_element: str | None = None,
    ) -> CaptureResult:
        self._counter += 1
        name = filename or self.next_filename()

        clip: dict[str, int] | None = None
        selector: str | None = None
        if full_page:
            mode = "full-page"
        elif focus_element:
            found = None
            try:
                found = await self._find_clip(page, focus_element)
            except Exception as e:
                logger.info(f"[Capture] Error finding focus element, taking viewport screenshot: {e}")
            if found:
                clip, selector = found
                mode = "focused"
                logger.info(f"[Capture] Found element with selector: {selector}")
            else:
                logger.info(
                    f"[Capture] No valid element found with selectors: {focus_element}, "
                    "taking viewport screenshot"
                )
                mode = "viewport"
        else:
            mode = "viewport"

        png = await page.screenshot(full_page=full_page, clip=clip)
        ensure_dir(self.output_dir)
        path = (self.output_dir / name).resolve()
        path.write_bytes(png)
        return CaptureResult(path=path, mode=mode, selector=selector)
