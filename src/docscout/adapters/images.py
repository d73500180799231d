from __future__ import annotations

import base64
import io
import logging
from pathlib import Path

from PIL import Image

logger = logging.getLogger(__name__)


def compress_screenshot(png_bytes: bytes, max_width: int = 256) -> str:
    """Shrink a PNG to at most ``max_width`` pixels wide and return it base64-encoded.

    Undecodable input is returned unchanged (base64-encoded).
    """
    try:
        img = Image.open(io.BytesIO(png_bytes))
        if img.width > max_width:
            ratio = max_width / img.width
            img = img.resize((max_width, max(1, int(img.height * ratio))), Image.Resampling.LANCZOS)
        output = io.BytesIO()
        img.save(output, format="PNG", optimize=True)
        return base64.b64encode(output.getvalue()).decode("utf-8")
    except Exception as e:
        logger.debug(f"[Images] Could not compress screenshot: {e}")
        return base64.b64encode(png_bytes).decode("utf-8")


def thumbnail_from_file(path: str | Path, max_width: int = 256) -> str | None:
    p = Path(path)
    if not p.is_file():
        return None
    return compress_screenshot(p.read_bytes(), max_width=max_width)
