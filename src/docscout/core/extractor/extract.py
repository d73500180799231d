from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel, ValidationError

from ...adapters.anthropic import complete_json, has_api_key

if TYPE_CHECKING:
    from ...adapters.remote_browser import BrowserPage

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

HOMEPAGE_INSTRUCTION = """Extract comprehensive information about this SaaS platform's homepage. Focus on:
- Platform name and main value proposition
- Key features highlighted on the homepage
- Pricing information if visible
- Sign-up and authentication options
- Target audience or use cases mentioned
- Any customer testimonials visible"""

AUTH_INSTRUCTION = """Analyze the authentication and sign-up options on this page. Look for:
- Sign-up process steps and required fields
- Available social login options (Google, GitHub, etc.)
- Login methods available
- Whether email verification is required
- Two-factor authentication options
- Forgot password functionality"""

FEATURE_INSTRUCTION = """Analyze this SaaS platform's features and navigation. Extract:
- Main navigation sections and menu items
- Sidebar navigation if present
- Core features and their descriptions
- Any integrations mentioned
- API access information
- Mobile app availability
- Footer links"""


def extract_from_text(instruction: str, model: type[M], text: str) -> M:
    """Fill ``model`` from page text; empty defaults when the LLM is unavailable."""
    if not has_api_key():
        return model()
    sys = (
        "Extract structured JSON matching the provided schema from the given page text.\n"
        "Only output JSON (no prose). Use empty values for anything not visible in the text.\n"
    )
    user = (
        f"goal: {instruction}\n"
        f"schema: {json.dumps(model.model_json_schema())}\n"
        f"text: {text[:12000]}\n"
    )
    try:
        data, _ = complete_json(sys, user, max_tokens=1200)
        return model.model_validate(data)
    except (ValidationError, ValueError) as e:
        logger.warning(f"[Extractor] Could not parse {model.__name__}: {e}")
    except Exception as e:
        logger.warning(f"[Extractor] Extraction request failed: {e}")
    return model()


class PageExtractor:
    """Reads the current page text and extracts one schema from it."""

    async def extract(self, page: BrowserPage, instruction: str, model: type[M]) -> M:
        try:
            text = await page.body_text()
        except Exception as e:
            logger.warning(f"[Extractor] Could not read page text: {e}")
            return model()
        return await asyncio.to_thread(extract_from_text, instruction, model, text)
