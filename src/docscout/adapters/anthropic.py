"""Anthropic Claude client wrapper.

One JSON-returning call shared by the AI action layer and the structured
extractor. Callers check has_api_key() first and fall back when the key
is missing or the request fails.
"""

from __future__ import annotations

import json
import os
import re
from typing import Any

from ..config.settings import settings

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def _get_api_key() -> str | None:
    # CLAUDE_API_KEY is the older name
    return os.getenv("ANTHROPIC_API_KEY") or os.getenv("CLAUDE_API_KEY")


def has_api_key() -> bool:
    return bool(_get_api_key())


def _client():
    from anthropic import Anthropic

    key = _get_api_key()
    if not key:
        raise RuntimeError("Anthropic API key not found in ANTHROPIC_API_KEY or CLAUDE_API_KEY")
    return Anthropic(api_key=key)


def parse_json_reply(text: str) -> dict[str, Any]:
    """Pull the first JSON object out of a model reply.

    Accepts a bare object, an object inside a code fence, or an object
    surrounded by prose.
    """
    candidates = [text, *_FENCE.findall(text)]
    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end:
        candidates.append(text[start : end + 1])
    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(data, dict):
            return data
    raise ValueError("No JSON object in Claude response")


def complete_json(
    system_prompt: str,
    user_prompt: str,
    model: str | None = None,
    max_tokens: int = 1000,
) -> tuple[dict[str, Any], str]:
    """Call Claude at temperature 0 and return (json_dict, raw_text)."""
    msg = _client().messages.create(
        model=model or settings.anthropic_model,
        max_tokens=max_tokens,
        temperature=0.0,
        system=system_prompt,
        messages=[{"role": "user", "content": user_prompt}],
    )
    raw = "".join(block.text for block in msg.content if getattr(block, "type", None) == "text")
    return parse_json_reply(raw), raw
