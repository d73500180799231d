"""Natural-language browser actions.

An ``act`` instruction ("find and click the sign in button") is turned into
one concrete Playwright action: the page is summarised, Claude picks an
action as JSON, and the action is applied. Anything short of a successfully
applied action raises ActNotAppliedError so the caller can treat it as a
best-effort no-op.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import suppress
from typing import TYPE_CHECKING, Any

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..errors import ActNotAppliedError
from .anthropic import complete_json, has_api_key

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

_PAGE_STATE_JS = """() => {
    const getSelector = (el) => {
        if (el.id) return '#' + el.id;
        if (el.className && typeof el.className === 'string') {
            const classes = el.className.trim().split(/\\s+/).slice(0, 2).join('.');
            if (classes) return el.tagName.toLowerCase() + '.' + classes;
        }
        return el.tagName.toLowerCase();
    };
    const elements = [];
    document.querySelectorAll('a, button, [role="button"], input[type="submit"]').forEach((el, idx) => {
        if (idx < 60 && el.offsetParent !== null) {
            elements.push({
                type: 'clickable',
                selector: getSelector(el),
                text: (el.textContent || el.value || '').trim().substring(0, 80),
                href: el.getAttribute('href') || ''
            });
        }
    });
    document.querySelectorAll('input:not([type="submit"]):not([type="hidden"]), textarea').forEach((el, idx) => {
        if (idx < 20 && el.offsetParent !== null) {
            elements.push({
                type: 'input',
                selector: getSelector(el),
                inputType: el.type || 'text',
                placeholder: el.placeholder || '',
                name: el.name || ''
            });
        }
    });
    return elements;
}"""

ACTION_SYSTEM_PROMPT = """You are a browser automation agent. You receive one instruction and a summary
of the current page, and you choose exactly ONE action that carries out the instruction.

Available actions:
- click: {"action": "click", "selector": "a.login"}
- fill: {"action": "fill", "selector": "input#email", "text": "..."}
- hover: {"action": "hover", "selector": ".menu-item"}
- press: {"action": "press", "key": "Enter"}
- scroll: {"action": "scroll", "direction": "down" or "up", "amount": 600}
- none: {"action": "none", "reason": "..."} - when the instruction cannot be satisfied on this page

Only use selectors that appear in the element list. Return ONLY a JSON object."""


async def get_page_state(page: Page) -> dict[str, Any]:
    """Summarise the page for the action decision."""
    try:
        title = await page.title()
        elements = await page.evaluate(_PAGE_STATE_JS)
        text = await page.evaluate("() => document.body ? document.body.innerText : ''")
    except Exception as e:
        logger.warning(f"[AIActions] Failed to read page state: {e}")
        return {"url": page.url, "title": "", "elements": [], "text": ""}
    return {
        "url": page.url,
        "title": title,
        "elements": elements if isinstance(elements, list) else [],
        "text": text[:1500] if isinstance(text, str) else "",
    }


def decide_action(instruction: str, page_state: dict[str, Any]) -> dict[str, Any] | None:
    """Ask Claude for the single action that satisfies ``instruction``."""
    if not has_api_key():
        return None

    user_prompt = f"""Instruction: {instruction}

Current page:
- URL: {page_state.get("url", "")}
- Title: {page_state.get("title", "")}

Interactive elements:
{json.dumps(page_state.get("elements", [])[:40], indent=2)}

Page text (excerpt):
{page_state.get("text", "")}

Decide the action (JSON only):"""

    try:
        data, _ = complete_json(ACTION_SYSTEM_PROMPT, user_prompt, max_tokens=300)
    except Exception as e:
        logger.warning(f"[AIActions] Action decision failed: {e}")
        return None
    return data if isinstance(data, dict) else None


async def apply_action(page: Page, action: dict[str, Any], timeout_ms: int = 5000) -> str:
    """Apply one decided action; returns a short description of what was done."""
    kind = action.get("action", "")
    selector = action.get("selector", "")

    if kind == "click" and selector:
        await page.click(selector, timeout=timeout_ms)
        # Clicks that do not navigate never fire the event
        with suppress(PlaywrightTimeoutError):
            await page.wait_for_load_state("domcontentloaded", timeout=timeout_ms)
        return f"Clicked {selector}"
    if kind == "fill" and selector:
        await page.fill(selector, str(action.get("text", "")), timeout=timeout_ms)
        return f"Filled {selector}"
    if kind == "hover" and selector:
        await page.hover(selector, timeout=timeout_ms)
        return f"Hovered {selector}"
    if kind == "press" and action.get("key"):
        await page.keyboard.press(str(action["key"]))
        return f"Pressed {action['key']}"
    if kind == "scroll":
        amount = int(action.get("amount", 600))
        delta = -amount if action.get("direction") == "up" else amount
        await page.mouse.wheel(0, delta)
        return f"Scrolled {'up' if delta < 0 else 'down'} by {abs(delta)}"

    reason = action.get("reason") or f"unsupported action {kind!r}"
    raise ActNotAppliedError(reason)


async def perform_instruction(page: Page, instruction: str) -> str:
    state = await get_page_state(page)
    # Sync SDK call; keep the event loop free for other sessions
    action = await asyncio.to_thread(decide_action, instruction, state)
    if action is None:
        raise ActNotAppliedError(f"No action decided for: {instruction}")
    logger.info(f"[AIActions] {instruction!r} -> {action.get('action')}")
    return await apply_action(page, action)
