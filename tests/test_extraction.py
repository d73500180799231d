"""Tests for structured extraction and the AI action layer."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fakes import FakePage

from docscout.adapters.ai_actions import apply_action, decide_action, perform_instruction
from docscout.adapters.anthropic import complete_json, parse_json_reply
from docscout.core.extractor.extract import HOMEPAGE_INSTRUCTION, PageExtractor, extract_from_text
from docscout.core.extractor.schemas import AuthFlowData, HomepageData
from docscout.errors import ActNotAppliedError


class TestExtractFromText:
    def test_without_key_returns_empty_defaults(self, no_llm):
        data = extract_from_text(HOMEPAGE_INSTRUCTION, HomepageData, "Example - ship faster")

        assert data == HomepageData()

    def test_parses_llm_json(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
        payload = {"platform_name": "Example", "key_features": ["Alerts"]}
        with patch("docscout.core.extractor.extract.complete_json", return_value=(payload, "{}")) as mock_llm:
            data = extract_from_text(HOMEPAGE_INSTRUCTION, HomepageData, "Example")

        assert data.platform_name == "Example"
        assert data.key_features == ["Alerts"]
        assert "Example" in mock_llm.call_args.args[1]

    def test_invalid_llm_json_falls_back(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
        bad = {"signup_process": {"steps": "not-a-list"}}
        with patch("docscout.core.extractor.extract.complete_json", return_value=(bad, "")):
            data = extract_from_text("auth", AuthFlowData, "text")

        assert data == AuthFlowData()

    def test_request_failure_falls_back(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
        with patch("docscout.core.extractor.extract.complete_json", side_effect=RuntimeError("overloaded")):
            assert extract_from_text("x", HomepageData, "text") == HomepageData()


class TestPageExtractor:
    @pytest.mark.asyncio
    async def test_reads_page_text(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
        page = FakePage(body="Example pricing: Free, Pro")
        with patch(
            "docscout.core.extractor.extract.complete_json",
            return_value=({"pricing_tiers": ["Free", "Pro"]}, ""),
        ) as mock_llm:
            data = await PageExtractor().extract(page, HOMEPAGE_INSTRUCTION, HomepageData)

        assert data.pricing_tiers == ["Free", "Pro"]
        assert "Example pricing" in mock_llm.call_args.args[1]

    @pytest.mark.asyncio
    async def test_unreadable_page_gives_defaults(self):
        page = FakePage()
        page.body_text = AsyncMock(side_effect=RuntimeError("Target closed"))

        data = await PageExtractor().extract(page, HOMEPAGE_INSTRUCTION, HomepageData)

        assert data == HomepageData()


def _playwright_page():
    page = MagicMock()
    page.url = "https://example.com"
    page.click = AsyncMock()
    page.fill = AsyncMock()
    page.hover = AsyncMock()
    page.wait_for_load_state = AsyncMock()
    page.keyboard.press = AsyncMock()
    page.mouse.wheel = AsyncMock()
    page.title = AsyncMock(return_value="Example")
    page.evaluate = AsyncMock(side_effect=[[{"type": "clickable", "selector": "a.login", "text": "Sign in"}], "Hi"])
    return page


class TestAIActions:
    def test_decide_without_key_is_none(self, no_llm):
        assert decide_action("click sign in", {"url": "https://example.com"}) is None

    @pytest.mark.asyncio
    async def test_apply_click(self):
        page = _playwright_page()

        done = await apply_action(page, {"action": "click", "selector": "a.login"})

        assert done == "Clicked a.login"
        page.click.assert_awaited_once_with("a.login", timeout=5000)

    @pytest.mark.asyncio
    async def test_apply_scroll_up(self):
        page = _playwright_page()

        done = await apply_action(page, {"action": "scroll", "direction": "up", "amount": 300})

        assert done == "Scrolled up by 300"
        page.mouse.wheel.assert_awaited_once_with(0, -300)

    @pytest.mark.asyncio
    async def test_apply_none_raises(self):
        with pytest.raises(ActNotAppliedError, match="no login button"):
            await apply_action(_playwright_page(), {"action": "none", "reason": "no login button"})

    @pytest.mark.asyncio
    async def test_perform_instruction_without_decision_raises(self, no_llm):
        with pytest.raises(ActNotAppliedError):
            await perform_instruction(_playwright_page(), "click sign in")

    @pytest.mark.asyncio
    async def test_perform_instruction_applies_decision(self):
        page = _playwright_page()
        with patch(
            "docscout.adapters.ai_actions.decide_action",
            return_value={"action": "click", "selector": "a.login"},
        ) as mock_decide:
            done = await perform_instruction(page, "click sign in")

        assert done == "Clicked a.login"
        state = mock_decide.call_args.args[1]
        assert state["elements"][0]["selector"] == "a.login"
        assert state["text"] == "Hi"


class TestAnthropicAdapter:
    def test_parse_plain_json(self):
        assert parse_json_reply('{"action": "click"}') == {"action": "click"}

    def test_parse_code_fence(self):
        text = 'Here you go:\n```json\n{"action": "scroll"}\n```'

        assert parse_json_reply(text) == {"action": "scroll"}

    def test_parse_object_in_prose(self):
        assert parse_json_reply('Decision: {"action": "none"} done') == {"action": "none"}

    def test_parse_failure(self):
        with pytest.raises(ValueError):
            parse_json_reply("no json here")

    def test_complete_json_joins_text_blocks(self):
        client = MagicMock()
        client.messages.create.return_value.content = [
            MagicMock(type="text", text='{"platform_name": '),
            MagicMock(type="text", text='"Example"}'),
        ]
        with patch("docscout.adapters.anthropic._client", return_value=client):
            data, raw = complete_json("system", "user", max_tokens=50)

        assert data == {"platform_name": "Example"}
        assert raw == '{"platform_name": "Example"}'
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["max_tokens"] == 50
        assert kwargs["system"] == "system"
