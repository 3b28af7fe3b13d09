"""Tests for Slack webhook notifications."""

from __future__ import annotations

import json

import httpx
import pytest

from vca.notify import slack

WEBHOOK = "https://hooks.slack.test/services/T000/B000/XXX"


def _transport(status_code: int = 200, seen: list | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, text="ok")

    return httpx.MockTransport(handler)


class TestMessages:
    def test_new_week(self):
        message = slack.new_week_message(3, "Shipping", "https://site.test")
        assert message["text"] == "New content published for Week 3: Shipping"
        block = message["blocks"][0]
        assert "Week 3: *Shipping* is now available!" in block["text"]["text"]
        assert block["accessory"]["text"]["text"] == "View Week"
        assert block["accessory"]["url"] == "https://site.test/weeks/3"

    def test_badge_awarded(self):
        message = slack.badge_awarded_message("Mia", "Helper", "Ada", "https://site.test")
        assert message["text"] == 'Mia earned the "Helper" badge!'
        block = message["blocks"][0]
        assert "Awarded by Ada" in block["text"]["text"]
        assert block["accessory"]["url"] == "https://site.test/badges"

    def test_demo_submitted(self):
        message = slack.demo_submitted_message("Mia", "Recipe bot", 2, "https://site.test")
        assert message["text"] == "Mia submitted a new demo: Recipe bot"
        assert "_Recipe bot_" in message["blocks"][0]["text"]["text"]
        assert message["blocks"][0]["accessory"]["text"]["text"] == "View Demo"


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_unconfigured_webhook_is_a_no_op(self):
        assert await slack.send_message({"text": "hi"}) is False

    @pytest.mark.asyncio
    async def test_posts_json_to_the_webhook(self):
        seen: list[httpx.Request] = []
        message = slack.new_week_message(1, "Intro", "https://site.test")
        assert await slack.send_message(message, webhook_url=WEBHOOK, transport=_transport(seen=seen)) is True
        assert len(seen) == 1
        assert str(seen[0].url) == WEBHOOK
        assert json.loads(seen[0].content) == message

    @pytest.mark.asyncio
    async def test_rejected_post_returns_false(self):
        assert await slack.send_message({"text": "x"}, webhook_url=WEBHOOK, transport=_transport(500)) is False

    @pytest.mark.asyncio
    async def test_network_failure_returns_false(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        transport = httpx.MockTransport(handler)
        assert await slack.send_message({"text": "x"}, webhook_url=WEBHOOK, transport=transport) is False

    @pytest.mark.asyncio
    async def test_notifiers_never_raise_when_unconfigured(self):
        assert await slack.notify_new_week_content(1, "Intro") is False
        assert await slack.notify_badge_awarded("Mia", "Helper", "Ada") is False
        assert await slack.notify_demo_submitted("Mia", "Bot", 1) is False
