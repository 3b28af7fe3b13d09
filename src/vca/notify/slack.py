"""Slack incoming-webhook notifications.

Every notifier returns True when the webhook accepted the message and False
otherwise; delivery problems are logged, never raised, so a failed post
cannot fail the action that triggered it. Routers schedule these as
background tasks after the response is built.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from vca.config import get_settings

logger = structlog.get_logger()

_TIMEOUT_SECONDS = 10.0


def _section(text: str, button_text: str, url: str) -> dict[str, Any]:
    return {
        "type": "section",
        "text": {"type": "mrkdwn", "text": text},
        "accessory": {
            "type": "button",
            "text": {"type": "plain_text", "text": button_text},
            "url": url,
        },
    }


def new_week_message(week_number: int, week_title: str, base_url: str) -> dict[str, Any]:
    return {
        "text": f"New content published for Week {week_number}: {week_title}",
        "blocks": [
            _section(
                f"*New Content Published* :books:\n\nWeek {week_number}: *{week_title}* is now available!",
                "View Week",
                f"{base_url}/weeks/{week_number}",
            )
        ],
    }


def badge_awarded_message(recipient_name: str, badge_name: str, awarded_by_name: str, base_url: str) -> dict[str, Any]:
    return {
        "text": f'{recipient_name} earned the "{badge_name}" badge!',
        "blocks": [
            _section(
                f"*Badge Awarded* :trophy:\n\n*{recipient_name}* earned the *{badge_name}* badge!"
                f"\n\nAwarded by {awarded_by_name}",
                "View Badges",
                f"{base_url}/badges",
            )
        ],
    }


def demo_submitted_message(user_name: str, demo_title: str, week_number: int, base_url: str) -> dict[str, Any]:
    return {
        "text": f"{user_name} submitted a new demo: {demo_title}",
        "blocks": [
            _section(
                f"*New Demo Submitted* :rocket:\n\n*{user_name}* shared a demo for Week {week_number}:\n_{demo_title}_",
                "View Demo",
                f"{base_url}/weeks/{week_number}",
            )
        ],
    }


async def send_message(
    message: dict[str, Any],
    webhook_url: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """POST a message to the configured webhook."""
    url = webhook_url if webhook_url is not None else get_settings().slack_webhook_url
    if not url:
        logger.info("slack_not_configured", text=message.get("text"))
        return False

    try:
        async with httpx.AsyncClient(transport=transport, timeout=_TIMEOUT_SECONDS) as client:
            response = await client.post(url, json=message)
    except httpx.HTTPError as e:
        logger.warning("slack_send_failed", error=str(e))
        return False

    if response.is_error:
        logger.warning("slack_send_rejected", status_code=response.status_code)
        return False
    logger.info("slack_sent", text=message.get("text"))
    return True


async def notify_new_week_content(week_number: int, week_title: str, base_url: str | None = None) -> bool:
    base = base_url or get_settings().site_base_url
    return await send_message(new_week_message(week_number, week_title, base))


async def notify_badge_awarded(
    recipient_name: str,
    badge_name: str,
    awarded_by_name: str,
    base_url: str | None = None,
) -> bool:
    base = base_url or get_settings().site_base_url
    return await send_message(badge_awarded_message(recipient_name, badge_name, awarded_by_name, base))


async def notify_demo_submitted(
    user_name: str,
    demo_title: str,
    week_number: int,
    base_url: str | None = None,
) -> bool:
    base = base_url or get_settings().site_base_url
    return await send_message(demo_submitted_message(user_name, demo_title, week_number, base))
