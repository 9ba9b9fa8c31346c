"""Slack NotificationBackend adapter (incoming webhooks)."""

from __future__ import annotations

import logging
from contextlib import contextmanager

import httpx

from qwikker_loyalty.conf import loyalty_settings
from qwikker_loyalty.protocols.notifications import Notification

logger = logging.getLogger(__name__)

PREVIEW_LIMIT = 200

EVENT_TITLES = {
    "new_request": ("🆕", "New Loyalty Card Request"),
    "edit_request": ("✏️", "Loyalty Card Edit Request"),
}


class SlackNotifier:
    """
    Posts loyalty notices to the city's Slack channel.

    Falls back to HQ_SLACK_WEBHOOK_URL when the city has no webhook.

    Configuration in settings.py:
        QWIKKER_LOYALTY = {
            "NOTIFICATION_BACKEND": "qwikker_loyalty.adapters.slack.SlackNotifier",
            "SLACK_WEBHOOK_URLS": {"bournemouth": "https://hooks.slack.com/services/..."},
        }
    """

    def __init__(self, client: httpx.Client | None = None):
        self.client = client

    @contextmanager
    def _session(self):
        if self.client is not None:
            yield self.client
            return
        with httpx.Client(timeout=loyalty_settings.HTTP_TIMEOUT) as client:
            yield client

    def notify(self, notification: Notification) -> bool:
        webhook = (
            loyalty_settings.SLACK_WEBHOOK_URLS.get(notification.city)
            or loyalty_settings.HQ_SLACK_WEBHOOK_URL
        )
        if not webhook:
            logger.info("No Slack webhook configured for %s, skipping", notification.city)
            return False

        try:
            with self._session() as client:
                response = client.post(webhook, json={"blocks": self.build_blocks(notification)})
            response.raise_for_status()
        except httpx.HTTPError:
            logger.warning("Slack notification failed for %s", notification.city, exc_info=True)
            return False
        return True

    @staticmethod
    def build_blocks(notification: Notification) -> list[dict]:
        emoji, title = EVENT_TITLES.get(notification.event_type, EVENT_TITLES["new_request"])
        preview = notification.message[:PREVIEW_LIMIT]
        if len(notification.message) > PREVIEW_LIMIT:
            preview += "..."
        text = (
            f"{emoji} *{title}*\n"
            f"*Business:* {notification.business_name}\n"
            f"*Category:* {notification.category}\n"
            f"*Subject:* {notification.subject}\n\n"
            f"> {preview}"
        )
        admin_link = (
            f"https://{notification.city.lower()}.{loyalty_settings.BASE_DOMAIN}"
            f"/admin?tab=loyalty&program={notification.program_id}"
        )
        return [
            {"type": "section", "text": {"type": "mrkdwn", "text": text}},
            {
                "type": "actions",
                "elements": [
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "View in Admin Dashboard"},
                        "url": admin_link,
                    }
                ],
            },
        ]
