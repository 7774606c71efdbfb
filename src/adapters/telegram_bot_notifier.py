"""Telegram Bot API notification adapter.

Uses the Bot API for delivery so notifications can be routed via a bot chat.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from typing import Optional

from adapters.notification_formatting import format_notification
from core.config import NotificationConfig

LOGGER = logging.getLogger(__name__)


class TelegramBotNotifier:
    """Notifier adapter that sends messages via the Telegram Bot API."""

    def __init__(self, bot_token: str, chat_id: str, config: NotificationConfig) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._config = config

    def _endpoint(self) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/sendMessage"

    def build_payload(self, sender: Optional[str], message: str) -> dict:
        text = format_notification(sender, message, self._config.snippet_chars, mode="html")
        return {
            "chat_id": self._chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }

    def __call__(self, sender: Optional[str], message: str) -> None:
        """Send the formatted notification via the Bot API."""

        data = json.dumps(self.build_payload(sender, message)).encode("utf-8")
        request = urllib.request.Request(self._endpoint(), data=data, method="POST")
        request.add_header("Content-Type", "application/json")
        # Blocking call: one short request per notified line.
        try:
            with urllib.request.urlopen(request, timeout=10):
                pass
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            raise RuntimeError(f"Bot API error {e.code}: {body}") from e
        LOGGER.debug("Bot notification sent for %s", sender or "<system>")
