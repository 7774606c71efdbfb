"""Telegram notification adapter for Saved Messages.

Formats a human-readable Markdown message and sends it to Saved Messages.
The core calls notifiers synchronously, so the send is scheduled on the
running event loop and tracked until it completes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from adapters.notification_formatting import format_notification
from core.config import NotificationConfig

LOGGER = logging.getLogger(__name__)


class TelegramSavedMessagesNotifier:
    """Notifier adapter that sends messages to the user's Saved Messages."""

    def __init__(self, client, config: NotificationConfig) -> None:
        self._client = client
        self._config = config
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def __call__(self, sender: Optional[str], message: str) -> None:
        """Schedule the formatted notification on the running loop."""

        text = format_notification(sender, message, self._config.snippet_chars, mode="markdown")
        task = asyncio.ensure_future(self._client.send_message("me", text, parse_mode="md"))
        self._pending.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            LOGGER.error("Failed to deliver notification: %s", error)

    async def drain(self) -> None:
        """Wait for scheduled sends, used before disconnecting."""

        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
