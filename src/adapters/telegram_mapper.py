"""Telegram-to-core chat line mapping adapter.

This keeps Telethon-specific details out of the core pipeline.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from telethon.tl.custom import Message

from core.models import ChatLine

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class QueryTracker:
    """Remember which conversation keys belong to one-to-one chats."""

    def __init__(self) -> None:
        self._private: set[str] = set()

    def remember(self, message: Message, conversation_id: str) -> None:
        if getattr(message, "is_private", False):
            self._private.add(conversation_id)

    def is_query(self, conversation_id: str) -> bool:
        return conversation_id in self._private

    def __len__(self) -> int:
        return len(self._private)


def conversation_key_from_message(message: Message) -> str:
    """Normalize a conversation key using a single rule enforced across the app."""

    chat = getattr(message, "chat", None)
    username = getattr(chat, "username", None)

    if isinstance(username, str) and username:
        return f"@{username.lower()}"

    # Fallback: always stable and universal
    return f"chat_id:{message.chat_id}"


def sender_nick(sender: Any, sender_id: Optional[int]) -> Optional[str]:
    """Pick the nickname rules are matched against: username, then display name."""

    username = getattr(sender, "username", None)
    if isinstance(username, str) and username:
        return username
    first = getattr(sender, "first_name", None)
    last = getattr(sender, "last_name", None)
    if first or last:
        return " ".join(part for part in [first, last] if part)
    title = getattr(sender, "title", None)
    if title:
        return str(title)
    if sender_id is not None:
        return str(sender_id)
    return None


def describe_action(action: Any) -> str:
    """Render a service action as plain text, e.g. ``chat add user``."""

    name = type(action).__name__
    if name.startswith("MessageAction"):
        name = name[len("MessageAction"):]
    words = _CAMEL_BOUNDARY.sub(" ", name).lower().strip()
    return words or "service event"


def build_chat_line(message: Message, sender: Any = None) -> ChatLine:
    """Build a core ChatLine from a Telethon Message.

    Service messages (joins, title changes, pins) become system lines with
    no sender. ``sender_host`` is ``<sender_id>@telegram`` so host patterns
    can target numeric account ids that survive username changes.
    """

    conversation_id = conversation_key_from_message(message)
    action = getattr(message, "action", None)
    if action is not None:
        return ChatLine.create(
            sender=None,
            message=describe_action(action),
            conversation_id=conversation_id,
        )

    if sender is None:
        sender = getattr(message, "sender", None)
    sender_id = getattr(message, "sender_id", None)
    sender_host = f"{sender_id}@telegram" if sender_id is not None else None

    return ChatLine.create(
        sender=sender_nick(sender, sender_id),
        sender_host=sender_host,
        message=message.raw_text or "",
        conversation_id=conversation_id,
    )
