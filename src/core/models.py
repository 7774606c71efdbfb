"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional

_NEWLINES = re.compile(r"[\r\n]+")


class Category(Enum):
    """Semantic tags a chat line can carry."""

    MESSAGE = "message"
    SYSTEM = "system"
    QUERY = "query"
    FOOL = "fool"
    DANGEROUS_HOST = "dangerous-host"
    CURRENT_NICK = "current-nick"
    KEYWORD = "keyword"
    PAL = "pal"

    @classmethod
    def from_name(cls, name: str) -> "Category":
        return cls(name.strip().lower())


CategorySet = FrozenSet[Category]


def normalize_message(text: str) -> str:
    """Collapse embedded line breaks so the message reads as one line."""

    return _NEWLINES.sub(" ", text).strip()


@dataclass(frozen=True)
class ChatLine:
    """A single displayed chat line, already parsed by the host adapter.

    ``sender`` is ``None`` for lines generated by the chat infrastructure
    itself (joins, topic changes and similar service events).
    """

    sender: Optional[str]
    sender_host: Optional[str]
    message: str
    conversation_id: str

    @classmethod
    def create(
        cls,
        *,
        sender: Optional[str],
        message: str,
        conversation_id: str,
        sender_host: Optional[str] = None,
    ) -> "ChatLine":
        return cls(
            sender=sender or None,
            sender_host=sender_host or None,
            message=normalize_message(message or ""),
            conversation_id=conversation_id,
        )

    @property
    def is_system(self) -> bool:
        return self.sender is None


@dataclass(frozen=True)
class DecisionResult:
    """Outcome of one notification decision."""

    sender: Optional[str]
    message: str
    should_notify: bool
    categories: CategorySet = field(default_factory=frozenset)
