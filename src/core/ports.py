"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for notification adapters so that the
core can be reused with different delivery backends.
"""

from __future__ import annotations

from typing import Optional, Protocol


class NotifierPort(Protocol):
    """Outbound notification hook, called at most once per chat line."""

    def __call__(self, sender: Optional[str], message: str) -> None:
        ...
