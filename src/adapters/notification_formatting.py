"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
from datetime import datetime
from typing import Optional

DIVIDER = "──────────────"
SYSTEM_SENDER = "system"


def clip(message: str, snippet_chars: int) -> str:
    """Clip long messages to reduce notification noise."""

    if len(message) <= snippet_chars:
        return message.strip()
    return message[:snippet_chars].rstrip() + "…"


def _format_markdown(sender: str, excerpt: str, timestamp: str) -> str:
    """Create the Markdown notification body used by Saved Messages."""

    def escape_md(value: str) -> str:
        for ch in r"*[`":
            value = value.replace(ch, f"\\{ch}")
        return value

    lines = [
        f"[{timestamp}]",
        f"**From:** {escape_md(sender)}",
        DIVIDER,
        "",
        escape_md(excerpt),
        "",
        DIVIDER,
    ]
    return "\n".join(lines)


def _format_html(sender: str, excerpt: str, timestamp: str) -> str:
    """Create the HTML notification body used by the Bot API adapter."""

    parts = [
        f"[{html.escape(timestamp)}]",
        f"<b>From:</b> {html.escape(sender)}",
        DIVIDER,
        "",
        html.escape(excerpt),
        "",
        DIVIDER,
    ]
    return "\n".join(parts)


def format_notification(
    sender: Optional[str],
    message: str,
    snippet_chars: int,
    mode: str,
    now: Optional[datetime] = None,
) -> str:
    """Return the notification formatted for the requested mode."""

    timestamp = (now or datetime.now()).astimezone().strftime("%H:%M:%S %d-%m-%Y").strip()
    excerpt = clip(message, snippet_chars)
    who = sender or SYSTEM_SENDER

    if mode == "markdown":
        return _format_markdown(who, excerpt, timestamp)
    if mode == "html":
        return _format_html(who, excerpt, timestamp)
    raise ValueError(f"Unsupported notification format: {mode}")
