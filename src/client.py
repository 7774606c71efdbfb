"""Telegram client factory for chatnotify."""

from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from telethon import TelegramClient

LOGGER = logging.getLogger(__name__)


def _credentials() -> tuple[int, str]:
    api_id = os.getenv("API_ID", "").strip()
    api_hash = os.getenv("API_HASH", "").strip()
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")
    if not api_id.isdigit():
        raise RuntimeError("API_ID must be numeric")
    return int(api_id), api_hash


def build_client(session_dir: Optional[str] = None) -> TelegramClient:
    """Create a Telethon client from .env / environment credentials.

    The session file is named by SESSION_NAME (default "chatnotify") and is
    kept in ``session_dir`` when one is given.
    """

    load_dotenv()
    api_id, api_hash = _credentials()

    session = os.getenv("SESSION_NAME", "chatnotify")
    if session_dir:
        os.makedirs(session_dir, exist_ok=True)
        session = os.path.join(session_dir, session)

    LOGGER.info("Initializing Telegram client (session %s)", session)
    return TelegramClient(session, api_id, api_hash)
