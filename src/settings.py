"""Static configuration for chatnotify.

All user-editable settings (nickname, lists, rule sets, notifications,
logging) live in a single JSON file for quick edits without touching Python.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# The config path can be overridden for alternate profiles or tests.
CONFIG_PATH = os.getenv("CHATNOTIFY_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def load_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = load_config()

# Expose the raw config; core.config validates it into rule sets and lookups.
CONFIG = _CONFIG

# Notification method switches adapters without changing core logic.
_notifications = _CONFIG.get("notifications", {})
NOTIFICATION_METHOD = _notifications.get("notification_method", "saved_messages")
# Bot chat id is only required when notification_method=bot.
BOT_CHAT_ID = _notifications.get("bot_chat_id")

# When enabled, lines shown in the console get the timestamp stage applied.
ECHO_LINES = bool(_CONFIG.get("echo_lines", False))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
