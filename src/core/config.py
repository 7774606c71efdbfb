"""Core configuration dataclasses.

We keep file loading outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from core.classifier import ClassifierContext
from core.errors import ConfigurationError
from core.rules_engine import DEFAULT_NOTIFY_RULES, DEFAULT_SUPPRESS_RULES, RuleSet


@dataclass(frozen=True)
class NotifyConfig:
    """Everything the decision engine needs, validated up front."""

    context: ClassifierContext
    notify_rules: RuleSet
    suppress_rules: RuleSet


@dataclass(frozen=True)
class NotificationConfig:
    """Notification formatting settings consumed by notifier adapters."""

    snippet_chars: int
    timestamp_format: str


def _string_list(raw: dict, key: str) -> list[str]:
    value = raw.get(key) or []
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ConfigurationError(f"{key}: expected a list of strings, got {value!r}")
    return list(value)


def _rule_set(raw: dict, key: str, default: RuleSet) -> RuleSet:
    # A missing key keeps the documented defaults; an explicit {} disables the set.
    if key not in raw or raw[key] is None:
        return default
    value = raw[key]
    if not isinstance(value, dict):
        raise ConfigurationError(f"{key}: expected an object mapping categories to rules")
    return RuleSet.from_config(value, name=key)


def build_notify_config(raw: dict, is_query: Optional[Callable[[str], bool]] = None) -> NotifyConfig:
    """Validate the flat config.json schema and build core objects."""

    nickname = raw.get("nickname")
    if nickname is not None and not isinstance(nickname, str):
        raise ConfigurationError(f"nickname: expected a string, got {nickname!r}")

    context = ClassifierContext.build(
        nickname=nickname,
        pals=_string_list(raw, "pals"),
        fools=_string_list(raw, "fools"),
        dangerous_hosts=_string_list(raw, "dangerous_hosts"),
        keywords=_string_list(raw, "keywords"),
        keyword_patterns=_string_list(raw, "keyword_patterns"),
        query_conversations=_string_list(raw, "query_conversations"),
        is_query=is_query,
    )
    return NotifyConfig(
        context=context,
        notify_rules=_rule_set(raw, "notify_rules", DEFAULT_NOTIFY_RULES),
        suppress_rules=_rule_set(raw, "suppress_rules", DEFAULT_SUPPRESS_RULES),
    )


def build_notification_config(raw: dict) -> NotificationConfig:
    """Read the ``notifications`` block, falling back to defaults."""

    notifications = raw.get("notifications", {}) or {}
    return NotificationConfig(
        snippet_chars=int(notifications.get("snippet_chars", 400)),
        timestamp_format=str(notifications.get("timestamp_format", "[%H:%M]")),
    )
