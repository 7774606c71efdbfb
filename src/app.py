"""Application entry point for the chatnotify watcher."""

from __future__ import annotations

import argparse
import logging
import os
import signal
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv
from telethon import events

import settings
from adapters.telegram_bot_notifier import TelegramBotNotifier
from adapters.telegram_mapper import QueryTracker, build_chat_line, conversation_key_from_message
from adapters.telegram_notifier import TelegramSavedMessagesNotifier
from client import build_client
from core.config import NotificationConfig, NotifyConfig, build_notification_config, build_notify_config
from core.errors import ConfigurationError
from core.models import ChatLine
from core.pipeline import LinePipeline, NotificationModule, Stage, TimestampStage
from core.processor import DecisionEngine, decide

NAME = "CHATNOTIFY"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", ["API_HASH", "BOT_API"]):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", True):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    formatter = _RedactingFormatter(
        _collect_redaction_values(config),
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handlers: list[logging.Handler] = []

    if config.get("console", True):
        handlers.append(logging.StreamHandler())

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/chatnotify.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                path,
                maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
                backupCount=int(file_cfg.get("backup_count", 5)),
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    if handlers:
        logging.basicConfig(level=level, handlers=handlers)


def _load_notify_config(raw: dict, tracker: Optional[QueryTracker] = None) -> NotifyConfig:
    return build_notify_config(raw, is_query=tracker.is_query if tracker else None)


def _build_notifier(client, notification_config: NotificationConfig):
    # Select the notification adapter based on configuration to keep the core
    # independent from delivery details.
    if settings.NOTIFICATION_METHOD == "bot":
        bot_token = os.getenv("BOT_API")
        if not bot_token:
            raise RuntimeError("BOT_API is required when notification_method=bot")
        if not settings.BOT_CHAT_ID:
            raise RuntimeError("notifications.bot_chat_id is required for bot notifications")
        return TelegramBotNotifier(bot_token, str(settings.BOT_CHAT_ID), notification_config)
    if settings.NOTIFICATION_METHOD == "saved_messages":
        return TelegramSavedMessagesNotifier(client, notification_config)
    raise RuntimeError("notification_method must be 'saved_messages' or 'bot'")


def _echo(line: ChatLine) -> ChatLine:
    LOGGER.info("%s <%s> %s", line.conversation_id, line.sender or "*", line.message)
    return line


def build_pipeline(module: NotificationModule, notification_config: NotificationConfig, echo: bool) -> LinePipeline:
    """Assemble host stages; the notify stage is placed ahead of timestamps."""

    pipeline = LinePipeline([TimestampStage(notification_config.timestamp_format).stage()])
    if echo:
        pipeline.install(Stage("echo", _echo))
    module.enable(pipeline)
    return pipeline


def _install_reload(engine: DecisionEngine, tracker: QueryTracker) -> None:
    """Reload rule sets and lists from config.json on SIGHUP."""

    if not hasattr(signal, "SIGHUP"):
        return

    def _reload(signum, frame) -> None:
        try:
            loaded = _load_notify_config(settings.load_config(), tracker)
        except (ConfigurationError, OSError, ValueError) as exc:
            LOGGER.error("Config reload failed, keeping previous rules: %s", exc)
            return
        engine.reload(loaded.context, loaded.notify_rules, loaded.suppress_rules)

    signal.signal(signal.SIGHUP, _reload)


def _run() -> None:
    _print_banner()
    _configure_logging()
    LOGGER.info("Starting chatnotify")

    tracker = QueryTracker()
    try:
        notify_config = _load_notify_config(settings.CONFIG, tracker)
    except ConfigurationError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        raise SystemExit(2) from exc
    notification_config = build_notification_config(settings.CONFIG)
    LOGGER.info(
        "%s notify rules and %s suppress rules are loaded",
        len(notify_config.notify_rules),
        len(notify_config.suppress_rules),
    )

    client = build_client()
    notifier = _build_notifier(client, notification_config)
    LOGGER.info("Selected notification method - %s", settings.NOTIFICATION_METHOD)

    engine = DecisionEngine(notify_config.context, notify_config.notify_rules, notify_config.suppress_rules)
    module = NotificationModule(engine, notifier)
    pipeline = build_pipeline(module, notification_config, settings.ECHO_LINES)
    _install_reload(engine, tracker)

    @client.on(events.NewMessage(incoming=True))
    async def on_message(event) -> None:
        try:
            sender = await event.get_sender()
            # Bot notifications arrive as private bot messages; never react to them.
            if settings.NOTIFICATION_METHOD == "bot" and event.is_private and getattr(sender, "bot", False):
                return
            tracker.remember(event.message, conversation_key_from_message(event.message))
            pipeline.process(build_chat_line(event.message, sender))
        except Exception:
            LOGGER.exception("Error while processing message")

    @client.on(events.ChatAction())
    async def on_action(event) -> None:
        if event.action_message is None:
            return
        try:
            pipeline.process(build_chat_line(event.action_message))
        except Exception:
            LOGGER.exception("Error while processing service message")

    client.start()
    LOGGER.info("Client connected. Listening for incoming messages...")
    try:
        client.run_until_disconnected()
    finally:
        module.disable(pipeline)
        if isinstance(notifier, TelegramSavedMessagesNotifier):
            client.loop.run_until_complete(notifier.drain())


def _check() -> int:
    try:
        loaded = _load_notify_config(settings.CONFIG)
    except ConfigurationError as exc:
        print(f"Invalid configuration: {exc}")
        return 1
    print(f"notify_rules:   {loaded.notify_rules!r}")
    print(f"suppress_rules: {loaded.suppress_rules!r}")
    return 0


def _explain(args: argparse.Namespace) -> int:
    extra = [args.conversation] if args.query else []
    raw = dict(settings.CONFIG)
    raw["query_conversations"] = list(raw.get("query_conversations") or []) + extra
    try:
        loaded = _load_notify_config(raw)
    except ConfigurationError as exc:
        print(f"Invalid configuration: {exc}")
        return 1

    line = ChatLine.create(
        sender=args.sender,
        sender_host=args.host,
        message=" ".join(args.message),
        conversation_id=args.conversation,
    )
    result = decide(line, loaded.context, loaded.notify_rules, loaded.suppress_rules)
    print(f"categories: {', '.join(sorted(category.value for category in result.categories))}")
    print(f"notify:     {'yes' if result.should_notify else 'no'}")
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="chatnotify")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the watcher")
    subparsers.add_parser("check", help="Validate config.json and print the rule sets")
    explain = subparsers.add_parser("explain", help="Classify a hand-written line without connecting")
    explain.add_argument("--sender", default=None, help="Sender nickname; omit for a system line")
    explain.add_argument("--host", default=None, help="Sender host, e.g. 12345@telegram")
    explain.add_argument("--conversation", default="#general", help="Conversation id")
    explain.add_argument("--query", action="store_true", help="Treat the conversation as one-to-one")
    explain.add_argument("message", nargs="+", help="Message text")

    args = parser.parse_args(argv)
    if args.command == "check":
        raise SystemExit(_check())
    if args.command == "explain":
        raise SystemExit(_explain(args))
    _run()


if __name__ == "__main__":
    main()
