from __future__ import annotations

from adapters.telegram_mapper import QueryTracker, build_chat_line, describe_action


class DummyChat:
    def __init__(self, username: "str | None" = None) -> None:
        self.username = username


class DummyUser:
    def __init__(self, username: "str | None" = None, first_name: "str | None" = None) -> None:
        self.username = username
        self.first_name = first_name
        self.last_name = None


class MessageActionChatAddUser:
    pass


class DummyMessage:
    def __init__(
        self,
        *,
        chat_id: int,
        text: str,
        chat: "DummyChat | None" = None,
        sender: "DummyUser | None" = None,
        sender_id: "int | None" = None,
        action=None,
        is_private: bool = False,
    ) -> None:
        self.chat_id = chat_id
        self.raw_text = text
        self.chat = chat
        self.sender = sender
        self.sender_id = sender_id
        self.action = action
        self.is_private = is_private


def test_build_chat_line_from_group_message() -> None:
    message = DummyMessage(
        chat_id=-100123,
        text="hello\nworld",
        chat=DummyChat(username="Team"),
        sender=DummyUser(username="alice"),
        sender_id=42,
    )
    line = build_chat_line(message)
    assert line.sender == "alice"
    assert line.sender_host == "42@telegram"
    assert line.message == "hello world"
    assert line.conversation_id == "@team"


def test_sender_falls_back_to_display_name_and_chat_id() -> None:
    message = DummyMessage(chat_id=-55, text="hi", sender_id=7)
    line = build_chat_line(message, DummyUser(first_name="Carol"))
    assert line.sender == "Carol"
    assert line.conversation_id == "chat_id:-55"


def test_service_message_becomes_system_line() -> None:
    message = DummyMessage(chat_id=-55, text="", sender_id=7, action=MessageActionChatAddUser())
    line = build_chat_line(message)
    assert line.sender is None
    assert line.sender_host is None
    assert line.message == "chat add user"


def test_describe_action_unknown_type() -> None:
    assert describe_action(object()) == "object"


def test_query_tracker_remembers_private_chats() -> None:
    tracker = QueryTracker()
    tracker.remember(DummyMessage(chat_id=7, text="hi", is_private=True), "chat_id:7")
    tracker.remember(DummyMessage(chat_id=-5, text="hi"), "chat_id:-5")
    assert tracker.is_query("chat_id:7")
    assert not tracker.is_query("chat_id:-5")
    assert len(tracker) == 1
