from __future__ import annotations

import pytest

from core.classifier import ClassifierContext
from core.models import Category, ChatLine
from core.processor import DecisionEngine, decide
from core.rules_engine import DEFAULT_NOTIFY_RULES, RuleSet


def _line(message: str, sender="alice", conversation_id: str = "#general", sender_host=None) -> ChatLine:
    return ChatLine.create(
        sender=sender,
        sender_host=sender_host,
        message=message,
        conversation_id=conversation_id,
    )


def test_mention_notifies() -> None:
    context = ClassifierContext.build(nickname="bob")
    result = decide(
        _line("hey @bob"),
        context,
        RuleSet.from_config({"current-nick": "all"}),
        RuleSet(),
    )
    assert Category.CURRENT_NICK in result.categories
    assert result.should_notify
    assert result.sender == "alice"
    assert result.message == "hey @bob"


def test_system_line_is_suppressed() -> None:
    result = decide(
        _line("alice has joined", sender=None),
        ClassifierContext(),
        RuleSet.from_config({"message": "all"}),
        RuleSet.from_config({"system": "all"}),
    )
    assert result.categories == frozenset({Category.MESSAGE, Category.SYSTEM})
    assert not result.should_notify
    assert result.sender is None


def test_pal_who_is_also_a_fool_is_suppressed() -> None:
    context = ClassifierContext.build(pals=["mallory"], fools=["mallory"])
    result = decide(
        _line("hi all", sender="mallory"),
        context,
        RuleSet.from_config({"pal": "all"}),
        RuleSet.from_config({"fool": "all"}),
    )
    assert {Category.PAL, Category.FOOL} <= result.categories
    assert not result.should_notify


def test_query_rule_limited_to_other_conversation() -> None:
    context = ClassifierContext.build(query_conversations=["alice"])
    result = decide(
        _line("you there?", conversation_id="alice"),
        context,
        RuleSet.from_config({"query": ["#work"]}),
        RuleSet(),
    )
    assert Category.QUERY in result.categories
    assert not result.should_notify


def test_suppress_never_enables_notification() -> None:
    result = decide(
        _line("plain chatter"),
        ClassifierContext(),
        RuleSet(),
        RuleSet.from_config({"message": "all"}),
    )
    assert not result.should_notify


def test_suppress_skipped_when_notify_fails() -> None:
    calls: list[str] = []

    def suppress(sender, message) -> bool:
        calls.append(message)
        return True

    decide(_line("chatter"), ClassifierContext(), RuleSet(), RuleSet.from_config({"message": suppress}))
    assert calls == []


def test_predicate_failure_propagates_from_decide() -> None:
    def broken(sender, message) -> bool:
        raise RuntimeError("bad rule")

    with pytest.raises(RuntimeError):
        decide(_line("x"), ClassifierContext(), RuleSet.from_config({"message": broken}), RuleSet())


def test_engine_uses_defaults_and_reloads() -> None:
    engine = DecisionEngine(ClassifierContext.build(nickname="bob", fools=["troll"]))
    assert engine.notify_rules is DEFAULT_NOTIFY_RULES

    assert engine.decide(_line("bob: ping")).should_notify
    assert not engine.decide(_line("bob: ping", sender="troll")).should_notify
    assert not engine.decide(_line("bob joined", sender=None)).should_notify

    engine.reload(notify_rules=RuleSet.from_config({"message": ["#ops"]}))
    assert engine.decide(_line("anything", conversation_id="#ops")).should_notify
    assert not engine.decide(_line("anything", conversation_id="#general")).should_notify
