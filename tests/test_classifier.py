from __future__ import annotations

from typing import Optional

from core.classifier import AddressMatcher, ClassifierContext, PatternMatcher, classify, mentions_nick
from core.models import Category, ChatLine


def _line(
    message: str,
    *,
    sender: Optional[str] = "alice",
    sender_host: Optional[str] = None,
    conversation_id: str = "#general",
) -> ChatLine:
    return ChatLine.create(
        sender=sender,
        sender_host=sender_host,
        message=message,
        conversation_id=conversation_id,
    )


def test_message_category_is_always_present() -> None:
    categories = classify(_line("hello"), ClassifierContext())
    assert categories == frozenset({Category.MESSAGE})


def test_system_line_skips_sender_checks() -> None:
    context = ClassifierContext.build(nickname="bob", pals=["alice"], fools=["alice"])
    categories = classify(_line("bob: alice has joined", sender=None), context)
    assert Category.SYSTEM in categories
    assert Category.MESSAGE in categories
    assert Category.PAL not in categories
    assert Category.FOOL not in categories
    assert Category.CURRENT_NICK not in categories


def test_system_line_still_gets_keyword_and_query() -> None:
    context = ClassifierContext.build(keywords=["deploy"], query_conversations=["carol"])
    categories = classify(_line("Deploy finished", sender=None, conversation_id="carol"), context)
    assert categories == frozenset({Category.MESSAGE, Category.SYSTEM, Category.KEYWORD, Category.QUERY})


def test_current_nick_uses_word_boundaries() -> None:
    context = ClassifierContext.build(nickname="bob")
    assert Category.CURRENT_NICK in classify(_line("hey @BOB"), context)
    assert Category.CURRENT_NICK in classify(_line("bob, lunch?"), context)
    assert Category.CURRENT_NICK not in classify(_line("bobby tables"), context)


def test_query_line_is_addressed_to_me() -> None:
    context = ClassifierContext.build(is_query=lambda conversation: conversation == "alice")
    categories = classify(_line("psst", conversation_id="alice"), context)
    assert Category.QUERY in categories
    assert Category.CURRENT_NICK in categories


def test_fool_by_nick_host_or_address() -> None:
    context = ClassifierContext.build(fools=["troll", r"spam.*@evil\.example"])
    assert Category.FOOL in classify(_line("hi", sender="Troll"), context)
    assert Category.FOOL in classify(_line("hi", sender="x", sender_host="spammer@evil.example"), context)
    assert Category.FOOL in classify(_line("troll: you again?"), context)
    assert Category.FOOL not in classify(_line("the troll is back"), context)
    assert Category.FOOL not in classify(_line("hi", sender="trolling"), context)


def test_dangerous_host_matches_sender_host() -> None:
    context = ClassifierContext.build(dangerous_hosts=[r"\.badnet$"])
    assert Category.DANGEROUS_HOST in classify(_line("hi", sender_host="u@box.badnet"), context)
    assert Category.DANGEROUS_HOST not in classify(_line("hi"), context)


def test_keyword_and_pal() -> None:
    context = ClassifierContext.build(pals=["alice"], keywords=["outage"])
    categories = classify(_line("Big OUTAGE today"), context)
    assert Category.KEYWORD in categories
    assert Category.PAL in categories


def test_missing_context_degrades_quietly() -> None:
    context = ClassifierContext.build(nickname=None)
    categories = classify(_line("bob?", sender_host=None), context)
    assert categories == frozenset({Category.MESSAGE})


def test_custom_matchers_are_pluggable() -> None:
    class HostSuffix:
        def matches(self, value: Optional[str]) -> bool:
            return bool(value) and value.endswith("@quarantine")

    context = ClassifierContext(dangerous_hosts=HostSuffix())
    categories = classify(_line("hi", sender_host="42@quarantine"), context)
    assert Category.DANGEROUS_HOST in categories


def test_newlines_are_collapsed_before_matching() -> None:
    line = _line("first\nbob\r\nthird")
    assert line.message == "first bob third"
    assert mentions_nick(line.message, "bob")


def test_pattern_matchers() -> None:
    whole = PatternMatcher(["ali.e"], whole=True)
    assert whole.matches("ALICE")
    assert not whole.matches("malice")
    assert not whole.matches(None)
    assert AddressMatcher(["troll"]).matches("troll, hi")
    assert not AddressMatcher(["troll"]).matches("trollface: hi")


def test_pals_are_literal_nicknames() -> None:
    context = ClassifierContext.build(pals=["a.c", "[m]bob", "foo|away"])
    assert Category.PAL not in classify(_line("hi", sender="abc"), context)
    assert Category.PAL in classify(_line("hi", sender="A.C"), context)
    assert Category.PAL in classify(_line("hi", sender="[M]Bob"), context)
    assert Category.PAL in classify(_line("hi", sender="foo|away"), context)
    assert Category.PAL not in classify(_line("hi", sender="foo"), context)


def test_keywords_are_literal_substrings() -> None:
    context = ClassifierContext.build(keywords=["ready?", "c++"])
    assert Category.KEYWORD not in classify(_line("already"), context)
    assert Category.KEYWORD in classify(_line("Are we READY? now"), context)
    assert Category.KEYWORD in classify(_line("writing c++ today"), context)


def test_keyword_patterns_are_regexes() -> None:
    context = ClassifierContext.build(keyword_patterns=[r"build #\d+ failed"])
    assert Category.KEYWORD in classify(_line("Build #42 FAILED"), context)
    assert Category.KEYWORD not in classify(_line("build #x failed"), context)


def test_address_to_fool_without_trailing_space() -> None:
    context = ClassifierContext.build(fools=["troll"])
    assert Category.FOOL in classify(_line("troll:"), context)
    assert Category.FOOL in classify(_line("troll:hi"), context)
    assert Category.FOOL in classify(_line("troll,hi"), context)
    assert Category.FOOL not in classify(_line("trolls: hi"), context)
