"""Category classification for chat lines (core domain).

Classification never fails: missing context (no nickname, empty lists)
simply yields fewer categories. Every line carries ``Category.MESSAGE``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Protocol

from core.errors import ConfigurationError
from core.models import Category, CategorySet, ChatLine


class Matcher(Protocol):
    """Anything that can tell whether a nickname, host or text matches."""

    def matches(self, value: Optional[str]) -> bool:
        ...


class PatternMatcher:
    """Case-insensitive regex matcher built from a configured list.

    With ``whole=True`` a pattern must cover the entire value, which makes
    plain nicknames behave like exact (case-insensitive) list membership.
    """

    def __init__(self, patterns: Iterable[str] = (), *, whole: bool = False, label: str = "patterns") -> None:
        self._whole = whole
        self._compiled: List[re.Pattern] = []
        for pattern in patterns:
            if not isinstance(pattern, str) or not pattern:
                raise ConfigurationError(f"{label}: entries must be non-empty strings, got {pattern!r}")
            try:
                self._compiled.append(re.compile(pattern, re.IGNORECASE))
            except re.error as exc:
                raise ConfigurationError(f"{label}: invalid pattern {pattern!r} ({exc})") from exc

    def __bool__(self) -> bool:
        return bool(self._compiled)

    def matches(self, value: Optional[str]) -> bool:
        if not value:
            return False
        if self._whole:
            return any(pattern.fullmatch(value) for pattern in self._compiled)
        return any(pattern.search(value) for pattern in self._compiled)


class LiteralMatcher:
    """Case-insensitive literal matcher for plain nickname or word lists.

    With ``whole=True`` the value must equal an entry (list membership);
    otherwise an entry anywhere in the value is enough.
    """

    def __init__(self, entries: Iterable[str] = (), *, whole: bool = False, label: str = "entries") -> None:
        self._whole = whole
        self._entries: List[str] = []
        for entry in entries:
            if not isinstance(entry, str) or not entry:
                raise ConfigurationError(f"{label}: entries must be non-empty strings, got {entry!r}")
            self._entries.append(entry.casefold())
        self._members = frozenset(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def matches(self, value: Optional[str]) -> bool:
        if not value:
            return False
        folded = value.casefold()
        if self._whole:
            return folded in self._members
        return any(entry in folded for entry in self._entries)


class AnyMatcher:
    """Matches when any of the wrapped matchers does."""

    def __init__(self, *matchers: Matcher) -> None:
        self._matchers = matchers

    def matches(self, value: Optional[str]) -> bool:
        return any(matcher.matches(value) for matcher in self._matchers)


class AddressMatcher:
    """Detect messages that open by addressing a nickname, e.g. ``troll: hi`` or ``troll,hi``."""

    def __init__(self, nick_patterns: Iterable[str] = (), label: str = "fools") -> None:
        prefixes = [f"^(?:{pattern})[:,]" for pattern in nick_patterns]
        self._inner = PatternMatcher(prefixes, label=label)

    def __bool__(self) -> bool:
        return bool(self._inner)

    def matches(self, value: Optional[str]) -> bool:
        return self._inner.matches(value)


def _never(conversation_id: str) -> bool:
    return False


def mentions_nick(message: str, nickname: Optional[str]) -> bool:
    """Return True if ``nickname`` appears in ``message`` as a whole word."""

    if not nickname or not message:
        return False
    pattern = rf"(?<!\w){re.escape(nickname)}(?!\w)"
    return re.search(pattern, message, re.IGNORECASE) is not None


@dataclass(frozen=True)
class ClassifierContext:
    """Lookup tables consulted while classifying a line."""

    nickname: Optional[str] = None
    is_query: Callable[[str], bool] = _never
    pals: Matcher = field(default_factory=LiteralMatcher)
    fools: Matcher = field(default_factory=PatternMatcher)
    directed_at_fool: Matcher = field(default_factory=AddressMatcher)
    dangerous_hosts: Matcher = field(default_factory=PatternMatcher)
    keywords: Matcher = field(default_factory=LiteralMatcher)

    @classmethod
    def build(
        cls,
        *,
        nickname: Optional[str] = None,
        pals: Iterable[str] = (),
        fools: Iterable[str] = (),
        dangerous_hosts: Iterable[str] = (),
        keywords: Iterable[str] = (),
        keyword_patterns: Iterable[str] = (),
        query_conversations: Iterable[str] = (),
        is_query: Optional[Callable[[str], bool]] = None,
    ) -> "ClassifierContext":
        """Build a context from plain configuration lists.

        Pals and keywords are literal text; ``keyword_patterns`` holds regexes.
        Fool and dangerous-host entries are regexes.
        """

        fools = list(fools)
        queries = frozenset(query_conversations)
        lookup = is_query

        def _is_query(conversation_id: str) -> bool:
            if conversation_id in queries:
                return True
            return bool(lookup and lookup(conversation_id))

        return cls(
            nickname=nickname or None,
            is_query=_is_query,
            pals=LiteralMatcher(pals, whole=True, label="pals"),
            fools=PatternMatcher(fools, whole=True, label="fools"),
            directed_at_fool=AddressMatcher(fools),
            dangerous_hosts=PatternMatcher(dangerous_hosts, label="dangerous_hosts"),
            keywords=AnyMatcher(
                LiteralMatcher(keywords, label="keywords"),
                PatternMatcher(keyword_patterns, label="keyword_patterns"),
            ),
        )


def classify(line: ChatLine, context: ClassifierContext) -> CategorySet:
    """Return the set of categories that apply to ``line``."""

    categories = {Category.MESSAGE}
    is_query = bool(context.is_query(line.conversation_id))
    if is_query:
        categories.add(Category.QUERY)

    if context.keywords.matches(line.message):
        categories.add(Category.KEYWORD)

    # System lines have no sender identity to test.
    if line.sender is None:
        categories.add(Category.SYSTEM)
        return frozenset(categories)

    if (
        context.fools.matches(line.sender)
        or context.fools.matches(line.sender_host)
        or context.directed_at_fool.matches(line.message)
    ):
        categories.add(Category.FOOL)

    if context.dangerous_hosts.matches(line.sender_host):
        categories.add(Category.DANGEROUS_HOST)

    if is_query or mentions_nick(line.message, context.nickname):
        categories.add(Category.CURRENT_NICK)

    if context.pals.matches(line.sender):
        categories.add(Category.PAL)

    return frozenset(categories)
