"""Rule set compilation and evaluation logic (core domain)."""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, FrozenSet, Iterable, Iterator, Mapping, Optional, Tuple, Union

from core.errors import ConfigurationError
from core.models import Category

LOGGER = logging.getLogger(__name__)

ALL = "all"

Predicate = Callable[[Optional[str], str], bool]


@dataclass(frozen=True)
class AllRule:
    """Matches unconditionally."""

    def describe(self) -> str:
        return ALL


@dataclass(frozen=True)
class ConversationRule:
    """Matches when the line belongs to one of the listed conversations."""

    conversations: FrozenSet[str]

    def __post_init__(self) -> None:
        for conversation in self.conversations:
            if not isinstance(conversation, str):
                raise ConfigurationError(f"conversation ids must be strings, got {conversation!r}")

    def describe(self) -> str:
        return f"conversations: {', '.join(sorted(self.conversations))}"


@dataclass(frozen=True)
class PredicateRule:
    """Matches when ``predicate(sender, message)`` returns a truthy value."""

    predicate: Predicate

    def __post_init__(self) -> None:
        if not callable(self.predicate):
            raise ConfigurationError(f"predicate must be callable, got {self.predicate!r}")

    def describe(self) -> str:
        name = getattr(self.predicate, "__qualname__", None) or repr(self.predicate)
        return f"predicate: {name}"


RuleValue = Union[AllRule, ConversationRule, PredicateRule]


def _resolve_predicate(reference: Any) -> Predicate:
    """Import ``module:attribute`` and return the callable it names."""

    if not isinstance(reference, str):
        raise ConfigurationError(f"predicate reference must be a string, got {reference!r}")
    module_name, sep, attribute = reference.partition(":")
    if not sep or not module_name or not attribute:
        raise ConfigurationError(f"predicate reference must look like 'module:function', got {reference!r}")
    try:
        target: Any = importlib.import_module(module_name)
        for part in attribute.split("."):
            target = getattr(target, part)
    except (ImportError, AttributeError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"cannot resolve predicate {reference!r}: {exc}") from exc
    if not callable(target):
        raise ConfigurationError(f"predicate {reference!r} is not callable")
    return target


def build_rule_value(raw: Any) -> RuleValue:
    """Normalize one configured rule value into its tagged form.

    Accepted shapes:
    - the string ``"all"`` (or an existing ``AllRule``)
    - a list/tuple/set of conversation ids
    - a callable, or ``{"predicate": "module:function"}`` from JSON
    """

    if isinstance(raw, (AllRule, ConversationRule, PredicateRule)):
        return raw
    if isinstance(raw, str):
        if raw.strip().lower() == ALL:
            return AllRule()
        raise ConfigurationError(f"unknown rule value {raw!r} (expected 'all')")
    if isinstance(raw, Mapping):
        if set(raw) != {"predicate"}:
            raise ConfigurationError(f"rule objects must contain only 'predicate', got {sorted(map(str, raw))}")
        return PredicateRule(_resolve_predicate(raw["predicate"]))
    if isinstance(raw, (list, tuple, set, frozenset)):
        bad = [entry for entry in raw if not isinstance(entry, str)]
        if bad:
            raise ConfigurationError(f"conversation ids must be strings, got {bad[0]!r}")
        return ConversationRule(frozenset(raw))
    if callable(raw):
        return PredicateRule(raw)
    raise ConfigurationError(f"unsupported rule value {raw!r}")


class RuleSet:
    """Ordered, read-only mapping from category to rule value."""

    def __init__(self, rules: Optional[Mapping[Category, RuleValue]] = None) -> None:
        self._rules: Mapping[Category, RuleValue] = MappingProxyType(dict(rules or {}))

    @classmethod
    def from_config(cls, raw: Union[Mapping[Any, Any], Iterable[Tuple[Any, Any]]], name: str = "rules") -> "RuleSet":
        """Validate a configured rule mapping.

        Keys may be ``Category`` members or their names (``"current-nick"``).
        Errors name the rule set and category so a bad config is easy to fix.
        """

        items = raw.items() if isinstance(raw, Mapping) else raw
        compiled: dict[Category, RuleValue] = {}
        for key, value in items:
            try:
                category = key if isinstance(key, Category) else Category.from_name(str(key))
            except ValueError as exc:
                raise ConfigurationError(f"{name}: unknown category {key!r}") from exc
            if category in compiled:
                raise ConfigurationError(f"{name}: duplicate rule for {category.value!r}")
            try:
                compiled[category] = build_rule_value(value)
            except ConfigurationError as exc:
                raise ConfigurationError(f"{name}[{category.value}]: {exc}") from exc
        return cls(compiled)

    def get(self, category: Category) -> Optional[RuleValue]:
        return self._rules.get(category)

    def items(self):
        return self._rules.items()

    def __contains__(self, category: object) -> bool:
        return category in self._rules

    def __iter__(self) -> Iterator[Category]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RuleSet):
            return NotImplemented
        return dict(self._rules) == dict(other._rules)

    def __repr__(self) -> str:
        body = ", ".join(f"{category.value}: {rule.describe()}" for category, rule in self._rules.items())
        return f"RuleSet({{{body}}})"


DEFAULT_NOTIFY_RULES = RuleSet(
    {
        Category.CURRENT_NICK: AllRule(),
        Category.KEYWORD: AllRule(),
        Category.PAL: AllRule(),
        Category.QUERY: AllRule(),
    }
)

DEFAULT_SUPPRESS_RULES = RuleSet(
    {
        Category.DANGEROUS_HOST: AllRule(),
        Category.FOOL: AllRule(),
        Category.SYSTEM: AllRule(),
    }
)


def rule_passes(rule: RuleValue, sender: Optional[str], message: str, conversation_id: str) -> bool:
    """Return whether a single rule value passes for the line."""

    if isinstance(rule, AllRule):
        return True
    if isinstance(rule, ConversationRule):
        return conversation_id in rule.conversations
    if isinstance(rule, PredicateRule):
        return bool(rule.predicate(sender, message))
    raise ConfigurationError(f"unsupported rule value {rule!r}")


def evaluate(
    rules: RuleSet,
    categories: Iterable[Category],
    sender: Optional[str],
    message: str,
    conversation_id: str,
) -> bool:
    """Return True if any rule in ``rules`` passes for the line.

    Every applicable rule runs exactly once, even after one has passed, so
    predicate rules see each line a predictable number of times.
    Predicate exceptions propagate to the caller.
    """

    present = set(categories)
    passed = []
    for category in Category:
        if category not in present:
            continue
        rule = rules.get(category)
        if rule is None:
            continue
        if rule_passes(rule, sender, message, conversation_id):
            passed.append(category)

    if passed:
        LOGGER.debug("Rules passed for %s: %s", conversation_id, ", ".join(c.value for c in passed))
    return bool(passed)
