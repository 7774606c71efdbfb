"""Core notification decision.

This module is integration-agnostic. It classifies a line, runs the notify
and suppress rule sets and reports whether a notification should fire.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.classifier import ClassifierContext, classify
from core.models import ChatLine, DecisionResult
from core.rules_engine import DEFAULT_NOTIFY_RULES, DEFAULT_SUPPRESS_RULES, RuleSet, evaluate

LOGGER = logging.getLogger(__name__)


def decide(
    line: ChatLine,
    context: ClassifierContext,
    notify_rules: RuleSet = DEFAULT_NOTIFY_RULES,
    suppress_rules: RuleSet = DEFAULT_SUPPRESS_RULES,
) -> DecisionResult:
    """Classify ``line`` and resolve both rule sets into one decision.

    Suppress can only veto, so it is skipped when no notify rule passed.
    Exceptions raised by predicate rules propagate.
    """

    categories = classify(line, context)
    notify_passes = evaluate(notify_rules, categories, line.sender, line.message, line.conversation_id)
    suppress_passes = False
    if notify_passes:
        suppress_passes = evaluate(suppress_rules, categories, line.sender, line.message, line.conversation_id)

    should_notify = notify_passes and not suppress_passes
    LOGGER.debug(
        "Decision for %s in %s: categories=%s notify=%s suppress=%s",
        line.sender or "<system>",
        line.conversation_id,
        sorted(category.value for category in categories),
        notify_passes,
        suppress_passes,
    )
    return DecisionResult(
        sender=line.sender,
        message=line.message,
        should_notify=should_notify,
        categories=categories,
    )


class DecisionEngine:
    """Holds the injected context and rule sets for repeated decisions."""

    def __init__(
        self,
        context: ClassifierContext,
        notify_rules: RuleSet = DEFAULT_NOTIFY_RULES,
        suppress_rules: RuleSet = DEFAULT_SUPPRESS_RULES,
    ) -> None:
        self._context = context
        self._notify_rules = notify_rules
        self._suppress_rules = suppress_rules

    @property
    def context(self) -> ClassifierContext:
        return self._context

    @property
    def notify_rules(self) -> RuleSet:
        return self._notify_rules

    @property
    def suppress_rules(self) -> RuleSet:
        return self._suppress_rules

    def reload(
        self,
        context: Optional[ClassifierContext] = None,
        notify_rules: Optional[RuleSet] = None,
        suppress_rules: Optional[RuleSet] = None,
    ) -> None:
        """Replace configuration wholesale between decisions."""

        if context is not None:
            self._context = context
        if notify_rules is not None:
            self._notify_rules = notify_rules
        if suppress_rules is not None:
            self._suppress_rules = suppress_rules
        LOGGER.info(
            "Rules reloaded: %s notify, %s suppress",
            len(self._notify_rules),
            len(self._suppress_rules),
        )

    def decide(self, line: ChatLine) -> DecisionResult:
        return decide(line, self._context, self._notify_rules, self._suppress_rules)
