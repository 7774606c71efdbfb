"""Ordered line-processing pipeline.

The host runs every displayed chat line through named stages in a fixed,
declared order. A stage may require that it runs before other stages; the
pipeline enforces that when stages are installed:

1) notify     - decide and fire the notification hook on raw message text
2) timestamp  - annotate the message with the display timestamp
3) any later display stages
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

from core.errors import PipelineOrderError
from core.models import ChatLine, DecisionResult
from core.ports import NotifierPort
from core.processor import DecisionEngine

LOGGER = logging.getLogger(__name__)

NOTIFY_STAGE = "notify"
TIMESTAMP_STAGE = "timestamp"


@dataclass(frozen=True)
class Stage:
    """A named pipeline step that may rewrite the line for later stages."""

    name: str
    run: Callable[[ChatLine], ChatLine]
    before: Tuple[str, ...] = ()


class LinePipeline:
    """Runs stages in order; installation keeps every ``before`` constraint."""

    def __init__(self, stages: Iterable[Stage] = ()) -> None:
        self._stages: List[Stage] = []
        for stage in stages:
            self.install(stage)

    @property
    def names(self) -> List[str]:
        return [stage.name for stage in self._stages]

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def install(self, stage: Stage) -> None:
        names = self.names
        if stage.name in names:
            raise PipelineOrderError(f"stage {stage.name!r} is already installed")

        # Must come after every stage that declared itself before this one,
        # and before every stage this one names.
        lower = max(
            (index + 1 for index, existing in enumerate(self._stages) if stage.name in existing.before),
            default=0,
        )
        upper = min((names.index(name) for name in stage.before if name in names), default=len(names))
        if lower > upper:
            raise PipelineOrderError(f"stage {stage.name!r} cannot satisfy its ordering constraints")

        self._stages.insert(upper, stage)
        LOGGER.debug("Installed stage %s, order: %s", stage.name, " -> ".join(self.names))

    def remove(self, name: str) -> bool:
        for index, stage in enumerate(self._stages):
            if stage.name == name:
                del self._stages[index]
                return True
        return False

    def process(self, line: ChatLine) -> ChatLine:
        """Run one newly displayed line through every stage."""

        for stage in self._stages:
            line = stage.run(line)
        return line


class TimestampStage:
    """Prefix the message with a formatted timestamp for display."""

    def __init__(self, fmt: str = "[%H:%M]", clock: Optional[Callable[[], datetime]] = None) -> None:
        self._fmt = fmt
        self._clock = clock or datetime.now

    def __call__(self, line: ChatLine) -> ChatLine:
        stamp = self._clock().strftime(self._fmt)
        return replace(line, message=f"{stamp} {line.message}")

    def stage(self) -> Stage:
        return Stage(TIMESTAMP_STAGE, self)


class NotificationModule:
    """Installs the notification decision into a host pipeline."""

    def __init__(self, engine: DecisionEngine, notifier: NotifierPort) -> None:
        self._engine = engine
        self._notifier = notifier

    @property
    def engine(self) -> DecisionEngine:
        return self._engine

    def enable(self, pipeline: LinePipeline) -> None:
        if NOTIFY_STAGE in pipeline:
            return
        pipeline.install(Stage(NOTIFY_STAGE, self._run, before=(TIMESTAMP_STAGE,)))
        LOGGER.info("Notifications enabled")

    def disable(self, pipeline: LinePipeline) -> None:
        if pipeline.remove(NOTIFY_STAGE):
            LOGGER.info("Notifications disabled")

    def handle(self, line: ChatLine) -> Optional[DecisionResult]:
        """Decide for one line and fire the hook when needed.

        A failing predicate rule skips only this line's notification.
        """

        try:
            result = self._engine.decide(line)
        except Exception:
            LOGGER.exception("Notification rules failed for line in %s", line.conversation_id)
            return None

        if result.should_notify:
            self._notifier(result.sender, result.message)
        return result

    def _run(self, line: ChatLine) -> ChatLine:
        self.handle(line)
        return line
