"""Explicit state-change channel between the flow and its listeners."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.blueprint_flow.state import FlowState
from src.shared.constants import MAX_LISTENERS

logger = logging.getLogger(__name__)


class FlowEventKind(str, Enum):
    """Why a :class:`FlowEvent` was published."""
    STEP_DATA_UPDATED = "step_data_updated"
    ADVANCED = "advanced"
    STAGE_RESET = "stage_reset"
    WIZARD_COMPLETED = "wizard_completed"
    BLUEPRINT_UPDATED = "blueprint_updated"
    JOURNEY_APPLIED = "journey_applied"
    DELIVERABLES_APPLIED = "deliverables_applied"
    MESSAGE_ADDED = "message_added"
    LOADED = "loaded"


@dataclass(frozen=True)
class FlowEvent:
    """A state change and the snapshot taken right after it."""

    kind: FlowEventKind
    state: FlowState
    detail: dict[str, Any] = field(default_factory=dict)


Listener = Callable[[FlowEvent], None]


class EventChannel:
    """Ordered fan-out of :class:`FlowEvent` messages.

    At most ``max_listeners`` listeners are kept; subscribing past the cap
    drops the oldest one.  A listener that raises is logged and skipped so
    the remaining listeners still run.
    """

    def __init__(self, max_listeners: int = MAX_LISTENERS) -> None:
        self.max_listeners = max_listeners
        self._listeners: list[Listener] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        if len(self._listeners) >= self.max_listeners:
            logger.warning("Maximum listeners (%d) reached; removing oldest", self.max_listeners)
            self._listeners.pop(0)
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: FlowEvent) -> int:
        """Deliver *event* to every listener; returns how many succeeded."""
        delivered = 0
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:
                logger.warning(
                    "Listener %r failed on %s: %s", listener, event.kind.value, exc,
                    exc_info=True,
                )
                continue
            delivered += 1
        return delivered

    def clear(self) -> None:
        self._listeners.clear()
