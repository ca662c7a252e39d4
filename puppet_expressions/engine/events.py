"""Engine Events - Notifications for UI and telemetry consumers.

Events:
- expressions_changed {expressions, count, action, expression, timestamp}
- model_changed {model_name, timestamp}

Timestamps are epoch milliseconds. Delivery is synchronous and in
subscription order; a failing subscriber is logged and skipped.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Protocol

from puppet_expressions.observability.logging import get_logger
from puppet_expressions.observability.metrics import record_error

logger = get_logger(__name__)


class EventType(str, Enum):
    """Notification kinds."""

    EXPRESSIONS_CHANGED = "expressions_changed"
    MODEL_CHANGED = "model_changed"


def _epoch_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class EngineEvent:
    """A single notification."""

    type: EventType
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=_epoch_ms)

    def to_dict(self) -> dict[str, Any]:
        """Flat wire form: ``{"type": ..., **payload, "timestamp": ...}``."""
        return {"type": self.type.value, **self.payload, "timestamp": self.timestamp}


def expressions_changed(
    expressions: list[str],
    action: str | None = None,
    expression: str | None = None,
) -> EngineEvent:
    """Build an expressions_changed event.

    Args:
        expressions: Enabled expression names after the change
        action: created, updated, deleted, enabled, disabled, imported
        expression: Name of the expression the action touched
    """
    return EngineEvent(
        type=EventType.EXPRESSIONS_CHANGED,
        payload={
            "expressions": list(expressions),
            "count": len(expressions),
            "action": action,
            "expression": expression,
        },
    )


def model_changed(model_name: str) -> EngineEvent:
    """Build a model_changed event."""
    return EngineEvent(type=EventType.MODEL_CHANGED, payload={"model_name": model_name})


class EventSink(Protocol):
    """Anything the engine can publish events to."""

    def emit(self, event: EngineEvent) -> None: ...


EventCallback = Callable[[EngineEvent], None]


class EventBroadcaster:
    """Fan events out to subscribers.

    Usage:
        broadcaster = EventBroadcaster()
        unsubscribe = broadcaster.subscribe(print)

        broadcaster.emit(model_changed("hiyori"))
        unsubscribe()
    """

    def __init__(self) -> None:
        self._subscribers: list[EventCallback] = []
        self._emitted = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def emitted_count(self) -> int:
        """Events emitted since creation."""
        return self._emitted

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        """Register a subscriber.

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: EventCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def emit(self, event: EngineEvent) -> None:
        """Deliver an event to every subscriber."""
        self._emitted += 1
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                record_error("events", type(e).__name__)
                logger.warning(
                    "event_subscriber_failed",
                    event_type=event.type.value,
                    error=str(e),
                )
