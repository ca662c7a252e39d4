"""Engine package - Command surface, notifications and runtime interface."""

from puppet_expressions.engine.engine import (
    ApplyResult,
    EngineState,
    ExpressionEngine,
    create_engine,
)
from puppet_expressions.engine.events import (
    EngineEvent,
    EventBroadcaster,
    EventSink,
    EventType,
    expressions_changed,
    model_changed,
)
from puppet_expressions.engine.runtime import PuppetRuntime, RecordingRuntime, push_frame

__all__ = [
    # Engine
    "ApplyResult",
    "EngineState",
    "ExpressionEngine",
    "create_engine",
    # Events
    "EngineEvent",
    "EventBroadcaster",
    "EventSink",
    "EventType",
    "expressions_changed",
    "model_changed",
    # Runtime
    "PuppetRuntime",
    "RecordingRuntime",
    "push_frame",
]
