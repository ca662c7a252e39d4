"""Transition Scheduler - Time-based fades between expression states.

States:
- IDLE: no fade; at most one resting layer at its requested intensity
- FADING: outgoing layer fades out while the incoming layer fades in

Transitions:
- IDLE -> FADING: start(); the resting layer (if any) becomes outgoing
- FADING -> FADING: start() again; the current blend is captured as an
  overwrite layer ``blend:<from>-><to>`` and becomes outgoing (no snap-back)
- FADING -> IDLE: progress reaches 1.0; the incoming layer becomes resting
- any -> IDLE: reset(); no layers at all

advance(delta_ms) moves progress linearly by delta_ms / duration_ms. A
duration of 0 completes on the next advance.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping

from puppet_expressions.animation.blend import BlendLayer, clamp_unit, resolve_layers
from puppet_expressions.config.constants import ENGINE
from puppet_expressions.model.catalogue import ParameterCatalogue
from puppet_expressions.observability.logging import ExpressionLogger
from puppet_expressions.observability.metrics import (
    record_error,
    record_transition_complete,
    record_transition_retarget,
    update_transition_active,
)


class TransitionPhase(Enum):
    """Scheduler state."""

    IDLE = "idle"
    FADING = "fading"


@dataclass
class TransitionState:
    """An in-flight fade. Exists only while FADING."""

    from_expression_id: str | None
    to_expression_id: str | None
    progress: float = 0.0
    started_at_ms: int = 0
    duration_ms: int = 0
    elapsed_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "from_expression_id": self.from_expression_id,
            "to_expression_id": self.to_expression_id,
            "progress": self.progress,
            "started_at_ms": self.started_at_ms,
            "duration_ms": self.duration_ms,
            "elapsed_ms": self.elapsed_ms,
        }


@dataclass(frozen=True)
class TransitionRecord:
    """History entry for a fade that ended."""

    from_expression_id: str | None
    to_expression_id: str | None
    duration_ms: int
    elapsed_ms: float
    outcome: str  # completed, retargeted, reset


CompleteCallback = Callable[[TransitionRecord], None]


class TransitionScheduler:
    """Drives fades and yields the active layers for each tick.

    Usage:
        scheduler = TransitionScheduler()
        scheduler.start(BlendLayer.from_definition(smile), duration_ms=300)

        # Each frame
        layers = scheduler.advance(delta_ms)
        values = resolve(base_values, layers, catalogue)
    """

    def __init__(
        self,
        history_size: int = ENGINE.TRANSITION_HISTORY_SIZE,
        logger: ExpressionLogger | None = None,
    ) -> None:
        self._phase = TransitionPhase.IDLE
        self._state: TransitionState | None = None
        self._outgoing: BlendLayer | None = None
        self._incoming: BlendLayer | None = None
        self._resting: BlendLayer | None = None

        self._history: deque[TransitionRecord] = deque(maxlen=history_size)
        self._on_complete: list[CompleteCallback] = []
        self._logger = logger or ExpressionLogger()

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def phase(self) -> TransitionPhase:
        return self._phase

    @property
    def is_transitioning(self) -> bool:
        return self._phase is TransitionPhase.FADING

    @property
    def state(self) -> TransitionState | None:
        """Current fade, or None when IDLE."""
        return self._state

    @property
    def progress(self) -> float:
        """Fade progress; 1.0 when IDLE."""
        return self._state.progress if self._state is not None else 1.0

    @property
    def outgoing_intensity(self) -> float:
        return 1.0 - self.progress

    @property
    def incoming_intensity(self) -> float:
        return self.progress

    @property
    def outgoing_layer(self) -> BlendLayer | None:
        return self._outgoing

    @property
    def incoming_layer(self) -> BlendLayer | None:
        return self._incoming

    @property
    def resting_layer(self) -> BlendLayer | None:
        return self._resting

    @property
    def history(self) -> list[TransitionRecord]:
        """Ended fades, oldest first."""
        return list(self._history)

    def on_complete(self, callback: CompleteCallback) -> None:
        """Register a callback fired when a fade reaches 1.0."""
        self._on_complete.append(callback)

    def layers(self) -> list[BlendLayer]:
        """Active layers at the current progress, outgoing first."""
        if self._phase is TransitionPhase.IDLE:
            return [self._resting] if self._resting is not None else []

        p = self.progress
        layers = []
        if self._outgoing is not None:
            layers.append(self._outgoing.with_intensity(self._outgoing.intensity * (1.0 - p)))
        if self._incoming is not None:
            layers.append(self._incoming.with_intensity(self._incoming.intensity * p))
        return layers

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def start(
        self,
        to_layer: BlendLayer,
        duration_ms: int,
        now_ms: int = 0,
        base_values: Mapping[str, float] | None = None,
        catalogue: ParameterCatalogue | None = None,
    ) -> TransitionState:
        """Begin a fade to ``to_layer``.

        When already FADING, the current blend is captured over
        ``base_values`` and becomes the outgoing side. Without a catalogue
        the previous incoming layer is used as-is.

        Returns:
            The new TransitionState
        """
        duration_ms = max(0, int(duration_ms))

        if self._phase is TransitionPhase.FADING:
            from_layer = self._capture(to_layer, base_values, catalogue)
            self._record("retargeted")
            record_transition_retarget()
            self._logger.transition_retargeted(
                self._state.to_expression_id if self._state else None,
                to_layer.expression_id or to_layer.name,
                self.progress,
            )
        else:
            from_layer = self._resting

        self._outgoing = from_layer
        self._incoming = to_layer
        self._resting = None
        self._phase = TransitionPhase.FADING
        self._state = TransitionState(
            from_expression_id=(from_layer.expression_id or from_layer.name) if from_layer else None,
            to_expression_id=to_layer.expression_id or to_layer.name,
            progress=0.0,
            started_at_ms=now_ms,
            duration_ms=duration_ms,
        )
        update_transition_active(True)
        self._logger.transition_started(
            self._state.from_expression_id,
            self._state.to_expression_id,
            duration_ms,
        )
        return self._state

    def _capture(
        self,
        to_layer: BlendLayer,
        base_values: Mapping[str, float] | None,
        catalogue: ParameterCatalogue | None,
    ) -> BlendLayer | None:
        current_to = self._state.to_expression_id if self._state else None
        name = f"blend:{current_to}->{to_layer.expression_id or to_layer.name}"

        if catalogue is None:
            if self._incoming is None:
                return None
            return self._incoming.with_intensity(self._incoming.intensity * self.progress)

        base = dict(base_values) if base_values is not None else catalogue.defaults()
        snapshot = resolve_layers(base, self.layers(), catalogue)
        captured = {pid: snapshot.values[pid] for pid in catalogue.ids if pid in snapshot.touched}
        return BlendLayer.from_values(name, captured, expression_id=name)

    def advance(self, delta_ms: float) -> list[BlendLayer]:
        """Move the fade forward and return the active layers.

        Never raises. A completed fade collapses to IDLE with the incoming
        layer resting.
        """
        if self._phase is TransitionPhase.IDLE or self._state is None:
            return self.layers()

        delta = float(delta_ms)
        if math.isnan(delta) or delta < 0:
            delta = 0.0
        state = self._state
        state.elapsed_ms += delta
        if state.duration_ms <= 0:
            state.progress = 1.0
        else:
            state.progress = clamp_unit(state.progress + delta / state.duration_ms)

        if state.progress >= 1.0:
            return self._complete()
        return self.layers()

    def _complete(self) -> list[BlendLayer]:
        record = self._record("completed")
        self._resting = self._incoming
        self._outgoing = None
        self._incoming = None
        self._state = None
        self._phase = TransitionPhase.IDLE
        update_transition_active(False)
        record_transition_complete()
        self._logger.transition_completed(record.to_expression_id, record.elapsed_ms)

        for callback in list(self._on_complete):
            try:
                callback(record)
            except Exception as e:
                record_error("transition", type(e).__name__)
                self._logger.tick_failed(str(e), component="on_complete")

        return self.layers()

    def reset(self) -> None:
        """Return to IDLE with no layers, cancelling any fade."""
        if self._phase is TransitionPhase.FADING:
            self._record("reset")
        self._phase = TransitionPhase.IDLE
        self._state = None
        self._outgoing = None
        self._incoming = None
        self._resting = None
        update_transition_active(False)

    def _record(self, outcome: str) -> TransitionRecord:
        state = self._state
        record = TransitionRecord(
            from_expression_id=state.from_expression_id if state else None,
            to_expression_id=state.to_expression_id if state else None,
            duration_ms=state.duration_ms if state else 0,
            elapsed_ms=state.elapsed_ms if state else 0.0,
            outcome=outcome,
        )
        self._history.append(record)
        return record
