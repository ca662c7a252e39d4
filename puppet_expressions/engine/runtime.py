"""Puppet Runtime - The rendering side that receives committed values.

The engine pushes every committed parameter once per tick. The runtime owns
deformation and drawing; the engine only sets values on it.
"""

from __future__ import annotations

from typing import Mapping, Protocol


class PuppetRuntime(Protocol):
    """Rendering runtime interface."""

    def set_parameter_value(self, parameter_id: str, value: float) -> None: ...


class RecordingRuntime:
    """Runtime that keeps the last value per parameter and counts frames.

    Stands in for a renderer when running headless.
    """

    def __init__(self) -> None:
        self.values: dict[str, float] = {}
        self.frames = 0
        self.calls = 0

    def set_parameter_value(self, parameter_id: str, value: float) -> None:
        self.values[parameter_id] = value
        self.calls += 1

    def end_frame(self) -> None:
        self.frames += 1


def push_frame(runtime: PuppetRuntime, values: Mapping[str, float]) -> None:
    """Send one committed frame to the runtime."""
    for parameter_id, value in values.items():
        runtime.set_parameter_value(parameter_id, value)
    end_frame = getattr(runtime, "end_frame", None)
    if callable(end_frame):
        end_frame()
