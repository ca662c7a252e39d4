"""Frame Clock - Monotonic millisecond time source for animation ticks.

Fade progress is measured from this clock rather than counted in frames,
so a paused engine still finishes a fade at the right time on its first
tick after resuming.
"""

import time
from typing import Final


class FrameClock:
    """Monotonic clock reporting milliseconds since creation.

    Usage:
        clock = FrameClock()
        start = clock.now_ms()
        ...
        elapsed = clock.now_ms() - start
    """

    NS_PER_MS: Final[int] = 1_000_000

    def __init__(self) -> None:
        self._start_ns = self._now_ns()

    def _now_ns(self) -> int:
        return time.monotonic_ns()

    def now_ms(self) -> float:
        """Milliseconds since the clock was created (sub-ms precision)."""
        return (self._now_ns() - self._start_ns) / self.NS_PER_MS


class ManualClock(FrameClock):
    """Clock advanced by hand, for deterministic ticks in tests and replays."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now = float(start_ms)

    def now_ms(self) -> float:
        return self._now

    def advance(self, delta_ms: float) -> float:
        """Move time forward and return the new reading."""
        self._now += delta_ms
        return self._now
