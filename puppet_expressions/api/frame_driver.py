"""Frame Driver - Per-frame animation callback for the service.

Calls engine.tick() at the configured rate on the event loop. Fade timing
comes from the engine's clock, so a late or skipped tick never speeds up or
slows down a fade.
"""

from __future__ import annotations

import asyncio

from puppet_expressions.config.constants import ENGINE
from puppet_expressions.engine.engine import ExpressionEngine
from puppet_expressions.exceptions import InvalidConfigError
from puppet_expressions.observability.logging import get_logger

logger = get_logger(__name__)


class FrameDriver:
    """Background task ticking an engine.

    Usage:
        driver = FrameDriver(engine, fps=30)
        driver.start()
        ...
        await driver.stop()
    """

    def __init__(self, engine: ExpressionEngine, fps: int = ENGINE.TARGET_FPS) -> None:
        if fps <= 0:
            raise InvalidConfigError("fps", fps, "must be positive")
        self._engine = engine
        self._interval_s = 1.0 / fps
        self._running = False
        self._task: asyncio.Task | None = None
        self._ticks = 0

    @property
    def is_running(self) -> bool:
        """Whether the driver is running."""
        return self._running

    @property
    def ticks(self) -> int:
        """Ticks issued since start."""
        return self._ticks

    @property
    def interval_s(self) -> float:
        return self._interval_s

    def start(self) -> None:
        """Start ticking. Must be called from a running event loop."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._frame_loop())
        logger.info("frame_driver_started", fps=round(1.0 / self._interval_s))

    async def stop(self) -> None:
        """Stop ticking and wait for the loop to exit."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("frame_driver_stopped", ticks=self._ticks)

    def tick_once(self) -> None:
        """Issue one tick."""
        self._engine.tick()
        self._ticks += 1

    async def _frame_loop(self) -> None:
        """Background loop issuing one tick per interval."""
        while self._running:
            try:
                await asyncio.sleep(self._interval_s)

                if not self._running:
                    break

                self.tick_once()

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.warning(
                    "frame_loop_error",
                    error=str(e),
                )
                continue
