"""
Tick source driving the periodic aggregator.

Each iteration reads the injected clock exactly once and hands that instant
to the tick callback, so tests can drive bucket boundaries with synthetic
time via :meth:`TickScheduler.run_once`. The loop runs one iteration, then
waits on the shutdown event with a timeout equal to the interval. An
exception in one iteration is logged and does not stop the loop.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
TickCallback = Callable[[datetime], Awaitable[None]]


def utc_clock() -> datetime:
    return datetime.now(tz=UTC)


class TickScheduler:
    """Calls *callback(now)* every *interval_s* seconds until stopped.

    Args:
        callback: Async function receiving the tick time.
        interval_s: Seconds between ticks.
        clock: Time source, UTC wall clock by default.
        name: Label for log lines.
    """

    def __init__(
        self,
        callback: TickCallback,
        interval_s: float = 10.0,
        *,
        clock: Clock = utc_clock,
        name: str = "aggregator",
    ) -> None:
        self.callback = callback
        self.interval_s = interval_s
        self.clock = clock
        self.name = name
        self.tick_count = 0
        self._shutdown_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    async def run_once(self) -> datetime:
        """Run a single tick and return the time it was run for."""
        now = self.clock()
        self.tick_count += 1
        try:
            await self.callback(now)
        except Exception:
            logger.error("Scheduler '%s' tick failed", self.name, exc_info=True)
        return now

    async def run(self, shutdown_event: asyncio.Event | None = None) -> None:
        """Tick until *shutdown_event* (or the scheduler's own event) is set."""
        event = shutdown_event if shutdown_event is not None else self._shutdown_event
        logger.info("Scheduler '%s' started (interval=%ss)", self.name, self.interval_s)
        while not event.is_set():
            await self.run_once()
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(event.wait(), timeout=self.interval_s)
        logger.info("Scheduler '%s' stopped", self.name)

    def start(self) -> asyncio.Task[None]:
        """Start the loop as a background task on the running event loop."""
        if self._task is None or self._task.done():
            self._shutdown_event.clear()
            self._task = asyncio.create_task(self.run(), name=f"scheduler-{self.name}")
        return self._task

    async def stop(self) -> None:
        """Signal the loop to stop and wait for the current tick to finish."""
        self._shutdown_event.set()
        if self._task is not None:
            await self._task
            self._task = None
