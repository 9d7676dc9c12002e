"""Cancellable periodic execution of tracking ticks."""

import asyncio
import math
import time
from typing import Any, Awaitable, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


class PeriodicScheduler:
    """Runs a coroutine at a fixed cadence until stopped.

    Fire times are anchored to the start time (``start + n * interval``), so
    a slow tick does not push later ticks back. Slots that passed while a
    tick was still running are skipped rather than fired in a burst. The stop
    event is checked between ticks; a tick already running is allowed to
    finish.
    """

    def __init__(
        self,
        interval_seconds: float,
        tick: Callable[[], Awaitable[Any]],
        clock: Callable[[], float] = time.monotonic,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self.interval_seconds = interval_seconds
        self.tick = tick
        self.clock = clock
        self._stop_event = asyncio.Event()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Request shutdown; takes effect at the next tick boundary."""
        self._stop_event.set()

    def next_delay(self, start: float, slot: int) -> tuple[int, float]:
        """Pick the next slot after ``slot`` that is still in the future.

        Returns:
            Tuple of (next_slot, seconds_until_it)
        """
        elapsed = self.clock() - start
        next_slot = max(slot + 1, math.floor(elapsed / self.interval_seconds) + 1)
        return next_slot, start + next_slot * self.interval_seconds - self.clock()

    async def run(self, max_ticks: Optional[int] = None) -> int:
        """Run ticks until stop() is called (or max_ticks have run).

        Args:
            max_ticks: Stop after this many ticks (optional)

        Returns:
            Number of ticks that ran
        """
        start = self.clock()
        slot = 0
        ticks = 0

        while not self._stop_event.is_set():
            try:
                await self.tick()
            except Exception:
                logger.exception("tick_failed")
            ticks += 1

            if max_ticks is not None and ticks >= max_ticks:
                break

            slot, delay = self.next_delay(start, slot)
            if await self._wait_for_stop(delay):
                break

        logger.info("scheduler_stopped", ticks=ticks)
        return ticks

    async def _wait_for_stop(self, delay: float) -> bool:
        """Sleep up to delay seconds; True if stop was requested meanwhile."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=max(delay, 0))
            return True
        except asyncio.TimeoutError:
            return self._stop_event.is_set()
