"""
Cancellable periodic task used to drive each device's poll cycle
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Runs an async action on a fixed interval until stopped

    A cycle awaits the action and sleeps for the remainder of the interval.
    When the action overruns the interval the next cycle starts immediately
    instead of piling up.
    """

    def __init__(self, name: str, interval_seconds: float, action: Callable[[], Awaitable[Any]]):
        self.name = name
        self.interval = interval_seconds
        self.action = action
        self.cycles = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=f"poll:{self.name}")
        logger.debug(f"[POLL] Started polling {self.name} every {self.interval:.1f}s")

    async def stop(self) -> None:
        """Cancel the loop and wait for it to unwind; no-op when not running"""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug(f"[POLL] Stopped polling {self.name} after {self.cycles} cycles")

    async def _run(self) -> None:
        while True:
            cycle_start = time.monotonic()
            try:
                await self.action()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[POLL] Poll cycle for {self.name} failed: {e}")
            self.cycles += 1

            elapsed = time.monotonic() - cycle_start
            remaining = self.interval - elapsed
            if remaining <= 0:
                logger.warning(f"[POLL] Cycle for {self.name} took {elapsed:.1f}s "
                               f"(>{self.interval:.1f}s interval) - skipping sleep")
                await asyncio.sleep(0)
                continue
            await asyncio.sleep(remaining)
