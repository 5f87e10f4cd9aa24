"""Interval scheduler with overlap protection."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

logger = logging.getLogger(__name__)


class Ticker:
    """
    Runs an async callback every ``interval`` seconds.

    The timer never waits for the callback: each firing launches the tick as
    its own task. If the previous tick is still in flight when the timer
    fires, that firing is skipped and counted in ``skipped``. Exceptions from
    a tick are logged and never stop the timer.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Awaitable[None]],
    ):
        """
        Initialize ticker.

        Args:
            name: Label used in log messages
            interval: Seconds between firings
            callback: Coroutine function run once per tick
        """
        self.name = name
        self.interval = interval
        self._callback = callback
        self._timer_task: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None
        self._stopping = asyncio.Event()
        self.ticks = 0
        self.skipped = 0

    @property
    def running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    @property
    def busy(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    async def _run_tick(self) -> None:
        try:
            await self._callback()
        except Exception:
            logger.exception(f"{self.name} tick failed")
        finally:
            self.ticks += 1

    def fire(self) -> bool:
        """
        Launch one tick now unless one is already in flight.

        Returns:
            True if a tick was launched, False if it was skipped
        """
        if self.busy:
            self.skipped += 1
            logger.debug(f"{self.name} tick skipped, previous tick still running")
            return False
        self._tick_task = asyncio.create_task(self._run_tick())
        return True

    async def run_once(self) -> bool:
        """Fire a tick and wait for it. Returns False if one was already running."""
        if not self.fire():
            return False
        await self._tick_task
        return True

    async def start(self) -> None:
        """Start firing. The first tick runs immediately."""
        if self.running:
            return  # Already running

        self._stopping = asyncio.Event()

        async def timer():
            while not self._stopping.is_set():
                self.fire()
                try:
                    await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
                except asyncio.TimeoutError:
                    pass

        self._timer_task = asyncio.create_task(timer())
        logger.info(f"{self.name} started (interval {self.interval}s)")

    async def stop(self) -> None:
        """Stop firing and wait for the in-flight tick to finish."""
        self._stopping.set()
        if self._timer_task:
            await self._timer_task
            self._timer_task = None
        if self._tick_task and not self._tick_task.done():
            await self._tick_task
        logger.info(f"{self.name} stopped after {self.ticks} ticks ({self.skipped} skipped)")
