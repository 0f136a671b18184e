"""Background loop that periodically removes expired artifacts and jobs."""

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

SweepTask = Callable[[], Awaitable[int]]


class PeriodicSweeper:
    def __init__(self, interval_seconds: float, tasks: dict[str, SweepTask]):
        self.interval_seconds = interval_seconds
        self.tasks = tasks
        self._task: asyncio.Task | None = None

    async def run_once(self) -> dict[str, int]:
        """Run every sweep task once; a failing task does not stop the others."""
        results = {}
        for name, task in self.tasks.items():
            try:
                results[name] = await task()
            except Exception:
                logger.exception(f"Sweep task '{name}' failed")
                results[name] = 0
        return results

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            results = await self.run_once()
            logger.info(f"Periodic cleanup finished: {results}")

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
