"""Bounded concurrency for bulk job execution."""

import asyncio
import logging
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


class JobQueue:
    """At most ``max_concurrent`` jobs run at once; the rest wait for a slot.

    Waiting order is whatever order the semaphore wakes waiters in; no
    ordering across jobs is promised.
    """

    def __init__(self, max_concurrent: int = 3):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._processing: set[str] = set()
        self._waiting: set[str] = set()

    @asynccontextmanager
    async def slot(self, job_id: str):
        self._waiting.add(job_id)
        try:
            await self._semaphore.acquire()
        finally:
            self._waiting.discard(job_id)
        self._processing.add(job_id)
        logger.info(
            f"Job started ({len(self._processing)}/{self.max_concurrent} slots in use)",
            extra={"job_id": job_id},
        )
        try:
            yield
        finally:
            self._processing.discard(job_id)
            self._semaphore.release()

    def is_processing(self, job_id: str) -> bool:
        return job_id in self._processing

    def status(self) -> dict[str, int]:
        return {
            "processing": len(self._processing),
            "queued": len(self._waiting),
            "max_concurrent": self.max_concurrent,
            "available_slots": self.max_concurrent - len(self._processing),
        }
