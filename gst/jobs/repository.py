"""Job persistence contract and its in-memory implementation."""

import asyncio
from typing import Any, Collection, Protocol

from gst.models.jobs import BulkJob, JobStatus


class JobRepository(Protocol):
    async def create(self, job: BulkJob) -> None: ...

    async def get(self, job_id: str) -> BulkJob | None: ...

    async def update(
        self,
        job_id: str,
        changes: dict[str, Any],
        allowed_statuses: Collection[JobStatus] | None = None,
    ) -> BulkJob | None:
        """Apply ``changes`` atomically.

        Returns:
            The updated job, or None when the job is missing or its current
            status is not in ``allowed_statuses``
        """
        ...

    async def delete(self, job_id: str) -> bool: ...

    async def list_by_owner(self, owner: str) -> list[BulkJob]:
        """Jobs of ``owner``, newest first."""
        ...

    async def list_all(self) -> list[BulkJob]: ...


class InMemoryJobRepository:
    def __init__(self):
        self._jobs: dict[str, BulkJob] = {}
        self._lock = asyncio.Lock()

    async def create(self, job: BulkJob) -> None:
        async with self._lock:
            self._jobs[job.id] = job

    async def get(self, job_id: str) -> BulkJob | None:
        async with self._lock:
            return self._jobs.get(job_id)

    async def update(
        self,
        job_id: str,
        changes: dict[str, Any],
        allowed_statuses: Collection[JobStatus] | None = None,
    ) -> BulkJob | None:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            if allowed_statuses is not None and job.status not in allowed_statuses:
                return None
            updated = job.model_copy(update=changes)
            self._jobs[job_id] = updated
            return updated

    async def delete(self, job_id: str) -> bool:
        async with self._lock:
            return self._jobs.pop(job_id, None) is not None

    async def list_by_owner(self, owner: str) -> list[BulkJob]:
        async with self._lock:
            jobs = [job for job in self._jobs.values() if job.owner == owner]
        return sorted(jobs, key=lambda job: job.created_at, reverse=True)

    async def list_all(self) -> list[BulkJob]:
        async with self._lock:
            return list(self._jobs.values())
