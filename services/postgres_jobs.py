"""PostgreSQL-backed job repository.

One row per job; the full ``BulkJob`` snapshot lives in a JSONB column, with
owner, status and created_at duplicated into columns for filtering. Updates
run as ``SELECT ... FOR UPDATE`` read-modify-write inside a transaction so
that the status condition and the write are atomic per job.
"""

import logging
from typing import Any, Collection

from gst.core.database_manager import DatabaseManager
from gst.models.jobs import BulkJob, JobStatus

logger = logging.getLogger(__name__)

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS bulk_jobs (
    id VARCHAR(64) PRIMARY KEY,
    owner VARCHAR(255) NOT NULL,
    status VARCHAR(20) NOT NULL
        CHECK (status IN ('pending', 'processing', 'completed', 'failed')),
    created_at TIMESTAMPTZ NOT NULL,
    data JSONB NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_bulk_jobs_owner_created
    ON bulk_jobs(owner, created_at DESC);
"""


def _load(data: str) -> BulkJob:
    return BulkJob.model_validate_json(data)


class PostgresJobRepository:
    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    async def ensure_schema(self) -> None:
        pool = await self.db_manager.get_pool()
        async with pool.acquire() as conn:
            await conn.execute(CREATE_TABLE_SQL)
        logger.info("bulk_jobs table ready")

    async def create(self, job: BulkJob) -> None:
        pool = await self.db_manager.get_pool()
        async with pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO bulk_jobs (id, owner, status, created_at, data)
                VALUES ($1, $2, $3, $4, $5::jsonb)
                """,
                job.id,
                job.owner,
                job.status.value,
                job.created_at,
                job.model_dump_json(),
            )

    async def get(self, job_id: str) -> BulkJob | None:
        pool = await self.db_manager.get_pool()
        async with pool.acquire() as conn:
            data = await conn.fetchval(
                "SELECT data::text FROM bulk_jobs WHERE id = $1", job_id
            )
        return _load(data) if data is not None else None

    async def update(
        self,
        job_id: str,
        changes: dict[str, Any],
        allowed_statuses: Collection[JobStatus] | None = None,
    ) -> BulkJob | None:
        pool = await self.db_manager.get_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                data = await conn.fetchval(
                    "SELECT data::text FROM bulk_jobs WHERE id = $1 FOR UPDATE",
                    job_id,
                )
                if data is None:
                    return None
                job = _load(data)
                if allowed_statuses is not None and job.status not in allowed_statuses:
                    return None

                updated = job.model_copy(update=changes)
                await conn.execute(
                    """
                    UPDATE bulk_jobs
                    SET status = $2, data = $3::jsonb, updated_at = NOW()
                    WHERE id = $1
                    """,
                    job_id,
                    updated.status.value,
                    updated.model_dump_json(),
                )
        return updated

    async def delete(self, job_id: str) -> bool:
        pool = await self.db_manager.get_pool()
        async with pool.acquire() as conn:
            result = await conn.execute("DELETE FROM bulk_jobs WHERE id = $1", job_id)
        # asyncpg returns the command tag, e.g. "DELETE 1"
        return result.endswith(" 1")

    async def list_by_owner(self, owner: str) -> list[BulkJob]:
        pool = await self.db_manager.get_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT data::text AS data FROM bulk_jobs
                WHERE owner = $1
                ORDER BY created_at DESC
                """,
                owner,
            )
        return [_load(row["data"]) for row in rows]

    async def list_all(self) -> list[BulkJob]:
        pool = await self.db_manager.get_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch("SELECT data::text AS data FROM bulk_jobs")
        return [_load(row["data"]) for row in rows]
