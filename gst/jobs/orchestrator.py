"""Bulk document job orchestration.

Lifecycle: ``pending -> processing -> completed | failed``; ``pending`` or
``processing`` jobs can also be cancelled, which marks them ``failed`` with
error ``"cancelled"``. Execution runs in a background task per job, bounded by
``JobQueue``. Every write after submission is conditional on the job still
being active, so a finished or cancelled job record is never overwritten,
and the job's cancellation token stops the batch loop at the next item.
"""

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Sequence

from gst.core.config import (
    ARTIFACT_TTL_HOURS,
    BULK_ARTIFACT_TTL_HOURS,
    CONTENT_TYPE_CSV,
    CONTENT_TYPE_PDF,
    DEFAULT_STORE_JURISDICTION,
    JOB_BATCH_DELAY_SECONDS,
    JOB_BATCH_SIZE,
    JOB_ID_PREFIX,
    JOB_RETENTION_HOURS,
    LARGE_JOB_THRESHOLD,
    MAX_BULK_ITEMS,
)
from gst.core.dates import Clock, utc_now
from gst.core.exceptions import (
    BaseError,
    EmptyInputError,
    InvalidJobStateError,
    ResourceNotFoundError,
    TooManyItemsError,
    UpstreamProviderError,
)
from gst.documents.csv_export import CsvComposer, CsvRow, bulk_filename
from gst.documents.pdf_render import PdfDocumentRenderer, PdfOptions
from gst.documents.templates import TemplateRegistry
from gst.jobs.cancellation import CancellationToken, JobCancelled
from gst.jobs.queue import JobQueue
from gst.jobs.repository import JobRepository
from gst.models.jobs import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    BulkJob,
    JobOptions,
    JobStatus,
)
from gst.models.orders import OrderRecord
from gst.models.session import SessionContext
from gst.models.tax import EnrichedOrder
from gst.observability import metrics
from gst.ports import OrderProvider
from gst.storage.service import ArtifactStorageService
from gst.tax.enrichment import OrderTaxService

logger = logging.getLogger(__name__)

CANCELLED_REASON = "cancelled"
SHUTDOWN_REASON = "interrupted by shutdown"


@dataclass(frozen=True)
class JobConfig:
    max_items: int = MAX_BULK_ITEMS
    batch_size: int = JOB_BATCH_SIZE
    batch_delay_seconds: float = JOB_BATCH_DELAY_SECONDS
    artifact_ttl_hours: float = ARTIFACT_TTL_HOURS
    bulk_artifact_ttl_hours: float = BULK_ARTIFACT_TTL_HOURS
    large_job_threshold: int = LARGE_JOB_THRESHOLD
    retention_hours: float = JOB_RETENTION_HOURS
    default_seller_jurisdiction: str = DEFAULT_STORE_JURISDICTION


def _progress(handled: int, total: int) -> int:
    if total <= 0:
        return 0
    return min(100, round(handled / total * 100))


class BulkJobOrchestrator:
    def __init__(
        self,
        repository: JobRepository,
        storage: ArtifactStorageService,
        tax_service: OrderTaxService,
        csv_composer: CsvComposer,
        pdf_renderer: PdfDocumentRenderer,
        templates: TemplateRegistry,
        queue: JobQueue,
        config: JobConfig = JobConfig(),
        clock: Clock = utc_now,
    ):
        self.repository = repository
        self.storage = storage
        self.tax_service = tax_service
        self.csv_composer = csv_composer
        self.pdf_renderer = pdf_renderer
        self.templates = templates
        self.queue = queue
        self.config = config
        self.clock = clock
        self._tokens: dict[str, CancellationToken] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def submit(
        self,
        session: SessionContext,
        provider: OrderProvider,
        item_ids: Sequence[str],
        options: JobOptions = JobOptions(),
    ) -> BulkJob:
        """Create a pending job and schedule its background execution.

        Raises:
            EmptyInputError: If no item ids are given
            TooManyItemsError: If more than ``config.max_items`` ids are given
        """
        ids = [str(item_id).strip() for item_id in item_ids if str(item_id).strip()]
        if not ids:
            raise EmptyInputError("Order IDs are required")
        if len(ids) > self.config.max_items:
            raise TooManyItemsError(self.config.max_items, len(ids))

        now = self.clock()
        job = BulkJob(
            id=f"{JOB_ID_PREFIX}{int(now.timestamp() * 1000)}_{secrets.token_hex(4)}",
            owner=session.shop,
            total_items=len(ids),
            output_format=options.output_format,
            template_id=options.template_id,
            include_tax_breakdown=options.include_tax_breakdown,
            group_by_date=options.group_by_date,
            item_ids=ids,
            created_at=now,
        )
        await self.repository.create(job)
        metrics.inc_job_submitted(job.output_format)

        token = CancellationToken()
        self._tokens[job.id] = token
        task = asyncio.create_task(self._run(job.id, session, provider, token))
        self._tasks[job.id] = task
        task.add_done_callback(lambda _: self._forget(job.id))

        logger.info(
            f"Bulk job submitted with {job.total_items} items ({job.output_format})",
            extra={"job_id": job.id, "shop": job.owner},
        )
        return job

    async def get(self, job_id: str, owner: str | None = None) -> BulkJob:
        job = await self.repository.get(job_id)
        if job is None or (owner is not None and job.owner != owner):
            raise ResourceNotFoundError("Job", job_id)
        return job

    async def list_jobs(self, owner: str) -> list[BulkJob]:
        return await self.repository.list_by_owner(owner)

    async def cancel(self, job_id: str, owner: str | None = None) -> BulkJob:
        """Mark an active job failed with reason "cancelled" and stop its task.

        Raises:
            ResourceNotFoundError: Unknown job
            InvalidJobStateError: Job already completed or failed
        """
        job = await self.get(job_id, owner)
        if job.status not in ACTIVE_STATUSES:
            raise InvalidJobStateError("cancel", job.status.value)

        updated = await self.repository.update(
            job_id,
            {
                "status": JobStatus.FAILED,
                "error": CANCELLED_REASON,
                "completed_at": self.clock(),
            },
            ACTIVE_STATUSES,
        )
        if updated is None:
            current = await self.get(job_id, owner)
            raise InvalidJobStateError("cancel", current.status.value)

        token = self._tokens.get(job_id)
        if token is not None:
            token.cancel()
        metrics.inc_job_cancelled()
        logger.info("Bulk job cancelled", extra={"job_id": job_id, "shop": job.owner})
        return updated

    async def delete(self, job_id: str, owner: str | None = None) -> None:
        """Delete a finished job and its artifact.

        Raises:
            InvalidJobStateError: Job is still pending or processing
        """
        job = await self.get(job_id, owner)
        if job.status not in TERMINAL_STATUSES:
            raise InvalidJobStateError("delete", job.status.value)
        await self._remove(job)

    async def delete_owner(self, owner: str) -> int:
        """Cancel and delete every job of ``owner``; returns the count."""
        removed = 0
        for job in await self.repository.list_by_owner(owner):
            token = self._tokens.get(job.id)
            if token is not None:
                token.cancel()
            await self._remove(job)
            removed += 1
        return removed

    async def purge_expired(self) -> int:
        """Remove finished jobs older than the retention window."""
        cutoff = self.clock() - timedelta(hours=self.config.retention_hours)
        removed = 0
        for job in await self.repository.list_all():
            if job.is_terminal and job.created_at < cutoff:
                await self._remove(job)
                removed += 1
        if removed:
            logger.info(f"Purged {removed} expired jobs")
        return removed

    def queue_status(self) -> dict[str, int]:
        return self.queue.status()

    async def wait_idle(self) -> None:
        """Wait until every background job task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def shutdown(self, grace_seconds: float = 5.0) -> None:
        """Stop every background job task before the process exits.

        Running jobs get ``grace_seconds`` to notice their cancellation token;
        tasks still running afterwards are cancelled outright. Jobs left
        active are marked failed so they are not reported as processing
        after a restart.
        """
        tasks = dict(self._tasks)
        if not tasks:
            return
        logger.info(f"Stopping {len(tasks)} bulk job tasks")

        for token in list(self._tokens.values()):
            token.cancel()
        _, pending = await asyncio.wait(tasks.values(), timeout=grace_seconds)
        for task in pending:
            task.cancel()
        await asyncio.gather(*tasks.values(), return_exceptions=True)

        for job_id in tasks:
            await self.repository.update(
                job_id,
                {
                    "status": JobStatus.FAILED,
                    "error": SHUTDOWN_REASON,
                    "completed_at": self.clock(),
                },
                ACTIVE_STATUSES,
            )

    # ------------------------------------------------------------------
    # Background execution
    # ------------------------------------------------------------------

    def _forget(self, job_id: str) -> None:
        self._tasks.pop(job_id, None)
        self._tokens.pop(job_id, None)

    async def _remove(self, job: BulkJob) -> None:
        if job.download_key:
            try:
                await self.storage.delete(job.download_key)
            except ResourceNotFoundError:
                pass
        await self.repository.delete(job.id)

    async def _run(
        self,
        job_id: str,
        session: SessionContext,
        provider: OrderProvider,
        token: CancellationToken,
    ) -> None:
        started = time.perf_counter()
        try:
            async with self.queue.slot(job_id):
                token.raise_if_cancelled()
                await self._execute(job_id, session, provider, token, started)
        except JobCancelled:
            logger.info("Bulk job stopped after cancellation", extra={"job_id": job_id})
        except BaseError as e:
            await self._fail(job_id, e.message)
        except Exception as e:
            logger.exception("Bulk job crashed", extra={"job_id": job_id})
            await self._fail(job_id, f"Unexpected error: {e}")

    async def _execute(
        self,
        job_id: str,
        session: SessionContext,
        provider: OrderProvider,
        token: CancellationToken,
        started: float,
    ) -> None:
        job = await self._update(
            job_id,
            {"status": JobStatus.PROCESSING, "started_at": self.clock()},
        )

        orders = await self._fetch(session, provider, job.item_ids)
        token.raise_if_cancelled()

        total = job.total_items
        failed = max(total - len(orders), 0)
        if failed:
            logger.warning(
                f"{failed} of {total} orders could not be found",
                extra={"job_id": job_id},
            )
        processed = 0
        job = await self._update(
            job_id, {"failed_items": failed, "progress": _progress(failed, total)}
        )

        seller = session.seller_jurisdiction or self.config.default_seller_jurisdiction
        entries: list[EnrichedOrder] = []
        rows: list[CsvRow] = []
        batch_size = self.config.batch_size

        for start in range(0, len(orders), batch_size):
            if start:
                await asyncio.sleep(self.config.batch_delay_seconds)
            token.raise_if_cancelled()

            for order in orders[start:start + batch_size]:
                token.raise_if_cancelled()
                try:
                    entry = self.tax_service.enrich_orders([order], seller)[0]
                    if job.output_format == "csv":
                        rows.extend(
                            self.csv_composer.order_rows(entry, job.include_tax_breakdown)
                        )
                    entries.append(entry)
                    processed += 1
                except Exception as e:
                    failed += 1
                    logger.warning(
                        f"Skipping order {order.name}: {e}",
                        extra={"job_id": job_id, "order_id": order.id},
                    )
                job = await self._update(
                    job_id,
                    {
                        "processed_items": processed,
                        "failed_items": failed,
                        "progress": _progress(processed + failed, total),
                    },
                )

        if not entries:
            raise EmptyInputError("No orders could be processed")

        token.raise_if_cancelled()
        payload, filename, content_type = await self._generate(job, entries, rows)

        token.raise_if_cancelled()
        ttl = (
            self.config.bulk_artifact_ttl_hours
            if total > self.config.large_job_threshold
            else self.config.artifact_ttl_hours
        )
        key = await self.storage.store(
            payload, filename, content_type, owner=job.owner, ttl_hours=ttl
        )
        artifact = await self.storage.retrieve(key)

        completed = await self.repository.update(
            job_id,
            {
                "status": JobStatus.COMPLETED,
                "progress": 100,
                "download_key": key,
                "download_url": f"/v1/downloads/{key}",
                "expires_at": artifact.expires_at,
                "completed_at": self.clock(),
            },
            ACTIVE_STATUSES,
        )
        if completed is None:
            await self.storage.delete(key)
            raise JobCancelled()

        metrics.inc_job_completed(job.output_format, time.perf_counter() - started)
        logger.info(
            f"Bulk job completed: {processed} processed, {failed} skipped",
            extra={"job_id": job_id, "artifact_key": key},
        )

    async def _fetch(
        self, session: SessionContext, provider: OrderProvider, item_ids: list[str]
    ) -> list[OrderRecord]:
        try:
            return await provider.fetch_orders(session, item_ids)
        except BaseError:
            raise
        except Exception as e:
            logger.error(f"Order fetch failed: {e}", exc_info=True)
            raise UpstreamProviderError(details={"detail": str(e)}) from e

    async def _generate(
        self, job: BulkJob, entries: list[EnrichedOrder], rows: list[CsvRow]
    ) -> tuple[bytes | str, str, str]:
        if job.output_format == "csv":
            if job.group_by_date:
                rows = sorted(rows, key=lambda row: row.order_date)
            return (
                self.csv_composer.render_rows(rows),
                bulk_filename(job.id),
                CONTENT_TYPE_CSV,
            )

        template = self.templates.get(job.template_id, job.owner)
        document = await self.pdf_renderer.render_bulk(
            entries,
            template,
            PdfOptions(
                include_tax_breakdown=job.include_tax_breakdown,
                group_by_date=job.group_by_date,
            ),
        )
        return document.content, document.filename, CONTENT_TYPE_PDF

    async def _update(self, job_id: str, changes: dict) -> BulkJob:
        job = await self.repository.update(job_id, changes, ACTIVE_STATUSES)
        if job is None:
            raise JobCancelled()
        return job

    async def _fail(self, job_id: str, message: str) -> None:
        updated = await self.repository.update(
            job_id,
            {
                "status": JobStatus.FAILED,
                "error": message,
                "completed_at": self.clock(),
            },
            ACTIVE_STATUSES,
        )
        if updated is not None:
            metrics.inc_job_failed()
            logger.error(f"Bulk job failed: {message}", extra={"job_id": job_id})
