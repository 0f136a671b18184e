"""Unit tests for the bulk job orchestrator."""

import asyncio
import io

import pytest
from pypdf import PdfReader

from gst.core.exceptions import (
    EmptyInputError,
    InvalidJobStateError,
    ResourceNotFoundError,
    TooManyItemsError,
)
from gst.documents.csv_export import CsvComposer
from gst.documents.pdf_render import PdfDocumentRenderer
from gst.documents.templates import TemplateRegistry
from gst.jobs.orchestrator import BulkJobOrchestrator, JobConfig
from gst.jobs.queue import JobQueue
from gst.jobs.repository import InMemoryJobRepository
from gst.models.jobs import JobOptions, JobStatus
from gst.storage.memory import InMemoryArtifactBackend
from gst.storage.service import ArtifactStorageService


class RecordingRepository(InMemoryJobRepository):
    """Keeps every progress value written for each job."""

    def __init__(self):
        super().__init__()
        self.progress: dict[str, list[int]] = {}

    async def update(self, job_id, changes, allowed_statuses=None):
        job = await super().update(job_id, changes, allowed_statuses)
        if job is not None:
            self.progress.setdefault(job_id, []).append(job.progress)
        return job


class BlockingProvider:
    """Order provider that waits for ``release`` before answering."""

    def __init__(self, inner):
        self.inner = inner
        self.release = asyncio.Event()
        self.started = asyncio.Event()

    async def fetch_orders(self, session, order_ids):
        self.started.set()
        await self.release.wait()
        return await self.inner.fetch_orders(session, order_ids)


def _build(clock, render_backend, tax_service, max_concurrent=3, **config):
    repository = RecordingRepository()
    storage = ArtifactStorageService(InMemoryArtifactBackend(), clock)
    orchestrator = BulkJobOrchestrator(
        repository=repository,
        storage=storage,
        tax_service=tax_service,
        csv_composer=CsvComposer(),
        pdf_renderer=PdfDocumentRenderer(render_backend, clock),
        templates=TemplateRegistry(),
        queue=JobQueue(max_concurrent),
        config=JobConfig(batch_delay_seconds=0, **config),
        clock=clock,
    )
    return orchestrator, repository, storage


@pytest.fixture
def engine(clock, render_backend, tax_service):
    return _build(clock, render_backend, tax_service)


class TestSubmission:
    """Tests for job submission validation."""

    @pytest.mark.asyncio
    async def test_empty_ids_rejected(self, engine, session, order_provider):
        orchestrator, _, _ = engine
        with pytest.raises(EmptyInputError):
            await orchestrator.submit(session, order_provider, ["", "  "])

    @pytest.mark.asyncio
    async def test_too_many_ids_rejected(self, engine, session, order_provider):
        orchestrator, _, _ = engine
        ids = [str(i) for i in range(101)]
        with pytest.raises(TooManyItemsError) as exc_info:
            await orchestrator.submit(session, order_provider, ids)
        assert exc_info.value.details["limit"] == 100

    @pytest.mark.asyncio
    async def test_submit_returns_pending_job(self, engine, session, order_provider):
        orchestrator, _, _ = engine
        job = await orchestrator.submit(session, order_provider, ["1001"])

        assert job.status is JobStatus.PENDING
        assert job.owner == session.shop
        assert job.id.startswith("bulk_")
        await orchestrator.wait_idle()


class TestExecution:
    """Tests for background job execution."""

    @pytest.mark.asyncio
    async def test_missing_ids_are_skipped_not_fatal(self, engine, session, order_provider):
        """3 ids where one does not resolve: completed with 2 processed."""
        orchestrator, _, storage = engine
        job = await orchestrator.submit(session, order_provider, ["1001", "9999", "1002"])
        await orchestrator.wait_idle()

        done = await orchestrator.get(job.id, session.shop)
        assert done.status is JobStatus.COMPLETED
        assert done.processed_items == 2
        assert done.failed_items == 1
        assert done.progress == 100
        assert done.download_url == f"/v1/downloads/{done.download_key}"

        artifact = await storage.retrieve(done.download_key, owner=session.shop)
        assert artifact.content_type == "application/pdf"
        assert len(PdfReader(io.BytesIO(artifact.payload)).pages) == 2

    @pytest.mark.asyncio
    async def test_csv_job(self, engine, session, order_provider):
        orchestrator, _, storage = engine
        job = await orchestrator.submit(
            session, order_provider, ["1001", "1002"], JobOptions(output_format="csv")
        )
        await orchestrator.wait_idle()

        done = await orchestrator.get(job.id)
        artifact = await storage.retrieve(done.download_key)
        assert artifact.filename == f"bulk_orders_{job.id}.csv"
        assert artifact.payload.decode("utf-8").count("\n") == 3

    @pytest.mark.asyncio
    async def test_progress_never_decreases(self, clock, render_backend, tax_service, session, order_provider):
        orchestrator, repository, _ = _build(clock, render_backend, tax_service, batch_size=1)
        job = await orchestrator.submit(session, order_provider, ["1001", "404", "1002", "1003"])
        await orchestrator.wait_idle()

        values = repository.progress[job.id]
        assert values == sorted(values)
        assert values[-1] == 100

    @pytest.mark.asyncio
    async def test_no_orders_found_fails_job(self, engine, session, order_provider):
        orchestrator, _, _ = engine
        job = await orchestrator.submit(session, order_provider, ["404"])
        await orchestrator.wait_idle()

        failed = await orchestrator.get(job.id)
        assert failed.status is JobStatus.FAILED
        assert failed.download_key is None
        assert failed.error

    @pytest.mark.asyncio
    async def test_render_failure_fails_job(self, engine, render_backend, session, order_provider):
        orchestrator, _, _ = engine
        render_backend.fail = True
        job = await orchestrator.submit(session, order_provider, ["1001"])
        await orchestrator.wait_idle()

        failed = await orchestrator.get(job.id)
        assert failed.status is JobStatus.FAILED
        assert failed.download_key is None
        assert failed.completed_at is not None

    @pytest.mark.asyncio
    async def test_large_jobs_keep_artifacts_longer(self, clock, render_backend, tax_service, session, order_provider):
        orchestrator, _, _ = _build(
            clock, render_backend, tax_service, large_job_threshold=1
        )
        job = await orchestrator.submit(session, order_provider, ["1001", "1002"])
        await orchestrator.wait_idle()

        done = await orchestrator.get(job.id)
        assert (done.expires_at - clock()).total_seconds() == 72 * 3600


class TestCancellation:
    """Tests for cooperative cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_processing_job(self, engine, session, order_provider):
        orchestrator, _, storage = engine
        provider = BlockingProvider(order_provider)
        job = await orchestrator.submit(session, provider, ["1001", "1002"])
        await provider.started.wait()

        cancelled = await orchestrator.cancel(job.id, session.shop)
        assert cancelled.status is JobStatus.FAILED
        assert cancelled.error == "cancelled"

        provider.release.set()
        await orchestrator.wait_idle()

        final = await orchestrator.get(job.id)
        assert final.status is JobStatus.FAILED
        assert final.error == "cancelled"
        assert final.download_key is None
        assert await storage.list(session.shop) == []

    @pytest.mark.asyncio
    async def test_cannot_cancel_completed_job(self, engine, session, order_provider):
        orchestrator, _, _ = engine
        job = await orchestrator.submit(session, order_provider, ["1001"])
        await orchestrator.wait_idle()

        with pytest.raises(InvalidJobStateError) as exc_info:
            await orchestrator.cancel(job.id)
        assert exc_info.value.details["status"] == "completed"

    @pytest.mark.asyncio
    async def test_unknown_or_foreign_job(self, engine, session, order_provider):
        orchestrator, _, _ = engine
        with pytest.raises(ResourceNotFoundError):
            await orchestrator.cancel("bulk_missing")

        job = await orchestrator.submit(session, order_provider, ["1001"])
        await orchestrator.wait_idle()
        with pytest.raises(ResourceNotFoundError):
            await orchestrator.get(job.id, "other.myshopify.com")

    @pytest.mark.asyncio
    async def test_shutdown_stops_running_jobs(self, engine, session, order_provider):
        orchestrator, _, storage = engine
        provider = BlockingProvider(order_provider)
        running = await orchestrator.submit(session, provider, ["1001"])
        queued = await orchestrator.submit(session, provider, ["1002"])
        await provider.started.wait()

        await orchestrator.shutdown(grace_seconds=0.05)

        assert orchestrator._tasks == {}
        assert orchestrator.queue_status()["processing"] == 0
        for job_id in (running.id, queued.id):
            job = await orchestrator.get(job_id)
            assert job.status is JobStatus.FAILED
            assert job.error == "interrupted by shutdown"
        assert await storage.list(session.shop) == []

    @pytest.mark.asyncio
    async def test_shutdown_without_jobs(self, engine):
        orchestrator, _, _ = engine
        await orchestrator.shutdown()
        assert orchestrator.queue_status()["processing"] == 0


class TestQueueAndDeletion:
    @pytest.mark.asyncio
    async def test_concurrency_limit(self, clock, render_backend, tax_service, session, order_provider):
        orchestrator, _, _ = _build(clock, render_backend, tax_service, max_concurrent=1)
        provider = BlockingProvider(order_provider)

        first = await orchestrator.submit(session, provider, ["1001"])
        second = await orchestrator.submit(session, provider, ["1002"])
        await provider.started.wait()
        await asyncio.sleep(0)

        status = orchestrator.queue_status()
        assert status["processing"] == 1
        assert status["queued"] == 1
        assert status["available_slots"] == 0
        assert (await orchestrator.get(second.id)).status is JobStatus.PENDING

        with pytest.raises(InvalidJobStateError):
            await orchestrator.delete(second.id)

        provider.release.set()
        await orchestrator.wait_idle()
        assert (await orchestrator.get(first.id)).status is JobStatus.COMPLETED
        assert (await orchestrator.get(second.id)).status is JobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_delete_removes_job_and_artifact(self, engine, session, order_provider):
        orchestrator, _, storage = engine
        job = await orchestrator.submit(session, order_provider, ["1001"])
        await orchestrator.wait_idle()
        done = await orchestrator.get(job.id)

        await orchestrator.delete(job.id, session.shop)

        with pytest.raises(ResourceNotFoundError):
            await orchestrator.get(job.id)
        with pytest.raises(ResourceNotFoundError):
            await storage.retrieve(done.download_key)

    @pytest.mark.asyncio
    async def test_list_and_purge(self, engine, clock, session, order_provider):
        orchestrator, _, _ = engine
        await orchestrator.submit(session, order_provider, ["1001"])
        clock.advance(minutes=1)
        newer = await orchestrator.submit(session, order_provider, ["1002"])
        await orchestrator.wait_idle()

        jobs = await orchestrator.list_jobs(session.shop)
        assert [j.id for j in jobs][0] == newer.id
        assert len(jobs) == 2

        clock.advance(hours=25)
        assert await orchestrator.purge_expired() == 2
        assert await orchestrator.list_jobs(session.shop) == []

    @pytest.mark.asyncio
    async def test_delete_owner(self, engine, session, order_provider):
        orchestrator, _, _ = engine
        await orchestrator.submit(session, order_provider, ["1001"])
        await orchestrator.wait_idle()
        assert await orchestrator.delete_owner(session.shop) == 1
        assert await orchestrator.list_jobs(session.shop) == []
