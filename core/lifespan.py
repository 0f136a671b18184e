from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from core.settings import (
    commerce_settings,
    job_settings,
    storage_settings,
    tax_settings,
    webhook_settings,
)
from gst.core.database_manager import create_database_manager_from_settings
from gst.documents.csv_export import CsvComposer
from gst.documents.pdf_render import PdfDocumentRenderer
from gst.documents.templates import TemplateRegistry
from gst.events.cleanup import OwnerDataCleanup
from gst.events.handlers import EventHandlers
from gst.events.monitoring import EventMonitor
from gst.events.processor import EventProcessor
from gst.events.sessions import InMemorySessionStore
from gst.events.verification import WebhookVerifier
from gst.jobs.orchestrator import BulkJobOrchestrator, JobConfig
from gst.jobs.queue import JobQueue
from gst.jobs.repository import InMemoryJobRepository
from gst.models.session import SessionContext
from gst.observability import metrics
from gst.storage.memory import InMemoryArtifactBackend
from gst.storage.service import ArtifactStorageService
from gst.storage.sweeper import PeriodicSweeper
from gst.tax.calculator import RateSchedule
from gst.tax.enrichment import OrderTaxService
from services.commerce_client import create_order_provider_from_settings
from services.render_client import create_render_backend_from_settings

logger = logging.getLogger(__name__)


async def _create_job_repository(app: FastAPI):
    if job_settings.JOB_STORE != "postgres":
        app.state.db_manager = None
        return InMemoryJobRepository()

    from services.postgres_jobs import PostgresJobRepository

    logger.info("Initializing database connection pool...")
    db_manager = create_database_manager_from_settings()
    await db_manager.connect()
    app.state.db_manager = db_manager
    repository = PostgresJobRepository(db_manager)
    await repository.ensure_schema()
    logger.info("Database pool ready")
    return repository


def _create_artifact_backend():
    if storage_settings.ARTIFACT_BACKEND != "minio":
        return InMemoryArtifactBackend()

    from services.minio_backend import create_minio_backend_from_settings

    backend = create_minio_backend_from_settings()
    backend.ensure_bucket()
    return backend


async def _seed_sessions(store: InMemorySessionStore) -> None:
    """Register the configured single-shop session, if any."""
    shop = commerce_settings.COMMERCE_SHOP_DOMAIN.strip()
    token = commerce_settings.COMMERCE_ACCESS_TOKEN.get_secret_value()
    if shop and token:
        await store.store(
            SessionContext(
                shop=shop,
                access_token=token,
                seller_jurisdiction=tax_settings.STORE_JURISDICTION,
            )
        )
        logger.info("Configured shop session registered")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build engine components on startup; stop background work on shutdown."""

    repository = await _create_job_repository(app)
    storage = ArtifactStorageService(_create_artifact_backend())
    tax_service = OrderTaxService(
        schedule=RateSchedule(
            low_rate=tax_settings.GST_LOW_RATE,
            high_rate=tax_settings.GST_HIGH_RATE,
            threshold=tax_settings.GST_RATE_THRESHOLD,
        ),
        default_classification_code=tax_settings.DEFAULT_HSN_CODE,
    )
    templates = TemplateRegistry()
    csv_composer = CsvComposer()
    pdf_renderer = PdfDocumentRenderer(create_render_backend_from_settings())

    orchestrator = BulkJobOrchestrator(
        repository=repository,
        storage=storage,
        tax_service=tax_service,
        csv_composer=csv_composer,
        pdf_renderer=pdf_renderer,
        templates=templates,
        queue=JobQueue(job_settings.MAX_CONCURRENT_JOBS),
        config=JobConfig(
            max_items=job_settings.MAX_BULK_ITEMS,
            batch_size=job_settings.JOB_BATCH_SIZE,
            batch_delay_seconds=job_settings.JOB_BATCH_DELAY_SECONDS,
            artifact_ttl_hours=job_settings.ARTIFACT_TTL_HOURS,
            bulk_artifact_ttl_hours=job_settings.BULK_ARTIFACT_TTL_HOURS,
            large_job_threshold=job_settings.LARGE_JOB_THRESHOLD,
            retention_hours=job_settings.JOB_RETENTION_HOURS,
            default_seller_jurisdiction=tax_settings.STORE_JURISDICTION,
        ),
    )

    session_store = InMemorySessionStore()
    await _seed_sessions(session_store)

    monitor = EventMonitor(
        capacity=webhook_settings.METRICS_CAPACITY,
        freshness_hours=webhook_settings.HEALTH_FRESHNESS_HOURS,
    )
    cleanup = OwnerDataCleanup(session_store, orchestrator, storage, templates)
    event_processor = EventProcessor(
        monitor,
        EventHandlers(cleanup),
        max_attempts=webhook_settings.WEBHOOK_MAX_ATTEMPTS,
        delay_seconds=webhook_settings.WEBHOOK_RETRY_DELAY_SECONDS,
    )

    async def sweep_artifacts() -> int:
        removed = await storage.sweep()
        metrics.inc_artifacts_swept(removed)
        return removed

    sweeper = PeriodicSweeper(
        job_settings.SWEEP_INTERVAL_SECONDS,
        {"artifacts": sweep_artifacts, "jobs": orchestrator.purge_expired},
    )
    sweeper.start()

    app.state.storage = storage
    app.state.tax_service = tax_service
    app.state.templates = templates
    app.state.csv_composer = csv_composer
    app.state.pdf_renderer = pdf_renderer
    app.state.orchestrator = orchestrator
    app.state.order_provider = create_order_provider_from_settings()
    app.state.session_store = session_store
    app.state.monitor = monitor
    app.state.event_processor = event_processor
    app.state.verifier = WebhookVerifier(
        webhook_settings.WEBHOOK_SECRET.get_secret_value()
    )
    app.state.sweeper = sweeper
    logger.info("Application components ready")

    yield

    logger.info("Stopping background cleanup...")
    await sweeper.stop()

    logger.info("Stopping bulk jobs...")
    await app.state.orchestrator.shutdown()

    if app.state.db_manager:
        logger.info("Closing database connection pool...")
        await app.state.db_manager.disconnect()
        logger.info("Database pool closed")
