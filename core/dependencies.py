"""FastAPI dependency injection functions.

Components are built once in the lifespan and stored on ``app.state``;
these getters hand them to routes and fail with 503 when a component did
not start.
"""

import hmac
import logging
from typing import Any

from fastapi import Header, HTTPException, Request, status

from core.logging_utils import sanitize_shop
from core.settings import tax_settings
from gst.core.exceptions import AuthenticationError
from gst.core.database_manager import DatabaseManager
from gst.documents.csv_export import CsvComposer
from gst.documents.pdf_render import PdfDocumentRenderer
from gst.documents.templates import TemplateRegistry
from gst.events.monitoring import EventMonitor
from gst.events.processor import EventProcessor
from gst.events.sessions import SessionStore
from gst.events.verification import WebhookVerifier
from gst.jobs.orchestrator import BulkJobOrchestrator
from gst.models.session import SessionContext
from gst.ports import OrderProvider
from gst.storage.service import ArtifactStorageService
from gst.tax.enrichment import OrderTaxService

logger = logging.getLogger(__name__)


def _component(request: Request, name: str, label: str) -> Any:
    component = getattr(request.app.state, name, None)
    if component is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} unavailable",
        )
    return component


async def get_db_manager(request: Request) -> DatabaseManager | None:
    """Database manager, or None when jobs are kept in memory."""
    return getattr(request.app.state, "db_manager", None)


async def get_orchestrator(request: Request) -> BulkJobOrchestrator:
    return _component(request, "orchestrator", "Job orchestrator")


async def get_storage(request: Request) -> ArtifactStorageService:
    return _component(request, "storage", "Artifact storage")


async def get_tax_service(request: Request) -> OrderTaxService:
    return _component(request, "tax_service", "Tax service")


async def get_csv_composer(request: Request) -> CsvComposer:
    return _component(request, "csv_composer", "CSV composer")


async def get_pdf_renderer(request: Request) -> PdfDocumentRenderer:
    return _component(request, "pdf_renderer", "PDF renderer")


async def get_templates(request: Request) -> TemplateRegistry:
    return _component(request, "templates", "Template registry")


async def get_order_provider(request: Request) -> OrderProvider:
    return _component(request, "order_provider", "Order provider")


async def get_event_processor(request: Request) -> EventProcessor:
    return _component(request, "event_processor", "Event processor")


async def get_verifier(request: Request) -> WebhookVerifier:
    return _component(request, "verifier", "Webhook verifier")


async def get_monitor(request: Request) -> EventMonitor:
    return _component(request, "monitor", "Event monitor")


async def get_session_store(request: Request) -> SessionStore:
    return _component(request, "session_store", "Session store")


async def get_session_context(
    request: Request,
    x_shop_domain: str | None = Header(None),
    authorization: str | None = Header(None),
) -> SessionContext:
    """Resolve the calling shop from ``X-Shop-Domain`` and a bearer token.

    Raises:
        AuthenticationError: Missing headers, unknown shop or token mismatch
    """
    if not x_shop_domain or not authorization:
        raise AuthenticationError("Missing shop session credentials")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("Authorization header must use the Bearer scheme")

    sessions: SessionStore = _component(request, "session_store", "Session store")
    session = await sessions.load(x_shop_domain.strip())
    if session is None or not hmac.compare_digest(
        session.access_token.encode("utf-8"), token.strip().encode("utf-8")
    ):
        logger.warning(
            "Rejected shop session",
            extra={
                "shop": sanitize_shop(x_shop_domain),
                "trace_id": getattr(request.state, "trace_id", None),
            },
        )
        raise AuthenticationError()

    if session.seller_jurisdiction is None:
        return SessionContext(
            shop=session.shop,
            access_token=session.access_token,
            seller_jurisdiction=tax_settings.STORE_JURISDICTION,
            created_at=session.created_at,
        )
    return session
