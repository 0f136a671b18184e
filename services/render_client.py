"""HTML-to-PDF render backend over HTTP.

Targets a Chromium conversion service that accepts a multipart form with an
``index.html`` file (Gotenberg ``/forms/chromium/convert/html`` contract).
"""

import logging

import httpx

from core.settings import commerce_settings
from gst.core.exceptions import RenderBackendError
from gst.documents.templates import TemplateLayout

logger = logging.getLogger(__name__)

CONVERT_PATH = "/forms/chromium/convert/html"
MM_PER_INCH = 25.4

# Paper sizes in inches (width, height), portrait
PAPER_SIZES = {
    "A4": (8.27, 11.7),
    "A5": (5.83, 8.27),
    "Letter": (8.5, 11.0),
}


def layout_form(layout: TemplateLayout) -> dict[str, str]:
    """Form fields describing page size, orientation and margins."""
    width, height = PAPER_SIZES.get(layout.page_size, PAPER_SIZES["A4"])
    margins = layout.margins
    return {
        "paperWidth": str(width),
        "paperHeight": str(height),
        "landscape": "true" if layout.orientation == "landscape" else "false",
        "marginTop": f"{margins.top / MM_PER_INCH:.3f}",
        "marginBottom": f"{margins.bottom / MM_PER_INCH:.3f}",
        "marginLeft": f"{margins.left / MM_PER_INCH:.3f}",
        "marginRight": f"{margins.right / MM_PER_INCH:.3f}",
        "printBackground": "true",
    }


class HttpRenderSession:
    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def render_html(self, html: str, layout: TemplateLayout) -> bytes:
        files = {"files": ("index.html", html.encode("utf-8"), "text/html")}
        try:
            response = await self._client.post(
                CONVERT_PATH, data=layout_form(layout), files=files
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error(f"Render service timeout: {e}")
            raise RenderBackendError("timeout", details={"detail": str(e)}) from e
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Render service HTTP error: {e.response.status_code} - {e.response.text[:200]}"
            )
            raise RenderBackendError(
                details={"detail": f"HTTP {e.response.status_code}"}
            ) from e
        except httpx.TransportError as e:
            logger.error(f"Render service connection failed: {e}")
            raise RenderBackendError("unavailable", details={"detail": str(e)}) from e

        return response.content

    async def close(self) -> None:
        await self._client.aclose()


class HttpRenderBackend:
    """Opens one pooled HTTP client per render session."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or commerce_settings.RENDER_SERVICE_URL).rstrip("/")
        self.timeout = timeout or commerce_settings.RENDER_TIMEOUT_SECONDS
        self.transport = transport
        logger.info(f"HttpRenderBackend initialized with URL: {self.base_url}")

    async def open_session(self) -> HttpRenderSession:
        client = httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self.transport
        )
        return HttpRenderSession(client)


def create_render_backend_from_settings() -> HttpRenderBackend:
    return HttpRenderBackend(
        base_url=commerce_settings.RENDER_SERVICE_URL,
        timeout=commerce_settings.RENDER_TIMEOUT_SECONDS,
    )
