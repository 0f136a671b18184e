"""PDF invoices rendered through an external HTML-to-PDF backend.

Bulk documents are rendered one order at a time within a single render
session and merged with pypdf. The session is always closed, including when
rendering or merging fails.
"""

import asyncio
import io
import logging
from dataclasses import dataclass
from typing import Sequence

from pypdf import PdfReader, PdfWriter

from gst.core.dates import Clock, file_timestamp, format_indian_date, local_date, utc_now
from gst.core.exceptions import BaseError, EmptyInputError, RenderBackendError
from gst.documents.invoice_html import html_document, invoice_pages
from gst.documents.render_backend import RenderBackend, RenderSession
from gst.documents.templates import DEFAULT_TEMPLATE, DocumentTemplate
from gst.models.tax import EnrichedOrder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PdfOptions:
    """Per-request overrides; None means "use the template's setting"."""

    include_tax_breakdown: bool | None = None
    include_classification_codes: bool | None = None
    group_by_date: bool = False
    max_items_per_page: int | None = None


@dataclass(frozen=True)
class PdfDocument:
    filename: str
    content: bytes
    page_count: int


def merge_pdfs(parts: Sequence[bytes]) -> tuple[bytes, int]:
    """Concatenate PDF payloads; returns the merged bytes and page count."""
    writer = PdfWriter()
    for part in parts:
        for page in PdfReader(io.BytesIO(part)).pages:
            writer.add_page(page)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue(), len(writer.pages)


class PdfDocumentRenderer:
    def __init__(self, backend: RenderBackend, clock: Clock = utc_now):
        self.backend = backend
        self.clock = clock

    async def render_order(
        self,
        entry: EnrichedOrder,
        template: DocumentTemplate = DEFAULT_TEMPLATE,
        options: PdfOptions = PdfOptions(),
    ) -> PdfDocument:
        if entry is None:
            raise EmptyInputError()
        document = await self._render([[entry]], [None], template, options)
        number = entry.order.name.lstrip("#")
        return PdfDocument(
            filename=f"order_{number}_{file_timestamp(self.clock())}.pdf",
            content=document[0],
            page_count=document[1],
        )

    async def render_bulk(
        self,
        entries: Sequence[EnrichedOrder],
        template: DocumentTemplate = DEFAULT_TEMPLATE,
        options: PdfOptions = PdfOptions(),
    ) -> PdfDocument:
        """Render many invoices into one document.

        Raises:
            EmptyInputError: If ``entries`` is empty (checked before any
                render session is opened)
            RenderBackendError: If the backend fails
        """
        if not entries:
            raise EmptyInputError()

        if options.group_by_date:
            ordered = sorted(entries, key=lambda e: e.order.created_at)
            groups: dict = {}
            for entry in ordered:
                groups.setdefault(local_date(entry.order.created_at), []).append(entry)
            batches = list(groups.values())
            titles = [f"Orders for {format_indian_date(day)}" for day in groups]
        else:
            batches = [[entry] for entry in entries]
            titles = [None] * len(batches)

        content, page_count = await self._render(batches, titles, template, options)
        return PdfDocument(
            filename=f"bulk_orders_{len(entries)}_{file_timestamp(self.clock())}.pdf",
            content=content,
            page_count=page_count,
        )

    async def _render(
        self,
        batches: Sequence[Sequence[EnrichedOrder]],
        titles: Sequence[str | None],
        template: DocumentTemplate,
        options: PdfOptions,
    ) -> tuple[bytes, int]:
        show_tax = (
            template.show_tax_breakdown
            if options.include_tax_breakdown is None
            else options.include_tax_breakdown
        )
        show_codes = (
            template.show_classification_codes
            if options.include_classification_codes is None
            else options.include_classification_codes
        )
        per_page = options.max_items_per_page or template.max_items_per_page

        session: RenderSession | None = None
        try:
            session = await self.backend.open_session()
            parts = []
            for batch, title in zip(batches, titles):
                pages = []
                for index, entry in enumerate(batch):
                    pages += invoice_pages(
                        entry,
                        template,
                        show_tax=show_tax,
                        show_codes=show_codes,
                        max_items_per_page=per_page,
                        section_title=title if index == 0 else None,
                    )
                parts.append(
                    await session.render_html(html_document(pages, template), template.layout)
                )

            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, merge_pdfs, parts)
        except BaseError:
            raise
        except Exception as e:
            logger.error(f"PDF rendering failed: {e}", exc_info=True)
            raise RenderBackendError(details={"detail": str(e)}) from e
        finally:
            if session is not None:
                await session.close()
