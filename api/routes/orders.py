"""Single-order tax lookup and invoice PDF endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from api.mappers import build_order_tax_response
from api.routes.downloads import attachment_headers
from api.schemas import OrderTaxResponse, ProblemDetail
from core.dependencies import (
    get_order_provider,
    get_pdf_renderer,
    get_session_context,
    get_tax_service,
    get_templates,
)
from gst.core.config import CONTENT_TYPE_PDF
from gst.core.exceptions import ResourceNotFoundError, ValidationError
from gst.documents.pdf_render import PdfDocumentRenderer, PdfOptions
from gst.documents.templates import TemplateRegistry
from gst.models.orders import OrderRecord
from gst.models.session import SessionContext
from gst.ports import OrderProvider
from gst.tax.enrichment import OrderTaxService

router = APIRouter(prefix="/v1/orders", tags=["orders"])
logger = logging.getLogger(__name__)

ERRORS = {
    401: {"description": "Unauthorized", "model": ProblemDetail},
    404: {"description": "Order not found", "model": ProblemDetail},
    422: {"description": "Order cannot be taxed", "model": ProblemDetail},
    502: {"description": "Upstream service failure", "model": ProblemDetail},
}


async def _load_order(
    provider: OrderProvider, session: SessionContext, order_id: str
) -> OrderRecord:
    order = await provider.fetch_order(session, order_id)
    if order is None:
        raise ResourceNotFoundError("Order", order_id)
    return order


@router.get("/{order_id}/tax", response_model=OrderTaxResponse, responses=ERRORS)
async def get_order_tax(
    order_id: str,
    session: SessionContext = Depends(get_session_context),
    provider: OrderProvider = Depends(get_order_provider),
    tax_service: OrderTaxService = Depends(get_tax_service),
):
    order = await _load_order(provider, session, order_id)
    validation = tax_service.validate_order(order)
    if not validation.is_valid:
        raise ValidationError(
            validation.errors[0],
            field="order",
            details={"order_id": order.id, "errors": list(validation.errors)},
        )
    entry = tax_service.enrich_order(order, session.seller_jurisdiction)
    return build_order_tax_response(entry, tax_service.is_tax_exempt(order))


@router.get(
    "/{order_id}/pdf",
    response_class=Response,
    responses={**ERRORS, 200: {"content": {CONTENT_TYPE_PDF: {}}}},
)
async def get_order_pdf(
    order_id: str,
    request: Request,
    template_id: Optional[str] = Query(None, alias="templateId"),
    include_tax_breakdown: Optional[bool] = Query(None, alias="includeTaxBreakdown"),
    session: SessionContext = Depends(get_session_context),
    provider: OrderProvider = Depends(get_order_provider),
    tax_service: OrderTaxService = Depends(get_tax_service),
    renderer: PdfDocumentRenderer = Depends(get_pdf_renderer),
    templates: TemplateRegistry = Depends(get_templates),
):
    order = await _load_order(provider, session, order_id)
    entry = tax_service.enrich_order(order, session.seller_jurisdiction)
    template = templates.get(template_id, session.shop)
    document = await renderer.render_order(
        entry, template, PdfOptions(include_tax_breakdown=include_tax_breakdown)
    )
    logger.info(
        f"Rendered invoice {document.filename} ({document.page_count} pages)",
        extra={
            "trace_id": getattr(request.state, "trace_id", None),
            "order_id": order.id,
        },
    )
    return Response(
        content=document.content,
        media_type=CONTENT_TYPE_PDF,
        headers=attachment_headers(document.filename, len(document.content)),
    )
