"""Direct (non-job) CSV export endpoints."""

import logging
from datetime import datetime, time
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request, Response

from api.routes.downloads import attachment_headers
from api.schemas import CsvExportRequest, DateRange, ProblemDetail
from core.dependencies import (
    get_csv_composer,
    get_order_provider,
    get_session_context,
    get_tax_service,
)
from core.settings import job_settings
from gst.core.config import CONTENT_TYPE_CSV
from gst.core.dates import IST
from gst.core.exceptions import EmptyInputError, RangeTooLargeError, TooManyItemsError
from gst.documents.csv_export import (
    CsvComposer,
    CsvDocument,
    export_filename,
    range_filename,
    validate_orders_for_export,
)
from gst.models.orders import OrderRecord
from gst.models.session import SessionContext
from gst.ports import OrderProvider
from gst.tax.enrichment import OrderTaxService

router = APIRouter(prefix="/v1/exports", tags=["exports"])
logger = logging.getLogger(__name__)

ERRORS = {
    400: {"description": "Too many items or range too large", "model": ProblemDetail},
    401: {"description": "Unauthorized", "model": ProblemDetail},
}


async def _load_orders(
    provider: OrderProvider,
    session: SessionContext,
    order_ids: list[str] | None,
    date_range: DateRange | None,
    max_items: int,
) -> list[OrderRecord]:
    if order_ids:
        if len(order_ids) > max_items:
            raise TooManyItemsError(max_items, len(order_ids))
        return await provider.fetch_orders(session, order_ids)

    if date_range.days > job_settings.MAX_EXPORT_RANGE_DAYS:
        raise RangeTooLargeError(job_settings.MAX_EXPORT_RANGE_DAYS, date_range.days)
    return await provider.fetch_orders_in_range(
        session,
        datetime.combine(date_range.start, time.min, tzinfo=IST),
        datetime.combine(date_range.end, time.max, tzinfo=IST),
        limit=job_settings.MAX_EXPORT_ITEMS,
    )


def _compose(
    composer: CsvComposer,
    tax_service: OrderTaxService,
    orders: list[OrderRecord],
    seller: str,
    body: CsvExportRequest,
) -> CsvDocument:
    validation = validate_orders_for_export(orders)
    if not validation.is_valid:
        raise EmptyInputError(validation.errors[0])
    for warning in validation.warnings:
        logger.warning(f"CSV export: {warning}")

    enriched = tax_service.enrich_orders(orders, seller)
    if body.export_type == "summary":
        return composer.summary(enriched, group_by=body.group_by)

    filename = (
        range_filename(body.date_range.start, body.date_range.end)
        if body.date_range is not None and not body.order_ids
        else export_filename()
    )
    return composer.detailed(
        enriched,
        include_tax_breakdown=body.include_tax_breakdown,
        group_by_date=body.group_by_date,
        filename=filename,
    )


def _csv_response(document: CsvDocument) -> Response:
    content = document.content.encode("utf-8")
    return Response(
        content=content,
        media_type=CONTENT_TYPE_CSV,
        headers=attachment_headers(document.filename, len(content)),
    )


async def _export(
    request: Request,
    body: CsvExportRequest,
    max_items: int,
    session: SessionContext,
    provider: OrderProvider,
    tax_service: OrderTaxService,
    composer: CsvComposer,
) -> Response:
    orders = await _load_orders(
        provider, session, body.order_ids, body.date_range, max_items
    )
    seller = body.seller_jurisdiction or session.seller_jurisdiction
    document = _compose(composer, tax_service, orders, seller, body)
    logger.info(
        f"CSV export {document.filename}: {document.row_count} rows",
        extra={"trace_id": getattr(request.state, "trace_id", None)},
    )
    return _csv_response(document)


@router.post("/csv", response_class=Response, responses=ERRORS)
async def export_csv(
    request: Request,
    body: CsvExportRequest,
    session: SessionContext = Depends(get_session_context),
    provider: OrderProvider = Depends(get_order_provider),
    tax_service: OrderTaxService = Depends(get_tax_service),
    composer: CsvComposer = Depends(get_csv_composer),
):
    return await _export(
        request,
        body,
        job_settings.MAX_EXPORT_ITEMS,
        session,
        provider,
        tax_service,
        composer,
    )


@router.get("/csv", response_class=Response, responses=ERRORS)
async def export_csv_by_query(
    request: Request,
    ids: str = Query(..., description="Comma-separated order ids"),
    export_type: Literal["detailed", "summary"] = Query("detailed", alias="exportType"),
    group_by: Literal["date", "customer", "product"] = Query("date", alias="groupBy"),
    include_tax_breakdown: bool = Query(True, alias="includeTaxBreakdown"),
    session: SessionContext = Depends(get_session_context),
    provider: OrderProvider = Depends(get_order_provider),
    tax_service: OrderTaxService = Depends(get_tax_service),
    composer: CsvComposer = Depends(get_csv_composer),
):
    order_ids = [part.strip() for part in ids.split(",") if part.strip()]
    if not order_ids:
        raise EmptyInputError("Order IDs are required")
    body = CsvExportRequest(
        order_ids=order_ids,
        export_type=export_type,
        group_by=group_by,
        include_tax_breakdown=include_tax_breakdown,
    )
    return await _export(
        request,
        body,
        job_settings.MAX_EXPORT_QUERY_ITEMS,
        session,
        provider,
        tax_service,
        composer,
    )
