"""Inbound webhook deliveries and event health endpoints."""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse

from api.mappers import build_webhook_health
from api.schemas import ProblemDetail, WebhookAck, WebhookHealthResponse
from core.dependencies import get_event_processor, get_monitor, get_verifier
from core.logging_utils import sanitize_shop
from core.settings import webhook_settings
from gst.core.exceptions import AuthenticationError, WebhookProcessingError
from gst.events.monitoring import EventMonitor
from gst.events.processor import EventProcessor
from gst.events.verification import WebhookVerifier

router = APIRouter(prefix="/v1/webhooks", tags=["webhooks"])
logger = logging.getLogger(__name__)


@router.post(
    "",
    response_model=WebhookAck,
    responses={
        401: {"description": "Signature or headers invalid", "model": ProblemDetail},
        500: {"description": "Processing failed after retries", "model": ProblemDetail},
    },
)
@router.post("/app/uninstalled", response_model=WebhookAck, include_in_schema=False)
async def receive_webhook(
    request: Request,
    verifier: WebhookVerifier = Depends(get_verifier),
    processor: EventProcessor = Depends(get_event_processor),
):
    raw_body = await request.body()
    validation = verifier.validate(raw_body, request.headers)
    if not validation.is_valid:
        raise AuthenticationError(validation.reason or "Invalid webhook")

    try:
        await processor.dispatch(validation)
    except Exception as e:
        logger.error(
            f"Webhook {validation.topic} failed for {sanitize_shop(validation.shop)}: {e}",
            extra={"trace_id": getattr(request.state, "trace_id", None)},
        )
        raise WebhookProcessingError(validation.topic, str(e)) from e

    return WebhookAck()


@router.get("/health", response_model=WebhookHealthResponse)
async def webhook_health(
    shop: Optional[str] = Query(None, description="Limit to one shop domain"),
    format: Literal["json", "report"] = Query("json"),
    monitor: EventMonitor = Depends(get_monitor),
):
    if format == "report":
        return PlainTextResponse(monitor.health_report(shop))
    return build_webhook_health(
        monitor, shop, webhook_settings.HEALTH_ERROR_THRESHOLD_PCT
    )


@router.delete("/health")
async def clear_webhook_health(monitor: EventMonitor = Depends(get_monitor)):
    monitor.clear()
    logger.info("Webhook metrics cleared")
    return {"success": True, "message": "Webhook metrics cleared"}
