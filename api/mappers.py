from decimal import Decimal

from api.schemas import (
    EventMetricResponse,
    HealthStatusResponse,
    LineTaxResponse,
    OrderTaxResponse,
    TaxBreakdownResponse,
    WebhookHealthResponse,
)
from gst.events.monitoring import EventMonitor, HealthStatus
from gst.models.tax import EnrichedOrder, TaxBreakdown


def _money(amount: Decimal | None) -> str | None:
    return None if amount is None else str(amount)


def build_tax_breakdown(tax: TaxBreakdown) -> TaxBreakdownResponse:
    """Pure transformation; amounts are rendered as exact decimal strings."""
    return TaxBreakdownResponse(
        tax_type=tax.tax_type.value,
        rate=str(tax.rate),
        rate_percent=f"{tax.rate_percent:.2f}",
        taxable_amount=str(tax.taxable_amount),
        total_tax_amount=str(tax.total_tax_amount),
        cgst_amount=_money(tax.cgst_amount),
        sgst_amount=_money(tax.sgst_amount),
        igst_amount=_money(tax.igst_amount),
        classification_code=tax.classification_code,
        total_amount=str(tax.total_amount),
    )


def build_order_tax_response(entry: EnrichedOrder, tax_exempt: bool) -> OrderTaxResponse:
    order = entry.order
    return OrderTaxResponse(
        order_id=order.id,
        order_number=order.name,
        buyer_jurisdiction=entry.buyer_jurisdiction,
        seller_jurisdiction=entry.seller_jurisdiction,
        tax=build_tax_breakdown(entry.tax),
        line_items=[
            LineTaxResponse(
                line_item_id=line.line_item.id,
                title=line.line_item.name or line.line_item.title,
                quantity=line.line_item.quantity,
                taxable_amount=str(line.taxable_amount),
                classification_code=line.tax.classification_code,
                tax=build_tax_breakdown(line.tax),
                size=line.apparel.size,
                color=line.apparel.color,
                material=line.apparel.material,
            )
            for line in entry.line_taxes
        ],
        tax_exempt=tax_exempt,
    )


def _status(status: HealthStatus) -> HealthStatusResponse:
    return HealthStatusResponse(**status.to_dict())


def build_webhook_health(
    monitor: EventMonitor, scope: str | None, threshold: float
) -> WebhookHealthResponse:
    return WebhookHealthResponse(
        scope=scope or "all",
        healthy=monitor.is_healthy(scope, threshold),
        overall=_status(monitor.health_status(scope)),
        by_topic={
            topic: _status(stats) for topic, stats in monitor.stats_by_topic(scope).items()
        },
        recent_failures=[
            EventMetricResponse(**metric.to_dict())
            for metric in monitor.recent_failures(scope)
        ],
    )
