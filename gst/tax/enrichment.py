"""Order tax enrichment.

Applies the calculator to order snapshots. The service holds configuration
only; the seller jurisdiction is passed on every call.
"""

import logging
from decimal import Decimal
from typing import Iterable

from gst.core.config import DEFAULT_HSN_CODE, UNRESOLVED_JURISDICTION
from gst.core.exceptions import BaseError, JurisdictionUnresolvedError
from gst.models.orders import OrderRecord
from gst.models.tax import (
    EnrichedOrder,
    JurisdictionTotals,
    LineItemTax,
    OrderValidation,
    TaxBreakdown,
    TaxSummary,
)
from gst.tax.calculator import (
    DEFAULT_SCHEDULE,
    RateSchedule,
    breakdown_at_rate,
    compute_tax,
    fallback_breakdown,
    round_money,
)
from gst.tax.classification import classify_line_item, extract_apparel_details
from gst.tax.jurisdictions import normalize_code, resolve_name

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class OrderTaxService:
    """Computes GST for orders, one at a time or in batches."""

    def __init__(
        self,
        schedule: RateSchedule = DEFAULT_SCHEDULE,
        default_classification_code: str = DEFAULT_HSN_CODE,
    ):
        self.schedule = schedule
        self.default_classification_code = default_classification_code

    def resolve_buyer_jurisdiction(self, order: OrderRecord) -> str:
        """Shipping code, billing code, then a state name lookup.

        Raises:
            JurisdictionUnresolvedError: If no address identifies a state
        """
        for address in (order.shipping_address, order.billing_address):
            code = normalize_code(address.province_code) if address else None
            if code:
                return code

        for address in (order.shipping_address, order.billing_address):
            code = resolve_name(address.province) if address else None
            if code:
                return code

        raise JurisdictionUnresolvedError(details={"order_id": order.id})

    def taxable_amount(self, order: OrderRecord) -> Decimal:
        """Order subtotal, or the sum of discounted line totals when absent."""
        if order.subtotal_price is not None:
            return order.subtotal_price
        return sum((item.net_amount for item in order.line_items), ZERO)

    def classification_code(self, order: OrderRecord) -> str:
        """Code of the first line item; the configured default otherwise."""
        if order.line_items:
            return classify_line_item(
                order.line_items[0], self.default_classification_code
            )
        return self.default_classification_code

    def enrich_order(
        self, order: OrderRecord, seller_jurisdiction: str
    ) -> EnrichedOrder:
        """Compute order-level and per-line GST.

        Raises:
            JurisdictionUnresolvedError: If the buyer state is unknown
            ValidationError: If the taxable amount is not positive
        """
        buyer = self.resolve_buyer_jurisdiction(order)
        tax = compute_tax(
            self.taxable_amount(order),
            buyer,
            seller_jurisdiction,
            schedule=self.schedule,
            classification_code=self.classification_code(order),
        )
        return EnrichedOrder(
            order=order,
            tax=tax,
            buyer_jurisdiction=buyer,
            seller_jurisdiction=normalize_code(seller_jurisdiction) or "",
            line_taxes=self._allocate_lines(order, tax),
        )

    def enrich_orders(
        self, orders: Iterable[OrderRecord], seller_jurisdiction: str
    ) -> list[EnrichedOrder]:
        """Enrich every order; failures degrade to a zero-rated fallback."""
        enriched: list[EnrichedOrder] = []
        for order in orders:
            try:
                enriched.append(self.enrich_order(order, seller_jurisdiction))
            except BaseError as e:
                logger.warning(
                    f"GST calculation failed for order {order.name}: {e.message}",
                    extra={"order_id": order.id, "error_code": e.error_code},
                )
                enriched.append(self._fallback(order, seller_jurisdiction, e.message))
        return enriched

    def summarize(self, enriched_orders: Iterable[EnrichedOrder]) -> TaxSummary:
        summary = TaxSummary()
        for entry in enriched_orders:
            tax = entry.tax
            summary.total_orders += 1
            summary.total_taxable_amount += tax.taxable_amount
            summary.total_tax_amount += tax.total_tax_amount
            summary.total_cgst_amount += tax.cgst_amount or ZERO
            summary.total_sgst_amount += tax.sgst_amount or ZERO
            summary.total_igst_amount += tax.igst_amount or ZERO

            key = entry.buyer_jurisdiction or UNRESOLVED_JURISDICTION
            bucket = summary.by_jurisdiction.setdefault(key, JurisdictionTotals())
            bucket.order_count += 1
            bucket.taxable_amount += tax.taxable_amount
            bucket.tax_amount += tax.total_tax_amount
        return summary

    def validate_order(self, order: OrderRecord) -> OrderValidation:
        errors = []
        if order.total_price <= ZERO:
            errors.append("Order total must be greater than 0")
        if not order.line_items:
            errors.append("Order must have at least one line item")
        try:
            self.resolve_buyer_jurisdiction(order)
        except JurisdictionUnresolvedError:
            errors.append("Unable to determine customer state")
        return OrderValidation(is_valid=not errors, errors=tuple(errors))

    def is_tax_exempt(self, order: OrderRecord) -> bool:
        if order.customer and order.customer.tax_exempt:
            return True
        return any(not item.taxable for item in order.line_items)

    def _fallback(
        self, order: OrderRecord, seller_jurisdiction: str, reason: str
    ) -> EnrichedOrder:
        buyer = None
        try:
            buyer = self.resolve_buyer_jurisdiction(order)
        except JurisdictionUnresolvedError:
            pass
        return EnrichedOrder(
            order=order,
            tax=fallback_breakdown(
                self.taxable_amount(order), self.classification_code(order)
            ),
            buyer_jurisdiction=buyer,
            seller_jurisdiction=normalize_code(seller_jurisdiction) or "",
            tax_error=reason,
        )

    def _allocate_lines(
        self, order: OrderRecord, tax: TaxBreakdown
    ) -> tuple[LineItemTax, ...]:
        """Split the order's taxable amount across line items.

        Shares are proportional to each line's net amount; the last line takes
        the rounding remainder so the shares sum exactly to the order total.
        """
        items = order.line_items
        if not items:
            return ()

        weights = [item.net_amount for item in items]
        total_weight = sum(weights, ZERO)
        if total_weight <= ZERO:
            weights = [Decimal(max(item.quantity, 1)) for item in items]
            total_weight = sum(weights, ZERO)

        remaining = tax.taxable_amount
        line_taxes = []
        for index, (item, weight) in enumerate(zip(items, weights)):
            if index == len(items) - 1:
                share = remaining
            else:
                share = round_money(tax.taxable_amount * weight / total_weight)
                remaining -= share
            code = classify_line_item(item, self.default_classification_code)
            line_taxes.append(
                LineItemTax(
                    line_item=item,
                    taxable_amount=share,
                    tax=breakdown_at_rate(
                        share, tax.rate, tax.is_same_jurisdiction, code
                    ),
                    apparel=extract_apparel_details(item),
                )
            )
        return tuple(line_taxes)
