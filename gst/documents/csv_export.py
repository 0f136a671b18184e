"""CSV exports of enriched orders.

Three shapes are produced from the same rows: detailed (one row per line
item), grouped by date (detailed rows sorted by order date) and summary
(one aggregated row per date, customer or product). Quoting is delegated to
the standard ``csv`` writer, which quotes separators, quotes and line breaks.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable, Sequence

from gst.core.config import LARGE_EXPORT_WARNING_ROWS, MONEY_QUANTUM
from gst.core.dates import date_key, format_indian_date, local_date, utc_now
from gst.core.exceptions import EmptyInputError, ValidationError
from gst.models.orders import LineItem, OrderRecord
from gst.models.tax import EnrichedOrder, TaxBreakdown
from gst.tax.calculator import fallback_breakdown

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

DETAILED_HEADERS = (
    "Order Number",
    "Order Date",
    "Customer Name",
    "Customer Email",
    "Customer Phone",
    "Shipping Address",
    "Billing Address",
    "Product Name",
    "Variant",
    "Quantity",
    "Unit Price (₹)",
    "Line Total (₹)",
    "HSN Code",
    "GST Type",
    "GST Rate (%)",
    "CGST Amount (₹)",
    "SGST Amount (₹)",
    "IGST Amount (₹)",
    "Total GST (₹)",
    "Total Amount (₹)",
)

SUMMARY_VALUE_HEADERS = (
    "Order Count",
    "Total Quantity",
    "Taxable Amount (₹)",
    "CGST Amount (₹)",
    "SGST Amount (₹)",
    "IGST Amount (₹)",
    "Total GST (₹)",
    "Total Amount (₹)",
)


class SummaryGroup(str, Enum):
    DATE = "date"
    CUSTOMER = "customer"
    PRODUCT = "product"


@dataclass(frozen=True)
class CsvRow:
    """One detailed export row (one line item of one order)."""

    order_number: str
    order_date: datetime
    customer_name: str
    customer_email: str
    customer_phone: str
    shipping_address: str
    billing_address: str
    product_name: str
    variant: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    hsn_code: str
    tax: TaxBreakdown | None

    @property
    def total_amount(self) -> Decimal:
        return self.line_total + (self.tax.total_tax_amount if self.tax else ZERO)


@dataclass(frozen=True)
class CsvDocument:
    filename: str
    content: str
    row_count: int


@dataclass
class ExportValidation:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class _SummaryBucket:
    order_ids: set = field(default_factory=set)
    quantity: int = 0
    taxable: Decimal = ZERO
    cgst: Decimal = ZERO
    sgst: Decimal = ZERO
    igst: Decimal = ZERO
    tax: Decimal = ZERO


def format_money(amount: Decimal | None) -> str:
    value = amount if amount is not None else ZERO
    return str(value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP))


def format_rate(rate: Decimal) -> str:
    """0.12 -> ``12.00%``."""
    return f"{format_money(rate * 100)}%"


def validate_orders_for_export(orders: Sequence[OrderRecord]) -> ExportValidation:
    result = ExportValidation(is_valid=True)
    if not orders:
        result.is_valid = False
        result.errors.append("No orders provided for export")
        return result

    if len(orders) > LARGE_EXPORT_WARNING_ROWS:
        result.warnings.append(
            f"Large export detected ({len(orders)} orders). "
            "Consider breaking into smaller batches."
        )

    missing_customer = sum(1 for order in orders if not order.has_customer_info)
    if missing_customer:
        result.warnings.append(
            f"{missing_customer} orders have no customer information"
        )
    return result


class CsvComposer:
    """Builds CSV documents from enriched orders."""

    def order_rows(
        self, entry: EnrichedOrder, include_tax_breakdown: bool = True
    ) -> list[CsvRow]:
        order = entry.order
        shipping = order.shipping_address.formatted() if order.shipping_address else ""
        billing = order.billing_address.formatted() if order.billing_address else ""

        if entry.line_taxes:
            lines = [
                (lt.line_item, lt.taxable_amount, lt.tax) for lt in entry.line_taxes
            ]
        else:
            lines = [
                (item, item.net_amount, fallback_breakdown(item.net_amount, entry.tax.classification_code))
                for item in order.line_items
            ]

        return [
            CsvRow(
                order_number=order.name,
                order_date=order.created_at,
                customer_name=order.customer_name,
                customer_email=order.customer_email,
                customer_phone=order.customer_phone,
                shipping_address=shipping,
                billing_address=billing,
                product_name=_product_name(item),
                variant=item.variant_title or "",
                quantity=item.quantity,
                unit_price=item.price,
                line_total=amount,
                hsn_code=tax.classification_code,
                tax=tax if include_tax_breakdown else None,
            )
            for item, amount, tax in lines
        ]

    def rows(
        self,
        enriched_orders: Iterable[EnrichedOrder],
        include_tax_breakdown: bool = True,
        group_by_date: bool = False,
    ) -> list[CsvRow]:
        rows = [
            row
            for entry in enriched_orders
            for row in self.order_rows(entry, include_tax_breakdown)
        ]
        if group_by_date:
            # sorted() is stable, so rows of one order stay together
            rows = sorted(rows, key=lambda row: row.order_date)
        return rows

    def render_rows(self, rows: Iterable[CsvRow]) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(DETAILED_HEADERS)
        for row in rows:
            tax = row.tax
            writer.writerow(
                [
                    row.order_number,
                    format_indian_date(row.order_date),
                    row.customer_name,
                    row.customer_email,
                    row.customer_phone,
                    row.shipping_address,
                    row.billing_address,
                    row.product_name,
                    row.variant,
                    row.quantity,
                    format_money(row.unit_price),
                    format_money(row.line_total),
                    row.hsn_code,
                    tax.tax_type.value if tax else "",
                    format_rate(tax.rate) if tax and tax.rate else "",
                    format_money(tax.cgst_amount) if tax else "",
                    format_money(tax.sgst_amount) if tax else "",
                    format_money(tax.igst_amount) if tax else "",
                    format_money(tax.total_tax_amount) if tax else "",
                    format_money(row.total_amount),
                ]
            )
        return buffer.getvalue()

    def detailed(
        self,
        enriched_orders: Sequence[EnrichedOrder],
        *,
        include_tax_breakdown: bool = True,
        group_by_date: bool = False,
        filename: str | None = None,
    ) -> CsvDocument:
        """One row per line item, optionally sorted by order date.

        Raises:
            EmptyInputError: If there are no orders
        """
        if not enriched_orders:
            raise EmptyInputError("No orders provided for export")
        rows = self.rows(enriched_orders, include_tax_breakdown, group_by_date)
        logger.info(f"Composed CSV with {len(rows)} rows from {len(enriched_orders)} orders")
        return CsvDocument(
            filename=filename or export_filename(),
            content=self.render_rows(rows),
            row_count=len(rows),
        )

    def grouped_by_date(
        self, enriched_orders: Sequence[EnrichedOrder], **kwargs
    ) -> CsvDocument:
        return self.detailed(enriched_orders, group_by_date=True, **kwargs)

    def summary(
        self,
        enriched_orders: Sequence[EnrichedOrder],
        *,
        group_by: SummaryGroup | str = SummaryGroup.DATE,
        filename: str | None = None,
    ) -> CsvDocument:
        """One aggregated row per date, customer or product.

        Raises:
            EmptyInputError: If there are no orders
            ValidationError: If ``group_by`` is not supported
        """
        if not enriched_orders:
            raise EmptyInputError("No orders provided for export")
        try:
            group = SummaryGroup(group_by)
        except ValueError:
            raise ValidationError(
                f"Unsupported summary grouping: {group_by}", field="group_by"
            )

        buckets: dict[tuple, _SummaryBucket] = {}
        labels: dict[tuple, str] = {}
        for row in self.rows(enriched_orders):
            key, label = _group_key(row, group)
            labels[key] = label
            bucket = buckets.setdefault(key, _SummaryBucket())
            bucket.order_ids.add(row.order_number)
            bucket.quantity += row.quantity
            bucket.taxable += row.line_total
            if row.tax:
                bucket.cgst += row.tax.cgst_amount or ZERO
                bucket.sgst += row.tax.sgst_amount or ZERO
                bucket.igst += row.tax.igst_amount or ZERO
                bucket.tax += row.tax.total_tax_amount

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow((group.value.capitalize(),) + SUMMARY_VALUE_HEADERS)
        for key in sorted(buckets):
            bucket = buckets[key]
            writer.writerow(
                [
                    labels[key],
                    len(bucket.order_ids),
                    bucket.quantity,
                    format_money(bucket.taxable),
                    format_money(bucket.cgst),
                    format_money(bucket.sgst),
                    format_money(bucket.igst),
                    format_money(bucket.tax),
                    format_money(bucket.taxable + bucket.tax),
                ]
            )

        return CsvDocument(
            filename=filename or summary_filename(group.value),
            content=buffer.getvalue(),
            row_count=len(buckets),
        )


def _product_name(item: LineItem) -> str:
    return item.name or item.title


def _group_key(row: CsvRow, group: SummaryGroup) -> tuple[tuple, str]:
    if group is SummaryGroup.DATE:
        day = local_date(row.order_date)
        return (day.isoformat(),), format_indian_date(day)
    if group is SummaryGroup.CUSTOMER:
        name = row.customer_name or row.customer_email or "Unknown"
        return (name.lower(),), name
    return (row.product_name.lower(),), row.product_name


def export_filename(today: date | None = None) -> str:
    return f"orders_export_{date_key(today or utc_now())}.csv"


def range_filename(start: date, end: date) -> str:
    return f"orders_{date_key(start)}_to_{date_key(end)}.csv"


def summary_filename(group: str, today: date | None = None) -> str:
    return f"orders_summary_{group}_{date_key(today or utc_now())}.csv"


def bulk_filename(job_id: str) -> str:
    return f"bulk_orders_{job_id}.csv"
