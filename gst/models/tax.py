"""Tax computation results attached to orders or rolled into summaries."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from gst.models.orders import LineItem, OrderRecord

ZERO = Decimal("0")


class TaxType(str, Enum):
    """Same-jurisdiction (CGST + SGST) or cross-jurisdiction (IGST)."""

    SAME_JURISDICTION = "CGST_SGST"
    CROSS_JURISDICTION = "IGST"


@dataclass(frozen=True)
class TaxBreakdown:
    """GST for one taxable amount.

    Attributes:
        tax_type: Which split applies
        rate: Either the low or the high tier
        taxable_amount: Amount the rate was applied to
        total_tax_amount: taxable_amount * rate, rounded to paise
        cgst_amount: Central half (same jurisdiction only)
        sgst_amount: State half (same jurisdiction only)
        igst_amount: Whole tax (cross jurisdiction only)
        classification_code: HSN code of the goods
        is_fallback: Placeholder substituted after a failed computation
    """

    tax_type: TaxType
    rate: Decimal
    taxable_amount: Decimal
    total_tax_amount: Decimal
    classification_code: str
    cgst_amount: Decimal | None = None
    sgst_amount: Decimal | None = None
    igst_amount: Decimal | None = None
    is_fallback: bool = False

    @property
    def is_same_jurisdiction(self) -> bool:
        return self.tax_type is TaxType.SAME_JURISDICTION

    @property
    def rate_percent(self) -> Decimal:
        return self.rate * 100

    @property
    def total_amount(self) -> Decimal:
        """Taxable amount plus tax."""
        return self.taxable_amount + self.total_tax_amount

    def to_dict(self) -> dict:
        return {
            "type": self.tax_type.value,
            "rate": str(self.rate),
            "taxable_amount": str(self.taxable_amount),
            "total_tax_amount": str(self.total_tax_amount),
            "cgst_amount": None if self.cgst_amount is None else str(self.cgst_amount),
            "sgst_amount": None if self.sgst_amount is None else str(self.sgst_amount),
            "igst_amount": None if self.igst_amount is None else str(self.igst_amount),
            "classification_code": self.classification_code,
            "is_fallback": self.is_fallback,
        }


@dataclass(frozen=True)
class ApparelDetails:
    size: str | None = None
    color: str | None = None
    material: str | None = None


@dataclass(frozen=True)
class LineItemTax:
    """Share of the order's tax allocated to one line item."""

    line_item: LineItem
    taxable_amount: Decimal
    tax: TaxBreakdown
    apparel: ApparelDetails = field(default_factory=ApparelDetails)


@dataclass(frozen=True)
class EnrichedOrder:
    """An order snapshot paired with its computed tax. The order is untouched."""

    order: OrderRecord
    tax: TaxBreakdown
    buyer_jurisdiction: str | None
    seller_jurisdiction: str
    line_taxes: tuple[LineItemTax, ...] = ()
    tax_error: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.tax.is_fallback


@dataclass
class JurisdictionTotals:
    order_count: int = 0
    taxable_amount: Decimal = ZERO
    tax_amount: Decimal = ZERO


@dataclass
class TaxSummary:
    total_orders: int = 0
    total_taxable_amount: Decimal = ZERO
    total_tax_amount: Decimal = ZERO
    total_cgst_amount: Decimal = ZERO
    total_sgst_amount: Decimal = ZERO
    total_igst_amount: Decimal = ZERO
    by_jurisdiction: dict[str, JurisdictionTotals] = field(default_factory=dict)


@dataclass(frozen=True)
class OrderValidation:
    is_valid: bool
    errors: tuple[str, ...] = ()
