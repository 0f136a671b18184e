"""Two-tier GST calculator.

Pure functions only: the seller jurisdiction and the rate schedule are
explicit arguments, so concurrent callers never share mutable state.

Rounding: the total tax is rounded half-up to paise. For same-jurisdiction
supplies the CGST and SGST halves are the exact Decimal halves of that
rounded total, so ``cgst == sgst`` and ``cgst + sgst == total`` always hold.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from gst.core.config import (
    DEFAULT_HSN_CODE,
    GST_HIGH_RATE,
    GST_LOW_RATE,
    GST_RATE_THRESHOLD,
    MONEY_QUANTUM,
)
from gst.core.exceptions import JurisdictionUnresolvedError, ValidationError
from gst.models.tax import TaxBreakdown, TaxType

ZERO = Decimal("0")
TWO = Decimal("2")


@dataclass(frozen=True)
class RateSchedule:
    """Low rate below ``threshold``, high rate at or above it."""

    low_rate: Decimal = GST_LOW_RATE
    high_rate: Decimal = GST_HIGH_RATE
    threshold: Decimal = GST_RATE_THRESHOLD


DEFAULT_SCHEDULE = RateSchedule()


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def select_rate(amount: Decimal, schedule: RateSchedule = DEFAULT_SCHEDULE) -> Decimal:
    if amount < schedule.threshold:
        return schedule.low_rate
    return schedule.high_rate


def _normalize_jurisdiction(code: str | None, role: str) -> str:
    if code is None or not str(code).strip():
        raise JurisdictionUnresolvedError(
            f"Unable to determine {role} state",
            details={"role": role},
        )
    return str(code).strip().upper()


def breakdown_at_rate(
    amount: Decimal,
    rate: Decimal,
    same_jurisdiction: bool,
    classification_code: str = DEFAULT_HSN_CODE,
) -> TaxBreakdown:
    """Apply a fixed rate to ``amount`` and split it by jurisdiction."""
    total = round_money(amount * rate)
    if same_jurisdiction:
        half = total / TWO
        return TaxBreakdown(
            tax_type=TaxType.SAME_JURISDICTION,
            rate=rate,
            taxable_amount=amount,
            total_tax_amount=total,
            cgst_amount=half,
            sgst_amount=half,
            classification_code=classification_code,
        )
    return TaxBreakdown(
        tax_type=TaxType.CROSS_JURISDICTION,
        rate=rate,
        taxable_amount=amount,
        total_tax_amount=total,
        igst_amount=total,
        classification_code=classification_code,
    )


def compute_tax(
    taxable_amount: Decimal,
    buyer_jurisdiction: str | None,
    seller_jurisdiction: str | None,
    *,
    schedule: RateSchedule = DEFAULT_SCHEDULE,
    classification_code: str = DEFAULT_HSN_CODE,
) -> TaxBreakdown:
    """Compute the GST breakdown for one taxable amount.

    Args:
        taxable_amount: Positive amount in INR
        buyer_jurisdiction: Buyer's state code
        seller_jurisdiction: Seller's state code
        schedule: Rate tiers and threshold
        classification_code: HSN code carried into the breakdown

    Returns:
        TaxBreakdown with CGST/SGST halves or a single IGST component

    Raises:
        ValidationError: If the amount is not positive
        JurisdictionUnresolvedError: If either jurisdiction is missing
    """
    amount = Decimal(taxable_amount)
    if amount <= ZERO:
        raise ValidationError(
            "Taxable amount must be greater than 0",
            field="taxable_amount",
            details={"taxable_amount": str(amount)},
        )

    buyer = _normalize_jurisdiction(buyer_jurisdiction, "customer")
    seller = _normalize_jurisdiction(seller_jurisdiction, "store")

    rate = select_rate(amount, schedule)
    return breakdown_at_rate(amount, rate, buyer == seller, classification_code)


def fallback_breakdown(
    taxable_amount: Decimal = ZERO,
    classification_code: str = DEFAULT_HSN_CODE,
) -> TaxBreakdown:
    """Zero-rated placeholder used when a batch entry cannot be computed."""
    return TaxBreakdown(
        tax_type=TaxType.CROSS_JURISDICTION,
        rate=ZERO,
        taxable_amount=Decimal(taxable_amount),
        total_tax_amount=ZERO,
        igst_amount=ZERO,
        classification_code=classification_code,
        is_fallback=True,
    )
