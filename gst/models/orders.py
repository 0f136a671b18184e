"""Typed order snapshot returned by the commerce data provider.

Orders are validated once, at the enrichment boundary, and are immutable
afterwards. Unknown provider fields are ignored.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from gst.core.exceptions import ValidationError


def _to_str(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


Identifier = Annotated[str, BeforeValidator(_to_str)]


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class Address(_Snapshot):
    name: str | None = None
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    province: str | None = None
    province_code: str | None = None
    zip: str | None = None
    country: str | None = None
    phone: str | None = None

    def formatted(self) -> str:
        """Single-line address as printed in exports."""
        parts = [
            self.address1,
            self.address2,
            self.city,
            self.province,
            self.zip,
            self.country,
        ]
        return ", ".join(part for part in parts if part)


class Customer(_Snapshot):
    id: Identifier | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    tax_exempt: bool = False

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p).strip()


class LineItemProperty(_Snapshot):
    name: str
    value: Annotated[str, BeforeValidator(_to_str)] = ""


class LineItem(_Snapshot):
    id: Identifier
    title: str
    name: str | None = None
    variant_title: str | None = None
    sku: str | None = None
    product_type: str | None = None
    quantity: int = Field(..., ge=0)
    price: Decimal = Field(..., ge=0)
    total_discount: Decimal = Decimal("0")
    taxable: bool = True
    hsn_code: str | None = None
    properties: tuple[LineItemProperty, ...] = ()

    @property
    def gross_amount(self) -> Decimal:
        """Unit price times quantity, before line discount."""
        return self.price * self.quantity

    @property
    def net_amount(self) -> Decimal:
        return max(self.gross_amount - self.total_discount, Decimal("0"))

    def property_value(self, *names: str) -> str | None:
        wanted = {n.lower() for n in names}
        for prop in self.properties:
            if prop.name.lower() in wanted and prop.value:
                return prop.value
        return None


class OrderRecord(_Snapshot):
    """Read-only order snapshot owned by the commerce provider."""

    id: Identifier
    name: str
    order_number: Identifier | None = None
    created_at: datetime
    updated_at: datetime | None = None
    currency: str = "INR"
    total_price: Decimal
    subtotal_price: Decimal | None = None
    total_tax: Decimal | None = None
    total_discounts: Decimal = Decimal("0")
    email: str | None = None
    phone: str | None = None
    financial_status: str | None = None
    fulfillment_status: str | None = None
    customer: Customer | None = None
    shipping_address: Address | None = None
    billing_address: Address | None = None
    line_items: tuple[LineItem, ...] = ()

    @property
    def customer_name(self) -> str:
        if self.customer and self.customer.full_name:
            return self.customer.full_name
        for address in (self.billing_address, self.shipping_address):
            if address and address.name:
                return address.name
        return ""

    @property
    def customer_email(self) -> str:
        return self.email or (self.customer.email if self.customer else None) or ""

    @property
    def customer_phone(self) -> str:
        return (
            self.phone
            or (self.customer.phone if self.customer else None)
            or (self.shipping_address.phone if self.shipping_address else None)
            or ""
        )

    @property
    def has_customer_info(self) -> bool:
        return bool(self.customer_name or self.customer_email)


def parse_order(raw: dict[str, Any]) -> OrderRecord:
    """Validate a raw provider payload into an OrderRecord.

    Raises:
        ValidationError: If required fields are missing or malformed
    """
    try:
        return OrderRecord.model_validate(raw)
    except PydanticValidationError as e:
        first_error = e.errors()[0] if e.errors() else {}
        field = ".".join(str(part) for part in first_error.get("loc", ()))
        raise ValidationError(
            message=f"Invalid order payload: {first_error.get('msg', 'validation failed')}",
            field=field or "order",
            details={"order_id": str(raw.get("id")) if isinstance(raw, dict) else None},
        ) from e
