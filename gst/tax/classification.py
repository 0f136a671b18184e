"""HSN classification and apparel attribute extraction for line items."""

import re

from gst.core.config import DEFAULT_HSN_CODE
from gst.models.orders import LineItem
from gst.models.tax import ApparelDetails

# Keyword -> HSN chapter heading, checked in order
HSN_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("hoodie", "6110"),
    ("sweatshirt", "6110"),
    ("pullover", "6110"),
    ("polo", "6105"),
    ("tank", "6108"),
    ("t-shirt", "6109"),
    ("tshirt", "6109"),
    ("tee", "6109"),
)

SIZE_VALUES = frozenset(
    {
        "XXS", "XS", "S", "M", "L", "XL", "XXL", "XXXL", "2XL", "3XL", "4XL", "5XL",
        "SMALL", "MEDIUM", "LARGE", "X-LARGE", "EXTRA LARGE", "FREE SIZE",
    }
)


def classify_line_item(item: LineItem, default_code: str = DEFAULT_HSN_CODE) -> str:
    """Return the HSN code for a line item.

    An explicit code on the item wins, then keyword rules over product type
    and title, then ``default_code``.
    """
    if item.hsn_code and item.hsn_code.strip():
        return item.hsn_code.strip()

    haystack = " ".join(
        part.lower() for part in (item.product_type, item.title, item.name) if part
    )
    for keyword, code in HSN_KEYWORDS:
        if re.search(rf"\b{re.escape(keyword)}s?\b", haystack):
            return code
    return default_code


def extract_apparel_details(item: LineItem) -> ApparelDetails:
    """Size, color and material from line properties, then the variant title."""
    size = item.property_value("size")
    color = item.property_value("color", "colour")
    material = item.property_value("material", "fabric")

    if item.variant_title and (size is None or color is None):
        for option in (part.strip() for part in item.variant_title.split("/")):
            if not option:
                continue
            if size is None and option.upper() in SIZE_VALUES:
                size = option
            elif color is None and option.upper() not in SIZE_VALUES:
                color = option

    return ApparelDetails(size=size, color=color, material=material)
