"""Unit tests for state code resolution and HSN classification."""

import pytest

from gst.models.orders import LineItem
from gst.tax.classification import classify_line_item, extract_apparel_details
from gst.tax.jurisdictions import is_known_code, normalize_code, resolve_name, state_name


class TestJurisdictionCodes:
    @pytest.mark.parametrize(
        "raw, expected",
        [("mh", "MH"), (" KA ", "KA"), ("IN-DL", "DL"), ("", None), (None, None)],
    )
    def test_normalize_code(self, raw, expected):
        assert normalize_code(raw) == expected

    def test_known_codes(self):
        assert is_known_code("tn")
        assert not is_known_code("ZZ")

    def test_state_name(self):
        assert state_name("MH") == "Maharashtra"
        assert state_name("ZZ") == "ZZ"


class TestResolveName:
    """Tests for state name lookup."""

    def test_exact_name(self):
        assert resolve_name("Karnataka") == "KA"

    def test_alias_and_ampersand(self):
        assert resolve_name("Jammu & Kashmir") == "JK"

    def test_code_passed_as_name(self):
        assert resolve_name("mh") == "MH"

    def test_close_typo_is_accepted(self):
        assert resolve_name("Maharashtraa") == "MH"

    def test_distant_name_is_rejected(self):
        """A loose match must never map to a different state."""
        assert resolve_name("Atlantis") is None

    def test_blank(self):
        assert resolve_name("   ") is None


def _item(**kwargs) -> LineItem:
    data = {"id": "1", "title": "Item", "quantity": 1, "price": "100"}
    data.update(kwargs)
    return LineItem.model_validate(data)


class TestClassification:
    def test_explicit_code_wins(self):
        assert classify_line_item(_item(title="Hoodie", hsn_code="62034200")) == "62034200"

    def test_keyword_in_title(self):
        assert classify_line_item(_item(title="Classic Hoodie")) == "6110"
        assert classify_line_item(_item(title="Graphic Tees")) == "6109"

    def test_default_code(self):
        assert classify_line_item(_item(title="Gift card"), "99999999") == "99999999"

    def test_apparel_from_variant_title(self):
        details = extract_apparel_details(_item(variant_title="XL / Navy"))
        assert details.size == "XL"
        assert details.color == "Navy"

    def test_apparel_properties_take_precedence(self):
        details = extract_apparel_details(
            _item(
                variant_title="S / Red",
                properties=[
                    {"name": "Colour", "value": "Olive"},
                    {"name": "Fabric", "value": "Linen"},
                ],
            )
        )
        assert details.size == "S"
        assert details.color == "Olive"
        assert details.material == "Linen"
