"""Unit tests for OrderTaxService."""

from decimal import Decimal

import pytest

from gst.core.exceptions import JurisdictionUnresolvedError, ValidationError
from gst.models.orders import parse_order
from gst.models.tax import TaxType


class TestBuyerJurisdiction:
    def test_shipping_code_first(self, tax_service, make_order):
        order = make_order(province_code="ka", province="Karnataka")
        assert tax_service.resolve_buyer_jurisdiction(order) == "KA"

    def test_falls_back_to_state_name(self, tax_service, make_order):
        order = make_order(province_code=None, province="Tamil Nadu")
        assert tax_service.resolve_buyer_jurisdiction(order) == "TN"

    def test_billing_code_beats_shipping_name(self, tax_service, make_order):
        order = make_order(
            province_code=None, province="Tamil Nadu", billing_province_code="ka"
        )
        assert tax_service.resolve_buyer_jurisdiction(order) == "KA"

    def test_billing_name_when_no_codes(self, tax_service, make_order):
        order = make_order(
            province_code=None, province=None, billing_province="Karnataka"
        )
        assert tax_service.resolve_buyer_jurisdiction(order) == "KA"

    def test_unresolved(self, tax_service, make_order):
        order = make_order(province_code=None, province=None)
        with pytest.raises(JurisdictionUnresolvedError):
            tax_service.resolve_buyer_jurisdiction(order)


class TestEnrichOrder:
    """Tests for single-order enrichment."""

    def test_same_jurisdiction_order(self, tax_service, make_order):
        entry = tax_service.enrich_order(make_order(total="1500.00"), "MH")

        assert entry.tax.tax_type is TaxType.SAME_JURISDICTION
        assert entry.tax.cgst_amount == Decimal("90.00")
        assert entry.buyer_jurisdiction == "MH"
        assert entry.seller_jurisdiction == "MH"
        assert not entry.is_fallback

    def test_order_snapshot_is_untouched(self, tax_service, make_order):
        order = make_order()
        entry = tax_service.enrich_order(order, "KA")
        assert entry.order is order
        assert order.total_tax is None

    def test_line_shares_sum_to_order_amount(self, tax_service, make_order):
        order = make_order(
            total="1000.00",
            line_items=[
                {"id": "a", "title": "Tee", "quantity": 1, "price": "333.33"},
                {"id": "b", "title": "Tee", "quantity": 1, "price": "333.33"},
                {"id": "c", "title": "Hoodie", "quantity": 1, "price": "333.34"},
            ],
        )
        entry = tax_service.enrich_order(order, "MH")

        shares = [line.taxable_amount for line in entry.line_taxes]
        assert sum(shares) == Decimal("1000.00")
        assert all(line.tax.rate == entry.tax.rate for line in entry.line_taxes)
        assert entry.line_taxes[2].tax.classification_code == "6110"

    def test_subtotal_missing_uses_line_totals(self, tax_service, make_order):
        order = make_order(
            total="1200.00",
            subtotal_price=None,
            line_items=[
                {"id": "a", "title": "Tee", "quantity": 2, "price": "500", "total_discount": "100"},
            ],
        )
        assert tax_service.taxable_amount(order) == Decimal("900")

    def test_unresolved_buyer_is_fatal(self, tax_service, make_order):
        order = make_order(province_code=None, province="Nowhere Land")
        with pytest.raises(JurisdictionUnresolvedError):
            tax_service.enrich_order(order, "MH")


class TestEnrichOrders:
    """Batch enrichment never aborts on a single bad order."""

    def test_failure_degrades_to_fallback(self, tax_service, make_order):
        good = make_order("1")
        bad = make_order("2", province_code=None, province=None)

        entries = tax_service.enrich_orders([good, bad], "MH")

        assert len(entries) == 2
        assert not entries[0].is_fallback
        assert entries[1].is_fallback
        assert entries[1].tax.total_tax_amount == Decimal("0")
        assert entries[1].tax_error

    def test_summary_by_jurisdiction(self, tax_service, make_order):
        entries = tax_service.enrich_orders(
            [
                make_order("1", "1500.00"),
                make_order("2", "800.00", province_code="KA"),
                make_order("3", "1500.00"),
            ],
            "MH",
        )
        summary = tax_service.summarize(entries)

        assert summary.total_orders == 3
        assert summary.total_tax_amount == Decimal("400.00")
        assert summary.total_igst_amount == Decimal("40.00")
        assert summary.by_jurisdiction["MH"].order_count == 2


class TestValidation:
    def test_valid_order(self, tax_service, make_order):
        assert tax_service.validate_order(make_order()).is_valid

    def test_collects_every_problem(self, tax_service, make_order):
        order = make_order(
            total="0", province_code=None, province=None, line_items=[]
        )
        result = tax_service.validate_order(order)
        assert not result.is_valid
        assert len(result.errors) == 3

    def test_tax_exempt(self, tax_service, make_order):
        order = make_order(customer={"first_name": "A", "tax_exempt": True})
        assert tax_service.is_tax_exempt(order)
        assert not tax_service.is_tax_exempt(make_order())

    def test_parse_order_rejects_missing_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_order({"id": 5, "name": "#5"})
        assert exc_info.value.details["order_id"] == "5"
