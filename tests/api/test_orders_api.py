"""API tests for single-order tax and invoice endpoints."""

import io

from pypdf import PdfReader


class TestOrderTax:
    def test_intra_state_order(self, client, auth_headers):
        response = client.get("/v1/orders/1001/tax", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["buyer_jurisdiction"] == "MH"
        assert body["seller_jurisdiction"] == "MH"
        assert body["tax"]["tax_type"] == "CGST_SGST"
        assert body["tax"]["rate_percent"] == "12.00"
        assert body["tax"]["total_tax_amount"] == "180.00"
        assert body["tax"]["cgst_amount"] == "90.00"
        assert body["tax"]["sgst_amount"] == "90.00"
        assert body["tax_exempt"] is False

    def test_inter_state_order(self, client, auth_headers):
        body = client.get("/v1/orders/1002/tax", headers=auth_headers).json()

        assert body["tax"]["tax_type"] == "IGST"
        assert body["tax"]["rate_percent"] == "5.00"
        assert body["tax"]["igst_amount"] == "40.00"

    def test_unknown_order(self, client, auth_headers):
        response = client.get("/v1/orders/4040/tax", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "RESOURCE_NOT_FOUND"

    def test_untaxable_order_rejected(self, client, auth_headers, order_provider, make_order):
        order_provider.orders["1004"] = make_order("1004", line_items=[])
        response = client.get("/v1/orders/1004/tax", headers=auth_headers)

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"]["errors"] == ["Order must have at least one line item"]


class TestOrderPdf:
    def test_invoice_pdf(self, client, auth_headers, render_backend):
        response = client.get("/v1/orders/1001/pdf", headers=auth_headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert "order_1001_" in response.headers["content-disposition"]
        assert len(PdfReader(io.BytesIO(response.content)).pages) == 1
        assert "Cotton T-Shirt" in render_backend.rendered[0]

    def test_render_failure(self, client, auth_headers, render_backend):
        render_backend.fail = True
        response = client.get("/v1/orders/1001/pdf", headers=auth_headers)

        assert response.status_code == 502
        assert response.json()["code"] == "RENDER_ERROR"
