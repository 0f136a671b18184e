"""API tests for per-shop invoice templates."""

import time

import pytest

from gst.models.session import SessionContext

OTHER_SHOP = "other-store.myshopify.com"


def template_payload(**overrides):
    payload = {
        "name": "Festive Invoice",
        "layout": {
            "page_size": "A4",
            "orientation": "portrait",
            "colors": {"primary": "#c0392b", "secondary": "#7f8c8d", "text": "#222"},
        },
        "businessInfo": {
            "company_name": "Rao Textiles Pvt Ltd",
            "gstin": "27aapfu0939f1zv",
            "address": "12 MG Road",
            "city": "Pune",
            "state": "Maharashtra",
            "pincode": "411001",
        },
        "showBankDetails": False,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def other_headers(client):
    """Headers for a second installed shop."""
    from main import app

    other = SessionContext(shop=OTHER_SHOP, access_token="shpat_other", seller_jurisdiction="KA")
    client.portal.call(app.state.session_store.store, other)
    return {"X-Shop-Domain": OTHER_SHOP, "Authorization": "Bearer shpat_other"}


@pytest.fixture
def created(client, auth_headers):
    response = client.post("/v1/templates", json=template_payload(), headers=auth_headers)
    assert response.status_code == 201
    return response.json()["template"]


class TestCreateTemplate:
    """Tests for POST /v1/templates."""

    def test_create_assigns_id_and_owner(self, created):
        assert created["id"] != "default"
        assert created["name"] == "Festive Invoice"
        assert created["owner"] == "demo-store.myshopify.com"
        assert created["business"]["gstin"] == "27AAPFU0939F1ZV"
        assert created["layout"]["colors"]["primary"] == "#c0392b"

    def test_invalid_gstin(self, client, auth_headers):
        payload = template_payload()
        payload["businessInfo"]["gstin"] = "27AAPFU0939F1Z"
        response = client.post("/v1/templates", json=payload, headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_color_must_be_hex(self, client, auth_headers):
        payload = template_payload()
        payload["layout"]["colors"]["primary"] = "red; } body { display: none"
        response = client.post("/v1/templates", json=payload, headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_business_info_required(self, client, auth_headers):
        payload = template_payload()
        del payload["businessInfo"]
        response = client.post("/v1/templates", json=payload, headers=auth_headers)

        assert response.status_code == 422

    def test_company_name_required(self, client, auth_headers):
        payload = template_payload()
        payload["businessInfo"]["company_name"] = "  "
        response = client.post("/v1/templates", json=payload, headers=auth_headers)

        assert response.status_code == 422

    def test_blank_name_rejected(self, client, auth_headers):
        response = client.post(
            "/v1/templates", json=template_payload(name="   "), headers=auth_headers
        )
        assert response.status_code == 422

    def test_missing_credentials(self, client):
        response = client.post("/v1/templates", json=template_payload())
        assert response.status_code == 401


class TestReadAndDelete:
    def test_list_and_get(self, client, auth_headers, created):
        listed = client.get("/v1/templates", headers=auth_headers).json()
        assert listed["count"] == 1
        assert listed["templates"][0]["id"] == created["id"]

        fetched = client.get(f"/v1/templates/{created['id']}", headers=auth_headers)
        assert fetched.status_code == 200
        assert fetched.json()["template"]["business"]["company_name"] == "Rao Textiles Pvt Ltd"

    def test_default_template(self, client, auth_headers):
        body = client.get("/v1/templates/default", headers=auth_headers).json()
        assert body["template"]["id"] == "default"
        assert body["template"]["name"] == "Default GST Invoice"

    def test_unknown_template(self, client, auth_headers):
        response = client.get("/v1/templates/nope", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "RESOURCE_NOT_FOUND"

    def test_other_shop_cannot_see_or_delete(self, client, other_headers, created):
        assert client.get("/v1/templates", headers=other_headers).json()["count"] == 0
        assert client.get(f"/v1/templates/{created['id']}", headers=other_headers).status_code == 404
        assert client.delete(f"/v1/templates/{created['id']}", headers=other_headers).status_code == 404

    def test_delete(self, client, auth_headers, created):
        response = client.delete(f"/v1/templates/{created['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["success"] is True

        assert client.get(f"/v1/templates/{created['id']}", headers=auth_headers).status_code == 404
        assert client.delete(f"/v1/templates/{created['id']}", headers=auth_headers).status_code == 404


class TestTemplatesInDocuments:
    """A registered template id changes what gets rendered."""

    def test_single_invoice_uses_template(self, client, auth_headers, render_backend, created):
        response = client.get(
            f"/v1/orders/1001/pdf?templateId={created['id']}", headers=auth_headers
        )

        assert response.status_code == 200
        html = render_backend.rendered[-1]
        assert "Rao Textiles Pvt Ltd" in html
        assert "27AAPFU0939F1ZV" in html
        assert "#c0392b" in html

    def test_bulk_job_uses_template(self, client, auth_headers, render_backend, created):
        response = client.post(
            "/v1/jobs",
            json={"orderIds": ["1001"], "format": "pdf", "templateId": created["id"]},
            headers=auth_headers,
        )
        job_id = response.json()["job"]["id"]

        for _ in range(200):
            job = client.get(f"/v1/jobs/{job_id}", headers=auth_headers).json()
            if job["status"] in ("completed", "failed"):
                break
            time.sleep(0.02)

        assert job["status"] == "completed"
        assert any("Rao Textiles Pvt Ltd" in html for html in render_backend.rendered)

    def test_deleted_template_falls_back_to_default(self, client, auth_headers, render_backend, created):
        client.delete(f"/v1/templates/{created['id']}", headers=auth_headers)
        client.get(f"/v1/orders/1001/pdf?templateId={created['id']}", headers=auth_headers)

        assert "Rao Textiles Pvt Ltd" not in render_backend.rendered[-1]
