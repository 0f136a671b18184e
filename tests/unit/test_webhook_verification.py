"""Unit tests for inbound webhook verification."""

import json

import pytest

from gst.events.verification import WebhookVerifier, compute_signature

SECRET = "whsec_test"


def _headers(body: bytes, **overrides) -> dict[str, str]:
    headers = {
        "X-Shopify-Topic": "orders/create",
        "X-Shopify-Shop-Domain": "demo-store.myshopify.com",
        "X-Shopify-Hmac-Sha256": compute_signature(body, SECRET),
    }
    headers.update(overrides)
    return headers


class TestWebhookVerifier:
    """Tests for signature and header checks."""

    def test_valid_delivery(self):
        body = json.dumps({"id": 1}).encode()
        result = WebhookVerifier(SECRET).validate(body, _headers(body))

        assert result.is_valid
        assert result.topic == "orders/create"
        assert result.shop == "demo-store.myshopify.com"
        assert result.payload == {"id": 1}

    def test_header_names_are_case_insensitive(self):
        body = b"{}"
        headers = {k.lower(): v for k, v in _headers(body).items()}
        assert WebhookVerifier(SECRET).validate(body, headers).is_valid

    def test_tampered_body_rejected(self):
        body = json.dumps({"id": 1, "total_price": "100.00"}).encode()
        headers = _headers(body)
        tampered = body.replace(b"100.00", b"1.00")

        result = WebhookVerifier(SECRET).validate(tampered, headers)
        assert not result.is_valid
        assert result.reason == "Webhook signature mismatch"

    def test_wrong_secret_rejected(self):
        body = b"{}"
        headers = _headers(body)
        assert not WebhookVerifier("another-secret").validate(body, headers).is_valid

    @pytest.mark.parametrize(
        "missing", ["X-Shopify-Topic", "X-Shopify-Shop-Domain", "X-Shopify-Hmac-Sha256"]
    )
    def test_missing_header_rejected(self, missing):
        body = b"{}"
        headers = _headers(body)
        del headers[missing]

        result = WebhookVerifier(SECRET).validate(body, headers)
        assert not result.is_valid
        assert result.reason == "Missing required webhook headers"

    def test_body_must_be_json_object(self):
        for body in (b"not json", b"[1, 2]"):
            result = WebhookVerifier(SECRET).validate(body, _headers(body))
            assert not result.is_valid

    def test_empty_secret_is_refused(self):
        with pytest.raises(ValueError):
            WebhookVerifier("")
