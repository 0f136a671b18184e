"""Inbound webhook authenticity checks.

A delivery is valid only when the topic, shop domain and signature headers
are present, the base64 HMAC-SHA256 of the raw body under the shared secret
matches the signature, and the body is a JSON object.
"""

import base64
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from gst.core.config import HEADER_HMAC, HEADER_SHOP_DOMAIN, HEADER_TOPIC

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WebhookValidation:
    is_valid: bool
    shop: str | None = None
    topic: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    reason: str | None = None


def compute_signature(raw_body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def _invalid(reason: str) -> WebhookValidation:
    logger.warning(f"Rejected webhook: {reason}")
    return WebhookValidation(is_valid=False, reason=reason)


class WebhookVerifier:
    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Webhook secret must not be empty")
        self._secret = secret

    def validate(
        self, raw_body: bytes, headers: Mapping[str, str]
    ) -> WebhookValidation:
        lowered = {k.lower(): v for k, v in headers.items()}
        topic = lowered.get(HEADER_TOPIC)
        shop = lowered.get(HEADER_SHOP_DOMAIN)
        signature = lowered.get(HEADER_HMAC)

        if not topic or not shop or not signature:
            return _invalid("Missing required webhook headers")

        expected = compute_signature(raw_body, self._secret)
        if not hmac.compare_digest(expected.encode("ascii"), signature.strip().encode("utf-8")):
            return _invalid("Webhook signature mismatch")

        try:
            payload = json.loads(raw_body.decode("utf-8") or "{}")
        except (UnicodeDecodeError, json.JSONDecodeError):
            return _invalid("Webhook body is not valid JSON")
        if not isinstance(payload, dict):
            return _invalid("Webhook body must be a JSON object")

        return WebhookValidation(is_valid=True, shop=shop, topic=topic, payload=payload)
