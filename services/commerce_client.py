"""Commerce platform order provider over the REST Admin API.

Every request is wrapped in a circuit breaker around a retry loop; transport
errors, timeouts, 429 and 5xx responses are retried, other 4xx are not.
Raw orders are validated into ``OrderRecord`` before they leave this module.
"""

import logging
from datetime import datetime
from typing import Any, Sequence

import httpx

from core.logging_utils import sanitize_shop
from core.settings import commerce_settings
from gst.core.exceptions import BaseError, UpstreamProviderError, ValidationError
from gst.models.orders import OrderRecord, parse_order
from gst.models.session import SessionContext
from gst.resilience import (
    CircuitBreaker,
    CircuitBreakerConfig,
    RetryConfig,
    async_retry_with_backoff,
)

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class _RetryableStatusError(Exception):
    def __init__(self, status_code: int):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class CommerceOrderProvider:
    """Fetches orders for a shop session.

    Args:
        api_version: REST Admin API version segment
        timeout: Per-request timeout in seconds
        page_size: Orders per page (platform maximum is 250)
        retry_config: Retry policy for transient failures
        breaker: Circuit breaker shared by all shops
        transport: Optional httpx transport, used by tests
    """

    def __init__(
        self,
        api_version: str | None = None,
        timeout: float | None = None,
        page_size: int | None = None,
        retry_config: RetryConfig | None = None,
        breaker: CircuitBreaker | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_version = api_version or commerce_settings.COMMERCE_API_VERSION
        self.timeout = timeout or commerce_settings.COMMERCE_TIMEOUT_SECONDS
        self.page_size = page_size or commerce_settings.COMMERCE_PAGE_SIZE
        self.retry_config = retry_config or RetryConfig(
            max_attempts=3, initial_delay_seconds=0.5, max_delay_seconds=5.0
        )
        self.breaker = breaker or CircuitBreaker(
            "commerce", CircuitBreakerConfig(failure_threshold=5, timeout_seconds=30)
        )
        self.transport = transport

    def _base_url(self, shop: str) -> str:
        return f"https://{shop}/admin/api/{self.api_version}"

    def _client(self, session: SessionContext) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url(session.shop),
            timeout=self.timeout,
            transport=self.transport,
            headers={
                "X-Shopify-Access-Token": session.access_token,
                "Accept": "application/json",
            },
        )

    async def fetch_order(
        self, session: SessionContext, order_id: str
    ) -> OrderRecord | None:
        async with self._client(session) as client:
            response = await self._get(
                client, f"/orders/{order_id}.json", allow_missing=True
            )
        if response.status_code == 404:
            return None
        return self._parse(response.json().get("order"), session.shop)

    async def fetch_orders(
        self, session: SessionContext, order_ids: Sequence[str]
    ) -> list[OrderRecord]:
        """Orders for ``order_ids`` in request order; unknown ids are omitted."""
        ids = [str(order_id) for order_id in order_ids]
        if not ids:
            return []

        found: dict[str, OrderRecord] = {}
        async with self._client(session) as client:
            for start in range(0, len(ids), self.page_size):
                chunk = ids[start:start + self.page_size]
                params = {
                    "ids": ",".join(chunk),
                    "status": "any",
                    "limit": len(chunk),
                }
                response = await self._get(client, "/orders.json", params=params)
                for raw in response.json().get("orders", []):
                    order = self._parse(raw, session.shop)
                    if order is not None:
                        found[order.id] = order

        missing = len(ids) - len(found)
        if missing:
            logger.info(
                f"{missing} of {len(ids)} requested orders were not found",
                extra={"shop": sanitize_shop(session.shop)},
            )
        return [found[order_id] for order_id in ids if order_id in found]

    async def fetch_orders_in_range(
        self,
        session: SessionContext,
        created_from: datetime,
        created_to: datetime,
        limit: int,
    ) -> list[OrderRecord]:
        """Orders created in ``[created_from, created_to]``, following page links."""
        orders: list[OrderRecord] = []
        params: dict[str, Any] | None = {
            "status": "any",
            "created_at_min": created_from.isoformat(),
            "created_at_max": created_to.isoformat(),
            "limit": min(self.page_size, limit),
        }
        url = "/orders.json"

        async with self._client(session) as client:
            while url and len(orders) < limit:
                response = await self._get(client, url, params=params)
                for raw in response.json().get("orders", []):
                    order = self._parse(raw, session.shop)
                    if order is not None:
                        orders.append(order)
                next_link = response.links.get("next")
                # The next link already carries every query parameter.
                url = next_link["url"] if next_link else None
                params = None

        return orders[:limit]

    async def _get(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: dict[str, Any] | None = None,
        allow_missing: bool = False,
    ) -> httpx.Response:
        async def attempt() -> httpx.Response:
            response = await client.get(url, params=params)
            if response.status_code in RETRYABLE_STATUS:
                raise _RetryableStatusError(response.status_code)
            return response

        try:
            response = await self.breaker.call_async(
                async_retry_with_backoff,
                attempt,
                self.retry_config,
                (httpx.TransportError, _RetryableStatusError),
            )
        except BaseError:
            raise
        except httpx.TimeoutException as e:
            logger.error(f"Commerce API timeout: {e}")
            raise UpstreamProviderError("timeout", details={"detail": str(e)}) from e
        except (httpx.TransportError, _RetryableStatusError) as e:
            logger.error(f"Commerce API unavailable: {e}")
            raise UpstreamProviderError("unavailable", details={"detail": str(e)}) from e

        if response.status_code == 404 and allow_missing:
            return response
        if response.status_code in (401, 403):
            raise UpstreamProviderError(
                "unauthorized",
                details={"detail": "Commerce API rejected the access token"},
            )
        if response.status_code >= 400:
            raise UpstreamProviderError(
                details={"detail": f"HTTP {response.status_code}: {response.text[:200]}"}
            )
        return response

    def _parse(self, raw: dict[str, Any] | None, shop: str) -> OrderRecord | None:
        if not raw:
            return None
        try:
            return parse_order(raw)
        except ValidationError as e:
            logger.warning(
                f"Skipping malformed order {raw.get('id')}: {e.message}",
                extra={"shop": sanitize_shop(shop)},
            )
            return None


def create_order_provider_from_settings() -> CommerceOrderProvider:
    return CommerceOrderProvider(
        api_version=commerce_settings.COMMERCE_API_VERSION,
        timeout=commerce_settings.COMMERCE_TIMEOUT_SECONDS,
        page_size=commerce_settings.COMMERCE_PAGE_SIZE,
    )
