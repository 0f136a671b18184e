"""Topic handlers for verified inbound events.

Handlers raise on failure; retrying and metrics belong to ``EventProcessor``.
"""

import logging
from typing import Any, Awaitable, Callable

from gst.core.config import (
    TOPIC_APP_UNINSTALLED,
    TOPIC_ORDERS_CREATE,
    TOPIC_ORDERS_PAID,
    TOPIC_ORDERS_UPDATED,
)
from gst.events.cleanup import OwnerDataCleanup
from gst.models.orders import parse_order

logger = logging.getLogger(__name__)

Handler = Callable[[str, dict[str, Any]], Awaitable[Any]]


class EventHandlers:
    def __init__(self, cleanup: OwnerDataCleanup):
        self.cleanup = cleanup
        self._routes: dict[str, Handler] = {
            TOPIC_ORDERS_CREATE: self.order_created,
            TOPIC_ORDERS_UPDATED: self.order_updated,
            TOPIC_ORDERS_PAID: self.order_paid,
            TOPIC_APP_UNINSTALLED: self.app_uninstalled,
        }

    @property
    def topics(self) -> list[str]:
        return sorted(self._routes)

    def resolve(self, topic: str) -> Handler:
        return self._routes.get(topic, self.unhandled)

    async def order_created(self, shop: str, payload: dict[str, Any]) -> None:
        order = parse_order(payload)
        logger.info(
            f"Order {order.name} created: total {order.total_price} {order.currency}, "
            f"{len(order.line_items)} line items",
            extra={"shop": shop, "order_id": order.id, "topic": TOPIC_ORDERS_CREATE},
        )

    async def order_updated(self, shop: str, payload: dict[str, Any]) -> None:
        order = parse_order(payload)
        logger.info(
            f"Order {order.name} updated: financial={order.financial_status}, "
            f"fulfillment={order.fulfillment_status}",
            extra={"shop": shop, "order_id": order.id, "topic": TOPIC_ORDERS_UPDATED},
        )

    async def order_paid(self, shop: str, payload: dict[str, Any]) -> None:
        order = parse_order(payload)
        logger.info(
            f"Order {order.name} paid: total {order.total_price} {order.currency}",
            extra={"shop": shop, "order_id": order.id, "topic": TOPIC_ORDERS_PAID},
        )

    async def app_uninstalled(self, shop: str, payload: dict[str, Any]) -> None:
        logger.info("Processing app uninstall", extra={"shop": shop})
        await self.cleanup.perform(shop)
        if not await self.cleanup.validate(shop):
            # Main cleanup succeeded; leftovers are reported, not retried.
            logger.error("Data remained after uninstall cleanup", extra={"shop": shop})

    async def unhandled(self, shop: str, payload: dict[str, Any]) -> None:
        logger.info("Acknowledged event with no handler", extra={"shop": shop})
