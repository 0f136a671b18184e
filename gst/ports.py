"""Contracts for external collaborators consumed by the engine.

Implementations live in ``services/``.
"""

from datetime import datetime
from typing import Protocol, Sequence

from gst.models.orders import OrderRecord
from gst.models.session import SessionContext


class OrderProvider(Protocol):
    """Commerce data provider yielding validated order snapshots."""

    async def fetch_order(
        self, session: SessionContext, order_id: str
    ) -> OrderRecord | None: ...

    async def fetch_orders(
        self, session: SessionContext, order_ids: Sequence[str]
    ) -> list[OrderRecord]:
        """Orders for ``order_ids``; ids that do not resolve are omitted."""
        ...

    async def fetch_orders_in_range(
        self,
        session: SessionContext,
        created_from: datetime,
        created_to: datetime,
        limit: int,
    ) -> list[OrderRecord]: ...
