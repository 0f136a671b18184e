"""Shop session storage used for request authentication and uninstall cleanup."""

import asyncio
import logging
from typing import Protocol

from gst.models.session import SessionContext

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    async def store(self, session: SessionContext) -> None: ...

    async def load(self, shop: str) -> SessionContext | None: ...

    async def delete(self, shop: str) -> bool: ...

    async def find_by_owner(self, owner: str) -> list[SessionContext]: ...

    async def delete_all_for_owner(self, owner: str) -> int: ...


class InMemorySessionStore:
    """Sessions keyed by shop domain; one active session per shop."""

    def __init__(self) -> None:
        self._sessions: dict[str, SessionContext] = {}
        self._lock = asyncio.Lock()

    async def store(self, session: SessionContext) -> None:
        async with self._lock:
            self._sessions[session.shop] = session

    async def load(self, shop: str) -> SessionContext | None:
        async with self._lock:
            return self._sessions.get(shop)

    async def delete(self, shop: str) -> bool:
        async with self._lock:
            return self._sessions.pop(shop, None) is not None

    async def find_by_owner(self, owner: str) -> list[SessionContext]:
        async with self._lock:
            return [s for s in self._sessions.values() if s.shop == owner]

    async def delete_all_for_owner(self, owner: str) -> int:
        async with self._lock:
            doomed = [key for key, s in self._sessions.items() if s.shop == owner]
            for key in doomed:
                del self._sessions[key]
        if doomed:
            logger.info(f"Deleted {len(doomed)} sessions", extra={"shop": owner})
        return len(doomed)
