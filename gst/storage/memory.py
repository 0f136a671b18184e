"""In-process artifact backend for tests and single-instance deployments."""

import asyncio

from gst.models.artifacts import StoredArtifact


class InMemoryArtifactBackend:
    def __init__(self):
        self._items: dict[str, StoredArtifact] = {}
        self._lock = asyncio.Lock()

    async def put(self, artifact: StoredArtifact) -> None:
        async with self._lock:
            self._items[artifact.key] = artifact

    async def get(self, key: str) -> StoredArtifact | None:
        async with self._lock:
            return self._items.get(key)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._items.pop(key, None) is not None

    async def list_all(self) -> list[StoredArtifact]:
        async with self._lock:
            return [a.metadata() for a in self._items.values()]

    async def list_by_owner(self, owner: str) -> list[StoredArtifact]:
        async with self._lock:
            return [a.metadata() for a in self._items.values() if a.owner == owner]
