from typing import Protocol

from gst.models.artifacts import StoredArtifact


class ArtifactBackend(Protocol):
    """Persistence for stored artifacts. Every call is atomic per key."""

    async def put(self, artifact: StoredArtifact) -> None: ...

    async def get(self, key: str) -> StoredArtifact | None: ...

    async def delete(self, key: str) -> bool: ...

    async def list_all(self) -> list[StoredArtifact]:
        """Metadata of every artifact (payloads may be empty)."""
        ...

    async def list_by_owner(self, owner: str) -> list[StoredArtifact]: ...
