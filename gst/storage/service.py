"""Ephemeral artifact storage with time-to-live.

Expiry is enforced lazily on every read and listing (an expired entry is
deleted as soon as it is observed) and proactively by ``sweep``.
"""

import logging
import secrets
from datetime import timedelta

from gst.core.config import ARTIFACT_KEY_BYTES, ARTIFACT_TTL_HOURS
from gst.core.dates import Clock, utc_now
from gst.core.exceptions import (
    ArtifactExpiredError,
    BaseError,
    ResourceNotFoundError,
    StorageBackendError,
    ValidationError,
)
from gst.models.artifacts import StoredArtifact, Visibility
from gst.storage.base import ArtifactBackend

logger = logging.getLogger(__name__)


class ArtifactStorageService:
    def __init__(self, backend: ArtifactBackend, clock: Clock = utc_now):
        self.backend = backend
        self.clock = clock

    async def store(
        self,
        payload: bytes | str,
        filename: str,
        content_type: str,
        *,
        owner: str | None = None,
        ttl_hours: float = ARTIFACT_TTL_HOURS,
        visibility: Visibility = Visibility.PRIVATE,
    ) -> str:
        """Persist ``payload`` under a new opaque key.

        Returns:
            Key for retrieval; a key is never reused

        Raises:
            ValidationError: If ``ttl_hours`` is not positive
            StorageBackendError: If the backend rejects the write
        """
        if ttl_hours <= 0:
            raise ValidationError("TTL must be positive", field="ttl_hours")

        data = payload.encode("utf-8") if isinstance(payload, str) else bytes(payload)
        now = self.clock()
        artifact = StoredArtifact(
            key=secrets.token_urlsafe(ARTIFACT_KEY_BYTES),
            filename=filename,
            content_type=content_type,
            size=len(data),
            payload=data,
            created_at=now,
            expires_at=now + timedelta(hours=ttl_hours),
            visibility=Visibility(visibility),
            owner=owner,
        )
        await self._call("put", artifact)
        logger.info(
            f"Stored artifact {filename} ({artifact.size} bytes)",
            extra={"artifact_key": artifact.key, "shop": owner},
        )
        return artifact.key

    async def retrieve(self, key: str, *, owner: str | None = None) -> StoredArtifact:
        """Return the artifact, enforcing visibility and then expiry.

        Raises:
            ResourceNotFoundError: Unknown key, or private to another owner
            ArtifactExpiredError: Past ``expires_at`` (the entry is deleted)
        """
        artifact = await self._call("get", key)
        if artifact is None:
            raise ResourceNotFoundError("Artifact", key)

        if (
            owner is not None
            and artifact.visibility is Visibility.PRIVATE
            and artifact.owner is not None
            and artifact.owner != owner
        ):
            raise ResourceNotFoundError("Artifact", key)

        if artifact.is_expired(self.clock()):
            await self._call("delete", key)
            logger.info("Expired artifact removed on read", extra={"artifact_key": key})
            raise ArtifactExpiredError(key)

        return artifact

    async def delete(self, key: str) -> None:
        """Raises ResourceNotFoundError if nothing was stored under ``key``."""
        if not await self._call("delete", key):
            raise ResourceNotFoundError("Artifact", key)

    async def list(self, owner: str) -> list[StoredArtifact]:
        """Unexpired artifacts of ``owner``, newest first, without payloads."""
        now = self.clock()
        live = []
        for artifact in await self._call("list_by_owner", owner):
            if artifact.is_expired(now):
                await self._call("delete", artifact.key)
            else:
                live.append(artifact)
        return sorted(live, key=lambda a: a.created_at, reverse=True)

    async def sweep(self) -> int:
        """Delete every expired artifact; returns how many were removed."""
        now = self.clock()
        removed = 0
        for artifact in await self._call("list_all"):
            if artifact.is_expired(now) and await self._call("delete", artifact.key):
                removed += 1
        if removed:
            logger.info(f"Swept {removed} expired artifacts")
        return removed

    async def delete_owner(self, owner: str) -> int:
        removed = 0
        for artifact in await self._call("list_by_owner", owner):
            if await self._call("delete", artifact.key):
                removed += 1
        return removed

    async def _call(self, operation: str, *args):
        try:
            return await getattr(self.backend, operation)(*args)
        except BaseError:
            raise
        except Exception as e:
            logger.error(f"Artifact backend {operation} failed: {e}", exc_info=True)
            raise StorageBackendError(details={"operation": operation}) from e
