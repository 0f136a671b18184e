"""MinIO/S3 artifact backend.

Each artifact is one object named by its key; descriptive fields travel as
object user-metadata. The minio client is blocking, so calls run in the
default executor.
"""

import asyncio
import io
import logging
import ssl
from datetime import datetime
from functools import partial
from typing import Any, Callable
from urllib.parse import quote, unquote

import urllib3
from minio import Minio
from minio.error import S3Error

from core.settings import storage_settings
from gst.models.artifacts import StoredArtifact, Visibility
from gst.resilience import (
    CircuitBreaker,
    CircuitBreakerConfig,
    RetryConfig,
    retry_with_backoff,
)

logger = logging.getLogger(__name__)

MISSING_CODES = {"NoSuchKey", "NoSuchObject", "ResourceNotFound"}


def _metadata(artifact: StoredArtifact) -> dict[str, str]:
    return {
        "filename": quote(artifact.filename),
        "created-at": artifact.created_at.isoformat(),
        "expires-at": artifact.expires_at.isoformat(),
        "visibility": artifact.visibility.value,
        "owner": artifact.owner or "",
    }


def _from_stat(key: str, stat: Any, payload: bytes = b"") -> StoredArtifact:
    meta = stat.metadata
    return StoredArtifact(
        key=key,
        filename=unquote(meta.get("x-amz-meta-filename", key)),
        content_type=stat.content_type,
        size=stat.size,
        payload=payload,
        created_at=datetime.fromisoformat(meta["x-amz-meta-created-at"]),
        expires_at=datetime.fromisoformat(meta["x-amz-meta-expires-at"]),
        visibility=Visibility(meta.get("x-amz-meta-visibility", Visibility.PRIVATE.value)),
        owner=meta.get("x-amz-meta-owner") or None,
    )


class MinioArtifactBackend:
    """Artifact backend storing payloads in a single bucket."""

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        secure: bool = True,
        client: Minio | None = None,
    ):
        self.bucket = bucket
        self.endpoint = endpoint

        if client is None:
            http_client = urllib3.PoolManager(
                cert_reqs=ssl.CERT_NONE,
                assert_hostname=False,
            )
            client = Minio(
                endpoint,
                access_key=access_key,
                secret_key=secret_key,
                secure=secure,
                http_client=http_client,
            )
        self.client = client
        self.retry_config = RetryConfig(
            max_attempts=3, initial_delay_seconds=0.2, max_delay_seconds=2.0
        )
        self.breaker = CircuitBreaker(
            "storage", CircuitBreakerConfig(failure_threshold=5, timeout_seconds=30)
        )

        logger.info(f"MinioArtifactBackend initialized: endpoint={endpoint}, bucket={bucket}")

    def ensure_bucket(self) -> None:
        if not self.client.bucket_exists(self.bucket):
            self.client.make_bucket(self.bucket)
            logger.info(f"Created bucket {self.bucket}")

    async def _run(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        call = partial(
            self.breaker.call,
            retry_with_backoff,
            func,
            self.retry_config,
            (urllib3.exceptions.HTTPError,),
            *args,
            **kwargs,
        )
        return await asyncio.get_running_loop().run_in_executor(None, call)

    def _put(self, artifact: StoredArtifact) -> None:
        self.client.put_object(
            self.bucket,
            artifact.key,
            io.BytesIO(artifact.payload),
            length=artifact.size,
            content_type=artifact.content_type,
            metadata=_metadata(artifact),
        )

    def _get(self, key: str) -> StoredArtifact | None:
        try:
            stat = self.client.stat_object(self.bucket, key)
            response = self.client.get_object(self.bucket, key)
        except S3Error as e:
            if e.code in MISSING_CODES:
                return None
            raise
        try:
            payload = response.read()
        finally:
            response.close()
            response.release_conn()
        return _from_stat(key, stat, payload)

    def _delete(self, key: str) -> bool:
        try:
            self.client.stat_object(self.bucket, key)
        except S3Error as e:
            if e.code in MISSING_CODES:
                return False
            raise
        self.client.remove_object(self.bucket, key)
        return True

    def _list(self) -> list[StoredArtifact]:
        artifacts = []
        for obj in self.client.list_objects(self.bucket):
            try:
                stat = self.client.stat_object(self.bucket, obj.object_name)
            except S3Error as e:
                if e.code in MISSING_CODES:
                    continue
                raise
            artifacts.append(_from_stat(obj.object_name, stat))
        return artifacts

    async def put(self, artifact: StoredArtifact) -> None:
        await self._run(self._put, artifact)

    async def get(self, key: str) -> StoredArtifact | None:
        return await self._run(self._get, key)

    async def delete(self, key: str) -> bool:
        return await self._run(self._delete, key)

    async def list_all(self) -> list[StoredArtifact]:
        return await self._run(self._list)

    async def list_by_owner(self, owner: str) -> list[StoredArtifact]:
        return [a for a in await self.list_all() if a.owner == owner]


def create_minio_backend_from_settings() -> MinioArtifactBackend:
    return MinioArtifactBackend(
        endpoint=storage_settings.S3_ENDPOINT,
        access_key=storage_settings.S3_ACCESS_KEY,
        secret_key=storage_settings.S3_SECRET_KEY.get_secret_value(),
        bucket=storage_settings.S3_BUCKET,
        secure=storage_settings.S3_SECURE,
    )
