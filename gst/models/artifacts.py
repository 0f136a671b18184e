from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum


class Visibility(str, Enum):
    PRIVATE = "private"
    PUBLIC = "public"


@dataclass(frozen=True)
class StoredArtifact:
    """A generated file held until ``expires_at``. Never updated in place."""

    key: str
    filename: str
    content_type: str
    size: int
    payload: bytes
    created_at: datetime
    expires_at: datetime
    visibility: Visibility = Visibility.PRIVATE
    owner: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def metadata(self) -> "StoredArtifact":
        """Copy without the payload, for listings."""
        return replace(self, payload=b"")

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "filename": self.filename,
            "content_type": self.content_type,
            "size": self.size,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "visibility": self.visibility.value,
        }
