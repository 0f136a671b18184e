from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_STATUSES = frozenset({JobStatus.PENDING, JobStatus.PROCESSING})
TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})

OutputFormat = Literal["pdf", "csv"]


class JobOptions(BaseModel):
    """Submission options for a bulk document job."""

    output_format: OutputFormat = "pdf"
    template_id: str | None = None
    include_tax_breakdown: bool = True
    group_by_date: bool = False


class BulkJob(BaseModel):
    """Bulk document job snapshot.

    Only the orchestrator writes job records; ``completed`` and ``failed``
    are final.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    owner: str
    status: JobStatus = JobStatus.PENDING
    progress: int = Field(0, ge=0, le=100)
    total_items: int = Field(..., ge=0)
    processed_items: int = Field(0, ge=0)
    failed_items: int = Field(0, ge=0)
    output_format: OutputFormat = "pdf"
    template_id: str | None = None
    include_tax_breakdown: bool = True
    group_by_date: bool = False
    item_ids: list[str] = Field(default_factory=list)
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    download_key: str | None = None
    download_url: str | None = None
    expires_at: datetime | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
