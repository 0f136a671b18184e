"""Cascading removal of everything stored for a shop after app uninstall."""

import logging
import time
from dataclasses import dataclass, field

from gst.documents.templates import TemplateRegistry
from gst.events.sessions import SessionStore
from gst.jobs.orchestrator import BulkJobOrchestrator
from gst.storage.service import ArtifactStorageService

logger = logging.getLogger(__name__)


@dataclass
class CleanupResult:
    success: bool = True
    sessions_deleted: int = 0
    jobs_deleted: int = 0
    artifacts_deleted: int = 0
    templates_deleted: int = 0
    actions: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class OwnerDataCleanup:
    def __init__(
        self,
        sessions: SessionStore,
        orchestrator: BulkJobOrchestrator,
        storage: ArtifactStorageService,
        templates: TemplateRegistry,
    ):
        self.sessions = sessions
        self.orchestrator = orchestrator
        self.storage = storage
        self.templates = templates

    async def perform(self, owner: str) -> CleanupResult:
        """Delete sessions, jobs, artifacts and templates of ``owner``.

        Jobs go before artifacts so that a running job cannot store a new
        artifact after the artifact sweep.

        Raises:
            Exception: The first failing step's error, after logging metrics
        """
        started = time.perf_counter()
        result = CleanupResult()
        try:
            result.sessions_deleted = await self.sessions.delete_all_for_owner(owner)
            result.actions.append(f"Deleted {result.sessions_deleted} sessions")

            result.jobs_deleted = await self.orchestrator.delete_owner(owner)
            result.actions.append(f"Deleted {result.jobs_deleted} jobs")

            result.artifacts_deleted = await self.storage.delete_owner(owner)
            result.actions.append(f"Deleted {result.artifacts_deleted} artifacts")

            result.templates_deleted = self.templates.delete_owner(owner)
            result.actions.append(f"Deleted {result.templates_deleted} templates")
        except Exception as e:
            result.success = False
            result.errors.append(str(e))
            self._log_metrics(owner, result, started)
            raise

        self._log_metrics(owner, result, started)
        return result

    async def validate(self, owner: str) -> bool:
        """Check that no session, job or artifact of ``owner`` remains."""
        leftovers = {
            "sessions": len(await self.sessions.find_by_owner(owner)),
            "jobs": len(await self.orchestrator.list_jobs(owner)),
            "artifacts": len(await self.storage.list(owner)),
        }
        remaining = {name: count for name, count in leftovers.items() if count}
        if remaining:
            logger.error(
                f"Cleanup validation failed: {remaining}", extra={"shop": owner}
            )
            return False
        return True

    def _log_metrics(self, owner: str, result: CleanupResult, started: float) -> None:
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        if result.success:
            logger.info(
                f"Uninstall cleanup completed: {', '.join(result.actions)}",
                extra={"shop": owner, "duration_ms": duration_ms},
            )
        else:
            logger.error(
                f"Uninstall cleanup failed: {', '.join(result.errors)}",
                extra={"shop": owner, "duration_ms": duration_ms},
            )
