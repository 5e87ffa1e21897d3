import logging
from datetime import datetime, timedelta, timezone

from fileforge.core.errors import ValidationError
from fileforge.models.common import JobStatus
from fileforge.repositories.base import JobRepository
from fileforge.services.storage import delete_backing_files

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 7


class RetentionService:
    def __init__(self, repository: JobRepository) -> None:
        self.repository = repository

    def cleanup(self, days: int = DEFAULT_RETENTION_DAYS, user_id: str | None = None, now: datetime | None = None) -> int:
        """Delete completed records older than ``days`` and their files; returns how many records went.

        File removal is best-effort. Records in any other state are kept
        regardless of age.
        """
        if isinstance(days, bool) or not isinstance(days, int) or days < 0:
            raise ValidationError("days must be a non-negative integer", field="days")
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
        stale = self.repository.find_expired(cutoff, JobStatus.COMPLETED, user_id=user_id)
        deleted = 0
        for history in stale:
            failures = delete_backing_files(history.original_path, history.processed_path)
            if failures:
                logger.warning("retention_files_left_behind", extra={"file_history_id": history.id, "count": len(failures)})
            if self.repository.delete_history(history.id):
                deleted += 1
        logger.info("retention_cleanup_completed", extra={"deleted": deleted, "days": days, "user_id": user_id})
        return deleted
