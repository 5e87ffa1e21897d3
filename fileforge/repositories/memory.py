import threading
from datetime import datetime, timezone
from typing import Any

from fileforge.models.common import new_id, utcnow
from fileforge.models.file_history import FileHistory
from fileforge.models.processing_job import ProcessingJob
from fileforge.repositories.base import HistoryFilters, JobRepository, check_history_fields


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class InMemoryJobRepository(JobRepository):
    """Dictionary-backed store for tests and single-process tools."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.histories: dict[str, FileHistory] = {}
        self.jobs: dict[str, ProcessingJob] = {}
        self.metadata: dict[str, dict[str, Any]] = {}

    def create_batch(self, histories: list[FileHistory], jobs: list[ProcessingJob]) -> None:
        now = utcnow()
        with self._lock:
            for history in histories:
                history.id = history.id or new_id()
                history.created_at = history.created_at or now
                history.updated_at = history.updated_at or now
                history.operation_details = history.operation_details or {}
            for job in jobs:
                if job.job_id in self.jobs:
                    raise ValueError(f"Duplicate job id: {job.job_id}")
                job.id = job.id or new_id()
                job.created_at = job.created_at or now
                job.updated_at = job.updated_at or now
                job.logs = list(job.logs or [])
            self.histories.update({history.id: history for history in histories})
            self.jobs.update({job.job_id: job for job in jobs})

    def get_history(self, history_id: str) -> FileHistory | None:
        with self._lock:
            return self.histories.get(history_id)

    def update_history(self, history_id: str, **fields: Any) -> FileHistory | None:
        check_history_fields(fields)
        with self._lock:
            history = self.histories.get(history_id)
            if history is None:
                return None
            for key, value in fields.items():
                setattr(history, key, value)
            history.updated_at = utcnow()
            return history

    def list_history(self, filters: HistoryFilters) -> list[FileHistory]:
        with self._lock:
            rows = list(self.histories.values())
        if filters.user_id is not None:
            rows = [row for row in rows if row.user_id == filters.user_id]
        elif filters.unowned_only:
            rows = [row for row in rows if row.user_id is None]
        if filters.operation_type:
            rows = [row for row in rows if row.operation_type == filters.operation_type]
        if filters.status:
            rows = [row for row in rows if row.status == filters.status]
        if filters.start_date:
            rows = [row for row in rows if _aware(row.created_at) >= _aware(filters.start_date)]
        if filters.end_date:
            rows = [row for row in rows if _aware(row.created_at) <= _aware(filters.end_date)]
        rows.sort(key=lambda row: _aware(row.created_at), reverse=True)
        end = None if filters.limit is None else filters.offset + filters.limit
        return rows[filters.offset:end]

    def delete_history(self, history_id: str) -> bool:
        with self._lock:
            if self.histories.pop(history_id, None) is None:
                return False
            for job_id in [jid for jid, job in self.jobs.items() if job.file_history_id == history_id]:
                del self.jobs[job_id]
            self.metadata.pop(history_id, None)
            return True

    def find_expired(self, cutoff: datetime, status: str, user_id: str | None = None) -> list[FileHistory]:
        with self._lock:
            return [
                row
                for row in self.histories.values()
                if _aware(row.created_at) < _aware(cutoff)
                and row.status == status
                and (user_id is None or row.user_id == user_id)
            ]

    def get_job(self, job_id: str) -> ProcessingJob | None:
        with self._lock:
            return self.jobs.get(job_id)

    def list_batch_jobs(self, batch_id: str) -> list[ProcessingJob]:
        with self._lock:
            return [job for job in self.jobs.values() if job.batch_id == batch_id]

    def update_job(
        self,
        job_id: str,
        *,
        status: str | None = None,
        progress: int | None = None,
        log: dict | None = None,
    ) -> ProcessingJob | None:
        with self._lock:
            job = self.jobs.get(job_id)
            if job is None:
                return None
            if status is not None:
                job.status = status
            if progress is not None:
                job.progress = progress
            if log is not None:
                job.logs = [*job.logs, log]
            job.updated_at = utcnow()
            return job

    def add_metadata(self, history_id: str, metadata: dict[str, Any]) -> None:
        with self._lock:
            self.metadata.setdefault(history_id, {}).update(metadata)

    def get_metadata(self, history_id: str) -> dict[str, Any]:
        with self._lock:
            return dict(self.metadata.get(history_id, {}))
