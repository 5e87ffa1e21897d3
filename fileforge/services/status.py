from collections import Counter
from pathlib import Path

from fileforge.core.errors import NotFoundError
from fileforge.models.common import JobStatus, OperationType
from fileforge.models.file_history import FileHistory
from fileforge.models.processing_job import ProcessingJob
from fileforge.repositories.base import JobRepository
from fileforge.schemas.job import BatchStatusRead, JobLogEntry, JobStatusRead

PROCESSED_URL_PREFIX = "/processed"
UPLOADS_URL_PREFIX = "/uploads"


def download_url(history: FileHistory) -> str | None:
    if history.status != JobStatus.COMPLETED or not history.processed_path:
        return None
    return f"{PROCESSED_URL_PREFIX}/{Path(history.processed_path).name}"


def original_url(history: FileHistory) -> str:
    return f"{UPLOADS_URL_PREFIX}/{Path(history.original_path).name}"


def compression_ratio(history: FileHistory) -> int | None:
    if history.operation_type != OperationType.COMPRESSION or not history.processed_size or not history.file_size:
        return None
    return round((history.file_size - history.processed_size) / history.file_size * 100)


def visible_to(history: FileHistory, user_id: str | None) -> bool:
    """Records without an owner are public; owned records are visible to their owner only."""
    return history.user_id is None or history.user_id == user_id


class StatusService:
    """Read-only view over job records; safe to poll at any rate."""

    def __init__(self, repository: JobRepository) -> None:
        self.repository = repository

    def get_job_status(self, job_id: str, user_id: str | None = None, operation_type: str | None = None) -> JobStatusRead:
        job = self.repository.get_job(job_id)
        if job is None or (operation_type and job.operation_type != operation_type):
            raise NotFoundError.job(job_id)
        history = self.repository.get_history(job.file_history_id)
        if history is None or not visible_to(history, user_id):
            raise NotFoundError.job(job_id)
        return self._build(job, history)

    def get_batch_status(self, batch_id: str, user_id: str | None = None) -> BatchStatusRead:
        statuses: list[JobStatusRead] = []
        for job in self.repository.list_batch_jobs(batch_id):
            history = self.repository.get_history(job.file_history_id)
            if history is not None and visible_to(history, user_id):
                statuses.append(self._build(job, history))
        if not statuses:
            raise NotFoundError.batch(batch_id)
        counts = Counter(status.status for status in statuses)
        return BatchStatusRead(
            batch_id=batch_id,
            total=len(statuses),
            counts={state: counts.get(state, 0) for state in JobStatus.ALL},
            jobs=statuses,
        )

    def _build(self, job: ProcessingJob, history: FileHistory) -> JobStatusRead:
        metadata = None
        if job.operation_type == OperationType.EXTRACTION and (history.operation_details or {}).get("include_metadata"):
            metadata = self.repository.get_metadata(history.id)
        return JobStatusRead(
            job_id=job.job_id,
            batch_id=job.batch_id,
            operation_type=job.operation_type,
            status=job.status,
            progress=job.progress,
            logs=[JobLogEntry(**entry) for entry in job.logs or []],
            original_filename=history.original_filename,
            original_size=history.file_size,
            processed_filename=history.processed_filename,
            processed_size=history.processed_size,
            compression_ratio=compression_ratio(history),
            files_extracted=history.files_extracted,
            error_message=history.error_message,
            download_url=download_url(history),
            metadata=metadata,
        )
