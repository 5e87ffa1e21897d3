from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from fileforge.models.file_history import FileHistory
from fileforge.models.file_metadata import FileMetadata
from fileforge.models.processing_job import ProcessingJob
from fileforge.repositories.base import HistoryFilters, JobRepository, check_history_fields


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SqlAlchemyJobRepository(JobRepository):
    """Each call runs in its own session and commits before returning.

    Returned rows are detached; the session factory must use
    ``expire_on_commit=False`` so their columns stay readable.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def _session(self) -> Session:
        return self._session_factory()

    def create_batch(self, histories: list[FileHistory], jobs: list[ProcessingJob]) -> None:
        with self._session() as db:
            db.add_all(histories)
            db.flush()
            db.add_all(jobs)
            db.commit()

    def get_history(self, history_id: str) -> FileHistory | None:
        with self._session() as db:
            return db.get(FileHistory, history_id)

    def update_history(self, history_id: str, **fields: Any) -> FileHistory | None:
        check_history_fields(fields)
        with self._session() as db:
            history = db.get(FileHistory, history_id)
            if history is None:
                return None
            for key, value in fields.items():
                setattr(history, key, value)
            db.commit()
            return history

    def list_history(self, filters: HistoryFilters) -> list[FileHistory]:
        query = select(FileHistory)
        if filters.user_id is not None:
            query = query.where(FileHistory.user_id == filters.user_id)
        elif filters.unowned_only:
            query = query.where(FileHistory.user_id.is_(None))
        if filters.operation_type:
            query = query.where(FileHistory.operation_type == filters.operation_type)
        if filters.status:
            query = query.where(FileHistory.status == filters.status)
        if filters.start_date:
            query = query.where(FileHistory.created_at >= _as_utc(filters.start_date))
        if filters.end_date:
            query = query.where(FileHistory.created_at <= _as_utc(filters.end_date))
        query = query.order_by(FileHistory.created_at.desc()).offset(filters.offset)
        if filters.limit is not None:
            query = query.limit(filters.limit)
        with self._session() as db:
            return list(db.scalars(query).all())

    def delete_history(self, history_id: str) -> bool:
        with self._session() as db:
            history = db.get(FileHistory, history_id)
            if history is None:
                return False
            db.delete(history)
            db.commit()
            return True

    def find_expired(self, cutoff: datetime, status: str, user_id: str | None = None) -> list[FileHistory]:
        query = select(FileHistory).where(FileHistory.created_at < _as_utc(cutoff), FileHistory.status == status)
        if user_id is not None:
            query = query.where(FileHistory.user_id == user_id)
        with self._session() as db:
            return list(db.scalars(query).all())

    def get_job(self, job_id: str) -> ProcessingJob | None:
        with self._session() as db:
            return db.scalar(select(ProcessingJob).where(ProcessingJob.job_id == job_id))

    def list_batch_jobs(self, batch_id: str) -> list[ProcessingJob]:
        query = select(ProcessingJob).where(ProcessingJob.batch_id == batch_id).order_by(ProcessingJob.created_at.asc())
        with self._session() as db:
            return list(db.scalars(query).all())

    def update_job(
        self,
        job_id: str,
        *,
        status: str | None = None,
        progress: int | None = None,
        log: dict | None = None,
    ) -> ProcessingJob | None:
        with self._session() as db:
            job = db.scalar(select(ProcessingJob).where(ProcessingJob.job_id == job_id))
            if job is None:
                return None
            if status is not None:
                job.status = status
            if progress is not None:
                job.progress = progress
            if log is not None:
                # reassign so the JSON column is flagged dirty
                job.logs = [*(job.logs or []), log]
            db.commit()
            return job

    def add_metadata(self, history_id: str, metadata: dict[str, Any]) -> None:
        with self._session() as db:
            db.add_all(
                FileMetadata(file_history_id=history_id, metadata_key=str(key), metadata_value=value)
                for key, value in metadata.items()
            )
            db.commit()

    def get_metadata(self, history_id: str) -> dict[str, Any]:
        query = select(FileMetadata).where(FileMetadata.file_history_id == history_id).order_by(FileMetadata.created_at)
        with self._session() as db:
            return {row.metadata_key: row.metadata_value for row in db.scalars(query).all()}
