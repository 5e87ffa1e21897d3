"""Record store contract shared by the dispatcher, runner, status, history and retention services.

Every method is atomic on its own. Callers never hold a session, so one
store instance can be shared by request handlers and background batches.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from fileforge.models.file_history import FileHistory
from fileforge.models.processing_job import ProcessingJob

IMMUTABLE_HISTORY_FIELDS = frozenset({"id", "operation_type", "created_at"})


@dataclass(slots=True)
class HistoryFilters:
    user_id: str | None = None
    operation_type: str | None = None
    status: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    limit: int | None = 50
    offset: int = 0
    unowned_only: bool = False


class JobRepository(ABC):
    @abstractmethod
    def create_batch(self, histories: list[FileHistory], jobs: list[ProcessingJob]) -> None:
        """Persist all records of one dispatch, or none of them."""

    @abstractmethod
    def get_history(self, history_id: str) -> FileHistory | None: ...

    @abstractmethod
    def update_history(self, history_id: str, **fields: Any) -> FileHistory | None: ...

    @abstractmethod
    def list_history(self, filters: HistoryFilters) -> list[FileHistory]:
        """Newest first."""

    @abstractmethod
    def delete_history(self, history_id: str) -> bool:
        """Delete one record together with its jobs and metadata."""

    @abstractmethod
    def find_expired(self, cutoff: datetime, status: str, user_id: str | None = None) -> list[FileHistory]: ...

    @abstractmethod
    def get_job(self, job_id: str) -> ProcessingJob | None: ...

    @abstractmethod
    def list_batch_jobs(self, batch_id: str) -> list[ProcessingJob]: ...

    @abstractmethod
    def update_job(
        self,
        job_id: str,
        *,
        status: str | None = None,
        progress: int | None = None,
        log: dict | None = None,
    ) -> ProcessingJob | None:
        """Set status/progress when given and append ``log`` to the ordered log list."""

    @abstractmethod
    def add_metadata(self, history_id: str, metadata: dict[str, Any]) -> None: ...

    @abstractmethod
    def get_metadata(self, history_id: str) -> dict[str, Any]: ...


def check_history_fields(fields: dict[str, Any]) -> None:
    blocked = IMMUTABLE_HISTORY_FIELDS.intersection(fields)
    if blocked:
        raise ValueError(f"Cannot update immutable field(s): {', '.join(sorted(blocked))}")
