import logging
from collections import Counter
from dataclasses import replace
from datetime import datetime

from fileforge.core.errors import NotFoundError, ValidationError
from fileforge.models.common import JobStatus, OperationType
from fileforge.models.file_history import FileHistory
from fileforge.repositories.base import HistoryFilters, JobRepository
from fileforge.schemas.history import HistoryDetailRead, HistoryRead
from fileforge.services.status import compression_ratio, download_url, original_url, visible_to
from fileforge.services.storage import delete_backing_files

logger = logging.getLogger(__name__)

SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def format_file_size(size: float | None) -> str:
    if not size:
        return "0 Bytes"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {SIZE_UNITS[unit]}"


def format_seconds(seconds: float | None) -> str | None:
    if seconds is None:
        return None
    return f"{round(seconds, 2):g}s"


def to_read(history: FileHistory) -> HistoryRead:
    return HistoryRead(
        id=history.id,
        user_id=history.user_id,
        original_filename=history.original_filename,
        processed_filename=history.processed_filename,
        operation_type=history.operation_type,
        operation_details=history.operation_details or {},
        mime_type=history.mime_type,
        file_size=history.file_size,
        processed_size=history.processed_size,
        processing_time=history.processing_time,
        files_extracted=history.files_extracted,
        status=history.status,
        error_message=history.error_message,
        created_at=history.created_at,
        updated_at=history.updated_at,
        compression_ratio=compression_ratio(history),
        processing_time_formatted=format_seconds(history.processing_time),
        file_size_formatted=format_file_size(history.file_size),
        processed_size_formatted=format_file_size(history.processed_size) if history.processed_size else None,
    )


class HistoryService:
    def __init__(self, repository: JobRepository) -> None:
        self.repository = repository

    def list_history(self, filters: HistoryFilters) -> list[HistoryRead]:
        if filters.operation_type and filters.operation_type not in OperationType.ALL:
            raise ValidationError(f"Unknown operation type: {filters.operation_type}", field="operation_type")
        if filters.status and filters.status not in JobStatus.ALL:
            raise ValidationError(f"Unknown status: {filters.status}", field="status")
        return [to_read(row) for row in self.repository.list_history(filters)]

    def count_history(self, filters: HistoryFilters) -> int:
        return len(self.repository.list_history(replace(filters, limit=None, offset=0)))

    def get_history(self, history_id: str, user_id: str | None = None) -> HistoryDetailRead:
        history = self._owned(history_id, user_id)
        base = to_read(history).model_dump()
        return HistoryDetailRead(
            **base,
            download_url=download_url(history),
            original_url=original_url(history),
            metadata=self.repository.get_metadata(history.id),
        )

    def delete_history(self, history_id: str, user_id: str | None = None) -> None:
        """Remove the record, its jobs and metadata, and its files (best-effort)."""
        history = self._owned(history_id, user_id)
        delete_backing_files(history.original_path, history.processed_path)
        self.repository.delete_history(history.id)
        logger.info("history_deleted", extra={"file_history_id": history.id, "user_id": user_id})

    def stats(
        self,
        user_id: str | None = None,
        operation_type: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        unowned_only: bool = False,
    ) -> dict:
        if operation_type and operation_type not in OperationType.ALL:
            raise ValidationError(f"Unknown operation type: {operation_type}", field="operation_type")
        rows = self.repository.list_history(
            HistoryFilters(
                user_id=user_id,
                operation_type=operation_type,
                start_date=start_date,
                end_date=end_date,
                limit=None,
                unowned_only=unowned_only,
            )
        )
        completed = [row for row in rows if row.status == JobStatus.COMPLETED]
        failed = [row for row in rows if row.status == JobStatus.FAILED]
        timed = [row.processing_time for row in rows if row.processing_time]
        total_size = sum(row.file_size for row in rows)
        average_time = sum(timed) / len(timed) if timed else 0.0

        stats: dict = {
            "operation_type": operation_type,
            "total_files": len(rows),
            "completed_files": len(completed),
            "failed_files": len(failed),
            "success_rate": round(len(completed) / len(rows) * 100) if rows else 0,
            "total_size": total_size,
            "total_processed_size": sum(row.processed_size or 0 for row in rows),
            "average_processing_time": round(average_time, 2),
            "average_file_size": total_size / len(rows) if rows else 0,
            "status_distribution": dict(Counter(row.status for row in rows)),
        }
        if operation_type is None:
            stats["operations_by_type"] = self._by_type(rows)
            stats["recent_activity"] = [
                {
                    "id": row.id,
                    "operation_type": row.operation_type,
                    "original_filename": row.original_filename,
                    "status": row.status,
                    "created_at": row.created_at,
                    "file_size": format_file_size(row.file_size),
                }
                for row in rows[:10]
            ]
        if operation_type in (None, OperationType.COMPRESSION):
            compressed = [
                row
                for row in completed
                if row.operation_type == OperationType.COMPRESSION and row.processed_size is not None
            ]
            original_total = sum(row.file_size for row in compressed)
            if compressed and original_total:
                saved = original_total - sum(row.processed_size for row in compressed)
                stats["average_compression_ratio"] = round(saved / original_total * 100)
                stats["total_space_saved"] = saved
                stats["total_space_saved_formatted"] = format_file_size(max(saved, 0))
                stats["compression_by_level"] = self._by_level(compressed)

        stats["total_size_formatted"] = format_file_size(stats["total_size"])
        stats["total_processed_size_formatted"] = format_file_size(stats["total_processed_size"])
        stats["average_file_size_formatted"] = format_file_size(stats["average_file_size"])
        stats["average_processing_time_formatted"] = format_seconds(stats["average_processing_time"])
        return stats

    def _owned(self, history_id: str, user_id: str | None) -> FileHistory:
        history = self.repository.get_history(history_id)
        if history is None or not visible_to(history, user_id):
            raise NotFoundError.history(history_id)
        return history

    @staticmethod
    def _by_type(rows: list[FileHistory]) -> dict:
        grouped: dict[str, dict] = {}
        for row in rows:
            entry = grouped.setdefault(
                row.operation_type, {"count": 0, "total_size": 0, "completed": 0, "failed": 0, "_times": []}
            )
            entry["count"] += 1
            entry["total_size"] += row.file_size
            if row.processing_time:
                entry["_times"].append(row.processing_time)
            if row.status == JobStatus.COMPLETED:
                entry["completed"] += 1
            elif row.status == JobStatus.FAILED:
                entry["failed"] += 1
        for entry in grouped.values():
            times = entry.pop("_times")
            entry["average_time"] = round(sum(times) / len(times), 2) if times else 0.0
        return grouped

    @staticmethod
    def _by_level(rows: list[FileHistory]) -> dict:
        grouped: dict[str, dict] = {}
        for row in rows:
            level = (row.operation_details or {}).get("level", "unknown")
            entry = grouped.setdefault(level, {"count": 0, "total_original_size": 0, "total_compressed_size": 0})
            entry["count"] += 1
            entry["total_original_size"] += row.file_size
            entry["total_compressed_size"] += row.processed_size or 0
        for entry in grouped.values():
            original = entry["total_original_size"]
            entry["average_ratio"] = round((original - entry["total_compressed_size"]) / original * 100) if original else 0
        return grouped
