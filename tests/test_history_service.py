from datetime import datetime, timedelta, timezone

import pytest

from fileforge.core.errors import NotFoundError, ValidationError
from fileforge.models import FileHistory
from fileforge.models.common import JobStatus, OperationType, new_id
from fileforge.repositories import HistoryFilters, InMemoryJobRepository
from fileforge.services.history import HistoryService, format_file_size, format_seconds

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _add(repo, operation_type, status, *, user_id="u1", size=2048, processed_size=None, minutes_ago=0, **extra):
    details = extra.pop("details", {})
    history = FileHistory(
        id=new_id(),
        user_id=user_id,
        original_filename=f"{operation_type}-{status}.bin",
        original_path=f"/uploads/{new_id()}.bin",
        operation_type=operation_type,
        operation_details=details,
        file_size=size,
        processed_size=processed_size,
        status=status,
        created_at=NOW - timedelta(minutes=minutes_ago),
        **extra,
    )
    repo.create_batch([history], [])
    return history


def test_format_helpers():
    assert format_file_size(0) == "0 Bytes"
    assert format_file_size(512) == "512 Bytes"
    assert format_file_size(1536) == "1.5 KB"
    assert format_file_size(1024 * 1024) == "1 MB"
    assert format_seconds(1.234) == "1.23s"
    assert format_seconds(None) is None


def test_list_history_filters_and_orders_newest_first():
    repo = InMemoryJobRepository()
    older = _add(repo, OperationType.COMPRESSION, JobStatus.COMPLETED, minutes_ago=10)
    newer = _add(repo, OperationType.COMPRESSION, JobStatus.FAILED, minutes_ago=1)
    _add(repo, OperationType.EXTRACTION, JobStatus.COMPLETED)
    _add(repo, OperationType.COMPRESSION, JobStatus.COMPLETED, user_id="u2")
    service = HistoryService(repo)

    rows = service.list_history(HistoryFilters(user_id="u1", operation_type=OperationType.COMPRESSION))
    assert [row.id for row in rows] == [newer.id, older.id]

    failed = service.list_history(HistoryFilters(user_id="u1", status=JobStatus.FAILED))
    assert [row.id for row in failed] == [newer.id]
    assert service.count_history(HistoryFilters(user_id="u1", limit=1)) == 3


def test_list_history_adds_derived_metrics():
    repo = InMemoryJobRepository()
    _add(
        repo,
        OperationType.COMPRESSION,
        JobStatus.COMPLETED,
        size=4096,
        processed_size=1024,
        processing_time=1.2345,
    )
    row = HistoryService(repo).list_history(HistoryFilters(user_id="u1"))[0]

    assert row.compression_ratio == 75
    assert row.file_size_formatted == "4 KB"
    assert row.processed_size_formatted == "1 KB"
    assert row.processing_time_formatted == "1.23s"


def test_unknown_filters_are_rejected():
    service = HistoryService(InMemoryJobRepository())
    with pytest.raises(ValidationError):
        service.list_history(HistoryFilters(operation_type="teleport"))
    with pytest.raises(ValidationError):
        service.list_history(HistoryFilters(status="exploded"))


def test_get_history_includes_urls_and_metadata():
    repo = InMemoryJobRepository()
    history = _add(
        repo,
        OperationType.EXTRACTION,
        JobStatus.COMPLETED,
        processed_path="/srv/processed/out.txt",
        processed_filename="out.txt",
    )
    repo.add_metadata(history.id, {"word_count": 3})

    detail = HistoryService(repo).get_history(history.id, user_id="u1")
    assert detail.download_url == "/processed/out.txt"
    assert detail.original_url.startswith("/uploads/")
    assert detail.metadata == {"word_count": 3}


def test_foreign_history_is_not_found():
    repo = InMemoryJobRepository()
    history = _add(repo, OperationType.COMPRESSION, JobStatus.COMPLETED, user_id="u2")
    service = HistoryService(repo)

    with pytest.raises(NotFoundError):
        service.get_history(history.id, user_id="u1")
    with pytest.raises(NotFoundError):
        service.delete_history(history.id, user_id="u1")
    assert repo.get_history(history.id) is not None


def test_delete_history_removes_record_and_files(tmp_path):
    repo = InMemoryJobRepository()
    original = tmp_path / "in.txt"
    processed = tmp_path / "out.zip"
    original.write_text("a")
    processed.write_text("b")
    history = _add(repo, OperationType.COMPRESSION, JobStatus.COMPLETED, processed_path=str(processed))
    repo.update_history(history.id, original_path=str(original))

    HistoryService(repo).delete_history(history.id, user_id="u1")

    assert repo.get_history(history.id) is None
    assert not original.exists()
    assert not processed.exists()
    with pytest.raises(NotFoundError):
        HistoryService(repo).delete_history(history.id, user_id="u1")


def test_stats_overview():
    repo = InMemoryJobRepository()
    _add(repo, OperationType.COMPRESSION, JobStatus.COMPLETED, size=1000, processed_size=400, processing_time=2.0,
         details={"level": "high"})
    _add(repo, OperationType.COMPRESSION, JobStatus.COMPLETED, size=1000, processed_size=600, processing_time=4.0,
         details={"level": "light"})
    _add(repo, OperationType.EXTRACTION, JobStatus.FAILED, size=500)
    _add(repo, OperationType.CONVERSION, JobStatus.PENDING, size=500)

    stats = HistoryService(repo).stats(user_id="u1")

    assert stats["total_files"] == 4
    assert stats["completed_files"] == 2
    assert stats["failed_files"] == 1
    assert stats["success_rate"] == 50
    assert stats["total_size"] == 3000
    assert stats["average_processing_time"] == 3.0
    assert stats["status_distribution"] == {"completed": 2, "failed": 1, "pending": 1}
    assert stats["operations_by_type"]["compression"]["count"] == 2
    assert stats["operations_by_type"]["compression"]["average_time"] == 3.0
    assert stats["average_compression_ratio"] == 50
    assert stats["total_space_saved"] == 1000
    assert stats["compression_by_level"]["high"]["average_ratio"] == 60
    assert len(stats["recent_activity"]) == 4


def test_stats_for_one_operation_type():
    repo = InMemoryJobRepository()
    _add(repo, OperationType.EXTRACTION, JobStatus.COMPLETED, processing_time=1.0)
    _add(repo, OperationType.COMPRESSION, JobStatus.COMPLETED, size=100, processed_size=50)

    stats = HistoryService(repo).stats(user_id="u1", operation_type=OperationType.EXTRACTION)

    assert stats["operation_type"] == "extraction"
    assert stats["total_files"] == 1
    assert "operations_by_type" not in stats
    assert "average_compression_ratio" not in stats
