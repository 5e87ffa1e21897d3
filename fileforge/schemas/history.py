from datetime import datetime

from pydantic import BaseModel


class HistoryRead(BaseModel):
    id: str
    user_id: str | None
    original_filename: str
    processed_filename: str | None
    operation_type: str
    operation_details: dict
    mime_type: str | None
    file_size: int
    processed_size: int | None
    processing_time: float | None
    files_extracted: int | None
    status: str
    error_message: str | None
    created_at: datetime
    updated_at: datetime

    compression_ratio: int | None = None
    processing_time_formatted: str | None = None
    file_size_formatted: str | None = None
    processed_size_formatted: str | None = None


class HistoryDetailRead(HistoryRead):
    download_url: str | None = None
    original_url: str | None = None
    metadata: dict = {}


class HistoryPage(BaseModel):
    history: list[HistoryRead]
    total: int
    limit: int
    offset: int
    filters: dict


class CleanupResponse(BaseModel):
    success: bool = True
    message: str
    deleted_files: int
    cleanup_days: int
