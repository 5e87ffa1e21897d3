from pydantic import BaseModel


class JobLogEntry(BaseModel):
    timestamp: str
    message: str


class JobStatusRead(BaseModel):
    job_id: str
    batch_id: str
    operation_type: str
    status: str
    progress: int
    logs: list[JobLogEntry]
    original_filename: str
    original_size: int
    processed_filename: str | None = None
    processed_size: int | None = None
    compression_ratio: int | None = None
    files_extracted: int | None = None
    error_message: str | None = None
    download_url: str | None = None
    metadata: dict | None = None


class BatchStatusRead(BaseModel):
    batch_id: str
    total: int
    counts: dict[str, int]
    jobs: list[JobStatusRead]


class DispatchedJobRead(BaseModel):
    job_id: str
    file_history_id: str
    original_filename: str


class DispatchResponse(BaseModel):
    success: bool = True
    message: str
    batch_id: str
    total_files: int
    options: dict
    jobs: list[DispatchedJobRead]
