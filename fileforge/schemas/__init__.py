from fileforge.schemas.auth import LoginRequest, TokenResponse, UserCreate, UserRead
from fileforge.schemas.history import CleanupResponse, HistoryDetailRead, HistoryPage, HistoryRead
from fileforge.schemas.job import BatchStatusRead, DispatchedJobRead, DispatchResponse, JobLogEntry, JobStatusRead
from fileforge.schemas.operations import (
    ArchiveExtractionOptions,
    CompressionOptions,
    ConversionOptions,
    ExtractionOptions,
    OperationOptions,
    parse_operation_details,
)

__all__ = [
    "UserCreate",
    "UserRead",
    "LoginRequest",
    "TokenResponse",
    "JobLogEntry",
    "JobStatusRead",
    "BatchStatusRead",
    "DispatchedJobRead",
    "DispatchResponse",
    "HistoryRead",
    "HistoryDetailRead",
    "HistoryPage",
    "CleanupResponse",
    "ConversionOptions",
    "CompressionOptions",
    "ExtractionOptions",
    "ArchiveExtractionOptions",
    "OperationOptions",
    "parse_operation_details",
]
