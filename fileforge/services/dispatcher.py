import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from fileforge.core.errors import AuthenticationError, ValidationError
from fileforge.models.common import JobStatus, OperationType, new_id
from fileforge.models.file_history import FileHistory
from fileforge.models.processing_job import ProcessingJob
from fileforge.repositories.base import JobRepository
from fileforge.schemas.operations import (
    ArchiveExtractionOptions,
    CompressionOptions,
    ConversionOptions,
    ExtractionOptions,
)
from fileforge.services.runner import log_entry
from fileforge.services.storage import UploadedFile

logger = logging.getLogger(__name__)

BatchLauncher = Callable[[str, list[str]], None]

OPTION_MODELS: dict[str, type[BaseModel]] = {
    OperationType.CONVERSION: ConversionOptions,
    OperationType.COMPRESSION: CompressionOptions,
    OperationType.EXTRACTION: ExtractionOptions,
    OperationType.ARCHIVE_EXTRACTION: ArchiveExtractionOptions,
}
USER_SCOPED_OPERATIONS = {OperationType.CONVERSION}
NO_FILES_MESSAGES = {
    OperationType.CONVERSION: "No files uploaded for conversion",
    OperationType.COMPRESSION: "No files uploaded for compression",
    OperationType.EXTRACTION: "No files uploaded for text extraction",
    OperationType.ARCHIVE_EXTRACTION: "No files uploaded for archive extraction",
}


@dataclass(slots=True)
class DispatchedJob:
    job_id: str
    file_history_id: str
    original_filename: str


@dataclass(slots=True)
class DispatchResult:
    batch_id: str
    operation_type: str
    options: BaseModel
    jobs: list[DispatchedJob]

    @property
    def job_ids(self) -> list[str]:
        return [job.job_id for job in self.jobs]


def make_job_id(batch_id: str, file_history_id: str) -> str:
    return f"{batch_id}-{file_history_id}"


def validate_options(operation_type: str, raw_options: dict[str, Any]) -> BaseModel:
    model = OPTION_MODELS.get(operation_type)
    if model is None:
        raise ValidationError(f"Unknown operation type: {operation_type}", field="operation_type")
    payload = {key: value for key, value in raw_options.items() if value is not None}
    if operation_type == OperationType.CONVERSION and not payload.get("target_format"):
        raise ValidationError("Target format is required", field="target_format")
    try:
        return model.model_validate(payload)
    except SchemaValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        message = first.get("msg", "Invalid options")
        ctx = first.get("ctx") or {}
        if "expected" in ctx:
            message = f"Invalid {field}. Must be one of: {ctx['expected']}"
        elif message.startswith("Value error, "):
            message = message.removeprefix("Value error, ")
        raise ValidationError(message, field=field) from exc


class OperationDispatcher:
    """Validates a submission, persists its records, then hands the batch to ``launcher``.

    Validation happens before anything is written, so a rejected request
    leaves the store untouched. Records are created in one call, so a
    caller that receives a result can immediately poll every job.
    """

    def __init__(self, repository: JobRepository, launcher: BatchLauncher) -> None:
        self.repository = repository
        self.launcher = launcher

    def submit(
        self,
        operation_type: str,
        files: list[UploadedFile],
        raw_options: dict[str, Any],
        user_id: str | None = None,
    ) -> DispatchResult:
        if operation_type in USER_SCOPED_OPERATIONS and not user_id:
            raise AuthenticationError("Access token required")
        if not files:
            raise ValidationError(NO_FILES_MESSAGES.get(operation_type, "No files uploaded"), field="files")
        options = validate_options(operation_type, raw_options)

        batch_id = str(uuid.uuid4())
        details = options.model_dump(exclude={"operation"})
        histories: list[FileHistory] = []
        jobs: list[ProcessingJob] = []
        dispatched: list[DispatchedJob] = []
        for upload in files:
            history_id = new_id()
            job_id = make_job_id(batch_id, history_id)
            histories.append(
                FileHistory(
                    id=history_id,
                    user_id=user_id,
                    original_filename=upload.original_filename,
                    original_path=upload.stored_path,
                    operation_type=operation_type,
                    operation_details={**details, "mimetype": upload.mime_type, "size": upload.size_bytes},
                    mime_type=upload.mime_type,
                    file_size=upload.size_bytes,
                    status=JobStatus.PENDING,
                )
            )
            jobs.append(
                ProcessingJob(
                    id=new_id(),
                    job_id=job_id,
                    batch_id=batch_id,
                    file_history_id=history_id,
                    operation_type=operation_type,
                    status=JobStatus.PENDING,
                    progress=0,
                    logs=[],
                )
            )
            dispatched.append(DispatchedJob(job_id, history_id, upload.original_filename))

        self.repository.create_batch(histories, jobs)
        result = DispatchResult(batch_id=batch_id, operation_type=operation_type, options=options, jobs=dispatched)
        logger.info(
            "batch_dispatched",
            extra={"batch_id": batch_id, "operation_type": operation_type, "job_count": len(dispatched)},
        )
        try:
            self.launcher(batch_id, result.job_ids)
        except Exception as exc:  # noqa: BLE001
            logger.exception("batch_launch_failed", extra={"batch_id": batch_id})
            self._fail_unlaunched(result, f"Failed to schedule processing: {exc}")
        return result

    def _fail_unlaunched(self, result: DispatchResult, message: str) -> None:
        for job in result.jobs:
            self.repository.update_history(job.file_history_id, status=JobStatus.FAILED, error_message=message)
            self.repository.update_job(job.job_id, status=JobStatus.FAILED, log=log_entry(message))
