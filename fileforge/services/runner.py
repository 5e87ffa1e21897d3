import logging
import math
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from functools import lru_cache

from fileforge.core.config import get_settings
from fileforge.core.errors import ProcessingError
from fileforge.models.common import JobStatus
from fileforge.repositories.base import JobRepository
from fileforge.schemas.operations import ExtractionOptions, parse_operation_details
from fileforge.services.processing import ProcessingResult, Processors
from fileforge.services.progress import ProgressChannel, ProgressEvent
from fileforge.services.storage import delete_backing_files

logger = logging.getLogger(__name__)

OPERATION_LABELS = {
    "conversion": "Conversion",
    "compression": "Compression",
    "extraction": "Text extraction",
    "archive_extraction": "Archive extraction",
}


@lru_cache(maxsize=1)
def get_executor() -> ThreadPoolExecutor:
    """Process-wide pool; its size caps concurrent file processing across all batches."""
    settings = get_settings()
    return ThreadPoolExecutor(max_workers=max(settings.max_concurrent_jobs, 1), thread_name_prefix="fileforge-worker")


def log_entry(message: str, timestamp: datetime | None = None) -> dict:
    return {"timestamp": (timestamp or datetime.now(timezone.utc)).isoformat(), "message": message}


def error_message(exc: BaseException) -> str:
    return getattr(exc, "message", None) or str(exc) or exc.__class__.__name__


def discard_abandoned_output(future: Future) -> None:
    """Done-callback for a timed-out job: its late output belongs to no record."""
    if future.cancelled() or future.exception() is not None:
        return
    result = future.result()
    logger.info("abandoned_output_discarded", extra={"path": result.path})
    delete_backing_files(result.path)


class JobRunner:
    def __init__(
        self,
        repository: JobRepository,
        processors: Processors,
        executor: Executor | None = None,
        job_timeout_seconds: float | None = None,
        poll_interval: float = 0.05,
    ) -> None:
        self.repository = repository
        self.processors = processors
        self.executor = executor or get_executor()
        if job_timeout_seconds is None:
            job_timeout_seconds = get_settings().job_timeout_seconds
        self.job_timeout_seconds = job_timeout_seconds or None
        self.poll_interval = poll_interval

    def run_batch(self, batch_id: str, job_ids: list[str]) -> dict[str, str | None]:
        """Process the batch one job at a time; a failed job never stops the rest."""
        logger.info("batch_started", extra={"batch_id": batch_id, "job_count": len(job_ids)})
        outcomes: dict[str, str | None] = {}
        for job_id in job_ids:
            try:
                outcomes[job_id] = self.run_job(job_id)
            except Exception:  # noqa: BLE001
                logger.exception("job_runner_error", extra={"batch_id": batch_id, "job_id": job_id})
                outcomes[job_id] = None
        logger.info(
            "batch_finished",
            extra={
                "batch_id": batch_id,
                "completed": sum(1 for status in outcomes.values() if status == JobStatus.COMPLETED),
                "failed": sum(1 for status in outcomes.values() if status == JobStatus.FAILED),
            },
        )
        return outcomes

    def run_job(self, job_id: str) -> str | None:
        job = self.repository.get_job(job_id)
        if job is None:
            logger.warning("job_missing", extra={"job_id": job_id})
            return None
        if job.status != JobStatus.PENDING:
            logger.warning("job_not_pending", extra={"job_id": job_id, "status": job.status})
            return job.status

        label = OPERATION_LABELS.get(job.operation_type, job.operation_type)
        history_id = job.file_history_id
        channel = ProgressChannel(job_id)
        current = [0]
        result: ProcessingResult | None = None
        try:
            self.repository.update_job(
                job_id, status=JobStatus.PROCESSING, progress=0, log=log_entry(f"Starting {label.lower()}...")
            )
            self.repository.update_history(history_id, status=JobStatus.PROCESSING)
            logger.info("job_started", extra={"job_id": job_id, "operation_type": job.operation_type})

            history = self.repository.get_history(history_id)
            if history is None:
                raise ProcessingError("File history record not found")
            options = parse_operation_details(history.operation_type, history.operation_details)
            started = threading.Event()
            future = self.executor.submit(self._invoke, started, history.original_path, options, channel)
            result = self._await_result(future, started, channel, current)
            self._apply_events(job_id, channel.drain(), current)
            channel.close()
            self._mark_completed(job_id, history_id, label, options, result)
        except Exception as exc:  # noqa: BLE001
            self._apply_events(job_id, channel.drain(), current)
            channel.close()
            if result is not None:
                delete_backing_files(result.path)
            self._mark_failed(job_id, history_id, label, exc)
            return JobStatus.FAILED
        return JobStatus.COMPLETED

    def _invoke(self, started: threading.Event, input_path: str, options, channel: ProgressChannel) -> ProcessingResult:
        started.set()
        return self.processors.invoke(input_path, options, channel)

    def _await_result(
        self, future: Future, started: threading.Event, channel: ProgressChannel, current: list[int]
    ) -> ProcessingResult:
        """Wait for the collaborator; the timeout counts from when it starts, not from when it was queued."""
        deadline = None
        while True:
            done, _ = wait([future], timeout=self.poll_interval)
            self._apply_events(channel.job_id, channel.drain(), current)
            if done:
                return future.result()
            if not self.job_timeout_seconds or not started.is_set():
                continue
            if deadline is None:
                deadline = time.monotonic() + self.job_timeout_seconds
            elif time.monotonic() >= deadline:
                if not future.cancel():
                    future.add_done_callback(discard_abandoned_output)
                raise ProcessingError(f"Processing timed out after {self.job_timeout_seconds:g} seconds")
    def _apply_events(self, job_id: str, events: list[ProgressEvent], current: list[int]) -> None:
        for event in events:
            progress = current[0]
            if event.percent is not None and math.isfinite(event.percent):
                # 100 is reserved for the completed transition
                progress = max(progress, min(int(event.percent), 99))
            current[0] = progress
            self.repository.update_job(job_id, progress=progress, log=log_entry(event.message, event.timestamp))
            logger.debug("job_progress", extra={"job_id": job_id, "progress": progress})

    def _mark_completed(self, job_id: str, history_id: str, label: str, options, result: ProcessingResult) -> None:
        self.repository.update_history(
            history_id,
            processed_filename=result.filename,
            processed_path=result.path,
            processed_size=result.size,
            processing_time=result.processing_time,
            files_extracted=result.files_extracted,
            status=JobStatus.COMPLETED,
            error_message=None,
        )
        if isinstance(options, ExtractionOptions) and options.include_metadata and result.metadata:
            self.repository.add_metadata(history_id, result.metadata)
        self.repository.update_job(
            job_id, status=JobStatus.COMPLETED, progress=100, log=log_entry(f"{label} completed successfully")
        )
        logger.info(
            "job_completed",
            extra={"job_id": job_id, "processed_size": result.size, "processing_time": result.processing_time},
        )

    def _mark_failed(self, job_id: str, history_id: str, label: str, exc: BaseException) -> None:
        message = error_message(exc)
        logger.warning("job_failed", extra={"job_id": job_id, "error": message}, exc_info=not isinstance(exc, ProcessingError))
        self.repository.update_history(history_id, status=JobStatus.FAILED, error_message=message)
        self.repository.update_job(job_id, status=JobStatus.FAILED, log=log_entry(f"{label} failed: {message}"))
