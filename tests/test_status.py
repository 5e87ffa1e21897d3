from concurrent.futures import ThreadPoolExecutor

import pytest

from fileforge.core.errors import NotFoundError
from fileforge.models.common import JobStatus, OperationType
from fileforge.repositories import InMemoryJobRepository
from fileforge.services.dispatcher import OperationDispatcher
from fileforge.services.processing import ProcessingResult, Processors
from fileforge.services.runner import JobRunner
from fileforge.services.status import StatusService
from fileforge.services.storage import UploadedFile


def _dispatch(repo, names, operation_type=OperationType.COMPRESSION, options=None, user_id=None):
    uploads = [
        UploadedFile(original_filename=name, mime_type="text/plain", size_bytes=1000, stored_path=f"/data/{name}")
        for name in names
    ]
    return OperationDispatcher(repo, lambda batch_id, job_ids: None).submit(
        operation_type, uploads, options or {}, user_id=user_id
    )


def _run(repo, result, processors):
    with ThreadPoolExecutor(max_workers=1) as pool:
        JobRunner(repo, processors, executor=pool, job_timeout_seconds=0).run_batch(result.batch_id, result.job_ids)


def _compress_to(size):
    def compress(input_path, level, preserve_quality, remove_metadata, progress):
        if "bad" in input_path:
            raise ValueError("unreadable input")
        return ProcessingResult(filename="small.zip", path="/srv/processed/small.zip", size=size, processing_time=0.5)

    return compress


def test_unknown_job_raises_not_found_without_mutation():
    repo = InMemoryJobRepository()
    _dispatch(repo, ["a.txt"])
    before = {job_id: (job.status, job.progress, list(job.logs)) for job_id, job in repo.jobs.items()}

    with pytest.raises(NotFoundError) as excinfo:
        StatusService(repo).get_job_status("nope")

    assert excinfo.value.message == "Job not found"
    assert {job_id: (job.status, job.progress, list(job.logs)) for job_id, job in repo.jobs.items()} == before


def test_pending_job_has_no_download_url():
    repo = InMemoryJobRepository()
    result = _dispatch(repo, ["a.txt"])
    status = StatusService(repo).get_job_status(result.job_ids[0])

    assert status.status == JobStatus.PENDING
    assert status.progress == 0
    assert status.download_url is None
    assert status.original_filename == "a.txt"
    assert status.original_size == 1000


def test_completed_job_reports_output_and_ratio():
    repo = InMemoryJobRepository()
    result = _dispatch(repo, ["a.txt"])
    _run(repo, result, Processors(compress=_compress_to(250)))

    status = StatusService(repo).get_job_status(result.job_ids[0])
    assert status.status == JobStatus.COMPLETED
    assert status.progress == 100
    assert status.processed_filename == "small.zip"
    assert status.processed_size == 250
    assert status.compression_ratio == 75
    assert status.download_url == "/processed/small.zip"
    assert status.logs[0].message == "Starting compression..."


def test_failed_job_reports_error_message():
    repo = InMemoryJobRepository()
    result = _dispatch(repo, ["bad.txt"])
    _run(repo, result, Processors(compress=_compress_to(250)))

    status = StatusService(repo).get_job_status(result.job_ids[0])
    assert status.status == JobStatus.FAILED
    assert status.error_message == "unreadable input"
    assert status.download_url is None


def test_owned_job_is_hidden_from_other_users():
    repo = InMemoryJobRepository()
    result = _dispatch(repo, ["a.png"], OperationType.CONVERSION, {"target_format": "jpg"}, user_id="owner")
    service = StatusService(repo)

    assert service.get_job_status(result.job_ids[0], user_id="owner").job_id == result.job_ids[0]
    with pytest.raises(NotFoundError):
        service.get_job_status(result.job_ids[0], user_id="someone-else")
    with pytest.raises(NotFoundError):
        service.get_job_status(result.job_ids[0])


def test_operation_type_mismatch_is_not_found():
    repo = InMemoryJobRepository()
    result = _dispatch(repo, ["a.txt"])
    with pytest.raises(NotFoundError):
        StatusService(repo).get_job_status(result.job_ids[0], operation_type=OperationType.EXTRACTION)


def test_batch_status_counts_each_state():
    repo = InMemoryJobRepository()
    result = _dispatch(repo, ["a.txt", "bad.txt", "c.txt"])
    _run(repo, result, Processors(compress=_compress_to(10)))

    batch = StatusService(repo).get_batch_status(result.batch_id)
    assert batch.total == 3
    assert batch.counts == {"pending": 0, "processing": 0, "completed": 2, "failed": 1}
    assert {job.job_id for job in batch.jobs} == set(result.job_ids)


def test_unknown_batch_raises_not_found():
    with pytest.raises(NotFoundError) as excinfo:
        StatusService(InMemoryJobRepository()).get_batch_status("missing")
    assert excinfo.value.message == "Batch not found"


def test_extraction_metadata_is_included_when_requested():
    repo = InMemoryJobRepository()

    def extract(input_path, mode, include_metadata, language, progress):
        return ProcessingResult(
            filename="t.txt", path="/p/t.txt", size=5, processing_time=0.1, metadata={"word_count": 1}
        )

    with_meta = _dispatch(repo, ["a.txt"], OperationType.EXTRACTION, {"include_metadata": True})
    without_meta = _dispatch(repo, ["b.txt"], OperationType.EXTRACTION)
    _run(repo, with_meta, Processors(extract_text=extract))
    _run(repo, without_meta, Processors(extract_text=extract))

    service = StatusService(repo)
    assert service.get_job_status(with_meta.job_ids[0]).metadata == {"word_count": 1}
    assert service.get_job_status(without_meta.job_ids[0]).metadata is None
