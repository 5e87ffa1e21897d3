import logging
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path

from fastapi import HTTPException, UploadFile, status

from fileforge.core.config import get_settings
from fileforge.core.errors import StorageError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


@dataclass(slots=True)
class UploadedFile:
    original_filename: str
    mime_type: str
    size_bytes: int
    stored_path: str


def ensure_upload_dir() -> Path:
    settings = get_settings()
    root = Path(settings.upload_dir)
    root.mkdir(parents=True, exist_ok=True)
    return root


async def save_upload_files(files: list[UploadFile]) -> list[UploadedFile]:
    """Stream every upload to disk; on any rejection nothing from this request is kept."""
    settings = get_settings()
    if len(files) > settings.max_files_per_request:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many files. Maximum {settings.max_files_per_request} files allowed.",
        )
    saved: list[UploadedFile] = []
    try:
        for file in files:
            saved.append(await save_upload_file(file))
    except HTTPException:
        for item in saved:
            delete_file_if_exists(item.stored_path)
        raise
    return saved


async def save_upload_file(file: UploadFile) -> UploadedFile:
    settings = get_settings()
    content_type = (file.content_type or "application/octet-stream").lower()
    if content_type not in settings.allowed_mime_types:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"File type {content_type} is not supported")

    max_bytes = settings.max_upload_size_mb * 1024 * 1024
    ext = Path(file.filename or "").suffix.lower()
    root = ensure_upload_dir()
    final_path = root / f"{uuid.uuid4()}{ext}"

    total = 0
    with final_path.open("wb") as handle:
        while True:
            chunk = await file.read(CHUNK_SIZE)
            if not chunk:
                break
            total += len(chunk)
            if total > max_bytes:
                handle.close()
                final_path.unlink(missing_ok=True)
                raise HTTPException(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    detail=f"File too large. Maximum size is {settings.max_upload_size_mb}MB per file.",
                )
            handle.write(chunk)
    await file.close()
    return UploadedFile(
        original_filename=file.filename or final_path.name,
        mime_type=content_type,
        size_bytes=total,
        stored_path=str(final_path),
    )


def delete_file_if_exists(path: str | None) -> None:
    """Remove a file, or a directory tree for archive extraction output."""
    if not path:
        return
    p = Path(path)
    try:
        if p.is_dir():
            shutil.rmtree(p)
        else:
            p.unlink(missing_ok=True)
    except OSError as exc:
        raise StorageError(path, exc) from exc


def delete_backing_files(*paths: str | None) -> list[StorageError]:
    """Best-effort removal; failures are logged and returned, never raised."""
    errors: list[StorageError] = []
    for path in paths:
        try:
            delete_file_if_exists(path)
        except StorageError as exc:
            logger.warning("storage_delete_failed", extra={"path": exc.path, "error": str(exc.original_error)})
            errors.append(exc)
    return errors
