import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from fileforge.core.config import get_settings

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp", ".tiff", ".tif"}
VIDEO_EXTENSIONS = {".mp4", ".avi", ".mov", ".wmv", ".flv", ".webm", ".mkv"}
AUDIO_EXTENSIONS = {".mp3", ".wav", ".ogg", ".aac", ".flac", ".m4a"}
DOCUMENT_EXTENSIONS = {".pdf", ".docx", ".txt", ".csv", ".md"}
ARCHIVE_EXTENSIONS = {".zip", ".tar", ".gz", ".tgz"}


class ProgressReporter(Protocol):
    def __call__(self, percent: float, message: str) -> None: ...


@dataclass(slots=True)
class ProcessingResult:
    filename: str
    path: str
    size: int
    processing_time: float
    metadata: dict[str, Any] | None = None
    files_extracted: int | None = None


def file_kind(path: str) -> str:
    ext = Path(path).suffix.lower()
    if ext in IMAGE_EXTENSIONS:
        return "image"
    if ext in VIDEO_EXTENSIONS:
        return "video"
    if ext in AUDIO_EXTENSIONS:
        return "audio"
    if ext in DOCUMENT_EXTENSIONS:
        return "document"
    if ext in ARCHIVE_EXTENSIONS:
        return "archive"
    return "unknown"


def ensure_processed_dir() -> Path:
    root = Path(get_settings().processed_dir)
    root.mkdir(parents=True, exist_ok=True)
    return root


def output_path(tag: str, extension: str) -> Path:
    """``processed/<uuid>-<epoch ms>-<tag><extension>``; never collides between jobs."""
    extension = extension if extension.startswith(".") else f".{extension}"
    name = f"{uuid.uuid4()}-{int(time.time() * 1000)}-{tag}{extension}"
    return ensure_processed_dir() / name


def build_result(path: Path, started: float, **kwargs: Any) -> ProcessingResult:
    return ProcessingResult(
        filename=path.name,
        path=str(path),
        size=path.stat().st_size,
        processing_time=round(time.monotonic() - started, 3),
        **kwargs,
    )


def discard(path: Path) -> None:
    if path.is_file():
        path.unlink(missing_ok=True)
