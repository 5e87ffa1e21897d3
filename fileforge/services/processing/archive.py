import gzip
import shutil
import tarfile
import time
import uuid
import zipfile
from pathlib import Path

from fileforge.core.errors import ProcessingError
from fileforge.schemas.operations import ArchiveExtractionOptions
from fileforge.services.processing.common import ProcessingResult, ProgressReporter, ensure_processed_dir


def extract_archive(
    input_path: str,
    options: ArchiveExtractionOptions,
    progress: ProgressReporter,
) -> ProcessingResult:
    started = time.monotonic()
    source = Path(input_path)
    name = source.name.lower()
    label = options.extract_path or "extracted"
    output_dir = ensure_processed_dir() / f"{uuid.uuid4()}-{int(time.time() * 1000)}-{label}"
    output_dir.mkdir(parents=True, exist_ok=True)

    try:
        progress(10, "Preparing archive extraction...")
        if name.endswith(".zip"):
            _extract_zip(source, output_dir, options.overwrite_existing, progress)
        elif name.endswith((".tar", ".tar.gz", ".tgz")):
            _extract_tar(source, output_dir, options.overwrite_existing, progress)
        elif name.endswith(".gz"):
            _extract_gzip(source, output_dir, progress)
        else:
            raise ProcessingError(f"Unsupported archive type: {source.suffix or name}. Supported: .zip, .tar, .tar.gz, .gz")

        size, files = _dir_stats(output_dir)
        progress(100, "Archive extraction completed")
    except ProcessingError:
        shutil.rmtree(output_dir, ignore_errors=True)
        raise
    except (OSError, zipfile.BadZipFile, tarfile.TarError, EOFError) as exc:
        shutil.rmtree(output_dir, ignore_errors=True)
        raise ProcessingError(f"Archive extraction failed: {exc}", exc) from exc

    return ProcessingResult(
        filename=output_dir.name,
        path=str(output_dir),
        size=size,
        processing_time=round(time.monotonic() - started, 3),
        files_extracted=files,
    )


def _safe_target(root: Path, member_name: str) -> Path:
    target = (root / member_name).resolve()
    if not target.is_relative_to(root.resolve()):
        raise ProcessingError(f"Archive entry escapes the extraction directory: {member_name}")
    return target


def _extract_zip(source: Path, output_dir: Path, overwrite: bool, progress: ProgressReporter) -> None:
    with zipfile.ZipFile(source) as archive:
        entries = archive.infolist()
        total = len(entries) or 1
        for index, entry in enumerate(entries, start=1):
            target = _safe_target(output_dir, entry.filename)
            if entry.is_dir():
                target.mkdir(parents=True, exist_ok=True)
            elif overwrite or not target.exists():
                target.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(entry) as src, target.open("wb") as dst:
                    shutil.copyfileobj(src, dst)
            progress(10 + int(index / total * 80), f"Extracting {entry.filename}")


def _extract_tar(source: Path, output_dir: Path, overwrite: bool, progress: ProgressReporter) -> None:
    with tarfile.open(source) as archive:
        members = archive.getmembers()
        total = len(members) or 1
        for index, member in enumerate(members, start=1):
            target = _safe_target(output_dir, member.name)
            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
            elif member.isfile() and (overwrite or not target.exists()):
                target.parent.mkdir(parents=True, exist_ok=True)
                src = archive.extractfile(member)
                if src is not None:
                    with src, target.open("wb") as dst:
                        shutil.copyfileobj(src, dst)
            # links and devices are skipped
            progress(10 + int(index / total * 80), f"Extracting {member.name}")


def _extract_gzip(source: Path, output_dir: Path, progress: ProgressReporter) -> None:
    target = output_dir / (source.stem or "extracted")
    with gzip.open(source, "rb") as src, target.open("wb") as dst:
        shutil.copyfileobj(src, dst)
    progress(90, f"Extracting {target.name}")


def _dir_stats(root: Path) -> tuple[int, int]:
    size = 0
    files = 0
    for path in root.rglob("*"):
        if path.is_file():
            size += path.stat().st_size
            files += 1
    return size, files
