import time
import zipfile
from pathlib import Path

from PIL import Image, UnidentifiedImageError
from PyPDF2 import PdfReader, PdfWriter
from PyPDF2.errors import PdfReadError

from fileforge.core.errors import ProcessingError
from fileforge.services.processing.common import (
    ProcessingResult,
    ProgressReporter,
    build_result,
    discard,
    file_kind,
    output_path,
)
from fileforge.services.processing.media import run_ffmpeg

IMAGE_QUALITY = {"light": 85, "medium": 70, "high": 50, "extreme": 30}
VIDEO_CRF = {"light": 23, "medium": 28, "high": 32, "extreme": 38}
AUDIO_BITRATE = {"light": "192k", "medium": "128k", "high": "96k", "extreme": "64k"}
ZIP_LEVEL = {"light": 3, "medium": 6, "high": 8, "extreme": 9}


def compress_file(
    input_path: str,
    level: str,
    preserve_quality: bool,
    remove_metadata: bool,
    progress: ProgressReporter,
) -> ProcessingResult:
    started = time.monotonic()
    source = Path(input_path)
    kind = file_kind(input_path)
    progress(10, "Analyzing file for compression...")

    keeps_format = kind in {"image", "video", "audio"} or source.suffix.lower() == ".pdf"
    destination = output_path("compressed", source.suffix.lower() if keeps_format else ".zip")

    try:
        if kind == "image":
            _compress_image(source, destination, level, preserve_quality, remove_metadata, progress)
        elif kind == "video":
            progress(20, "Initializing video compression...")
            run_ffmpeg(input_path, str(destination), ["-c:v", "libx264", "-crf", str(VIDEO_CRF[level]), "-preset", "medium"])
        elif kind == "audio":
            progress(20, "Initializing audio compression...")
            run_ffmpeg(input_path, str(destination), ["-b:a", AUDIO_BITRATE[level]])
        elif source.suffix.lower() == ".pdf":
            _compress_pdf(source, destination, remove_metadata, progress)
        else:
            _compress_to_zip(source, destination, level, progress)
    except ProcessingError:
        discard(destination)
        raise
    except (OSError, UnidentifiedImageError, PdfReadError, ValueError) as exc:
        discard(destination)
        raise ProcessingError(f"Compression failed: {exc}", exc) from exc

    progress(100, "Compression completed")
    return build_result(destination, started)


def _compress_image(
    source: Path,
    destination: Path,
    level: str,
    preserve_quality: bool,
    remove_metadata: bool,
    progress: ProgressReporter,
) -> None:
    progress(20, "Loading image for compression...")
    quality = IMAGE_QUALITY[level]
    if preserve_quality:
        quality = min(quality + 10, 95)
    with Image.open(source) as image:
        save_kwargs: dict = {"optimize": True}
        if not remove_metadata and image.info.get("exif"):
            save_kwargs["exif"] = image.info["exif"]
        pillow_format = image.format or "PNG"
        if pillow_format in {"JPEG", "WEBP"}:
            save_kwargs["quality"] = quality
        elif pillow_format == "PNG":
            save_kwargs["compress_level"] = 9
        progress(40, f"Compressing image using {pillow_format} format...")
        image.save(destination, format=pillow_format, **save_kwargs)


def _compress_pdf(source: Path, destination: Path, remove_metadata: bool, progress: ProgressReporter) -> None:
    progress(30, "Compressing PDF...")
    reader = PdfReader(str(source))
    writer = PdfWriter()
    total = len(reader.pages) or 1
    for index, page in enumerate(reader.pages, start=1):
        added = writer.add_page(page)
        added.compress_content_streams()
        progress(30 + int(index / total * 60), f"Compressed page {index}/{total}")
    if not remove_metadata and reader.metadata:
        writer.add_metadata({key: str(value) for key, value in reader.metadata.items()})
    with destination.open("wb") as handle:
        writer.write(handle)


def _compress_to_zip(source: Path, destination: Path, level: str, progress: ProgressReporter) -> None:
    progress(30, "Creating compressed archive...")
    with zipfile.ZipFile(destination, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=ZIP_LEVEL[level]) as archive:
        archive.write(source, arcname=source.name)
    progress(90, "Archive created")
