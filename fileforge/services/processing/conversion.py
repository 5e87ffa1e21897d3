import shutil
import time
from pathlib import Path

from docx import Document
from PIL import Image, UnidentifiedImageError
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from fileforge.core.errors import ProcessingError
from fileforge.schemas.operations import SUPPORTED_FORMATS
from fileforge.services.processing.common import (
    ProcessingResult,
    ProgressReporter,
    build_result,
    discard,
    file_kind,
    output_path,
)
from fileforge.services.processing.media import run_ffmpeg

PILLOW_FORMATS = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "gif": "GIF",
    "bmp": "BMP",
    "tiff": "TIFF",
    "pdf": "PDF",
}
# formats that cannot carry an alpha channel
OPAQUE_FORMATS = {"JPEG", "BMP", "PDF"}


def convert_file(input_path: str, target_format: str, progress: ProgressReporter) -> ProcessingResult:
    started = time.monotonic()
    target = target_format.lower().lstrip(".")
    source_ext = Path(input_path).suffix.lower().lstrip(".")
    kind = file_kind(input_path)
    progress(10, "Analyzing file type...")

    destination = output_path("converted", target)
    try:
        if source_ext == target or {source_ext, target} == {"jpg", "jpeg"}:
            progress(50, "File already uses the target format, copying...")
            shutil.copyfile(input_path, destination)
        elif kind == "image":
            _convert_image(input_path, destination, target, progress)
        elif kind in {"video", "audio"}:
            _convert_media(input_path, destination, kind, target, progress)
        elif kind == "document":
            _convert_document(input_path, destination, source_ext, target, progress)
        else:
            raise ProcessingError(f"Unsupported file type for conversion: .{source_ext}")
    except ProcessingError:
        discard(destination)
        raise
    except (OSError, UnidentifiedImageError, PdfReadError, ValueError) as exc:
        discard(destination)
        raise ProcessingError(f"Conversion failed: {exc}", exc) from exc

    progress(100, "Conversion completed")
    return build_result(destination, started)


def _convert_image(input_path: str, destination: Path, target: str, progress: ProgressReporter) -> None:
    pillow_format = PILLOW_FORMATS.get(target)
    if pillow_format is None:
        raise ProcessingError(f"Unsupported image format: {target}")
    progress(20, "Loading image...")
    with Image.open(input_path) as image:
        if pillow_format in OPAQUE_FORMATS and image.mode not in {"RGB", "L"}:
            image = image.convert("RGB")
        progress(60, f"Writing {target.upper()} image...")
        image.save(destination, format=pillow_format)


def _convert_media(input_path: str, destination: Path, kind: str, target: str, progress: ProgressReporter) -> None:
    if target in SUPPORTED_FORMATS["audio"]:
        progress(20, "Initializing audio conversion...")
        run_ffmpeg(input_path, str(destination), ["-vn"])
    elif target in SUPPORTED_FORMATS["videos"] and kind == "video":
        progress(20, "Initializing video conversion...")
        run_ffmpeg(input_path, str(destination))
    else:
        raise ProcessingError(f"Cannot convert {kind} to {target}")
    progress(90, f"{kind.capitalize()} conversion finished, finalizing...")


def _convert_document(
    input_path: str, destination: Path, source_ext: str, target: str, progress: ProgressReporter
) -> None:
    progress(20, "Processing document...")
    if source_ext == "pdf" and target in {"txt", "docx"}:
        progress(50, "Extracting text from PDF...")
        text = "\n\n".join((page.extract_text() or "") for page in PdfReader(input_path).pages)
    elif source_ext == "docx" and target == "txt":
        progress(50, "Reading DOCX paragraphs...")
        text = "\n".join(paragraph.text for paragraph in Document(input_path).paragraphs)
    elif source_ext in {"txt", "csv", "md"} and target == "docx":
        text = Path(input_path).read_text(encoding="utf-8", errors="replace")
    else:
        raise ProcessingError(f"Cannot convert .{source_ext} documents to {target}")

    progress(70, f"Creating {target} document...")
    if target == "txt":
        destination.write_text(text, encoding="utf-8")
    else:
        document = Document()
        for block in text.split("\n"):
            document.add_paragraph(block)
        document.save(str(destination))
