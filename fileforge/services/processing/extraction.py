import time
from pathlib import Path

from docx import Document
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from fileforge.core.errors import ProcessingError
from fileforge.services.processing.common import ProcessingResult, ProgressReporter, build_result, discard, output_path

PLAIN_TEXT_EXTENSIONS = {".txt", ".csv", ".md"}
NATIVE_EXTENSIONS = PLAIN_TEXT_EXTENSIONS | {".pdf", ".docx"}
# below this many characters a hybrid extraction would fall back to OCR
HYBRID_MIN_CHARS = 50


def extract_text(
    input_path: str,
    mode: str,
    include_metadata: bool,
    language: str,
    progress: ProgressReporter,
) -> ProcessingResult:
    started = time.monotonic()
    source = Path(input_path)
    ext = source.suffix.lower()
    progress(10, "Analyzing file for text extraction...")

    method = mode
    if mode == "auto":
        method = "native" if ext in NATIVE_EXTENSIONS else "ocr"

    try:
        if method == "ocr":
            text, page_count = _ocr(source, progress)
        elif method == "native":
            text, page_count = _native(source, progress)
        elif method == "hybrid":
            text, page_count = _native(source, lambda pct, msg: progress(20 + pct * 0.3, f"Native: {msg}"))
            if not text.strip():
                progress(50, "Native extraction found no text, using OCR...")
                text, page_count = _ocr(source, progress)
            elif len(text.strip()) < HYBRID_MIN_CHARS:
                progress(50, "Native extraction yielded little text; keeping it, OCR fallback is unavailable")
        else:
            raise ProcessingError(f"Unsupported extraction mode: {mode}")
    except (OSError, PdfReadError, ValueError) as exc:
        raise ProcessingError(f"Text extraction failed: {exc}", exc) from exc

    progress(80, "Formatting extracted text...")
    destination = output_path("extracted", ".txt")
    try:
        destination.write_text(text, encoding="utf-8")
    except OSError as exc:
        discard(destination)
        raise ProcessingError(f"Unable to write extracted text: {exc}", exc) from exc

    metadata = None
    if include_metadata:
        metadata = {
            "extraction_method": method,
            "language": language,
            "page_count": page_count,
            "character_count": len(text),
            "word_count": len(text.split()),
            "line_count": text.count("\n") + 1 if text else 0,
        }
    progress(100, "Text extraction completed")
    return build_result(destination, started, metadata=metadata)


def _native(source: Path, progress: ProgressReporter) -> tuple[str, int]:
    ext = source.suffix.lower()
    progress(20, "Extracting native text...")
    if ext in PLAIN_TEXT_EXTENSIONS:
        return source.read_text(encoding="utf-8", errors="replace"), 1
    if ext == ".pdf":
        progress(40, "Extracting text from PDF...")
        pages = PdfReader(str(source)).pages
        return "\n\n".join((page.extract_text() or "") for page in pages), len(pages)
    if ext == ".docx":
        progress(40, "Extracting text from DOCX...")
        return "\n".join(paragraph.text for paragraph in Document(str(source)).paragraphs), 1
    raise ProcessingError(f"Native text extraction not supported for: {ext or 'files without extension'}")


def _ocr(source: Path, progress: ProgressReporter) -> tuple[str, int]:
    progress(20, "Preparing image for OCR...")
    raise ProcessingError("OCR engine is not available")
