"""Processing collaborators and the registry the job runner calls through.

Each collaborator takes the stored input path, its operation's options and a
progress reporter, returns a ``ProcessingResult`` and raises
``ProcessingError`` with a human-readable message on failure.
"""

from collections.abc import Callable
from dataclasses import dataclass

from pydantic import BaseModel

from fileforge.schemas.operations import (
    ArchiveExtractionOptions,
    CompressionOptions,
    ConversionOptions,
    ExtractionOptions,
)
from fileforge.services.processing.archive import extract_archive
from fileforge.services.processing.common import ProcessingResult, ProgressReporter
from fileforge.services.processing.compression import compress_file
from fileforge.services.processing.conversion import convert_file
from fileforge.services.processing.extraction import extract_text


@dataclass(slots=True)
class Processors:
    convert: Callable[..., ProcessingResult] = convert_file
    compress: Callable[..., ProcessingResult] = compress_file
    extract_text: Callable[..., ProcessingResult] = extract_text
    extract_archive: Callable[..., ProcessingResult] = extract_archive

    def invoke(self, input_path: str, options: BaseModel, progress: ProgressReporter) -> ProcessingResult:
        if isinstance(options, ConversionOptions):
            return self.convert(input_path, options.target_format, progress)
        if isinstance(options, CompressionOptions):
            return self.compress(input_path, options.level, options.preserve_quality, options.remove_metadata, progress)
        if isinstance(options, ExtractionOptions):
            return self.extract_text(input_path, options.mode, options.include_metadata, options.language, progress)
        if isinstance(options, ArchiveExtractionOptions):
            return self.extract_archive(input_path, options, progress)
        raise TypeError(f"No collaborator for options of type {type(options).__name__}")


def get_processors() -> Processors:
    return Processors()


__all__ = ["Processors", "ProcessingResult", "ProgressReporter", "get_processors"]
