"""Per-operation option models.

The four models form a tagged union on ``operation``. The union is what the
dispatcher validates and the runner hands to collaborators; the record store
only ever sees ``model_dump()`` output in the opaque ``operation_details``
column, next to the ``operation_type`` column that carries the same tag.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

SUPPORTED_FORMATS: dict[str, list[str]] = {
    "images": ["jpg", "jpeg", "png", "webp", "gif", "bmp", "tiff"],
    "videos": ["mp4", "avi", "mov", "wmv", "flv", "webm"],
    "audio": ["mp3", "wav", "ogg", "aac", "flac"],
    "documents": ["pdf", "docx", "txt"],
}
ALL_TARGET_FORMATS = {fmt for formats in SUPPORTED_FORMATS.values() for fmt in formats}

CompressionLevel = Literal["light", "medium", "high", "extreme"]
ExtractionMode = Literal["auto", "ocr", "native", "hybrid"]
ExtractionLanguage = Literal["auto", "en", "es", "fr", "de", "zh", "ja", "ko", "ru", "ar", "hi"]


class ConversionOptions(BaseModel):
    operation: Literal["conversion"] = "conversion"
    target_format: str

    @field_validator("target_format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        normalized = value.strip().lower().lstrip(".")
        if not normalized:
            raise ValueError("Target format is required")
        if normalized not in ALL_TARGET_FORMATS:
            raise ValueError(f"Unsupported target format: {value}")
        return normalized


class CompressionOptions(BaseModel):
    operation: Literal["compression"] = "compression"
    level: CompressionLevel = "medium"
    preserve_quality: bool = True
    remove_metadata: bool = False


class ExtractionOptions(BaseModel):
    operation: Literal["extraction"] = "extraction"
    mode: ExtractionMode = "auto"
    include_metadata: bool = False
    language: ExtractionLanguage = "auto"
    output_format: Literal["txt"] = "txt"


class ArchiveExtractionOptions(BaseModel):
    operation: Literal["archive_extraction"] = "archive_extraction"
    overwrite_existing: bool = False
    extract_path: str | None = None

    @field_validator("extract_path")
    @classmethod
    def _plain_label(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        value = value.strip()
        if "/" in value or "\\" in value or value in {".", ".."}:
            raise ValueError("extract_path must be a plain directory name")
        return value


OperationOptions = Annotated[
    Union[ConversionOptions, CompressionOptions, ExtractionOptions, ArchiveExtractionOptions],
    Field(discriminator="operation"),
]

_options_adapter: TypeAdapter = TypeAdapter(OperationOptions)


def parse_operation_details(operation_type: str, details: dict) -> BaseModel:
    """Rebuild the typed options from a stored ``operation_details`` blob."""
    payload = {key: value for key, value in (details or {}).items() if key not in {"mimetype", "size"}}
    payload["operation"] = operation_type
    return _options_adapter.validate_python(payload)
