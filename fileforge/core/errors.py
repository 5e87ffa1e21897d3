"""Error taxonomy shared by the services and the HTTP layer.

Only ``ValidationError`` and ``AuthenticationError`` may reject a submission.
Everything raised after the records exist is confined to the owning job.
"""

from typing import Any


class FileForgeError(Exception):
    """Base class; carries the HTTP status the API layer renders it with."""

    error_type: str = "FileForgeError"
    status_code: int = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details or {}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"detail": self.message, "error": self.error_type}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(FileForgeError):
    """Missing files, a missing option, or an option outside its enumeration."""

    error_type = "ValidationError"
    status_code = 400

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class AuthenticationError(FileForgeError):
    error_type = "AuthenticationError"
    status_code = 401


class NotFoundError(FileForgeError):
    """Unknown identifier, or one owned by a different user."""

    error_type = "NotFoundError"
    status_code = 404

    @staticmethod
    def job(job_id: str) -> "NotFoundError":
        return NotFoundError("Job not found", {"job_id": job_id})

    @staticmethod
    def batch(batch_id: str) -> "NotFoundError":
        return NotFoundError("Batch not found", {"batch_id": batch_id})

    @staticmethod
    def history(history_id: str) -> "NotFoundError":
        return NotFoundError("File history not found", {"file_history_id": history_id})


class ProcessingError(FileForgeError):
    """Raised by a processing collaborator; recorded on the job, never re-raised by the runner."""

    error_type = "ProcessingError"
    status_code = 422

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.original_error = original_error


class StorageError(FileForgeError):
    error_type = "StorageError"
    status_code = 500

    def __init__(self, path: str, original_error: Exception | None = None) -> None:
        reason = f": {original_error}" if original_error else ""
        super().__init__(f"Failed to delete {path}{reason}", {"path": path})
        self.path = path
        self.original_error = original_error
