from fileforge.models.file_history import FileHistory
from fileforge.models.file_metadata import FileMetadata
from fileforge.models.processing_job import ProcessingJob
from fileforge.models.user import User

__all__ = ["User", "FileHistory", "ProcessingJob", "FileMetadata"]
