from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_MIME_TYPES = [
    # Images
    "image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp", "image/bmp", "image/tiff",
    # Documents
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain", "text/csv",
    # Audio
    "audio/mpeg", "audio/mp3", "audio/wav", "audio/ogg", "audio/aac", "audio/flac",
    # Video
    "video/mp4", "video/avi", "video/mov", "video/wmv", "video/flv", "video/webm",
    # Archives
    "application/zip", "application/x-rar-compressed", "application/x-7z-compressed",
    "application/gzip", "application/x-tar",
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    app_name: str = "FileForge API"
    debug: bool = False

    database_url: str = "sqlite:///./fileforge.db"

    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"])
    upload_dir: str = "uploads"
    processed_dir: str = "processed"
    max_upload_size_mb: int = 100
    max_files_per_request: int = 10
    allowed_mime_types: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_MIME_TYPES))
    retention_days: int = 7
    rate_limit_per_minute: int = 100
    auto_create_tables: bool = True

    max_concurrent_jobs: int = 4
    job_timeout_seconds: int = 900

    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = ""
    celery_task_always_eager: bool = True

    def get_celery_broker_url(self) -> str:
        return self.celery_broker_url

    def get_celery_result_backend(self) -> str:
        return self.celery_result_backend or self.celery_broker_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
