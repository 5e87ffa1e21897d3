from sqlalchemy import JSON, BigInteger, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fileforge.db.base import Base
from fileforge.models.common import JobStatus, TimestampMixin, UUIDPrimaryKeyMixin


class FileHistory(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "file_history"

    user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    original_path: Mapped[str] = mapped_column(String(500), nullable=False)
    processed_filename: Mapped[str | None] = mapped_column(String(255), nullable=True)
    processed_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    operation_type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    operation_details: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    processed_size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    processing_time: Mapped[float | None] = mapped_column(Float, nullable=True)
    files_extracted: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(32), default=JobStatus.PENDING, nullable=False, index=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    owner = relationship("User", back_populates="file_history")
    jobs = relationship("ProcessingJob", back_populates="file_history", cascade="all, delete-orphan", passive_deletes=True)
    metadata_entries = relationship(
        "FileMetadata", back_populates="file_history", cascade="all, delete-orphan", passive_deletes=True
    )
