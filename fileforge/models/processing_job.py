from sqlalchemy import JSON, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fileforge.db.base import Base
from fileforge.models.common import JobStatus, TimestampMixin, UUIDPrimaryKeyMixin


class ProcessingJob(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "processing_jobs"

    job_id: Mapped[str] = mapped_column(String(80), unique=True, nullable=False, index=True)
    batch_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    file_history_id: Mapped[str] = mapped_column(
        ForeignKey("file_history.id", ondelete="CASCADE"), nullable=False, index=True
    )
    operation_type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), default=JobStatus.PENDING, nullable=False, index=True)
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # [{"timestamp": iso8601, "message": str}, ...] in append order
    logs: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    file_history = relationship("FileHistory", back_populates="jobs")
