from sqlalchemy import JSON, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fileforge.db.base import Base
from fileforge.models.common import TimestampMixin, UUIDPrimaryKeyMixin


class FileMetadata(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "file_metadata"

    file_history_id: Mapped[str] = mapped_column(
        ForeignKey("file_history.id", ondelete="CASCADE"), nullable=False, index=True
    )
    metadata_key: Mapped[str] = mapped_column(String(128), nullable=False)
    metadata_value: Mapped[object] = mapped_column(JSON, nullable=True)

    file_history = relationship("FileHistory", back_populates="metadata_entries")
