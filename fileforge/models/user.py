from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fileforge.db.base import Base
from fileforge.models.common import TimestampMixin, UUIDPrimaryKeyMixin


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    file_history = relationship("FileHistory", back_populates="owner")
