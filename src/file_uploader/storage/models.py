"""SQLAlchemy ORM models for File Uploader."""

from datetime import datetime

from sqlalchemy import DateTime, LargeBinary, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""


# -----------------------------------------------------------------------------
# Files
# -----------------------------------------------------------------------------


class FileModel(Base):
    """Uploaded file metadata and payload."""

    __tablename__ = "files"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    name: Mapped[str] = mapped_column(String(512), nullable=False)
    type: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    # Stored whole; no chunking
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False, default=b"")
