"""Video model - a client deliverable awaiting approval."""

import enum
from datetime import datetime
from uuid import uuid4

from sqlalchemy import BigInteger, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from database import Base
from models.user import utcnow


class VideoStatus(str, enum.Enum):
    """Approval status. Any status may move to any other."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Video(Base):
    """Video record. The binary lives in blob storage under storage_path."""

    __tablename__ = "videos"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4())
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Blob storage
    storage_path: Mapped[str] = mapped_column(String(1024), nullable=False, index=True)
    file_size: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), default="video/mp4", nullable=False)

    month_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("months.id"),
        nullable=False,
        index=True
    )
    client_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    created_by: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id"),
        nullable=False
    )

    status: Mapped[VideoStatus] = mapped_column(
        Enum(VideoStatus, values_callable=lambda enum: [e.value for e in enum]),
        default=VideoStatus.PENDING,
        nullable=False
    )
    status_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    status_updated_by: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<Video {self.title} ({self.status.value})>"
