"""SocialMediaMetrics model - dated snapshot of an account's numbers."""

from datetime import date, datetime
from uuid import uuid4

from sqlalchemy import Date, DateTime, Float, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from database import Base
from models.user import utcnow

# Columns that can be used for growth calculations
NUMERIC_METRICS = (
    "followers",
    "following",
    "posts_count",
    "reach",
    "impressions",
    "profile_views",
    "engagement_rate",
)


class SocialMediaMetrics(Base):
    """One row per account per record date.

    Writing a second record for the same date updates the first.
    """

    __tablename__ = "social_media_metrics"
    __table_args__ = (
        UniqueConstraint("account_id", "record_date", name="uq_metrics_account_date"),
    )

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4())
    )
    account_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("social_media_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    record_date: Mapped[date] = mapped_column(Date, nullable=False)

    followers: Mapped[int] = mapped_column(Integer, nullable=False)
    following: Mapped[int | None] = mapped_column(Integer, nullable=True)
    posts_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reach: Mapped[int | None] = mapped_column(Integer, nullable=True)
    impressions: Mapped[int | None] = mapped_column(Integer, nullable=True)
    profile_views: Mapped[int | None] = mapped_column(Integer, nullable=True)
    engagement_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

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
        return f"<SocialMediaMetrics {self.account_id} {self.record_date}>"
