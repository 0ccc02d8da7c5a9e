"""Month model - global calendar buckets that videos are grouped under."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from database import Base
from models.user import utcnow

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


class Month(Base):
    """A (month, year) bucket shared by all clients.

    At most one row exists per (month, year); the unique constraint is what
    find-or-create relies on when two requests race for the same new pair.
    """

    __tablename__ = "months"
    __table_args__ = (
        UniqueConstraint("month", "year", name="uq_months_month_year"),
    )

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4())
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    created_by: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )

    @staticmethod
    def display_name(month: int, year: int) -> str:
        """Build the default label, e.g. "March 2025"."""
        return f"{MONTH_NAMES[month - 1]} {year}"

    def __repr__(self) -> str:
        return f"<Month {self.name}>"
