"""Initial schema: users, months, videos, comments, social media accounts and metrics.

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-18
"""

from typing import Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "a1c2e3f4b5d6"
down_revision: Union[str, None] = None
branch_labels: Union[str, None] = None
depends_on: Union[str, None] = None

user_role = sa.Enum("editor", "client", name="userrole")
video_status = sa.Enum("pending", "approved", "rejected", name="videostatus")
platform = sa.Enum(
    "instagram", "linkedin", "tiktok", "youtube", "facebook", "twitter", name="platform"
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("role", user_role, nullable=False, server_default="client"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("website_url", sa.String(500), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("keywords", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("password_reset_token", sa.String(64), nullable=True),
        sa.Column("password_reset_expires", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_password_reset_token", "users", ["password_reset_token"])

    op.create_table(
        "months",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column(
            "created_by", UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("month", "year", name="uq_months_month_year"),
        sa.CheckConstraint("month BETWEEN 1 AND 12", name="ck_months_month_range"),
    )

    op.create_table(
        "videos",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("storage_path", sa.String(1024), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("content_type", sa.String(100), nullable=False, server_default="video/mp4"),
        sa.Column("month_id", UUID(as_uuid=False), sa.ForeignKey("months.id"), nullable=False),
        sa.Column(
            "client_id", UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("created_by", UUID(as_uuid=False), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", video_status, nullable=False, server_default="pending"),
        sa.Column("status_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "status_updated_by", UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_videos_storage_path", "videos", ["storage_path"])
    op.create_index("ix_videos_month_id", "videos", ["month_id"])
    op.create_index("ix_videos_client_id", "videos", ["client_id"])

    op.create_table(
        "comments",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "video_id", UUID(as_uuid=False),
            sa.ForeignKey("videos.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "user_id", UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_comments_video_id", "comments", ["video_id"])

    op.create_table(
        "social_media_accounts",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column(
            "client_id", UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("platform", platform, nullable=False),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("profile_url", sa.String(500), nullable=True),
        sa.Column("profile_image_url", sa.String(500), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_social_media_accounts_client_id", "social_media_accounts", ["client_id"])

    op.create_table(
        "social_media_metrics",
        sa.Column("id", UUID(as_uuid=False), primary_key=True),
        sa.Column(
            "account_id", UUID(as_uuid=False),
            sa.ForeignKey("social_media_accounts.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("record_date", sa.Date(), nullable=False),
        sa.Column("followers", sa.Integer(), nullable=False),
        sa.Column("following", sa.Integer(), nullable=True),
        sa.Column("posts_count", sa.Integer(), nullable=True),
        sa.Column("reach", sa.Integer(), nullable=True),
        sa.Column("impressions", sa.Integer(), nullable=True),
        sa.Column("profile_views", sa.Integer(), nullable=True),
        sa.Column("engagement_rate", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("account_id", "record_date", name="uq_metrics_account_date"),
    )
    op.create_index("ix_social_media_metrics_account_id", "social_media_metrics", ["account_id"])


def downgrade() -> None:
    op.drop_table("social_media_metrics")
    op.drop_table("social_media_accounts")
    op.drop_table("comments")
    op.drop_table("videos")
    op.drop_table("months")
    op.drop_table("users")
    platform.drop(op.get_bind(), checkfirst=True)
    video_status.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
