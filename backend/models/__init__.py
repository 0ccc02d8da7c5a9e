"""Database models."""

from database import Base

# Accounts
from models.user import User, UserRole

# Approval workflow
from models.month import Month
from models.video import Video, VideoStatus
from models.comment import Comment

# Social media tracking
from models.social_media_account import SocialMediaAccount, Platform
from models.social_media_metrics import SocialMediaMetrics

__all__ = [
    # Base
    "Base",
    # Accounts
    "User",
    "UserRole",
    # Approval workflow
    "Month",
    "Video",
    "VideoStatus",
    "Comment",
    # Social media
    "SocialMediaAccount",
    "Platform",
    "SocialMediaMetrics",
]
