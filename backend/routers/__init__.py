"""Routers package."""

from .auth import router as auth_router
from .months import router as months_router
from .social_media import router as social_media_router
from .storage import router as storage_router
from .users import router as users_router
from .videos import router as videos_router

__all__ = [
    "auth_router",
    "months_router",
    "social_media_router",
    "storage_router",
    "users_router",
    "videos_router",
]
