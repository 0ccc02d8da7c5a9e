"""Video lifecycle - create, update, approve/reject, delete, listings."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from exceptions import ForbiddenError, NotFoundError, UpstreamFailure, ValidationError
from models import User, UserRole, Video, VideoStatus
from services.auth_service import AuthContext
from services.month_service import MonthService
from services.repository import CommentRepository, MonthRepository, UserRepository, VideoRepository
from services.storage_service import StorageService

logger = logging.getLogger(__name__)

PREVIEW_PREFIX = "preview-"

# (title, storage_path, size in bytes, age in days)
_PREVIEW_FIXTURES = [
    ("New Product Demo", "preview/new-product-demo.mp4", 10 * 1024 * 1024, 3),
    ("Upcoming Marketing Video", "preview/upcoming-marketing.mp4", 15 * 1024 * 1024, 5),
    ("Social Media Campaign", "preview/social-campaign.mp4", 20 * 1024 * 1024, 7),
]

UPDATABLE_FIELDS = ("title", "description", "storage_path", "file_size", "content_type", "month_id")


def is_preview_id(video_id: str) -> bool:
    return video_id.startswith(PREVIEW_PREFIX)


def preview_videos(client_id: str) -> list[dict[str, Any]]:
    """Synthetic not-yet-delivered videos shown on a client's dashboard."""
    now = datetime.now(timezone.utc)
    return [
        {
            "id": f"preview-mock-{n}-{client_id}",
            "title": title,
            "storage_path": path,
            "content_type": "video/mp4",
            "file_size": size,
            "client_id": client_id,
            "status": "preview",
            "created_at": (now - timedelta(days=age)).isoformat(),
            "is_preview": True,
        }
        for n, (title, path, size, age) in enumerate(_PREVIEW_FIXTURES, start=1)
    ]


def reject_preview(video_id: str) -> None:
    if is_preview_id(video_id):
        raise ValidationError("Preview videos are not persisted")


def _required(value: Any, field: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field} is required")


class VideoService:
    def __init__(self, db: AsyncSession, storage: StorageService | None = None):
        self.db = db
        self.videos = VideoRepository(db)
        self.months = MonthRepository(db)
        self.users = UserRepository(db)
        self.comments = CommentRepository(db)
        self.storage = storage

    async def create_video(
        self,
        *,
        title: str | None,
        storage_path: str | None,
        client_id: str | None,
        created_by: str | None,
        description: str | None = None,
        file_size: int | None = None,
        content_type: str | None = None,
        month_id: str | None = None,
        month_info: dict[str, Any] | None = None,
    ) -> Video:
        """Validate, resolve the month, insert.

        ``month_info`` ({month, year}) takes precedence over ``month_id`` and
        is resolved to a Month, created if needed. A Month created here is
        removed again if the video insert fails.
        """
        _required(client_id, "Client ID")
        _required(title, "Title")
        _required(storage_path, "storage_path")
        _required(created_by, "User ID")

        client = await self.users.find_by_id(client_id)
        if client is None or client.role != UserRole.CLIENT:
            raise ValidationError("Client ID does not reference a client")

        created_month: str | None = None
        if month_info and month_info.get("month") and month_info.get("year"):
            resolved = await MonthService(self.db).resolve_month(
                month_info.get("month"), month_info.get("year"), created_by
            )
            month_id = resolved.id
            if resolved.created:
                created_month = resolved.id

        _required(month_id, "Month")
        if await self.months.find_by_id(month_id) is None:
            raise ValidationError("Month does not exist")

        try:
            video = await self.videos.create(
                title=title.strip(),
                description=description,
                storage_path=storage_path,
                file_size=file_size or 0,
                content_type=content_type or "video/mp4",
                month_id=month_id,
                client_id=client_id,
                created_by=created_by,
                status=VideoStatus.PENDING,
            )
        except IntegrityError as e:
            await self.db.rollback()
            if created_month:
                await MonthService(self.db).delete_if_unused(created_month)
            raise UpstreamFailure("Error creating video in database", details={"error": str(e.orig)})

        logger.info("Created video %s for client %s (month %s)", video.id, client_id, month_id)
        return video

    async def update_video(self, video_id: str, fields: dict[str, Any]) -> Video:
        reject_preview(video_id)
        video = await self.videos.get(video_id)
        values = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS and v is not None}
        for key, label in (("title", "Title"), ("storage_path", "storage_path"), ("content_type", "content_type")):
            if key in values:
                _required(values[key], label)
        if "month_id" in values and await self.months.find_by_id(values["month_id"]) is None:
            raise ValidationError("Month does not exist")
        return await self.videos.update(video, **values)

    async def _visible(self, video_id: str, auth: AuthContext, action: str = "access") -> Video:
        reject_preview(video_id)
        video = await self.videos.get(video_id)
        if not auth.is_editor and video.client_id != auth.user_id:
            raise ForbiddenError(f"Not authorized to {action} this video")
        return video

    async def get_video(self, video_id: str, auth: AuthContext) -> Video:
        return await self._visible(video_id, auth)

    async def set_status(self, video_id: str, status: str, auth: AuthContext) -> Video:
        """Any status may follow any other; each write is stamped with who and when."""
        try:
            new_status = VideoStatus(status)
        except ValueError:
            raise ValidationError("Invalid status. Must be pending, approved, or rejected.")

        video = await self._visible(video_id, auth, "update")
        video = await self.videos.update(
            video,
            status=new_status,
            status_updated_at=datetime.now(timezone.utc),
            status_updated_by=auth.user_id,
        )
        logger.info("Video %s marked %s by %s", video_id, new_status.value, auth.user_id)
        return video

    async def delete_video(self, video_id: str) -> dict[str, str]:
        """Remove blob (best effort), the row, then its comments."""
        reject_preview(video_id)
        video = await self.videos.get(video_id)

        if video.storage_path and self.storage is not None:
            try:
                await self.storage.remove([video.storage_path])
            except (UpstreamFailure, NotFoundError) as e:
                logger.warning("Could not delete blob %s for video %s: %s", video.storage_path, video_id, e)

        await self.videos.delete(video)
        removed = await self.comments.delete_where(video_id=video_id)
        logger.info("Deleted video %s (%d comments)", video_id, removed)
        return {"message": "Video removed"}

    async def remove_blob(self, video_id: str) -> dict[str, str]:
        """Delete only the stored file; the video row stays."""
        reject_preview(video_id)
        video = await self.videos.get(video_id)
        if not video.storage_path:
            return {"message": "No storage file to delete"}
        await self.storage.remove([video.storage_path])
        logger.info("Deleted blob %s for video %s", video.storage_path, video_id)
        return {"message": "File deleted from storage"}

    async def video_url(self, video_id: str, auth: AuthContext) -> str:
        """24h signed playback URL."""
        video = await self._visible(video_id, auth)
        if not video.storage_path:
            raise NotFoundError("Video file not found in storage")
        return await self.storage.create_signed_url(video.storage_path)

    async def list_all(self) -> list[Video]:
        return list(await self.videos.find(order_by=Video.created_at.desc()))

    async def list_for_client(self, client_id: str) -> list[Video]:
        return list(await self.videos.find(order_by=Video.created_at.desc(), client_id=client_id))

    async def list_by_month(self, month_id: str, auth: AuthContext) -> list[Video]:
        """Videos in a month; clients only see their own."""
        filters: dict[str, Any] = {"month_id": month_id}
        if not auth.is_editor:
            filters["client_id"] = auth.user_id
        return list(await self.videos.find(order_by=Video.created_at.desc(), **filters))

    async def list_preview_for_client(self, client_id: str) -> list[Video | dict[str, Any]]:
        return [*await self.list_for_client(client_id), *preview_videos(client_id)]

    async def client_ids(self) -> set[str]:
        result = await self.db.execute(select(User.id).where(User.role == UserRole.CLIENT))
        return set(result.scalars().all())
