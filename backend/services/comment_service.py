"""Comments on videos."""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from exceptions import ForbiddenError, ValidationError
from models import Comment, User
from services.auth_service import AuthContext
from services.repository import CommentRepository, UserRepository, VideoRepository
from services.video_service import reject_preview

logger = logging.getLogger(__name__)


def comment_payload(comment: Comment, author: User | None) -> dict[str, Any]:
    """Comment row plus a small author summary (None when the author is gone)."""
    return {
        "id": comment.id,
        "content": comment.content,
        "video_id": comment.video_id,
        "user_id": comment.user_id,
        "resolved": comment.resolved,
        "created_at": comment.created_at,
        "user": (
            {"id": author.id, "name": author.name, "role": author.role.value}
            if author else None
        ),
    }


class CommentService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.comments = CommentRepository(db)
        self.videos = VideoRepository(db)
        self.users = UserRepository(db)

    async def _check_video_access(self, video_id: str, auth: AuthContext, action: str) -> None:
        reject_preview(video_id)
        video = await self.videos.get(video_id)
        if not auth.is_editor and video.client_id != auth.user_id:
            raise ForbiddenError(f"Not authorized to {action}")

    async def add_comment(self, video_id: str, content: str, auth: AuthContext) -> dict[str, Any]:
        if not content or not content.strip():
            raise ValidationError("Comment content is required")
        await self._check_video_access(video_id, auth, "comment on this video")
        comment = await self.comments.create(
            content=content, video_id=video_id, user_id=auth.user_id
        )
        author = await self.users.find_by_id(auth.user_id)
        logger.info("Comment %s added to video %s by %s", comment.id, video_id, auth.user_id)
        return comment_payload(comment, author)

    async def list_comments(self, video_id: str, auth: AuthContext) -> list[dict[str, Any]]:
        """Newest first, each with its author looked up separately."""
        await self._check_video_access(video_id, auth, "view comments for this video")
        comments = await self.comments.find(order_by=Comment.created_at.desc(), video_id=video_id)

        authors: dict[str, User | None] = {}
        payload = []
        for comment in comments:
            if comment.user_id and comment.user_id not in authors:
                authors[comment.user_id] = await self.users.find_by_id(comment.user_id)
            payload.append(comment_payload(comment, authors.get(comment.user_id)))
        return payload

    async def delete_comment(self, comment_id: str, auth: AuthContext) -> dict[str, str]:
        comment = await self.comments.get(comment_id)
        if not auth.is_editor and comment.user_id != auth.user_id:
            raise ForbiddenError("Not authorized to delete this comment")
        await self.comments.delete(comment)
        return {"message": "Comment removed"}

    async def set_resolved(
        self, comment_id: str, resolved: bool | None, auth: AuthContext
    ) -> Comment:
        """Editor-only. ``resolved=None`` flips the current flag."""
        if not auth.is_editor:
            raise ForbiddenError("Access denied. Only admins can resolve comments.")
        comment = await self.comments.get(comment_id)
        value = (not comment.resolved) if resolved is None else resolved
        return await self.comments.update(comment, resolved=value)
