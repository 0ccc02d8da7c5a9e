"""Videos router - video CRUD, approval status and comments."""

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from middleware.auth import CurrentAuth, EditorAuth
from services.comment_service import CommentService
from services.storage_service import StorageService, get_storage_service
from services.video_service import VideoService

router = APIRouter(prefix="/videos", tags=["videos"])


# Request/Response schemas
class VideoResponse(BaseModel):
    id: str
    title: str
    description: str | None = None
    storage_path: str | None = None
    file_size: int = 0
    content_type: str = "video/mp4"
    month_id: str | None = None
    client_id: str
    created_by: str | None = None
    status: str
    status_updated_at: datetime | None = None
    status_updated_by: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    is_preview: bool = False

    class Config:
        from_attributes = True


class MonthInfo(BaseModel):
    month: int | str
    year: int | str


class VideoCreateRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    storage_path: str | None = None
    client_id: str | None = None
    month_id: str | None = None
    monthInfo: MonthInfo | None = None
    file_size: int | None = Field(default=None, ge=0)
    content_type: str | None = None


class VideoUpdateRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    storage_path: str | None = None
    file_size: int | None = Field(default=None, ge=0)
    content_type: str | None = None
    month_id: str | None = None


class StatusUpdateRequest(BaseModel):
    status: str


class CommentCreateRequest(BaseModel):
    content: str = Field(min_length=1)


class CommentAuthor(BaseModel):
    id: str
    name: str | None
    role: str


class CommentResponse(BaseModel):
    id: str
    content: str
    video_id: str
    user_id: str | None
    resolved: bool
    created_at: datetime
    user: CommentAuthor | None = None

    class Config:
        from_attributes = True


class ResolveRequest(BaseModel):
    resolved: bool | None = None


class MessageResponse(BaseModel):
    message: str


def get_video_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    storage: Annotated[StorageService, Depends(get_storage_service)],
) -> VideoService:
    return VideoService(db, storage)


def get_comment_service(db: Annotated[AsyncSession, Depends(get_db)]) -> CommentService:
    return CommentService(db)


Videos = Annotated[VideoService, Depends(get_video_service)]
Comments = Annotated[CommentService, Depends(get_comment_service)]


# Listings
@router.get("", response_model=list[VideoResponse])
async def list_videos(auth: EditorAuth, videos: Videos):
    """All videos, newest first (editor only)."""
    return await videos.list_all()


@router.get("/client", response_model=list[VideoResponse])
async def list_own_videos(auth: CurrentAuth, videos: Videos):
    """The calling client's videos."""
    if auth.is_editor:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Editors must use /api/videos/client/:clientId endpoint",
        )
    return await videos.list_for_client(auth.user_id)


@router.get("/client/preview", response_model=list[VideoResponse])
async def list_own_videos_with_previews(auth: CurrentAuth, videos: Videos):
    """Real videos followed by upcoming (not yet delivered) previews."""
    return await videos.list_preview_for_client(auth.user_id)


@router.get("/client/{client_id}", response_model=list[VideoResponse])
async def list_client_videos(client_id: str, auth: EditorAuth, videos: Videos):
    return await videos.list_for_client(client_id)


@router.get("/month/{month_id}", response_model=list[VideoResponse])
async def list_month_videos(month_id: str, auth: CurrentAuth, videos: Videos):
    return await videos.list_by_month(month_id, auth)


# Comment endpoints addressed by comment id
@router.delete("/comments/{comment_id}", response_model=MessageResponse)
async def delete_comment(comment_id: str, auth: CurrentAuth, comments: Comments):
    """Author or editor."""
    return await comments.delete_comment(comment_id, auth)


@router.put("/comments/{comment_id}/resolve", response_model=CommentResponse)
async def resolve_comment(
    comment_id: str,
    auth: CurrentAuth,
    comments: Comments,
    data: ResolveRequest | None = None,
):
    """Set the resolved flag (editor only). Without a body the flag toggles."""
    return await comments.set_resolved(comment_id, data.resolved if data else None, auth)


# Single video
@router.post("", response_model=VideoResponse, status_code=status.HTTP_201_CREATED)
async def create_video(data: VideoCreateRequest, auth: CurrentAuth, videos: Videos):
    """Create a pending video. Clients may only create videos for themselves."""
    if not auth.is_editor and data.client_id and data.client_id != auth.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to create videos for another client",
        )
    month_info: dict[str, Any] | None = data.monthInfo.model_dump() if data.monthInfo else None
    return await videos.create_video(
        title=data.title,
        description=data.description,
        storage_path=data.storage_path,
        file_size=data.file_size,
        content_type=data.content_type,
        client_id=data.client_id,
        created_by=auth.user_id,
        month_id=data.month_id,
        month_info=month_info,
    )


@router.get("/{video_id}", response_model=VideoResponse)
async def get_video(video_id: str, auth: CurrentAuth, videos: Videos):
    return await videos.get_video(video_id, auth)


@router.put("/{video_id}", response_model=VideoResponse)
async def update_video(
    video_id: str, data: VideoUpdateRequest, auth: EditorAuth, videos: Videos
):
    return await videos.update_video(video_id, data.model_dump(exclude_unset=True))


@router.put("/{video_id}/status", response_model=VideoResponse)
async def update_status(
    video_id: str, data: StatusUpdateRequest, auth: CurrentAuth, videos: Videos
):
    """Approve, reject or reset to pending. Editor or the owning client."""
    return await videos.set_status(video_id, data.status, auth)


@router.delete("/{video_id}", response_model=MessageResponse)
async def delete_video(video_id: str, auth: EditorAuth, videos: Videos):
    return await videos.delete_video(video_id)


# Comments on a video
@router.post(
    "/{video_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    video_id: str, data: CommentCreateRequest, auth: CurrentAuth, comments: Comments
):
    return await comments.add_comment(video_id, data.content, auth)


@router.get("/{video_id}/comments", response_model=list[CommentResponse])
async def list_comments(video_id: str, auth: CurrentAuth, comments: Comments):
    """Newest first."""
    return await comments.list_comments(video_id, auth)
