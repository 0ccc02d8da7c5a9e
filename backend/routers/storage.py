"""Storage router - uploads, signed playback URLs, bucket listing and sync."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile
from starlette.types import Message

from config import get_settings
from database import get_db
from exceptions import PayloadTooLargeError
from middleware.auth import CurrentAuth, EditorAuth
from services.month_service import MonthService, parse_month_year
from services.scheduler import schedule_storage_sync
from services.storage_service import StorageService, get_storage_service, storage_path_for
from services.video_service import VideoService

router = APIRouter(prefix="/storage", tags=["storage"])
settings = get_settings()

CHUNK_SIZE = 1024 * 1024


class UploadResponse(BaseModel):
    success: bool
    path: str
    size: int
    type: str


class VideoUrlResponse(BaseModel):
    url: str


class ListResponse(BaseModel):
    bucket: str
    path: str
    files: list[dict]


class SyncResponse(BaseModel):
    message: str
    note: str


class MessageResponse(BaseModel):
    message: str


Storage = Annotated[StorageService, Depends(get_storage_service)]


def _too_large(limit: int) -> PayloadTooLargeError:
    return PayloadTooLargeError(f"File exceeds the {limit // (1024 * 1024)}MB limit")


def _capped(request: Request, limit: int) -> Request:
    """The same request, with a body stream that fails once it passes ``limit`` bytes."""
    received = 0

    async def receive() -> Message:
        nonlocal received
        message = await request.receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > limit:
                raise _too_large(limit)
        return message

    return Request(request.scope, receive)


async def _read_limited(upload: UploadFile, limit: int) -> bytes:
    """Read an upload in chunks, failing as soon as it passes ``limit`` bytes."""
    chunks: list[bytes] = []
    total = 0
    while chunk := await upload.read(CHUNK_SIZE):
        total += len(chunk)
        if total > limit:
            raise _too_large(limit)
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/upload", response_model=UploadResponse)
async def upload(
    request: Request,
    auth: CurrentAuth,
    storage: Storage,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Multipart upload (``file``, ``client_id``, ``month_id`` or ``month``+``year``).

    The declared Content-Length is checked before the body is parsed, and
    bodies without one are cut off as soon as they pass the limit.
    """
    limit = settings.max_upload_bytes
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise _too_large(limit)

    async with _capped(request, limit).form() as form:
        upload_file = form.get("file")
        client_id = form.get("client_id")
        month_id = form.get("month_id")

        if not isinstance(upload_file, UploadFile):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
        if not client_id or not (month_id or (form.get("month") and form.get("year"))):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="client_id and month_id are required",
            )
        if not auth.is_editor and client_id != auth.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not authorized to upload for another client",
            )

        if month_id:
            month = await MonthService(db).get_month(str(month_id))
            month_num, year_num = month.month, month.year
        else:
            month_num, year_num = parse_month_year(form.get("month"), form.get("year"))

        content = await _read_limited(upload_file, limit)
        if not content:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty file")

        content_type = upload_file.content_type or "video/mp4"
        path = storage_path_for(str(client_id), month_num, year_num, upload_file.filename or "")

    await storage.ensure_bucket()
    await storage.upload(path, content, content_type)
    return UploadResponse(success=True, path=path, size=len(content), type=content_type)


@router.get("/video-url/{video_id}", response_model=VideoUrlResponse)
async def video_url(
    video_id: str,
    auth: CurrentAuth,
    storage: Storage,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """24h signed URL for playback. Editor or the owning client."""
    url = await VideoService(db, storage).video_url(video_id, auth)
    return VideoUrlResponse(url=url)


@router.get("/list", response_model=ListResponse)
async def list_client_folders(auth: EditorAuth, storage: Storage):
    """Top-level client folders in the bucket (editor only)."""
    files = await storage.list("clients")
    return ListResponse(bucket=storage.bucket, path="clients", files=files)


@router.post("/sync", response_model=SyncResponse)
async def sync(auth: EditorAuth):
    """Start a storage-to-database sync in the background (editor only)."""
    schedule_storage_sync(auth.user_id)
    return SyncResponse(
        message="Sync process started successfully",
        note="This process runs asynchronously. Check server logs for progress.",
    )


@router.delete("/video/{video_id}", response_model=MessageResponse)
async def delete_blob(
    video_id: str,
    auth: EditorAuth,
    storage: Storage,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Delete only the stored file for a video (editor only)."""
    return await VideoService(db, storage).remove_blob(video_id)
