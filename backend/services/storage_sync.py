"""Storage sync - creates Video rows for blobs uploaded straight into the bucket.

Walks ``clients/{client_id}/{month}-{year}/{file}`` and inserts a pending
video for every video file whose storage_path has no row yet. A folder's month is
resolved (and created if needed) only once it yields a new video.
"""

import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from exceptions import AppError
from models import User, UserRole
from services.month_service import MonthService, parse_month_year
from services.repository import VideoRepository
from services.storage_service import PLACEHOLDER_FILE, StorageService, is_video_file
from services.video_service import VideoService

logger = logging.getLogger(__name__)

ROOT_PREFIX = "clients"


@dataclass
class SyncResult:
    created: list[str] = field(default_factory=list)
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"created": len(self.created), "skipped": self.skipped, "errors": self.errors}


def _entries(listing: list[dict]) -> list[dict]:
    return [e for e in listing if e.get("name") and e.get("name") != PLACEHOLDER_FILE]


async def _system_editor(db: AsyncSession) -> str | None:
    """Oldest editor, used as creator for rows the sync inserts."""
    result = await db.execute(
        select(User.id).where(User.role == UserRole.EDITOR).order_by(User.created_at).limit(1)
    )
    return result.scalar_one_or_none()


async def sync_storage(
    db: AsyncSession, storage: StorageService, actor_id: str | None = None
) -> SyncResult:
    """Create missing Video rows for every video blob in the bucket."""
    result = SyncResult()
    actor_id = actor_id or await _system_editor(db)
    if actor_id is None:
        logger.warning("Storage sync skipped: no editor account to attribute videos to")
        return result

    videos = VideoRepository(db)
    video_service = VideoService(db, storage)
    months = MonthService(db)
    client_ids = await video_service.client_ids()

    for client_dir in _entries(await storage.list(ROOT_PREFIX)):
        client_id = client_dir["name"]
        if client_id not in client_ids:
            logger.warning("Storage sync: folder %s is not a known client, skipping", client_id)
            result.skipped += 1
            continue

        for month_dir in _entries(await storage.list(f"{ROOT_PREFIX}/{client_id}")):
            folder = month_dir["name"]
            parts = folder.split("-")
            try:
                if len(parts) != 2:
                    raise ValueError(folder)
                month_num, year_num = parse_month_year(*parts)
            except (AppError, ValueError):
                logger.warning("Storage sync: invalid month folder %s, skipping", folder)
                result.skipped += 1
                continue

            month_id: str | None = None
            prefix = f"{ROOT_PREFIX}/{client_id}/{folder}"

            for blob in _entries(await storage.list(prefix)):
                name = blob["name"]
                if not is_video_file(name):
                    continue
                path = f"{prefix}/{name}"
                if await videos.find_one(storage_path=path):
                    result.skipped += 1
                    continue

                if month_id is None:
                    month_id = (await months.resolve_month(month_num, year_num, actor_id)).id
                metadata = blob.get("metadata") or {}
                suffix = PurePosixPath(name).suffix.lower().lstrip(".")
                try:
                    video = await video_service.create_video(
                        title=PurePosixPath(name).stem,
                        description="",
                        storage_path=path,
                        file_size=metadata.get("size") or 0,
                        content_type=metadata.get("mimetype") or f"video/{suffix}",
                        client_id=client_id,
                        created_by=actor_id,
                        month_id=month_id,
                    )
                except AppError as e:
                    logger.error("Storage sync: could not create video for %s: %s", path, e.message)
                    result.errors.append(path)
                    continue
                result.created.append(video.id)

    logger.info(
        "Storage sync finished: %d created, %d skipped, %d errors",
        len(result.created), result.skipped, len(result.errors),
    )
    return result
