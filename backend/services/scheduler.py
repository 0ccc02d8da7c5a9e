"""Background scheduler for storage sync.

Uses APScheduler to run the storage-to-database sync either on request
(one-shot job, so the HTTP call returns immediately) or on an interval.
"""

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import get_settings
from database import async_session
from services.storage_service import StorageService
from services.storage_sync import sync_storage

logger = logging.getLogger(__name__)
settings = get_settings()

# Global scheduler instance
scheduler = AsyncIOScheduler()

SYNC_JOB_ID = "storage_sync"


async def run_storage_sync(actor_id: str | None = None):
    """Background task wrapper: own session, never raises into the scheduler."""
    logger.info("Starting storage sync...")
    async with async_session() as db:
        try:
            result = await sync_storage(db, StorageService(), actor_id)
        except Exception:
            logger.exception("Storage sync failed")
            return
    logger.info("Storage sync result: %s", result.as_dict())


def schedule_storage_sync(actor_id: str | None = None) -> None:
    """Queue a one-off sync to run as soon as the loop is free."""
    scheduler.add_job(
        run_storage_sync,
        trigger="date",
        run_date=datetime.now(timezone.utc),
        args=[actor_id],
        id=f"{SYNC_JOB_ID}_manual",
        name="Manual storage sync",
        replace_existing=True,
    )


def start_scheduler():
    """Start the scheduler, adding the periodic sync when configured."""
    if scheduler.running:
        logger.info("Scheduler already running")
        return

    if settings.storage_sync_interval_minutes > 0 and settings.supabase_enabled:
        scheduler.add_job(
            run_storage_sync,
            trigger=IntervalTrigger(minutes=settings.storage_sync_interval_minutes),
            id=SYNC_JOB_ID,
            name="Sync storage bucket with videos table",
            replace_existing=True,
        )
        logger.info(
            "Storage sync scheduled every %d minutes", settings.storage_sync_interval_minutes
        )

    scheduler.start()
    logger.info("Background scheduler started")


def stop_scheduler():
    """Stop the background scheduler."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped")
