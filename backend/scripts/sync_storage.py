#!/usr/bin/env python3
"""Run the storage-to-database sync once and print what it did."""

import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from database import async_session
from services.storage_service import StorageService
from services.storage_sync import sync_storage


async def main():
    async with async_session() as db:
        result = await sync_storage(db, StorageService())
    print(f"Created {len(result.created)} videos, skipped {result.skipped}.")
    for path in result.errors:
        print(f"  failed: {path}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
