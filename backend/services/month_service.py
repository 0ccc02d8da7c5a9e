"""Month resolution and month CRUD."""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from exceptions import ConflictError, ValidationError
from models import Month, Video
from services.auth_service import AuthContext
from services.repository import MonthRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedMonth:
    id: str
    created: bool


def parse_month_year(month: Any, year: Any) -> tuple[int, int]:
    """Coerce month/year (ints or numeric strings) and range-check the month."""
    try:
        month_num = int(month)
        year_num = int(year)
    except (TypeError, ValueError):
        raise ValidationError("Invalid month or year")
    if not 1 <= month_num <= 12:
        raise ValidationError("Month must be between 1 and 12")
    return month_num, year_num


class MonthService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.months = MonthRepository(db)

    async def resolve_month(self, month: Any, year: Any, created_by: str | None) -> ResolvedMonth:
        """Find the Month for (month, year), creating it if needed.

        Concurrent callers for the same new pair both end up with the one
        row: the loser's insert violates the unique constraint and re-reads.
        """
        month_num, year_num = parse_month_year(month, year)

        existing = await self.months.find_one(month=month_num, year=year_num)
        if existing:
            return ResolvedMonth(existing.id, created=False)

        try:
            created = await self.months.create(
                name=Month.display_name(month_num, year_num),
                month=month_num,
                year=year_num,
                created_by=created_by,
            )
        except IntegrityError:
            await self.db.rollback()
            existing = await self.months.find_one(month=month_num, year=year_num)
            if existing is None:
                raise
            logger.info("Month %d-%d created concurrently, reusing %s", month_num, year_num, existing.id)
            return ResolvedMonth(existing.id, created=False)

        logger.info("Created month %s (%s)", created.name, created.id)
        return ResolvedMonth(created.id, created=True)

    async def list_months(self) -> list[Month]:
        result = await self.db.execute(
            select(Month).order_by(Month.year.desc(), Month.month.desc())
        )
        return list(result.scalars().all())

    async def get_month(self, month_id: str) -> Month:
        return await self.months.get(month_id)

    async def create_month(
        self, month: Any, year: Any, auth: AuthContext, name: str | None = None
    ) -> Month:
        month_num, year_num = parse_month_year(month, year)
        if await self.months.find_one(month=month_num, year=year_num):
            raise ConflictError("Month already exists")
        try:
            created = await self.months.create(
                name=name or Month.display_name(month_num, year_num),
                month=month_num,
                year=year_num,
                created_by=auth.user_id,
            )
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Month already exists")
        logger.info("Created month %s (%s)", created.name, created.id)
        return created

    async def rename_month(self, month_id: str, name: str) -> Month:
        month = await self.months.get(month_id)
        return await self.months.update(month, name=name)

    async def delete_month(self, month_id: str) -> dict[str, str]:
        month = await self.months.get(month_id)
        if await self.db.scalar(select(Video.id).where(Video.month_id == month_id).limit(1)):
            raise ValidationError("Month still has videos and cannot be deleted")
        await self.months.delete(month)
        logger.info("Deleted month %s", month_id)
        return {"message": "Month removed"}

    async def delete_if_unused(self, month_id: str) -> None:
        """Compensating delete for a Month created as part of a failed video insert."""
        month = await self.months.find_by_id(month_id)
        if month is None:
            return
        if await self.db.scalar(select(Video.id).where(Video.month_id == month_id).limit(1)):
            return
        await self.months.delete(month)
        logger.info("Rolled back month %s after failed video insert", month_id)
