"""Row-level data access over the six record collections.

Thin wrapper around an AsyncSession. No business rules live here; services
decide what to look up and what an absent row means.
"""

from typing import Any, Generic, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import Uuid, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from database import Base
from exceptions import NotFoundError
from models import Comment, Month, SocialMediaAccount, SocialMediaMetrics, User, Video

ModelT = TypeVar("ModelT", bound=Base)


def is_uuid(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        UUID(value)
    except ValueError:
        return False
    return True


class Repository(Generic[ModelT]):
    """CRUD for a single model class."""

    model: type[ModelT]
    not_found_message: str = "Resource not found"

    def __init__(self, db: AsyncSession):
        self.db = db

    def _where(self, filters: dict[str, Any]) -> list:
        return [getattr(self.model, key) == value for key, value in filters.items()]

    def _malformed(self, filters: dict[str, Any]) -> bool:
        """True when a UUID column is filtered by something that is not a UUID."""
        return any(
            isinstance(getattr(self.model, key).type, Uuid) and not is_uuid(value)
            for key, value in filters.items()
            if value is not None
        )

    async def find(self, order_by: Any = None, **filters: Any) -> Sequence[ModelT]:
        """Return all rows matching equality filters."""
        if self._malformed(filters):
            return []
        query = select(self.model).where(*self._where(filters))
        if order_by is not None:
            query = query.order_by(order_by)
        result = await self.db.execute(query)
        return result.scalars().all()

    async def find_one(self, **filters: Any) -> ModelT | None:
        if self._malformed(filters):
            return None
        result = await self.db.execute(
            select(self.model).where(*self._where(filters)).limit(1)
        )
        return result.scalar_one_or_none()

    async def find_by_id(self, id: str) -> ModelT | None:
        # Postgres rejects malformed UUIDs outright; treat them as absent
        if not is_uuid(id):
            return None
        return await self.db.get(self.model, id)

    async def get(self, id: str) -> ModelT:
        """Like find_by_id but raises NotFoundError."""
        instance = await self.find_by_id(id)
        if instance is None:
            raise NotFoundError(self.not_found_message)
        return instance

    async def count(self, **filters: Any) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(self.model).where(*self._where(filters))
        )
        return result.scalar() or 0

    async def create(self, **values: Any) -> ModelT:
        instance = self.model(**values)
        self.db.add(instance)
        await self.db.commit()
        await self.db.refresh(instance)
        return instance

    async def update(self, instance: ModelT, **values: Any) -> ModelT:
        for key, value in values.items():
            setattr(instance, key, value)
        await self.db.commit()
        await self.db.refresh(instance)
        return instance

    async def delete(self, instance: ModelT) -> None:
        await self.db.delete(instance)
        await self.db.commit()

    async def delete_where(self, **filters: Any) -> int:
        """Bulk delete; returns the number of rows removed."""
        result = await self.db.execute(delete(self.model).where(*self._where(filters)))
        await self.db.commit()
        return result.rowcount or 0


class UserRepository(Repository[User]):
    model = User
    not_found_message = "User not found"


class MonthRepository(Repository[Month]):
    model = Month
    not_found_message = "Month not found"


class VideoRepository(Repository[Video]):
    model = Video
    not_found_message = "Video not found"


class CommentRepository(Repository[Comment]):
    model = Comment
    not_found_message = "Comment not found"


class SocialMediaAccountRepository(Repository[SocialMediaAccount]):
    model = SocialMediaAccount
    not_found_message = "Social media account not found"


class SocialMediaMetricsRepository(Repository[SocialMediaMetrics]):
    model = SocialMediaMetrics
    not_found_message = "Metric record not found"
