"""Social media accounts and their dated metric snapshots."""

import calendar
import logging
from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from exceptions import ValidationError
from models import Month, SocialMediaAccount, SocialMediaMetrics, User, UserRole
from models.social_media_metrics import NUMERIC_METRICS
from services.repository import (
    MonthRepository,
    SocialMediaAccountRepository,
    SocialMediaMetricsRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)

ACCOUNT_UPDATABLE = ("username", "display_name", "profile_url", "profile_image_url")
METRIC_UPDATABLE = NUMERIC_METRICS + ("notes",)


def _blank_to_none(value: Any) -> Any:
    return None if value == "" else value


def month_range(month: int, year: int) -> tuple[date, date]:
    """First and last day of a calendar month."""
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


class SocialMetricsService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.accounts = SocialMediaAccountRepository(db)
        self.metrics = SocialMediaMetricsRepository(db)
        self.users = UserRepository(db)
        self.months = MonthRepository(db)

    # --- Accounts ---------------------------------------------------------

    async def list_accounts(self) -> list[tuple[SocialMediaAccount, User | None]]:
        """All accounts, each paired with its client."""
        result = await self.db.execute(
            select(SocialMediaAccount, User)
            .outerjoin(User, User.id == SocialMediaAccount.client_id)
            .order_by(SocialMediaAccount.created_at.desc())
        )
        return [(account, client) for account, client in result.all()]

    async def accounts_for_client(self, client_id: str) -> list[SocialMediaAccount]:
        return list(await self.accounts.find(
            order_by=SocialMediaAccount.platform, client_id=client_id
        ))

    async def platforms_for_client(self, client_id: str) -> list[str]:
        return sorted({a.platform.value for a in await self.accounts_for_client(client_id)})

    async def get_account(self, account_id: str) -> SocialMediaAccount:
        return await self.accounts.get(account_id)

    async def create_account(
        self,
        client_id: str,
        platform: str,
        username: str,
        display_name: str | None = None,
        profile_url: str | None = None,
        profile_image_url: str | None = None,
    ) -> SocialMediaAccount:
        client = await self.users.find_by_id(client_id)
        if client is None or client.role != UserRole.CLIENT:
            raise ValidationError("Client not found")
        account = await self.accounts.create(
            client_id=client_id,
            platform=platform,
            username=username,
            display_name=display_name or username,
            profile_url=profile_url or None,
            profile_image_url=profile_image_url or None,
        )
        logger.info("Created %s account %s for client %s", account.platform.value, account.id, client_id)
        return account

    async def update_account(self, account_id: str, fields: dict[str, Any]) -> SocialMediaAccount:
        account = await self.accounts.get(account_id)
        values = {k: v for k, v in fields.items() if k in ACCOUNT_UPDATABLE}
        if not values.get("username", account.username):
            values.pop("username", None)
        return await self.accounts.update(account, **values)

    async def delete_account(self, account_id: str) -> dict[str, str]:
        account = await self.accounts.get(account_id)
        # Metrics go with the account even where the database does not cascade
        await self.metrics.delete_where(account_id=account_id)
        await self.accounts.delete(account)
        logger.info("Deleted social media account %s", account_id)
        return {"message": "Account removed"}

    # --- Metric records ---------------------------------------------------

    async def get_metrics(self, metrics_id: str) -> SocialMediaMetrics:
        return await self.metrics.get(metrics_id)

    async def upsert_metrics(
        self, account_id: str, record_date: date, followers: int, **fields: Any
    ) -> tuple[SocialMediaMetrics, bool]:
        """Insert or update the snapshot for (account, date). Returns (row, created)."""
        await self.accounts.get(account_id)
        values = {
            k: _blank_to_none(v) for k, v in fields.items() if k in METRIC_UPDATABLE
        }
        values["followers"] = followers

        existing = await self.metrics.find_one(account_id=account_id, record_date=record_date)
        if existing:
            return await self.metrics.update(existing, **values), False

        try:
            row = await self.metrics.create(account_id=account_id, record_date=record_date, **values)
        except IntegrityError:
            await self.db.rollback()
            existing = await self.metrics.find_one(account_id=account_id, record_date=record_date)
            if existing is None:
                raise
            return await self.metrics.update(existing, **values), False
        return row, True

    async def update_metrics(self, metrics_id: str, fields: dict[str, Any]) -> SocialMediaMetrics:
        row = await self.metrics.get(metrics_id)
        values = {k: _blank_to_none(v) for k, v in fields.items() if k in METRIC_UPDATABLE}
        if values.get("followers", row.followers) is None:
            raise ValidationError("followers cannot be empty")
        return await self.metrics.update(row, **values)

    async def delete_metrics(self, metrics_id: str) -> dict[str, str]:
        row = await self.metrics.get(metrics_id)
        await self.metrics.delete(row)
        return {"message": "Metric record removed"}

    # --- Queries ----------------------------------------------------------

    async def by_account(self, account_id: str) -> list[SocialMediaMetrics]:
        return list(await self.metrics.find(
            order_by=SocialMediaMetrics.record_date.desc(), account_id=account_id
        ))

    async def by_client(self, client_id: str) -> list[tuple[SocialMediaMetrics, SocialMediaAccount]]:
        """Every snapshot across a client's accounts, newest first."""
        result = await self.db.execute(
            select(SocialMediaMetrics, SocialMediaAccount)
            .join(SocialMediaAccount, SocialMediaAccount.id == SocialMediaMetrics.account_id)
            .where(SocialMediaAccount.client_id == client_id)
            .order_by(SocialMediaMetrics.record_date.desc())
        )
        return [(m, a) for m, a in result.all()]

    async def by_date_range(self, account_id: str, start: date, end: date) -> list[SocialMediaMetrics]:
        if start > end:
            raise ValidationError("start_date must not be after end_date")
        result = await self.db.execute(
            select(SocialMediaMetrics)
            .where(
                SocialMediaMetrics.account_id == account_id,
                SocialMediaMetrics.record_date >= start,
                SocialMediaMetrics.record_date <= end,
            )
            .order_by(SocialMediaMetrics.record_date)
        )
        return list(result.scalars().all())

    async def by_month(self, month_id: str, account_id: str | None = None) -> list[SocialMediaMetrics]:
        """Snapshots whose record_date falls inside a Month's calendar range."""
        month = await self.months.get(month_id)
        start, end = month_range(month.month, month.year)
        query = select(SocialMediaMetrics).where(
            SocialMediaMetrics.record_date >= start,
            SocialMediaMetrics.record_date <= end,
        )
        if account_id:
            query = query.where(SocialMediaMetrics.account_id == account_id)
        result = await self.db.execute(query.order_by(SocialMediaMetrics.record_date))
        return list(result.scalars().all())

    async def latest(self, account_id: str) -> SocialMediaMetrics | None:
        result = await self.db.execute(
            select(SocialMediaMetrics)
            .where(SocialMediaMetrics.account_id == account_id)
            .order_by(SocialMediaMetrics.record_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _closest_before(self, account_id: str, on: date) -> SocialMediaMetrics | None:
        result = await self.db.execute(
            select(SocialMediaMetrics)
            .where(
                SocialMediaMetrics.account_id == account_id,
                SocialMediaMetrics.record_date <= on,
            )
            .order_by(SocialMediaMetrics.record_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def growth(
        self, account_id: str, metric: str, start: date, end: date
    ) -> dict[str, Any] | None:
        """Change in ``metric`` between the snapshots at-or-before each date.

        None when either snapshot is missing or the starting value is 0/empty.
        """
        if metric not in NUMERIC_METRICS:
            raise ValidationError(f"Unknown metric '{metric}'")

        start_row = await self._closest_before(account_id, start)
        end_row = await self._closest_before(account_id, end)
        if start_row is None or end_row is None:
            return None

        start_value = getattr(start_row, metric) or 0
        end_value = getattr(end_row, metric) or 0
        if start_value == 0:
            return None

        absolute = end_value - start_value
        return {
            "startValue": start_value,
            "endValue": end_value,
            "absoluteGrowth": absolute,
            "percentageGrowth": absolute / start_value * 100,
            "startDate": start_row.record_date.isoformat(),
            "endDate": end_row.record_date.isoformat(),
        }

    async def monthly(self, account_id: str) -> list[dict[str, Any]]:
        """Snapshots grouped by calendar month, newest month first."""
        rows = await self.by_account(account_id)
        months = {(m.year, m.month): m for m in await self.months.find()}

        groups: dict[tuple[int, int], dict[str, Any]] = {}
        for row in rows:
            key = (row.record_date.year, row.record_date.month)
            if key not in groups:
                month = months.get(key)
                groups[key] = {
                    "monthId": month.id if month else None,
                    "monthName": month.name if month else row.record_date.strftime("%Y-%m"),
                    "metrics": [],
                }
            groups[key]["metrics"].append(row)
        return list(groups.values())
