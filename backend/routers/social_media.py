"""Social media router - client accounts and metric snapshots (editor only)."""

from datetime import date, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from middleware.auth import require_editor
from models.social_media_account import Platform
from services.social_metrics_service import SocialMetricsService

router = APIRouter(
    prefix="/social-media",
    tags=["social-media"],
    dependencies=[Depends(require_editor)],
)


# Request/Response schemas
class AccountClient(BaseModel):
    id: str
    name: str | None
    email: str


class AccountResponse(BaseModel):
    id: str
    client_id: str
    platform: str
    username: str
    display_name: str | None = None
    profile_url: str | None = None
    profile_image_url: str | None = None
    created_at: datetime
    updated_at: datetime
    client: AccountClient | None = None

    class Config:
        from_attributes = True


class AccountCreateRequest(BaseModel):
    client_id: str = Field(min_length=1)
    platform: Platform
    username: str = Field(min_length=1)
    display_name: str | None = None
    profile_url: str | None = None
    profile_image_url: str | None = None


class AccountUpdateRequest(BaseModel):
    username: str | None = None
    display_name: str | None = None
    profile_url: str | None = None
    profile_image_url: str | None = None


def _empty_to_none(v):
    return None if v == "" else v


class MetricsFields(BaseModel):
    following: int | None = Field(default=None, ge=0)
    posts_count: int | None = Field(default=None, ge=0)
    reach: int | None = Field(default=None, ge=0)
    impressions: int | None = Field(default=None, ge=0)
    profile_views: int | None = Field(default=None, ge=0)
    engagement_rate: float | None = Field(default=None, ge=0)
    notes: str | None = None

    _blank = field_validator(
        "following", "posts_count", "reach", "impressions", "profile_views", "engagement_rate",
        mode="before",
    )(_empty_to_none)


class MetricsCreateRequest(MetricsFields):
    account_id: str = Field(min_length=1)
    record_date: date
    followers: int = Field(ge=0)


class MetricsUpdateRequest(MetricsFields):
    followers: int | None = Field(default=None, ge=0)

    _blank_followers = field_validator("followers", mode="before")(_empty_to_none)


class MetricsResponse(BaseModel):
    id: str
    account_id: str
    record_date: date
    followers: int
    following: int | None = None
    posts_count: int | None = None
    reach: int | None = None
    impressions: int | None = None
    profile_views: int | None = None
    engagement_rate: float | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ClientMetricsResponse(MetricsResponse):
    platform: str
    username: str


class GrowthResponse(BaseModel):
    startValue: float
    endValue: float
    absoluteGrowth: float
    percentageGrowth: float
    startDate: date
    endDate: date


class MonthlyMetricsResponse(BaseModel):
    monthId: str | None
    monthName: str
    metrics: list[MetricsResponse]


class MessageResponse(BaseModel):
    message: str


def get_metrics_service(db: Annotated[AsyncSession, Depends(get_db)]) -> SocialMetricsService:
    return SocialMetricsService(db)


Metrics = Annotated[SocialMetricsService, Depends(get_metrics_service)]


# ==============================
# Accounts
# ==============================

@router.get("/accounts", response_model=list[AccountResponse])
async def list_accounts(service: Metrics):
    """All accounts with a short client summary."""
    rows = await service.list_accounts()
    return [
        AccountResponse.model_validate(account).model_copy(update={
            "client": AccountClient(id=client.id, name=client.name, email=client.email)
            if client else None,
        })
        for account, client in rows
    ]


@router.get("/accounts/client/{client_id}", response_model=list[AccountResponse])
async def list_client_accounts(client_id: str, service: Metrics):
    return await service.accounts_for_client(client_id)


@router.get("/accounts/client/{client_id}/platforms", response_model=list[str])
async def list_client_platforms(client_id: str, service: Metrics):
    """Distinct platforms a client has accounts on."""
    return await service.platforms_for_client(client_id)


@router.get("/accounts/{account_id}", response_model=AccountResponse)
async def get_account(account_id: str, service: Metrics):
    return await service.get_account(account_id)


@router.post("/accounts", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def create_account(data: AccountCreateRequest, service: Metrics):
    return await service.create_account(**data.model_dump())


@router.put("/accounts/{account_id}", response_model=AccountResponse)
async def update_account(account_id: str, data: AccountUpdateRequest, service: Metrics):
    return await service.update_account(account_id, data.model_dump(exclude_unset=True))


@router.delete("/accounts/{account_id}", response_model=MessageResponse)
async def delete_account(account_id: str, service: Metrics):
    """Delete an account and all of its metric records."""
    return await service.delete_account(account_id)


# ==============================
# Metrics
# ==============================

@router.get("/metrics/account/{account_id}", response_model=list[MetricsResponse])
async def account_metrics(
    account_id: str,
    service: Metrics,
    start_date: date | None = None,
    end_date: date | None = None,
):
    """Newest first; with both dates, the inclusive range oldest first."""
    if start_date and end_date:
        return await service.by_date_range(account_id, start_date, end_date)
    return await service.by_account(account_id)


@router.get("/metrics/account/{account_id}/latest", response_model=MetricsResponse | None)
async def latest_metrics(account_id: str, service: Metrics):
    await service.get_account(account_id)
    return await service.latest(account_id)


@router.get("/metrics/account/{account_id}/growth", response_model=GrowthResponse | None)
async def metrics_growth(
    account_id: str,
    service: Metrics,
    start_date: date,
    end_date: date,
    metric: str = Query(default="followers"),
):
    """Growth of one metric between two dates; null when it cannot be computed."""
    await service.get_account(account_id)
    return await service.growth(account_id, metric, start_date, end_date)


@router.get("/metrics/account/{account_id}/monthly", response_model=list[MonthlyMetricsResponse])
async def monthly_metrics(account_id: str, service: Metrics):
    await service.get_account(account_id)
    return await service.monthly(account_id)


@router.get("/metrics/client/{client_id}", response_model=list[ClientMetricsResponse])
async def client_metrics(client_id: str, service: Metrics):
    """Every snapshot across the client's accounts, tagged with platform."""
    rows = await service.by_client(client_id)
    return [
        ClientMetricsResponse.model_validate({
            **MetricsResponse.model_validate(m).model_dump(),
            "platform": a.platform.value,
            "username": a.username,
        })
        for m, a in rows
    ]


@router.get("/metrics/month/{month_id}", response_model=list[MetricsResponse])
async def month_metrics(month_id: str, service: Metrics, account_id: str | None = None):
    """Snapshots recorded within a month's calendar range."""
    return await service.by_month(month_id, account_id)


@router.get("/metrics/{metrics_id}", response_model=MetricsResponse)
async def get_metrics(metrics_id: str, service: Metrics):
    return await service.get_metrics(metrics_id)


@router.post("/metrics", response_model=MetricsResponse)
async def upsert_metrics(data: MetricsCreateRequest, service: Metrics, response: Response):
    """Record a snapshot. A second post for the same account and date updates it."""
    fields = data.model_dump(exclude={"account_id", "record_date", "followers"})
    row, created = await service.upsert_metrics(
        data.account_id, data.record_date, data.followers, **fields
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return row


@router.put("/metrics/{metrics_id}", response_model=MetricsResponse)
async def update_metrics(metrics_id: str, data: MetricsUpdateRequest, service: Metrics):
    return await service.update_metrics(metrics_id, data.model_dump(exclude_unset=True))


@router.delete("/metrics/{metrics_id}", response_model=MessageResponse)
async def delete_metrics(metrics_id: str, service: Metrics):
    return await service.delete_metrics(metrics_id)
