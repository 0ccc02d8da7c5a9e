"""Months router - the global (month, year) buckets videos are filed under."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from middleware.auth import CurrentAuth, EditorAuth
from services.month_service import MonthService

router = APIRouter(prefix="/months", tags=["months"])


# Request/Response schemas
class MonthResponse(BaseModel):
    id: str
    name: str
    month: int
    year: int
    created_by: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class MonthCreateRequest(BaseModel):
    month: int | str
    year: int | str
    name: str | None = None


class MonthRenameRequest(BaseModel):
    name: str = Field(min_length=1)


class MessageResponse(BaseModel):
    message: str


def get_month_service(db: Annotated[AsyncSession, Depends(get_db)]) -> MonthService:
    return MonthService(db)


Months = Annotated[MonthService, Depends(get_month_service)]


@router.get("", response_model=list[MonthResponse])
async def list_months(auth: EditorAuth, months: Months):
    """All months, latest first (editor only)."""
    return await months.list_months()


@router.get("/client", response_model=list[MonthResponse])
async def list_client_months(auth: CurrentAuth, months: Months):
    """Months are global, so clients see the same list."""
    return await months.list_months()


@router.get("/client/{client_id}", response_model=list[MonthResponse])
async def list_months_for_client(client_id: str, auth: CurrentAuth, months: Months):
    return await months.list_months()


@router.get("/{month_id}", response_model=MonthResponse)
async def get_month(month_id: str, auth: CurrentAuth, months: Months):
    return await months.get_month(month_id)


@router.post("", response_model=MonthResponse, status_code=status.HTTP_201_CREATED)
async def create_month(data: MonthCreateRequest, auth: EditorAuth, months: Months):
    """Create a month explicitly. Fails if (month, year) already exists."""
    return await months.create_month(data.month, data.year, auth, data.name)


@router.put("/{month_id}", response_model=MonthResponse)
async def rename_month(
    month_id: str, data: MonthRenameRequest, auth: EditorAuth, months: Months
):
    return await months.rename_month(month_id, data.name)


@router.delete("/{month_id}", response_model=MessageResponse)
async def delete_month(month_id: str, auth: EditorAuth, months: Months):
    return await months.delete_month(month_id)
