"""Users router - client/editor management (editor only) and own profile."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from middleware.auth import CurrentAuth, EditorAuth
from models.user import UserRole
from services.account_service import AccountService

router = APIRouter(prefix="/users", tags=["users"])


# Request/Response schemas
class UserResponse(BaseModel):
    id: str
    email: str
    name: str | None
    role: str
    active: bool
    website_url: str | None = None
    location: str | None = None
    keywords: list[str] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserUpdateRequest(BaseModel):
    name: str | None = None
    email: EmailStr | None = None
    role: UserRole | None = None
    website_url: str | None = None
    keywords: list[str] | None = None
    location: str | None = None


class ProfileUpdateRequest(BaseModel):
    name: str | None = None


class PasswordChangeRequest(BaseModel):
    currentPassword: str = Field(min_length=1)
    newPassword: str = Field(min_length=6)


class MessageResponse(BaseModel):
    message: str


def get_account_service(db: Annotated[AsyncSession, Depends(get_db)]) -> AccountService:
    return AccountService(db)


Accounts = Annotated[AccountService, Depends(get_account_service)]


# Own account - any authenticated user
@router.put("/profile", response_model=UserResponse)
async def update_profile(data: ProfileUpdateRequest, auth: CurrentAuth, accounts: Accounts):
    return await accounts.update_profile(auth, data.name)


@router.put("/password", response_model=MessageResponse)
async def change_password(data: PasswordChangeRequest, auth: CurrentAuth, accounts: Accounts):
    return await accounts.change_password(auth, data.currentPassword, data.newPassword)


# Endpoints - editor only
@router.get("", response_model=list[UserResponse])
async def list_users(auth: EditorAuth, accounts: Accounts):
    """All users, newest first."""
    return await accounts.list_users()


@router.get("/clients", response_model=list[UserResponse])
async def list_clients(auth: EditorAuth, accounts: Accounts):
    return await accounts.list_users(UserRole.CLIENT)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, auth: EditorAuth, accounts: Accounts):
    return await accounts.get_user(user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str, data: UserUpdateRequest, auth: EditorAuth, accounts: Accounts
):
    """Partial update; website_url is validated and defaulted to https."""
    return await accounts.update_user(user_id, data.model_dump(exclude_unset=True))


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: str, auth: EditorAuth, accounts: Accounts):
    """Delete a user. The last editor cannot be removed."""
    return await accounts.delete_user(user_id)
