"""Authentication router - register, login, invitations, password setup/reset."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from database import get_db
from middleware.auth import CurrentAuth, EditorAuth
from middleware.rate_limit import limiter
from models.user import UserRole
from routers.users import UserResponse
from services.account_service import AccountService
from services.email_service import EmailService, get_email_service

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()

MIN_PASSWORD_LENGTH = 6


# Request/Response schemas
class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class SessionUser(BaseModel):
    id: str
    name: str | None
    email: str
    role: str


class SessionResponse(BaseModel):
    token: str
    user: SessionUser


class InviteRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    role: UserRole = UserRole.CLIENT
    website_url: str | None = None
    keywords: list[str] | None = None
    location: str | None = None


class InviteResponse(BaseModel):
    message: str
    setupLink: str | None = None


class TokenPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class MessageResponse(BaseModel):
    message: str


def get_account_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> AccountService:
    return AccountService(db, email_service)


Accounts = Annotated[AccountService, Depends(get_account_service)]


# Endpoints
@router.post("/register", response_model=SessionResponse)
@limiter.limit(settings.login_rate_limit)
async def register(
    request: Request,  # Required for rate limiting - must be named 'request'
    data: RegisterRequest,
    accounts: Accounts,
):
    """Self-registration. New accounts are active clients."""
    return await accounts.register(data.name, data.email, data.password)


@router.post("/login", response_model=SessionResponse)
@limiter.limit(settings.login_rate_limit)
async def login(
    request: Request,  # Required for rate limiting - must be named 'request'
    data: LoginRequest,
    accounts: Accounts,
):
    """Login with email and password, returns a 24h token."""
    return await accounts.login(data.email, data.password)


@router.post("/invite", response_model=InviteResponse, response_model_exclude_none=True)
async def invite(data: InviteRequest, auth: EditorAuth, accounts: Accounts):
    """Create an inactive account and email a password setup link (editor only)."""
    return await accounts.invite(
        name=data.name,
        email=data.email,
        role=data.role,
        website_url=data.website_url,
        keywords=data.keywords,
        location=data.location,
    )


@router.post("/setup-password", response_model=MessageResponse)
async def setup_password(data: TokenPasswordRequest, accounts: Accounts):
    return await accounts.setup_password(data.token, data.password)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(data: ForgotPasswordRequest, accounts: Accounts):
    return await accounts.forgot_password(data.email)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(data: TokenPasswordRequest, accounts: Accounts):
    return await accounts.reset_password(data.token, data.password)


@router.get("/me", response_model=UserResponse)
async def me(auth: CurrentAuth, accounts: Accounts):
    """Current user's profile."""
    return await accounts.me(auth)
