"""Account flows - registration, login, invitations, password setup/reset, user admin.

Local rows in ``users`` are the source of truth for role and activation.
When Supabase is configured the hosted auth provider is kept in step
(same user id, same password), and login checks it first; accounts that
only exist locally still log in with their bcrypt hash.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any

import httpx
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from exceptions import (
    AccountInactiveError,
    ConflictError,
    InvalidOrExpiredTokenError,
    NotFoundError,
    UnauthorizedError,
    UpstreamFailure,
    ValidationError,
)
from models.user import User, UserRole
from services.auth_service import AuthContext, AuthService, GoTrueClient
from services.email_service import EmailService, setup_link
from services.repository import UserRepository

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(
    r"^(https?://)?(www\.)?[a-zA-Z0-9-]+(\.[a-zA-Z0-9-]+)+(/[a-zA-Z0-9\-._~:/?#\[\]@!$&'()*+,;=%]*)?$"
)
MAX_KEYWORD_LENGTH = 30


def normalize_keywords(keywords: list[str] | None) -> list[str]:
    """Trim, lowercase, drop empty/overlong entries and duplicates, keep order."""
    if not keywords:
        return []
    seen: list[str] = []
    for keyword in keywords:
        k = keyword.strip().lower()
        if 0 < len(k) <= MAX_KEYWORD_LENGTH and k not in seen:
            seen.append(k)
    return seen


def normalize_website_url(url: str | None) -> str | None:
    """Validate a website URL and default its scheme to https.

    Empty string clears the field.
    """
    if not url:
        return url
    if not URL_PATTERN.match(url):
        raise ValidationError("Invalid website URL format")
    if not url.startswith(("http://", "https://")):
        return "https://" + url
    return url


def user_summary(user: User) -> dict[str, Any]:
    return {"id": user.id, "name": user.name, "email": user.email, "role": user.role.value}


class AccountService:
    """Credential and session flows plus editor-side user management."""

    def __init__(self, db: AsyncSession, email_service: EmailService | None = None):
        self.db = db
        self.users = UserRepository(db)
        self.email_service = email_service or EmailService()
        self.settings = get_settings()

    # --- Sessions ---------------------------------------------------------

    def _session(self, user: User) -> dict[str, Any]:
        token = AuthService.create_access_token(user.id, user.role.value)
        return {"token": token, "user": user_summary(user)}

    async def register(self, name: str, email: str, password: str) -> dict[str, Any]:
        """Self-registration: always an active client."""
        if await self.users.find_one(email=email):
            raise ConflictError("User already exists")

        values: dict[str, Any] = {}
        if self.settings.supabase_enabled:
            result = await GoTrueClient.create_user(
                email, password, {"name": name, "role": UserRole.CLIENT.value}
            )
            if "error" in result:
                raise UpstreamFailure(
                    "Auth provider error during registration", details=result
                )
            values["id"] = result["id"]

        try:
            user = await self.users.create(
                email=email,
                name=name,
                password_hash=AuthService.hash_password(password),
                role=UserRole.CLIENT,
                active=True,
                **values,
            )
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("User already exists")

        logger.info("Registered client %s (%s)", user.email, user.id)
        return self._session(user)

    async def _provider_login(self, email: str, password: str) -> User | None:
        """Check credentials with the auth provider. None means 'fall back to local'."""
        if not self.settings.supabase_enabled:
            return None
        try:
            result = await GoTrueClient.login(email, password)
        except httpx.HTTPError as e:
            logger.warning("Auth provider unreachable, trying local login: %s", e)
            return None
        if "error" in result:
            logger.info("Auth provider login failed for %s, trying local login", email)
            return None

        provider_user = result.get("user") or {}
        user = await self.users.find_by_id(provider_user.get("id", ""))
        if user is None:
            user = await self.users.find_one(email=email)
        if user is None:
            raise NotFoundError("User not found in database")
        return user

    async def login(self, email: str, password: str) -> dict[str, Any]:
        user = await self._provider_login(email, password)

        if user is None:
            user = await self.users.find_one(email=email)
            if user is None:
                raise UnauthorizedError("Invalid credentials")
            if not user.active:
                raise AccountInactiveError()
            if not AuthService.verify_password(password, user.password_hash):
                raise UnauthorizedError("Invalid credentials")

        if not user.active:
            raise AccountInactiveError()

        return self._session(user)

    # --- Invitations and password tokens --------------------------------

    async def _ensure_provider_user(self, email: str, name: str, role: str) -> str | None:
        """Create the provider account for an invitee, replacing a stale one."""
        if not self.settings.supabase_enabled:
            return None

        stale = await GoTrueClient.find_user_by_email(email)
        if stale:
            logger.info("Removing stale auth provider user for %s", email)
            deleted = await GoTrueClient.delete_user(stale["id"])
            if "error" in deleted:
                raise ConflictError(
                    "User already exists in authentication system and could not be reset."
                )

        result = await GoTrueClient.create_user(email, user_metadata={"name": name, "role": role})
        if "error" in result:
            raise UpstreamFailure("Auth provider error during invitation", details=result)
        return result["id"]

    async def invite(
        self,
        name: str,
        email: str,
        role: UserRole = UserRole.CLIENT,
        website_url: str | None = None,
        keywords: list[str] | None = None,
        location: str | None = None,
    ) -> dict[str, Any]:
        """Create an inactive user and mail a one-hour setup link.

        Mail failure never undoes the user; the raw link is returned instead.
        """
        if await self.users.find_one(email=email):
            raise ConflictError("User already exists in the system.")

        website_url = normalize_website_url(website_url)
        provider_id = await self._ensure_provider_user(email, name, role.value)
        token = AuthService.generate_reset_token()

        values: dict[str, Any] = {"id": provider_id} if provider_id else {}
        user = await self.users.create(
            email=email,
            name=name,
            role=role,
            active=False,
            password_reset_token=token.hashed,
            password_reset_expires=token.expires_at,
            website_url=website_url or None,
            keywords=normalize_keywords(keywords),
            location=location or None,
            **values,
        )
        logger.info("Invited %s %s (%s)", role.value, email, user.id)

        sent = await self.email_service.send_invitation(email, name, role.value, token.raw)
        if sent:
            return {"message": "Invitation sent successfully"}

        logger.warning("Invitation email to %s not delivered, returning setup link", email)
        return {
            "message": (
                "User created successfully, but invitation email could not be sent. "
                "Please provide the setup link manually."
            ),
            "setupLink": setup_link(token.raw),
        }

    async def _user_for_token(self, raw_token: str) -> User:
        result = await self.db.execute(
            select(User).where(
                User.password_reset_token == AuthService.hash_token(raw_token),
                User.password_reset_expires > datetime.now(timezone.utc),
            ).limit(1)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise InvalidOrExpiredTokenError()
        return user

    async def _sync_provider_password(self, user_id: str, password: str) -> None:
        """Local hash is authoritative; login falls back to it when the provider disagrees."""
        if not self.settings.supabase_enabled:
            return
        try:
            result = await GoTrueClient.update_user(user_id, {"password": password})
        except httpx.HTTPError as e:
            result = {"error": str(e)}
        if "error" in result:
            logger.warning("Could not update auth provider password for %s: %s", user_id, result["error"])

    async def setup_password(self, raw_token: str, password: str) -> dict[str, str]:
        """Consume an invitation token, set the password and activate."""
        user = await self._user_for_token(raw_token)
        await self._sync_provider_password(user.id, password)
        await self.users.update(
            user,
            password_hash=AuthService.hash_password(password),
            password_reset_token=None,
            password_reset_expires=None,
            active=True,
        )
        logger.info("Account %s activated", user.email)
        return {"message": "Password set successfully. You can now log in."}

    async def reset_password(self, raw_token: str, password: str) -> dict[str, str]:
        user = await self._user_for_token(raw_token)
        await self._sync_provider_password(user.id, password)
        await self.users.update(
            user,
            password_hash=AuthService.hash_password(password),
            password_reset_token=None,
            password_reset_expires=None,
        )
        logger.info("Password reset for %s", user.email)
        return {"message": "Password reset successfully"}

    async def forgot_password(self, email: str) -> dict[str, str]:
        """Issue a reset token. Unknown emails 404, matching the dashboard's behaviour."""
        user = await self.users.find_one(email=email)
        if user is None:
            raise NotFoundError("User not found")

        token = AuthService.generate_reset_token()
        await self.users.update(
            user,
            password_reset_token=token.hashed,
            password_reset_expires=token.expires_at,
        )
        if not await self.email_service.send_password_reset(user.email, user.name, token.raw):
            logger.warning("Password reset email to %s not delivered", user.email)
        return {"message": "Password reset email sent"}

    # --- Current user -----------------------------------------------------

    async def me(self, auth: AuthContext) -> User:
        return await self.users.get(auth.user_id)

    async def update_profile(self, auth: AuthContext, name: str | None) -> User:
        user = await self.users.get(auth.user_id)
        if name:
            user = await self.users.update(user, name=name)
        return user

    async def change_password(self, auth: AuthContext, current: str, new: str) -> dict[str, str]:
        user = await self.users.get(auth.user_id)
        if not AuthService.verify_password(current, user.password_hash):
            raise ValidationError("Current password is incorrect")
        await self._sync_provider_password(user.id, new)
        await self.users.update(user, password_hash=AuthService.hash_password(new))
        return {"message": "Password updated successfully"}

    # --- User administration (editor) ------------------------------------

    async def list_users(self, role: UserRole | None = None) -> list[User]:
        filters = {"role": role} if role else {}
        return list(await self.users.find(order_by=User.created_at.desc(), **filters))

    async def get_user(self, user_id: str) -> User:
        return await self.users.get(user_id)

    async def update_user(self, user_id: str, fields: dict[str, Any]) -> User:
        """Partial update. Empty name/email/role are ignored, profile fields may be cleared."""
        user = await self.users.get(user_id)

        values: dict[str, Any] = {}
        for key in ("name", "email", "role"):
            if fields.get(key):
                values[key] = fields[key]
        if "website_url" in fields:
            values["website_url"] = normalize_website_url(fields["website_url"])
        if fields.get("keywords") is not None:
            values["keywords"] = normalize_keywords(fields["keywords"])
        if "location" in fields:
            values["location"] = fields["location"]

        if values.get("role") == UserRole.CLIENT and user.role == UserRole.EDITOR:
            if await self.users.count(role=UserRole.EDITOR) <= 1:
                raise ValidationError("Cannot demote the last editor account")

        try:
            return await self.users.update(user, **values)
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Email is already in use")

    async def delete_user(self, user_id: str) -> dict[str, str]:
        user = await self.users.get(user_id)

        if user.role == UserRole.EDITOR and await self.users.count(role=UserRole.EDITOR) <= 1:
            raise ValidationError("Cannot delete the last editor account")

        if self.settings.supabase_enabled:
            result = await GoTrueClient.delete_user(user_id)
            if "error" in result:
                # Provider copy may already be gone; the local row is authoritative
                logger.warning("Could not delete auth provider user %s: %s", user_id, result["error"])

        try:
            await self.users.delete(user)
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("User still owns videos and cannot be deleted")
        logger.info("Deleted user %s", user_id)
        return {"message": "User removed"}
