"""Authentication service - password hashing, JWTs, reset tokens, GoTrue client."""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import httpx
from jose import JWTError, jwt

from config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller, decoded from the bearer token.

    Passed explicitly to every service call that makes an access decision.
    """
    user_id: str
    role: str

    @property
    def is_editor(self) -> bool:
        return self.role == "editor"


@dataclass(frozen=True)
class ResetToken:
    """A freshly issued setup/reset token.

    ``raw`` goes into the emailed link; only ``hashed`` is stored.
    """
    raw: str
    hashed: str
    expires_at: datetime


class GoTrueClient:
    """HTTP client for the hosted auth provider (Supabase GoTrue).

    Every method returns the decoded JSON body on success or an
    ``{"error": ..., "status": ...}`` dict on failure, so callers decide
    whether a provider failure is fatal.
    """

    @staticmethod
    def _base_url() -> str:
        return f"{get_settings().supabase_url.rstrip('/')}/auth/v1"

    @staticmethod
    def _headers() -> dict[str, str]:
        key = get_settings().supabase_service_key
        return {"apikey": key, "Authorization": f"Bearer {key}"}

    @staticmethod
    def _result(resp: httpx.Response) -> dict:
        if not resp.is_success:
            try:
                error = resp.json()
            except ValueError:
                error = resp.text
            return {"error": error, "status": resp.status_code}
        return resp.json() if resp.content else {}

    @staticmethod
    async def login(email: str, password: str) -> dict:
        """Password grant. Returns token dict (with ``user``) or error dict."""
        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await client.post(
                f"{GoTrueClient._base_url()}/token?grant_type=password",
                headers=GoTrueClient._headers(),
                json={"email": email, "password": password},
            )
            return GoTrueClient._result(resp)

    @staticmethod
    async def create_user(
        email: str, password: str | None = None, user_metadata: dict | None = None
    ) -> dict:
        """Create a confirmed user through the admin API."""
        body: dict = {"email": email, "email_confirm": True}
        if password:
            body["password"] = password
        if user_metadata:
            body["user_metadata"] = user_metadata
        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await client.post(
                f"{GoTrueClient._base_url()}/admin/users",
                headers=GoTrueClient._headers(),
                json=body,
            )
            return GoTrueClient._result(resp)

    @staticmethod
    async def find_user_by_email(email: str) -> dict | None:
        """Look up a provider user by email. Returns None when absent or on error."""
        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await client.get(
                f"{GoTrueClient._base_url()}/admin/users",
                headers=GoTrueClient._headers(),
                params={"filter": email},
            )
            data = GoTrueClient._result(resp)
        if "error" in data:
            return None
        for user in data.get("users", []):
            if user.get("email", "").lower() == email.lower():
                return user
        return None

    @staticmethod
    async def update_user(user_id: str, data: dict) -> dict:
        """Update a provider user (e.g. new password)."""
        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await client.put(
                f"{GoTrueClient._base_url()}/admin/users/{user_id}",
                headers=GoTrueClient._headers(),
                json=data,
            )
            return GoTrueClient._result(resp)

    @staticmethod
    async def delete_user(user_id: str) -> dict:
        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await client.delete(
                f"{GoTrueClient._base_url()}/admin/users/{user_id}",
                headers=GoTrueClient._headers(),
            )
            return GoTrueClient._result(resp)

    @staticmethod
    async def generate_link(link_type: str, email: str, redirect_to: str, data: dict | None = None) -> dict:
        """Ask the provider to issue and mail an invite/recovery link."""
        body: dict = {"type": link_type, "email": email, "redirect_to": redirect_to}
        if data:
            body["data"] = data
        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await client.post(
                f"{GoTrueClient._base_url()}/admin/generate_link",
                headers=GoTrueClient._headers(),
                json=body,
            )
            return GoTrueClient._result(resp)


class AuthService:
    """Password hashing, JWT issue/verify and reset token helpers."""

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt."""
        password_bytes = password.encode("utf-8")
        salt = bcrypt.gensalt(rounds=10)
        return bcrypt.hashpw(password_bytes, salt).decode("utf-8")

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str | None) -> bool:
        """Verify a password against its hash. A missing hash never matches."""
        if not hashed_password:
            return False
        try:
            return bcrypt.checkpw(
                plain_password.encode("utf-8"),
                hashed_password.encode("utf-8")
            )
        except ValueError:
            # Not a bcrypt hash
            return False

    @staticmethod
    def create_access_token(user_id: str, role: str) -> str:
        """Sign a bearer token with payload ``{"user": {"id", "role"}}``."""
        settings = get_settings()
        now = datetime.now(timezone.utc)
        payload = {
            "user": {"id": user_id, "role": role},
            "iat": now,
            "exp": now + timedelta(hours=settings.access_token_expire_hours),
        }
        return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)

    @staticmethod
    def decode_access_token(token: str) -> Optional[AuthContext]:
        """Decode and validate a bearer token. Returns None if invalid or expired."""
        settings = get_settings()
        try:
            payload = jwt.decode(
                token,
                settings.jwt_secret,
                algorithms=[settings.jwt_algorithm],
            )
        except JWTError:
            return None

        user = payload.get("user") or {}
        user_id = user.get("id")
        role = user.get("role")
        if not user_id or role not in ("editor", "client"):
            return None
        return AuthContext(user_id=user_id, role=role)

    @staticmethod
    def hash_token(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    @staticmethod
    def generate_reset_token() -> ResetToken:
        """Issue a single-use token valid for ``reset_token_expire_minutes``."""
        raw = secrets.token_hex(20)
        expires = datetime.now(timezone.utc) + timedelta(
            minutes=get_settings().reset_token_expire_minutes
        )
        return ResetToken(raw=raw, hashed=AuthService.hash_token(raw), expires_at=expires)
