"""Tests for registration, login, invitations and password tokens."""

from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from conftest import auth_headers, make_user
from config import get_settings
from models import User, UserRole
from services.auth_service import AuthService


class TestRegisterAndLogin:
    """Self-registration and credential login."""

    async def test_register_creates_active_client(self, api, db):
        """New accounts are active clients and get a session token."""
        resp = await api.post(
            "/api/auth/register",
            json={"name": "New Client", "email": "new@example.com", "password": "secret1"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["user"]["role"] == "client"
        assert body["user"]["email"] == "new@example.com"

        auth = AuthService.decode_access_token(body["token"])
        assert auth.user_id == body["user"]["id"]
        assert auth.role == "client"

        user = (await db.execute(select(User).where(User.email == "new@example.com"))).scalar_one()
        assert user.active is True
        assert user.password_hash != "secret1"

    async def test_register_duplicate_email(self, api, client_user):
        resp = await api.post(
            "/api/auth/register",
            json={"name": "Dup", "email": client_user.email, "password": "secret1"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "User already exists"

    async def test_register_short_password(self, api):
        resp = await api.post(
            "/api/auth/register",
            json={"name": "Short", "email": "short@example.com", "password": "abc"},
        )
        assert resp.status_code == 400
        assert "password" in resp.json()["message"]

    async def test_login_success(self, api, client_user):
        resp = await api.post(
            "/api/auth/login",
            json={"email": client_user.email, "password": "password123"},
        )
        assert resp.status_code == 200
        assert resp.json()["user"]["id"] == client_user.id

    async def test_login_wrong_password(self, api, client_user):
        resp = await api.post(
            "/api/auth/login",
            json={"email": client_user.email, "password": "wrong-password"},
        )
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid credentials"

    async def test_login_unknown_email(self, api):
        resp = await api.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": "password123"},
        )
        assert resp.status_code == 401

    async def test_login_inactive_account(self, api, db):
        """Correct password, but the invitation was never completed."""
        await make_user(db, "pending@example.com", active=False)
        resp = await api.post(
            "/api/auth/login",
            json={"email": "pending@example.com", "password": "password123"},
        )
        assert resp.status_code == 400
        assert "not activated" in resp.json()["message"]


class TestTokenHeader:
    """The x-auth-token header guards every protected route."""

    async def test_missing_token(self, api):
        resp = await api.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json()["message"] == "No token, authorization denied"

    async def test_garbage_token(self, api):
        resp = await api.get("/api/auth/me", headers={"x-auth-token": "not-a-jwt"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Token is not valid"

    async def test_expired_token(self, api, client_user, monkeypatch):
        monkeypatch.setattr(get_settings(), "access_token_expire_hours", -1)
        headers = auth_headers(client_user)
        monkeypatch.undo()

        resp = await api.get("/api/auth/me", headers=headers)
        assert resp.status_code == 401

    async def test_me(self, api, client_user):
        resp = await api.get("/api/auth/me", headers=auth_headers(client_user))
        assert resp.status_code == 200
        body = resp.json()
        assert body["email"] == client_user.email
        assert "password_hash" not in body
        assert "password_reset_token" not in body

    async def test_editor_only_route_rejects_client(self, api, client_user):
        resp = await api.post(
            "/api/auth/invite",
            json={"name": "X", "email": "x@example.com"},
            headers=auth_headers(client_user),
        )
        assert resp.status_code == 403
        assert resp.json()["message"] == "Access denied. Editor role required."


class TestInvitation:
    """Editor invitations and the setup-password flow."""

    async def test_invite_creates_inactive_user_and_mails_link(self, api, db, editor, email):
        resp = await api.post(
            "/api/auth/invite",
            json={
                "name": "Invited",
                "email": "invited@example.com",
                "website_url": "acme.com",
                "keywords": [" Video ", "video", "Ads"],
            },
            headers=auth_headers(editor),
        )
        assert resp.status_code == 200
        assert resp.json() == {"message": "Invitation sent successfully"}
        assert email.invitations[0]["to"] == "invited@example.com"

        user = (await db.execute(select(User).where(User.email == "invited@example.com"))).scalar_one()
        assert user.active is False
        assert user.role == UserRole.CLIENT
        assert user.website_url == "https://acme.com"
        assert user.keywords == ["video", "ads"]
        # Only the hash of the mailed token is stored
        assert user.password_reset_token == AuthService.hash_token(email.invitations[0]["token"])

    async def test_invite_returns_setup_link_when_mail_fails(self, api, editor, email):
        email.deliver = False
        resp = await api.post(
            "/api/auth/invite",
            json={"name": "Invited", "email": "nomail@example.com"},
            headers=auth_headers(editor),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert "could not be sent" in body["message"]
        assert body["setupLink"].endswith(email.invitations[0]["token"])

    async def test_invite_existing_email(self, api, editor, client_user):
        resp = await api.post(
            "/api/auth/invite",
            json={"name": "Again", "email": client_user.email},
            headers=auth_headers(editor),
        )
        assert resp.status_code == 400

    async def test_invite_invalid_website(self, api, editor):
        resp = await api.post(
            "/api/auth/invite",
            json={"name": "Bad", "email": "bad@example.com", "website_url": "not a url"},
            headers=auth_headers(editor),
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid website URL format"

    async def test_setup_password_activates_account(self, api, editor, email):
        await api.post(
            "/api/auth/invite",
            json={"name": "Invited", "email": "setup@example.com"},
            headers=auth_headers(editor),
        )
        token = email.invitations[0]["token"]

        resp = await api.post(
            "/api/auth/setup-password", json={"token": token, "password": "newpass1"}
        )
        assert resp.status_code == 200

        login = await api.post(
            "/api/auth/login", json={"email": "setup@example.com", "password": "newpass1"}
        )
        assert login.status_code == 200
        me = await api.get("/api/auth/me", headers={"x-auth-token": login.json()["token"]})
        assert me.json()["active"] is True

        # Tokens are single use
        again = await api.post(
            "/api/auth/setup-password", json={"token": token, "password": "another1"}
        )
        assert again.status_code == 400
        assert again.json()["message"] == "Token is invalid or has expired"

    async def test_setup_password_expired_token(self, api, db, editor, email):
        await api.post(
            "/api/auth/invite",
            json={"name": "Late", "email": "late@example.com"},
            headers=auth_headers(editor),
        )
        user = (await db.execute(select(User).where(User.email == "late@example.com"))).scalar_one()
        user.password_reset_expires = datetime.now(timezone.utc) - timedelta(minutes=1)
        await db.commit()

        resp = await api.post(
            "/api/auth/setup-password",
            json={"token": email.invitations[0]["token"], "password": "newpass1"},
        )
        assert resp.status_code == 400


class TestPasswordReset:
    """Forgot/reset password."""

    async def test_forgot_password_unknown_email(self, api):
        resp = await api.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
        assert resp.status_code == 404

    async def test_reset_flow(self, api, client_user, email):
        resp = await api.post("/api/auth/forgot-password", json={"email": client_user.email})
        assert resp.status_code == 200
        token = email.resets[0]["token"]

        resp = await api.post(
            "/api/auth/reset-password", json={"token": token, "password": "changed1"}
        )
        assert resp.status_code == 200

        old = await api.post(
            "/api/auth/login", json={"email": client_user.email, "password": "password123"}
        )
        assert old.status_code == 401
        new = await api.post(
            "/api/auth/login", json={"email": client_user.email, "password": "changed1"}
        )
        assert new.status_code == 200

    async def test_reset_unknown_token(self, api):
        resp = await api.post(
            "/api/auth/reset-password", json={"token": "deadbeef", "password": "changed1"}
        )
        assert resp.status_code == 400

    async def test_forgot_password_mail_failure_still_succeeds(self, api, client_user, email):
        email.deliver = False
        resp = await api.post("/api/auth/forgot-password", json={"email": client_user.email})
        assert resp.status_code == 200
        assert len(email.resets) == 1
