"""Tests for user administration and self-service profile changes."""

import pytest

from conftest import auth_headers, make_user
from exceptions import ValidationError
from models import UserRole
from services.account_service import normalize_keywords, normalize_website_url


class TestNormalizers:
    def test_keywords_trimmed_lowercased_deduped(self):
        assert normalize_keywords(["  Travel", "travel", "", "FOOD ", "x" * 31]) == ["travel", "food"]

    def test_keywords_none(self):
        assert normalize_keywords(None) == []

    @pytest.mark.parametrize("url,expected", [
        ("example.com", "https://example.com"),
        ("www.example.co.uk/about", "https://www.example.co.uk/about"),
        ("http://example.com", "http://example.com"),
        ("", ""),
        (None, None),
    ])
    def test_website_url(self, url, expected):
        assert normalize_website_url(url) == expected

    def test_website_url_rejects_garbage(self):
        with pytest.raises(ValidationError, match="Invalid website URL format"):
            normalize_website_url("not a website")


class TestUserAdmin:
    """Editor-only user management."""

    async def test_list_newest_first(self, api, editor, client_user):
        resp = await api.get("/api/users", headers=auth_headers(editor))
        assert resp.status_code == 200
        assert [u["email"] for u in resp.json()] == [client_user.email, editor.email]

    async def test_list_clients(self, api, editor, client_user, other_client):
        resp = await api.get("/api/users/clients", headers=auth_headers(editor))
        assert {u["id"] for u in resp.json()} == {client_user.id, other_client.id}

    async def test_client_cannot_list(self, api, client_user):
        resp = await api.get("/api/users", headers=auth_headers(client_user))
        assert resp.status_code == 403

    async def test_update_profile_fields(self, api, editor, client_user):
        resp = await api.put(
            f"/api/users/{client_user.id}",
            json={
                "website_url": "cora.example",
                "keywords": ["Beauty", " beauty "],
                "location": "Lisbon",
            },
            headers=auth_headers(editor),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["website_url"] == "https://cora.example"
        assert body["keywords"] == ["beauty"]
        assert body["location"] == "Lisbon"
        assert body["name"] == "Cora Client"

    async def test_update_clears_website(self, api, db, editor, client_user):
        client_user.website_url = "https://cora.example"
        await db.commit()

        resp = await api.put(
            f"/api/users/{client_user.id}", json={"website_url": ""}, headers=auth_headers(editor)
        )
        assert resp.status_code == 200
        assert resp.json()["website_url"] in ("", None)

    async def test_update_duplicate_email(self, api, editor, client_user, other_client):
        resp = await api.put(
            f"/api/users/{client_user.id}",
            json={"email": other_client.email},
            headers=auth_headers(editor),
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Email is already in use"

    async def test_cannot_demote_last_editor(self, api, editor):
        resp = await api.put(
            f"/api/users/{editor.id}", json={"role": "client"}, headers=auth_headers(editor)
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Cannot demote the last editor account"

    async def test_promote_then_demote(self, api, editor, client_user):
        resp = await api.put(
            f"/api/users/{client_user.id}", json={"role": "editor"}, headers=auth_headers(editor)
        )
        assert resp.json()["role"] == "editor"

        resp = await api.put(
            f"/api/users/{editor.id}", json={"role": "client"}, headers=auth_headers(editor)
        )
        assert resp.status_code == 200
        assert resp.json()["role"] == "client"

    async def test_cannot_delete_last_editor(self, api, editor):
        resp = await api.delete(f"/api/users/{editor.id}", headers=auth_headers(editor))
        assert resp.status_code == 400
        assert resp.json()["message"] == "Cannot delete the last editor account"

    async def test_delete_second_editor(self, api, db, editor):
        second = await make_user(db, "second@example.com", UserRole.EDITOR)
        resp = await api.delete(f"/api/users/{second.id}", headers=auth_headers(editor))
        assert resp.status_code == 200
        assert resp.json() == {"message": "User removed"}

    async def test_me_after_deletion_is_not_found(self, api, editor, other_client):
        resp = await api.delete(f"/api/users/{other_client.id}", headers=auth_headers(editor))
        assert resp.status_code == 200

        resp = await api.get("/api/auth/me", headers=auth_headers(other_client))
        assert resp.status_code == 404

    async def test_get_unknown(self, api, editor):
        resp = await api.get(
            "/api/users/00000000-0000-4000-8000-000000000000", headers=auth_headers(editor)
        )
        assert resp.status_code == 404
        assert resp.json()["message"] == "User not found"


class TestOwnAccount:
    async def test_update_own_name(self, api, client_user):
        resp = await api.put(
            "/api/users/profile", json={"name": "Cora C."}, headers=auth_headers(client_user)
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Cora C."

    async def test_change_password(self, api, client_user):
        resp = await api.put(
            "/api/users/password",
            json={"currentPassword": "password123", "newPassword": "brandnew1"},
            headers=auth_headers(client_user),
        )
        assert resp.status_code == 200
        assert resp.json() == {"message": "Password updated successfully"}

        login = await api.post(
            "/api/auth/login", json={"email": client_user.email, "password": "brandnew1"}
        )
        assert login.status_code == 200

    async def test_change_password_wrong_current(self, api, client_user):
        resp = await api.put(
            "/api/users/password",
            json={"currentPassword": "nope", "newPassword": "brandnew1"},
            headers=auth_headers(client_user),
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Current password is incorrect"
