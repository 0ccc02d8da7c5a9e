"""Tests for month resolution and the months API."""

import pytest
from sqlalchemy import func, select

from conftest import auth_headers
from exceptions import ValidationError
from models import Month
from services.month_service import MonthService, ResolvedMonth, parse_month_year


class TestParseMonthYear:
    def test_numeric_strings(self):
        assert parse_month_year("7", "2024") == (7, 2024)

    @pytest.mark.parametrize("month", [0, 13, "-1"])
    def test_month_out_of_range(self, month):
        with pytest.raises(ValidationError, match="between 1 and 12"):
            parse_month_year(month, 2024)

    def test_not_a_number(self):
        with pytest.raises(ValidationError, match="Invalid month or year"):
            parse_month_year("March", 2024)


class TestResolveMonth:
    """Find-or-create keeps one row per (month, year)."""

    async def test_creates_with_display_name(self, db, editor):
        resolved = await MonthService(db).resolve_month(4, 2025, editor.id)
        assert resolved.created is True

        month = await db.get(Month, resolved.id)
        assert month.name == "April 2025"
        assert month.created_by == editor.id

    async def test_second_call_reuses_row(self, db, editor):
        service = MonthService(db)
        first = await service.resolve_month(4, 2025, editor.id)
        second = await service.resolve_month("4", "2025", editor.id)

        assert second == ResolvedMonth(first.id, created=False)
        count = await db.scalar(select(func.count()).select_from(Month))
        assert count == 1

    async def test_concurrent_insert_falls_back_to_existing(self, db, editor, month, monkeypatch):
        """A losing insert re-reads the winner's row instead of failing."""
        month_id, editor_id = month.id, editor.id
        service = MonthService(db)
        real_find_one = service.months.find_one
        calls = []

        async def miss_first(**filters):
            calls.append(filters)
            if len(calls) == 1:
                return None
            return await real_find_one(**filters)

        monkeypatch.setattr(service.months, "find_one", miss_first)

        resolved = await service.resolve_month(3, 2025, editor_id)
        assert resolved == ResolvedMonth(month_id, created=False)
        assert len(calls) == 2

    async def test_delete_if_unused_keeps_month_with_videos(self, db, video, month):
        month_id = month.id
        await MonthService(db).delete_if_unused(month_id)
        assert await db.get(Month, month_id) is not None

    async def test_delete_if_unused_removes_empty_month(self, db, month):
        month_id = month.id
        await MonthService(db).delete_if_unused(month_id)
        assert await db.get(Month, month_id) is None


class TestMonthsApi:
    async def test_list_is_latest_first(self, api, db, editor):
        service = MonthService(db)
        for m, y in [(1, 2024), (12, 2024), (2, 2025)]:
            await service.resolve_month(m, y, editor.id)

        resp = await api.get("/api/months", headers=auth_headers(editor))
        assert resp.status_code == 200
        assert [m["name"] for m in resp.json()] == ["February 2025", "December 2024", "January 2024"]

    async def test_list_requires_editor(self, api, client_user):
        resp = await api.get("/api/months", headers=auth_headers(client_user))
        assert resp.status_code == 403

    async def test_client_sees_global_months(self, api, client_user, month):
        resp = await api.get("/api/months/client", headers=auth_headers(client_user))
        assert resp.status_code == 200
        assert [m["id"] for m in resp.json()] == [month.id]

    async def test_create(self, api, editor):
        resp = await api.post(
            "/api/months", json={"month": 5, "year": 2025}, headers=auth_headers(editor)
        )
        assert resp.status_code == 201
        assert resp.json()["name"] == "May 2025"

    async def test_create_duplicate(self, api, editor, month):
        resp = await api.post(
            "/api/months", json={"month": 3, "year": 2025}, headers=auth_headers(editor)
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Month already exists"

    async def test_create_invalid_month(self, api, editor):
        resp = await api.post(
            "/api/months", json={"month": 13, "year": 2025}, headers=auth_headers(editor)
        )
        assert resp.status_code == 400

    async def test_rename(self, api, editor, month):
        resp = await api.put(
            f"/api/months/{month.id}", json={"name": "Spring launch"}, headers=auth_headers(editor)
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Spring launch"
        assert resp.json()["month"] == 3

    async def test_get_unknown(self, api, client_user):
        resp = await api.get("/api/months/not-a-uuid", headers=auth_headers(client_user))
        assert resp.status_code == 404
        assert resp.json()["message"] == "Month not found"

    async def test_delete_with_videos_refused(self, api, editor, month, video):
        resp = await api.delete(f"/api/months/{month.id}", headers=auth_headers(editor))
        assert resp.status_code == 400

    async def test_delete_empty(self, api, editor, month):
        resp = await api.delete(f"/api/months/{month.id}", headers=auth_headers(editor))
        assert resp.status_code == 200
        assert resp.json() == {"message": "Month removed"}
