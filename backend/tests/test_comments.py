"""Tests for video comments."""

from sqlalchemy import select

from conftest import auth_headers, make_user
from models import Comment, UserRole


async def _comment(api, user, video, content="Please trim the intro"):
    resp = await api.post(
        f"/api/videos/{video.id}/comments", json={"content": content}, headers=auth_headers(user)
    )
    assert resp.status_code == 201
    return resp.json()


class TestAddComment:
    async def test_client_comments_on_own_video(self, api, client_user, video):
        comment = await _comment(api, client_user, video)
        assert comment["video_id"] == video.id
        assert comment["resolved"] is False
        assert comment["user"] == {"id": client_user.id, "name": "Cora Client", "role": "client"}

    async def test_other_client_cannot_comment(self, api, other_client, video):
        resp = await api.post(
            f"/api/videos/{video.id}/comments",
            json={"content": "Not mine"},
            headers=auth_headers(other_client),
        )
        assert resp.status_code == 403

    async def test_blank_content(self, api, client_user, video):
        resp = await api.post(
            f"/api/videos/{video.id}/comments",
            json={"content": "   "},
            headers=auth_headers(client_user),
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Comment content is required"

    async def test_unknown_video(self, api, editor):
        resp = await api.post(
            "/api/videos/00000000-0000-4000-8000-000000000000/comments",
            json={"content": "Hello"},
            headers=auth_headers(editor),
        )
        assert resp.status_code == 404


class TestListComments:
    async def test_newest_first_with_authors(self, api, editor, client_user, video):
        await _comment(api, client_user, video, "first")
        await _comment(api, editor, video, "second")

        resp = await api.get(f"/api/videos/{video.id}/comments", headers=auth_headers(client_user))
        assert resp.status_code == 200
        comments = resp.json()
        assert [c["content"] for c in comments] == ["second", "first"]
        assert comments[0]["user"]["role"] == "editor"

    async def test_deleted_author_renders_without_user(self, api, db, editor, client_user, video):
        former = await make_user(db, "former@example.com", UserRole.EDITOR)
        db.add(Comment(content="Old note", video_id=video.id, user_id=former.id))
        await db.commit()
        await db.delete(former)
        await db.commit()

        resp = await api.get(f"/api/videos/{video.id}/comments", headers=auth_headers(editor))
        assert resp.status_code == 200
        assert resp.json()[0]["user"] is None

    async def test_other_client_cannot_list(self, api, other_client, video):
        resp = await api.get(f"/api/videos/{video.id}/comments", headers=auth_headers(other_client))
        assert resp.status_code == 403


class TestDeleteComment:
    async def test_author_deletes(self, api, client_user, video):
        comment = await _comment(api, client_user, video)
        resp = await api.delete(
            f"/api/videos/comments/{comment['id']}", headers=auth_headers(client_user)
        )
        assert resp.status_code == 200
        assert resp.json() == {"message": "Comment removed"}

    async def test_editor_deletes_any(self, api, editor, client_user, video):
        comment = await _comment(api, client_user, video)
        resp = await api.delete(f"/api/videos/comments/{comment['id']}", headers=auth_headers(editor))
        assert resp.status_code == 200

    async def test_non_author_client_forbidden(self, api, db, editor, client_user, video):
        comment = await _comment(api, editor, video)
        resp = await api.delete(
            f"/api/videos/comments/{comment['id']}", headers=auth_headers(client_user)
        )
        assert resp.status_code == 403
        assert await db.scalar(select(Comment.id).where(Comment.id == comment["id"])) is not None


class TestResolveComment:
    async def test_toggle_without_body(self, api, editor, client_user, video):
        comment = await _comment(api, client_user, video)
        url = f"/api/videos/comments/{comment['id']}/resolve"

        first = await api.put(url, headers=auth_headers(editor))
        assert first.status_code == 200
        assert first.json()["resolved"] is True

        second = await api.put(url, headers=auth_headers(editor))
        assert second.json()["resolved"] is False

    async def test_explicit_value(self, api, editor, client_user, video):
        comment = await _comment(api, client_user, video)
        url = f"/api/videos/comments/{comment['id']}/resolve"

        for _ in range(2):
            resp = await api.put(url, json={"resolved": True}, headers=auth_headers(editor))
            assert resp.json()["resolved"] is True

    async def test_client_cannot_resolve(self, api, client_user, video):
        comment = await _comment(api, client_user, video)
        resp = await api.put(
            f"/api/videos/comments/{comment['id']}/resolve", headers=auth_headers(client_user)
        )
        assert resp.status_code == 403
        assert resp.json()["message"] == "Access denied. Only admins can resolve comments."
