# tests/test_notifications.py — Notification feed
import pytest
from httpx import AsyncClient

from models import Notification, NotificationType
from tests.conftest import get_auth_headers


async def _notify(db_session, user, title="Heads up", is_read=False):
    notif = Notification(
        user_id=user.id, title=title, message=f"{title} message",
        type=NotificationType.DEADLINE, is_read=is_read,
    )
    db_session.add(notif)
    await db_session.commit()
    return notif


@pytest.mark.asyncio
class TestNotificationFeed:
    async def test_list_own_only(self, client: AsyncClient, db_session, member_user, outsider):
        await _notify(db_session, member_user, "Mine")
        await _notify(db_session, outsider, "Theirs")

        res = await client.get("/api/notifications", headers=get_auth_headers(member_user))
        assert res.status_code == 200
        body = res.json()
        assert body["per_page"] == 20
        assert [n["title"] for n in body["data"]] == ["Mine"]
        assert body["data"][0]["type"] == "deadline"

    async def test_unread_only(self, client: AsyncClient, db_session, member_user):
        await _notify(db_session, member_user, "Old", is_read=True)
        await _notify(db_session, member_user, "New")
        res = await client.get("/api/notifications?unread_only=true", headers=get_auth_headers(member_user))
        assert [n["title"] for n in res.json()["data"]] == ["New"]

    async def test_assignment_reaches_feed(self, client: AsyncClient, pm_user, member_user, project):
        await client.post("/api/tasks", json={
            "project_id": project.id, "title": "Review", "assigned_to": member_user.id,
        }, headers=get_auth_headers(pm_user))
        res = await client.get("/api/notifications", headers=get_auth_headers(member_user))
        data = res.json()["data"]
        assert len(data) == 1
        assert data[0]["type"] == "task_assigned"
        assert data[0]["related_project_id"] == project.id

    async def test_unread_count(self, client: AsyncClient, db_session, member_user):
        await _notify(db_session, member_user, "A")
        await _notify(db_session, member_user, "B")
        await _notify(db_session, member_user, "C", is_read=True)
        res = await client.get("/api/notifications/unread-count", headers=get_auth_headers(member_user))
        assert res.json() == {"unread_count": 2}

    async def test_requires_auth(self, client: AsyncClient):
        res = await client.get("/api/notifications")
        assert res.status_code == 401


@pytest.mark.asyncio
class TestMarkRead:
    async def test_mark_read_is_idempotent(self, client: AsyncClient, db_session, member_user):
        notif = await _notify(db_session, member_user)
        headers = get_auth_headers(member_user)
        for _ in range(2):
            res = await client.patch(f"/api/notifications/{notif.id}/read", headers=headers)
            assert res.status_code == 200
            assert res.json()["is_read"] is True

        count = await client.get("/api/notifications/unread-count", headers=headers)
        assert count.json()["unread_count"] == 0

    async def test_cannot_mark_someone_elses(self, client: AsyncClient, db_session, member_user, pm_user):
        notif = await _notify(db_session, member_user)
        res = await client.patch(f"/api/notifications/{notif.id}/read", headers=get_auth_headers(pm_user))
        assert res.status_code == 403
        assert res.json()["reason"] == "not notification owner"

    async def test_read_all(self, client: AsyncClient, db_session, member_user, outsider):
        await _notify(db_session, member_user, "A")
        await _notify(db_session, member_user, "B")
        await _notify(db_session, outsider, "Untouched")

        res = await client.patch("/api/notifications/read-all", headers=get_auth_headers(member_user))
        assert res.status_code == 200
        assert res.json()["marked"] == 2

        other = await client.get("/api/notifications/unread-count", headers=get_auth_headers(outsider))
        assert other.json()["unread_count"] == 1

    async def test_missing(self, client: AsyncClient, member_user):
        res = await client.patch("/api/notifications/nope/read", headers=get_auth_headers(member_user))
        assert res.status_code == 404
        assert res.json()["message"] == "Notification not found."


@pytest.mark.asyncio
class TestDeleteNotification:
    async def test_owner_deletes(self, client: AsyncClient, db_session, member_user):
        notif = await _notify(db_session, member_user)
        headers = get_auth_headers(member_user)
        res = await client.delete(f"/api/notifications/{notif.id}", headers=headers)
        assert res.status_code == 200
        listing = await client.get("/api/notifications", headers=headers)
        assert listing.json()["total"] == 0

    async def test_pm_cannot_delete_others(self, client: AsyncClient, db_session, member_user, pm_user):
        notif = await _notify(db_session, member_user)
        res = await client.delete(f"/api/notifications/{notif.id}", headers=get_auth_headers(pm_user))
        assert res.status_code == 403
        assert res.json()["message"] == "You can only delete your own notifications."
