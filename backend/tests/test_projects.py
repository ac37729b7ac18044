# tests/test_projects.py — Project endpoints
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from models import (
    Notification, NotificationType, Project, Sprint, SubTask, Task, TaskActivity, TaskAsset, project_members,
)
from tests.conftest import get_auth_headers


@pytest.mark.asyncio
class TestProjectCreate:
    async def test_pm_creates_project_with_members(self, client: AsyncClient, db_session, pm_user, member_user, second_member):
        res = await client.post("/api/projects", json={
            "name": "Apollo",
            "description": "Moonshot",
            "start_date": "2026-01-01",
            "end_date": "2026-03-31",
            "member_ids": [member_user.id, second_member.id],
        }, headers=get_auth_headers(pm_user))
        assert res.status_code == 201
        data = res.json()
        assert data["manager_id"] == pm_user.id
        assert data["status"] == "active"
        assert data["manager"]["id"] == pm_user.id
        assert sorted(m["id"] for m in data["members"]) == sorted([member_user.id, second_member.id])
        assert data["sprints"] == []
        assert data["tasks"] == []

        result = await db_session.execute(
            select(Notification).where(Notification.related_project_id == data["id"])
        )
        invitations = result.scalars().all()
        assert sorted(n.user_id for n in invitations) == sorted([member_user.id, second_member.id])
        assert all(n.type == NotificationType.MENTION for n in invitations)
        assert all(n.title == "Project Invitation" for n in invitations)

    async def test_member_cannot_create(self, client: AsyncClient, member_user):
        res = await client.post("/api/projects", json={"name": "Nope"}, headers=get_auth_headers(member_user))
        assert res.status_code == 403
        assert res.json()["reason"] == "not a project manager role"

    async def test_end_before_start_rejected(self, client: AsyncClient, pm_user):
        res = await client.post("/api/projects", json={
            "name": "Backwards",
            "start_date": "2026-03-01",
            "end_date": "2026-02-01",
        }, headers=get_auth_headers(pm_user))
        assert res.status_code == 422

    async def test_unknown_member_rejected(self, client: AsyncClient, pm_user):
        res = await client.post("/api/projects", json={
            "name": "Ghosts",
            "member_ids": ["no-such-user"],
        }, headers=get_auth_headers(pm_user))
        assert res.status_code == 422
        assert res.json()["message"] == "The selected member_ids is invalid."

    async def test_unknown_status_rejected(self, client: AsyncClient, pm_user):
        res = await client.post("/api/projects", json={"name": "X", "status": "paused"}, headers=get_auth_headers(pm_user))
        assert res.status_code == 422


@pytest.mark.asyncio
class TestProjectRead:
    async def test_list_scoped_for_member(self, client: AsyncClient, member_user, outsider, project):
        res = await client.get("/api/projects", headers=get_auth_headers(member_user))
        assert res.status_code == 200
        body = res.json()
        assert body["total"] == 1
        assert body["data"][0]["id"] == project.id
        assert body["current_page"] == 1
        assert body["per_page"] == 15
        assert body["last_page"] == 1

        res = await client.get("/api/projects", headers=get_auth_headers(outsider))
        assert res.json()["total"] == 0
        assert res.json()["data"] == []

    async def test_pm_lists_everything(self, client: AsyncClient, other_pm, project):
        res = await client.get("/api/projects", headers=get_auth_headers(other_pm))
        assert res.json()["total"] == 1

    async def test_per_page_is_capped(self, client: AsyncClient, pm_user, project):
        res = await client.get("/api/projects?per_page=500", headers=get_auth_headers(pm_user))
        assert res.status_code == 200
        assert res.json()["per_page"] == 100

    async def test_show(self, client: AsyncClient, member_user, project):
        res = await client.get(f"/api/projects/{project.id}", headers=get_auth_headers(member_user))
        assert res.status_code == 200
        assert res.json()["members"][0]["id"] == member_user.id

    async def test_show_forbidden_for_outsider(self, client: AsyncClient, outsider, project):
        res = await client.get(f"/api/projects/{project.id}", headers=get_auth_headers(outsider))
        assert res.status_code == 403
        assert res.json() == {"message": "You do not have access to this project.", "reason": "not a member"}

    async def test_show_missing(self, client: AsyncClient, pm_user):
        res = await client.get("/api/projects/does-not-exist", headers=get_auth_headers(pm_user))
        assert res.status_code == 404
        assert res.json()["message"] == "Project not found."


@pytest.mark.asyncio
class TestProjectUpdate:
    async def test_manager_updates_and_syncs_members(self, client: AsyncClient, db_session, pm_user, member_user, second_member, project):
        res = await client.put(f"/api/projects/{project.id}", json={
            "name": "Apollo II",
            "status": "completed",
            "member_ids": [second_member.id],
        }, headers=get_auth_headers(pm_user))
        assert res.status_code == 200
        data = res.json()
        assert data["name"] == "Apollo II"
        assert data["status"] == "completed"
        assert [m["id"] for m in data["members"]] == [second_member.id]

        result = await db_session.execute(
            select(Notification).where(Notification.related_project_id == project.id)
        )
        # member_user was already a member, so only the newcomer is invited
        assert [n.user_id for n in result.scalars().all()] == [second_member.id]

    async def test_other_pm_cannot_update(self, client: AsyncClient, other_pm, project):
        res = await client.put(f"/api/projects/{project.id}", json={"name": "Hijack"}, headers=get_auth_headers(other_pm))
        assert res.status_code == 403
        assert res.json()["reason"] == "not project manager"

    async def test_update_rejects_dates_against_stored_start(self, client: AsyncClient, pm_user, project):
        headers = get_auth_headers(pm_user)
        ok = await client.put(f"/api/projects/{project.id}", json={"start_date": "2026-05-01"}, headers=headers)
        assert ok.status_code == 200
        res = await client.put(f"/api/projects/{project.id}", json={"end_date": "2026-04-01"}, headers=headers)
        assert res.status_code == 422


@pytest.mark.asyncio
class TestProjectDelete:
    async def test_member_cannot_delete(self, client: AsyncClient, member_user, project):
        res = await client.delete(f"/api/projects/{project.id}", headers=get_auth_headers(member_user))
        assert res.status_code == 403

    async def test_delete_cascades(self, client: AsyncClient, db_session, pm_user, member_user, project):
        headers = get_auth_headers(pm_user)
        project_id, member_id = project.id, member_user.id
        sprint = await client.post(f"/api/projects/{project.id}/sprints", json={
            "name": "Sprint 1", "start_date": "2026-01-01", "end_date": "2026-01-14",
        }, headers=headers)
        task = await client.post("/api/tasks", json={
            "project_id": project.id,
            "sprint_id": sprint.json()["id"],
            "title": "Doomed",
            "assigned_to": member_user.id,
        }, headers=headers)
        task_id = task.json()["id"]
        await client.post(f"/api/tasks/{task_id}/sub-tasks", json={"title": "Step"}, headers=headers)
        await client.post(
            f"/api/tasks/{task_id}/assets",
            files={"image": ("pic.png", b"\x89PNG\r\n\x1a\nfake", "image/png")},
            headers=headers,
        )

        res = await client.delete(f"/api/projects/{project.id}", headers=headers)
        assert res.status_code == 200
        assert res.json() == {"message": "Project deleted successfully."}

        db_session.expire_all()
        for model, column, value in (
            (Project, Project.id, project_id),
            (Sprint, Sprint.project_id, project_id),
            (Task, Task.project_id, project_id),
            (SubTask, SubTask.task_id, task_id),
            (TaskAsset, TaskAsset.task_id, task_id),
            (TaskActivity, TaskActivity.task_id, task_id),
        ):
            rows = (await db_session.execute(select(model).where(column == value))).scalars().all()
            assert rows == [], model.__name__

        links = (await db_session.execute(
            select(project_members).where(project_members.c.project_id == project_id)
        )).all()
        assert links == []

        notes = (await db_session.execute(
            select(Notification).where(Notification.user_id == member_id)
        )).scalars().all()
        assert notes
        assert all(n.related_task_id is None and n.related_project_id is None for n in notes)
