# tests/test_members.py — Member directory
import pytest
from httpx import AsyncClient

from models import UserRole
from tests.conftest import get_auth_headers, make_user


@pytest.mark.asyncio
class TestMemberDirectory:
    async def test_member_sees_project_peers(self, client: AsyncClient, pm_user, member_user, outsider, project):
        res = await client.get("/api/members", headers=get_auth_headers(member_user))
        assert res.status_code == 200
        names = [u["full_name"] for u in res.json()["data"]]
        assert names == ["Mia Member", "Paula Manager"]

    async def test_outsider_sees_nobody(self, client: AsyncClient, outsider, project):
        res = await client.get("/api/members", headers=get_auth_headers(outsider))
        assert res.json()["total"] == 0

    async def test_pm_sees_everyone(self, client: AsyncClient, pm_user, member_user, outsider):
        res = await client.get("/api/members", headers=get_auth_headers(pm_user))
        assert res.json()["total"] == 3
        assert "password_hash" not in res.json()["data"][0]

    async def test_role_filter(self, client: AsyncClient, pm_user, other_pm, member_user):
        res = await client.get("/api/members?role=PM", headers=get_auth_headers(pm_user))
        assert sorted(u["full_name"] for u in res.json()["data"]) == ["Oscar Other", "Paula Manager"]

    async def test_active_filter(self, client: AsyncClient, db_session, pm_user):
        await make_user(db_session, "Ina Active-Not", UserRole.MEMBER, is_active=False)
        res = await client.get("/api/members?is_active=false", headers=get_auth_headers(pm_user))
        assert [u["full_name"] for u in res.json()["data"]] == ["Ina Active-Not"]

    async def test_search_is_case_insensitive(self, client: AsyncClient, pm_user, member_user, second_member):
        headers = get_auth_headers(pm_user)
        res = await client.get("/api/members?search=NOAH", headers=headers)
        assert [u["full_name"] for u in res.json()["data"]] == ["Noah Second"]

        res = await client.get("/api/members?search=mia.member@", headers=headers)
        assert [u["id"] for u in res.json()["data"]] == [member_user.id]

    async def test_search_wildcards_match_literally(self, client: AsyncClient, db_session, pm_user, member_user):
        underscored = await make_user(db_session, "Uma Score", email="uma_score@sprintboard.io")
        headers = get_auth_headers(pm_user)

        res = await client.get("/api/members", params={"search": "_"}, headers=headers)
        assert [u["id"] for u in res.json()["data"]] == [underscored.id]

        res = await client.get("/api/members", params={"search": "%"}, headers=headers)
        assert res.json()["total"] == 0

    async def test_invalid_role(self, client: AsyncClient, pm_user):
        res = await client.get("/api/members?role=ADMIN", headers=get_auth_headers(pm_user))
        assert res.status_code == 422
