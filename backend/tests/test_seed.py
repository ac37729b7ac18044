# tests/test_seed.py — Demo data seeder
import pytest
from sqlalchemy import func, select

from auth import AuthService
from models import Notification, Task, TaskActivity, User, UserRole
from seed_database import DEMO_PASSWORD, Seeder


@pytest.mark.asyncio
class TestSeeder:
    async def test_demo_accounts_are_idempotent(self, db_session):
        first = await Seeder(db_session).demo_accounts()
        await db_session.commit()
        second = await Seeder(db_session).demo_accounts()
        await db_session.commit()

        assert [u.id for u in first] == [u.id for u in second]
        assert first[0].role == UserRole.PM
        assert AuthService.verify_password(DEMO_PASSWORD, first[1].password_hash)
        total = (await db_session.execute(select(func.count(User.id)))).scalar()
        assert total == 2

    async def test_sample_project_writes_side_effects(self, db_session):
        seeder = Seeder(db_session)
        pm, member = await seeder.demo_accounts()
        project = await seeder.sample_project(pm, [member])
        await db_session.commit()

        tasks = (await db_session.execute(select(Task).where(Task.project_id == project.id))).scalars().all()
        assert len(tasks) == 5
        assert all(t.assigned_to == member.id for t in tasks)

        activities = (await db_session.execute(select(func.count(TaskActivity.id)))).scalar()
        assert activities == 5
        notes = (await db_session.execute(
            select(func.count(Notification.id)).where(Notification.user_id == member.id)
        )).scalar()
        # one invitation plus one assignment per task
        assert notes == 6
