#!/usr/bin/env python3
"""
Sprintboard — Database Seeder
Creates the demo accounts plus a batch of generated users, and optionally a
sample project with a sprint and a few tasks. Safe to re-run: the demo
accounts are only created when their email is not taken yet.

Usage:
    python scripts/seed_database.py
    python scripts/seed_database.py --users 25 --with-project
    DATABASE_URL=sqlite+aiosqlite:///./dev.db python scripts/seed_database.py
"""

import argparse
import asyncio
import random
from datetime import date, timedelta

from sqlalchemy import func, select

from auth import AuthService
from database import async_session_maker, close_db, init_db
from dispatcher import ActivityDispatcher
from models import Project, Sprint, Task, TaskPriority, User, UserRole


# ── Configuration ───────────────────────────────────────────

DEMO_PASSWORD = "password"
DEMO_ACCOUNTS = [
    {"email": "pm@example.com", "full_name": "Project Manager", "title": "Senior Project Manager", "role": UserRole.PM},
    {"email": "member@example.com", "full_name": "Team Member", "title": "Developer", "role": UserRole.MEMBER},
]

# One PM for every four members
ROLE_WEIGHTS = [UserRole.PM, UserRole.MEMBER, UserRole.MEMBER, UserRole.MEMBER, UserRole.MEMBER]
TITLES = ["Developer", "Designer", "QA Engineer", "Product Owner", "DevOps Engineer", "Data Analyst"]
FIRST_NAMES = ["Alex", "Jordan", "Taylor", "Morgan", "Casey", "Riley", "Quinn", "Avery", "Sage", "River",
               "Kai", "Rowan", "Phoenix", "Skyler", "Dakota", "Reese", "Finley", "Harper", "Emery", "Blake"]
LAST_NAMES = ["Chen", "Patel", "Kim", "Santos", "Okafor", "Tanaka", "Johansson", "Silva", "Kowalski",
              "Nguyen", "Andersen", "Dubois", "Rossi", "Petrov", "Larsson", "Fernandez", "Ali", "Park"]
TASK_TITLES = ["Set up CI pipeline", "Design login screen", "Write API docs", "Fix flaky tests",
               "Draft release notes", "Review access rules", "Add image uploads", "Tune slow queries"]


class Seeder:
    """Writes demo data through the ORM so defaults and side effects match the API."""

    def __init__(self, db, seed: int = 42):
        self.db = db
        random.seed(seed)
        self.password_hash = AuthService.hash_password(DEMO_PASSWORD)

    async def _first_or_create(self, email: str, **fields) -> tuple:
        existing = (await self.db.execute(select(User).where(User.email == email))).scalar_one_or_none()
        if existing:
            return existing, False
        user = User(email=email, password_hash=self.password_hash, is_active=True, **fields)
        self.db.add(user)
        await self.db.flush()
        return user, True

    # ── Generators ──────────────────────────────────────────

    async def demo_accounts(self) -> list:
        users = []
        for account in DEMO_ACCOUNTS:
            user, created = await self._first_or_create(**account)
            verb = "Created" if created else "Found"
            print(f"   {verb} {user.role.value} user: {user.email} (ID: {user.id})")
            users.append(user)
        return users

    async def generated_users(self, count: int) -> list:
        users = []
        for index in range(count):
            first, last = random.choice(FIRST_NAMES), random.choice(LAST_NAMES)
            user, _ = await self._first_or_create(
                f"{first.lower()}.{last.lower()}{index}@example.com",
                full_name=f"{first} {last}",
                title=random.choice(TITLES),
                role=random.choice(ROLE_WEIGHTS),
            )
            users.append(user)
        return users

    async def sample_project(self, manager: User, members: list) -> Project:
        start = date.today()
        project = Project(
            name="Sample Project",
            description="Seeded demo project",
            manager_id=manager.id,
            start_date=start,
            end_date=start + timedelta(days=90),
        )
        project.members = members
        self.db.add(project)
        await self.db.flush()

        sprint = Sprint(project_id=project.id, name="Sprint 1", start_date=start, end_date=start + timedelta(days=14))
        self.db.add(sprint)
        await self.db.flush()

        dispatcher = ActivityDispatcher(self.db, manager)
        dispatcher.on_members_added(project, [m.id for m in members])
        for title in random.sample(TASK_TITLES, k=5):
            task = Task(
                project_id=project.id,
                sprint_id=sprint.id if random.random() > 0.3 else None,
                title=title,
                priority=random.choice(list(TaskPriority)),
                assigned_to=random.choice(members).id if members else None,
                created_by=manager.id,
            )
            self.db.add(task)
            await self.db.flush()
            dispatcher.on_create(task)
        return project


# ── CLI ─────────────────────────────────────────────────────

async def run(args) -> None:
    await init_db()
    try:
        async with async_session_maker() as db:
            seeder = Seeder(db, seed=args.seed)
            print("Starting database seeding...")
            pm, member = await seeder.demo_accounts()
            users = await seeder.generated_users(args.users)

            pm_count = sum(1 for u in users if u.role == UserRole.PM)
            print(f"   Generated {len(users)} users: {pm_count} PM, {len(users) - pm_count} MEMBER")

            if args.with_project:
                project = await seeder.sample_project(pm, [member] + users[:3])
                print(f"   Created project: {project.name} (ID: {project.id})")

            await db.commit()
            total = (await db.execute(select(func.count(User.id)))).scalar()
            print(f"✅ Seeding complete. Total users in database: {total}")
    finally:
        await close_db()


def main():
    parser = argparse.ArgumentParser(description="Sprintboard Database Seeder")
    parser.add_argument("--users", type=int, default=10, help="Number of generated users")
    parser.add_argument("--with-project", action="store_true", help="Also create a sample project")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    asyncio.run(run(parser.parse_args()))


if __name__ == "__main__":
    main()
