# visibility.py — Membership & visibility scoping for list queries
"""
For a PM every row is visible. For anyone else visibility is the union of
projects the actor is a listed member of and projects the actor manages
(checked on ``manager_id`` alone, without trusting the role).

An empty visible set always becomes an explicit ``false()`` predicate so a
MEMBER without projects never falls through to an unfiltered query.
"""
from typing import Optional, Set

from sqlalchemy import Select, select, false, or_
from sqlalchemy.ext.asyncio import AsyncSession

from models import Project, Task, User, project_members
from policy import is_pm


async def visible_project_ids(actor, db: AsyncSession) -> Optional[Set[str]]:
    """Project ids visible to ``actor``; ``None`` means unrestricted."""
    if is_pm(actor):
        return None

    member_of = await db.execute(
        select(project_members.c.project_id).where(project_members.c.user_id == actor.id)
    )
    managed = await db.execute(select(Project.id).where(Project.manager_id == actor.id))
    return set(member_of.scalars().all()) | set(managed.scalars().all())


def project_visibility_clause(project_ids: Optional[Set[str]]):
    if project_ids is None:
        return None
    if not project_ids:
        return false()
    return Project.id.in_(project_ids)


def task_visibility_clause(actor, project_ids: Optional[Set[str]]):
    """Tasks in visible projects, plus tasks assigned to the actor directly."""
    if project_ids is None:
        return None
    clauses = [Task.assigned_to == actor.id]
    if project_ids:
        clauses.append(Task.project_id.in_(project_ids))
    return or_(*clauses)


def user_visibility_clause(project_ids: Optional[Set[str]]):
    """Members and managers of the visible projects."""
    if project_ids is None:
        return None
    if not project_ids:
        return false()
    member_ids = select(project_members.c.user_id).where(project_members.c.project_id.in_(project_ids))
    manager_ids = select(Project.manager_id).where(Project.id.in_(project_ids))
    return or_(User.id.in_(member_ids), User.id.in_(manager_ids))


async def scope_projects(stmt: Select, actor, db: AsyncSession) -> Select:
    clause = project_visibility_clause(await visible_project_ids(actor, db))
    return stmt if clause is None else stmt.where(clause)


async def scope_tasks(stmt: Select, actor, db: AsyncSession) -> Select:
    clause = task_visibility_clause(actor, await visible_project_ids(actor, db))
    return stmt if clause is None else stmt.where(clause)


async def scope_users(stmt: Select, actor, db: AsyncSession) -> Select:
    clause = user_visibility_clause(await visible_project_ids(actor, db))
    return stmt if clause is None else stmt.where(clause)
