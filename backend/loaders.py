# loaders.py — Fetch-or-404 helpers shared by the routers
#
# Every helper reloads with populate_existing so a second call after a commit
# returns fresh relationships instead of the identity map's stale collections.
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from exceptions import NotFoundError, ValidationError
from models import Project, Sprint, Task, SubTask, User

# What the access policy reads on each resource
PROJECT_POLICY_LOAD = (selectinload(Project.members),)
TASK_POLICY_LOAD = (selectinload(Task.project).selectinload(Project.members),)


async def _one_or_404(db: AsyncSession, stmt, message: str):
    result = await db.execute(stmt.execution_options(populate_existing=True))
    obj = result.scalar_one_or_none()
    if obj is None:
        raise NotFoundError(message)
    return obj


async def get_project_or_404(project_id: str, db: AsyncSession, options: Sequence = PROJECT_POLICY_LOAD) -> Project:
    stmt = select(Project).where(Project.id == project_id).options(*options)
    return await _one_or_404(db, stmt, "Project not found.")


async def get_sprint_or_404(
    project: Project, sprint_id: str, db: AsyncSession, options: Sequence = (),
) -> Sprint:
    """A sprint that exists but belongs to another project is also a 404."""
    stmt = select(Sprint).where(Sprint.id == sprint_id).options(*options)
    sprint = await _one_or_404(db, stmt, "Sprint not found.")
    if sprint.project_id != project.id:
        raise NotFoundError("Sprint does not belong to this project.")
    return sprint


async def get_task_or_404(task_id: str, db: AsyncSession, options: Sequence = TASK_POLICY_LOAD) -> Task:
    stmt = select(Task).where(Task.id == task_id).options(*options)
    return await _one_or_404(db, stmt, "Task not found.")


async def get_subtask_or_404(task: Task, sub_task_id: str, db: AsyncSession) -> SubTask:
    stmt = select(SubTask).where(SubTask.id == sub_task_id).options(
        selectinload(SubTask.task).selectinload(Task.project).selectinload(Project.members)
    )
    sub_task = await _one_or_404(db, stmt, "SubTask not found.")
    if sub_task.task_id != task.id:
        raise NotFoundError("SubTask does not belong to this task.")
    return sub_task


# --- reference checks on request bodies (422, not 404) ---

async def require_user(user_id: str, db: AsyncSession, field: str = "assigned_to") -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise ValidationError(f"The selected {field} is invalid.")
    return user


async def require_users(user_ids: Sequence[str], db: AsyncSession, field: str = "member_ids") -> list:
    wanted = list(dict.fromkeys(user_ids))
    if not wanted:
        return []
    result = await db.execute(select(User).where(User.id.in_(wanted)))
    users = result.scalars().all()
    if len(users) != len(wanted):
        raise ValidationError(f"The selected {field} is invalid.")
    return users


async def require_sprint_in_project(sprint_id: str, project_id: str, db: AsyncSession) -> Sprint:
    sprint = await db.get(Sprint, sprint_id)
    if sprint is None:
        raise ValidationError("The selected sprint_id is invalid.")
    if sprint.project_id != project_id:
        raise ValidationError("Sprint does not belong to this project.")
    return sprint
