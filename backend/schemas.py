# schemas.py — Response models shared by the routers
#
# Builders read only relationships that the caller eager-loaded; the
# *_LOAD tuples below list the loader options each builder expects.
from datetime import date, datetime
from typing import Optional, List

from pydantic import BaseModel
from sqlalchemy.orm import selectinload

from models import (
    User, Project, Sprint, Task, SubTask, TaskAsset, TaskActivity, Notification, enum_value,
)


def _ts(value) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat() if isinstance(value, (datetime, date)) else str(value)


# ============================================================
# MODELS
# ============================================================

class UserOut(BaseModel):
    id: str
    full_name: str
    title: Optional[str] = None
    email: str
    role: str
    is_active: bool
    created_at: Optional[str] = None


class ProjectBrief(BaseModel):
    id: str
    name: str
    status: str
    manager_id: str


class SprintBrief(BaseModel):
    id: str
    project_id: str
    name: str
    start_date: str
    end_date: str
    status: str


class SubTaskOut(BaseModel):
    id: str
    task_id: str
    title: str
    date: Optional[str] = None
    tag: Optional[str] = None
    is_completed: bool
    created_at: Optional[str] = None


class AssetOut(BaseModel):
    id: str
    task_id: str
    image_url: str
    uploaded_by: str
    uploaded_at: Optional[str] = None


class ActivityOut(BaseModel):
    id: str
    task_id: str
    user_id: str
    type: str
    content: Optional[str] = None
    metadata: Optional[dict] = None
    created_at: Optional[str] = None
    user: Optional[UserOut] = None


class TaskOut(BaseModel):
    id: str
    project_id: str
    sprint_id: Optional[str] = None
    title: str
    date: Optional[str] = None
    priority: str
    status: str
    assigned_to: Optional[str] = None
    created_by: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    project: Optional[ProjectBrief] = None
    sprint: Optional[SprintBrief] = None
    assigned_user: Optional[UserOut] = None
    creator: Optional[UserOut] = None
    sub_tasks: List[SubTaskOut] = []
    assets: List[AssetOut] = []


class TaskDetailOut(TaskOut):
    activities: List[ActivityOut] = []


class SprintOut(SprintBrief):
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    tasks: List[TaskOut] = []


class ProjectOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    status: str
    manager_id: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    manager: Optional[UserOut] = None
    members: List[UserOut] = []


class ProjectDetailOut(ProjectOut):
    sprints: List[SprintBrief] = []
    tasks: List[TaskOut] = []


class NotificationOut(BaseModel):
    id: str
    user_id: str
    title: str
    message: Optional[str] = None
    type: str
    related_task_id: Optional[str] = None
    related_project_id: Optional[str] = None
    is_read: bool
    created_at: Optional[str] = None


# ============================================================
# LOADER OPTIONS
# ============================================================

TASK_LOAD = (
    selectinload(Task.project).selectinload(Project.members),
    selectinload(Task.sprint),
    selectinload(Task.assignee),
    selectinload(Task.creator),
    selectinload(Task.sub_tasks),
    selectinload(Task.assets),
)

TASK_DETAIL_LOAD = TASK_LOAD + (
    selectinload(Task.activities).selectinload(TaskActivity.user),
)

PROJECT_LOAD = (
    selectinload(Project.manager),
    selectinload(Project.members),
)

PROJECT_DETAIL_LOAD = PROJECT_LOAD + (
    selectinload(Project.sprints),
    selectinload(Project.tasks).selectinload(Task.assignee),
    selectinload(Project.tasks).selectinload(Task.sub_tasks),
    selectinload(Project.tasks).selectinload(Task.assets),
)

SPRINT_LOAD = (
    selectinload(Sprint.project).selectinload(Project.members),
    selectinload(Sprint.tasks).selectinload(Task.assignee),
    selectinload(Sprint.tasks).selectinload(Task.sub_tasks),
    selectinload(Sprint.tasks).selectinload(Task.assets),
)


# ============================================================
# BUILDERS
# ============================================================

def user_out(u: Optional[User]) -> Optional[UserOut]:
    if u is None:
        return None
    return UserOut(
        id=u.id,
        full_name=u.full_name,
        title=u.title,
        email=u.email,
        role=enum_value(u.role),
        is_active=bool(u.is_active),
        created_at=_ts(u.created_at),
    )


def sprint_brief(s: Optional[Sprint]) -> Optional[SprintBrief]:
    if s is None:
        return None
    return SprintBrief(
        id=s.id,
        project_id=s.project_id,
        name=s.name,
        start_date=_ts(s.start_date),
        end_date=_ts(s.end_date),
        status=enum_value(s.status),
    )


def subtask_out(s: SubTask) -> SubTaskOut:
    return SubTaskOut(
        id=s.id,
        task_id=s.task_id,
        title=s.title,
        date=_ts(s.date),
        tag=s.tag,
        is_completed=bool(s.is_completed),
        created_at=_ts(s.created_at),
    )


def asset_out(a: TaskAsset) -> AssetOut:
    return AssetOut(
        id=a.id,
        task_id=a.task_id,
        image_url=a.image_url,
        uploaded_by=a.uploaded_by,
        uploaded_at=_ts(a.uploaded_at),
    )


def activity_out(a: TaskActivity, with_user: bool = True) -> ActivityOut:
    return ActivityOut(
        id=a.id,
        task_id=a.task_id,
        user_id=a.user_id,
        type=enum_value(a.type),
        content=a.content,
        metadata=a.extra_data,
        created_at=_ts(a.created_at),
        user=user_out(a.user) if with_user else None,
    )


def task_out(t: Task, nested: bool = True) -> TaskOut:
    """Serialize a task; ``nested=False`` skips project/sprint/creator, which
    the project and sprint views do not load."""
    out = TaskOut(
        id=t.id,
        project_id=t.project_id,
        sprint_id=t.sprint_id,
        title=t.title,
        date=_ts(t.date),
        priority=enum_value(t.priority),
        status=enum_value(t.status),
        assigned_to=t.assigned_to,
        created_by=t.created_by,
        created_at=_ts(t.created_at),
        updated_at=_ts(t.updated_at),
        assigned_user=user_out(t.assignee),
        sub_tasks=[subtask_out(s) for s in t.sub_tasks],
        assets=[asset_out(a) for a in t.assets],
    )
    if nested:
        out.project = ProjectBrief(
            id=t.project.id,
            name=t.project.name,
            status=enum_value(t.project.status),
            manager_id=t.project.manager_id,
        )
        out.sprint = sprint_brief(t.sprint)
        out.creator = user_out(t.creator)
    return out


def task_detail_out(t: Task) -> TaskDetailOut:
    return TaskDetailOut(
        **task_out(t).model_dump(),
        activities=[activity_out(a) for a in t.activities],
    )


def sprint_out(s: Sprint, with_tasks: bool = True) -> SprintOut:
    return SprintOut(
        **sprint_brief(s).model_dump(),
        created_at=_ts(s.created_at),
        updated_at=_ts(s.updated_at),
        tasks=[task_out(t, nested=False) for t in s.tasks] if with_tasks else [],
    )


def project_out(p: Project) -> ProjectOut:
    return ProjectOut(
        id=p.id,
        name=p.name,
        description=p.description,
        status=enum_value(p.status),
        manager_id=p.manager_id,
        start_date=_ts(p.start_date),
        end_date=_ts(p.end_date),
        created_at=_ts(p.created_at),
        updated_at=_ts(p.updated_at),
        manager=user_out(p.manager),
        members=[user_out(m) for m in p.members],
    )


def project_detail_out(p: Project) -> ProjectDetailOut:
    return ProjectDetailOut(
        **project_out(p).model_dump(),
        sprints=[sprint_brief(s) for s in p.sprints],
        tasks=[task_out(t, nested=False) for t in p.tasks],
    )


def notification_out(n: Notification) -> NotificationOut:
    return NotificationOut(
        id=n.id,
        user_id=n.user_id,
        title=n.title,
        message=n.message,
        type=enum_value(n.type),
        related_task_id=n.related_task_id,
        related_project_id=n.related_project_id,
        is_read=bool(n.is_read),
        created_at=_ts(n.created_at),
    )
