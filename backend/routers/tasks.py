# routers/tasks.py — Tasks, image assets and the activity log
import os
import uuid
import logging
from datetime import date as date_type, datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, File, Query, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from auth import get_current_user, CurrentUser
from database import get_db_session
from dispatcher import ActivityDispatcher, TaskChange, TaskSnapshot
from exceptions import ValidationError
from loaders import (
    PROJECT_POLICY_LOAD, get_task_or_404, require_sprint_in_project, require_user,
)
from models import (
    Project, Task, TaskAsset, TaskActivity, TaskPriority, TaskStatus, ActivityType,
)
from pagination import PageParams, page_params, paginate
from policy import Action, authorize, decide
from schemas import TASK_LOAD, TASK_DETAIL_LOAD, task_out, task_detail_out, asset_out, activity_out
from visibility import scope_tasks

logger = logging.getLogger("sprintboard.tasks")

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])

ASSET_STORAGE_ROOT = os.getenv("ASSET_STORAGE_ROOT", "/data/assets")
ASSET_URL_PREFIX = os.getenv("ASSET_URL_PREFIX", "/storage")
MAX_ASSET_BYTES = int(os.getenv("MAX_ASSET_BYTES", str(5 * 1024 * 1024)))
ASSET_DIR = "task-assets"


# ============================================================
# SCHEMAS
# ============================================================

class TaskCreate(BaseModel):
    project_id: str
    sprint_id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=255)
    date: Optional[date_type] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.TO_DO
    assigned_to: Optional[str] = None


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    date: Optional[date_type] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    sprint_id: Optional[str] = None
    assigned_to: Optional[str] = None


async def _reload(task_id: str, db: AsyncSession, options=TASK_LOAD) -> Task:
    return await get_task_or_404(task_id, db, options=options)


# ============================================================
# LIST & CREATE
# ============================================================

@router.get("")
async def list_tasks(
    project_id: Optional[str] = Query(None),
    sprint_id: Optional[str] = Query(None, description='Sprint id, or "null" for backlog tasks'),
    assigned_to: Optional[str] = Query(None),
    status: Optional[TaskStatus] = Query(None),
    params: PageParams = Depends(page_params()),
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    query = await scope_tasks(select(Task), user, db)
    if project_id:
        query = query.where(Task.project_id == project_id)
    if sprint_id is not None:
        if sprint_id == "null":
            query = query.where(Task.sprint_id.is_(None))
        else:
            query = query.where(Task.sprint_id == sprint_id)
    if assigned_to:
        query = query.where(Task.assigned_to == assigned_to)
    if status is not None:
        query = query.where(Task.status == status)
    query = query.order_by(Task.created_at.desc())
    return await paginate(db, query, params, task_out, options=TASK_LOAD)


@router.post("", status_code=201)
async def create_task(
    data: TaskCreate,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    result = await db.execute(
        select(Project).where(Project.id == data.project_id).options(*PROJECT_POLICY_LOAD)
    )
    project = result.scalar_one_or_none()
    if project is None:
        raise ValidationError("The selected project_id is invalid.")
    authorize(decide(user, Action.ADD_TASK, project), user)

    if data.sprint_id:
        await require_sprint_in_project(data.sprint_id, project.id, db)
    if data.assigned_to:
        await require_user(data.assigned_to, db)

    task = Task(
        project_id=project.id,
        sprint_id=data.sprint_id or None,
        title=data.title,
        date=data.date,
        priority=data.priority,
        status=data.status,
        assigned_to=data.assigned_to or None,
        created_by=user.id,
    )
    db.add(task)
    await db.flush()

    ActivityDispatcher(db, user).on_create(task)
    await db.commit()

    logger.info(f"Task {task.id} created in project {project.id} by {user.id}")
    return task_out(await _reload(task.id, db))


# ============================================================
# SHOW / UPDATE / DELETE
# ============================================================

@router.get("/{task_id}")
async def get_task(
    task_id: str,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    task = await _reload(task_id, db, options=TASK_DETAIL_LOAD)
    authorize(decide(user, Action.VIEW, task), user)
    return task_detail_out(task)


@router.put("/{task_id}")
async def update_task(
    task_id: str,
    data: TaskUpdate,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    """Update a task and record status/assignee transitions"""
    task = await _reload(task_id, db)
    authorize(decide(user, Action.UPDATE, task), user)

    fields = data.model_dump(exclude_unset=True)
    for key in ("title", "priority", "status"):
        if key in fields and fields[key] is None:
            raise ValidationError(f"The {key} field is required.")
    # an empty id clears the reference, as on create
    for key in ("sprint_id", "assigned_to"):
        if key in fields and not fields[key]:
            fields[key] = None

    if fields.get("sprint_id"):
        await require_sprint_in_project(fields["sprint_id"], task.project_id, db)
    assignee = None
    if fields.get("assigned_to"):
        assignee = await require_user(fields["assigned_to"], db)

    previous = TaskSnapshot.of(task)
    for key, value in fields.items():
        setattr(task, key, value)
    change = TaskChange.diff(previous, TaskSnapshot.of(task))

    if change:
        ActivityDispatcher(db, user).on_update(task, change, assignee=assignee)
    await db.commit()

    if change:
        logger.info(
            f"Task {task.id} updated by {user.id}: status {change.old_status}->{change.new_status}, "
            f"assignee {change.old_assigned_to}->{change.new_assigned_to}"
        )
    return task_out(await _reload(task.id, db))


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    task = await _reload(task_id, db)
    authorize(decide(user, Action.DELETE, task), user)

    await db.delete(task)
    await db.commit()

    logger.info(f"Task {task_id} deleted by {user.id}")
    return {"message": "Task deleted successfully."}


# ============================================================
# ASSETS
# ============================================================

def _store_image(content: bytes, filename: Optional[str]) -> Tuple[Path, str]:
    """Write the upload under ASSET_STORAGE_ROOT; returns the file path and its public URL."""
    suffix = Path(filename or "").suffix.lower()[:10]
    name = f"{uuid.uuid4().hex}{suffix}"
    target_dir = Path(ASSET_STORAGE_ROOT) / ASSET_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / name
    path.write_bytes(content)
    return path, f"{ASSET_URL_PREFIX.rstrip('/')}/{ASSET_DIR}/{name}"


@router.post("/{task_id}/assets", status_code=201)
async def upload_asset(
    task_id: str,
    image: UploadFile = File(...),
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    """Attach an image (max 5 MB) to a task"""
    task = await _reload(task_id, db)
    authorize(decide(user, Action.ADD_ASSET, task), user)

    if not (image.content_type or "").startswith("image/"):
        raise ValidationError("The image must be an image.")
    content = await image.read(MAX_ASSET_BYTES + 1)
    if len(content) > MAX_ASSET_BYTES:
        raise ValidationError(f"The image must not be greater than {MAX_ASSET_BYTES // 1024} kilobytes.")
    if not content:
        raise ValidationError("The image field is required.")

    stored, image_url = _store_image(content, image.filename)
    try:
        asset = TaskAsset(task_id=task.id, image_url=image_url, uploaded_by=user.id)
        db.add(asset)
        await db.flush()

        ActivityDispatcher(db, user).on_asset_upload(task, asset)
        await db.commit()
    except Exception:
        # no row will reference the file
        stored.unlink(missing_ok=True)
        raise

    logger.info(f"Asset {asset.id} uploaded to task {task.id}")
    return asset_out(asset)


# ============================================================
# ACTIVITY LOG
# ============================================================

@router.get("/{task_id}/activities")
async def list_activities(
    task_id: str,
    type: Optional[ActivityType] = Query(None),
    since: Optional[datetime] = Query(None),
    params: PageParams = Depends(page_params()),
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    """Newest-first activity entries for one task"""
    task = await _reload(task_id, db)
    authorize(decide(user, Action.VIEW_ACTIVITY, task), user)

    query = select(TaskActivity).where(TaskActivity.task_id == task.id)
    if type is not None:
        query = query.where(TaskActivity.type == type)
    if since is not None:
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)
        query = query.where(TaskActivity.created_at > since.astimezone(timezone.utc))
    query = query.order_by(TaskActivity.created_at.desc())
    return await paginate(db, query, params, activity_out, options=(selectinload(TaskActivity.user),))
