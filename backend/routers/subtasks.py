# routers/subtasks.py — Checklist items under a task
import logging
from datetime import date as date_type
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from dispatcher import ActivityDispatcher
from exceptions import ValidationError
from loaders import get_task_or_404, get_subtask_or_404
from models import SubTask
from policy import Action, authorize, decide
from schemas import subtask_out

logger = logging.getLogger("sprintboard.subtasks")

router = APIRouter(prefix="/api/tasks/{task_id}/sub-tasks", tags=["Sub-tasks"])


class SubTaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    date: Optional[date_type] = None
    tag: Optional[str] = Field(default=None, max_length=100)


class SubTaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    date: Optional[date_type] = None
    tag: Optional[str] = Field(default=None, max_length=100)
    is_completed: Optional[bool] = None


@router.get("")
async def list_subtasks(
    task_id: str,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    task = await get_task_or_404(task_id, db)
    authorize(decide(user, Action.VIEW, task), user)

    result = await db.execute(
        select(SubTask).where(SubTask.task_id == task.id).order_by(SubTask.created_at.desc())
    )
    return [subtask_out(s) for s in result.scalars().all()]


@router.post("", status_code=201)
async def create_subtask(
    task_id: str,
    data: SubTaskCreate,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    task = await get_task_or_404(task_id, db)
    authorize(decide(user, Action.ADD_SUBTASK, task), user)

    sub_task = SubTask(task_id=task.id, title=data.title, date=data.date, tag=data.tag)
    db.add(sub_task)
    await db.flush()

    ActivityDispatcher(db, user).on_subtask_create(task, sub_task)
    await db.commit()

    logger.info(f"SubTask {sub_task.id} added to task {task.id}")
    return subtask_out(sub_task)


@router.put("/{sub_task_id}")
async def update_subtask(
    task_id: str,
    sub_task_id: str,
    data: SubTaskUpdate,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    task = await get_task_or_404(task_id, db)
    sub_task = await get_subtask_or_404(task, sub_task_id, db)
    authorize(decide(user, Action.UPDATE, sub_task), user)

    fields = data.model_dump(exclude_unset=True)
    for key in ("title", "is_completed"):
        if key in fields and fields[key] is None:
            raise ValidationError(f"The {key} field is required.")
    for key, value in fields.items():
        setattr(sub_task, key, value)
    await db.commit()

    return subtask_out(sub_task)


@router.delete("/{sub_task_id}")
async def delete_subtask(
    task_id: str,
    sub_task_id: str,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    task = await get_task_or_404(task_id, db)
    sub_task = await get_subtask_or_404(task, sub_task_id, db)
    authorize(decide(user, Action.DELETE, sub_task), user)

    await db.delete(sub_task)
    await db.commit()
    return {"message": "SubTask deleted successfully."}
