# routers/sprints.py — Sprints nested under a project
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, model_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from exceptions import ValidationError
from loaders import get_project_or_404, get_sprint_or_404
from models import Sprint, SprintStatus
from pagination import PageParams, page_params, paginate
from policy import Action, authorize, decide
from schemas import SPRINT_LOAD, sprint_out

logger = logging.getLogger("sprintboard.sprints")

router = APIRouter(prefix="/api/projects/{project_id}/sprints", tags=["Sprints"])


# ============================================================
# SCHEMAS
# ============================================================

class SprintCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    start_date: date
    end_date: date
    status: SprintStatus = SprintStatus.PLANNED

    @model_validator(mode="after")
    def validate_dates(self):
        if self.end_date <= self.start_date:
            raise ValueError("The end date must be a date after start date.")
        return self


class SprintUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[SprintStatus] = None


# ============================================================
# ENDPOINTS
# ============================================================

@router.get("")
async def list_sprints(
    project_id: str,
    params: PageParams = Depends(page_params()),
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    project = await get_project_or_404(project_id, db)
    authorize(decide(user, Action.VIEW, project), user)

    query = select(Sprint).where(Sprint.project_id == project.id).order_by(Sprint.created_at.desc())
    return await paginate(db, query, params, sprint_out, options=SPRINT_LOAD)


@router.post("", status_code=201)
async def create_sprint(
    project_id: str,
    data: SprintCreate,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    project = await get_project_or_404(project_id, db)
    authorize(decide(user, Action.ADD_SPRINT, project), user)

    sprint = Sprint(
        project_id=project.id,
        name=data.name,
        start_date=data.start_date,
        end_date=data.end_date,
        status=data.status,
    )
    db.add(sprint)
    await db.commit()

    logger.info(f"Sprint {sprint.id} created in project {project.id}")
    return sprint_out(await get_sprint_or_404(project, sprint.id, db, options=SPRINT_LOAD))


@router.get("/{sprint_id}")
async def get_sprint(
    project_id: str,
    sprint_id: str,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    project = await get_project_or_404(project_id, db)
    sprint = await get_sprint_or_404(project, sprint_id, db, options=SPRINT_LOAD)
    authorize(decide(user, Action.VIEW, sprint), user)
    return sprint_out(sprint)


@router.put("/{sprint_id}")
async def update_sprint(
    project_id: str,
    sprint_id: str,
    data: SprintUpdate,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    project = await get_project_or_404(project_id, db)
    sprint = await get_sprint_or_404(project, sprint_id, db, options=SPRINT_LOAD)
    authorize(decide(user, Action.UPDATE, sprint), user)

    fields = data.model_dump(exclude_unset=True)
    for key in ("name", "start_date", "end_date", "status"):
        if key in fields and fields[key] is None:
            raise ValidationError(f"The {key} field is required.")

    start = fields.get("start_date", sprint.start_date)
    end = fields.get("end_date", sprint.end_date)
    if end <= start:
        raise ValidationError("The end date must be a date after start date.")

    for key, value in fields.items():
        setattr(sprint, key, value)
    await db.commit()

    return sprint_out(await get_sprint_or_404(project, sprint.id, db, options=SPRINT_LOAD))


@router.delete("/{sprint_id}")
async def delete_sprint(
    project_id: str,
    sprint_id: str,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    """Delete a sprint; its tasks go back to the backlog"""
    project = await get_project_or_404(project_id, db)
    sprint = await get_sprint_or_404(project, sprint_id, db, options=SPRINT_LOAD)
    authorize(decide(user, Action.DELETE, sprint), user)

    await db.delete(sprint)
    await db.commit()

    logger.info(f"Sprint {sprint_id} deleted from project {project.id}")
    return {"message": "Sprint deleted successfully."}
