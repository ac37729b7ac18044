# routers/projects.py — Projects and their member lists
import logging
from datetime import date
from typing import Optional, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, model_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from dispatcher import ActivityDispatcher
from exceptions import ValidationError
from loaders import get_project_or_404, require_users
from models import Project, ProjectStatus
from pagination import PageParams, page_params, paginate
from policy import Action, authorize, decide, project_creation
from schemas import PROJECT_LOAD, PROJECT_DETAIL_LOAD, project_out, project_detail_out
from visibility import scope_projects

logger = logging.getLogger("sprintboard.projects")

router = APIRouter(prefix="/api/projects", tags=["Projects"])


# ============================================================
# SCHEMAS
# ============================================================

def _check_dates(start: Optional[date], end: Optional[date]) -> None:
    if start is not None and end is not None and end <= start:
        raise ValueError("The end date must be a date after start date.")


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    member_ids: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_dates(self):
        _check_dates(self.start_date, self.end_date)
        return self


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    member_ids: Optional[List[str]] = None

    @model_validator(mode="after")
    def validate_dates(self):
        _check_dates(self.start_date, self.end_date)
        return self


async def _reload(project_id: str, db: AsyncSession, options=PROJECT_DETAIL_LOAD) -> Project:
    return await get_project_or_404(project_id, db, options=options)


# ============================================================
# LIST & CREATE
# ============================================================

@router.get("")
async def list_projects(
    params: PageParams = Depends(page_params()),
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    """Every project for a PM; managed or joined projects for anyone else"""
    query = await scope_projects(select(Project), user, db)
    query = query.order_by(Project.created_at.desc())
    return await paginate(db, query, params, project_out, options=PROJECT_LOAD)


@router.post("", status_code=201)
async def create_project(
    data: ProjectCreate,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    """Create a project managed by the caller and invite the listed members"""
    authorize(project_creation(user), user)

    members = await require_users(data.member_ids, db)
    project = Project(
        name=data.name,
        description=data.description,
        status=data.status,
        manager_id=user.id,
        start_date=data.start_date,
        end_date=data.end_date,
    )
    project.members = list(members)
    db.add(project)
    await db.flush()

    ActivityDispatcher(db, user).on_members_added(project, [m.id for m in members])
    await db.commit()

    logger.info(f"Project {project.id} created by {user.id} with {len(members)} member(s)")
    return project_detail_out(await _reload(project.id, db))


# ============================================================
# SHOW / UPDATE / DELETE
# ============================================================

@router.get("/{project_id}")
async def get_project(
    project_id: str,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    project = await _reload(project_id, db)
    authorize(decide(user, Action.VIEW, project), user)
    return project_detail_out(project)


@router.put("/{project_id}")
async def update_project(
    project_id: str,
    data: ProjectUpdate,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    """Manager-only update; ``member_ids`` replaces the member list"""
    project = await get_project_or_404(project_id, db)
    authorize(decide(user, Action.UPDATE, project), user)

    fields = data.model_dump(exclude_unset=True, exclude={"member_ids"})
    if "name" in fields and fields["name"] is None:
        raise ValidationError("The name field is required.")
    if "status" in fields and fields["status"] is None:
        raise ValidationError("The status field is required.")
    try:
        _check_dates(fields.get("start_date", project.start_date), fields.get("end_date", project.end_date))
    except ValueError as e:
        raise ValidationError(str(e))

    for key, value in fields.items():
        setattr(project, key, value)

    if data.member_ids is not None:
        previous = project.member_ids
        members = await require_users(data.member_ids, db)
        project.members = list(members)
        added = [m.id for m in members if m.id not in previous]
        ActivityDispatcher(db, user).on_members_added(project, added)

    await db.commit()
    return project_out(await _reload(project.id, db, options=PROJECT_LOAD))


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    """Delete a project with its sprints, tasks and everything under them"""
    project = await get_project_or_404(project_id, db)
    authorize(decide(user, Action.DELETE, project), user)

    await db.delete(project)
    await db.commit()

    logger.info(f"Project {project_id} deleted by {user.id}")
    return {"message": "Project deleted successfully."}
