# routers/members.py — Member directory scoped to shared projects
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from models import User, UserRole
from pagination import PageParams, page_params, paginate
from schemas import user_out
from visibility import scope_users

router = APIRouter(prefix="/api/members", tags=["Members"])


@router.get("")
async def list_members(
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, max_length=255),
    params: PageParams = Depends(page_params()),
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    """Users sharing a project with the caller (everyone, for a PM)"""
    query = await scope_users(select(User), user, db)
    if role is not None:
        query = query.where(User.role == role)
    if is_active is not None:
        query = query.where(User.is_active == is_active)
    if search:
        # match the term literally
        term = search.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{term}%"
        query = query.where(or_(
            func.lower(User.full_name).like(pattern, escape="\\"),
            func.lower(User.email).like(pattern, escape="\\"),
        ))
    query = query.order_by(User.full_name)
    return await paginate(db, query, params, user_out)
