# routers/notifications.py — Per-user notification feed
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from exceptions import NotFoundError
from models import Notification
from pagination import PageParams, page_params, paginate
from policy import Action, authorize, decide
from schemas import notification_out

logger = logging.getLogger("sprintboard.notifications")

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])

NOTIFICATIONS_PER_PAGE = 20


async def _get_notification(notification_id: str, db: AsyncSession) -> Notification:
    notif = await db.get(Notification, notification_id)
    if not notif:
        raise NotFoundError("Notification not found.")
    return notif


# ============================================================
# LIST
# ============================================================

@router.get("")
async def list_notifications(
    unread_only: bool = Query(default=False),
    params: PageParams = Depends(page_params(NOTIFICATIONS_PER_PAGE)),
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    query = select(Notification).where(Notification.user_id == user.id)
    if unread_only:
        query = query.where(Notification.is_read.is_(False))
    query = query.order_by(Notification.created_at.desc())
    return await paginate(db, query, params, notification_out)


# ============================================================
# COUNT
# ============================================================

@router.get("/unread-count")
async def unread_count(
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    unread = (await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user.id,
            Notification.is_read.is_(False),
        )
    )).scalar() or 0
    return {"unread_count": unread}


# ============================================================
# MARK READ
# ============================================================

@router.patch("/read-all")
async def mark_all_read(
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user.id, Notification.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return {"message": "All notifications marked as read.", "marked": result.rowcount}


@router.patch("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    """Mark one notification read; repeating the call is harmless"""
    notif = await _get_notification(notification_id, db)
    authorize(decide(user, Action.UPDATE, notif), user)

    if not notif.is_read:
        notif.is_read = True
        await db.commit()
    return notification_out(notif)


# ============================================================
# DELETE
# ============================================================

@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    notif = await _get_notification(notification_id, db)
    authorize(decide(user, Action.DELETE, notif), user)

    await db.delete(notif)
    await db.commit()
    return {"message": "Notification deleted successfully."}
