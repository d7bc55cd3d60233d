# routers/notifications.py: Notification read-state sidecar
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from kanban_errors import NotFound
from kanban_schemas import NotificationOut, NotificationPage, PaginationOut, notifications_out
from models import Notification, NotificationType, utcnow

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


async def _get_own(db: AsyncSession, notification_id: str, user_id: str) -> Notification:
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.recipient_id == user_id,
        )
    )
    notif = result.scalar_one_or_none()
    if not notif:
        raise NotFound("Notification not found")
    return notif


# ============================================================
# LIST
# ============================================================

@router.get("", response_model=NotificationPage)
async def list_notifications(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    type: Optional[NotificationType] = Query(default=None),
    is_read: Optional[bool] = Query(default=None, alias="isRead"),
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    filters = [Notification.recipient_id == user.id]
    if type is not None:
        filters.append(Notification.type == type)
    if is_read is not None:
        filters.append(Notification.is_read.is_(is_read))

    total = (await db.execute(select(func.count(Notification.id)).where(*filters))).scalar() or 0
    query = (
        select(Notification)
        .where(*filters)
        .order_by(Notification.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(query)
    return NotificationPage(
        notifications=await notifications_out(db, list(result.scalars().all())),
        pagination=PaginationOut(total=total, page=page, pages=math.ceil(total / limit)),
    )


@router.get("/unread-count")
async def unread_count(
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    count = (await db.execute(
        select(func.count(Notification.id)).where(
            Notification.recipient_id == user.id,
            Notification.is_read.is_(False),
        )
    )).scalar() or 0
    return {"count": count}


# ============================================================
# MARK READ
# ============================================================

@router.patch("/mark-all-read")
async def mark_all_read(
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    result = await db.execute(
        update(Notification)
        .where(Notification.recipient_id == user.id, Notification.is_read.is_(False))
        .values(is_read=True, read_at=utcnow())
    )
    await db.commit()
    return {"message": "All notifications marked as read", "marked": result.rowcount or 0}


@router.patch("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: str,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    notif = await _get_own(db, notification_id, user.id)
    if not notif.is_read:
        notif.is_read = True
        notif.read_at = utcnow()
        await db.commit()
    return (await notifications_out(db, [notif]))[0]


# ============================================================
# DELETE
# ============================================================

@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    notif = await _get_own(db, notification_id, user.id)
    await db.delete(notif)
    await db.commit()
    return {"message": "Notification deleted"}
