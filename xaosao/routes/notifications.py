from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Query as SQLQuery
from sqlalchemy.orm import Session

from ..auth import ROLE_CUSTOMER, Actor, get_current_actor
from ..database import get_db
from ..models import Notification
from ..schemas import MessageResponse, NotificationResponse
from ..shared.pagination import build_pagination, page_offset

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def notifications_of(db: Session, actor: Actor) -> SQLQuery:
    if actor.role == ROLE_CUSTOMER:
        return db.query(Notification).filter(Notification.customer_id == actor.id)
    return db.query(Notification).filter(Notification.model_id == actor.id)


def notification_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        data=notification.data,
        isRead=notification.is_read,
        createdAt=notification.created_at,
    )


@router.get("")
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = False,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Notifications of the current customer or model, newest first"""
    query = notifications_of(db, actor)
    unread_count = query.filter(Notification.is_read.is_(False)).count()
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))

    total = query.count()
    items = (
        query.order_by(Notification.created_at.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
        .all()
    )
    return {
        "notifications": [notification_response(n) for n in items],
        "unreadCount": unread_count,
        "pagination": build_pagination(page, limit, total),
    }


@router.post("/{notification_id}/read", response_model=MessageResponse)
async def mark_notification_read(
    notification_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    notification = notifications_of(db, actor).filter(Notification.id == notification_id).first()
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")

    notification.is_read = True
    db.commit()
    return {"message": "Notification marked as read"}


@router.post("/read-all", response_model=MessageResponse)
async def mark_all_notifications_read(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    notifications_of(db, actor).filter(Notification.is_read.is_(False)).update(
        {Notification.is_read: True}, synchronize_session=False
    )
    db.commit()
    return {"message": "All notifications marked as read"}
