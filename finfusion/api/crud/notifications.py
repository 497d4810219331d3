"""In-app notifications."""
from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from .. import models, schemas
from .common import apply_updates, get_owned, paginate, save


def notify(session: Session, user_id: str, title: str, message: str, kind: str = "INFO") -> models.Notification:
    notification = models.Notification(user_id=user_id, title=title, message=message, type=kind)
    session.add(notification)
    session.flush()
    return notification


def list_notifications(
    session: Session,
    user_id: str,
    *,
    is_read: Optional[bool] = None,
    kind: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[models.Notification], int]:
    stmt = select(models.Notification).where(models.Notification.user_id == user_id)
    if is_read is not None:
        stmt = stmt.where(models.Notification.is_read.is_(is_read))
    if kind is not None:
        stmt = stmt.where(models.Notification.type == kind)
    stmt = stmt.order_by(models.Notification.created_at.desc())
    return paginate(session, stmt, page, limit)


def get_notification(session: Session, user_id: str, notification_id: str) -> models.Notification:
    return get_owned(session, models.Notification, notification_id, user_id, "Notification")


def create_notification(
    session: Session, user_id: str, notification_in: schemas.NotificationCreate
) -> models.Notification:
    notification = models.Notification(user_id=user_id, **notification_in.model_dump())
    session.add(notification)
    return save(session, notification)


def update_notification(
    session: Session, user_id: str, notification_id: str, update_in: schemas.NotificationUpdate
) -> models.Notification:
    notification = get_notification(session, user_id, notification_id)
    apply_updates(notification, update_in)
    return save(session, notification)


def mark_read(session: Session, user_id: str, notification_id: str) -> models.Notification:
    notification = get_notification(session, user_id, notification_id)
    notification.is_read = True
    return save(session, notification)


def mark_all_read(session: Session, user_id: str) -> int:
    result = session.execute(
        update(models.Notification)
        .where(models.Notification.user_id == user_id, models.Notification.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session="fetch")
    )
    session.flush()
    return int(result.rowcount or 0)


def delete_notification(session: Session, user_id: str, notification_id: str) -> None:
    notification = get_notification(session, user_id, notification_id)
    session.delete(notification)
    session.flush()


def unread_count(session: Session, user_id: str) -> int:
    stmt = select(func.count(models.Notification.id)).where(
        models.Notification.user_id == user_id, models.Notification.is_read.is_(False)
    )
    return int(session.scalar(stmt) or 0)
