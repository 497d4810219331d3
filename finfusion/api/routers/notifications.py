"""In-app notifications for the current user."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import crud, database, models, schemas
from ..auth import get_current_user
from ..responses import done, ok, paginated

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=schemas.Page[schemas.NotificationRead])
def list_notifications(
    is_read: Optional[bool] = None,
    kind: Optional[schemas.NotificationType] = Query(None, alias="type"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    items, total = crud.notifications.list_notifications(
        db, current_user.id, is_read=is_read, kind=kind, page=page, limit=limit
    )
    return paginated(items, page, limit, total)


@router.get("/unread-count", response_model=schemas.Envelope[schemas.UnreadCount])
def unread_count(current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)):
    return ok(schemas.UnreadCount(count=crud.notifications.unread_count(db, current_user.id)))


@router.put("/read-all", response_model=schemas.Envelope[schemas.BulkUpdateResult])
def mark_all_read(current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)):
    updated = crud.notifications.mark_all_read(db, current_user.id)
    return ok(schemas.BulkUpdateResult(updated=updated), "All notifications marked as read")


@router.post("", response_model=schemas.Envelope[schemas.NotificationRead], status_code=status.HTTP_201_CREATED)
def create_notification(
    notification_in: schemas.NotificationCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    return ok(crud.notifications.create_notification(db, current_user.id, notification_in), "Notification created")


@router.get("/{notification_id}", response_model=schemas.Envelope[schemas.NotificationRead])
def get_notification(
    notification_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    return ok(crud.notifications.get_notification(db, current_user.id, notification_id))


@router.put("/{notification_id}", response_model=schemas.Envelope[schemas.NotificationRead])
def update_notification(
    notification_id: str,
    update_in: schemas.NotificationUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
):
    notification = crud.notifications.update_notification(db, current_user.id, notification_id, update_in)
    return ok(notification, "Notification updated")


@router.put("/{notification_id}/read", response_model=schemas.Envelope[schemas.NotificationRead])
def mark_read(
    notification_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    return ok(crud.notifications.mark_read(db, current_user.id, notification_id), "Notification marked as read")


@router.delete("/{notification_id}", response_model=schemas.MessageResponse)
def delete_notification(
    notification_id: str, current_user: models.User = Depends(get_current_user), db: Session = Depends(database.get_db)
):
    crud.notifications.delete_notification(db, current_user.id, notification_id)
    return done("Notification deleted successfully")
