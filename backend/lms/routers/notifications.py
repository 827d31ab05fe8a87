"""Notification inbox and broadcast endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from .. import models
from ..auth import get_current_user
from ..database import get_session
from ..responses import ok
from ..schemas import AnnouncementIn, SystemNotificationIn
from ..services import NotificationService

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("")
def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = False,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    data = NotificationService(db).list(user, page, limit, unread_only)
    return ok(data, "Notifications retrieved successfully")


@router.get("/count")
def unread_count(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(NotificationService(db).count_unread(user), "Unread count retrieved successfully")


@router.put("/read-all")
def mark_all_read(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(NotificationService(db).mark_all_read(user), "All notifications marked as read")


@router.delete("/all")
def delete_all(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(NotificationService(db).delete_all(user), "All notifications deleted")


@router.post("/system", status_code=201)
def system_notification(
    payload: SystemNotificationIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    """Admin broadcast to one role, or to every active user when no role is given."""
    data = NotificationService(db).system(user, payload.title, payload.message, payload.role)
    return ok(data, "System notification created successfully")


@router.post("/course/{course_id}/announcement", status_code=201)
def course_announcement(
    course_id: int,
    payload: AnnouncementIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    data = NotificationService(db).course_announcement(user, course_id, payload.title, payload.message)
    return ok(data, "Course announcement created successfully")


@router.get("/{notification_id}")
def get_notification(notification_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(NotificationService(db).get(user, notification_id), "Notification retrieved successfully")


@router.put("/{notification_id}/read")
def mark_read(notification_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(NotificationService(db).mark_read(user, notification_id), "Notification marked as read")


@router.delete("/{notification_id}")
def delete_notification(notification_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(NotificationService(db).delete(user, notification_id), "Notification deleted successfully")
