"""In-app notifications: the user's inbox plus admin/instructor broadcasts."""

from typing import Optional

from sqlmodel import Session

from .. import models, repositories
from ..outbox import Outbox
from ..policy import Relation, authorize
from .common import get_or_404, paginate


class NotificationService:
    def __init__(self, session: Session):
        self.session = session
        self.notification_repo = repositories.NotificationRepository(session)

    def _owned(self, requester: models.User, notification_id: int, verb: str) -> models.Notification:
        notification = get_or_404(self.notification_repo, notification_id, "Notification")
        authorize(requester, None, Relation.SELF, subject_id=notification.user_id,
                  message=f"Not authorized to {verb} this notification")
        return notification

    def list(self, requester: models.User, page: int = 1, limit: int = 20, unread_only: bool = False) -> dict:
        rows = self.notification_repo.list_by_user(
            requester.id, limit=limit, offset=(page - 1) * limit, unread_only=unread_only
        )
        total = self.notification_repo._count(models.Notification.user_id == requester.id)
        return {
            "notifications": rows,
            "unread_count": self.notification_repo.count_unread(requester.id),
            "pagination": paginate(page, limit, total),
        }

    def count_unread(self, requester: models.User) -> dict:
        return {"count": self.notification_repo.count_unread(requester.id)}

    def get(self, requester: models.User, notification_id: int) -> models.Notification:
        return self._owned(requester, notification_id, "view")

    def mark_read(self, requester: models.User, notification_id: int) -> models.Notification:
        notification = self._owned(requester, notification_id, "update")
        if notification.is_read:
            return notification
        return self.notification_repo.update(notification_id, {"is_read": True})

    def mark_all_read(self, requester: models.User) -> dict:
        return {"updated": self.notification_repo.mark_all_read(requester.id)}

    def delete(self, requester: models.User, notification_id: int) -> dict:
        self._owned(requester, notification_id, "delete")
        return self.notification_repo.delete(notification_id)

    def delete_all(self, requester: models.User) -> dict:
        return {"deleted": self.notification_repo.delete_all_for_user(requester.id)}

    # --- broadcasts --------------------------------------------------------------

    def system(self, requester: models.User, title: str, message: str, role: Optional[str] = None) -> dict:
        """Queue a system notice for every user of `role`, or for everyone."""
        authorize(requester, None, Relation.ADMIN, message="Only administrators can create system notifications")
        event = Outbox.notify(
            self.session,
            type="system",
            title=title,
            message=message,
            role=role,
            broadcast=role is None,
        )
        return {"title": title, "message": message, "role": role, "event_id": event.id}

    def course_announcement(self, requester: models.User, course_id: int, title: str, message: str) -> dict:
        course = get_or_404(repositories.CourseRepository(self.session), course_id, "Course")
        authorize(requester, course.instructor_id,
                  message="Not authorized to create announcements for this course")
        event = Outbox.notify(
            self.session,
            type="announcement",
            title=title,
            message=message,
            course_id=course_id,
            related_id=course_id,
            exclude_user_id=requester.id,
        )
        return {"course_id": course_id, "title": title, "message": message, "event_id": event.id}
