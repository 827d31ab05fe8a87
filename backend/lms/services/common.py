"""Lookup helpers shared by the service classes."""

from typing import Optional

from sqlmodel import Session

from .. import models, repositories
from ..errors import ForbiddenError, NotFoundError

USER_FIELDS = ("id", "name", "email", "role", "avatar", "is_verified", "created_at")


def public_user(user: models.User) -> dict:
    """User fields that are safe to return to clients."""
    return {f: getattr(user, f) for f in USER_FIELDS}


def get_or_404(repo, obj_id: int, label: str):
    obj = repo.get(obj_id)
    if obj is None:
        raise NotFoundError(f"{label} not found")
    return obj


def course_for_module(session: Session, module: models.Module) -> models.Course:
    return get_or_404(repositories.CourseRepository(session), module.course_id, "Course")


def course_for_lesson(session: Session, lesson: models.Lesson) -> models.Course:
    module = get_or_404(repositories.ModuleRepository(session), lesson.module_id, "Module")
    return course_for_module(session, module)


def course_for_quiz(session: Session, quiz: models.Quiz) -> models.Course:
    lesson = get_or_404(repositories.LessonRepository(session), quiz.lesson_id, "Lesson")
    return course_for_lesson(session, lesson)


def course_for_assignment(session: Session, assignment: models.Assignment) -> models.Course:
    lesson = get_or_404(repositories.LessonRepository(session), assignment.lesson_id, "Lesson")
    return course_for_lesson(session, lesson)


def active_enrollment(session: Session, user_id: int, course_id: int) -> Optional[models.Enrollment]:
    """The user's enrollment if it grants access (active or completed)."""
    enrollment = repositories.EnrollmentRepository(session).get_for(user_id, course_id)
    if enrollment is None or enrollment.status not in ("active", "completed"):
        return None
    return enrollment


def require_enrollment(session: Session, user_id: int, course_id: int, message: str) -> models.Enrollment:
    enrollment = active_enrollment(session, user_id, course_id)
    if enrollment is None:
        raise ForbiddenError(message)
    return enrollment


def is_live(course: models.Course) -> bool:
    return bool(course.is_published and course.is_approved)


def paginate(page: int, limit: int, total: int) -> dict:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": (total + limit - 1) // limit if limit else 0,
    }
