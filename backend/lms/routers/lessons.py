"""Lesson endpoints, including completion and per-course progress."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import models
from ..auth import get_current_user, get_optional_user
from ..database import get_session
from ..responses import ok
from ..schemas import LessonIn, LessonUpdateIn, ReorderIn
from ..services import EnrollmentService, LessonService

router = APIRouter(prefix="/api/lessons", tags=["lessons"])


@router.get("/module/{module_id}")
def module_lessons(module_id: int, db: Session = Depends(get_session), user: Optional[models.User] = Depends(get_optional_user)):
    return ok(LessonService(db).list_for_module(module_id, user), "Lessons retrieved successfully")


@router.put("/module/{module_id}/reorder")
def reorder_lessons(
    module_id: int,
    payload: ReorderIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    lessons = LessonService(db).reorder(user, module_id, payload.item_id, payload.order_index)
    return ok(lessons, "Lessons reordered successfully")


@router.get("/course/{course_id}")
def course_lessons(course_id: int, db: Session = Depends(get_session), user: Optional[models.User] = Depends(get_optional_user)):
    return ok(LessonService(db).list_for_course(course_id, user), "Lessons retrieved successfully")


@router.get("/course/{course_id}/progress")
def course_progress(course_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(EnrollmentService(db).course_progress(user, course_id), "Course progress retrieved successfully")


@router.post("", status_code=201)
def create_lesson(payload: LessonIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(LessonService(db).create(user, payload), "Lesson created successfully")


@router.get("/{lesson_id}")
def get_lesson(lesson_id: int, db: Session = Depends(get_session), user: Optional[models.User] = Depends(get_optional_user)):
    return ok(LessonService(db).get(lesson_id, user), "Lesson retrieved successfully")


@router.put("/{lesson_id}")
def update_lesson(
    lesson_id: int,
    payload: LessonUpdateIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(LessonService(db).update(user, lesson_id, payload), "Lesson updated successfully")


@router.delete("/{lesson_id}")
def delete_lesson(lesson_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(LessonService(db).delete(user, lesson_id), "Lesson deleted successfully")


@router.post("/{lesson_id}/complete")
def complete_lesson(lesson_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Mark the lesson complete and return the updated course progress."""
    return ok(EnrollmentService(db).complete_lesson(user, lesson_id), "Lesson marked as completed")
