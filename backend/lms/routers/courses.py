"""Course catalogue, authoring and approval endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from .. import models
from ..auth import get_current_user, get_optional_user
from ..database import get_session
from ..responses import ok
from ..schemas import AnnouncementIn, ApprovalIn, Category, CourseIn, CourseUpdateIn, Level
from ..services import CourseService, NotificationService

router = APIRouter(prefix="/api/courses", tags=["courses"])


@router.get("")
def list_courses(
    search: Optional[str] = None,
    category: Optional[Category] = None,
    level: Optional[Level] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_session),
):
    """Published, approved courses with optional search and filters."""
    data = CourseService(db).catalog(search=search, category=category, level=level, page=page, limit=limit)
    return ok(data, "Courses retrieved successfully")


@router.get("/approved")
def approved_courses(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_session),
):
    return ok(CourseService(db).catalog(page=page, limit=limit), "Approved courses retrieved successfully")


@router.get("/featured")
def featured_courses(limit: int = Query(6, ge=1, le=50), db: Session = Depends(get_session)):
    return ok(CourseService(db).featured(limit), "Featured courses retrieved successfully")


@router.get("/pending")
def pending_courses(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(CourseService(db).by_status(user, "pending"), "Pending courses retrieved successfully")


@router.get("/rejected")
def rejected_courses(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(CourseService(db).by_status(user, "rejected"), "Rejected courses retrieved successfully")


@router.get("/instructor/me")
def my_courses(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(CourseService(db).instructor_courses(user), "Instructor courses retrieved successfully")


@router.get("/enrolled")
def enrolled_courses(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(CourseService(db).enrolled_courses(user), "Enrolled courses retrieved successfully")


@router.post("", status_code=201)
def create_course(payload: CourseIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    course = CourseService(db).create(user, payload)
    return ok(course, "Course created successfully and submitted for approval")


@router.get("/{course_id}")
def get_course(course_id: int, db: Session = Depends(get_session), user: Optional[models.User] = Depends(get_optional_user)):
    return ok(CourseService(db).detail(course_id, user), "Course retrieved successfully")


@router.put("/{course_id}")
def update_course(
    course_id: int,
    payload: CourseUpdateIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(CourseService(db).update(user, course_id, payload), "Course updated successfully")


@router.delete("/{course_id}")
def delete_course(course_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(CourseService(db).delete(user, course_id), "Course deleted successfully")


@router.put("/{course_id}/publish")
def publish_course(course_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(CourseService(db).set_published(user, course_id, True), "Course published successfully")


@router.put("/{course_id}/unpublish")
def unpublish_course(course_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(CourseService(db).set_published(user, course_id, False), "Course unpublished successfully")


@router.put("/{course_id}/approve")
def review_course(
    course_id: int,
    payload: ApprovalIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    """Admin decision on a pending course: `approve` or `reject` with a reason."""
    course = CourseService(db).review(user, course_id, payload.action, payload.rejection_reason)
    return ok(course, f"Course {course.status} successfully")


@router.put("/{course_id}/resubmit")
def resubmit_course(course_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(CourseService(db).resubmit(user, course_id), "Course resubmitted for approval")


@router.get("/{course_id}/analytics")
def course_analytics(course_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(CourseService(db).analytics(user, course_id), "Course analytics retrieved successfully")


@router.post("/{course_id}/announcements", status_code=201)
def create_announcement(
    course_id: int,
    payload: AnnouncementIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    data = NotificationService(db).course_announcement(user, course_id, payload.title, payload.message)
    return ok(data, "Announcement created successfully")
