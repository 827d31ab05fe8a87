"""Enrollment endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from .. import models
from ..auth import get_current_user
from ..database import get_session
from ..responses import ok
from ..schemas import EnrollmentIn, ProgressIn
from ..services import EnrollmentService

router = APIRouter(prefix="/api/enrollments", tags=["enrollments"])


@router.post("", status_code=201)
def enroll(payload: EnrollmentIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(EnrollmentService(db).enroll(user, payload.course_id), "Enrolled successfully")


@router.get("/user")
def my_enrollments(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(EnrollmentService(db).my_enrollments(user, page, limit), "Enrollments retrieved successfully")


@router.get("/recent")
def recent_enrollments(
    limit: int = Query(5, ge=1, le=100),
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(EnrollmentService(db).recent(user, limit), "Recent enrollments retrieved successfully")


@router.get("/stats")
def enrollment_stats(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(EnrollmentService(db).statistics(user), "Enrollment statistics retrieved successfully")


@router.get("/course/{course_id}")
def course_enrollments(
    course_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    data = EnrollmentService(db).for_course(user, course_id, page, limit)
    return ok(data, "Course enrollments retrieved successfully")


@router.get("/{enrollment_id}")
def get_enrollment(enrollment_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(EnrollmentService(db).get(user, enrollment_id), "Enrollment retrieved successfully")


@router.put("/{enrollment_id}/progress")
def update_progress(
    enrollment_id: int,
    payload: ProgressIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    data = EnrollmentService(db).update_progress(user, enrollment_id, payload.progress)
    return ok(data, "Progress updated successfully")


@router.delete("/{enrollment_id}")
def unenroll(enrollment_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(EnrollmentService(db).unenroll(user, enrollment_id), "Unenrolled successfully")
