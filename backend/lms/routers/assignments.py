"""Assignment and submission endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from .. import models
from ..auth import get_current_user, get_optional_user
from ..database import get_session
from ..responses import ok
from ..schemas import AssignmentIn, AssignmentUpdateIn, GradeIn, SubmissionIn
from ..services import AssignmentService

router = APIRouter(prefix="/api/assignments", tags=["assignments"])


@router.get("")
def my_assignments(
    course_id: Optional[int] = None,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(AssignmentService(db).mine(user, course_id), "Assignments retrieved successfully")


@router.get("/due-soon")
def due_soon(
    days: int = Query(7, ge=1, le=365),
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(AssignmentService(db).due_soon(user, days), "Upcoming assignments retrieved successfully")


@router.get("/overdue")
def overdue(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(AssignmentService(db).overdue(user), "Overdue assignments retrieved successfully")


@router.get("/lesson/{lesson_id}")
def lesson_assignments(lesson_id: int, db: Session = Depends(get_session), user: Optional[models.User] = Depends(get_optional_user)):
    return ok(AssignmentService(db).list_for_lesson(lesson_id, user), "Assignments retrieved successfully")


@router.get("/course/{course_id}")
def course_assignments(course_id: int, db: Session = Depends(get_session), user: Optional[models.User] = Depends(get_optional_user)):
    return ok(AssignmentService(db).list_for_course(course_id, user), "Assignments retrieved successfully")


@router.get("/course/{course_id}/pending-submissions")
def pending_submissions(course_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    data = AssignmentService(db).pending_for_course(user, course_id)
    return ok(data, "Pending submissions retrieved successfully")


@router.put("/submissions/{submission_id}/grade")
def grade_submission(
    submission_id: int,
    payload: GradeIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(AssignmentService(db).grade(user, submission_id, payload), "Submission graded successfully")


@router.get("/submissions/user/{user_id}")
def user_submissions(
    user_id: int,
    course_id: Optional[int] = None,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    data = AssignmentService(db).submissions_for_user(user, user_id, course_id)
    return ok(data, "Submissions retrieved successfully")


@router.post("", status_code=201)
def create_assignment(payload: AssignmentIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(AssignmentService(db).create(user, payload), "Assignment created successfully")


@router.get("/{assignment_id}")
def get_assignment(assignment_id: int, db: Session = Depends(get_session), user: Optional[models.User] = Depends(get_optional_user)):
    return ok(AssignmentService(db).get(assignment_id, user), "Assignment retrieved successfully")


@router.put("/{assignment_id}")
def update_assignment(
    assignment_id: int,
    payload: AssignmentUpdateIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(AssignmentService(db).update(user, assignment_id, payload), "Assignment updated successfully")


@router.delete("/{assignment_id}")
def delete_assignment(assignment_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(AssignmentService(db).delete(user, assignment_id), "Assignment deleted successfully")


@router.put("/{assignment_id}/publish")
def publish_assignment(assignment_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(AssignmentService(db).set_published(user, assignment_id, True), "Assignment published successfully")


@router.put("/{assignment_id}/unpublish")
def unpublish_assignment(assignment_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(AssignmentService(db).set_published(user, assignment_id, False), "Assignment unpublished successfully")


@router.post("/{assignment_id}/submit", status_code=201)
def submit_assignment(
    assignment_id: int,
    payload: SubmissionIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    result = AssignmentService(db).submit(user, assignment_id, payload)
    message = "Assignment submitted successfully" if result["is_new"] else "Submission updated successfully"
    return ok(result["submission"], message)


@router.get("/{assignment_id}/submissions")
def assignment_submissions(assignment_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    data = AssignmentService(db).submissions_for_assignment(user, assignment_id)
    return ok(data, "Submissions retrieved successfully")


@router.get("/{assignment_id}/statistics")
def assignment_statistics(assignment_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(AssignmentService(db).statistics(user, assignment_id), "Assignment statistics retrieved successfully")
