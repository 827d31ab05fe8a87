"""Assignments, submissions and grading."""

import logging
from typing import List, Optional

from sqlmodel import Session

from .. import models, repositories
from ..errors import BadRequestError, ForbiddenError
from ..grading import summarize_scores
from ..models import as_utc, utcnow
from ..outbox import Outbox
from ..policy import Relation, authorize, evaluate
from ..schemas import AssignmentIn, AssignmentUpdateIn, GradeIn, SubmissionIn
from .common import course_for_assignment, course_for_lesson, get_or_404, require_enrollment

logger = logging.getLogger("lms.assignments")


class AssignmentService:
    def __init__(self, session: Session):
        self.session = session
        self.assignment_repo = repositories.AssignmentRepository(session)
        self.submission_repo = repositories.SubmissionRepository(session)
        self.lesson_repo = repositories.LessonRepository(session)

    def _assignment_and_course(self, assignment_id: int):
        assignment = get_or_404(self.assignment_repo, assignment_id, "Assignment")
        return assignment, course_for_assignment(self.session, assignment)

    # --- reads -----------------------------------------------------------------

    def mine(self, requester: models.User, course_id: Optional[int] = None) -> List[dict]:
        """Assignments relevant to the requester's role."""
        if requester.role == "admin":
            rows = self.assignment_repo.list_authored()
        elif requester.role == "instructor":
            rows = self.assignment_repo.list_authored(requester.id)
        else:
            rows = self.assignment_repo.list_for_user(requester.id)
        if course_id is not None:
            rows = [r for r in rows if r["course_id"] == course_id]
        return rows

    def due_soon(self, requester: models.User, days: int = 7) -> List[dict]:
        return self.assignment_repo.due_soon(requester.id, utcnow(), days)

    def overdue(self, requester: models.User) -> List[dict]:
        return self.assignment_repo.overdue(requester.id, utcnow())

    def get(self, assignment_id: int, requester: Optional[models.User] = None) -> dict:
        assignment, course = self._assignment_and_course(assignment_id)
        staff = evaluate(requester, course.instructor_id)
        if not assignment.is_published and not staff:
            raise ForbiddenError("This assignment is not available")
        data = assignment.model_dump()
        data["course_id"] = course.id
        data["my_submission"] = (
            self.submission_repo.get_for(assignment_id, requester.id) if requester is not None else None
        )
        return data

    def list_for_lesson(self, lesson_id: int, requester: Optional[models.User] = None) -> List[models.Assignment]:
        lesson = get_or_404(self.lesson_repo, lesson_id, "Lesson")
        course = course_for_lesson(self.session, lesson)
        return self.assignment_repo.list_by_lesson(lesson_id, published_only=not evaluate(requester, course.instructor_id))

    def list_for_course(self, course_id: int, requester: Optional[models.User] = None) -> List[dict]:
        course = get_or_404(repositories.CourseRepository(self.session), course_id, "Course")
        return self.assignment_repo.list_by_course(course_id, published_only=not evaluate(requester, course.instructor_id))

    # --- authoring -------------------------------------------------------------

    def create(self, requester: models.User, data: AssignmentIn) -> models.Assignment:
        lesson = get_or_404(self.lesson_repo, data.lesson_id, "Lesson")
        course = course_for_lesson(self.session, lesson)
        authorize(requester, course.instructor_id, message="Not authorized to add assignments to this lesson")
        fields = data.model_dump()
        fields["due_date"] = as_utc(data.due_date)
        return self.assignment_repo.create(models.Assignment(**fields))

    def update(self, requester: models.User, assignment_id: int, data: AssignmentUpdateIn) -> models.Assignment:
        assignment, course = self._assignment_and_course(assignment_id)
        authorize(requester, course.instructor_id, message="Not authorized to update this assignment")
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise BadRequestError("No fields to update")
        if "due_date" in changes:
            changes["due_date"] = as_utc(changes["due_date"])
        assignment = self.assignment_repo.update(assignment_id, changes)
        if assignment.is_published and "due_date" in changes:
            Outbox.notify(
                self.session,
                type="assignment_updated",
                title="Assignment updated",
                message=f'The due date for "{assignment.title}" changed.',
                course_id=course.id,
                related_id=assignment.id,
                exclude_user_id=requester.id,
            )
        return assignment

    def delete(self, requester: models.User, assignment_id: int) -> dict:
        assignment, course = self._assignment_and_course(assignment_id)
        authorize(requester, course.instructor_id, message="Not authorized to delete this assignment")
        return self.assignment_repo.delete(assignment_id)

    def set_published(self, requester: models.User, assignment_id: int, published: bool) -> models.Assignment:
        assignment, course = self._assignment_and_course(assignment_id)
        verb = "publish" if published else "unpublish"
        authorize(requester, course.instructor_id, message=f"Not authorized to {verb} this assignment")
        was_published = assignment.is_published
        assignment = self.assignment_repo.update(assignment_id, {"is_published": published})
        if published and not was_published:
            Outbox.notify(
                self.session,
                type="new_assignment",
                title="New assignment",
                message=f'A new assignment "{assignment.title}" was posted in "{course.title}".',
                course_id=course.id,
                related_id=assignment.id,
                exclude_user_id=requester.id,
            )
        return assignment

    # --- submissions -----------------------------------------------------------

    def submit(self, requester: models.User, assignment_id: int, data: SubmissionIn) -> dict:
        """Create or overwrite the requester's submission.

        Lateness is judged against the moment of this submission, and the
        instructor is only told about the first one.
        """
        assignment, course = self._assignment_and_course(assignment_id)
        if not assignment.is_published:
            raise ForbiddenError("This assignment is not available for submission")
        require_enrollment(self.session, requester.id, course.id,
                           "You must be enrolled in this course to submit assignments")
        content = (data.content or "").strip() or None
        if assignment.submission_type == "text" and not content:
            raise BadRequestError("Content is required for text submissions")
        if assignment.submission_type == "file" and not data.file_url:
            raise BadRequestError("File URL is required for file submissions")
        if assignment.submission_type == "both" and not (content or data.file_url):
            raise BadRequestError("Content or a file URL is required")
        due = as_utc(assignment.due_date)
        is_late = due is not None and utcnow() > due
        submission, is_new = self.submission_repo.upsert(assignment_id, requester.id, {
            "submission_text": content,
            "file_url": data.file_url,
            "is_late": is_late,
        })
        if is_new:
            Outbox.notify(
                self.session,
                type="assignment_submitted",
                title="New Assignment Submission",
                message=f"{requester.name} has submitted the assignment: {assignment.title}",
                user_id=course.instructor_id,
                related_id=assignment_id,
            )
        return {"submission": submission, "is_new": is_new}

    def grade(self, requester: models.User, submission_id: int, data: GradeIn) -> models.AssignmentSubmission:
        submission = get_or_404(self.submission_repo, submission_id, "Submission")
        assignment, course = self._assignment_and_course(submission.assignment_id)
        authorize(requester, course.instructor_id, message="Not authorized to grade this submission")
        if data.grade < 0 or data.grade > assignment.max_score:
            raise BadRequestError(f"Grade must be between 0 and {assignment.max_score:g}")
        submission = self.submission_repo.update(submission_id, {
            "score": data.grade,
            "feedback": data.feedback,
            "status": "graded",
            "graded_by": requester.id,
            "graded_at": utcnow(),
        })
        Outbox.notify(
            self.session,
            type="assignment_graded",
            title="Assignment graded",
            message=f'Your submission for "{assignment.title}" was graded: {data.grade:g}/{assignment.max_score:g}',
            user_id=submission.user_id,
            related_id=assignment.id,
        )
        student = repositories.UserRepository(self.session).get(submission.user_id)
        if student is not None:
            Outbox.email(self.session, student.email, "assignment-graded", {
                "name": student.name,
                "assignment_title": assignment.title,
                "score": f"{data.grade:g}",
                "max_score": f"{assignment.max_score:g}",
            })
        return submission

    def submissions_for_assignment(self, requester: models.User, assignment_id: int) -> List[dict]:
        assignment, course = self._assignment_and_course(assignment_id)
        authorize(requester, course.instructor_id, message="Not authorized to view submissions for this assignment")
        return self.submission_repo.list_by_assignment(assignment_id)

    def submissions_for_user(self, requester: models.User, user_id: int, course_id: Optional[int] = None) -> List[dict]:
        authorize(requester, None, Relation.SELF, subject_id=user_id,
                  message="Not authorized to view these submissions")
        return self.submission_repo.list_by_user(user_id, course_id)

    def pending_for_course(self, requester: models.User, course_id: int) -> List[dict]:
        course = get_or_404(repositories.CourseRepository(self.session), course_id, "Course")
        authorize(requester, course.instructor_id,
                  message="Not authorized to view pending submissions for this course")
        return self.submission_repo.pending_for_course(course_id)

    def statistics(self, requester: models.User, assignment_id: int) -> dict:
        assignment, course = self._assignment_and_course(assignment_id)
        authorize(requester, course.instructor_id, message="Not authorized to view statistics for this assignment")
        submissions = self.submission_repo.for_assignment(assignment_id)
        graded = [s.score for s in submissions if s.status == "graded" and s.score is not None]
        summary = summarize_scores(graded)
        status_counts: dict = {}
        for s in submissions:
            status_counts[s.status] = status_counts.get(s.status, 0) + 1
        return {
            "assignment_id": assignment_id,
            "total_submissions": len(submissions),
            "unique_users": len({s.user_id for s in submissions}),
            "late_submissions": sum(1 for s in submissions if s.is_late),
            "average_score": summary["average"],
            "highest_score": summary["highest"],
            "lowest_score": summary["lowest"],
            "status_counts": status_counts,
        }
