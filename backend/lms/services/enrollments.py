"""Enrollments and the lesson -> course -> enrollment progress cascade."""

import logging

from sqlmodel import Session

from .. import models, repositories
from ..errors import BadRequestError, NotFoundError
from ..grading import progress_percentage
from ..models import utcnow
from ..outbox import Outbox
from ..policy import Relation, authorize
from .common import course_for_lesson, get_or_404, is_live, require_enrollment

logger = logging.getLogger("lms.enrollments")


class EnrollmentService:
    def __init__(self, session: Session):
        self.session = session
        self.enrollment_repo = repositories.EnrollmentRepository(session)
        self.course_repo = repositories.CourseRepository(session)
        self.progress_repo = repositories.LessonProgressRepository(session)

    def _enrollment_and_course(self, enrollment_id: int):
        enrollment = get_or_404(self.enrollment_repo, enrollment_id, "Enrollment")
        course = get_or_404(self.course_repo, enrollment.course_id, "Course")
        return enrollment, course

    def enroll(self, requester: models.User, course_id: int) -> models.Enrollment:
        course = get_or_404(self.course_repo, course_id, "Course")
        if not course.is_published:
            raise BadRequestError("Cannot enroll in unpublished course")
        if not course.is_approved:
            raise BadRequestError("Cannot enroll in course that is not approved")
        if self.enrollment_repo.get_for(requester.id, course_id) is not None:
            raise BadRequestError("Already enrolled in this course")
        enrollment = self.enrollment_repo.create(models.Enrollment(user_id=requester.id, course_id=course_id))
        Outbox.notify(
            self.session,
            type="enrollment",
            title="Enrollment confirmed",
            message=f'You are now enrolled in "{course.title}".',
            user_id=requester.id,
            related_id=course_id,
        )
        Outbox.notify(
            self.session,
            type="new_enrollment",
            title="New student enrolled",
            message=f'{requester.name} enrolled in "{course.title}".',
            user_id=course.instructor_id,
            related_id=course_id,
        )
        return enrollment

    def my_enrollments(self, requester: models.User, page: int = 1, limit: int = 20) -> list:
        return self.enrollment_repo.list_by_user(requester.id, limit=limit, offset=(page - 1) * limit)

    def get(self, requester: models.User, enrollment_id: int) -> dict:
        enrollment, course = self._enrollment_and_course(enrollment_id)
        authorize(
            requester, course.instructor_id, Relation.SELF_OR_STAFF, subject_id=enrollment.user_id,
            message="Not authorized to view this enrollment",
        )
        return self.enrollment_repo.get_with_details(enrollment_id)

    def for_course(self, requester: models.User, course_id: int, page: int = 1, limit: int = 20) -> list:
        course = get_or_404(self.course_repo, course_id, "Course")
        authorize(requester, course.instructor_id, message="Not authorized to view enrollments for this course")
        return self.enrollment_repo.list_by_course(course_id, limit=limit, offset=(page - 1) * limit)

    def update_progress(self, requester: models.User, enrollment_id: int, progress: int) -> models.Enrollment:
        enrollment, _ = self._enrollment_and_course(enrollment_id)
        authorize(requester, None, Relation.SELF, subject_id=enrollment.user_id,
                  message="Not authorized to update this enrollment")
        changes = {"progress": progress}
        if progress >= 100 and enrollment.status != "completed":
            changes.update(status="completed", completed_at=utcnow())
        return self.enrollment_repo.update(enrollment_id, changes)

    def unenroll(self, requester: models.User, enrollment_id: int) -> dict:
        enrollment, _ = self._enrollment_and_course(enrollment_id)
        authorize(requester, None, Relation.SELF, subject_id=enrollment.user_id,
                  message="Not authorized to unenroll from this course")
        return self.enrollment_repo.delete(enrollment_id)

    def recent(self, requester: models.User, limit: int = 5) -> list:
        authorize(requester, None, Relation.ADMIN, message="Not authorized to view recent enrollments")
        return self.enrollment_repo.list_recent(limit)

    def statistics(self, requester: models.User) -> dict:
        authorize(requester, None, Relation.ADMIN, message="Not authorized to view enrollment statistics")
        return self.enrollment_repo.statistics()

    # --- progress cascade --------------------------------------------------------

    def record_lesson_completion(self, user_id: int, lesson: models.Lesson) -> dict:
        """Mark `lesson` complete for `user_id` and roll progress up to the enrollment.

        Re-completing a lesson is a no-op: the count, the stored progress
        and the enrollment status stay as they are, and no second
        completion notification is queued.
        """
        course = course_for_lesson(self.session, lesson)
        enrollment = require_enrollment(
            self.session, user_id, course.id, "You must be enrolled in this course to complete lessons"
        )
        row, newly_completed = self.progress_repo.mark_completed(user_id, lesson.id)
        completed = self.progress_repo.count_completed_in_course(user_id, course.id)
        total = repositories.LessonRepository(self.session).count_by_course(course.id)
        if newly_completed:
            progress = progress_percentage(completed, total)
            if progress >= 100:
                first_completion = enrollment.status != "completed"
                changes = {"progress": 100}
                if first_completion:
                    changes.update(status="completed", completed_at=utcnow())
                enrollment = self.enrollment_repo.update(enrollment.id, changes)
                if first_completion:
                    Outbox.notify(
                        self.session,
                        type="course_completed",
                        title="Course completed",
                        message=f'Congratulations! You completed "{course.title}".',
                        user_id=user_id,
                        related_id=course.id,
                    )
                    logger.info("user %s completed course %s", user_id, course.id)
            elif progress != enrollment.progress:
                enrollment = self.enrollment_repo.update(enrollment.id, {"progress": progress})
        return {
            "lesson_progress": row,
            "course_progress": {
                "enrollment_id": enrollment.id,
                "course_id": course.id,
                "completed_lessons": completed,
                "total_lessons": total,
                "progress": enrollment.progress,
                "status": enrollment.status,
                "completed_at": enrollment.completed_at,
            },
        }

    def complete_lesson(self, requester: models.User, lesson_id: int) -> dict:
        lesson = get_or_404(repositories.LessonRepository(self.session), lesson_id, "Lesson")
        course = course_for_lesson(self.session, lesson)
        if not is_live(course):
            raise BadRequestError("Course is not available")
        return self.record_lesson_completion(requester.id, lesson)

    def course_progress(self, requester: models.User, course_id: int) -> dict:
        enrollment = self.enrollment_repo.get_for(requester.id, course_id)
        if enrollment is None:
            raise NotFoundError("Not enrolled in this course")
        completed_ids = self.progress_repo.completed_lesson_ids(requester.id, course_id)
        return {
            "enrollment_id": enrollment.id,
            "course_id": course_id,
            "progress": enrollment.progress,
            "status": enrollment.status,
            "completed_at": enrollment.completed_at,
            "completed_lessons": len(completed_ids),
            "total_lessons": repositories.LessonRepository(self.session).count_by_course(course_id),
            "completed_lesson_ids": completed_ids,
        }
