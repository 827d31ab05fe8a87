"""Course catalogue, authoring and the approval workflow.

New courses wait in `pending` until an admin approves or rejects them.
Approval publishes the course; rejection unpublishes it and stores the
reason, after which the instructor may edit and resubmit.
"""

import logging
from typing import Optional

from sqlmodel import Session

from .. import models, repositories
from ..errors import BadRequestError, NotFoundError
from ..outbox import Outbox
from ..policy import Relation, authorize, evaluate, require_role
from ..schemas import CourseIn, CourseUpdateIn
from .common import get_or_404, paginate

logger = logging.getLogger("lms.courses")


class CourseService:
    def __init__(self, session: Session):
        self.session = session
        self.course_repo = repositories.CourseRepository(session)

    def _get(self, course_id: int) -> models.Course:
        return get_or_404(self.course_repo, course_id, "Course")

    # --- reads -----------------------------------------------------------------

    def catalog(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        level: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> dict:
        courses, total = self.course_repo.list_catalog(
            search=search, category=category, level=level, limit=limit, offset=(page - 1) * limit
        )
        return {"courses": courses, "pagination": paginate(page, limit, total)}

    def featured(self, limit: int = 6) -> list:
        return self.course_repo.list_featured(limit)

    def by_status(self, requester: models.User, status: str) -> list:
        authorize(requester, None, Relation.ADMIN, message=f"Only admins can view {status} courses")
        return self.course_repo.list_by_status(status)

    def instructor_courses(self, requester: models.User) -> list:
        require_role(requester, ("instructor", "admin"))
        return self.course_repo.list_by_instructor(requester.id)

    def enrolled_courses(self, requester: models.User) -> list:
        return self.course_repo.list_enrolled(requester.id)

    def detail(self, course_id: int, requester: Optional[models.User] = None) -> dict:
        """Course with instructor, counts and its module/lesson outline.

        Courses that are not live are only visible to their staff.
        """
        data = self.course_repo.get_with_details(course_id)
        if data is None:
            raise NotFoundError("Course not found")
        live = data["is_published"] and data["is_approved"]
        if not live and not evaluate(requester, data["instructor_id"], Relation.COURSE_STAFF):
            raise NotFoundError("Course not found")
        lesson_repo = repositories.LessonRepository(self.session)
        outline = []
        for module in repositories.ModuleRepository(self.session).list_by_course(course_id):
            entry = module.model_dump()
            entry["lessons"] = [
                {
                    "id": lesson.id,
                    "title": lesson.title,
                    "content_type": lesson.content_type,
                    "duration": lesson.duration,
                    "is_free": lesson.is_free,
                    "order_index": lesson.order_index,
                }
                for lesson in lesson_repo.list_by_module(module.id)
            ]
            outline.append(entry)
        data["modules"] = outline
        return data

    # --- authoring -------------------------------------------------------------

    def create(self, requester: models.User, data: CourseIn) -> models.Course:
        require_role(requester, ("instructor", "admin"), "Only instructors can create courses")
        course = self.course_repo.create(models.Course(
            **data.model_dump(),
            instructor_id=requester.id,
            status="pending",
            is_published=False,
            is_approved=False,
        ))
        Outbox.notify(
            self.session,
            type="course_submitted",
            title="New course awaiting approval",
            message=f'"{course.title}" was submitted by {requester.name} and needs review.',
            role="admin",
            related_id=course.id,
        )
        logger.info("course %s created by user %s", course.id, requester.id)
        return course

    def update(self, requester: models.User, course_id: int, data: CourseUpdateIn) -> models.Course:
        course = self._get(course_id)
        authorize(requester, course.instructor_id, message="You can only update your own courses")
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise BadRequestError("No fields to update")
        return self.course_repo.update(course_id, changes)

    def delete(self, requester: models.User, course_id: int) -> dict:
        course = self._get(course_id)
        authorize(requester, course.instructor_id, message="You can only delete your own courses")
        snapshot = self.course_repo.delete(course_id)
        logger.info("course %s deleted by user %s", course_id, requester.id)
        return snapshot

    def set_published(self, requester: models.User, course_id: int, published: bool) -> models.Course:
        course = self._get(course_id)
        verb = "publish" if published else "unpublish"
        authorize(requester, course.instructor_id, message=f"You can only {verb} your own courses")
        if published and not course.is_approved:
            raise BadRequestError("Course must be approved before it can be published")
        return self.course_repo.update(course_id, {"is_published": published})

    # --- approval workflow -----------------------------------------------------

    def review(self, requester: models.User, course_id: int, action: str, rejection_reason: Optional[str] = None) -> models.Course:
        """Approve or reject a pending course and tell the instructor."""
        authorize(requester, None, Relation.ADMIN, message="Only admins can approve courses")
        course = self._get(course_id)
        if course.status != "pending":
            raise BadRequestError(f"Only pending courses can be reviewed (current status: {course.status})")
        if action == "approve":
            course = self.course_repo.update(course_id, {
                "status": "approved",
                "is_approved": True,
                "is_published": True,
                "rejection_reason": None,
            })
            title = "Course approved"
            message = f'Your course "{course.title}" has been approved and published.'
            template = "course-approved"
        else:
            reason = (rejection_reason or "").strip()
            if not reason:
                raise BadRequestError("Rejection reason is required")
            course = self.course_repo.update(course_id, {
                "status": "rejected",
                "is_approved": False,
                "is_published": False,
                "rejection_reason": reason,
            })
            title = "Course rejected"
            message = f'Your course "{course.title}" was rejected: {reason}'
            template = "course-rejected"
        Outbox.notify(
            self.session,
            type=f"course_{course.status}",
            title=title,
            message=message,
            user_id=course.instructor_id,
            related_id=course.id,
        )
        instructor = repositories.UserRepository(self.session).get(course.instructor_id)
        if instructor is not None:
            Outbox.email(self.session, instructor.email, template, {
                "name": instructor.name,
                "course_title": course.title,
                "reason": course.rejection_reason or "",
            })
        logger.info("course %s %s by admin %s", course_id, course.status, requester.id)
        return course

    def resubmit(self, requester: models.User, course_id: int) -> models.Course:
        course = self._get(course_id)
        authorize(requester, course.instructor_id, message="You can only resubmit your own courses")
        if course.status != "rejected":
            raise BadRequestError("Only rejected courses can be resubmitted")
        course = self.course_repo.update(course_id, {"status": "pending", "rejection_reason": None})
        Outbox.notify(
            self.session,
            type="course_submitted",
            title="Course resubmitted for approval",
            message=f'"{course.title}" was resubmitted and needs review.',
            role="admin",
            related_id=course.id,
        )
        return course

    # --- instructor tools ------------------------------------------------------

    def analytics(self, requester: models.User, course_id: int) -> dict:
        course = self._get(course_id)
        authorize(requester, course.instructor_id, message="You can only view analytics for your own courses")
        enrollment_repo = repositories.EnrollmentRepository(self.session)
        quizzes = repositories.QuizRepository(self.session).list_by_course(course_id)
        attempt_repo = repositories.QuizAttemptRepository(self.session)
        attempts = [row for q in quizzes for row in attempt_repo.scores_for_quiz(q["id"])]
        return {
            "course_id": course_id,
            "title": course.title,
            "enrollments": enrollment_repo.statistics(course_id=course_id),
            "lesson_count": repositories.LessonRepository(self.session).count_by_course(course_id),
            "review_count": repositories.ReviewRepository(self.session).count_by_course(course_id),
            "quiz_count": len(quizzes),
            "quiz_attempts": len(attempts),
            "quiz_pass_rate": round(sum(1 for a in attempts if a[2]) / len(attempts) * 100, 2) if attempts else 0.0,
            "pending_submissions": len(repositories.SubmissionRepository(self.session).pending_for_course(course_id)),
        }
