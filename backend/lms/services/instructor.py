"""Instructor dashboard: headline numbers, recent activity and a to-do list."""

from typing import List

from sqlmodel import Session

from .. import models, repositories
from ..policy import require_role

INSTRUCTOR_ROLES = ("instructor", "admin")


class InstructorService:
    def __init__(self, session: Session):
        self.session = session
        self.course_repo = repositories.CourseRepository(session)
        self.enrollment_repo = repositories.EnrollmentRepository(session)

    def analytics(self, requester: models.User) -> dict:
        require_role(requester, INSTRUCTOR_ROLES)
        stats = self.enrollment_repo.statistics(instructor_id=requester.id)
        total = stats["total_enrollments"]
        return {
            "total_courses": len(self.course_repo.list_by_instructor(requester.id)),
            "total_students": stats["unique_students"],
            "total_enrollments": total,
            "completion_rate": round(stats["completed"] / total * 100, 1) if total else 0.0,
            "average_progress": stats["average_progress"],
        }

    def activity(self, requester: models.User, limit: int = 20) -> List[dict]:
        require_role(requester, INSTRUCTOR_ROLES)
        return self.enrollment_repo.list_recent(limit, instructor_id=requester.id)

    def tasks(self, requester: models.User) -> List[dict]:
        """Open work items, oldest first within each kind."""
        require_role(requester, INSTRUCTOR_ROLES)
        tasks = [
            {
                "type": "grade_submission",
                "id": row["id"],
                "assignment_title": row["assignment_title"],
                "course_id": row["course_id"],
                "submitted_at": row["submitted_at"],
            }
            for row in repositories.SubmissionRepository(self.session).pending_for_instructor(requester.id)
        ]
        lesson_repo = repositories.LessonRepository(self.session)
        courses = sorted(self.course_repo.list_by_instructor(requester.id), key=lambda c: c.created_at)
        for course in courses:
            entry = {"id": course.id, "course_title": course.title, "created_at": course.created_at}
            if course.status == "rejected":
                tasks.append(dict(entry, type="resubmit_course", rejection_reason=course.rejection_reason))
            elif course.is_approved and not course.is_published:
                tasks.append(dict(entry, type="publish_course"))
            if lesson_repo.count_by_course(course.id) == 0:
                tasks.append(dict(entry, type="add_content"))
        return tasks
