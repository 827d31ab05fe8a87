"""Business logic, one service class per resource.

Services take the request's `Session`, authorize through `lms.policy`,
raise `lms.errors` exceptions and queue secondary effects on the outbox.
"""

from .assignments import AssignmentService
from .auth import AuthService
from .content import LessonService, ModuleService
from .courses import CourseService
from .enrollments import EnrollmentService
from .instructor import InstructorService
from .notifications import NotificationService
from .quizzes import QuizService
from .reviews import ReviewService
from .users import UserService

__all__ = [
    "AssignmentService",
    "AuthService",
    "CourseService",
    "EnrollmentService",
    "InstructorService",
    "LessonService",
    "ModuleService",
    "NotificationService",
    "QuizService",
    "ReviewService",
    "UserService",
]
