"""HTTP routes, one `APIRouter` per resource under `/api`."""

from . import (
    assignments,
    auth,
    courses,
    enrollments,
    files,
    instructor,
    lessons,
    modules,
    notifications,
    quizzes,
    reviews,
    users,
)

ROUTERS = [
    auth.router,
    users.router,
    courses.router,
    modules.router,
    lessons.router,
    enrollments.router,
    quizzes.router,
    assignments.router,
    notifications.router,
    reviews.router,
    instructor.router,
    files.router,
]
