"""Learning-management backend: courses, content, enrollments, quizzes,
assignments, reviews and notifications behind a FastAPI REST API.

`lms.main.create_app` builds the application; the modules below it hold
models, repositories, services and routes.
"""

__version__ = "1.0.0"
