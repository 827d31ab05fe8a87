"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table; parent/child relationships cascade deletes
so removing a course removes its modules, lessons, quizzes and so on.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

USER_ROLES = ("student", "instructor", "admin")
COURSE_STATUSES = ("draft", "pending", "approved", "rejected")
COURSE_LEVELS = ("beginner", "intermediate", "advanced", "all")
COURSE_CATEGORIES = ("programming", "design", "business", "marketing", "data-science", "other")
CONTENT_TYPES = ("text", "video")
QUESTION_TYPES = ("multiple_choice", "true_false")
SUBMISSION_TYPES = ("text", "file", "both")
ENROLLMENT_STATUSES = ("active", "completed", "dropped")

_CASCADE = {"cascade": "all, delete-orphan"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return `value` as an aware UTC datetime.

    SQLite hands datetimes back without tzinfo; everything we store is
    UTC, so naive values are tagged rather than converted.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `email`: unique login identifier
    - `password_hash`: hashed password string; empty for OAuth-only users
    - `role`: one of student, instructor, admin
    - `is_active`: false once the account is (soft) deleted
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True, nullable=False, unique=True)
    password_hash: Optional[str] = None
    role: str = Field(default="student", index=True)
    oauth_provider: Optional[str] = None
    oauth_id: Optional[str] = Field(default=None, index=True)
    avatar: Optional[str] = None
    is_verified: bool = False
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Course(SQLModel, table=True):
    """A course authored by an instructor.

    New courses wait in `pending` until an admin approves or rejects
    them; `is_published` controls catalogue visibility.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: Optional[str] = None
    short_description: Optional[str] = None
    category: Optional[str] = Field(default=None, index=True)
    level: str = "beginner"
    language: str = "English"
    duration: Optional[str] = None
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    requirements: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    learning_outcomes: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    thumbnail_url: Optional[str] = None
    instructor_id: int = Field(foreign_key="user.id", index=True)
    status: str = Field(default="pending", index=True)
    is_published: bool = False
    is_approved: bool = False
    rejection_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    modules: List["Module"] = Relationship(back_populates="course", sa_relationship_kwargs=_CASCADE)
    enrollments: List["Enrollment"] = Relationship(back_populates="course", sa_relationship_kwargs=_CASCADE)
    reviews: List["Review"] = Relationship(back_populates="course", sa_relationship_kwargs=_CASCADE)


class Module(SQLModel, table=True):
    """Ordered top-level subdivision of a course."""
    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key="course.id", index=True)
    title: str
    description: Optional[str] = None
    order_index: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    course: Optional[Course] = Relationship(back_populates="modules")
    lessons: List["Lesson"] = Relationship(back_populates="module", sa_relationship_kwargs=_CASCADE)


class Lesson(SQLModel, table=True):
    """Ordered content unit within a module (text or video)."""
    id: Optional[int] = Field(default=None, primary_key=True)
    module_id: int = Field(foreign_key="module.id", index=True)
    title: str
    content_type: str = "text"
    content_text: Optional[str] = None
    content_url: Optional[str] = None
    duration: Optional[int] = None
    is_free: bool = False
    is_published: bool = True
    order_index: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    module: Optional[Module] = Relationship(back_populates="lessons")
    quizzes: List["Quiz"] = Relationship(back_populates="lesson", sa_relationship_kwargs=_CASCADE)
    assignments: List["Assignment"] = Relationship(back_populates="lesson", sa_relationship_kwargs=_CASCADE)
    progress: List["LessonProgress"] = Relationship(back_populates="lesson", sa_relationship_kwargs=_CASCADE)


class LessonProgress(SQLModel, table=True):
    """Per-user completion flag for a lesson."""
    __table_args__ = (UniqueConstraint("user_id", "lesson_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    lesson_id: int = Field(foreign_key="lesson.id", index=True)
    is_completed: bool = False
    completed_at: Optional[datetime] = None

    lesson: Optional[Lesson] = Relationship(back_populates="progress")


class Quiz(SQLModel, table=True):
    """A quiz attached to a lesson; `passing_score` is a percentage."""
    id: Optional[int] = Field(default=None, primary_key=True)
    lesson_id: int = Field(foreign_key="lesson.id", index=True)
    title: str
    description: Optional[str] = None
    time_limit: Optional[int] = None
    passing_score: float = 70
    is_published: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    lesson: Optional[Lesson] = Relationship(back_populates="quizzes")
    questions: List["QuizQuestion"] = Relationship(back_populates="quiz", sa_relationship_kwargs=_CASCADE)
    attempts: List["QuizAttempt"] = Relationship(back_populates="quiz", sa_relationship_kwargs=_CASCADE)


class QuizQuestion(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    quiz_id: int = Field(foreign_key="quiz.id", index=True)
    question_text: str
    question_type: str = "multiple_choice"
    points: int = 1
    order_index: int = 0

    quiz: Optional[Quiz] = Relationship(back_populates="questions")
    options: List["QuizOption"] = Relationship(back_populates="question", sa_relationship_kwargs=_CASCADE)


class QuizOption(SQLModel, table=True):
    """Possible answer for a `QuizQuestion`; `is_correct` marks the key."""
    id: Optional[int] = Field(default=None, primary_key=True)
    question_id: int = Field(foreign_key="quizquestion.id", index=True)
    option_text: str
    is_correct: bool = False

    question: Optional[QuizQuestion] = Relationship(back_populates="options")


class QuizAttempt(SQLModel, table=True):
    """One graded submission of answers to a quiz."""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    quiz_id: int = Field(foreign_key="quiz.id", index=True)
    score: float = 0.0
    earned_points: int = 0
    total_points: int = 0
    passed: bool = False
    time_taken: Optional[int] = None
    answers: List[dict] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow)

    quiz: Optional[Quiz] = Relationship(back_populates="attempts")


class Assignment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    lesson_id: int = Field(foreign_key="lesson.id", index=True)
    title: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    due_date: Optional[datetime] = None
    max_score: float = 100
    submission_type: str = "text"
    is_published: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    lesson: Optional[Lesson] = Relationship(back_populates="assignments")
    submissions: List["AssignmentSubmission"] = Relationship(
        back_populates="assignment", sa_relationship_kwargs=_CASCADE
    )


class AssignmentSubmission(SQLModel, table=True):
    """A user's delivered work; one row per (assignment, user)."""
    __table_args__ = (UniqueConstraint("assignment_id", "user_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    assignment_id: int = Field(foreign_key="assignment.id", index=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    submission_text: Optional[str] = None
    file_url: Optional[str] = None
    submitted_at: datetime = Field(default_factory=utcnow)
    is_late: bool = False
    status: str = "submitted"
    score: Optional[float] = None
    feedback: Optional[str] = None
    graded_by: Optional[int] = Field(default=None, foreign_key="user.id")
    graded_at: Optional[datetime] = None

    assignment: Optional[Assignment] = Relationship(back_populates="submissions")


class Enrollment(SQLModel, table=True):
    """A user taking a course; `progress` is a 0-100 percentage."""
    __table_args__ = (UniqueConstraint("user_id", "course_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    course_id: int = Field(foreign_key="course.id", index=True)
    progress: int = 0
    status: str = Field(default="active", index=True)
    enrolled_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    course: Optional[Course] = Relationship(back_populates="enrollments")


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    type: str
    title: str
    message: str
    related_id: Optional[int] = None
    is_read: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class Review(SQLModel, table=True):
    """Course review; deletion is soft so helpful marks survive."""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    course_id: int = Field(foreign_key="course.id", index=True)
    review_text: Optional[str] = None
    helpful_count: int = 0
    is_deleted: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    course: Optional[Course] = Relationship(back_populates="reviews")
    helpful_marks: List["ReviewHelpful"] = Relationship(back_populates="review", sa_relationship_kwargs=_CASCADE)


class ReviewHelpful(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("review_id", "user_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    review_id: int = Field(foreign_key="review.id", index=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)

    review: Optional[Review] = Relationship(back_populates="helpful_marks")


class OutboxEvent(SQLModel, table=True):
    """A queued secondary effect (notification fan-out or email)."""
    id: Optional[int] = Field(default=None, primary_key=True)
    kind: str = Field(index=True)
    payload: dict = Field(default_factory=dict, sa_column=Column(JSON))
    status: str = Field(default="pending", index=True)
    attempts: int = 0
    last_error: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    delivered_at: Optional[datetime] = None
