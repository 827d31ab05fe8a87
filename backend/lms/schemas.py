"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
router handlers and tests.
"""

import re
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$")
_PASSWORD_MSG = (
    "Password must contain at least one uppercase letter, one lowercase letter, "
    "one digit, and one special character."
)


def _check_password(value: str, min_length: int = 8) -> str:
    if len(value) < min_length:
        raise ValueError(f"Password must be at least {min_length} characters")
    if not _PASSWORD_RE.match(value):
        raise ValueError(_PASSWORD_MSG)
    return value


# --- auth / users ---------------------------------------------------------

class RegisterIn(BaseModel):
    """Payload for the registration endpoint."""
    name: str = Field(min_length=3, max_length=255)
    email: EmailStr
    password: str
    role: Literal["student", "instructor", "admin"] = "student"

    @field_validator("password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        return _check_password(v)


class AdminRegisterIn(BaseModel):
    name: str = Field(min_length=3, max_length=255)
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        return _check_password(v, min_length=10)


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class RefreshIn(BaseModel):
    refresh_token: str


class ChangePasswordIn(BaseModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def strong_password(cls, v: str) -> str:
        return _check_password(v)


class ProfileUpdateIn(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=255)
    email: Optional[EmailStr] = None
    avatar: Optional[str] = None


class RoleUpdateIn(BaseModel):
    role: Literal["student", "instructor"]


# --- courses / modules / lessons -------------------------------------------

Level = Literal["beginner", "intermediate", "advanced", "all"]
Category = Literal["programming", "design", "business", "marketing", "data-science", "other"]


class CourseIn(BaseModel):
    title: str = Field(min_length=5, max_length=100)
    description: str = Field(min_length=20, max_length=5000)
    short_description: Optional[str] = None
    category: Category
    level: Level
    language: str = "English"
    duration: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    learning_outcomes: List[str] = Field(default_factory=list)
    thumbnail_url: Optional[str] = None

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class CourseUpdateIn(BaseModel):
    title: Optional[str] = Field(default=None, min_length=5, max_length=100)
    description: Optional[str] = Field(default=None, min_length=20, max_length=5000)
    short_description: Optional[str] = None
    category: Optional[Category] = None
    level: Optional[Level] = None
    language: Optional[str] = None
    duration: Optional[str] = None
    tags: Optional[List[str]] = None
    requirements: Optional[List[str]] = None
    learning_outcomes: Optional[List[str]] = None
    thumbnail_url: Optional[str] = None


class ApprovalIn(BaseModel):
    action: Literal["approve", "reject"]
    rejection_reason: Optional[str] = None


class AnnouncementIn(BaseModel):
    title: str = Field(min_length=5, max_length=100)
    message: str = Field(min_length=10, max_length=1000)


class ModuleIn(BaseModel):
    course_id: int
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    order_index: Optional[int] = Field(default=None, ge=0)


class ModuleUpdateIn(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None


class ReorderIn(BaseModel):
    """Move one item to `order_index`; siblings shift to make room."""
    item_id: int
    order_index: int = Field(ge=0)


class LessonIn(BaseModel):
    module_id: int
    title: str = Field(min_length=1, max_length=255)
    content_type: Literal["text", "video"] = "text"
    content: Optional[str] = None
    video_url: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)
    is_free: bool = False
    order_index: Optional[int] = Field(default=None, ge=0)


class LessonUpdateIn(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content_type: Optional[Literal["text", "video"]] = None
    content: Optional[str] = None
    video_url: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)
    is_free: Optional[bool] = None


# --- quizzes ----------------------------------------------------------------

class OptionIn(BaseModel):
    option_text: str = Field(min_length=1)
    is_correct: bool = False


class OptionUpdateIn(BaseModel):
    option_text: Optional[str] = Field(default=None, min_length=1)
    is_correct: Optional[bool] = None


class QuestionIn(BaseModel):
    question_text: str = Field(min_length=1)
    question_type: Literal["multiple_choice", "true_false"] = "multiple_choice"
    points: int = Field(default=1, ge=0)
    options: List[OptionIn] = Field(default_factory=list)


class QuestionUpdateIn(BaseModel):
    question_text: Optional[str] = Field(default=None, min_length=1)
    question_type: Optional[Literal["multiple_choice", "true_false"]] = None
    points: Optional[int] = Field(default=None, ge=0)


class QuizIn(BaseModel):
    lesson_id: int
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    time_limit: Optional[int] = Field(default=None, ge=1)
    passing_score: float = Field(default=70, ge=0, le=100)
    is_published: bool = False


class QuizUpdateIn(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    time_limit: Optional[int] = Field(default=None, ge=1)
    passing_score: Optional[float] = Field(default=None, ge=0, le=100)


class QuizAnswerIn(BaseModel):
    question_id: int
    selected_options: List[int] = Field(default_factory=list)


class QuizAttemptIn(BaseModel):
    """Ordered answers for a quiz attempt."""
    answers: List[QuizAnswerIn]
    time_taken: Optional[int] = Field(default=None, ge=0)


# --- assignments ------------------------------------------------------------

class AssignmentIn(BaseModel):
    lesson_id: int
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    due_date: Optional[datetime] = None
    max_score: float = Field(default=100, gt=0)
    submission_type: Literal["text", "file", "both"] = "text"
    is_published: bool = False


class AssignmentUpdateIn(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    due_date: Optional[datetime] = None
    max_score: Optional[float] = Field(default=None, gt=0)
    submission_type: Optional[Literal["text", "file", "both"]] = None


class SubmissionIn(BaseModel):
    content: Optional[str] = None
    file_url: Optional[str] = None


class GradeIn(BaseModel):
    grade: float
    feedback: Optional[str] = None


# --- enrollments / notifications / reviews ----------------------------------

class EnrollmentIn(BaseModel):
    course_id: int


class ProgressIn(BaseModel):
    progress: int = Field(ge=0, le=100)


class SystemNotificationIn(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    role: Optional[Literal["student", "instructor", "admin"]] = None


class ReviewIn(BaseModel):
    review_text: str = Field(min_length=1, max_length=5000)
