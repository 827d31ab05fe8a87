"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate. The shared
surface is `create(obj)`, `get(id)`, `update(id, changes)` and
`delete(id)`; repositories return SQLModel objects (or plain dicts when a
join adds display fields such as `course_title` or `instructor_name`) and
commit where appropriate.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple, Type

from sqlalchemy import func, update
from sqlmodel import Session, SQLModel, col, select

from . import models
from .models import utcnow


class _Repository:
    """CRUD shared by every aggregate repository."""
    model: Type[SQLModel]

    def __init__(self, session: Session):
        self.session = session

    def create(self, obj):
        """Persist a new row and return the managed instance."""
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def get(self, obj_id: int):
        """Get a row by primary key, or `None`."""
        return self.session.get(self.model, obj_id)

    def update(self, obj_id: int, changes: Dict[str, Any]):
        """Apply `changes` to the row and return it, or `None` if missing."""
        obj = self.get(obj_id)
        if obj is None:
            return None
        for key, value in changes.items():
            setattr(obj, key, value)
        if hasattr(obj, "updated_at"):
            obj.updated_at = utcnow()
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def delete(self, obj_id: int) -> Optional[dict]:
        """Delete the row and return a snapshot of it, or `None` if missing."""
        obj = self.get(obj_id)
        if obj is None:
            return None
        snapshot = obj.model_dump()
        self.session.delete(obj)
        self.session.commit()
        return snapshot

    def _count(self, *where) -> int:
        stmt = select(func.count()).select_from(self.model)
        for clause in where:
            stmt = stmt.where(clause)
        return int(self.session.exec(stmt).one())


class _OrderedRepository(_Repository):
    """Rows ordered by `order_index`, unique within a parent.

    Insertions, deletions and moves shift sibling indexes inside one
    explicit transaction that is rolled back if any statement fails.
    """
    parent_field: str

    def _parent_col(self):
        return getattr(self.model, self.parent_field)

    def siblings(self, parent_id: int) -> list:
        stmt = (
            select(self.model)
            .where(self._parent_col() == parent_id)
            .order_by(col(self.model.order_index), col(self.model.id))
        )
        return list(self.session.exec(stmt).all())

    def next_index(self, parent_id: int) -> int:
        stmt = select(func.max(self.model.order_index)).where(self._parent_col() == parent_id)
        current = self.session.exec(stmt).one()
        return 0 if current is None else int(current) + 1

    def _shift(self, parent_id: int, delta: int, lower: Optional[int] = None, upper: Optional[int] = None) -> None:
        stmt = update(self.model).where(self._parent_col() == parent_id)
        if lower is not None:
            stmt = stmt.where(self.model.order_index >= lower)
        if upper is not None:
            stmt = stmt.where(self.model.order_index <= upper)
        stmt = stmt.values(order_index=self.model.order_index + delta, updated_at=utcnow())
        self.session.execute(stmt)

    def insert_at(self, obj, order_index: Optional[int] = None):
        """Insert `obj` at `order_index` (append when omitted or past the end)."""
        parent_id = getattr(obj, self.parent_field)
        end = self.next_index(parent_id)
        if order_index is None or order_index >= end:
            obj.order_index = end
            return self.create(obj)
        try:
            self._shift(parent_id, 1, lower=order_index)
            obj.order_index = order_index
            self.session.add(obj)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(obj)
        return obj

    def delete(self, obj_id: int) -> Optional[dict]:
        obj = self.get(obj_id)
        if obj is None:
            return None
        parent_id = getattr(obj, self.parent_field)
        removed_index = obj.order_index
        snapshot = obj.model_dump()
        try:
            self.session.delete(obj)
            self.session.flush()
            self._shift(parent_id, -1, lower=removed_index + 1)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return snapshot

    def move(self, obj_id: int, new_index: int):
        """Move a row to `new_index`, clamped to the sibling range."""
        obj = self.get(obj_id)
        if obj is None:
            return None
        parent_id = getattr(obj, self.parent_field)
        last = max(0, self.next_index(parent_id) - 1)
        new_index = max(0, min(new_index, last))
        old_index = obj.order_index
        if new_index == old_index:
            return obj
        try:
            if new_index > old_index:
                # moving down: pull the rows in between up by one
                self._shift(parent_id, -1, lower=old_index + 1, upper=new_index)
            else:
                self._shift(parent_id, 1, lower=new_index, upper=old_index - 1)
            self.session.execute(
                update(self.model)
                .where(self.model.id == obj_id)
                .values(order_index=new_index, updated_at=utcnow())
            )
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(obj)
        return obj


def _page(stmt, limit: int, offset: int):
    return stmt.limit(limit).offset(offset)


class UserRepository(_Repository):
    """CRUD operations for `User` objects."""
    model = models.User

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by email (case-insensitive) or `None`."""
        stmt = select(models.User).where(func.lower(models.User.email) == email.lower())
        return self.session.exec(stmt).first()

    def get_by_oauth(self, provider: str, oauth_id: str) -> Optional[models.User]:
        stmt = select(models.User).where(
            models.User.oauth_provider == provider,
            models.User.oauth_id == oauth_id,
        )
        return self.session.exec(stmt).first()

    def admin_exists(self) -> bool:
        return self._count(models.User.role == "admin") > 0

    def list_page(self, limit: int = 20, offset: int = 0) -> Tuple[List[models.User], int]:
        stmt = select(models.User).where(models.User.is_active == True).order_by(col(models.User.created_at).desc())  # noqa: E712
        rows = self.session.exec(_page(stmt, limit, offset)).all()
        return list(rows), self._count(models.User.is_active == True)  # noqa: E712

    def ids_by_role(self, role: Optional[str] = None) -> List[int]:
        """Active user ids, limited to `role` when given."""
        stmt = select(models.User.id).where(models.User.is_active == True)  # noqa: E712
        if role is not None:
            stmt = stmt.where(models.User.role == role)
        return list(self.session.exec(stmt).all())


class CourseRepository(_Repository):
    model = models.Course

    def _with_instructor(self, *where):
        return (
            select(models.Course, models.User.name)
            .join(models.User, models.User.id == models.Course.instructor_id)
            .where(*where)
        )

    @staticmethod
    def _row_dict(row) -> dict:
        course, instructor_name = row
        data = course.model_dump()
        data["instructor_name"] = instructor_name
        return data

    def get_with_details(self, course_id: int) -> Optional[dict]:
        """Course row plus instructor name and content/enrollment counts."""
        stmt = self._with_instructor(models.Course.id == course_id)
        row = self.session.exec(stmt).first()
        if row is None:
            return None
        data = self._row_dict(row)
        data["module_count"] = int(self.session.exec(
            select(func.count()).select_from(models.Module).where(models.Module.course_id == course_id)
        ).one())
        data["lesson_count"] = LessonRepository(self.session).count_by_course(course_id)
        data["enrollment_count"] = EnrollmentRepository(self.session).count_by_course(course_id)
        return data

    def list_catalog(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        level: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[dict], int]:
        """Published and approved courses with optional filters."""
        where = [models.Course.is_published == True, models.Course.is_approved == True]  # noqa: E712
        if search:
            pattern = f"%{search.lower()}%"
            where.append(
                func.lower(models.Course.title).like(pattern)
                | func.lower(func.coalesce(models.Course.description, "")).like(pattern)
            )
        if category:
            where.append(models.Course.category == category)
        if level:
            where.append(models.Course.level == level)
        stmt = self._with_instructor(*where).order_by(
            col(models.Course.created_at).desc()
        )
        rows = self.session.exec(_page(stmt, limit, offset)).all()
        return [self._row_dict(r) for r in rows], self._count(*where)

    def list_by_status(self, status: str) -> List[dict]:
        stmt = self._with_instructor(models.Course.status == status).order_by(
            col(models.Course.created_at).desc()
        )
        return [self._row_dict(r) for r in self.session.exec(stmt).all()]

    def list_by_instructor(self, instructor_id: int) -> List[models.Course]:
        stmt = select(models.Course).where(models.Course.instructor_id == instructor_id).order_by(
            col(models.Course.created_at).desc()
        )
        return list(self.session.exec(stmt).all())

    def list_featured(self, limit: int = 6) -> List[dict]:
        """Live courses ordered by enrollment count."""
        enrolled = func.count(models.Enrollment.id)
        stmt = (
            select(models.Course, enrolled)
            .outerjoin(models.Enrollment, models.Enrollment.course_id == models.Course.id)
            .where(models.Course.is_published == True, models.Course.is_approved == True)  # noqa: E712
            .group_by(models.Course.id)
            .order_by(enrolled.desc(), col(models.Course.created_at).desc())
            .limit(limit)
        )
        out = []
        for course, count in self.session.exec(stmt).all():
            data = course.model_dump()
            data["enrollment_count"] = int(count)
            out.append(data)
        return out

    def list_enrolled(self, user_id: int) -> List[dict]:
        stmt = (
            select(models.Course, models.Enrollment.progress, models.Enrollment.status)
            .join(models.Enrollment, models.Enrollment.course_id == models.Course.id)
            .where(models.Enrollment.user_id == user_id)
            .order_by(col(models.Enrollment.enrolled_at).desc())
        )
        out = []
        for course, progress, status in self.session.exec(stmt).all():
            data = course.model_dump()
            data["progress"] = progress
            data["enrollment_status"] = status
            out.append(data)
        return out


class ModuleRepository(_OrderedRepository):
    model = models.Module
    parent_field = "course_id"

    def list_by_course(self, course_id: int) -> List[models.Module]:
        return self.siblings(course_id)


class LessonRepository(_OrderedRepository):
    model = models.Lesson
    parent_field = "module_id"

    def list_by_module(self, module_id: int) -> List[models.Lesson]:
        return self.siblings(module_id)

    def list_by_course(self, course_id: int) -> List[models.Lesson]:
        stmt = (
            select(models.Lesson)
            .join(models.Module, models.Module.id == models.Lesson.module_id)
            .where(models.Module.course_id == course_id)
            .order_by(col(models.Module.order_index), col(models.Lesson.order_index))
        )
        return list(self.session.exec(stmt).all())

    def count_by_course(self, course_id: int) -> int:
        stmt = (
            select(func.count(models.Lesson.id))
            .join(models.Module, models.Module.id == models.Lesson.module_id)
            .where(models.Module.course_id == course_id)
        )
        return int(self.session.exec(stmt).one())


class LessonProgressRepository(_Repository):
    model = models.LessonProgress

    def get_for(self, user_id: int, lesson_id: int) -> Optional[models.LessonProgress]:
        stmt = select(models.LessonProgress).where(
            models.LessonProgress.user_id == user_id,
            models.LessonProgress.lesson_id == lesson_id,
        )
        return self.session.exec(stmt).first()

    def mark_completed(self, user_id: int, lesson_id: int) -> Tuple[models.LessonProgress, bool]:
        """Upsert a completed row; the flag is False when it was already done."""
        row = self.get_for(user_id, lesson_id)
        if row is not None and row.is_completed:
            return row, False
        if row is None:
            row = models.LessonProgress(user_id=user_id, lesson_id=lesson_id)
        row.is_completed = True
        row.completed_at = utcnow()
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row, True

    def count_completed_in_course(self, user_id: int, course_id: int) -> int:
        stmt = (
            select(func.count(models.LessonProgress.id))
            .join(models.Lesson, models.Lesson.id == models.LessonProgress.lesson_id)
            .join(models.Module, models.Module.id == models.Lesson.module_id)
            .where(
                models.Module.course_id == course_id,
                models.LessonProgress.user_id == user_id,
                models.LessonProgress.is_completed == True,  # noqa: E712
            )
        )
        return int(self.session.exec(stmt).one())

    def completed_lesson_ids(self, user_id: int, course_id: int) -> List[int]:
        stmt = (
            select(models.LessonProgress.lesson_id)
            .join(models.Lesson, models.Lesson.id == models.LessonProgress.lesson_id)
            .join(models.Module, models.Module.id == models.Lesson.module_id)
            .where(
                models.Module.course_id == course_id,
                models.LessonProgress.user_id == user_id,
                models.LessonProgress.is_completed == True,  # noqa: E712
            )
        )
        return list(self.session.exec(stmt).all())


class QuizRepository(_Repository):
    model = models.Quiz

    def list_by_lesson(self, lesson_id: int, published_only: bool = False) -> List[models.Quiz]:
        stmt = select(models.Quiz).where(models.Quiz.lesson_id == lesson_id)
        if published_only:
            stmt = stmt.where(models.Quiz.is_published == True)  # noqa: E712
        return list(self.session.exec(stmt.order_by(col(models.Quiz.id))).all())

    def list_by_course(self, course_id: int, published_only: bool = False) -> List[dict]:
        stmt = (
            select(models.Quiz, models.Lesson.title)
            .join(models.Lesson, models.Lesson.id == models.Quiz.lesson_id)
            .join(models.Module, models.Module.id == models.Lesson.module_id)
            .where(models.Module.course_id == course_id)
        )
        if published_only:
            stmt = stmt.where(models.Quiz.is_published == True)  # noqa: E712
        stmt = stmt.order_by(col(models.Module.order_index), col(models.Lesson.order_index), col(models.Quiz.id))
        out = []
        for quiz, lesson_title in self.session.exec(stmt).all():
            data = quiz.model_dump()
            data["lesson_title"] = lesson_title
            out.append(data)
        return out

    def questions(self, quiz_id: int) -> List[models.QuizQuestion]:
        stmt = (
            select(models.QuizQuestion)
            .where(models.QuizQuestion.quiz_id == quiz_id)
            .order_by(col(models.QuizQuestion.order_index), col(models.QuizQuestion.id))
        )
        return list(self.session.exec(stmt).all())

    def options_for(self, question_ids: List[int]) -> Dict[int, List[models.QuizOption]]:
        out: Dict[int, List[models.QuizOption]] = {qid: [] for qid in question_ids}
        if not question_ids:
            return out
        stmt = (
            select(models.QuizOption)
            .where(col(models.QuizOption.question_id).in_(question_ids))
            .order_by(col(models.QuizOption.id))
        )
        for opt in self.session.exec(stmt).all():
            out.setdefault(opt.question_id, []).append(opt)
        return out

    def add_question(self, question: models.QuizQuestion, options: List[models.QuizOption]) -> models.QuizQuestion:
        """Create a question and attach provided options.

        The question is flushed first to obtain an id, then the options
        are linked to it and everything commits together.
        """
        stmt = select(func.max(models.QuizQuestion.order_index)).where(
            models.QuizQuestion.quiz_id == question.quiz_id
        )
        current = self.session.exec(stmt).one()
        question.order_index = 0 if current is None else int(current) + 1
        self.session.add(question)
        self.session.flush()
        for opt in options:
            opt.question_id = question.id
            self.session.add(opt)
        self.session.commit()
        self.session.refresh(question)
        return question


class QuizQuestionRepository(_Repository):
    model = models.QuizQuestion


class QuizOptionRepository(_Repository):
    model = models.QuizOption


class QuizAttemptRepository(_Repository):
    model = models.QuizAttempt

    def list_by_user(self, user_id: int, quiz_id: Optional[int] = None) -> List[dict]:
        stmt = (
            select(models.QuizAttempt, models.Quiz.title)
            .join(models.Quiz, models.Quiz.id == models.QuizAttempt.quiz_id)
            .where(models.QuizAttempt.user_id == user_id)
        )
        if quiz_id is not None:
            stmt = stmt.where(models.QuizAttempt.quiz_id == quiz_id)
        stmt = stmt.order_by(col(models.QuizAttempt.created_at).desc())
        out = []
        for attempt, quiz_title in self.session.exec(stmt).all():
            data = attempt.model_dump()
            data["quiz_title"] = quiz_title
            out.append(data)
        return out

    def list_by_quiz(self, quiz_id: int) -> List[dict]:
        stmt = (
            select(models.QuizAttempt, models.User.name)
            .join(models.User, models.User.id == models.QuizAttempt.user_id)
            .where(models.QuizAttempt.quiz_id == quiz_id)
            .order_by(col(models.QuizAttempt.created_at).desc())
        )
        out = []
        for attempt, user_name in self.session.exec(stmt).all():
            data = attempt.model_dump()
            data["user_name"] = user_name
            out.append(data)
        return out

    def scores_for_quiz(self, quiz_id: int) -> List[Tuple[int, float, bool]]:
        stmt = select(models.QuizAttempt.user_id, models.QuizAttempt.score, models.QuizAttempt.passed).where(
            models.QuizAttempt.quiz_id == quiz_id
        )
        return [tuple(r) for r in self.session.exec(stmt).all()]


class AssignmentRepository(_Repository):
    model = models.Assignment

    def list_by_lesson(self, lesson_id: int, published_only: bool = False) -> List[models.Assignment]:
        stmt = select(models.Assignment).where(models.Assignment.lesson_id == lesson_id)
        if published_only:
            stmt = stmt.where(models.Assignment.is_published == True)  # noqa: E712
        return list(self.session.exec(stmt.order_by(col(models.Assignment.id))).all())

    def _course_stmt(self):
        return (
            select(models.Assignment, models.Lesson.title, models.Module.course_id)
            .join(models.Lesson, models.Lesson.id == models.Assignment.lesson_id)
            .join(models.Module, models.Module.id == models.Lesson.module_id)
        )

    @staticmethod
    def _rows(rows) -> List[dict]:
        out = []
        for assignment, lesson_title, course_id in rows:
            data = assignment.model_dump()
            data["lesson_title"] = lesson_title
            data["course_id"] = course_id
            out.append(data)
        return out

    def list_by_course(self, course_id: int, published_only: bool = False) -> List[dict]:
        stmt = self._course_stmt().where(models.Module.course_id == course_id)
        if published_only:
            stmt = stmt.where(models.Assignment.is_published == True)  # noqa: E712
        stmt = stmt.order_by(col(models.Assignment.due_date), col(models.Assignment.id))
        return self._rows(self.session.exec(stmt).all())

    def _open_for_user(self, user_id: int):
        """Published assignments in the user's active courses they have not submitted."""
        submitted = select(models.AssignmentSubmission.assignment_id).where(
            models.AssignmentSubmission.user_id == user_id
        )
        return (
            self._course_stmt()
            .join(models.Enrollment, models.Enrollment.course_id == models.Module.course_id)
            .where(
                models.Enrollment.user_id == user_id,
                models.Enrollment.status == "active",
                models.Assignment.is_published == True,  # noqa: E712
                col(models.Assignment.due_date).is_not(None),
                col(models.Assignment.id).not_in(submitted),
            )
        )

    def list_for_user(self, user_id: int) -> List[dict]:
        stmt = (
            self._course_stmt()
            .join(models.Enrollment, models.Enrollment.course_id == models.Module.course_id)
            .where(
                models.Enrollment.user_id == user_id,
                models.Enrollment.status != "dropped",
                models.Assignment.is_published == True,  # noqa: E712
            )
            .order_by(col(models.Assignment.due_date), col(models.Assignment.id))
        )
        return self._rows(self.session.exec(stmt).all())

    def list_authored(self, instructor_id: Optional[int] = None) -> List[dict]:
        """Assignments in one instructor's courses, or in every course when None."""
        stmt = self._course_stmt()
        if instructor_id is not None:
            stmt = stmt.join(models.Course, models.Course.id == models.Module.course_id).where(
                models.Course.instructor_id == instructor_id
            )
        stmt = stmt.order_by(col(models.Assignment.created_at).desc())
        return self._rows(self.session.exec(stmt).all())

    def due_soon(self, user_id: int, now: datetime, days: int = 7) -> List[dict]:
        stmt = self._open_for_user(user_id).where(
            col(models.Assignment.due_date) >= now,
            col(models.Assignment.due_date) <= now + timedelta(days=days),
        ).order_by(col(models.Assignment.due_date))
        return self._rows(self.session.exec(stmt).all())

    def overdue(self, user_id: int, now: datetime) -> List[dict]:
        stmt = self._open_for_user(user_id).where(col(models.Assignment.due_date) < now).order_by(
            col(models.Assignment.due_date)
        )
        return self._rows(self.session.exec(stmt).all())


class SubmissionRepository(_Repository):
    model = models.AssignmentSubmission

    def get_for(self, assignment_id: int, user_id: int) -> Optional[models.AssignmentSubmission]:
        stmt = select(models.AssignmentSubmission).where(
            models.AssignmentSubmission.assignment_id == assignment_id,
            models.AssignmentSubmission.user_id == user_id,
        )
        return self.session.exec(stmt).first()

    def upsert(self, assignment_id: int, user_id: int, fields: Dict[str, Any]) -> Tuple[models.AssignmentSubmission, bool]:
        """Create or overwrite the user's submission; flag is True when new."""
        row = self.get_for(assignment_id, user_id)
        is_new = row is None
        if is_new:
            row = models.AssignmentSubmission(assignment_id=assignment_id, user_id=user_id)
        for key, value in fields.items():
            setattr(row, key, value)
        # a resubmission goes back to the grading queue
        row.status = "submitted"
        row.score = None
        row.feedback = None
        row.graded_by = None
        row.graded_at = None
        row.submitted_at = utcnow()
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row, is_new

    def list_by_assignment(self, assignment_id: int) -> List[dict]:
        stmt = (
            select(models.AssignmentSubmission, models.User.name, models.User.email)
            .join(models.User, models.User.id == models.AssignmentSubmission.user_id)
            .where(models.AssignmentSubmission.assignment_id == assignment_id)
            .order_by(col(models.AssignmentSubmission.submitted_at).desc())
        )
        out = []
        for sub, name, email in self.session.exec(stmt).all():
            data = sub.model_dump()
            data["user_name"] = name
            data["user_email"] = email
            out.append(data)
        return out

    def _with_assignment(self):
        return (
            select(models.AssignmentSubmission, models.Assignment.title, models.Module.course_id)
            .join(models.Assignment, models.Assignment.id == models.AssignmentSubmission.assignment_id)
            .join(models.Lesson, models.Lesson.id == models.Assignment.lesson_id)
            .join(models.Module, models.Module.id == models.Lesson.module_id)
        )

    @staticmethod
    def _rows(rows) -> List[dict]:
        out = []
        for sub, title, course_id in rows:
            data = sub.model_dump()
            data["assignment_title"] = title
            data["course_id"] = course_id
            out.append(data)
        return out

    def list_by_user(self, user_id: int, course_id: Optional[int] = None) -> List[dict]:
        stmt = self._with_assignment().where(models.AssignmentSubmission.user_id == user_id)
        if course_id is not None:
            stmt = stmt.where(models.Module.course_id == course_id)
        stmt = stmt.order_by(col(models.AssignmentSubmission.submitted_at).desc())
        return self._rows(self.session.exec(stmt).all())

    def pending_for_course(self, course_id: int) -> List[dict]:
        stmt = self._with_assignment().where(
            models.Module.course_id == course_id,
            models.AssignmentSubmission.status == "submitted",
        ).order_by(col(models.AssignmentSubmission.submitted_at))
        return self._rows(self.session.exec(stmt).all())

    def pending_for_instructor(self, instructor_id: int) -> List[dict]:
        stmt = (
            self._with_assignment()
            .join(models.Course, models.Course.id == models.Module.course_id)
            .where(
                models.Course.instructor_id == instructor_id,
                models.AssignmentSubmission.status == "submitted",
            )
            .order_by(col(models.AssignmentSubmission.submitted_at))
        )
        return self._rows(self.session.exec(stmt).all())

    def for_assignment(self, assignment_id: int) -> List[models.AssignmentSubmission]:
        stmt = select(models.AssignmentSubmission).where(
            models.AssignmentSubmission.assignment_id == assignment_id
        )
        return list(self.session.exec(stmt).all())


class EnrollmentRepository(_Repository):
    model = models.Enrollment

    def get_for(self, user_id: int, course_id: int) -> Optional[models.Enrollment]:
        stmt = select(models.Enrollment).where(
            models.Enrollment.user_id == user_id,
            models.Enrollment.course_id == course_id,
        )
        return self.session.exec(stmt).first()

    def get_with_details(self, enrollment_id: int) -> Optional[dict]:
        stmt = (
            select(models.Enrollment, models.Course.title, models.User.name)
            .join(models.Course, models.Course.id == models.Enrollment.course_id)
            .join(models.User, models.User.id == models.Enrollment.user_id)
            .where(models.Enrollment.id == enrollment_id)
        )
        row = self.session.exec(stmt).first()
        if row is None:
            return None
        enrollment, course_title, user_name = row
        data = enrollment.model_dump()
        data["course_title"] = course_title
        data["user_name"] = user_name
        return data

    def list_by_user(self, user_id: int, limit: int = 20, offset: int = 0) -> List[dict]:
        instructor = models.User
        stmt = (
            select(models.Enrollment, models.Course.title, models.Course.category, instructor.name)
            .join(models.Course, models.Course.id == models.Enrollment.course_id)
            .join(instructor, instructor.id == models.Course.instructor_id)
            .where(models.Enrollment.user_id == user_id)
            .order_by(col(models.Enrollment.enrolled_at).desc())
        )
        out = []
        for enrollment, title, category, instructor_name in self.session.exec(_page(stmt, limit, offset)).all():
            data = enrollment.model_dump()
            data["course_title"] = title
            data["category"] = category
            data["instructor_name"] = instructor_name
            out.append(data)
        return out

    def list_by_course(self, course_id: int, limit: int = 20, offset: int = 0) -> List[dict]:
        stmt = (
            select(models.Enrollment, models.User.name, models.User.email)
            .join(models.User, models.User.id == models.Enrollment.user_id)
            .where(models.Enrollment.course_id == course_id)
            .order_by(col(models.Enrollment.enrolled_at).desc())
        )
        out = []
        for enrollment, name, email in self.session.exec(_page(stmt, limit, offset)).all():
            data = enrollment.model_dump()
            data["user_name"] = name
            data["user_email"] = email
            out.append(data)
        return out

    def user_ids_for_course(self, course_id: int) -> List[int]:
        stmt = select(models.Enrollment.user_id).where(
            models.Enrollment.course_id == course_id,
            models.Enrollment.status != "dropped",
        )
        return list(self.session.exec(stmt).all())

    def count_by_course(self, course_id: int) -> int:
        return self._count(models.Enrollment.course_id == course_id)

    def list_recent(self, limit: int = 5, instructor_id: Optional[int] = None) -> List[dict]:
        stmt = (
            select(models.Enrollment, models.Course.title, models.User.name)
            .join(models.Course, models.Course.id == models.Enrollment.course_id)
            .join(models.User, models.User.id == models.Enrollment.user_id)
        )
        if instructor_id is not None:
            stmt = stmt.where(models.Course.instructor_id == instructor_id)
        stmt = stmt.order_by(col(models.Enrollment.enrolled_at).desc()).limit(limit)
        out = []
        for enrollment, title, name in self.session.exec(stmt).all():
            data = enrollment.model_dump()
            data["course_title"] = title
            data["user_name"] = name
            out.append(data)
        return out

    def statistics(self, instructor_id: Optional[int] = None, course_id: Optional[int] = None) -> dict:
        """Enrollment totals, optionally scoped to an instructor or one course."""
        where = []
        if instructor_id is not None:
            where.append(models.Course.instructor_id == instructor_id)
        if course_id is not None:
            where.append(models.Enrollment.course_id == course_id)
        stmt = select(
            func.count(models.Enrollment.id),
            func.count(func.distinct(models.Enrollment.user_id)),
            func.avg(models.Enrollment.progress),
        ).join(models.Course, models.Course.id == models.Enrollment.course_id).where(*where)
        total, students, avg_progress = self.session.exec(stmt).one()
        by_status = select(models.Enrollment.status, func.count(models.Enrollment.id)).join(
            models.Course, models.Course.id == models.Enrollment.course_id
        ).where(*where)
        by_status = by_status.group_by(models.Enrollment.status)
        counts = {status: int(n) for status, n in self.session.exec(by_status).all()}
        return {
            "total_enrollments": int(total or 0),
            "unique_students": int(students or 0),
            "average_progress": round(float(avg_progress or 0), 2),
            "active": counts.get("active", 0),
            "completed": counts.get("completed", 0),
            "dropped": counts.get("dropped", 0),
        }


class NotificationRepository(_Repository):
    model = models.Notification

    def list_by_user(self, user_id: int, limit: int = 20, offset: int = 0, unread_only: bool = False) -> List[models.Notification]:
        stmt = select(models.Notification).where(models.Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(models.Notification.is_read == False)  # noqa: E712
        stmt = stmt.order_by(col(models.Notification.created_at).desc(), col(models.Notification.id).desc())
        return list(self.session.exec(_page(stmt, limit, offset)).all())

    def count_unread(self, user_id: int) -> int:
        return self._count(models.Notification.user_id == user_id, models.Notification.is_read == False)  # noqa: E712

    def mark_all_read(self, user_id: int) -> int:
        result = self.session.execute(
            update(models.Notification)
            .where(models.Notification.user_id == user_id, models.Notification.is_read == False)  # noqa: E712
            .values(is_read=True)
        )
        self.session.commit()
        return int(result.rowcount or 0)

    def delete_all_for_user(self, user_id: int) -> int:
        rows = self.session.exec(select(models.Notification).where(models.Notification.user_id == user_id)).all()
        for row in rows:
            self.session.delete(row)
        self.session.commit()
        return len(rows)


class ReviewRepository(_Repository):
    model = models.Review

    def get_active_for(self, user_id: int, course_id: int) -> Optional[models.Review]:
        stmt = select(models.Review).where(
            models.Review.user_id == user_id,
            models.Review.course_id == course_id,
            models.Review.is_deleted == False,  # noqa: E712
        )
        return self.session.exec(stmt).first()

    def list_by_course(self, course_id: int, limit: int = 10, offset: int = 0, sort: str = "recent") -> List[dict]:
        stmt = (
            select(models.Review, models.User.name)
            .join(models.User, models.User.id == models.Review.user_id)
            .where(models.Review.course_id == course_id, models.Review.is_deleted == False)  # noqa: E712
        )
        if sort == "helpful":
            stmt = stmt.order_by(col(models.Review.helpful_count).desc(), col(models.Review.created_at).desc())
        else:
            stmt = stmt.order_by(col(models.Review.created_at).desc(), col(models.Review.id).desc())
        out = []
        for review, name in self.session.exec(_page(stmt, limit, offset)).all():
            data = review.model_dump()
            data["user_name"] = name
            out.append(data)
        return out

    def list_by_user(self, user_id: int) -> List[dict]:
        stmt = (
            select(models.Review, models.Course.title)
            .join(models.Course, models.Course.id == models.Review.course_id)
            .where(models.Review.user_id == user_id, models.Review.is_deleted == False)  # noqa: E712
            .order_by(col(models.Review.created_at).desc())
        )
        out = []
        for review, title in self.session.exec(stmt).all():
            data = review.model_dump()
            data["course_title"] = title
            out.append(data)
        return out

    def count_by_course(self, course_id: int) -> int:
        return self._count(models.Review.course_id == course_id, models.Review.is_deleted == False)  # noqa: E712

    def has_marked_helpful(self, review_id: int, user_id: int) -> bool:
        stmt = select(models.ReviewHelpful.id).where(
            models.ReviewHelpful.review_id == review_id,
            models.ReviewHelpful.user_id == user_id,
        )
        return self.session.exec(stmt).first() is not None

    def mark_helpful(self, review: models.Review, user_id: int) -> models.Review:
        self.session.add(models.ReviewHelpful(review_id=review.id, user_id=user_id))
        review.helpful_count = (review.helpful_count or 0) + 1
        self.session.add(review)
        self.session.commit()
        self.session.refresh(review)
        return review
