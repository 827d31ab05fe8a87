"""Modules and lessons: ordered course content."""

from typing import List, Optional

from sqlmodel import Session

from .. import models, repositories
from ..errors import AuthError, BadRequestError, ForbiddenError, NotFoundError
from ..outbox import Outbox
from ..policy import authorize, evaluate
from ..schemas import LessonIn, LessonUpdateIn, ModuleIn, ModuleUpdateIn
from .common import active_enrollment, course_for_lesson, course_for_module, get_or_404, is_live


def _lesson_outline(lesson: models.Lesson) -> dict:
    data = lesson.model_dump(exclude={"content_text", "content_url"})
    data["locked"] = True
    return data


class ModuleService:
    def __init__(self, session: Session):
        self.session = session
        self.module_repo = repositories.ModuleRepository(session)
        self.course_repo = repositories.CourseRepository(session)

    def _module_and_course(self, module_id: int):
        module = get_or_404(self.module_repo, module_id, "Module")
        return module, course_for_module(self.session, module)

    def _visible(self, course: models.Course, requester: Optional[models.User]) -> None:
        if not is_live(course) and not evaluate(requester, course.instructor_id):
            raise NotFoundError("Course not found")

    def list_for_course(self, course_id: int, requester: Optional[models.User] = None) -> List[models.Module]:
        course = get_or_404(self.course_repo, course_id, "Course")
        self._visible(course, requester)
        return self.module_repo.list_by_course(course_id)

    def get(self, module_id: int, requester: Optional[models.User] = None) -> models.Module:
        module, course = self._module_and_course(module_id)
        self._visible(course, requester)
        return module

    def create(self, requester: models.User, data: ModuleIn) -> models.Module:
        course = get_or_404(self.course_repo, data.course_id, "Course")
        authorize(requester, course.instructor_id, message="You can only add modules to your own courses")
        module = models.Module(course_id=course.id, title=data.title.strip(), description=data.description)
        return self.module_repo.insert_at(module, data.order_index)

    def update(self, requester: models.User, module_id: int, data: ModuleUpdateIn) -> models.Module:
        module, course = self._module_and_course(module_id)
        authorize(requester, course.instructor_id, message="You can only update modules in your own courses")
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise BadRequestError("No fields to update")
        return self.module_repo.update(module.id, changes)

    def delete(self, requester: models.User, module_id: int) -> dict:
        module, course = self._module_and_course(module_id)
        authorize(requester, course.instructor_id, message="You can only delete modules in your own courses")
        return self.module_repo.delete(module.id)

    def reorder(self, requester: models.User, course_id: int, module_id: int, order_index: int) -> List[models.Module]:
        """Move one module and return the course's modules in their new order."""
        course = get_or_404(self.course_repo, course_id, "Course")
        authorize(requester, course.instructor_id, message="You can only reorder modules in your own courses")
        module = get_or_404(self.module_repo, module_id, "Module")
        if module.course_id != course_id:
            raise BadRequestError("Module does not belong to this course")
        self.module_repo.move(module_id, order_index)
        return self.module_repo.list_by_course(course_id)


class LessonService:
    def __init__(self, session: Session):
        self.session = session
        self.lesson_repo = repositories.LessonRepository(session)
        self.module_repo = repositories.ModuleRepository(session)

    def _lesson_and_course(self, lesson_id: int):
        lesson = get_or_404(self.lesson_repo, lesson_id, "Lesson")
        return lesson, course_for_lesson(self.session, lesson)

    def _full_access(self, course: models.Course, requester: Optional[models.User]) -> bool:
        if evaluate(requester, course.instructor_id):
            return True
        return requester is not None and active_enrollment(self.session, requester.id, course.id) is not None

    def _present(self, lessons, course: models.Course, requester: Optional[models.User]) -> list:
        if not is_live(course) and not evaluate(requester, course.instructor_id):
            raise NotFoundError("Course not found")
        if self._full_access(course, requester):
            return lessons
        # outsiders see the outline plus free previews
        return [lesson if lesson.is_free else _lesson_outline(lesson) for lesson in lessons]

    def list_for_module(self, module_id: int, requester: Optional[models.User] = None) -> list:
        module = get_or_404(self.module_repo, module_id, "Module")
        course = course_for_module(self.session, module)
        return self._present(self.lesson_repo.list_by_module(module_id), course, requester)

    def list_for_course(self, course_id: int, requester: Optional[models.User] = None) -> list:
        course = get_or_404(repositories.CourseRepository(self.session), course_id, "Course")
        return self._present(self.lesson_repo.list_by_course(course_id), course, requester)

    def get(self, lesson_id: int, requester: Optional[models.User] = None) -> models.Lesson:
        """Full lesson content for staff, enrolled users and free previews."""
        lesson, course = self._lesson_and_course(lesson_id)
        if not is_live(course) and not evaluate(requester, course.instructor_id):
            raise ForbiddenError("Access denied to unpublished course content")
        if lesson.is_free or self._full_access(course, requester):
            return lesson
        if requester is None:
            raise AuthError("Authentication required")
        raise ForbiddenError("You must be enrolled in this course to access this lesson")

    def create(self, requester: models.User, data: LessonIn) -> models.Lesson:
        module = get_or_404(self.module_repo, data.module_id, "Module")
        course = course_for_module(self.session, module)
        authorize(requester, course.instructor_id, message="You can only add lessons to your own courses")
        lesson = self.lesson_repo.insert_at(models.Lesson(
            module_id=module.id,
            title=data.title.strip(),
            content_type=data.content_type,
            content_text=data.content,
            content_url=data.video_url,
            duration=data.duration,
            is_free=data.is_free,
        ), data.order_index)
        if is_live(course):
            Outbox.notify(
                self.session,
                type="new_lesson",
                title="New lesson available",
                message=f'A new lesson "{lesson.title}" was added to "{course.title}".',
                course_id=course.id,
                related_id=lesson.id,
                exclude_user_id=requester.id,
            )
        return lesson

    def update(self, requester: models.User, lesson_id: int, data: LessonUpdateIn) -> models.Lesson:
        lesson, course = self._lesson_and_course(lesson_id)
        authorize(requester, course.instructor_id, message="You can only update lessons in your own courses")
        raw = data.model_dump(exclude_unset=True, exclude_none=True)
        renames = {"content": "content_text", "video_url": "content_url"}
        changes = {renames.get(k, k): v for k, v in raw.items()}
        if not changes:
            raise BadRequestError("No fields to update")
        return self.lesson_repo.update(lesson.id, changes)

    def delete(self, requester: models.User, lesson_id: int) -> dict:
        lesson, course = self._lesson_and_course(lesson_id)
        authorize(requester, course.instructor_id, message="You can only delete lessons in your own courses")
        return self.lesson_repo.delete(lesson.id)

    def reorder(self, requester: models.User, module_id: int, lesson_id: int, order_index: int) -> List[models.Lesson]:
        module = get_or_404(self.module_repo, module_id, "Module")
        course = course_for_module(self.session, module)
        authorize(requester, course.instructor_id, message="You can only reorder lessons in your own courses")
        lesson = get_or_404(self.lesson_repo, lesson_id, "Lesson")
        if lesson.module_id != module_id:
            raise BadRequestError("Lesson does not belong to this module")
        self.lesson_repo.move(lesson_id, order_index)
        return self.lesson_repo.list_by_module(module_id)
