"""Quiz authoring, attempts and statistics.

Scoring itself lives in `lms.grading`; this service loads the answer key,
records the attempt and, on a pass, completes the owning lesson.
"""

import logging
from typing import Dict, List, Optional

from sqlmodel import Session

from .. import models, repositories
from ..errors import BadRequestError, ForbiddenError
from ..grading import QuestionKey, grade_quiz, summarize_scores
from ..outbox import Outbox
from ..policy import Relation, authorize, evaluate
from ..schemas import (
    OptionIn,
    OptionUpdateIn,
    QuestionIn,
    QuestionUpdateIn,
    QuizAttemptIn,
    QuizIn,
    QuizUpdateIn,
)
from .common import active_enrollment, course_for_lesson, course_for_quiz, get_or_404, require_enrollment
from .enrollments import EnrollmentService

logger = logging.getLogger("lms.quizzes")


def _check_options(question_type: str, flags: List[bool]) -> None:
    """Validate a question's options, given as their `is_correct` flags."""
    if len(flags) < 2:
        raise BadRequestError("Questions must have at least 2 options")
    correct = sum(1 for flag in flags if flag)
    if correct < 1:
        raise BadRequestError("At least one option must be marked as correct")
    if question_type == "true_false" and (len(flags) != 2 or correct != 1):
        raise BadRequestError("True/false questions need exactly 2 options with one marked correct")


class QuizService:
    def __init__(self, session: Session):
        self.session = session
        self.quiz_repo = repositories.QuizRepository(session)
        self.question_repo = repositories.QuizQuestionRepository(session)
        self.option_repo = repositories.QuizOptionRepository(session)
        self.attempt_repo = repositories.QuizAttemptRepository(session)
        self.lesson_repo = repositories.LessonRepository(session)

    def _quiz_and_course(self, quiz_id: int):
        quiz = get_or_404(self.quiz_repo, quiz_id, "Quiz")
        return quiz, course_for_quiz(self.session, quiz)

    def _question_and_course(self, question_id: int):
        question = get_or_404(self.question_repo, question_id, "Question")
        quiz, course = self._quiz_and_course(question.quiz_id)
        return question, course

    def _correct_flags(self, question_id: int) -> Dict[int, bool]:
        return {o.id: o.is_correct for o in self.quiz_repo.options_for([question_id])[question_id]}

    def _with_questions(self, quiz: models.Quiz, reveal_answers: bool) -> dict:
        data = quiz.model_dump()
        questions = self.quiz_repo.questions(quiz.id)
        options = self.quiz_repo.options_for([q.id for q in questions])
        out = []
        for q in questions:
            entry = q.model_dump()
            entry["options"] = [
                o.model_dump() if reveal_answers else o.model_dump(exclude={"is_correct"})
                for o in options.get(q.id, [])
            ]
            out.append(entry)
        data["questions"] = out
        return data

    def _answer_key(self, quiz_id: int) -> List[QuestionKey]:
        questions = self.quiz_repo.questions(quiz_id)
        options = self.quiz_repo.options_for([q.id for q in questions])
        return [
            QuestionKey(
                question_id=q.id,
                question_type=q.question_type,
                points=q.points,
                correct_options=frozenset(o.id for o in options.get(q.id, []) if o.is_correct),
            )
            for q in questions
        ]

    # --- reads -----------------------------------------------------------------

    def get(self, quiz_id: int, requester: Optional[models.User] = None) -> dict:
        """Quiz with questions; answer flags are hidden until the user has attempted it."""
        quiz, course = self._quiz_and_course(quiz_id)
        staff = evaluate(requester, course.instructor_id)
        if not quiz.is_published and not staff:
            raise ForbiddenError("This quiz is not available")
        attempts = None
        enrolled = requester is not None and active_enrollment(self.session, requester.id, course.id) is not None
        if enrolled:
            attempts = self.attempt_repo.list_by_user(requester.id, quiz_id)
        best = max(attempts, key=lambda a: a["score"]) if attempts else None
        return {
            "quiz": self._with_questions(quiz, reveal_answers=staff or bool(attempts)),
            "user_attempts": attempts,
            "best_attempt": best,
        }

    def list_for_lesson(self, lesson_id: int, requester: Optional[models.User] = None) -> List[models.Quiz]:
        lesson = get_or_404(self.lesson_repo, lesson_id, "Lesson")
        course = course_for_lesson(self.session, lesson)
        staff = evaluate(requester, course.instructor_id)
        return self.quiz_repo.list_by_lesson(lesson_id, published_only=not staff)

    def list_for_course(self, course_id: int, requester: Optional[models.User] = None) -> List[dict]:
        course = get_or_404(repositories.CourseRepository(self.session), course_id, "Course")
        staff = evaluate(requester, course.instructor_id)
        return self.quiz_repo.list_by_course(course_id, published_only=not staff)

    # --- authoring -------------------------------------------------------------

    def create(self, requester: models.User, data: QuizIn) -> models.Quiz:
        lesson = get_or_404(self.lesson_repo, data.lesson_id, "Lesson")
        course = course_for_lesson(self.session, lesson)
        authorize(requester, course.instructor_id, message="Not authorized to add quizzes to this lesson")
        return self.quiz_repo.create(models.Quiz(**data.model_dump()))

    def update(self, requester: models.User, quiz_id: int, data: QuizUpdateIn) -> models.Quiz:
        quiz, course = self._quiz_and_course(quiz_id)
        authorize(requester, course.instructor_id, message="Not authorized to update this quiz")
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise BadRequestError("No fields to update")
        return self.quiz_repo.update(quiz_id, changes)

    def delete(self, requester: models.User, quiz_id: int) -> dict:
        quiz, course = self._quiz_and_course(quiz_id)
        authorize(requester, course.instructor_id, message="Not authorized to delete this quiz")
        return self.quiz_repo.delete(quiz_id)

    def set_published(self, requester: models.User, quiz_id: int, published: bool) -> models.Quiz:
        quiz, course = self._quiz_and_course(quiz_id)
        verb = "publish" if published else "unpublish"
        authorize(requester, course.instructor_id, message=f"Not authorized to {verb} this quiz")
        if published and not self.quiz_repo.questions(quiz_id):
            raise BadRequestError("Cannot publish a quiz with no questions")
        was_published = quiz.is_published
        quiz = self.quiz_repo.update(quiz_id, {"is_published": published})
        if published and not was_published:
            Outbox.notify(
                self.session,
                type="new_quiz",
                title="New quiz available",
                message=f'A new quiz "{quiz.title}" is available in "{course.title}".',
                course_id=course.id,
                related_id=quiz.id,
                exclude_user_id=requester.id,
            )
        return quiz

    def add_question(self, requester: models.User, quiz_id: int, data: QuestionIn) -> dict:
        quiz, course = self._quiz_and_course(quiz_id)
        authorize(requester, course.instructor_id, message="Not authorized to add questions to this quiz")
        _check_options(data.question_type, [o.is_correct for o in data.options])
        question = self.quiz_repo.add_question(
            models.QuizQuestion(
                quiz_id=quiz_id,
                question_text=data.question_text,
                question_type=data.question_type,
                points=data.points,
            ),
            [models.QuizOption(option_text=o.option_text, is_correct=o.is_correct) for o in data.options],
        )
        entry = question.model_dump()
        entry["options"] = [o.model_dump() for o in self.quiz_repo.options_for([question.id])[question.id]]
        return entry

    def update_question(self, requester: models.User, question_id: int, data: QuestionUpdateIn) -> models.QuizQuestion:
        question, course = self._question_and_course(question_id)
        authorize(requester, course.instructor_id, message="Not authorized to update this question")
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise BadRequestError("No fields to update")
        if "question_type" in changes:
            _check_options(changes["question_type"], list(self._correct_flags(question_id).values()))
        return self.question_repo.update(question_id, changes)

    def delete_question(self, requester: models.User, question_id: int) -> dict:
        question, course = self._question_and_course(question_id)
        authorize(requester, course.instructor_id, message="Not authorized to delete this question")
        return self.question_repo.delete(question_id)

    def add_option(self, requester: models.User, question_id: int, data: OptionIn) -> models.QuizOption:
        question, course = self._question_and_course(question_id)
        authorize(requester, course.instructor_id, message="Not authorized to add options to this question")
        _check_options(question.question_type, list(self._correct_flags(question_id).values()) + [data.is_correct])
        return self.option_repo.create(models.QuizOption(
            question_id=question_id, option_text=data.option_text, is_correct=data.is_correct
        ))

    def update_option(self, requester: models.User, option_id: int, data: OptionUpdateIn) -> models.QuizOption:
        option = get_or_404(self.option_repo, option_id, "Option")
        question, course = self._question_and_course(option.question_id)
        authorize(requester, course.instructor_id, message="Not authorized to update this option")
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise BadRequestError("No fields to update")
        if "is_correct" in changes:
            flags = self._correct_flags(question.id)
            flags[option_id] = changes["is_correct"]
            _check_options(question.question_type, list(flags.values()))
        return self.option_repo.update(option_id, changes)

    def delete_option(self, requester: models.User, option_id: int) -> dict:
        option = get_or_404(self.option_repo, option_id, "Option")
        question, course = self._question_and_course(option.question_id)
        authorize(requester, course.instructor_id, message="Not authorized to delete this option")
        flags = self._correct_flags(question.id)
        flags.pop(option_id, None)
        _check_options(question.question_type, list(flags.values()))
        return self.option_repo.delete(option_id)

    # --- attempts --------------------------------------------------------------

    def submit_attempt(self, requester: models.User, quiz_id: int, data: QuizAttemptIn) -> dict:
        """Grade and record an attempt; a pass completes the quiz's lesson."""
        quiz, course = self._quiz_and_course(quiz_id)
        if not quiz.is_published:
            raise ForbiddenError("This quiz is not available")
        require_enrollment(self.session, requester.id, course.id, "You must be enrolled in this course to take quizzes")
        answers = [a.model_dump() for a in data.answers]
        result = grade_quiz(self._answer_key(quiz_id), answers, quiz.passing_score)
        attempt = self.attempt_repo.create(models.QuizAttempt(
            user_id=requester.id,
            quiz_id=quiz_id,
            score=result.percentage,
            earned_points=result.earned_points,
            total_points=result.total_points,
            passed=result.passed,
            time_taken=data.time_taken,
            answers=answers,
        ))
        course_progress = None
        if result.passed:
            lesson = get_or_404(self.lesson_repo, quiz.lesson_id, "Lesson")
            completion = EnrollmentService(self.session).record_lesson_completion(requester.id, lesson)
            course_progress = completion["course_progress"]
            Outbox.notify(
                self.session,
                type="quiz_passed",
                title="Quiz Passed",
                message=f"Congratulations! You passed the quiz: {quiz.title} with a score of {result.percentage:.1f}%",
                user_id=requester.id,
                related_id=quiz_id,
            )
        logger.info("quiz %s attempt %s by user %s: %.1f%%", quiz_id, attempt.id, requester.id, result.percentage)
        return {
            "attempt": attempt,
            "details": {
                "total_points": result.total_points,
                "earned_points": result.earned_points,
                "percentage_score": result.percentage,
                "is_passed": result.passed,
                "total_questions": result.total_questions,
                "correct_answers": result.correct_answers,
            },
            "course_progress": course_progress,
        }

    def attempts_for_user(self, requester: models.User, user_id: int) -> List[dict]:
        authorize(requester, None, Relation.SELF, subject_id=user_id,
                  message="Not authorized to view these quiz attempts")
        return self.attempt_repo.list_by_user(user_id)

    def attempts_for_quiz(self, requester: models.User, quiz_id: int) -> List[dict]:
        quiz, course = self._quiz_and_course(quiz_id)
        authorize(requester, course.instructor_id, message="Not authorized to view attempts for this quiz")
        return self.attempt_repo.list_by_quiz(quiz_id)

    def statistics(self, requester: models.User, quiz_id: int) -> dict:
        quiz, course = self._quiz_and_course(quiz_id)
        authorize(requester, course.instructor_id, message="Not authorized to view statistics for this quiz")
        attempts = self.attempt_repo.list_by_quiz(quiz_id)
        summary = summarize_scores([a["score"] for a in attempts], [a["passed"] for a in attempts])
        times = [a["time_taken"] for a in attempts if a["time_taken"] is not None]
        return {
            "quiz_id": quiz_id,
            "total_attempts": summary["count"],
            "unique_users": len({a["user_id"] for a in attempts}),
            "average_score": summary["average"],
            "highest_score": summary["highest"],
            "lowest_score": summary["lowest"],
            "average_time": round(sum(times) / len(times), 2) if times else 0.0,
            "pass_rate": summary["pass_rate"],
        }
