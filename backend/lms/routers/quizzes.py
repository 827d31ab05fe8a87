"""Quiz endpoints: authoring, questions, options and attempts."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import models
from ..auth import get_current_user, get_optional_user
from ..database import get_session
from ..responses import ok
from ..schemas import OptionIn, OptionUpdateIn, QuestionIn, QuestionUpdateIn, QuizAttemptIn, QuizIn, QuizUpdateIn
from ..services import QuizService

router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])


@router.get("/lesson/{lesson_id}")
def lesson_quizzes(lesson_id: int, db: Session = Depends(get_session), user: Optional[models.User] = Depends(get_optional_user)):
    return ok(QuizService(db).list_for_lesson(lesson_id, user), "Quizzes retrieved successfully")


@router.get("/course/{course_id}")
def course_quizzes(course_id: int, db: Session = Depends(get_session), user: Optional[models.User] = Depends(get_optional_user)):
    return ok(QuizService(db).list_for_course(course_id, user), "Quizzes retrieved successfully")


@router.get("/attempts/user/{user_id}")
def user_attempts(user_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(QuizService(db).attempts_for_user(user, user_id), "Quiz attempts retrieved successfully")


@router.put("/questions/{question_id}")
def update_question(
    question_id: int,
    payload: QuestionUpdateIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(QuizService(db).update_question(user, question_id, payload), "Question updated successfully")


@router.delete("/questions/{question_id}")
def delete_question(question_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(QuizService(db).delete_question(user, question_id), "Question deleted successfully")


@router.post("/questions/{question_id}/options", status_code=201)
def add_option(
    question_id: int,
    payload: OptionIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(QuizService(db).add_option(user, question_id, payload), "Option added successfully")


@router.put("/options/{option_id}")
def update_option(
    option_id: int,
    payload: OptionUpdateIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(QuizService(db).update_option(user, option_id, payload), "Option updated successfully")


@router.delete("/options/{option_id}")
def delete_option(option_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(QuizService(db).delete_option(user, option_id), "Option deleted successfully")


@router.post("", status_code=201)
def create_quiz(payload: QuizIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(QuizService(db).create(user, payload), "Quiz created successfully")


@router.get("/{quiz_id}")
def get_quiz(quiz_id: int, db: Session = Depends(get_session), user: Optional[models.User] = Depends(get_optional_user)):
    return ok(QuizService(db).get(quiz_id, user), "Quiz retrieved successfully")


@router.put("/{quiz_id}")
def update_quiz(
    quiz_id: int,
    payload: QuizUpdateIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(QuizService(db).update(user, quiz_id, payload), "Quiz updated successfully")


@router.delete("/{quiz_id}")
def delete_quiz(quiz_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(QuizService(db).delete(user, quiz_id), "Quiz deleted successfully")


@router.put("/{quiz_id}/publish")
def publish_quiz(quiz_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(QuizService(db).set_published(user, quiz_id, True), "Quiz published successfully")


@router.put("/{quiz_id}/unpublish")
def unpublish_quiz(quiz_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(QuizService(db).set_published(user, quiz_id, False), "Quiz unpublished successfully")


@router.post("/{quiz_id}/questions", status_code=201)
def add_question(
    quiz_id: int,
    payload: QuestionIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(QuizService(db).add_question(user, quiz_id, payload), "Question added successfully")


@router.post("/{quiz_id}/attempts", status_code=201)
def submit_attempt(
    quiz_id: int,
    payload: QuizAttemptIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    """Grade an attempt; passing completes the quiz's lesson."""
    result = QuizService(db).submit_attempt(user, quiz_id, payload)
    message = "Quiz passed" if result["details"]["is_passed"] else "Quiz submitted"
    return ok(result, message)


@router.get("/{quiz_id}/attempts")
def quiz_attempts(quiz_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(QuizService(db).attempts_for_quiz(user, quiz_id), "Quiz attempts retrieved successfully")


@router.get("/{quiz_id}/statistics")
def quiz_statistics(quiz_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(QuizService(db).statistics(user, quiz_id), "Quiz statistics retrieved successfully")
