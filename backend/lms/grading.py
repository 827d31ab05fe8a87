"""Quiz scoring and course-progress arithmetic.

These functions are pure: services load the quiz key and the counts from
the database and hand plain values in, which keeps the rules testable
without a session.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence


@dataclass(frozen=True)
class QuestionKey:
    """Answer key for one question."""
    question_id: int
    question_type: str
    points: int
    correct_options: FrozenSet[int]


@dataclass
class QuestionOutcome:
    question_id: int
    answered: bool
    correct: bool
    points_awarded: int
    selected_options: List[int] = field(default_factory=list)


@dataclass
class GradeResult:
    earned_points: int
    total_points: int
    percentage: float
    passed: bool
    correct_answers: int
    total_questions: int
    outcomes: List[QuestionOutcome]


def is_answer_correct(key: QuestionKey, selected: Sequence[int]) -> bool:
    """Apply the per-type correctness rule.

    multiple_choice needs the submitted set to equal the correct set, so a
    subset or superset earns nothing. true_false needs exactly one option
    and that option must be marked correct.
    """
    if key.question_type == "true_false":
        return len(selected) == 1 and selected[0] in key.correct_options
    if key.question_type == "multiple_choice":
        chosen = set(selected)
        return len(chosen) == len(key.correct_options) and chosen == set(key.correct_options)
    return False


def _index_answers(answers: Iterable[Mapping]) -> Dict[int, List[int]]:
    # last answer for a question wins
    out: Dict[int, List[int]] = {}
    for a in answers:
        qid = a.get("question_id")
        if qid is None:
            continue
        selected = a.get("selected_options") or []
        out[int(qid)] = [int(s) for s in selected]
    return out


def grade_quiz(keys: Sequence[QuestionKey], answers: Iterable[Mapping], passing_score: float) -> GradeResult:
    """Grade `answers` against every question in `keys`.

    Unanswered questions score zero but still count toward the total, and
    answers for questions that are not part of the quiz are ignored.
    """
    by_question = _index_answers(answers)
    earned = 0
    total = 0
    correct_count = 0
    outcomes: List[QuestionOutcome] = []
    for key in keys:
        total += key.points
        selected = by_question.get(key.question_id)
        answered = selected is not None
        correct = answered and is_answer_correct(key, selected)
        awarded = key.points if correct else 0
        earned += awarded
        if correct:
            correct_count += 1
        outcomes.append(QuestionOutcome(
            question_id=key.question_id,
            answered=answered,
            correct=correct,
            points_awarded=awarded,
            selected_options=list(selected or []),
        ))
    percentage = (earned / total) * 100 if total > 0 else 0.0
    return GradeResult(
        earned_points=earned,
        total_points=total,
        percentage=percentage,
        passed=percentage >= passing_score,
        correct_answers=correct_count,
        total_questions=len(keys),
        outcomes=outcomes,
    )


def progress_percentage(completed: int, total: int) -> int:
    """Return completed/total as a whole percentage, rounding halves up."""
    if total <= 0:
        return 0
    pct = math.floor((completed / total) * 100 + 0.5)
    return max(0, min(100, pct))


def summarize_scores(scores: Sequence[float], passed_flags: Optional[Sequence[bool]] = None) -> dict:
    """Small aggregate used by the quiz and assignment statistics views."""
    if not scores:
        return {"count": 0, "average": 0.0, "highest": 0.0, "lowest": 0.0, "pass_rate": 0.0}
    out = {
        "count": len(scores),
        "average": round(sum(scores) / len(scores), 2),
        "highest": max(scores),
        "lowest": min(scores),
    }
    if passed_flags is not None:
        out["pass_rate"] = round(sum(1 for p in passed_flags if p) / len(passed_flags) * 100, 2)
    return out
