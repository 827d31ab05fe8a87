from lms.grading import QuestionKey, grade_quiz, is_answer_correct, progress_percentage, summarize_scores


def _mc(qid, correct, points=1):
    return QuestionKey(question_id=qid, question_type="multiple_choice", points=points, correct_options=frozenset(correct))


def _tf(qid, correct, points=1):
    return QuestionKey(question_id=qid, question_type="true_false", points=points, correct_options=frozenset([correct]))


def test_unanswered_questions_count_toward_total_only():
    keys = [_mc(1, [10], points=2), _mc(2, [20], points=3)]
    result = grade_quiz(keys, [{"question_id": 1, "selected_options": [10]}], passing_score=50)
    assert result.earned_points == 2
    assert result.total_points == 5
    assert result.percentage == 40
    assert result.passed is False
    assert [o.answered for o in result.outcomes] == [True, False]


def test_multiple_choice_needs_exact_set():
    key = _mc(1, [10, 11])
    assert is_answer_correct(key, [11, 10])
    assert not is_answer_correct(key, [10])
    assert not is_answer_correct(key, [10, 11, 12])
    assert not is_answer_correct(key, [])


def test_true_false_needs_single_correct_choice():
    key = _tf(1, 30)
    assert is_answer_correct(key, [30])
    assert not is_answer_correct(key, [31])
    assert not is_answer_correct(key, [30, 31])


def test_zero_total_points_scores_zero_percent():
    result = grade_quiz([_mc(1, [10], points=0)], [{"question_id": 1, "selected_options": [10]}], passing_score=0)
    assert result.total_points == 0
    assert result.percentage == 0.0


def test_half_score_below_passing_threshold():
    keys = [_mc(1, [10], points=5), _mc(2, [20], points=5)]
    answers = [
        {"question_id": 1, "selected_options": [10]},
        {"question_id": 2, "selected_options": [21]},
    ]
    result = grade_quiz(keys, answers, passing_score=60)
    assert (result.earned_points, result.total_points) == (5, 10)
    assert result.percentage == 50
    assert result.passed is False
    assert result.correct_answers == 1


def test_answers_for_unknown_questions_are_ignored():
    result = grade_quiz([_mc(1, [10])], [{"question_id": 99, "selected_options": [1]}], passing_score=0)
    assert result.earned_points == 0
    assert result.total_questions == 1


def test_progress_percentage_rounds_half_up_and_clamps():
    assert progress_percentage(0, 0) == 0
    assert progress_percentage(1, 3) == 33
    assert progress_percentage(2, 3) == 67
    assert progress_percentage(1, 8) == 13
    assert progress_percentage(3, 3) == 100
    assert progress_percentage(5, 3) == 100


def test_summarize_scores():
    assert summarize_scores([])["count"] == 0
    summary = summarize_scores([40.0, 80.0], [False, True])
    assert summary["average"] == 60.0
    assert summary["highest"] == 80.0
    assert summary["lowest"] == 40.0
    assert summary["pass_rate"] == 50.0
