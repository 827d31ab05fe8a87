import pytest


def _question(text, correct_index, points=5):
    return {
        "question_text": text,
        "question_type": "multiple_choice",
        "points": points,
        "options": [
            {"option_text": "first", "is_correct": correct_index == 0},
            {"option_text": "second", "is_correct": correct_index == 1},
        ],
    }


@pytest.fixture
def quiz(client, instructor, live_course):
    """Published quiz on the first lesson: two 5-point questions, pass mark 60."""
    _, headers = instructor
    lesson_id = live_course["lessons"][0]["id"]
    r = client.post("/api/quizzes", json={"lesson_id": lesson_id, "title": "Basics", "passing_score": 60}, headers=headers)
    assert r.status_code == 201, r.text
    quiz = r.json()["data"]
    questions = []
    for text, correct in (("Is Python interpreted?", 0), ("Is Python statically typed?", 1)):
        r = client.post(f"/api/quizzes/{quiz['id']}/questions", json=_question(text, correct), headers=headers)
        assert r.status_code == 201, r.text
        questions.append(r.json()["data"])
    assert client.put(f"/api/quizzes/{quiz['id']}/publish", headers=headers).status_code == 200
    return {"id": quiz["id"], "lesson_id": lesson_id, "questions": questions}


def _correct_option(question):
    return next(o["id"] for o in question["options"] if o["is_correct"])


def _wrong_option(question):
    return next(o["id"] for o in question["options"] if not o["is_correct"])


def test_question_option_rules(client, instructor, live_course):
    _, headers = instructor
    lesson_id = live_course["lessons"][0]["id"]
    quiz_id = client.post("/api/quizzes", json={"lesson_id": lesson_id, "title": "Rules"}, headers=headers).json()["data"]["id"]

    one_option = _question("Only one option?", 0)
    one_option["options"] = one_option["options"][:1]
    assert client.post(f"/api/quizzes/{quiz_id}/questions", json=one_option, headers=headers).status_code == 400

    none_correct = _question("Nothing right?", 0)
    none_correct["options"][0]["is_correct"] = False
    assert client.post(f"/api/quizzes/{quiz_id}/questions", json=none_correct, headers=headers).status_code == 400

    true_false = _question("Three options?", 0)
    true_false["question_type"] = "true_false"
    true_false["options"].append({"option_text": "maybe", "is_correct": False})
    assert client.post(f"/api/quizzes/{quiz_id}/questions", json=true_false, headers=headers).status_code == 400

    # an empty quiz cannot be published
    assert client.put(f"/api/quizzes/{quiz_id}/publish", headers=headers).status_code == 400


def test_option_edits_keep_every_question_answerable(client, instructor, enrolled_student, quiz):
    _, headers = instructor
    _, student_headers = enrolled_student
    q1, q2 = quiz["questions"]

    for question in (q1, q2):
        r = client.put(f"/api/quizzes/options/{_correct_option(question)}", json={"is_correct": False}, headers=headers)
        assert r.status_code == 400
    assert client.delete(f"/api/quizzes/options/{_wrong_option(q1)}", headers=headers).status_code == 400

    r = client.put(f"/api/quizzes/questions/{q1['id']}", json={"question_type": "true_false"}, headers=headers)
    assert r.status_code == 200
    extra = {"option_text": "maybe", "is_correct": False}
    assert client.post(f"/api/quizzes/questions/{q1['id']}/options", json=extra, headers=headers).status_code == 400

    # multiple choice takes a third option, after which the old answer can be un-marked
    extra = {"option_text": "third", "is_correct": True}
    assert client.post(f"/api/quizzes/questions/{q2['id']}/options", json=extra, headers=headers).status_code == 201
    r = client.put(f"/api/quizzes/options/{_correct_option(q2)}", json={"is_correct": False}, headers=headers)
    assert r.status_code == 200
    r = client.put(f"/api/quizzes/questions/{q2['id']}", json={"question_type": "true_false"}, headers=headers)
    assert r.status_code == 400

    answers = [{"question_id": q["id"], "selected_options": []} for q in quiz["questions"]]
    r = client.post(f"/api/quizzes/{quiz['id']}/attempts", json={"answers": answers}, headers=student_headers)
    details = r.json()["data"]["details"]
    assert details["earned_points"] == 0
    assert details["is_passed"] is False


def test_answers_are_hidden_before_an_attempt(client, enrolled_student, quiz):
    _, headers = enrolled_student
    data = client.get(f"/api/quizzes/{quiz['id']}", headers=headers).json()["data"]
    options = [o for q in data["quiz"]["questions"] for o in q["options"]]
    assert options and all("is_correct" not in o for o in options)
    assert data["user_attempts"] == []


def test_partial_attempt_is_recorded_but_not_passed(client, enrolled_student, quiz):
    _, headers = enrolled_student
    q1, q2 = quiz["questions"]
    answers = [
        {"question_id": q1["id"], "selected_options": [_correct_option(q1)]},
        {"question_id": q2["id"], "selected_options": [_wrong_option(q2)]},
    ]
    r = client.post(f"/api/quizzes/{quiz['id']}/attempts", json={"answers": answers}, headers=headers)
    assert r.status_code == 201
    assert r.json()["message"] == "Quiz submitted"
    details = r.json()["data"]["details"]
    assert details["earned_points"] == 5
    assert details["total_points"] == 10
    assert details["percentage_score"] == 50
    assert details["is_passed"] is False
    assert r.json()["data"]["course_progress"] is None

    data = client.get(f"/api/quizzes/{quiz['id']}", headers=headers).json()["data"]
    assert len(data["user_attempts"]) == 1
    options = [o for q in data["quiz"]["questions"] for o in q["options"]]
    assert all("is_correct" in o for o in options)


def test_passing_attempt_completes_the_lesson(client, enrolled_student, quiz):
    _, headers = enrolled_student
    answers = [{"question_id": q["id"], "selected_options": [_correct_option(q)]} for q in quiz["questions"]]
    r = client.post(f"/api/quizzes/{quiz['id']}/attempts", json={"answers": answers, "time_taken": 90}, headers=headers)
    assert r.status_code == 201
    assert r.json()["message"] == "Quiz passed"
    body = r.json()["data"]
    assert body["details"]["percentage_score"] == 100
    assert body["course_progress"]["completed_lessons"] == 1
    assert body["course_progress"]["progress"] == 50

    types = [n["type"] for n in client.get("/api/notifications", headers=headers).json()["data"]["notifications"]]
    assert "quiz_passed" in types


def test_attempt_requires_enrollment(client, student, quiz):
    _, headers = student
    r = client.post(f"/api/quizzes/{quiz['id']}/attempts", json={"answers": []}, headers=headers)
    assert r.status_code == 403


def test_unpublished_quiz_is_hidden_from_students(client, instructor, enrolled_student, quiz):
    _, headers = instructor
    _, student_headers = enrolled_student
    assert client.put(f"/api/quizzes/{quiz['id']}/unpublish", headers=headers).status_code == 200
    assert client.get(f"/api/quizzes/{quiz['id']}", headers=student_headers).status_code == 403
    assert client.get(f"/api/quizzes/lesson/{quiz['lesson_id']}", headers=student_headers).json()["data"] == []
    assert len(client.get(f"/api/quizzes/lesson/{quiz['lesson_id']}", headers=headers).json()["data"]) == 1


def test_quiz_statistics(client, instructor, enrolled_student, quiz):
    _, headers = instructor
    _, student_headers = enrolled_student
    q1, q2 = quiz["questions"]
    for selected in ([_wrong_option(q1)], [_correct_option(q1)]):
        answers = [
            {"question_id": q1["id"], "selected_options": selected},
            {"question_id": q2["id"], "selected_options": [_correct_option(q2)]},
        ]
        client.post(f"/api/quizzes/{quiz['id']}/attempts", json={"answers": answers}, headers=student_headers)
    stats = client.get(f"/api/quizzes/{quiz['id']}/statistics", headers=headers).json()["data"]
    assert stats["total_attempts"] == 2
    assert stats["unique_users"] == 1
    assert stats["highest_score"] == 100
    assert stats["lowest_score"] == 50
    assert stats["pass_rate"] == 50
    assert client.get(f"/api/quizzes/{quiz['id']}/statistics", headers=student_headers).status_code == 403
