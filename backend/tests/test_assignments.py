from datetime import datetime, timedelta, timezone

import pytest


def _iso(delta: timedelta) -> str:
    return (datetime.now(timezone.utc) + delta).isoformat()


@pytest.fixture
def make_assignment(client, instructor, live_course):
    _, headers = instructor

    def _make(**fields):
        payload = {
            "lesson_id": live_course["lessons"][0]["id"],
            "title": "Write a script",
            "max_score": 100,
            "is_published": True,
        }
        payload.update(fields)
        r = client.post("/api/assignments", json=payload, headers=headers)
        assert r.status_code == 201, r.text
        return r.json()["data"]

    return _make


def test_submission_before_due_date(client, enrolled_student, instructor, make_assignment):
    _, headers = enrolled_student
    _, instructor_headers = instructor
    assignment = make_assignment(due_date=_iso(timedelta(days=3)))
    r = client.post(f"/api/assignments/{assignment['id']}/submit", json={"content": "print('hi')"}, headers=headers)
    assert r.status_code == 201
    assert r.json()["message"] == "Assignment submitted successfully"
    submission = r.json()["data"]
    assert submission["is_late"] is False
    assert submission["status"] == "submitted"

    types = [
        n["type"] for n in client.get("/api/notifications", headers=instructor_headers).json()["data"]["notifications"]
    ]
    assert "assignment_submitted" in types


def test_late_submission_is_flagged(client, enrolled_student, make_assignment):
    _, headers = enrolled_student
    assignment = make_assignment(due_date=_iso(timedelta(days=-1)))
    overdue = client.get("/api/assignments/overdue", headers=headers).json()["data"]
    assert [a["id"] for a in overdue] == [assignment["id"]]

    r = client.post(f"/api/assignments/{assignment['id']}/submit", json={"content": "done"}, headers=headers)
    assert r.json()["data"]["is_late"] is True
    assert client.get("/api/assignments/overdue", headers=headers).json()["data"] == []


def test_due_soon_lists_open_assignments(client, enrolled_student, make_assignment):
    _, headers = enrolled_student
    soon = make_assignment(title="Soon", due_date=_iso(timedelta(days=2)))
    make_assignment(title="Later", due_date=_iso(timedelta(days=30)))
    due = client.get("/api/assignments/due-soon", params={"days": 7}, headers=headers).json()["data"]
    assert [a["id"] for a in due] == [soon["id"]]


def test_resubmission_overwrites_and_requeues(client, enrolled_student, instructor, make_assignment):
    _, headers = enrolled_student
    _, instructor_headers = instructor
    assignment = make_assignment()
    first = client.post(f"/api/assignments/{assignment['id']}/submit", json={"content": "v1"}, headers=headers)
    sid = first.json()["data"]["id"]
    client.put(f"/api/assignments/submissions/{sid}/grade", json={"grade": 40}, headers=instructor_headers)

    second = client.post(f"/api/assignments/{assignment['id']}/submit", json={"content": "v2"}, headers=headers)
    assert second.json()["message"] == "Submission updated successfully"
    data = second.json()["data"]
    assert data["id"] == sid
    assert data["submission_text"] == "v2"
    assert data["status"] == "submitted"
    assert data["score"] is None


def test_text_submission_needs_content(client, enrolled_student, make_assignment):
    _, headers = enrolled_student
    assignment = make_assignment()
    r = client.post(f"/api/assignments/{assignment['id']}/submit", json={"content": "   "}, headers=headers)
    assert r.status_code == 400


def test_draft_assignments_cannot_be_submitted(client, enrolled_student, make_assignment):
    _, headers = enrolled_student
    draft = make_assignment(is_published=False)
    r = client.post(f"/api/assignments/{draft['id']}/submit", json={"content": "x"}, headers=headers)
    assert r.status_code == 403
    assert client.get(f"/api/assignments/{draft['id']}", headers=headers).status_code == 403


def test_unenrolled_user_cannot_submit(client, make_user, live_course, make_assignment):
    _, headers = make_user("student")
    assignment = make_assignment()
    r = client.post(f"/api/assignments/{assignment['id']}/submit", json={"content": "x"}, headers=headers)
    assert r.status_code == 403


def test_grading_range_and_notification(client, enrolled_student, instructor, make_assignment):
    _, headers = enrolled_student
    _, instructor_headers = instructor
    assignment = make_assignment(max_score=50)
    sid = client.post(
        f"/api/assignments/{assignment['id']}/submit", json={"content": "answer"}, headers=headers
    ).json()["data"]["id"]

    r = client.put(f"/api/assignments/submissions/{sid}/grade", json={"grade": 51}, headers=instructor_headers)
    assert r.status_code == 400
    r = client.put(f"/api/assignments/submissions/{sid}/grade", json={"grade": -1}, headers=instructor_headers)
    assert r.status_code == 400
    assert client.put(f"/api/assignments/submissions/{sid}/grade", json={"grade": 45}, headers=headers).status_code == 403

    r = client.put(
        f"/api/assignments/submissions/{sid}/grade",
        json={"grade": 45, "feedback": "Nice work"},
        headers=instructor_headers,
    )
    assert r.status_code == 200
    graded = r.json()["data"]
    assert graded["status"] == "graded"
    assert graded["score"] == 45
    assert graded["feedback"] == "Nice work"

    notes = client.get("/api/notifications", headers=headers).json()["data"]["notifications"]
    graded_note = next(n for n in notes if n["type"] == "assignment_graded")
    assert "45/50" in graded_note["message"]


def test_assignment_statistics_and_pending(client, enrolled_student, instructor, live_course, make_assignment):
    _, headers = enrolled_student
    _, instructor_headers = instructor
    assignment = make_assignment(due_date=_iso(timedelta(days=-1)))
    client.post(f"/api/assignments/{assignment['id']}/submit", json={"content": "late"}, headers=headers)

    pending = client.get(
        f"/api/assignments/course/{live_course['course_id']}/pending-submissions", headers=instructor_headers
    ).json()["data"]
    assert len(pending) == 1
    tasks = client.get("/api/instructor/tasks", headers=instructor_headers).json()["data"]
    assert tasks[0]["type"] == "grade_submission"

    stats = client.get(f"/api/assignments/{assignment['id']}/statistics", headers=instructor_headers).json()["data"]
    assert stats["total_submissions"] == 1
    assert stats["late_submissions"] == 1
    assert stats["status_counts"] == {"submitted": 1}
