def _complete(client, lesson_id, headers):
    return client.post(f"/api/lessons/{lesson_id}/complete", headers=headers)


def test_enroll_only_in_live_courses(client, student, pending_course):
    _, headers = student
    r = client.post("/api/enrollments", json={"course_id": pending_course["id"]}, headers=headers)
    assert r.status_code == 400
    r = client.post("/api/enrollments", json={"course_id": 9999}, headers=headers)
    assert r.status_code == 404


def test_enroll_twice_is_rejected(client, enrolled_student, live_course):
    _, headers = enrolled_student
    r = client.post("/api/enrollments", json={"course_id": live_course["course_id"]}, headers=headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Already enrolled in this course"


def test_enrollment_notifies_student_and_instructor(client, enrolled_student, instructor):
    _, headers = enrolled_student
    _, instructor_headers = instructor
    student_types = [n["type"] for n in client.get("/api/notifications", headers=headers).json()["data"]["notifications"]]
    assert "enrollment" in student_types
    instructor_types = [
        n["type"] for n in client.get("/api/notifications", headers=instructor_headers).json()["data"]["notifications"]
    ]
    assert "new_enrollment" in instructor_types


def test_lesson_access_requires_enrollment(client, student, live_course):
    _, headers = student
    lesson = live_course["lessons"][0]
    r = client.get(f"/api/lessons/{lesson['id']}", headers=headers)
    assert r.status_code == 403
    assert client.get(f"/api/lessons/{lesson['id']}").status_code == 401
    outline = client.get(f"/api/lessons/module/{live_course['module']['id']}", headers=headers).json()["data"]
    assert all(item["locked"] for item in outline)
    assert all("content_text" not in item for item in outline)


def test_completing_every_lesson_completes_the_course(client, enrolled_student, live_course):
    _, headers = enrolled_student
    first, second = live_course["lessons"]

    r = _complete(client, first["id"], headers)
    assert r.status_code == 200
    progress = r.json()["data"]["course_progress"]
    assert progress["completed_lessons"] == 1
    assert progress["total_lessons"] == 2
    assert progress["progress"] == 50
    assert progress["status"] == "active"

    progress = _complete(client, second["id"], headers).json()["data"]["course_progress"]
    assert progress["progress"] == 100
    assert progress["status"] == "completed"
    assert progress["completed_at"] is not None

    types = [n["type"] for n in client.get("/api/notifications", headers=headers).json()["data"]["notifications"]]
    assert types.count("course_completed") == 1


def test_recompleting_a_lesson_changes_nothing(client, enrolled_student, live_course):
    _, headers = enrolled_student
    lesson = live_course["lessons"][0]
    _complete(client, lesson["id"], headers)
    again = _complete(client, lesson["id"], headers).json()["data"]["course_progress"]
    assert again["completed_lessons"] == 1
    assert again["progress"] == 50

    summary = client.get(f"/api/lessons/course/{live_course['course_id']}/progress", headers=headers).json()["data"]
    assert summary["completed_lesson_ids"] == [lesson["id"]]


def test_cannot_complete_lessons_without_enrollment(client, student, live_course):
    _, headers = student
    r = _complete(client, live_course["lessons"][0]["id"], headers)
    assert r.status_code == 403


def test_adding_a_lesson_lowers_progress_on_next_completion(client, enrolled_student, instructor, live_course):
    _, headers = enrolled_student
    _, instructor_headers = instructor
    _complete(client, live_course["lessons"][0]["id"], headers)
    r = client.post(
        "/api/lessons",
        json={"module_id": live_course["module"]["id"], "title": "Variables"},
        headers=instructor_headers,
    )
    assert r.status_code == 201
    progress = _complete(client, live_course["lessons"][1]["id"], headers).json()["data"]["course_progress"]
    assert progress["total_lessons"] == 3
    assert progress["progress"] == 67
    assert progress["status"] == "active"

    types = [n["type"] for n in client.get("/api/notifications", headers=headers).json()["data"]["notifications"]]
    assert "new_lesson" in types


def test_enrollment_views_and_unenroll(client, enrolled_student, instructor, make_user, live_course):
    _, headers = enrolled_student
    _, instructor_headers = instructor
    _, stranger_headers = make_user("student")
    mine = client.get("/api/enrollments/user", headers=headers).json()["data"]
    assert len(mine) == 1
    enrollment_id = mine[0]["id"]

    assert client.get(f"/api/enrollments/{enrollment_id}", headers=instructor_headers).status_code == 200
    assert client.get(f"/api/enrollments/{enrollment_id}", headers=stranger_headers).status_code == 403
    roster = client.get(f"/api/enrollments/course/{live_course['course_id']}", headers=instructor_headers)
    assert roster.status_code == 200
    assert client.get(f"/api/enrollments/course/{live_course['course_id']}", headers=headers).status_code == 403

    assert client.delete(f"/api/enrollments/{enrollment_id}", headers=stranger_headers).status_code == 403
    assert client.delete(f"/api/enrollments/{enrollment_id}", headers=headers).status_code == 200
    assert client.get("/api/enrollments/user", headers=headers).json()["data"] == []


def test_manual_progress_update(client, enrolled_student):
    _, headers = enrolled_student
    enrollment_id = client.get("/api/enrollments/user", headers=headers).json()["data"][0]["id"]
    r = client.put(f"/api/enrollments/{enrollment_id}/progress", json={"progress": 100}, headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "completed"
    r = client.put(f"/api/enrollments/{enrollment_id}/progress", json={"progress": 120}, headers=headers)
    assert r.status_code == 422


def test_enrollment_statistics_admin_only(client, admin, enrolled_student):
    _, admin_headers = admin
    _, headers = enrolled_student
    stats = client.get("/api/enrollments/stats", headers=admin_headers).json()["data"]
    assert stats["total_enrollments"] == 1
    assert client.get("/api/enrollments/stats", headers=headers).status_code == 403
