from conftest import PASSWORD


def test_profile_update_and_email_conflict(client, student, make_user):
    _, headers = student
    other, _ = make_user("student")
    r = client.put("/api/users/profile", json={"name": "  Grace Hopper "}, headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["name"] == "Grace Hopper"
    r = client.put("/api/users/profile", json={"email": other["email"].upper()}, headers=headers)
    assert r.status_code == 409


def test_change_password(client, student):
    user, headers = student
    bad = client.put(
        "/api/users/change-password",
        json={"current_password": "Wrong0ne!", "new_password": "N3wPassw0rd!"},
        headers=headers,
    )
    assert bad.status_code == 400
    changed = client.put(
        "/api/users/change-password",
        json={"current_password": PASSWORD, "new_password": "N3wPassw0rd!"},
        headers=headers,
    )
    assert changed.status_code == 200
    login = client.post("/api/auth/login", json={"email": user["email"], "password": "N3wPassw0rd!"})
    assert login.status_code == 200


def test_deleted_account_cannot_log_in(client, student):
    user, headers = student
    assert client.delete("/api/users/account", headers=headers).status_code == 200
    r = client.post("/api/auth/login", json={"email": user["email"], "password": PASSWORD})
    assert r.status_code == 401
    assert client.get("/api/auth/user", headers=headers).status_code == 401


def test_admin_user_management(client, admin, student):
    admin_user, admin_headers = admin
    user, headers = student
    listing = client.get("/api/users", headers=admin_headers).json()["data"]
    assert listing["pagination"]["total"] == 2
    assert client.get("/api/users", headers=headers).status_code == 403

    r = client.put(f"/api/users/{user['id']}/role", json={"role": "instructor"}, headers=admin_headers)
    assert r.json()["data"]["role"] == "instructor"
    assert client.put(f"/api/users/{user['id']}/role", json={"role": "admin"}, headers=admin_headers).status_code == 422
    assert client.put(
        f"/api/users/{admin_user['id']}/role", json={"role": "student"}, headers=admin_headers
    ).status_code == 400

    assert client.delete(f"/api/users/{user['id']}", headers=admin_headers).status_code == 200
    assert client.get("/api/users", headers=admin_headers).json()["data"]["pagination"]["total"] == 1


def test_module_reorder(client, instructor, live_course):
    _, headers = instructor
    course_id = live_course["course_id"]
    for title in ("Control flow", "Functions"):
        client.post("/api/modules", json={"course_id": course_id, "title": title}, headers=headers)
    functions = client.get(f"/api/modules/course/{course_id}").json()["data"][2]

    r = client.put(
        f"/api/modules/course/{course_id}/reorder",
        json={"item_id": functions["id"], "order_index": 0},
        headers=headers,
    )
    assert r.status_code == 200
    modules = r.json()["data"]
    assert [m["title"] for m in modules] == ["Functions", "Getting started", "Control flow"]
    assert [m["order_index"] for m in modules] == [0, 1, 2]


def test_insert_lesson_at_position_and_delete(client, instructor, live_course):
    _, headers = instructor
    module_id = live_course["module"]["id"]
    r = client.post(
        "/api/lessons",
        json={"module_id": module_id, "title": "Why Python", "order_index": 0},
        headers=headers,
    )
    assert r.status_code == 201
    titles = [lesson["title"] for lesson in client.get(f"/api/lessons/module/{module_id}", headers=headers).json()["data"]]
    assert titles == ["Why Python", "Installing Python", "Hello world"]

    client.delete(f"/api/lessons/{r.json()['data']['id']}", headers=headers)
    lessons = client.get(f"/api/lessons/module/{module_id}", headers=headers).json()["data"]
    assert [lesson["order_index"] for lesson in lessons] == [0, 1]


def test_lesson_reorder_rejects_foreign_lesson(client, instructor, live_course):
    _, headers = instructor
    course_id = live_course["course_id"]
    other_module = client.post("/api/modules", json={"course_id": course_id, "title": "Extra"}, headers=headers).json()["data"]
    r = client.put(
        f"/api/lessons/module/{other_module['id']}/reorder",
        json={"item_id": live_course["lessons"][0]["id"], "order_index": 0},
        headers=headers,
    )
    assert r.status_code == 400


def test_free_lesson_preview(client, instructor, live_course):
    _, headers = instructor
    r = client.post(
        "/api/lessons",
        json={"module_id": live_course["module"]["id"], "title": "Preview", "content": "Free sample", "is_free": True},
        headers=headers,
    )
    lesson_id = r.json()["data"]["id"]
    preview = client.get(f"/api/lessons/{lesson_id}")
    assert preview.status_code == 200
    assert preview.json()["data"]["content_text"] == "Free sample"


def test_instructor_analytics(client, instructor, enrolled_student, live_course):
    _, headers = instructor
    _, student_headers = enrolled_student
    for lesson in live_course["lessons"]:
        client.post(f"/api/lessons/{lesson['id']}/complete", headers=student_headers)
    data = client.get("/api/instructor/analytics", headers=headers).json()["data"]
    assert data == {
        "total_courses": 1,
        "total_students": 1,
        "total_enrollments": 1,
        "completion_rate": 100.0,
        "average_progress": 100.0,
    }
    activity = client.get("/api/instructor/activity", headers=headers).json()["data"]
    assert activity[0]["course_title"] == "Intro to Python"
    assert client.get("/api/instructor/analytics", headers=student_headers).status_code == 403
