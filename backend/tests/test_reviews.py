import pytest


@pytest.fixture
def second_student(client, make_user, live_course):
    user, headers = make_user("student")
    r = client.post("/api/enrollments", json={"course_id": live_course["course_id"]}, headers=headers)
    assert r.status_code == 201, r.text
    return user, headers


def _review(client, course_id, headers, text="Clear and well paced."):
    return client.post(f"/api/reviews/course/{course_id}", json={"review_text": text}, headers=headers)


def test_eligibility_and_single_review(client, enrolled_student, live_course):
    _, headers = enrolled_student
    course_id = live_course["course_id"]
    assert client.get(f"/api/reviews/course/{course_id}/can-review", headers=headers).json()["data"]["can_review"] is True

    r = _review(client, course_id, headers)
    assert r.status_code == 201
    review_id = r.json()["data"]["id"]

    eligibility = client.get(f"/api/reviews/course/{course_id}/can-review", headers=headers).json()["data"]
    assert eligibility["can_review"] is False
    assert eligibility["review_id"] == review_id
    assert _review(client, course_id, headers).status_code == 409


def test_unenrolled_users_cannot_review(client, student, live_course):
    _, headers = student
    course_id = live_course["course_id"]
    assert client.get(f"/api/reviews/course/{course_id}/can-review", headers=headers).json()["data"]["can_review"] is False
    assert _review(client, course_id, headers).status_code == 403


def test_course_reviews_are_public(client, enrolled_student, live_course):
    _, headers = enrolled_student
    course_id = live_course["course_id"]
    _review(client, course_id, headers)
    data = client.get(f"/api/reviews/course/{course_id}").json()["data"]
    assert data["pagination"]["total"] == 1
    assert data["reviews"][0]["user_name"].startswith("Student User")
    assert client.get("/api/reviews/course/9999").status_code == 404


def test_helpful_marks(client, enrolled_student, second_student, live_course):
    _, author_headers = enrolled_student
    _, reader_headers = second_student
    review_id = _review(client, live_course["course_id"], author_headers).json()["data"]["id"]

    assert client.post(f"/api/reviews/{review_id}/helpful", headers=author_headers).status_code == 400
    r = client.post(f"/api/reviews/{review_id}/helpful", headers=reader_headers)
    assert r.status_code == 200
    assert r.json()["data"]["helpful_count"] == 1
    assert client.post(f"/api/reviews/{review_id}/helpful", headers=reader_headers).status_code == 400


def test_only_author_updates(client, enrolled_student, second_student, admin, live_course):
    _, author_headers = enrolled_student
    _, other_headers = second_student
    _, admin_headers = admin
    review_id = _review(client, live_course["course_id"], author_headers).json()["data"]["id"]

    edit = {"review_text": "Updated thoughts."}
    assert client.put(f"/api/reviews/{review_id}", json=edit, headers=other_headers).status_code == 403
    assert client.put(f"/api/reviews/{review_id}", json=edit, headers=admin_headers).status_code == 403
    r = client.put(f"/api/reviews/{review_id}", json=edit, headers=author_headers)
    assert r.status_code == 200
    assert r.json()["data"]["review_text"] == "Updated thoughts."


def test_delete_is_soft_and_frees_the_slot(client, enrolled_student, second_student, admin, live_course):
    _, author_headers = enrolled_student
    _, other_headers = second_student
    _, admin_headers = admin
    course_id = live_course["course_id"]
    review_id = _review(client, course_id, author_headers).json()["data"]["id"]

    assert client.delete(f"/api/reviews/{review_id}", headers=other_headers).status_code == 403
    r = client.delete(f"/api/reviews/{review_id}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"] == {"id": review_id, "course_id": course_id}
    assert client.get(f"/api/reviews/{review_id}").status_code == 404
    assert client.get("/api/reviews/user/me", headers=author_headers).json()["data"] == []
    assert _review(client, course_id, author_headers).status_code == 201
