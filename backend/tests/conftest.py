import pytest
from fastapi.testclient import TestClient

from lms.config import Settings
from lms.main import create_app

PASSWORD = "Passw0rd!"
ADMIN_PASSWORD = "AdminPassw0rd!"


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Settings for an isolated app: file-backed SQLite, inline outbox, no SMTP."""
    monkeypatch.setenv("ENV", "dev")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'lms_test.db'}")
    monkeypatch.setenv("OUTBOX_INLINE", "true")
    monkeypatch.setenv("RATE_LIMIT_MAX", "10000")
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("SMTP_HOST", "")
    monkeypatch.setenv("EXIT_ON_FATAL_ERROR", "false")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    return Settings()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(client):
    """Register a user and return (user, headers)."""
    counter = {"n": 0}

    def _make(role: str = "student", name: str = None):
        counter["n"] += 1
        n = counter["n"]
        payload = {
            "name": name or f"{role.title()} User {n}",
            "email": f"{role}{n}@example.com",
            "password": PASSWORD,
            "role": role,
        }
        r = client.post("/api/auth/register", json=payload)
        assert r.status_code == 201, r.text
        data = r.json()["data"]
        return data["user"], auth_headers(data["tokens"]["access"])

    return _make


@pytest.fixture
def admin(client):
    r = client.post(
        "/api/auth/admin",
        json={"name": "Site Admin", "email": "admin@example.com", "password": ADMIN_PASSWORD},
    )
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    return data["user"], auth_headers(data["tokens"]["access"])


@pytest.fixture
def instructor(make_user):
    return make_user("instructor")


@pytest.fixture
def student(make_user):
    return make_user("student")


COURSE_PAYLOAD = {
    "title": "Intro to Python",
    "description": "Learn the basics of Python programming step by step.",
    "category": "programming",
    "level": "beginner",
}


@pytest.fixture
def pending_course(client, instructor):
    _, headers = instructor
    r = client.post("/api/courses", json=COURSE_PAYLOAD, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


@pytest.fixture
def live_course(client, admin, instructor, pending_course):
    """An approved course with one module holding two lessons."""
    _, admin_headers = admin
    _, headers = instructor
    course_id = pending_course["id"]
    r = client.put(f"/api/courses/{course_id}/approve", json={"action": "approve"}, headers=admin_headers)
    assert r.status_code == 200, r.text
    module = client.post(
        "/api/modules", json={"course_id": course_id, "title": "Getting started"}, headers=headers
    ).json()["data"]
    lessons = []
    for title in ("Installing Python", "Hello world"):
        r = client.post(
            "/api/lessons",
            json={"module_id": module["id"], "title": title, "content": f"{title} content"},
            headers=headers,
        )
        assert r.status_code == 201, r.text
        lessons.append(r.json()["data"])
    return {"course": pending_course, "course_id": course_id, "module": module, "lessons": lessons}


@pytest.fixture
def enrolled_student(client, student, live_course):
    _, headers = student
    r = client.post("/api/enrollments", json={"course_id": live_course["course_id"]}, headers=headers)
    assert r.status_code == 201, r.text
    return student
