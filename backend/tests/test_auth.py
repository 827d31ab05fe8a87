from sqlmodel import select

from conftest import ADMIN_PASSWORD, PASSWORD, auth_headers
from lms import models
from lms.auth import create_verification_token


def _register(client, **overrides):
    payload = {"name": "Ada Lovelace", "email": "ada@example.com", "password": PASSWORD, "role": "student"}
    payload.update(overrides)
    return client.post("/api/auth/register", json=payload)


def test_register_returns_user_and_tokens(client):
    r = _register(client)
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    user = body["data"]["user"]
    assert user["email"] == "ada@example.com"
    assert user["role"] == "student"
    assert user["is_verified"] is False
    assert "password_hash" not in user
    assert set(body["data"]["tokens"]) >= {"access", "refresh"}


def test_register_duplicate_email_conflicts(client):
    assert _register(client).status_code == 201
    r = _register(client, email="ADA@example.com")
    assert r.status_code == 409
    assert r.json()["success"] is False
    assert r.json()["error"]["type"] == "ConflictError"


def test_register_as_admin_is_refused(client):
    r = _register(client, role="admin")
    assert r.status_code == 403


def test_register_weak_password_fails_validation(client):
    r = _register(client, password="password")
    assert r.status_code == 422
    body = r.json()
    assert body["success"] is False
    assert "password" in body["error"]["errors"]


def test_login_and_current_user(client):
    _register(client)
    r = client.post("/api/auth/login", json={"email": "ada@example.com", "password": PASSWORD})
    assert r.status_code == 200
    token = r.json()["data"]["tokens"]["access"]
    me = client.get("/api/auth/user", headers=auth_headers(token))
    assert me.status_code == 200
    assert me.json()["data"]["name"] == "Ada Lovelace"


def test_login_wrong_password(client):
    _register(client)
    r = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "Wrong0ne!"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid credentials"


def test_protected_route_requires_token(client):
    assert client.get("/api/auth/user").status_code == 401
    r = client.get("/api/auth/user", headers=auth_headers("not-a-token"))
    assert r.status_code == 401


def test_refresh_issues_new_tokens(client):
    tokens = _register(client).json()["data"]["tokens"]
    r = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh"]})
    assert r.status_code == 200
    new_access = r.json()["data"]["tokens"]["access"]
    assert client.get("/api/auth/user", headers=auth_headers(new_access)).status_code == 200


def test_access_token_is_not_a_refresh_token(client):
    tokens = _register(client).json()["data"]["tokens"]
    r = client.post("/api/auth/refresh", json={"refresh_token": tokens["access"]})
    assert r.status_code == 401


def test_admin_bootstrap_only_once(client):
    payload = {"name": "Site Admin", "email": "admin@example.com", "password": ADMIN_PASSWORD}
    first = client.post("/api/auth/admin", json=payload)
    assert first.status_code == 201
    assert first.json()["data"]["user"]["role"] == "admin"
    second = client.post("/api/auth/admin", json=dict(payload, email="admin2@example.com"))
    assert second.status_code == 403


def test_verify_email(client, app, settings):
    user_id = _register(client).json()["data"]["user"]["id"]
    with app.state.db.session() as session:
        user = session.get(models.User, user_id)
        token = create_verification_token(user, settings)
    r = client.get("/api/auth/verify-email", params={"token": token})
    assert r.status_code == 200
    assert r.json()["data"]["is_verified"] is True


def test_registration_queues_verification_email(client, app):
    _register(client)
    with app.state.db.session() as session:
        events = session.exec(select(models.OutboxEvent).where(models.OutboxEvent.kind == "email")).all()
    assert len(events) == 1
    assert events[0].payload["template"] == "verify-email"
    # no SMTP configured: the mailer skips the message and the event is done
    assert events[0].status == "delivered"


def test_logout_clears_cookies(client):
    token = _register(client).json()["data"]["tokens"]["access"]
    r = client.post("/api/auth/logout", headers=auth_headers(token))
    assert r.status_code == 200
    assert "accessToken" in r.headers.get("set-cookie", "")
