from datetime import timedelta

from nivalus.core.security import create_access_token
from nivalus.services.settings_service import settings_service
from nivalus.services.user_service import UserService

SIGNUP_PAYLOAD = {
    "full_name": "Carol Danvers",
    "username": "carol",
    "email": "carol@nivalus.io",
    "password": "secret123",
}


def test_signup_creates_user(client):
    response = client.post("/api/signup", json=SIGNUP_PAYLOAD)

    assert response.status_code == 201
    user = response.json()["data"]
    assert user["username"] == "carol"
    assert user["status"] == "Active"
    assert user["is_admin"] is False
    assert user["balance"] == 0
    assert "password_hash" not in user


def test_signup_validation_errors_are_400_with_fields(client):
    response = client.post("/api/signup", json={
        "full_name": "  ",
        "username": "carol",
        "email": "not-an-email",
        "password": "123",
    })

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation failed"
    fields = {error["field"] for error in body["errors"]}
    assert {"full_name", "email", "password"} <= fields


def test_signup_duplicate_username_or_email_is_400(client, alice):
    same_username = client.post("/api/signup", json={**SIGNUP_PAYLOAD, "username": "alice"})
    same_email = client.post("/api/signup", json={**SIGNUP_PAYLOAD, "email": "alice@nivalus.io"})

    for response in (same_username, same_email):
        assert response.status_code == 400
        assert response.json()["message"] == "Username or email already exists"


def test_signup_rejected_when_registrations_disabled(client, db):
    settings_service.update_settings(db, allow_new_users=False)

    valid = client.post("/api/signup", json=SIGNUP_PAYLOAD)
    invalid = client.post("/api/signup", json={"username": ""})
    empty = client.post("/api/signup")

    for response in (valid, invalid, empty):
        assert response.status_code == 403
        assert response.json()["message"] == "Registrations are disabled."


def test_login_then_me_returns_same_user(client, alice):
    login = client.post("/api/login", json={"username": "alice", "password": "secret123"})

    assert login.status_code == 200
    assert "token" in login.cookies
    data = login.json()["data"]
    assert data["user"]["id"] == alice.id
    assert data["token_type"] == "bearer"

    me = client.get("/api/me")
    assert me.status_code == 200
    assert me.json()["data"]["id"] == alice.id
    assert me.json()["data"]["last_login"] is not None


def test_login_sets_http_only_strict_cookie(client, alice):
    response = client.post("/api/login", json={"username": "alice", "password": "secret123"})

    cookie_header = response.headers["set-cookie"].lower()
    assert "httponly" in cookie_header
    assert "samesite=strict" in cookie_header
    assert "max-age=3600" in cookie_header


def test_login_wrong_password_is_401(client, alice):
    response = client.post("/api/login", json={"username": "alice", "password": "wrong"})

    assert response.status_code == 401
    assert response.json()["message"] == "Incorrect username or password"


def test_login_unknown_user_gets_same_message(client):
    response = client.post("/api/login", json={"username": "nobody", "password": "wrong"})

    assert response.status_code == 401
    assert response.json()["message"] == "Incorrect username or password"


def test_login_inactive_user_is_403(client, db, alice):
    UserService.update_status(db, alice, "Inactive")

    response = client.post("/api/login", json={"username": "alice", "password": "secret123"})

    assert response.status_code == 403
    assert "inactive" in response.json()["message"]


def test_login_missing_fields_is_400(client):
    response = client.post("/api/login", json={"username": "  "})

    assert response.status_code == 400


def test_sixth_attempt_is_rate_limited_even_with_correct_password(client, admin):
    for _ in range(5):
        response = client.post("/api/login", json={"username": "admin", "password": "wrong"})
        assert response.status_code == 401

    response = client.post("/api/login", json={"username": "admin", "password": "secret123"})

    assert response.status_code == 429
    assert response.json()["message"] == "Too many login attempts. Please try again later."


def test_rate_limited_login_does_not_query_the_store(client, admin, monkeypatch):
    for _ in range(5):
        client.post("/api/login", json={"username": "admin", "password": "wrong"})

    def fail(*args, **kwargs):
        raise AssertionError("store queried while rate limited")

    monkeypatch.setattr("nivalus.api.routes.auth.user_service.get_user_by_username", fail)

    response = client.post("/api/login", json={"username": "admin", "password": "wrong"})
    assert response.status_code == 429


def test_successful_login_clears_failure_count(client, alice):
    for _ in range(4):
        client.post("/api/login", json={"username": "alice", "password": "wrong"})
    assert client.post("/api/login", json={"username": "alice", "password": "secret123"}).status_code == 200

    for _ in range(4):
        client.post("/api/login", json={"username": "alice", "password": "wrong"})
    response = client.post("/api/login", json={"username": "alice", "password": "secret123"})

    assert response.status_code == 200


def test_me_without_token_is_401(client):
    response = client.get("/api/me")

    assert response.status_code == 401
    assert response.json()["message"] == "Access denied. No token provided."


def test_expired_token_is_403_with_expired_message(client, alice):
    token = create_access_token(
        {"sub": str(alice.id), "username": "alice", "is_admin": False},
        expires_delta=timedelta(minutes=-1),
    )

    response = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403
    assert response.json()["message"] == "Token expired. Please log in again."


def test_tampered_token_is_403_with_invalid_message(client, alice, auth_headers):
    token = auth_headers(alice)["Authorization"].split(" ", 1)[1]
    header, payload, signature = token.split(".")

    response = client.get("/api/me", headers={"Authorization": f"Bearer {header}.{payload}.x{signature}"})

    assert response.status_code == 403
    assert response.json()["message"] == "Invalid token."


def test_cookie_takes_precedence_over_header(client, alice, bob, auth_headers):
    client.post("/api/login", json={"username": "alice", "password": "secret123"})

    response = client.get("/api/me", headers=auth_headers(bob))

    assert response.json()["data"]["id"] == alice.id


def test_logout_clears_cookie(client, alice):
    client.post("/api/login", json={"username": "alice", "password": "secret123"})

    response = client.post("/api/logout")

    assert response.status_code == 200
    assert response.json()["data"]["message"] == "Logged out successfully"
    assert client.get("/api/me").status_code == 401


def test_session_reports_logged_in(client, alice, auth_headers):
    response = client.get("/api/session", headers=auth_headers(alice))

    assert response.json() == {"data": {"is_logged_in": True}}
