"""End-to-end tests through the HTTP API"""

import asyncio
import re
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from linkup.utils.config import (
    AuthSettings,
    EmailSettings,
    LoggingSettings,
    Settings,
    StorageSettings,
)
from linkup_web.app import create_app

PASSWORD = "password123"


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    async def send(self, to, subject, html):
        self.sent.append((to, subject, html))


class Clock:
    def __init__(self, start=1_700_000_000):
        self.value = start

    def __call__(self):
        return self.value

    def advance(self, seconds=1):
        self.value += seconds


def create_test_app(tmp_dir: Path, notifier, clock):
    settings = Settings(
        auth=AuthSettings(secret_key="test-secret", verify_email_key="test-email-secret", bcrypt_rounds=4),
        logging=LoggingSettings(level="WARNING", format="console", file_path=None),
        email=EmailSettings(enabled=False),
        storage=StorageSettings(data_dir=str(tmp_dir)),
    )
    return create_app(settings=settings, notifier=notifier, clock=clock)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def app(tmp_path, notifier, clock):
    return create_test_app(tmp_path, notifier, clock)


@pytest.fixture
def client(app):
    return TestClient(app)


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


def register(client, notifier, email, first_name="Jane", last_name="Doe"):
    res = client.post(
        "/api/v1/auth/signup",
        json={
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "password": PASSWORD,
            "repeat_password": PASSWORD,
        },
    )
    assert res.status_code == 201, res.text
    html = notifier.sent[-1][2]
    verify_path = re.search(r'href="http://testserver(/api/v1/auth/verify-email/[^"]+)"', html).group(1)
    res = client.get(verify_path)
    assert res.status_code == 200, res.text
    return res.json()["data"]


def login(client, email, password=PASSWORD):
    res = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert res.status_code == 200, res.text
    return res.json()["token"]


def make_admin(app, email):
    asyncio.run(app.state.auth_service.accounts.update({"email": email}, {"role": "admin"}))


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.json()["status"] == "success"


def test_unknown_route(client):
    res = client.get("/api/v1/nothing-here")
    assert res.status_code == 404
    assert res.json() == {"status": "fail", "message": "Invalid routing /api/v1/nothing-here"}


def test_signup_verify_login_profile(client, notifier):
    account = register(client, notifier, "jane@example.com")
    assert account["email_verified"] is True
    assert "password_hash" not in account

    token = login(client, "jane@example.com")
    res = client.get("/api/v1/users/profile", headers=auth_header(token))
    assert res.status_code == 200
    assert res.json()["data"]["slug"] == "jane-doe"

    # bare token header is accepted too
    res = client.get("/api/v1/users/profile", headers={"token": token})
    assert res.status_code == 200


def test_signup_validation_errors_are_listed(client):
    res = client.post(
        "/api/v1/auth/signup",
        json={
            "first_name": "J",
            "last_name": "Doe",
            "email": "not-an-email",
            "password": "short",
            "repeat_password": "short",
        },
    )
    assert res.status_code == 400
    body = res.json()
    assert body["status"] == "fail"
    assert isinstance(body["message"], list)
    assert any(message.startswith("first_name") for message in body["message"])
    assert any(message.startswith("email") for message in body["message"])


def test_duplicate_signup_conflicts(client, notifier):
    register(client, notifier, "jane@example.com")
    res = client.post(
        "/api/v1/auth/signup",
        json={
            "first_name": "Other",
            "last_name": "Person",
            "email": "jane@example.com",
            "password": PASSWORD,
            "repeat_password": PASSWORD,
        },
    )
    assert res.status_code == 409


def test_protected_route_without_token(client):
    res = client.get("/api/v1/users/profile")
    assert res.status_code == 401
    assert res.json()["message"] == "Token is required"

    res = client.get("/api/v1/users/profile", headers=auth_header("garbage"))
    assert res.status_code == 401
    assert res.json()["message"] == "Invalid token"


def test_logout_ends_the_session(client, notifier, clock):
    register(client, notifier, "jane@example.com")
    token = login(client, "jane@example.com")
    clock.advance()

    res = client.patch("/api/v1/auth/logout", headers=auth_header(token))
    assert res.status_code == 200

    res = client.get("/api/v1/users/profile", headers=auth_header(token))
    assert res.status_code == 403
    assert res.json()["message"] == "Forbidden. Please login again"


def test_update_account_and_password(client, notifier, clock):
    register(client, notifier, "jane@example.com")
    token = login(client, "jane@example.com")
    clock.advance()

    res = client.put(
        "/api/v1/users",
        json={"job_title": "Engineer", "last_name": "Smith"},
        headers=auth_header(token),
    )
    assert res.status_code == 200, res.text
    assert res.json()["data"]["slug"] == "jane-smith"

    res = client.put(
        "/api/v1/users",
        json={"password": "newpass123", "repeat_password": "newpass123"},
        headers=auth_header(token),
    )
    assert res.status_code == 200
    res = client.get("/api/v1/users/profile", headers=auth_header(token))
    assert res.status_code == 403

    clock.advance()
    login(client, "jane@example.com", "newpass123")


def test_deactivation_toggle_ends_sessions(app, client, notifier, clock):
    register(client, notifier, "jane@example.com")
    token = login(client, "jane@example.com")
    clock.advance()

    # sending the current value is not a change
    res = client.put("/api/v1/users", json={"deactivated": False}, headers=auth_header(token))
    assert res.status_code == 200, res.text
    account = asyncio.run(app.state.auth_service.accounts.get_by_email("jane@example.com"))
    assert account.security_timestamp is None
    res = client.get("/api/v1/users/profile", headers=auth_header(token))
    assert res.status_code == 200

    res = client.put("/api/v1/users", json={"deactivated": True}, headers=auth_header(token))
    assert res.status_code == 200, res.text
    assert res.json()["data"]["deactivated"] is True

    res = client.get("/api/v1/users/profile", headers=auth_header(token))
    assert res.status_code == 403
    assert res.json()["message"] == "Forbidden. Please login again"


def test_delete_account(client, notifier):
    register(client, notifier, "jane@example.com")
    token = login(client, "jane@example.com")
    res = client.delete("/api/v1/users", headers=auth_header(token))
    assert res.status_code == 200

    res = client.get("/api/v1/users/profile", headers=auth_header(token))
    assert res.status_code == 404
    assert res.json()["message"] == "No such account exists"


def test_password_reset_flow(client, notifier, clock):
    register(client, notifier, "jane@example.com")
    res = client.patch("/api/v1/users/reset-code", json={"email": "jane@example.com"})
    assert res.status_code == 200
    code = re.search(r"Code: ([0-9a-f]+)", notifier.sent[-1][2]).group(1)

    clock.advance()
    res = client.patch(
        "/api/v1/users/reset-password",
        json={
            "email": "jane@example.com",
            "code": code,
            "password": "resetpass1",
            "repeat_password": "resetpass1",
        },
    )
    assert res.status_code == 200, res.text
    clock.advance()
    login(client, "jane@example.com", "resetpass1")


def test_admin_list_accounts(app, client, notifier):
    register(client, notifier, "admin@example.com", "Ada", "Admin")
    register(client, notifier, "jane@example.com")
    register(client, notifier, "john@example.com", "John", "Roe")
    make_admin(app, "admin@example.com")

    user_token = login(client, "jane@example.com")
    res = client.get("/api/v1/users", headers=auth_header(user_token))
    assert res.status_code == 403
    assert res.json()["message"] == "Unauthorized. Only admin can access this API"

    admin_token = login(client, "admin@example.com")
    res = client.get("/api/v1/users?sort=email&page=1", headers=auth_header(admin_token))
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["page"] == 1
    assert body["limit"] == 2
    assert [doc["email"] for doc in body["data"]] == ["admin@example.com", "jane@example.com"]
    assert all("password_hash" not in doc for doc in body["data"])

    res = client.get("/api/v1/users?sort=email&page=3", headers=auth_header(admin_token))
    assert res.status_code == 404
    assert res.json()["message"] == "Page not found"

    res = client.get("/api/v1/users?search=roe&fields=email,password_hash", headers=auth_header(admin_token))
    assert res.status_code == 200
    assert res.json()["data"] == [{"id": res.json()["data"][0]["id"], "email": "john@example.com"}]

    res = client.get("/api/v1/users?page=abc", headers=auth_header(admin_token))
    assert res.status_code == 400

    # names are searched through the slug
    res = client.get("/api/v1/users?search=Jane%20Doe", headers=auth_header(admin_token))
    assert res.status_code == 200
    assert [doc["email"] for doc in res.json()["data"]] == ["jane@example.com"]


def test_admin_block_ends_sessions(app, client, notifier, clock):
    register(client, notifier, "admin@example.com", "Ada", "Admin")
    jane = register(client, notifier, "jane@example.com")
    make_admin(app, "admin@example.com")
    admin_token = login(client, "admin@example.com")
    user_token = login(client, "jane@example.com")
    clock.advance()

    res = client.patch(
        f"/api/v1/users/{jane['id']}/block", json={"blocked": True}, headers=auth_header(admin_token)
    )
    assert res.status_code == 200, res.text
    assert res.json()["data"]["blocked"] is True

    res = client.get("/api/v1/users/profile", headers=auth_header(user_token))
    assert res.status_code == 403
    res = client.post("/api/v1/auth/login", json={"email": "jane@example.com", "password": PASSWORD})
    assert res.status_code == 403


def test_posts_comments_and_likes(client, notifier):
    register(client, notifier, "jane@example.com")
    john_account = register(client, notifier, "john@example.com", "John", "Roe")
    jane = auth_header(login(client, "jane@example.com"))
    john = auth_header(login(client, "john@example.com"))

    res = client.post("/api/v1/posts", json={"text": "public hello"}, headers=jane)
    assert res.status_code == 201, res.text
    public_id = res.json()["data"]["id"]
    res = client.post("/api/v1/posts", json={"text": "secret", "is_private": True}, headers=jane)
    private_id = res.json()["data"]["id"]

    # john sees only the public post, jane sees both
    res = client.get("/api/v1/posts", headers=john)
    assert [doc["id"] for doc in res.json()["data"]] == [public_id]
    assert res.json()["data"][0]["time_elapsed"].endswith("ago")
    assert res.json()["data"][0]["author"]["first_name"] == "Jane"
    res = client.get("/api/v1/posts", headers=jane)
    assert res.json()["results"] == 2
    res = client.get("/api/v1/posts/user", headers=john)
    assert res.status_code == 404
    assert res.json()["message"] == "No posts found."

    res = client.patch(f"/api/v1/posts/{public_id}/like", headers=john)
    assert res.json()["message"] == "Post liked"
    assert res.json()["likes_count"] == 1
    assert res.json()["data"]["likers"] == [
        {"id": john_account["id"], "first_name": "John", "last_name": "Roe"}
    ]
    res = client.patch(f"/api/v1/posts/{public_id}/like", headers=john)
    assert res.json()["message"] == "Post unliked"
    assert res.json()["likes_count"] == 0
    res = client.patch(f"/api/v1/posts/{private_id}/like", headers=john)
    assert res.status_code == 404

    # only the author may change a post
    res = client.put(f"/api/v1/posts/{public_id}", json={"text": "hijacked"}, headers=john)
    assert res.status_code == 404
    res = client.put(f"/api/v1/posts/{public_id}", json={"text": "edited"}, headers=jane)
    assert res.json()["data"]["text"] == "edited"

    res = client.post(f"/api/v1/posts/{public_id}/comments", json={"text": "nice"}, headers=john)
    assert res.status_code == 201
    comment_id = res.json()["data"]["id"]
    res = client.post(f"/api/v1/posts/{private_id}/comments", json={"text": "peek"}, headers=john)
    assert res.status_code == 404

    res = client.patch(f"/api/v1/comments/{comment_id}/like", headers=jane)
    assert res.json()["message"] == "Comment liked"
    res = client.put(f"/api/v1/comments/{comment_id}", json={"text": "mine now"}, headers=jane)
    assert res.status_code == 404

    res = client.get(f"/api/v1/posts/{public_id}/comments", headers=jane)
    assert res.status_code == 200
    assert res.json()["data"][0]["likes_count"] == 1

    # deleting the post removes its comments
    res = client.delete(f"/api/v1/posts/{public_id}", headers=jane)
    assert res.status_code == 200
    res = client.get(f"/api/v1/posts/{public_id}/comments", headers=jane)
    assert res.status_code == 404
    assert res.json()["message"] == "No comments found."
    res = client.delete(f"/api/v1/comments/{comment_id}", headers=john)
    assert res.status_code == 404


def test_update_post_requires_changes(client, notifier):
    register(client, notifier, "jane@example.com")
    jane = auth_header(login(client, "jane@example.com"))
    res = client.post("/api/v1/posts", json={"text": "hello"}, headers=jane)
    post_id = res.json()["data"]["id"]
    res = client.put(f"/api/v1/posts/{post_id}", json={}, headers=jane)
    assert res.status_code == 400
