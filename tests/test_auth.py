import pytest
from httpx import AsyncClient

from sms_api.core.config import settings
from tests.conftest import TEST_PASSWORD


def signup_payload(**overrides):
    data = {
        "username": "NewTeacher",
        "email": "new.teacher@example.edu",
        "password": "Secret123",
        "role": "teacher",
        "first_name": "New",
        "last_name": "Teacher",
    }
    data.update(overrides)
    return data


@pytest.mark.asyncio
async def test_signup_creates_user(client: AsyncClient, admin_headers):
    response = await client.post("/api/v1/users/signup", json=signup_payload(), headers=admin_headers)

    assert response.status_code == 201
    user = response.json()["data"]["data"]
    assert user["username"] == "newteacher"
    assert user["role"] == "teacher"
    assert user["department"] == "general"
    assert "password_hash" not in user


@pytest.mark.asyncio
async def test_signup_department_follows_admin_role(client: AsyncClient, admin_headers):
    response = await client.post(
        "/api/v1/users/signup",
        json=signup_payload(username="examboss", email="exam@example.edu", role="exam_admin"),
        headers=admin_headers,
    )

    assert response.status_code == 201
    assert response.json()["data"]["data"]["department"] == "examination"


@pytest.mark.asyncio
async def test_signup_duplicate_username(client: AsyncClient, admin_headers):
    await client.post("/api/v1/users/signup", json=signup_payload(), headers=admin_headers)
    response = await client.post(
        "/api/v1/users/signup", json=signup_payload(email="other@example.edu"), headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["status"] == "fail"


@pytest.mark.asyncio
async def test_signup_weak_password(client: AsyncClient, admin_headers):
    response = await client.post(
        "/api/v1/users/signup", json=signup_payload(password="onlyletters"), headers=admin_headers
    )

    assert response.status_code == 400
    assert "Invalid input data" in response.json()["message"]


@pytest.mark.asyncio
async def test_signup_requires_admin(client: AsyncClient, teacher_headers):
    response = await client.post("/api/v1/users/signup", json=signup_payload(), headers=teacher_headers)

    assert response.status_code == 403
    assert response.json()["message"] == "You do not have permission to perform this action"


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, make_user):
    user, _ = await make_user("teacher", username="jdoe")

    response = await client.post("/api/v1/users/login", json={"username": "JDoe", "password": TEST_PASSWORD})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["token"]
    assert data["refresh_token"]
    assert data["session_id"]
    assert data["data"]["user"]["id"] == str(user.id)


@pytest.mark.asyncio
async def test_login_invalid_credentials(client: AsyncClient, make_user):
    await make_user("teacher", username="jdoe")

    response = await client.post("/api/v1/users/login", json={"username": "jdoe", "password": "Wrong1234"})

    assert response.status_code == 401
    assert response.json()["message"] == "Incorrect username or password"


@pytest.mark.asyncio
async def test_login_locks_account_after_repeated_failures(client: AsyncClient, make_user):
    await make_user("teacher", username="jdoe")

    for _ in range(settings.max_login_attempts):
        response = await client.post("/api/v1/users/login", json={"username": "jdoe", "password": "Wrong1234"})
        assert response.status_code == 401

    response = await client.post("/api/v1/users/login", json={"username": "jdoe", "password": TEST_PASSWORD})
    assert response.status_code == 423


@pytest.mark.asyncio
async def test_login_inactive_user(client: AsyncClient, make_user):
    await make_user("teacher", username="jdoe", is_active=False)

    response = await client.post("/api/v1/users/login", json={"username": "jdoe", "password": TEST_PASSWORD})

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_get_current_user(client: AsyncClient, make_user):
    user, headers = await make_user("finance_admin")

    response = await client.get("/api/v1/users/me", headers=headers)

    assert response.status_code == 200
    data = response.json()["data"]["data"]
    assert data["username"] == user.username
    assert data["department"] == "finance"


@pytest.mark.asyncio
async def test_unauthorized_access(client: AsyncClient):
    response = await client.get("/api/v1/users/me")

    assert response.status_code == 401
    assert response.json()["status"] == "fail"


@pytest.mark.asyncio
async def test_invalid_token(client: AsyncClient):
    response = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_logout_ends_session(client: AsyncClient, teacher_headers):
    response = await client.post("/api/v1/users/logout", headers=teacher_headers)
    assert response.status_code == 200

    response = await client.get("/api/v1/users/me", headers=teacher_headers)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_refresh_rotates_refresh_token(client: AsyncClient, make_user):
    await make_user("teacher", username="jdoe")
    login = (await client.post("/api/v1/users/login", json={"username": "jdoe", "password": TEST_PASSWORD})).json()

    body = {"session_id": login["session_id"], "refresh_token": login["refresh_token"]}
    response = await client.post("/api/v1/users/refresh", json=body)

    assert response.status_code == 200
    refreshed = response.json()
    assert refreshed["refresh_token"] != login["refresh_token"]

    # The old refresh token is no longer accepted
    response = await client.post("/api/v1/users/refresh", json=body)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_update_password_invalidates_other_sessions(client: AsyncClient, make_user):
    await make_user("teacher", username="jdoe")
    first = (await client.post("/api/v1/users/login", json={"username": "jdoe", "password": TEST_PASSWORD})).json()
    second = (await client.post("/api/v1/users/login", json={"username": "jdoe", "password": TEST_PASSWORD})).json()

    response = await client.patch(
        "/api/v1/users/update-password",
        json={"current_password": TEST_PASSWORD, "new_password": "Changed456"},
        headers={"Authorization": f"Bearer {second['token']}"},
    )
    assert response.status_code == 200
    new_token = response.json()["token"]

    response = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {first['token']}"})
    assert response.status_code == 401

    response = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {new_token}"})
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_update_password_wrong_current(client: AsyncClient, teacher_headers):
    response = await client.patch(
        "/api/v1/users/update-password",
        json={"current_password": "Nope12345", "new_password": "Changed456"},
        headers=teacher_headers,
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_admin_lists_and_deactivates_users(client: AsyncClient, make_user, admin_headers):
    teacher, _ = await make_user("teacher")

    response = await client.get("/api/v1/users?role=teacher", headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["data"]["data"][0]["id"] == str(teacher.id)

    response = await client.delete(f"/api/v1/users/{teacher.id}", headers=admin_headers)
    assert response.status_code == 204

    response = await client.get(f"/api/v1/users/{teacher.id}", headers=admin_headers)
    assert response.json()["data"]["data"]["is_active"] is False


@pytest.mark.asyncio
async def test_admin_cannot_deactivate_self(client: AsyncClient, make_user):
    admin, headers = await make_user("school_admin")

    response = await client.delete(f"/api/v1/users/{admin.id}", headers=headers)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_login_rate_limited(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "auth_rate_limit_requests", 2)

    for _ in range(2):
        await client.post("/api/v1/users/login", json={"username": "nobody", "password": TEST_PASSWORD})
    response = await client.post("/api/v1/users/login", json={"username": "nobody", "password": TEST_PASSWORD})

    assert response.status_code == 429
    assert response.json()["message"] == "Too many requests from this IP, please try again later"
