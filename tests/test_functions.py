import asyncio

import pytest
from dependency_injector import providers
from fastapi.testclient import TestClient

from finance_hub.container import Container, load_config
from finance_hub.main import create_app
from finance_hub.routers.functions import CORS_HEADERS

ADMIN_EMAIL = "admin@test.local"


@pytest.fixture
def container(engine, auth):
    container = Container()
    load_config(container)
    container.config.from_dict(
        {
            "data_backend": "sql",
            "admin_email": ADMIN_EMAIL,
            "admin_full_name": "Test Admin",
            "sync_delay_seconds": 0.0,
        }
    )
    container.engine.override(providers.Object(engine))
    container.admin_auth_gateway.override(providers.Object(auth))
    return container


@pytest.fixture
def client(container):
    with TestClient(create_app(container)) as test_client:
        yield test_client


def test_health(client):
    assert client.get("/").json() == {"status": "ok"}


def test_preflight_returns_cors_headers(client):
    response = client.options("/functions/v1/log-security-event")
    assert response.status_code == 200
    assert response.content == b""
    for header, value in CORS_HEADERS.items():
        assert response.headers[header] == value


def test_create_admin_user_is_idempotent(client, auth, sql_gateway):
    first = client.post("/functions/v1/create-admin-user", headers={"user-agent": "pytest"})
    assert first.status_code == 201
    credentials = first.json()["adminCredentials"]
    assert credentials["email"] == ADMIN_EMAIL
    assert credentials["fullName"] == "Test Admin"
    assert len(credentials["password"]) >= 16
    assert first.headers["access-control-allow-origin"] == "*"

    second = client.post("/functions/v1/create-admin-user")
    assert second.status_code == 200
    assert second.json()["adminCredentials"] == {
        "email": ADMIN_EMAIL,
        "password": None,
        "fullName": "Test Admin",
    }
    assert auth.admin_created == [ADMIN_EMAIL]

    async def stored():
        profile = await sql_gateway.select_one("user_profiles", {"email": ADMIN_EMAIL})
        roles = await sql_gateway.select("user_roles")
        logs = await sql_gateway.select("security_logs")
        settings = await sql_gateway.select("settings")
        return profile, roles, logs, settings

    profile, roles, logs, settings = asyncio.run(stored())
    assert [(r["user_id"], r["role"]) for r in roles] == [(profile["id"], "admin")]
    assert [log["event_type"] for log in logs] == ["admin_created"]
    assert logs[0]["user_agent"] == "pytest"
    assert len(settings) == 1


def test_create_admin_user_failure_is_500(client, auth, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError("auth backend exploded")

    monkeypatch.setattr(auth, "admin_create_user", broken)
    response = client.post("/functions/v1/create-admin-user")
    assert response.status_code == 500
    assert response.json() == {
        "message": "Error creating admin user",
        "error": "auth backend exploded",
    }


def test_log_security_event_requires_bearer(client):
    response = client.post(
        "/functions/v1/log-security-event",
        json={"event_type": "login_success", "description": "ok"},
    )
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized"


def test_log_security_event_rejects_unknown_token(client):
    response = client.post(
        "/functions/v1/log-security-event",
        headers={"Authorization": "Bearer forged"},
        json={"event_type": "login_success", "description": "ok"},
    )
    assert response.status_code == 401
    assert response.json()["message"].startswith("invalid JWT")


@pytest.mark.parametrize(
    "body",
    [{"event_type": "login_success"}, {"description": "ok"}, {"event_type": "", "description": "ok"}],
)
def test_log_security_event_requires_type_and_description(client, auth, body):
    token = auth.issue_token(auth.add_user("ana@example.com", "pw"))
    response = client.post(
        "/functions/v1/log-security-event", headers={"Authorization": f"Bearer {token}"}, json=body
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Incomplete data"


def test_log_security_event_records_for_token_owner(client, auth, sql_gateway):
    user = auth.add_user("ana@example.com", "pw")
    token = auth.issue_token(user)
    response = client.post(
        "/functions/v1/log-security-event",
        headers={"Authorization": f"Bearer {token}"},
        json={
            "event_type": "password_changed",
            "description": "Password changed",
            "ip_address": "10.0.0.1",
            "user_id": "someone-else",
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Event recorded"

    rows = asyncio.run(sql_gateway.select("security_logs"))
    assert len(rows) == 1
    assert rows[0]["id"] == body["data"]
    assert rows[0]["user_id"] == user.id
    assert rows[0]["ip_address"] == "10.0.0.1"


def test_ensure_user_rows(client, auth, sql_gateway):
    user = auth.add_user("ana@example.com", "pw", "Ana")
    headers = {"Authorization": f"Bearer {auth.issue_token(user)}"}

    first = client.post("/functions/v1/ensure-user-rows", headers=headers)
    second = client.post("/functions/v1/ensure-user-rows", headers=headers)

    assert first.json() == {"success": True, "profileCreated": True, "settingsCreated": True}
    assert second.json() == {"success": True, "profileCreated": False, "settingsCreated": False}
    profile = asyncio.run(sql_gateway.select_one("user_profiles", {"id": user.id}))
    assert profile["full_name"] == "Ana"


def test_ensure_user_rows_rejects_bad_token(client):
    response = client.post(
        "/functions/v1/ensure-user-rows", headers={"Authorization": "Bearer forged"}
    )
    assert response.status_code == 401
    assert response.json()["error"] == "AuthenticationError"
