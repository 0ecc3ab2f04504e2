import asyncio
import json
import time

import httpx
import pytest

from finance_hub.backend.core import (AuthenticationError, AuthorizationError,
                                      FileSessionStorage, MemorySessionStorage)
from finance_hub.backend.supabase import SupabaseAuthGateway
from finance_hub.schemas import AuthChangeEvent, AuthSession, AuthUser

URL = "https://project.supabase.co"
USER = {"id": "u1", "email": "ana@example.com", "user_metadata": {"full_name": "Ana"}}


def session_body(access_token: str = "jwt-1", expires_in: int = 3600) -> dict:
    return {
        "access_token": access_token,
        "refresh_token": "refresh-1",
        "token_type": "bearer",
        "expires_in": expires_in,
        "user": USER,
    }


def make_gateway(handler, **kwargs):
    seen: list[httpx.Request] = []

    def record(request):
        seen.append(request)
        return handler(request)

    gateway = SupabaseAuthGateway(URL, "anon-key", transport=httpx.MockTransport(record), **kwargs)
    return gateway, seen


def test_sign_in_stores_session_and_publishes_event():
    storage = MemorySessionStorage()
    gateway, seen = make_gateway(lambda r: httpx.Response(200, json=session_body()), storage=storage)

    async def scenario():
        subscription = gateway.subscribe()
        session = await gateway.sign_in_with_password("ana@example.com", "pw")
        event = await subscription.__anext__()
        subscription.unsubscribe()
        await gateway.close()
        return session, event

    session, event = asyncio.run(scenario())
    assert session.user.full_name == "Ana"
    assert event.event is AuthChangeEvent.SIGNED_IN
    assert storage.load().access_token == "jwt-1"
    assert gateway.access_token() == "jwt-1"
    assert seen[0].url.params["grant_type"] == "password"
    assert json.loads(seen[0].content) == {"email": "ana@example.com", "password": "pw"}


def test_rejected_credentials_raise_authentication_error():
    gateway, _ = make_gateway(
        lambda r: httpx.Response(
            400, json={"error": "invalid_grant", "error_description": "Invalid login credentials"}
        )
    )
    with pytest.raises(AuthenticationError) as exc_info:
        asyncio.run(gateway.sign_in_with_password("ana@example.com", "wrong"))
    assert exc_info.value.message == "Invalid login credentials"
    assert gateway.current_session is None


def test_expired_session_is_refreshed_on_read():
    storage = MemorySessionStorage()
    storage.save(AuthSession.model_validate({**session_body("old"), "expires_at": int(time.time()) - 60}))
    gateway, seen = make_gateway(lambda r: httpx.Response(200, json=session_body("new")), storage=storage)

    session = asyncio.run(gateway.get_session())
    assert session.access_token == "new"
    assert seen[0].url.params["grant_type"] == "refresh_token"
    assert json.loads(seen[0].content) == {"refresh_token": "refresh-1"}


def test_unrefreshable_session_signs_out():
    storage = MemorySessionStorage()
    storage.save(AuthSession.model_validate({**session_body("old"), "expires_at": 1}))
    gateway, _ = make_gateway(
        lambda r: httpx.Response(400, json={"error": "invalid_grant", "error_description": "Refresh Token Not Found"}),
        storage=storage,
    )
    assert asyncio.run(gateway.get_session()) is None
    assert storage.load() is None


def test_session_expiring_in_use_is_refreshed_or_dropped():
    storage = MemorySessionStorage()
    answers = [
        httpx.Response(200, json=session_body("jwt-1")),
        httpx.Response(200, json=session_body("jwt-2")),
        httpx.Response(400, json={"error": "invalid_grant", "error_description": "Refresh Token Not Found"}),
    ]
    gateway, seen = make_gateway(lambda r: answers.pop(0), storage=storage)

    async def scenario():
        subscription = gateway.subscribe()
        await gateway.sign_in_with_password("ana@example.com", "pw")
        gateway.current_session.expires_at = int(time.time()) - 100
        refreshed = await gateway.ensure_fresh_session()
        refreshed.expires_at = int(time.time()) - 100
        dropped = await gateway.ensure_fresh_session()
        events = [(await subscription.__anext__()).event.value for _ in range(3)]
        subscription.unsubscribe()
        await gateway.close()
        return refreshed, dropped, events

    refreshed, dropped, events = asyncio.run(scenario())
    assert refreshed.access_token == "jwt-2"
    assert dropped is None
    assert gateway.current_session is None
    assert storage.load() is None
    assert events == ["SIGNED_IN", "TOKEN_REFRESHED", "SIGNED_OUT"]
    assert [r.url.params["grant_type"] for r in seen] == ["password", "refresh_token", "refresh_token"]


def test_sign_out_clears_session_even_when_token_is_stale(tmp_path):
    storage = FileSessionStorage(tmp_path / "session.json")
    storage.save(AuthSession.model_validate(session_body()))
    gateway, seen = make_gateway(
        lambda r: httpx.Response(401, json={"msg": "JWT expired"}), storage=storage
    )

    async def scenario():
        await gateway.get_session()
        await gateway.sign_out()

    asyncio.run(scenario())
    assert seen[0].url.path == "/auth/v1/logout"
    assert seen[0].headers["authorization"] == "Bearer jwt-1"
    assert storage.load() is None
    assert gateway.current_session is None


def test_get_user_validates_token():
    gateway, seen = make_gateway(lambda r: httpx.Response(200, json=USER))
    user = asyncio.run(gateway.get_user("jwt-1"))
    assert isinstance(user, AuthUser) and user.id == "u1"
    assert seen[0].headers["authorization"] == "Bearer jwt-1"

    with pytest.raises(AuthenticationError):
        asyncio.run(gateway.get_user(""))


def test_admin_create_user_requires_service_role_key():
    gateway, seen = make_gateway(lambda r: httpx.Response(200, json=USER))
    with pytest.raises(AuthorizationError):
        asyncio.run(gateway.admin_create_user("admin@x.io", "pw"))
    assert seen == []

    admin, seen = make_gateway(lambda r: httpx.Response(200, json=USER), service_role_key="service-key")
    user = asyncio.run(admin.admin_create_user("admin@x.io", "pw", {"full_name": "Admin"}))
    assert user.id == "u1"
    assert seen[0].url.path == "/auth/v1/admin/users"
    assert seen[0].headers["authorization"] == "Bearer service-key"
    assert json.loads(seen[0].content)["email_confirm"] is True


def test_file_storage_ignores_corrupt_file(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json")
    assert FileSessionStorage(path).load() is None
