import asyncio
import json

import httpx
import pytest

from finance_hub.backend.core import (AuthorizationError, BackendError,
                                      ConflictError, NotFoundError, TableQuery)
from finance_hub.backend.supabase import PostgrestGateway
from finance_hub.backend.supabase.postgrest import select_params

URL = "https://project.supabase.co"


def make_gateway(handler, **kwargs) -> tuple[PostgrestGateway, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    gateway = PostgrestGateway(URL, "anon-key", transport=httpx.MockTransport(record), **kwargs)
    return gateway, seen


def test_select_params():
    params = select_params(
        TableQuery(
            equals={"status": "active", "connection_id": None, "notifications": True},
            gte={"date": "2024-01-01"},
            lte={"date": "2024-01-31"},
            order_by="date",
            limit=30,
        )
    )
    assert params == [
        ("select", "*"),
        ("status", "eq.active"),
        ("connection_id", "is.null"),
        ("notifications", "eq.true"),
        ("date", "gte.2024-01-01"),
        ("date", "lte.2024-01-31"),
        ("order", "date.desc"),
        ("limit", "30"),
    ]


def test_select_sends_user_token_or_falls_back_to_api_key():
    token = {"value": None}
    gateway, seen = make_gateway(
        lambda request: httpx.Response(200, json=[{"id": "c1"}]),
        token_provider=lambda: token["value"],
    )

    async def scenario():
        await gateway.select("connections")
        token["value"] = "user-jwt"
        rows = await gateway.select("connections", TableQuery(equals={"status": "active"}))
        await gateway.close()
        return rows

    rows = asyncio.run(scenario())
    assert rows == [{"id": "c1"}]
    assert seen[0].headers["authorization"] == "Bearer anon-key"
    assert seen[1].headers["authorization"] == "Bearer user-jwt"
    assert seen[1].headers["apikey"] == "anon-key"
    assert seen[1].url.path == "/rest/v1/connections"
    assert seen[1].url.params["status"] == "eq.active"


def test_scoped_gateway_uses_given_token():
    gateway, seen = make_gateway(lambda request: httpx.Response(200, json=[]))

    async def scenario():
        await gateway.scoped("u1", "scoped-jwt").select("transactions")
        await gateway.close()

    asyncio.run(scenario())
    assert seen[0].headers["authorization"] == "Bearer scoped-jwt"


def test_upsert_sends_resolution_and_on_conflict():
    gateway, seen = make_gateway(lambda request: httpx.Response(201, json=[]))

    async def scenario():
        result = await gateway.upsert(
            "user_roles", {"user_id": "u1", "role": "admin"}, on_conflict="user_id,role"
        )
        await gateway.close()
        return result

    assert asyncio.run(scenario()) is None
    request = seen[0]
    assert request.method == "POST"
    assert request.url.params["on_conflict"] == "user_id,role"
    assert request.headers["prefer"] == "resolution=ignore-duplicates,return=representation"
    assert json.loads(request.content) == {"user_id": "u1", "role": "admin"}


def test_update_matches_and_returns_row():
    gateway, seen = make_gateway(
        lambda request: httpx.Response(200, json=[{"id": "c1", "status": "active"}])
    )

    async def scenario():
        row = await gateway.update("connections", {"id": "c1"}, {"status": "active"})
        await gateway.close()
        return row

    assert asyncio.run(scenario()) == {"id": "c1", "status": "active"}
    assert seen[0].method == "PATCH"
    assert seen[0].url.params["id"] == "eq.c1"


def test_update_of_invisible_row_is_not_found():
    gateway, _ = make_gateway(lambda request: httpx.Response(200, json=[]))
    with pytest.raises(NotFoundError):
        asyncio.run(gateway.delete("connections", {"id": "nope"}))


@pytest.mark.parametrize(
    "status, body, error_cls",
    [
        (409, {"code": "23505", "message": "duplicate key value violates unique constraint"}, ConflictError),
        (403, {"code": "42501", "message": "new row violates row-level security policy"}, AuthorizationError),
        (400, {"code": "22P02", "message": "invalid input syntax for type uuid"}, BackendError),
    ],
)
def test_errors_carry_backend_message(status, body, error_cls):
    gateway, _ = make_gateway(lambda request: httpx.Response(status, json=body))
    with pytest.raises(error_cls) as exc_info:
        asyncio.run(gateway.insert("user_roles", {"user_id": "u1", "role": "admin"}))
    assert exc_info.value.message == body["message"]
    assert exc_info.value.code == body["code"]
    assert exc_info.value.status == status


def test_network_failure_becomes_backend_error():
    def fail(request):
        raise httpx.ConnectError("connection refused", request=request)

    gateway, _ = make_gateway(fail)
    with pytest.raises(BackendError) as exc_info:
        asyncio.run(gateway.select("connections"))
    assert exc_info.value.code == "network"


def test_rpc_posts_params_and_decodes_result():
    gateway, seen = make_gateway(lambda request: httpx.Response(200, json="log-1"))

    async def scenario():
        result = await gateway.rpc(
            "log_security_event", {"event_type": "login_success", "description": "ok"}
        )
        await gateway.close()
        return result

    assert asyncio.run(scenario()) == "log-1"
    assert seen[0].url.path == "/rest/v1/rpc/log_security_event"
