import asyncio
import threading

import pytest

from finance_hub.backend.core import (AuthenticationError, AuthorizationError,
                                      BackendError, ConflictError,
                                      NotFoundError, TableQuery)
from finance_hub.backend.sql import SqlGateway


def connection(user_id: str, name: str) -> dict:
    return {"user_id": user_id, "name": name, "provider": "stripe", "status": "active"}


def test_scoped_gateway_only_sees_own_rows(sql_gateway):
    async def scenario():
        alice = sql_gateway.scoped("alice", "t1")
        bob = sql_gateway.scoped("bob", "t2")
        await alice.insert("connections", connection("alice", "Stripe"))
        await bob.insert("connections", connection("bob", "PayPal"))
        return await alice.select("connections"), await sql_gateway.select("connections")

    mine, everything = asyncio.run(scenario())
    assert [row["name"] for row in mine] == ["Stripe"]
    assert len(everything) == 2


def test_scoped_insert_for_another_user_is_rejected(sql_gateway):
    with pytest.raises(AuthorizationError) as exc_info:
        asyncio.run(sql_gateway.scoped("alice", "t").insert("connections", connection("bob", "X")))
    assert exc_info.value.code == "42501"


def test_scoped_insert_stamps_owner(sql_gateway):
    row = asyncio.run(
        sql_gateway.scoped("alice", "t").insert(
            "connections", {"name": "Wise", "provider": "wise"}
        )
    )
    assert row["user_id"] == "alice"
    assert row["status"] == "active"


def test_update_and_delete_of_invisible_row_raise_not_found(sql_gateway):
    async def scenario():
        row = await sql_gateway.insert("connections", connection("bob", "PayPal"))
        alice = sql_gateway.scoped("alice", "t")
        with pytest.raises(NotFoundError):
            await alice.update("connections", {"id": row["id"]}, {"name": "Mine now"})
        with pytest.raises(NotFoundError):
            await alice.delete("connections", {"id": row["id"]})
        return await sql_gateway.select_one("connections", {"id": row["id"]})

    assert asyncio.run(scenario())["name"] == "PayPal"


def test_select_filters_order_and_limit(sql_gateway):
    async def scenario():
        for day, amount, kind in (
            ("2024-01-01", 10.0, "deposit"),
            ("2024-01-10", 20.0, "withdrawal"),
            ("2024-02-01", 30.0, "deposit"),
        ):
            await sql_gateway.insert(
                "transactions",
                {
                    "user_id": "alice",
                    "date": day,
                    "description": f"tx {day}",
                    "amount": amount,
                    "type": kind,
                    "metadata": {"note": day},
                },
            )
        return await sql_gateway.select(
            "transactions",
            TableQuery(
                equals={"type": "deposit"},
                gte={"date": "2024-01-01"},
                lte={"date": "2024-01-31"},
                order_by="date",
            ),
        ), await sql_gateway.select("transactions", TableQuery(order_by="date", limit=2))

    january_deposits, newest = asyncio.run(scenario())
    assert [row["amount"] for row in january_deposits] == [10.0]
    assert january_deposits[0]["metadata"] == {"note": "2024-01-01"}
    assert [row["date"] for row in newest] == ["2024-02-01", "2024-01-10"]


def test_insert_duplicate_raises_conflict(sql_gateway):
    async def scenario():
        await sql_gateway.insert("user_roles", {"user_id": "alice", "role": "admin"})
        await sql_gateway.insert("user_roles", {"user_id": "alice", "role": "admin"})

    with pytest.raises(ConflictError):
        asyncio.run(scenario())


def test_upsert_ignores_or_merges_duplicates(sql_gateway):
    async def scenario():
        first = await sql_gateway.upsert(
            "user_profiles", {"id": "alice", "email": "a@x.io", "full_name": "A"}, on_conflict="id"
        )
        ignored = await sql_gateway.upsert(
            "user_profiles", {"id": "alice", "email": "a@x.io", "full_name": "B"}, on_conflict="id"
        )
        merged = await sql_gateway.upsert(
            "user_profiles",
            {"id": "alice", "email": "a@x.io", "full_name": "C"},
            on_conflict="id",
            ignore_duplicates=False,
        )
        role = await sql_gateway.upsert(
            "user_roles", {"user_id": "alice", "role": "admin"}, on_conflict="user_id,role"
        )
        role_again = await sql_gateway.upsert(
            "user_roles", {"user_id": "alice", "role": "admin"}, on_conflict="user_id,role"
        )
        return first, ignored, merged, role, role_again

    first, ignored, merged, role, role_again = asyncio.run(scenario())
    assert first["full_name"] == "A"
    assert ignored is None
    assert merged["full_name"] == "C"
    assert role["role"] == "admin"
    assert role_again is None


def test_admin_sees_every_profile_and_role(sql_gateway):
    async def scenario():
        for user in ("root", "alice"):
            await sql_gateway.insert("user_profiles", {"id": user, "email": f"{user}@x.io"})
            await sql_gateway.insert("user_roles", {"user_id": user, "role": "user"})
        await sql_gateway.insert("user_roles", {"user_id": "root", "role": "admin"})
        admin_view = await sql_gateway.scoped("root", "t").select("user_roles")
        user_view = await sql_gateway.scoped("alice", "t").select("user_roles")
        granted = await sql_gateway.scoped("root", "t").insert(
            "user_roles", {"user_id": "alice", "role": "moderator"}
        )
        return admin_view, user_view, granted

    admin_view, user_view, granted = asyncio.run(scenario())
    assert len(admin_view) == 3
    assert [row["user_id"] for row in user_view] == ["alice"]
    assert granted["user_id"] == "alice"


def test_invalid_values_raise_backend_error(sql_gateway):
    with pytest.raises(BackendError) as exc_info:
        asyncio.run(
            sql_gateway.insert(
                "transactions",
                {"user_id": "a", "date": "not a date", "description": "x", "amount": 1, "type": "deposit"},
            )
        )
    assert exc_info.value.code == "22P02"


def test_unknown_table_and_column(sql_gateway):
    with pytest.raises(NotFoundError):
        asyncio.run(sql_gateway.select("ledgers"))
    with pytest.raises(BackendError) as exc_info:
        asyncio.run(sql_gateway.select("connections", TableQuery(equals={"colour": "red"})))
    assert exc_info.value.code == "42703"


def test_rpc_logs_security_event_for_scoped_user(sql_gateway):
    async def scenario():
        log_id = await sql_gateway.scoped("alice", "t").rpc(
            "log_security_event",
            {"event_type": "login_success", "description": "ok", "ip_address": "1.2.3.4"},
        )
        return log_id, await sql_gateway.select("security_logs")

    log_id, rows = asyncio.run(scenario())
    assert rows[0]["id"] == log_id
    assert rows[0]["user_id"] == "alice"
    assert rows[0]["user_agent"] is None


def test_rpc_requires_user_and_known_function(sql_gateway):
    with pytest.raises(AuthenticationError):
        asyncio.run(sql_gateway.rpc("log_security_event", {"event_type": "x", "description": "y"}))
    with pytest.raises(NotFoundError):
        asyncio.run(sql_gateway.scoped("alice", "t").rpc("drop_everything", {}))


def test_queries_run_off_the_event_loop_thread(engine):
    threads = []

    class RecordingGateway(SqlGateway):
        def _select_sync(self, table, query):
            threads.append(threading.get_ident())
            return super()._select_sync(table, query)

    async def scenario():
        await RecordingGateway(engine).select("connections")
        return threading.get_ident()

    loop_thread = asyncio.run(scenario())
    assert threads and threads[0] != loop_thread
