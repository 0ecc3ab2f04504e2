import asyncio
import time

import pytest
from dependency_injector import providers

from finance_hub.backend.core import AuthenticationError
from finance_hub.container import Container, load_config
from finance_hub.routing import GuardOutcome
from finance_hub.routing.routes import LOGIN_PATH


def make_container(engine, auth) -> Container:
    container = Container()
    load_config(container)
    container.config.from_dict({"data_backend": "sql", "sync_delay_seconds": 0.0})
    container.engine.override(providers.Object(engine))
    container.auth_gateway.override(providers.Object(auth))
    return container


def test_client_routes_follow_the_session(engine, auth):
    container = make_container(engine, auth)
    hub = container.hub_client()
    auth.add_user("ana@example.com", "s3cret!", "Ana")

    async def scenario():
        async with hub:
            signed_out = hub.router.current
            hub.router.navigate("/connections")
            await hub.store.login("ana@example.com", "s3cret!")
            # the store moved to the return path; a front end re-evaluates on navigation
            after_login = hub.router.evaluate()
            created = await hub.connections.create({"name": "Stripe", "provider": "stripe"})
            listed = await hub.connections.list()
            await hub.store.logout()
            after_logout = hub.router.current
        return signed_out, after_login, created, listed, after_logout

    signed_out, after_login, created, listed, after_logout = asyncio.run(scenario())
    assert signed_out.outcome is GuardOutcome.AUTHORIZED
    assert signed_out.path == LOGIN_PATH
    assert after_login.outcome is GuardOutcome.AUTHORIZED
    assert after_login.path == "/connections"
    assert [c.id for c in listed] == [created.id]
    assert after_logout.outcome is GuardOutcome.UNAUTHORIZED
    assert hub.router.navigator.location.path == LOGIN_PATH
    assert hub.state.user is None


def test_container_shares_cache_and_notifier(engine, auth):
    container = make_container(engine, auth)
    assert container.connection_service()._cache is container.session_store()._cache
    assert container.hub_client().notifier is container.notifier()


def test_session_that_cannot_be_refreshed_returns_user_to_login(engine, auth, monkeypatch, eventually):
    container = make_container(engine, auth)
    hub = container.hub_client()
    auth.add_user("ana@example.com", "s3cret!", "Ana")

    async def refuse():
        raise AuthenticationError("Invalid Refresh Token: Refresh Token Not Found", status=400)

    monkeypatch.setattr(auth, "refresh_session", refuse)

    async def scenario():
        async with hub:
            await hub.store.login("ana@example.com", "s3cret!")
            hub.router.navigate("/connections")
            auth.current_session.expires_at = int(time.time()) - 100
            with pytest.raises(AuthenticationError):
                await hub.connections.list()
            await eventually(lambda: not hub.state.is_authenticated)

    asyncio.run(scenario())
    navigator = hub.router.navigator
    assert hub.router.current.outcome is GuardOutcome.UNAUTHORIZED
    assert navigator.location.path == LOGIN_PATH
    assert navigator.return_path() == "/connections"
    assert hub.notifier.last.title == "Your session has expired"
