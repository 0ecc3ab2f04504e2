"""Shared fixtures: an in-memory SQL backend and a fake auth backend."""
import asyncio
import itertools
import uuid
from typing import Any

import pytest

from finance_hub.backend.core import (AuthenticationError, AuthGatewayABC,
                                      BackendError, ConflictError)
from finance_hub.backend.sql import SqlGateway
from finance_hub.db.sessions import init_db, make_engine
from finance_hub.notifications import Notifier
from finance_hub.routing import Navigator
from finance_hub.schemas import AuthChangeEvent, AuthSession, AuthUser
from finance_hub.services import QueryCache, UserProvisioner
from finance_hub.session import SessionStore


class FakeAuthGateway(AuthGatewayABC):
    """In-memory auth backend with the same session-event behaviour as the real one."""

    def __init__(self) -> None:
        super().__init__()
        self._accounts: dict[str, tuple[str, AuthUser]] = {}
        self._tokens: dict[str, AuthUser] = {}
        self._counter = itertools.count(1)
        self.admin_created: list[str] = []

    def add_user(self, email: str, password: str, full_name: str = "") -> AuthUser:
        user = AuthUser(id=str(uuid.uuid4()), email=email, user_metadata={"full_name": full_name})
        self._accounts[email] = (password, user)
        return user

    def issue_token(self, user: AuthUser) -> str:
        token = f"token-{next(self._counter)}"
        self._tokens[token] = user
        return token

    def _new_session(self, user: AuthUser) -> AuthSession:
        return AuthSession(
            access_token=self.issue_token(user),
            refresh_token=f"refresh-{user.id}",
            expires_in=3600,
            user=user,
        )

    async def get_session(self) -> AuthSession | None:
        return self._session

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        account = self._accounts.get(email)
        if account is None or account[0] != password:
            raise AuthenticationError("Invalid login credentials", code="invalid_grant", status=400)
        session = self._new_session(account[1])
        self._set_session(session, AuthChangeEvent.SIGNED_IN)
        return session

    async def sign_up(self, email: str, password: str, metadata: dict[str, Any] | None = None) -> AuthUser:
        if email in self._accounts:
            raise ConflictError("User already registered", code="user_already_exists", status=422)
        return self.add_user(email, password, (metadata or {}).get("full_name", ""))

    async def sign_out(self) -> None:
        self._set_session(None, AuthChangeEvent.SIGNED_OUT)

    async def refresh_session(self) -> AuthSession:
        if self._session is None:
            raise AuthenticationError("No session to refresh", code="session_missing")
        session = self._new_session(self._session.user)
        self._set_session(session, AuthChangeEvent.TOKEN_REFRESHED)
        return session

    async def get_user(self, access_token: str) -> AuthUser:
        user = self._tokens.get(access_token)
        if user is None:
            raise AuthenticationError("invalid JWT: unable to parse or verify signature", status=401)
        return user

    async def admin_create_user(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any] | None = None,
        *,
        email_confirm: bool = True,
    ) -> AuthUser:
        if email in self._accounts:
            raise BackendError("A user with this email address has already been registered", status=422)
        self.admin_created.append(email)
        return self.add_user(email, password, (metadata or {}).get("full_name", ""))


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_gateway(engine) -> SqlGateway:
    return SqlGateway(engine)


@pytest.fixture
def auth() -> FakeAuthGateway:
    return FakeAuthGateway()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def navigator() -> Navigator:
    return Navigator()


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache()


@pytest.fixture
def store(auth, sql_gateway, notifier, navigator, cache) -> SessionStore:
    return SessionStore(
        auth, sql_gateway, UserProvisioner(sql_gateway), notifier, navigator, cache
    )


@pytest.fixture
def signed_in(auth):
    """Register a user and sign them in on the fake auth backend; returns the session."""

    async def _sign_in(email: str = "ana@example.com", password: str = "s3cret!", full_name: str = "Ana"):
        auth.add_user(email, password, full_name)
        return await auth.sign_in_with_password(email, password)

    return _sign_in


@pytest.fixture
def eventually():
    """Await until ``predicate()`` holds; session events are handled by a background task."""

    async def _wait(predicate, timeout: float = 2.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached in time")
            await asyncio.sleep(0.01)

    return _wait
