"""Supabase auth (GoTrue) gateway."""
import logging
from typing import Any

import httpx

from finance_hub.backend.core import (AuthenticationError, AuthGatewayABC,
                                      AuthorizationError,
                                      MemorySessionStorage, SessionStorage)
from finance_hub.backend.supabase.http import send
from finance_hub.schemas import AuthChangeEvent, AuthSession, AuthUser

logger = logging.getLogger(__name__)


class SupabaseAuthGateway(AuthGatewayABC):
    """Auth gateway for a Supabase project via the GoTrue REST API.

    Keeps the session in a SessionStorage (memory by default) so it survives
    restarts when a file storage is configured, and publishes SIGNED_IN,
    SIGNED_OUT and TOKEN_REFRESHED events like the platform's own SDK.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        service_role_key: str | None = None,
        storage: SessionStorage | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the auth gateway.

        Args:
            url: Project URL, e.g. https://xyz.supabase.co.
            api_key: Public (anon) API key.
            service_role_key: Service-role key; required for admin_create_user.
            storage: Where the session is persisted between runs.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        super().__init__()
        self._service_role_key = service_role_key
        self._storage = storage or MemorySessionStorage()
        self._client = httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/auth/v1",
            headers={"apikey": api_key, "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def get_session(self) -> AuthSession | None:
        session = self._session or self._storage.load()
        if session is None:
            return None
        self._session = session
        if session.is_expired() and session.refresh_token:
            try:
                return await self.refresh_session()
            except AuthenticationError as exc:
                logger.warning("Stored session could not be refreshed: %s", exc.message)
                self.expire_session()
                return None
        return session

    def expire_session(self) -> None:
        self._storage.clear()
        super().expire_session()

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        response = await send(
            self._client,
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            bad_request_cls=AuthenticationError,
        )
        session = AuthSession.model_validate(response.json())
        self._storage.save(session)
        self._set_session(session, AuthChangeEvent.SIGNED_IN)
        return session

    async def sign_up(
        self, email: str, password: str, metadata: dict[str, Any] | None = None
    ) -> AuthUser:
        response = await send(
            self._client,
            "POST",
            "/signup",
            json={"email": email, "password": password, "data": metadata or {}},
        )
        data = response.json()
        # With auto-confirm GoTrue answers with a session; only the user is kept.
        return AuthUser.model_validate(data.get("user") or data)

    async def sign_out(self) -> None:
        token = self.access_token()
        try:
            if token:
                await send(
                    self._client,
                    "POST",
                    "/logout",
                    headers={"Authorization": f"Bearer {token}"},
                )
        except AuthenticationError as exc:
            logger.debug("Session already invalid on sign-out: %s", exc.message)
        finally:
            self._storage.clear()
            self._set_session(None, AuthChangeEvent.SIGNED_OUT)

    async def refresh_session(self) -> AuthSession:
        current = self._session or self._storage.load()
        if current is None or not current.refresh_token:
            raise AuthenticationError("No session to refresh", code="session_missing")
        response = await send(
            self._client,
            "POST",
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": current.refresh_token},
            bad_request_cls=AuthenticationError,
        )
        session = AuthSession.model_validate(response.json())
        self._storage.save(session)
        self._set_session(session, AuthChangeEvent.TOKEN_REFRESHED)
        return session

    async def get_user(self, access_token: str) -> AuthUser:
        if not access_token:
            raise AuthenticationError("Missing access token", code="no_authorization", status=401)
        response = await send(
            self._client,
            "GET",
            "/user",
            headers={"Authorization": f"Bearer {access_token}"},
            bad_request_cls=AuthenticationError,
        )
        return AuthUser.model_validate(response.json())

    async def admin_create_user(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any] | None = None,
        *,
        email_confirm: bool = True,
    ) -> AuthUser:
        if not self._service_role_key:
            raise AuthorizationError("Service role key is not configured", status=403)
        response = await send(
            self._client,
            "POST",
            "/admin/users",
            headers={
                "apikey": self._service_role_key,
                "Authorization": f"Bearer {self._service_role_key}",
            },
            json={
                "email": email,
                "password": password,
                "email_confirm": email_confirm,
                "user_metadata": metadata or {},
            },
        )
        data = response.json()
        return AuthUser.model_validate(data.get("user") or data)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
