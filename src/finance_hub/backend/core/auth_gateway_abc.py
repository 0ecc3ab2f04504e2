"""Abstract base class for auth backends."""
import logging
from abc import ABC, abstractmethod
from typing import Any

from finance_hub.backend.core.events import SessionEventBus, Subscription
from finance_hub.backend.core.exceptions import AuthenticationError
from finance_hub.schemas import (AuthChangeEvent, AuthSession, AuthUser,
                                 SessionEvent)

logger = logging.getLogger(__name__)


class AuthGatewayABC(ABC):
    """Base interface for the authentication backend.

    Holds the current session for one client and publishes session-change
    events (sign-in, sign-out, token refresh) on its event bus. Subclasses
    must call super().__init__() and use _set_session() to change the session
    so subscribers are notified.
    """

    def __init__(self) -> None:
        self._session: AuthSession | None = None
        self.events = SessionEventBus()

    @property
    def current_session(self) -> AuthSession | None:
        return self._session

    def access_token(self) -> str | None:
        """Bearer token of the current session, if any."""
        return self._session.access_token if self._session else None

    def current_user_id(self) -> str | None:
        return self._session.user.id if self._session else None

    def subscribe(self) -> Subscription:
        """Subscribe to session-change events. Call unsubscribe() to stop."""
        return self.events.subscribe()

    def _set_session(
        self, session: AuthSession | None, event: AuthChangeEvent
    ) -> None:
        self._session = session
        self.events.publish(SessionEvent(event=event, session=session))

    def expire_session(self) -> None:
        """Drop the current session locally and publish SIGNED_OUT.

        Used when the backend no longer accepts the session; no backend call
        is made. Does nothing when nobody is signed in.
        """
        if self._session is not None:
            self._set_session(None, AuthChangeEvent.SIGNED_OUT)

    async def ensure_fresh_session(self) -> AuthSession | None:
        """The current session, refreshed first if its access token has expired.

        A session that cannot be refreshed is expired (SIGNED_OUT is
        published) and None is returned.
        """
        session = self._session
        if session is None or not session.is_expired():
            return session
        if session.refresh_token:
            try:
                return await self.refresh_session()
            except AuthenticationError as exc:
                logger.warning("Expired session could not be refreshed: %s", exc.message)
        self.expire_session()
        return None

    @abstractmethod
    async def get_session(self) -> AuthSession | None:
        """Return the persisted session, refreshing it if it has expired.

        Returns:
            The current session, or None when nobody is signed in.
        """

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """Exchange credentials for a session.

        Raises:
            AuthenticationError: The credentials were rejected.
        """

    @abstractmethod
    async def sign_up(
        self, email: str, password: str, metadata: dict[str, Any] | None = None
    ) -> AuthUser:
        """Request account creation. Does not sign the user in."""

    @abstractmethod
    async def sign_out(self) -> None:
        """Invalidate the current session on the backend and locally."""

    @abstractmethod
    async def refresh_session(self) -> AuthSession:
        """Trade the refresh token for a new access token."""

    @abstractmethod
    async def get_user(self, access_token: str) -> AuthUser:
        """Validate an access token and return its user.

        Raises:
            AuthenticationError: The token is missing, invalid or expired.
        """

    @abstractmethod
    async def admin_create_user(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any] | None = None,
        *,
        email_confirm: bool = True,
    ) -> AuthUser:
        """Create an account with service-role privileges."""

    async def close(self) -> None:
        """Clean up resources (connections, clients).

        Override in subclasses if cleanup is needed.
        """

    async def __aenter__(self) -> "AuthGatewayABC":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.close()
