"""Session/identity store: the signed-in user, their profile, roles and settings.

The store is the single owner of auth state on the client side. It rehydrates
from the persisted session on start, again on every session-change event
published by the auth gateway, and exposes login/signup/logout/profile
operations that keep notifications and navigation consistent.
"""
import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace

import httpx

from finance_hub.backend.core import (AuthenticationError, AuthGatewayABC,
                                      BackendError, DataGatewayABC,
                                      Subscription, TableQuery)
from finance_hub.notifications import Notifier
from finance_hub.routing.navigation import Navigator
from finance_hub.routing.routes import HOME_PATH, LOGIN_PATH, SIGNUP_PATH
from finance_hub.schemas import (AuthSession, AuthUser, ProfileUpdate,
                                 UserProfileRead, UserRoleRead,
                                 UserSettingsRead)
from finance_hub.services.cache import QueryCache
from finance_hub.services.provisioning import UserProvisioner
from finance_hub.services.resource_service import SESSION_EXPIRED
from finance_hub.session.state import AuthState

logger = logging.getLogger(__name__)

AUDIT_IP_ADDRESS = "client-side"
AUDIT_USER_AGENT = "finance-hub"

StateListener = Callable[[AuthState], None]


class SessionStore:
    """Holds the current AuthState and keeps it in sync with the auth backend."""

    def __init__(
        self,
        auth: AuthGatewayABC,
        data: DataGatewayABC,
        provisioner: UserProvisioner,
        notifier: Notifier,
        navigator: Navigator,
        cache: QueryCache | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            auth: Auth gateway (session source and event publisher).
            data: Data gateway; scoped to the user for every read.
            provisioner: Creates missing profile/settings rows.
            notifier: Sink for user-facing notifications.
            navigator: Location history; login/logout navigate through it.
            cache: Query cache to clear when the user changes.
        """
        self._auth = auth
        self._data = data
        self._provisioner = provisioner
        self._notifier = notifier
        self._navigator = navigator
        self._cache = cache
        self._state = AuthState()
        self._listeners: list[StateListener] = []
        self._subscription: Subscription | None = None
        self._follower: asyncio.Task | None = None
        self._rehydrated: AuthSession | None = None

    @property
    def state(self) -> AuthState:
        return self._state

    def has_role(self, role: str) -> bool:
        return self._state.has_role(role)

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` after every state change; returns a remover."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _set(self, state: AuthState) -> None:
        previous = self._state
        self._state = state
        if self._cache is not None and _user_id(previous) != _user_id(state):
            self._cache.clear()
        for listener in list(self._listeners):
            listener(state)

    # ---- lifecycle ----
    async def start(self) -> AuthState:
        """Rehydrate from the persisted session, then follow session-change events."""
        try:
            session = await self._auth.get_session()
        except BackendError as exc:
            logger.warning("Could not read the persisted session: %s", exc.message)
            session = None
        await self.refresh(session)
        if self._subscription is None:
            self._subscription = self._auth.subscribe()
            self._follower = asyncio.create_task(self._follow(self._subscription))
        return self._state

    async def stop(self) -> None:
        """Unsubscribe from session events and wait for the follower to finish."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._follower is not None:
            await self._follower
            self._follower = None

    async def _follow(self, subscription: Subscription) -> None:
        async for event in subscription:
            if event.session is not self._auth.current_session:
                # superseded by a later session change
                continue
            if event.session is not None and event.session is self._rehydrated:
                # login already rehydrated from this session
                continue
            logger.debug("Rehydrating after %s", event.event.value)
            try:
                await self.refresh(event.session)
            except Exception as exc:  # pylint: disable=broad-except
                logger.exception("Rehydration after %s failed", event.event.value)
                self._set(AuthState(is_loading=False, error=exc))

    # ---- rehydration ----
    async def refresh(self, session: AuthSession | None) -> AuthState:
        """Rebuild the state from ``session``.

        Missing profile or settings rows are provisioned. Any failure leaves
        the store signed out with ``error`` set; nothing is retried.
        """
        self._rehydrated = session
        if session is None:
            self._set(AuthState(is_loading=False))
            return self._state

        user = session.user
        gateway = self._data.scoped(user.id, session.access_token)
        try:
            profile_row = await gateway.select_one("user_profiles", {"id": user.id})
            role_rows = await gateway.select(
                "user_roles",
                TableQuery(equals={"user_id": user.id}, order_by="created_at", descending=False),
            )
            settings_row = await gateway.select_one("settings", {"user_id": user.id})

            if profile_row is None or settings_row is None:
                result = await self._provisioner.ensure_rows(
                    user.id, user.email, user.full_name, access_token=session.access_token
                )
                if result.profile_created:
                    await self._audit(session, "profile_created", "Profile created automatically")
                profile_row = profile_row or await gateway.select_one(
                    "user_profiles", {"id": user.id}
                )
                settings_row = settings_row or await gateway.select_one(
                    "settings", {"user_id": user.id}
                )
        except BackendError as exc:
            logger.warning("Could not load data for user %s: %s", user.id, exc.message)
            self._set(AuthState(is_loading=False, error=exc))
            return self._state

        self._set(
            AuthState(
                user=user,
                profile=(
                    UserProfileRead.model_validate(profile_row)
                    if profile_row
                    else UserProfileRead(id=user.id, email=user.email or "", full_name=user.full_name)
                ),
                roles=tuple(UserRoleRead.model_validate(row) for row in role_rows),
                settings=(
                    UserSettingsRead.model_validate(settings_row)
                    if settings_row
                    else UserSettingsRead(user_id=user.id)
                ),
                is_loading=False,
                error=None,
            )
        )
        return self._state

    async def _audit(self, session: AuthSession, event_type: str, description: str) -> None:
        """Append a security log entry; failures are logged and never propagate."""
        gateway = self._data.scoped(session.user.id, session.access_token)
        try:
            await gateway.rpc(
                "log_security_event",
                {
                    "event_type": event_type,
                    "description": description,
                    "ip_address": AUDIT_IP_ADDRESS,
                    "user_agent": AUDIT_USER_AGENT,
                },
            )
        except (BackendError, httpx.HTTPError) as exc:
            logger.warning("Could not record %s event: %s", event_type, exc)

    # ---- user operations ----
    async def login(self, email: str, password: str) -> AuthState:
        """Sign in, rehydrate, record one login_success event and go to the return path.

        Raises:
            BackendError: The backend rejected the sign-in; its message is notified.
        """
        target = self._navigator.return_path(HOME_PATH)
        if target in (LOGIN_PATH, SIGNUP_PATH):
            target = HOME_PATH
        self._set(replace(self._state, is_loading=True))
        try:
            session = await self._auth.sign_in_with_password(email, password)
        except BackendError as exc:
            logger.info("Sign-in failed for %s: %s", email, exc.message)
            self._set(replace(self._state, is_loading=False, error=exc))
            self._notifier.error("Sign-in failed", exc.message)
            raise

        await self.refresh(session)
        if self._state.user is None:
            self._notifier.error("Could not load your account", self._state.error_message)
            return self._state

        await self._audit(session, "login_success", "Signed in successfully")
        self._notifier.success("Signed in")
        self._navigator.navigate(target, replace=True)
        return self._state

    async def signup(self, email: str, password: str, display_name: str | None = None) -> AuthUser:
        """Request an account. Does not sign in; sends the user to the login page."""
        self._set(replace(self._state, is_loading=True))
        try:
            user = await self._auth.sign_up(email, password, {"full_name": display_name or ""})
        except BackendError as exc:
            logger.info("Sign-up failed for %s: %s", email, exc.message)
            self._set(replace(self._state, is_loading=False, error=exc))
            self._notifier.error("Sign-up failed", exc.message)
            raise
        self._set(replace(self._state, is_loading=False, error=None))
        self._notifier.success(
            "Account created",
            "Confirm your email address if asked to, then sign in.",
        )
        self._navigator.navigate(LOGIN_PATH)
        return user

    async def logout(self) -> None:
        try:
            await self._auth.sign_out()
        except BackendError as exc:
            self._notifier.error("Sign-out failed", exc.message)
            raise
        self._set(AuthState(is_loading=False))
        self._notifier.success("Signed out")
        self._navigator.navigate(LOGIN_PATH)

    async def update_profile(self, **fields: str | None) -> UserProfileRead:
        """Update the caller's full_name and/or avatar_url.

        The cached profile is replaced by the row the backend returns.

        Raises:
            AuthenticationError: Nobody is signed in.
            pydantic.ValidationError: A field other than full_name/avatar_url was given.
        """
        changes = ProfileUpdate(**fields)
        if self._state.user is None:
            raise AuthenticationError("Not authenticated", code="session_missing", status=401)
        session = await self._auth.ensure_fresh_session()
        if session is None:
            self._notifier.error("Your session has expired", SESSION_EXPIRED)
            raise AuthenticationError(SESSION_EXPIRED, code="session_expired", status=401)
        gateway = self._data.scoped(session.user.id, session.access_token)
        try:
            row = await gateway.update(
                "user_profiles",
                {"id": session.user.id},
                changes.model_dump(mode="json", exclude_unset=True),
            )
        except AuthenticationError as exc:
            self._notifier.error("Your session has expired", exc.message)
            self._auth.expire_session()
            raise
        except BackendError as exc:
            self._notifier.error("Could not update profile", exc.message)
            raise
        profile = UserProfileRead.model_validate(row)
        self._set(replace(self._state, profile=profile))
        self._notifier.success("Profile updated")
        return profile


def _user_id(state: AuthState) -> str | None:
    return state.user.id if state.user else None
