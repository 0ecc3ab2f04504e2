"""Route guard: decides what a navigation renders given the auth state."""
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any

from finance_hub.routing.navigation import Navigator
from finance_hub.routing.routes import (HOME_PATH, LOGIN_PATH, CatchAll,
                                        Route, RouteTable, View,
                                        normalize_path)
from finance_hub.session.state import AuthState

logger = logging.getLogger(__name__)

RESTRICTED_NOTICE = "You do not have the permissions required to access this section."


class GuardOutcome(str, Enum):
    RESOLVING = "resolving"
    AUTHORIZED = "authorized"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    # signed-in user on an auth page, or an unknown path under the dashboard catch-all
    REDIRECTED = "redirected"


class ForbiddenMode(str, Enum):
    """How a missing role is reported: exactly one of the two, never both."""

    REDIRECT = "redirect"
    NOTICE = "notice"


@dataclass(frozen=True)
class GuardDecision:
    outcome: GuardOutcome
    path: str
    route: Route | None = None
    redirect_to: str | None = None
    redirect_state: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    notice: str | None = None

    @property
    def renders(self) -> bool:
        """True when the requested view itself is shown."""
        return self.outcome is GuardOutcome.AUTHORIZED


class RouteGuard:
    """Pure decision function over (path, AuthState)."""

    def __init__(
        self,
        routes: RouteTable | None = None,
        *,
        catch_all: CatchAll = CatchAll.NOT_FOUND,
        forbidden_mode: ForbiddenMode = ForbiddenMode.REDIRECT,
    ) -> None:
        self._routes = routes or RouteTable()
        self._catch_all = CatchAll(catch_all)
        self._forbidden_mode = ForbiddenMode(forbidden_mode)

    def _resolve(self, path: str) -> Route | None:
        route = self._routes.match(path)
        if route is None and self._catch_all is CatchAll.NOT_FOUND:
            route = Route(path, View.NOT_FOUND)
        return route

    def check(self, path: str, state: AuthState) -> GuardDecision:
        path = normalize_path(path)
        if state.is_loading:
            return GuardDecision(GuardOutcome.RESOLVING, path, self._routes.match(path))

        route = self._resolve(path)
        if route is None:
            return GuardDecision(GuardOutcome.REDIRECTED, path, redirect_to=HOME_PATH)

        if route.is_auth_page:
            if state.is_authenticated:
                return GuardDecision(GuardOutcome.REDIRECTED, path, route, redirect_to=HOME_PATH)
            return GuardDecision(GuardOutcome.AUTHORIZED, path, route)

        if route.requires_auth and not state.is_authenticated:
            return GuardDecision(
                GuardOutcome.UNAUTHORIZED,
                path,
                route,
                redirect_to=LOGIN_PATH,
                redirect_state=MappingProxyType({"from": path}),
            )

        if route.role is not None and not state.has_role(route.role):
            if self._forbidden_mode is ForbiddenMode.NOTICE:
                return GuardDecision(GuardOutcome.FORBIDDEN, path, route, notice=RESTRICTED_NOTICE)
            return GuardDecision(GuardOutcome.FORBIDDEN, path, route, redirect_to=HOME_PATH)

        return GuardDecision(GuardOutcome.AUTHORIZED, path, route)


class Router:
    """Applies guard decisions to the navigator.

    Re-evaluates the current location whenever the auth state changes, so
    signing out anywhere lands on the login page and signing in on an auth
    page lands on the dashboard.
    """

    def __init__(
        self,
        state_provider: Callable[[], AuthState],
        navigator: Navigator,
        guard: RouteGuard | None = None,
    ) -> None:
        self._state = state_provider
        self._navigator = navigator
        self._guard = guard or RouteGuard()
        self.current: GuardDecision | None = None

    @property
    def navigator(self) -> Navigator:
        return self._navigator

    def navigate(self, path: str, *, state: Mapping[str, Any] | None = None) -> GuardDecision:
        self._navigator.navigate(path, state=state)
        return self.evaluate()

    def evaluate(self) -> GuardDecision:
        """Decide for the current location and follow a redirect, if any."""
        decision = self._guard.check(self._navigator.location.path, self._state())
        if decision.route is not None and decision.route.is_auth_page and decision.redirect_to:
            # leaving the login page: honour the page the user was bounced from
            decision = replace(
                decision, redirect_to=self._navigator.return_path(decision.redirect_to)
            )
        if decision.redirect_to is not None:
            logger.debug(
                "Guard %s on %s, redirecting to %s",
                decision.outcome.value,
                decision.path,
                decision.redirect_to,
            )
            self._navigator.navigate(
                decision.redirect_to, state=decision.redirect_state, replace=True
            )
        self.current = decision
        return decision

    def on_state_change(self, state: AuthState) -> None:  # pylint: disable=unused-argument
        self.evaluate()
