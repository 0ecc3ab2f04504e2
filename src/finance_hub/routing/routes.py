"""Client route table."""
from dataclasses import dataclass
from enum import Enum

from finance_hub.db import Role

LOGIN_PATH = "/auth/login"
SIGNUP_PATH = "/auth/signup"
HOME_PATH = "/"


class View(str, Enum):
    DASHBOARD = "dashboard"
    CONNECTIONS = "connections"
    TRANSACTIONS = "transactions"
    AUTOMATIONS = "automations"
    SETTINGS = "settings"
    SECURITY = "security"
    USER_MANAGEMENT = "user_management"
    CREATE_ADMIN = "create_admin"
    LOGIN = "login"
    SIGNUP = "signup"
    NOT_FOUND = "not_found"


class CatchAll(str, Enum):
    """What an unknown path resolves to."""

    DASHBOARD = "dashboard"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Route:
    path: str
    view: View
    requires_auth: bool = True
    role: Role | None = None

    @property
    def is_auth_page(self) -> bool:
        return self.view in (View.LOGIN, View.SIGNUP)


ROUTES: tuple[Route, ...] = (
    Route(HOME_PATH, View.DASHBOARD),
    Route("/connections", View.CONNECTIONS),
    Route("/transactions", View.TRANSACTIONS),
    Route("/automations", View.AUTOMATIONS),
    Route("/settings", View.SETTINGS),
    Route("/security", View.SECURITY),
    Route("/admin/users", View.USER_MANAGEMENT, role=Role.ADMIN),
    Route("/admin/create-admin", View.CREATE_ADMIN, role=Role.ADMIN),
    Route("/auth", View.LOGIN, requires_auth=False),
    Route(LOGIN_PATH, View.LOGIN, requires_auth=False),
    Route(SIGNUP_PATH, View.SIGNUP, requires_auth=False),
)


def normalize_path(path: str) -> str:
    """Drop query string, fragment and trailing slash."""
    path = path.split("?", 1)[0].split("#", 1)[0] or HOME_PATH
    if len(path) > 1:
        path = path.rstrip("/") or HOME_PATH
    return path if path.startswith("/") else f"/{path}"


class RouteTable:
    """Exact-path lookup over the route table."""

    def __init__(self, routes: tuple[Route, ...] = ROUTES) -> None:
        self._by_path = {route.path: route for route in routes}

    def match(self, path: str) -> Route | None:
        return self._by_path.get(normalize_path(path))

    def __iter__(self):  # noqa: ANN204
        return iter(self._by_path.values())
