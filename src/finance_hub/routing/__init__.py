"""Client-side routing: route table, navigation history and the route guard."""
from finance_hub.routing.guard import (ForbiddenMode, GuardDecision,
                                       GuardOutcome, RouteGuard, Router)
from finance_hub.routing.navigation import Location, Navigator
from finance_hub.routing.routes import (HOME_PATH, LOGIN_PATH, ROUTES,
                                        SIGNUP_PATH, CatchAll, Route,
                                        RouteTable, View)

__all__ = [
    "CatchAll",
    "ForbiddenMode",
    "GuardDecision",
    "GuardOutcome",
    "HOME_PATH",
    "LOGIN_PATH",
    "Location",
    "Navigator",
    "ROUTES",
    "Route",
    "RouteGuard",
    "RouteTable",
    "Router",
    "SIGNUP_PATH",
    "View",
]
