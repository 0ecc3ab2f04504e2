"""Core backend abstractions."""
from finance_hub.backend.core.auth_gateway_abc import AuthGatewayABC
from finance_hub.backend.core.data_gateway_abc import DataGatewayABC, Row
from finance_hub.backend.core.error_mapper import BackendErrorMapper
from finance_hub.backend.core.events import SessionEventBus, Subscription
from finance_hub.backend.core.exceptions import (AuthenticationError,
                                                 AuthorizationError,
                                                 BackendError, ConflictError,
                                                 NotFoundError,
                                                 error_for_status)
from finance_hub.backend.core.query import TableQuery
from finance_hub.backend.core.storage import (FileSessionStorage,
                                              MemorySessionStorage,
                                              SessionStorage)

__all__ = [
    "AuthGatewayABC",
    "AuthenticationError",
    "AuthorizationError",
    "BackendError",
    "BackendErrorMapper",
    "ConflictError",
    "DataGatewayABC",
    "FileSessionStorage",
    "MemorySessionStorage",
    "NotFoundError",
    "Row",
    "SessionEventBus",
    "SessionStorage",
    "Subscription",
    "TableQuery",
    "error_for_status",
]
