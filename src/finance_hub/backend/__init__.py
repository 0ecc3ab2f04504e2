"""Backend gateways: abstractions plus Supabase and local SQL implementations."""
from finance_hub.backend.core import (AuthenticationError, AuthGatewayABC,
                                      AuthorizationError, BackendError,
                                      BackendErrorMapper, ConflictError,
                                      DataGatewayABC, NotFoundError,
                                      TableQuery)
from finance_hub.backend.sql import SqlGateway
from finance_hub.backend.supabase import PostgrestGateway, SupabaseAuthGateway

__all__ = [
    "AuthGatewayABC",
    "AuthenticationError",
    "AuthorizationError",
    "BackendError",
    "BackendErrorMapper",
    "ConflictError",
    "DataGatewayABC",
    "NotFoundError",
    "PostgrestGateway",
    "SqlGateway",
    "SupabaseAuthGateway",
    "TableQuery",
]
