"""Domain concept for mapping backend exceptions to HTTP responses."""
import asyncio
from dataclasses import dataclass

import httpx

from finance_hub.backend.core.exceptions import (AuthenticationError,
                                                 AuthorizationError,
                                                 BackendError, ConflictError,
                                                 NotFoundError)


@dataclass(frozen=True)
class BackendErrorMapper:
    """Maps backend exceptions to HTTP (status_code, message).

    Inject one per handler so messages name the right resource and upstream.
    """

    resource_name: str = "Resource"
    api_name: str = "Backend"

    def to_http(self, exc: Exception) -> tuple[int, str]:
        """Map an exception to (status_code, message) for an HTTP response.

        Backend messages are passed through verbatim; transport failures get a
        generic message naming the upstream.
        """
        if isinstance(exc, AuthenticationError):
            return (401, exc.message)
        if isinstance(exc, AuthorizationError):
            return (403, exc.message)
        if isinstance(exc, NotFoundError):
            return (404, exc.message or f"{self.resource_name} not found")
        if isinstance(exc, ConflictError):
            return (409, exc.message)
        if isinstance(exc, BackendError):
            return (500, exc.message)
        if isinstance(exc, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException)):
            return (504, f"Request to {self.api_name} timed out")
        if isinstance(exc, httpx.HTTPError):
            return (502, f"{self.api_name} error")
        return (500, "Internal server error")
