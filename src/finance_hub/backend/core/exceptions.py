"""Typed errors raised by backend gateways.

Gateways translate transport and database failures into these so services and
routers never depend on httpx or SQLAlchemy exception types. The message is the
backend's own text and is surfaced to users verbatim.
"""


class BackendError(Exception):
    """A backend call failed."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status


class AuthenticationError(BackendError):
    """Invalid credentials, or a missing or expired session."""


class AuthorizationError(BackendError):
    """The caller is authenticated but lacks permission (row policy or role)."""


class NotFoundError(BackendError):
    """The requested row does not exist or is not visible to the caller."""


class ConflictError(BackendError):
    """A unique constraint rejected the write."""


def error_for_status(
    status: int, message: str, code: str | None = None
) -> BackendError:
    """Pick the BackendError subclass matching an HTTP status."""
    if status == 401:
        cls: type[BackendError] = AuthenticationError
    elif status == 403:
        cls = AuthorizationError
    elif status in (404, 406):
        cls = NotFoundError
    elif status == 409:
        cls = ConflictError
    else:
        cls = BackendError
    return cls(message, code=code, status=status)
