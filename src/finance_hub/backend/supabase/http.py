"""HTTP helpers shared by the Supabase gateways: send and translate errors."""
import logging
from typing import Any

import httpx

from finance_hub.backend.core import BackendError, error_for_status

logger = logging.getLogger(__name__)


def error_from_response(
    response: httpx.Response,
    bad_request_cls: type[BackendError] | None = None,
) -> BackendError:
    """Build a typed BackendError carrying the backend's own message.

    GoTrue reports errors as ``msg``/``error_description``/``error``; PostgREST
    as ``message`` + ``code``. ``bad_request_cls`` lets auth endpoints report
    a 400 (e.g. invalid_grant) as an AuthenticationError.
    """
    try:
        body: Any = response.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        body = {}
    message = (
        body.get("message")
        or body.get("msg")
        or body.get("error_description")
        or body.get("error")
        or response.text
        or response.reason_phrase
    )
    raw_code = body.get("code") or body.get("error_code") or body.get("error")
    code = str(raw_code) if raw_code is not None else None
    status = response.status_code
    if bad_request_cls is not None and status in (400, 422):
        return bad_request_cls(message, code=code, status=status)
    return error_for_status(status, message, code)


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    bad_request_cls: type[BackendError] | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request; raise BackendError for transport failures and non-2xx responses."""
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as exc:
        raise BackendError("Request to backend timed out", code="timeout") from exc
    except httpx.TransportError as exc:
        raise BackendError(str(exc) or "Network error", code="network") from exc
    if response.is_success:
        return response
    error = error_from_response(response, bad_request_cls)
    logger.debug(
        "%s %s failed with %s: %s", method, url, response.status_code, error.message
    )
    raise error


def json_or_none(response: httpx.Response) -> Any:
    """Decode a JSON body; empty bodies (204) decode to None."""
    if not response.content:
        return None
    return response.json()
