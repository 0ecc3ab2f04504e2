"""Serverless function endpoints under /functions/v1.

Bodies follow the hosted platform's function contracts: JSON objects with
``message`` plus ``error`` on failure. Every response, preflight included,
carries the CORS headers.
"""
import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from finance_hub.backend.core import (AuthenticationError, BackendError,
                                      BackendErrorMapper)
from finance_hub.deps import (AdminBootstrapperDep, AuthGatewayDep,
                              UserDataGatewayDep, UserProvisionerDep)
from finance_hub.schemas import SecurityEventCreate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/functions/v1", tags=["functions"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

_mapper = BackendErrorMapper(resource_name="User", api_name="Auth backend")


def cors_json(content: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=CORS_HEADERS)


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",", 1)[0].strip()
    return request.client.host if request.client else None


@router.options("/{function_name}")
async def preflight(function_name: str) -> Response:  # pylint: disable=unused-argument
    """CORS preflight for every function: empty 200."""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("/create-admin-user")
async def create_admin_user(request: Request, bootstrapper: AdminBootstrapperDep) -> JSONResponse:
    """Create the configured admin account unless it exists.

    Returns 201 with a one-time password when the account was created, 200
    with ``password: null`` when it already existed, 500 on any failure.
    """
    try:
        result = await bootstrapper.ensure_admin(
            ip_address=client_ip(request), user_agent=request.headers.get("user-agent")
        )
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("create-admin-user failed")
        return cors_json(
            {"message": "Error creating admin user", "error": getattr(exc, "message", str(exc))},
            status_code=500,
        )
    if result.created:
        return cors_json(
            {
                "message": "Admin user created. Store the password now; it will not be shown again.",
                "adminCredentials": result.credentials.as_payload(),
            },
            status_code=201,
        )
    return cors_json(
        {
            "message": "Admin user already exists",
            "adminCredentials": result.credentials.as_payload(),
        }
    )


@router.post("/log-security-event")
async def log_security_event(
    request: Request, auth: AuthGatewayDep, data: UserDataGatewayDep
) -> JSONResponse:
    """Append a security event for the caller identified by the bearer token."""
    token = bearer_token(request)
    if token is None:
        return cors_json({"error": "Unauthorized", "message": "No active session"}, 401)
    try:
        user = await auth.get_user(token)
    except AuthenticationError as exc:
        return cors_json({"error": "Unauthorized", "message": exc.message}, 401)
    except BackendError as exc:
        logger.warning("Token check failed: %s", exc.message)
        return cors_json({"error": "Internal error", "message": exc.message}, 500)

    try:
        event = SecurityEventCreate.model_validate(await request.json())
    except (ValueError, ValidationError):
        return cors_json(
            {
                "error": "Incomplete data",
                "message": "event_type and description are required",
            },
            400,
        )

    try:
        result = await data.scoped(user.id, token).rpc("log_security_event", event.model_dump())
    except BackendError as exc:
        logger.error("log-security-event failed for %s: %s", user.id, exc.message)
        return cors_json({"error": "Internal error", "message": exc.message}, 500)
    return cors_json({"success": True, "message": "Event recorded", "data": result})


@router.post("/ensure-user-rows")
async def ensure_user_rows(
    request: Request,
    auth: AuthGatewayDep,
    provisioner: UserProvisionerDep,
) -> JSONResponse:
    """Create the caller's profile and settings rows if missing (idempotent)."""
    token = bearer_token(request)
    if token is None:
        return cors_json({"error": "Unauthorized", "message": "No active session"}, 401)
    try:
        user = await auth.get_user(token)
        result = await provisioner.ensure_rows(user.id, user.email, user.full_name)
    except BackendError as exc:
        status_code, message = _mapper.to_http(exc)
        return cors_json({"error": type(exc).__name__, "message": message}, status_code)
    return cors_json(
        {
            "success": True,
            "profileCreated": result.profile_created,
            "settingsCreated": result.settings_created,
        }
    )
