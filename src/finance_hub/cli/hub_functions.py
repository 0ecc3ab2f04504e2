"""CLI to exercise the finance hub function endpoints.

Usage:
  hub-functions health
  hub-functions create-admin
  hub-functions login user@example.com --password secret
  hub-functions log-event --token TOKEN --event-type password_changed --description "Changed password"
  hub-functions ensure-rows --token TOKEN
"""
import argparse
import asyncio
import getpass
import json
import os
import sys

import httpx

from finance_hub.backend.core import BackendError
from finance_hub.backend.supabase import SupabaseAuthGateway


def print_json(data: object) -> None:
    print(json.dumps(data, indent=2, default=str))


def _bearer(args: argparse.Namespace) -> dict[str, str]:
    token = args.token or os.getenv("HUB_ACCESS_TOKEN")
    return {"Authorization": f"Bearer {token}"} if token else {}


def cmd_health(client: httpx.Client, _: argparse.Namespace) -> int:
    r = client.get("/")
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_create_admin(client: httpx.Client, _: argparse.Namespace) -> int:
    r = client.post("/functions/v1/create-admin-user")
    r.raise_for_status()
    data = r.json()
    print_json(data)
    if data.get("adminCredentials", {}).get("password"):
        print("The password is shown only once. Store it now.", file=sys.stderr)
    return 0


def cmd_log_event(client: httpx.Client, args: argparse.Namespace) -> int:
    body = {"event_type": args.event_type, "description": args.description}
    if args.ip_address:
        body["ip_address"] = args.ip_address
    if args.user_agent:
        body["user_agent"] = args.user_agent
    r = client.post("/functions/v1/log-security-event", json=body, headers=_bearer(args))
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_ensure_rows(client: httpx.Client, args: argparse.Namespace) -> int:
    r = client.post("/functions/v1/ensure-user-rows", headers=_bearer(args))
    r.raise_for_status()
    print_json(r.json())
    return 0


def cmd_login(_client: httpx.Client | None, args: argparse.Namespace) -> int:
    """Sign in against the auth backend directly and print the access token."""
    password = args.password or getpass.getpass("Password: ")

    async def run() -> str:
        async with SupabaseAuthGateway(args.supabase_url, args.anon_key) as auth:
            session = await auth.sign_in_with_password(args.email, password)
            return session.access_token

    try:
        print(asyncio.run(run()))
    except BackendError as e:
        print(f"Sign-in failed: {e.message}", file=sys.stderr)
        return 1
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Call the finance hub function endpoints.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--base-url",
        default="http://localhost:8001",
        help="Function server base URL (default: http://localhost:8001)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Request timeout in seconds (default: 30)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command")

    subparsers.add_parser("health", help="GET / health check")
    subparsers.add_parser("create-admin", help="POST /functions/v1/create-admin-user")

    p = subparsers.add_parser("log-event", help="POST /functions/v1/log-security-event")
    p.add_argument("--token", default=None, help="Access token (default: $HUB_ACCESS_TOKEN)")
    p.add_argument("--event-type", required=True, help="Event type (e.g. password_changed)")
    p.add_argument("--description", required=True, help="Human-readable description")
    p.add_argument("--ip-address", default=None)
    p.add_argument("--user-agent", default=None)

    p = subparsers.add_parser("ensure-rows", help="POST /functions/v1/ensure-user-rows")
    p.add_argument("--token", default=None, help="Access token (default: $HUB_ACCESS_TOKEN)")

    # login talks to the auth backend, not the function server
    p = subparsers.add_parser("login", help="Sign in and print an access token")
    p.add_argument("email")
    p.add_argument("--password", default=None, help="Prompted for when omitted")
    p.add_argument(
        "--supabase-url",
        default=os.getenv("SUPABASE_URL", "http://localhost:54321"),
        help="Project URL (default: $SUPABASE_URL)",
    )
    p.add_argument(
        "--anon-key",
        default=os.getenv("SUPABASE_ANON_KEY", ""),
        help="Public API key (default: $SUPABASE_ANON_KEY)",
    )

    args = parser.parse_args()
    base_url = args.base_url.rstrip("/")

    handlers = {
        "health": cmd_health,
        "create-admin": cmd_create_admin,
        "log-event": cmd_log_event,
        "ensure-rows": cmd_ensure_rows,
        "login": cmd_login,
    }
    handler = handlers[args.command]
    if args.command == "login":
        return handler(None, args)

    try:
        with httpx.Client(base_url=base_url, timeout=args.timeout) as client:
            return handler(client, args)
    except httpx.HTTPStatusError as e:
        print(f"HTTP error: {e.response.status_code}", file=sys.stderr)
        if e.response.content:
            try:
                print(e.response.json(), file=sys.stderr)
            except ValueError:
                print(e.response.text, file=sys.stderr)
        return 1
    except httpx.RequestError as e:
        print(f"Request error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
