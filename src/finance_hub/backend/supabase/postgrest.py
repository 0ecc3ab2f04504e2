"""Supabase data gateway over the PostgREST API."""
import copy
from collections.abc import Callable
from datetime import date, datetime
from enum import Enum
from typing import Any

import httpx

from finance_hub.backend.core import (DataGatewayABC, NotFoundError, Row,
                                      TableQuery)
from finance_hub.backend.supabase.http import json_or_none, send

_RETURN_ROWS = "return=representation"


def _literal(value: Any) -> str:
    """Render a filter value the way PostgREST expects it in a query string."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _match_params(match: dict[str, Any]) -> list[tuple[str, str]]:
    return [
        (column, "is.null" if value is None else f"eq.{_literal(value)}")
        for column, value in match.items()
    ]


def select_params(query: TableQuery) -> list[tuple[str, str]]:
    """Translate a TableQuery into PostgREST query params (repeated keys allowed)."""
    params: list[tuple[str, str]] = [("select", "*")]
    params.extend(_match_params(query.equals))
    params.extend((column, f"gte.{_literal(v)}") for column, v in query.gte.items())
    params.extend((column, f"lte.{_literal(v)}") for column, v in query.lte.items())
    if query.order_by:
        direction = "desc" if query.descending else "asc"
        params.append(("order", f"{query.order_by}.{direction}"))
    if query.limit is not None:
        params.append(("limit", str(query.limit)))
    return params


class PostgrestGateway(DataGatewayABC):
    """Data gateway for a Supabase project's REST endpoint.

    Requests carry the user's access token when one is available so the
    backend's row-level security applies; otherwise the API key itself is
    sent as the bearer (anon or service role, depending on the key).
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        token_provider: Callable[[], str | None] | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            url: Project URL, e.g. https://xyz.supabase.co.
            api_key: anon key for user traffic, service-role key for admin traffic.
            token_provider: Returns the current user's access token, if any.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self._api_key = api_key
        self._token_provider = token_provider or (lambda: None)
        self._owns_client = True
        self._client = httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={"apikey": api_key, "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        token = self._token_provider() or self._api_key
        headers = {"Authorization": f"Bearer {token}"}
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def select(self, table: str, query: TableQuery | None = None) -> list[Row]:
        response = await send(
            self._client,
            "GET",
            f"/{table}",
            params=select_params(query or TableQuery()),
            headers=self._headers(),
        )
        return response.json() or []

    async def insert(self, table: str, values: dict[str, Any]) -> Row:
        response = await send(
            self._client,
            "POST",
            f"/{table}",
            json=values,
            headers=self._headers(_RETURN_ROWS),
        )
        return response.json()[0]

    async def upsert(
        self,
        table: str,
        values: dict[str, Any],
        *,
        on_conflict: str,
        ignore_duplicates: bool = True,
    ) -> Row | None:
        resolution = "ignore-duplicates" if ignore_duplicates else "merge-duplicates"
        response = await send(
            self._client,
            "POST",
            f"/{table}",
            params={"on_conflict": on_conflict},
            json=values,
            headers=self._headers(f"resolution={resolution},{_RETURN_ROWS}"),
        )
        rows = response.json() or []
        return rows[0] if rows else None

    async def update(self, table: str, match: dict[str, Any], values: dict[str, Any]) -> Row:
        response = await send(
            self._client,
            "PATCH",
            f"/{table}",
            params=_match_params(match),
            json=values,
            headers=self._headers(_RETURN_ROWS),
        )
        return self._single(table, response.json())

    async def delete(self, table: str, match: dict[str, Any]) -> Row:
        response = await send(
            self._client,
            "DELETE",
            f"/{table}",
            params=_match_params(match),
            headers=self._headers(_RETURN_ROWS),
        )
        return self._single(table, response.json())

    async def rpc(self, function: str, params: dict[str, Any]) -> Any:
        response = await send(
            self._client,
            "POST",
            f"/rpc/{function}",
            json=params,
            headers=self._headers(),
        )
        return json_or_none(response)

    def scoped(self, user_id: str, access_token: str) -> "PostgrestGateway":
        gateway = copy.copy(self)
        gateway._token_provider = lambda: access_token
        gateway._owns_client = False
        return gateway

    @staticmethod
    def _single(table: str, rows: list[Row] | None) -> Row:
        if not rows:
            raise NotFoundError(
                f"No row in '{table}' matched the request", code="PGRST116", status=406
            )
        return rows[0]

    async def close(self) -> None:
        """Close the HTTP client (shared clients are closed by their owner)."""
        if self._owns_client:
            await self._client.aclose()
