"""Shared service plumbing: per-user gateway scoping, cached lists, notified mutations.

Every resource service acts as the signed-in user so the backend's row-level
policies decide what is visible. Mutations notify the outcome with the
backend's message verbatim and invalidate the resource's cache entries; they
never patch cached lists in place.
"""
import datetime as dt
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from finance_hub.backend.core import (AuthenticationError, AuthGatewayABC,
                                      BackendError, DataGatewayABC,
                                      NotFoundError, Row, TableQuery)
from finance_hub.notifications import Notifier
from finance_hub.services.cache import DEFAULT_STALE_SECONDS, QueryCache

logger = logging.getLogger(__name__)

ReadT = TypeVar("ReadT")

_DONE = {"create": "created", "update": "updated", "delete": "deleted"}

SESSION_EXPIRED = "Session expired, sign in again"


class ListFilters(BaseModel):
    """Equality filters, a date range over the recency field, and a limit.

    Subclasses declare their equality fields; every field other than
    ``start``, ``end`` and ``limit`` that is set becomes an equality filter.
    """

    model_config = ConfigDict(extra="forbid")

    start: dt.date | datetime | None = None
    end: dt.date | datetime | None = None
    limit: int | None = Field(default=None, ge=1)

    def equals(self) -> dict[str, Any]:
        return self.model_dump(
            mode="json", exclude={"start", "end", "limit"}, exclude_none=True
        )

    def to_query(self, recency_field: str) -> TableQuery:
        return TableQuery(
            equals=self.equals(),
            gte={recency_field: self.start.isoformat()} if self.start else {},
            lte={recency_field: self.end.isoformat()} if self.end else {},
            order_by=recency_field,
            descending=True,
            limit=self.limit,
        )

    def cache_token(self) -> str:
        return self.model_dump_json(exclude_none=True)


class BaseService:
    """Gateway scoping, caching and notification shared by all services."""

    table: ClassVar[str]
    label: ClassVar[str] = "Record"
    stale_after: ClassVar[float] = DEFAULT_STALE_SECONDS

    def __init__(
        self,
        auth: AuthGatewayABC,
        data: DataGatewayABC,
        cache: QueryCache,
        notifier: Notifier,
    ) -> None:
        """Initialize the service.

        Args:
            auth: Auth gateway holding the current session.
            data: Data gateway; scoped to the signed-in user on every call.
            cache: Query cache shared by all services.
            notifier: Sink for user-facing success/error notifications.
        """
        self._auth = auth
        self._data = data
        self._cache = cache
        self._notifier = notifier

    async def _session_gateway(self) -> tuple[DataGatewayABC, str]:
        had_session = self._auth.current_session is not None
        session = await self._auth.ensure_fresh_session()
        if session is None:
            if had_session:
                exc = AuthenticationError(SESSION_EXPIRED, code="session_expired", status=401)
                self._session_lost(exc)
                raise exc
            raise AuthenticationError("Not authenticated", code="session_missing", status=401)
        return self._data.scoped(session.user.id, session.access_token), session.user.id

    async def _gateway(self) -> DataGatewayABC:
        return (await self._session_gateway())[0]

    def _session_lost(self, exc: AuthenticationError) -> None:
        """The backend rejected the session: notify and sign out locally.

        The SIGNED_OUT event sends the user to the login page, which keeps the
        current path as the return path.
        """
        logger.warning("Session rejected while accessing %s: %s", self.table, exc.message)
        self._notifier.error("Your session has expired", exc.message)
        self._auth.expire_session()

    async def _call(self, call: Awaitable[Any]) -> Any:
        """Await a backend read, signing out if the session was rejected."""
        try:
            return await call
        except AuthenticationError as exc:
            self._session_lost(exc)
            raise

    def invalidate(self, *parts: Any) -> None:
        """Drop cached reads of this resource (optionally narrowed by key parts)."""
        self._cache.invalidate(self.table, *parts)

    async def _cached(self, key: tuple, fetch: Callable[[], Awaitable[Any]]) -> Any:
        return await self._call(
            self._cache.get_or_fetch((self.table, *key), fetch, stale_after=self.stale_after)
        )

    async def _notified(self, verb: str, call: Awaitable[Row]) -> Row:
        """Await a write, notify its outcome and invalidate this resource on success."""
        try:
            row = await call
        except AuthenticationError as exc:
            self._session_lost(exc)
            raise
        except BackendError as exc:
            logger.warning("Failed to %s %s: %s", verb, self.label.lower(), exc.message)
            self._notifier.error(f"Could not {verb} {self.label.lower()}", exc.message)
            raise
        self._notifier.success(f"{self.label} {_DONE.get(verb, verb)}")
        self.invalidate()
        return row


class ResourceService(BaseService, Generic[ReadT]):
    """list/get/create/update/delete over one user-owned table."""

    read_model: ClassVar[type[BaseModel]]
    create_model: ClassVar[type[BaseModel]]
    update_model: ClassVar[type[BaseModel]]
    filters_model: ClassVar[type[ListFilters]] = ListFilters
    recency_field: ClassVar[str] = "created_at"

    def _parse(self, row: Row) -> ReadT:
        return self.read_model.model_validate(row)

    def _parse_rows(self, rows: list[Row]) -> list[ReadT]:
        return [self._parse(row) for row in rows]

    def _create_values(self, payload: Any) -> dict[str, Any]:
        model = payload if isinstance(payload, BaseModel) else self.create_model.model_validate(payload)
        return model.model_dump(mode="json")

    async def _update_values(self, resource_id: str, changes: Any) -> dict[str, Any]:
        model = changes if isinstance(changes, BaseModel) else self.update_model.model_validate(changes)
        return model.model_dump(mode="json", exclude_unset=True)

    async def list(self, filters: ListFilters | None = None) -> list[ReadT]:
        """Rows visible to the current user, newest first; cached per filter set."""
        filters = filters or self.filters_model()
        gateway, user_id = await self._session_gateway()

        async def fetch() -> list[ReadT]:
            rows = await gateway.select(self.table, filters.to_query(self.recency_field))
            return self._parse_rows(rows)

        return await self._cached((user_id, filters.cache_token()), fetch)

    async def get(self, resource_id: str) -> ReadT:
        """One row by id.

        Raises:
            NotFoundError: No such row, or it belongs to someone else.
        """
        row = await self._call(
            (await self._gateway()).select_one(self.table, {"id": resource_id})
        )
        if row is None:
            raise NotFoundError(f"{self.label} {resource_id} not found", code="PGRST116", status=406)
        return self._parse(row)

    async def create(self, payload: Any) -> ReadT:
        """Insert a row owned by the current user."""
        gateway, user_id = await self._session_gateway()
        values = {**self._create_values(payload), "user_id": user_id}
        row = await self._notified("create", gateway.insert(self.table, values))
        return self._parse(row)

    async def update(self, resource_id: str, changes: Any) -> ReadT:
        """Write only the fields set in ``changes``; last write wins."""
        gateway = await self._gateway()
        values = await self._update_values(resource_id, changes)
        row = await self._notified(
            "update", gateway.update(self.table, {"id": resource_id}, values)
        )
        return self._parse(row)

    async def delete(self, resource_id: str) -> None:
        gateway = await self._gateway()
        await self._notified("delete", gateway.delete(self.table, {"id": resource_id}))
