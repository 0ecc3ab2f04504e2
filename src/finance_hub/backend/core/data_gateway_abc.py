"""Abstract base class for table/RPC data backends."""
from abc import ABC, abstractmethod
from typing import Any

from finance_hub.backend.core.query import TableQuery

Row = dict[str, Any]


class DataGatewayABC(ABC):
    """Base interface for row storage behind the hub.

    Rows are plain JSON-compatible dicts keyed by backend column names, so
    the same services run against PostgREST or a local SQL database. Row
    scoping to the calling user is the backend's job; a gateway instance acts
    either as a user (``scoped``) or with service-role privileges.
    """

    @abstractmethod
    async def select(self, table: str, query: TableQuery | None = None) -> list[Row]:
        """Return rows of ``table`` matching ``query``; empty list when none match."""

    async def select_one(self, table: str, match: dict[str, Any]) -> Row | None:
        """Return the first row matching all ``match`` columns, or None."""
        rows = await self.select(table, TableQuery(equals=match, order_by=None, limit=1))
        return rows[0] if rows else None

    @abstractmethod
    async def insert(self, table: str, values: dict[str, Any]) -> Row:
        """Insert one row and return it as stored."""

    @abstractmethod
    async def upsert(
        self,
        table: str,
        values: dict[str, Any],
        *,
        on_conflict: str,
        ignore_duplicates: bool = True,
    ) -> Row | None:
        """Insert unless a row with the same ``on_conflict`` column exists.

        Returns:
            The inserted row, or None when an existing row was left in place.
        """

    @abstractmethod
    async def update(self, table: str, match: dict[str, Any], values: dict[str, Any]) -> Row:
        """Update the row matching ``match`` and return it.

        Raises:
            NotFoundError: No visible row matched.
        """

    @abstractmethod
    async def delete(self, table: str, match: dict[str, Any]) -> Row:
        """Delete the row matching ``match`` and return it.

        Raises:
            NotFoundError: No visible row matched.
        """

    @abstractmethod
    async def rpc(self, function: str, params: dict[str, Any]) -> Any:
        """Call a backend function and return its result."""

    @abstractmethod
    def scoped(self, user_id: str, access_token: str) -> "DataGatewayABC":
        """Return a gateway acting as the given user (shares the underlying client)."""

    async def close(self) -> None:
        """Release clients or connections. Override if cleanup is needed."""
