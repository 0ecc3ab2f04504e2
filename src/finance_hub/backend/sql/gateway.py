"""Data gateway over a local SQL database (SQLModel).

Used for development without a hosted project and in tests. Row-level
security is emulated: a gateway scoped to a user only sees and writes rows
whose owner column equals that user's id, except that admins may see and
manage every profile and role row.
"""
import asyncio
import logging
import threading
import weakref
from collections.abc import Callable
from contextlib import nullcontext
from functools import lru_cache
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, select

from finance_hub.backend.core import (AuthenticationError, AuthorizationError,
                                      BackendError, ConflictError,
                                      DataGatewayABC, NotFoundError, Row,
                                      TableQuery)
from finance_hub.db import TABLES, Role, SecurityLog, UserRole
from finance_hub.db.sessions import get_session
from finance_hub.utils import utcnow

logger = logging.getLogger(__name__)

# Tables where holders of the admin role see and manage every user's rows
ADMIN_MANAGED_TABLES = frozenset({"user_profiles", "user_roles"})

T = TypeVar("T")

_sqlite_locks: "weakref.WeakKeyDictionary[Engine, threading.Lock]" = weakref.WeakKeyDictionary()


def _engine_lock(engine: Engine):  # noqa: ANN202
    """One session at a time per SQLite engine; its connections are shared across threads."""
    if engine.dialect.name != "sqlite":
        return nullcontext()
    return _sqlite_locks.setdefault(engine, threading.Lock())


def _model_for(table: str) -> type[SQLModel]:
    try:
        return TABLES[table]
    except KeyError:
        raise NotFoundError(
            f"Could not find the table 'public.{table}' in the schema cache",
            code="PGRST205",
            status=404,
        ) from None


def _aliases(model: type[SQLModel]) -> dict[str, str]:
    return getattr(model, "column_aliases", {})


def _owner_column(model: type[SQLModel]) -> str:
    return getattr(model, "owner_column", "user_id")


def _attr(model: type[SQLModel], column: str) -> str:
    return _aliases(model).get(column, column)


def _to_attrs(model: type[SQLModel], values: dict[str, Any]) -> dict[str, Any]:
    """Rename backend column names to model attribute names."""
    return {_attr(model, column): value for column, value in values.items()}


def _to_row(obj: SQLModel) -> Row:
    """Dump a table object as a JSON-compatible row keyed by column names."""
    data = obj.model_dump(mode="json")
    for column, attr in _aliases(type(obj)).items():
        if attr in data:
            data[column] = data.pop(attr)
    return data


@lru_cache(maxsize=None)
def _adapter(model: type[SQLModel], attr: str) -> TypeAdapter:
    return TypeAdapter(model.model_fields[attr].annotation)


def _coerce(model: type[SQLModel], attr: str, value: Any) -> Any:
    """Convert a filter value (often a JSON string) to the column's Python type."""
    if value is None or attr not in model.model_fields:
        return value
    return _adapter(model, attr).validate_python(value)


def _column(model: type[SQLModel], attr: str):  # noqa: ANN202
    if attr not in model.model_fields:
        raise BackendError(
            f"column {model.__tablename__}.{attr} does not exist", code="42703", status=400
        )
    return getattr(model, attr)


class SqlGateway(DataGatewayABC):
    """Data gateway for a SQLModel engine.

    Unscoped instances act with service-role privileges; ``scoped`` returns an
    instance that filters every read and write by the user's id.
    """

    def __init__(self, engine: Engine, *, user_id: str | None = None) -> None:
        """Initialize the gateway.

        Args:
            engine: SQLAlchemy engine (see db.sessions.make_engine).
            user_id: Identity the gateway acts as; None for service role.
        """
        self._engine = engine
        self._user_id = user_id

    async def _offload(self, func: Callable[..., T], *args: Any) -> T:
        lock = _engine_lock(self._engine)

        def run() -> T:
            with lock:
                return func(*args)

        return await asyncio.to_thread(run)

    def _where(
        self, model: type[SQLModel], match: dict[str, Any], *, scoped: bool
    ) -> list[Any]:
        attrs = _to_attrs(model, match)
        clauses = []
        for attr, value in attrs.items():
            column = _column(model, attr)
            value = _coerce(model, attr, value)
            clauses.append(column.is_(None) if value is None else column == value)
        if scoped:
            clauses.append(getattr(model, _owner_column(model)) == self._user_id)
        return clauses

    def _find(
        self, session: Session, model: type[SQLModel], match: dict[str, Any], *, scoped: bool
    ) -> SQLModel:
        obj = session.exec(select(model).where(*self._where(model, match, scoped=scoped))).first()
        if obj is None:
            raise NotFoundError(
                f"No row in '{model.__tablename__}' matched the request",
                code="PGRST116",
                status=406,
            )
        return obj

    def _validate(self, model: type[SQLModel], values: dict[str, Any]) -> SQLModel:
        try:
            return model.model_validate(values)
        except ValidationError as exc:
            raise BackendError(str(exc), code="22P02", status=400) from exc

    def _owner_scoped(self, model: type[SQLModel]) -> bool:
        if self._user_id is None:
            return False
        if model.__tablename__ not in ADMIN_MANAGED_TABLES:
            return True
        with get_session(self._engine) as session:
            admin = session.exec(
                select(UserRole).where(
                    UserRole.user_id == self._user_id, UserRole.role == Role.ADMIN.value
                )
            ).first()
        return admin is None

    def _check_owner(self, model: type[SQLModel], values: dict[str, Any]) -> dict[str, Any]:
        if not self._owner_scoped(model):
            return values
        owner = _owner_column(model)
        if values.get(owner, self._user_id) != self._user_id:
            raise AuthorizationError(
                f'new row violates row-level security policy for table "{model.__tablename__}"',
                code="42501",
                status=403,
            )
        return {**values, owner: self._user_id}

    async def select(self, table: str, query: TableQuery | None = None) -> list[Row]:
        return await self._offload(self._select_sync, table, query)

    def _select_sync(self, table: str, query: TableQuery | None) -> list[Row]:
        model = _model_for(table)
        query = query or TableQuery()
        statement = select(model).where(
            *self._where(model, query.equals, scoped=self._owner_scoped(model))
        )
        for attr, value in _to_attrs(model, query.gte).items():
            statement = statement.where(_column(model, attr) >= _coerce(model, attr, value))
        for attr, value in _to_attrs(model, query.lte).items():
            statement = statement.where(_column(model, attr) <= _coerce(model, attr, value))
        if query.order_by:
            column = _column(model, _attr(model, query.order_by))
            statement = statement.order_by(column.desc() if query.descending else column.asc())
        if query.limit is not None:
            statement = statement.limit(query.limit)
        with get_session(self._engine) as session:
            return [_to_row(obj) for obj in session.exec(statement).all()]

    async def insert(self, table: str, values: dict[str, Any]) -> Row:
        return await self._offload(self._insert_sync, table, values)

    def _insert_sync(self, table: str, values: dict[str, Any]) -> Row:
        model = _model_for(table)
        obj = self._validate(model, _to_attrs(model, self._check_owner(model, values)))
        try:
            with get_session(self._engine) as session:
                session.add(obj)
                session.flush()
                session.refresh(obj)
                return _to_row(obj)
        except IntegrityError as exc:
            raise ConflictError(
                f"duplicate key value violates unique constraint on '{table}'",
                code="23505",
                status=409,
            ) from exc

    async def upsert(
        self,
        table: str,
        values: dict[str, Any],
        *,
        on_conflict: str,
        ignore_duplicates: bool = True,
    ) -> Row | None:
        return await self._offload(
            self._upsert_sync, table, values, on_conflict, ignore_duplicates
        )

    def _upsert_sync(
        self, table: str, values: dict[str, Any], on_conflict: str, ignore_duplicates: bool
    ) -> Row | None:
        model = _model_for(table)
        key = {column: values[column] for column in on_conflict.split(",")}
        with get_session(self._engine) as session:
            existing = session.exec(
                select(model).where(*self._where(model, key, scoped=False))
            ).first()
        if existing is not None:
            if ignore_duplicates:
                logger.debug("Row %s already in %s", key, table)
                return None
            return self._update_sync(table, key, values)
        try:
            return self._insert_sync(table, values)
        except ConflictError:
            if ignore_duplicates:
                return None
            raise

    async def update(self, table: str, match: dict[str, Any], values: dict[str, Any]) -> Row:
        return await self._offload(self._update_sync, table, match, values)

    def _update_sync(self, table: str, match: dict[str, Any], values: dict[str, Any]) -> Row:
        model = _model_for(table)
        attrs = _to_attrs(model, self._check_owner(model, values))
        scoped = self._owner_scoped(model)
        with get_session(self._engine) as session:
            obj = self._find(session, model, match, scoped=scoped)
            merged = self._validate(model, {**obj.model_dump(), **attrs})
            for attr in attrs:
                setattr(obj, attr, getattr(merged, attr))
            if "updated_at" in model.model_fields:
                obj.updated_at = utcnow()
            session.add(obj)
            session.flush()
            session.refresh(obj)
            return _to_row(obj)

    async def delete(self, table: str, match: dict[str, Any]) -> Row:
        return await self._offload(self._delete_sync, table, match)

    def _delete_sync(self, table: str, match: dict[str, Any]) -> Row:
        model = _model_for(table)
        scoped = self._owner_scoped(model)
        with get_session(self._engine) as session:
            obj = self._find(session, model, match, scoped=scoped)
            row = _to_row(obj)
            session.delete(obj)
            return row

    async def rpc(self, function: str, params: dict[str, Any]) -> Any:
        if function != "log_security_event":
            raise NotFoundError(
                f"Could not find the function public.{function} in the schema cache",
                code="PGRST202",
                status=404,
            )
        if self._user_id is None:
            raise AuthenticationError("Not authenticated", code="28000", status=401)
        row = await self.insert(
            SecurityLog.__tablename__,
            {
                "user_id": self._user_id,
                "event_type": params.get("event_type"),
                "description": params.get("description"),
                "ip_address": params.get("ip_address"),
                "user_agent": params.get("user_agent"),
            },
        )
        return row["id"]

    def scoped(self, user_id: str, access_token: str) -> "SqlGateway":
        return SqlGateway(self._engine, user_id=user_id)
