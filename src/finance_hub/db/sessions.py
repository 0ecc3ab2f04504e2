"""Database engine and session management for the local SQL gateway."""
import os
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from finance_hub.db import models  # noqa: F401  # pylint: disable=unused-import

_DEFAULT_URL = "sqlite:///./finance_hub.db"
DATABASE_URL = os.getenv("DATABASE_URL", _DEFAULT_URL)


def make_engine(url: str | None = None) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across sessions."""
    url = url or DATABASE_URL
    echo = os.getenv("SQL_ECHO", "0") == "1"
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)
    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


@contextmanager
def get_session(engine: Engine) -> Generator[Session, None, None]:
    """Yield a database session; commits on success, rolls back on error."""
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine) -> None:
    """Create all tables. Safe to call on startup (idempotent for existing tables)."""
    SQLModel.metadata.create_all(engine)
