"""Database models for the finance hub.

These mirror the tables of the hosted backend. The hosted platform owns the
real schema; the SQLModel tables are used by the local SQL gateway and for
creating a development database.
"""
import datetime as dt
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from finance_hub.utils import utcnow


class Role(str, Enum):
    """Role a user may hold; a user can hold several."""

    ADMIN = "admin"
    USER = "user"
    MODERATOR = "moderator"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class Language(str, Enum):
    ES = "es"
    EN = "en"


class ConnectionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"


class TransactionStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    FAILED = "failed"


class AutomationType(str, Enum):
    SCHEDULE = "schedule"
    CONDITION = "condition"
    WEBHOOK = "webhook"


class AutomationStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    DRAFT = "draft"


def _new_id() -> str:
    return str(uuid.uuid4())


class UserProfile(SQLModel, table=True):
    """Public profile of an auth user; the primary key is the auth user id."""

    __tablename__ = "user_profiles"
    owner_column: ClassVar[str] = "id"

    id: str = Field(primary_key=True)
    email: str = Field(index=True)
    full_name: str | None = None
    avatar_url: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class UserSettings(SQLModel, table=True):
    """Per-user preferences, one row per user."""

    __tablename__ = "settings"

    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(unique=True, index=True)
    theme: str = Field(default=Theme.LIGHT.value)
    language: str = Field(default=Language.ES.value)
    notifications: bool = True
    email_notifications: bool = True
    dashboard_widgets: list[Any] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class UserRole(SQLModel, table=True):
    """(user, role) membership row."""

    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role"),)

    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(index=True)
    role: str = Field(default=Role.USER.value)
    created_at: datetime = Field(default_factory=utcnow)


class Connection(SQLModel, table=True):
    """Declared link to an external financial API provider."""

    __tablename__ = "connections"

    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(index=True)
    name: str
    provider: str
    status: str = Field(default=ConnectionStatus.ACTIVE.value)
    logo: str | None = None
    api_key: str | None = None  # reference to the stored credential
    last_sync: datetime | None = None
    error_message: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Transaction(SQLModel, table=True):
    """A financial event, optionally originating from a connection."""

    __tablename__ = "transactions"
    # "metadata" is reserved by SQLAlchemy's declarative base
    column_aliases: ClassVar[dict[str, str]] = {"metadata": "meta"}

    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(index=True)
    connection_id: str | None = None
    date: dt.date
    description: str
    amount: float
    currency: str = "EUR"
    type: str
    status: str = Field(default=TransactionStatus.COMPLETED.value)
    source: str | None = None
    source_icon: str | None = None
    meta: dict[str, Any] | None = Field(default=None, sa_column=Column("metadata", JSON))
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Automation(SQLModel, table=True):
    """User-defined rule; trigger and action are stored as JSON documents."""

    __tablename__ = "automations"

    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(index=True)
    name: str
    description: str | None = None
    type: str
    status: str = Field(default=AutomationStatus.DRAFT.value)
    trigger: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    action: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    last_execution: datetime | None = None
    next_execution: datetime | None = None
    executions: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class SecurityLog(SQLModel, table=True):
    """Append-only security audit row."""

    __tablename__ = "security_logs"

    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(index=True)
    event_type: str
    description: str
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


# Backend table name -> table model
TABLES: dict[str, type[SQLModel]] = {
    model.__tablename__: model
    for model in (
        UserProfile,
        UserSettings,
        UserRole,
        Connection,
        Transaction,
        Automation,
        SecurityLog,
    )
}
