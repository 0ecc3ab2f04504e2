"""Pydantic schemas for backend rows and write payloads.

Read models validate rows returned by a data gateway; Create/Update models are
what services accept from callers. Updates are dumped with exclude_unset so
only fields the caller set are written.
"""
import datetime as dt
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from finance_hub.db import (ConnectionStatus, Language, Role, Theme,
                            TransactionStatus, TransactionType)


class _Row(BaseModel):
    model_config = ConfigDict(extra="ignore")


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid")


class UserProfileRead(_Row):
    id: str
    email: str
    full_name: str | None = None
    avatar_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProfileUpdate(_Payload):
    """Profile fields a user may change about themselves."""

    full_name: str | None = None
    avatar_url: str | None = None


class UserSettingsRead(_Row):
    """Settings row; missing or null columns fall back to defaults."""

    id: str = ""
    user_id: str
    theme: Theme = Theme.LIGHT
    language: Language = Language.ES
    notifications: bool = True
    email_notifications: bool = True
    dashboard_widgets: list[Any] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("theme", mode="before")
    @classmethod
    def _theme_default(cls, v: Any) -> Any:
        return v or Theme.LIGHT

    @field_validator("language", mode="before")
    @classmethod
    def _language_default(cls, v: Any) -> Any:
        return v or Language.ES

    @field_validator("notifications", "email_notifications", mode="before")
    @classmethod
    def _flag_default(cls, v: Any) -> bool:
        return True if v is None else bool(v)

    @field_validator("dashboard_widgets", mode="before")
    @classmethod
    def _widgets_list(cls, v: Any) -> list[Any]:
        return v if isinstance(v, list) else []


class SettingsUpdate(_Payload):
    theme: Theme | None = None
    language: Language | None = None
    notifications: bool | None = None
    email_notifications: bool | None = None
    dashboard_widgets: list[Any] | None = None


class UserRoleRead(_Row):
    id: str
    user_id: str
    role: Role
    created_at: datetime | None = None


class ConnectionRead(_Row):
    id: str
    user_id: str
    name: str
    provider: str
    status: ConnectionStatus
    logo: str | None = None
    api_key: str | None = None
    last_sync: datetime | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ConnectionCreate(_Payload):
    name: str = Field(min_length=1)
    provider: str = Field(min_length=1)
    status: ConnectionStatus = ConnectionStatus.ACTIVE
    logo: str | None = None
    api_key: str | None = None


class ConnectionUpdate(_Payload):
    name: str | None = None
    provider: str | None = None
    status: ConnectionStatus | None = None
    logo: str | None = None
    api_key: str | None = None
    last_sync: datetime | None = None
    error_message: str | None = None


class TransactionRead(_Row):
    id: str
    user_id: str
    connection_id: str | None = None
    date: dt.date
    description: str
    amount: float
    currency: str
    type: TransactionType
    status: TransactionStatus
    source: str | None = None
    source_icon: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("date", mode="before")
    @classmethod
    def _date_only(cls, v: Any) -> Any:
        # the backend may hand back a full timestamp for a date column
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v

    @property
    def signed_amount(self) -> float:
        """Amount with the sign implied by the type: withdrawals are negative."""
        if self.type == TransactionType.WITHDRAWAL:
            return -abs(self.amount)
        if self.type == TransactionType.DEPOSIT:
            return abs(self.amount)
        return self.amount


class TransactionCreate(_Payload):
    connection_id: str | None = None
    date: dt.date
    description: str = Field(min_length=1)
    amount: float
    currency: str = Field(default="EUR", min_length=3, max_length=3)
    type: TransactionType
    status: TransactionStatus = TransactionStatus.COMPLETED
    source: str | None = None
    source_icon: str | None = None
    metadata: dict[str, Any] | None = None


class TransactionUpdate(_Payload):
    connection_id: str | None = None
    date: dt.date | None = None
    description: str | None = None
    amount: float | None = None
    currency: str | None = None
    type: TransactionType | None = None
    status: TransactionStatus | None = None
    source: str | None = None
    source_icon: str | None = None
    metadata: dict[str, Any] | None = None


class SecurityLogRead(_Row):
    id: str
    user_id: str
    event_type: str
    description: str
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime | None = None


class SecurityEventCreate(BaseModel):
    """Arguments of the log_security_event RPC."""

    event_type: str = Field(min_length=1)
    description: str = Field(min_length=1)
    ip_address: str | None = None
    user_agent: str | None = None


class ManagedUser(_Row):
    """A user profile with its role set, as shown on the user-management screen."""

    profile: UserProfileRead
    roles: list[Role] = Field(default_factory=list)

    def has_role(self, role: Role | str) -> bool:
        return role in {r.value for r in self.roles}
