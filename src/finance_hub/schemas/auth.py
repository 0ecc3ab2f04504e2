"""Auth models exchanged with the auth backend."""
import time
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuthUser(BaseModel):
    """Authenticated identity as reported by the auth backend."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: str | None = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None

    @property
    def full_name(self) -> str:
        return self.user_metadata.get("full_name") or ""


class AuthSession(BaseModel):
    """Access/refresh token pair for a signed-in user."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"
    expires_in: int | None = None
    expires_at: int | None = None
    user: AuthUser

    def model_post_init(self, __context: Any) -> None:
        if self.expires_at is None and self.expires_in is not None:
            self.expires_at = int(time.time()) + self.expires_in

    def is_expired(self, leeway_seconds: int = 10) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at - leeway_seconds <= int(time.time())


class AuthChangeEvent(str, Enum):
    """Session-change notifications published by the auth gateway."""

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


class SessionEvent(BaseModel):
    """One session-change event and the session it leaves behind."""

    event: AuthChangeEvent
    session: AuthSession | None = None
