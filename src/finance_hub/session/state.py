"""Snapshot of who is signed in and what the hub knows about them."""
from dataclasses import dataclass

from finance_hub.db import Role
from finance_hub.schemas import (AuthUser, UserProfileRead, UserRoleRead,
                                 UserSettingsRead)


@dataclass(frozen=True)
class AuthState:
    """Immutable; the store swaps in a new snapshot on every change.

    ``is_loading`` is true until the first session resolution finishes.
    """

    user: AuthUser | None = None
    profile: UserProfileRead | None = None
    roles: tuple[UserRoleRead, ...] = ()
    settings: UserSettingsRead | None = None
    is_loading: bool = True
    error: Exception | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def role_set(self) -> frozenset[Role]:
        return frozenset(r.role for r in self.roles)

    def has_role(self, role: Role | str) -> bool:
        """False while loading or signed out, whatever roles were cached before."""
        if self.is_loading or self.user is None:
            return False
        return role in {r.value for r in self.role_set}

    @property
    def error_message(self) -> str | None:
        if self.error is None:
            return None
        return getattr(self.error, "message", None) or str(self.error)
