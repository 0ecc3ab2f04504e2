"""Role membership: a user's own roles, and admin management of everyone's."""
import logging
from collections.abc import Awaitable

from finance_hub.backend.core import (AuthenticationError,
                                      AuthorizationError, BackendError,
                                      DataGatewayABC, Row, TableQuery)
from finance_hub.db import Role
from finance_hub.schemas import ManagedUser, UserProfileRead, UserRoleRead
from finance_hub.services.resource_service import BaseService

logger = logging.getLogger(__name__)

ALL_ROLES_KEY = "all"


class RoleService(BaseService):
    """Roles are additive: a user may hold any subset of admin, moderator and user."""

    table = "user_roles"
    label = "Role"

    async def my_roles(self) -> list[UserRoleRead]:
        gateway, user_id = await self._session_gateway()
        return await self._cached((user_id,), lambda: self._fetch(gateway, user_id))

    async def roles_for(self, user_id: str) -> list[UserRoleRead]:
        """Roles of any user (uncached; visibility is up to the backend)."""
        return await self._call(self._fetch(await self._gateway(), user_id))

    async def all_roles(self) -> list[UserRoleRead]:
        """Every role row. Admin only."""
        await self._require_admin()
        gateway = await self._gateway()
        return await self._cached((ALL_ROLES_KEY,), lambda: self._fetch(gateway, None))

    async def list_users(self) -> list[ManagedUser]:
        """All profiles with their roles. Admin only."""
        await self._require_admin()
        gateway = await self._gateway()
        profiles = await self._call(
            gateway.select("user_profiles", TableQuery(order_by="created_at"))
        )
        roles = await self.all_roles()
        by_user: dict[str, list[Role]] = {}
        for row in roles:
            by_user.setdefault(row.user_id, []).append(row.role)
        return [
            ManagedUser(profile=UserProfileRead.model_validate(p), roles=by_user.get(p["id"], []))
            for p in profiles
        ]

    async def add_role(self, user_id: str, role: Role | str) -> UserRoleRead:
        role = Role(role)
        row = await self._write(
            "assign",
            (await self._gateway()).insert(self.table, {"user_id": user_id, "role": role.value}),
            success=f"Role {role.value} assigned",
        )
        return UserRoleRead.model_validate(row)

    async def remove_role(self, role_id: str) -> UserRoleRead:
        row = await self._write(
            "remove",
            (await self._gateway()).delete(self.table, {"id": role_id}),
            success="Role removed",
        )
        return UserRoleRead.model_validate(row)

    async def toggle_role(self, user_id: str, role: Role | str) -> UserRoleRead:
        """Grant ``role`` if the user lacks it, revoke it otherwise."""
        role = Role(role)
        current = await self.roles_for(user_id)
        for row in current:
            if row.role == role:
                return await self.remove_role(row.id)
        return await self.add_role(user_id, role)

    async def _write(self, verb: str, call: Awaitable[Row], *, success: str) -> Row:
        try:
            row = await call
        except AuthenticationError as exc:
            self._session_lost(exc)
            raise
        except BackendError as exc:
            logger.warning("Failed to %s role: %s", verb, exc.message)
            self._notifier.error(f"Could not {verb} role", exc.message)
            raise
        self._notifier.success(success)
        # both the member's own list and the admin overview are stale now
        self.invalidate(row["user_id"])
        self.invalidate(ALL_ROLES_KEY)
        return row

    async def _require_admin(self) -> None:
        roles = await self.my_roles()
        if not any(r.role == Role.ADMIN for r in roles):
            raise AuthorizationError("Admin role required", code="insufficient_role", status=403)

    async def _fetch(self, gateway: DataGatewayABC, user_id: str | None) -> list[UserRoleRead]:
        query = TableQuery(
            equals={"user_id": user_id} if user_id else {},
            order_by="created_at",
        )
        return [UserRoleRead.model_validate(row) for row in await gateway.select(self.table, query)]
