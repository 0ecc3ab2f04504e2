"""Per-user settings: exactly one row per user."""
from typing import Any

from finance_hub.schemas import SettingsUpdate, UserSettingsRead
from finance_hub.services.resource_service import BaseService

SETTINGS_STALE_SECONDS = 10 * 60.0


class SettingsService(BaseService):
    table = "settings"
    label = "Settings"
    stale_after = SETTINGS_STALE_SECONDS

    async def get(self) -> UserSettingsRead | None:
        """The current user's settings with defaults filled in; None if no row exists yet."""
        gateway, user_id = await self._session_gateway()

        async def fetch() -> UserSettingsRead | None:
            row = await gateway.select_one(self.table, {"user_id": user_id})
            return UserSettingsRead.model_validate(row) if row else None

        return await self._cached((user_id,), fetch)

    async def update(self, changes: SettingsUpdate | dict[str, Any]) -> UserSettingsRead:
        gateway, user_id = await self._session_gateway()
        if not isinstance(changes, SettingsUpdate):
            changes = SettingsUpdate.model_validate(changes)
        values = changes.model_dump(mode="json", exclude_unset=True)
        row = await self._notified("update", gateway.update(self.table, {"user_id": user_id}, values))
        return UserSettingsRead.model_validate(row)
