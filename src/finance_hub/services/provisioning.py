"""Idempotent creation of the rows every user needs: profile and settings."""
import logging
from dataclasses import dataclass

from finance_hub.backend.core import DataGatewayABC
from finance_hub.db import Language, Theme

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvisionResult:
    """Which rows ``ensure_rows`` actually inserted."""

    profile_created: bool
    settings_created: bool

    @property
    def created_any(self) -> bool:
        return self.profile_created or self.settings_created


def default_settings(user_id: str) -> dict:
    return {
        "user_id": user_id,
        "theme": Theme.LIGHT.value,
        "language": Language.ES.value,
        "notifications": True,
        "email_notifications": True,
        "dashboard_widgets": [],
    }


class UserProvisioner:
    """Creates a user's profile and default settings unless they already exist.

    Both writes are upserts that ignore duplicates, so concurrent or repeated
    calls for the same user are harmless.
    """

    def __init__(self, data: DataGatewayABC) -> None:
        self._data = data

    async def ensure_rows(
        self,
        user_id: str,
        email: str | None,
        full_name: str | None = None,
        *,
        access_token: str | None = None,
    ) -> ProvisionResult:
        """Make sure ``user_id`` has a profile and a settings row.

        Args:
            user_id: Auth user id (also the profile's primary key).
            email: Email stored on the profile.
            full_name: Display name stored on the profile.
            access_token: Act as the user instead of with service-role rights.

        Returns:
            Which of the two rows were created by this call.
        """
        gateway = self._data.scoped(user_id, access_token) if access_token else self._data
        profile = await gateway.upsert(
            "user_profiles",
            {"id": user_id, "email": email or "", "full_name": full_name or ""},
            on_conflict="id",
        )
        settings = await gateway.upsert(
            "settings", default_settings(user_id), on_conflict="user_id"
        )
        result = ProvisionResult(
            profile_created=profile is not None, settings_created=settings is not None
        )
        if result.created_any:
            logger.info(
                "Provisioned user %s (profile=%s, settings=%s)",
                user_id,
                result.profile_created,
                result.settings_created,
            )
        return result
