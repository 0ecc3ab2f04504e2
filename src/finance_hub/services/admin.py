"""Server-side bootstrap of the administrator account."""
import logging
import secrets
from dataclasses import dataclass

from finance_hub.backend.core import AuthGatewayABC, DataGatewayABC
from finance_hub.db import Role
from finance_hub.services.provisioning import UserProvisioner

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_EMAIL = "admin@financehub.local"
DEFAULT_ADMIN_FULL_NAME = "Administrator"
PASSWORD_BYTES = 18


@dataclass(frozen=True)
class AdminCredentials:
    email: str
    full_name: str
    # only set on the call that created the account
    password: str | None = None

    def as_payload(self) -> dict:
        return {"email": self.email, "password": self.password, "fullName": self.full_name}


@dataclass(frozen=True)
class AdminBootstrapResult:
    created: bool
    credentials: AdminCredentials
    user_id: str | None = None


def generate_password() -> str:
    """A one-time random password for a freshly created admin."""
    return secrets.token_urlsafe(PASSWORD_BYTES)


class AdminBootstrapper:
    """Creates the configured admin account once; later calls are no-ops.

    The account is identified by its email. A new account gets a random
    password that is reported exactly once; repeated calls report the same
    identity with no password and create nothing.
    """

    def __init__(
        self,
        auth: AuthGatewayABC,
        data: DataGatewayABC,
        provisioner: UserProvisioner,
        *,
        email: str = DEFAULT_ADMIN_EMAIL,
        full_name: str = DEFAULT_ADMIN_FULL_NAME,
    ) -> None:
        """Initialize the bootstrapper.

        Args:
            auth: Auth gateway with a service-role key.
            data: Service-role data gateway.
            provisioner: Creates the admin's profile and settings rows.
            email: Admin account email (the idempotency key).
            full_name: Display name for the admin profile.
        """
        self._auth = auth
        self._data = data
        self._provisioner = provisioner
        self._email = email
        self._full_name = full_name

    async def ensure_admin(
        self, *, ip_address: str | None = None, user_agent: str | None = None
    ) -> AdminBootstrapResult:
        existing = await self._data.select_one("user_profiles", {"email": self._email})
        if existing is not None:
            logger.info("Admin %s already exists", self._email)
            return AdminBootstrapResult(
                created=False,
                credentials=AdminCredentials(
                    email=self._email, full_name=existing.get("full_name") or self._full_name
                ),
                user_id=existing["id"],
            )

        password = generate_password()
        user = await self._auth.admin_create_user(
            self._email, password, {"full_name": self._full_name}, email_confirm=True
        )
        await self._provisioner.ensure_rows(user.id, self._email, self._full_name)
        await self._data.upsert(
            "user_roles",
            {"user_id": user.id, "role": Role.ADMIN.value},
            on_conflict="user_id,role",
        )
        await self._data.insert(
            "security_logs",
            {
                "user_id": user.id,
                "event_type": "admin_created",
                "description": f"Admin user created: {self._email}",
                "ip_address": ip_address or "unknown",
                "user_agent": user_agent or "unknown",
            },
        )
        logger.info("Created admin %s (%s)", self._email, user.id)
        return AdminBootstrapResult(
            created=True,
            credentials=AdminCredentials(
                email=self._email, full_name=self._full_name, password=password
            ),
            user_id=user.id,
        )
