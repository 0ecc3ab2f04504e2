"""Security audit log: read and append only."""
import logging
from collections.abc import Awaitable
from typing import Any

from pydantic import Field

from finance_hub.backend.core import AuthenticationError, BackendError
from finance_hub.schemas import SecurityEventCreate, SecurityLogRead
from finance_hub.services.resource_service import BaseService, ListFilters

logger = logging.getLogger(__name__)

DEFAULT_LOG_LIMIT = 30


class SecurityLogFilters(ListFilters):
    event_type: str | None = None
    limit: int | None = Field(default=DEFAULT_LOG_LIMIT, ge=1)


class SecurityLogService(BaseService):
    table = "security_logs"
    label = "Security event"

    async def list(self, filters: SecurityLogFilters | None = None) -> list[SecurityLogRead]:
        """The current user's audit trail, newest first (30 entries by default)."""
        filters = filters or SecurityLogFilters()
        gateway, user_id = await self._session_gateway()

        async def fetch() -> list[SecurityLogRead]:
            rows = await gateway.select(self.table, filters.to_query("created_at"))
            return [SecurityLogRead.model_validate(row) for row in rows]

        return await self._cached((user_id, filters.cache_token()), fetch)

    async def log_event(
        self,
        event_type: str,
        description: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Any:
        """Append an event through the log_security_event backend function.

        Returns:
            The new log row's id as returned by the backend.
        """
        event = SecurityEventCreate(
            event_type=event_type,
            description=description,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        result = await self._written(
            (await self._gateway()).rpc("log_security_event", event.model_dump())
        )
        logger.debug("Logged security event %s", event_type)
        self.invalidate()
        return result

    async def _written(self, call: Awaitable[Any]) -> Any:
        try:
            return await call
        except AuthenticationError as exc:
            self._session_lost(exc)
            raise
        except BackendError as exc:
            logger.warning("Failed to record security event: %s", exc.message)
            self._notifier.error("Could not record security event", exc.message)
            raise
