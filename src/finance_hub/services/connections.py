"""Connections to external financial API providers."""
import asyncio
import logging

from finance_hub.backend.core import AuthenticationError, BackendError
from finance_hub.db import ConnectionStatus
from finance_hub.schemas import (ConnectionCreate, ConnectionRead,
                                 ConnectionUpdate)
from finance_hub.services.resource_service import ListFilters, ResourceService
from finance_hub.utils import utcnow

logger = logging.getLogger(__name__)

DEFAULT_SYNC_DELAY_SECONDS = 1.5


class ConnectionFilters(ListFilters):
    status: ConnectionStatus | None = None
    provider: str | None = None


class ConnectionService(ResourceService[ConnectionRead]):
    table = "connections"
    label = "Connection"
    read_model = ConnectionRead
    create_model = ConnectionCreate
    update_model = ConnectionUpdate
    filters_model = ConnectionFilters

    def __init__(self, *args, sync_delay: float = DEFAULT_SYNC_DELAY_SECONDS, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._sync_delay = sync_delay

    async def refresh(self, connection_id: str) -> ConnectionRead:
        """Synchronize a connection with its provider.

        The provider call is simulated by a delay; the connection always ends
        up active with no error and ``last_sync`` set to now.
        """
        gateway = await self._gateway()
        await asyncio.sleep(self._sync_delay)
        values = {
            "status": ConnectionStatus.ACTIVE.value,
            "error_message": None,
            "last_sync": utcnow().isoformat(),
        }
        try:
            row = await gateway.update(self.table, {"id": connection_id}, values)
        except AuthenticationError as exc:
            self._session_lost(exc)
            raise
        except BackendError as exc:
            logger.warning("Sync of connection %s failed: %s", connection_id, exc.message)
            self._notifier.error("Could not sync connection", exc.message)
            raise
        self._notifier.success("Connection synced")
        self.invalidate()
        return self._parse(row)
