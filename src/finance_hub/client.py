"""Headless hub client: the session store, router and resource services together."""
import logging
from collections.abc import Callable

from finance_hub.notifications import Notifier
from finance_hub.routing.guard import Router
from finance_hub.services import (AutomationService, ConnectionService,
                                  RoleService, SecurityLogService,
                                  SettingsService, TransactionService)
from finance_hub.session import AuthState, SessionStore

logger = logging.getLogger(__name__)


class HubClient:
    """What a front end binds to. ``start()`` rehydrates and begins routing."""

    def __init__(
        self,
        *,
        store: SessionStore,
        router: Router,
        notifier: Notifier,
        connections: ConnectionService,
        transactions: TransactionService,
        automations: AutomationService,
        settings: SettingsService,
        roles: RoleService,
        security_logs: SecurityLogService,
    ) -> None:
        self.store = store
        self.router = router
        self.notifier = notifier
        self.connections = connections
        self.transactions = transactions
        self.automations = automations
        self.settings = settings
        self.roles = roles
        self.security_logs = security_logs
        self._remove_listener: Callable[[], None] | None = None

    @property
    def state(self) -> AuthState:
        return self.store.state

    async def start(self) -> AuthState:
        if self._remove_listener is None:
            self._remove_listener = self.store.add_listener(self.router.on_state_change)
        state = await self.store.start()
        self.router.evaluate()
        return state

    async def stop(self) -> None:
        await self.store.stop()
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None

    async def __aenter__(self) -> "HubClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.stop()
