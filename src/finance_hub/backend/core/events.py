"""Session-change event bus with cancellable per-subscriber queues."""
import asyncio
import logging

from finance_hub.schemas import SessionEvent

logger = logging.getLogger(__name__)

_CLOSED = object()


class Subscription:
    """Async iterator over session events for one subscriber.

    Each subscription has its own queue so a slow consumer does not hold up
    others. ``unsubscribe()`` ends iteration and detaches from the bus.
    """

    def __init__(self, bus: "SessionEventBus") -> None:
        self._bus = bus
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _deliver(self, event: SessionEvent) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._bus._detach(self)  # pylint: disable=protected-access
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> SessionEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class SessionEventBus:
    """Fan-out of session events to every live subscription."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def subscribe(self) -> Subscription:
        subscription = Subscription(self)
        self._subscriptions.append(subscription)
        return subscription

    def publish(self, event: SessionEvent) -> None:
        logger.debug("Session event %s", event.event.value)
        for subscription in list(self._subscriptions):
            subscription._deliver(event)  # pylint: disable=protected-access

    def _detach(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)
