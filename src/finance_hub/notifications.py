"""User-facing notifications (the headless stand-in for toast messages)."""
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    title: str
    message: str | None = None


class Notifier:
    """Collects notifications for the presentation layer, newest last.

    Only the most recent ``maxlen`` notifications are kept.
    """

    def __init__(self, maxlen: int = 50) -> None:
        self._items: deque[Notification] = deque(maxlen=maxlen)

    def _push(self, level: NotificationLevel, title: str, message: str | None) -> Notification:
        notification = Notification(level=level, title=title, message=message)
        self._items.append(notification)
        log = logger.warning if level is NotificationLevel.ERROR else logger.info
        log("[%s] %s%s", level.value, title, f": {message}" if message else "")
        return notification

    def success(self, title: str, message: str | None = None) -> Notification:
        return self._push(NotificationLevel.SUCCESS, title, message)

    def info(self, title: str, message: str | None = None) -> Notification:
        return self._push(NotificationLevel.INFO, title, message)

    def error(self, title: str, message: str | None = None) -> Notification:
        return self._push(NotificationLevel.ERROR, title, message)

    @property
    def history(self) -> list[Notification]:
        return list(self._items)

    @property
    def last(self) -> Notification | None:
        return self._items[-1] if self._items else None

    def clear(self) -> None:
        self._items.clear()
