"""Location history for the headless client."""
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Location:
    path: str
    state: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


class Navigator:
    """Keeps the current location and the history of visited locations."""

    def __init__(self, initial_path: str = "/") -> None:
        self._history: list[Location] = [Location(initial_path)]

    @property
    def location(self) -> Location:
        return self._history[-1]

    @property
    def history(self) -> list[Location]:
        return list(self._history)

    def navigate(
        self,
        path: str,
        *,
        state: Mapping[str, Any] | None = None,
        replace: bool = False,
    ) -> Location:
        """Move to ``path``; ``replace`` overwrites the current entry instead of pushing."""
        location = Location(path, MappingProxyType(dict(state or {})))
        if replace:
            self._history[-1] = location
        else:
            self._history.append(location)
        logger.debug("Navigated to %s%s", path, " (replace)" if replace else "")
        return location

    def back(self) -> Location:
        if len(self._history) > 1:
            self._history.pop()
        return self.location

    def return_path(self, default: str = "/") -> str:
        """The path a login redirect preserved in ``from``, else ``default``."""
        return self.location.state.get("from") or default
