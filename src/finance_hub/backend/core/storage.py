"""Persistence of the auth session between runs."""
import json
import logging
from pathlib import Path

from pydantic import ValidationError

from finance_hub.schemas import AuthSession

logger = logging.getLogger(__name__)


class MemorySessionStorage:
    """Keeps the session for the lifetime of the process."""

    def __init__(self) -> None:
        self._session: AuthSession | None = None

    def load(self) -> AuthSession | None:
        return self._session

    def save(self, session: AuthSession) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None


class FileSessionStorage:
    """Stores the session as JSON in a file; an unreadable file counts as signed out."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def load(self) -> AuthSession | None:
        if not self._path.exists():
            return None
        try:
            return AuthSession.model_validate(json.loads(self._path.read_text()))
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self._path, exc)
            return None

    def save(self, session: AuthSession) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(session.model_dump_json())

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)


SessionStorage = MemorySessionStorage | FileSessionStorage
