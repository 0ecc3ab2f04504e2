"""In-process query cache with per-entry stale times."""
import logging
import time
from collections.abc import Awaitable, Callable, Hashable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

CacheKey = tuple[Hashable, ...]

DEFAULT_STALE_SECONDS = 5 * 60.0


class QueryCache:
    """Cache for list/detail reads keyed by tuples such as ("connections", user_id).

    Entries are served until they are older than the stale time given on read.
    Mutations invalidate by key prefix; nothing is ever patched in place. A
    fetch that raises leaves the previous entry untouched.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize an empty cache.

        Args:
            clock: Monotonic clock in seconds (tests pass a fake).
        """
        self._clock = clock
        self._entries: dict[CacheKey, tuple[float, Any]] = {}

    async def get_or_fetch(
        self,
        key: CacheKey,
        fetch: Callable[[], Awaitable[T]],
        *,
        stale_after: float = DEFAULT_STALE_SECONDS,
    ) -> T:
        """Return the cached value for ``key`` or fetch, store and return a fresh one.

        Args:
            key: Cache key; the first element is the resource name.
            fetch: Coroutine factory producing the value.
            stale_after: Seconds after which a cached value is refetched.

        Returns:
            The cached or freshly fetched value.
        """
        entry = self._entries.get(key)
        now = self._clock()
        if entry is not None and now - entry[0] < stale_after:
            return entry[1]
        value = await fetch()
        self._entries[key] = (self._clock(), value)
        return value

    def peek(self, key: CacheKey) -> Any | None:
        """Return the cached value regardless of age, or None."""
        entry = self._entries.get(key)
        return entry[1] if entry else None

    def set(self, key: CacheKey, value: Any) -> None:
        self._entries[key] = (self._clock(), value)

    def invalidate(self, *prefix: Hashable) -> int:
        """Drop every entry whose key starts with ``prefix``; return how many."""
        doomed = [key for key in self._entries if key[: len(prefix)] == prefix]
        for key in doomed:
            del self._entries[key]
        if doomed:
            logger.debug("Invalidated %d cache entries under %s", len(doomed), prefix)
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()
