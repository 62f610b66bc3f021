"""Time-based memoization for read operations.

Each service owns its own ``TTLCache``; nothing here is module-global.
Concurrent identical requests may compute the same value twice, the last
writer wins.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _Entry:
    value: Any
    stored_at: float
    ttl: float


def make_key(*parts: Any, **params: Any) -> str:
    """Build a deterministic cache key from call parameters.

    Keyword parameters are serialized with sorted keys, so argument order
    does not change the key. Values JSON cannot encode fall back to ``str``.
    """
    payload = {"args": list(parts), "params": params}
    return json.dumps(payload, sort_keys=True, default=str, separators=(",", ":"))


class TTLCache:
    """Key/value cache whose entries expire after a time-to-live."""

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            ttl_seconds: Default lifetime of an entry
            clock: Monotonic time source, replaceable in tests
        """
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be non-negative")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self._lookup(key) is not None

    def _lookup(self, key: str) -> Optional[_Entry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= entry.ttl:
            del self._entries[key]
            return None
        return entry

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._lookup(key)
        return default if entry is None else entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        self._entries[key] = _Entry(
            value=value,
            stored_at=self._clock(),
            ttl=self.ttl_seconds if ttl is None else ttl,
        )

    def memoize(
        self, key: str, compute: Callable[[], T], ttl: Optional[float] = None
    ) -> T:
        """Return the cached value for ``key`` or compute and store it."""
        entry = self._lookup(key)
        if entry is not None:
            self.hits += 1
            logger.debug("Cache hit for %s", key)
            return entry.value
        self.misses += 1
        value = compute()
        self.set(key, value, ttl)
        return value

    async def memoize_async(
        self,
        key: str,
        compute: Callable[[], Awaitable[T]],
        ttl: Optional[float] = None,
    ) -> T:
        """Async variant of ``memoize`` for coroutine producers."""
        entry = self._lookup(key)
        if entry is not None:
            self.hits += 1
            logger.debug("Cache hit for %s", key)
            return entry.value
        self.misses += 1
        value = await compute()
        self.set(key, value, ttl)
        return value

    def invalidate(self, key: str) -> bool:
        """Drop one entry. Returns True if it was present."""
        return self._entries.pop(key, None) is not None

    def invalidate_all(self) -> None:
        """Drop every entry; call after master data changes."""
        count = len(self._entries)
        self._entries.clear()
        logger.debug("Cache cleared (%d entries)", count)

    def stats(self) -> dict[str, Any]:
        return {
            "size": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "ttl_seconds": self.ttl_seconds,
            "keys": sorted(self._entries),
        }
