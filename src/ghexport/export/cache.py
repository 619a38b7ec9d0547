"""Time-expiring key/value cache for one export run.

Eviction is lazy: an expired entry is dropped when it is next read, there
is no background sweep. ``now`` is injectable for deterministic tests.
"""

import time
from typing import Any, Awaitable, Callable, Generic, Iterable, Optional, TypeVar

__all__ = ["TtlCache", "create_cache_key", "read_through_cache"]

V = TypeVar("V")


def _wall_clock_ms() -> float:
    return time.time() * 1000


class TtlCache(Generic[V]):
    """Map from string key to value, each entry living ``ttl_ms`` milliseconds.

    An entry set at time ``t`` is live while ``now() < t + ttl_ms``.
    A negative TTL is treated as 0, so entries expire immediately.
    """

    def __init__(self, ttl_ms: float, now: Optional[Callable[[], float]] = None) -> None:
        self.ttl_ms = max(0, ttl_ms)
        self._now = now or _wall_clock_ms
        self._entries: dict[str, tuple[V, float]] = {}

    def get(self, key: str) -> Optional[V]:
        """Return the live value for *key*, or None (evicting it if expired)."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if expires_at <= self._now():
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: V) -> None:
        self._entries[key] = (value, self._now() + self.ttl_ms)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def create_cache_key(parts: Iterable[Any]) -> str:
    """Join parts with ``|``; None becomes the empty string.

    Callers include the auth scope and target identifiers in *parts* so
    that anonymous and token-backed results never share an entry.
    """
    return "|".join("" if part is None else str(part) for part in parts)


async def read_through_cache(
    cache: TtlCache[Any], key: str, load: Callable[[], Awaitable[V]]
) -> V:
    """Return the cached value for *key*, loading and storing it on a miss."""
    cached = cache.get(key)
    if cached is not None:
        return cached

    value = await load()
    cache.set(key, value)
    return value
