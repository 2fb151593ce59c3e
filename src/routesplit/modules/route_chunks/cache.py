"""Content-addressed cache shared by the route chunk analysis steps.

A cache is created by the caller once per build or dev session and passed
to every analysis call. Entries are keyed by ``<module>::<operation>`` and
carry the version token of the source they were computed from; a lookup
with a different version recomputes and overwrites the entry.
"""

from __future__ import annotations

from dataclasses import dataclass
import threading
from typing import Any, Callable, Generic, TypeVar

from routesplit.core.logging import get_logger

__all__ = ["CacheEntry", "RouteChunkCache", "cache_key", "get_or_set"]

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """Cached ``value`` computed from source with token ``version``."""

    value: T
    version: str


class RouteChunkCache:
    """Thread-safe mapping of cache keys to :class:`CacheEntry` values.

    Computation happens outside the lock, so two threads may compute the
    same entry concurrently; the last write wins and both values are
    equivalent because analysis is a pure function of the source.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> CacheEntry[Any] | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, value: Any, *, version: str) -> None:
        entry = CacheEntry(value=value, version=version)
        with self._lock:
            self._entries[key] = entry

    def get_or_set(self, key: str, version: str, factory: Callable[[], T]) -> T:
        """Return the value cached for ``key`` at ``version`` or compute it."""

        entry = self.get(key)
        if entry is not None and entry.version == version:
            return entry.value
        get_logger(__name__).debug(
            "route-chunk-cache-miss",
            key=key,
            stale=entry is not None,
        )
        value = factory()
        self.set(key, value, version=version)
        return value

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def cache_key(module_key: str, operation: str, *params: str) -> str:
    """Build a cache key for ``operation`` on the module ``module_key``.

    Example:
        >>> cache_key("routes/home.tsx", "extract", "clientLoader")
        'routes/home.tsx::extract::clientLoader'
    """

    return "::".join((module_key, operation, *params))


def get_or_set(
    cache: RouteChunkCache | None,
    key: str,
    version: str,
    factory: Callable[[], T],
) -> T:
    """Memoise ``factory`` through ``cache``; ``None`` always recomputes."""

    if cache is None:
        return factory()
    return cache.get_or_set(key, version, factory)
