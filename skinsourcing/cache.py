"""In-memory TTL cache shared by the marketplace adapters.

Entries expire lazily: an expired entry is dropped the next time it is read.
There is no size bound and no background sweeping. get_or_compute() does not
coalesce concurrent misses for the same key; each caller runs its own
compute().
"""

from __future__ import annotations

import inspect
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar, Union

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 120.0

_MISSING = object()


@dataclass
class CacheEntry(Generic[T]):
    """Cached value with its absolute expiry instant (clock seconds)."""
    value: T
    expires_at: float


class TTLCache(Generic[T]):
    """
    Key -> value memoizer with per-entry expiry.

    Args:
        default_ttl_seconds: lifetime used when set() gets no explicit ttl
        clock: monotonic time source in seconds; injectable for tests
    """

    def __init__(
        self,
        default_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._store: Dict[str, CacheEntry[T]] = {}

    def _lookup(self, key: str) -> Any:
        entry = self._store.get(key)
        if entry is None:
            return _MISSING
        if self._clock() > entry.expires_at:
            del self._store[key]
            return _MISSING
        return entry.value

    def get(self, key: str, default: Optional[T] = None) -> Optional[T]:
        """Return the cached value, or default if absent or expired."""
        value = self._lookup(key)
        if value is _MISSING:
            return default
        return value

    def __contains__(self, key: str) -> bool:
        return self._lookup(key) is not _MISSING

    def set(self, key: str, value: T, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._store[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Union[T, Awaitable[T]]],
        ttl_seconds: Optional[float] = None,
    ) -> T:
        """
        Return the cached value for key, computing and storing it on a miss.

        compute may be a plain callable or return an awaitable. Exceptions from
        compute propagate and nothing is stored.
        """
        cached = self._lookup(key)
        if cached is not _MISSING:
            return cached

        value = compute()
        if inspect.isawaitable(value):
            value = await value
        self.set(key, value, ttl_seconds)
        return value

    def clear(self) -> int:
        """Drop every entry. Returns the count removed."""
        count = len(self._store)
        self._store.clear()
        return count

    def __len__(self) -> int:
        return len(self._store)
