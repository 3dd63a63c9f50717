# Rate limiting for outbound marketplace calls

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RateLimiter:
    """
    Paces and bounds concurrent tasks.

    - At most max_concurrent scheduled tasks run at once.
    - Successive task starts are spaced by at least min_interval seconds.
    - Tasks are admitted in submission order (asyncio primitives are FIFO).

    A task cancelled while queued or running releases its slot.
    """

    def __init__(self, name: str, min_interval: float = 0.2, max_concurrent: int = 1):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.name = name
        self.min_interval = max(0.0, min_interval)
        self.max_concurrent = max_concurrent
        self.last_start = 0.0

        # Created on first use so they bind to the running event loop
        self._slots: Optional[asyncio.Semaphore] = None
        self._pace_lock: Optional[asyncio.Lock] = None

    def _get_slots(self) -> asyncio.Semaphore:
        if self._slots is None:
            self._slots = asyncio.Semaphore(self.max_concurrent)
        return self._slots

    def _get_pace_lock(self) -> asyncio.Lock:
        if self._pace_lock is None:
            self._pace_lock = asyncio.Lock()
        return self._pace_lock

    async def _wait_turn(self) -> None:
        # Held while sleeping so starts stay ordered
        async with self._get_pace_lock():
            now = time.monotonic()
            elapsed = now - self.last_start
            if self.last_start and elapsed < self.min_interval:
                await asyncio.sleep(self.min_interval - elapsed)
            self.last_start = time.monotonic()

    async def schedule(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Run fn(*args, **kwargs) once this limiter admits it."""
        async with self._get_slots():
            await self._wait_turn()
            return await fn(*args, **kwargs)


class LimiterRegistry:
    """
    One global limiter plus one lazily created limiter per provider name.

    Owned by the aggregator and reused for the process lifetime.
    """

    def __init__(
        self,
        global_limiter: RateLimiter,
        provider_min_interval: float = 0.3,
        provider_max_concurrent: int = 1,
    ):
        self.global_limiter = global_limiter
        self.provider_min_interval = provider_min_interval
        self.provider_max_concurrent = provider_max_concurrent
        self._providers: Dict[str, RateLimiter] = {}

    def for_provider(self, provider_name: str) -> RateLimiter:
        limiter = self._providers.get(provider_name)
        if limiter is None:
            limiter = RateLimiter(
                provider_name,
                min_interval=self.provider_min_interval,
                max_concurrent=self.provider_max_concurrent,
            )
            self._providers[provider_name] = limiter
            logger.debug(f"Created rate limiter for provider {provider_name}")
        return limiter

    async def run(self, provider_name: str, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Schedule fn through the global limiter, then the provider's own."""
        provider_limiter = self.for_provider(provider_name)
        return await self.global_limiter.schedule(provider_limiter.schedule, fn, *args, **kwargs)
