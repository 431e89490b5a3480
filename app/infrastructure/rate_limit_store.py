"""
Adapter: Rate-limit counters.

Implements the RateLimitStore port on top of the ``limits`` package
(the engine behind slowapi). The storage backend is chosen by URI so
the in-memory default can be swapped for redis or memcached when the
API runs on more than one process.
"""

import logging

from limits import RateLimitItemPerMinute
from limits.aio.strategies import FixedWindowRateLimiter
from limits.storage import storage_from_string

from app.domain.entities import RateLimitResult
from app.domain.ports import RateLimitStore

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_URI = "async+memory://"


class LimitsRateLimitStore(RateLimitStore):
    """Fixed-window request counters keyed by client identity.

    ``hit`` delegates to the storage's atomic increment, so concurrent
    requests from the same client can never both take the last slot.
    """

    def __init__(
        self,
        max_requests: int,
        window_minutes: int,
        storage_uri: str = DEFAULT_STORAGE_URI,
        namespace: str = "api",
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_minutes < 1:
            raise ValueError("window_minutes must be at least 1")
        self._item = RateLimitItemPerMinute(max_requests, window_minutes)
        self._storage = storage_from_string(storage_uri)
        self._limiter = FixedWindowRateLimiter(self._storage)
        self._namespace = namespace
        logger.debug(
            "Rate limit store ready: %s per %d min on %s",
            max_requests,
            window_minutes,
            storage_uri,
        )

    @property
    def limit(self) -> int:
        return self._item.amount

    async def hit(self, key: str) -> RateLimitResult:
        """Count one request for ``key`` against the current window."""
        allowed = await self._limiter.hit(self._item, self._namespace, key)
        reset_time, remaining = await self._limiter.get_window_stats(
            self._item, self._namespace, key
        )
        return RateLimitResult(
            allowed=allowed,
            limit=self._item.amount,
            remaining=max(0, int(remaining)),
            reset_at=int(reset_time),
        )

    async def reset(self) -> None:
        """Drop every counter held by the backing storage."""
        await self._storage.reset()
