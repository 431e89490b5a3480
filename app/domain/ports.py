"""
Port interfaces (ABCs) required by the request pipeline.

Infrastructure adapters implement these interfaces.
The pipeline never depends on a concrete storage backend.
"""

from abc import ABC, abstractmethod

from app.domain.entities import RateLimitResult


class RateLimitStore(ABC):
    """Port for the shared, time-windowed request counters.

    Implementations must make ``hit`` an atomic increment-and-compare,
    since it is called concurrently by every in-flight request.
    """

    @abstractmethod
    async def hit(self, key: str) -> RateLimitResult:
        """Count one request for ``key`` and report whether it is admitted.

        Args:
            key: The client identity (usually the remote address).

        Returns:
            The admission decision and the window statistics after the hit.
        """
        raise NotImplementedError

    @abstractmethod
    async def reset(self) -> None:
        """Drop every counter."""
        raise NotImplementedError
