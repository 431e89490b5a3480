"""
Value objects crossing the domain boundary.

They contain no framework imports and no IO operations.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of counting one request against a client's window.

    Attributes:
        allowed: False once the client exceeded the window's limit.
        limit: Maximum number of requests admitted per window.
        remaining: Requests still admitted in the current window.
        reset_at: Unix timestamp (seconds) at which the window resets.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
