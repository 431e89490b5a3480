"""
Rate limiting stage.

Counts requests under a path prefix per client identity in an injected
RateLimitStore. Once a client exceeds its window the request fails with
a 429 AppError and goes no further.
Protects against denial-of-service and resource abuse.
"""

import logging
import time

from slowapi.util import get_remote_address
from starlette.datastructures import MutableHeaders

from app.domain.entities import RateLimitResult
from app.domain.errors import AppError
from app.domain.ports import RateLimitStore
from app.shared.pipeline.stage import RequestContext, Stage, StageOutcome

logger = logging.getLogger(__name__)

HTTP_429 = 429
DEFAULT_MESSAGE = "Too many requests from this IP, please try again in an hour!"
_RESULT_KEY = "rate_limit"


def path_in_scope(path: str, prefix: str) -> bool:
    """Return True when ``path`` is ``prefix`` itself or lies below it."""
    if prefix == "/":
        return True
    return path == prefix or path.startswith(prefix + "/")


class RateLimitStage(Stage):
    """Admits at most the store's limit of requests per client per window.

    Args:
        store: Shared counters keyed by client identity.
        prefix: Only paths under this prefix are counted.
        message: Message of the 429 error sent to limited clients.
    """

    name = "rate-limit"

    def __init__(
        self,
        store: RateLimitStore,
        prefix: str = "/api",
        message: str = DEFAULT_MESSAGE,
    ) -> None:
        self._store = store
        self._prefix = prefix
        self._message = message

    async def process(self, ctx: RequestContext) -> StageOutcome:
        if not path_in_scope(ctx.path, self._prefix):
            return StageOutcome.proceed()

        client = get_remote_address(ctx.request)
        result = await self._store.hit(client)
        ctx.state[_RESULT_KEY] = result
        if not result.allowed:
            logger.warning("Rate limit exceeded for client %s on %s", client, ctx.path)
            return StageOutcome.fail(AppError(self._message, HTTP_429))
        return StageOutcome.proceed()

    def finalize(self, ctx: RequestContext, headers: MutableHeaders) -> None:
        result: RateLimitResult | None = ctx.state.get(_RESULT_KEY)
        if result is None:
            return
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = str(result.remaining)
        headers["X-RateLimit-Reset"] = str(result.reset_at)
        if not result.allowed:
            retry_after = max(0, result.reset_at - int(time.time()))
            headers["Retry-After"] = str(retry_after)
