"""
Cross-origin policy stage.

The allow-list checks and the CORS response headers come from
Starlette's ``CORSMiddleware``. Two things differ from mounting it
directly. Every OPTIONS request is answered here with 204, before rate
limiting and routing run. A rejected preflight, or a simple request
from an unlisted origin, gets no allow-origin or credentials headers.
"""

import logging
from collections.abc import Iterable

from starlette.datastructures import MutableHeaders
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from app.shared.pipeline.stage import RequestContext, Stage, StageOutcome

logger = logging.getLogger(__name__)

PREFLIGHT_STATUS = 204
_PREFLIGHT_KEY = "cors_preflight"
_GRANT_HEADERS = ("access-control-allow-origin", "access-control-allow-credentials")
_BODY_HEADERS = ("content-length", "content-type")


async def _policy_only(scope: Scope, receive: Receive, send: Send) -> None:
    raise RuntimeError("CorsStage uses CORSMiddleware as a policy, not as an app")


class CorsStage(Stage):
    """Applies the allow-list CORS policy.

    Args:
        origins: Exact origins allowed to read responses.
        methods: Methods a cross-origin caller may use.
        allowed_headers: Request headers a cross-origin caller may send.
        credentials: Whether allowed origins may send cookies.
    """

    name = "cors"

    def __init__(
        self,
        origins: Iterable[str],
        methods: Iterable[str],
        allowed_headers: Iterable[str],
        credentials: bool = True,
    ) -> None:
        self._policy = CORSMiddleware(
            _policy_only,
            allow_origins=[origin.rstrip("/") for origin in origins],
            allow_methods=[method.upper() for method in methods],
            allow_headers=list(allowed_headers),
            allow_credentials=credentials,
        )

    def is_origin_allowed(self, origin: str | None) -> bool:
        return origin is not None and self._policy.is_allowed_origin(origin)

    def _preflight_headers(self, ctx: RequestContext) -> dict[str, str]:
        request_headers = ctx.request.headers
        if "origin" in request_headers and "access-control-request-method" in request_headers:
            checked = self._policy.preflight_response(request_headers=request_headers)
            headers = {
                key: value
                for key, value in checked.headers.items()
                if key not in _BODY_HEADERS
            }
            if checked.status_code < 400:
                return headers
            logger.debug(
                "Rejected preflight from %s for %s",
                request_headers["origin"],
                ctx.path,
            )
        else:
            headers = dict(self._policy.preflight_headers)
        return {
            key: value
            for key, value in headers.items()
            if key.lower() not in _GRANT_HEADERS
        }

    async def process(self, ctx: RequestContext) -> StageOutcome:
        if ctx.method != "OPTIONS":
            return StageOutcome.proceed()
        ctx.state[_PREFLIGHT_KEY] = True
        response = Response(
            status_code=PREFLIGHT_STATUS, headers=self._preflight_headers(ctx)
        )
        return StageOutcome.terminate(response)

    def finalize(self, ctx: RequestContext, headers: MutableHeaders) -> None:
        if ctx.state.get(_PREFLIGHT_KEY):
            return
        origin = ctx.request.headers.get("origin")
        if not self.is_origin_allowed(origin):
            # Credentials are granted to allow-listed origins only
            headers.add_vary_header("Origin")
            return
        headers.update(self._policy.simple_headers)
        self._policy.allow_explicit_origin(headers, origin)
