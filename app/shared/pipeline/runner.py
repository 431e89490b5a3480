"""
Pipeline runner.

Pure ASGI middleware that runs the configured stages in order, then
the wrapped application. Every response, including short-circuit and
error responses, passes through each stage's ``finalize`` hook.
Errors from stages and unexpected router exceptions are rendered by
the error boundary; nothing escapes to the server.
"""

import logging
from collections.abc import Callable, Sequence

from starlette.datastructures import MutableHeaders
from starlette.requests import ClientDisconnect, Request
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.shared.pipeline.stage import Action, RequestContext, Stage, StageOutcome

logger = logging.getLogger(__name__)

ErrorBoundary = Callable[[Request, Exception], Response]


class RequestPipeline:
    """Runs ordered stages in front of an ASGI application.

    Args:
        app: The downstream application (FastAPI routing).
        stages: Stages in the order they must run.
        error_boundary: Renders any error into the response to send.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        stages: Sequence[Stage],
        error_boundary: ErrorBoundary,
    ) -> None:
        self._app = app
        self._stages = tuple(stages)
        self._error_boundary = error_boundary

    @property
    def stages(self) -> tuple[Stage, ...]:
        return self._stages

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self._app(scope, receive, send)
            return

        ctx = RequestContext(scope, receive)

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                ctx.status_code = int(message["status"])
                ctx.response_started = True
                message["headers"] = list(message.get("headers") or [])
                headers = MutableHeaders(scope=message)
                for stage in self._stages:
                    stage.finalize(ctx, headers)
            await send(message)

        try:
            outcome = await self._run_stages(ctx)
            if outcome.action is Action.TERMINATE:
                await outcome.response(ctx.scope, ctx.receive, send_wrapper)
            elif outcome.action is Action.ERROR:
                await self._send_error(ctx, outcome.error, send_wrapper)
            else:
                await self._app(ctx.scope, ctx.receive, send_wrapper)
        except ClientDisconnect:
            logger.debug("Client disconnected during %s %s", ctx.method, ctx.path)
        except Exception as exc:
            if ctx.response_started:
                logger.error(
                    "Error after response started on %s %s",
                    ctx.method,
                    ctx.path,
                    exc_info=True,
                )
                raise
            await self._send_error(ctx, exc, send_wrapper)

    async def _run_stages(self, ctx: RequestContext) -> StageOutcome:
        for stage in self._stages:
            outcome = await stage.process(ctx)
            if outcome.action is not Action.CONTINUE:
                logger.debug(
                    "Stage %s ended %s %s with %s",
                    stage.name,
                    ctx.method,
                    ctx.path,
                    outcome.action.value,
                )
                return outcome
        return StageOutcome.proceed()

    async def _send_error(
        self, ctx: RequestContext, error: Exception, send: Send
    ) -> None:
        response = self._error_boundary(ctx.request, error)
        await response(ctx.scope, ctx.receive, send)
