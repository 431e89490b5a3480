"""
Building blocks shared by every pipeline stage.

A stage has two hooks:
- ``process`` runs on the way in and returns a StageOutcome.
- ``finalize`` runs on every outgoing response, whichever stage or
  router produced it, and may only touch response headers.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Message, Receive, Scope


class Action(Enum):
    """What the pipeline runner does after a stage."""

    CONTINUE = "continue"
    TERMINATE = "terminate"
    ERROR = "error"


@dataclass(frozen=True)
class StageOutcome:
    """Result of running one stage.

    Attributes:
        action: Continue to the next stage, terminate with ``response``,
            or hand ``error`` to the error boundary.
        response: The response to send when terminating.
        error: The error to render when failing.
    """

    action: Action
    response: Response | None = None
    error: Exception | None = None

    @classmethod
    def proceed(cls) -> "StageOutcome":
        return _PROCEED

    @classmethod
    def terminate(cls, response: Response) -> "StageOutcome":
        return cls(action=Action.TERMINATE, response=response)

    @classmethod
    def fail(cls, error: Exception) -> "StageOutcome":
        return cls(action=Action.ERROR, error=error)


_PROCEED = StageOutcome(action=Action.CONTINUE)


class RequestContext:
    """Per-request state owned by the pipeline runner.

    Stages keep their per-request data here and nowhere else.

    Attributes:
        scope: The ASGI scope, shared with the downstream application.
        receive: The receive callable the downstream application will use.
        request: A Starlette view over ``scope`` for reading headers/URL.
        started_at: ``time.perf_counter()`` value when the request arrived.
        status_code: Response status, set once the response has started.
        body: The parsed JSON body, if a body stage parsed one.
        state: Free-form per-stage data.
    """

    def __init__(self, scope: Scope, receive: Receive) -> None:
        self.scope = scope
        self.receive = receive
        self.request = Request(scope, receive)
        self.started_at = time.perf_counter()
        self.status_code: int | None = None
        self.response_started = False
        self.body: Any = None
        self.state: dict[str, Any] = {}
        self._upstream_receive = receive

    @property
    def path(self) -> str:
        return self.scope["path"]

    @property
    def method(self) -> str:
        return self.scope["method"]

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started_at) * 1000.0

    def replay_body(self, body: bytes) -> None:
        """Hand ``body`` to the downstream application as the request body.

        The original receive channel stays connected afterwards so the
        application still sees ``http.disconnect``.
        """
        upstream = self._upstream_receive
        delivered = False

        async def receive() -> Message:
            nonlocal delivered
            if not delivered:
                delivered = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await upstream()

        self.receive = receive
        headers = MutableHeaders(scope=self.scope)
        headers["content-length"] = str(len(body))


class Stage:
    """Base class for pipeline stages. Both hooks default to no-ops."""

    name = "stage"

    async def process(self, ctx: RequestContext) -> StageOutcome:
        return StageOutcome.proceed()

    def finalize(self, ctx: RequestContext, headers: MutableHeaders) -> None:
        return None
