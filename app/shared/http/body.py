"""
JSON body parsing stage.

Reads JSON request bodies, and bodies sent without a Content-Type, up
to a fixed ceiling before any router runs. Every request starts with
``request.state.body`` set to an empty mapping.
Oversized or malformed bodies fail with a client error; accepted bodies
are exposed on ``request.state.body`` and replayed to the router.
"""

import json
import logging

from starlette.requests import ClientDisconnect

from app.domain.errors import AppError
from app.shared.pipeline.stage import RequestContext, Stage, StageOutcome

logger = logging.getLogger(__name__)

HTTP_400 = 400
HTTP_413 = 413
DEFAULT_LIMIT_BYTES = 10 * 1024


def is_json_content_type(content_type: str | None) -> bool:
    """Return True for ``application/json`` and ``*/*+json`` media types."""
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


def _format_limit(limit: int) -> str:
    if limit % 1024 == 0:
        return f"{limit // 1024}kb"
    return f"{limit}b"


class JsonBodyStage(Stage):
    """Parses JSON bodies no larger than ``limit`` bytes.

    Args:
        limit: Maximum accepted body size in bytes.
    """

    name = "json-body"

    def __init__(self, limit: int = DEFAULT_LIMIT_BYTES) -> None:
        self._limit = limit
        self._too_large = f"Request body is larger than the {_format_limit(limit)} limit"

    async def process(self, ctx: RequestContext) -> StageOutcome:
        ctx.request.state.body = {}
        headers = ctx.request.headers
        content_type = headers.get("content-type")
        # Routers also read an untyped body as JSON
        if content_type is not None and not is_json_content_type(content_type):
            return StageOutcome.proceed()

        declared = headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self._limit:
            return StageOutcome.fail(AppError(self._too_large, HTTP_413))

        chunks: list[bytes] = []
        size = 0
        more_body = True
        while more_body:
            message = await ctx.receive()
            if message["type"] == "http.disconnect":
                raise ClientDisconnect()
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self._limit:
                return StageOutcome.fail(AppError(self._too_large, HTTP_413))
            chunks.append(chunk)
            more_body = message.get("more_body", False)

        raw = b"".join(chunks)
        if not raw.strip():
            ctx.body = {}
        else:
            try:
                ctx.body = json.loads(raw)
            except ValueError:
                return StageOutcome.fail(AppError("Invalid JSON in request body", HTTP_400))
            if not isinstance(ctx.body, (dict, list)):
                return StageOutcome.fail(AppError("Invalid JSON in request body", HTTP_400))

        ctx.request.state.body = ctx.body
        ctx.replay_body(raw)
        return StageOutcome.proceed()
