"""
Cookie parsing stage.

Decodes the Cookie header into ``request.state.cookies``. Values
prefixed with ``j:`` are JSON cookies and are decoded when valid.
"""

import json
from typing import Any

from starlette.requests import cookie_parser

from app.shared.pipeline.stage import RequestContext, Stage, StageOutcome

JSON_COOKIE_PREFIX = "j:"


def parse_cookies(cookie_header: str) -> dict[str, Any]:
    """Parse a Cookie header, decoding JSON cookies."""
    cookies: dict[str, Any] = {}
    for name, value in cookie_parser(cookie_header).items():
        if value.startswith(JSON_COOKIE_PREFIX):
            try:
                cookies[name] = json.loads(value[len(JSON_COOKIE_PREFIX):])
                continue
            except ValueError:
                pass
        cookies[name] = value
    return cookies


class CookieStage(Stage):
    """Exposes the parsed cookies on ``request.state.cookies``."""

    name = "cookies"

    async def process(self, ctx: RequestContext) -> StageOutcome:
        ctx.request.state.cookies = parse_cookies(ctx.request.headers.get("cookie", ""))
        return StageOutcome.proceed()
