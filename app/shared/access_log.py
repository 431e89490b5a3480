"""
Access logging stage.

Logs one line per response with method, URL, status, latency and
length. ``dev`` is the verbose development layout, ``short`` the
concise production one. Never fails the request.
"""

import logging

from starlette.datastructures import MutableHeaders

from app.shared.pipeline.stage import RequestContext, Stage

access_logger = logging.getLogger("app.access")

DEV_FORMAT = "dev"
SHORT_FORMAT = "short"


def _original_url(ctx: RequestContext) -> str:
    query = ctx.scope.get("query_string", b"").decode("latin-1")
    return f"{ctx.path}?{query}" if query else ctx.path


class AccessLogStage(Stage):
    """Writes an access-log line when the response starts.

    Args:
        log_format: ``dev`` or ``short``.
    """

    name = "access-log"

    def __init__(self, log_format: str = SHORT_FORMAT) -> None:
        if log_format not in (DEV_FORMAT, SHORT_FORMAT):
            raise ValueError(f"Unknown access log format: {log_format}")
        self._format = log_format

    def format_line(self, ctx: RequestContext, headers: MutableHeaders) -> str:
        length = headers.get("content-length", "-")
        elapsed = f"{ctx.elapsed_ms():.3f} ms"
        if self._format == DEV_FORMAT:
            return f"{ctx.method} {_original_url(ctx)} {ctx.status_code} {elapsed} - {length}"
        client = ctx.scope.get("client")
        address = client[0] if client else "-"
        http_version = ctx.scope.get("http_version", "1.1")
        return (
            f"{address} - {ctx.method} {_original_url(ctx)} HTTP/{http_version} "
            f"{ctx.status_code} {length} - {elapsed}"
        )

    def finalize(self, ctx: RequestContext, headers: MutableHeaders) -> None:
        access_logger.info(self.format_line(ctx, headers))
