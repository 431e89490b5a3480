"""
Response header stages.

SecurityHeadersStage adds the protective headers every response should
carry unless a router chose its own value.
IsolationHeadersStage forces the three cross-origin isolation headers
so responses can be embedded and read under strict isolation.

No business logic. Pure cross-cutting concern.
"""

from starlette.datastructures import MutableHeaders

from app.shared.pipeline.stage import RequestContext, Stage

SECURE_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self';base-uri 'self';font-src 'self' https: data:;"
        "form-action 'self';frame-ancestors 'self';img-src 'self' data:;"
        "object-src 'none';script-src 'self';script-src-attr 'none';"
        "style-src 'self' https: 'unsafe-inline';upgrade-insecure-requests"
    ),
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}

ISOLATION_HEADERS = {
    "Cross-Origin-Resource-Policy": "cross-origin",
    "Cross-Origin-Opener-Policy": "cross-origin",
    "Cross-Origin-Embedder-Policy": "require-corp",
}


class SecurityHeadersStage(Stage):
    """Adds secure HTTP headers to every response.

    Headers already set by a router are left untouched.
    """

    name = "security-headers"

    def __init__(self, headers: dict[str, str] | None = None) -> None:
        self._headers = dict(SECURE_HEADERS if headers is None else headers)

    def finalize(self, ctx: RequestContext, headers: MutableHeaders) -> None:
        for header_name, header_value in self._headers.items():
            if header_name not in headers:
                headers[header_name] = header_value


class IsolationHeadersStage(Stage):
    """Sets the cross-origin isolation headers on every response."""

    name = "isolation-headers"

    def finalize(self, ctx: RequestContext, headers: MutableHeaders) -> None:
        for header_name, header_value in ISOLATION_HEADERS.items():
            headers[header_name] = header_value
