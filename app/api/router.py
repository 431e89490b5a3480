"""
Router registry.

Maps URL path prefixes to independently owned feature routers and
mounts them on the application. A router is an opaque capability: a
FastAPI ``APIRouter`` or any ASGI application. Unmatched requests are
turned into a 404 AppError by the fallback route.
"""

import importlib
import logging
from collections.abc import Mapping
from typing import Any

from fastapi import APIRouter, FastAPI, Request

from app.domain.errors import AppError

logger = logging.getLogger(__name__)

HTTP_404 = 404

HELLO_PREFIX = "/api/hello"
FEATURE_PREFIXES = (
    HELLO_PREFIX,
    "/api/users",
    "/api/requests",
    "/api/chats",
    "/api/reviews",
    "/api/search",
    "/api/suggestions",
    "/api/genAI",
)
FALLBACK_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class RouterResolutionError(Exception):
    """Raised when a configured router import path cannot be resolved."""

    def __init__(self, import_path: str, reason: str) -> None:
        super().__init__(f"Cannot resolve router {import_path!r}: {reason}")
        self.import_path = import_path
        self.reason = reason


def resolve_router(import_path: str) -> Any:
    """Import ``module:attribute`` and return the attribute.

    Raises:
        RouterResolutionError: When the path is malformed or the import fails.
    """
    module_name, sep, attribute = import_path.partition(":")
    if not sep or not module_name or not attribute:
        raise RouterResolutionError(import_path, "expected 'module:attribute'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise RouterResolutionError(import_path, str(exc)) from exc
    try:
        return getattr(module, attribute)
    except AttributeError as exc:
        raise RouterResolutionError(import_path, str(exc)) from exc


class RouterRegistry:
    """Static prefix-to-router mapping.

    The registry makes no routing decisions itself; FastAPI dispatches
    by prefix once the routers are mounted.
    """

    def __init__(self) -> None:
        self._routers: dict[str, Any] = {}

    @classmethod
    def from_config(
        cls,
        import_paths: Mapping[str, str],
        strict: bool = False,
        include_hello: bool = True,
    ) -> "RouterRegistry":
        """Build a registry from ``prefix -> module:attribute`` settings.

        Args:
            import_paths: Feature routers to import, keyed by prefix.
            strict: Raise instead of skipping routers that fail to import.
            include_hello: Register the local hello router.

        Returns:
            The populated registry.
        """
        registry = cls()
        if include_hello:
            from app.interfaces.hello import router as hello_router

            registry.register(HELLO_PREFIX, hello_router)
        for prefix, import_path in import_paths.items():
            registry.register_path(prefix, import_path, strict=strict)
        return registry

    @property
    def prefixes(self) -> list[str]:
        return list(self._routers)

    def get(self, prefix: str) -> Any | None:
        return self._routers.get(prefix)

    def register(self, prefix: str, router: Any) -> None:
        """Register ``router`` under ``prefix``.

        Raises:
            ValueError: If the prefix is malformed or already taken.
        """
        if not prefix.startswith("/") or prefix.endswith("/"):
            raise ValueError(f"Invalid router prefix: {prefix!r}")
        if prefix in self._routers:
            raise ValueError(f"A router is already registered for {prefix}")
        if prefix not in FEATURE_PREFIXES:
            logger.info("Registering router for non-standard prefix %s", prefix)
        self._routers[prefix] = router

    def register_path(self, prefix: str, import_path: str, strict: bool = False) -> bool:
        """Resolve ``import_path`` and register it under ``prefix``.

        Returns:
            True when the router was registered, False when it was skipped.

        Raises:
            RouterResolutionError: When ``strict`` and the import fails.
        """
        try:
            router = resolve_router(import_path)
        except RouterResolutionError:
            if strict:
                raise
            logger.warning(
                "Router for %s could not be imported from %s; "
                "requests under it will return 404.",
                prefix,
                import_path,
                exc_info=True,
            )
            return False
        self.register(prefix, router)
        return True

    def mount(self, app: FastAPI) -> None:
        """Attach every registered router to ``app``."""
        for prefix, router in self._routers.items():
            if isinstance(router, APIRouter):
                app.include_router(router, prefix=prefix)
            else:
                app.mount(prefix, router)
            logger.debug("Mounted router at %s", prefix)

        missing = [p for p in FEATURE_PREFIXES if p not in self._routers]
        if missing:
            logger.info("No router configured for: %s", ", ".join(missing))


def original_url(request: Request) -> str:
    """Return the request path plus its query string, as the client sent it."""
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


async def route_not_found(request: Request) -> None:
    """Fallback for every request no router claimed."""
    raise AppError(f"Can't find {original_url(request)} on this server", HTTP_404)


def install_fallback(app: FastAPI) -> None:
    """Register the catch-all route. Must run after every router is mounted."""
    app.add_api_route(
        "/{full_path:path}",
        route_not_found,
        methods=FALLBACK_METHODS,
        include_in_schema=False,
    )
