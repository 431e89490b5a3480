"""
Application entry point.

Creates the FastAPI application and wires together:
- Request pipeline (security headers, CORS, access log, rate limiting,
  isolation headers, static files, JSON body, sanitization, cookies)
- Feature routers (mounted by prefix through the router registry)
- Route fallback and the error boundary
- Logging configuration

No business logic belongs here.
"""

from fastapi import FastAPI

from app.api.router import RouterRegistry, install_fallback
from app.core.config import Settings, settings as default_settings
from app.domain.ports import RateLimitStore
from app.infrastructure.rate_limit_store import LimitsRateLimitStore
from app.shared.access_log import DEV_FORMAT, SHORT_FORMAT, AccessLogStage
from app.shared.errors.handlers import register_error_handlers, render_error
from app.shared.http.body import JsonBodyStage
from app.shared.http.cookies import CookieStage
from app.shared.http.static import StaticFilesStage
from app.shared.logging import configure_logging
from app.shared.pipeline import RequestPipeline, Stage
from app.shared.security.cors import CorsStage
from app.shared.security.headers import IsolationHeadersStage, SecurityHeadersStage
from app.shared.security.rate_limiting import RateLimitStage
from app.shared.security.sanitize import SanitizeStage


def build_stages(settings: Settings, rate_limit_store: RateLimitStore) -> list[Stage]:
    """Return the pipeline stages in the order they must run.

    Rate limiting precedes body parsing, static serving precedes body
    parsing, and sanitization follows parsing.
    """
    return [
        SecurityHeadersStage(),
        CorsStage(
            origins=settings.cors_origins,
            methods=settings.cors_methods,
            allowed_headers=settings.cors_headers,
            credentials=settings.cors_credentials,
        ),
        AccessLogStage(DEV_FORMAT if settings.debug else SHORT_FORMAT),
        RateLimitStage(
            rate_limit_store,
            prefix=settings.rate_limit_prefix,
            message=settings.rate_limit_message,
        ),
        IsolationHeadersStage(),
        StaticFilesStage(settings.public_dir, api_prefix=settings.api_prefix),
        JsonBodyStage(limit=settings.body_limit_bytes),
        SanitizeStage(allow_dots=settings.sanitize_allow_dots),
        CookieStage(),
    ]


def create_app(
    settings: Settings | None = None,
    *,
    registry: RouterRegistry | None = None,
    rate_limit_store: RateLimitStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    This is the composition root of the application.

    Args:
        settings: Configuration to use; defaults to the environment settings.
        registry: Feature routers to mount; defaults to the configured ones.
        rate_limit_store: Shared rate-limit counters; defaults to a
            ``limits`` store built from the settings.

    Returns:
        A fully configured FastAPI application instance.
    """
    if settings is None:
        settings = default_settings
    configure_logging(level=settings.log_level, mode=settings.environment)

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )
    app.state.settings = settings

    # --- Error Boundary ---
    register_error_handlers(app)

    # --- Routers ---
    if registry is None:
        registry = RouterRegistry.from_config(
            settings.feature_routers, strict=settings.strict_routers
        )
    registry.mount(app)
    install_fallback(app)

    # --- Request Pipeline ---
    if rate_limit_store is None:
        rate_limit_store = LimitsRateLimitStore(
            max_requests=settings.rate_limit_max,
            window_minutes=settings.rate_limit_window_minutes,
            storage_uri=settings.rate_limit_storage_uri,
        )
    app.add_middleware(
        RequestPipeline,
        stages=build_stages(settings, rate_limit_store),
        error_boundary=render_error,
    )

    return app


app = create_app()
