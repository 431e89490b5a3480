"""
Application configuration.

Loads settings from environment variables, ``.env`` and ``config.env``.
All configuration is centralized here; no scattered magic strings.
"""

from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CORS_ORIGINS = [
    "http://127.0.0.1:5173",
    "http://localhost:5173",
    "https://skill-mingle-frontend-eight.vercel.app",
]


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        environment: Execution mode; development enables verbose logs and docs.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        cors_origins: Origins allowed to make credentialed cross-origin calls.
        cors_methods: Methods advertised to cross-origin callers.
        cors_headers: Request headers cross-origin callers may send.
        cors_credentials: Whether allowed origins may send cookies.
        rate_limit_prefix: Path prefix the rate limiter applies to.
        rate_limit_max: Requests admitted per client per window.
        rate_limit_window_minutes: Length of the rate-limit window.
        rate_limit_message: Message returned once a client is limited.
        rate_limit_storage_uri: ``limits`` storage URI for the counters.
        body_limit_bytes: Maximum accepted JSON body size.
        sanitize_allow_dots: Keep keys containing dots during sanitization.
        public_dir: Directory static assets are served from.
        api_prefix: Paths under this prefix are API routes, never static assets.
        feature_routers: Prefix to ``module:attribute`` router import paths.
        strict_routers: Fail startup when a feature router cannot be imported.
        host: Bind address used by ``python -m app``.
        port: Bind port used by ``python -m app``.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "config.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    project_name: str = "Skill Mingle API"
    version: str = "0.1.0"
    environment: Literal["development", "production"] = "production"
    log_level: str = "INFO"

    cors_origins: list[str] = DEFAULT_CORS_ORIGINS
    cors_methods: list[str] = ["GET", "POST", "PUT", "DELETE", "PATCH"]
    cors_headers: list[str] = ["Content-Type", "Authorization", "X-Frontend-Host"]
    cors_credentials: bool = True

    rate_limit_prefix: str = "/api"
    rate_limit_max: int = 1000
    rate_limit_window_minutes: int = 60
    rate_limit_message: str = (
        "Too many requests from this IP, please try again in an hour!"
    )
    rate_limit_storage_uri: str = "async+memory://"

    api_prefix: str = "/api"
    body_limit_bytes: int = 10 * 1024  # 10 KB
    sanitize_allow_dots: bool = False
    public_dir: str = "public"

    feature_routers: dict[str, str] = {}
    strict_routers: bool = False

    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, v: str) -> str:
        """Accept NODE_ENV-style values such as ``Development`` or ``dev``."""
        if isinstance(v, str):
            value = v.strip().lower()
            if value in ("dev", "development"):
                return "development"
            if value in ("prod", "production"):
                return "production"
        return v

    @field_validator("rate_limit_prefix", "api_prefix")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/") or "/"

    @property
    def debug(self) -> bool:
        """True when running in development mode."""
        return self.environment == "development"


settings = Settings()
