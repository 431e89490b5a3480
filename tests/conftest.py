"""
Shared fixtures for the API tests.

Builds isolated applications from explicit settings, an in-memory
rate-limit store and a fake feature router, so no test depends on the
environment or on routers owned by other services.
"""

from pathlib import Path

import pytest
from fastapi import APIRouter, HTTPException, Request
from fastapi.testclient import TestClient
from pydantic import BaseModel, ConfigDict

from app.api.router import RouterRegistry
from app.core.config import Settings
from app.domain.errors import AppError
from app.infrastructure.rate_limit_store import LimitsRateLimitStore
from app.main import create_app

ALLOWED_ORIGIN = "http://localhost:5173"
FOREIGN_ORIGIN = "https://evil.example.com"
ISOLATION_HEADERS = {
    "cross-origin-resource-policy": "cross-origin",
    "cross-origin-opener-policy": "cross-origin",
    "cross-origin-embedder-policy": "require-corp",
}


class UserIn(BaseModel):
    model_config = ConfigDict(strict=True)

    name: str


class RecordingUsersRouter:
    """A stand-in for the users feature router that records what it saw."""

    def __init__(self) -> None:
        self.bodies: list[object] = []
        self.router = APIRouter()

        @self.router.get("")
        def list_users() -> dict:
            return {"users": []}

        @self.router.post("")
        async def create_user(request: Request) -> dict:
            body = await request.json()
            self.bodies.append(body)
            return {"received": body, "state_body": request.state.body}

        @self.router.post("/state-body")
        def read_state_body(request: Request) -> dict:
            return {"state_body": request.state.body}

        @self.router.post("/typed")
        def create_typed(payload: UserIn) -> dict:
            return {"name": payload.name}

        @self.router.get("/query")
        def echo_query(request: Request) -> dict:
            return dict(request.query_params)

        @self.router.get("/cookies")
        def echo_cookies(request: Request) -> dict:
            return request.state.cookies

        @self.router.get("/missing")
        def missing() -> dict:
            raise HTTPException(status_code=404, detail="User not found")

        @self.router.get("/forbidden")
        def forbidden() -> dict:
            raise AppError("You do not have permission to do this", 403)

        @self.router.get("/boom")
        def boom() -> dict:
            raise RuntimeError("database password is hunter2")


def make_settings(**overrides) -> Settings:
    """Build settings that ignore .env files."""
    values = {"environment": "production", "log_level": "WARNING"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def public_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "public"
    directory.mkdir()
    (directory / "index.html").write_text("<h1>Skill Mingle</h1>")
    (directory / "styles.css").write_text("body { margin: 0; }")
    (directory / "docs").mkdir()
    return directory


@pytest.fixture
def users_router() -> RecordingUsersRouter:
    return RecordingUsersRouter()


@pytest.fixture
def registry(users_router: RecordingUsersRouter) -> RouterRegistry:
    registry = RouterRegistry.from_config({})
    registry.register("/api/users", users_router.router)
    return registry


@pytest.fixture
def build_client(registry: RouterRegistry, public_dir: Path):
    """Factory returning a started TestClient for the given overrides."""
    clients: list[TestClient] = []

    def _build(max_requests: int = 1000, **overrides) -> TestClient:
        overrides.setdefault("public_dir", str(public_dir))
        settings = make_settings(**overrides)
        store = LimitsRateLimitStore(
            max_requests=max_requests,
            window_minutes=settings.rate_limit_window_minutes,
        )
        app = create_app(settings, registry=registry, rate_limit_store=store)
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _build

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(build_client) -> TestClient:
    return build_client()
