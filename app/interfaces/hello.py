"""
Hello router.

Provides a simple liveness endpoint under ``/api/hello``.
No business logic. Returns a greeting and the API version.
"""

from fastapi import APIRouter

from app.core.config import settings
from app.interfaces.schemas import HelloResponse

router = APIRouter(tags=["hello"])


@router.get(
    "",
    response_model=HelloResponse,
    summary="Hello",
    description="Returns a greeting and the running API version.",
)
def hello() -> HelloResponse:
    """Return a greeting from the API."""
    return HelloResponse(
        status="success",
        message=f"Hello from {settings.project_name}!",
        version=settings.version,
    )
