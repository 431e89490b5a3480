"""
Error boundary for the application.

Translates any error into the ``{status, message}`` response shape.
Operational errors keep their status code and message; anything else
is logged with its traceback and reported as a generic 500.
No stack traces or internal details are exposed to clients.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.domain.errors import AppError
from app.interfaces.schemas import ErrorResponse

logger = logging.getLogger(__name__)

HTTP_400 = 400
HTTP_500 = 500
GENERIC_SERVER_MESSAGE = "Internal server error"

_FALLBACK_BODY = b'{"status":"error","message":"Internal server error"}'


def _error_response(
    status_code: int, status: str, message: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    """Build a consistent JSON error response."""
    body = ErrorResponse(status=status, message=message)
    return JSONResponse(
        status_code=status_code, content=body.model_dump(), headers=headers
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(
            str(part) for part in error.get("loc", ()) if part != "body"
        )
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "Invalid input data. " + ". ".join(parts)


def to_app_error(exc: Exception) -> AppError | None:
    """Map a known exception type onto an AppError.

    Args:
        exc: Any exception that reached the boundary.

    Returns:
        The equivalent AppError, or None when the exception is not a
        recognised operational failure.
    """
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, StarletteHTTPException):
        return AppError(str(exc.detail), exc.status_code)
    if isinstance(exc, RequestValidationError):
        return AppError(_describe_validation_error(exc), HTTP_400)
    return None


def render_error(request: Request, exc: Exception) -> JSONResponse:
    """Turn an error into its HTTP response. Never raises.

    Args:
        request: The request whose handling failed.
        exc: The error raised by a stage or a router.

    Returns:
        The JSON error response to send to the client.
    """
    try:
        app_error = to_app_error(exc)
        if app_error is not None and app_error.is_operational:
            if app_error.status_code >= HTTP_500:
                logger.error(
                    "%s %s failed: %s",
                    request.method,
                    request.url.path,
                    app_error.message,
                )
            else:
                logger.warning(
                    "%s %s rejected (%d): %s",
                    request.method,
                    request.url.path,
                    app_error.status_code,
                    app_error.message,
                )
            headers = getattr(exc, "headers", None)
            return _error_response(
                app_error.status_code,
                app_error.status,
                app_error.message,
                headers=headers,
            )

        logger.error(
            "Unexpected error on %s %s: %s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        return _error_response(HTTP_500, "error", GENERIC_SERVER_MESSAGE)
    except Exception:
        logger.exception("Error boundary failed while rendering an error")
        return Response(
            content=_FALLBACK_BODY,
            status_code=HTTP_500,
            media_type="application/json",
        )


def register_error_handlers(app: FastAPI) -> None:
    """Register the error boundary on the FastAPI application.

    Unexpected exceptions are not registered here: they propagate to the
    request pipeline, which renders them through ``render_error`` too.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        """Handle errors raised by routers and the route fallback."""
        return render_error(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle HTTPException raised inside feature routers."""
        return render_error(request, exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request validation failures in feature routers."""
        return render_error(request, exc)
