"""
Shared error handling package.

Hosts the error boundary: the single place where errors raised by
pipeline stages and routers become HTTP responses.
"""

from app.shared.errors.handlers import register_error_handlers, render_error

__all__ = ["register_error_handlers", "render_error"]
