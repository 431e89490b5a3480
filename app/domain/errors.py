"""
Application errors shared by every layer.

Any stage or router that detects a recoverable failure raises AppError.
The error boundary is the only place that turns it into a response.
No framework imports allowed.
"""


class AppError(Exception):
    """An operational failure carrying a client-safe message.

    Attributes:
        message: Human-readable description, safe to send to clients.
        status_code: HTTP status the error should produce.
        status: "fail" for 4xx codes, "error" for everything else.
        is_operational: False marks an unexpected defect that must be
            reported to clients only as a generic failure.
    """

    def __init__(
        self, message: str, status_code: int, *, is_operational: bool = True
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.status = "fail" if 400 <= status_code < 500 else "error"
        self.is_operational = is_operational

    def __repr__(self) -> str:
        return f"AppError({self.message!r}, {self.status_code})"
