"""
Pydantic schemas for the responses this layer writes itself.

Feature routers own their own request/response contracts.
No business logic belongs here.
"""

from typing import Literal

from pydantic import BaseModel


class HelloResponse(BaseModel):
    """Response schema for the hello endpoint."""

    status: str
    message: str
    version: str


class ErrorResponse(BaseModel):
    """Standard error body returned by the error boundary.

    Attributes:
        status: "fail" for client errors, "error" for server errors.
        message: Client-safe description of what went wrong.
    """

    status: Literal["fail", "error"]
    message: str
