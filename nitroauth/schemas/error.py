"""
Pydantic schemas for error responses.
"""

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standard error response format.

    Examples:
        400: {"error": "validation_failed", "message": "..."}
        401: {"error": "unauthorized", "message": "Valid token required"}
        403: {"error": "forbidden", "message": "Access denied"}
        404: {"error": "not_found", "message": "User with ID 'user_1' not found"}
        429: {"error": "rate_limited", "message": "...", "details": {"resetAt": ..., "retryAfter": ...}}
    """

    error: str = Field(
        ...,
        description="Error code string",
        examples=["validation_failed", "unauthorized", "forbidden", "rate_limited"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] | None = Field(
        default=None,
        description="Optional additional error details",
    )


class ValidationErrorDetail(BaseModel):
    """Detail for validation errors."""

    loc: list[str | int]
    msg: str
    type: str


class ValidationErrorResponse(BaseModel):
    """Response for validation errors (400)."""

    error: str = "validation_failed"
    message: str = "Request validation failed"
    details: list[ValidationErrorDetail]
