"""
Custom exceptions for NitroAuth.
Every error leaving the API is rendered as {"error", "message", "details"}.
"""

from typing import Any


class NitroAuthException(Exception):
    """Base exception for all NitroAuth errors."""

    def __init__(
        self,
        error: str,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.error = error
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.headers = headers
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to response dictionary."""
        response = {
            "error": self.error,
            "message": self.message,
        }
        if self.details:
            response["details"] = self.details
        return response


class ValidationException(NitroAuthException):
    """400 - Malformed request (invalid JSON, missing parameters)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            error="validation_failed",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedException(NitroAuthException):
    """401 - Missing or invalid session token."""

    def __init__(self, message: str = "Valid token required"):
        super().__init__(
            error="unauthorized",
            message=message,
            status_code=401,
        )


class ForbiddenException(NitroAuthException):
    """403 - Authenticated but not allowed to perform the operation."""

    def __init__(self, message: str = "Access denied", details: dict[str, Any] | None = None):
        super().__init__(
            error="forbidden",
            message=message,
            status_code=403,
            details=details,
        )


class NotFoundException(NitroAuthException):
    """404 - Principal or site not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            error="not_found",
            message=f"{resource} with ID '{resource_id}' not found",
            status_code=404,
        )


class ConflictException(NitroAuthException):
    """409 - Request conflicts with current state (duplicate URL, last super admin)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            error="conflict",
            message=message,
            status_code=409,
            details=details,
        )


class RateLimitExceededException(NitroAuthException):
    """429 - Too many requests for this operation class."""

    def __init__(self, limit: int, reset_at_ms: int, retry_after: int):
        super().__init__(
            error="rate_limited",
            message="Rate limit exceeded. Please try again later.",
            status_code=429,
            details={"resetAt": reset_at_ms, "retryAfter": retry_after},
            headers={
                "Retry-After": str(retry_after),
                "X-RateLimit-Limit": str(limit),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(reset_at_ms),
            },
        )
        self.reset_at_ms = reset_at_ms
        self.retry_after = retry_after


class IdentityProviderError(NitroAuthException):
    """502 - Identity provider unreachable or returned an unusable answer."""

    def __init__(self, message: str = "Identity provider unavailable"):
        super().__init__(
            error="upstream_error",
            message=message,
            status_code=502,
        )


class TokenConfigurationError(NitroAuthException):
    """500 - Token signing is not configured for this deployment."""

    def __init__(self, message: str = "Token signing secret is not configured"):
        super().__init__(
            error="configuration_error",
            message=message,
            status_code=500,
        )
