"""Core utilities and exceptions for NitroAuth."""

from nitroauth.core.exceptions import (
    NitroAuthException,
    ValidationException,
    UnauthorizedException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    RateLimitExceededException,
    IdentityProviderError,
    TokenConfigurationError,
)

__all__ = [
    "NitroAuthException",
    "ValidationException",
    "UnauthorizedException",
    "ForbiddenException",
    "NotFoundException",
    "ConflictException",
    "RateLimitExceededException",
    "IdentityProviderError",
    "TokenConfigurationError",
]
