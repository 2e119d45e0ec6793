"""
Business logic services for NitroAuth.
Services handle core operations separate from API endpoints.
"""

from nitroauth.services.admin import AdminService
from nitroauth.services.audit import AuditLogger, AuditService
from nitroauth.services.authorization import AuthorizationEngine
from nitroauth.services.cache import ValidationCache, get_validation_cache
from nitroauth.services.principals import (
    DatabasePrincipalDirectory,
    HttpPrincipalDirectory,
    PrincipalDirectory,
    build_principal_directory,
)
from nitroauth.services.rate_limit import OperationClass, RateLimiter, get_rate_limiter
from nitroauth.services.sites import SiteService
from nitroauth.services.validation import ValidationService

__all__ = [
    "AdminService",
    "AuditLogger",
    "AuditService",
    "AuthorizationEngine",
    "ValidationCache",
    "get_validation_cache",
    "PrincipalDirectory",
    "DatabasePrincipalDirectory",
    "HttpPrincipalDirectory",
    "build_principal_directory",
    "OperationClass",
    "RateLimiter",
    "get_rate_limiter",
    "SiteService",
    "ValidationService",
]
