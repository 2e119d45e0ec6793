"""
Pydantic schemas for request/response validation.
"""

from nitroauth.schemas.principal import (
    Principal,
    PrincipalResponse,
    PrincipalListResponse,
    AccessibleSite,
    CurrentPrincipalResponse,
)
from nitroauth.schemas.authorize import AuthorizeRequest, AuthorizationDecision, DecisionOutcome
from nitroauth.schemas.validate import (
    ValidateRequest,
    ValidatedUser,
    ValidationVerdict,
    QuickValidationVerdict,
)
from nitroauth.schemas.admin import UpdateRoleRequest, UpdateAccessRequest, AdminActionResponse
from nitroauth.schemas.site import SiteCreate, SiteUpdate, SiteResponse, SiteListResponse
from nitroauth.schemas.audit import AuditEntryCreate, AuditEntryResponse, AuditListResponse
from nitroauth.schemas.error import ErrorResponse, ValidationErrorResponse

__all__ = [
    # Principal schemas
    "Principal",
    "PrincipalResponse",
    "PrincipalListResponse",
    "AccessibleSite",
    "CurrentPrincipalResponse",
    # Authorization schemas
    "AuthorizeRequest",
    "AuthorizationDecision",
    "DecisionOutcome",
    # Validation schemas
    "ValidateRequest",
    "ValidatedUser",
    "ValidationVerdict",
    "QuickValidationVerdict",
    # Admin schemas
    "UpdateRoleRequest",
    "UpdateAccessRequest",
    "AdminActionResponse",
    # Site schemas
    "SiteCreate",
    "SiteUpdate",
    "SiteResponse",
    "SiteListResponse",
    # Audit schemas
    "AuditEntryCreate",
    "AuditEntryResponse",
    "AuditListResponse",
    # Error schemas
    "ErrorResponse",
    "ValidationErrorResponse",
]
