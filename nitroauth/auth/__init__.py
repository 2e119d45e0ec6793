"""
Authentication and authorization module for NitroAuth.
Role catalog, redirect tokens, permission evaluation and requester identity.
"""

from nitroauth.auth.catalog import (
    Role,
    SitePermissions,
    InvalidPermissionError,
    canonical_url,
    default_permissions,
    default_redirect,
    parse_site_permission,
)
from nitroauth.auth.tokens import (
    TokenClaims,
    TokenCodec,
    TokenStatus,
    TokenVerification,
    get_token_codec,
)
from nitroauth.auth.permissions import (
    capability_matrix,
    effective_permissions,
    is_target_authorized,
)
from nitroauth.auth.dependencies import CurrentIdentity, get_current_identity

__all__ = [
    # Catalog
    "Role",
    "SitePermissions",
    "InvalidPermissionError",
    "canonical_url",
    "default_permissions",
    "default_redirect",
    "parse_site_permission",
    # Tokens
    "TokenClaims",
    "TokenCodec",
    "TokenStatus",
    "TokenVerification",
    "get_token_codec",
    # Permission evaluation
    "capability_matrix",
    "effective_permissions",
    "is_target_authorized",
    # Dependencies
    "CurrentIdentity",
    "get_current_identity",
]
