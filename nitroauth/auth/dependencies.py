"""
Authentication dependencies for FastAPI.
Resolve the requester identity from the identity provider session.
"""

import logging
from typing import Annotated, Any

from fastapi import Depends, Header, Request

from nitroauth.config import get_settings
from nitroauth.core.exceptions import UnauthorizedException
from nitroauth.auth.session import extract_identity, validate_session_token

logger = logging.getLogger(__name__)
settings = get_settings()


def _bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise UnauthorizedException("Authorization header required")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise UnauthorizedException("Invalid authorization header format")
    return parts[1]


async def get_current_identity(
    request: Request,
    authorization: str | None = Header(default=None),
) -> dict[str, Any]:
    """
    Dependency to get the authenticated requester.

    In development mode (DEV_MODE=true, outside production) the configured
    development user is returned without a session token. Otherwise the
    bearer token must be a valid identity provider session.

    Only ``user_id`` is used for decisions; roles and grants are always
    read from the principal directory.

    Raises:
        UnauthorizedException: If authentication fails
    """
    if settings.DEV_MODE and not settings.is_production:
        identity = {
            "user_id": settings.DEV_USER_ID,
            "email": None,
            "session_id": None,
        }
        request.state.identity = identity
        return identity

    token = _bearer_token(authorization)
    payload = await validate_session_token(token)
    identity = extract_identity(payload)

    request.state.identity = identity
    return identity


# Type alias for dependency injection
CurrentIdentity = Annotated[dict[str, Any], Depends(get_current_identity)]
