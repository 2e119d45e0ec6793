"""
Identity provider session token validation with JWKS caching.
Establishes who is calling; authorization decisions never rely on it.
"""

import time
from typing import Any

import httpx
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from nitroauth.config import get_settings
from nitroauth.core.exceptions import UnauthorizedException

settings = get_settings()


# JWKS cache
_jwks_cache: dict[str, Any] = {}
_jwks_cache_time: float = 0


async def fetch_jwks() -> dict[str, Any]:
    """
    Fetch the identity provider's JWKS (JSON Web Key Set).
    Implements caching to reduce network calls.

    Returns:
        JWKS dictionary with public keys

    Raises:
        UnauthorizedException: If JWKS cannot be fetched
    """
    global _jwks_cache, _jwks_cache_time

    current_time = time.time()
    if _jwks_cache and (current_time - _jwks_cache_time) < settings.JWKS_CACHE_TTL:
        return _jwks_cache

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                settings.IDP_JWKS_URL,
                timeout=settings.IDENTITY_PROVIDER_TIMEOUT,
            )
            response.raise_for_status()

            _jwks_cache = response.json()
            _jwks_cache_time = current_time

            return _jwks_cache

    except httpx.HTTPError as e:
        # If we have a cached version, use it even if expired
        if _jwks_cache:
            return _jwks_cache
        raise UnauthorizedException(f"Failed to fetch JWKS: {str(e)}")


def get_rsa_key(jwks: dict[str, Any], kid: str) -> dict[str, Any] | None:
    """
    Get RSA public key from JWKS by key ID.

    Args:
        jwks: JWKS dictionary
        kid: Key ID from JWT header

    Returns:
        RSA key dictionary or None if not found
    """
    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            return {
                "kty": key.get("kty"),
                "kid": key.get("kid"),
                "use": key.get("use"),
                "n": key.get("n"),
                "e": key.get("e"),
            }
    return None


async def validate_session_token(token: str) -> dict[str, Any]:
    """
    Validate an identity provider session token.

    Performs signature verification against the JWKS key named in the
    header, then expiration, issuer and audience checks.

    Args:
        token: Session JWT string

    Returns:
        Decoded token claims

    Raises:
        UnauthorizedException: If token is invalid
    """
    try:
        unverified_header = jwt.get_unverified_header(token)
        kid = unverified_header.get("kid")

        if not kid:
            raise UnauthorizedException("Token missing key ID")

        jwks = await fetch_jwks()
        rsa_key = get_rsa_key(jwks, kid)

        if not rsa_key:
            raise UnauthorizedException("Unable to find appropriate key")

        return jwt.decode(
            token,
            rsa_key,
            algorithms=["RS256"],
            audience=settings.IDP_AUDIENCE,
            issuer=settings.IDP_ISSUER,
        )

    except ExpiredSignatureError:
        raise UnauthorizedException("Session has expired")
    except JWTError:
        raise UnauthorizedException("Invalid session token")


def extract_identity(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Extract the requester identity from validated session claims.

    Only the subject is trusted for decisions; email and session id are
    kept for logging.
    """
    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedException("Session token has no subject")

    return {
        "user_id": user_id,
        "email": payload.get("email"),
        "session_id": payload.get("sid"),
    }
