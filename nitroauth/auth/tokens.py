"""
Redirect token codec.

Mints and verifies the short-lived HS256 tokens handed to target
applications. A token proves who authenticated and when; it says nothing
about what the principal may currently do.
"""

import enum
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from jose import jwt
from jose.exceptions import JOSEError

from nitroauth.config import Settings, get_settings
from nitroauth.core.exceptions import TokenConfigurationError

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"
TOKEN_TTL_SECONDS = 60 * 60  # fixed, not configurable per request
DEVELOPMENT_SECRET = "dev-secret-change-in-production"

# Issued-at values further than this in the future are rejected
MAX_CLOCK_SKEW_MS = 60_000


class TokenStatus(str, enum.Enum):
    VALID = "valid"
    EXPIRED = "expired"
    INVALID = "invalid"


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a redirect token."""

    subject_id: str
    role: str
    issued_at: int  # epoch milliseconds


@dataclass(frozen=True)
class TokenVerification:
    """Outcome of ``TokenCodec.verify``; ``claims`` is set once the signature checked out."""

    status: TokenStatus
    claims: TokenClaims | None = None

    @property
    def is_valid(self) -> bool:
        return self.status is TokenStatus.VALID


class TokenCodec:
    """
    Creates and verifies signed redirect tokens.

    Signature and expiry are checked separately so callers can tell an
    expired token from a tampered one. Expiry is enforced twice: by the
    ``exp`` claim and by the age of the embedded issued-at timestamp.
    """

    def __init__(
        self,
        secret: str | None,
        issuer: str = "nitroauth",
        audience: str = "authorized-sites",
        production: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self._secret = secret
        self._issuer = issuer
        self._audience = audience
        self._production = production
        self._clock = clock

    @property
    def signing_key(self) -> str:
        """
        Secret used for signing.

        Raises:
            TokenConfigurationError: If no secret is configured in production
        """
        if self._secret:
            return self._secret
        if self._production:
            logger.error("JWT_SECRET is required in production but not set")
            raise TokenConfigurationError()
        return DEVELOPMENT_SECRET

    def mint(self, subject_id: str, role: str) -> str:
        """
        Create a token for (subject_id, role) valid for exactly one hour.

        Raises:
            TokenConfigurationError: If signing is not configured
        """
        issued_at_ms = int(self._clock() * 1000)
        payload = {
            "sub": subject_id,
            "role": role.value if isinstance(role, enum.Enum) else str(role),
            "timestamp": issued_at_ms,
            "iat": issued_at_ms // 1000,
            # Rounded up so exp never fires before the millisecond timestamp check
            "exp": math.ceil(issued_at_ms / 1000) + TOKEN_TTL_SECONDS,
            "iss": self._issuer,
            "aud": self._audience,
        }
        return jwt.encode(payload, self.signing_key, algorithm=TOKEN_ALGORITHM)

    def verify(self, token: str) -> TokenVerification:
        """
        Verify signature, structure and expiry.

        Never raises: any failure is reported through the returned status.
        """
        if not token or not isinstance(token, str):
            return TokenVerification(TokenStatus.INVALID)

        try:
            key = self.signing_key
        except TokenConfigurationError:
            return TokenVerification(TokenStatus.INVALID)

        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=[TOKEN_ALGORITHM],
                audience=self._audience,
                issuer=self._issuer,
                # Expiry is evaluated below against the codec clock
                options={"verify_exp": False, "verify_iat": False, "verify_nbf": False},
            )
        except (JOSEError, ValueError, TypeError, KeyError) as e:
            logger.debug(f"Token verification failed: {e}")
            return TokenVerification(TokenStatus.INVALID)

        claims = _claims_from_payload(payload)
        if claims is None:
            return TokenVerification(TokenStatus.INVALID)

        now = self._clock()
        now_ms = int(now * 1000)
        if claims.issued_at > now_ms + MAX_CLOCK_SKEW_MS:
            return TokenVerification(TokenStatus.INVALID)

        if _is_past(payload.get("exp"), now):
            return TokenVerification(TokenStatus.EXPIRED, claims)
        if now_ms - claims.issued_at >= TOKEN_TTL_SECONDS * 1000:
            return TokenVerification(TokenStatus.EXPIRED, claims)

        return TokenVerification(TokenStatus.VALID, claims)

    def is_expired(self, token: str) -> bool:
        """
        Cheap expiry pre-check that decodes claims without verifying the
        signature. Anything undecodable counts as expired.
        """
        try:
            payload = jwt.get_unverified_claims(token)
        except (JOSEError, ValueError, TypeError, KeyError, AttributeError):
            return True

        if not isinstance(payload, dict):
            return True
        return _is_past(payload.get("exp"), self._clock())


def _is_past(exp: Any, now: float) -> bool:
    if not isinstance(exp, (int, float)) or isinstance(exp, bool):
        return True
    return now >= exp


def _claims_from_payload(payload: dict[str, Any]) -> TokenClaims | None:
    subject_id = payload.get("sub")
    role = payload.get("role")
    issued_at = payload.get("timestamp")

    if not isinstance(subject_id, str) or not subject_id:
        return None
    if not isinstance(role, str):
        return None
    if not isinstance(issued_at, int) or isinstance(issued_at, bool):
        return None

    return TokenClaims(subject_id=subject_id, role=role, issued_at=issued_at)


def build_token_codec(settings: Settings) -> TokenCodec:
    """Create a codec from application settings."""
    if not settings.JWT_SECRET and not settings.is_production:
        logger.warning("JWT_SECRET not set, using the development signing secret")
    return TokenCodec(
        secret=settings.JWT_SECRET,
        issuer=settings.JWT_ISSUER,
        audience=settings.JWT_AUDIENCE,
        production=settings.is_production,
    )


@lru_cache
def get_token_codec() -> TokenCodec:
    """Get the process-wide token codec."""
    return build_token_codec(get_settings())
