"""
Validation service.

Lets target applications confirm a redirect token and learn what the
principal may do right now. The token proves who authenticated and when;
role and grants are always read from the principal directory (or, for the
lightweight variant, from a short-lived cache of a directory read).
"""

import asyncio
import enum
import logging
import time
from collections.abc import Iterable

from nitroauth.auth.permissions import capability_matrix
from nitroauth.auth.tokens import TokenClaims, TokenCodec, TokenStatus
from nitroauth.schemas.principal import Principal
from nitroauth.schemas.validate import QuickValidationVerdict, ValidatedUser, ValidationVerdict
from nitroauth.services.cache import ValidationCache
from nitroauth.services.principals import PrincipalDirectory

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("nitroauth.security")


class InvalidReason(str, enum.Enum):
    """Reasons reported for an invalid verdict."""
    MISSING_PARAMETERS = "Missing required parameters"
    TOKEN_EXPIRED = "Token expired"
    INVALID_TOKEN = "Invalid token"
    USER_MISMATCH = "Token user mismatch"
    USER_NOT_FOUND = "User not found"
    LOOKUP_FAILED = "User validation failed"


class _TokenRejected(Exception):
    def __init__(self, reason: InvalidReason):
        self.reason = reason


class ValidationService:
    """Verify redirect tokens and report current principal state."""

    def __init__(
        self,
        directory: PrincipalDirectory,
        token_codec: TokenCodec,
        cache: ValidationCache | None = None,
        principal_timeout: float = 5.0,
    ):
        self.directory = directory
        self.token_codec = token_codec
        self.cache = cache
        self.principal_timeout = principal_timeout

    def _check_token(self, token: str | None, user_id: str | None) -> TokenClaims:
        """
        Run the token checks in order: presence, expiry fast path,
        signature, subject match.

        Raises:
            _TokenRejected: With the first failing reason
        """
        if not token or not user_id:
            raise _TokenRejected(InvalidReason.MISSING_PARAMETERS)

        if self.token_codec.is_expired(token):
            raise _TokenRejected(InvalidReason.TOKEN_EXPIRED)

        verification = self.token_codec.verify(token)
        if verification.status is TokenStatus.EXPIRED:
            raise _TokenRejected(InvalidReason.TOKEN_EXPIRED)
        if not verification.is_valid or verification.claims is None:
            raise _TokenRejected(InvalidReason.INVALID_TOKEN)

        claims = verification.claims
        if claims.subject_id != user_id:
            security_logger.warning(
                f"Token subject {claims.subject_id} presented for user {user_id}"
            )
            raise _TokenRejected(InvalidReason.USER_MISMATCH)
        return claims

    async def _fetch_principal(self, user_id: str) -> Principal | None:
        return await asyncio.wait_for(
            self.directory.get_principal(user_id),
            timeout=self.principal_timeout,
        )

    async def _remember(self, principal: Principal) -> None:
        if self.cache is None:
            return
        await self.cache.set(
            principal.id,
            {
                "role": principal.role.value,
                "siteAccess": sorted(principal.site_access),
                "timestamp": int(time.time() * 1000),
            },
        )

    async def validate(
        self,
        token: str | None,
        user_id: str | None,
        site_id: str | None = None,
        requested_permissions: Iterable[str] | None = None,
    ) -> ValidationVerdict:
        """
        Full validation with a fresh directory read.

        When ``site_id`` is given the verdict carries the capability matrix
        for that site. Each requested permission is answered from the
        effective permission set and the capability matrix.
        """
        try:
            claims = self._check_token(token, user_id)
        except _TokenRejected as e:
            logger.info(f"Token validation failed for {user_id}: {e.reason.value}")
            return ValidationVerdict(valid=False, error=e.reason.value)

        try:
            principal = await self._fetch_principal(claims.subject_id)
        except Exception:
            logger.exception(f"Principal lookup failed during validation of {user_id}")
            return ValidationVerdict(valid=False, error=InvalidReason.LOOKUP_FAILED.value)

        if principal is None:
            return ValidationVerdict(valid=False, error=InvalidReason.USER_NOT_FOUND.value)

        permissions = principal.effective_permissions
        capabilities = (
            capability_matrix(principal.role, principal.site_access, site_id) if site_id else None
        )

        answered = None
        if requested_permissions is not None:
            answered = {
                permission: permission in permissions
                or bool(capabilities and capabilities.get(permission))
                for permission in requested_permissions
            }

        await self._remember(principal)

        return ValidationVerdict(
            valid=True,
            user=ValidatedUser(
                id=principal.id,
                email=principal.email,
                role=principal.role.value,
                permissions=sorted(permissions),
                site_access=sorted(principal.site_access),
                first_name=principal.first_name,
                last_name=principal.last_name,
            ),
            token_issued_at=claims.issued_at,
            capabilities=capabilities,
            requested_permissions=answered,
        )

    async def validate_quick(self, token: str | None, user_id: str | None) -> QuickValidationVerdict:
        """
        Lightweight validation: same token checks, role from the cache when
        a recent directory read is available.
        """
        try:
            claims = self._check_token(token, user_id)
        except _TokenRejected as e:
            return QuickValidationVerdict(valid=False, error=e.reason.value)

        cached = await self.cache.get(claims.subject_id) if self.cache is not None else None
        if cached and isinstance(cached.get("role"), str):
            return QuickValidationVerdict(
                valid=True,
                role=cached["role"],
                token_issued_at=claims.issued_at,
            )

        try:
            principal = await self._fetch_principal(claims.subject_id)
        except Exception:
            logger.exception(f"Principal lookup failed during quick validation of {user_id}")
            return QuickValidationVerdict(valid=False, error=InvalidReason.LOOKUP_FAILED.value)

        if principal is None:
            return QuickValidationVerdict(valid=False, error=InvalidReason.USER_NOT_FOUND.value)

        await self._remember(principal)

        return QuickValidationVerdict(
            valid=True,
            role=principal.role.value,
            token_issued_at=claims.issued_at,
        )
