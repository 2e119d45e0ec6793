"""
Authorization engine.

Turns (requester, requested target, caller redirect URL) into a decision:
a granted redirect carrying a fresh token, or a denial carrying a fallback
destination. Denials are results, not exceptions; only caller-contract
violations and rate-limit rejections raise.

Each request moves through: received, rate checked, principal resolved,
permission evaluated, then granted or denied.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from nitroauth.auth.catalog import PROFILE_URL, Role, default_redirect
from nitroauth.auth.permissions import is_target_authorized
from nitroauth.auth.tokens import TOKEN_TTL_SECONDS, TokenCodec
from nitroauth.core.exceptions import ValidationException
from nitroauth.core.http import ClientMetadata, append_query_params, is_absolute_url, sanitize_string
from nitroauth.models.audit import AuditAction
from nitroauth.models.site import Site
from nitroauth.schemas.authorize import AuthorizationDecision
from nitroauth.schemas.principal import Principal
from nitroauth.services.audit import AuditLogger
from nitroauth.services.principals import PrincipalDirectory
from nitroauth.services.rate_limit import OperationClass, RateLimitDecision, RateLimiter
from nitroauth.services.sites import SiteService

logger = logging.getLogger(__name__)

INSUFFICIENT_PERMISSIONS = "Insufficient permissions for requested site"
SYSTEM_ERROR = "Authorization system error"

TOKEN_PARAM = "auth_token"
USER_PARAM = "user_id"


class AuthorizationEngine:
    """
    Decide whether a principal may be sent to a target application.

    Collaborators are injected so tests can supply in-process fakes.
    """

    def __init__(
        self,
        directory: PrincipalDirectory,
        token_codec: TokenCodec,
        sites: SiteService | None = None,
        audit: AuditLogger | None = None,
        rate_limiter: RateLimiter | None = None,
        principal_timeout: float = 5.0,
    ):
        self.directory = directory
        self.token_codec = token_codec
        self.sites = sites
        self.audit = audit
        self.rate_limiter = rate_limiter
        self.principal_timeout = principal_timeout
        # Admission of the last authorize call, for response headers
        self.admission: RateLimitDecision | None = None

    async def authorize(
        self,
        requester_id: str,
        requested_site: str | None,
        redirect_url: str | None,
        client: ClientMetadata,
        requester_email: str | None = None,
    ) -> AuthorizationDecision:
        """
        Authorize a redirect to ``requested_site``.

        Raises:
            ValidationException: If a parameter is missing or the redirect
                URL is not absolute
            RateLimitExceededException: If the caller exhausted its window
        """
        target = sanitize_string(requested_site)
        if not target or not redirect_url or not redirect_url.strip():
            raise ValidationException(
                "Missing required parameters: requestedSite and redirectUrl"
            )

        redirect_url = redirect_url.strip()
        if not is_absolute_url(redirect_url):
            raise ValidationException(
                "redirectUrl must be an absolute http(s) URL",
                details={"redirectUrl": redirect_url[:200]},
            )

        if self.rate_limiter is not None:
            self.admission = self.rate_limiter.enforce(
                f"{client.ip_address}:{requester_id}", OperationClass.AUTHORIZE
            )

        try:
            principal = await asyncio.wait_for(
                self.directory.get_principal(requester_id),
                timeout=self.principal_timeout,
            )
            site = await self._resolve_site(target)
        except Exception:
            # Fail secure: any upstream failure is a denial without a token
            logger.exception(f"Principal resolution failed for {requester_id}")
            return await self._system_error(requester_id, requester_email, target, client)

        if principal is None:
            logger.warning(f"Authorization requested by unknown principal {requester_id}")
            return await self._system_error(requester_id, requester_email, target, client)

        permissions = principal.effective_permissions
        if is_target_authorized(principal.role, permissions, target, site):
            return await self._grant(principal, target, site, redirect_url, client)
        return await self._deny(principal, target, client)

    async def _resolve_site(self, target: str) -> Site | None:
        if self.sites is None:
            return None
        return await self.sites.find_by_target(target)

    def _redirect_with_token(self, principal: Principal, url: str) -> str:
        token = self.token_codec.mint(principal.id, principal.role)
        return append_query_params(url, {TOKEN_PARAM: token, USER_PARAM: principal.id})

    @staticmethod
    def _token_expiry() -> str:
        expires = datetime.now(timezone.utc) + timedelta(seconds=TOKEN_TTL_SECONDS)
        return expires.isoformat()

    async def _grant(
        self,
        principal: Principal,
        target: str,
        site: Site | None,
        redirect_url: str,
        client: ClientMetadata,
    ) -> AuthorizationDecision:
        decision = AuthorizationDecision(
            authorized=True,
            redirect_url=self._redirect_with_token(principal, redirect_url),
            role=principal.role.value,
            site_name=site.name if site else target,
            token_expiry=self._token_expiry(),
        )

        await self._record(
            AuditAction.AUTH_SUCCESS,
            f"Authorized access to {target}",
            principal.id,
            principal.email,
            target,
            client,
        )
        return decision

    async def _deny(
        self,
        principal: Principal,
        target: str,
        client: ClientMetadata,
    ) -> AuthorizationDecision:
        fallback = default_redirect(principal.role)
        decision = AuthorizationDecision(
            authorized=False,
            redirect_url=self._redirect_with_token(principal, fallback),
            role=principal.role.value,
            error=INSUFFICIENT_PERMISSIONS,
            token_expiry=self._token_expiry(),
        )

        await self._record(
            AuditAction.UNAUTHORIZED_ACCESS,
            f"Denied access to {target} for role {principal.role.value}",
            principal.id,
            principal.email,
            target,
            client,
        )
        return decision

    async def _system_error(
        self,
        requester_id: str,
        requester_email: str | None,
        target: str,
        client: ClientMetadata,
    ) -> AuthorizationDecision:
        decision = AuthorizationDecision(
            authorized=False,
            redirect_url=PROFILE_URL,
            role=Role.GUEST.value,
            error=SYSTEM_ERROR,
        )

        await self._record(
            AuditAction.AUTH_SYSTEM_ERROR,
            f"Authorization for {target} failed with a system error",
            requester_id,
            requester_email,
            target,
            client,
        )
        return decision

    async def _record(
        self,
        action: AuditAction,
        details: str,
        actor_id: str,
        actor_email: str | None,
        target: str,
        client: ClientMetadata,
    ) -> None:
        if self.audit is None:
            return
        await self.audit.record(
            action,
            details,
            admin_id=actor_id,
            admin_email=actor_email,
            target_user_id=actor_id,
            site_id=target,
            client=client,
        )
