"""
FastAPI dependency injection functions.
Provides common dependencies used across endpoints.
"""

from typing import Annotated, Any

from fastapi import Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from nitroauth.auth.dependencies import get_current_identity
from nitroauth.auth.tokens import TokenCodec, get_token_codec
from nitroauth.config import Settings, get_settings
from nitroauth.core.http import ClientMetadata, get_client_metadata
from nitroauth.core.exceptions import RateLimitExceededException
from nitroauth.db.session import get_db, get_session_factory
from nitroauth.models.audit import AuditAction
from nitroauth.schemas.principal import Principal
from nitroauth.services.admin import AdminService
from nitroauth.services.audit import AuditLogger, AuditService
from nitroauth.services.authorization import AuthorizationEngine
from nitroauth.services.cache import ValidationCache, get_validation_cache
from nitroauth.services.principals import PrincipalDirectory, build_principal_directory
from nitroauth.services.rate_limit import OperationClass, RateLimiter, get_rate_limiter
from nitroauth.services.sites import SiteService
from nitroauth.services.validation import ValidationService


# Type aliases for cleaner endpoint signatures
DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]
Client = Annotated[ClientMetadata, Depends(get_client_metadata)]
Identity = Annotated[dict[str, Any], Depends(get_current_identity)]
Limiter = Annotated[RateLimiter, Depends(get_rate_limiter)]
Cache = Annotated[ValidationCache, Depends(get_validation_cache)]
Codec = Annotated[TokenCodec, Depends(get_token_codec)]


def get_principal_directory(db: DbSession, settings: AppSettings) -> PrincipalDirectory:
    """Principal directory for the configured backend."""
    return build_principal_directory(settings, db)


def get_audit_logger(
    db: DbSession,
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> AuditLogger:
    return AuditLogger(session_factory, db=db)


Directory = Annotated[PrincipalDirectory, Depends(get_principal_directory)]
Audit = Annotated[AuditLogger, Depends(get_audit_logger)]


def get_site_service(db: DbSession) -> SiteService:
    return SiteService(db)


def get_audit_service(db: DbSession) -> AuditService:
    return AuditService(db)


Sites = Annotated[SiteService, Depends(get_site_service)]


def get_authorization_engine(
    directory: Directory,
    codec: Codec,
    sites: Sites,
    audit: Audit,
    limiter: Limiter,
    settings: AppSettings,
) -> AuthorizationEngine:
    return AuthorizationEngine(
        directory=directory,
        token_codec=codec,
        sites=sites,
        audit=audit,
        rate_limiter=limiter,
        principal_timeout=settings.IDENTITY_PROVIDER_TIMEOUT,
    )


def get_validation_service(
    directory: Directory,
    codec: Codec,
    cache: Cache,
    settings: AppSettings,
) -> ValidationService:
    return ValidationService(
        directory=directory,
        token_codec=codec,
        cache=cache,
        principal_timeout=settings.IDENTITY_PROVIDER_TIMEOUT,
    )


def get_admin_service(directory: Directory, audit: Audit, cache: Cache, sites: Sites) -> AdminService:
    return AdminService(directory=directory, audit=audit, cache=cache, sites=sites)


Admin = Annotated[AdminService, Depends(get_admin_service)]


async def get_current_admin(identity: Identity, admin: Admin) -> Principal:
    """
    Dependency requiring the requester to hold an admin role.

    Raises:
        ForbiddenException: If the requester is not an admin
    """
    return await admin.require_admin(identity["user_id"])


CurrentAdmin = Annotated[Principal, Depends(get_current_admin)]


def rate_limit(operation: OperationClass, per_identity: bool = False):
    """
    Dependency factory enforcing a rate-limit class.

    The key is the client IP, or the client IP and requester id when
    ``per_identity`` is set. Admitted requests get ``X-RateLimit-*`` headers.

    Usage:
        @router.get("/users", dependencies=[Depends(rate_limit(OperationClass.ADMIN, per_identity=True))])
    """
    if per_identity:
        async def _admit_identity(
            response: Response,
            client: Client,
            limiter: Limiter,
            identity: Identity,
        ) -> None:
            decision = limiter.enforce(f"{client.ip_address}:{identity['user_id']}", operation)
            response.headers.update(decision.headers())

        return _admit_identity

    async def _admit(response: Response, client: Client, limiter: Limiter) -> None:
        decision = limiter.enforce(client.ip_address, operation)
        response.headers.update(decision.headers())

    return _admit


async def admit_setup(
    response: Response,
    client: Client,
    limiter: Limiter,
    identity: Identity,
    audit: Audit,
) -> None:
    """
    SETUP admission. A rate-limited attempt is audited as a rejected setup
    before the 429 goes out.
    """
    try:
        decision = limiter.enforce(client.ip_address, OperationClass.SETUP)
    except RateLimitExceededException:
        await audit.record(
            AuditAction.SUPER_ADMIN_SETUP_REJECTED,
            "Setup attempt rate limited",
            admin_id=identity["user_id"],
            admin_email=identity.get("email"),
            target_user_id=identity["user_id"],
            client=client,
        )
        raise
    response.headers.update(decision.headers())
