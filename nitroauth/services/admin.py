"""
Administrative principal management.

Role changes, explicit grant updates and the one-time super admin setup.
Every mutation and every rejected attempt is audited.
"""

import asyncio
import logging

from nitroauth.auth.catalog import (
    KNOWN_PERMISSIONS,
    InvalidPermissionError,
    Role,
    parse_site_permission,
)
from nitroauth.auth.permissions import normalize_target
from nitroauth.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from nitroauth.core.http import ClientMetadata
from nitroauth.models.audit import AuditAction
from nitroauth.schemas.admin import MAX_PERMISSIONS_PER_UPDATE
from nitroauth.schemas.principal import Principal
from nitroauth.services.audit import AuditLogger
from nitroauth.services.cache import ValidationCache
from nitroauth.services.principals import PrincipalDirectory, SuperAdminInvariantError
from nitroauth.services.sites import SiteService

logger = logging.getLogger(__name__)

# Serializes role changes in this process. Directories that share state across
# processes also guard the super admin count inside their own transaction.
_role_lock = asyncio.Lock()


class AdminService:
    """Service class for administrative principal operations."""

    def __init__(
        self,
        directory: PrincipalDirectory,
        audit: AuditLogger | None = None,
        cache: ValidationCache | None = None,
        sites: SiteService | None = None,
    ):
        self.directory = directory
        self.audit = audit
        self.cache = cache
        self.sites = sites

    async def require_admin(self, actor_id: str) -> Principal:
        """
        Load the acting principal and check it holds an admin role.

        Raises:
            ForbiddenException: If the actor is unknown or not an admin
        """
        actor = await self.directory.get_principal(actor_id)
        if actor is None or not actor.role.is_admin:
            raise ForbiddenException("Admin access required")
        return actor

    async def require_super_admin(self, actor_id: str) -> Principal:
        """
        Raises:
            ForbiddenException: If the actor is not a super admin
        """
        actor = await self.directory.get_principal(actor_id)
        if actor is None or actor.role is not Role.SUPER_ADMIN:
            raise ForbiddenException("Super admin access required")
        return actor

    async def list_users(self, limit: int = 50, offset: int = 0) -> tuple[list[Principal], int]:
        return await self.directory.list_principals(limit=limit, offset=offset)

    async def update_role(
        self,
        actor: Principal,
        target_id: str,
        new_role: Role,
        client: ClientMetadata,
    ) -> Principal:
        """
        Change another principal's role. Explicit grants are kept.

        Raises:
            ForbiddenException: Self-modification, or a super admin role
                assigned or modified by a non-super admin
            NotFoundException: If the target does not exist
            ConflictException: If the change would leave no super admin
        """
        if target_id == actor.id:
            await self._reject_role(actor, target_id, new_role, "self-modification", client)
            raise ForbiddenException("Cannot change your own role")

        if new_role is Role.SUPER_ADMIN and actor.role is not Role.SUPER_ADMIN:
            await self._reject_role(actor, target_id, new_role, "super admin assignment by non-super admin", client)
            raise ForbiddenException("Only super admins can assign super admin role")

        async with _role_lock:
            target = await self.directory.get_principal(target_id)
            if target is None:
                raise NotFoundException("User", target_id)

            if target.role is Role.SUPER_ADMIN and actor.role is not Role.SUPER_ADMIN:
                await self._reject_role(actor, target_id, new_role, "super admin modified by non-super admin", client)
                raise ForbiddenException("Only super admins can modify a super admin")

            if target.role is Role.SUPER_ADMIN and new_role is not Role.SUPER_ADMIN:
                try:
                    updated = await self.directory.demote_super_admin(target_id, new_role)
                except SuperAdminInvariantError:
                    await self._reject_role(actor, target_id, new_role, "last super admin", client)
                    raise ConflictException(
                        "Cannot demote the last super admin",
                        details={"userId": target_id},
                    )
            else:
                updated = await self.directory.update_role(target_id, new_role)
            if updated is None:
                raise NotFoundException("User", target_id)

        await self._invalidate(target_id)
        await self._record(
            AuditAction.ROLE_UPDATED,
            f"Role changed from {target.role.value} to {new_role.value}",
            actor,
            updated,
            client,
            staged=True,
        )
        logger.info(f"Role of {target_id} changed to {new_role.value} by {actor.id}")
        return updated

    async def update_access(
        self,
        actor: Principal,
        target_id: str,
        site_access: list[str],
        client: ClientMetadata,
    ) -> Principal:
        """
        Replace a principal's explicit grants.

        Every entry must pass format validation and be a known permission
        or the URL of an active registered site. Duplicates are dropped.

        Raises:
            ValidationException: If any entry is rejected
            NotFoundException: If the target does not exist
        """
        try:
            cleaned = await self._validate_grants(site_access)
        except ValidationException:
            await self._record(
                AuditAction.PERMISSIONS_UPDATE_REJECTED,
                "Rejected invalid site permissions",
                actor,
                None,
                client,
                target_user_id=target_id,
            )
            raise

        updated = await self.directory.update_site_access(target_id, cleaned)
        if updated is None:
            raise NotFoundException("User", target_id)

        await self._invalidate(target_id)
        await self._record(
            AuditAction.PERMISSIONS_UPDATED,
            f"Site access set to {', '.join(cleaned) or '(none)'}",
            actor,
            updated,
            client,
            staged=True,
        )
        logger.info(f"Site access of {target_id} updated by {actor.id}")
        return updated

    async def setup_super_admin(
        self,
        requester_id: str,
        requester_email: str | None,
        client: ClientMetadata,
    ) -> Principal:
        """
        Promote the requester to super admin. Works only while no super
        admin exists; after that it is permanently disabled.

        Raises:
            ForbiddenException: If a super admin already exists
            NotFoundException: If the requester is not in the directory
        """
        async with _role_lock:
            try:
                updated = await self.directory.claim_super_admin(requester_id)
            except SuperAdminInvariantError:
                await self._record_setup(
                    AuditAction.SUPER_ADMIN_SETUP_REJECTED,
                    "Setup attempted after a super admin already exists",
                    requester_id,
                    requester_email,
                    client,
                )
                raise ForbiddenException("Super admin setup is disabled")

            if updated is None:
                await self._record_setup(
                    AuditAction.SUPER_ADMIN_SETUP_REJECTED,
                    "Setup attempted by an unknown principal",
                    requester_id,
                    requester_email,
                    client,
                )
                raise NotFoundException("User", requester_id)

        await self._invalidate(requester_id)
        await self._record_setup(
            AuditAction.SUPER_ADMIN_SETUP,
            "Initial super admin provisioned",
            requester_id,
            updated.email or requester_email,
            client,
            staged=True,
        )
        logger.warning(f"Super admin provisioned: {requester_id}")
        return updated

    async def _validate_grants(self, site_access: list[str]) -> list[str]:
        if len(site_access) > MAX_PERMISSIONS_PER_UPDATE:
            raise ValidationException(
                f"At most {MAX_PERMISSIONS_PER_UPDATE} site permissions per update"
            )

        registered = await self.sites.active_urls() if self.sites is not None else set()

        cleaned: list[str] = []
        invalid: list[str] = []
        for entry in site_access:
            try:
                permission = parse_site_permission(entry)
            except InvalidPermissionError:
                invalid.append(str(entry)[:100])
                continue

            if permission not in KNOWN_PERMISSIONS and normalize_target(permission) not in registered:
                invalid.append(permission[:100])
                continue

            if permission not in cleaned:
                cleaned.append(permission)

        if invalid:
            raise ValidationException("Invalid site permissions", details={"invalid": invalid})
        return cleaned

    async def _invalidate(self, user_id: str) -> None:
        if self.cache is not None:
            await self.cache.delete(user_id)

    async def _reject_role(
        self,
        actor: Principal,
        target_id: str,
        new_role: Role,
        reason: str,
        client: ClientMetadata,
    ) -> None:
        await self._record(
            AuditAction.ROLE_UPDATE_REJECTED,
            f"Rejected role change to {new_role.value}: {reason}",
            actor,
            None,
            client,
            target_user_id=target_id,
        )

    async def _record(
        self,
        action: AuditAction,
        details: str,
        actor: Principal,
        target: Principal | None,
        client: ClientMetadata,
        target_user_id: str | None = None,
        staged: bool = False,
    ) -> None:
        if self.audit is None:
            return
        write = self.audit.stage if staged else self.audit.record
        await write(
            action,
            details,
            admin_id=actor.id,
            admin_email=actor.email,
            target_user_id=target.id if target else target_user_id,
            target_user_email=target.email if target else None,
            client=client,
        )

    async def _record_setup(
        self,
        action: AuditAction,
        details: str,
        requester_id: str,
        requester_email: str | None,
        client: ClientMetadata,
        staged: bool = False,
    ) -> None:
        if self.audit is None:
            return
        write = self.audit.stage if staged else self.audit.record
        await write(
            action,
            details,
            admin_id=requester_id,
            admin_email=requester_email,
            target_user_id=requester_id,
            client=client,
        )
