"""
Administrative endpoints: principals, one-time setup and the audit log.
All routes except setup require an admin role.
"""

from fastapi import APIRouter, Depends, Query, status

from nitroauth.core.http import sanitize_string
from nitroauth.dependencies import (
    Admin,
    Client,
    CurrentAdmin,
    Identity,
    admit_setup,
    get_audit_service,
    rate_limit,
)
from nitroauth.schemas.admin import AdminActionResponse, UpdateAccessRequest, UpdateRoleRequest
from nitroauth.schemas.audit import AuditEntryCreate, AuditEntryResponse, AuditListResponse
from nitroauth.schemas.principal import PrincipalListResponse, PrincipalResponse
from nitroauth.services.audit import AuditService
from nitroauth.services.rate_limit import OperationClass

router = APIRouter()

admin_rate_limit = Depends(rate_limit(OperationClass.ADMIN, per_identity=True))


@router.get("/users", response_model=PrincipalListResponse, dependencies=[admin_rate_limit])
async def list_users(
    actor: CurrentAdmin,
    admin: Admin,
    limit: int = Query(default=50, ge=1, le=200, description="Page size"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
):
    """List principals with their role and grants."""
    principals, total = await admin.list_users(limit=limit, offset=offset)
    return PrincipalListResponse(
        items=[PrincipalResponse.from_principal(p) for p in principals],
        total=total,
    )


@router.post("/users/update-role", response_model=AdminActionResponse, dependencies=[admin_rate_limit])
async def update_role(
    body: UpdateRoleRequest,
    actor: CurrentAdmin,
    admin: Admin,
    client: Client,
):
    """
    Change another principal's role.

    Rejected with 403 for self-modification and for super admin changes by
    a non-super admin, 404 for an unknown user and 409 when the change
    would remove the last super admin.
    """
    updated = await admin.update_role(actor, sanitize_string(body.user_id), body.role, client)
    return AdminActionResponse(
        success=True,
        message="Role updated successfully",
        user_id=updated.id,
        role=updated.role,
        site_access=sorted(updated.site_access),
    )


@router.post("/users/update-access", response_model=AdminActionResponse, dependencies=[admin_rate_limit])
async def update_access(
    body: UpdateAccessRequest,
    actor: CurrentAdmin,
    admin: Admin,
    client: Client,
):
    """
    Replace a principal's explicit site grants.

    Entries must be known permissions or URLs of active registered sites.
    """
    updated = await admin.update_access(actor, sanitize_string(body.user_id), body.site_access, client)
    return AdminActionResponse(
        success=True,
        message="Site access updated successfully",
        user_id=updated.id,
        role=updated.role,
        site_access=sorted(updated.site_access),
    )


@router.post(
    "/setup",
    response_model=AdminActionResponse,
    dependencies=[Depends(admit_setup)],
)
async def setup_super_admin(identity: Identity, admin: Admin, client: Client):
    """
    Make the requester the first super admin.

    Permanently disabled (403) once any super admin exists. Every attempt
    is audited.
    """
    updated = await admin.setup_super_admin(identity["user_id"], identity.get("email"), client)
    return AdminActionResponse(
        success=True,
        message=f"User {updated.email or updated.id} is now a super admin",
        user_id=updated.id,
        role=updated.role,
    )


@router.get("/audit-log", response_model=AuditListResponse, dependencies=[admin_rate_limit])
async def list_audit_log(
    actor: CurrentAdmin,
    limit: int = Query(default=50, ge=1, le=200, description="Page size"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    action: str | None = Query(default=None, max_length=64, description="Filter by action"),
    admin_id: str | None = Query(default=None, alias="adminId", max_length=64, description="Filter by acting admin"),
    service: AuditService = Depends(get_audit_service),
):
    """List audit entries, newest first."""
    entries, total = await service.list_entries(
        limit=limit,
        offset=offset,
        action=action,
        admin_id=admin_id,
    )
    return AuditListResponse(
        items=[AuditEntryResponse.model_validate(e) for e in entries],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post(
    "/audit-log",
    response_model=AuditEntryResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[admin_rate_limit],
)
async def create_audit_entry(
    body: AuditEntryCreate,
    actor: CurrentAdmin,
    client: Client,
    service: AuditService = Depends(get_audit_service),
):
    """Append a manual audit entry attributed to the acting admin."""
    entry = await service.append(
        action=sanitize_string(body.action),
        details=sanitize_string(body.details),
        admin_id=actor.id,
        admin_email=actor.email,
        target_user_id=body.target_user_id,
        target_user_email=body.target_user_email,
        site_id=body.site_id,
        client=client,
    )
    return AuditEntryResponse.model_validate(entry)
