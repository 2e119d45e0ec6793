"""
Site registry endpoints.
Admins list, register and edit sites; only super admins deactivate them.
"""

from fastapi import APIRouter, Depends

from nitroauth.dependencies import Admin, Audit, Client, CurrentAdmin, Sites, rate_limit
from nitroauth.models.audit import AuditAction
from nitroauth.schemas.site import SiteCreate, SiteListResponse, SiteResponse, SiteUpdate
from nitroauth.services.rate_limit import OperationClass

router = APIRouter(dependencies=[Depends(rate_limit(OperationClass.ADMIN, per_identity=True))])


@router.get("", response_model=SiteListResponse)
async def list_sites(actor: CurrentAdmin, sites: Sites):
    """List active sites ordered by name."""
    items = await sites.list_active()
    return SiteListResponse(
        items=[SiteResponse.model_validate(s) for s in items],
        total=len(items),
    )


@router.post("", response_model=SiteResponse, status_code=201)
async def create_site(
    body: SiteCreate,
    actor: CurrentAdmin,
    sites: Sites,
    audit: Audit,
    client: Client,
):
    """
    Register a site.

    The URL must be an absolute https URL not used by another active site.
    """
    site = await sites.create(body)
    await audit.stage(
        AuditAction.SITE_CREATED,
        f"Registered site {site.name} ({site.url})",
        admin_id=actor.id,
        admin_email=actor.email,
        site_id=site.id,
        client=client,
    )
    return SiteResponse.model_validate(site)


@router.put("/{site_id}", response_model=SiteResponse)
async def update_site(
    site_id: str,
    body: SiteUpdate,
    actor: CurrentAdmin,
    sites: Sites,
    audit: Audit,
    client: Client,
):
    """Update a site. Only provided fields change."""
    site = await sites.update(site_id, body)
    await audit.stage(
        AuditAction.SITE_UPDATED,
        f"Updated site {site.name} ({site.url})",
        admin_id=actor.id,
        admin_email=actor.email,
        site_id=site.id,
        client=client,
    )
    return SiteResponse.model_validate(site)


@router.delete("/{site_id}", response_model=SiteResponse)
async def delete_site(
    site_id: str,
    actor: CurrentAdmin,
    admin: Admin,
    sites: Sites,
    audit: Audit,
    client: Client,
):
    """Deactivate a site. Requires a super admin."""
    await admin.require_super_admin(actor.id)
    site = await sites.soft_delete(site_id)
    await audit.stage(
        AuditAction.SITE_DELETED,
        f"Deactivated site {site.name} ({site.url})",
        admin_id=actor.id,
        admin_email=actor.email,
        site_id=site.id,
        client=client,
    )
    return SiteResponse.model_validate(site)
