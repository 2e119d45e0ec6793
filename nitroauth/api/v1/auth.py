"""
Authorization endpoints.
Issue redirect tokens for target applications and describe the signed-in principal.
"""

import logging

from fastapi import APIRouter, Depends, Response, status

from nitroauth.auth.catalog import default_redirect
from nitroauth.auth.permissions import accessible_destinations
from nitroauth.core.exceptions import NotFoundException
from nitroauth.dependencies import Client, Directory, Identity, get_authorization_engine
from nitroauth.schemas.authorize import AuthorizationDecision, AuthorizeRequest
from nitroauth.schemas.principal import AccessibleSite, CurrentPrincipalResponse, PrincipalResponse
from nitroauth.services.authorization import SYSTEM_ERROR, AuthorizationEngine
from nitroauth.services.metrics import get_metrics_collector

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/authorize",
    response_model=AuthorizationDecision,
    response_model_exclude_none=True,
    responses={403: {"model": AuthorizationDecision, "description": "Denied, with a fallback redirect"}},
)
async def authorize(
    body: AuthorizeRequest,
    identity: Identity,
    client: Client,
    response: Response,
    engine: AuthorizationEngine = Depends(get_authorization_engine),
):
    """
    Decide whether the signed-in principal may visit ``requestedSite``.

    Granted: 200 with ``redirectUrl`` = ``redirectUrl`` plus ``auth_token``
    and ``user_id`` query parameters. Denied: 403 with ``redirectUrl``
    pointing at the role's landing page. Either way the caller has a URL
    to send the browser to.
    """
    decision = await engine.authorize(
        requester_id=identity["user_id"],
        requested_site=body.requested_site,
        redirect_url=body.redirect_url,
        client=client,
        requester_email=identity.get("email"),
    )

    if engine.admission is not None:
        response.headers.update(engine.admission.headers())

    if decision.authorized:
        outcome = "granted"
    elif decision.error == SYSTEM_ERROR:
        outcome = "system_error"
    else:
        outcome = "denied"
    get_metrics_collector().record_decision(outcome)

    if not decision.authorized:
        response.status_code = status.HTTP_403_FORBIDDEN
    return decision


@router.get("/me", response_model=CurrentPrincipalResponse)
async def current_principal(identity: Identity, directory: Directory):
    """
    The signed-in principal with its effective permissions and the
    destinations they lead to.
    """
    principal = await directory.get_principal(identity["user_id"])
    if principal is None:
        raise NotFoundException("User", identity["user_id"])

    return CurrentPrincipalResponse(
        user=PrincipalResponse.from_principal(principal),
        default_redirect=default_redirect(principal.role),
        accessible_sites=[
            AccessibleSite(permission=permission, url=url)
            for permission, url in accessible_destinations(principal.effective_permissions)
        ],
    )
