"""
Token validation endpoints for target applications.
No session required: the redirect token is the credential.
"""

from fastapi import APIRouter, Depends, Query, Response, status

from nitroauth.dependencies import get_validation_service, rate_limit
from nitroauth.schemas.validate import QuickValidationVerdict, ValidateRequest, ValidationVerdict
from nitroauth.services.rate_limit import OperationClass
from nitroauth.services.validation import InvalidReason, ValidationService

router = APIRouter(dependencies=[Depends(rate_limit(OperationClass.VALIDATE))])


@router.post("", response_model=ValidationVerdict, response_model_exclude_none=True)
async def validate_token(
    body: ValidateRequest,
    response: Response,
    service: ValidationService = Depends(get_validation_service),
):
    """
    Full validation.

    Verifies the token, checks it was issued to ``user_id`` and returns the
    principal's current role and permissions. Pass ``siteId`` to receive the
    capability matrix for that site and ``requestedPermissions`` to have
    individual permissions answered.

    Returns 400 for missing parameters and 401 for any other invalid verdict.
    """
    verdict = await service.validate(
        token=body.auth_token,
        user_id=body.user_id,
        site_id=body.site_id,
        requested_permissions=body.requested_permissions,
    )

    if not verdict.valid:
        if verdict.error == InvalidReason.MISSING_PARAMETERS.value:
            response.status_code = status.HTTP_400_BAD_REQUEST
        else:
            response.status_code = status.HTTP_401_UNAUTHORIZED
    return verdict


@router.get("", response_model=QuickValidationVerdict, response_model_exclude_none=True)
async def validate_token_quick(
    response: Response,
    auth_token: str | None = Query(default=None),
    user_id: str | None = Query(default=None),
    service: ValidationService = Depends(get_validation_service),
):
    """
    Lightweight validation returning only validity and the current role.

    Invalid tokens are reported with 200 and ``valid: false``; only missing
    parameters yield 400.
    """
    verdict = await service.validate_quick(token=auth_token, user_id=user_id)

    if verdict.error == InvalidReason.MISSING_PARAMETERS.value:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return verdict
