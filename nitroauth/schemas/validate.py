"""
Pydantic schemas for token validation.
"""

from pydantic import BaseModel, ConfigDict, Field


class ValidateRequest(BaseModel):
    """Body sent by a target application."""

    auth_token: str | None = None
    user_id: str | None = None
    site_id: str | None = Field(default=None, alias="siteId")
    requested_permissions: list[str] | None = Field(default=None, alias="requestedPermissions")

    model_config = ConfigDict(populate_by_name=True)


class ValidatedUser(BaseModel):
    """Current state of the principal behind a valid token."""

    id: str
    email: str
    role: str
    permissions: list[str]
    site_access: list[str] = Field(alias="siteAccess")
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")

    model_config = ConfigDict(populate_by_name=True)


class ValidationVerdict(BaseModel):
    """Full validation result."""

    valid: bool
    user: ValidatedUser | None = None
    token_issued_at: int | None = Field(default=None, alias="tokenIssuedAt")
    capabilities: dict[str, bool] | None = None
    requested_permissions: dict[str, bool] | None = Field(default=None, alias="requestedPermissions")
    error: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class QuickValidationVerdict(BaseModel):
    """Lightweight validation result."""

    valid: bool
    role: str | None = None
    token_issued_at: int | None = Field(default=None, alias="tokenIssuedAt")
    error: str | None = None

    model_config = ConfigDict(populate_by_name=True)
