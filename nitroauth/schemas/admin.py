"""
Pydantic schemas for administrative principal mutations.
"""

from pydantic import BaseModel, ConfigDict, Field

from nitroauth.auth.catalog import Role

MAX_PERMISSIONS_PER_UPDATE = 20


class UpdateRoleRequest(BaseModel):
    """Change a principal's role."""

    user_id: str = Field(alias="userId", min_length=1, max_length=64)
    role: Role

    model_config = ConfigDict(populate_by_name=True)


class UpdateAccessRequest(BaseModel):
    """Replace a principal's explicit site grants."""

    user_id: str = Field(alias="userId", min_length=1, max_length=64)
    site_access: list[str] = Field(alias="siteAccess", max_length=MAX_PERMISSIONS_PER_UPDATE)

    model_config = ConfigDict(populate_by_name=True)


class AdminActionResponse(BaseModel):
    """Outcome of an administrative mutation."""

    success: bool
    message: str
    user_id: str | None = Field(default=None, alias="userId")
    role: Role | None = None
    site_access: list[str] | None = Field(default=None, alias="siteAccess")

    model_config = ConfigDict(populate_by_name=True)
