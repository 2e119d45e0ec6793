"""
Principal schema: the authoritative identity and its role/grant state,
as returned by a principal directory.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nitroauth.auth.catalog import Role, default_permissions


class Principal(BaseModel):
    """
    Snapshot of a principal read from the source of truth.

    The role is normalized on the way in; grants keep set semantics.
    """

    id: str
    email: str = ""
    first_name: str | None = None
    last_name: str | None = None
    role: Role = Role.GUEST
    site_access: frozenset[str] = Field(default_factory=frozenset)

    model_config = ConfigDict(from_attributes=True, frozen=True)

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: Any) -> Role:
        return Role.normalize(value)

    @field_validator("site_access", mode="before")
    @classmethod
    def _coerce_site_access(cls, value: Any) -> frozenset[str]:
        if not value or isinstance(value, str):
            return frozenset()
        return frozenset(item for item in value if isinstance(item, str) and item)

    @property
    def effective_permissions(self) -> frozenset[str]:
        """Role defaults plus explicit grants."""
        return default_permissions(self.role) | self.site_access


class PrincipalResponse(BaseModel):
    """Principal as shown to administrators and target applications."""

    id: str
    email: str
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    role: Role
    site_access: list[str] = Field(alias="siteAccess")
    permissions: list[str]

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_principal(cls, principal: Principal) -> "PrincipalResponse":
        return cls(
            id=principal.id,
            email=principal.email,
            first_name=principal.first_name,
            last_name=principal.last_name,
            role=principal.role,
            site_access=sorted(principal.site_access),
            permissions=sorted(principal.effective_permissions),
        )


class PrincipalListResponse(BaseModel):
    """Response schema for principal listing."""

    items: list[PrincipalResponse]
    total: int


class AccessibleSite(BaseModel):
    """A permission the principal holds and where it leads, if anywhere."""

    permission: str
    url: str | None = None


class CurrentPrincipalResponse(BaseModel):
    """Response schema for the signed-in principal."""

    user: PrincipalResponse
    default_redirect: str = Field(alias="defaultRedirect")
    accessible_sites: list[AccessibleSite] = Field(alias="accessibleSites")

    model_config = ConfigDict(populate_by_name=True)
