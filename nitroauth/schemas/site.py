"""
Pydantic schemas for Site request/response validation.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from nitroauth.models.site import SiteCategory


class SiteCreate(BaseModel):
    """Schema for registering a site."""

    name: str = Field(..., min_length=1, max_length=100)
    url: str = Field(..., min_length=1, max_length=2048, description="Absolute https URL")
    description: str | None = Field(default=None, max_length=1000)
    category: SiteCategory = SiteCategory.STANDARD


class SiteUpdate(BaseModel):
    """Schema for updating a site. Only provided fields change."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    url: str | None = Field(default=None, min_length=1, max_length=2048)
    description: str | None = Field(default=None, max_length=1000)
    category: SiteCategory | None = None


class SiteResponse(BaseModel):
    """Response schema for a single site."""

    id: str
    name: str
    url: str
    description: str | None = None
    category: SiteCategory
    is_active: bool = Field(alias="isActive")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class SiteListResponse(BaseModel):
    """Response schema for site listing."""

    items: list[SiteResponse]
    total: int
