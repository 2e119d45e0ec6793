"""
Pydantic schemas for the audit log API.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AuditEntryCreate(BaseModel):
    """Manual audit entry. Actor and client metadata are filled in by the server."""

    action: str = Field(..., min_length=1, max_length=64)
    details: str = Field(..., min_length=1, max_length=1000)
    target_user_id: str | None = Field(default=None, alias="targetUserId", max_length=64)
    target_user_email: str | None = Field(default=None, alias="targetUserEmail", max_length=320)
    site_id: str | None = Field(default=None, alias="siteId", max_length=2048)

    model_config = ConfigDict(populate_by_name=True)


class AuditEntryResponse(BaseModel):
    """Response schema for a single audit entry."""

    id: str
    action: str
    details: str
    admin_id: str = Field(alias="adminId")
    admin_email: str = Field(alias="adminEmail")
    target_user_id: str | None = Field(default=None, alias="targetUserId")
    target_user_email: str | None = Field(default=None, alias="targetUserEmail")
    site_id: str | None = Field(default=None, alias="siteId")
    ip_address: str | None = Field(default=None, alias="ipAddress")
    user_agent: str | None = Field(default=None, alias="userAgent")
    timestamp: datetime

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class AuditListResponse(BaseModel):
    """Response schema for audit log listing."""

    items: list[AuditEntryResponse]
    total: int
    limit: int
    offset: int
