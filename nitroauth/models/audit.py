"""
AuditLog SQLAlchemy model.
Append-only record of administrative and security-relevant actions.
"""

import enum
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from nitroauth.db.base import Base


class AuditAction(str, enum.Enum):
    """Well-known audit actions. Manual entries may use other strings."""
    AUTH_SUCCESS = "auth_success"
    UNAUTHORIZED_ACCESS = "unauthorized_access_attempt"
    AUTH_SYSTEM_ERROR = "auth_system_error"
    ROLE_UPDATED = "role_updated"
    ROLE_UPDATE_REJECTED = "role_update_rejected"
    PERMISSIONS_UPDATED = "permissions_updated"
    PERMISSIONS_UPDATE_REJECTED = "permissions_update_rejected"
    SUPER_ADMIN_SETUP = "super_admin_setup"
    SUPER_ADMIN_SETUP_REJECTED = "super_admin_setup_rejected"
    SITE_CREATED = "site_created"
    SITE_UPDATED = "site_updated"
    SITE_DELETED = "site_deleted"


class AuditLog(Base):
    """Audit entry. Rows are inserted, never updated or deleted."""
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    details: Mapped[str] = mapped_column(Text, nullable=False)
    admin_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        comment="Acting principal (admin for mutations, requester for access events)",
    )
    admin_email: Mapped[str] = mapped_column(String(320), nullable=False)
    target_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    target_user_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    site_id: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AuditLog(action={self.action}, admin_id={self.admin_id})>"
