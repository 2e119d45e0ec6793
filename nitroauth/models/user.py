"""
User SQLAlchemy model.
Local mirror of identity provider principals and their role/grant metadata.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from nitroauth.db.base import Base


class User(Base):
    """
    Principal record.

    ``role`` is kept as a plain string: values written by other systems are
    normalized when read, never rejected at the storage layer.
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Identity provider user ID",
    )
    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        index=True,
    )
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="guest",
        index=True,
        comment="Role name (guest, standard, premium, admin, super_admin)",
    )
    site_access: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Explicit site permission grants on top of role defaults",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, role={self.role})>"
