"""
Site SQLAlchemy model.
Administrator-registered target applications.
"""

import enum
from datetime import datetime
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Enum, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from nitroauth.db.base import Base


class SiteCategory(str, enum.Enum):
    """Category that decides which broad-access marker covers a site."""
    PREMIUM = "premium"
    STANDARD = "standard"
    ADMIN = "admin"


class Site(Base):
    """Registered target application. Deletion is soft (``is_active``)."""
    __tablename__ = "sites"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )
    url: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
        index=True,
        comment="Canonical URL, unique among active sites",
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[SiteCategory] = mapped_column(
        Enum(SiteCategory),
        nullable=False,
        default=SiteCategory.STANDARD,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
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
        return f"<Site(name={self.name}, url={self.url}, category={self.category})>"
