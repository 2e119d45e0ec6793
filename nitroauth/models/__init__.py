"""
SQLAlchemy ORM models for NitroAuth.
"""

from nitroauth.models.user import User
from nitroauth.models.site import Site, SiteCategory
from nitroauth.models.audit import AuditLog, AuditAction

__all__ = [
    "User",
    "Site",
    "SiteCategory",
    "AuditLog",
    "AuditAction",
]
