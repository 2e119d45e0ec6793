"""SQLAlchemy declarative base for NitroAuth tables."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for the users, sites and audit_logs models.
    """
    pass
